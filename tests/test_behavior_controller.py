"""Tests for the inspection workflow state machine."""
from gapcheck.controller.behavior_controller import BehaviorController, SystemState


def test_starts_idle():
    controller = BehaviorController()
    assert controller.current_state == SystemState.IDLE
    assert controller.error_message is None


def test_normal_workflow():
    controller = BehaviorController()
    controller.set_lines_configured(True)

    assert controller.camera_started()
    assert controller.start_inspection()
    assert controller.current_state == SystemState.INSPECTING

    assert controller.stop_inspection()
    assert controller.current_state == SystemState.CAMERA_LIVE

    assert controller.camera_stopped()
    assert controller.current_state == SystemState.IDLE
    assert len(controller.get_transition_history()) == 4


def test_inspection_requires_running_camera():
    controller = BehaviorController()
    controller.set_lines_configured(True)

    assert not controller.start_inspection()
    assert controller.current_state == SystemState.IDLE


def test_inspection_without_lines_enters_error():
    controller = BehaviorController()
    controller.camera_started()

    assert not controller.start_inspection()
    assert controller.current_state == SystemState.ERROR
    assert controller.error_message == "No measurement lines configured"

    assert controller.reset_from_error()
    assert controller.current_state == SystemState.CAMERA_LIVE
    assert controller.error_message is None


def test_camera_failure_and_recovery():
    controller = BehaviorController()
    errors = []
    controller.register_state_callback(SystemState.ERROR, lambda state, meta: errors.append(meta))

    controller.camera_failed("Failed to open camera index 0")

    assert controller.current_state == SystemState.ERROR
    assert errors == [{'error': "Failed to open camera index 0"}]
    assert "Failed to open camera index 0" in controller.get_state_summary()

    assert controller.reset_from_error()
    assert controller.current_state == SystemState.IDLE


def test_shutdown_is_terminal():
    controller = BehaviorController()
    assert controller.shutdown()
    assert not controller.camera_started()
    assert controller.current_state == SystemState.SHUTDOWN
