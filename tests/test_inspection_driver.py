"""Tests for the periodic inspection driver."""
import threading
import time
from unittest.mock import MagicMock

import pytest

from gapcheck.config.settings import InspectionConfig
from gapcheck.controller.inspection_driver import InspectionDriver, InspectionStatistics
from gapcheck.vision.image_source import ImageSource, SourceType
from gapcheck.vision.inspector import GapInspector, InspectionOutcome


class StaticSource(ImageSource):
    """Always serves the same frame."""

    def __init__(self, frame):
        self.frame = frame

    def get_frame(self):
        return None if self.frame is None else self.frame.copy()

    def is_available(self):
        return self.frame is not None

    def release(self):
        self.frame = None

    def get_source_info(self):
        return "Static frame"

    def get_source_type(self):
        return SourceType.UNKNOWN

    def get_metadata(self):
        return {'source_type': self.get_source_type().value}


class BlockingInspector:
    """Inspector whose inspect() waits until released."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()
        self.calls = 0

    def inspect(self, frame, config, source_metadata=None):
        self.calls += 1
        self.entered.set()
        self.release.wait(2.0)
        return InspectionOutcome(is_ok=True)


def test_run_once_inspects_and_records(stripe_frame, inspection_config):
    driver = InspectionDriver(StaticSource(stripe_frame), GapInspector(), lambda: inspection_config)
    results = []
    driver.add_result_callback(results.append)

    outcome = driver.run_once()

    assert outcome.is_ok
    assert results == [outcome]
    assert driver.statistics.total == 1
    assert driver.statistics.ok_rate == 100.0
    assert outcome.source_metadata == {'source_type': 'unknown'}


def test_run_once_without_frame(inspection_config):
    inspector = MagicMock()
    driver = InspectionDriver(StaticSource(None), inspector, lambda: inspection_config)

    assert driver.run_once() is None
    inspector.inspect.assert_not_called()
    assert driver.statistics.total == 0


def test_at_most_one_inspection_in_flight(stripe_frame, inspection_config):
    inspector = BlockingInspector()
    driver = InspectionDriver(StaticSource(stripe_frame), inspector, lambda: inspection_config)

    worker = threading.Thread(target=driver.run_once)
    worker.start()
    assert inspector.entered.wait(2.0)

    assert driver.run_once() is None

    inspector.release.set()
    worker.join(2.0)
    assert inspector.calls == 1
    assert driver.statistics.total == 1


def test_inspection_uses_snapshot_of_config(stripe_frame, inspection_config):
    inspector = MagicMock()
    inspector.inspect.return_value = InspectionOutcome(is_ok=True)
    driver = InspectionDriver(StaticSource(stripe_frame), inspector, lambda: inspection_config)

    driver.run_once()

    passed_config = inspector.inspect.call_args[0][1]
    assert passed_config == inspection_config
    assert passed_config is not inspection_config


def test_refuses_to_start_without_lines(stripe_frame):
    driver = InspectionDriver(StaticSource(stripe_frame), GapInspector(), lambda: InspectionConfig())

    assert not driver.start()
    assert not driver.is_running


def test_loop_publishes_results(stripe_frame, inspection_config):
    driver = InspectionDriver(StaticSource(stripe_frame), GapInspector(render_diagnostics=False),
                              lambda: inspection_config, interval=0.01)
    results = []
    driver.add_result_callback(results.append)

    assert driver.start()
    try:
        deadline = time.monotonic() + 2.0
        while len(results) < 3 and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        driver.stop()

    assert len(results) >= 3
    assert not driver.is_running
    assert all(r.is_ok for r in results)


def test_failing_callback_does_not_stop_publishing(stripe_frame, inspection_config):
    driver = InspectionDriver(StaticSource(stripe_frame), GapInspector(), lambda: inspection_config)
    received = []
    driver.add_result_callback(MagicMock(side_effect=RuntimeError("display gone")))
    driver.add_result_callback(received.append)

    driver.run_once()

    assert len(received) == 1


def test_statistics():
    stats = InspectionStatistics()
    assert stats.ok_rate is None

    stats.record(InspectionOutcome(is_ok=True))
    stats.record(InspectionOutcome(is_ok=False))
    stats.record(InspectionOutcome(is_ok=True))

    assert (stats.total, stats.ok, stats.ng) == (3, 2, 1)
    assert stats.ok_rate == pytest.approx(200.0 / 3)
    assert stats.last_outcome.is_ok

    stats.reset()
    assert stats.total == 0
    assert stats.last_outcome is None
