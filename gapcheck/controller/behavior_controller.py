"""
Behavior Controller
Workflow state machine for the inspection station: camera live, continuous
inspection, error and shutdown.
"""

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

StateCallback = Callable[['SystemState', Dict[str, Any]], None]


class SystemState(Enum):
    """Station workflow states."""
    IDLE = auto()
    CAMERA_LIVE = auto()
    INSPECTING = auto()
    ERROR = auto()
    SHUTDOWN = auto()


@dataclass
class StateTransition:
    """One entry of the transition log."""
    from_state: SystemState
    to_state: SystemState
    trigger: str
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)


_ALLOWED = {
    SystemState.IDLE: {SystemState.CAMERA_LIVE, SystemState.ERROR, SystemState.SHUTDOWN},
    SystemState.CAMERA_LIVE: {SystemState.INSPECTING, SystemState.IDLE,
                              SystemState.ERROR, SystemState.SHUTDOWN},
    SystemState.INSPECTING: {SystemState.CAMERA_LIVE, SystemState.IDLE,
                             SystemState.ERROR, SystemState.SHUTDOWN},
    SystemState.ERROR: {SystemState.IDLE, SystemState.CAMERA_LIVE, SystemState.SHUTDOWN},
    SystemState.SHUTDOWN: set(),
}


class BehaviorController:
    """
    Validates workflow transitions and tracks the station's readiness flags.

    INSPECTING can only be entered with the camera running and at least one
    measurement line configured; a failed attempt moves the station to ERROR.
    State-entry callbacks receive (state, metadata).
    """

    HISTORY_SIZE = 100

    def __init__(self):
        self._lock = threading.RLock()
        self._state = SystemState.IDLE
        self._previous: Optional[SystemState] = None
        self._history = deque(maxlen=self.HISTORY_SIZE)
        self._callbacks: Dict[SystemState, List[StateCallback]] = {}
        self._camera_running = False
        self._lines_configured = False
        self._error_message: Optional[str] = None

    @property
    def current_state(self) -> SystemState:
        return self._state

    @property
    def previous_state(self) -> Optional[SystemState]:
        return self._previous

    @property
    def is_camera_running(self) -> bool:
        return self._camera_running

    @property
    def are_lines_configured(self) -> bool:
        return self._lines_configured

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    def can_transition_to(self, target: SystemState) -> bool:
        return target in _ALLOWED[self._state]

    def transition_to(self, target: SystemState, trigger: str = "manual",
                      metadata: Optional[Dict[str, Any]] = None) -> bool:
        """
        Move to `target` if the transition table and prerequisites allow it.

        Returns:
            True when the station is in `target` afterwards
        """
        with self._lock:
            if target == self._state:
                return True

            if not self.can_transition_to(target):
                logger.warning(f"Invalid transition: {self._state.name} -> {target.name}")
                return False

            problem = self._prerequisite_problem(target)
            if problem:
                logger.error(f"Cannot enter {target.name}: {problem}")
                self._set_error(problem)
                return False

            self._change_state(target, trigger, metadata or {})
            return True

    def _prerequisite_problem(self, target: SystemState) -> Optional[str]:
        if target != SystemState.INSPECTING:
            return None
        if not self._camera_running:
            return "Camera not running"
        if not self._lines_configured:
            return "No measurement lines configured"
        return None

    def _change_state(self, target: SystemState, trigger: str, metadata: Dict[str, Any]):
        source = self._state
        self._previous, self._state = source, target
        if source == SystemState.ERROR and target != SystemState.ERROR:
            self._error_message = None

        self._history.append(StateTransition(source, target, trigger, metadata=metadata))
        logger.info(f"State transition: {source.name} -> {target.name} (trigger: {trigger})")
        self._notify(target, metadata)

    def _set_error(self, message: str):
        self._error_message = message
        self._change_state(SystemState.ERROR, "error", {'error': message})

    def register_state_callback(self, state: SystemState, callback: StateCallback):
        """Call `callback(state, metadata)` whenever `state` is entered."""
        self._callbacks.setdefault(state, []).append(callback)

    def _notify(self, state: SystemState, metadata: Dict[str, Any]):
        for callback in list(self._callbacks.get(state, [])):
            try:
                callback(state, metadata)
            except Exception as e:
                logger.error(f"State callback error for {state.name}: {e}")

    # ==================== Workflow ====================

    def set_lines_configured(self, configured: bool):
        self._lines_configured = configured
        logger.debug(f"Measurement lines configured: {configured}")

    def camera_started(self) -> bool:
        self._camera_running = True
        return self.transition_to(SystemState.CAMERA_LIVE, trigger="camera_started")

    def camera_failed(self, message: str):
        with self._lock:
            self._camera_running = False
            if self._state != SystemState.SHUTDOWN:
                self._set_error(message)

    def camera_stopped(self) -> bool:
        self._camera_running = False
        if self._state in (SystemState.ERROR, SystemState.SHUTDOWN):
            return False
        return self.transition_to(SystemState.IDLE, trigger="camera_stopped")

    def start_inspection(self) -> bool:
        return self.transition_to(SystemState.INSPECTING, trigger="start_inspection")

    def stop_inspection(self) -> bool:
        if self._state != SystemState.INSPECTING:
            return False
        return self.transition_to(self._resting_state(), trigger="stop_inspection")

    def reset_from_error(self) -> bool:
        if self._state != SystemState.ERROR:
            return False
        return self.transition_to(self._resting_state(), trigger="error_recovery")

    def shutdown(self) -> bool:
        return self.transition_to(SystemState.SHUTDOWN, trigger="shutdown")

    def _resting_state(self) -> SystemState:
        return SystemState.CAMERA_LIVE if self._camera_running else SystemState.IDLE

    # ==================== Reporting ====================

    def get_state_summary(self) -> str:
        lines = [
            f"State: {self._state.name}",
            f"Camera: {'running' if self._camera_running else 'stopped'}",
            f"Measurement lines: {'configured' if self._lines_configured else 'none'}",
        ]
        if self._error_message:
            lines.append(f"Error: {self._error_message}")
        return "\n".join(lines)

    def get_transition_history(self, limit: int = 10) -> List[StateTransition]:
        return list(self._history)[-limit:]
