"""
Inspection Driver
Periodically pulls a snapshot from a frame source and runs it through the
gap inspector on its own thread, never more than one inspection at a time.
"""

import threading
from dataclasses import dataclass
from typing import Callable, List, Optional
import logging

from ..config.defaults import EngineDefaults
from ..config.settings import InspectionConfig
from ..vision.image_source import ImageSource
from ..vision.inspector import GapInspector, InspectionOutcome

logger = logging.getLogger(__name__)


@dataclass
class InspectionStatistics:
    """Running OK/NG counters."""
    total: int = 0
    ok: int = 0
    ng: int = 0
    last_outcome: Optional[InspectionOutcome] = None

    @property
    def ok_rate(self) -> Optional[float]:
        """Percentage of OK results, None before the first inspection."""
        if self.total == 0:
            return None
        return self.ok / self.total * 100.0

    def record(self, outcome: InspectionOutcome):
        self.total += 1
        if outcome.is_ok:
            self.ok += 1
        else:
            self.ng += 1
        self.last_outcome = outcome

    def reset(self):
        self.total = 0
        self.ok = 0
        self.ng = 0
        self.last_outcome = None


class InspectionDriver:
    """
    Timer-style loop feeding snapshots to the inspector.

    Args:
        source: Frame provider (typically a running CameraSource)
        inspector: Measurement engine; the driver is its only caller while running
        config_provider: Returns the active inspection configuration
        interval: Seconds between inspection ticks
    """

    def __init__(self, source: ImageSource, inspector: GapInspector,
                 config_provider: Callable[[], InspectionConfig],
                 interval: float = EngineDefaults.INSPECTION_INTERVAL_S):
        self.source = source
        self.inspector = inspector
        self.config_provider = config_provider
        self.interval = interval
        self.statistics = InspectionStatistics()

        self._result_callbacks: List[Callable[[InspectionOutcome], None]] = []
        self._inspect_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def add_result_callback(self, callback: Callable[[InspectionOutcome], None]):
        self._result_callbacks.append(callback)

    def remove_result_callback(self, callback: Callable[[InspectionOutcome], None]):
        if callback in self._result_callbacks:
            self._result_callbacks.remove(callback)

    def start(self) -> bool:
        """Start continuous inspection; refuses when no lines are configured."""
        if self.is_running:
            return True

        if not self.config_provider().measurement_lines:
            logger.warning("No measurement lines configured, inspection not started")
            return False

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop, name="InspectionDriver", daemon=True
        )
        self._thread.start()
        logger.info("Continuous inspection started")
        return True

    def stop(self, timeout: float = EngineDefaults.JOIN_TIMEOUT_S):
        """Stop the loop; an inspection already running completes first."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
        self._thread = None
        logger.info("Continuous inspection stopped")

    def reset_statistics(self):
        self.statistics.reset()

    def run_once(self) -> Optional[InspectionOutcome]:
        """
        Inspect the current frame.

        Returns:
            The outcome, or None when no frame is available or another
            inspection is still in flight
        """
        if not self._inspect_lock.acquire(blocking=False):
            logger.debug("Inspection still in flight, tick skipped")
            return None

        try:
            frame = self.source.get_frame()
            if frame is None:
                return None

            # Lines are fixed for the duration of one inspection
            config = self.config_provider().copy()
            outcome = self.inspector.inspect(frame, config,
                                             source_metadata=self.source.get_metadata())
            self.statistics.record(outcome)
        finally:
            self._inspect_lock.release()

        self._publish(outcome)
        return outcome

    def _run_loop(self):
        while not self._stop_event.wait(self.interval):
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"Inspection failed: {e}", exc_info=True)

    def _publish(self, outcome: InspectionOutcome):
        for callback in list(self._result_callbacks):
            try:
                callback(outcome)
            except Exception as e:
                logger.error(f"Result callback error: {e}")
