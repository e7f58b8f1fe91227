"""
Camera Resolution Negotiation
Tries a descending ladder of capture modes and keeps the first one whose
measured frame rate is acceptable.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple
import logging

from ..config.defaults import EngineDefaults
from ..exceptions import CameraOpenError
from ..utils.timer import timed_operation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaptureCandidate:
    """One capture mode to request from the device."""
    width: int
    height: int
    fourcc: Optional[str] = "MJPG"
    fps: int = EngineDefaults.TARGET_FPS

    @property
    def label(self) -> str:
        return f"{self.width}x{self.height} {self.fourcc or 'native'}"


@dataclass
class NegotiationResult:
    """Accepted capture mode and the opened device."""
    capture: Any
    candidate: CaptureCandidate
    measured_fps: float
    attempts: List[Tuple[CaptureCandidate, float]] = field(default_factory=list)


def default_candidates() -> List[CaptureCandidate]:
    return [CaptureCandidate(w, h, fourcc) for w, h, fourcc in EngineDefaults.CANDIDATE_RESOLUTIONS]


def parse_resolution_hint(hint: Optional[str]) -> Optional[Tuple[int, int]]:
    """
    Parse a 'WIDTHxHEIGHT' token.

    Returns:
        (width, height), or None for 'Auto' and anything unparseable
    """
    if not hint or hint.strip().lower() == EngineDefaults.AUTO_RESOLUTION.lower():
        return None

    parts = hint.lower().split('x')
    if len(parts) != 2:
        logger.warning(f"Unrecognized resolution '{hint}', using auto negotiation")
        return None

    try:
        width, height = int(parts[0]), int(parts[1])
    except ValueError:
        logger.warning(f"Unrecognized resolution '{hint}', using auto negotiation")
        return None

    if width <= 0 or height <= 0:
        logger.warning(f"Invalid resolution '{hint}', using auto negotiation")
        return None
    return width, height


def measure_capture_fps(capture, frame_count: int = EngineDefaults.PROBE_FRAME_COUNT) -> float:
    """Time a fixed number of real reads and return achieved frames per second."""
    # First read after a mode change is often slow; keep it out of the measurement
    capture.read()

    count = 0
    with timed_operation("Camera FPS probe") as timer:
        for _ in range(frame_count):
            ok, frame = capture.read()
            if ok and frame is not None and frame.size > 0:
                count += 1

    if count == 0 or timer.elapsed_ms <= 0:
        return 0.0
    return count * 1000.0 / timer.elapsed_ms


class ResolutionNegotiator:
    """
    Data-driven retry ladder.

    Args:
        open_capture: Opens the device in a candidate mode, returns None on failure
        probe: Measures achieved FPS of an opened capture
        min_fps: Minimum acceptable measured rate
    """

    def __init__(self, open_capture: Callable[[CaptureCandidate], Any],
                 probe: Callable[[Any], float] = measure_capture_fps,
                 min_fps: float = EngineDefaults.MIN_ACCEPTABLE_FPS):
        self.open_capture = open_capture
        self.probe = probe
        self.min_fps = min_fps

    def negotiate(self, candidates: List[CaptureCandidate]) -> NegotiationResult:
        """
        Accept the first candidate meeting min_fps, else the last candidate tried.

        Raises:
            CameraOpenError: if no candidate could be opened
        """
        attempts = []
        last_opened = None

        for index, candidate in enumerate(candidates):
            capture = self.open_capture(candidate)
            if capture is None:
                logger.warning(f"Could not open camera at {candidate.label}")
                continue

            measured = self.probe(capture)
            attempts.append((candidate, measured))
            last_opened = candidate
            logger.info(f"Measured FPS at {candidate.label}: {measured:.1f}")

            is_last = index == len(candidates) - 1
            if measured >= self.min_fps or is_last:
                return NegotiationResult(capture, candidate, measured, attempts)

            logger.info(f"FPS too low at {candidate.label}, trying next resolution")
            capture.release()

        if last_opened is None:
            raise CameraOpenError("Camera could not be opened at any resolution")

        # Final candidate failed to open; fall back to the last one that did
        capture = self.open_capture(last_opened)
        if capture is None:
            raise CameraOpenError(f"Camera could not be reopened at {last_opened.label}")
        measured = dict(attempts).get(last_opened, 0.0)
        return NegotiationResult(capture, last_opened, measured, attempts)
