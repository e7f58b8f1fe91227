"""
Gap Inspector
Measures the gap between two edges along every configured measurement line
and classifies each against its tolerance.
"""

import cv2
import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional, Dict
import logging

from ..config.defaults import EngineDefaults
from ..config.settings import InspectionConfig
from ..utils.timer import PerformanceTimer
from .edge_finder import find_gap_edges
from .image_source import ImageSource, is_empty_frame
from .profile import extract_band_profile
from .smoothing import SmoothingState
from . import visualization

logger = logging.getLogger(__name__)


@dataclass
class GapMeasurement:
    """Result for one measurement line in one frame."""
    line_index: int
    raw_gap: float
    smoothed_gap: float
    edge1: float
    edge2: float
    profile: np.ndarray
    is_ok: bool
    edges_found: int = 0
    band_profiles: int = 0
    band_degraded: bool = False
    below_minimum: bool = False


@dataclass
class InspectionOutcome:
    """Result of one inspection call."""
    is_ok: bool
    max_gap_width: float = 0.0
    processing_time_ms: float = 0.0
    measurements: List[GapMeasurement] = field(default_factory=list)
    message: str = ""
    source_metadata: Dict = field(default_factory=dict)

    # Diagnostic images, opaque to the engine
    annotated_frame: Optional[np.ndarray] = None
    grayscale_frame: Optional[np.ndarray] = None
    profile_chart: Optional[np.ndarray] = None
    edge_view: Optional[np.ndarray] = None

    @property
    def verdict(self) -> str:
        return "OK" if self.is_ok else "NG"

    def get_summary(self) -> str:
        """Get comprehensive result summary."""
        lines = [
            f"Status: {self.verdict}",
            f"Processing Time: {self.processing_time_ms:.2f} ms",
            f"Max Gap: {self.max_gap_width:.2f} px"
        ]
        if self.message:
            lines.append(f"Message: {self.message}")
        for m in self.measurements:
            status = "OK" if m.is_ok else "NG"
            lines.append(f"L{m.line_index + 1}: {m.smoothed_gap:.2f} px "
                         f"(raw {m.raw_gap:.2f}, edges {m.edge1:.2f}-{m.edge2:.2f}) {status}")
        return "\n".join(lines)


def to_grayscale(frame: np.ndarray) -> np.ndarray:
    """Single-channel intensity view of a color or gray frame."""
    if frame.ndim == 2:
        return frame
    channels = frame.shape[2]
    if channels == 1:
        return np.ascontiguousarray(frame[:, :, 0])
    if channels == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)


class GapInspector:
    """
    Measurement engine.

    Stateless apart from the per-line smoothing accumulators it owns. Callers
    must not run two inspect() calls on the same instance concurrently.
    """

    def __init__(self, render_diagnostics: bool = True,
                 smoothing: Optional[SmoothingState] = None,
                 upsample_factor: int = EngineDefaults.UPSAMPLE_FACTOR,
                 band_line_count: int = EngineDefaults.BAND_LINE_COUNT):
        """Initialize inspector."""
        self.render_diagnostics = render_diagnostics
        self.smoothing = smoothing or SmoothingState()
        self.upsample_factor = upsample_factor
        self.band_line_count = band_line_count

    def reset_smoothing(self):
        """Clear EMA state; call whenever the active line/tolerance profile is swapped."""
        self.smoothing.reset()

    def inspect(self, frame: np.ndarray, config: InspectionConfig,
                source_metadata: Dict = None) -> InspectionOutcome:
        """Inspect one frame against the given configuration."""
        timer = PerformanceTimer("Gap inspection").start()
        if source_metadata is None:
            source_metadata = {'source_type': 'direct_array'}

        if is_empty_frame(frame):
            logger.error("Empty frame passed to inspection")
            return InspectionOutcome(
                is_ok=False, message="Empty frame",
                processing_time_ms=timer.stop(), source_metadata=source_metadata
            )

        lines = config.measurement_lines
        if not lines:
            outcome = InspectionOutcome(
                is_ok=False, message="No measurement lines",
                source_metadata=source_metadata
            )
            if self.render_diagnostics:
                outcome.annotated_frame = visualization.draw_no_lines(frame)
            outcome.processing_time_ms = timer.stop()
            return outcome

        # 1. Grayscale + Gaussian blur
        gray = to_grayscale(frame)
        kernel = config.blur_kernel_size
        blurred = cv2.GaussianBlur(gray, (kernel, kernel), 0)

        height, width = gray.shape[:2]
        self.smoothing.ensure_size(len(lines))

        measurements = []
        for index, line in enumerate(lines):
            measurements.append(self._measure_line(index, line, blurred, width, height, config))

        outcome = InspectionOutcome(
            is_ok=all(m.is_ok for m in measurements),
            max_gap_width=max(m.smoothed_gap for m in measurements),
            measurements=measurements,
            source_metadata=source_metadata
        )

        if self.render_diagnostics:
            outcome.grayscale_frame = gray.copy()
            outcome.annotated_frame = visualization.draw_annotated_frame(frame, config, outcome)
            outcome.profile_chart = visualization.draw_profile_chart(outcome.measurements, config)
            outcome.edge_view = visualization.draw_edge_view(blurred, config)

        outcome.processing_time_ms = timer.stop()
        timer.log_elapsed()
        return outcome

    def inspect_from_source(self, source: ImageSource, config: InspectionConfig) -> InspectionOutcome:
        """Inspect the current frame of an image source."""
        if not source.is_available():
            logger.error(f"Source not available: {source.get_source_info()}")
            return InspectionOutcome(
                is_ok=False, message="Source not available",
                source_metadata=source.get_metadata()
            )

        frame = source.get_frame()
        if frame is None:
            logger.error(f"Failed to get frame from: {source.get_source_info()}")
            return InspectionOutcome(
                is_ok=False, message="Failed to get frame",
                source_metadata=source.get_metadata()
            )

        return self.inspect(frame, config, source_metadata=source.get_metadata())

    def _measure_line(self, index, line, blurred, width, height,
                      config: InspectionConfig) -> GapMeasurement:
        px1, py1, px2, py2 = line.to_pixel_coords(width, height)

        band = extract_band_profile(blurred, px1, py1, px2, py2, self.band_line_count)
        edges = find_gap_edges(
            band.values, config.gap_threshold, config.edge_margin_percent,
            config.edge_detection_mode, self.upsample_factor
        )

        raw_gap = max(edges.gap_width, 0.0)
        smoothed = self.smoothing.update(index, raw_gap)

        # Lower bound is informational only
        return GapMeasurement(
            line_index=index,
            raw_gap=raw_gap,
            smoothed_gap=smoothed,
            edge1=edges.edge1,
            edge2=edges.edge2,
            profile=band.values,
            is_ok=smoothed <= line.max_gap_width,
            edges_found=edges.edges_found,
            band_profiles=band.contributing_lines,
            band_degraded=band.is_degraded,
            below_minimum=smoothed < line.min_gap_width
        )
