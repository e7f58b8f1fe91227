"""
Diagnostic Visualization
Annotated frame, intensity-profile chart and edge view for an inspection.
"""

import cv2
import numpy as np
from typing import List

from ..config.settings import InspectionConfig

OK_COLOR = (0, 255, 0)
NG_COLOR = (0, 0, 255)
GAP_COLOR = (0, 165, 255)
EDGE_COLOR = (255, 255, 0)
THRESHOLD_COLOR = (0, 200, 255)
AXIS_COLOR = (150, 150, 160)

CHART_WIDTH = 600
CHART_HEIGHT = 300
CHART_MARGIN = 40
CHART_BACKGROUND = (30, 30, 40)
PROFILE_COLORS = [
    (255, 100, 100),
    (100, 255, 100),
    (100, 100, 255)
]


def _to_bgr(frame: np.ndarray) -> np.ndarray:
    if frame.ndim == 2 or frame.shape[2] == 1:
        return cv2.cvtColor(np.ascontiguousarray(frame.reshape(frame.shape[:2])), cv2.COLOR_GRAY2BGR)
    if frame.shape[2] == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)
    return frame.copy()


def draw_no_lines(frame: np.ndarray) -> np.ndarray:
    """Frame stamped with a 'no measurement lines' banner."""
    annotated = _to_bgr(frame)
    cv2.putText(annotated, "NO MEASUREMENT LINES", (30, 60),
                cv2.FONT_HERSHEY_SIMPLEX, 1.5, NG_COLOR, 3)
    return annotated


def draw_annotated_frame(frame: np.ndarray, config: InspectionConfig, outcome) -> np.ndarray:
    """
    Draw measurement lines colour-coded by result, gap segments and labels.

    Args:
        frame: Original frame
        config: Configuration used for the inspection
        outcome: InspectionOutcome with one measurement per line

    Returns:
        New BGR image with overlay
    """
    annotated = _to_bgr(frame)
    height, width = frame.shape[:2]

    for line, m in zip(config.measurement_lines, outcome.measurements):
        px1, py1, px2, py2 = line.to_pixel_coords(width, height)
        color = OK_COLOR if m.is_ok else NG_COLOR

        cv2.line(annotated, (px1, py1), (px2, py2), color, 2)
        cv2.circle(annotated, (px1, py1), 5, color, -1)
        cv2.circle(annotated, (px2, py2), 5, color, -1)

        # Gap segment between the detected edges, placed by profile ratio
        if m.raw_gap > 0 and m.profile is not None and m.profile.size > 0:
            total = float(m.profile.size)
            start, end = m.edge1 / total, m.edge2 / total
            gx1 = px1 + int((px2 - px1) * start)
            gy1 = py1 + int((py2 - py1) * start)
            gx2 = px1 + int((px2 - px1) * end)
            gy2 = py1 + int((py2 - py1) * end)

            cv2.line(annotated, (gx1, gy1), (gx2, gy2), GAP_COLOR, 4)
            cv2.circle(annotated, (gx1, gy1), 6, EDGE_COLOR, 2)
            cv2.circle(annotated, (gx2, gy2), 6, EDGE_COLOR, 2)

        label = (f"L{m.line_index + 1}: {m.smoothed_gap:.1f}px "
                 f"[{line.min_gap_width}-{line.max_gap_width}]")
        label_pos = ((px1 + px2) // 2 + 10, (py1 + py2) // 2 - 10)
        cv2.putText(annotated, label, label_pos, cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 2)

    verdict_color = OK_COLOR if outcome.is_ok else NG_COLOR
    cv2.putText(annotated, outcome.verdict, (30, 50),
                cv2.FONT_HERSHEY_SIMPLEX, 1.5, verdict_color, 3)
    return annotated


def draw_profile_chart(measurements: List, config: InspectionConfig) -> np.ndarray:
    """Plot every line's intensity profile with the edge threshold and edge markers."""
    chart = np.full((CHART_HEIGHT, CHART_WIDTH, 3), CHART_BACKGROUND, dtype=np.uint8)

    profiles = [m.profile for m in measurements if m.profile is not None]
    max_len = max((p.size for p in profiles), default=0)
    if max_len == 0:
        return chart

    margin = CHART_MARGIN
    plot_w = CHART_WIDTH - margin * 2
    plot_h = CHART_HEIGHT - margin * 2

    def to_x(pos):
        return margin + int(pos / max_len * plot_w)

    def to_y(value):
        return margin + plot_h - int(value / 255.0 * plot_h)

    cv2.rectangle(chart, (margin, margin), (margin + plot_w, margin + plot_h), (60, 60, 70), 1)

    # Gradient threshold shares the 0-255 scale
    thresh_y = to_y(min(config.gap_threshold, 255))
    cv2.line(chart, (margin, thresh_y), (margin + plot_w, thresh_y), THRESHOLD_COLOR, 1)
    cv2.putText(chart, f"Edge={config.gap_threshold}", (margin + plot_w + 2, thresh_y + 4),
                cv2.FONT_HERSHEY_SIMPLEX, 0.35, THRESHOLD_COLOR, 1)

    for i, m in enumerate(measurements):
        profile = m.profile
        if profile is None or profile.size < 2:
            continue
        color = PROFILE_COLORS[i % len(PROFILE_COLORS)]

        points = np.array(
            [(to_x(p), to_y(v)) for p, v in enumerate(profile)], dtype=np.int32
        )
        cv2.polylines(chart, [points], False, color, 1)

        if m.edges_found > 0:
            for edge in (m.edge1, m.edge2):
                ex = to_x(edge)
                cv2.line(chart, (ex, margin), (ex, margin + plot_h), EDGE_COLOR, 1)

        cv2.putText(chart, f"L{m.line_index + 1}: gap={m.smoothed_gap:.1f}px",
                    (margin + 5, margin + 15 + i * 15),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.4, color, 1)

    cv2.putText(chart, "0", (margin - 15, margin + plot_h + 5),
                cv2.FONT_HERSHEY_SIMPLEX, 0.3, AXIS_COLOR, 1)
    cv2.putText(chart, "255", (margin - 30, margin + 10),
                cv2.FONT_HERSHEY_SIMPLEX, 0.3, AXIS_COLOR, 1)
    cv2.putText(chart, "Intensity Profile", (CHART_WIDTH // 2 - 50, CHART_HEIGHT - 5),
                cv2.FONT_HERSHEY_SIMPLEX, 0.4, AXIS_COLOR, 1)
    return chart


def draw_edge_view(blurred_gray: np.ndarray, config: InspectionConfig) -> np.ndarray:
    """Canny edge map of the blurred grayscale frame."""
    high = max(config.gap_threshold, 10)
    low = high // 2
    edges = cv2.Canny(blurred_gray, low, high)
    return cv2.cvtColor(edges, cv2.COLOR_GRAY2BGR)
