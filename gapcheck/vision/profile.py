"""
Intensity Profile Extraction
Samples a grayscale image along a measurement line, averaging a band of
parallel offset lines, and upsamples the result with a Catmull-Rom spline.
"""

import numpy as np
from dataclasses import dataclass
from typing import List, Tuple
import logging

from ..config.defaults import EngineDefaults

logger = logging.getLogger(__name__)


@dataclass
class BandProfile:
    """Averaged profile plus how many offset lines contributed to it."""
    values: np.ndarray
    contributing_lines: int
    requested_lines: int

    @property
    def is_degraded(self) -> bool:
        return self.contributing_lines < min(EngineDefaults.MIN_BAND_PROFILES, self.requested_lines)


def bresenham_points(x1: int, y1: int, x2: int, y2: int,
                     width: int, height: int) -> List[Tuple[int, int]]:
    """
    Integer-grid points from (x1, y1) to (x2, y2), clipped to the image.

    Points falling outside [0, width) x [0, height) are skipped, so lines
    running off the frame yield shorter point lists.
    """
    points = []
    dx = abs(x2 - x1)
    dy = abs(y2 - y1)
    sx = 1 if x1 < x2 else -1
    sy = 1 if y1 < y2 else -1
    err = dx - dy
    cx, cy = x1, y1

    while True:
        if 0 <= cx < width and 0 <= cy < height:
            points.append((cx, cy))

        if cx == x2 and cy == y2:
            break

        e2 = 2 * err
        if e2 > -dy:
            err -= dy
            cx += sx
        if e2 < dx:
            err += dx
            cy += sy

    return points


def sample_line(gray: np.ndarray, x1: int, y1: int, x2: int, y2: int) -> np.ndarray:
    """Intensity values along one line."""
    height, width = gray.shape[:2]
    points = bresenham_points(x1, y1, x2, y2, width, height)
    if not points:
        return np.empty(0, dtype=np.float64)

    xs, ys = zip(*points)
    return gray[np.array(ys), np.array(xs)].astype(np.float64)


def band_offsets(x1: int, y1: int, x2: int, y2: int,
                 line_count: int = EngineDefaults.BAND_LINE_COUNT) -> List[Tuple[int, int]]:
    """
    Integer pixel offsets perpendicular to the line, center line first.

    For 7 lines the offsets run -3..3 pixels along the unit normal.
    """
    length = np.hypot(x2 - x1, y2 - y1)
    if length == 0:
        return [(0, 0)]

    nx = -(y2 - y1) / length
    ny = (x2 - x1) / length
    half = line_count // 2

    offsets = [(0, 0)]
    for k in range(-half, half + 1):
        if k == 0:
            continue
        offsets.append((int(round(k * nx)), int(round(k * ny))))
    return offsets


def extract_band_profile(gray: np.ndarray, x1: int, y1: int, x2: int, y2: int,
                         line_count: int = EngineDefaults.BAND_LINE_COUNT) -> BandProfile:
    """
    Average intensity profiles of parallel lines straddling the center line.

    Offset lines whose sample count differs from the center line (clipped by
    the frame border) are left out of the average.
    """
    offsets = band_offsets(x1, y1, x2, y2, line_count)
    reference = sample_line(gray, x1, y1, x2, y2)
    if reference.size == 0:
        return BandProfile(reference, 0, len(offsets))

    total = reference.copy()
    contributing = 1
    for ox, oy in offsets[1:]:
        profile = sample_line(gray, x1 + ox, y1 + oy, x2 + ox, y2 + oy)
        if profile.size != reference.size:
            continue
        total += profile
        contributing += 1

    band = BandProfile(total / contributing, contributing, len(offsets))
    if band.is_degraded:
        logger.warning(f"Band average degraded: {contributing}/{len(offsets)} lines usable")
    return band


def upsample_profile(profile: np.ndarray,
                     factor: int = EngineDefaults.UPSAMPLE_FACTOR) -> np.ndarray:
    """
    Catmull-Rom interpolation to `factor` samples per original sample.

    Output length is (n - 1) * factor + 1; sample i * factor equals the
    original sample i. Values are clamped to the 0-255 intensity range.
    """
    profile = np.asarray(profile, dtype=np.float64)
    n = profile.size
    if n < 2 or factor <= 1:
        return profile.copy()

    # Neighborhood p0..p3 for every segment [i, i + 1], clamped at the ends
    idx = np.arange(n - 1)
    p0 = profile[np.maximum(idx - 1, 0)]
    p1 = profile[idx]
    p2 = profile[idx + 1]
    p3 = profile[np.minimum(idx + 2, n - 1)]

    u = (np.arange(factor) / factor)[np.newaxis, :]
    p0, p1, p2, p3 = (p[:, np.newaxis] for p in (p0, p1, p2, p3))

    segments = 0.5 * (
        2.0 * p1
        + (-p0 + p2) * u
        + (2.0 * p0 - 5.0 * p1 + 4.0 * p2 - p3) * u ** 2
        + (-p0 + 3.0 * p1 - 3.0 * p2 + p3) * u ** 3
    )

    upsampled = np.append(segments.ravel(), profile[-1])
    return np.clip(upsampled, 0.0, EngineDefaults.INTENSITY_MAX)
