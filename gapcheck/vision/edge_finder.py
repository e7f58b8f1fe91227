"""
Edge Finder
Locates the two gap edges in an intensity profile from its gradient and
refines them to sub-sample precision with a parabolic fit.
"""

import numpy as np
from dataclasses import dataclass
from typing import Tuple

from ..config.defaults import EngineDefaults
from ..config.settings import EdgeDetectionMode
from .profile import upsample_profile

NO_EDGE = -1


@dataclass
class EdgeSearchResult:
    """Edge positions in original-profile units; gap_width is never negative."""
    edge1: float = 0.0
    edge2: float = 0.0
    gap_width: float = 0.0
    edges_found: int = 0


def compute_gradient(profile: np.ndarray, span: int) -> np.ndarray:
    """Absolute central difference |p[i + span] - p[i - span]|, zero near the ends."""
    n = profile.size
    gradient = np.zeros(n, dtype=np.float64)
    if n > 2 * span:
        gradient[span:n - span] = np.abs(profile[2 * span:] - profile[:n - 2 * span])
    return gradient


def search_window(length: int, margin_percent: float, span: int) -> Tuple[int, int]:
    """Inclusive [start, end] index range left after excluding the margins."""
    margin = int(length * margin_percent / 100.0)
    start = max(span, margin)
    end = min(length - 1 - span, length - 1 - margin)
    return start, end


def find_strongest_pair(gradient: np.ndarray, start: int, end: int,
                        threshold: float, min_separation: int) -> Tuple[int, int]:
    """
    Strongest qualifying gradient, then the strongest one at least
    min_separation samples away from it.
    """
    window = gradient[start:end + 1]
    qualifying = (window >= threshold) & (window > 0)
    if not qualifying.any():
        return NO_EDGE, NO_EDGE

    first = start + int(np.argmax(np.where(qualifying, window, -1.0)))

    positions = np.arange(start, end + 1)
    separated = qualifying & (np.abs(positions - first) >= min_separation)
    if not separated.any():
        return first, NO_EDGE

    second = start + int(np.argmax(np.where(separated, window, -1.0)))
    return first, second


def find_first_and_last(gradient: np.ndarray, start: int, end: int,
                        threshold: float) -> Tuple[int, int]:
    """First qualifying sample scanning forward, last scanning backward."""
    window = gradient[start:end + 1]
    hits = np.flatnonzero((window >= threshold) & (window > 0))
    if hits.size == 0:
        return NO_EDGE, NO_EDGE

    first = start + int(hits[0])
    last = start + int(hits[-1])
    if last <= first:
        return first, NO_EDGE
    return first, last


def refine_peak(gradient: np.ndarray, index: int) -> float:
    """
    Parabolic sub-sample refinement around a discrete gradient peak.

    Falls back to the integer position when the fit is degenerate.
    """
    if index <= 0 or index >= gradient.size - 1:
        return float(index)

    left, center, right = gradient[index - 1], gradient[index], gradient[index + 1]
    denominator = left - 2.0 * center + right
    if abs(denominator) < EngineDefaults.PARABOLA_EPSILON:
        return float(index)

    offset = 0.5 * (left - right) / denominator
    limit = EngineDefaults.MAX_SUBPIXEL_OFFSET
    return index + float(np.clip(offset, -limit, limit))


def find_gap_edges(profile: np.ndarray, threshold: float, margin_percent: float,
                   mode: EdgeDetectionMode = EdgeDetectionMode.STRONGEST_PAIR,
                   factor: int = EngineDefaults.UPSAMPLE_FACTOR) -> EdgeSearchResult:
    """
    Find the gap between two edges of an original-resolution profile.

    Args:
        profile: Intensity samples along the measurement line
        threshold: Minimum gradient magnitude (0-255 scale) for an edge
        margin_percent: Percentage of the profile excluded at both ends
        mode: Edge pairing strategy
        factor: Upsampling factor applied before the search

    Returns:
        EdgeSearchResult in original-profile units
    """
    profile = np.asarray(profile, dtype=np.float64)
    if profile.size < EngineDefaults.MIN_PROFILE_LENGTH:
        return EdgeSearchResult()

    upsampled = upsample_profile(profile, factor)
    span = max(factor, 1)
    gradient = compute_gradient(upsampled, span)

    start, end = search_window(upsampled.size, margin_percent, span)
    if start >= end:
        return EdgeSearchResult()

    if mode == EdgeDetectionMode.FIRST_AND_LAST:
        first, second = find_first_and_last(gradient, start, end, threshold)
    else:
        min_separation = EngineDefaults.MIN_EDGE_SEPARATION_FACTOR * span
        first, second = find_strongest_pair(gradient, start, end, threshold, min_separation)

    if first == NO_EDGE:
        return EdgeSearchResult()

    first_pos = refine_peak(gradient, first) / span
    if second == NO_EDGE:
        return EdgeSearchResult(edge1=first_pos, edge2=first_pos, gap_width=0.0, edges_found=1)

    second_pos = refine_peak(gradient, second) / span
    edge1, edge2 = min(first_pos, second_pos), max(first_pos, second_pos)
    return EdgeSearchResult(edge1=edge1, edge2=edge2, gap_width=edge2 - edge1, edges_found=2)
