"""Unit tests for gradient edge search and sub-pixel refinement."""
import numpy as np
import pytest

from gapcheck.config.settings import EdgeDetectionMode
from gapcheck.vision.edge_finder import (
    NO_EDGE, compute_gradient, find_first_and_last, find_gap_edges,
    find_strongest_pair, refine_peak, search_window
)


class TestStrongestPair:

    def test_recovers_subpixel_step_positions(self, make_step_profile):
        profile = make_step_profile(41, [10.3, 30.6])

        result = find_gap_edges(profile, threshold=60, margin_percent=0,
                                mode=EdgeDetectionMode.STRONGEST_PAIR)

        assert result.edges_found == 2
        assert result.edge1 == pytest.approx(10.3, abs=0.5)
        assert result.edge2 == pytest.approx(30.6, abs=0.5)
        assert result.gap_width == pytest.approx(result.edge2 - result.edge1)

    def test_single_edge_gives_zero_gap(self):
        profile = np.array([50.0] * 20 + [200.0] * 21)

        result = find_gap_edges(profile, threshold=60, margin_percent=0,
                                mode=EdgeDetectionMode.STRONGEST_PAIR)

        assert result.edges_found == 1
        assert result.gap_width == 0.0
        assert result.edge1 == result.edge2 == pytest.approx(19.5)

    def test_second_edge_respects_minimum_separation(self):
        gradient = np.zeros(50)
        gradient[20] = 100
        gradient[22] = 90   # too close to the strongest
        gradient[40] = 70

        first, second = find_strongest_pair(gradient, 1, 48, threshold=50, min_separation=12)

        assert (first, second) == (20, 40)

    def test_nothing_above_threshold(self):
        gradient = np.full(30, 10.0)

        assert find_strongest_pair(gradient, 1, 28, threshold=50, min_separation=3) == (NO_EDGE, NO_EDGE)


class TestFirstAndLast:

    def test_single_qualifying_edge_gives_equal_positions(self):
        profile = np.array([50.0] * 20 + [200.0] * 21)

        # Only the gradient peak at 19.5 exceeds 166 after upsampling
        result = find_gap_edges(profile, threshold=166, margin_percent=0,
                                mode=EdgeDetectionMode.FIRST_AND_LAST)

        assert result.gap_width == 0.0
        assert result.edge1 == result.edge2
        assert result.edge1 == pytest.approx(19.5)

    def test_single_spike_in_gradient(self):
        gradient = np.zeros(40)
        gradient[20] = 100

        assert find_first_and_last(gradient, 1, 38, threshold=50) == (20, NO_EDGE)

    def test_spans_first_to_last_qualifying(self):
        gradient = np.zeros(40)
        gradient[[8, 9, 25, 30]] = [60, 90, 200, 70]

        assert find_first_and_last(gradient, 1, 38, threshold=50) == (8, 30)

    def test_two_steps_measured_outermost(self, make_step_profile):
        profile = make_step_profile(41, [10.3, 30.6])

        result = find_gap_edges(profile, threshold=60, margin_percent=0,
                                mode=EdgeDetectionMode.FIRST_AND_LAST)

        assert result.edges_found == 2
        assert result.edge1 < 10.3 < 30.6 < result.edge2 + 0.5
        assert result.gap_width > 19.0


class TestRefinePeak:

    def test_symmetric_peak_is_unchanged(self):
        assert refine_peak(np.array([1.0, 3.0, 1.0]), 1) == 1.0

    def test_asymmetric_peak_moves_toward_larger_neighbor(self):
        assert refine_peak(np.array([2.0, 4.0, 3.0]), 1) == pytest.approx(1.0 + 1.0 / 6.0)

    def test_flat_gradient_falls_back_to_integer(self):
        assert refine_peak(np.array([5.0, 5.0, 5.0]), 1) == 1.0

    def test_offset_is_clamped(self):
        assert refine_peak(np.array([0.0, 10.0, 100.0]), 1) == pytest.approx(0.5)

    def test_boundary_index_is_unrefined(self):
        gradient = np.array([9.0, 3.0, 1.0])
        assert refine_peak(gradient, 0) == 0.0
        assert refine_peak(gradient, 2) == 2.0


class TestSearchRange:

    def test_gradient_uses_span_and_zero_borders(self):
        profile = np.arange(20, dtype=np.float64) * 2
        gradient = compute_gradient(profile, 4)

        assert np.all(gradient[:4] == 0)
        assert np.all(gradient[-4:] == 0)
        assert np.all(gradient[4:-4] == 16)

    def test_search_window_applies_margin(self):
        assert search_window(161, 10, 4) == (16, 144)
        assert search_window(161, 0, 4) == (4, 156)

    def test_margin_hides_edge_near_line_end(self, make_step_profile):
        profile = make_step_profile(41, [3.3, 30.6])

        result = find_gap_edges(profile, threshold=60, margin_percent=20)

        assert result.edges_found == 1
        assert result.gap_width == 0.0

    def test_short_profile_has_no_edges(self):
        result = find_gap_edges(np.array([0.0, 255.0, 0.0, 255.0]), threshold=10, margin_percent=0)

        assert result.edges_found == 0
        assert result.gap_width == 0.0
        assert result.edge1 == result.edge2 == 0.0


@pytest.mark.parametrize("mode", list(EdgeDetectionMode))
def test_gap_never_negative_on_noise(mode):
    rng = np.random.default_rng(42)
    for _ in range(50):
        profile = rng.uniform(0, 255, size=rng.integers(1, 120))
        result = find_gap_edges(profile, threshold=rng.uniform(0, 150),
                                margin_percent=rng.integers(0, 30), mode=mode)
        assert result.gap_width >= 0.0
        assert result.edge2 >= result.edge1
