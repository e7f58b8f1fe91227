"""Tests for line sampling, band averaging and spline upsampling."""
import numpy as np
import pytest

from gapcheck.vision.profile import (
    band_offsets, bresenham_points, extract_band_profile, sample_line, upsample_profile
)


class TestBresenham:

    def test_horizontal_includes_both_endpoints(self):
        points = bresenham_points(0, 0, 5, 0, 10, 10)
        assert points == [(x, 0) for x in range(6)]

    def test_diagonal(self):
        assert bresenham_points(0, 0, 3, 3, 10, 10) == [(0, 0), (1, 1), (2, 2), (3, 3)]

    def test_reverse_direction(self):
        assert bresenham_points(4, 2, 1, 2, 10, 10) == [(4, 2), (3, 2), (2, 2), (1, 2)]

    def test_points_outside_image_are_skipped(self):
        points = bresenham_points(-2, 0, 3, 0, 10, 10)
        assert points == [(0, 0), (1, 0), (2, 0), (3, 0)]

    def test_line_entirely_outside(self):
        assert bresenham_points(0, -5, 9, -5, 10, 10) == []


def test_sample_line_reads_intensities():
    gray = np.tile(np.arange(10, dtype=np.uint8) * 10, (5, 1))

    profile = sample_line(gray, 2, 3, 6, 3)

    assert profile.dtype == np.float64
    assert profile.tolist() == [20.0, 30.0, 40.0, 50.0, 60.0]


class TestBandProfile:

    def test_offsets_for_horizontal_line(self):
        offsets = band_offsets(0, 0, 10, 0)

        assert offsets[0] == (0, 0)
        assert sorted(offsets[1:]) == [(0, -3), (0, -2), (0, -1), (0, 1), (0, 2), (0, 3)]

    def test_offsets_for_vertical_line_are_horizontal(self):
        offsets = band_offsets(5, 0, 5, 20)
        assert all(dy == 0 for _, dy in offsets)
        assert sorted(dx for dx, _ in offsets) == [-3, -2, -1, 0, 1, 2, 3]

    def test_averages_parallel_rows(self):
        gray = np.repeat((np.arange(60, dtype=np.uint8) * 2)[:, np.newaxis], 100, axis=1)

        band = extract_band_profile(gray, 10, 30, 90, 30)

        assert band.contributing_lines == 7
        assert not band.is_degraded
        assert band.values.size == 81
        assert np.allclose(band.values, 60.0)

    def test_lines_clipped_by_border_are_excluded(self):
        gray = np.full((60, 100), 100, dtype=np.uint8)
        gray[0] = 250

        band = extract_band_profile(gray, 10, 1, 90, 1)

        # Offsets -3 and -2 fall above the frame
        assert band.contributing_lines == 5
        assert band.requested_lines == 7
        assert np.allclose(band.values, (250 + 4 * 100) / 5)

    def test_degraded_band_is_flagged(self):
        gray = np.full((2, 50), 80, dtype=np.uint8)

        band = extract_band_profile(gray, 0, 0, 49, 0)

        assert band.contributing_lines == 2
        assert band.is_degraded
        assert np.allclose(band.values, 80.0)

    def test_line_outside_frame_gives_empty_profile(self):
        gray = np.zeros((20, 20), dtype=np.uint8)

        band = extract_band_profile(gray, 0, 50, 19, 50)

        assert band.values.size == 0
        assert band.contributing_lines == 0


class TestUpsample:

    def test_length(self):
        assert upsample_profile(np.arange(10, dtype=np.float64)).size == 37
        assert upsample_profile(np.arange(10, dtype=np.float64), factor=2).size == 19

    def test_passes_through_original_samples(self):
        rng = np.random.default_rng(7)
        profile = rng.uniform(20, 230, size=25)

        upsampled = upsample_profile(profile, 4)

        assert np.allclose(upsampled[::4], profile)

    def test_constant_profile_stays_constant(self):
        assert np.allclose(upsample_profile(np.full(8, 123.0)), 123.0)

    def test_overshoot_is_clamped(self):
        profile = np.array([0.0, 0.0, 255.0, 255.0, 0.0, 0.0])

        upsampled = upsample_profile(profile)

        assert upsampled.min() >= 0.0
        assert upsampled.max() <= 255.0

    @pytest.mark.parametrize("profile", [np.array([]), np.array([42.0])])
    def test_degenerate_input_returned_unchanged(self, profile):
        assert np.array_equal(upsample_profile(profile), profile)
