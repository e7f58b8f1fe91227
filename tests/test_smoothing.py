"""Tests for per-line exponential smoothing."""
import pytest

from gapcheck.vision.smoothing import SmoothingState


@pytest.fixture
def state():
    smoothing = SmoothingState()
    smoothing.ensure_size(1)
    return smoothing


def test_first_reading_seeds_accumulator(state):
    assert state.update(0, 10.0) == 10.0


def test_subsequent_readings_are_weighted(state):
    state.update(0, 10.0)
    assert state.update(0, 20.0) == pytest.approx(13.0)


def test_zero_reading_reported_and_accumulator_untouched(state):
    reported = [state.update(0, raw) for raw in [10.0, 10.0, 10.0, 0.0, 10.0]]

    assert reported == [10.0, 10.0, 10.0, 0.0, 10.0]
    assert state.values == [10.0]


def test_zero_does_not_pull_average_down(state):
    state.update(0, 10.0)
    state.update(0, 20.0)
    assert state.update(0, 0.0) == 0.0
    assert state.update(0, 20.0) == pytest.approx(0.3 * 20.0 + 0.7 * 13.0)


def test_reset_reports_next_reading_exactly(state):
    state.update(0, 10.0)
    state.update(0, 20.0)

    state.reset()

    assert len(state) == 1
    assert state.update(0, 7.0) == 7.0


def test_lines_are_independent():
    state = SmoothingState()
    state.ensure_size(2)

    state.update(0, 10.0)
    state.update(1, 4.0)

    assert state.update(0, 20.0) == pytest.approx(13.0)
    assert state.values[1] == 4.0


def test_size_change_reallocates():
    state = SmoothingState()
    state.ensure_size(1)
    state.update(0, 10.0)

    state.ensure_size(1)
    assert state.values == [10.0]

    state.ensure_size(3)
    assert state.values == [0.0, 0.0, 0.0]
