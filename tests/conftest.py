"""Pytest configuration and shared fixtures for the gap inspection system.

Provides synthetic frames, measurement configurations and fake capture
devices so the camera source can be exercised without hardware.
"""
import logging
import threading

import cv2
import numpy as np
import pytest

from gapcheck.config.settings import InspectionConfig, MeasurementLine, EdgeDetectionMode
from gapcheck.config.settings_manager import SettingsManager


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)


class FakeCapture:
    """Stand-in for cv2.VideoCapture with scripted behaviour."""

    def __init__(self, opened=True, frame=None, fail_reads=0):
        self.opened = opened
        self.frame = frame if frame is not None else np.zeros((48, 64, 3), dtype=np.uint8)
        self.fail_reads = fail_reads
        self.props = {}
        self.released = False
        self.read_count = 0
        self.lock = threading.Lock()

    def isOpened(self):
        return self.opened and not self.released

    def read(self):
        with self.lock:
            self.read_count += 1
            if self.fail_reads > 0:
                self.fail_reads -= 1
                return False, None
        return True, self.frame.copy()

    def set(self, prop, value):
        self.props[prop] = value
        return True

    def get(self, prop):
        if prop == cv2.CAP_PROP_FRAME_WIDTH:
            return float(self.props.get(prop, self.frame.shape[1]))
        if prop == cv2.CAP_PROP_FRAME_HEIGHT:
            return float(self.props.get(prop, self.frame.shape[0]))
        return float(self.props.get(prop, 0.0))

    def release(self):
        self.released = True


class FakeCaptureFactory:
    """Records every open request and hands out FakeCapture instances."""

    def __init__(self, opened=True, frame=None):
        self.opened = opened
        self.frame = frame
        self.captures = []

    def __call__(self, index, api=None):
        capture = FakeCapture(opened=self.opened, frame=self.frame)
        capture.index = index
        self.captures.append(capture)
        return capture


@pytest.fixture
def fake_capture_factory():
    return FakeCaptureFactory()


@pytest.fixture
def stripe_frame():
    """100x60 bright frame with a dark vertical gap from x=40 to x=49."""
    frame = np.full((60, 100, 3), 200, dtype=np.uint8)
    frame[:, 40:50] = 0
    return frame


@pytest.fixture
def horizontal_line():
    return MeasurementLine(0.1, 0.5, 0.9, 0.5, min_gap_width=5, max_gap_width=15)


@pytest.fixture
def inspection_config(horizontal_line):
    return InspectionConfig(
        gap_threshold=80,
        gaussian_blur_size=5,
        edge_margin_percent=10,
        edge_detection_mode=EdgeDetectionMode.STRONGEST_PAIR,
        measurement_lines=[horizontal_line]
    )


@pytest.fixture
def settings_manager(tmp_path):
    return SettingsManager(settings_file=tmp_path / "inspection_settings.json",
                           models_dir=tmp_path / "models")


def step_profile(length, edges, low=50.0, high=200.0):
    """
    Pixel-integrated profile of an ideal signal that starts at `low` and
    toggles between `low` and `high` at every position in `edges`.
    """
    edges = sorted(edges)
    profile = np.empty(length, dtype=np.float64)
    for x in range(length):
        left, right = x - 0.5, x + 0.5
        cuts = [left] + [e for e in edges if left < e < right] + [right]
        covered = 0.0
        for a, b in zip(cuts[:-1], cuts[1:]):
            middle = (a + b) / 2.0
            if sum(e < middle for e in edges) % 2 == 1:
                covered += b - a
        profile[x] = low + (high - low) * covered
    return profile


@pytest.fixture
def make_step_profile():
    return step_profile
