"""
Vision Processing Module
Frame acquisition and gap measurement.
"""

from .image_source import (
    ImageSource, ImageSourceFactory, ImageFileSource, CameraSource,
    SourceType, list_camera_devices
)
from .camera_negotiation import (
    CaptureCandidate, ResolutionNegotiator, NegotiationResult,
    measure_capture_fps, parse_resolution_hint
)
from .profile import BandProfile, bresenham_points, extract_band_profile, upsample_profile
from .edge_finder import EdgeSearchResult, find_gap_edges, refine_peak
from .smoothing import SmoothingState
from .inspector import GapInspector, GapMeasurement, InspectionOutcome

__all__ = [
    'ImageSource', 'ImageSourceFactory', 'ImageFileSource', 'CameraSource',
    'SourceType', 'list_camera_devices',
    'CaptureCandidate', 'ResolutionNegotiator', 'NegotiationResult',
    'measure_capture_fps', 'parse_resolution_hint',
    'BandProfile', 'bresenham_points', 'extract_band_profile', 'upsample_profile',
    'EdgeSearchResult', 'find_gap_edges', 'refine_peak',
    'SmoothingState',
    'GapInspector', 'GapMeasurement', 'InspectionOutcome'
]
