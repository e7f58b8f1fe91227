"""
Inspection Settings
Measurement lines, edge-detection parameters and camera selection.
Line endpoints are stored normalized (0.0 - 1.0) so a taught line stays
valid when the camera resolution changes.
"""

from dataclasses import dataclass, field, asdict, fields
from enum import Enum
from typing import Dict, List, Tuple
import logging

from ..exceptions import ConfigError

logger = logging.getLogger(__name__)


class EdgeDetectionMode(Enum):
    """How the two gap edges are picked from the gradient."""
    STRONGEST_PAIR = 0
    FIRST_AND_LAST = 1


@dataclass
class MeasurementLine:
    """A line drawn across the connector junction."""
    x1: float
    y1: float
    x2: float
    y2: float
    min_gap_width: int = 0
    max_gap_width: int = 20

    def to_pixel_coords(self, frame_width: int, frame_height: int) -> Tuple[int, int, int, int]:
        """Convert normalized endpoints to pixel coordinates for a frame size."""
        return (
            int(self.x1 * frame_width),
            int(self.y1 * frame_height),
            int(self.x2 * frame_width),
            int(self.y2 * frame_height)
        )

    def describe(self) -> str:
        return (f"({self.x1:.3f},{self.y1:.3f}) -> ({self.x2:.3f},{self.y2:.3f})  "
                f"[{self.min_gap_width}-{self.max_gap_width}px]")

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> 'MeasurementLine':
        """Create from dictionary."""
        try:
            return cls(
                x1=float(data['x1']),
                y1=float(data['y1']),
                x2=float(data['x2']),
                y2=float(data['y2']),
                min_gap_width=int(data.get('min_gap_width', 0)),
                max_gap_width=int(data.get('max_gap_width', 20))
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid measurement line: {data!r}") from e


@dataclass
class InspectionConfig:
    """Edge-detection parameters and measurement lines for one inspection call."""
    gap_threshold: int = 80
    gaussian_blur_size: int = 5
    edge_margin_percent: int = 10
    edge_detection_mode: EdgeDetectionMode = EdgeDetectionMode.STRONGEST_PAIR
    measurement_lines: List[MeasurementLine] = field(default_factory=list)

    @property
    def blur_kernel_size(self) -> int:
        """Gaussian kernel size forced odd and at least 1."""
        size = self.gaussian_blur_size
        if size % 2 == 0:
            size += 1
        return max(size, 1)

    def copy(self) -> 'InspectionConfig':
        """Deep copy, so a running inspection never sees edits."""
        return InspectionConfig.from_dict(self.to_dict())

    def to_dict(self) -> Dict:
        return {
            'gap_threshold': self.gap_threshold,
            'gaussian_blur_size': self.gaussian_blur_size,
            'edge_margin_percent': self.edge_margin_percent,
            'edge_detection_mode': self.edge_detection_mode.value,
            'measurement_lines': [line.to_dict() for line in self.measurement_lines]
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'InspectionConfig':
        try:
            mode = EdgeDetectionMode(int(data.get('edge_detection_mode', 0)))
            return cls(
                gap_threshold=int(data.get('gap_threshold', 80)),
                gaussian_blur_size=int(data.get('gaussian_blur_size', 5)),
                edge_margin_percent=int(data.get('edge_margin_percent', 10)),
                edge_detection_mode=mode,
                measurement_lines=[
                    MeasurementLine.from_dict(line)
                    for line in data.get('measurement_lines') or []
                ]
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid inspection parameters: {e}") from e


@dataclass
class CameraProperties:
    """Camera hardware properties restored on startup."""
    saved: bool = False
    focus: float = 0.0
    exposure: float = 0.0
    brightness: float = 0.0
    contrast: float = 0.0
    saturation: float = 0.0
    gain: float = 0.0
    white_balance: float = 0.0
    sharpness: float = 0.0
    backlight_comp: float = 0.0
    auto_focus: float = 0.0
    auto_exposure: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict) -> 'CameraProperties':
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in (data or {}).items() if k in known}
        return cls(**values)


@dataclass
class InspectionSettings:
    """Persisted record: camera selection plus the active inspection parameters."""
    camera_index: int = 0
    camera_resolution: str = "Auto"
    current_model_name: str = ""
    camera_properties: CameraProperties = field(default_factory=CameraProperties)
    inspection: InspectionConfig = field(default_factory=InspectionConfig)

    def copy_inspection_parameters_from(self, other: 'InspectionSettings'):
        """Take lines and edge parameters from another record, keep camera selection."""
        self.inspection = other.inspection.copy()

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'camera_index': self.camera_index,
            'camera_resolution': self.camera_resolution,
            'current_model_name': self.current_model_name,
            'camera_properties': asdict(self.camera_properties),
            'inspection': self.inspection.to_dict()
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'InspectionSettings':
        """Create from dictionary."""
        if not isinstance(data, dict):
            raise ConfigError(f"Settings record must be an object, got {type(data).__name__}")

        try:
            return cls(
                camera_index=int(data.get('camera_index', 0)),
                camera_resolution=str(data.get('camera_resolution', "Auto")),
                current_model_name=str(data.get('current_model_name', "")),
                camera_properties=CameraProperties.from_dict(data.get('camera_properties')),
                inspection=InspectionConfig.from_dict(data.get('inspection') or {})
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid settings record: {e}") from e
