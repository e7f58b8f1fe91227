"""
Configuration management module.
"""

from .paths import DataPaths, get_models_dir, get_settings_file
from .defaults import EngineDefaults
from .settings import (
    MeasurementLine, EdgeDetectionMode, InspectionConfig,
    CameraProperties, InspectionSettings
)
from .settings_manager import SettingsManager

__all__ = [
    'DataPaths', 'get_models_dir', 'get_settings_file',
    'EngineDefaults',
    'MeasurementLine', 'EdgeDetectionMode', 'InspectionConfig',
    'CameraProperties', 'InspectionSettings',
    'SettingsManager'
]
