"""
Application Controller
High-level application flow management.
Coordinates settings, camera, measurement engine and behavior controller.
"""

import logging
from typing import List, Optional
import numpy as np

from ..config.paths import DataPaths
from ..config.settings import InspectionConfig, InspectionSettings
from ..config.settings_manager import SettingsManager
from ..exceptions import CameraOpenError
from ..vision.image_source import CameraSource, ImageSourceFactory
from ..vision.inspector import GapInspector, InspectionOutcome
from .behavior_controller import BehaviorController
from .inspection_driver import InspectionDriver

logger = logging.getLogger(__name__)


class ApplicationController:
    """
    Main application controller.
    Owns the active settings record and wires camera, inspector and driver.
    """

    def __init__(self, settings_manager: Optional[SettingsManager] = None,
                 camera: Optional[CameraSource] = None,
                 inspector: Optional[GapInspector] = None):
        """Initialize application controller."""
        if settings_manager is None:
            DataPaths.ensure_directories()
            settings_manager = SettingsManager()

        self.settings_manager = settings_manager
        self.settings: InspectionSettings = settings_manager.load()
        self.behavior_controller = BehaviorController()
        self.inspector = inspector or GapInspector()
        self.camera = camera or ImageSourceFactory.create_camera_source_from_settings(self.settings)
        self.driver = InspectionDriver(self.camera, self.inspector, lambda: self.settings.inspection)

        self._load_current_model()
        self._sync_line_flag()

        logger.info("ApplicationController initialized")

    def _load_current_model(self):
        """Pull inspection parameters from the stored model named in settings."""
        name = self.settings.current_model_name
        if not name:
            return

        model = self.settings_manager.load_model(name)
        if model is None:
            logger.warning(f"Current model '{name}' not found, keeping saved parameters")
            return
        self.settings.copy_inspection_parameters_from(model)
        logger.info(f"Loaded model: {name}")

    def _sync_line_flag(self):
        self.behavior_controller.set_lines_configured(
            bool(self.settings.inspection.measurement_lines)
        )

    # ==================== Camera ====================

    def start_camera(self) -> bool:
        """Start acquisition with the persisted device selection."""
        try:
            self.camera.start(self.settings.camera_index, self.settings.camera_resolution)
        except CameraOpenError as e:
            logger.error(f"Failed to open camera: {e}")
            self.behavior_controller.camera_failed(str(e))
            return False

        self.camera.apply_camera_properties(self.settings)
        self.behavior_controller.camera_started()
        logger.info(f"Camera running: {self.camera.camera_info}")
        return True

    def stop_camera(self):
        self.stop_inspection()
        self.camera.stop()
        self.behavior_controller.camera_stopped()

    def save_camera_properties(self) -> bool:
        """Capture the device's current hardware properties into settings."""
        if not self.camera.read_camera_properties(self.settings):
            return False
        return self.settings_manager.save(self.settings)

    def get_current_frame(self) -> Optional[np.ndarray]:
        return self.camera.snapshot()

    # ==================== Models ====================

    def list_models(self) -> List[str]:
        return self.settings_manager.get_model_names()

    def select_model(self, name: str) -> bool:
        """Make a stored model the active inspection profile, discarding unsaved edits."""
        model = self.settings_manager.load_model(name)
        if model is None:
            logger.error(f"Model not found: {name}")
            return False

        self.settings.copy_inspection_parameters_from(model)
        self.settings.current_model_name = name
        self.settings_manager.save(self.settings)
        self.inspector.reset_smoothing()
        self._sync_line_flag()
        logger.info(f"Active model: {name}")
        return True

    def save_model(self, name: str) -> bool:
        """Store the active inspection parameters as a named model."""
        if not self.settings_manager.save_model(name, self.settings):
            return False
        self.settings.current_model_name = name
        return self.settings_manager.save(self.settings)

    def delete_model(self, name: str) -> bool:
        if not self.settings_manager.delete_model(name):
            return False
        if self.settings.current_model_name == name:
            self.settings.current_model_name = ""
            self.settings_manager.save(self.settings)
        return True

    def update_inspection_config(self, config: InspectionConfig) -> bool:
        """Replace lines/parameters between inspection cycles and persist them."""
        self.settings.inspection = config.copy()
        self.inspector.reset_smoothing()
        self._sync_line_flag()
        return self.settings_manager.save(self.settings)

    # ==================== Inspection ====================

    def start_inspection(self) -> bool:
        if not self.behavior_controller.start_inspection():
            return False
        if not self.driver.start():
            self.behavior_controller.stop_inspection()
            return False
        return True

    def stop_inspection(self):
        if self.driver.is_running:
            self.driver.stop()
        self.behavior_controller.stop_inspection()

    def inspect_current_frame(self) -> Optional[InspectionOutcome]:
        """Single on-demand inspection of the latest frame."""
        return self.driver.run_once()

    def shutdown(self):
        """Shutdown application controller."""
        logger.info("Shutting down ApplicationController")
        self.stop_camera()
        self.behavior_controller.shutdown()
