"""
Settings Persistence
Stores the active settings record and named inspection models as JSON.
"""

import json
import shutil
from pathlib import Path
from typing import List, Optional
import logging

from .paths import get_models_dir, get_settings_file
from .settings import InspectionSettings
from ..exceptions import ConfigError

logger = logging.getLogger(__name__)


class SettingsManager:
    """Manages settings and model storage and retrieval."""

    MODEL_FILE = "settings.json"

    def __init__(self, settings_file: Optional[Path] = None,
                 models_dir: Optional[Path] = None):
        """Initialize manager."""
        self.settings_file = Path(settings_file) if settings_file else get_settings_file()
        self.models_dir = Path(models_dir) if models_dir else get_models_dir()

    def load(self) -> InspectionSettings:
        """Load active settings, falling back to defaults."""
        settings = self._read(self.settings_file)
        if settings is None:
            return InspectionSettings()
        return settings

    def save(self, settings: InspectionSettings) -> bool:
        """Save active settings."""
        return self._write(self.settings_file, settings)

    def get_model_names(self) -> List[str]:
        """List all stored model names."""
        if not self.models_dir.exists():
            return []
        return sorted(d.name for d in self.models_dir.iterdir() if d.is_dir())

    def get_model_directory(self, name: str) -> Path:
        """Directory of a named model; the name must be a single path component."""
        model_dir = self.models_dir / name
        if not name or model_dir.resolve().parent != self.models_dir.resolve():
            raise ConfigError(f"Invalid model name: {name!r}")
        return model_dir

    def load_model(self, name: str) -> Optional[InspectionSettings]:
        """Load a named model."""
        try:
            model_dir = self.get_model_directory(name)
        except ConfigError as e:
            logger.error(f"Cannot load model: {e}")
            return None
        return self._read(model_dir / self.MODEL_FILE)

    def save_model(self, name: str, settings: InspectionSettings) -> bool:
        """Save a named model."""
        try:
            model_dir = self.get_model_directory(name)
        except ConfigError as e:
            logger.error(f"Cannot save model: {e}")
            return False
        model_dir.mkdir(parents=True, exist_ok=True)
        return self._write(model_dir / self.MODEL_FILE, settings)

    def delete_model(self, name: str) -> bool:
        """Delete a named model and its directory."""
        try:
            model_dir = self.get_model_directory(name)
        except ConfigError as e:
            logger.error(f"Cannot delete model: {e}")
            return False
        if not model_dir.exists():
            logger.warning(f"Model not found: {name}")
            return False

        shutil.rmtree(model_dir)
        logger.info(f"Model deleted: {name}")
        return True

    def _read(self, filepath: Path) -> Optional[InspectionSettings]:
        if not filepath.exists():
            logger.warning(f"Settings file not found: {filepath}")
            return None

        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                data = json.load(f)
            settings = InspectionSettings.from_dict(data)
            logger.info(f"Settings loaded from {filepath}")
            return settings
        except (OSError, json.JSONDecodeError, ConfigError) as e:
            logger.error(f"Failed to load settings from {filepath}: {e}")
            return None

    def _write(self, filepath: Path, settings: InspectionSettings) -> bool:
        try:
            filepath.parent.mkdir(parents=True, exist_ok=True)
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump(settings.to_dict(), f, indent=2)
            logger.info(f"Settings saved to {filepath}")
            return True
        except OSError as e:
            logger.error(f"Failed to save settings to {filepath}: {e}")
            return False
