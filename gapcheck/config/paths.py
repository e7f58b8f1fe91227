"""
Data Locations
Where settings, stored models and logs live on disk.
"""

from pathlib import Path
from typing import List


class DataPaths:
    """File system layout of the inspection station's data."""

    PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

    DATA_DIR = PROJECT_ROOT / "data"
    MODELS_DIR = DATA_DIR / "models"
    LOGS_DIR = PROJECT_ROOT / "logs"

    # Camera selection plus the active inspection parameters
    SETTINGS_FILE = DATA_DIR / "inspection_settings.json"

    @classmethod
    def directories(cls) -> List[Path]:
        return [cls.DATA_DIR, cls.MODELS_DIR, cls.LOGS_DIR]

    @classmethod
    def ensure_directories(cls):
        for directory in cls.directories():
            directory.mkdir(parents=True, exist_ok=True)


def get_models_dir() -> Path:
    """Stored-model root; each model is a sub-directory named after it."""
    DataPaths.ensure_directories()
    return DataPaths.MODELS_DIR


def get_settings_file() -> Path:
    DataPaths.ensure_directories()
    return DataPaths.SETTINGS_FILE
