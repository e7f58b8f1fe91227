"""
Logging Configuration
Console and daily-file logging for the gap inspection system.
"""

import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

from ..config.paths import DataPaths

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def log_file_path(log_dir: Optional[Path] = None, day: Optional[date] = None) -> Path:
    """Daily log file, e.g. logs/gapcheck_20240131.log."""
    log_dir = Path(log_dir) if log_dir else DataPaths.LOGS_DIR
    day = day or date.today()
    return log_dir / f"gapcheck_{day.strftime('%Y%m%d')}.log"


def setup_logging(level: int = logging.INFO, log_to_file: bool = True,
                  log_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Configure the root logger.

    A stdout handler is installed unless the root logger already has one;
    the daily file handler is added on top when log_to_file is set.

    Returns:
        Path of the log file, or None when file logging is off
    """
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    logging.getLogger().setLevel(level)

    if not log_to_file:
        return None

    path = log_file_path(log_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(path, encoding='utf-8')
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logging.getLogger().addHandler(file_handler)
    return path
