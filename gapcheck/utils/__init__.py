"""
Utility modules for the inspection system.
"""

from .logger import setup_logging, log_file_path
from .timer import PerformanceTimer, FrameRateMeter, timed_operation

__all__ = ['setup_logging', 'log_file_path', 'PerformanceTimer', 'FrameRateMeter', 'timed_operation']
