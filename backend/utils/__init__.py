"""
Transwatch Utilities Package.

Configuration and logging shared across all packages.
Requires Python 3.11+.
"""

from utils.config import BuildConfig, Settings, get_settings
from utils.logger import configure_logging, get_logger, LoggerMixin

__all__ = [
    "BuildConfig",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "LoggerMixin",
]
