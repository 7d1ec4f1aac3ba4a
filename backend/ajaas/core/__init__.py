# AJaaS Core Module
from .config import Settings, get_settings, settings
from .logging import get_logger, setup_logging

__all__ = [
    "Settings",
    "settings",
    "get_settings",
    "setup_logging",
    "get_logger",
]
