"""Utility functions and helpers."""

from .logger import setup_logger, get_logger
from .cache import ResultCache
from .config_loader import load_config, save_config, update_config_file

__all__ = [
    'setup_logger',
    'get_logger',
    'ResultCache',
    'load_config',
    'save_config',
    'update_config_file'
]
