"""Utility modules for the Testing Engine."""

from testing_engine.utils.config import settings, Settings, validate_settings
from testing_engine.utils.logging import setup_logging, redact_dict

__all__ = [
    'settings',
    'Settings',
    'validate_settings',
    'setup_logging',
    'redact_dict',
]
