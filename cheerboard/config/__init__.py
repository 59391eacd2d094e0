"""
Configuration module for Cheerboard.
"""

from cheerboard.config.settings import AppSettings, get_settings

__all__ = [
    "AppSettings",
    "get_settings",
]
