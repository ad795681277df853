"""Configuration management for Cadence."""
from __future__ import annotations

from cadence.config.paths import CadencePaths, get_paths, reset_paths
from cadence.config.settings import Settings, get_settings_path, settings

__all__ = [
    "CadencePaths",
    "Settings",
    "get_paths",
    "get_settings_path",
    "reset_paths",
    "settings",
]
