"""Configuration and settings persistence."""

import json
import logging
import os
from pathlib import Path
from typing import Any

from cadence.config.paths import get_paths
from cadence.models.session import METERS_UNIT, VALID_DISTANCE_UNITS, ActivityType
from cadence.recording.controller import (
    DEFAULT_MIN_DISTANCE_METERS,
    DEFAULT_MIN_POINTS,
    RecorderOptions,
)

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL_SECONDS = 1.0


def get_settings_path() -> Path:
    """Get the path to the settings file."""
    return get_paths().global_settings


def detect_terminal_theme() -> str:
    """Detect terminal light/dark preference."""
    # Check COLORFGBG env var (format: "fg;bg" where bg < 7 means dark)
    colorfgbg = os.environ.get("COLORFGBG", "")
    if colorfgbg:
        try:
            parts = colorfgbg.split(";")
            if len(parts) >= 2:
                bg = int(parts[-1])
                return "textual-light" if bg >= 7 else "textual-dark"
        except (ValueError, IndexError):
            pass

    # Most modern terminals default to dark
    return "textual-dark"


class Settings:
    """Persistent settings for Cadence."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        """Load settings from disk."""
        path = get_settings_path()
        if path.exists():
            try:
                self._data = json.loads(path.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, OSError):
                self._data = {}
        else:
            self._data = {}

    def _save(self) -> None:
        """Save settings to disk."""
        path = get_settings_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")
            logger.info("Saved settings to %s: %s", path, self._data)
        except OSError as e:
            logger.error("Failed to save settings: %s", e)

    def set(self, key: str, value: Any) -> None:
        """Set a setting value and persist to disk."""
        self._data[key] = value
        self._save()

    @property
    def theme(self) -> str:
        """Get the current theme, detecting from terminal if not set."""
        saved = self._data.get("theme")
        if saved:
            return str(saved)
        return detect_terminal_theme()

    @theme.setter
    def theme(self, value: str) -> None:
        self.set("theme", value)

    @property
    def distance_unit(self) -> str:
        """Display unit for distance ('meters' or 'miles')."""
        value = self._data.get("distance_unit")
        if value in VALID_DISTANCE_UNITS:
            return str(value)
        return METERS_UNIT

    @distance_unit.setter
    def distance_unit(self, value: str) -> None:
        if value not in VALID_DISTANCE_UNITS:
            raise ValueError(f"Unknown distance unit: {value}")
        self.set("distance_unit", value)

    @property
    def default_activity_type(self) -> ActivityType:
        """Activity type a new recorder starts with."""
        value = self._data.get("default_activity_type")
        try:
            return ActivityType.from_api_name(str(value))
        except ValueError:
            return ActivityType.RUNNING

    @default_activity_type.setter
    def default_activity_type(self, value: ActivityType) -> None:
        self.set("default_activity_type", value.api_name)

    # --- Recording Settings ---

    def _get_recording_settings(self) -> dict[str, Any]:
        raw = self._data.get("recording", {})
        if isinstance(raw, dict):
            return raw
        return {}

    def _set_recording_value(self, key: str, value: Any) -> None:
        recording = self._get_recording_settings()
        recording[key] = value
        self.set("recording", recording)

    @property
    def tick_interval_seconds(self) -> float:
        """Seconds between elapsed-time ticks."""
        raw_value = self._get_recording_settings().get("tick_interval_seconds")
        try:
            value = float(raw_value)
        except (TypeError, ValueError):
            return DEFAULT_TICK_INTERVAL_SECONDS
        if value <= 0:
            return DEFAULT_TICK_INTERVAL_SECONDS
        return value

    @tick_interval_seconds.setter
    def tick_interval_seconds(self, value: float) -> None:
        if value <= 0:
            raise ValueError("tick interval must be positive")
        self._set_recording_value("tick_interval_seconds", float(value))

    @property
    def min_points(self) -> int:
        """Minimum GPS points for a recording to be worth keeping."""
        raw_value = self._get_recording_settings().get("min_points")
        try:
            value = int(raw_value)
        except (TypeError, ValueError):
            return DEFAULT_MIN_POINTS
        return max(1, value)

    @min_points.setter
    def min_points(self, value: int) -> None:
        self._set_recording_value("min_points", max(1, int(value)))

    @property
    def min_distance_meters(self) -> float:
        """Minimum distance for a recording to be worth keeping."""
        raw_value = self._get_recording_settings().get("min_distance_meters")
        try:
            value = float(raw_value)
        except (TypeError, ValueError):
            return DEFAULT_MIN_DISTANCE_METERS
        return max(0.0, value)

    @min_distance_meters.setter
    def min_distance_meters(self, value: float) -> None:
        self._set_recording_value("min_distance_meters", max(0.0, float(value)))

    @property
    def record_sensor_errors(self) -> bool:
        """Whether sensor failures are surfaced on the session model."""
        return bool(self._get_recording_settings().get("record_sensor_errors", False))

    @record_sensor_errors.setter
    def record_sensor_errors(self, value: bool) -> None:
        self._set_recording_value("record_sensor_errors", bool(value))

    def recorder_options(self) -> RecorderOptions:
        """Build controller options from the current settings."""
        return RecorderOptions(
            min_points=self.min_points,
            min_distance_meters=self.min_distance_meters,
            record_sensor_errors=self.record_sensor_errors,
        )


# Global settings instance
settings = Settings()
