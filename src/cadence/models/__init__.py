"""Data models for Cadence."""

from .position import PositionFix
from .session import (
    METERS_UNIT,
    MILES_UNIT,
    VALID_DISTANCE_UNITS,
    VALID_TRANSITIONS,
    ActivitySummary,
    ActivityType,
    InvalidTransitionError,
    RecordingState,
    SessionModel,
    format_distance,
    format_duration,
)

__all__ = [
    "ActivitySummary",
    "ActivityType",
    "InvalidTransitionError",
    "METERS_UNIT",
    "MILES_UNIT",
    "PositionFix",
    "RecordingState",
    "SessionModel",
    "VALID_DISTANCE_UNITS",
    "VALID_TRANSITIONS",
    "format_distance",
    "format_duration",
]
