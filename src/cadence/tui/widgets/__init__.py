"""TUI widgets for Cadence."""

from .session_stats import SessionStats
from .status_indicator import RecordingIndicator

__all__ = [
    "RecordingIndicator",
    "SessionStats",
]
