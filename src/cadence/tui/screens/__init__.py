"""TUI screens for Cadence."""
from __future__ import annotations

from .recorder import RecorderScreen

__all__ = ["RecorderScreen"]
