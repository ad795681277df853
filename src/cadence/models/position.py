"""GPS position fix value object."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class PositionFix:
    """A single geolocation sample reported by a position source."""

    timestamp: datetime
    latitude: float
    longitude: float
    accuracy_meters: float
    altitude: float | None = None
    speed: float | None = None

    def is_valid(self) -> bool:
        """Check for an aware timestamp and finite, in-range coordinates."""
        if not isinstance(self.timestamp, datetime):
            return False
        if self.timestamp.utcoffset() is None:
            return False
        for value in (self.latitude, self.longitude, self.accuracy_meters):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return False
            if not math.isfinite(value):
                return False
        if not -90.0 <= self.latitude <= 90.0:
            return False
        if not -180.0 <= self.longitude <= 180.0:
            return False
        return self.accuracy_meters >= 0

    @property
    def epoch_millis(self) -> int:
        """Timestamp as milliseconds since the Unix epoch."""
        return int(self.timestamp.timestamp() * 1000)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "lat": self.latitude,
            "lon": self.longitude,
            "timestamp": self.epoch_millis,
            "accuracy": self.accuracy_meters,
            "altitude": self.altitude,
            "speed": self.speed,
        }

    @classmethod
    def create(
        cls,
        latitude: float,
        longitude: float,
        accuracy_meters: float = 5.0,
        timestamp: datetime | None = None,
    ) -> "PositionFix":
        """Create a fix stamped with the current time."""
        return cls(
            timestamp=timestamp or datetime.now(UTC),
            latitude=latitude,
            longitude=longitude,
            accuracy_meters=accuracy_meters,
        )
