"""Recording session state machine and snapshot model.

A SessionModel is an immutable snapshot of one recording. The controller
replaces it on every accepted event; nothing outside the controller ever
holds a mutable reference to session state.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from cadence.models.position import PositionFix
from cadence.tracking.distance import distance_between

METERS_TO_MILES = 0.000621371
MS_TO_MPH = 2.237

METERS_UNIT = "meters"
MILES_UNIT = "miles"
VALID_DISTANCE_UNITS = (METERS_UNIT, MILES_UNIT)

# Speed estimation window
SPEED_SAMPLE_SIZE = 5
SPEED_STALE_AFTER_SECONDS = 5.0
SPEED_MIN_SPAN_SECONDS = 2.0
SPEED_MIN_DISTANCE_METERS = 1.0
SPEED_STATIONARY_MS = 0.2


class RecordingState(Enum):
    """All possible states of a recording session."""

    IDLE = "idle"
    RECORDING = "recording"
    PAUSED = "paused"
    COMPLETED = "completed"


class ActivityType(Enum):
    """Kinds of activity that can be recorded."""

    RUNNING = "running"
    ROAD_BIKING = "road_biking"

    @property
    def display_name(self) -> str:
        """Human-readable name."""
        return _ACTIVITY_DISPLAY_NAMES[self]

    @property
    def api_name(self) -> str:
        """Name used by the activities API."""
        return self.value

    @classmethod
    def from_api_name(cls, value: str) -> "ActivityType":
        """Look up an activity type by API name.

        Raises:
            ValueError: If the name is unknown.
        """
        return cls(value)


_ACTIVITY_DISPLAY_NAMES: dict[ActivityType, str] = {
    ActivityType.RUNNING: "Running",
    ActivityType.ROAD_BIKING: "Road Biking",
}


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, current: RecordingState, target: RecordingState) -> None:
        self.current = current
        self.target = target
        super().__init__(
            f"Invalid transition from {current.value} to {target.value}"
        )


# Valid state transitions table
VALID_TRANSITIONS: dict[RecordingState, set[RecordingState]] = {
    RecordingState.IDLE: {RecordingState.RECORDING},
    RecordingState.RECORDING: {
        RecordingState.PAUSED,
        RecordingState.COMPLETED,
        RecordingState.IDLE,  # Discard
    },
    RecordingState.PAUSED: {
        RecordingState.RECORDING,  # Resume
        RecordingState.COMPLETED,
        RecordingState.IDLE,  # Discard
    },
    RecordingState.COMPLETED: {
        RecordingState.PAUSED,  # Resume from completed
        RecordingState.IDLE,  # Saved or discarded
    },
}


def format_duration(seconds: int) -> str:
    """Format seconds as HH:MM:SS."""
    hours, remainder = divmod(max(0, seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_distance(meters: float, unit: str = MILES_UNIT) -> str:
    """Format a distance in the given display unit."""
    if unit == MILES_UNIT:
        return f"{meters * METERS_TO_MILES:.2f} mi"
    return f"{meters / 1000.0:.2f} km"


@dataclass(frozen=True, slots=True)
class ActivitySummary:
    """Immutable extract of a completed session, ready for persistence."""

    activity_type: ActivityType
    start_time: datetime | None
    elapsed_seconds: int
    total_distance_meters: float
    positions: tuple[PositionFix, ...]

    @property
    def points_count(self) -> int:
        return len(self.positions)

    @property
    def total_distance_miles(self) -> float:
        return self.total_distance_meters * METERS_TO_MILES

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "activity_type": self.activity_type.api_name,
            "positions": self.points_count,
            "distance_meters": self.total_distance_meters,
            "distance_miles": self.total_distance_miles,
            "elapsed_seconds": self.elapsed_seconds,
            "formatted_time": format_duration(self.elapsed_seconds),
            "formatted_distance": format_distance(self.total_distance_meters),
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "gps_points": [fix.to_dict() for fix in self.positions],
        }

    def to_upload_payload(
        self,
        title: str | None = None,
        description: str | None = None,
        client_activity_id: str | None = None,
    ) -> dict[str, Any]:
        """Build the request body the activities API expects.

        Args:
            title: Activity title. Defaults to "<Activity> Activity".
            description: Free-form description. Defaults to the record time.
            client_activity_id: Idempotency key. A UUID4 is generated if omitted.
        """
        return {
            "activity_type": self.activity_type.api_name,
            "client_activity_id": client_activity_id or str(uuid.uuid4()),
            "title": title or f"{self.activity_type.display_name} Activity",
            "description": description
            or f"Recorded on {datetime.now(UTC).isoformat()}",
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "samples": [
                {"lon": fix.longitude, "lat": fix.latitude, "t": fix.epoch_millis}
                for fix in self.positions
            ],
        }


@dataclass(frozen=True, slots=True)
class SessionModel:
    """Snapshot of one recording session.

    Every mutation returns a new instance; the original is never modified.
    """

    state: RecordingState = RecordingState.IDLE
    activity_type: ActivityType = ActivityType.RUNNING
    start_time: datetime | None = None
    elapsed_seconds: int = 0
    positions: tuple[PositionFix, ...] = field(default_factory=tuple)
    last_position: PositionFix | None = None
    total_distance_meters: float = 0.0
    last_error: str | None = None

    @classmethod
    def idle(cls, activity_type: ActivityType = ActivityType.RUNNING) -> "SessionModel":
        """Create a fresh idle session with zeroed metrics."""
        return cls(activity_type=activity_type)

    # --- State predicates ---

    @property
    def is_idle(self) -> bool:
        return self.state == RecordingState.IDLE

    @property
    def is_recording(self) -> bool:
        return self.state == RecordingState.RECORDING

    @property
    def is_paused(self) -> bool:
        return self.state == RecordingState.PAUSED

    @property
    def is_completed(self) -> bool:
        return self.state == RecordingState.COMPLETED

    @property
    def is_active(self) -> bool:
        """True while recording or paused."""
        return self.state in (RecordingState.RECORDING, RecordingState.PAUSED)

    # --- Derived metrics ---

    @property
    def points_count(self) -> int:
        return len(self.positions)

    @property
    def total_distance_miles(self) -> float:
        return self.total_distance_meters * METERS_TO_MILES

    @property
    def formatted_time(self) -> str:
        return format_duration(self.elapsed_seconds)

    def formatted_distance(self, unit: str = MILES_UNIT) -> str:
        return format_distance(self.total_distance_meters, unit)

    def current_speed_ms(self, now: datetime | None = None) -> float:
        """Recent speed in meters per second, from the last few fixes.

        Returns 0.0 when the data looks stationary: too few fixes, no fix in
        the last few seconds, too short a sample window or too little motion.
        """
        if len(self.positions) < 2 or self.last_position is None:
            return 0.0

        now = now or datetime.now(UTC)
        since_last = (now - self.last_position.timestamp).total_seconds()
        if since_last > SPEED_STALE_AFTER_SECONDS:
            return 0.0

        recent = self.positions[-SPEED_SAMPLE_SIZE:]
        first, last = recent[0], recent[-1]
        span = (last.timestamp - first.timestamp).total_seconds()
        if span < SPEED_MIN_SPAN_SECONDS:
            return 0.0

        distance = distance_between(first, last)
        if distance < SPEED_MIN_DISTANCE_METERS:
            return 0.0

        speed = distance / span
        if speed < SPEED_STATIONARY_MS:
            return 0.0
        return speed

    def current_speed_mph(self, now: datetime | None = None) -> float:
        return self.current_speed_ms(now) * MS_TO_MPH

    # --- Transitions ---

    def can_transition(self, target: RecordingState) -> bool:
        """Check if transition to target state is valid."""
        return target in VALID_TRANSITIONS.get(self.state, set())

    def transition(self, target: RecordingState) -> "SessionModel":
        """Return a copy in the target state.

        Raises:
            InvalidTransitionError: If the transition is not valid.
        """
        if not self.can_transition(target):
            raise InvalidTransitionError(self.state, target)
        return replace(self, state=target)

    def started(self, at: datetime) -> "SessionModel":
        """Fresh recording session that keeps only the activity type.

        Reset and re-application of the activity type happen in a single
        replacement, so no observer ever sees a default activity type.
        """
        if not self.is_idle:
            raise InvalidTransitionError(self.state, RecordingState.RECORDING)
        return SessionModel(
            state=RecordingState.RECORDING,
            activity_type=self.activity_type,
            start_time=at,
        )

    def reset(self) -> "SessionModel":
        """Fresh idle session preserving the activity type."""
        return SessionModel.idle(self.activity_type)

    def with_tick(self) -> "SessionModel":
        """Advance elapsed time by one second."""
        return replace(self, elapsed_seconds=self.elapsed_seconds + 1)

    def with_fix(self, fix: PositionFix) -> "SessionModel":
        """Append an accepted fix and accumulate distance from the previous one."""
        total = self.total_distance_meters
        if self.last_position is not None:
            total += distance_between(self.last_position, fix)
        return replace(
            self,
            positions=self.positions + (fix,),
            last_position=fix,
            total_distance_meters=total,
        )

    def with_activity_type(self, activity_type: ActivityType) -> "SessionModel":
        return replace(self, activity_type=activity_type)

    def with_error(self, message: str | None) -> "SessionModel":
        return replace(self, last_error=message)

    def to_summary(self) -> ActivitySummary:
        """Extract the persisted metrics of this session."""
        return ActivitySummary(
            activity_type=self.activity_type,
            start_time=self.start_time,
            elapsed_seconds=self.elapsed_seconds,
            total_distance_meters=self.total_distance_meters,
            positions=self.positions,
        )
