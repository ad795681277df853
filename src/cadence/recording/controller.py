"""Session controller for live activity recording.

The controller is the single writer of a SessionModel. Public operations,
timer ticks and position fixes all funnel through one reentrant lock, so
each "read state, decide, replace, notify" step is atomic no matter which
thread or task the event arrived on.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import partial

from cadence.models.position import PositionFix
from cadence.models.session import (
    ActivitySummary,
    ActivityType,
    RecordingState,
    SessionModel,
)
from cadence.recording.sources import LocationAuthorizer, PositionSource, TimerSource

logger = logging.getLogger(__name__)

SessionObserver = Callable[[SessionModel], None]

DEFAULT_MIN_POINTS = 2
DEFAULT_MIN_DISTANCE_METERS = 10.0


@dataclass(frozen=True, slots=True)
class RecorderOptions:
    """Tunables for a recording controller."""

    min_points: int = DEFAULT_MIN_POINTS
    min_distance_meters: float = DEFAULT_MIN_DISTANCE_METERS
    record_sensor_errors: bool = False


def _utc_now() -> datetime:
    return datetime.now(UTC)


class SessionController:
    """Owns one recording session and drives its state machine.

    Position fixes and timer ticks are accepted only while recording.
    While paused both keep flowing but are dropped by the state check, which
    avoids churning the location subscription on every pause/resume.
    """

    def __init__(
        self,
        position_source: PositionSource,
        timer: TimerSource,
        authorizer: LocationAuthorizer,
        *,
        activity_type: ActivityType = ActivityType.RUNNING,
        options: RecorderOptions | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._source = position_source
        self._timer = timer
        self._authorizer = authorizer
        self.options = options or RecorderOptions()
        self._clock = clock

        self._lock = threading.RLock()
        self._model = SessionModel.idle(activity_type)
        self._observers: list[SessionObserver] = []
        self._pending: deque[SessionModel] = deque()
        self._notifying = False

        self._subscription: object | None = None
        self._generation = 0
        self._timer_running = False

    # --- Snapshot API ---

    @property
    def model(self) -> SessionModel:
        """Current immutable session snapshot."""
        with self._lock:
            return self._model

    def get_model(self) -> SessionModel:
        return self.model

    @property
    def has_location_subscription(self) -> bool:
        with self._lock:
            return self._subscription is not None

    @property
    def timer_running(self) -> bool:
        with self._lock:
            return self._timer_running

    def on_change(self, callback: SessionObserver) -> Callable[[], None]:
        """Register an observer called with every new model.

        Returns:
            A callable that removes the observer.
        """
        with self._lock:
            self._observers.append(callback)

        def remove() -> None:
            with self._lock:
                if callback in self._observers:
                    self._observers.remove(callback)

        return remove

    def get_summary(self) -> ActivitySummary | None:
        """Get the activity summary (only available once completed)."""
        with self._lock:
            if not self._model.is_completed:
                return None
            return self._model.to_summary()

    def has_minimum_data(self) -> bool:
        """Check whether the recording is worth keeping."""
        model = self.model
        return (
            model.points_count >= self.options.min_points
            and model.total_distance_meters > self.options.min_distance_meters
        )

    # --- Operations ---

    async def start(self) -> bool:
        """Start a new recording.

        Returns:
            False if location access was not authorized or the session was
            not idle; True once the session is recording.
        """
        with self._lock:
            if not self._model.is_idle:
                logger.debug("start ignored in state %s", self._model.state.value)
                return False

        try:
            granted = await self._authorizer.request()
        except Exception:
            logger.exception("Location authorization check failed")
            return False
        if not granted:
            logger.info("Location authorization denied, staying idle")
            return False

        with self._lock:
            # Another start may have won while we awaited authorization
            if not self._model.is_idle:
                return False
            with self._deferred_notifications():
                self._replace(self._model.started(self._clock()))
                self._start_timer()
                self._acquire_location()
            logger.info(
                "Started recording: %s", self._model.activity_type.display_name
            )
        return True

    def pause(self) -> bool:
        """Pause the current recording."""
        with self._lock:
            if not self._model.is_recording:
                logger.debug("pause ignored in state %s", self._model.state.value)
                return False
            self._replace(self._model.transition(RecordingState.PAUSED))
            return True

    def resume(self) -> bool:
        """Resume a paused recording."""
        with self._lock:
            if not self._model.is_paused:
                logger.debug("resume ignored in state %s", self._model.state.value)
                return False
            self._replace(self._model.transition(RecordingState.RECORDING))
            return True

    def finish(self) -> bool:
        """Finish the recording and move to the completed state for review."""
        with self._lock:
            if not self._model.is_active:
                logger.debug("finish ignored in state %s", self._model.state.value)
                return False
            # Release first so nothing in flight lands on a completed session
            self._release_location()
            self._stop_timer()
            self._replace(self._model.transition(RecordingState.COMPLETED))
            model = self._model
            logger.info(
                "Recording finished: %s - %s - %.1fm - %d GPS points",
                model.activity_type.display_name,
                model.formatted_time,
                model.total_distance_meters,
                model.points_count,
            )
            return True

    def resume_from_completed(self) -> bool:
        """Go back from completed to paused so the user can keep going."""
        with self._lock:
            if not self._model.is_completed:
                logger.debug(
                    "resume_from_completed ignored in state %s",
                    self._model.state.value,
                )
                return False
            with self._deferred_notifications():
                self._replace(self._model.transition(RecordingState.PAUSED))
                self._start_timer()
                self._acquire_location()
            logger.info(
                "Resumed from finished: %s", self._model.activity_type.display_name
            )
            return True

    def discard(self) -> None:
        """Throw away the current recording from any state."""
        with self._lock:
            self._release_location()
            self._stop_timer()
            self._replace(self._model.reset())
            logger.info("Recording discarded")

    def reset_to_idle(self) -> bool:
        """Return to idle after a completed recording was saved or dropped."""
        with self._lock:
            if not self._model.is_completed:
                return False
            self._replace(self._model.reset())
            return True

    def set_activity_type(self, activity_type: ActivityType) -> bool:
        """Change the activity type (only allowed while idle)."""
        with self._lock:
            if not self._model.is_idle:
                return False
            if self._model.activity_type == activity_type:
                return False
            self._replace(self._model.with_activity_type(activity_type))
            logger.info("Activity type changed to: %s", activity_type.display_name)
            return True

    def close(self) -> None:
        """Release the subscription and timer without touching the model."""
        with self._lock:
            self._release_location()
            self._stop_timer()

    # --- Event handlers ---

    def _on_tick(self) -> None:
        with self._lock:
            if not self._model.is_recording:
                return
            self._replace(self._model.with_tick())

    def _on_fix(self, generation: int, fix: object) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug("Dropping fix from released subscription")
                return
            if not self._model.is_recording:
                return
            if not isinstance(fix, PositionFix) or not fix.is_valid():
                logger.warning("Dropping malformed position fix: %r", fix)
                self._record_error(f"Malformed position fix: {fix!r}")
                return
            try:
                updated = self._model.with_fix(fix)
            except (ArithmeticError, TypeError, ValueError) as e:
                logger.warning("Error processing location update: %s", e)
                self._record_error(str(e))
                return
            self._replace(updated)

    def _on_sensor_error(self, generation: int, error: BaseException) -> None:
        with self._lock:
            if generation != self._generation:
                return
            logger.warning("GPS tracking error: %s", error)
            self._record_error(f"GPS tracking error: {error}")

    # --- Resources ---

    def _acquire_location(self) -> None:
        self._release_location()
        self._generation += 1
        generation = self._generation
        try:
            self._subscription = self._source.subscribe(
                partial(self._on_fix, generation),
                partial(self._on_sensor_error, generation),
            )
        except Exception as e:
            logger.exception("Failed to start location tracking")
            self._subscription = None
            self._record_error(f"Failed to start location tracking: {e}")

    def _release_location(self) -> None:
        # Bumping the generation invalidates callbacks from the old handle
        self._generation += 1
        handle = self._subscription
        self._subscription = None
        if handle is None:
            return
        try:
            self._source.unsubscribe(handle)
        except Exception:
            logger.exception("Failed to stop location tracking")

    def _start_timer(self) -> None:
        self._stop_timer()
        try:
            self._timer.start(self._on_tick)
        except Exception:
            logger.exception("Failed to start session timer")
            return
        self._timer_running = True

    def _stop_timer(self) -> None:
        if not self._timer_running:
            return
        self._timer_running = False
        try:
            self._timer.stop()
        except Exception:
            logger.exception("Failed to stop session timer")

    # --- Model replacement ---

    def _record_error(self, message: str) -> None:
        if self.options.record_sensor_errors and not self._model.is_idle:
            self._replace(self._model.with_error(message))

    def _replace(self, model: SessionModel) -> None:
        """Swap in a new model and notify observers in mutation order.

        Must be called with the lock held. An observer that triggers another
        replacement has it queued behind the current delivery.
        """
        self._model = model
        self._pending.append(model)
        self._flush()

    @contextmanager
    def _deferred_notifications(self) -> Iterator[None]:
        """Queue replacements made inside the block and deliver them after it.

        Observers must never see a recording model whose subscription and
        timer are not yet in place.
        """
        if self._notifying:
            yield
            return
        self._notifying = True
        try:
            yield
        finally:
            self._notifying = False
            self._flush()

    def _flush(self) -> None:
        if self._notifying:
            return
        self._notifying = True
        try:
            while self._pending:
                current = self._pending.popleft()
                for observer in list(self._observers):
                    try:
                        observer(current)
                    except Exception:
                        logger.exception("Session observer failed")
        finally:
            self._notifying = False
