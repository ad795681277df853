"""Event source contracts for the recording controller.

The controller only talks to location, timer and authorization backends
through the protocols below. The reference implementations are driven by
the asyncio event loop and back the CLI simulation and the TUI.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable

from cadence.models.position import PositionFix
from cadence.tracking.distance import destination_point

logger = logging.getLogger(__name__)

FixCallback = Callable[[PositionFix], None]
ErrorCallback = Callable[[BaseException], None]
TickCallback = Callable[[], None]


@dataclass(frozen=True, slots=True)
class Subscription:
    """Opaque handle returned by PositionSource.subscribe."""

    subscription_id: int


@runtime_checkable
class PositionSource(Protocol):
    """Produces position fixes at irregular, sensor-determined intervals."""

    def subscribe(self, on_fix: FixCallback, on_error: ErrorCallback) -> object:
        """Start delivering fixes; return a handle for unsubscribe."""
        ...

    def unsubscribe(self, handle: object) -> None:
        """Stop delivering fixes for handle. Unknown handles are ignored."""
        ...


@runtime_checkable
class TimerSource(Protocol):
    """Periodic callback source. start and stop are idempotent."""

    @property
    def is_running(self) -> bool: ...

    def start(self, callback: TickCallback) -> None: ...

    def stop(self) -> None: ...


@runtime_checkable
class LocationAuthorizer(Protocol):
    """Decides whether location may be read."""

    async def request(self) -> bool: ...


class StaticAuthorizer:
    """Authorizer with a fixed answer."""

    def __init__(self, granted: bool = True) -> None:
        self.granted = granted
        self.requests = 0

    async def request(self) -> bool:
        self.requests += 1
        return self.granted


class AsyncioTicker:
    """Calls a callback every interval seconds from an asyncio task.

    Ticks are scheduled against the loop clock rather than chained sleeps,
    so a slow callback does not accumulate drift.
    """

    def __init__(self, interval: float = 1.0) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, callback: TickCallback) -> None:
        """Start ticking. Must be called with a running event loop."""
        if self.is_running:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(callback))

    def stop(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()

    async def _run(self, callback: TickCallback) -> None:
        loop = asyncio.get_running_loop()
        started = loop.time()
        for n in itertools.count(1):
            await asyncio.sleep(max(0.0, started + n * self.interval - loop.time()))
            try:
                callback()
            except Exception:
                logger.exception("Tick callback failed")


class SimulatedPositionSource:
    """Synthetic position source that walks along a bearing.

    One walker task runs while at least one subscriber exists and fans each
    fix out to every subscriber. The walker keeps its position across
    unsubscribe/subscribe cycles.
    """

    def __init__(
        self,
        origin: tuple[float, float] = (0.0, 0.0),
        *,
        bearing_degrees: float = 90.0,
        speed_ms: float = 3.0,
        interval: float = 1.0,
        step_seconds: float | None = None,
        jitter_meters: float = 0.0,
        accuracy_meters: float = 5.0,
        seed: int | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.position = origin
        self.bearing_degrees = bearing_degrees
        self.speed_ms = speed_ms
        self.interval = interval
        # Simulated seconds covered by each emitted fix
        self.step_seconds = step_seconds or interval
        self.jitter_meters = jitter_meters
        self.accuracy_meters = accuracy_meters
        self._rng = random.Random(seed)
        self._ids = itertools.count(1)
        self._subscribers: dict[int, tuple[FixCallback, ErrorCallback]] = {}
        self._task: asyncio.Task[None] | None = None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, on_fix: FixCallback, on_error: ErrorCallback) -> Subscription:
        loop = asyncio.get_running_loop()
        handle = Subscription(next(self._ids))
        self._subscribers[handle.subscription_id] = (on_fix, on_error)
        if self._task is None or self._task.done():
            self._task = loop.create_task(self._walk())
        logger.debug("Simulated source subscribed: %s", handle.subscription_id)
        return handle

    def unsubscribe(self, handle: object) -> None:
        if not isinstance(handle, Subscription):
            return
        if self._subscribers.pop(handle.subscription_id, None) is None:
            return
        logger.debug("Simulated source unsubscribed: %s", handle.subscription_id)
        if not self._subscribers and self._task is not None:
            self._task.cancel()
            self._task = None

    def next_fix(self) -> PositionFix:
        """Advance the walker one step and return the new fix."""
        lat, lon = destination_point(
            self.position[0],
            self.position[1],
            self.bearing_degrees,
            self.speed_ms * self.step_seconds,
        )
        self.position = (lat, lon)
        if self.jitter_meters > 0:
            lat, lon = destination_point(
                lat,
                lon,
                self._rng.uniform(0.0, 360.0),
                self._rng.uniform(0.0, self.jitter_meters),
            )
        return PositionFix(
            timestamp=datetime.now(UTC),
            latitude=lat,
            longitude=lon,
            accuracy_meters=self.accuracy_meters,
            speed=self.speed_ms,
        )

    async def _walk(self) -> None:
        while self._subscribers:
            await asyncio.sleep(self.interval)
            fix = self.next_fix()
            for on_fix, on_error in list(self._subscribers.values()):
                try:
                    on_fix(fix)
                except Exception as e:
                    on_error(e)
