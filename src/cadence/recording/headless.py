"""Headless recording against the simulated position source."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Literal

from cadence.models.session import ActivitySummary, ActivityType
from cadence.recording.controller import RecorderOptions, SessionController
from cadence.recording.sources import (
    AsyncioTicker,
    SimulatedPositionSource,
    StaticAuthorizer,
)

logger = logging.getLogger(__name__)


@dataclass
class SimulationPlan:
    """Script for a simulated recording.

    Steps are measured in simulated seconds; each lasts `interval` wall-clock
    seconds, and both the ticker and the position source use that interval.
    """

    seconds: int
    activity_type: ActivityType = ActivityType.RUNNING
    speed_ms: float = 3.0
    interval: float = 1.0
    pause_at: int | None = None
    resume_at: int | None = None
    location_granted: bool = True
    jitter_meters: float = 0.0
    seed: int | None = None


@dataclass
class SimulationOutcome:
    """Result of a simulated recording."""

    kind: Literal["completed", "insufficient", "denied"]
    summary: ActivitySummary | None = None


async def run_simulated_session(
    plan: SimulationPlan,
    options: RecorderOptions | None = None,
) -> SimulationOutcome:
    """Record a session against the simulated source and finish it."""
    source = SimulatedPositionSource(
        bearing_degrees=90.0,
        speed_ms=plan.speed_ms,
        interval=plan.interval,
        step_seconds=1.0,
        jitter_meters=plan.jitter_meters,
        seed=plan.seed,
    )
    controller = SessionController(
        source,
        AsyncioTicker(plan.interval),
        StaticAuthorizer(plan.location_granted),
        activity_type=plan.activity_type,
        options=options,
    )

    if not await controller.start():
        return SimulationOutcome(kind="denied")

    try:
        for step in range(1, plan.seconds + 1):
            await asyncio.sleep(plan.interval)
            if step == plan.pause_at:
                controller.pause()
            if step == plan.resume_at:
                controller.resume()
        controller.finish()
    finally:
        controller.close()

    summary = controller.get_summary()
    if summary is None or not controller.has_minimum_data():
        logger.info("Simulated session did not collect enough data")
        return SimulationOutcome(kind="insufficient", summary=summary)
    return SimulationOutcome(kind="completed", summary=summary)
