"""Headless simulated recording command."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from cadence.config import settings
from cadence.models.session import ActivityType, format_distance, format_duration
from cadence.recording.headless import SimulationPlan, run_simulated_session


def cmd_simulate(args: argparse.Namespace) -> int:
    """Record a simulated activity and print its summary."""
    if args.resume_at is not None and args.pause_at is None:
        print("Error: --resume-at requires --pause-at", file=sys.stderr)
        return 1

    activity_type = (
        ActivityType.from_api_name(args.activity)
        if args.activity
        else settings.default_activity_type
    )
    plan = SimulationPlan(
        seconds=args.seconds,
        activity_type=activity_type,
        speed_ms=args.speed,
        interval=args.interval or settings.tick_interval_seconds,
        pause_at=args.pause_at,
        resume_at=args.resume_at,
        location_granted=not args.deny_location,
        jitter_meters=args.jitter,
        seed=args.seed,
    )

    if not args.json:
        print(f"Recording {activity_type.display_name} for {args.seconds}s...")

    outcome = asyncio.run(run_simulated_session(plan, settings.recorder_options()))

    if outcome.kind == "denied":
        print("Error: Location access was denied", file=sys.stderr)
        return 1

    summary = outcome.summary
    if summary is None:
        print("Error: Recording did not complete", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(summary.to_upload_payload(), indent=2))
    else:
        print(f"Time:     {format_duration(summary.elapsed_seconds)}")
        print(
            "Distance: "
            f"{format_distance(summary.total_distance_meters, settings.distance_unit)}"
        )
        print(f"Points:   {summary.points_count}")

    if outcome.kind == "insufficient":
        print("Warning: Not enough GPS data to save this activity", file=sys.stderr)
        return 1
    return 0
