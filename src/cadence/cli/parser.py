"""Argument parser construction for Cadence CLI."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from pathlib import Path

from cadence.models.session import ActivityType


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level CLI parser."""
    parser = argparse.ArgumentParser(description="Cadence - GPS activity recorder")
    parser.add_argument(
        "--workdir",
        "-w",
        type=Path,
        help="Working directory for logs (default: current directory)",
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("tui", help="Launch the recorder TUI (default)")

    # Simulate command (headless recording)
    simulate_parser = subparsers.add_parser(
        "simulate",
        help="Record a simulated activity without the TUI",
    )
    simulate_parser.add_argument(
        "--seconds",
        type=_positive_int,
        default=30,
        help="Simulated duration in seconds (default: 30)",
    )
    simulate_parser.add_argument(
        "--activity",
        choices=[t.api_name for t in ActivityType],
        default=None,
        help="Activity type (default: from settings)",
    )
    simulate_parser.add_argument(
        "--speed",
        type=_positive_float,
        default=3.0,
        help="Simulated speed in meters per second (default: 3.0)",
    )
    simulate_parser.add_argument(
        "--interval",
        type=_positive_float,
        default=None,
        help="Wall-clock seconds per simulated second (default: from settings)",
    )
    simulate_parser.add_argument(
        "--pause-at",
        type=_positive_int,
        help="Pause the recording at this simulated second",
    )
    simulate_parser.add_argument(
        "--resume-at",
        type=_positive_int,
        help="Resume the recording at this simulated second",
    )
    simulate_parser.add_argument(
        "--jitter",
        type=float,
        default=0.0,
        help="Random GPS jitter radius in meters (default: 0)",
    )
    simulate_parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for jitter",
    )
    simulate_parser.add_argument(
        "--deny-location",
        action="store_true",
        help="Simulate the user refusing location access",
    )
    simulate_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the activity upload payload as JSON",
    )

    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    return build_parser().parse_args(argv)
