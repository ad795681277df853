"""TUI launch command."""

from __future__ import annotations

import argparse

from cadence.tui.app import CadenceApp


def cmd_tui(args: argparse.Namespace) -> int:
    """Launch the TUI application."""
    del args
    app = CadenceApp()
    app.run()
    return 0
