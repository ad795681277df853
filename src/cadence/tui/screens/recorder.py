"""Recorder screen - live activity recording."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import Footer, Header, Static

from cadence.config import settings
from cadence.models.session import ActivityType, SessionModel
from cadence.recording import (
    AsyncioTicker,
    SessionController,
    SimulatedPositionSource,
    StaticAuthorizer,
)
from cadence.tui.screens.recorder_status import build_status_line
from cadence.tui.widgets.session_stats import SessionStats
from cadence.tui.widgets.status_indicator import RecordingIndicator

logger = logging.getLogger(__name__)


def build_default_controller() -> SessionController:
    """Controller wired to the simulated source and settings."""
    return SessionController(
        SimulatedPositionSource(jitter_meters=1.0),
        AsyncioTicker(settings.tick_interval_seconds),
        StaticAuthorizer(granted=True),
        activity_type=settings.default_activity_type,
        options=settings.recorder_options(),
    )


class RecorderScreen(Screen[None]):
    """Live recording screen driven by a SessionController."""

    BINDINGS = [
        Binding("s", "start", "Start", show=True),
        Binding("p", "toggle_pause", "Pause/Resume", show=True),
        Binding("f", "finish", "Finish", show=True),
        Binding("c", "resume_completed", "Continue", show=True),
        Binding("d", "discard", "Discard", show=True),
        Binding("n", "new", "New", show=True),
        Binding("a", "toggle_activity", "Activity", show=True),
    ]

    DEFAULT_CSS = """
    RecorderScreen {
        background: $surface;
    }

    RecorderScreen .main-container {
        width: 100%;
        height: 1fr;
        padding: 1 2;
    }

    RecorderScreen .title-row {
        height: 1;
        margin-bottom: 1;
    }

    RecorderScreen .status-bar {
        dock: bottom;
        height: 1;
        padding: 0 2;
        background: $surface-lighten-1;
        color: $text-muted;
    }
    """

    def __init__(
        self,
        controller: SessionController | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.controller = controller or build_default_controller()
        self.distance_unit = settings.distance_unit
        self._remove_observer: Callable[[], None] | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(classes="main-container"):
            with Horizontal(classes="title-row"):
                yield RecordingIndicator(id="indicator")
                yield Static("Activity recorder", id="title")
            yield SessionStats(distance_unit=self.distance_unit, id="stats")
        yield Static("", id="status-bar", classes="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        self._remove_observer = self.controller.on_change(self._on_model_changed)
        self._render_model(self.controller.model)

    def on_unmount(self) -> None:
        if self._remove_observer is not None:
            self._remove_observer()
            self._remove_observer = None
        self.controller.close()

    def _on_model_changed(self, model: SessionModel) -> None:
        # Sources run on the app's event loop, so widgets can be updated here
        self._render_model(model)

    def _render_model(self, model: SessionModel) -> None:
        self.query_one("#indicator", RecordingIndicator).state = model.state
        self.query_one("#stats", SessionStats).model = model
        self.query_one("#status-bar", Static).update(
            build_status_line(model, distance_unit=self.distance_unit)
        )

    async def action_start(self) -> None:
        """Start a new recording."""
        if not self.controller.model.is_idle:
            return
        if not await self.controller.start():
            self.notify("Location access is required to record", severity="error")

    def action_toggle_pause(self) -> None:
        """Pause while recording, resume while paused."""
        if self.controller.model.is_recording:
            self.controller.pause()
        else:
            self.controller.resume()

    def action_finish(self) -> None:
        """Finish the recording for review."""
        if not self.controller.finish():
            return
        if not self.controller.has_minimum_data():
            self.notify(
                "Not enough GPS data to save this activity",
                severity="warning",
            )

    def action_resume_completed(self) -> None:
        self.controller.resume_from_completed()

    def action_discard(self) -> None:
        self.controller.discard()
        self.notify("Recording discarded")

    def action_new(self) -> None:
        """Hand off the finished recording and return to idle."""
        summary = self.controller.get_summary()
        if summary is None:
            return
        logger.info(
            "Activity ready for upload: %s, %ds, %.1fm, %d points",
            summary.activity_type.display_name,
            summary.elapsed_seconds,
            summary.total_distance_meters,
            summary.points_count,
        )
        self.controller.reset_to_idle()

    def action_toggle_activity(self) -> None:
        """Cycle the activity type (only while idle)."""
        types = list(ActivityType)
        current = self.controller.model.activity_type
        next_type = types[(types.index(current) + 1) % len(types)]
        if self.controller.set_activity_type(next_type):
            settings.default_activity_type = next_type
