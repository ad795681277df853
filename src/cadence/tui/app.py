"""Main Cadence TUI application."""

import logging
from typing import Any

from textual.app import App
from textual.binding import Binding

from cadence.config import settings
from cadence.recording import SessionController
from cadence.tui.screens.recorder import RecorderScreen

logger = logging.getLogger(__name__)


class CadenceApp(App[None]):
    """Main Cadence TUI application."""

    TITLE = "Cadence"
    SUB_TITLE = "GPS activity recorder"

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit"),
        Binding("ctrl+d", "toggle_dark", "Toggle Dark Mode"),
    ]

    CSS = """
    Screen {
        background: $surface;
    }
    """

    def __init__(
        self, controller: SessionController | None = None, **kwargs: Any
    ) -> None:
        super().__init__(**kwargs)
        self._controller = controller

    def on_mount(self) -> None:
        """Load the saved theme and show the recorder."""
        saved_theme = settings.theme
        logger.info("Loading saved theme: %s", saved_theme)
        self.theme = saved_theme
        self.push_screen(RecorderScreen(controller=self._controller))

    def action_toggle_dark(self) -> None:
        """Toggle between light and dark themes and persist the choice."""
        new_theme = "textual-light" if self.theme == "textual-dark" else "textual-dark"
        self.theme = new_theme
        settings.theme = new_theme
