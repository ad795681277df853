"""Live session metrics widget."""

from __future__ import annotations

from rich.text import Text
from textual.reactive import reactive
from textual.widgets import Static

from cadence.models.session import MILES_UNIT, SessionModel


class SessionStats(Static):
    """Shows activity, elapsed time, distance and speed for a session."""

    DEFAULT_CSS = """
    SessionStats {
        height: auto;
        padding: 1 2;
        border: round $primary;
    }
    """

    model: reactive[SessionModel] = reactive(SessionModel.idle, always_update=True)

    def __init__(self, distance_unit: str = MILES_UNIT, **kwargs: object) -> None:
        super().__init__(**kwargs)
        self.distance_unit = distance_unit

    def render(self) -> Text:
        """Render the stats block."""
        model = self.model
        text = Text()
        text.append("Activity  ", style="dim")
        text.append(f"{model.activity_type.display_name}\n", style="bold")
        text.append("Time      ", style="dim")
        text.append(f"{model.formatted_time}\n", style="bold")
        if model.is_idle:
            return text

        text.append("Distance  ", style="dim")
        text.append(f"{model.formatted_distance(self.distance_unit)}\n", style="bold")
        text.append("Speed     ", style="dim")
        if self.distance_unit == MILES_UNIT:
            text.append(f"{model.current_speed_mph():.1f} mph\n", style="bold")
        else:
            text.append(f"{model.current_speed_ms() * 3.6:.1f} km/h\n", style="bold")
        text.append("Points    ", style="dim")
        text.append(str(model.points_count))
        return text
