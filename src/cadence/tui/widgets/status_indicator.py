"""Recording status indicator widget."""

from textual.reactive import reactive
from textual.widgets import Static

from cadence.models.session import RecordingState


class RecordingIndicator(Static):
    """
    Dot showing the recording state.

    - Blinking red dot: recording
    - Steady amber dot: paused
    - Steady green dot: completed
    - Dim dot: idle
    """

    DEFAULT_CSS = """
    RecordingIndicator {
        width: 2;
        height: 1;
        background: transparent;
    }

    RecordingIndicator.idle {
        color: $text-muted;
    }

    RecordingIndicator.recording {
        color: $error;
    }

    RecordingIndicator.paused {
        color: $warning;
    }

    RecordingIndicator.completed {
        color: $success;
    }
    """

    state: reactive[RecordingState] = reactive(RecordingState.IDLE)
    _blink_visible: reactive[bool] = reactive(True)
    _blink_timer: object = None

    def __init__(self, **kwargs: object) -> None:
        super().__init__("●", **kwargs)
        self.add_class("idle")

    def on_mount(self) -> None:
        """Start the blink timer."""
        self._blink_timer = self.set_interval(0.5, self._toggle_blink)

    def watch_state(self, state: RecordingState) -> None:
        """Update appearance when the recording state changes."""
        self.remove_class(*(s.value for s in RecordingState))
        self.add_class(state.value)
        if state != RecordingState.RECORDING:
            self._blink_visible = True
            self.update("●")

    def _toggle_blink(self) -> None:
        """Toggle visibility for blink effect."""
        if self.state == RecordingState.RECORDING:
            self._blink_visible = not self._blink_visible
            self.update("●" if self._blink_visible else " ")
