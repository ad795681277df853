"""Status message helpers for the recorder screen."""

from __future__ import annotations

from cadence.models.session import RecordingState, SessionModel


def build_state_message(model: SessionModel) -> str:
    """Build the action hint shown for the current recording state."""
    if model.state == RecordingState.IDLE:
        return (
            f"Ready to record {model.activity_type.display_name}. "
            "Press 's' to start, 'a' to change activity"
        )
    if model.state == RecordingState.RECORDING:
        if model.points_count == 0:
            return "Recording - waiting for GPS..."
        return "Recording - 'p' to pause, 'f' to finish"
    if model.state == RecordingState.PAUSED:
        return "Paused - 'p' to resume, 'f' to finish, 'd' to discard"
    return "Finished - 'n' to save and start over, 'c' to continue, 'd' to discard"


def build_status_line(model: SessionModel, *, distance_unit: str) -> str:
    """Compose the bottom status bar text."""
    parts = [
        build_state_message(model),
        model.formatted_time,
        model.formatted_distance(distance_unit),
        f"{model.points_count} pts",
    ]
    if model.last_error:
        parts.append(f"! {model.last_error}")
    return " | ".join(parts)
