"""Live recording session control."""

from .controller import RecorderOptions, SessionController, SessionObserver
from .sources import (
    AsyncioTicker,
    LocationAuthorizer,
    PositionSource,
    SimulatedPositionSource,
    StaticAuthorizer,
    Subscription,
    TimerSource,
)

__all__ = [
    "AsyncioTicker",
    "LocationAuthorizer",
    "PositionSource",
    "RecorderOptions",
    "SessionController",
    "SessionObserver",
    "SimulatedPositionSource",
    "StaticAuthorizer",
    "Subscription",
    "TimerSource",
]
