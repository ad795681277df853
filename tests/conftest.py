from __future__ import annotations

import copy
from collections.abc import Iterator

import pytest

from cadence.config.settings import settings
from cadence.recording import SessionController, StaticAuthorizer
from tests.fakes import FakePositionSource, FakeTimer


@pytest.fixture(autouse=True)
def isolate_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Prevent tests from persisting settings to disk."""
    original_data = copy.deepcopy(settings._data)

    def _noop_save() -> None:
        return None

    monkeypatch.setattr(settings, "_save", _noop_save)
    try:
        yield
    finally:
        settings._data = original_data


@pytest.fixture
def source() -> FakePositionSource:
    return FakePositionSource()


@pytest.fixture
def timer() -> FakeTimer:
    return FakeTimer()


@pytest.fixture
def authorizer() -> StaticAuthorizer:
    return StaticAuthorizer(granted=True)


@pytest.fixture
def controller(
    source: FakePositionSource, timer: FakeTimer, authorizer: StaticAuthorizer
) -> SessionController:
    return SessionController(source, timer, authorizer)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
