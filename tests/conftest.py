"""Shared pytest fixtures for the OCR client tests.

Provides a controllable clock, a recording sleep, environment and
keyring isolation, and helpers for building httpx clients backed by
``httpx.MockTransport``.
"""

from __future__ import annotations

from typing import Callable

import httpx
import pytest

from ocrlib.config import API_KEY_ENV, MODEL_ID_ENV


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    """Async stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture(autouse=True)
def isolated_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Hide real credentials: no env vars, empty keyring."""
    monkeypatch.delenv(API_KEY_ENV, raising=False)
    monkeypatch.delenv(MODEL_ID_ENV, raising=False)
    monkeypatch.setattr("ocrlib.config.keyring.get_password", lambda *args: None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Factory: wrap a request handler in an ``httpx.AsyncClient``."""

    def _factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _factory
