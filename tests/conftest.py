"""Shared test fixtures for croncue."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from croncue.core.bus import EventBus
from croncue.core.config import CronCueConfig
from croncue.scheduler.store import JobStore


class FakeHandle:
    def __init__(self, result: asyncio.Future) -> None:
        self.result = result


class FakeSession:
    def __init__(self, client: "FakeClient", target: str) -> None:
        self._client = client
        self._target = target

    def send(self, payload: dict[str, Any]) -> Any:
        handle = self._client._send(self._target, payload)
        if self._client.async_send:
            return self._resolve(handle)
        return handle

    @staticmethod
    async def _resolve(handle: FakeHandle) -> FakeHandle:
        return handle


class FakeClient:
    """
    Records every send. With ``auto_complete=False`` the result futures stay
    pending until the test resolves them through ``pending``.
    """

    def __init__(self, auto_complete: bool = True, async_send: bool = False) -> None:
        self.auto_complete = auto_complete
        self.async_send = async_send
        self.fail_with: Exception | None = None
        self.sent: list[tuple[str, dict[str, Any]]] = []
        self.pending: list[asyncio.Future] = []

    def session(self, target: str) -> FakeSession:
        return FakeSession(self, target)

    def _send(self, target: str, payload: dict[str, Any]) -> FakeHandle:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append((target, payload))
        future = asyncio.get_running_loop().create_future()
        if self.auto_complete:
            future.set_result(None)
        self.pending.append(future)
        return FakeHandle(future)

    @property
    def sent_prompts(self) -> list[str]:
        return [p["messages"][0]["content"][0]["text"] for _, p in self.sent]


@pytest.fixture
def config():
    """Create a default config without loading from disk."""
    return CronCueConfig()


@pytest.fixture
def bus():
    """Create a fresh event bus."""
    return EventBus()


@pytest.fixture
def client():
    """Session client that completes every delivery immediately."""
    return FakeClient()


@pytest.fixture
def store(tmp_path):
    """Job store over a temporary data directory."""
    return JobStore(tmp_path / "jobs")


@pytest.fixture
def make_client():
    """Factory for clients with non-default behaviour."""
    return FakeClient
