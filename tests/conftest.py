"""Pytest configuration and fixtures for patchmate_client tests."""

from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from patchmate_client.config import Candidate, Credential, EndpointSet, PatchMateConfig

PRIMARY_CREDENTIAL = Credential("devinecr", "primary-secret")
FALLBACK_CREDENTIAL = Credential("patchmate", "fallback-secret")


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    return MagicMock(spec=aiohttp.ClientSession)


@pytest.fixture
def primary() -> Candidate:
    return Candidate(
        "primary", EndpointSet.from_base("https://a.example/deploy/"), PRIMARY_CREDENTIAL
    )


@pytest.fixture
def fallback() -> Candidate:
    return Candidate(
        "fallback", EndpointSet.from_base("https://b.example/legacy/"), FALLBACK_CREDENTIAL
    )


@pytest.fixture
def config(primary: Candidate, fallback: Candidate) -> PatchMateConfig:
    return PatchMateConfig(candidates=(primary, fallback))


def create_mock_response(
    status: int = 200,
    json_data: Any = None,
    text_data: str | None = None,
    read_data: bytes | None = None,
    reason: str = "OK",
    delay: float | None = None,
) -> AsyncMock:
    """Create a configured mock response.

    Args:
        status: HTTP status code
        json_data: Data to return from json() call, also served as text()
        text_data: Data to return from text() call
        read_data: Data to return from read() call
        reason: HTTP reason phrase
        delay: Seconds to wait before the response is entered

    Returns:
        Configured AsyncMock response
    """
    response = AsyncMock()
    response.status = status
    response.reason = reason
    response.url = "https://mock.example/"
    response.release = MagicMock()

    if json_data is not None:
        response.json.return_value = json_data
        response.text.return_value = json.dumps(json_data)
    if text_data is not None:
        response.text.return_value = text_data
    if read_data is not None:
        response.read.return_value = read_data

    if delay is None:
        response.__aenter__.return_value = response
    else:

        async def _enter(*_args: Any) -> AsyncMock:
            await asyncio.sleep(delay)
            return response

        response.__aenter__.side_effect = _enter
    response.__aexit__.return_value = None

    return response


def route_by_url(routes: dict[str, Any]):
    """Build a side_effect that answers session calls by URL.

    Values may be responses or exceptions to raise.
    """

    def _side_effect(url: str, *_args: Any, **_kwargs: Any) -> Any:
        outcome = routes[url]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    return _side_effect


class FakeConnection:
    """Queue-backed stand-in for a websockets ClientConnection."""

    _END = object()

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self.send = AsyncMock()
        self.close = AsyncMock(side_effect=self._on_close)

    async def _on_close(self) -> None:
        self._queue.put_nowait(self._END)

    def push(self, item: Any) -> None:
        """Queue a frame (str/bytes) or an exception to raise."""
        self._queue.put_nowait(item)

    def end(self) -> None:
        """Simulate a graceful close by the server."""
        self._queue.put_nowait(self._END)

    def __aiter__(self) -> FakeConnection:
        return self

    async def __anext__(self) -> Any:
        item = await self._queue.get()
        if item is self._END:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item
