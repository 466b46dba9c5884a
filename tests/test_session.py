"""Test PatchMateSession state handling."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from patchmate_client.config import Candidate
from patchmate_client.errors import NotNegotiated
from patchmate_client.session import PatchMateSession


def test_session_starts_disconnected() -> None:
    """Test a new session has no negotiated state."""
    session = PatchMateSession()

    assert not session.is_connected
    assert session.candidate is None
    assert session.describe() == {
        "active_endpoint": None,
        "active_auth": None,
        "candidate": None,
        "connected": False,
    }


def test_endpoints_require_negotiation() -> None:
    """Test reading endpoints before negotiation raises NotNegotiated."""
    session = PatchMateSession()

    with pytest.raises(NotNegotiated):
        _ = session.endpoints
    with pytest.raises(NotNegotiated):
        _ = session.credential


def test_establish(primary: Candidate) -> None:
    """Test establish sets endpoints and credential together."""
    session = PatchMateSession()

    session.establish(primary)

    assert session.is_connected
    assert session.endpoints is primary.endpoints
    assert session.credential is primary.credential


def test_describe_redacts_password(primary: Candidate) -> None:
    """Test describe exposes the username only."""
    session = PatchMateSession()
    session.establish(primary)

    described = session.describe()

    assert described["active_auth"] == {"username": "devinecr"}
    assert described["active_endpoint"]["api"] == "https://a.example/deploy/api/"
    assert described["candidate"] == "primary"
    assert described["connected"] is True
    assert "primary-secret" not in repr(described)


async def test_teardown_is_idempotent(primary: Candidate) -> None:
    """Test teardown twice leaves the session disconnected without error."""
    session = PatchMateSession()
    session.establish(primary)

    await session.teardown()
    assert session.describe()["connected"] is False
    await session.teardown()
    assert session.describe()["connected"] is False
    assert session.candidate is None


async def test_teardown_closes_realtime(primary: Candidate) -> None:
    """Test teardown closes the owned realtime handle."""
    session = PatchMateSession()
    session.establish(primary)
    handle = AsyncMock()
    session.attach_realtime(handle)

    await session.teardown()

    handle.close.assert_awaited_once()
    assert session.realtime is None


async def test_teardown_clears_state_when_close_fails(primary: Candidate) -> None:
    """Test a failing handle close still leaves the session disconnected."""
    session = PatchMateSession()
    session.establish(primary)
    handle = AsyncMock()
    handle.close.side_effect = RuntimeError("transport gone")
    session.attach_realtime(handle)

    with pytest.raises(RuntimeError, match="transport gone"):
        await session.teardown()

    assert not session.is_connected
    assert session.candidate is None
    assert session.realtime is None
    with pytest.raises(NotNegotiated):
        _ = session.endpoints
