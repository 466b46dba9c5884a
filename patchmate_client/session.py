"""Negotiated session state shared by every PatchMate operation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .config import Candidate, Credential, EndpointSet
from .errors import NotNegotiated

if TYPE_CHECKING:
    from .realtime import RealtimeHandle

_LOGGER = logging.getLogger(__name__)


class PatchMateSession:
    """Resolved address set, credential and connected flag.

    Written by negotiation (``establish``) and by ``teardown`` only. The
    address set and credential are always set or cleared together.
    """

    def __init__(self) -> None:
        self._candidate: Candidate | None = None
        self._connected = False
        self._realtime: RealtimeHandle | None = None

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def candidate(self) -> Candidate | None:
        return self._candidate

    @property
    def endpoints(self) -> EndpointSet:
        return self._require().endpoints

    @property
    def credential(self) -> Credential:
        return self._require().credential

    @property
    def realtime(self) -> RealtimeHandle | None:
        return self._realtime

    def establish(self, candidate: Candidate) -> None:
        """Adopt a negotiated candidate."""
        self._candidate = candidate
        self._connected = True

    def attach_realtime(self, handle: RealtimeHandle | None) -> None:
        """Record the realtime handle owned by this session."""
        self._realtime = handle

    async def teardown(self) -> None:
        """Close the owned realtime handle and forget the negotiated state.

        Safe to call any number of times.
        """
        handle, self._realtime = self._realtime, None
        try:
            if handle is not None:
                await handle.close()
        finally:
            if self._candidate is not None:
                _LOGGER.debug("Session for %s torn down", self._candidate.name)
            self._candidate = None
            self._connected = False

    def describe(self) -> dict[str, Any]:
        """Diagnostic view of the session; never includes the password."""
        candidate = self._candidate
        if candidate is None:
            return {
                "active_endpoint": None,
                "active_auth": None,
                "candidate": None,
                "connected": self._connected,
            }
        return {
            "active_endpoint": {
                "base": candidate.endpoints.base_url,
                "api": candidate.endpoints.api_url,
                "ws": candidate.endpoints.ws_url,
            },
            "active_auth": {"username": candidate.credential.username},
            "candidate": candidate.name,
            "connected": self._connected,
        }

    def _require(self) -> Candidate:
        if not self._connected or self._candidate is None:
            raise NotNegotiated("Client not initialized. Call initialize() first.")
        return self._candidate
