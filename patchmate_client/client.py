"""Top-level PatchMate client.

Usage:
    config = load_config()
    async with PatchMateClient(config) as client:
        await client.initialize()
        status = await client.api_request("status")
        await client.upload_file(b"...", "patches/", file_name="fix.patch")
        handle = await client.connect_websocket(print)
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import IO, Any

import aiohttp

from .config import PatchMateConfig
from .http import PatchMateHttpClient
from .negotiator import SessionNegotiator
from .probe import EndpointProbe
from .realtime import ErrorHandler, MessageHandler, RealtimeChannel, RealtimeHandle
from .session import PatchMateSession

_LOGGER = logging.getLogger(__name__)


class PatchMateClient:
    """Negotiates a session and exposes request, upload, download and
    realtime operations over it.

    The client owns the session state; the HTTP gateway and realtime
    channel read the same object.
    """

    def __init__(
        self,
        config: PatchMateConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize client.

        Args:
            config: Candidates and transport settings
            session: Optional aiohttp session; when omitted the client
                creates one lazily and closes it in ``close()``
        """
        self._config = config
        self._http_session = session
        self._owns_http_session = session is None

        self._state = PatchMateSession()
        self._pending: asyncio.Task[PatchMateSession] | None = None
        self._negotiation_count = 0

        self._negotiator: SessionNegotiator | None = None
        self._http: PatchMateHttpClient | None = None
        self._realtime = RealtimeChannel(
            self._state,
            ping_interval=config.ws_ping_interval,
            connect_timeout=config.ws_connect_timeout,
        )

    async def __aenter__(self) -> PatchMateClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Public API: Session
    # -------------------------------------------------------------------------

    @property
    def config(self) -> PatchMateConfig:
        return self._config

    @property
    def session(self) -> PatchMateSession:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state.is_connected

    @property
    def negotiation_count(self) -> int:
        """Number of negotiations started by this client."""
        return self._negotiation_count

    async def initialize(self, *, force: bool = False) -> PatchMateClient:
        """Negotiate the session.

        Returns immediately when already connected unless ``force`` is set.

        Raises:
            NoReachableEndpoint: If no candidate answered its probe.
        """
        if force and self._pending is None:
            await self._state.teardown()
        await self.ensure_session()
        return self

    async def ensure_session(self) -> PatchMateSession:
        """Return the connected session, negotiating at most once at a time.

        Concurrent callers share the pending negotiation and see the same
        result or the same error.
        """
        if self._state.is_connected:
            return self._state
        if self._pending is None:
            _LOGGER.info("Initializing client...")
            self._negotiation_count += 1
            self._pending = asyncio.create_task(self._negotiate())
            self._pending.add_done_callback(self._clear_pending)
        return await asyncio.shield(self._pending)

    def _clear_pending(self, task: asyncio.Task[PatchMateSession]) -> None:
        if self._pending is task:
            self._pending = None
        if not task.cancelled():
            # Mark the exception retrieved
            task.exception()

    async def _negotiate(self) -> PatchMateSession:
        candidate = await self._get_negotiator().negotiate()
        self._state.establish(candidate)
        return self._state

    async def disconnect(self) -> None:
        """Close the realtime channel and forget the session. Idempotent.

        A negotiation still in flight is cancelled so it cannot re-establish
        the session afterwards; callers awaiting it see ``CancelledError``.
        """
        pending, self._pending = self._pending, None
        if pending is not None and not pending.done():
            pending.cancel()
            try:
                await pending
            except asyncio.CancelledError:
                pass
        await self._state.teardown()
        _LOGGER.info("Client disconnected")

    async def close(self) -> None:
        """Disconnect and close the owned HTTP session."""
        await self.disconnect()
        if self._owns_http_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._negotiator = None
            self._http = None

    def get_config(self) -> dict[str, Any]:
        """Diagnostic view of the active configuration; secrets redacted."""
        return {
            **self._state.describe(),
            "candidates": [candidate.name for candidate in self._config.candidates],
            "openlink_url": self._config.openlink_url,
        }

    # -------------------------------------------------------------------------
    # Public API: Operations
    # -------------------------------------------------------------------------

    async def api_request(self, route: str, **options: Any) -> Any:
        """Authenticated JSON API call; see ``PatchMateHttpClient.call``."""
        return await self._get_http().call(route, **options)

    async def upload_file(
        self,
        file: bytes | IO[bytes],
        path: str = "",
        *,
        file_name: str | None = None,
    ) -> Any:
        """Upload ``file`` into the remote directory ``path``.

        ``file_name`` defaults to the file object's own name.
        """
        if file_name is None:
            name = getattr(file, "name", None)
            if isinstance(name, str):
                file_name = os.path.basename(name)
            else:
                file_name = "upload.bin"
        return await self._get_http().upload(file, file_name, path)

    async def download_file(self, path: str) -> aiohttp.ClientResponse:
        """Start a download; the caller reads and releases the response."""
        return await self._get_http().download(path)

    async def connect_websocket(
        self,
        on_message: MessageHandler | None,
        on_error: ErrorHandler | None = None,
    ) -> RealtimeHandle:
        """Open the realtime channel, replacing any handle opened before.

        Raises:
            NotNegotiated: If ``initialize()`` has not succeeded yet.
        """
        previous = self._state.realtime
        if previous is not None:
            self._state.attach_realtime(None)
            await previous.close()
        handle = await self._realtime.open(on_message, on_error)
        self._state.attach_realtime(handle)
        return handle

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _get_http_session(self) -> aiohttp.ClientSession:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        return self._http_session

    def _get_negotiator(self) -> SessionNegotiator:
        if self._negotiator is None:
            probe = EndpointProbe(
                self._get_http_session(), timeout=self._config.probe_timeout
            )
            self._negotiator = SessionNegotiator(probe, self._config.candidates)
        return self._negotiator

    def _get_http(self) -> PatchMateHttpClient:
        if self._http is None:
            self._http = PatchMateHttpClient(
                self._get_http_session(),
                self._state,
                self.ensure_session,
                request_timeout=self._config.request_timeout,
                upload_route=self._config.upload_route,
            )
        return self._http
