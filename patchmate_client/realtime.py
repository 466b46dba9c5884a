"""Realtime notification channel over the negotiated session.

One ``RealtimeHandle`` wraps one streaming connection:

    UNOPENED -> CONNECTING -> OPEN -> CLOSED

CLOSED is terminal. Reconnecting means calling ``RealtimeChannel.open``
again, which produces a new handle; nothing here reconnects on its own.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any
from urllib.parse import quote

from .auth import basic_token
from .errors import NotNegotiated, PatchMateClientError
from .session import PatchMateSession
from .ws_client import PatchMateWsClient, PatchMateWsMessageType

_LOGGER = logging.getLogger(__name__)

MessageHandler = Callable[[Any], Awaitable[None] | None]
ErrorHandler = Callable[[BaseException | None], Awaitable[None] | None]


class RealtimeState(Enum):
    """Lifecycle of a realtime handle."""

    UNOPENED = "unopened"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


def build_stream_url(ws_url: str, token: str, *, masked: bool = False) -> str:
    """Append the auth token as a query parameter."""
    separator = "&" if "?" in ws_url else "?"
    value = "***" if masked else quote(token, safe="")
    return f"{ws_url}{separator}auth={value}"


async def _dispatch(handler: Callable[..., Any], *args: Any) -> None:
    result = handler(*args)
    if inspect.isawaitable(result):
        await result


class RealtimeHandle:
    """One streaming connection and its listener task."""

    def __init__(
        self,
        url: str,
        on_message: MessageHandler | None,
        on_error: ErrorHandler | None = None,
        *,
        ping_interval: int | None = 20,
        connect_timeout: float = 15.0,
        log_url: str | None = None,
    ) -> None:
        self._url = url
        self._log_url = log_url or url
        self._on_message = on_message
        self._on_error = on_error
        self._ping_interval = ping_interval
        self._connect_timeout = connect_timeout

        self._ws = PatchMateWsClient()
        self._state = RealtimeState.UNOPENED
        self._listen_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> RealtimeState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is RealtimeState.OPEN

    @property
    def url(self) -> str:
        """Stream address with the auth token masked."""
        return self._log_url

    def _set_state(self, state: RealtimeState) -> None:
        if self._state is not state:
            _LOGGER.debug("Realtime state: %s -> %s", self._state.value, state.value)
            self._state = state

    async def start(self) -> None:
        """Connect and start dispatching frames.

        A failed handshake is reported through ``on_error`` and leaves the
        handle CLOSED; it is not raised.
        """
        if self._state is not RealtimeState.UNOPENED:
            return
        self._set_state(RealtimeState.CONNECTING)
        try:
            await self._ws.connect(
                self._url,
                ping_interval=self._ping_interval,
                timeout=self._connect_timeout,
            )
        except PatchMateClientError as err:
            _LOGGER.error("WebSocket connection to %s failed: %s", self._log_url, err)
            self._set_state(RealtimeState.CLOSED)
            await self._report_error(err)
            return

        if self._state is not RealtimeState.CONNECTING:
            # Closed while the handshake was in flight
            await self._ws.close()
            return

        self._set_state(RealtimeState.OPEN)
        _LOGGER.info("WebSocket connected to %s", self._log_url)
        self._listen_task = asyncio.create_task(self._listen())

    async def close(self) -> None:
        """Close the connection.

        Closing an already-closed or never-opened handle is a no-op.
        """
        if self._state in (RealtimeState.CLOSED, RealtimeState.UNOPENED):
            return
        self._set_state(RealtimeState.CLOSED)

        task, self._listen_task = self._listen_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        try:
            await asyncio.wait_for(self._ws.close(), timeout=2.0)
        except TimeoutError:
            _LOGGER.warning("WebSocket close timed out")
        _LOGGER.info("WebSocket disconnected")

    async def wait_closed(self) -> None:
        """Wait until the listener has stopped."""
        task = self._listen_task
        if task is not None:
            await asyncio.wait({task})

    async def send_json(self, payload: dict[str, Any]) -> None:
        """Send a JSON frame on an open channel."""
        await self._ws.send_json(payload)

    async def _listen(self) -> None:
        """Dispatch inbound frames until the transport ends."""
        message_count = 0
        try:
            async for msg in self._ws:
                if msg.type == PatchMateWsMessageType.TEXT:
                    message_count += 1
                    try:
                        data = PatchMateWsClient.decode_json(msg)
                    except (json.JSONDecodeError, PatchMateClientError) as err:
                        _LOGGER.warning("WebSocket message parse error: %s", err)
                        continue
                    if self._on_message is not None:
                        try:
                            await _dispatch(self._on_message, data)
                        except Exception as err:
                            _LOGGER.exception("Message handler error: %s", err)

                elif msg.type == PatchMateWsMessageType.CLOSED:
                    _LOGGER.info(
                        "WebSocket closed by server after %d message(s)",
                        message_count,
                    )
                    break

                elif msg.type == PatchMateWsMessageType.ERROR:
                    _LOGGER.error("WebSocket error: %s", msg.error)
                    await self._report_error(msg.error)
                    break
        except asyncio.CancelledError:
            _LOGGER.debug("Listener cancelled (%d messages)", message_count)
            raise
        finally:
            if self._state is not RealtimeState.CLOSED:
                self._set_state(RealtimeState.CLOSED)
                await self._ws.close()

    async def _report_error(self, error: BaseException | None) -> None:
        if self._on_error is None:
            return
        try:
            await _dispatch(self._on_error, error)
        except Exception as err:
            _LOGGER.exception("Error handler raised: %s", err)


class RealtimeChannel:
    """Opens realtime handles against the negotiated stream address."""

    def __init__(
        self,
        state: PatchMateSession,
        *,
        ping_interval: int | None = 20,
        connect_timeout: float = 15.0,
    ) -> None:
        self._state = state
        self._ping_interval = ping_interval
        self._connect_timeout = connect_timeout

    async def open(
        self,
        on_message: MessageHandler | None,
        on_error: ErrorHandler | None = None,
    ) -> RealtimeHandle:
        """Open a streaming connection.

        Does not negotiate: the session must already be connected.

        Raises:
            NotNegotiated: If the session is not connected.
        """
        if not self._state.is_connected:
            raise NotNegotiated("Client not initialized. Call initialize() first.")

        ws_url = self._state.endpoints.ws_url
        handle = RealtimeHandle(
            build_stream_url(ws_url, basic_token(self._state.credential)),
            on_message,
            on_error,
            ping_interval=self._ping_interval,
            connect_timeout=self._connect_timeout,
            log_url=build_stream_url(ws_url, "", masked=True),
        )
        await handle.start()
        return handle
