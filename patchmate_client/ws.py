"""WebSocket helpers for the PatchMate notification stream."""

from __future__ import annotations

import asyncio

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)

from .errors import (
    PatchMateConnectionError,
    PatchMateHandshakeError,
    PatchMateTimeout,
)


async def connect_websocket(
    url: str,
    *,
    ping_interval: int | None = 20,
    timeout: float = 15.0,
) -> ClientConnection:
    """Connect to a PatchMate WebSocket endpoint.

    Args:
        url: Full ws:// or wss:// address, query string included
        ping_interval: Interval for ping frames, None to disable
        timeout: Connection timeout
    """
    try:
        return await asyncio.wait_for(
            websockets.connect(
                url,
                ping_interval=ping_interval,
                close_timeout=5,
                max_size=None,
            ),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise PatchMateTimeout("WebSocket connection timed out") from err
    except (InvalidHandshake, InvalidURI) as err:
        raise PatchMateHandshakeError("WebSocket handshake failed") from err
    except (OSError, WebSocketException) as err:
        raise PatchMateConnectionError("WebSocket connection failed") from err
