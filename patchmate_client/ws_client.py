"""WebSocket client wrapper for PatchMate notifications."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed, ConnectionClosedError

from .errors import PatchMateClientError, PatchMateConnectionError
from .ws import connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class PatchMateWsMessageType(Enum):
    """Normalized WebSocket message types."""

    TEXT = "text"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class PatchMateWsMessage:
    """Normalized WebSocket message payload.

    ``error`` carries the transport exception for ERROR messages.
    """

    type: PatchMateWsMessageType
    data: str | None = None
    error: BaseException | None = None


class PatchMateWsClient:
    """Wrapper around websockets library for PatchMate."""

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def connect(
        self,
        url: str,
        *,
        ping_interval: int | None = 20,
        timeout: float = 15.0,
    ) -> None:
        """Connect to the notification websocket."""
        self._ws = await connect_websocket(
            url,
            ping_interval=ping_interval,
            timeout=timeout,
        )

    async def close(self) -> None:
        """Close the websocket connection."""
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()

    async def send_json(self, payload: dict[str, Any]) -> None:
        """Send a JSON payload to the websocket."""
        if self._ws is None:
            raise PatchMateConnectionError("WebSocket is not connected")
        await self._ws.send(json.dumps(payload))

    def __aiter__(self) -> AsyncIterator[PatchMateWsMessage]:
        if self._ws is None:
            raise PatchMateConnectionError("WebSocket is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[PatchMateWsMessage]:
        if self._ws is None:
            raise PatchMateConnectionError("WebSocket is not connected")

        try:
            async for msg in self._ws:
                if isinstance(msg, bytes):
                    continue
                yield PatchMateWsMessage(PatchMateWsMessageType.TEXT, str(msg))
        except ConnectionClosedError as err:
            yield PatchMateWsMessage(PatchMateWsMessageType.ERROR, error=err)
        except ConnectionClosed:
            yield PatchMateWsMessage(PatchMateWsMessageType.CLOSED)
        except Exception as err:
            yield PatchMateWsMessage(PatchMateWsMessageType.ERROR, error=err)
        else:
            # Normal iteration completion means the peer closed gracefully.
            yield PatchMateWsMessage(PatchMateWsMessageType.CLOSED)

    @staticmethod
    def decode_json(message: PatchMateWsMessage) -> Any:
        """Decode a TEXT message payload into JSON.

        Raises:
            PatchMateClientError: If the message is not a TEXT frame.
            json.JSONDecodeError: If the payload is not JSON.
        """
        if message.type is not PatchMateWsMessageType.TEXT:
            raise PatchMateClientError("Only TEXT messages can be decoded")
        if not isinstance(message.data, str):
            raise PatchMateClientError("Message data is not a string")
        return json.loads(message.data)
