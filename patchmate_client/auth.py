"""Basic credential encoding shared by HTTP and WebSocket transports."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import Credential


def basic_token(credential: Credential) -> str:
    """Return base64(username:password) for the credential."""
    raw = f"{credential.username}:{credential.password}".encode()
    return base64.b64encode(raw).decode("ascii")


def auth_headers(credential: Credential) -> dict[str, str]:
    return {"Authorization": f"Basic {basic_token(credential)}"}
