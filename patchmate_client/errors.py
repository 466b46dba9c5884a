"""Client error types for PatchMate deployment service interactions."""

from __future__ import annotations

from collections.abc import Iterable


class PatchMateClientError(Exception):
    """Base error for PatchMate client failures."""


class ConfigError(PatchMateClientError):
    """Client configuration is invalid or incomplete."""


class PatchMateTimeout(PatchMateClientError):
    """Timeout while communicating with the service."""


class PatchMateConnectionError(PatchMateClientError):
    """Network connection to the service failed."""


class PatchMateHandshakeError(PatchMateClientError):
    """WebSocket handshake failed."""


class NoReachableEndpoint(PatchMateClientError):
    """Every configured candidate failed its reachability probe."""

    def __init__(self, attempted: Iterable[str]) -> None:
        self.attempted = tuple(attempted)
        super().__init__(
            "Unable to connect to any PatchMate endpoint "
            f"(tried: {', '.join(self.attempted) or 'none'})"
        )


class NegotiationFailed(PatchMateClientError):
    """Lazy negotiation triggered by an operation did not produce a session."""


class NotNegotiated(PatchMateClientError):
    """Operation requires an established session."""


class RequestFailed(PatchMateClientError):
    """HTTP response outside the success range."""

    def __init__(
        self, status: int, status_text: str, message: str | None = None
    ) -> None:
        super().__init__(message or f"API request failed: {status} {status_text}")
        self.status = status
        self.status_text = status_text


class UploadFailed(RequestFailed):
    """Upload rejected by the service."""

    def __init__(self, status: int, status_text: str) -> None:
        super().__init__(status, status_text, f"Upload failed: {status} {status_text}")


class DownloadFailed(RequestFailed):
    """Download rejected by the service."""

    def __init__(self, status: int, status_text: str) -> None:
        super().__init__(
            status, status_text, f"Download failed: {status} {status_text}"
        )


class ResponseParseError(PatchMateClientError):
    """Response body is not valid JSON."""
