"""Client for the PatchMate file-deployment service."""

__version__ = "0.1.0"

from .client import PatchMateClient
from .config import (
    Candidate,
    Credential,
    EndpointSet,
    PatchMateConfig,
    default_candidates,
    load_config,
)
from .errors import (
    ConfigError,
    DownloadFailed,
    NegotiationFailed,
    NoReachableEndpoint,
    NotNegotiated,
    PatchMateClientError,
    PatchMateConnectionError,
    PatchMateHandshakeError,
    PatchMateTimeout,
    RequestFailed,
    ResponseParseError,
    UploadFailed,
)
from .http import PatchMateHttpClient
from .negotiator import SessionNegotiator
from .probe import EndpointProbe
from .realtime import RealtimeChannel, RealtimeHandle, RealtimeState
from .session import PatchMateSession
from .ws import connect_websocket
from .ws_client import PatchMateWsClient, PatchMateWsMessage, PatchMateWsMessageType

__all__ = [
    "Candidate",
    "ConfigError",
    "Credential",
    "DownloadFailed",
    "EndpointProbe",
    "EndpointSet",
    "NegotiationFailed",
    "NoReachableEndpoint",
    "NotNegotiated",
    "PatchMateClient",
    "PatchMateClientError",
    "PatchMateConfig",
    "PatchMateConnectionError",
    "PatchMateHandshakeError",
    "PatchMateHttpClient",
    "PatchMateSession",
    "PatchMateTimeout",
    "PatchMateWsClient",
    "PatchMateWsMessage",
    "PatchMateWsMessageType",
    "RealtimeChannel",
    "RealtimeHandle",
    "RealtimeState",
    "RequestFailed",
    "ResponseParseError",
    "SessionNegotiator",
    "UploadFailed",
    "__version__",
    "connect_websocket",
    "default_candidates",
    "load_config",
]
