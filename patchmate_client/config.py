"""Configuration loading for the PatchMate client.

Configuration is data: candidate address sets paired with credentials plus
a handful of transport timeouts. Nothing secret is compiled in. Credentials
come from a YAML file kept outside version control or from the environment.

Precedence, lowest to highest:
- built-in candidate addresses
- YAML file (argument or PATCHMATE_CONFIG)
- environment variables
"""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

PRIMARY = "primary"
FALLBACK = "fallback"

DEFAULT_HOST = "https://files.devinecreations.net:3924"

# Newer deployment path first, original path second.
DEFAULT_PATHS: dict[str, str] = {
    PRIMARY: "/apps-devinecr/patchmate-deployment/",
    FALLBACK: "/patchmate/",
}

CONFIG_PATH_ENV = "PATCHMATE_CONFIG"

_CREDENTIAL_ENV: dict[str, tuple[str, str]] = {
    PRIMARY: ("PATCHMATE_USERNAME", "PATCHMATE_PASSWORD"),
    FALLBACK: ("PATCHMATE_FALLBACK_USERNAME", "PATCHMATE_FALLBACK_PASSWORD"),
}


@dataclass(frozen=True)
class Credential:
    """Username/password pair for Basic authentication.

    The password is excluded from repr so it cannot leak into logs.
    """

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class EndpointSet:
    """Resolved address set for one deployment.

    Attributes:
        base_url: Root for uploads and downloads.
        api_url: Root for JSON API routes.
        ws_url: Streaming notification endpoint.
    """

    base_url: str
    api_url: str
    ws_url: str

    @classmethod
    def from_base(cls, base_url: str) -> EndpointSet:
        """Derive api/ws addresses the way the service lays them out."""
        if not base_url.endswith("/"):
            base_url = f"{base_url}/"
        if base_url.startswith("https://"):
            ws_root = "wss://" + base_url[len("https://") :]
        elif base_url.startswith("http://"):
            ws_root = "ws://" + base_url[len("http://") :]
        else:
            raise ConfigError(f"Unsupported base URL scheme: {base_url}")
        return cls(base_url=base_url, api_url=f"{base_url}api/", ws_url=f"{ws_root}ws/")


@dataclass(frozen=True)
class Candidate:
    """One address set + credential considered during negotiation."""

    name: str
    endpoints: EndpointSet
    credential: Credential


@dataclass(frozen=True)
class PatchMateConfig:
    """Client configuration.

    Attributes:
        candidates: Priority-ordered candidates; first reachable wins.
        probe_timeout: Upper bound for a single reachability probe (seconds).
        request_timeout: Total timeout for API calls and uploads (seconds).
        ws_connect_timeout: WebSocket handshake timeout (seconds).
        ws_ping_interval: Keepalive ping interval, None to disable.
        upload_route: Route appended to the base address for uploads.
        openlink_url: Optional OpenLink integration address.
    """

    candidates: tuple[Candidate, ...]
    probe_timeout: float = 10.0
    request_timeout: float = 30.0
    ws_connect_timeout: float = 15.0
    ws_ping_interval: int | None = 20
    upload_route: str = "upload"
    openlink_url: str | None = None

    def __post_init__(self) -> None:
        # Accept any sequence but store a tuple
        object.__setattr__(self, "candidates", tuple(self.candidates))
        if not self.candidates:
            raise ConfigError("At least one candidate is required")
        names = [candidate.name for candidate in self.candidates]
        if len(set(names)) != len(names):
            raise ConfigError(f"Duplicate candidate names: {names}")
        for attr in ("probe_timeout", "request_timeout", "ws_connect_timeout"):
            if getattr(self, attr) <= 0:
                raise ConfigError(f"{attr} must be positive")

    @property
    def primary(self) -> Candidate:
        return self.candidates[0]

    def with_overrides(self, **changes: Any) -> PatchMateConfig:
        """Return a copy where every supplied field replaces the current one."""
        unknown = set(changes) - {f.name for f in dataclasses.fields(self)}
        if unknown:
            raise ConfigError(f"Unknown configuration fields: {sorted(unknown)}")
        return dataclasses.replace(self, **changes)


def default_candidates(
    primary: Credential,
    fallback: Credential | None = None,
    *,
    host: str = DEFAULT_HOST,
) -> tuple[Candidate, ...]:
    """Build the built-in primary/fallback candidates for given credentials."""
    primary_endpoints = EndpointSet.from_base(host + DEFAULT_PATHS[PRIMARY])
    candidates = [Candidate(PRIMARY, primary_endpoints, primary)]
    if fallback is not None:
        fallback_endpoints = EndpointSet.from_base(host + DEFAULT_PATHS[FALLBACK])
        candidates.append(Candidate(FALLBACK, fallback_endpoints, fallback))
    return tuple(candidates)


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file with error handling."""
    if not path.exists():
        raise ConfigError(f"File not found: {path}")
    with path.open() as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as err:
            raise ConfigError(f"Invalid YAML in {path}: {err}") from err
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at the top of {path}")
    return data


def _parse_credential(data: Mapping[str, Any] | None) -> Credential | None:
    if not data:
        return None
    username = data.get("username")
    password = data.get("password")
    if not username or password is None:
        raise ConfigError("Credential requires both username and password")
    return Credential(str(username), str(password))


def _env_credential(name: str, environ: Mapping[str, str]) -> Credential | None:
    prefix = f"PATCHMATE_{name.upper()}"
    user_key, password_key = _CREDENTIAL_ENV.get(
        name, (f"{prefix}_USERNAME", f"{prefix}_PASSWORD")
    )
    username = environ.get(user_key)
    password = environ.get(password_key)
    if username and password is not None:
        return Credential(username, password)
    return None


def _parse_candidate(
    name: str,
    data: Mapping[str, Any],
    environ: Mapping[str, str],
    host: str,
) -> Candidate:
    base_url = data.get("base_url")
    if base_url is None:
        if name not in DEFAULT_PATHS:
            raise ConfigError(f"Candidate '{name}' has no base_url")
        base_url = host + DEFAULT_PATHS[name]
    derived = EndpointSet.from_base(base_url)
    endpoints = EndpointSet(
        base_url=derived.base_url,
        api_url=data.get("api_url", derived.api_url),
        ws_url=data.get("ws_url", derived.ws_url),
    )

    credential = _env_credential(name, environ) or _parse_credential(
        data.get("credential")
    )
    if credential is None:
        raise ConfigError(f"No credential configured for candidate '{name}'")
    return Candidate(name, endpoints, credential)


def load_config(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> PatchMateConfig:
    """Load client configuration from YAML and the environment.

    File layout:
        host: https://files.example.net:3924   # optional
        probe_timeout: 5
        candidates:
          - name: primary
            base_url: https://...              # optional for primary/fallback
            credential: {username: ..., password: ...}
          - name: fallback

    Without a file, the built-in primary and fallback addresses are used and
    credentials must come from the environment; the fallback candidate is
    only added when its credentials are present there.

    Raises:
        ConfigError: If the file is missing or malformed, or a candidate has
            no credential.
    """
    env = os.environ if environ is None else environ
    if path is None and env.get(CONFIG_PATH_ENV):
        path = env[CONFIG_PATH_ENV]

    data: dict[str, Any] = _load_yaml(Path(path)) if path is not None else {}
    host = str(data.get("host", DEFAULT_HOST)).rstrip("/")

    entries = data.get("candidates")
    if entries is None:
        entries = [{"name": PRIMARY}]
        if _env_credential(FALLBACK, env) is not None:
            entries.append({"name": FALLBACK})
    if not isinstance(entries, list):
        raise ConfigError("'candidates' must be a list")

    candidates = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, Mapping):
            raise ConfigError(f"Candidate #{index} must be a mapping")
        default_name = PRIMARY if index == 0 else f"candidate{index}"
        name = str(entry.get("name") or default_name)
        candidates.append(_parse_candidate(name, entry, env, host))

    options = {
        key: data[key]
        for key in (
            "probe_timeout",
            "request_timeout",
            "ws_connect_timeout",
            "ws_ping_interval",
            "upload_route",
            "openlink_url",
        )
        if key in data
    }
    return PatchMateConfig(candidates=tuple(candidates), **options)
