"""HTTP client for PatchMate API, upload and download endpoints."""

from __future__ import annotations

import json as _json
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import IO, Any

import aiohttp

from .auth import auth_headers
from .errors import (
    DownloadFailed,
    NegotiationFailed,
    NoReachableEndpoint,
    PatchMateConnectionError,
    PatchMateTimeout,
    RequestFailed,
    ResponseParseError,
    UploadFailed,
)
from .session import PatchMateSession

_LOGGER = logging.getLogger(__name__)

EnsureSession = Callable[[], Awaitable[PatchMateSession]]


def _is_success(status: int) -> bool:
    return 200 <= status < 300


class PatchMateHttpClient:
    """Authenticated request gateway over the negotiated session.

    Every operation negotiates lazily through ``ensure_session`` when the
    session is not connected yet.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        state: PatchMateSession,
        ensure_session: EnsureSession,
        *,
        request_timeout: float = 30.0,
        upload_route: str = "upload",
    ) -> None:
        self._session = session
        self._state = state
        self._ensure_session = ensure_session
        self._request_timeout = request_timeout
        self._upload_route = upload_route

    async def _ready(self) -> PatchMateSession:
        if self._state.is_connected:
            return self._state
        try:
            return await self._ensure_session()
        except NoReachableEndpoint as err:
            raise NegotiationFailed(str(err)) from err

    @staticmethod
    async def _parse_json(resp: aiohttp.ClientResponse) -> Any:
        try:
            text = await resp.text()
        except UnicodeDecodeError as err:
            raise ResponseParseError(
                f"Response from {resp.url} is not valid text"
            ) from err
        if not text.strip():
            raise ResponseParseError(f"Response from {resp.url} has an empty body")
        try:
            return _json.loads(text)
        except _json.JSONDecodeError as err:
            raise ResponseParseError(
                f"Response from {resp.url} is not valid JSON"
            ) from err

    async def call(
        self,
        route: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        json: Any = None,
        data: Any = None,
        params: Mapping[str, str] | None = None,
    ) -> Any:
        """Issue an API request and return the decoded JSON body.

        The URL is the negotiated API address followed by ``route``
        verbatim. Caller headers override the defaults on conflicting keys.

        Raises:
            NegotiationFailed: If lazy negotiation found no endpoint.
            RequestFailed: If the service answers outside 2xx.
            ResponseParseError: If the body is not JSON.
            PatchMateTimeout: If the request times out.
            PatchMateConnectionError: If the network request fails.
        """
        state = await self._ready()
        url = f"{state.endpoints.api_url}{route}"
        merged = {
            **auth_headers(state.credential),
            "Content-Type": "application/json",
            **(headers or {}),
        }
        try:
            async with self._session.request(
                method,
                url,
                headers=merged,
                json=json,
                data=data,
                params=params,
                timeout=aiohttp.ClientTimeout(total=self._request_timeout),
            ) as resp:
                if not _is_success(resp.status):
                    _LOGGER.error(
                        "API request %s %s failed: %s %s",
                        method,
                        route,
                        resp.status,
                        resp.reason,
                    )
                    raise RequestFailed(resp.status, resp.reason or "")
                return await self._parse_json(resp)
        except TimeoutError as err:
            raise PatchMateTimeout(f"API request {route!r} timed out") from err
        except aiohttp.ClientError as err:
            raise PatchMateConnectionError(f"API request {route!r} failed") from err

    async def upload(
        self,
        file: bytes | IO[bytes],
        file_name: str,
        destination: str = "",
    ) -> Any:
        """Upload a file as multipart form data and return the JSON reply.

        Only the Authorization header is set; aiohttp writes the multipart
        Content-Type with its boundary.

        Raises:
            NegotiationFailed: If lazy negotiation found no endpoint.
            UploadFailed: If the service answers outside 2xx.
            ResponseParseError: If the body is not JSON.
        """
        state = await self._ready()
        url = f"{state.endpoints.base_url}{self._upload_route}"

        form = aiohttp.FormData()
        form.add_field(
            "file",
            file,
            filename=file_name,
            content_type="application/octet-stream",
        )
        form.add_field("path", destination)

        try:
            async with self._session.post(
                url,
                headers=auth_headers(state.credential),
                data=form,
                timeout=aiohttp.ClientTimeout(total=self._request_timeout),
            ) as resp:
                if not _is_success(resp.status):
                    _LOGGER.error(
                        "Upload of %s failed: %s %s",
                        file_name,
                        resp.status,
                        resp.reason,
                    )
                    raise UploadFailed(resp.status, resp.reason or "")
                return await self._parse_json(resp)
        except TimeoutError as err:
            raise PatchMateTimeout(f"Upload of {file_name!r} timed out") from err
        except aiohttp.ClientError as err:
            raise PatchMateConnectionError(f"Upload of {file_name!r} failed") from err

    async def download(self, file_path: str) -> aiohttp.ClientResponse:
        """Start an authenticated download and return the unread response.

        The caller owns the response: read ``resp.content`` incrementally
        and release it (``async with resp:`` or ``resp.release()``). Only
        the connect phase is bounded so large bodies can stream.

        Raises:
            NegotiationFailed: If lazy negotiation found no endpoint.
            DownloadFailed: If the service answers outside 2xx.
        """
        state = await self._ready()
        url = f"{state.endpoints.base_url}{file_path}"
        try:
            resp = await self._session.get(
                url,
                headers=auth_headers(state.credential),
                timeout=aiohttp.ClientTimeout(
                    total=None, sock_connect=self._request_timeout
                ),
            )
        except TimeoutError as err:
            raise PatchMateTimeout(f"Download of {file_path!r} timed out") from err
        except aiohttp.ClientError as err:
            raise PatchMateConnectionError(f"Download of {file_path!r} failed") from err

        if not _is_success(resp.status):
            resp.release()
            _LOGGER.error(
                "Download of %s failed: %s %s", file_path, resp.status, resp.reason
            )
            raise DownloadFailed(resp.status, resp.reason or "")
        return resp
