"""Reachability probe for a single PatchMate candidate."""

from __future__ import annotations

import logging

import aiohttp

from .auth import auth_headers
from .config import Credential

_LOGGER = logging.getLogger(__name__)


class EndpointProbe:
    """Bounded-time reachability check against one base address.

    A failed probe is an ordinary outcome: every transport failure and every
    non-2xx status is reported as False, never raised.
    """

    def __init__(
        self, session: aiohttp.ClientSession, *, timeout: float = 10.0
    ) -> None:
        self._session = session
        self._timeout = timeout

    async def probe(self, base_url: str, credential: Credential) -> bool:
        """Return True when an authenticated GET of base_url succeeds."""
        try:
            async with self._session.get(
                base_url,
                headers=auth_headers(credential),
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if 200 <= resp.status < 300:
                    return True
                _LOGGER.warning(
                    "Endpoint test failed for %s: HTTP %s", base_url, resp.status
                )
                return False
        except TimeoutError:
            _LOGGER.warning(
                "Endpoint test failed for %s: timed out after %ss",
                base_url,
                self._timeout,
            )
            return False
        except aiohttp.ClientError as err:
            _LOGGER.warning("Endpoint test failed for %s: %s", base_url, err)
            return False
