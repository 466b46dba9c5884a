"""Candidate negotiation: first reachable candidate wins."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .config import Candidate
from .errors import NoReachableEndpoint
from .probe import EndpointProbe

_LOGGER = logging.getLogger(__name__)


class SessionNegotiator:
    """Pick the first reachable candidate in priority order.

    Probes run one after another; candidate N+1 is never probed before
    candidate N has answered. Each candidate is probed with its own
    credential.
    """

    def __init__(self, probe: EndpointProbe, candidates: Sequence[Candidate]) -> None:
        self._probe = probe
        self._candidates = tuple(candidates)

    @property
    def candidates(self) -> tuple[Candidate, ...]:
        return self._candidates

    async def negotiate(self) -> Candidate:
        """Return the selected candidate.

        Raises:
            NoReachableEndpoint: If every candidate's probe failed.
        """
        for index, candidate in enumerate(self._candidates):
            _LOGGER.debug(
                "Probing %s endpoint %s", candidate.name, candidate.endpoints.base_url
            )
            if await self._probe.probe(
                candidate.endpoints.base_url, candidate.credential
            ):
                _LOGGER.info(
                    "Using %s endpoint %s (%s)",
                    candidate.name,
                    candidate.endpoints.base_url,
                    "primary" if index == 0 else "fallback",
                )
                return candidate

        _LOGGER.error(
            "No reachable endpoint among %d candidate(s)", len(self._candidates)
        )
        raise NoReachableEndpoint(candidate.name for candidate in self._candidates)
