"""Retry-once wrapper for calls rejected with an authorization error.

Request lifecycle::

    Requesting -> Success
               -> TransportFailed        (NetworkError, surfaced as-is)
               -> AuthRejected -> Refreshing -> Requesting (once)
                                                -> AuthRejected (terminal)

The refresh procedure is bank specific; it only has to re-establish
server-side session state. Its own failures propagate unchanged.

Refreshes are single-flight: concurrent calls rejected by the same expired
session wait for one refresh instead of each replaying the handshake.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from passbook.domain.banking.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RefreshProcedure = Callable[[], Awaitable[None]]


class AuthRefreshPolicy:
    """Runs a call, refreshing the session and retrying once on rejection."""

    def __init__(self, refresh: RefreshProcedure, name: str = "session"):
        self._refresh = refresh
        self._name = name
        self._lock = asyncio.Lock()
        self._generation = 0

    @property
    def generation(self) -> int:
        """Number of refreshes completed so far."""
        return self._generation

    async def _refresh_once(self, seen_generation: int) -> None:
        async with self._lock:
            if self._generation != seen_generation:
                logger.debug("%s already refreshed by a concurrent call", self._name)
                return
            await self._refresh()
            self._generation += 1

    async def run(self, call: Callable[[], Awaitable[T]]) -> T:
        seen_generation = self._generation
        try:
            return await call()
        except AuthenticationError as first:
            logger.info(
                "Request rejected (%s), refreshing %s and retrying once",
                first.status_code,
                self._name,
            )

        await self._refresh_once(seen_generation)

        try:
            return await call()
        except AuthenticationError as second:
            logger.error("Request still rejected after %s refresh", self._name)
            msg = f"Request rejected after {self._name} refresh: {second.message}"
            raise AuthenticationError(
                msg,
                url=second.url,
                status_code=second.status_code,
                reason=second.reason,
            ) from second
