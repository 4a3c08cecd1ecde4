"""Betfair session token with single-flight lazy renewal."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

import structlog

log = structlog.get_logger(__name__)

SESSION_TTL_SEC = 15 * 60


@dataclass(frozen=True)
class SessionToken:
    value: str
    expires_at: float  # monotonic seconds

    def is_valid(self, now: float) -> bool:
        return bool(self.value) and now < self.expires_at


class SessionManager:
    """Holds one session token per client and renews it at most once at a time.

    Callers that find the token stale while a renewal is running await that
    renewal instead of starting their own, so every caller sees the same
    token (or the same failure).
    """

    def __init__(
        self,
        login: Callable[[], Awaitable[str]],
        keep_alive: Callable[[str], Awaitable[bool]] | None = None,
        *,
        ttl_sec: float = SESSION_TTL_SEC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._login = login
        self._keep_alive = keep_alive
        self._ttl_sec = ttl_sec
        self._clock = clock
        self._token: SessionToken | None = None
        self._renewal: asyncio.Task[SessionToken] | None = None

    @property
    def token(self) -> SessionToken | None:
        return self._token

    def is_valid(self) -> bool:
        return self._token is not None and self._token.is_valid(self._clock())

    def invalidate(self, token: str | None = None) -> None:
        """Drop the session. With a token, only if it is still the current one."""
        if token is not None and (self._token is None or self._token.value != token):
            return
        self._token = None

    async def ensure(self) -> str:
        """Return a fresh session token, logging in if needed."""
        token = self._token
        if token is not None and token.is_valid(self._clock()):
            return token.value
        if self._renewal is None or self._renewal.done():
            self._renewal = asyncio.get_running_loop().create_task(self._renew())
        renewed = await asyncio.shield(self._renewal)
        return renewed.value

    async def _renew(self) -> SessionToken:
        previous = self._token
        if previous is not None and self._keep_alive is not None:
            if await self._keep_alive(previous.value):
                self._token = SessionToken(previous.value, self._clock() + self._ttl_sec)
                log.debug("session_kept_alive")
                return self._token
        self._token = None
        value = await self._login()
        self._token = SessionToken(value, self._clock() + self._ttl_sec)
        log.info("session_renewed")
        return self._token
