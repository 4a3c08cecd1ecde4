"""Market client failure taxonomy.

Disabled clients are a configuration state, not an error. Malformed payloads
are recovered where they are parsed. Everything else is raised as one of:

- NetworkError   transport failure (connect, timeout, protocol)
- AuthError      login or session refresh rejected
- UpstreamError  non-success response from the platform API
"""

from __future__ import annotations


class MarketClientError(Exception):
    """Base for failures raised by a market client."""

    def __init__(self, message: str, platform: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.platform = platform


class NetworkError(MarketClientError):
    pass


class AuthError(MarketClientError):
    pass


class UpstreamError(MarketClientError):
    def __init__(
        self,
        message: str,
        platform: str | None = None,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
    ) -> None:
        super().__init__(message, platform)
        self.status_code = status_code
        self.error_code = error_code
