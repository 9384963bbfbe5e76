# =============================================
# File: ctxcommerce/errors.py
# Purpose: Service-level exceptions translated to HTTP errors by the routers
# =============================================
from __future__ import annotations


class UpstreamError(RuntimeError):
    """The shopping API answered with an error or could not be reached."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


class NotConfiguredError(RuntimeError):
    """A feature needs credentials that are not set in the environment."""


class RateLimitExceeded(RuntimeError):
    pass


class SinkError(RuntimeError):
    """An event sink failed to accept a batch."""
