"""Classified chain client failures."""

from __future__ import annotations


class ChainError(RuntimeError):
    """Base class for RPC failures. Carries the endpoint that produced it."""

    def __init__(self, message: str, endpoint: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.endpoint = endpoint

    def __str__(self) -> str:
        if self.endpoint:
            return f"{self.message} ({self.endpoint})"
        return self.message


class RateLimited(ChainError):
    """The endpoint is throttling us (HTTP 429 or a JSON-RPC limit error)."""


class Rejected(ChainError):
    """The endpoint refused the request (auth, unsupported method, 4xx)."""


class Transient(ChainError):
    """Timeouts, connection failures, 5xx and malformed responses."""
