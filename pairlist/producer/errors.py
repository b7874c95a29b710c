"""
HTTP error classification for the producer client.

    HTTP 429 -> RateLimitedError   -> retry with backoff
    HTTP 5xx -> TransientHttpError -> retry
    Timeout  -> TransientHttpError -> retry
    Network  -> TransientHttpError -> retry
    HTTP 4xx -> FatalHttpError     -> fail immediately
    Bad body -> FatalHttpError     -> fail immediately
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ProducerHttpError(Exception):
    """
    Base exception for producer API errors.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code (None for non-HTTP errors).
        response_text: Raw response body text.
        payload: Parsed response payload if available.
    """
    message: str
    status_code: int | None = None
    response_text: str | None = None
    payload: Any | None = None

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        if self.response_text:
            parts.append(f"response={self.response_text}")
        return " | ".join(parts)


class RateLimitedError(ProducerHttpError):
    """HTTP 429 from the producer; retried with exponential backoff."""


class TransientHttpError(ProducerHttpError):
    """5xx, timeout, connection error or invalid JSON; retried."""


class FatalHttpError(ProducerHttpError):
    """4xx (except 429) or an unexpected response shape; not retried."""
