"""
Reddit client exceptions.

Every failure the client or image cache can produce is one of these, so the
controller can turn them into banners without inspecting transport details.
"""

from __future__ import annotations


class RedditError(Exception):
    """Base exception for all Reddit access errors."""

    retryable: bool = False

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NetworkError(RedditError):
    """Transport failure, timeout, rate limit or unexpected HTTP status."""

    def __init__(self, message: str, status_code: int | None = None, retryable: bool = True):
        super().__init__(message, status_code)
        self.retryable = retryable


class AuthError(RedditError):
    """Credentials rejected, token missing or expired."""

    retryable = True


class DecodeError(RedditError):
    """Response body is not JSON or lacks the expected structure."""
