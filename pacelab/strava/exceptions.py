"""Strava API exceptions."""


class StravaException(Exception):
    """Base exception for Strava API errors."""

    pass


class ObjectNotFound(StravaException):
    """Raised when a requested object is not found (404)."""

    pass


class AccessUnauthorized(StravaException):
    """Raised when the bearer credential is rejected (401/403)."""

    pass


class RateLimitExceeded(StravaException):
    """Raised on 429 or when the local view of the rate budget is exhausted."""

    pass


class TokenExpired(AccessUnauthorized):
    """Raised when the refresh token is missing, expired or revoked."""

    pass


class StreamUnavailable(StravaException):
    """Raised when an activity has no usable time/distance stream."""

    pass
