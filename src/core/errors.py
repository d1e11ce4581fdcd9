"""Typed errors for calls to hosted services (Vertex AI, Firestore, reader API)."""

import json

import httpx
from google.api_core import exceptions as google_exceptions
from google.auth.exceptions import DefaultCredentialsError


class UpstreamError(Exception):
    """Base class for failures of a hosted service call."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TransportError(UpstreamError):
    """Network failure, timeout or 5xx from the upstream service."""


class AuthError(UpstreamError):
    """Missing or rejected credentials."""


class RateLimitedError(UpstreamError):
    """Upstream answered 429 / resource exhausted."""


class MalformedResponseError(UpstreamError):
    """Upstream answered, but the body could not be parsed."""


def classify_error(exc: Exception) -> UpstreamError:
    """
    Map an SDK or HTTP exception onto the upstream error taxonomy.

    Already-classified errors are returned unchanged.
    """
    if isinstance(exc, UpstreamError):
        return exc

    if isinstance(exc, json.JSONDecodeError):
        return MalformedResponseError(str(exc))

    if isinstance(exc, (google_exceptions.TooManyRequests, google_exceptions.ResourceExhausted)):
        return RateLimitedError(str(exc), status_code=429)
    if isinstance(exc, (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied)):
        return AuthError(str(exc), status_code=getattr(exc, "code", None))
    if isinstance(exc, DefaultCredentialsError):
        return AuthError(str(exc))
    if isinstance(exc, google_exceptions.GoogleAPICallError):
        return TransportError(str(exc), status_code=getattr(exc, "code", None))

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == 429:
            return RateLimitedError(str(exc), status_code=status)
        if status in (401, 403):
            return AuthError(str(exc), status_code=status)
        return TransportError(str(exc), status_code=status)
    if isinstance(exc, httpx.HTTPError):
        return TransportError(str(exc))

    return TransportError(str(exc))
