"""Error taxonomy for stable module boundaries.

Callers branch on exception type (or ``kind``/``status``), never on message
text. Local persistence failures (:class:`LoadError`) stay distinct from
remote rejections.
"""

from __future__ import annotations

from collections.abc import Iterable

from .models import ChallengeType, ErrorDetail, ErrorKind, ErrorRecord


class SubstackError(Exception):
    """Base exception for substack-api."""

    kind = ErrorKind.UNEXPECTED

    def __init__(
        self,
        message: str | None = None,
        *,
        status: int | None = None,
        details: Iterable[ErrorDetail] = (),
    ) -> None:
        self.status = status
        self.details = tuple(details)
        super().__init__(message or self.default_message())

    def default_message(self) -> str:
        return self.__class__.__name__

    def to_record(self) -> ErrorRecord:
        return ErrorRecord(kind=self.kind, http_status=self.status, details=self.details)


class ConfigError(SubstackError):
    """Raised when configuration is invalid or missing."""

    kind = ErrorKind.CONFIG


class LoadError(SubstackError):
    """Raised when a persisted session cannot be read or parsed."""

    kind = ErrorKind.LOAD


class BrowserError(SubstackError):
    """Raised for browser/session management failures."""

    kind = ErrorKind.BROWSER


class ClientError(SubstackError):
    """Raised when the HTTP transport fails before a response is received."""

    kind = ErrorKind.CLIENT


class ParseError(SubstackError):
    """Raised when a successful response carries an invalid JSON body."""

    kind = ErrorKind.PARSE


class AuthenticationError(SubstackError):
    """Raised when authentication fails or a valid session is required but missing."""

    kind = ErrorKind.AUTHENTICATION

    def default_message(self) -> str:
        if self.status is not None:
            return f"Authentication failed (HTTP {self.status})"
        return "Authentication failed"


class CaptchaRequiredError(AuthenticationError):
    """Raised when the login flow is blocked by an interactive challenge."""

    kind = ErrorKind.CAPTCHA_REQUIRED

    def __init__(
        self,
        challenge_type: ChallengeType,
        *,
        retryable: bool,
        message: str | None = None,
    ) -> None:
        self.challenge_type = challenge_type
        self.retryable = retryable
        super().__init__(message)

    def default_message(self) -> str:
        hint = "retry with a visible browser" if self.retryable else "challenge was not cleared in time"
        return f"CAPTCHA required ({self.challenge_type.value}): {hint}"


class APIError(SubstackError):
    """General API response error carrying the HTTP status and error details."""

    kind = ErrorKind.API

    def default_message(self) -> str:
        if self.status is not None:
            return f"API Error (HTTP {self.status})"
        return "Unknown API Error"


class NotFoundError(APIError):
    """Raised when a requested resource is not found (HTTP 404)."""

    kind = ErrorKind.NOT_FOUND


class RateLimitError(APIError):
    """Raised when the API enforces rate limiting (HTTP 429)."""

    kind = ErrorKind.RATE_LIMIT


class ValidationError(APIError):
    """Raised when the API rejects input (HTTP 422).

    A malformed error body and a body without details both produce an empty
    ``details`` tuple.
    """

    kind = ErrorKind.VALIDATION

    def error_details(self) -> str:
        if not self.details:
            return "No validation errors"
        return ", ".join(_format_detail(detail) for detail in self.details)

    def default_message(self) -> str:
        return f"Validation error: {self.error_details()}"


def _format_detail(detail: ErrorDetail) -> str:
    prefix = " ".join(part for part in (detail.location, detail.param) if part)
    if prefix:
        return f"{prefix}: {detail.message or ''}".rstrip()
    return detail.message or ""
