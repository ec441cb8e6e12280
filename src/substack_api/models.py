"""Data model contracts shared by the store, auth and request pipeline."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

SESSION_COOKIE = "substack.sid"
CSRF_COOKIE = "csrf-token"


class ChallengeType(str, Enum):
    HCAPTCHA = "hcaptcha"
    RECAPTCHA = "recaptcha"
    CLOUDFLARE = "cloudflare"
    UNKNOWN = "unknown"


class ErrorKind(str, Enum):
    UNEXPECTED = "unexpected"
    CONFIG = "config"
    LOAD = "load"
    BROWSER = "browser"
    CLIENT = "client"
    PARSE = "parse"
    AUTHENTICATION = "authentication"
    CAPTCHA_REQUIRED = "captcha_required"
    API = "api"
    NOT_FOUND = "not_found"
    RATE_LIMIT = "rate_limit"
    VALIDATION = "validation"


class LoginState(str, Enum):
    NOT_STARTED = "not_started"
    FORM_LOADED = "form_loaded"
    CHALLENGE_CHECK = "challenge_check"
    CREDENTIALS_SUBMITTED = "credentials_submitted"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


@dataclass(frozen=True)
class CaptchaChallenge:
    type: ChallengeType
    retryable: bool


@dataclass(frozen=True)
class ErrorDetail:
    location: str | None = None
    param: str | None = None
    message: str | None = None

    @classmethod
    def from_payload(cls, entry: Any) -> ErrorDetail:
        """Build a detail from one entry of a 422 ``errors`` list."""
        if isinstance(entry, Mapping):
            message = entry.get("msg", entry.get("message"))
            return cls(
                location=_optional_str(entry.get("location")),
                param=_optional_str(entry.get("param")),
                message=_optional_str(message),
            )
        return cls(message=_optional_str(entry))


@dataclass(frozen=True)
class ErrorRecord:
    kind: ErrorKind
    http_status: int | None = None
    details: tuple[ErrorDetail, ...] = ()


@dataclass(frozen=True)
class Session:
    """Credential cookies proving an authenticated Substack identity.

    ``substack.sid`` is the required primary identifier; ``csrf-token`` is
    optional. Sessions are replaced wholesale, never edited in place.
    """

    tokens: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        normalized: dict[str, str] = {}
        for name, value in dict(self.tokens).items():
            if not isinstance(name, str) or not isinstance(value, str):
                raise TypeError("Session tokens must map string names to string values.")
            normalized[name] = value
        object.__setattr__(self, "tokens", normalized)

    @classmethod
    def from_cookies(cls, cookies: Iterable[Mapping[str, Any]]) -> Session:
        """Flatten browser/legacy cookie records (``name``/``value`` keys)."""
        tokens: dict[str, str] = {}
        for cookie in cookies:
            name = cookie.get("name")
            value = cookie.get("value")
            if not name or value is None:
                continue
            tokens[str(name)] = str(value)
        return cls(tokens)

    @property
    def sid(self) -> str | None:
        return self.tokens.get(SESSION_COOKIE)

    @property
    def csrf_token(self) -> str | None:
        return self.tokens.get(CSRF_COOKIE) or None

    @property
    def is_valid(self) -> bool:
        return bool(self.sid)

    def cookie_header(self) -> str:
        return "; ".join(f"{name}={value}" for name, value in self.tokens.items())

    def as_dict(self) -> dict[str, str]:
        return dict(self.tokens)

    def __len__(self) -> int:
        return len(self.tokens)


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)
