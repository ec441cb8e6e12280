"""Authenticated request execution, response decoding and status classification."""

from __future__ import annotations

from collections.abc import Mapping
import gzip
import json as jsonlib
from typing import Any

import httpx

from .config import RuntimeConfig, default_config
from .errors import (
    APIError,
    AuthenticationError,
    ClientError,
    LoadError,
    NotFoundError,
    ParseError,
    RateLimitError,
    SubstackError,
    ValidationError,
)
from .logging import get_logger
from .models import ErrorDetail, Session
from .store import SessionStore

logger = get_logger(__name__)

GZIP_MAGIC = b"\x1f\x8b"
Body = bytes | str | dict[str, Any] | list[Any] | None


class RequestPipeline:
    """Execute one HTTP call with the current session and turn the response into data or a typed error.

    The pipeline never logs in and never retries on its own: an invalid
    session is refreshed only from the persisted cookie file.
    """

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        *,
        store: SessionStore | None = None,
        session: Session | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.config = config or default_config()
        self.store = store or SessionStore(self.config.client.cookies_path)
        self.session = session or Session()
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(timeout=self.config.client.timeout_s)

    def execute(
        self,
        method: str,
        url: str,
        json: Any = None,
        query: Mapping[str, Any] | None = None,
        *,
        content: bytes | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        self.ensure_authenticated()
        verb = method.upper()
        request_kwargs: dict[str, Any] = {
            "params": dict(query) if query else None,
            "headers": self.build_headers(headers),
        }
        if content is not None:
            request_kwargs["content"] = content
        elif json is not None:
            request_kwargs["content"] = jsonlib.dumps(json).encode("utf-8")

        logger.debug("%s %s", verb, url)
        try:
            request = self._http.build_request(verb, url, **request_kwargs)
            response = self._http.send(request, stream=True)
        except httpx.DecodingError:
            raise
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("Transport failure for %s %s: %s", verb, url, exc)
            raise ClientError(f"{verb} {url} failed: {exc}") from exc

        try:
            body = _read_body(response)
        except httpx.DecodingError:
            raise
        except httpx.HTTPError as exc:
            logger.debug("Transport failure reading %s %s: %s", verb, url, exc)
            raise ClientError(f"{verb} {url} failed: {exc}") from exc
        finally:
            response.close()

        return handle_response(response, body)

    def ensure_authenticated(self) -> None:
        if self.session.is_valid:
            return

        if self.store.exists():
            try:
                loaded = self.store.load()
            except LoadError as exc:
                raise AuthenticationError(
                    f"No valid session found and cookies could not be loaded: {exc}"
                ) from exc
            if loaded.is_valid:
                logger.debug("Restored session from %s", self.store.path)
                self.session = loaded
                return

        raise AuthenticationError("No valid session found. Please authenticate first.")

    def build_headers(self, overrides: Mapping[str, str] | None = None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.config.client.user_agent,
        }
        cookie_header = self.session.cookie_header()
        if cookie_header:
            headers["Cookie"] = cookie_header
        csrf_token = self.session.csrf_token
        if csrf_token:
            headers["X-CSRF-Token"] = csrf_token
        if overrides:
            headers.update(overrides)
        return headers

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> RequestPipeline:
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> bool:
        self.close()
        return False


def handle_response(response: httpx.Response, body: Body = None) -> Any:
    if body is None:
        body = response.content
    body = decode_body(response.headers, body)
    error = classify_status(response.status_code, body)
    if error is not None:
        logger.debug("HTTP %d classified as %s", response.status_code, type(error).__name__)
        raise error
    return parse_body(body)


def _read_body(response: httpx.Response) -> bytes:
    """Read a streamed body, leaving gzip payloads compressed for :func:`decode_body`."""
    if response.is_stream_consumed:
        # Transport already loaded and decoded it.
        return response.content
    if _declares_gzip(response.headers):
        return b"".join(response.iter_raw())
    return response.read()


def _declares_gzip(headers: Mapping[str, str]) -> bool:
    return "gzip" in (headers.get("content-encoding") or "").lower()


def decode_body(headers: Mapping[str, str], body: Body) -> Body:
    """Gunzip a body that still carries gzip bytes; decompression errors propagate."""
    if not _declares_gzip(headers) or not isinstance(body, bytes):
        return body
    if not body.startswith(GZIP_MAGIC):
        # Transport already decoded it.
        return body
    return gzip.decompress(body)


def parse_body(body: Body) -> Any:
    if isinstance(body, (dict, list)):
        return body
    if body is None:
        return {}

    if isinstance(body, bytes):
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(f"Invalid JSON response: {exc}") from exc
    else:
        text = body

    if not text.strip():
        return {}
    try:
        parsed = jsonlib.loads(text)
    except jsonlib.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON response: {exc}") from exc
    return {} if parsed is None else parsed


def classify_status(status: int, body: Body = None) -> SubstackError | None:
    if status in (401, 403):
        return AuthenticationError(status=status)
    if status == 404:
        return NotFoundError(status=status)
    if status == 422:
        return ValidationError(status=status, details=validation_details(body))
    if status == 429:
        return RateLimitError("Rate limit exceeded", status=status)
    if 400 <= status <= 499:
        return APIError("Client error", status=status)
    if 500 <= status <= 599:
        return APIError("Server error", status=status)
    return None


def validation_details(body: Body) -> tuple[ErrorDetail, ...]:
    """Best-effort ``errors`` extraction; malformed bodies yield no details."""
    try:
        parsed = parse_body(body)
    except ParseError:
        return ()
    if not isinstance(parsed, dict):
        return ()
    errors = parsed.get("errors")
    if not isinstance(errors, list):
        return ()
    return tuple(ErrorDetail.from_payload(entry) for entry in errors)
