"""Session persistence with restrictive permissions and legacy-format reads."""

from __future__ import annotations

from collections.abc import Mapping
import json
import os
from pathlib import Path
from typing import Any

from .config import default_cookies_path
from .errors import LoadError
from .logging import get_logger
from .models import Session

logger = get_logger(__name__)


class SessionStore:
    """Read and write a :class:`Session` as a JSON ``{name: value}`` object.

    Reads also accept the legacy ``[{"name": ..., "value": ...}]`` array and
    Playwright ``storage_state`` payloads, flattened into the mapping form.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path).expanduser() if path is not None else default_cookies_path()

    def exists(self, path: str | Path | None = None) -> bool:
        return self._resolve(path).is_file()

    def save(self, session: Session, path: str | Path | None = None) -> Path:
        target = self._resolve(path)
        serialized = json.dumps(session.as_dict(), indent=2)
        _write_secure(target, serialized)
        logger.debug("Saved %d session cookies to %s", len(session), target)
        return target

    def load(self, path: str | Path | None = None) -> Session:
        source = self._resolve(path)
        logger.debug("Loading session cookies from %s", source)
        try:
            raw = source.read_bytes()
        except OSError as exc:
            raise LoadError(f"Failed to load cookies from {source}: {exc}") from exc

        try:
            return _parse_mapping(raw)
        except ValueError as exc:
            logger.debug("Primary cookie format rejected (%s), trying legacy format", exc)

        try:
            return _parse_legacy(raw)
        except ValueError as exc:
            raise LoadError(f"Failed to load cookies from {source}: {exc}") from exc

    def _resolve(self, path: str | Path | None) -> Path:
        return Path(path).expanduser() if path is not None else self.path


def _parse_mapping(raw: bytes) -> Session:
    data = _decode_json(raw)
    if not isinstance(data, dict):
        raise ValueError(f"expected JSON object, got {type(data).__name__}")
    if not all(isinstance(value, str) for value in data.values()):
        raise ValueError("expected string cookie values")
    return Session(data)


def _parse_legacy(raw: bytes) -> Session:
    data = _decode_json(raw)
    if isinstance(data, dict) and isinstance(data.get("cookies"), list):
        data = data["cookies"]
    if not isinstance(data, list):
        raise ValueError(f"expected array of cookie objects, got {type(data).__name__}")

    for index, cookie in enumerate(data):
        if not isinstance(cookie, Mapping) or "name" not in cookie or "value" not in cookie:
            raise ValueError(f"cookie entry {index} must be an object with name and value")
    return Session.from_cookies(data)


def _decode_json(raw: bytes) -> Any:
    try:
        return json.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise ValueError(f"cookie file is not UTF-8 text: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"cookie file is not valid JSON: {exc}") from exc


def _write_secure(path: Path, serialized: str) -> None:
    temp_path = path.with_name(f"{path.name}.tmp")
    fd: int | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(temp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as stream:
            fd = None
            stream.write(serialized)
            stream.write("\n")
            stream.flush()
            os.fsync(stream.fileno())
        os.replace(temp_path, path)
        os.chmod(path, 0o600)
    finally:
        if fd is not None:
            os.close(fd)
        if temp_path.exists():
            temp_path.unlink()
