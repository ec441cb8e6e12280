"""Session persistence formats, permissions and load failures."""

from __future__ import annotations

import json
from pathlib import Path
import stat

import pytest

from substack_api.errors import LoadError
from substack_api.models import Session
from substack_api.store import SessionStore


def test_save_then_load_preserves_every_token(tmp_path: Path) -> None:
    store = SessionStore(tmp_path / "cookies.json")
    session = Session({"substack.sid": "abc", "csrf-token": "tok", "other": "x"})

    written = store.save(session)
    loaded = store.load()

    assert written == tmp_path / "cookies.json"
    assert loaded == session
    assert json.loads(written.read_text(encoding="utf-8")) == session.as_dict()


def test_save_restricts_file_permissions(tmp_path: Path) -> None:
    store = SessionStore(tmp_path / "cookies.json")
    path = store.save(Session({"substack.sid": "abc"}))

    assert stat.S_IMODE(path.stat().st_mode) == 0o600
    assert not (tmp_path / "cookies.json.tmp").exists()


def test_save_creates_parent_directories_and_overwrites(tmp_path: Path) -> None:
    target = tmp_path / "deep" / "dir" / "cookies.json"
    store = SessionStore(target)

    store.save(Session({"substack.sid": "first"}))
    store.save(Session({"substack.sid": "second"}))

    assert store.load().sid == "second"


def test_explicit_path_overrides_default(tmp_path: Path) -> None:
    store = SessionStore(tmp_path / "default.json")
    other = tmp_path / "other.json"

    store.save(Session({"substack.sid": "abc"}), other)

    assert store.exists(other)
    assert not store.exists()
    assert store.load(other).sid == "abc"


def test_load_accepts_legacy_cookie_array(tmp_path: Path) -> None:
    path = tmp_path / "cookies.json"
    path.write_text(
        json.dumps(
            [
                {"name": "substack.sid", "value": "abc", "domain": ".substack.com"},
                {"name": "csrf-token", "value": "tok", "path": "/"},
            ]
        ),
        encoding="utf-8",
    )

    session = SessionStore(path).load()

    assert session.as_dict() == {"substack.sid": "abc", "csrf-token": "tok"}


def test_load_accepts_storage_state_payload(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text(
        json.dumps({"cookies": [{"name": "substack.sid", "value": "abc"}], "origins": []}),
        encoding="utf-8",
    )

    assert SessionStore(path).load().sid == "abc"


def test_load_without_sid_still_returns_session(tmp_path: Path) -> None:
    path = tmp_path / "cookies.json"
    path.write_text(json.dumps({"csrf-token": "tok"}), encoding="utf-8")

    session = SessionStore(path).load()

    assert session.csrf_token == "tok"
    assert session.is_valid is False


def test_load_missing_file_raises_load_error(tmp_path: Path) -> None:
    with pytest.raises(LoadError, match="Failed to load cookies"):
        SessionStore(tmp_path / "missing.json").load()


@pytest.mark.parametrize(
    "payload",
    [
        "not json at all",
        json.dumps("just a string"),
        json.dumps([{"name": "substack.sid"}]),
        json.dumps({"substack.sid": 42}),
        json.dumps(["substack.sid=abc"]),
    ],
)
def test_load_malformed_content_raises_load_error(tmp_path: Path, payload: str) -> None:
    path = tmp_path / "cookies.json"
    path.write_text(payload, encoding="utf-8")

    with pytest.raises(LoadError) as excinfo:
        SessionStore(path).load()

    assert str(path) in str(excinfo.value)


def test_load_non_utf8_raises_load_error(tmp_path: Path) -> None:
    path = tmp_path / "cookies.json"
    path.write_bytes(b"\xff\xfe\x00garbage")

    with pytest.raises(LoadError):
        SessionStore(path).load()


def test_save_propagates_os_errors(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def raise_permission_error(*_args: object, **_kwargs: object) -> int:
        raise PermissionError("denied")

    monkeypatch.setattr("substack_api.store.os.open", raise_permission_error)

    with pytest.raises(PermissionError):
        SessionStore(tmp_path / "cookies.json").save(Session({"substack.sid": "abc"}))
    assert not (tmp_path / "cookies.json").exists()


def test_default_path_is_home_cookie_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

    assert SessionStore().path == tmp_path / ".substack_cookies.json"
