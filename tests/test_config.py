"""Config defaults, TOML loading and validation behavior."""

from __future__ import annotations

from pathlib import Path

import pytest

from substack_api.config import (
    DEFAULT_USER_AGENT,
    RuntimeConfig,
    config_to_dict,
    default_config,
    default_config_toml,
    env_test_mode,
    init_default_config,
    load_runtime_config,
    resolve_config_path,
    with_cookies_path,
)
from substack_api.errors import ConfigError


def test_resolve_config_path_uses_explicit_path() -> None:
    path = resolve_config_path("~/tmp/substack-test.toml")
    assert str(path).endswith("substack-test.toml")


def test_resolve_config_path_uses_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    env_path = tmp_path / "env-config.toml"
    monkeypatch.setenv("SUBSTACK_CONFIG", str(env_path))
    assert resolve_config_path() == env_path


def test_init_default_config_writes_template(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    written = init_default_config(config_path)
    assert written == config_path
    assert default_config_toml().strip() in config_path.read_text(encoding="utf-8")


def test_init_default_config_requires_force_for_overwrite(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("existing", encoding="utf-8")
    with pytest.raises(ConfigError, match="force=True"):
        init_default_config(config_path)

    init_default_config(config_path, force=True)
    assert "[client]" in config_path.read_text(encoding="utf-8")


def test_load_runtime_config_reports_missing_file(tmp_path: Path) -> None:
    missing = tmp_path / "missing.toml"
    with pytest.raises(ConfigError, match="init_default_config"):
        load_runtime_config(missing)


def test_load_runtime_config_reports_invalid_toml(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("[client\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid TOML"):
        load_runtime_config(config_path)


@pytest.mark.parametrize(
    ("body", "key"),
    [
        ('[client]\nbase_url = ""\n', "client.base_url"),
        ("[client]\ntimeout_s = 0\n", "client.timeout_s"),
        ('[client]\ndebug = "yes"\n', "client.debug"),
        ('[browser]\nengine = "edge"\n', "browser.engine"),
        ("[browser]\nviewport_width = -1\n", "browser.viewport_width"),
        ("[login]\ncaptcha_timeout_s = -5\n", "login.captcha_timeout_s"),
    ],
)
def test_load_runtime_config_reports_invalid_value(tmp_path: Path, body: str, key: str) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigError, match=key.replace(".", r"\.")):
        load_runtime_config(config_path)


def test_load_runtime_config_rejects_non_table_section(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text('login = "fast"\n', encoding="utf-8")
    with pytest.raises(ConfigError, match=r"\[login\]"):
        load_runtime_config(config_path)


def test_load_runtime_config_parses_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    init_default_config(config_path)
    loaded = load_runtime_config(config_path)

    assert loaded.client.base_url == "https://substack.com/api/v1"
    assert loaded.client.timeout_s == 30.0
    assert loaded.client.user_agent == DEFAULT_USER_AGENT
    assert loaded.browser.navigation_timeout_ms == 30_000
    assert loaded.browser.headless is True
    assert loaded.login.login_url == "https://substack.com/sign-in"
    assert loaded.login.captcha_timeout_s == 120.0
    assert loaded.login.settle_s == 5.0


def test_load_runtime_config_reads_overrides(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        """[client]
publication_url = "https://example.substack.com"
cookies_path = "~/cookies/substack.json"
debug = true

[login]
captcha_timeout_s = 45
""",
        encoding="utf-8",
    )
    loaded = load_runtime_config(config_path)

    assert loaded.client.publication_url == "https://example.substack.com"
    assert loaded.client.cookies_path == Path("~/cookies/substack.json").expanduser()
    assert loaded.client.debug is True
    assert loaded.login.captcha_timeout_s == 45.0


def test_defaults_are_consistent_between_dataclass_and_toml(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("SUBSTACK_TEST_MODE", raising=False)
    config_path = tmp_path / "config.toml"
    init_default_config(config_path)
    loaded = load_runtime_config(config_path)
    defaults = default_config()

    assert loaded.browser == defaults.browser
    assert loaded.login == defaults.login
    assert loaded.client == defaults.client


def test_test_mode_follows_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SUBSTACK_TEST_MODE", "true")
    assert default_config().client.test_mode is True

    monkeypatch.setenv("SUBSTACK_TEST_MODE", "1")
    assert default_config().client.test_mode is False

    assert env_test_mode({"SUBSTACK_TEST_MODE": "TRUE"}) is True
    assert env_test_mode({}) is False


def test_with_cookies_path_replaces_only_the_path(tmp_path: Path) -> None:
    base = RuntimeConfig()
    updated = with_cookies_path(base, tmp_path / "c.json")

    assert updated.client.cookies_path == tmp_path / "c.json"
    assert updated.client.base_url == base.client.base_url
    assert base.client.cookies_path != updated.client.cookies_path


def test_config_to_dict_is_plain_data(tmp_path: Path) -> None:
    config = with_cookies_path(RuntimeConfig(), tmp_path / "c.json")
    payload = config_to_dict(config)

    assert payload["client"]["cookies_path"] == str(tmp_path / "c.json")
    assert payload["browser"]["engine"] == "chromium"
    assert set(payload) == {"client", "browser", "login"}


def test_init_default_config_wraps_os_errors(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    config_path = tmp_path / "config.toml"

    def raise_permission_error(*_args: object, **_kwargs: object) -> str:
        raise PermissionError("denied")

    monkeypatch.setattr(Path, "write_text", raise_permission_error)

    with pytest.raises(ConfigError, match="Could not write config file"):
        init_default_config(config_path)


def test_load_runtime_config_wraps_os_errors(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("[client]\ndebug = false\n", encoding="utf-8")

    def raise_permission_error(*_args: object, **_kwargs: object) -> str:
        raise PermissionError("denied")

    monkeypatch.setattr(Path, "read_text", raise_permission_error)

    with pytest.raises(ConfigError, match="Could not read config file"):
        load_runtime_config(config_path)
