"""Shared configuration contracts and validation helpers for substack-api."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
import os
from pathlib import Path
import tomllib
from typing import Any

from platformdirs import user_config_dir

from .errors import ConfigError

DEFAULT_BASE_URL = "https://substack.com/api/v1"
DEFAULT_LOGIN_URL = "https://substack.com/sign-in"
DEFAULT_USER_AGENT = "substack-api-python/0.1.0"
DEFAULT_COOKIES_FILENAME = ".substack_cookies.json"
DEFAULT_CONFIG_FILENAME = "config.toml"
CONFIG_ENV_VAR = "SUBSTACK_CONFIG"
TEST_MODE_ENV_VAR = "SUBSTACK_TEST_MODE"
VALID_BROWSER_ENGINES = {"chromium", "firefox", "webkit"}

DEFAULT_CONFIG_TEMPLATE = """[client]
base_url = "https://substack.com/api/v1"
timeout_s = 30.0
debug = false

[browser]
engine = "chromium"
headless = true
navigation_timeout_ms = 30000
action_timeout_ms = 20000
viewport_width = 1280
viewport_height = 720
locale = "en-US"

[login]
login_url = "https://substack.com/sign-in"
captcha_timeout_s = 120.0
captcha_poll_interval_s = 2.0
settle_s = 5.0
success_timeout_s = 20.0
"""


def default_cookies_path() -> Path:
    return Path.home() / DEFAULT_COOKIES_FILENAME


@dataclass(frozen=True)
class ClientConfig:
    base_url: str = DEFAULT_BASE_URL
    publication_url: str | None = None
    cookies_path: Path = field(default_factory=default_cookies_path)
    user_agent: str = DEFAULT_USER_AGENT
    timeout_s: float = 30.0
    test_mode: bool = False
    debug: bool = False


@dataclass(frozen=True)
class BrowserConfig:
    engine: str = "chromium"
    headless: bool = True
    navigation_timeout_ms: int = 30_000
    action_timeout_ms: int = 20_000
    viewport_width: int = 1280
    viewport_height: int = 720
    locale: str = "en-US"


@dataclass(frozen=True)
class LoginConfig:
    login_url: str = DEFAULT_LOGIN_URL
    captcha_timeout_s: float = 120.0
    captcha_poll_interval_s: float = 2.0
    settle_s: float = 5.0
    success_timeout_s: float = 20.0


@dataclass(frozen=True)
class RuntimeConfig:
    client: ClientConfig = field(default_factory=ClientConfig)
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    login: LoginConfig = field(default_factory=LoginConfig)


def default_config() -> RuntimeConfig:
    """Built-in defaults; the only place the test-mode environment flag is read."""
    return RuntimeConfig(client=ClientConfig(test_mode=env_test_mode()))


def env_test_mode(environ: dict[str, str] | None = None) -> bool:
    """Test-only bypass: ``SUBSTACK_TEST_MODE=true`` skips the real browser login."""
    source = os.environ if environ is None else environ
    return source.get(TEST_MODE_ENV_VAR, "").strip().lower() == "true"


def with_cookies_path(config: RuntimeConfig, cookies_path: str | Path) -> RuntimeConfig:
    client = replace(config.client, cookies_path=Path(cookies_path).expanduser())
    return replace(config, client=client)


def default_config_toml() -> str:
    return DEFAULT_CONFIG_TEMPLATE


def resolve_config_path(config_path: str | Path | None = None) -> Path:
    if config_path:
        return Path(config_path).expanduser()

    env_value = os.getenv(CONFIG_ENV_VAR)
    if env_value:
        return Path(env_value).expanduser()

    config_dir = Path(user_config_dir("substack-api", appauthor=False))
    return config_dir / DEFAULT_CONFIG_FILENAME


def init_default_config(config_path: str | Path | None = None, force: bool = False) -> Path:
    path = resolve_config_path(config_path)
    if path.exists() and path.is_dir():
        raise ConfigError(
            f"Config path '{path}' is a directory; expected a TOML file path (for example '{path / DEFAULT_CONFIG_FILENAME}')."
        )
    if path.exists() and not force:
        raise ConfigError(f"Config file already exists at '{path}'. Pass force=True to overwrite.")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(default_config_toml(), encoding="utf-8")
    except OSError as exc:
        raise ConfigError(
            f"Could not write config file at '{path}': {exc}. Check path permissions."
        ) from exc
    return path


def load_runtime_config(config_path: str | Path | None = None) -> RuntimeConfig:
    path = resolve_config_path(config_path)
    if not path.exists():
        raise ConfigError(
            f"Config file not found at '{path}'. Call init_default_config('{path}') to generate defaults."
        )
    if path.is_dir():
        raise ConfigError(
            f"Config path '{path}' is a directory; pass a file path ending in '{DEFAULT_CONFIG_FILENAME}'."
        )

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(
            f"Could not read config file '{path}': {exc}. "
            "Check file permissions and that the path points to a readable TOML file."
        ) from exc
    raw = _load_toml(text, path)
    return _parse_runtime_config(raw)


def config_to_dict(config: RuntimeConfig) -> dict[str, Any]:
    payload = asdict(config)
    payload["client"]["cookies_path"] = str(config.client.cookies_path)
    return payload


def _load_toml(text: str, path: Path) -> dict[str, Any]:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"Config file '{path}' contains invalid TOML: {exc}. "
            "Fix the syntax or regenerate defaults with init_default_config(force=True)."
        ) from exc
    return data


def _parse_runtime_config(data: dict[str, Any]) -> RuntimeConfig:
    client_raw = _expect_table(data, "client", default={})
    browser_raw = _expect_table(data, "browser", default={})
    login_raw = _expect_table(data, "login", default={})

    publication_url = client_raw.get("publication_url")
    if publication_url is not None:
        publication_url = _expect_non_empty_string(client_raw, "client.publication_url", None)

    cookies_path = default_cookies_path()
    if "cookies_path" in client_raw:
        cookies_path = Path(
            _expect_non_empty_string(client_raw, "client.cookies_path", None)
        ).expanduser()

    client_config = ClientConfig(
        base_url=_expect_non_empty_string(client_raw, "client.base_url", DEFAULT_BASE_URL),
        publication_url=publication_url,
        cookies_path=cookies_path,
        user_agent=_expect_non_empty_string(client_raw, "client.user_agent", DEFAULT_USER_AGENT),
        timeout_s=_expect_positive_number(client_raw, "client.timeout_s", default=30.0),
        test_mode=_expect_bool(client_raw, "client.test_mode", default=env_test_mode()),
        debug=_expect_bool(client_raw, "client.debug", default=False),
    )

    browser_config = BrowserConfig(
        engine=_expect_choice(
            browser_raw,
            "browser.engine",
            default="chromium",
            valid_values=VALID_BROWSER_ENGINES,
        ),
        headless=_expect_bool(browser_raw, "browser.headless", default=True),
        navigation_timeout_ms=_expect_positive_int(
            browser_raw, "browser.navigation_timeout_ms", default=30_000
        ),
        action_timeout_ms=_expect_positive_int(browser_raw, "browser.action_timeout_ms", default=20_000),
        viewport_width=_expect_positive_int(browser_raw, "browser.viewport_width", default=1280),
        viewport_height=_expect_positive_int(browser_raw, "browser.viewport_height", default=720),
        locale=_expect_non_empty_string(browser_raw, "browser.locale", "en-US"),
    )

    login_config = LoginConfig(
        login_url=_expect_non_empty_string(login_raw, "login.login_url", DEFAULT_LOGIN_URL),
        captcha_timeout_s=_expect_positive_number(login_raw, "login.captcha_timeout_s", default=120.0),
        captcha_poll_interval_s=_expect_positive_number(
            login_raw, "login.captcha_poll_interval_s", default=2.0
        ),
        settle_s=_expect_positive_number(login_raw, "login.settle_s", default=5.0),
        success_timeout_s=_expect_positive_number(login_raw, "login.success_timeout_s", default=20.0),
    )

    return RuntimeConfig(client=client_config, browser=browser_config, login=login_config)


def _expect_table(data: dict[str, Any], key: str, default: dict[str, Any]) -> dict[str, Any]:
    value = data.get(key, default)
    if not isinstance(value, dict):
        raise ConfigError(f"Invalid [{key}] table: expected table, got {type(value).__name__}.")
    return value


def _expect_non_empty_string(
    data: dict[str, Any], key: str, default: str | None
) -> str:
    field_name = key.split(".")[-1]
    if field_name in data:
        value = data[field_name]
    else:
        if default is None:
            raise ConfigError(f"Missing required value '{key}'.")
        value = default

    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"Invalid value for '{key}': expected non-empty string.")
    return value


def _expect_positive_int(data: dict[str, Any], key: str, default: int) -> int:
    field_name = key.split(".")[-1]
    value = data.get(field_name, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"Invalid value for '{key}': expected positive integer.")
    return value


def _expect_positive_number(data: dict[str, Any], key: str, default: float) -> float:
    field_name = key.split(".")[-1]
    value = data.get(field_name, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"Invalid value for '{key}': expected positive number.")
    return float(value)


def _expect_bool(data: dict[str, Any], key: str, default: bool) -> bool:
    field_name = key.split(".")[-1]
    value = data.get(field_name, default)
    if not isinstance(value, bool):
        raise ConfigError(f"Invalid value for '{key}': expected boolean true/false.")
    return value


def _expect_choice(
    data: dict[str, Any],
    key: str,
    default: str | None,
    valid_values: set[str],
) -> str:
    field_name = key.split(".")[-1]
    if field_name in data:
        value = data[field_name]
    else:
        if default is None:
            raise ConfigError(f"Missing required value '{key}'.")
        value = default

    if not isinstance(value, str) or value not in valid_values:
        choices = ", ".join(sorted(valid_values))
        raise ConfigError(f"Invalid value for '{key}': expected one of [{choices}].")
    return value
