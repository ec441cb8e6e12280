"""Browser session lifecycle manager and the login-driver capability protocol."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass
import time
from typing import Any, Protocol

from substack_api.config import BrowserConfig, RuntimeConfig
from substack_api.errors import BrowserError
from substack_api.logging import get_logger

logger = get_logger(__name__)


class PageElement(Protocol):
    def fill(self, value: str) -> None:
        """Replace the element's input value."""

    def click(self) -> None:
        """Click the element."""

    def press(self, key: str) -> None:
        """Press a keyboard key while the element has focus."""


class LoginDriver(Protocol):
    """Capabilities the login flow needs from a scripted browser."""

    def navigate(self, url: str) -> None:
        """Load a URL in the active page."""

    def find_element(self, selector: str) -> PageElement | None:
        """Return the first element matching ``selector`` or None; never raises for absence."""

    def wait_for_element(self, selector: str, timeout_s: float) -> PageElement:
        """Block until ``selector`` is visible; raise BrowserError on timeout."""

    def wait_until(
        self, predicate: Callable[[], bool], timeout_s: float, interval_s: float
    ) -> bool:
        """Poll ``predicate`` until it is true or the timeout expires."""

    def current_url(self) -> str:
        """Return the URL of the active page."""

    def read_cookies(self) -> list[dict[str, Any]]:
        """Return every cookie held by the browser context."""


DriverFactory = Callable[[bool], AbstractContextManager[LoginDriver]]


@dataclass(frozen=True)
class BrowserSessionOptions:
    engine: str
    headless: bool
    navigation_timeout_ms: int
    action_timeout_ms: int
    locale: str
    viewport_width: int
    viewport_height: int
    user_agent: str | None = None


class PlaywrightBrowserSession:
    """Manage one browser/context lifecycle with deterministic teardown."""

    def __init__(
        self,
        config: RuntimeConfig | BrowserConfig,
        *,
        headless: bool | None = None,
        user_agent: str | None = None,
        playwright_factory: Callable[[], AbstractContextManager[Any]] | None = None,
    ) -> None:
        browser = config.browser if isinstance(config, RuntimeConfig) else config
        self.options = BrowserSessionOptions(
            engine=browser.engine,
            headless=headless if headless is not None else browser.headless,
            navigation_timeout_ms=browser.navigation_timeout_ms,
            action_timeout_ms=browser.action_timeout_ms,
            locale=browser.locale,
            viewport_width=browser.viewport_width,
            viewport_height=browser.viewport_height,
            user_agent=user_agent,
        )
        self._playwright_factory = playwright_factory or _default_playwright_factory
        self._playwright_cm: AbstractContextManager[Any] | None = None
        self._browser: Any | None = None
        self._context: Any | None = None

    def open(self) -> None:
        if self._context is not None:
            return

        try:
            self._playwright_cm = self._playwright_factory()
            playwright = self._playwright_cm.__enter__()

            launcher = getattr(playwright, self.options.engine, None)
            if launcher is None:
                raise BrowserError(
                    f"Unsupported browser engine '{self.options.engine}' for Playwright session."
                )

            self._browser = launcher.launch(headless=self.options.headless)

            context_kwargs: dict[str, Any] = {
                "locale": self.options.locale,
                "viewport": {
                    "width": self.options.viewport_width,
                    "height": self.options.viewport_height,
                },
            }
            if self.options.user_agent is not None:
                context_kwargs["user_agent"] = self.options.user_agent
            self._context = self._browser.new_context(**context_kwargs)
            self._context.set_default_timeout(self.options.action_timeout_ms)
        except BrowserError:
            self._teardown(raise_on_error=False)
            raise
        except Exception as exc:
            self._teardown(raise_on_error=False)
            raise BrowserError(f"Failed to open browser session: {exc}") from exc

    def new_page(self) -> Any:
        if self._context is None:
            self.open()

        if self._context is None:
            raise BrowserError("Browser session is not open.")

        try:
            page = self._context.new_page()
            set_navigation_timeout = getattr(page, "set_default_navigation_timeout", None)
            if callable(set_navigation_timeout):
                set_navigation_timeout(self.options.navigation_timeout_ms)
            return page
        except Exception as exc:
            raise BrowserError(f"Failed to create browser page: {exc}") from exc

    def cookies(self) -> list[dict[str, Any]]:
        if self._context is None:
            raise BrowserError("Browser session is not open.")

        try:
            payload = self._context.cookies()
        except Exception as exc:
            raise BrowserError(f"Failed to read browser cookies: {exc}") from exc

        if not isinstance(payload, list):
            raise BrowserError("Playwright returned invalid cookies payload.")
        return [dict(cookie) for cookie in payload]

    def close(self) -> None:
        self._teardown(raise_on_error=True)

    def __enter__(self) -> PlaywrightBrowserSession:
        self.open()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> bool:
        try:
            self.close()
        except BrowserError:
            if exc_type is None:
                raise
        return False

    def _teardown(self, *, raise_on_error: bool) -> None:
        errors: list[str] = []

        if self._context is not None:
            try:
                self._context.close()
            except Exception as exc:
                errors.append(f"context close failed: {exc}")
            finally:
                self._context = None

        if self._browser is not None:
            try:
                self._browser.close()
            except Exception as exc:
                errors.append(f"browser close failed: {exc}")
            finally:
                self._browser = None

        if self._playwright_cm is not None:
            try:
                self._playwright_cm.__exit__(None, None, None)
            except Exception as exc:
                errors.append(f"playwright teardown failed: {exc}")
            finally:
                self._playwright_cm = None

        if raise_on_error and errors:
            raise BrowserError(
                "Errors occurred during browser session teardown: " + "; ".join(errors)
            )


class PlaywrightLoginDriver:
    """:class:`LoginDriver` backed by one Playwright page; usable as a context manager."""

    def __init__(
        self,
        session: PlaywrightBrowserSession,
        *,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session = session
        self._monotonic = monotonic
        self._page: Any | None = None

    def __enter__(self) -> PlaywrightLoginDriver:
        self._session.open()
        try:
            self._page = self._session.new_page()
        except BrowserError:
            self._session._teardown(raise_on_error=False)
            raise
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> bool:
        self._page = None
        return self._session.__exit__(exc_type, exc, tb)

    @property
    def page(self) -> Any:
        if self._page is None:
            raise BrowserError("Login driver is not open.")
        return self._page

    def navigate(self, url: str) -> None:
        self.page.goto(url, wait_until="load", timeout=self._session.options.navigation_timeout_ms)

    def find_element(self, selector: str) -> PageElement | None:
        try:
            return self.page.query_selector(selector)
        except Exception as exc:
            logger.debug("Selector query %r failed: %s", selector, exc)
            return None

    def wait_for_element(self, selector: str, timeout_s: float) -> PageElement:
        try:
            element = self.page.wait_for_selector(
                selector, timeout=int(timeout_s * 1000), state="visible"
            )
        except Exception as exc:
            raise BrowserError(f"Timed out waiting for '{selector}': {exc}") from exc
        if element is None:
            raise BrowserError(f"Element '{selector}' did not appear.")
        return element

    def wait_until(
        self, predicate: Callable[[], bool], timeout_s: float, interval_s: float
    ) -> bool:
        deadline = self._monotonic() + timeout_s
        while True:
            if predicate():
                return True
            if self._monotonic() >= deadline:
                return False
            self.page.wait_for_timeout(int(interval_s * 1000))

    def current_url(self) -> str:
        return str(self.page.url)

    def read_cookies(self) -> list[dict[str, Any]]:
        return self._session.cookies()


def playwright_driver_factory(
    config: RuntimeConfig,
    *,
    playwright_factory: Callable[[], AbstractContextManager[Any]] | None = None,
) -> DriverFactory:
    """Build the default driver factory: one fresh Playwright browser per login attempt."""

    def _factory(headless: bool) -> AbstractContextManager[LoginDriver]:
        session = PlaywrightBrowserSession(
            config,
            headless=headless,
            user_agent="Mozilla/5.0",
            playwright_factory=playwright_factory,
        )
        return PlaywrightLoginDriver(session)

    return _factory


def _default_playwright_factory() -> AbstractContextManager[Any]:
    try:
        from playwright.sync_api import sync_playwright
    except ModuleNotFoundError as exc:
        raise BrowserError(
            "Playwright is not available. Install dependencies and run "
            "`python -m playwright install chromium`."
        ) from exc
    return sync_playwright()
