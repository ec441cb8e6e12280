"""Browser contracts."""

from .session import (
    BrowserSessionOptions,
    DriverFactory,
    LoginDriver,
    PageElement,
    PlaywrightBrowserSession,
    PlaywrightLoginDriver,
    playwright_driver_factory,
)

__all__ = [
    "BrowserSessionOptions",
    "DriverFactory",
    "LoginDriver",
    "PageElement",
    "PlaywrightBrowserSession",
    "PlaywrightLoginDriver",
    "playwright_driver_factory",
]
