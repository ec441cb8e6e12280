"""Import smoke tests for package modules."""

from importlib import import_module

import substack_api

MODULES = [
    "substack_api.auth",
    "substack_api.browser",
    "substack_api.browser.session",
    "substack_api.captcha",
    "substack_api.client",
    "substack_api.config",
    "substack_api.endpoints",
    "substack_api.errors",
    "substack_api.logging",
    "substack_api.models",
    "substack_api.pipeline",
    "substack_api.retry",
    "substack_api.store",
    "substack_api.testing",
    "substack_api.testing.time_control",
]


def test_core_modules_import_cleanly() -> None:
    for module in MODULES:
        assert import_module(module) is not None


def test_public_names_resolve() -> None:
    for name in substack_api.__all__:
        assert getattr(substack_api, name) is not None
