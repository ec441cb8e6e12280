"""Logging helpers: root configuration and the package logger threshold."""

from __future__ import annotations

import logging
from typing import Any

import pytest

import substack_api
from substack_api.logging import LOGGER_NAME, configure_logging, get_logger, set_client_log_level


@pytest.fixture
def basic_config_calls(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
    return calls


@pytest.fixture
def restore_package_level():
    logger = logging.getLogger(LOGGER_NAME)
    level = logger.level
    yield logger
    logger.setLevel(level)


def test_configure_logging_defaults_to_info(basic_config_calls: list[dict[str, Any]]) -> None:
    configure_logging()

    assert len(basic_config_calls) == 1
    assert basic_config_calls[0]["level"] == logging.INFO
    assert "%(name)s" in basic_config_calls[0]["format"]


def test_configure_logging_debug_lowers_root_level(
    basic_config_calls: list[dict[str, Any]],
) -> None:
    configure_logging(debug=True)

    assert basic_config_calls[0]["level"] == logging.DEBUG


def test_configure_logging_is_exported_from_package() -> None:
    assert substack_api.configure_logging is configure_logging
    assert "configure_logging" in substack_api.__all__


def test_get_logger_defaults_to_package_logger() -> None:
    assert get_logger() is logging.getLogger("substack_api")
    assert get_logger("substack_api.pipeline").name == "substack_api.pipeline"


def test_set_client_log_level_switches_between_debug_and_warning(
    restore_package_level: logging.Logger,
) -> None:
    set_client_log_level(True)
    assert restore_package_level.level == logging.DEBUG

    set_client_log_level(False)
    assert restore_package_level.level == logging.WARNING
