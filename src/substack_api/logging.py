"""Logging setup helpers for substack-api."""

from __future__ import annotations

import logging

LOGGER_NAME = "substack_api"


def configure_logging(debug: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name or LOGGER_NAME)


def set_client_log_level(debug: bool) -> None:
    """Package logger threshold: DEBUG when debugging, otherwise WARNING."""
    get_logger().setLevel(logging.DEBUG if debug else logging.WARNING)
