"""Challenge-marker registry and CAPTCHA classification for rendered pages."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from .logging import get_logger
from .models import CaptchaChallenge, ChallengeType

logger = get_logger(__name__)

ChallengeRegistry = dict[ChallengeType, tuple[str, ...]]

# Iteration order is detection priority.
DEFAULT_CHALLENGE_SELECTORS: dict[ChallengeType, tuple[str, ...]] = {
    ChallengeType.HCAPTCHA: (
        "iframe[src*='hcaptcha.com']",
        "div.h-captcha",
        "[data-hcaptcha-widget-id]",
    ),
    ChallengeType.RECAPTCHA: (
        "iframe[src*='recaptcha']",
        "iframe[title*='reCAPTCHA']",
        "div.g-recaptcha",
        "#recaptcha-anchor",
    ),
    ChallengeType.CLOUDFLARE: (
        "iframe[src*='challenges.cloudflare.com']",
        "div.cf-turnstile",
        "#challenge-form",
        "#cf-challenge-running",
    ),
    ChallengeType.UNKNOWN: (
        "img[src*='captcha']",
        "input[name*='captcha']",
    ),
}


class ElementQuery(Protocol):
    def find_element(self, selector: str) -> Any | None:
        """Return the first match for ``selector`` or None."""


def default_challenge_registry() -> ChallengeRegistry:
    """Return a mutable copy of built-in challenge selectors."""
    return {kind: tuple(selectors) for kind, selectors in DEFAULT_CHALLENGE_SELECTORS.items()}


class CaptchaDetector:
    """Side-effect-free query that classifies the challenge shown on a page."""

    def __init__(self, overrides: Mapping[str, Any] | None = None) -> None:
        self.registry = default_challenge_registry()
        if overrides:
            _merge_overrides(self.registry, overrides)

    def detect(self, page: ElementQuery) -> ChallengeType | None:
        for challenge_type, selectors in self.registry.items():
            for selector in selectors:
                if page.find_element(selector) is not None:
                    logger.debug("Challenge %s matched selector %r", challenge_type.value, selector)
                    return challenge_type
        return None

    def challenge(self, page: ElementQuery, *, retryable: bool) -> CaptchaChallenge | None:
        challenge_type = self.detect(page)
        if challenge_type is None:
            return None
        return CaptchaChallenge(type=challenge_type, retryable=retryable)


def _merge_overrides(registry: ChallengeRegistry, overrides: Mapping[str, Any]) -> None:
    for key, value in overrides.items():
        try:
            challenge_type = ChallengeType(key)
        except ValueError:
            logger.warning("Ignoring unknown challenge type %r in selector overrides.", key)
            continue

        if isinstance(value, str):
            candidates = (value,)
        elif isinstance(value, (list, tuple)):
            candidates = tuple(value)
        else:
            logger.warning(
                "Ignoring selector override for %r: expected string or list of strings.", key
            )
            continue

        if not candidates or not all(isinstance(item, str) and item.strip() for item in candidates):
            logger.warning(
                "Ignoring selector override for %r: selectors must be non-empty strings.", key
            )
            continue
        registry[challenge_type] = candidates
