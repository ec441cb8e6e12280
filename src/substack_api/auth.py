"""Browser-driven login: challenge handling, cookie capture and session persistence."""

from __future__ import annotations

from collections.abc import Callable
import time
from urllib.parse import urlparse

from .browser.session import DriverFactory, LoginDriver, playwright_driver_factory
from .captcha import CaptchaDetector
from .config import RuntimeConfig, default_config
from .errors import AuthenticationError, CaptchaRequiredError
from .logging import get_logger
from .models import CSRF_COOKIE, SESSION_COOKIE, LoginState, Session
from .store import SessionStore

logger = get_logger(__name__)

EMAIL_SELECTOR = "input[name='email']"
PASSWORD_SELECTOR = "input[name='password']"
PASSWORD_LOGIN_SELECTOR = "text=Sign in with password"
SIGN_IN_PATH = "/sign-in"
SUCCESS_POLL_INTERVAL_S = 0.5
POST_LOGIN_SELECTORS = (
    "[data-testid='user-menu']",
    "a[href*='/account']",
    "img.user-avatar",
)

TEST_MODE_SESSION = {
    SESSION_COOKIE: "test_session_id",
    CSRF_COOKIE: "test_csrf_token",
}


class Authenticator:
    """Drive the Substack sign-in form and turn browser cookies into a :class:`Session`.

    ``state`` and ``history`` expose the login state machine so callers and
    tests can see where a failed attempt stopped.
    """

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        *,
        store: SessionStore | None = None,
        detector: CaptchaDetector | None = None,
        driver_factory: DriverFactory | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or default_config()
        self.store = store or SessionStore(self.config.client.cookies_path)
        self.detector = detector or CaptchaDetector()
        self._driver_factory = driver_factory or playwright_driver_factory(self.config)
        self._sleep = sleep
        self.state = LoginState.NOT_STARTED
        self.history: list[LoginState] = [LoginState.NOT_STARTED]

    def login(self, email: str, password: str, *, headless: bool | None = None) -> Session:
        self._reset()
        if self.config.client.test_mode:
            # Test-mode bypass: no browser, fixed synthetic session.
            logger.info("Running in test mode, skipping actual login")
            self._transition(LoginState.AUTHENTICATED)
            return Session(TEST_MODE_SESSION)

        run_headless = self.config.browser.headless if headless is None else headless
        logger.info("Authenticating with Substack (headless=%s)...", run_headless)
        try:
            with self._driver_factory(run_headless) as driver:
                session = self._run(driver, email, password, headless=run_headless)
            self.store.save(session)
        except AuthenticationError:
            self._transition(LoginState.FAILED)
            raise
        except Exception as exc:
            self._transition(LoginState.FAILED)
            logger.error("Login failed: %s", exc)
            raise AuthenticationError(f"Failed to authenticate with Substack: {exc}") from exc

        logger.info("Cookies saved to '%s'", self.store.path)
        self._transition(LoginState.AUTHENTICATED)
        return session

    def _run(self, driver: LoginDriver, email: str, password: str, *, headless: bool) -> Session:
        login = self.config.login
        driver.navigate(login.login_url)
        self._transition(LoginState.FORM_LOADED)

        self._check_challenge(driver, headless=headless)

        timeout_s = self.config.browser.action_timeout_ms / 1000
        driver.wait_for_element(EMAIL_SELECTOR, timeout_s).fill(email)
        driver.wait_for_element(PASSWORD_LOGIN_SELECTOR, timeout_s).click()
        password_field = driver.wait_for_element(PASSWORD_SELECTOR, timeout_s)
        password_field.fill(password)
        password_field.press("Enter")

        self._sleep(login.settle_s)
        self._check_challenge(driver, headless=headless)

        if not driver.wait_until(
            lambda: self._login_succeeded(driver),
            login.success_timeout_s,
            SUCCESS_POLL_INTERVAL_S,
        ):
            logger.warning(
                "No login success signal within %.0fs; inspecting cookies anyway.",
                login.success_timeout_s,
            )
        self._transition(LoginState.CREDENTIALS_SUBMITTED)

        logger.info("Extracting cookies from browser...")
        session = Session.from_cookies(driver.read_cookies())
        if not session.is_valid:
            raise AuthenticationError("Login failed: session cookie not found")
        return session

    def _check_challenge(self, driver: LoginDriver, *, headless: bool) -> None:
        self._transition(LoginState.CHALLENGE_CHECK)
        challenge_type = self.detector.detect(driver)
        if challenge_type is None:
            return

        if headless:
            logger.warning(
                "%s challenge detected in headless mode; interactive solving is not possible.",
                challenge_type.value,
            )
            raise CaptchaRequiredError(challenge_type, retryable=True)

        login = self.config.login
        logger.warning(
            "%s challenge detected; waiting up to %.0fs for it to be solved in the browser.",
            challenge_type.value,
            login.captcha_timeout_s,
        )
        cleared = driver.wait_until(
            lambda: self.detector.detect(driver) is None,
            login.captcha_timeout_s,
            login.captcha_poll_interval_s,
        )
        if not cleared:
            raise CaptchaRequiredError(challenge_type, retryable=False)
        logger.info("Challenge cleared, continuing login.")

    @staticmethod
    def _login_succeeded(driver: LoginDriver) -> bool:
        path = urlparse(driver.current_url()).path
        if not path.startswith(SIGN_IN_PATH):
            return True
        return any(driver.find_element(selector) is not None for selector in POST_LOGIN_SELECTORS)

    def _reset(self) -> None:
        self.state = LoginState.NOT_STARTED
        self.history = [LoginState.NOT_STARTED]

    def _transition(self, state: LoginState) -> None:
        logger.debug("Login state %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)
