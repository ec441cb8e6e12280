"""substack_api: session management and request pipeline for Substack's unofficial API."""

from .auth import Authenticator
from .captcha import CaptchaDetector
from .client import SubstackClient, construct_publication_url
from .config import (
    BrowserConfig,
    ClientConfig,
    LoginConfig,
    RuntimeConfig,
    config_to_dict,
    default_config,
    init_default_config,
    load_runtime_config,
    resolve_config_path,
)
from .errors import (
    APIError,
    AuthenticationError,
    BrowserError,
    CaptchaRequiredError,
    ClientError,
    ConfigError,
    LoadError,
    NotFoundError,
    ParseError,
    RateLimitError,
    SubstackError,
    ValidationError,
)
from .logging import configure_logging, get_logger
from .models import (
    CaptchaChallenge,
    ChallengeType,
    ErrorDetail,
    ErrorKind,
    ErrorRecord,
    LoginState,
    Session,
)
from .pipeline import RequestPipeline
from .retry import RetryOutcome, retry_with_backoff, run_with_backoff
from .store import SessionStore

__all__ = [
    "APIError",
    "AuthenticationError",
    "Authenticator",
    "BrowserConfig",
    "BrowserError",
    "CaptchaChallenge",
    "CaptchaDetector",
    "CaptchaRequiredError",
    "ChallengeType",
    "ClientConfig",
    "ClientError",
    "ConfigError",
    "ErrorDetail",
    "ErrorKind",
    "ErrorRecord",
    "LoadError",
    "LoginConfig",
    "LoginState",
    "NotFoundError",
    "ParseError",
    "RateLimitError",
    "RequestPipeline",
    "RetryOutcome",
    "RuntimeConfig",
    "Session",
    "SessionStore",
    "SubstackClient",
    "SubstackError",
    "ValidationError",
    "config_to_dict",
    "configure_logging",
    "construct_publication_url",
    "default_config",
    "get_logger",
    "init_default_config",
    "load_runtime_config",
    "resolve_config_path",
    "retry_with_backoff",
    "run_with_backoff",
]

__version__ = "0.1.0"
