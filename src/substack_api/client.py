"""Substack client: session store, authenticator and request pipeline behind one facade."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
import time
from typing import Any, TypeVar
from urllib.parse import quote

import httpx

from . import endpoints
from .auth import Authenticator
from .browser.session import DriverFactory
from .config import RuntimeConfig, default_config, with_cookies_path
from .errors import APIError, ValidationError
from .logging import get_logger, set_client_log_level
from .models import Session
from .pipeline import RequestPipeline
from .retry import retry_with_backoff
from .store import SessionStore

logger = get_logger(__name__)

T = TypeVar("T")


class SubstackClient:
    """Authenticated access to Substack's unofficial API.

    On construction the client restores the persisted session when the cookie
    file exists, otherwise logs in with ``email``/``password`` when given.
    Without either, only unauthenticated helpers work until :meth:`login` is
    called or a cookie file appears.

    Examples::

        client = SubstackClient(cookies_path="~/.substack_cookies.json")
        feed = client.following_feed(limit=10)
        client.post_note_with_image(text="Look!", image_url="https://example.com/a.jpg")
    """

    def __init__(
        self,
        email: str | None = None,
        password: str | None = None,
        *,
        cookies_path: str | Path | None = None,
        config: RuntimeConfig | None = None,
        http_client: httpx.Client | None = None,
        driver_factory: DriverFactory | None = None,
        headless: bool | None = None,
    ) -> None:
        resolved = config or default_config()
        if cookies_path is not None:
            resolved = with_cookies_path(resolved, cookies_path)
        self.config = resolved
        set_client_log_level(resolved.client.debug)

        self.store = SessionStore(resolved.client.cookies_path)
        self.authenticator = Authenticator(
            resolved, store=self.store, driver_factory=driver_factory
        )
        self.pipeline = RequestPipeline(resolved, store=self.store, http_client=http_client)
        self.publication_url = resolved.client.publication_url

        if self.store.exists():
            self.session = self.store.load()
        elif email and password:
            self.login(email, password, headless=headless)
        else:
            logger.warning("No authentication provided. Some API features will be unavailable.")

    @property
    def session(self) -> Session:
        return self.pipeline.session

    @session.setter
    def session(self, session: Session) -> None:
        self.pipeline.session = session

    def login(self, email: str, password: str, *, headless: bool | None = None) -> Session:
        self.session = self.authenticator.login(email, password, headless=headless)
        return self.session

    def save_cookies(self, path: str | Path | None = None) -> Path:
        return self.store.save(self.session, path)

    def load_cookies(self, path: str | Path | None = None) -> Session:
        self.session = self.store.load(path)
        return self.session

    def request(
        self,
        method: str,
        url: str,
        json: Any = None,
        query: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> Any:
        return self.pipeline.execute(method, url, json, query, **kwargs)

    def retry_with_backoff(
        self,
        operation: Callable[[], T],
        max_retries: int = 3,
        initial_delay: float = 1.0,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> T:
        return retry_with_backoff(operation, max_retries, initial_delay, sleep=sleep)

    def _api(self, path: str) -> str:
        return endpoints.api_url(self.config.client.base_url, path)

    def close(self) -> None:
        self.pipeline.close()

    def __enter__(self) -> SubstackClient:
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> bool:
        self.close()
        return False

    # Profile and publication

    def get_user_profile(self) -> dict[str, Any]:
        return self.request("GET", self._api(endpoints.USER_PROFILE))

    def get_user_id(self) -> Any:
        return self.get_user_profile().get("id")

    def determine_primary_publication(self) -> str:
        profile = self.get_user_profile()
        publication = profile.get("primaryPublication")
        if not isinstance(publication, Mapping):
            raise APIError("User profile has no primary publication.")
        self.publication_url = construct_publication_url(publication)
        return self.publication_url

    def post_draft(self, draft: Mapping[str, Any]) -> Any:
        publication_url = self.publication_url or self.determine_primary_publication()
        try:
            return self.request("POST", endpoints.drafts(publication_url), json=dict(draft))
        except ValidationError as exc:
            logger.error("Error while posting draft: %s", exc.error_details())
            raise

    # Feed, inbox and notes

    def following_feed(self, page: int = 1, limit: int = 25) -> Any:
        return self.request(
            "GET", self._api(endpoints.FEED_FOLLOWING), query={"page": page, "limit": limit}
        )

    def inbox_top(self) -> Any:
        return self.request("GET", self._api(endpoints.INBOX_TOP))

    def mark_inbox_seen(self, ids: Sequence[str] = ()) -> Any:
        return self.request("PUT", self._api(endpoints.INBOX_SEEN), json={"ids": list(ids)})

    def live_streams(self) -> Any:
        return self.request("GET", self._api(endpoints.LIVE_STREAMS))

    def unread_count(self) -> Any:
        return self.request("GET", self._api(endpoints.UNREAD_COUNT))

    def upload_image(self, file_path: str | Path) -> Any:
        path = Path(file_path).expanduser()
        return self.request(
            "POST",
            self._api(endpoints.IMAGE_UPLOAD),
            content=path.read_bytes(),
            headers={
                "Content-Type": "application/octet-stream",
                "X-File-Name": quote(path.name, safe=""),
            },
        )

    def attach_image(self, image_url: str) -> Any:
        return self.request("POST", self._api(endpoints.ATTACH_IMAGE), json={"url": image_url})

    def post_note(self, text: str, attachments: Sequence[Any] = ()) -> Any:
        payload = {"contentMarkdown": text, "attachments": list(attachments)}
        return self.request("POST", self._api(endpoints.POST_NOTE), json=payload)

    def post_note_with_image(self, text: str, image_url: str) -> Any:
        attachment = self.attach_image(image_url)
        return self.post_note(text, attachments=[attachment])

    def post_note_with_local_image(self, text: str, image_path: str | Path) -> Any:
        uploaded = self.upload_image(image_path)
        attachment = self.attach_image(uploaded["url"])
        return self.post_note(text, attachments=[attachment])

    def react_to_note(self, note_id: str | int, reaction_type: str = "heart") -> Any:
        url = self._api(endpoints.react_note(note_id))
        return self.request("POST", url, json={"type": reaction_type})

    def update_user_setting(self, settings: Mapping[str, Any] | None = None) -> Any:
        return self.request("PUT", self._api(endpoints.USER_SETTING), json=dict(settings or {}))

    def publication_posts(self, publication: str, limit: int = 25, offset: int = 0) -> Any:
        return self.request(
            "GET", endpoints.posts_feed(publication), query={"limit": limit, "offset": offset}
        )


def construct_publication_url(publication: Mapping[str, Any]) -> str:
    custom_domain = publication.get("custom_domain")
    if custom_domain:
        return f"https://{custom_domain}"
    return f"https://{publication['subdomain']}.substack.com"
