"""Substack API endpoint paths.

Global endpoints are paths joined onto the configured API base URL;
publication-scoped ones are built from a subdomain or publication URL.
"""

from __future__ import annotations

USER_PROFILE = "/user/profile/self"
FEED_FOLLOWING = "/feed/following"
INBOX_TOP = "/inbox/top"
INBOX_SEEN = "/inbox/seen"
LIVE_STREAMS = "/live_streams/active"
UNREAD_COUNT = "/messages/unread-count"
IMAGE_UPLOAD = "/image"
ATTACH_IMAGE = "/comment/attachment"
POST_NOTE = "/comment/feed"
USER_SETTING = "/user-setting"


def api_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def react_note(note_id: str | int) -> str:
    return f"/comment/{note_id}/reaction"


def posts_feed(publication: str) -> str:
    return f"https://{publication}.substack.com/api/v1/posts"


def drafts(publication_url: str) -> str:
    return f"{publication_url.rstrip('/')}/api/v1/drafts"
