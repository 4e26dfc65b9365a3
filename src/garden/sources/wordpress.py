"""WordPress content store.

Reads the published posts of the Garden category through the WordPress REST
API (``/wp-json/wp/v2/posts``), 100 per page, following ``X-WP-TotalPages``.
Each post becomes one note named after its date (``2025.03.01.md``) whose
content is the post HTML reduced to plain text, headed by ``title:`` and
``date:`` lines so the inline-header parser picks them up.

Without a base URL the store is simply empty.  Authentication (an application
password) is optional; published posts are public.

Environment variables (all optional; direct kwargs take precedence):
    GARDEN_WP_BASE_URL, GARDEN_WP_APP_USER, GARDEN_WP_APP_PASSWORD
"""

from __future__ import annotations

import html
import logging
import os
import re
from datetime import datetime, timezone
from typing import Any

import httpx

from garden.exceptions import ContentStoreError
from garden.note import Note

logger = logging.getLogger(__name__)

GARDEN_CATEGORY_ID = 52
PER_PAGE = 100

_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_PARAGRAPH_RE = re.compile(r"</p>\s*<p>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")


def strip_html(markup: str) -> str:
    """Reduce rendered post HTML to plain text, keeping line and paragraph breaks."""
    text = _BR_RE.sub("\n", markup)
    text = _PARAGRAPH_RE.sub("\n\n", text)
    text = _TAG_RE.sub("", text)
    return html.unescape(text).replace("\xa0", " ").strip()


def _parse_wp_datetime(value: str | None) -> datetime:
    # WordPress omits the offset; *_gmt fields are UTC.
    if not value:
        return datetime.now(timezone.utc)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def post_to_note(post: dict[str, Any]) -> Note:
    """Convert one REST API post object into a :class:`Note`."""
    date = post["date"][:10]
    title = html.unescape(post["title"]["rendered"])
    body = strip_html(post["content"]["rendered"])
    filename = date.replace("-", ".") + ".md"
    return Note(
        path="/" + filename,
        filename=filename,
        content=f"title: {title}\ndate: {date}\n\n{body}",
        modified_at=_parse_wp_datetime(post.get("modified_gmt") or post.get("modified")),
    )


class WordPressStore:
    """Content store backed by the posts of one WordPress category."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        user: str | None = None,
        password: str | None = None,
        category_id: int = GARDEN_CATEGORY_ID,
        per_page: int = PER_PAGE,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = (base_url or os.getenv("GARDEN_WP_BASE_URL", "")).strip().rstrip("/")
        user = (user or os.getenv("GARDEN_WP_APP_USER", "")).strip()
        password = (password or os.getenv("GARDEN_WP_APP_PASSWORD", "")).strip()
        self._auth = httpx.BasicAuth(user, password) if user and password else None
        self.category_id = category_id
        self.per_page = per_page
        self._client = client or httpx.Client(timeout=timeout)

    @property
    def posts_url(self) -> str:
        return f"{self.base_url}/wp-json/wp/v2/posts"

    def _fetch_posts(self) -> list[dict[str, Any]]:
        posts: list[dict[str, Any]] = []
        page = 1
        while True:
            params = {
                "categories": self.category_id,
                "per_page": self.per_page,
                "page": page,
                "status": "publish",
                "orderby": "date",
                "order": "desc",
            }
            kwargs: dict[str, Any] = {"params": params}
            if self._auth is not None:
                kwargs["auth"] = self._auth
            r = self._client.get(self.posts_url, **kwargs)
            if r.status_code == 400:
                # Asking past the last page
                break
            if r.is_error:
                raise ContentStoreError(f"posts page {page} failed: {r.status_code}", store="wordpress")
            batch = r.json()
            if not batch:
                break
            posts.extend(batch)
            total_pages = int(r.headers.get("X-WP-TotalPages", "1"))
            if page >= total_pages:
                break
            page += 1
        return posts

    def fetch_all_notes(self) -> list[Note]:
        if not self.base_url:
            logger.info("WordPress: no base URL configured, skipping")
            return []
        try:
            notes = [post_to_note(post) for post in self._fetch_posts()]
        except httpx.HTTPError as exc:
            raise ContentStoreError(str(exc), store="wordpress") from exc
        except (ValueError, KeyError, TypeError) as exc:
            raise ContentStoreError(f"unexpected WordPress response: {exc!r}", store="wordpress") from exc
        logger.info("WordPress: fetched %d posts", len(notes))
        return notes

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "WordPressStore":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
