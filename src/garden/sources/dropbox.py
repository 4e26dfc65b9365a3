"""Dropbox content store.

Reads every Markdown file from a Dropbox App folder through the HTTP API:

1. exchange the long-lived refresh token for a short-lived access token
   (cached until five minutes before expiry);
2. ``files/list_folder`` (recursive) plus ``list_folder/continue`` until
   ``has_more`` is false;
3. download each ``.md`` file outside dot-directories and excluded folders,
   at most ``concurrency`` at a time.

Rate limiting (HTTP 429) is retried, honouring ``Retry-After`` when present and
backing off exponentially otherwise.  Any other failure is raised as
:class:`~garden.exceptions.ContentStoreError`.

Environment variables (all optional; direct kwargs take precedence):
    GARDEN_DROPBOX_APP_KEY, GARDEN_DROPBOX_APP_SECRET, GARDEN_DROPBOX_REFRESH_TOKEN
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import AbstractSet, Any, Callable

import httpx

from garden.config import DEFAULT_EXCLUDED_DIRS
from garden.exceptions import ContentStoreError
from garden.note import Note
from garden.sources.base import decode_note, is_note_path

logger = logging.getLogger(__name__)

TOKEN_URL = "https://api.dropboxapi.com/oauth2/token"
LIST_FOLDER_URL = "https://api.dropboxapi.com/2/files/list_folder"
LIST_CONTINUE_URL = "https://api.dropboxapi.com/2/files/list_folder/continue"
DOWNLOAD_URL = "https://content.dropboxapi.com/2/files/download"

_TOKEN_REFRESH_MARGIN = 300  # seconds
_MAX_BACKOFF = 30.0


def _retry_delay(retry_after: str | None, attempt: int) -> float:
    """Seconds to wait before retrying a rate-limited request."""
    if retry_after:
        try:
            return max(0.0, float(retry_after))
        except ValueError:
            # HTTP-date form; fall back to exponential backoff.
            pass
    return min(2.0 * 2**attempt, _MAX_BACKOFF)


class DropboxStore:
    """Content store backed by a Dropbox App folder."""

    def __init__(
        self,
        *,
        app_key: str | None = None,
        app_secret: str | None = None,
        refresh_token: str | None = None,
        excluded_dirs: AbstractSet[str] = DEFAULT_EXCLUDED_DIRS,
        concurrency: int = 10,
        retries: int = 3,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._app_key = app_key or os.getenv("GARDEN_DROPBOX_APP_KEY", "")
        self._app_secret = app_secret or os.getenv("GARDEN_DROPBOX_APP_SECRET", "")
        self._refresh_token = refresh_token or os.getenv("GARDEN_DROPBOX_REFRESH_TOKEN", "")
        self.excluded_dirs = excluded_dirs
        self.concurrency = max(1, concurrency)
        self.retries = retries
        self._client = client or httpx.Client(timeout=timeout)
        self._sleep = sleep
        self._token: str | None = None
        self._token_expires_at = 0.0
        # Download workers share one token; only one of them refreshes it.
        self._token_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def _access_token(self) -> str:
        with self._token_lock:
            if self._token and time.time() < self._token_expires_at:
                return self._token
            r = self._client.post(
                TOKEN_URL,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": self._refresh_token,
                    "client_id": self._app_key,
                    "client_secret": self._app_secret,
                },
            )
            if r.status_code != 200:
                raise ContentStoreError(f"token refresh failed: {r.status_code} {r.text}", store="dropbox")
            try:
                data = r.json()
                token = data["access_token"]
                expires_in = float(data.get("expires_in", 0))
            except (ValueError, KeyError, TypeError, AttributeError) as exc:
                raise ContentStoreError(f"unexpected token response: {exc!r}", store="dropbox") from exc
            self._token = token
            self._token_expires_at = time.time() + expires_in - _TOKEN_REFRESH_MARGIN
            return self._token

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _request(self, url: str, label: str, **kwargs: Any) -> httpx.Response:
        """POST with 429 retry; other non-2xx responses raise."""
        for attempt in range(self.retries + 1):
            r = self._client.post(url, **kwargs)
            if r.status_code == 429:
                wait = _retry_delay(r.headers.get("Retry-After"), attempt)
                logger.warning("%s: rate limited, waiting %.1fs (%d/%d)", label, wait, attempt + 1, self.retries + 1)
                self._sleep(wait)
                continue
            if r.is_error:
                raise ContentStoreError(f"{label} failed: {r.status_code}", store="dropbox")
            return r
        raise ContentStoreError(f"{label}: too many rate-limited retries", store="dropbox")

    def _list_entries(self) -> list[dict[str, Any]]:
        headers = {"Authorization": f"Bearer {self._access_token()}"}
        r = self._request(LIST_FOLDER_URL, "list_folder", headers=headers, json={"path": "", "recursive": True})
        data = r.json()
        entries: list[dict[str, Any]] = list(data.get("entries", []))
        while data.get("has_more"):
            r = self._request(LIST_CONTINUE_URL, "list_folder/continue", headers=headers, json={"cursor": data["cursor"]})
            data = r.json()
            entries.extend(data.get("entries", []))
        return entries

    def _download(self, entry: dict[str, Any]) -> Note:
        headers = {
            "Authorization": f"Bearer {self._access_token()}",
            # HTTP headers must be ASCII; json.dumps escapes everything else.
            "Dropbox-API-Arg": json.dumps({"path": entry["path_lower"]}),
        }
        r = self._request(DOWNLOAD_URL, f"download {entry['path_display']}", headers=headers)
        modified = entry.get("server_modified")
        return Note(
            path=entry["path_display"],
            filename=entry["name"],
            content=decode_note(r.content, entry["path_display"]),
            modified_at=(
                datetime.fromisoformat(modified.replace("Z", "+00:00"))
                if modified
                else datetime.now(timezone.utc)
            ),
        )

    # ------------------------------------------------------------------
    # ContentStore
    # ------------------------------------------------------------------

    def fetch_all_notes(self) -> list[Note]:
        try:
            entries = self._list_entries()
            md_entries = [
                e
                for e in entries
                if e.get(".tag") == "file" and is_note_path(e["path_lower"], self.excluded_dirs)
            ]
            logger.info("Dropbox: %d entries, %d notes to download", len(entries), len(md_entries))
            with ThreadPoolExecutor(max_workers=self.concurrency) as pool:
                notes = list(pool.map(self._download, md_entries))
        except httpx.HTTPError as exc:
            raise ContentStoreError(str(exc), store="dropbox") from exc
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise ContentStoreError(f"unexpected Dropbox response: {exc!r}", store="dropbox") from exc
        logger.info("Dropbox: downloaded %d notes", len(notes))
        return notes

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "DropboxStore":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
