"""Build-time corpus snapshots and the stale-corpus fallback.

A snapshot is a UTF-8 JSON file (``.garden-cache.json`` by default)::

    {"updated_at": "2025-03-01T10:00:00+00:00", "notes": [{"path": ..., "filename": ...,
     "content": ..., "modified_at": ...}, ...]}

``garden-prebuild-cache`` writes one from the remote store before a static
build; :class:`SnapshotStore` serves it back so the build itself never talks
to the network.  :class:`FallbackStore` wraps a live store and, when a fetch
fails, answers with the last corpus it fetched successfully (or the snapshot
on disk) instead of failing the page.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Sequence

from garden.config import GardenConfig
from garden.exceptions import ContentStoreError
from garden.note import Note
from garden.sources.base import ContentStore
from garden.sources.dropbox import DropboxStore
from garden.sources.wordpress import WordPressStore

logger = logging.getLogger(__name__)


def write_snapshot(notes: Sequence[Note], path: Path | str) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "updated_at": datetime.now(timezone.utc).isoformat(),
        "notes": [note.to_dict() for note in notes],
    }
    path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")


def read_snapshot(path: Path | str) -> list[Note]:
    """Load the notes stored in a snapshot file.

    Raises :class:`~garden.exceptions.ContentStoreError` when the file is
    missing or malformed.
    """
    path = Path(path)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        return [Note.from_dict(item) for item in payload["notes"]]
    except OSError as exc:
        raise ContentStoreError(f"cannot read snapshot {path}: {exc}", store="snapshot") from exc
    except (ValueError, KeyError, TypeError) as exc:
        raise ContentStoreError(f"malformed snapshot {path}: {exc!r}", store="snapshot") from exc


class SnapshotStore:
    """Content store that serves a snapshot file."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def fetch_all_notes(self) -> list[Note]:
        notes = read_snapshot(self.path)
        logger.debug("Read %d notes from snapshot %s", len(notes), self.path)
        return notes


class FallbackStore:
    """Serve the last good corpus when *primary* fails.

    The last non-empty successful fetch is kept on this instance.  When there
    is none yet, the snapshot at *snapshot_path* (if given and present) is
    used.  With neither, the primary store's error propagates.
    """

    def __init__(
        self,
        primary: ContentStore,
        *,
        snapshot_path: Path | str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.primary = primary
        self.snapshot_path = Path(snapshot_path) if snapshot_path else None
        self._clock = clock
        self._last_good: list[Note] = []
        self._last_good_at = 0.0

    def fetch_all_notes(self) -> list[Note]:
        try:
            notes = self.primary.fetch_all_notes()
        except ContentStoreError as exc:
            if self._last_good:
                age_min = round((self._clock() - self._last_good_at) / 60)
                logger.warning(
                    "Content store failed; serving %d notes from %d min ago: %s",
                    len(self._last_good),
                    age_min,
                    exc,
                )
                return list(self._last_good)
            if self.snapshot_path is not None and self.snapshot_path.exists():
                logger.warning("Content store failed; serving snapshot %s: %s", self.snapshot_path, exc)
                return read_snapshot(self.snapshot_path)
            raise
        if notes:
            self._last_good = list(notes)
            self._last_good_at = self._clock()
        return notes


def _remote_store(kind: str, config: GardenConfig) -> ContentStore:
    if kind == "wordpress":
        return WordPressStore(
            base_url=config.wp_base_url,
            user=config.wp_app_user,
            password=config.wp_app_password,
        )
    return DropboxStore(
        app_key=config.dropbox_app_key,
        app_secret=config.dropbox_app_secret,
        refresh_token=config.dropbox_refresh_token,
        excluded_dirs=config.excluded_dirs,
    )


def main(argv: Sequence[str] | None = None, store: ContentStore | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="garden-prebuild-cache",
        description="Snapshot the remote note corpus for a static build.",
    )
    parser.add_argument("--store", choices=("dropbox", "wordpress"), default="dropbox")
    parser.add_argument("--output", type=Path, default=None, help="snapshot file (default: GARDEN_CACHE_PATH)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    config = GardenConfig.from_env(cache_path=args.output)
    try:
        notes = (store or _remote_store(args.store, config)).fetch_all_notes()
        write_snapshot(notes, config.cache_path)
    except (ContentStoreError, OSError):
        logger.exception("Snapshot of the %s corpus failed", args.store)
        if config.cache_path.exists():
            logger.info("Keeping the existing snapshot %s", config.cache_path)
            return 0
        logger.error("No snapshot at %s; the build has no corpus", config.cache_path)
        return 1
    logger.info("Wrote %d notes to %s", len(notes), config.cache_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
