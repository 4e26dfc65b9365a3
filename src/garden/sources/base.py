"""Content store protocol."""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import AbstractSet, Protocol, runtime_checkable

from garden.note import Note

logger = logging.getLogger(__name__)


@runtime_checkable
class ContentStore(Protocol):
    """Supplies the complete note corpus.

    Implementations raise :class:`~garden.exceptions.ContentStoreError` on
    transport failure; callers do not retry.
    """

    def fetch_all_notes(self) -> list[Note]:
        """Return every note currently in the store."""
        ...


def is_note_path(path: str, excluded_dirs: AbstractSet[str]) -> bool:
    """``True`` for ``.md`` files outside dot-directories and *excluded_dirs*.

    Directory names are compared case-insensitively.
    """
    parts = [p for p in PurePosixPath(path).parts if p not in ("/", "")]
    if not parts or not parts[-1].endswith(".md"):
        return False
    excluded = {d.lower() for d in excluded_dirs}
    return not any(p.startswith(".") or p.lower() in excluded for p in parts)


def decode_note(raw: bytes, name: str) -> str:
    """Decode note bytes as UTF-8, replacing invalid sequences.

    One mis-encoded file must not take the rest of the corpus down with it.
    """
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("%s is not valid UTF-8; undecodable bytes replaced", name)
        return raw.decode("utf-8", errors="replace")
