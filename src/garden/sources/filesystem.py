"""Local directory content store."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import AbstractSet, Iterator

from garden.config import DEFAULT_EXCLUDED_DIRS
from garden.exceptions import ContentStoreError
from garden.note import Note
from garden.sources.base import decode_note, is_note_path

logger = logging.getLogger(__name__)


def iter_note_paths(root: Path, excluded_dirs: AbstractSet[str] = DEFAULT_EXCLUDED_DIRS) -> Iterator[Path]:
    """Yield every note file below *root* in a stable (sorted) order."""
    for path in sorted(root.rglob("*.md")):
        if path.is_file() and is_note_path(path.relative_to(root).as_posix(), excluded_dirs):
            yield path


def file_mtime(path: Path) -> datetime:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)


class FilesystemStore:
    """Reads the note corpus from a directory tree of ``.md`` files."""

    def __init__(self, root: Path | str, *, excluded_dirs: AbstractSet[str] = DEFAULT_EXCLUDED_DIRS) -> None:
        self.root = Path(root)
        self.excluded_dirs = excluded_dirs

    def fetch_all_notes(self) -> list[Note]:
        if not self.root.is_dir():
            raise ContentStoreError(f"Note directory not found: {self.root}", store="filesystem")
        notes: list[Note] = []
        try:
            for path in iter_note_paths(self.root, self.excluded_dirs):
                notes.append(
                    Note(
                        path="/" + path.relative_to(self.root).as_posix(),
                        filename=path.name,
                        content=decode_note(path.read_bytes(), str(path)),
                        modified_at=file_mtime(path),
                    )
                )
        except OSError as exc:
            raise ContentStoreError(str(exc), store="filesystem") from exc
        logger.debug("Read %d notes from %s", len(notes), self.root)
        return notes
