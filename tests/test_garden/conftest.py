"""Shared fixtures for the Garden tests."""

from __future__ import annotations

import textwrap
from datetime import datetime, timezone
from typing import Callable

import pytest

from garden.note import Note

DEFAULT_MTIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class MemoryStore:
    """In-memory content store that counts fetches."""

    def __init__(self, notes: list[Note]) -> None:
        self.notes = notes
        self.calls = 0

    def fetch_all_notes(self) -> list[Note]:
        self.calls += 1
        return list(self.notes)


@pytest.fixture()
def make_note() -> Callable[..., Note]:
    def _make(filename: str, content: str, modified_at: datetime = DEFAULT_MTIME) -> Note:
        return Note(
            path=f"/{filename}",
            filename=filename,
            content=textwrap.dedent(content),
            modified_at=modified_at,
        )

    return _make


@pytest.fixture()
def make_store() -> Callable[[list[Note]], MemoryStore]:
    return MemoryStore
