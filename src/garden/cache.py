"""Render-cycle scoped memoisation of the note corpus.

A :class:`CorpusCache` lives for exactly one render cycle (one request, or one
static build pass).  Every graph query issued during that cycle shares the same
single ``fetch_all_notes()`` call.  Create a new cache for the next cycle;
nothing here is process-global.
"""

from __future__ import annotations

import logging

from garden.note import Note
from garden.sources.base import ContentStore

logger = logging.getLogger(__name__)


class CorpusCache:
    """Memoises one content-store fetch.

    A failed fetch is not cached: the exception propagates and the next call
    fetches again.
    """

    def __init__(self, store: ContentStore) -> None:
        self.store = store
        self._notes: list[Note] | None = None
        self.fetch_count = 0

    def notes(self) -> list[Note]:
        if self._notes is None:
            self.fetch_count += 1
            notes = self.store.fetch_all_notes()
            logger.debug("Fetched %d notes for this render cycle", len(notes))
            self._notes = list(notes)
        return self._notes

    @property
    def loaded(self) -> bool:
        return self._notes is not None
