"""Exception hierarchy for the Garden package."""

from __future__ import annotations


class GardenError(Exception):
    """Base class for all Garden errors."""


class ContentStoreError(GardenError):
    """The note corpus could not be fetched from its content store."""

    def __init__(self, message: str, *, store: str = "") -> None:
        self.store = store
        super().__init__(f"[{store}] {message}" if store else message)
