"""Content stores that supply the raw note corpus."""

from garden.sources.base import ContentStore, decode_note, is_note_path
from garden.sources.dropbox import DropboxStore
from garden.sources.filesystem import FilesystemStore
from garden.sources.snapshot import FallbackStore, SnapshotStore, read_snapshot, write_snapshot
from garden.sources.wordpress import WordPressStore

__all__ = [
    "ContentStore",
    "DropboxStore",
    "FallbackStore",
    "FilesystemStore",
    "SnapshotStore",
    "WordPressStore",
    "decode_note",
    "is_note_path",
    "read_snapshot",
    "write_snapshot",
]
