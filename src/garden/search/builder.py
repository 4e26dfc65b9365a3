"""Offline search index builder.

Walks the note directory, normalises every note and writes the flat JSON
artifact consumed by :class:`~garden.search.engine.GardenSearch`::

    garden-search-index            # uses GARDEN_SOURCE_DIR / GARDEN_SEARCH_INDEX
    garden-search-index --source notes --output public/garden-search-index.json

A missing source directory is not an error: an empty index is written so the
build can carry on before any notes have been provisioned.
"""

from __future__ import annotations

import argparse
import json
import logging
import subprocess
import sys
from pathlib import Path
from typing import AbstractSet, Sequence

from garden.config import DEFAULT_EXCLUDED_DIRS, GardenConfig
from garden.note import SearchDoc
from garden.parser import (
    format_timestamp,
    normalize_date,
    normalize_note,
    note_stem,
    split_frontmatter,
    split_inline_header,
    strip_markup,
)
from garden.sources.base import decode_note
from garden.sources.filesystem import file_mtime, iter_note_paths

logger = logging.getLogger(__name__)


def git_last_modified(path: Path) -> str | None:
    """Committer date (``YYYY-MM-DD``) of the last commit touching *path*, if any."""
    try:
        out = subprocess.run(
            ["git", "log", "-1", "--format=%cs", "--", path.name],
            cwd=path.parent,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:
        return None
    if out.returncode != 0:
        return None
    return normalize_date(out.stdout.strip())


def search_doc_for(path: Path) -> SearchDoc:
    """Build the index record for one note file."""
    raw = decode_note(path.read_bytes(), str(path))
    mtime = file_mtime(path)
    meta, body = split_frontmatter(raw)
    record = normalize_note(raw, path.name, mtime)

    inline = split_inline_header(body, note_stem(path.name))[0] if meta is None else {}
    date = (
        normalize_date((meta or {}).get("date"))
        or normalize_date(inline.get("date"))
        or git_last_modified(path)
        or format_timestamp(mtime)
    )
    return SearchDoc(id=record.title, title=record.title, date=date, tags=record.tags, body=strip_markup(body))


def build_search_docs(source_dir: Path, excluded_dirs: AbstractSet[str] = DEFAULT_EXCLUDED_DIRS) -> list[SearchDoc]:
    """Index every note below *source_dir*, newest first; ``[]`` if it is missing."""
    source_dir = Path(source_dir)
    if not source_dir.is_dir():
        logger.warning("Note directory %s not found; writing an empty search index", source_dir)
        return []
    docs = [search_doc_for(path) for path in iter_note_paths(source_dir, excluded_dirs)]
    docs.sort(key=lambda d: d.date, reverse=True)
    return docs


def write_search_index(docs: Sequence[SearchDoc], output_path: Path) -> None:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(
        json.dumps([d.to_dict() for d in docs], ensure_ascii=False, indent=2),
        encoding="utf-8",
    )


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="garden-search-index", description="Build the Garden search index.")
    parser.add_argument("--source", type=Path, default=None, help="note directory (default: GARDEN_SOURCE_DIR)")
    parser.add_argument("--output", type=Path, default=None, help="output file (default: GARDEN_SEARCH_INDEX)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    config = GardenConfig.from_env(source_dir=args.source, search_index_path=args.output)
    try:
        docs = build_search_docs(config.source_dir, config.excluded_dirs)
        write_search_index(docs, config.search_index_path)
    except Exception:
        logger.exception("Search index build failed")
        return 1
    logger.info("Wrote %d documents to %s", len(docs), config.search_index_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
