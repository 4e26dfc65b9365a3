"""Front-matter parsing and note normalisation.

Notes arrive from the authoring tool in several shapes:

- a YAML front-matter block (``---`` fenced) carrying ``title``/``date``/``tags``;
- a first line that simply echoes the filename, followed by up to two
  ``date:``/``title:`` header lines;
- bare text, where everything is derived from the filename and the store's
  modification time.

:func:`normalize_note` folds all of them into one :class:`~garden.note.NoteRecord`.
It never raises: every field has a final fallback.
"""

from __future__ import annotations

import datetime as dt
import logging
import re
from pathlib import PurePosixPath
from typing import Any

import yaml

from garden.note import NoteRecord

logger = logging.getLogger(__name__)

# YAML front-matter block
_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)^---[ \t]*\r?(?:\n|\Z)", re.DOTALL | re.MULTILINE)
# Inline header line emitted by the authoring tool: "date:2025-07-15" / "title: Foo"
_INLINE_META_RE = re.compile(r"^(date|title):(.*)$")
_MAX_INLINE_META_LINES = 2

_DATE_SPLIT_RE = re.compile(r"[./-]")
_FILENAME_DATE_RE = re.compile(r"^(\d{4})([.-])(\d{2})\2(\d{2})")
_FILENAME_COMPACT_DATE_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})")

# [[Target]] / [[Target|Display]]
_WIKILINK_TEXT_RE = re.compile(r"\[\[([^\[\]|]+?)(?:\|([^\[\]]+?))?\]\]")
# [Text] that is neither an image nor a standard Markdown link
_BRACKET_TEXT_RE = re.compile(r"(?<!!)\[([^\]]+)\](?!\()")
_HASHTAG_TEXT_RE = re.compile(r"(?:^|(?<=[\s*_]))#([\w-]+)")

EXCERPT_LENGTH = 80
ELLIPSIS = "…"


# ---------------------------------------------------------------------------
# Front-matter
# ---------------------------------------------------------------------------


def split_frontmatter(content: str) -> tuple[dict[str, Any] | None, str]:
    """Split a leading YAML block from *content*.

    Returns ``(metadata, body)``.  ``metadata`` is ``None`` when there is no
    front-matter block at all and ``{}`` when the block is empty or unparseable.
    """
    match = _FRONTMATTER_RE.match(content)
    if not match:
        return None, content
    try:
        meta = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        logger.debug("Ignoring unparseable front-matter: %s", exc)
        meta = None
    if not isinstance(meta, dict):
        meta = {}
    return meta, content[match.end() :]


def parse_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Return ``(metadata_dict, body)``; the dict is empty without front-matter."""
    meta, body = split_frontmatter(content)
    return meta or {}, body


def parse_tags(value: Any) -> list[str]:
    """Normalise a front-matter ``tags`` value (list or comma-separated string)."""
    if not value:
        return []
    if isinstance(value, str):
        return [t.strip() for t in value.split(",") if t.strip()]
    if isinstance(value, (list, tuple)):
        return [str(t).strip() for t in value if t is not None and str(t).strip()]
    return [str(value)]


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def _iso(year: int, month: int, day: int) -> str | None:
    try:
        return dt.date(year, month, day).isoformat()
    except ValueError:
        return None


def normalize_date(value: Any) -> str | None:
    """Return *value* as ``YYYY-MM-DD`` or ``None`` when it is not a usable date.

    Accepts ``date``/``datetime`` objects (as produced by YAML) and strings such
    as ``2025.7.5``, ``2025-07-05`` or ``2025/07/05 10:30``.
    """
    if isinstance(value, dt.datetime):
        return value.date().isoformat()
    if isinstance(value, dt.date):
        return value.isoformat()
    if not isinstance(value, str):
        return None
    text = value.strip().split(" ")[0].split("T")[0]
    parts = _DATE_SPLIT_RE.split(text)
    if len(parts) != 3 or not all(p.isdigit() for p in parts) or len(parts[0]) != 4:
        return None
    year, month, day = (int(p) for p in parts)
    return _iso(year, month, day)


def date_from_filename(filename: str) -> str | None:
    """Extract a leading ``YYYY.MM.DD``, ``YYYY-MM-DD`` or ``YYYYMMDD`` date."""
    m = _FILENAME_DATE_RE.match(filename)
    if m:
        return _iso(int(m.group(1)), int(m.group(3)), int(m.group(4)))
    m = _FILENAME_COMPACT_DATE_RE.match(filename)
    if m:
        return _iso(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    return None


def format_timestamp(value: dt.datetime) -> str:
    """Format a store timestamp as a UTC ``YYYY-MM-DD`` string."""
    if value.tzinfo is not None:
        value = value.astimezone(dt.timezone.utc)
    return value.date().isoformat()


# ---------------------------------------------------------------------------
# Normaliser
# ---------------------------------------------------------------------------


def split_inline_header(body: str, stem: str) -> tuple[dict[str, str], str]:
    """Drop a filename-echo first line and consume up to two ``date:``/``title:`` lines.

    Returns ``(values, rest_of_body)``.
    """
    lines = body.split("\n")
    pos = 0
    if lines and lines[0].rstrip("\r") == stem:
        pos = 1

    found: dict[str, str] = {}
    consumed = 0
    while consumed < _MAX_INLINE_META_LINES and pos < len(lines):
        m = _INLINE_META_RE.match(lines[pos].rstrip("\r"))
        if not m:
            break
        found.setdefault(m.group(1), m.group(2).strip())
        pos += 1
        consumed += 1

    rest = "\n".join(lines[pos:])
    if consumed:
        rest = rest.lstrip("\r\n")
    return found, rest


def note_stem(filename: str) -> str:
    return PurePosixPath(filename).stem


def title_from_filename(filename: str) -> str:
    return re.sub(r"\.md$", "", filename)


def normalize_note(content: str, filename: str, modified_at: dt.datetime) -> NoteRecord:
    """Resolve title, date, tags and body for one raw note file."""
    meta, body = split_frontmatter(content)
    inline: dict[str, str] = {}
    if meta is None:
        meta = {}
        inline, body = split_inline_header(body, note_stem(filename))

    fm_title = meta.get("title")
    title = (
        (str(fm_title).strip() if fm_title is not None else "")
        or inline.get("title")
        or title_from_filename(filename)
    )

    date = (
        normalize_date(meta.get("date"))
        or normalize_date(inline.get("date"))
        or date_from_filename(filename)
        or format_timestamp(modified_at)
    )

    return NoteRecord(
        title=title,
        date=date,
        tags=parse_tags(meta.get("tags")),
        body=body,
        frontmatter=meta,
    )


# ---------------------------------------------------------------------------
# Plain-text helpers
# ---------------------------------------------------------------------------


def strip_markup(text: str) -> str:
    """Remove link punctuation and hashtag markers; newlines become spaces."""
    text = _WIKILINK_TEXT_RE.sub(lambda m: m.group(2) or m.group(1), text)
    text = _BRACKET_TEXT_RE.sub(r"\1", text)
    text = _HASHTAG_TEXT_RE.sub(r"\1", text)
    return text.replace("\r", "").replace("\n", " ").strip()


def make_excerpt(text: str, limit: int = EXCERPT_LENGTH) -> str:
    plain = strip_markup(text)
    if len(plain) > limit:
        return plain[:limit] + ELLIPSIS
    return plain
