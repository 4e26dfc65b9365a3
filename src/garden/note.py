"""Core Garden dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

LinkKind = Literal["wikilink", "bracket", "hashtag"]


@dataclass(frozen=True)
class Note:
    """A raw note file as delivered by a content store."""

    path: str
    filename: str
    content: str
    modified_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "filename": self.filename,
            "content": self.content,
            "modified_at": self.modified_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Note":
        return cls(
            path=data["path"],
            filename=data["filename"],
            content=data["content"],
            modified_at=datetime.fromisoformat(data["modified_at"]),
        )


@dataclass
class NoteRecord:
    """Canonical ``{title, date, tags, body}`` view of one note."""

    title: str
    date: str
    tags: list[str] = field(default_factory=list)
    body: str = ""
    #: Raw front-matter mapping (empty when the note has none)
    frontmatter: dict[str, Any] = field(default_factory=dict)


@dataclass
class GardenNode:
    """A Garden entry backed by a real note file."""

    slug: str
    title: str
    date: str
    tags: list[str] = field(default_factory=list)
    content_html: str = ""
    excerpt: str = ""
    mtime: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "title": self.title,
            "date": self.date,
            "tags": self.tags,
            "content_html": self.content_html,
            "excerpt": self.excerpt,
            "mtime": self.mtime.isoformat() if self.mtime else None,
        }


@dataclass(frozen=True)
class LinkEdge:
    """One link occurrence found in a note body."""

    source_slug: str
    source_title: str
    target_slug: str
    target_title: str
    kind: LinkKind = "bracket"
    #: Source line around the link, bracket punctuation removed
    context: str = ""


@dataclass
class LinkedPageSummary:
    """Card data for a linked page; ``excerpt``/``date`` are ``None`` for virtual pages."""

    slug: str
    title: str
    excerpt: str | None = None
    date: str | None = None


@dataclass
class BacklinkEntry:
    slug: str
    title: str
    context: str


@dataclass
class TwoHopGroup:
    """Pages sharing the forward-link target *via* with the current page."""

    via: str
    via_slug: str
    pages: list[LinkedPageSummary] = field(default_factory=list)


@dataclass
class SearchDoc:
    """One record of the static search index artifact."""

    id: str
    title: str
    date: str
    tags: list[str] = field(default_factory=list)
    body: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "date": self.date,
            "tags": self.tags,
            "body": self.body,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SearchDoc":
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", data["id"])),
            date=str(data.get("date", "")),
            tags=[str(t) for t in data.get("tags") or []],
            body=str(data.get("body", "")),
        )


@dataclass
class SearchResult:
    id: str
    title: str
    date: str
    tags: list[str]
    #: Matching excerpt of the body; empty for quick search
    snippet: str
    score: float
