"""Link extraction for the three Garden link syntaxes.

Matchers run in a fixed order and every later matcher skips text already
claimed by an earlier one, so the inner brackets of ``[[Page]]`` are never
seen again as a plain ``[Page]`` link.

============  =========================  =============================
kind          syntax                     target
============  =========================  =============================
wikilink      ``[[Page]]``,              ``Page``
              ``[[Page|Label]]``
bracket       ``[Page]`` (not ``![..]``  ``Page``
              nor ``[..](url)``)
hashtag       ``#page`` after start,     ``page``
              whitespace, ``*`` or ``_``
============  =========================  =============================
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from garden.note import LinkEdge, LinkKind
from garden.parser import strip_markup
from garden.slug import title_to_slug

WIKILINK_RE = re.compile(r"\[\[([^\[\]|]+?)(?:\|([^\[\]]+?))?\]\]")
BRACKET_RE = re.compile(r"(?<!!)\[([^\[\]]+?)\](?!\()")
# Emphasis markers may precede a hashtag: **#tag** is still a tag.
HASHTAG_RE = re.compile(r"(?:^|(?<=[\s*_]))#([\w-]+)")
# Standard links and images; nothing inside them is a Garden link.
MARKDOWN_LINK_RE = re.compile(r"!?\[[^\[\]]*\]\([^)]*\)")


@dataclass(frozen=True)
class LinkMatch:
    kind: LinkKind
    start: int
    end: int
    #: Title of the linked page
    target: str
    #: Text shown for the link
    label: str

    @property
    def slug(self) -> str:
        return title_to_slug(self.target)


@dataclass(frozen=True)
class _Matcher:
    kind: LinkKind
    pattern: re.Pattern[str]

    def candidates(self, text: str) -> Iterable[LinkMatch]:
        for m in self.pattern.finditer(text):
            target = m.group(1).strip()
            if self.kind == "wikilink":
                label = (m.group(2) or m.group(1)).strip()
            elif self.kind == "hashtag":
                label = f"#{target}"
            else:
                label = target
            yield LinkMatch(self.kind, m.start(), m.end(), target, label)


MATCHERS: tuple[_Matcher, ...] = (
    _Matcher("wikilink", WIKILINK_RE),
    _Matcher("bracket", BRACKET_RE),
    _Matcher("hashtag", HASHTAG_RE),
)


def _overlaps(match: LinkMatch, spans: list[tuple[int, int]]) -> bool:
    return any(match.start < end and start < match.end for start, end in spans)


def extract_links(text: str) -> list[LinkMatch]:
    """Return every link in *text*, ordered by position.

    Links whose target has no letters or digits (e.g. the ``[ ]`` of a task
    list item) are dropped because they cannot be addressed by slug.
    """
    consumed: list[tuple[int, int]] = [m.span() for m in MARKDOWN_LINK_RE.finditer(text)]
    found: list[LinkMatch] = []
    for matcher in MATCHERS:
        for match in matcher.candidates(text):
            if _overlaps(match, consumed):
                continue
            consumed.append((match.start, match.end))
            if match.slug:
                found.append(match)
    found.sort(key=lambda m: m.start)
    return found


def _line_context(text: str, start: int, end: int) -> str:
    line_start = text.rfind("\n", 0, start) + 1
    line_end = text.find("\n", end)
    if line_end == -1:
        line_end = len(text)
    return strip_markup(text[line_start:line_end])


def extract_edges(source_title: str, text: str) -> list[LinkEdge]:
    """Return one :class:`LinkEdge` per link found in *text* (not de-duplicated)."""
    source_slug = title_to_slug(source_title)
    return [
        LinkEdge(
            source_slug=source_slug,
            source_title=source_title,
            target_slug=match.slug,
            target_title=match.target,
            kind=match.kind,
            context=_line_context(text, match.start, match.end),
        )
        for match in extract_links(text)
    ]
