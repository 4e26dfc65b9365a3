"""Markdown → HTML rendering with Garden link rewriting.

Built on Python-Markdown.  :class:`GardenLinkExtension` adds three inline
processors, one per link syntax (see :mod:`garden.links`), each producing a
fresh ``<a>`` element.  Links to slugs without a backing note are rendered as
``garden-link-empty`` anchors with no ``href``.  Raw HTML in notes is passed
through untouched; sanitising is up to the page that embeds the output.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as etree
from typing import AbstractSet
from urllib.parse import quote

import markdown
from markdown.blockprocessors import HashHeaderProcessor
from markdown.extensions import Extension
from markdown.inlinepatterns import InlineProcessor
from markdown.util import AtomicString

from garden.links import BRACKET_RE, HASHTAG_RE, WIKILINK_RE
from garden.slug import title_to_slug

GARDEN_PATH = "/garden"
MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "sane_lists"]


def garden_href(slug: str) -> str:
    return f"{GARDEN_PATH}/{quote(slug, safe='')}"


def link_element(label: str, slug: str, exists: bool, css_class: str = "garden-link") -> etree.Element:
    """Build the anchor for a Garden link; missing targets get no ``href``."""
    el = etree.Element("a")
    if exists:
        el.set("href", garden_href(slug))
        el.set("class", css_class)
    else:
        el.set("class", f"{css_class} garden-link-empty")
    el.text = AtomicString(label)
    return el


# ---------------------------------------------------------------------------
# Inline processors
# ---------------------------------------------------------------------------


class _GardenLinkProcessor(InlineProcessor):
    css_class = "garden-link"
    # Label text of a standard [text](url) link is left as written.
    ANCESTOR_EXCLUDES = ("a",)

    def __init__(self, pattern: re.Pattern[str], existing_slugs: AbstractSet[str], md: markdown.Markdown) -> None:
        super().__init__(pattern.pattern, md)
        self.existing_slugs = existing_slugs

    def target_and_label(self, m: re.Match[str]) -> tuple[str, str]:
        target = m.group(1).strip()
        return target, target

    def handleMatch(self, m: re.Match[str], data: str):  # noqa: N802
        target, label = self.target_and_label(m)
        slug = title_to_slug(target)
        if not slug:
            return None, None, None
        el = link_element(label, slug, slug in self.existing_slugs, self.css_class)
        return el, m.start(0), m.end(0)


class WikiLinkProcessor(_GardenLinkProcessor):
    def target_and_label(self, m: re.Match[str]) -> tuple[str, str]:
        target = m.group(1).strip()
        return target, (m.group(2) or m.group(1)).strip()


class BracketLinkProcessor(_GardenLinkProcessor):
    pass


class HashtagProcessor(_GardenLinkProcessor):
    css_class = "garden-hashtag"

    def target_and_label(self, m: re.Match[str]) -> tuple[str, str]:
        tag = m.group(1)
        return tag, f"#{tag}"


class StrictHashHeaderProcessor(HashHeaderProcessor):
    """ATX headings that need whitespace after the hashes, so ``#tag`` lines stay text."""

    RE = re.compile(r"(?:^|\n)(?P<level>#{1,6})(?=[ \t]|\n|$)(?P<header>(?:\\.|[^\\])*?)#*(?:\n|$)")


class GardenLinkExtension(Extension):
    def __init__(self, existing_slugs: AbstractSet[str], **kwargs) -> None:
        self.existing_slugs = existing_slugs
        super().__init__(**kwargs)

    def extendMarkdown(self, md: markdown.Markdown) -> None:  # noqa: N802
        # After backticks (190) and escapes (180), before reference links (170).
        md.inlinePatterns.register(WikiLinkProcessor(WIKILINK_RE, self.existing_slugs, md), "garden_wikilink", 175)
        # After links, images and short references have claimed their brackets.
        md.inlinePatterns.register(BracketLinkProcessor(BRACKET_RE, self.existing_slugs, md), "garden_bracket", 128)
        md.inlinePatterns.register(HashtagProcessor(HASHTAG_RE, self.existing_slugs, md), "garden_hashtag", 127)
        md.parser.blockprocessors.register(StrictHashHeaderProcessor(md.parser), "hashheader", 70)


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------


class GardenRenderer:
    """Renders note bodies against a fixed set of existing slugs."""

    def __init__(self, existing_slugs: AbstractSet[str]) -> None:
        self.existing_slugs = frozenset(existing_slugs)
        self._md = markdown.Markdown(
            extensions=[*MARKDOWN_EXTENSIONS, GardenLinkExtension(self.existing_slugs)],
        )

    def render(self, body: str) -> str:
        return self._md.reset().convert(body)


def render_markdown(body: str, existing_slugs: AbstractSet[str]) -> str:
    """Convert *body* to HTML, rewriting Garden links against *existing_slugs*."""
    return GardenRenderer(existing_slugs).render(body)
