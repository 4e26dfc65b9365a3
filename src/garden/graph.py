"""LinkGraph: every link edge in the corpus and the queries answered from it.

The graph is a flat edge list produced by one scan of the corpus.  Each query
walks that list again (O(edges)), which is plenty for a single author's notes
and keeps first-encountered ordering trivially stable.
"""

from __future__ import annotations

from typing import Iterable

from garden.links import extract_edges
from garden.note import BacklinkEntry, LinkEdge, LinkedPageSummary, NoteRecord, TwoHopGroup
from garden.parser import make_excerpt
from garden.slug import title_to_slug


class LinkGraph:
    """Edges of the Garden plus the records they were extracted from."""

    def __init__(self, records: Iterable[NoteRecord]) -> None:
        self.records: dict[str, NoteRecord] = {}
        self.edges: list[LinkEdge] = []
        for record in records:
            slug = title_to_slug(record.title)
            # Notes whose titles share a slug are one node; the first one wins.
            self.records.setdefault(slug, record)
            self.edges.extend(extract_edges(record.title, record.body))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def edges_from(self, slug: str) -> list[LinkEdge]:
        return [e for e in self.edges if e.source_slug == slug]

    def edges_to(self, slug: str) -> list[LinkEdge]:
        return [e for e in self.edges if e.target_slug == slug]

    def summary(self, slug: str, fallback_title: str) -> LinkedPageSummary:
        """Card data for *slug*: full for real notes, title only for virtual pages."""
        record = self.records.get(slug)
        if record is None:
            return LinkedPageSummary(slug=slug, title=fallback_title)
        return LinkedPageSummary(
            slug=slug,
            title=record.title,
            excerpt=make_excerpt(record.body),
            date=record.date,
        )

    def title_for(self, slug: str) -> str | None:
        record = self.records.get(slug)
        if record is not None:
            return record.title
        return self.all_linked_slugs().get(slug)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def all_linked_slugs(self) -> dict[str, str]:
        """Map every link target slug to the title of its first edge."""
        result: dict[str, str] = {}
        for edge in self.edges:
            result.setdefault(edge.target_slug, edge.target_title)
        return result

    def forward_links(self, slug: str) -> list[LinkedPageSummary]:
        """Distinct pages *slug* links to, in order of first mention."""
        seen: dict[str, str] = {}
        for edge in self.edges_from(slug):
            if edge.target_slug != slug:
                seen.setdefault(edge.target_slug, edge.target_title)
        return [self.summary(s, t) for s, t in seen.items()]

    def backlinks(self, slug: str) -> list[BacklinkEntry]:
        """One entry per page linking to *slug*, with the first linking line as context."""
        seen: dict[str, BacklinkEntry] = {}
        for edge in self.edges_to(slug):
            if edge.source_slug == slug or edge.source_slug in seen:
                continue
            seen[edge.source_slug] = BacklinkEntry(edge.source_slug, edge.source_title, edge.context)
        return list(seen.values())

    def linked_page_slugs(self, slug: str) -> dict[str, str]:
        targets = {e.target_slug for e in self.edges_from(slug)}
        found: dict[str, str] = {}
        # Pages that mention the same things this page mentions...
        for edge in self.edges:
            if edge.target_slug in targets and edge.source_slug != slug:
                found.setdefault(edge.source_slug, edge.source_title)
        # ...then plain backlinks.
        for edge in self.edges:
            if edge.target_slug == slug and edge.source_slug != slug:
                found.setdefault(edge.source_slug, edge.source_title)
        return found

    def linked_pages(self, slug: str) -> list[LinkedPageSummary]:
        """Shared-forward-link peers followed by backlinks, never *slug* itself."""
        return [self.summary(s, t) for s, t in self.linked_page_slugs(slug).items()]

    def two_hop_links(self, slug: str) -> list[TwoHopGroup]:
        """Pages reachable through a target of one of *slug*'s linked pages.

        Neither *slug* nor its linked pages ever appear in a group, and groups
        left empty after that exclusion are dropped.
        """
        linked = self.linked_page_slugs(slug)
        excluded = set(linked) | {slug}

        vias: dict[str, str] = {}
        for edge in self.edges:
            if edge.source_slug in linked and edge.target_slug not in excluded:
                vias.setdefault(edge.target_slug, edge.target_title)

        first_titles = self.all_linked_slugs()
        groups: list[TwoHopGroup] = []
        for via_slug, edge_title in vias.items():
            members: dict[str, str] = {}
            for edge in self.edges_to(via_slug):
                source = edge.source_slug
                if source in excluded or source == via_slug:
                    continue
                members.setdefault(source, edge.source_title)
            if not members:
                continue
            record = self.records.get(via_slug)
            via_title = record.title if record else first_titles.get(via_slug, edge_title)
            groups.append(
                TwoHopGroup(
                    via=via_title,
                    via_slug=via_slug,
                    pages=[self.summary(s, t) for s, t in members.items()],
                )
            )
        return groups
