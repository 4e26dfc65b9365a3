"""GardenIndex: the node and link-graph queries used by the page layer.

One index serves one render cycle.  It reads the corpus through a
:class:`~garden.cache.CorpusCache`, so however many queries a page issues the
content store is hit once.  Store errors propagate unchanged: an unreachable
corpus must never look like an empty one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from garden.cache import CorpusCache
from garden.graph import LinkGraph
from garden.note import BacklinkEntry, GardenNode, LinkedPageSummary, Note, NoteRecord, TwoHopGroup
from garden.parser import make_excerpt, normalize_note
from garden.render import GardenRenderer
from garden.slug import title_to_slug
from garden.sources.base import ContentStore

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    note: Note
    record: NoteRecord
    slug: str


class GardenIndex:
    """Node listing, node lookup and link-graph queries over one corpus snapshot."""

    def __init__(self, cache: CorpusCache) -> None:
        self.cache = cache
        self._entries: list[_Entry] | None = None
        self._graph: LinkGraph | None = None
        self._renderer: GardenRenderer | None = None
        self._nodes: dict[int, GardenNode] = {}

    @classmethod
    def for_cycle(cls, store: ContentStore) -> "GardenIndex":
        """Fresh index with its own corpus cache for a new render cycle."""
        return cls(CorpusCache(store))

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def _build(self) -> None:
        entries = []
        for note in self.cache.notes():
            record = normalize_note(note.content, note.filename, note.modified_at)
            entries.append(_Entry(note, record, title_to_slug(record.title)))
        self._entries = entries
        self._graph = LinkGraph(e.record for e in entries)
        self._renderer = GardenRenderer({e.slug for e in entries})
        logger.debug("Indexed %d notes, %d link edges", len(entries), len(self._graph.edges))

    @property
    def entries(self) -> list[_Entry]:
        if self._entries is None:
            self._build()
        return self._entries

    @property
    def graph(self) -> LinkGraph:
        if self._graph is None:
            self._build()
        return self._graph

    def _node(self, position: int) -> GardenNode:
        node = self._nodes.get(position)
        if node is None:
            entry = self.entries[position]
            node = GardenNode(
                slug=entry.slug,
                title=entry.record.title,
                date=entry.record.date,
                tags=list(entry.record.tags),
                content_html=self._renderer.render(entry.record.body),
                excerpt=make_excerpt(entry.record.body),
                mtime=entry.note.modified_at,
            )
            self._nodes[position] = node
        return node

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def get_all_nodes(self) -> list[GardenNode]:
        """Every real node, newest date first, then most recently modified."""
        nodes = [self._node(i) for i in range(len(self.entries))]
        return sorted(
            nodes,
            key=lambda n: (n.date, n.mtime.timestamp() if n.mtime else 0.0),
            reverse=True,
        )

    def get_node_by_slug(self, slug: str) -> GardenNode | None:
        for i, entry in enumerate(self.entries):
            if entry.slug == slug:
                return self._node(i)
        return None

    def get_all_tags(self) -> list[str]:
        return sorted({tag for e in self.entries for tag in e.record.tags})

    def get_nodes_with_tag(self, tag: str) -> list[GardenNode]:
        return [n for n in self.get_all_nodes() if tag in n.tags]

    # ------------------------------------------------------------------
    # Pages (real + virtual)
    # ------------------------------------------------------------------

    def get_all_page_slugs(self) -> list[str]:
        """Slugs of real nodes followed by virtual pages, for static path generation."""
        slugs: dict[str, None] = {}
        for entry in self.entries:
            if entry.slug:
                slugs.setdefault(entry.slug)
        for slug in self.graph.all_linked_slugs():
            slugs.setdefault(slug)
        return list(slugs)

    def get_all_linked_slugs(self) -> dict[str, str]:
        return self.graph.all_linked_slugs()

    def get_virtual_page_title(self, slug: str) -> str | None:
        """Title of a page that is only ever linked to, ``None`` for real or unknown slugs."""
        if slug in self.graph.records:
            return None
        return self.graph.all_linked_slugs().get(slug)

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    def get_linked_pages(self, slug: str) -> list[LinkedPageSummary]:
        return self.graph.linked_pages(slug)

    def get_two_hop_links(self, slug: str) -> list[TwoHopGroup]:
        return self.graph.two_hop_links(slug)

    def get_forward_links(self, slug: str) -> list[LinkedPageSummary]:
        return self.graph.forward_links(slug)

    def get_backlinks(self, slug: str) -> list[BacklinkEntry]:
        return self.graph.backlinks(slug)
