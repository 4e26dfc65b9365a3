"""Garden: link graph and search for a personal note corpus."""

from garden.cache import CorpusCache
from garden.graph import LinkGraph
from garden.index import GardenIndex
from garden.links import extract_edges, extract_links
from garden.note import GardenNode, LinkEdge, LinkedPageSummary, Note, SearchDoc, TwoHopGroup
from garden.parser import normalize_note, parse_frontmatter
from garden.render import render_markdown
from garden.slug import title_to_slug

__all__ = [
    "CorpusCache",
    "GardenIndex",
    "GardenNode",
    "LinkEdge",
    "LinkGraph",
    "LinkedPageSummary",
    "Note",
    "SearchDoc",
    "TwoHopGroup",
    "extract_edges",
    "extract_links",
    "normalize_note",
    "parse_frontmatter",
    "render_markdown",
    "title_to_slug",
]
