"""Static search index: offline builder and in-memory query engine."""

from garden.search.builder import build_search_docs, write_search_index
from garden.search.engine import GardenSearch, SearchIndex, SearchState
from garden.search.tokenize import parse_query, tokenize

__all__ = [
    "GardenSearch",
    "SearchIndex",
    "SearchState",
    "build_search_docs",
    "parse_query",
    "tokenize",
    "write_search_index",
]
