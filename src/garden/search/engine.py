"""In-memory full-text search over the static Garden search index.

:class:`SearchIndex` is a small inverted index with BM25+ scoring, per-field
boosts, prefix matching and bounded fuzzy matching (RapidFuzz Levenshtein).
:class:`GardenSearch` wraps it with the two-stage protocol used by the UI:

- *quick search*: title and tags only, top 8 hits, no snippet (type-ahead);
- *full search*: every field, weighted title > tags > body, with snippets.

Both accept ``-word`` exclusion terms, applied as a substring filter after the
index query.  Loading never raises: on any failure the engine stays not ready
and search is simply unavailable.
"""

from __future__ import annotations

import bisect
import json
import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Sequence

import httpx
from rapidfuzz import process
from rapidfuzz.distance import Levenshtein

from garden.config import SEARCH_INDEX_URL
from garden.note import SearchDoc, SearchResult
from garden.search.tokenize import parse_query, tokenize
from garden.store import Store

logger = logging.getLogger(__name__)

FIELDS = ("title", "tags", "body")
QUICK_FIELDS = ("title", "tags")
FULL_BOOSTS = {"title": 3.0, "tags": 2.0, "body": 1.0}
QUICK_LIMIT = 8
FUZZY = 0.2
MAX_FUZZY_DISTANCE = 6
PREFIX_WEIGHT = 0.375
FUZZY_WEIGHT = 0.45
SNIPPET_LENGTH = 120
SNIPPET_LEAD = 30
ELLIPSIS = "…"

# BM25+ parameters
BM25_K = 1.2
BM25_B = 0.7
BM25_D = 0.5


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def field_text(doc: SearchDoc, name: str) -> str:
    if name == "tags":
        return " ".join(doc.tags)
    return getattr(doc, name)


@dataclass
class _Hit:
    score: float = 0.0
    terms: set[str] = field(default_factory=set)


class SearchIndex:
    """Inverted index over :data:`FIELDS` of a fixed list of documents.

    Documents are addressed by position, so two documents sharing an ``id``
    are both indexed and both returned.
    """

    def __init__(self, docs: Iterable[SearchDoc], tokenizer: Callable[[str], list[str]] = tokenize) -> None:
        self.docs: list[SearchDoc] = list(docs)
        self.tokenizer = tokenizer
        # term -> field -> doc position -> term frequency
        self._postings: dict[str, dict[str, dict[int, int]]] = defaultdict(lambda: defaultdict(dict))
        self._field_lengths: dict[str, list[int]] = {name: [] for name in FIELDS}
        for pos, doc in enumerate(self.docs):
            for name in FIELDS:
                tokens = self.tokenizer(field_text(doc, name))
                self._field_lengths[name].append(len(tokens))
                for token in tokens:
                    freqs = self._postings[token][name]
                    freqs[pos] = freqs.get(pos, 0) + 1
        self._vocabulary: list[str] = sorted(self._postings)
        self._avg_lengths = {
            name: (sum(lengths) / len(lengths) if lengths else 0.0)
            for name, lengths in self._field_lengths.items()
        }

    def __len__(self) -> int:
        return len(self.docs)

    # ------------------------------------------------------------------
    # Term expansion
    # ------------------------------------------------------------------

    def _prefix_terms(self, term: str) -> list[str]:
        start = bisect.bisect_left(self._vocabulary, term)
        found: list[str] = []
        for candidate in self._vocabulary[start:]:
            if not candidate.startswith(term):
                break
            found.append(candidate)
        return found

    def _fuzzy_terms(self, term: str, max_distance: int) -> dict[str, int]:
        if max_distance <= 0 or not self._vocabulary:
            return {}
        matches = process.extract(
            term,
            self._vocabulary,
            scorer=Levenshtein.distance,
            score_cutoff=max_distance,
            limit=None,
        )
        return {choice: int(distance) for choice, distance, _ in matches}

    def expand(self, term: str, *, prefix: bool, fuzzy: float) -> list[tuple[str, float]]:
        """Return ``(index_term, weight)`` pairs matching query *term*."""
        expanded: dict[str, float] = {}
        if term in self._postings:
            expanded[term] = 1.0
        if prefix:
            for candidate in self._prefix_terms(term):
                distance = len(candidate) - len(term)
                if distance:
                    expanded[candidate] = PREFIX_WEIGHT * len(candidate) / (len(candidate) + 0.3 * distance)
        if fuzzy:
            max_distance = min(MAX_FUZZY_DISTANCE, _round_half_up(len(term) * fuzzy))
            for candidate, distance in self._fuzzy_terms(term, max_distance).items():
                if distance and candidate not in expanded:
                    expanded[candidate] = FUZZY_WEIGHT * len(candidate) / (len(candidate) + distance)
        return list(expanded.items())

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _bm25(self, term_freq: int, matching: int, name: str, pos: int) -> float:
        total = len(self.docs)
        idf = math.log(1 + (total - matching + 0.5) / (matching + 0.5))
        avg = self._avg_lengths[name]
        ratio = self._field_lengths[name][pos] / avg if avg else 1.0
        return idf * (BM25_D + term_freq * (BM25_K + 1) / (term_freq + BM25_K * (1 - BM25_B + BM25_B * ratio)))

    def search(
        self,
        query: str,
        *,
        fields: Sequence[str] = FIELDS,
        boost: Mapping[str, float] | None = None,
        prefix: bool = True,
        fuzzy: float = FUZZY,
    ) -> list[tuple[int, float]]:
        """Return ``(doc_position, score)`` pairs, best first.

        Matches for different query terms are OR-combined; documents matching
        more distinct query terms are scored proportionally higher.
        """
        boost = boost or {}
        hits: dict[int, _Hit] = {}
        for term in self.tokenizer(query):
            for index_term, weight in self.expand(term, prefix=prefix, fuzzy=fuzzy):
                by_field = self._postings.get(index_term, {})
                for name in fields:
                    freqs = by_field.get(name)
                    if not freqs:
                        continue
                    field_boost = boost.get(name, 1.0)
                    for pos, term_freq in freqs.items():
                        hit = hits.setdefault(pos, _Hit())
                        hit.score += weight * field_boost * self._bm25(term_freq, len(freqs), name, pos)
                        hit.terms.add(term)
        ranked = [(pos, hit.score * max(1, len(hit.terms))) for pos, hit in hits.items()]
        ranked.sort(key=lambda item: item[1], reverse=True)
        return ranked


# ---------------------------------------------------------------------------
# Query helpers
# ---------------------------------------------------------------------------


def is_excluded(doc: SearchDoc, excludes: Sequence[str]) -> bool:
    if not excludes:
        return False
    haystack = f"{doc.title} {' '.join(doc.tags)} {doc.body}".lower()
    return any(ex in haystack for ex in excludes)


def _window(body: str, index: int, max_len: int) -> str:
    start = max(0, index - SNIPPET_LEAD)
    end = min(len(body), index + max_len - SNIPPET_LEAD)
    return (ELLIPSIS if start > 0 else "") + body[start:end] + (ELLIPSIS if end < len(body) else "")


def extract_snippet(body: str, query: str, max_len: int = SNIPPET_LENGTH) -> str:
    """Excerpt of *body* around the first occurrence of *query*.

    Falls back to the first matching query bigram/token, then to the start
    of the body.
    """
    lower = body.lower()
    q = query.lower()
    idx = lower.find(q) if q else -1
    if idx != -1:
        return _window(body, idx, max_len)
    for token in tokenize(q):
        idx = lower.find(token)
        if idx != -1:
            return _window(body, idx, max_len)
    return body[:max_len] + (ELLIPSIS if len(body) > max_len else "")


# ---------------------------------------------------------------------------
# Two-stage search
# ---------------------------------------------------------------------------


@dataclass
class SearchState:
    ready: bool = False
    quick_results: list[SearchResult] = field(default_factory=list)
    #: ``None`` means no full search is active; ``[]`` means zero hits
    full_results: list[SearchResult] | None = None


class GardenSearch:
    """Quick/full search over the Garden index, backed by an observable store."""

    def __init__(self, store: Store[SearchState] | None = None) -> None:
        self.store = store or Store(SearchState())
        self._index: SearchIndex | None = None
        self._disposed = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def ready(self) -> bool:
        return self.store.state.ready

    @property
    def quick_results(self) -> list[SearchResult]:
        return self.store.state.quick_results

    @property
    def full_results(self) -> list[SearchResult] | None:
        return self.store.state.full_results

    def subscribe(self, listener: Callable[[SearchState], None]) -> Callable[[], None]:
        return self.store.subscribe(listener)

    def _update(self, **changes: Any) -> None:
        state = self.store.state
        self.store.set(
            SearchState(
                ready=changes.get("ready", state.ready),
                quick_results=changes.get("quick_results", state.quick_results),
                full_results=changes.get("full_results", state.full_results),
            )
        )

    def dispose(self) -> None:
        """Stop accepting a pending load (the consumer has gone away)."""
        self._disposed = True

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_docs(self, docs: Iterable[SearchDoc | Mapping[str, Any]]) -> None:
        parsed = [d if isinstance(d, SearchDoc) else SearchDoc.from_dict(d) for d in docs]
        index = SearchIndex(parsed)
        if self._disposed:
            return
        self._index = index
        logger.debug("Search index ready: %d documents", len(index))
        self._update(ready=True)

    def load_json(self, text: str | bytes) -> bool:
        """Load an index artifact; returns ``False`` (search disabled) on any error."""
        try:
            data = json.loads(text)
            if not isinstance(data, list):
                raise ValueError("search index must be a JSON array")
            self.load_docs(data)
        except (ValueError, KeyError, TypeError) as exc:
            logger.debug("Search index unusable, search disabled: %s", exc)
            return False
        return self.ready

    def load_file(self, path: Path | str) -> bool:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Search index not readable, search disabled: %s", exc)
            return False
        return self.load_json(text)

    async def load_url(
        self,
        url: str = SEARCH_INDEX_URL,
        *,
        base_url: str = "",
        client: httpx.AsyncClient | None = None,
    ) -> bool:
        """Fetch the index over HTTP; the only suspension point of the engine."""
        try:
            if client is None:
                async with httpx.AsyncClient(base_url=base_url) as owned:
                    r = await owned.get(url)
            else:
                r = await client.get(url)
            r.raise_for_status()
        except httpx.HTTPError as exc:
            logger.debug("Search index fetch failed, search disabled: %s", exc)
            return False
        return self.load_json(r.content)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _result(self, pos: int, score: float, snippet: str) -> SearchResult:
        doc = self._index.docs[pos]
        return SearchResult(
            id=doc.id,
            title=doc.title,
            date=doc.date,
            tags=list(doc.tags),
            snippet=snippet,
            score=score,
        )

    def _filtered(self, ranked: list[tuple[int, float]], excludes: Sequence[str]) -> list[tuple[int, float]]:
        return [(pos, score) for pos, score in ranked if not is_excluded(self._index.docs[pos], excludes)]

    def quick_search(self, query: str) -> list[SearchResult]:
        """Prefix/fuzzy search over title and tags for type-ahead suggestions."""
        parsed = parse_query(query)
        if self._index is None or not parsed.terms:
            self._update(quick_results=[])
            return []
        ranked = self._index.search(parsed.terms, fields=QUICK_FIELDS)
        results = [self._result(pos, score, "") for pos, score in self._filtered(ranked, parsed.excludes)[:QUICK_LIMIT]]
        self._update(quick_results=results)
        return results

    def full_search(self, query: str) -> list[SearchResult] | None:
        """Weighted search over every field; ``None`` when there is nothing to search."""
        parsed = parse_query(query)
        if self._index is None or not parsed.terms:
            self._update(full_results=None)
            return None
        ranked = self._index.search(parsed.terms, fields=FIELDS, boost=FULL_BOOSTS)
        results = [
            self._result(pos, score, extract_snippet(self._index.docs[pos].body, parsed.terms))
            for pos, score in self._filtered(ranked, parsed.excludes)
        ]
        self._update(full_results=results)
        return results

    def clear_search(self) -> None:
        self._update(quick_results=[], full_results=None)
