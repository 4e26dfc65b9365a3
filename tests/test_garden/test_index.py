"""Tests for garden.index and garden.cache."""

from datetime import datetime, timezone

import pytest

from garden.cache import CorpusCache
from garden.exceptions import ContentStoreError
from garden.index import GardenIndex


@pytest.fixture()
def corpus(make_note):
    return [
        make_note(
            "Kyoto.md",
            """\
            ---
            title: Kyoto
            date: 2025-03-01
            tags: [travel, japan]
            ---
            Visited [[Temples]] and [Osaka]. #travel
            """,
        ),
        make_note(
            "Osaka.md",
            """\
            ---
            title: Osaka
            date: 2025-03-02
            tags: [travel]
            ---
            Day trip from [Kyoto].
            """,
        ),
        make_note("2024.12.31.md", "Year end notes, see [[Phantom Page]]"),
    ]


@pytest.fixture()
def index(corpus, make_store):
    return GardenIndex.for_cycle(make_store(corpus))


class FailingStore:
    def __init__(self):
        self.calls = 0

    def fetch_all_notes(self):
        self.calls += 1
        raise ContentStoreError("unreachable", store="test")


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


class TestNodes:
    def test_all_nodes_sorted_newest_first(self, index):
        assert [n.slug for n in index.get_all_nodes()] == ["osaka", "kyoto", "20241231"]

    def test_same_date_sorted_by_mtime(self, make_note, make_store):
        older = make_note("a.md", "---\ndate: 2025-01-01\n---\nA", datetime(2025, 1, 1, 8, tzinfo=timezone.utc))
        newer = make_note("b.md", "---\ndate: 2025-01-01\n---\nB", datetime(2025, 1, 1, 9, tzinfo=timezone.utc))
        idx = GardenIndex.for_cycle(make_store([older, newer]))
        assert [n.slug for n in idx.get_all_nodes()] == ["b", "a"]

    def test_node_by_slug(self, index):
        node = index.get_node_by_slug("kyoto")
        assert node.title == "Kyoto"
        assert node.date == "2025-03-01"
        assert node.tags == ["travel", "japan"]
        assert 'href="/garden/osaka"' in node.content_html
        assert 'href="/garden/temples"' not in node.content_html
        assert "garden-link-empty" in node.content_html
        assert node.excerpt.startswith("Visited Temples and Osaka.")

    def test_unknown_slug(self, index):
        assert index.get_node_by_slug("nope") is None

    def test_virtual_pages_are_not_nodes(self, index):
        slugs = {n.slug for n in index.get_all_nodes()}
        assert "phantom-page" not in slugs
        assert index.get_node_by_slug("phantom-page") is None

    def test_tags(self, index):
        assert index.get_all_tags() == ["japan", "travel"]
        assert [n.slug for n in index.get_nodes_with_tag("travel")] == ["osaka", "kyoto"]
        assert index.get_nodes_with_tag("missing") == []

    def test_to_dict(self, index):
        data = index.get_node_by_slug("osaka").to_dict()
        assert data["slug"] == "osaka"
        assert data["mtime"] == "2024-01-01T12:00:00+00:00"


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------


class TestPages:
    def test_page_slugs_real_then_virtual(self, index):
        assert index.get_all_page_slugs() == ["kyoto", "osaka", "20241231", "temples", "travel", "phantom-page"]

    def test_virtual_pages_in_linked_slugs(self, index):
        linked = index.get_all_linked_slugs()
        assert linked["phantom-page"] == "Phantom Page"
        assert linked["temples"] == "Temples"
        assert set(linked) <= set(index.get_all_page_slugs())

    def test_virtual_page_title(self, index):
        assert index.get_virtual_page_title("phantom-page") == "Phantom Page"
        assert index.get_virtual_page_title("kyoto") is None
        assert index.get_virtual_page_title("nope") is None

    def test_empty_slug_title_not_a_page(self, make_note, make_store):
        idx = GardenIndex.for_cycle(make_store([make_note("!!!.md", "text")]))
        assert [n.title for n in idx.get_all_nodes()] == ["!!!"]
        assert idx.get_all_page_slugs() == []


# ---------------------------------------------------------------------------
# Links
# ---------------------------------------------------------------------------


class TestLinks:
    def test_linked_pages(self, index):
        assert [p.slug for p in index.get_linked_pages("kyoto")] == ["osaka"]
        assert [p.slug for p in index.get_linked_pages("phantom-page")] == ["20241231"]

    def test_two_hop_links(self, index):
        assert index.get_two_hop_links("osaka") == []

    def test_forward_links(self, index):
        forward = index.get_forward_links("kyoto")
        assert [(p.slug, p.title) for p in forward] == [("temples", "Temples"), ("osaka", "Osaka"), ("travel", "travel")]
        assert forward[1].date == "2025-03-02"

    def test_backlinks(self, index):
        backlinks = index.get_backlinks("osaka")
        assert [(b.slug, b.context) for b in backlinks] == [("kyoto", "Visited Temples and Osaka. travel")]


# ---------------------------------------------------------------------------
# Caching and errors
# ---------------------------------------------------------------------------


class TestCaching:
    def test_one_fetch_per_cycle(self, corpus, make_store):
        store = make_store(corpus)
        index = GardenIndex.for_cycle(store)
        index.get_all_nodes()
        index.get_all_page_slugs()
        index.get_linked_pages("kyoto")
        index.get_two_hop_links("kyoto")
        index.get_node_by_slug("osaka")
        assert store.calls == 1
        assert index.cache.fetch_count == 1

    def test_new_cycle_fetches_again(self, corpus, make_store):
        store = make_store(corpus)
        GardenIndex.for_cycle(store).get_all_nodes()
        GardenIndex.for_cycle(store).get_all_nodes()
        assert store.calls == 2

    def test_lazy_until_first_query(self, corpus, make_store):
        store = make_store(corpus)
        index = GardenIndex.for_cycle(store)
        assert not index.cache.loaded
        assert store.calls == 0

    def test_store_error_propagates(self):
        index = GardenIndex.for_cycle(FailingStore())
        with pytest.raises(ContentStoreError, match=r"\[test\] unreachable"):
            index.get_all_nodes()

    def test_failure_not_cached(self):
        store = FailingStore()
        cache = CorpusCache(store)
        for _ in range(2):
            with pytest.raises(ContentStoreError):
                cache.notes()
        assert store.calls == 2
        assert not cache.loaded

    def test_empty_corpus(self, make_store):
        index = GardenIndex.for_cycle(make_store([]))
        assert index.get_all_nodes() == []
        assert index.get_all_page_slugs() == []
        assert index.get_linked_pages("anything") == []
