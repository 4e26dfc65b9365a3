"""Unit tests for garden.slug."""

from garden.slug import title_to_slug


class TestTitleToSlug:
    def test_ascii_title(self):
        assert title_to_slug("Hello World") == "hello-world"

    def test_japanese_and_digits_kept(self):
        slug = title_to_slug("  日記 2025  ")
        assert slug == "日記-2025"
        assert " " not in slug

    def test_punctuation_removed(self):
        assert title_to_slug("C++ & Rust!") == "c-rust"

    def test_underscore_removed(self):
        assert title_to_slug("snake_case") == "snakecase"

    def test_hyphens_collapsed_and_trimmed(self):
        assert title_to_slug("--a -- b--") == "a-b"

    def test_pure_punctuation_gives_empty_slug(self):
        assert title_to_slug("!!!") == ""
        assert title_to_slug("") == ""

    def test_stable_across_calls(self):
        title = "Garden Notes　メモ"
        assert title_to_slug(title) == title_to_slug(title)

    def test_surrounding_whitespace_ignored(self):
        for title in ["  padded  ", "\ttabbed\n", "日本語 タイトル "]:
            assert title_to_slug(title) == title_to_slug(title.strip())

    def test_full_width_space_is_whitespace(self):
        assert title_to_slug("東京　旅行") == "東京-旅行"
