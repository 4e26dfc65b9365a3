"""Unit tests for garden.search.tokenize."""

from garden.search.tokenize import cjk_text, parse_query, tokenize


class TestTokenize:
    def test_ascii_words_lowercased(self):
        assert tokenize("Hello, World! 2025") == ["hello", "world", "2025"]

    def test_cjk_bigrams_then_single_characters(self):
        assert tokenize("日記帳") == ["日記", "記帳", "日", "記", "帳"]

    def test_mixed(self):
        assert tokenize("Garden 日記帳") == ["garden", "日記", "記帳", "日", "記", "帳"]

    def test_single_cjk_character(self):
        assert tokenize("旅") == ["旅"]

    def test_cjk_runs_are_joined(self):
        # ASCII between CJK characters is removed before bigrams are formed.
        assert tokenize("東京 and 大阪") == ["and", "東京", "京大", "大阪", "東", "京", "大", "阪"]

    def test_empty(self):
        assert tokenize("") == []
        assert tokenize("  !?  ") == []

    def test_cjk_text(self):
        assert cjk_text("a日b本, c") == "日本"


class TestParseQuery:
    def test_terms_and_excludes(self):
        parsed = parse_query("travel -2019")
        assert parsed.terms == "travel"
        assert parsed.excludes == ["2019"]

    def test_excludes_lowercased(self):
        assert parse_query("kyoto -Osaka -FOOD").excludes == ["osaka", "food"]

    def test_lone_dash_is_a_term(self):
        parsed = parse_query("a - b")
        assert parsed.terms == "a - b"
        assert parsed.excludes == []

    def test_only_excludes(self):
        parsed = parse_query("-spam")
        assert parsed.terms == ""
        assert parsed.excludes == ["spam"]

    def test_whitespace_normalised(self):
        assert parse_query("  kyoto   trip ").terms == "kyoto trip"
