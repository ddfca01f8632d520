"""Tests for citation formatting functions."""
import pytest

from citation_engine.formatting import (
    CITATION_FORMATS,
    FULL_PLACEHOLDER,
    SHORT_PLACEHOLDER,
    format_authors,
    format_bibliography,
    format_full,
    format_short,
)
from citation_engine.models import Source


class TestShortCitations:
    """Inline citation styles."""

    @pytest.mark.parametrize("fmt,expected", [
        ("simple", "[Lovelace, 1843]"),
        ("apa", "(Lovelace, 1843)"),
        ("mla", "(Lovelace)"),
        ("chicago", "(Lovelace 1843)"),
    ])
    def test_author_and_year(self, sample_source, fmt, expected):
        assert format_short(sample_source, fmt) == expected

    def test_author_without_year(self, sample_source):
        sample_source["publication_date"] = None
        assert format_short(sample_source, "simple") == "[Lovelace]"
        assert format_short(sample_source, "apa") == "(Lovelace)"

    def test_surname_is_last_word_of_first_author(self):
        source = Source(id="x", title="T", authors=["Grace Brewster Murray Hopper"])
        assert format_short(source) == "[Hopper]"

    def test_title_fallback_simple_truncates_at_twenty(self, untitled_author_source):
        assert format_short(untitled_author_source, "simple") == "[On Computable Number...]"

    def test_title_fallback_apa_quotes_and_truncates_at_twenty_five(self, untitled_author_source):
        assert format_short(untitled_author_source, "apa") == '("On Computable Numbers, wi...")'

    def test_short_title_is_not_truncated(self):
        assert format_short({"id": "x", "title": "Short"}, "mla") == '("Short")'

    def test_blank_author_uses_title(self):
        assert format_short({"id": "x", "title": "Notes", "authors": ["  "]}) == "[Notes]"

    @pytest.mark.parametrize("fmt,expected", [
        ("simple", "[?]"),
        ("apa", "(?)"),
        ("mla", "(?)"),
        ("chicago", "(?)"),
    ])
    def test_nothing_usable(self, fmt, expected):
        assert format_short({"id": "x", "title": ""}, fmt) == expected

    def test_missing_source(self):
        assert format_short(None, "apa") == SHORT_PLACEHOLDER

    def test_unknown_format_falls_back_to_simple(self, sample_source):
        assert format_short(sample_source, "harvard") == "[Lovelace, 1843]"

    def test_malformed_source_never_raises(self):
        assert format_short({"authors": 5}) == SHORT_PLACEHOLDER

    def test_non_string_authors_are_ignored(self):
        assert format_short({"id": "x", "title": "T", "authors": [None, "Alan Turing"]}) == "[Turing]"


class TestFullCitations:
    """Reference form used in tooltips and bibliographies."""

    def test_complete_record(self, sample_source):
        assert format_full(sample_source) == (
            "Ada Lovelace & Luigi Menabrea. (1843). Sketch of the Analytical Engine. "
            "Scientific Memoirs. https://doi.org/10.1000/ae.1843"
        )

    def test_url_used_without_doi(self, sample_source):
        sample_source["doi"] = None
        assert format_full(sample_source).endswith("Scientific Memoirs. https://example.org/sketch")

    def test_title_only(self):
        assert format_full({"id": "x", "title": "Untitled Notes"}) == "Untitled Notes."

    def test_empty_record(self):
        assert format_full({"id": "x", "title": ""}) == FULL_PLACEHOLDER

    def test_missing_source(self):
        assert format_full(None) == FULL_PLACEHOLDER

    def test_malformed_source_never_raises(self):
        assert format_full({"authors": 5}) == FULL_PLACEHOLDER


class TestAuthorFormatting:
    def test_single(self):
        assert format_authors(["Ada Lovelace"]) == "Ada Lovelace"

    def test_two(self):
        assert format_authors(["Ada Lovelace", "Charles Babbage"]) == "Ada Lovelace & Charles Babbage"

    def test_three_or_more(self):
        assert format_authors(["A One", "B Two", "C Three"]) == "A One et al."

    def test_empty(self):
        assert format_authors(None) == ""
        assert format_authors(["", "  "]) == ""


class TestBibliography:
    def test_sorted_by_surname_then_title(self):
        sources = [
            {"id": "1", "title": "Zeta", "authors": ["Alan Turing"]},
            {"id": "2", "title": "Alpha", "authors": ["Ada Lovelace"]},
            {"id": "3", "title": "Beta", "authors": ["Alan Turing"]},
        ]
        entries = format_bibliography(sources)
        assert [e.split(". ")[1] for e in entries] == ["Alpha.", "Beta.", "Zeta."]

    def test_skips_missing_entries(self, sample_source):
        assert len(format_bibliography([sample_source, None])) == 1

    def test_formats_table_lists_every_style(self):
        assert set(CITATION_FORMATS) == {"simple", "apa", "mla", "chicago"}
