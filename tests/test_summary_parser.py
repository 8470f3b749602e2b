"""
Tests for publication summary parsing.
"""

from scholar_ingest.parsing.summary import (
    DEFAULT_AUTHORS,
    extract_year,
    normalize_whitespace,
    parse_summary,
)
from scholar_ingest.models import DEFAULT_PUBLISHER, DEFAULT_VENUE


class TestParseSummary:
    """Tests for parse_summary()."""

    def test_full_summary(self):
        """All three segments should be recognized."""
        summary = "JL Harper - Population biology of plants., 1977 - cabdirect.org"
        parsed = parse_summary(summary)

        assert parsed.authors == "JL Harper"
        assert parsed.venue == "Population biology of plants."
        assert parsed.year == 1977
        assert parsed.publisher == "cabdirect.org"
        assert parsed.original == summary

    def test_empty_input(self):
        """Empty input should return the all-unknown fallback."""
        for summary in ("", None, "   "):
            parsed = parse_summary(summary)
            assert parsed.authors == DEFAULT_AUTHORS
            assert parsed.venue == DEFAULT_VENUE
            assert parsed.year is None
            assert parsed.publisher == DEFAULT_PUBLISHER

        assert parse_summary("   ").original == "   "

    def test_authors_only(self):
        """A single segment is the author list."""
        parsed = parse_summary("A Einstein,  M  Curie")
        assert parsed.authors == "A Einstein, M Curie"
        assert parsed.venue == DEFAULT_VENUE
        assert parsed.publisher == DEFAULT_PUBLISHER
        assert parsed.year is None

    def test_venue_without_year(self):
        """Venue without a year keeps the full segment."""
        parsed = parse_summary("J Smith - Nature - nature.com")
        assert parsed.venue == "Nature"
        assert parsed.year is None

    def test_venue_that_is_only_a_year(self):
        """A venue consisting of just the year falls back to the default."""
        parsed = parse_summary("J Smith - 2019 - arxiv.org")
        assert parsed.year == 2019
        assert parsed.venue == DEFAULT_VENUE
        assert parsed.publisher == "arxiv.org"

    def test_year_out_of_range_is_ignored(self):
        """Four-digit numbers outside 1900..2030 are not years."""
        parsed = parse_summary("J Smith - Proceedings 1850, 2101 - society.org")
        assert parsed.year is None
        assert parsed.venue == "Proceedings 1850, 2101"

    def test_first_valid_year_wins(self):
        """The first in-range token is taken."""
        parsed = parse_summary("J Smith - Vol 1234, 1999, 2005 - x.org")
        assert parsed.year == 1999

    def test_extra_separators_stay_in_publisher(self):
        """Only the first two separators split."""
        parsed = parse_summary("A B - Venue, 2000 - pub - extra")
        assert parsed.publisher == "pub - extra"

    def test_empty_authors_segment(self):
        """An empty author segment becomes the default."""
        parsed = parse_summary(" - Some venue, 2010 - pub.org")
        assert parsed.authors == DEFAULT_AUTHORS
        assert parsed.venue == "Some venue"

    def test_non_ascii_digits_are_not_a_year(self):
        """Only ASCII digits form a year."""
        parsed = parse_summary("A Smith - Venue ２０２０ - pub")
        assert parsed.year is None
        assert parsed.venue == "Venue ２０２０"


class TestHelpers:
    """Tests for year extraction and whitespace handling."""

    def test_extract_year_bounds(self):
        """Years are accepted from 1900 through 2030 inclusive."""
        assert extract_year("1900").group(0) == "1900"
        assert extract_year("2030").group(0) == "2030"
        assert extract_year("1899") is None
        assert extract_year("2031") is None

    def test_extract_year_requires_whole_token(self):
        """Four digits inside a longer number are not a year."""
        assert extract_year("ISBN 978199912") is None

    def test_extract_year_ascii_only(self):
        """Arabic-Indic and fullwidth digits never form a year."""
        assert extract_year("١٩٩٩") is None
        assert extract_year("２０２０, 2020").group(0) == "2020"

    def test_normalize_whitespace(self):
        """Whitespace runs collapse to one space; None becomes ""."""
        assert normalize_whitespace("  a \t b\n c  ") == "a b c"
        assert normalize_whitespace(None) == ""
