"""
Tests for input validation.
"""

import pytest

from scholar_ingest.security.input_validation import (
    InputValidationError,
    sanitize_string,
    validate_citing_id,
    validate_integer_range,
    validate_researcher_names,
    validate_search_query,
)


class TestSearchQueryValidation:
    """Tests for search query validation."""

    def test_valid_query(self):
        """A plain query passes unchanged."""
        assert validate_search_query("population biology") == "population biology"

    def test_trims_whitespace(self):
        """Leading and trailing whitespace is removed."""
        assert validate_search_query("  query with spaces  ") == "query with spaces"

    def test_rejects_empty(self):
        """A whitespace-only query is too short."""
        with pytest.raises(InputValidationError) as exc_info:
            validate_search_query("   ")
        assert "too short" in str(exc_info.value)

    def test_rejects_too_long(self):
        """Queries over 500 characters are rejected."""
        with pytest.raises(InputValidationError):
            validate_search_query("x" * 501)

    def test_rejects_non_string(self):
        """Non-string queries are rejected."""
        with pytest.raises(InputValidationError):
            validate_search_query(42)

    def test_removes_control_characters(self):
        """Control characters are stripped."""
        assert validate_search_query("plant\x00 ecology\x07") == "plant ecology"


class TestResearcherNames:
    def test_keeps_order_and_drops_blanks(self):
        """Blank names are dropped and order is kept."""
        assert validate_researcher_names(["JL Harper", "  ", "M Begon "]) == ["JL Harper", "M Begon"]

    def test_requires_one_name(self):
        """At least one usable name is required."""
        with pytest.raises(InputValidationError):
            validate_researcher_names(["", " "])

    def test_too_many(self):
        """More than max_names names are rejected."""
        with pytest.raises(InputValidationError):
            validate_researcher_names([f"Name {i}" for i in range(5)], max_names=4)


class TestCitingId:
    def test_valid(self):
        """A citation id is trimmed and accepted."""
        assert validate_citing_id(" 123456_ab-C ") == "123456_ab-C"

    @pytest.mark.parametrize("value", ["", "12 34", "a/b", None])
    def test_invalid(self, value):
        """Empty ids and ids with spaces or slashes are rejected."""
        with pytest.raises(InputValidationError):
            validate_citing_id(value)


class TestIntegerRange:
    def test_in_range(self):
        """A value inside the range is returned."""
        assert validate_integer_range(5, min_val=0, max_val=10) == 5

    def test_bounds(self):
        """Values past either bound raise with the bound in the message."""
        with pytest.raises(InputValidationError, match="cap must be >= 0"):
            validate_integer_range(-1, min_val=0, name="cap")
        with pytest.raises(InputValidationError, match="<= 10"):
            validate_integer_range(11, max_val=10)

    def test_rejects_bool_and_str(self):
        """Booleans and numeric strings are not integers."""
        with pytest.raises(InputValidationError):
            validate_integer_range(True)
        with pytest.raises(InputValidationError):
            validate_integer_range("5")


class TestSanitizeString:
    def test_newlines(self):
        """Newlines are stripped unless allowed."""
        assert sanitize_string("a\nb") == "ab"
        assert sanitize_string("a\nb", allow_newlines=True) == "a\nb"

    def test_truncates(self):
        """Strings are cut to max_length."""
        assert sanitize_string("abcdef", max_length=3) == "abc"

    def test_non_string(self):
        """Non-strings are converted with str()."""
        assert sanitize_string(12) == "12"
