"""
Parsing of the composite publication summary string.

Google Scholar packs authors, venue, year and publisher into one line:

    "JL Harper - Population biology of plants., 1977 - cabdirect.org"
     authors     venue                         year   publisher
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from scholar_ingest.models import DEFAULT_PUBLISHER, DEFAULT_VENUE

logger = logging.getLogger(__name__)

DEFAULT_AUTHORS = "Unknown Author"

SEGMENT_SEPARATOR = " - "
YEAR_MIN = 1900
YEAR_MAX = 2030

_YEAR_TOKEN = re.compile(r"\b[0-9]{4}\b")
_WHITESPACE = re.compile(r"\s+")


@dataclass
class ParsedSummary:
    """Structured view of a publication summary."""

    authors: str = DEFAULT_AUTHORS
    venue: str = DEFAULT_VENUE
    year: Optional[int] = None
    publisher: str = DEFAULT_PUBLISHER
    original: str = ""


def normalize_whitespace(text: Optional[str]) -> str:
    """Trim and collapse internal whitespace runs to a single space."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", text).strip()


def extract_year(segment: str) -> Optional[re.Match]:
    """Return the first 4-digit token within [YEAR_MIN, YEAR_MAX], if any."""
    for match in _YEAR_TOKEN.finditer(segment):
        if YEAR_MIN <= int(match.group(0)) <= YEAR_MAX:
            return match
    return None


def _remove_year(segment: str, match: re.Match) -> str:
    """Cut the year token plus one adjoining comma/whitespace separator."""
    before = segment[:match.start()]
    after = segment[match.end():]

    stripped = re.sub(r"\s*,?\s*$", "", before)
    if stripped:
        return stripped + after
    return re.sub(r"^\s*,?\s*", "", after)


def parse_summary(summary: Optional[str]) -> ParsedSummary:
    """
    Parse a publication summary into authors, venue, year and publisher.

    Never raises: empty input or an unexpected failure yields the
    all-"Unknown" fallback with the original text preserved.

    Examples:
        >>> parse_summary("JL Harper - Population biology of plants., 1977 - cabdirect.org")
        ParsedSummary(authors='JL Harper', venue='Population biology of plants.',
                      year=1977, publisher='cabdirect.org', original=...)
    """
    original = summary or ""
    if not original.strip():
        logger.debug("Empty publication summary")
        return ParsedSummary(original=original)

    try:
        parts = original.split(SEGMENT_SEPARATOR, 2)
        authors_part = parts[0]
        venue_part = parts[1] if len(parts) > 1 else ""
        publisher_part = parts[2] if len(parts) > 2 else ""

        year = None
        venue = venue_part.strip()
        match = extract_year(venue_part)
        if match:
            year = int(match.group(0))
            venue = _remove_year(venue_part, match)

        return ParsedSummary(
            authors=normalize_whitespace(authors_part) or DEFAULT_AUTHORS,
            venue=normalize_whitespace(venue) or DEFAULT_VENUE,
            year=year,
            publisher=normalize_whitespace(publisher_part) or DEFAULT_PUBLISHER,
            original=original,
        )

    except Exception as e:
        logger.warning(f"Failed to parse publication summary {original!r}: {e}")
        return ParsedSummary(original=original)
