"""
Free-text field parsers for Google Scholar metadata.

Pure functions with no I/O; safe to import without database or network access.
"""

from .summary import ParsedSummary, parse_summary, normalize_whitespace
from .authors import AuthorSplit, split_authors, split_author_names, is_truncated

__all__ = [
    "ParsedSummary",
    "parse_summary",
    "normalize_whitespace",
    "AuthorSplit",
    "split_authors",
    "split_author_names",
    "is_truncated",
]
