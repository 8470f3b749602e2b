"""
Splitting of free-text author lists into individual names.

Handles the formats Google Scholar emits:
- "JF Ambros-Antemate, MDP Beristain-Colorado"
- "John Smith; Jane Doe; Bob Wilson"
- "A. Einstein and M. Curie"
- "J Smith, B Jones…" (truncated)
"""

import re
from dataclasses import dataclass, field

# "..", "…" or a whole-word "et al" / "et al." marks an abbreviated list
_TRUNCATION_MARKER = re.compile(r"\.{2,}|…|\bet\s+al\b\.?", re.IGNORECASE)
_SEPARATOR = re.compile(r"[,;]|\sand\s|\s&\s")
_WHITESPACE = re.compile(r"\s+")
_NON_NAME = re.compile(r"^[\d\s\-.]+$")

MIN_NAME_LENGTH = 2


@dataclass
class AuthorSplit:
    """Ordered author names plus whether the source list was cut short."""

    names: list[str] = field(default_factory=list)
    truncated: bool = False


def is_truncated(raw: str) -> bool:
    """Check if an author list appears to be truncated."""
    if not raw:
        return False
    return _TRUNCATION_MARKER.search(raw) is not None


def clean_author_name(name: str) -> str:
    """Trim, collapse whitespace and strip ellipsis artifacts."""
    name = _WHITESPACE.sub(" ", name.strip())
    name = name.replace("…", "").replace("...", "")
    return name.strip()


def is_valid_author_name(name: str) -> bool:
    """At least two characters, one letter, and not just digits/dashes/dots."""
    if len(name) < MIN_NAME_LENGTH:
        return False
    if not any(c.isalpha() for c in name):
        return False
    return _NON_NAME.match(name) is None


def split_authors(raw: str) -> AuthorSplit:
    """
    Split a raw author string into validated names, in encounter order.

    The returned order is the author position used when linking authors
    to an article.

    Examples:
        >>> split_authors("J Smith, B Jones…")
        AuthorSplit(names=['J Smith', 'B Jones'], truncated=True)
        >>> split_authors("123, --, Jane Doe").names
        ['Jane Doe']
    """
    if not raw or not raw.strip():
        return AuthorSplit()

    marker = _TRUNCATION_MARKER.search(raw)
    text = raw[:marker.start()] if marker else raw

    names = []
    for piece in _SEPARATOR.split(text):
        name = clean_author_name(piece)
        if is_valid_author_name(name):
            names.append(name)

    return AuthorSplit(names=names, truncated=marker is not None)


def split_author_names(raw: str) -> list[str]:
    """Names only, for callers that do not care about truncation."""
    return split_authors(raw).names
