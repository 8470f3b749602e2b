"""
Validation of user-supplied input for scholar-ingest.

Queries, researcher names, citation ids and numeric caps are checked here
before they reach the search API or the database.
"""

import re
from typing import Iterable, Optional

# Citation-set and result ids issued by the search API
_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class InputValidationError(ValueError):
    """Raised when input validation fails."""

    pass


def sanitize_string(value: str, max_length: Optional[int] = None, allow_newlines: bool = False) -> str:
    """
    Remove control characters from a string.

    Args:
        value: String to sanitize
        max_length: Truncate to this length if exceeded
        allow_newlines: Whether to keep newline characters

    Returns:
        Sanitized string
    """
    if not isinstance(value, str):
        return str(value)

    allowed_controls = {"\n", "\r"} if allow_newlines else set()
    result = "".join(c for c in value if ord(c) >= 32 or c in allowed_controls)

    if max_length and len(result) > max_length:
        result = result[:max_length]

    return result


def validate_search_query(query: str, max_length: int = 500, min_length: int = 1) -> str:
    """
    Validate and sanitize a free-text search query.

    Raises:
        InputValidationError: If the query is not a string or has a bad length
    """
    if not isinstance(query, str):
        raise InputValidationError("Query must be a string")

    query = sanitize_string(query).strip()

    if len(query) < min_length:
        raise InputValidationError(f"Query too short (min {min_length} characters)")

    if len(query) > max_length:
        raise InputValidationError(f"Query too long (max {max_length} characters)")

    return query


def validate_researcher_names(names: Iterable[str], max_names: int = 100) -> list[str]:
    """
    Validate a list of researcher names for a batch run.

    Blank entries are dropped, the rest are sanitized. Order is kept.

    Raises:
        InputValidationError: If no usable name remains or there are too many
    """
    cleaned = []
    for name in names:
        if not isinstance(name, str):
            raise InputValidationError("Researcher names must be strings")
        name = sanitize_string(name).strip()
        if name:
            cleaned.append(validate_search_query(name, max_length=200))

    if not cleaned:
        raise InputValidationError("At least one researcher name is required")

    if len(cleaned) > max_names:
        raise InputValidationError(f"Too many researcher names (max {max_names})")

    return cleaned


def validate_citing_id(value: str) -> str:
    """
    Validate a citation-set id.

    Raises:
        InputValidationError: If the id is empty or has unexpected characters
    """
    if not isinstance(value, str):
        raise InputValidationError("Citation id must be a string")

    value = value.strip()
    if not _ID_PATTERN.match(value):
        raise InputValidationError(f"Invalid citation id: {value!r}")

    return value


def validate_integer_range(
    value: int,
    min_val: Optional[int] = None,
    max_val: Optional[int] = None,
    name: str = "value",
) -> int:
    """
    Validate an integer is within a range.

    Raises:
        InputValidationError: If validation fails
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InputValidationError(f"{name} must be an integer")

    if min_val is not None and value < min_val:
        raise InputValidationError(f"{name} must be >= {min_val}")

    if max_val is not None and value > max_val:
        raise InputValidationError(f"{name} must be <= {max_val}")

    return value
