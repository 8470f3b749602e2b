"""Input validation for scholar-ingest."""

from .input_validation import (
    InputValidationError,
    sanitize_string,
    validate_citing_id,
    validate_integer_range,
    validate_researcher_names,
    validate_search_query,
)

__all__ = [
    "InputValidationError",
    "sanitize_string",
    "validate_citing_id",
    "validate_integer_range",
    "validate_researcher_names",
    "validate_search_query",
]
