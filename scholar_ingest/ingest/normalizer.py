"""
Conversion of raw search results into candidate Article records.

Normalization never fails: missing optional fields degrade to their
defaults. Whether the candidate is fit for storage is decided later by
validate_article().
"""

import re
from datetime import date
from typing import Optional

from scholar_ingest.models import DEFAULT_TITLE, Article, RawSearchResult, Resource
from scholar_ingest.parsing.summary import YEAR_MIN, parse_summary

_EXTERNAL_ID = re.compile(r"^[A-Za-z0-9_-]+$")


def extract_external_id(result_id: Optional[str]) -> Optional[str]:
    """Return the result id if well-formed, else None."""
    if not result_id:
        return None
    return result_id if _EXTERNAL_ID.match(result_id) else None


def extract_pdf_url(resources: Optional[list[Resource]]) -> Optional[str]:
    """Link of the first resource whose format is PDF (case-insensitive)."""
    for resource in resources or []:
        if resource is not None and (resource.format or "").upper() == "PDF":
            return resource.link
    return None


def normalize_result(result: RawSearchResult) -> Article:
    """
    Build a candidate Article from one raw search result.

    Args:
        result: Organic result from the search API

    Returns:
        Unsaved Article (id is None)
    """
    parsed = parse_summary(result.publication_summary or "")

    citation_count = 0
    citing_set_id = None
    if result.inline_citation is not None:
        citation_count = result.inline_citation.total
        citing_set_id = result.inline_citation.citing_set_id

    return Article(
        title=result.title if result.title is not None else DEFAULT_TITLE,
        authors=parsed.authors,
        publication_year=parsed.year,
        venue=parsed.venue,
        url=result.link,
        abstract_snippet=result.snippet,
        external_id=extract_external_id(result.result_id),
        citation_count=citation_count,
        citing_set_id=citing_set_id,
        pdf_url=extract_pdf_url(result.resources),
        publisher=parsed.publisher,
    )


def validate_article(article: Article, current_year: Optional[int] = None) -> Optional[str]:
    """
    Check a candidate against the storage rules.

    Returns:
        None if the article may be stored, else a short reason for the skip
    """
    if not article.title or not article.title.strip():
        return "missing title"

    if not article.authors or not article.authors.strip():
        return "missing authors"

    if article.publication_year is not None:
        max_year = (current_year or date.today().year) + 1
        if not YEAR_MIN <= article.publication_year <= max_year:
            return f"publication year {article.publication_year} outside {YEAR_MIN}..{max_year}"

    if article.citation_count < 0:
        return f"negative citation count {article.citation_count}"

    if article.external_id is not None and not _EXTERNAL_ID.match(article.external_id):
        return f"malformed external id {article.external_id!r}"

    return None
