"""
Data model for scholar-ingest.

Two groups of dataclasses live here:
- Search-side records (RawSearchResult, AuthorProfile, SearchResponse) built
  from the SerpApi Google Scholar JSON body.
- Storage-side records (Article, Author, ArticleAuthorLink) mirroring the
  Postgres tables in schema/postgres.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

DEFAULT_VENUE = "Unknown Source"
DEFAULT_PUBLISHER = "Unknown Publisher"
DEFAULT_TITLE = "Unknown Title"


# =============================================================================
# Search-side records
# =============================================================================


@dataclass
class InlineCitation:
    """The "cited by" block attached to a search result."""

    total: int = 0
    citing_set_id: Optional[str] = None


@dataclass
class Resource:
    """A downloadable resource (PDF, HTML) linked from a search result."""

    format: Optional[str] = None
    link: Optional[str] = None
    title: Optional[str] = None


@dataclass
class RawSearchResult:
    """One organic result as returned by the search API, before normalization."""

    title: Optional[str] = None
    link: Optional[str] = None
    snippet: Optional[str] = None
    result_id: Optional[str] = None
    publication_summary: Optional[str] = None
    inline_citation: Optional[InlineCitation] = None
    resources: list[Resource] = field(default_factory=list)
    position: Optional[int] = None

    # Scholar profile ids of the authors the API recognized in this result
    author_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "RawSearchResult":
        """Build from one entry of SerpApi's ``organic_results`` array."""
        pub_info = data.get("publication_info") or {}

        inline_citation = None
        cited_by = (data.get("inline_links") or {}).get("cited_by")
        if cited_by:
            inline_citation = InlineCitation(
                total=_to_int(cited_by.get("total")),
                citing_set_id=cited_by.get("cites_id"),
            )

        resources = [
            Resource(
                format=r.get("file_format"),
                link=r.get("link"),
                title=r.get("title"),
            )
            for r in data.get("resources") or []
            if isinstance(r, dict)
        ]

        author_ids = [
            a["author_id"]
            for a in pub_info.get("authors") or []
            if isinstance(a, dict) and a.get("author_id")
        ]

        return cls(
            title=data.get("title"),
            link=data.get("link"),
            snippet=data.get("snippet"),
            result_id=data.get("result_id"),
            publication_summary=pub_info.get("summary"),
            inline_citation=inline_citation,
            resources=resources,
            position=data.get("position"),
            author_ids=author_ids,
        )


@dataclass
class AuthorProfile:
    """A researcher profile matched by an author search, with its publications."""

    name: str
    author_id: Optional[str] = None
    link: Optional[str] = None
    publications: list[RawSearchResult] = field(default_factory=list)


@dataclass
class SearchResponse:
    """A deserialized search API response."""

    search_id: Optional[str] = None
    status: Optional[str] = None
    results: list[RawSearchResult] = field(default_factory=list)
    profiles: list[AuthorProfile] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict[str, Any], query: Optional[str] = None) -> "SearchResponse":
        """
        Build from a SerpApi Google Scholar response body.

        Author profiles come from the ``profiles.authors`` block. Each profile
        owns the organic results tagged with its author id. When no result
        carries a profile id (or the block is missing), the results are
        attributed to a single profile: the first listed one, or an implicit
        profile named after the query.
        """
        metadata = data.get("search_metadata") or {}
        results = [
            RawSearchResult.from_json(r)
            for r in data.get("organic_results") or []
            if isinstance(r, dict)
        ]

        profiles = []
        for entry in (data.get("profiles") or {}).get("authors") or []:
            if not isinstance(entry, dict) or not entry.get("name"):
                continue
            author_id = entry.get("author_id")
            profiles.append(AuthorProfile(
                name=entry["name"],
                author_id=author_id,
                link=entry.get("link"),
                publications=[r for r in results if author_id and author_id in r.author_ids],
            ))

        if results and not any(p.publications for p in profiles):
            if profiles:
                profiles[0].publications = list(results)
            else:
                profiles.append(AuthorProfile(name=query or "", publications=list(results)))

        return cls(
            search_id=metadata.get("id"),
            status=metadata.get("status"),
            results=results,
            profiles=profiles,
        )


# =============================================================================
# Storage-side records
# =============================================================================


@dataclass
class Article:
    """A scholarly record as stored in the ``articles`` table."""

    title: str
    authors: str
    publication_year: Optional[int] = None
    venue: str = DEFAULT_VENUE
    url: Optional[str] = None
    abstract_snippet: Optional[str] = None
    external_id: Optional[str] = None
    citation_count: int = 0
    citing_set_id: Optional[str] = None
    pdf_url: Optional[str] = None
    publisher: str = DEFAULT_PUBLISHER

    # Set by storage
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def identity_key(self) -> tuple:
        """External id when present, else the (title, authors) pair."""
        if self.external_id:
            return ("external_id", self.external_id)
        return ("title_authors", self.title, self.authors)

    def same_identity(self, other: "Article") -> bool:
        return self.identity_key() == other.identity_key()

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Article":
        return cls(
            id=row.get("id"),
            title=row.get("title"),
            authors=row.get("authors"),
            publication_year=row.get("publication_year"),
            venue=row.get("venue") or DEFAULT_VENUE,
            url=row.get("url"),
            abstract_snippet=row.get("abstract_snippet"),
            external_id=row.get("external_id"),
            citation_count=row.get("citation_count") or 0,
            citing_set_id=row.get("citing_set_id"),
            pdf_url=row.get("pdf_url"),
            publisher=row.get("publisher") or DEFAULT_PUBLISHER,
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            deleted_at=row.get("deleted_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly view used by the CLI."""
        return {
            "id": self.id,
            "title": self.title,
            "authors": self.authors,
            "year": self.publication_year,
            "venue": self.venue,
            "publisher": self.publisher,
            "citations": self.citation_count,
            "external_id": self.external_id,
            "url": self.url,
            "pdf_url": self.pdf_url,
        }


@dataclass
class Author:
    """One normalized person name, with running statistics."""

    full_name: str
    article_count: int = 0
    total_citations: int = 0

    id: Optional[int] = None
    first_seen: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def average_citations(self) -> float:
        if not self.article_count:
            return 0.0
        return self.total_citations / self.article_count

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Author":
        return cls(
            id=row.get("id"),
            full_name=row.get("full_name"),
            article_count=row.get("article_count") or 0,
            total_citations=row.get("total_citations") or 0,
            first_seen=row.get("first_seen"),
            last_updated=row.get("last_updated"),
            deleted_at=row.get("deleted_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "full_name": self.full_name,
            "articles": self.article_count,
            "citations": self.total_citations,
        }


@dataclass
class ArticleAuthorLink:
    """Association between an article and one of its authors."""

    article_id: int
    author_id: int
    position: int

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ArticleAuthorLink":
        return cls(
            article_id=row["article_id"],
            author_id=row["author_id"],
            position=row["author_position"],
        )


def _to_int(value: Any) -> int:
    """Coerce an API counter to int; unusable values become 0."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
