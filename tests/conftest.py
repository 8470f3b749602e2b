"""
Pytest configuration and fixtures for scholar-ingest tests.
"""

import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from scholar_ingest.db.errors import StorageError
from scholar_ingest.ingest.locks import KeyedLock
from scholar_ingest.ingest.pipeline import IngestPipeline
from scholar_ingest.models import (
    Article,
    ArticleAuthorLink,
    Author,
    InlineCitation,
    RawSearchResult,
    Resource,
)


# =============================================================================
# In-memory storage
# =============================================================================


class InMemorySession:
    """Implements the StorageSession operations the pipeline relies on."""

    def __init__(self, store: "InMemoryStorage"):
        self.store = store

    def _maybe_fail(self, operation: str, *args):
        check = self.store.failures.get(operation)
        if check is not None and check(*args):
            raise StorageError(f"{operation} failed")

    def find_by_external_id(self, external_id):
        self._maybe_fail("find_by_external_id", external_id)
        for article in self.store.articles.values():
            if article.external_id == external_id and not article.is_deleted:
                return article
        return None

    def insert_article(self, article):
        self._maybe_fail("insert_article", article)
        with self.store.write_lock:
            self.store.next_article_id += 1
            now = datetime.now(timezone.utc)
            saved = replace(article, id=self.store.next_article_id, created_at=now, updated_at=now)
            self.store.articles[saved.id] = saved
        return saved

    def find_article_by_id(self, article_id):
        return self.store.articles.get(article_id)

    def touch_article(self, article_id):
        article = self.store.articles.get(article_id)
        if article is None or article.is_deleted:
            return None
        article.updated_at = datetime.now(timezone.utc)
        return article

    def soft_delete_article(self, article_id):
        article = self.store.articles.get(article_id)
        if article is None or article.is_deleted:
            return False
        article.deleted_at = datetime.now(timezone.utc)
        return True

    def find_author_by_name(self, full_name):
        for author in self.store.authors.values():
            if author.full_name == full_name and not author.is_deleted:
                return author
        return None

    def find_author_by_id(self, author_id):
        return self.store.authors.get(author_id)

    def upsert_author_by_name(self, full_name):
        self._maybe_fail("upsert_author_by_name", full_name)
        with self.store.write_lock:
            for author in self.store.authors.values():
                if author.full_name == full_name and not author.is_deleted:
                    return author
            self.store.next_author_id += 1
            author = Author(full_name=full_name, id=self.store.next_author_id)
            self.store.authors[author.id] = author
        return author

    def link_author_to_article(self, article_id, author_id, position):
        self._maybe_fail("link_author_to_article", article_id, author_id, position)
        self.store.links[(article_id, author_id)] = position
        return ArticleAuthorLink(article_id=article_id, author_id=author_id, position=position)

    def read_author_counters(self, author_id):
        author = self.store.authors.get(author_id)
        if author is None:
            raise StorageError(f"Author not found: {author_id}")
        return author.article_count, author.total_citations

    def write_author_counters(self, author_id, article_count, total_citations):
        self._maybe_fail("write_author_counters", author_id)
        author = self.store.authors.get(author_id)
        if author is None:
            raise StorageError(f"Author not found: {author_id}")
        author.article_count = article_count
        author.total_citations = total_citations

    def find_authors_for_article(self, article_id):
        linked = sorted(
            (position, author_id)
            for (a_id, author_id), position in self.store.links.items()
            if a_id == article_id
        )
        return [self.store.authors[author_id] for _, author_id in linked]

    def find_articles_for_author(self, author_id):
        linked = [
            self.store.articles[a_id]
            for (a_id, linked_author_id) in self.store.links
            if linked_author_id == author_id and not self.store.articles[a_id].is_deleted
        ]
        return sorted(linked, key=lambda a: a.publication_year or 0, reverse=True)

    def soft_delete_author(self, author_id):
        author = self.store.authors.get(author_id)
        if author is None or author.is_deleted:
            return False
        author.deleted_at = datetime.now(timezone.utc)
        return True

    def get_stats(self):
        live = [a for a in self.store.articles.values() if not a.is_deleted]
        return {
            "articles": len(live),
            "articles_deleted": len(self.store.articles) - len(live),
            "authors": len(self.store.authors),
            "links": len(self.store.links),
            "citations": sum(a.citation_count for a in live),
        }


class InMemoryStorage:
    """Drop-in for PostgresStorage backed by dicts."""

    def __init__(self):
        self.articles: dict[int, Article] = {}
        self.authors: dict[int, Author] = {}
        self.links: dict[tuple[int, int], int] = {}
        self.next_article_id = 0
        self.next_author_id = 0
        # operation name -> predicate(*args); True makes the call raise StorageError
        self.failures: dict = {}
        self.units_opened = 0
        self.units_closed = 0
        self._guard = threading.Lock()
        self.write_lock = threading.Lock()

    @contextmanager
    def unit_of_work(self):
        with self._guard:
            self.units_opened += 1
        try:
            yield InMemorySession(self)
        finally:
            with self._guard:
                self.units_closed += 1

    def author_named(self, full_name):
        for author in self.authors.values():
            if author.full_name == full_name:
                return author
        return None

    def live_articles(self):
        return [a for a in self.articles.values() if not a.is_deleted]


@pytest.fixture
def storage():
    """Empty in-memory storage."""
    return InMemoryStorage()


@pytest.fixture
def pipeline(storage):
    """IngestPipeline over in-memory storage with a private lock map."""
    return IngestPipeline(storage, author_locks=KeyedLock(), current_year=2024)


# =============================================================================
# Sample data fixtures
# =============================================================================


def make_result(result_id, title="Population biology of plants", summary=None, citations=0, **kwargs):
    """Build a RawSearchResult the way the search client would."""
    return RawSearchResult(
        title=title,
        link=f"https://example.org/{result_id}",
        snippet="A snippet.",
        result_id=result_id,
        publication_summary=summary or "JL Harper - Population biology of plants., 1977 - cabdirect.org",
        inline_citation=InlineCitation(total=citations, citing_set_id=f"cites-{result_id}") if citations else None,
        **kwargs,
    )


@pytest.fixture
def result_factory():
    """Factory for single RawSearchResult objects."""
    return make_result


@pytest.fixture
def sample_results():
    """Three distinct results with overlapping authors."""
    return [
        make_result(
            "aaa111",
            title="Population biology of plants",
            summary="JL Harper - Population biology of plants., 1977 - cabdirect.org",
            citations=10,
            resources=[Resource(format="PDF", link="https://example.org/aaa111.pdf")],
        ),
        make_result(
            "bbb222",
            title="Ecology: individuals, populations and communities",
            summary="M Begon, JL Harper, CR Townsend - Ecology, 1986 - Blackwell",
            citations=5,
        ),
        make_result(
            "ccc333",
            title="The comparative biology of closely related species",
            summary="JL Harper, JN Clatworthy… - Journal of Ecology, 1961 - JSTOR",
            citations=2,
        ),
    ]


@pytest.fixture
def serpapi_author_payload():
    """SerpApi google_scholar body for an author:"..." query."""
    return {
        "search_metadata": {"id": "search-1", "status": "Success"},
        "profiles": {
            "authors": [
                {"name": "JL Harper", "author_id": "harper01", "link": "https://scholar.google.com/citations?user=harper01"},
                {"name": "J Harper", "author_id": "harper02"},
            ]
        },
        "organic_results": [
            {
                "position": 0,
                "title": "Population biology of plants",
                "result_id": "aaa111",
                "link": "https://example.org/aaa111",
                "snippet": "Plants...",
                "publication_info": {
                    "summary": "JL Harper - Population biology of plants., 1977 - cabdirect.org",
                    "authors": [{"name": "JL Harper", "author_id": "harper01"}],
                },
                "inline_links": {"cited_by": {"total": 16000, "cites_id": "123456"}},
                "resources": [{"title": "example.org", "file_format": "PDF", "link": "https://example.org/aaa111.pdf"}],
            },
            {
                "position": 1,
                "title": "Some other Harper",
                "result_id": "zzz999",
                "publication_info": {
                    "summary": "J Harper - Other venue, 2001 - other.org",
                    "authors": [{"name": "J Harper", "author_id": "harper02"}],
                },
            },
            {
                "position": 2,
                "title": "Ecology",
                "result_id": "bbb222",
                "publication_info": {
                    "summary": "M Begon, JL Harper, CR Townsend - Ecology, 1986 - Blackwell",
                    "authors": [
                        {"name": "M Begon"},
                        {"name": "JL Harper", "author_id": "harper01"},
                    ],
                },
            },
        ],
    }


# =============================================================================
# Mock fixtures
# =============================================================================


@pytest.fixture
def mock_conn():
    """Mock psycopg connection whose cursor is reachable as mock_conn.cursor_mock."""
    conn = MagicMock()
    cursor = MagicMock()

    conn.cursor.return_value.__enter__ = MagicMock(return_value=cursor)
    conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    conn.transaction.return_value.__enter__ = MagicMock(return_value=None)
    conn.transaction.return_value.__exit__ = MagicMock(return_value=False)

    conn.cursor_mock = cursor
    return conn


@pytest.fixture
def mock_pg_pool(mock_conn):
    """Mock psycopg_pool ConnectionPool handing out mock_conn."""
    pool = MagicMock()
    pool.getconn.return_value = mock_conn
    return pool


# =============================================================================
# Pytest markers
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (require DB)"
    )
