"""
Service facade for scholar-ingest.

Wires search, ingestion and storage together for front ends (CLI, scripts).
Input coming from users is validated here, before it reaches the search API
or the database.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from scholar_ingest.config import config
from scholar_ingest.db.postgres import PostgresStorage
from scholar_ingest.ingest.batch import BatchOrchestrator, BatchReport
from scholar_ingest.ingest.pipeline import IngestPipeline
from scholar_ingest.models import Article, Author, RawSearchResult
from scholar_ingest.search.serpapi import SerpApiClient
from scholar_ingest.security.input_validation import (
    validate_citing_id,
    validate_integer_range,
    validate_researcher_names,
    validate_search_query,
)

logger = logging.getLogger(__name__)

MAX_CAP = 100
MAX_START = 1000


class ScholarService:
    """
    Entry point for ingesting and querying scholarly metadata.

    Usage:
        service = ScholarService()
        articles = service.ingest_researchers(["JL Harper", "M Begon"], cap=10)
        print(service.stats())
    """

    def __init__(
        self,
        storage: Optional[PostgresStorage] = None,
        search: Optional[SerpApiClient] = None,
        pipeline: Optional[IngestPipeline] = None,
    ):
        self.storage = storage or PostgresStorage()
        self.search = search or SerpApiClient()
        self.pipeline = pipeline or IngestPipeline(self.storage)
        self.orchestrator = BatchOrchestrator(self.search, self.pipeline)
        self._executor: Optional[ThreadPoolExecutor] = None

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self.search.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # ==========================================================================
    # Ingestion
    # ==========================================================================

    def ingest(self, results: list[RawSearchResult], cap: int) -> list[Article]:
        """Ingest already-fetched search results."""
        return self.pipeline.ingest(results, cap)

    def ingest_researchers(self, names: list[str], cap: Optional[int] = None) -> list[Article]:
        """Ingest the publications of each researcher's first matching profile."""
        return self.run_batch(names, cap).articles

    def run_batch(self, names: list[str], cap: Optional[int] = None) -> BatchReport:
        names, cap = self._batch_args(names, cap)
        return self.orchestrator.run_report(names, cap)

    def submit_batch(self, names: list[str], cap: Optional[int] = None) -> Future:
        """
        Run a batch on a background worker.

        Batches submitted to the same service run one after another.

        Returns:
            Future resolving to the BatchReport
        """
        names, cap = self._batch_args(names, cap)
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="scholar-batch")
        logger.info(f"Submitting background batch of {len(names)} researchers")
        return self._executor.submit(self.orchestrator.run_report, names, cap)

    def ingest_keyword(self, query: str, cap: Optional[int] = None, start: int = 0) -> list[Article]:
        """Ingest the results of a free-text search; `start` skips that many results."""
        query = validate_search_query(query)
        start = validate_integer_range(start, min_val=0, max_val=MAX_START, name="start")
        return self.orchestrator.run_keyword_query(query, self._cap(cap), start=start)

    def ingest_citing(self, citing_set_id: str, cap: Optional[int] = None) -> list[Article]:
        """Ingest articles citing the article with the given citation id."""
        citing_set_id = validate_citing_id(citing_set_id)
        return self.orchestrator.run_citing(citing_set_id, self._cap(cap))

    def save_article(self, article: Article) -> Article:
        return self.pipeline.save_article(article)

    def delete_article(self, article_id: int) -> bool:
        return self.pipeline.delete_article(article_id)

    def delete_author(self, author_id: int) -> bool:
        return self.pipeline.delete_author(author_id)

    def refresh_article(self, article_id: int) -> Optional[Article]:
        """Bump an article's updated_at timestamp."""
        with self.storage.unit_of_work() as session:
            return session.touch_article(article_id)

    def _cap(self, cap: Optional[int]) -> int:
        if cap is None:
            cap = config.ARTICLES_PER_RESEARCHER
        return validate_integer_range(cap, min_val=0, max_val=MAX_CAP, name="cap")

    def _batch_args(self, names: list[str], cap: Optional[int]) -> tuple[list[str], int]:
        return validate_researcher_names(names), self._cap(cap)

    # ==========================================================================
    # Queries
    # ==========================================================================

    def get_article(self, article_id: int) -> Optional[Article]:
        with self.storage.unit_of_work() as session:
            return session.find_article_by_id(article_id)

    def get_article_by_external_id(self, external_id: str) -> Optional[Article]:
        with self.storage.unit_of_work() as session:
            return session.find_by_external_id(external_id)

    def list_articles(self, limit: int = 100) -> list[Article]:
        limit = validate_integer_range(limit, min_val=1, max_val=1000, name="limit")
        with self.storage.unit_of_work() as session:
            return session.list_articles(limit)

    def articles_by_author(self, author_name: str) -> list[Article]:
        author_name = validate_search_query(author_name, max_length=200)
        with self.storage.unit_of_work() as session:
            return session.find_articles_by_author(author_name)

    def search_titles(self, keyword: str) -> list[Article]:
        keyword = validate_search_query(keyword)
        with self.storage.unit_of_work() as session:
            return session.search_articles_by_title(keyword)

    def articles_by_year(self, year: int) -> list[Article]:
        with self.storage.unit_of_work() as session:
            return session.find_articles_by_year(year)

    def highly_cited(self, min_citations: int) -> list[Article]:
        min_citations = validate_integer_range(min_citations, min_val=0, name="min_citations")
        with self.storage.unit_of_work() as session:
            return session.find_articles_cited_more_than(min_citations)

    def authors_of(self, article_id: int) -> list[Author]:
        """Authors of an article, in byline order."""
        with self.storage.unit_of_work() as session:
            return session.find_authors_for_article(article_id)

    def find_author(self, full_name: str) -> Optional[Author]:
        """Exact-name lookup."""
        full_name = validate_search_query(full_name, max_length=200)
        with self.storage.unit_of_work() as session:
            return session.find_author_by_name(full_name)

    def get_author(self, author_id: int) -> Optional[Author]:
        with self.storage.unit_of_work() as session:
            return session.find_author_by_id(author_id)

    def articles_for_author(self, author_id: int) -> list[Article]:
        """Live articles linked to an author, newest first."""
        with self.storage.unit_of_work() as session:
            return session.find_articles_for_author(author_id)

    def search_authors(self, name_pattern: str) -> list[Author]:
        name_pattern = validate_search_query(name_pattern, max_length=200)
        with self.storage.unit_of_work() as session:
            return session.search_authors(name_pattern)

    def top_authors(self, limit: int = 10, by: str = "citations") -> list[Author]:
        """Most cited (by="citations") or most prolific (by="articles") authors."""
        limit = validate_integer_range(limit, min_val=1, max_val=1000, name="limit")
        with self.storage.unit_of_work() as session:
            if by == "articles":
                return session.top_authors_by_article_count(limit)
            return session.top_authors_by_citations(limit)

    def stats(self) -> dict[str, int]:
        with self.storage.unit_of_work() as session:
            return session.get_stats()
