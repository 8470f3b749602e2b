"""
Ingestion pipeline for scholar-ingest.

Turns raw search results into stored records:
normalize → validate → dedup by external id → insert → split authors →
upsert authors → link in order → update author counters.

Failures are contained per record (and per author within a record); a
batch only raises when its input is malformed.
"""

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Callable, Optional

from scholar_ingest.db.errors import StorageError
from scholar_ingest.db.postgres import PostgresStorage, StorageSession
from scholar_ingest.ingest.locks import KeyedLock, author_counter_locks
from scholar_ingest.ingest.normalizer import normalize_result, validate_article
from scholar_ingest.models import Article, RawSearchResult
from scholar_ingest.parsing.authors import AuthorSplit, split_authors

logger = logging.getLogger(__name__)


class ArticleValidationError(ValueError):
    """Raised by save_article() when an article may not be stored."""

    pass


@dataclass
class IngestReport:
    """Result of ingesting one batch of search results."""

    processed: int = 0
    persisted: int = 0
    duplicates: int = 0
    skipped: int = 0
    failed: int = 0
    author_failures: int = 0
    articles: list[Article] = field(default_factory=list)
    elapsed_seconds: float = 0.0


class IngestPipeline:
    """
    Normalizes, validates, deduplicates and persists search results.

    Usage:
        pipeline = IngestPipeline(PostgresStorage())
        articles = pipeline.ingest(response.results, cap=10)
    """

    def __init__(
        self,
        storage: Optional[PostgresStorage] = None,
        normalizer: Callable[[RawSearchResult], Article] = normalize_result,
        splitter: Callable[[str], AuthorSplit] = split_authors,
        author_locks: Optional[KeyedLock] = None,
        current_year: Optional[int] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            storage: Storage collaborator exposing unit_of_work()
            normalizer: Raw result → candidate Article
            splitter: Raw author string → ordered names
            author_locks: Per-author-name locks guarding counter updates
                          (default: shared process-wide map)
            current_year: Override for the publication-year upper bound
        """
        self.storage = storage or PostgresStorage()
        self.normalizer = normalizer
        self.splitter = splitter
        self.author_locks = author_locks or author_counter_locks
        self.current_year = current_year

    def ingest(self, results: Sequence[RawSearchResult], cap: int) -> list[Article]:
        """
        Ingest up to `cap` results.

        Returns:
            Persisted and recognized-duplicate articles, in input order

        Raises:
            TypeError: If results is not a sequence
            ValueError: If cap is negative
        """
        return self.ingest_report(results, cap).articles

    def ingest_report(self, results: Sequence[RawSearchResult], cap: int) -> IngestReport:
        """Same as ingest(), returning the full report."""
        if isinstance(results, (str, bytes)) or not isinstance(results, Sequence):
            raise TypeError(f"results must be a sequence, got {type(results).__name__}")
        if isinstance(cap, bool) or not isinstance(cap, int) or cap < 0:
            raise ValueError(f"cap must be a non-negative integer, got {cap!r}")

        start_time = time.time()
        report = IngestReport()

        batch = results[:cap]
        logger.info(f"Processing {len(batch)} of {len(results)} results")

        for index, result in enumerate(batch):
            report.processed += 1
            self._ingest_one(index, result, report)

        report.elapsed_seconds = time.time() - start_time
        logger.info(
            f"Ingested {report.persisted} new, {report.duplicates} existing, "
            f"{report.skipped} skipped, {report.failed} failed "
            f"in {report.elapsed_seconds:.1f}s"
        )
        return report

    def _ingest_one(self, index: int, result: RawSearchResult, report: IngestReport) -> None:
        """Process one result, recording the outcome in the report."""
        label = getattr(result, "result_id", None) or "no external id"

        try:
            article = self.normalizer(result)

            reason = validate_article(article, self.current_year)
            if reason:
                logger.warning(f"Skipping result {index} ({label}): {reason}")
                report.skipped += 1
                return

            with self.storage.unit_of_work() as session:
                if article.external_id:
                    existing = session.find_by_external_id(article.external_id)
                    if existing:
                        logger.info(f"Article already exists with external id: {article.external_id}")
                        report.duplicates += 1
                        report.articles.append(existing)
                        return

                saved = session.insert_article(article)
                report.persisted += 1
                report.articles.append(saved)
                logger.info(f"Saved article {saved.id}: {saved.title}")

                report.author_failures += self._link_authors(session, saved)

        except StorageError as e:
            logger.error(f"Failed to store result {index} ({label}): {e}")
            report.failed += 1

        except Exception as e:
            logger.exception(f"Unexpected error on result {index} ({label}): {e}")
            report.failed += 1

    def _link_authors(self, session: StorageSession, article: Article) -> int:
        """
        Upsert, link and count every author of a freshly stored article.

        Returns:
            Number of authors that could not be processed
        """
        split = self.splitter(article.authors)
        if not split.names:
            logger.debug(f"No valid authors parsed for article: {article.id}")
            return 0
        if split.truncated:
            logger.debug(f"Author list truncated for article {article.id}: {article.authors}")

        failures = 0
        counted: set[int] = set()
        for position, name in enumerate(split.names):
            try:
                author = session.upsert_author_by_name(name)
                link = session.link_author_to_article(article.id, author.id, position)
                logger.debug(f"Linked author {link.author_id} to article {link.article_id} at {link.position}")

                # A name repeated in one byline is one link, counted once
                if author.id in counted:
                    continue
                counted.add(author.id)

                with self.author_locks.hold(name):
                    article_count, total_citations = session.read_author_counters(author.id)
                    session.write_author_counters(
                        author.id,
                        article_count + 1,
                        total_citations + article.citation_count,
                    )

            except StorageError as e:
                logger.warning(f"Failed to save author '{name}' for article {article.id}: {e}")
                failures += 1

        logger.debug(
            f"Linked {len(split.names) - failures}/{len(split.names)} authors to article {article.id}"
        )
        return failures

    def save_article(self, article: Article) -> Article:
        """
        Store a single article outside of a batch.

        Duplicates (same external id) return the stored record. Author
        failures are logged, as in batch ingestion.

        Raises:
            ArticleValidationError: If the article may not be stored
            StorageError: If the lookup or insert fails
        """
        reason = validate_article(article, self.current_year)
        if reason:
            raise ArticleValidationError(f"Article not valid for storage: {reason}")

        with self.storage.unit_of_work() as session:
            if article.external_id:
                existing = session.find_by_external_id(article.external_id)
                if existing:
                    logger.info(f"Article already exists with external id: {article.external_id}")
                    return existing

            saved = session.insert_article(article)
            self._link_authors(session, saved)
            return saved

    def delete_article(self, article_id: int) -> bool:
        """
        Soft-delete an article and take it out of its authors' counters.

        Returns:
            True if a live article was deleted

        Raises:
            StorageError: If the article lookup or delete fails
        """
        with self.storage.unit_of_work() as session:
            article = session.find_article_by_id(article_id)
            if article is None or article.is_deleted:
                return False

            authors = session.find_authors_for_article(article_id)
            if not session.soft_delete_article(article_id):
                return False

            for author in authors:
                try:
                    with self.author_locks.hold(author.full_name):
                        article_count, total_citations = session.read_author_counters(author.id)
                        session.write_author_counters(
                            author.id,
                            max(article_count - 1, 0),
                            max(total_citations - article.citation_count, 0),
                        )
                except StorageError as e:
                    logger.warning(
                        f"Failed to update counters of '{author.full_name}' "
                        f"after deleting article {article_id}: {e}"
                    )

        logger.info(f"Soft-deleted article {article_id}")
        return True

    def delete_author(self, author_id: int) -> bool:
        """Soft-delete an author. Links and article rows are left as they are."""
        with self.storage.unit_of_work() as session:
            return session.soft_delete_author(author_id)
