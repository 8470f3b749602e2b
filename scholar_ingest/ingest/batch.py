"""
Batch orchestration for scholar-ingest.

Runs a list of researcher queries through search and ingestion, one query
at a time. A failure on one query is logged and never stops the batch.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from scholar_ingest.ingest.pipeline import IngestPipeline, IngestReport
from scholar_ingest.models import Article, SearchResponse
from scholar_ingest.search.serpapi import SerpApiClient
from scholar_ingest.telemetry import TelemetryLogger

logger = logging.getLogger(__name__)


@dataclass
class QueryOutcome:
    """What happened to one query of a batch."""

    query: str
    profile: Optional[str] = None
    articles: list[Article] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class BatchReport:
    """Per-query outcomes of a batch, in query order."""

    outcomes: list[QueryOutcome] = field(default_factory=list)

    @property
    def articles(self) -> list[Article]:
        return [article for outcome in self.outcomes for article in outcome.articles]

    @property
    def failed_queries(self) -> list[str]:
        return [outcome.query for outcome in self.outcomes if not outcome.succeeded]


class BatchOrchestrator:
    """
    Drives search → ingest for many queries.

    Usage:
        orchestrator = BatchOrchestrator(SerpApiClient(), IngestPipeline())
        articles = orchestrator.run(["JL Harper", "M Begon"], per_query_cap=10)
    """

    def __init__(self, search: Optional[SerpApiClient] = None, pipeline: Optional[IngestPipeline] = None):
        self.search = search or SerpApiClient()
        self.pipeline = pipeline or IngestPipeline()

    def run(self, queries: list[str], per_query_cap: int) -> list[Article]:
        """
        Ingest the first matching profile's publications for each researcher.

        Returns:
            All persisted or recognized articles, concatenated in query order
        """
        return self.run_report(queries, per_query_cap).articles

    def run_report(self, queries: list[str], per_query_cap: int) -> BatchReport:
        """Same as run(), returning per-query outcomes."""
        report = BatchReport()
        logger.info(f"Starting batch of {len(queries)} researcher queries (cap {per_query_cap})")

        with TelemetryLogger(kind="researchers", per_query_cap=per_query_cap) as tl:
            for index, query in enumerate(queries):
                outcome = QueryOutcome(query=query)
                report.outcomes.append(outcome)

                try:
                    with tl.time("search"):
                        response = self.search.search_by_author(query, per_query_cap)

                    if not response.profiles:
                        logger.warning(f"No author profile found for query {index} '{query}'")
                        tl.add_query(query)
                        continue

                    profile = response.profiles[0]
                    outcome.profile = profile.name
                    publications = profile.publications[:per_query_cap]

                    with tl.time("ingest"):
                        ingest_report = self.pipeline.ingest_report(publications, per_query_cap)

                    outcome.articles = ingest_report.articles
                    _record_counts(tl, ingest_report)
                    tl.add_query(query, profile=profile.name, articles=len(outcome.articles))
                    logger.info(f"Query {index} '{query}': {len(outcome.articles)} articles from {profile.name}")

                except Exception as e:
                    outcome.error = f"{type(e).__name__}: {e}"
                    tl.add_query(query, profile=outcome.profile, error=outcome.error)
                    logger.error(f"Query {index} '{query}' failed: {outcome.error}")

        logger.info(
            f"Batch done: {len(report.articles)} articles, "
            f"{len(report.failed_queries)}/{len(queries)} queries failed"
        )
        return report

    def run_keyword_query(self, query: str, cap: int, start: int = 0) -> list[Article]:
        """Ingest the results of a free-text search, optionally from result offset `start`."""
        with TelemetryLogger(kind="keyword", per_query_cap=cap) as tl:
            with tl.time("search"):
                if start:
                    response = self.search.search_page(query, start, cap)
                else:
                    response = self.search.search_articles(query, cap)
            return self._ingest_response(tl, query, response, cap)

    def run_citing(self, citing_set_id: str, cap: int) -> list[Article]:
        """Ingest articles that cite the article with the given citation id."""
        with TelemetryLogger(kind="citing", per_query_cap=cap) as tl:
            with tl.time("search"):
                response = self.search.search_citing_articles(citing_set_id, cap)
            return self._ingest_response(tl, citing_set_id, response, cap)

    def _ingest_response(self, tl: TelemetryLogger, query: str, response: SearchResponse, cap: int) -> list[Article]:
        with tl.time("ingest"):
            ingest_report = self.pipeline.ingest_report(response.results, cap)
        _record_counts(tl, ingest_report)
        tl.add_query(query, articles=len(ingest_report.articles))
        return ingest_report.articles


def _record_counts(tl: TelemetryLogger, report: IngestReport) -> None:
    tl.add_counts(
        persisted=report.persisted,
        duplicates=report.duplicates,
        skipped=report.skipped,
        failed=report.failed,
        author_failures=report.author_failures,
    )
