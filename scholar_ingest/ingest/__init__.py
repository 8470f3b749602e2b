"""
Ingestion for scholar-ingest.

    from scholar_ingest.ingest import BatchOrchestrator, IngestPipeline

    pipeline = IngestPipeline()
    articles = BatchOrchestrator(pipeline=pipeline).run(["JL Harper"], per_query_cap=10)
"""

from .normalizer import normalize_result, validate_article
from .locks import KeyedLock
from .pipeline import ArticleValidationError, IngestPipeline, IngestReport
from .batch import BatchOrchestrator, BatchReport, QueryOutcome

__all__ = [
    "normalize_result",
    "validate_article",
    "KeyedLock",
    "ArticleValidationError",
    "IngestPipeline",
    "IngestReport",
    "BatchOrchestrator",
    "BatchReport",
    "QueryOutcome",
]
