"""
Ingestion telemetry for scholar-ingest.

Logs one JSONL record per batch run (queries, per-query outcomes, counts,
timing) for debugging and auditing what was ingested.

Enable with: SCHOLAR_TELEMETRY=1
"""

import json
import logging
import os
import time
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from scholar_ingest.config import config

logger = logging.getLogger(__name__)


def is_telemetry_enabled() -> bool:
    """Check if telemetry is enabled via environment variable."""
    return os.environ.get("SCHOLAR_TELEMETRY", "0") == "1"


# Default log path
TELEMETRY_LOG_PATH = Path(config.LOG_DIR) / "ingest_runs.jsonl"


@dataclass
class IngestTelemetry:
    """Telemetry data for a single batch run."""

    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    kind: str = "researchers"  # researchers, keyword, citing
    per_query_cap: int = 0

    # One entry per query: {"query", "profile", "articles", "error"}
    queries: list[dict] = field(default_factory=list)

    # Totals across queries
    persisted: int = 0
    duplicates: int = 0
    skipped: int = 0
    failed: int = 0
    author_failures: int = 0

    search_latency_ms: float = 0.0
    ingest_latency_ms: float = 0.0
    total_latency_ms: float = 0.0

    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return asdict(self)


class TelemetryLogger:
    """
    Logger for batch-run telemetry.

    Usage:
        with TelemetryLogger(kind="researchers") as tl:
            with tl.time("search"):
                response = client.search_by_author(name, 10)
            tl.add_query(name, profile="JL Harper", articles=10)
    """

    def __init__(self, kind: str = "researchers", per_query_cap: int = 0, log_path: Optional[Path] = None):
        """
        Initialize telemetry logger.

        Args:
            kind: Type of batch being recorded
            per_query_cap: Result cap applied to each query
            log_path: Path to JSONL log file (default: logs/ingest_runs.jsonl)
        """
        self.log_path = log_path or TELEMETRY_LOG_PATH
        self.enabled = is_telemetry_enabled()
        self.telemetry = IngestTelemetry(kind=kind, per_query_cap=per_query_cap)
        self._start_time = time.perf_counter()
        self._timers: dict[str, float] = {}

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.telemetry.errors.append(f"{exc_type.__name__}: {exc_val}")
        if self.enabled:
            self.finalize()
        return False

    class _Timer:
        """Accumulating timer for a named operation."""

        def __init__(self, logger: "TelemetryLogger", name: str):
            self.logger = logger
            self.name = name
            self.start = 0.0

        def __enter__(self):
            self.start = time.perf_counter()
            return self

        def __exit__(self, *args):
            elapsed_ms = (time.perf_counter() - self.start) * 1000
            self.logger._timers[self.name] = self.logger._timers.get(self.name, 0.0) + elapsed_ms

    def time(self, operation: str) -> "_Timer":
        """Time an operation; repeated timings of the same name add up."""
        return self._Timer(self, operation)

    def add_query(
        self,
        query: str,
        profile: Optional[str] = None,
        articles: int = 0,
        error: Optional[str] = None,
    ):
        """Record the outcome of one query."""
        self.telemetry.queries.append({
            "query": query,
            "profile": profile,
            "articles": articles,
            "error": error,
        })
        if error:
            self.telemetry.errors.append(f"{query}: {error}")

    def add_counts(self, persisted=0, duplicates=0, skipped=0, failed=0, author_failures=0):
        """Add per-ingest counts to the run totals."""
        self.telemetry.persisted += persisted
        self.telemetry.duplicates += duplicates
        self.telemetry.skipped += skipped
        self.telemetry.failed += failed
        self.telemetry.author_failures += author_failures

    def finalize(self):
        """Calculate final metrics and write to log."""
        if not self.enabled:
            return

        self.telemetry.search_latency_ms = self._timers.get("search", 0.0)
        self.telemetry.ingest_latency_ms = self._timers.get("ingest", 0.0)
        self.telemetry.total_latency_ms = (time.perf_counter() - self._start_time) * 1000

        self._write_log()

    def _write_log(self):
        """Append telemetry to JSONL log file."""
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self.log_path, "a") as f:
                json.dump(self.telemetry.to_dict(), f)
                f.write("\n")

            logger.debug(f"Telemetry logged: {self.telemetry.run_id}")

        except OSError as e:
            logger.warning(f"Failed to write telemetry: {e}")


def read_telemetry_logs(log_path: Optional[Path] = None, limit: int = 100) -> list[dict]:
    """
    Read telemetry records from a JSONL file, oldest first.

    Malformed lines are skipped.
    """
    log_path = log_path or TELEMETRY_LOG_PATH

    if not log_path.exists():
        return []

    results = []
    with open(log_path, "r") as f:
        for line in f:
            if not line.strip():
                continue
            try:
                results.append(json.loads(line))
            except json.JSONDecodeError:
                continue
            if len(results) >= limit:
                break

    return results
