"""
Centralized configuration for scholar-ingest.

All configuration values should be imported from this module.
Supports environment variable overrides for containerization.
"""

import os
from pathlib import Path
from typing import Optional
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

# Placeholder key shipped in sample .env files; never a usable credential
DEMO_API_KEY = "demo_api_key_for_testing"


def _find_project_root() -> Path:
    """Find project root by looking for pyproject.toml or .git."""
    current = Path(__file__).resolve().parent
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists() or (parent / ".git").exists():
            return parent
    return current.parent


@dataclass
class Config:
    """scholar-ingest configuration."""

    # ==========================================================================
    # Paths
    # ==========================================================================
    PROJECT_ROOT: Path = field(default_factory=_find_project_root)

    @property
    def SCHEMA_DIR(self) -> Path:
        return Path(os.environ.get("SCHEMA_DIR", str(self.PROJECT_ROOT / "schema" / "postgres")))

    @property
    def LOG_DIR(self) -> Path:
        return Path(os.environ.get("LOG_DIR", str(self.PROJECT_ROOT / "logs")))

    # ==========================================================================
    # Database
    # ==========================================================================
    @property
    def POSTGRES_DSN(self) -> str:
        return os.environ.get(
            "POSTGRES_DSN",
            "dbname=scholar user=scholar host=/var/run/postgresql"
        )

    @property
    def DB_MODE(self) -> str:
        """Storage admission policy: "pooled" or "serialized" ("single" is accepted)."""
        return os.environ.get("DB_MODE", "pooled").strip().lower()

    @property
    def PG_POOL_MIN(self) -> int:
        return int(os.environ.get("PG_POOL_MIN", "1"))

    @property
    def PG_POOL_MAX(self) -> int:
        return int(os.environ.get("PG_POOL_MAX", "10"))

    @property
    def PG_POOL_TIMEOUT(self) -> float:
        """Seconds to wait for a pooled connection before giving up."""
        return float(os.environ.get("PG_POOL_TIMEOUT", "30"))

    # ==========================================================================
    # External APIs
    # ==========================================================================
    @property
    def SERP_API_KEY(self) -> Optional[str]:
        return os.environ.get("SERP_API_KEY")

    @property
    def SERPAPI_BASE_URL(self) -> str:
        return os.environ.get("SERPAPI_BASE_URL", "https://serpapi.com/search.json")

    @property
    def SEARCH_TIMEOUT(self) -> float:
        return float(os.environ.get("SEARCH_TIMEOUT", "30"))

    # ==========================================================================
    # Processing
    # ==========================================================================
    @property
    def ARTICLES_PER_RESEARCHER(self) -> int:
        return int(os.environ.get("ARTICLES_PER_RESEARCHER", "10"))

    @property
    def LOG_LEVEL(self) -> str:
        return os.environ.get("LOG_LEVEL", "INFO")

    # SerpApi returns at most 20 organic results per request
    MAX_RESULTS_PER_REQUEST = 20

    # ==========================================================================
    # Validation
    # ==========================================================================
    def validate(self) -> list[str]:
        """Return list of configuration errors."""
        errors = []

        if self.DB_MODE not in ("pooled", "serialized", "single"):
            errors.append(f"Unknown DB_MODE: {self.DB_MODE} (expected pooled or serialized)")

        if self.PG_POOL_MAX < 1:
            errors.append(f"PG_POOL_MAX must be >= 1, got {self.PG_POOL_MAX}")

        if self.PG_POOL_MIN > self.PG_POOL_MAX:
            errors.append(
                f"PG_POOL_MIN ({self.PG_POOL_MIN}) exceeds PG_POOL_MAX ({self.PG_POOL_MAX})"
            )

        if not self.SERP_API_KEY or self.SERP_API_KEY == DEMO_API_KEY:
            errors.append("SERP_API_KEY not set")

        return errors

    def __repr__(self) -> str:
        return (
            f"Config(\n"
            f"  PROJECT_ROOT={self.PROJECT_ROOT}\n"
            f"  POSTGRES_DSN={self.POSTGRES_DSN[:30]}...\n"
            f"  DB_MODE={self.DB_MODE}\n"
            f"  PG_POOL_MAX={self.PG_POOL_MAX}\n"
            f"  SERPAPI_BASE_URL={self.SERPAPI_BASE_URL}\n"
            f")"
        )


# Global config instance
config = Config()


# Convenience exports
POSTGRES_DSN = config.POSTGRES_DSN
DB_MODE = config.DB_MODE
SERP_API_KEY = config.SERP_API_KEY
