"""
scholar-ingest - Scholarly metadata ingestion

Pulls article metadata from Google Scholar (via SerpApi), normalizes it and
stores articles, authors and their byline order in PostgreSQL with:
- Deduplication by the search engine's result id
- Per-author article and citation counters
- Pooled or serialized database admission
"""

__version__ = "1.0.0"
