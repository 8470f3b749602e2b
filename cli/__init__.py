"""Command-line interface for scholar-ingest."""
