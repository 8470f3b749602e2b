#!/usr/bin/env python3
"""
scholar-ingest CLI.

Usage:
    scholar ingest-researchers "JL Harper" "M Begon" -n 10
    scholar search "population biology of plants"
    scholar citing 1234567890abcdef
    scholar articles --author Harper
    scholar author "JL Harper"
    scholar stats
"""

import json
import logging
import sys

import click

from scholar_ingest import __version__
from scholar_ingest.config import config


def _service():
    from scholar_ingest.service import ScholarService

    return ScholarService()


def _echo_articles(articles, output_json: bool = False):
    if output_json:
        click.echo(json.dumps([a.to_dict() for a in articles], indent=2, default=str))
        return

    for i, a in enumerate(articles):
        click.echo(click.style(f"[{i+1}] {a.title}", fg="green", bold=True))
        click.echo(f"    Authors: {a.authors}")
        if a.publication_year:
            click.echo(f"    Year: {a.publication_year}")
        click.echo(f"    Venue: {a.venue}")
        click.echo(f"    Citations: {a.citation_count}")
        if a.external_id:
            click.echo(f"    External ID: {a.external_id}")
        click.echo()


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """scholar-ingest - Scholarly metadata ingestion CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ============================================================================
# Ingestion Commands
# ============================================================================

@cli.command()
@click.argument("names", nargs=-1, required=True)
@click.option("-n", "--per-researcher", type=int, default=None, help="Articles per researcher")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def ingest_researchers(names: tuple, per_researcher: int, output_json: bool):
    """Ingest publications of each researcher's first matching profile."""
    from scholar_ingest.security.input_validation import InputValidationError

    with _service() as service:
        try:
            report = service.run_batch(list(names), per_researcher)
        except InputValidationError as e:
            raise click.BadParameter(str(e))

    if output_json:
        _echo_articles(report.articles, output_json=True)
        return

    for outcome in report.outcomes:
        if outcome.succeeded:
            status = click.style("✓", fg="green")
            detail = f"{len(outcome.articles)} articles"
            if outcome.profile:
                detail += f" ({outcome.profile})"
        else:
            status = click.style("✗", fg="red")
            detail = outcome.error
        click.echo(f"{status} {outcome.query}: {detail}")

    click.echo(f"\n{'='*50}")
    click.echo(f"Researchers: {len(report.outcomes)}")
    click.echo(f"Failed:      {len(report.failed_queries)}")
    click.echo(f"Articles:    {len(report.articles)}")


@cli.command()
@click.argument("query")
@click.option("-n", "--num-results", type=int, default=None, help="Number of results to ingest")
@click.option("--start", type=int, default=0, help="Skip this many results (paging)")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def search(query: str, num_results: int, start: int, output_json: bool):
    """Search Google Scholar and ingest the top results."""
    from scholar_ingest.security.input_validation import InputValidationError
    from scholar_ingest.search.serpapi import TransportError

    with _service() as service:
        try:
            articles = service.ingest_keyword(query, num_results, start=start)
        except InputValidationError as e:
            raise click.BadParameter(str(e))
        except TransportError as e:
            click.echo(click.style(f"✗ Search failed: {e}", fg="red"))
            sys.exit(1)

    if not output_json:
        click.echo(f"\nIngested {len(articles)} articles for: {query}\n")
    _echo_articles(articles, output_json)


@cli.command()
@click.argument("citing_set_id")
@click.option("-n", "--num-results", type=int, default=None, help="Number of citing articles to ingest")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def citing(citing_set_id: str, num_results: int, output_json: bool):
    """Ingest articles that cite a given article."""
    from scholar_ingest.security.input_validation import InputValidationError
    from scholar_ingest.search.serpapi import TransportError

    with _service() as service:
        try:
            articles = service.ingest_citing(citing_set_id, num_results)
        except InputValidationError as e:
            raise click.BadParameter(str(e))
        except TransportError as e:
            click.echo(click.style(f"✗ Search failed: {e}", fg="red"))
            sys.exit(1)

    if not output_json:
        click.echo(f"\nIngested {len(articles)} citing articles\n")
    _echo_articles(articles, output_json)


# ============================================================================
# Query Commands
# ============================================================================

@cli.command()
@click.option("--author", help="Author name substring")
@click.option("--title", help="Title keyword")
@click.option("--year", type=int, help="Publication year")
@click.option("--min-citations", type=int, help="Cited more than this many times")
@click.option("--external-id", help="Google Scholar result id")
@click.option("-n", "--limit", default=20, help="Maximum articles to show")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def articles(author: str, title: str, year: int, min_citations: int, external_id: str, limit: int, output_json: bool):
    """List stored articles."""
    from scholar_ingest.security.input_validation import InputValidationError

    with _service() as service:
        try:
            if external_id:
                article = service.get_article_by_external_id(external_id)
                found = [article] if article else []
            elif author:
                found = service.articles_by_author(author)
            elif title:
                found = service.search_titles(title)
            elif year is not None:
                found = service.articles_by_year(year)
            elif min_citations is not None:
                found = service.highly_cited(min_citations)
            else:
                found = service.list_articles(limit)
        except InputValidationError as e:
            raise click.BadParameter(str(e))

    _echo_articles(found[:limit], output_json)


@cli.command()
@click.option("--name", help="Author name substring")
@click.option("--by", type=click.Choice(["citations", "articles"]), default="citations", help="Ranking")
@click.option("-n", "--limit", default=10, help="Maximum authors to show")
def authors(name: str, by: str, limit: int):
    """List stored authors."""
    from scholar_ingest.security.input_validation import InputValidationError

    with _service() as service:
        try:
            if name:
                found = service.search_authors(name)[:limit]
            else:
                found = service.top_authors(limit, by=by)
        except InputValidationError as e:
            raise click.BadParameter(str(e))

    click.echo(f"\n{'Author':<40} {'Articles':>10} {'Citations':>12}")
    click.echo("-" * 64)
    for a in found:
        click.echo(f"{a.full_name:<40} {a.article_count:>10,} {a.total_citations:>12,}")


@cli.command()
@click.argument("name_or_id")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def author(name_or_id: str, output_json: bool):
    """Show one author and their stored articles."""
    from scholar_ingest.security.input_validation import InputValidationError

    with _service() as service:
        try:
            if name_or_id.isascii() and name_or_id.isdigit():
                found = service.get_author(int(name_or_id))
            else:
                found = service.find_author(name_or_id)
        except InputValidationError as e:
            raise click.BadParameter(str(e))

        if found is None or found.is_deleted:
            click.echo(click.style(f"✗ No author matching {name_or_id!r}", fg="red"))
            sys.exit(1)

        written = service.articles_for_author(found.id)

    if output_json:
        click.echo(json.dumps(
            {"author": found.to_dict(), "articles": [a.to_dict() for a in written]},
            indent=2,
            default=str,
        ))
        return

    click.echo(click.style(f"\n{found.full_name}", fg="green", bold=True))
    click.echo(f"  Articles:  {found.article_count:,}")
    click.echo(f"  Citations: {found.total_citations:,}\n")
    _echo_articles(written)


# ============================================================================
# Stats & Admin Commands
# ============================================================================

@cli.command()
def stats():
    """Show ingestion statistics."""
    with _service() as service:
        s = service.stats()

    click.echo("\nscholar-ingest Statistics")
    click.echo("=" * 40)
    click.echo(f"Articles:          {s.get('articles', 0):>15,}")
    click.echo(f"Deleted articles:  {s.get('articles_deleted', 0):>15,}")
    click.echo(f"Authors:           {s.get('authors', 0):>15,}")
    click.echo(f"Author links:      {s.get('links', 0):>15,}")
    click.echo(f"Citations:         {s.get('citations', 0):>15,}")


@cli.command()
@click.argument("article_id", type=int)
def delete_article(article_id: int):
    """Soft-delete an article."""
    with _service() as service:
        deleted = service.delete_article(article_id)

    if deleted:
        click.echo(click.style(f"✓ Article {article_id} deleted", fg="green"))
    else:
        click.echo(click.style(f"✗ No live article with id {article_id}", fg="red"))
        sys.exit(1)


@cli.command()
def init_db():
    """Initialize the database schema."""
    from scholar_ingest.db.admission import get_admission

    click.echo("\nInitializing Postgres schema...")

    with get_admission().connection() as conn:
        with conn.transaction():
            with conn.cursor() as cur:
                for sql_file in sorted(config.SCHEMA_DIR.glob("*.sql")):
                    click.echo(f"  Executing {sql_file.name}...")
                    cur.execute(sql_file.read_text())

    click.echo(click.style("✓ Postgres schema initialized", fg="green"))


@cli.command()
def health():
    """Check configuration, database and search API."""
    from scholar_ingest.db.postgres import check_health
    from scholar_ingest.search.serpapi import SerpApiClient

    problems = config.validate()
    for problem in problems:
        click.echo(click.style(f"! {problem}", fg="yellow"))

    db = check_health()
    db_color = "green" if db["status"] == "healthy" else "red"
    click.echo(click.style(f"Database ({db['mode']}): {db['status']}", fg=db_color))
    if db.get("error"):
        click.echo(f"  Error: {db['error']}")
    elif db["tables"]:
        click.echo(f"  Tables: {', '.join(db['tables'])}")

    with SerpApiClient() as client:
        api_ok = client.is_configured() and client.test_connection()
    click.echo(click.style(f"Search API: {'reachable' if api_ok else 'unavailable'}", fg="green" if api_ok else "red"))

    if db["status"] != "healthy" or not api_ok:
        sys.exit(1)


# ============================================================================
# Main Entry Point
# ============================================================================

def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
