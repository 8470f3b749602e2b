"""
Postgres storage for articles, authors and their links.

Uses psycopg3 with dict rows. Connections come from the configured
StorageAdmission policy (pooled or serialized); every statement runs in its
own transaction block so that one failed statement does not abort the rest
of a unit of work.

Usage:
    storage = PostgresStorage()
    with storage.unit_of_work() as session:
        article = session.find_by_external_id("lAjsWrJK7KYJ")
"""

import logging
from contextlib import contextmanager
from typing import Any, Generator, Optional

import psycopg

from scholar_ingest.db.admission import StorageAdmission, get_admission
from scholar_ingest.db.errors import StorageError
from scholar_ingest.models import Article, ArticleAuthorLink, Author

logger = logging.getLogger(__name__)

FETCH_NONE = "none"
FETCH_ONE = "one"
FETCH_ALL = "all"

_ARTICLE_COLUMNS = (
    "title, authors, publication_year, venue, url, abstract_snippet, "
    "external_id, citation_count, citing_set_id, pdf_url, publisher"
)


class StorageSession:
    """Storage operations bound to one admitted connection."""

    def __init__(self, conn: psycopg.Connection):
        self.conn = conn

    def _run(self, query: str, params: Optional[tuple] = None, fetch: str = FETCH_NONE) -> Any:
        """
        Execute one statement in its own transaction.

        Returns:
            A row dict (FETCH_ONE), a list of row dicts (FETCH_ALL),
            or the affected row count (FETCH_NONE)

        Raises:
            StorageError: On any driver error
        """
        try:
            with self.conn.transaction():
                with self.conn.cursor() as cur:
                    cur.execute(query, params)
                    if fetch == FETCH_ONE:
                        return cur.fetchone()
                    if fetch == FETCH_ALL:
                        return cur.fetchall()
                    return cur.rowcount
        except psycopg.Error as e:
            raise StorageError(str(e)) from e

    def _count(self, query: str) -> int:
        row = self._run(query, fetch=FETCH_ONE)
        return row["count"] if row else 0

    # ==========================================================================
    # Articles
    # ==========================================================================

    def insert_article(self, article: Article) -> Article:
        """Insert an article and return it with id and timestamps populated."""
        row = self._run(
            f"""
            INSERT INTO articles ({_ARTICLE_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING *
            """,
            (
                article.title,
                article.authors,
                article.publication_year,
                article.venue,
                article.url,
                article.abstract_snippet,
                article.external_id,
                article.citation_count,
                article.citing_set_id,
                article.pdf_url,
                article.publisher,
            ),
            fetch=FETCH_ONE,
        )
        if not row:
            raise StorageError(f"Insert returned no row for article: {article.title}")
        return Article.from_row(row)

    def find_by_external_id(self, external_id: str) -> Optional[Article]:
        """Oldest non-deleted article carrying this external id."""
        row = self._run(
            """
            SELECT * FROM articles
            WHERE external_id = %s AND deleted_at IS NULL
            ORDER BY id
            LIMIT 1
            """,
            (external_id,),
            fetch=FETCH_ONE,
        )
        return Article.from_row(row) if row else None

    def find_article_by_id(self, article_id: int) -> Optional[Article]:
        row = self._run("SELECT * FROM articles WHERE id = %s", (article_id,), fetch=FETCH_ONE)
        return Article.from_row(row) if row else None

    def list_articles(self, limit: int = 100) -> list[Article]:
        rows = self._run(
            """
            SELECT * FROM articles WHERE deleted_at IS NULL
            ORDER BY publication_year DESC NULLS LAST, citation_count DESC
            LIMIT %s
            """,
            (limit,),
            fetch=FETCH_ALL,
        )
        return [Article.from_row(r) for r in rows]

    def find_articles_by_author(self, author_name: str) -> list[Article]:
        """Articles whose raw author string contains the given name."""
        rows = self._run(
            """
            SELECT * FROM articles
            WHERE authors ILIKE %s AND deleted_at IS NULL
            ORDER BY publication_year DESC NULLS LAST
            """,
            (f"%{author_name}%",),
            fetch=FETCH_ALL,
        )
        return [Article.from_row(r) for r in rows]

    def search_articles_by_title(self, keyword: str) -> list[Article]:
        rows = self._run(
            """
            SELECT * FROM articles
            WHERE title ILIKE %s AND deleted_at IS NULL
            ORDER BY citation_count DESC
            """,
            (f"%{keyword}%",),
            fetch=FETCH_ALL,
        )
        return [Article.from_row(r) for r in rows]

    def find_articles_by_year(self, year: int) -> list[Article]:
        rows = self._run(
            """
            SELECT * FROM articles
            WHERE publication_year = %s AND deleted_at IS NULL
            ORDER BY citation_count DESC
            """,
            (year,),
            fetch=FETCH_ALL,
        )
        return [Article.from_row(r) for r in rows]

    def find_articles_cited_more_than(self, min_citations: int) -> list[Article]:
        rows = self._run(
            """
            SELECT * FROM articles
            WHERE citation_count > %s AND deleted_at IS NULL
            ORDER BY citation_count DESC, publication_year DESC NULLS LAST
            """,
            (min_citations,),
            fetch=FETCH_ALL,
        )
        return [Article.from_row(r) for r in rows]

    def count_articles(self) -> int:
        return self._count("SELECT COUNT(*) AS count FROM articles WHERE deleted_at IS NULL")

    def touch_article(self, article_id: int) -> Optional[Article]:
        """Refresh updated_at; no other field changes."""
        row = self._run(
            """
            UPDATE articles SET updated_at = NOW()
            WHERE id = %s AND deleted_at IS NULL
            RETURNING *
            """,
            (article_id,),
            fetch=FETCH_ONE,
        )
        return Article.from_row(row) if row else None

    def soft_delete_article(self, article_id: int) -> bool:
        affected = self._run(
            """
            UPDATE articles SET deleted_at = NOW(), updated_at = NOW()
            WHERE id = %s AND deleted_at IS NULL
            """,
            (article_id,),
        )
        return affected > 0

    # ==========================================================================
    # Authors
    # ==========================================================================

    def find_author_by_name(self, full_name: str) -> Optional[Author]:
        row = self._run(
            "SELECT * FROM authors WHERE full_name = %s AND deleted_at IS NULL ORDER BY id LIMIT 1",
            (full_name,),
            fetch=FETCH_ONE,
        )
        return Author.from_row(row) if row else None

    def upsert_author_by_name(self, full_name: str) -> Author:
        """
        Return the author with this exact name, creating it with zero counters.

        Lookup-then-insert: two concurrent callers may both insert.
        """
        existing = self.find_author_by_name(full_name)
        if existing:
            logger.debug(f"Author already exists: {full_name}")
            return existing

        row = self._run(
            """
            INSERT INTO authors (full_name, article_count, total_citations)
            VALUES (%s, 0, 0)
            RETURNING *
            """,
            (full_name,),
            fetch=FETCH_ONE,
        )
        if not row:
            raise StorageError(f"Insert returned no row for author: {full_name}")
        return Author.from_row(row)

    def find_author_by_id(self, author_id: int) -> Optional[Author]:
        row = self._run("SELECT * FROM authors WHERE id = %s", (author_id,), fetch=FETCH_ONE)
        return Author.from_row(row) if row else None

    def link_author_to_article(self, article_id: int, author_id: int, position: int) -> ArticleAuthorLink:
        """Link an author at a position; an existing link gets the new position."""
        row = self._run(
            """
            INSERT INTO article_authors (article_id, author_id, author_position)
            VALUES (%s, %s, %s)
            ON CONFLICT (article_id, author_id)
            DO UPDATE SET author_position = EXCLUDED.author_position
            RETURNING article_id, author_id, author_position
            """,
            (article_id, author_id, position),
            fetch=FETCH_ONE,
        )
        if not row:
            raise StorageError(f"Link returned no row for article {article_id}, author {author_id}")
        return ArticleAuthorLink.from_row(row)

    def read_author_counters(self, author_id: int) -> tuple[int, int]:
        """Return (article_count, total_citations)."""
        row = self._run(
            "SELECT article_count, total_citations FROM authors WHERE id = %s",
            (author_id,),
            fetch=FETCH_ONE,
        )
        if not row:
            raise StorageError(f"Author not found: {author_id}")
        return row["article_count"], row["total_citations"]

    def write_author_counters(self, author_id: int, article_count: int, total_citations: int) -> None:
        affected = self._run(
            """
            UPDATE authors
            SET article_count = %s, total_citations = %s, last_updated = NOW()
            WHERE id = %s
            """,
            (article_count, total_citations, author_id),
        )
        if affected == 0:
            raise StorageError(f"Author not found: {author_id}")

    def find_authors_for_article(self, article_id: int) -> list[Author]:
        """Authors of an article in link position order."""
        rows = self._run(
            """
            SELECT a.* FROM authors a
            JOIN article_authors aa ON aa.author_id = a.id
            WHERE aa.article_id = %s AND a.deleted_at IS NULL
            ORDER BY aa.author_position
            """,
            (article_id,),
            fetch=FETCH_ALL,
        )
        return [Author.from_row(r) for r in rows]

    def find_articles_for_author(self, author_id: int) -> list[Article]:
        rows = self._run(
            """
            SELECT ar.* FROM articles ar
            JOIN article_authors aa ON aa.article_id = ar.id
            WHERE aa.author_id = %s AND ar.deleted_at IS NULL
            ORDER BY ar.publication_year DESC NULLS LAST
            """,
            (author_id,),
            fetch=FETCH_ALL,
        )
        return [Article.from_row(r) for r in rows]

    def search_authors(self, name_pattern: str) -> list[Author]:
        rows = self._run(
            """
            SELECT * FROM authors
            WHERE full_name ILIKE %s AND deleted_at IS NULL
            ORDER BY total_citations DESC
            """,
            (f"%{name_pattern}%",),
            fetch=FETCH_ALL,
        )
        return [Author.from_row(r) for r in rows]

    def top_authors_by_citations(self, limit: int = 10) -> list[Author]:
        rows = self._run(
            """
            SELECT * FROM authors
            WHERE article_count > 0 AND deleted_at IS NULL
            ORDER BY total_citations DESC
            LIMIT %s
            """,
            (limit,),
            fetch=FETCH_ALL,
        )
        return [Author.from_row(r) for r in rows]

    def top_authors_by_article_count(self, limit: int = 10) -> list[Author]:
        rows = self._run(
            """
            SELECT * FROM authors
            WHERE article_count > 0 AND deleted_at IS NULL
            ORDER BY article_count DESC, total_citations DESC
            LIMIT %s
            """,
            (limit,),
            fetch=FETCH_ALL,
        )
        return [Author.from_row(r) for r in rows]

    def count_authors(self) -> int:
        return self._count("SELECT COUNT(*) AS count FROM authors WHERE deleted_at IS NULL")

    def soft_delete_author(self, author_id: int) -> bool:
        affected = self._run(
            """
            UPDATE authors SET deleted_at = NOW(), last_updated = NOW()
            WHERE id = %s AND deleted_at IS NULL
            """,
            (author_id,),
        )
        return affected > 0

    def get_stats(self) -> dict[str, int]:
        """Row counts for the ingestion tables."""
        stats = {}

        counters = {
            "articles": self.count_articles,
            "articles_deleted": lambda: self._count(
                "SELECT COUNT(*) AS count FROM articles WHERE deleted_at IS NOT NULL"
            ),
            "authors": self.count_authors,
            "links": lambda: self._count("SELECT COUNT(*) AS count FROM article_authors"),
            "citations": lambda: self._count(
                "SELECT COALESCE(SUM(citation_count), 0) AS count FROM articles WHERE deleted_at IS NULL"
            ),
        }

        for name, count in counters.items():
            try:
                stats[name] = count()
            except StorageError as e:
                logger.warning(f"Failed to get stat {name}: {e}")
                stats[name] = 0

        return stats


class PostgresStorage:
    """
    Storage collaborator for the ingestion pipeline.

    Each unit of work holds exactly one admitted connection, which is
    released on every exit path.
    """

    def __init__(self, admission: Optional[StorageAdmission] = None):
        self.admission = admission or get_admission()

    @contextmanager
    def unit_of_work(self) -> Generator[StorageSession, None, None]:
        """
        Raises:
            StorageError: If the admission policy cannot provide a connection
        """
        with self.admission.connection() as conn:
            yield StorageSession(conn)


def check_health(admission: Optional[StorageAdmission] = None) -> dict[str, Any]:
    """Check database health and return status."""
    admission = admission or get_admission()
    result = {
        "status": "unknown",
        "mode": admission.mode,
        "connection": False,
        "tables": [],
    }

    try:
        with admission.connection() as conn:
            result["connection"] = True

            with conn.cursor() as cur:
                cur.execute("""
                    SELECT tablename FROM pg_tables
                    WHERE schemaname = 'public'
                    AND tablename IN ('articles', 'authors', 'article_authors')
                """)
                result["tables"] = sorted(row["tablename"] for row in cur.fetchall())

        result["status"] = "healthy" if len(result["tables"]) == 3 else "degraded"

    except (StorageError, psycopg.Error) as e:
        result["status"] = "unhealthy"
        result["error"] = str(e)

    return result
