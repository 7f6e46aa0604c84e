"""PostgreSQL store for sources (feeds table) and items."""

import logging
import threading
from contextlib import contextmanager

import psycopg2
from psycopg2.extras import RealDictCursor
from psycopg2.pool import ThreadedConnectionPool

from crawl_feeds.errors import PersistenceError
from crawl_feeds.models import Item, Source

logger = logging.getLogger(__name__)


class PostgresStore:
    """Store backed by a pool of PostgreSQL connections.

    Each call checks out its own connection and runs in its own
    transaction, so workers can share one store.
    """

    def __init__(self, dsn: str, min_conns: int = 1, max_conns: int = 10):
        try:
            self._pool = ThreadedConnectionPool(min_conns, max_conns, dsn)
        except psycopg2.Error as e:
            raise PersistenceError(f"Cannot connect to database: {e}") from e
        # The pool raises instead of waiting once every connection is in use
        self._slots = threading.BoundedSemaphore(max_conns)

    def close(self) -> None:
        self._pool.closeall()

    @contextmanager
    def _cursor(self):
        """Cursor in a transaction: commit on success, rollback on error."""
        with self._slots:
            conn = self._pool.getconn()
            try:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    yield cur
                conn.commit()
            except psycopg2.Error as e:
                conn.rollback()
                raise PersistenceError(str(e).strip()) from e
            except Exception:
                conn.rollback()
                raise
            finally:
                self._pool.putconn(conn)

    def ensure_tables(self) -> None:
        """Create the feeds and items tables if they don't exist."""
        with self._cursor() as cur:
            cur.execute("""
                CREATE TABLE IF NOT EXISTS feeds (
                    id SERIAL PRIMARY KEY,
                    name TEXT NOT NULL UNIQUE,
                    url TEXT NOT NULL,
                    transform TEXT NOT NULL
                )
            """)
            cur.execute("""
                CREATE TABLE IF NOT EXISTS items (
                    feed INTEGER NOT NULL REFERENCES feeds(id) ON DELETE CASCADE,
                    id SERIAL PRIMARY KEY,
                    title TEXT NOT NULL,
                    uri TEXT NOT NULL,
                    description TEXT NOT NULL,
                    created TIMESTAMP NOT NULL
                )
            """)

    def add_source(self, name: str, url: str, transform: str) -> Source:
        with self._cursor() as cur:
            cur.execute("""
                INSERT INTO feeds (name, url, transform)
                VALUES (%s, %s, %s)
                ON CONFLICT (name)
                DO UPDATE SET url = EXCLUDED.url, transform = EXCLUDED.transform
                RETURNING id, name, url, transform
            """, (name, url, transform))
            return _to_source(cur.fetchone())

    def list_sources(self, names: list[str] | None = None) -> list[Source]:
        with self._cursor() as cur:
            if names is None:
                cur.execute("SELECT id, name, url, transform FROM feeds ORDER BY name")
            else:
                cur.execute(
                    "SELECT id, name, url, transform FROM feeds WHERE name = ANY(%s) ORDER BY name",
                    (list(names),)
                )
            return [_to_source(row) for row in cur.fetchall()]

    def find_source(self, name: str) -> Source | None:
        with self._cursor() as cur:
            cur.execute("SELECT id, name, url, transform FROM feeds WHERE name = %s", (name,))
            row = cur.fetchone()
            return _to_source(row) if row is not None else None

    def insert_items(self, source: Source, items: list[Item]) -> int:
        """Insert the items not stored yet and return how many were new.

        All items of one call share a transaction.
        """
        with self._cursor() as cur:
            cur.execute("SELECT id FROM feeds WHERE name = %s", (source.name,))
            row = cur.fetchone()
            if row is None:
                raise PersistenceError(f"unknown source {source.name!r}")
            feed_id = row["id"]

            inserted = 0
            for item in items:
                cur.execute("""
                    INSERT INTO items (feed, title, uri, description, created)
                    SELECT %(feed)s, %(title)s, %(uri)s, %(description)s, CURRENT_TIMESTAMP
                    WHERE NOT EXISTS (
                        SELECT id FROM items
                        WHERE feed = %(feed)s AND title = %(title)s
                          AND uri = %(uri)s AND description = %(description)s
                    )
                """, {
                    "feed": feed_id,
                    "title": item.title,
                    "uri": item.uri,
                    "description": item.description,
                })
                inserted += cur.rowcount

        logger.debug("Inserted %d of %d items for %s", inserted, len(items), source.name)
        return inserted

    def list_items(self, source: Source, limit: int = 10) -> list[Item]:
        """Newest items of `source` first."""
        with self._cursor() as cur:
            cur.execute("""
                SELECT f.name AS feed, i.title, i.uri, i.description, i.created
                FROM items i JOIN feeds f ON f.id = i.feed
                WHERE f.name = %s
                ORDER BY i.created DESC, i.id DESC
                LIMIT %s
            """, (source.name, limit))
            return [Item(**row) for row in cur.fetchall()]


def _to_source(row: dict) -> Source:
    return Source(id=row["id"], name=row["name"], url=row["url"], transform=row["transform"])
