"""
SQLite storage for feeds and their known posts.

Provides async database operations so that known posts survive restarts
and are not announced again.
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from rss_relay.models import Feed, Post

logger = logging.getLogger(__name__)


def _to_text(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _from_text(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class Storage:
    """
    Async SQLite storage for feeds and known posts.

    Posts are appended in discovery order and read back in the same order.
    """

    def __init__(self, database_path: str | Path):
        """
        Initialize storage with database path.

        Parameters
        ----------
        database_path : str | Path
            Path to the SQLite database file.
        """
        self.database_path = Path(database_path)
        self._connection: aiosqlite.Connection | None = None

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("Database not initialized")
        return self._connection

    async def initialize(self) -> None:
        """
        Initialize the database connection and create tables.

        Creates the database file and parent directories if they don't exist.
        """
        if str(self.database_path) != ":memory:":
            self.database_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info("Initializing database at %s", self.database_path)

        self._connection = await aiosqlite.connect(self.database_path)
        await self._create_tables()

    async def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        connection = self._require_connection()

        await connection.execute("""
            CREATE TABLE IF NOT EXISTS feeds (
                url TEXT PRIMARY KEY,
                title TEXT NOT NULL DEFAULT '',
                updated_at TEXT NOT NULL
            )
        """)

        await connection.execute("""
            CREATE TABLE IF NOT EXISTS posts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                feed_url TEXT NOT NULL,
                title TEXT,
                author TEXT NOT NULL,
                link TEXT,
                description TEXT NOT NULL,
                published TEXT,
                updated TEXT,
                discovered_at TEXT NOT NULL
            )
        """)

        await connection.execute("""
            CREATE INDEX IF NOT EXISTS idx_posts_feed
            ON posts (feed_url)
        """)

        await connection.commit()
        logger.debug("Database tables created/verified")

    async def save_feed(self, feed: Feed) -> None:
        """
        Insert a feed or refresh its stored title.

        Parameters
        ----------
        feed : Feed
            The feed to save.
        """
        connection = self._require_connection()
        now = datetime.now(timezone.utc).isoformat()

        await connection.execute(
            """
            INSERT INTO feeds (url, title, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(url) DO UPDATE SET title = excluded.title,
                                           updated_at = excluded.updated_at
            """,
            (feed.url, feed.title or "", now),
        )
        await connection.commit()
        logger.debug("Saved feed: %s", feed.url)

    async def load_feed_titles(self) -> dict[str, str]:
        """
        Return the stored title of every saved feed.

        Returns
        -------
        dict[str, str]
            Mapping of feed URL to title.
        """
        connection = self._require_connection()
        cursor = await connection.execute("SELECT url, title FROM feeds")
        rows = await cursor.fetchall()
        return {url: title for url, title in rows}

    async def add_posts(self, posts: Iterable[Post]) -> int:
        """
        Append posts in a single transaction.

        Parameters
        ----------
        posts : Iterable[Post]
            Newly discovered posts, in discovery order.

        Returns
        -------
        int
            Number of posts written.
        """
        connection = self._require_connection()
        now = datetime.now(timezone.utc).isoformat()

        rows = [
            (
                post.feed_url,
                post.title,
                post.author,
                post.link,
                post.description,
                _to_text(post.published),
                _to_text(post.updated),
                now,
            )
            for post in posts
        ]
        if not rows:
            return 0

        await connection.executemany(
            """
            INSERT INTO posts (feed_url, title, author, link, description,
                               published, updated, discovered_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            rows,
        )
        await connection.commit()
        logger.debug("Stored %d post(s)", len(rows))
        return len(rows)

    async def load_posts(self, feed_url: str | None = None) -> list[Post]:
        """
        Load stored posts in discovery order.

        Parameters
        ----------
        feed_url : str | None
            If provided, load only the posts of this feed.

        Returns
        -------
        list[Post]
            Stored posts.
        """
        connection = self._require_connection()
        query = """
            SELECT feed_url, title, author, link, description, published, updated
            FROM posts
        """
        params: tuple = ()
        if feed_url:
            query += " WHERE feed_url = ?"
            params = (feed_url,)
        query += " ORDER BY id"

        cursor = await connection.execute(query, params)
        rows = await cursor.fetchall()
        return [
            Post(
                feed_url=row[0],
                title=row[1],
                author=row[2],
                link=row[3],
                description=row[4],
                published=_from_text(row[5]),
                updated=_from_text(row[6]),
            )
            for row in rows
        ]

    async def get_post_count(self, feed_url: str | None = None) -> int:
        """
        Get the count of stored posts.

        Parameters
        ----------
        feed_url : str | None
            If provided, count only posts of this feed.

        Returns
        -------
        int
            Number of stored posts.
        """
        connection = self._require_connection()

        if feed_url:
            cursor = await connection.execute(
                "SELECT COUNT(*) FROM posts WHERE feed_url = ?",
                (feed_url,),
            )
        else:
            cursor = await connection.execute("SELECT COUNT(*) FROM posts")

        result = await cursor.fetchone()
        return result[0] if result else 0

    async def delete_feed(self, feed_url: str) -> int:
        """
        Remove a feed and all of its posts.

        Parameters
        ----------
        feed_url : str
            URL of the feed to remove.

        Returns
        -------
        int
            Number of posts removed.
        """
        connection = self._require_connection()

        cursor = await connection.execute("DELETE FROM posts WHERE feed_url = ?", (feed_url,))
        await connection.execute("DELETE FROM feeds WHERE url = ?", (feed_url,))
        await connection.commit()

        deleted = cursor.rowcount
        logger.info("Deleted feed %s and %d post(s)", feed_url, deleted)
        return deleted

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            logger.debug("Database connection closed")

    async def __aenter__(self) -> "Storage":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
