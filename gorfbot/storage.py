"""
Storage layer for topic history, emoji usage, themes and URL counts.

Uses SQLite for persistence.
"""

import re
import sqlite3
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path(__file__).parent.parent / "data" / "gorfbot.db"
DEFAULT_TIMEOUT = 60.0

# Emoji used in messages and emoji used as reactions are counted separately.
EMOJI_TABLE = "panoptimojis"
REACTION_TABLE = "panoptireactjis"

COLLECTION_PATTERN = re.compile(r"^[A-Za-z0-9_\-]{1,100}$")

SORT_FIELDS = {
    "topics": {"creator", "channel", "topic", "date"},
    EMOJI_TABLE: {"user", "emoji", "count"},
    REACTION_TABLE: {"user", "emoji", "count"},
    "themes": {"name", "theme", "creator"},
}


class StorageError(Exception):
    """A storage operation failed or was given invalid options."""
    pass


# ============================================================================
# RECORDS
# ============================================================================

@dataclass
class Topic:
    """A channel topic change."""
    creator: str  # user ID, not the friendly name
    channel: str  # channel ID, not the friendly name
    topic: str
    date: str  # slack timestamp of the change

    def __str__(self) -> str:
        return (
            f"on {self.date} channel {self.channel} was updated by "
            f"{self.creator} to have topic {self.topic!r}"
        )


@dataclass
class Emoji:
    """
    How many times a user used an emoji.

    The emoji is stored with its ":" delimiters. When reaction is True the
    count is for reactions, otherwise for emoji typed in messages.
    """
    user: str
    emoji: str
    count: int = 0
    reaction: bool = False

    def __str__(self) -> str:
        if self.reaction:
            return (
                f"User {self.user!r} has reacted with emoji "
                f"{self.emoji!r} {self.count} times"
            )
        return (
            f"User {self.user!r} has used emoji {self.emoji!r} "
            f"in a message {self.count} times"
        )


@dataclass
class Theme:
    """A saved Slack sidebar theme (eight comma separated hex colours)."""
    name: str
    theme: str
    creator: str  # user ID


@dataclass
class URLCount:
    """How many times a URL has been seen."""
    url: str
    occurrences: int = 0


# ============================================================================
# FIND OPTIONS
# ============================================================================

@dataclass
class FindOptions:
    """Options common to find operations. Sorting is descending by default."""
    limit: int = 0  # <= 0 means no limit
    sort_field: str = ""
    asc: bool = False


@dataclass
class GetTopicOptions(FindOptions):
    channel: str = ""  # channel ID


@dataclass
class GetEmojiOptions(FindOptions):
    user: str = ""  # user ID
    emoji: str = ""
    reaction: bool = False


@dataclass
class GetThemeOptions(FindOptions):
    user: str = ""  # creator user ID
    name: str = ""


class Storage(ABC):
    """Operations a Gorfbot storage backend must provide."""

    @abstractmethod
    def get_topics(self, opts: GetTopicOptions) -> list[Topic]:
        pass

    @abstractmethod
    def add_topic(self, topic: Topic) -> None:
        pass

    @abstractmethod
    def get_emoji(self, opts: GetEmojiOptions) -> list[Emoji]:
        pass

    @abstractmethod
    def upsert_emoji_count(self, emoji: Emoji, decrement: bool = False) -> Emoji:
        """
        Increment (or decrement) the count for a user's emoji.

        Returns:
            The updated record, or the given record with a zero count if
            this was the first time the emoji was seen for the user
        """
        pass

    @abstractmethod
    def upsert_url_count(self, collection: str, url_count: URLCount) -> URLCount:
        """
        Increment the occurrences of a URL in the named collection.

        Returns:
            The updated record, or the given record with zero occurrences if
            the URL had never been seen before
        """
        pass

    @abstractmethod
    def get_themes(self, opts: GetThemeOptions) -> list[Theme]:
        pass

    @abstractmethod
    def add_theme(self, theme: Theme) -> None:
        pass


# ============================================================================
# SQLITE
# ============================================================================

class SQLiteStorage(Storage):
    """
    Storage backed by a SQLite database file.

    Every operation opens its own connection, so a SQLiteStorage may be
    shared between threads. The timeout bounds how long a call waits on a
    locked database.
    """

    def __init__(self, db_path: Optional[Path] = None, timeout: float = DEFAULT_TIMEOUT):
        self.db_path = Path(db_path) if db_path is not None else DEFAULT_DB_PATH
        self.timeout = timeout
        self.init_database()

    @contextmanager
    def get_connection(self):
        """Context manager for database connections."""
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        except sqlite3.Error as e:
            raise StorageError(f"failed to open database {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_database(self) -> None:
        """Initialize database with required tables."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self.get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS topics (
                    creator TEXT NOT NULL,
                    channel TEXT NOT NULL,
                    topic TEXT NOT NULL,
                    date TEXT NOT NULL
                )
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_topics_channel
                ON topics(channel)
            """)

            for table in (EMOJI_TABLE, REACTION_TABLE):
                cursor.execute(f"""
                    CREATE TABLE IF NOT EXISTS {table} (
                        user TEXT NOT NULL,
                        emoji TEXT NOT NULL,
                        count INTEGER NOT NULL DEFAULT 0,
                        PRIMARY KEY (user, emoji)
                    )
                """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS themes (
                    name TEXT NOT NULL,
                    theme TEXT NOT NULL,
                    creator TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS url_counts (
                    collection TEXT NOT NULL,
                    url TEXT NOT NULL,
                    occurrences INTEGER NOT NULL DEFAULT 0,
                    PRIMARY KEY (collection, url)
                )
            """)

        logger.info(f"Database initialized at {self.db_path}")

    def _find(self, table: str, filters: dict, opts: FindOptions) -> list[sqlite3.Row]:
        """Select rows from table matching all non-empty filters."""
        query = f"SELECT * FROM {table}"
        params = []

        clauses = []
        for column, value in filters.items():
            if value:
                clauses.append(f"{column} = ?")
                params.append(value)
        if clauses:
            query += " WHERE " + " AND ".join(clauses)

        if opts.sort_field:
            if opts.sort_field not in SORT_FIELDS[table]:
                raise StorageError(
                    f"can't sort {table} by unknown field {opts.sort_field!r}"
                )
            direction = "ASC" if opts.asc else "DESC"
            query += f" ORDER BY {opts.sort_field} {direction}"

        if opts.limit > 0:
            query += " LIMIT ?"
            params.append(opts.limit)

        try:
            with self.get_connection() as conn:
                return conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"{table} find failed: {e}") from e

    def get_topics(self, opts: GetTopicOptions) -> list[Topic]:
        rows = self._find("topics", {"channel": opts.channel}, opts)
        return [
            Topic(
                creator=row["creator"],
                channel=row["channel"],
                topic=row["topic"],
                date=row["date"]
            )
            for row in rows
        ]

    def add_topic(self, topic: Topic) -> None:
        try:
            with self.get_connection() as conn:
                conn.execute(
                    "INSERT INTO topics (creator, channel, topic, date) VALUES (?, ?, ?, ?)",
                    (topic.creator, topic.channel, topic.topic, topic.date)
                )
        except sqlite3.Error as e:
            raise StorageError(f"topic add failed: {e}") from e

    def get_emoji(self, opts: GetEmojiOptions) -> list[Emoji]:
        table = REACTION_TABLE if opts.reaction else EMOJI_TABLE
        rows = self._find(table, {"user": opts.user, "emoji": opts.emoji}, opts)
        return [
            Emoji(
                user=row["user"],
                emoji=row["emoji"],
                count=row["count"],
                reaction=opts.reaction
            )
            for row in rows
        ]

    def upsert_emoji_count(self, emoji: Emoji, decrement: bool = False) -> Emoji:
        table = REACTION_TABLE if emoji.reaction else EMOJI_TABLE
        delta = -1 if decrement else 1

        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"SELECT count FROM {table} WHERE user = ? AND emoji = ?",
                    (emoji.user, emoji.emoji)
                )
                row = cursor.fetchone()

                if row is None:
                    cursor.execute(
                        f"INSERT INTO {table} (user, emoji, count) VALUES (?, ?, ?)",
                        (emoji.user, emoji.emoji, delta)
                    )
                    return Emoji(
                        user=emoji.user,
                        emoji=emoji.emoji,
                        count=0,
                        reaction=emoji.reaction
                    )

                cursor.execute(
                    f"UPDATE {table} SET count = count + ? WHERE user = ? AND emoji = ?",
                    (delta, emoji.user, emoji.emoji)
                )
                return Emoji(
                    user=emoji.user,
                    emoji=emoji.emoji,
                    count=row["count"] + delta,
                    reaction=emoji.reaction
                )
        except sqlite3.Error as e:
            raise StorageError(f"upsert emoji count failure: {e}") from e

    def upsert_url_count(self, collection: str, url_count: URLCount) -> URLCount:
        if not COLLECTION_PATTERN.match(collection or ""):
            raise StorageError(f"no such collection: {collection!r}")

        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT occurrences FROM url_counts WHERE collection = ? AND url = ?",
                    (collection, url_count.url)
                )
                row = cursor.fetchone()

                if row is None:
                    cursor.execute(
                        "INSERT INTO url_counts (collection, url, occurrences) VALUES (?, ?, 1)",
                        (collection, url_count.url)
                    )
                    return URLCount(url=url_count.url, occurrences=0)

                cursor.execute("""
                    UPDATE url_counts SET occurrences = occurrences + 1
                    WHERE collection = ? AND url = ?
                """, (collection, url_count.url))
                return URLCount(url=url_count.url, occurrences=row["occurrences"] + 1)
        except sqlite3.Error as e:
            raise StorageError(f"upsert URL count failure: {e}") from e

    def get_themes(self, opts: GetThemeOptions) -> list[Theme]:
        rows = self._find("themes", {"creator": opts.user, "name": opts.name}, opts)
        return [
            Theme(name=row["name"], theme=row["theme"], creator=row["creator"])
            for row in rows
        ]

    def add_theme(self, theme: Theme) -> None:
        try:
            with self.get_connection() as conn:
                conn.execute(
                    "INSERT INTO themes (name, theme, creator) VALUES (?, ?, ?)",
                    (theme.name, theme.theme, theme.creator)
                )
        except sqlite3.Error as e:
            raise StorageError(f"theme add failed: {e}") from e
