"""SQLite database client for the lyrics core.

Owns the connection and transaction handling shared by the song, document,
version and annotation stores.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from lyricsvault.db.schema import ALL_SCHEMA_STATEMENTS, ALL_TABLES

logger = logging.getLogger(__name__)


class DatabaseClient:
    """Client for the LyricsVault SQLite database.

    The connection runs in autocommit mode; every write goes through
    `transaction()`, which issues an explicit BEGIN so a read-check-write
    sequence (such as the version compare-and-swap) holds the write lock
    from its first statement.

    Attributes:
        db_path: Path to the SQLite database file
    """

    def __init__(self, db_path: Path):
        """Initialize the database client.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        self._connection: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    @property
    def connection(self) -> sqlite3.Connection:
        """Get or create database connection.

        Returns:
            Active SQLite connection
        """
        if self._connection is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

            self._connection = sqlite3.connect(
                self.db_path,
                timeout=30.0,
                isolation_level=None,
                check_same_thread=False,  # access is serialized by _lock
            )
            self._connection.row_factory = sqlite3.Row
            self._connection.execute("PRAGMA foreign_keys = ON")
            self._connection.execute("PRAGMA journal_mode = WAL")

        return self._connection

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None

    def __enter__(self) -> "DatabaseClient":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()

    @contextmanager
    def transaction(self, immediate: bool = True) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database transactions.

        Args:
            immediate: Take the write lock up front (BEGIN IMMEDIATE). Use
                False for read-only work that only needs a consistent view.

        Yields:
            SQLite connection with active transaction
        """
        with self._lock:
            conn = self.connection
            conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

    def initialize_schema(self) -> None:
        """Create all tables and indexes if they don't exist."""
        with self.transaction() as conn:
            for statement in ALL_SCHEMA_STATEMENTS:
                conn.execute(statement)
        logger.info(f"Database schema initialized at {self.db_path}")

    def reset_database(self) -> None:
        """Drop all tables and recreate the schema.

        Warning: This deletes all data!
        """
        with self.transaction() as conn:
            for table in ALL_TABLES:
                conn.execute(f"DROP TABLE IF EXISTS {table}")
        logger.warning(f"Database reset at {self.db_path}")
        self.initialize_schema()

    def get_table_counts(self) -> dict[str, int]:
        """Count rows per table.

        Returns:
            Mapping of table name to row count
        """
        counts = {}
        with self.transaction(immediate=False) as conn:
            for table in reversed(ALL_TABLES):
                row = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
                counts[table] = row[0]
        return counts
