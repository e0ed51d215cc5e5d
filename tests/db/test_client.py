"""Tests for the database client."""

import pytest

from lyricsvault.db.client import DatabaseClient
from lyricsvault.db.schema import ALL_TABLES


class TestDatabaseClient:
    """Tests for DatabaseClient class."""

    def test_initialize_schema_creates_tables(self, db):
        """Test that schema initialization creates required tables."""
        rows = db.connection.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
        names = {row[0] for row in rows}

        assert set(ALL_TABLES) <= names

    def test_foreign_keys_enabled(self, db):
        """Test that foreign keys are enabled."""
        assert db.connection.execute("PRAGMA foreign_keys").fetchone()[0] == 1

    def test_context_manager(self, temp_db_path):
        """Test using client as context manager."""
        with DatabaseClient(temp_db_path) as client:
            client.initialize_schema()
            assert temp_db_path.exists()

    def test_transaction_rolls_back_on_error(self, db, songs, alice):
        """Test that an exception inside a transaction undoes its writes."""
        with pytest.raises(RuntimeError):
            with db.transaction() as conn:
                conn.execute(
                    "INSERT INTO saved_songs (id, user_id, track, created_at, updated_at) "
                    "VALUES ('song_x', 'u', 't', 'now', 'now')"
                )
                raise RuntimeError("boom")

        assert db.get_table_counts()["saved_songs"] == 0

    def test_reset_database(self, db, songs, alice):
        """Test that reset drops all data."""
        songs.create(alice, track="Temp")

        db.reset_database()

        assert all(count == 0 for count in db.get_table_counts().values())
