"""Saved song records: ownership gate, fetch state and legacy fields."""

import logging
import sqlite3
from typing import Optional

from lyricsvault.core.context import Caller
from lyricsvault.db.client import DatabaseClient
from lyricsvault.db.models import (
    FetchState,
    SavedSong,
    Visibility,
    generate_id,
    utc_now,
)
from lyricsvault.db.schema import SAVED_SONG_COLUMNS
from lyricsvault.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class SongStore:
    """CRUD for saved songs.

    Every caller-facing method scopes its query by the caller's user ID and
    raises NotFoundError for songs the caller does not own.
    """

    def __init__(self, db: DatabaseClient):
        self.db = db

    def require_owned(self, conn: sqlite3.Connection, caller: Caller, song_id: str) -> None:
        """Check that a song exists and belongs to the caller.

        Args:
            conn: Connection inside the caller's transaction
            caller: Requesting user
            song_id: Saved song ID

        Raises:
            NotFoundError: If the song is missing or owned by someone else
        """
        row = conn.execute(
            "SELECT 1 FROM saved_songs WHERE id = ? AND user_id = ?",
            (song_id, caller.user_id),
        ).fetchone()
        if row is None:
            raise NotFoundError("Saved song not found")

    def create(
        self,
        caller: Caller,
        track: str,
        artist: str = "",
        legacy_lyrics: str = "",
        visibility: Visibility = Visibility.PRIVATE,
        fetch_state: FetchState = FetchState.IDLE,
    ) -> SavedSong:
        """Create a saved song for the caller.

        Args:
            caller: Owning user
            track: Track title
            artist: Artist name
            legacy_lyrics: Initial flat-text lyrics (may be empty)
            visibility: Sharing level
            fetch_state: Initial fetch state (`fetching` when a fetch will be queued)

        Returns:
            Created SavedSong
        """
        now = utc_now()
        song = SavedSong(
            id=generate_id("song"),
            user_id=caller.user_id,
            track=track,
            artist=artist,
            legacy_lyrics=legacy_lyrics,
            fetch_state=fetch_state,
            visibility=visibility,
            created_at=now,
            updated_at=now,
        )

        with self.db.transaction() as conn:
            conn.execute(
                f"""
                INSERT INTO saved_songs ({SAVED_SONG_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    song.id,
                    song.user_id,
                    song.track,
                    song.artist,
                    song.legacy_lyrics,
                    song.fetch_state.value,
                    song.visibility.value,
                    song.note,
                    song.created_at,
                    song.updated_at,
                ),
            )

        logger.info(f"Created saved song {song.id} for user {caller.user_id}")
        return song

    def get(self, caller: Caller, song_id: str) -> SavedSong:
        """Get one of the caller's songs.

        Raises:
            NotFoundError: If the song is missing or not the caller's
        """
        with self.db.transaction(immediate=False) as conn:
            row = conn.execute(
                f"SELECT {SAVED_SONG_COLUMNS} FROM saved_songs WHERE id = ? AND user_id = ?",
                (song_id, caller.user_id),
            ).fetchone()
        if row is None:
            raise NotFoundError("Saved song not found")
        return SavedSong.from_row(row)

    def get_by_id(self, conn: sqlite3.Connection, song_id: str) -> Optional[SavedSong]:
        """Get a song without an ownership check (system paths only)."""
        row = conn.execute(
            f"SELECT {SAVED_SONG_COLUMNS} FROM saved_songs WHERE id = ?",
            (song_id,),
        ).fetchone()
        return SavedSong.from_row(row) if row else None

    def list_songs(self, caller: Caller, limit: Optional[int] = None) -> list[SavedSong]:
        """List the caller's songs, newest first."""
        query = f"SELECT {SAVED_SONG_COLUMNS} FROM saved_songs WHERE user_id = ? ORDER BY created_at DESC, rowid DESC"
        params: list = [caller.user_id]
        if limit:
            query += " LIMIT ?"
            params.append(limit)

        with self.db.transaction(immediate=False) as conn:
            rows = conn.execute(query, params).fetchall()
        return [SavedSong.from_row(row) for row in rows]

    def delete(self, caller: Caller, song_id: str) -> None:
        """Delete a song and, by cascade, its document, lines, snapshots and annotations.

        Raises:
            NotFoundError: If the song is missing or not the caller's
        """
        with self.db.transaction() as conn:
            self.require_owned(conn, caller, song_id)
            conn.execute("DELETE FROM saved_songs WHERE id = ?", (song_id,))
        logger.info(f"Deleted saved song {song_id}")

    def set_visibility(self, caller: Caller, song_id: str, visibility: Visibility) -> SavedSong:
        """Change who may see a song."""
        return self._update_owned(caller, song_id, visibility=visibility.value)

    def set_note(self, caller: Caller, song_id: str, note: Optional[str]) -> SavedSong:
        """Set or clear the personal note on a song."""
        return self._update_owned(caller, song_id, note=note)

    def _update_owned(self, caller: Caller, song_id: str, **fields) -> SavedSong:
        set_clauses = [f"{key} = ?" for key in fields]
        values = list(fields.values())

        set_clauses.append("updated_at = ?")
        values.append(utc_now())
        values.extend([song_id, caller.user_id])

        with self.db.transaction() as conn:
            cursor = conn.execute(
                f"UPDATE saved_songs SET {', '.join(set_clauses)} WHERE id = ? AND user_id = ?",
                values,
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Saved song not found")

        return self.get(caller, song_id)

    def set_fetch_state(
        self,
        song_id: str,
        state: FetchState,
        conn: Optional[sqlite3.Connection] = None,
    ) -> bool:
        """Record the fetch pipeline state of a song.

        Args:
            song_id: Saved song ID
            state: New fetch state
            conn: Connection of an enclosing transaction; a new transaction is
                used when omitted

        Returns:
            True if the song exists and was updated
        """
        sql = "UPDATE saved_songs SET fetch_state = ?, updated_at = ? WHERE id = ?"
        params = (state.value, utc_now(), song_id)

        if conn is not None:
            cursor = conn.execute(sql, params)
        else:
            with self.db.transaction() as tx:
                cursor = tx.execute(sql, params)

        if cursor.rowcount == 0:
            logger.warning(f"Fetch state {state.value} not recorded: song {song_id} no longer exists")
            return False

        logger.debug(f"Song {song_id} fetch state -> {state.value}")
        return True

    def list_needing_backfill(self) -> list[SavedSong]:
        """Songs whose legacy mirror holds text but that have no structured document."""
        columns = ", ".join(f"s.{column.strip()}" for column in SAVED_SONG_COLUMNS.split(","))
        with self.db.transaction(immediate=False) as conn:
            rows = conn.execute(
                f"""
                SELECT {columns}
                FROM saved_songs s
                LEFT JOIN lyrics_documents d ON d.song_id = s.id
                WHERE d.id IS NULL AND s.legacy_lyrics != ''
                ORDER BY s.created_at
                """
            ).fetchall()
        return [SavedSong.from_row(row) for row in rows]
