"""Structured lyrics documents with snapshot-then-replace saves.

Every write, whether a direct edit, a restore, an automatic fetch or a
backfill, goes through `_write()`, which inside one transaction:

1. compares the stored version with the version the caller expected,
2. snapshots the current raw text and version,
3. prunes snapshots beyond the retained limit,
4. replaces the complete line set, and
5. bumps the version counter by exactly one.

The legacy flat-text mirror is updated after the transaction commits.
"""

import logging
import sqlite3
from typing import Optional

from lyricsvault.core.context import Caller
from lyricsvault.core.lrc import align_timings, parse_lrc
from lyricsvault.core.mirror import LegacyMirrorSync
from lyricsvault.core.songs import SongStore
from lyricsvault.core.splitter import split_lines
from lyricsvault.core.versions import VERSIONS_TO_KEEP, VersionStore
from lyricsvault.db.client import DatabaseClient
from lyricsvault.db.models import (
    FetchState,
    LyricsDocument,
    LyricsLine,
    generate_id,
    utc_now,
)
from lyricsvault.db.schema import LYRICS_DOCUMENT_COLUMNS, LYRICS_LINE_COLUMNS
from lyricsvault.exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


class LyricsDocumentStore:
    """Current structured lyrics per saved song plus their version history."""

    def __init__(
        self,
        db: DatabaseClient,
        songs: SongStore,
        versions: Optional[VersionStore] = None,
        mirror: Optional[LegacyMirrorSync] = None,
    ):
        self.db = db
        self.songs = songs
        self.versions = versions or VersionStore()
        self.mirror = mirror or LegacyMirrorSync(db)

    # Reads

    def get(self, caller: Caller, song_id: str) -> LyricsDocument:
        """Get the caller's document with lines and recent snapshots.

        Args:
            caller: Requesting user
            song_id: Saved song ID

        Returns:
            Document with lines ordered by line number and up to
            VERSIONS_TO_KEEP snapshots ordered by version descending

        Raises:
            NotFoundError: If the caller does not own the song or it has no document
        """
        with self.db.transaction(immediate=False) as conn:
            self.songs.require_owned(conn, caller, song_id)
            document = self._load(conn, song_id)

        if document is None:
            raise NotFoundError("Lyrics not found")
        return document

    def has_document(self, song_id: str) -> bool:
        """Whether a song has structured lyrics (no ownership check)."""
        with self.db.transaction(immediate=False) as conn:
            row = conn.execute(
                "SELECT 1 FROM lyrics_documents WHERE song_id = ?", (song_id,)
            ).fetchone()
        return row is not None

    def _load(self, conn: sqlite3.Connection, song_id: str) -> Optional[LyricsDocument]:
        row = conn.execute(
            f"SELECT {LYRICS_DOCUMENT_COLUMNS} FROM lyrics_documents WHERE song_id = ?",
            (song_id,),
        ).fetchone()
        if row is None:
            return None

        document = LyricsDocument.from_row(row)
        line_rows = conn.execute(
            f"SELECT {LYRICS_LINE_COLUMNS} FROM lyrics_lines WHERE document_id = ? ORDER BY line_number",
            (document.id,),
        ).fetchall()
        document.lines = [LyricsLine.from_row(line_row) for line_row in line_rows]
        document.versions = self.versions.list_recent(conn, document.id, VERSIONS_TO_KEEP)
        return document

    # Writes

    def save(
        self,
        caller: Caller,
        song_id: str,
        raw_text: str,
        expected_version: Optional[int] = None,
    ) -> LyricsDocument:
        """Save new raw text as the next version of the caller's document.

        Saving text identical to the current text still creates a version.

        Args:
            caller: Requesting user
            song_id: Saved song ID
            raw_text: Complete new lyrics text
            expected_version: Version the caller based the edit on; 0 means
                "no document yet". None skips the check.

        Returns:
            The saved document with lines and snapshots

        Raises:
            NotFoundError: If the caller does not own the song
            ConflictError: If expected_version is stale
        """
        with self.db.transaction() as conn:
            self.songs.require_owned(conn, caller, song_id)
            self._write(conn, song_id, raw_text, expected_version)
            document = self._load(conn, song_id)

        self.mirror.sync(song_id, raw_text)
        return document

    def restore_version(
        self,
        caller: Caller,
        song_id: str,
        version: int,
        expected_version: Optional[int] = None,
    ) -> LyricsDocument:
        """Save the text of an earlier version as a new version.

        The counter never rewinds: restoring version 3 of a document at
        version 10 produces version 11 with version 3's text.

        Raises:
            NotFoundError: If the caller does not own the song, it has no
                document, or no snapshot of `version` is retained
            ConflictError: If expected_version is stale
        """
        with self.db.transaction(immediate=False) as conn:
            self.songs.require_owned(conn, caller, song_id)
            row = conn.execute(
                "SELECT id FROM lyrics_documents WHERE song_id = ?", (song_id,)
            ).fetchone()
            if row is None:
                raise NotFoundError("Lyrics not found")
            snap = self.versions.find(conn, row[0], version)

        if snap is None:
            raise NotFoundError(f"Version {version} not found")

        logger.info(f"Restoring song {song_id} lyrics to the text of version {version}")
        return self.save(caller, song_id, snap.raw_text, expected_version=expected_version)

    def save_fetched(self, song_id: str, raw_text: str) -> LyricsDocument:
        """Store automatically fetched lyrics as version 1 and mark the fetch done.

        Used by the fetch pipeline, which acts on behalf of the system rather
        than a caller. The document must not exist yet, so a fetch racing a
        manual save never overwrites the user's text.

        Raises:
            NotFoundError: If the song no longer exists
            ConflictError: If the song already has a document
        """
        with self.db.transaction() as conn:
            if self.songs.get_by_id(conn, song_id) is None:
                raise NotFoundError("Saved song not found")
            self._write(conn, song_id, raw_text, expected_version=0)
            self.songs.set_fetch_state(song_id, FetchState.DONE, conn=conn)
            document = self._load(conn, song_id)

        self.mirror.sync(song_id, raw_text)
        return document

    def _write(
        self,
        conn: sqlite3.Connection,
        song_id: str,
        raw_text: str,
        expected_version: Optional[int],
    ) -> int:
        """Snapshot, prune, replace lines and bump the version in the open transaction.

        Returns:
            The new version number
        """
        row = conn.execute(
            "SELECT id, version, raw_text FROM lyrics_documents WHERE song_id = ?",
            (song_id,),
        ).fetchone()
        current_version = row[1] if row else 0

        if expected_version is not None and expected_version != current_version:
            raise ConflictError(
                f"Lyrics changed since version {expected_version} (now at version {current_version})",
                expected=expected_version,
                actual=current_version,
            )

        now = utc_now()

        if row is None:
            document_id = generate_id("doc")
            conn.execute(
                f"INSERT INTO lyrics_documents ({LYRICS_DOCUMENT_COLUMNS}) VALUES (?, ?, ?, 1, ?, ?)",
                (document_id, song_id, raw_text, now, now),
            )
            self._insert_lines(conn, document_id, raw_text)
            logger.info(f"Created lyrics document {document_id} for song {song_id} at version 1")
            return 1

        document_id, old_version, old_raw_text = row[0], row[1], row[2]

        self.versions.snapshot(conn, document_id, old_version, old_raw_text)
        self.versions.prune(conn, document_id)

        # Annotations on the old lines go with them (ON DELETE CASCADE)
        conn.execute("DELETE FROM lyrics_lines WHERE document_id = ?", (document_id,))
        self._insert_lines(conn, document_id, raw_text)

        cursor = conn.execute(
            """
            UPDATE lyrics_documents
            SET raw_text = ?, version = version + 1, updated_at = ?
            WHERE id = ? AND version = ?
            """,
            (raw_text, now, document_id, old_version),
        )
        if cursor.rowcount != 1:
            raise ConflictError(
                f"Lyrics document {document_id} changed during save",
                expected=old_version,
            )

        logger.info(f"Saved lyrics document {document_id} at version {old_version + 1}")
        return old_version + 1

    def _insert_lines(self, conn: sqlite3.Connection, document_id: str, raw_text: str) -> None:
        conn.executemany(
            f"INSERT INTO lyrics_lines ({LYRICS_LINE_COLUMNS}) VALUES (?, ?, ?, ?, NULL)",
            [
                (generate_id("line"), document_id, number, text)
                for number, text in enumerate(split_lines(raw_text), start=1)
            ],
        )

    # Line timing

    def set_line_timestamps(
        self,
        caller: Caller,
        song_id: str,
        timestamps: dict[int, Optional[int]],
    ) -> LyricsDocument:
        """Set playback timestamps on lines of the current version.

        Timings are presentation data: they do not create a version and are
        dropped whenever a save replaces the lines.

        Args:
            caller: Requesting user
            song_id: Saved song ID
            timestamps: Mapping of 1-based line number to milliseconds (None clears)

        Raises:
            NotFoundError: If the document or any referenced line is missing
        """
        with self.db.transaction() as conn:
            self.songs.require_owned(conn, caller, song_id)
            row = conn.execute(
                "SELECT id FROM lyrics_documents WHERE song_id = ?", (song_id,)
            ).fetchone()
            if row is None:
                raise NotFoundError("Lyrics not found")

            for line_number, timestamp_ms in sorted(timestamps.items()):
                cursor = conn.execute(
                    "UPDATE lyrics_lines SET timestamp_ms = ? WHERE document_id = ? AND line_number = ?",
                    (timestamp_ms, row[0], line_number),
                )
                if cursor.rowcount == 0:
                    raise NotFoundError(f"Line {line_number} not found")

            document = self._load(conn, song_id)

        return document

    def import_lrc_timings(self, caller: Caller, song_id: str, lrc_content: str) -> int:
        """Copy timestamps from LRC content onto matching lines.

        Returns:
            Number of lines that received a timestamp

        Raises:
            NotFoundError: If the caller has no document for the song
            ValueError: If the LRC content has no timed lines
        """
        lrc_lines = parse_lrc(lrc_content)
        document = self.get(caller, song_id)

        timings = align_timings([line.text for line in document.lines], lrc_lines)
        if timings:
            self.set_line_timestamps(caller, song_id, timings)

        logger.info(f"Imported {len(timings)} LRC timings for song {song_id}")
        return len(timings)

    # Migration

    def backfill_from_legacy(self) -> tuple[int, int]:
        """Create version-1 documents from legacy flat-text lyrics.

        Songs that already have a document are left alone, so running this
        repeatedly is safe.

        Returns:
            (converted, skipped) counts; blank legacy text is skipped
        """
        converted = 0
        skipped = 0

        for song in self.songs.list_needing_backfill():
            if not song.legacy_lyrics.strip():
                skipped += 1
                continue

            try:
                with self.db.transaction() as conn:
                    self._write(conn, song.id, song.legacy_lyrics, expected_version=0)
            except ConflictError:
                logger.debug(f"Song {song.id} gained a document during backfill, skipping")
                skipped += 1
                continue

            converted += 1
            if converted % 50 == 0:
                logger.info(f"Backfill progress: {converted} converted")

        logger.info(f"Backfill done. Converted: {converted}, skipped: {skipped}")
        return converted, skipped
