"""Bounded history of raw-text snapshots for lyrics documents.

All methods run on the connection of an enclosing transaction so that a
snapshot, its pruning and the document update commit together.
"""

import logging
import sqlite3
from typing import Optional

from lyricsvault.db.models import LyricsVersionSnapshot, generate_id, utc_now
from lyricsvault.db.schema import LYRICS_VERSION_COLUMNS

logger = logging.getLogger(__name__)

VERSIONS_TO_KEEP = 20


class VersionStore:
    """Snapshots of earlier document states, newest VERSIONS_TO_KEEP retained."""

    def snapshot(
        self,
        conn: sqlite3.Connection,
        document_id: str,
        version: int,
        raw_text: str,
    ) -> LyricsVersionSnapshot:
        """Record the state a document had at `version`.

        Args:
            conn: Connection inside the save transaction
            document_id: Document being replaced
            version: Version number the document had before the save
            raw_text: Raw text the document had before the save

        Returns:
            The stored snapshot
        """
        snap = LyricsVersionSnapshot(
            id=generate_id("ver"),
            document_id=document_id,
            version=version,
            raw_text=raw_text,
            created_at=utc_now(),
        )
        conn.execute(
            f"INSERT INTO lyrics_versions ({LYRICS_VERSION_COLUMNS}) VALUES (?, ?, ?, ?, ?)",
            (snap.id, snap.document_id, snap.version, snap.raw_text, snap.created_at),
        )
        return snap

    def prune(self, conn: sqlite3.Connection, document_id: str) -> int:
        """Evict snapshots beyond the most recent VERSIONS_TO_KEEP.

        Returns:
            Number of snapshots deleted
        """
        cursor = conn.execute(
            """
            DELETE FROM lyrics_versions
            WHERE document_id = ?
            AND id NOT IN (
                SELECT id FROM lyrics_versions
                WHERE document_id = ?
                ORDER BY version DESC
                LIMIT ?
            )
            """,
            (document_id, document_id, VERSIONS_TO_KEEP),
        )
        if cursor.rowcount > 0:
            logger.debug(f"Pruned {cursor.rowcount} snapshots of document {document_id}")
        return cursor.rowcount

    def list_recent(
        self,
        conn: sqlite3.Connection,
        document_id: str,
        limit: int = VERSIONS_TO_KEEP,
    ) -> list[LyricsVersionSnapshot]:
        """Snapshots of a document ordered by version descending."""
        rows = conn.execute(
            f"""
            SELECT {LYRICS_VERSION_COLUMNS} FROM lyrics_versions
            WHERE document_id = ?
            ORDER BY version DESC
            LIMIT ?
            """,
            (document_id, limit),
        ).fetchall()
        return [LyricsVersionSnapshot.from_row(row) for row in rows]

    def find(
        self,
        conn: sqlite3.Connection,
        document_id: str,
        version: int,
    ) -> Optional[LyricsVersionSnapshot]:
        """Look up the snapshot taken of `version`, if still retained."""
        row = conn.execute(
            f"SELECT {LYRICS_VERSION_COLUMNS} FROM lyrics_versions WHERE document_id = ? AND version = ?",
            (document_id, version),
        ).fetchone()
        return LyricsVersionSnapshot.from_row(row) if row else None
