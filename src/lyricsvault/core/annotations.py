"""Per-line, per-user annotations on lyrics.

Annotations are edited in place and are not versioned. They hang off line
rows, so replacing a document's lines on save deletes them as well.
"""

import logging
import sqlite3
from typing import Optional

from lyricsvault.core.context import Caller
from lyricsvault.db.client import DatabaseClient
from lyricsvault.db.models import LineAnnotation, generate_id, utc_now
from lyricsvault.db.schema import LINE_ANNOTATION_COLUMNS
from lyricsvault.exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

# line -> document -> song, restricted to songs owned by the caller
_OWNED_LINE_QUERY = """
SELECT l.id
FROM lyrics_lines l
JOIN lyrics_documents d ON d.id = l.document_id
JOIN saved_songs s ON s.id = d.song_id
WHERE l.id = ? AND s.user_id = ?
"""

_OWNED_ANNOTATION_QUERY = f"""
SELECT {", ".join(f"a.{column.strip()}" for column in LINE_ANNOTATION_COLUMNS.split(","))}
FROM line_annotations a
JOIN lyrics_lines l ON l.id = a.line_id
JOIN lyrics_documents d ON d.id = l.document_id
JOIN saved_songs s ON s.id = d.song_id
WHERE a.id = ? AND a.user_id = ? AND s.user_id = ?
"""


class AnnotationStore:
    """CRUD for line annotations, scoped to lines of the caller's own songs.

    Every failed ownership check surfaces as NotFoundError so the existence of
    other users' lines and annotations is never revealed.
    """

    def __init__(self, db: DatabaseClient):
        self.db = db

    def _require_line(self, conn: sqlite3.Connection, caller: Caller, line_id: str) -> None:
        if conn.execute(_OWNED_LINE_QUERY, (line_id, caller.user_id)).fetchone() is None:
            raise NotFoundError("Line not found")

    def _require_annotation(
        self, conn: sqlite3.Connection, caller: Caller, annotation_id: str
    ) -> LineAnnotation:
        row = conn.execute(
            _OWNED_ANNOTATION_QUERY, (annotation_id, caller.user_id, caller.user_id)
        ).fetchone()
        if row is None:
            raise NotFoundError("Annotation not found")
        return LineAnnotation.from_row(row)

    def list_for_line(self, caller: Caller, line_id: str) -> list[LineAnnotation]:
        """The caller's annotations on a line, oldest first.

        Raises:
            NotFoundError: If the line is missing or not on the caller's song
        """
        with self.db.transaction(immediate=False) as conn:
            self._require_line(conn, caller, line_id)
            rows = conn.execute(
                f"""
                SELECT {LINE_ANNOTATION_COLUMNS} FROM line_annotations
                WHERE line_id = ? AND user_id = ?
                ORDER BY created_at, rowid
                """,
                (line_id, caller.user_id),
            ).fetchall()
        return [LineAnnotation.from_row(row) for row in rows]

    def create(
        self,
        caller: Caller,
        line_id: str,
        text: str,
        emoji: Optional[str] = None,
    ) -> LineAnnotation:
        """Annotate a line.

        Raises:
            NotFoundError: If the line is missing or not on the caller's song
            ConflictError: If the caller already annotated this line
        """
        now = utc_now()
        annotation = LineAnnotation(
            id=generate_id("ann"),
            line_id=line_id,
            user_id=caller.user_id,
            text=text,
            emoji=emoji,
            created_at=now,
            updated_at=now,
        )

        try:
            with self.db.transaction() as conn:
                self._require_line(conn, caller, line_id)
                conn.execute(
                    f"INSERT INTO line_annotations ({LINE_ANNOTATION_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        annotation.id,
                        annotation.line_id,
                        annotation.user_id,
                        annotation.text,
                        annotation.emoji,
                        annotation.created_at,
                        annotation.updated_at,
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise ConflictError("Line already has an annotation from this user") from e

        logger.debug(f"Created annotation {annotation.id} on line {line_id}")
        return annotation

    def update(
        self,
        caller: Caller,
        annotation_id: str,
        text: str,
        emoji: Optional[str] = None,
    ) -> LineAnnotation:
        """Replace the text and emoji of one of the caller's annotations.

        Raises:
            NotFoundError: If the annotation is missing or not the caller's
        """
        with self.db.transaction() as conn:
            annotation = self._require_annotation(conn, caller, annotation_id)
            annotation.text = text
            annotation.emoji = emoji
            annotation.updated_at = utc_now()
            conn.execute(
                "UPDATE line_annotations SET text = ?, emoji = ?, updated_at = ? WHERE id = ?",
                (annotation.text, annotation.emoji, annotation.updated_at, annotation_id),
            )
        return annotation

    def delete(self, caller: Caller, annotation_id: str) -> None:
        """Delete one of the caller's annotations.

        Raises:
            NotFoundError: If the annotation is missing or not the caller's
        """
        with self.db.transaction() as conn:
            self._require_annotation(conn, caller, annotation_id)
            conn.execute("DELETE FROM line_annotations WHERE id = ?", (annotation_id,))
        logger.debug(f"Deleted annotation {annotation_id}")
