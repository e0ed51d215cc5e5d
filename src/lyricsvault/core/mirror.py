"""Legacy flat-text mirror of structured lyrics."""

import logging
import sqlite3

from lyricsvault.db.client import DatabaseClient
from lyricsvault.db.models import utc_now

logger = logging.getLogger(__name__)


class LegacyMirrorSync:
    """Copies the latest raw text onto saved_songs.legacy_lyrics.

    Runs after the structured save has committed. The structured document is
    the source of truth, so a failed mirror write is logged and dropped.
    """

    def __init__(self, db: DatabaseClient):
        self.db = db

    def sync(self, song_id: str, raw_text: str) -> bool:
        """Write raw_text into the song's legacy lyrics field.

        Args:
            song_id: Saved song ID
            raw_text: Raw text just saved to the structured document

        Returns:
            True if the mirror was updated
        """
        try:
            with self.db.transaction() as conn:
                cursor = conn.execute(
                    "UPDATE saved_songs SET legacy_lyrics = ?, updated_at = ? WHERE id = ?",
                    (raw_text, utc_now(), song_id),
                )
        except sqlite3.Error as e:
            logger.error(f"Legacy mirror sync failed for song {song_id}: {e}")
            return False

        if cursor.rowcount == 0:
            logger.warning(f"Legacy mirror sync skipped: song {song_id} no longer exists")
            return False

        return True
