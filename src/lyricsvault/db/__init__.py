"""Database layer for the lyrics core."""

from lyricsvault.db.client import DatabaseClient
from lyricsvault.db.models import (
    FetchState,
    LineAnnotation,
    LyricsDocument,
    LyricsLine,
    LyricsVersionSnapshot,
    SavedSong,
    Visibility,
)

__all__ = [
    "DatabaseClient",
    "FetchState",
    "LineAnnotation",
    "LyricsDocument",
    "LyricsLine",
    "LyricsVersionSnapshot",
    "SavedSong",
    "Visibility",
]
