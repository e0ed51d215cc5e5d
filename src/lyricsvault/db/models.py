"""Data models for LyricsVault database entities.

Provides dataclasses for saved songs, lyrics documents, lines, version
snapshots and line annotations, with conversion from database rows.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class FetchState(str, Enum):
    """Lifecycle of an automatic lyrics fetch for a saved song."""

    IDLE = "idle"
    FETCHING = "fetching"
    DONE = "done"
    FAILED = "failed"


class Visibility(str, Enum):
    """Who may see a saved song."""

    PRIVATE = "private"
    FRIENDS = "friends"
    PUBLIC = "public"


def generate_id(prefix: str) -> str:
    """Generate a new unique row ID.

    Args:
        prefix: Entity prefix (e.g., "song", "line")

    Returns:
        Unique ID string such as "song_3f9a0c1b2d4e"
    """
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def utc_now() -> str:
    """Current UTC time as an ISO timestamp string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class SavedSong:
    """A song a user saved, with its legacy flat-text lyrics mirror.

    Attributes:
        id: Unique song ID
        user_id: Owning user
        track: Track title
        artist: Artist name (may be empty)
        legacy_lyrics: Flat-text copy of the latest structured lyrics
        fetch_state: Automatic lyrics fetch lifecycle state
        visibility: Sharing level
        note: Optional free-text personal note
        created_at: ISO timestamp when created
        updated_at: ISO timestamp when last updated
    """

    id: str
    user_id: str
    track: str
    artist: str = ""
    legacy_lyrics: str = ""
    fetch_state: FetchState = FetchState.IDLE
    visibility: Visibility = Visibility.PRIVATE
    note: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: tuple) -> "SavedSong":
        """Create a SavedSong from a row selected with SAVED_SONG_COLUMNS."""
        return cls(
            id=row[0],
            user_id=row[1],
            track=row[2],
            artist=row[3] or "",
            legacy_lyrics=row[4] or "",
            fetch_state=FetchState(row[5]),
            visibility=Visibility(row[6]),
            note=row[7],
            created_at=row[8],
            updated_at=row[9],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert SavedSong to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "track": self.track,
            "artist": self.artist,
            "legacy_lyrics": self.legacy_lyrics,
            "fetch_state": self.fetch_state.value,
            "visibility": self.visibility.value,
            "note": self.note,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class LyricsLine:
    """One line of a lyrics document.

    An empty text is a stanza break, not a missing line.
    """

    id: str
    document_id: str
    line_number: int
    text: str
    timestamp_ms: Optional[int] = None

    @classmethod
    def from_row(cls, row: tuple) -> "LyricsLine":
        return cls(
            id=row[0],
            document_id=row[1],
            line_number=row[2],
            text=row[3],
            timestamp_ms=row[4],
        )


@dataclass
class LyricsVersionSnapshot:
    """Immutable raw-text snapshot of a document as it was at `version`."""

    id: str
    document_id: str
    version: int
    raw_text: str
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: tuple) -> "LyricsVersionSnapshot":
        return cls(
            id=row[0],
            document_id=row[1],
            version=row[2],
            raw_text=row[3],
            created_at=row[4],
        )


@dataclass
class LyricsDocument:
    """Structured lyrics for one saved song.

    Attributes:
        id: Unique document ID
        song_id: Owning saved song
        raw_text: Current full text
        version: Save counter, starts at 1 and grows by 1 per save
        created_at: ISO timestamp when created
        updated_at: ISO timestamp of the last save
        lines: Current lines ordered by line number (populated by loaders)
        versions: Most recent snapshots ordered by version descending
    """

    id: str
    song_id: str
    raw_text: str
    version: int = 1
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    lines: list[LyricsLine] = field(default_factory=list)
    versions: list[LyricsVersionSnapshot] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: tuple) -> "LyricsDocument":
        return cls(
            id=row[0],
            song_id=row[1],
            raw_text=row[2],
            version=row[3],
            created_at=row[4],
            updated_at=row[5],
        )


@dataclass
class LineAnnotation:
    """A user's note on a single lyrics line."""

    id: str
    line_id: str
    user_id: str
    text: str
    emoji: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: tuple) -> "LineAnnotation":
        return cls(
            id=row[0],
            line_id=row[1],
            user_id=row[2],
            text=row[3],
            emoji=row[4],
            created_at=row[5],
            updated_at=row[6],
        )
