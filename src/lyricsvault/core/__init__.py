"""Lyrics core: documents, version history, annotations and songs."""

from lyricsvault.core.annotations import AnnotationStore
from lyricsvault.core.context import Caller
from lyricsvault.core.documents import LyricsDocumentStore
from lyricsvault.core.mirror import LegacyMirrorSync
from lyricsvault.core.songs import SongStore
from lyricsvault.core.splitter import active_line, split_lines
from lyricsvault.core.versions import VERSIONS_TO_KEEP, VersionStore

__all__ = [
    "AnnotationStore",
    "Caller",
    "LegacyMirrorSync",
    "LyricsDocumentStore",
    "SongStore",
    "VERSIONS_TO_KEEP",
    "VersionStore",
    "active_line",
    "split_lines",
]
