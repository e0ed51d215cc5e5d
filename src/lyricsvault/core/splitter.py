"""Conversion of raw lyrics text into an ordered line sequence."""

from typing import Optional, Sequence

from lyricsvault.db.models import LyricsLine


def split_lines(raw_text: str) -> list[str]:
    """Split raw lyrics text into lines.

    Splits strictly on "\\n". Nothing is trimmed, collapsed or filtered, so an
    empty string between two breaks becomes an empty line (a stanza gap) and
    a trailing break yields a trailing empty line.

    Args:
        raw_text: Full lyrics text

    Returns:
        Line strings in order; always at least one entry
    """
    return raw_text.split("\n")


def active_line(lines: Sequence[LyricsLine], progress_ms: int) -> Optional[LyricsLine]:
    """Find the line to highlight at a playback position.

    Args:
        lines: Document lines ordered by line number
        progress_ms: Current playback position in milliseconds

    Returns:
        The last timed line starting at or before progress_ms, or None
    """
    current = None
    for line in lines:
        if line.timestamp_ms is None:
            continue
        if line.timestamp_ms <= progress_ms:
            current = line
    return current
