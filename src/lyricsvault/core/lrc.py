"""LRC (synchronized lyrics) parsing and alignment onto document lines."""

import re
from dataclasses import dataclass
from typing import List, Sequence

# Match [mm:ss.xx] or [mm:ss.xxx], text follows
LRC_LINE_PATTERN = re.compile(r"\[(\d{2,}):(\d{2})\.(\d{2,3})\](.*)")


@dataclass
class LRCLine:
    """A single line of synchronized lyrics.

    Attributes:
        timestamp_ms: Start of the line in milliseconds
        text: Lyric text without timestamp
    """

    timestamp_ms: int
    text: str


def parse_lrc(content: str) -> List[LRCLine]:
    """Parse LRC content into timed lines.

    Metadata tags ([ar:...], [ti:...]) and untimed lines are skipped.

    Args:
        content: Raw LRC content

    Returns:
        Timed lines in file order

    Raises:
        ValueError: If no valid LRC lines found
    """
    lines = []

    for line in content.split("\n"):
        match = LRC_LINE_PATTERN.match(line.strip())
        if match:
            minutes = int(match.group(1))
            seconds = int(match.group(2))
            milliseconds = int(match.group(3).ljust(3, "0")[:3])
            text = match.group(4).strip()

            lines.append(
                LRCLine(
                    timestamp_ms=(minutes * 60 + seconds) * 1000 + milliseconds,
                    text=text,
                )
            )

    if not lines:
        raise ValueError("No valid LRC lines found")

    return lines


def _normalize(text: str) -> str:
    return " ".join(text.split()).casefold()


def align_timings(line_texts: Sequence[str], lrc_lines: Sequence[LRCLine]) -> dict[int, int]:
    """Assign LRC timestamps to document lines by matching text in order.

    Each timed LRC line is matched to the next document line (after the
    previous match) with the same text, ignoring case and whitespace
    differences. Unmatched LRC lines are skipped; empty lines never match.

    Args:
        line_texts: Document line texts ordered by line number
        lrc_lines: Parsed LRC lines

    Returns:
        Mapping of 1-based line number to timestamp in milliseconds
    """
    timings: dict[int, int] = {}
    cursor = 0

    for lrc_line in lrc_lines:
        target = _normalize(lrc_line.text)
        if not target:
            continue

        for index in range(cursor, len(line_texts)):
            if _normalize(line_texts[index]) == target:
                timings[index + 1] = lrc_line.timestamp_ms
                cursor = index + 1
                break

    return timings
