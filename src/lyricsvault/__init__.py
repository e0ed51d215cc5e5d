"""LyricsVault - structured lyrics with version history.

This package provides:
- Line-addressable lyrics documents with bounded snapshot history
- Per-line annotations
- A durable background pipeline that fetches missing lyrics
"""

__version__ = "0.1.0"
