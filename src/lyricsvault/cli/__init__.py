"""Command line interface for LyricsVault."""
