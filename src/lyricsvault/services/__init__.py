"""External integrations and application services."""

from .lyrics_provider import (
    LyricsProviderClient,
    LyricsProviderError,
    NoLyricsFoundError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    clean_lyrics,
)

__all__ = [
    "LyricsProviderClient",
    "LyricsProviderError",
    "NoLyricsFoundError",
    "ProviderTimeoutError",
    "ProviderUnavailableError",
    "clean_lyrics",
]
