"""Exceptions raised by the lyrics core."""

from typing import Optional


class LyricsVaultError(Exception):
    """Base exception for lyrics core failures."""

    pass


class NotFoundError(LyricsVaultError):
    """Raised when a resource does not exist or the caller does not own it.

    Ownership failures deliberately use this class too, so callers cannot
    probe for the existence of songs, lines or annotations they cannot see.
    """

    pass


class ConflictError(LyricsVaultError):
    """Raised when a write is based on stale state.

    Attributes:
        expected: Version the caller believed was current (if applicable)
        actual: Version stored at transaction start (if applicable)
    """

    def __init__(
        self,
        message: str,
        expected: Optional[int] = None,
        actual: Optional[int] = None,
    ):
        super().__init__(message)
        self.expected = expected
        self.actual = actual
