"""HTTP client for the external lyrics provider (lyrics.ovh API)."""

import asyncio
import logging
import re
from typing import Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

# lyrics.ovh sometimes prepends "Paroles de la chanson <title> par <artist>\n\n"
BOILERPLATE_PREFIX = re.compile(r"^Paroles de la chanson.*?\n\n", re.DOTALL)

# Statuses worth retrying; any other 4xx means the provider has nothing for us
RETRYABLE_STATUS_CODES = {408, 425, 429}


class LyricsProviderError(Exception):
    """Base exception for lyrics provider failures."""

    pass


class ProviderUnavailableError(LyricsProviderError):
    """The provider could not be reached or answered unexpectedly (transient)."""

    pass


class ProviderTimeoutError(LyricsProviderError):
    """The provider did not answer within the timeout (transient)."""

    pass


class NoLyricsFoundError(LyricsProviderError):
    """The provider answered but has no lyrics for the song (terminal)."""

    pass


class ProviderLyrics(BaseModel):
    """Provider response body."""

    lyrics: Optional[str] = None
    error: Optional[str] = None


def clean_lyrics(text: str) -> str:
    """Strip the provider's boilerplate prefix and surrounding whitespace.

    Args:
        text: Lyrics as returned by the provider

    Returns:
        Cleaned lyrics; may be empty
    """
    return BOILERPLATE_PREFIX.sub("", text, count=1).strip()


class LyricsProviderClient:
    """HTTP client for a lyrics.ovh-compatible provider."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize provider client.

        Args:
            base_url: Base URL of the provider (e.g., "https://api.lyrics.ovh/v1")
            timeout: Hard bound in seconds on one lookup, connection included
            transport: Optional httpx transport (used to stub the provider)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def fetch_lyrics(self, artist: str, track: str) -> str:
        """Look up lyrics for a song.

        Args:
            artist: Artist name
            track: Track title

        Returns:
            Raw lyrics text as returned by the provider (not yet cleaned)

        Raises:
            NoLyricsFoundError: If the provider has no lyrics for the song
            ProviderTimeoutError: If the lookup exceeded the timeout
            ProviderUnavailableError: On connection failures, server errors
                or malformed responses
        """
        url = f"{self.base_url}/{quote(artist, safe='')}/{quote(track, safe='')}"
        logger.info(f"Requesting lyrics from provider: {url}")

        try:
            response = await asyncio.wait_for(self._get(url), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning(f"Lyrics provider timed out after {self.timeout}s")
            raise ProviderTimeoutError(f"Lyrics provider timed out after {self.timeout}s") from e
        except httpx.RequestError as e:
            logger.warning(f"Lyrics provider request failed: {e}")
            raise ProviderUnavailableError(f"Failed to connect to lyrics provider: {e}") from e

        status = response.status_code
        if status >= 500 or status in RETRYABLE_STATUS_CODES:
            raise ProviderUnavailableError(f"Lyrics provider error: {status}")
        if status >= 400:
            raise NoLyricsFoundError(f"No lyrics found for {artist!r} - {track!r} ({status})")

        try:
            body = ProviderLyrics.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ProviderUnavailableError(f"Unexpected lyrics provider response: {e}") from e

        if body.error or not body.lyrics:
            raise NoLyricsFoundError(
                f"No lyrics found for {artist!r} - {track!r}: {body.error or 'empty body'}"
            )

        logger.info(f"Lyrics provider returned {len(body.lyrics)} characters")
        return body.lyrics

    async def _get(self, url: str) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            return await client.get(url, headers={"Accept": "application/json"})
