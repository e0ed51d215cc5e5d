"""Lyrics fetch worker: provider lookup for songs saved without lyrics.

A fetch job moves the song's fetch state from `fetching` to either `done`
(lyrics stored as version 1 of the document) or `failed`. Transient
provider errors are re-raised so the queue retries them with backoff.
"""

import asyncio
import logging
from typing import Any, Callable

from ..config import Settings
from ..core.documents import LyricsDocumentStore
from ..core.songs import SongStore
from ..db.models import FetchState
from ..exceptions import ConflictError, NotFoundError
from ..models import BackoffStrategy, BackoffType, Job, JobOptions, LyricsFetchPayload
from ..services.lyrics_provider import (
    LyricsProviderClient,
    NoLyricsFoundError,
    clean_lyrics,
)

logger = logging.getLogger(__name__)

LYRICS_FETCH_JOB = "lyrics-fetch"


def fetch_job_options(settings: Settings) -> JobOptions:
    """Retry policy for lyrics fetch jobs.

    Successful jobs are discarded; failed ones are kept for inspection.
    """
    return JobOptions(
        max_attempts=settings.FETCH_MAX_ATTEMPTS,
        backoff=BackoffStrategy(
            type=BackoffType.EXPONENTIAL,
            delay_seconds=settings.FETCH_BACKOFF_SECONDS,
        ),
        keep_on_success=False,
        keep_on_failure=True,
    )


class LyricsFetchProcessor:
    """Handles `lyrics-fetch` jobs."""

    def __init__(
        self,
        provider: LyricsProviderClient,
        documents: LyricsDocumentStore,
        songs: SongStore,
    ):
        self.provider = provider
        self.documents = documents
        self.songs = songs

    async def _db(self, func: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking store call in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    async def process(self, job: Job) -> None:
        """Run one fetch attempt.

        Args:
            job: Queued `lyrics-fetch` job

        Raises:
            ProviderTimeoutError: Provider timed out (retried by the queue)
            ProviderUnavailableError: Provider unreachable or erroring (retried)
        """
        payload = LyricsFetchPayload.model_validate(job.payload)
        song_id = payload.song_id

        if await self._db(self.documents.has_document, song_id):
            logger.info(f"[{job.id}] Song {song_id} already has lyrics, skipping provider")
            await self._db(self.songs.set_fetch_state, song_id, FetchState.DONE)
            return

        # Also covers jobs an operator requeued after they failed
        if not await self._db(self.songs.set_fetch_state, song_id, FetchState.FETCHING):
            logger.info(f"[{job.id}] Song {song_id} no longer exists, dropping fetch")
            return

        try:
            raw = await self.provider.fetch_lyrics(payload.artist, payload.track)
        except NoLyricsFoundError as e:
            logger.info(f"[{job.id}] No lyrics available for song {song_id}: {e}")
            await self._db(self.songs.set_fetch_state, song_id, FetchState.FAILED)
            return

        lyrics = clean_lyrics(raw)
        if not lyrics:
            logger.info(f"[{job.id}] Provider lyrics for song {song_id} were empty after cleaning")
            await self._db(self.songs.set_fetch_state, song_id, FetchState.FAILED)
            return

        try:
            document = await self._db(self.documents.save_fetched, song_id, lyrics)
        except ConflictError:
            # The user saved lyrics while the provider call was in flight
            logger.info(f"[{job.id}] Song {song_id} gained lyrics during fetch, keeping them")
            await self._db(self.songs.set_fetch_state, song_id, FetchState.DONE)
            return
        except NotFoundError:
            logger.info(f"[{job.id}] Song {song_id} was deleted before lyrics arrived")
            return

        logger.info(
            f"[{job.id}] Stored fetched lyrics for song {song_id} ({len(document.lines)} lines)"
        )

    async def on_failed(self, job: Job, error: Exception) -> None:
        """Mark the song failed once every attempt has been used.

        A song that gained lyrics from a manual save meanwhile is marked done.
        """
        song_id = job.payload.get("song_id")
        if not song_id:
            return
        if await self._db(self.documents.has_document, song_id):
            logger.info(f"[{job.id}] Fetch for song {song_id} gave up, but lyrics were saved meanwhile")
            await self._db(self.songs.set_fetch_state, song_id, FetchState.DONE)
            return
        logger.warning(f"[{job.id}] Giving up on lyrics for song {song_id}: {error}")
        await self._db(self.songs.set_fetch_state, song_id, FetchState.FAILED)
