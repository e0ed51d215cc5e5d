"""Song library service: creating saved songs and kicking off lyrics fetches."""

import asyncio
import functools
import logging
from typing import TYPE_CHECKING, Optional

from ..core.context import Caller
from ..core.songs import SongStore
from ..db.models import FetchState, SavedSong, Visibility
from ..models import JobOptions, LyricsFetchPayload

if TYPE_CHECKING:
    from ..workers.queue import JobQueue

logger = logging.getLogger(__name__)


class LibraryService:
    """Creates saved songs and enqueues a lyrics fetch when none were supplied."""

    def __init__(
        self,
        songs: SongStore,
        job_queue: Optional["JobQueue"] = None,
        fetch_options: Optional[JobOptions] = None,
        fetch_job_name: str = "lyrics-fetch",
    ):
        """Initialize library service.

        Args:
            songs: Song store
            job_queue: Queue for fetch jobs; None disables automatic fetching
            fetch_options: Retry policy for fetch jobs
            fetch_job_name: Name fetch jobs are enqueued under
        """
        self.songs = songs
        self.job_queue = job_queue
        self.fetch_options = fetch_options or JobOptions()
        self.fetch_job_name = fetch_job_name

    async def create_song(
        self,
        caller: Caller,
        track: str,
        artist: str = "",
        lyrics: Optional[str] = None,
        visibility: Visibility = Visibility.PRIVATE,
    ) -> SavedSong:
        """Save a song for the caller.

        Supplied lyrics are stored in the legacy text field only. When no
        non-blank lyrics were supplied and a queue is configured, the song is
        inserted as `fetching` and a fetch job is enqueued; the caller gets the
        song back immediately and polls its fetch state.

        Args:
            caller: Owning user
            track: Track title
            artist: Artist name
            lyrics: Lyrics text, if the user already has them
            visibility: Sharing level

        Returns:
            Created song with its current fetch state
        """
        wants_fetch = not (lyrics and lyrics.strip()) and self.job_queue is not None
        loop = asyncio.get_running_loop()

        song = await loop.run_in_executor(
            None,
            functools.partial(
                self.songs.create,
                caller,
                track=track,
                artist=artist,
                legacy_lyrics=lyrics or "",
                visibility=visibility,
                fetch_state=FetchState.FETCHING if wants_fetch else FetchState.IDLE,
            ),
        )

        if not wants_fetch:
            return song

        payload = LyricsFetchPayload(song_id=song.id, track=track, artist=artist)
        try:
            job = await self.job_queue.enqueue(
                self.fetch_job_name, payload.model_dump(), self.fetch_options
            )
        except Exception as e:
            logger.error(f"Failed to enqueue lyrics fetch for song {song.id}: {e}")
            await loop.run_in_executor(None, self.songs.set_fetch_state, song.id, FetchState.IDLE)
            song.fetch_state = FetchState.IDLE
            return song

        logger.info(f"Queued lyrics fetch job {job.id} for song {song.id}")
        return song
