"""Wiring of stores, services and the job queue from settings."""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from .config import Settings
from .core.annotations import AnnotationStore
from .core.documents import LyricsDocumentStore
from .core.songs import SongStore
from .db.client import DatabaseClient
from .services.library import LibraryService
from .services.lyrics_provider import LyricsProviderClient
from .workers.lyrics_fetch import LYRICS_FETCH_JOB, LyricsFetchProcessor, fetch_job_options
from .workers.queue import JobQueue

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    """Everything the API and CLI need, built once per process."""

    settings: Settings
    db: DatabaseClient
    songs: SongStore
    documents: LyricsDocumentStore
    annotations: AnnotationStore
    library: LibraryService
    job_queue: Optional[JobQueue] = None
    fetch_processor: Optional[LyricsFetchProcessor] = None

    async def close(self) -> None:
        """Stop the job queue and close the database."""
        if self.job_queue is not None:
            await self.job_queue.stop()
        self.db.close()


def build_services(
    settings: Settings,
    provider_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AppServices:
    """Build stores and services and register the fetch worker.

    The job queue still needs `await job_queue.initialize()` before use.

    Args:
        settings: Service configuration
        provider_transport: Optional httpx transport for the lyrics provider

    Returns:
        Wired services
    """
    db = DatabaseClient(settings.LYRICSVAULT_DB_PATH)
    db.initialize_schema()

    songs = SongStore(db)
    documents = LyricsDocumentStore(db, songs)
    annotations = AnnotationStore(db)

    job_queue = None
    processor = None
    if settings.FETCH_ENABLED:
        job_queue = JobQueue(
            settings.LYRICSVAULT_JOBS_DB_PATH,
            concurrency=settings.MAX_CONCURRENT_FETCH_JOBS,
        )
        provider = LyricsProviderClient(
            settings.LYRICS_PROVIDER_URL,
            timeout=settings.LYRICS_PROVIDER_TIMEOUT_SECONDS,
            transport=provider_transport,
        )
        processor = LyricsFetchProcessor(provider, documents, songs)
        job_queue.register(LYRICS_FETCH_JOB, processor.process, on_failed=processor.on_failed)
    else:
        logger.info("Lyrics fetching disabled (FETCH_ENABLED=false)")

    library = LibraryService(
        songs,
        job_queue=job_queue,
        fetch_options=fetch_job_options(settings),
        fetch_job_name=LYRICS_FETCH_JOB,
    )

    return AppServices(
        settings=settings,
        db=db,
        songs=songs,
        documents=documents,
        annotations=annotations,
        library=library,
        job_queue=job_queue,
        fetch_processor=processor,
    )
