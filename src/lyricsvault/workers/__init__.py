"""Background workers for the durable job queue."""

from .lyrics_fetch import LYRICS_FETCH_JOB, LyricsFetchProcessor, fetch_job_options
from .queue import JobQueue

__all__ = [
    "JobQueue",
    "LYRICS_FETCH_JOB",
    "LyricsFetchProcessor",
    "fetch_job_options",
]
