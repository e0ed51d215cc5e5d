"""Shared fixtures for LyricsVault tests."""

from typing import Any, Dict, List, Optional

import pytest

from lyricsvault.core.annotations import AnnotationStore
from lyricsvault.core.context import Caller
from lyricsvault.core.documents import LyricsDocumentStore
from lyricsvault.core.songs import SongStore
from lyricsvault.db.client import DatabaseClient
from lyricsvault.models import Job, JobOptions


class FakeJobQueue:
    """In-memory stand-in for JobQueue that records enqueued jobs."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.jobs: List[Job] = []

    async def enqueue(
        self,
        name: str,
        payload: Dict[str, Any],
        options: Optional[JobOptions] = None,
    ) -> Job:
        if self.fail:
            raise RuntimeError("queue unavailable")
        job = Job(
            id=f"job_fake{len(self.jobs)}",
            name=name,
            payload=payload,
            options=options or JobOptions(),
        )
        self.jobs.append(job)
        return job


@pytest.fixture
def temp_db_path(tmp_path):
    """Return a temporary database path."""
    return tmp_path / "lyricsvault.db"


@pytest.fixture
def db(temp_db_path):
    """Return an initialized DatabaseClient."""
    client = DatabaseClient(temp_db_path)
    client.initialize_schema()
    yield client
    client.close()


@pytest.fixture
def songs(db):
    """Song store on the test database."""
    return SongStore(db)


@pytest.fixture
def documents(db, songs):
    """Lyrics document store on the test database."""
    return LyricsDocumentStore(db, songs)


@pytest.fixture
def annotations(db):
    """Annotation store on the test database."""
    return AnnotationStore(db)


@pytest.fixture
def alice():
    """Caller owning the test song."""
    return Caller(user_id="user_alice")


@pytest.fixture
def bob():
    """A different caller."""
    return Caller(user_id="user_bob")


@pytest.fixture
def song(songs, alice):
    """A saved song owned by alice, without lyrics."""
    return songs.create(alice, track="Amazing Grace", artist="John Newton")


@pytest.fixture
def fake_queue():
    """Recording job queue."""
    return FakeJobQueue()


@pytest.fixture
def failing_queue():
    """Job queue whose enqueue always raises."""
    return FakeJobQueue(fail=True)
