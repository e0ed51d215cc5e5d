"""Tests for song creation and fetch enqueueing."""

from lyricsvault.db.models import FetchState, Visibility
from lyricsvault.services.library import LibraryService


async def test_song_without_lyrics_enqueues_fetch(songs, alice, fake_queue):
    """Test that a song saved without lyrics is marked fetching and queued."""
    library = LibraryService(songs, job_queue=fake_queue)

    song = await library.create_song(alice, "Amazing Grace", "John Newton")

    assert song.fetch_state == FetchState.FETCHING
    assert songs.get(alice, song.id).fetch_state == FetchState.FETCHING
    assert len(fake_queue.jobs) == 1
    job = fake_queue.jobs[0]
    assert job.name == "lyrics-fetch"
    assert job.payload == {"song_id": song.id, "track": "Amazing Grace", "artist": "John Newton"}


async def test_song_with_lyrics_is_not_fetched(songs, documents, alice, fake_queue):
    """Test that supplied lyrics go to the legacy field and nothing is queued."""
    library = LibraryService(songs, job_queue=fake_queue)

    song = await library.create_song(alice, "Mine", lyrics="my words", visibility=Visibility.PUBLIC)

    assert song.fetch_state == FetchState.IDLE
    assert song.legacy_lyrics == "my words"
    assert song.visibility == Visibility.PUBLIC
    assert fake_queue.jobs == []
    assert documents.has_document(song.id) is False


async def test_blank_lyrics_trigger_fetch(songs, alice, fake_queue):
    """Test that whitespace-only lyrics count as missing."""
    library = LibraryService(songs, job_queue=fake_queue)

    song = await library.create_song(alice, "Blank", lyrics="  \n ")

    assert song.fetch_state == FetchState.FETCHING
    assert len(fake_queue.jobs) == 1


async def test_without_queue_song_stays_idle(songs, alice):
    """Test that fetching is skipped when no queue is configured."""
    library = LibraryService(songs, job_queue=None)

    song = await library.create_song(alice, "Offline")

    assert song.fetch_state == FetchState.IDLE


async def test_enqueue_failure_reverts_to_idle(songs, alice, failing_queue, caplog):
    """Test that a broken queue leaves the song usable and idle."""
    library = LibraryService(songs, job_queue=failing_queue)

    song = await library.create_song(alice, "Unlucky")

    assert song.fetch_state == FetchState.IDLE
    assert songs.get(alice, song.id).fetch_state == FetchState.IDLE
    assert "Failed to enqueue lyrics fetch" in caplog.text


async def test_song_is_inserted_as_fetching(songs, alice, fake_queue, mocker):
    """Test that a queued song is never visible as idle between insert and enqueue."""
    set_fetch_state = mocker.spy(songs, "set_fetch_state")
    seen = []
    enqueue = fake_queue.enqueue

    async def enqueue_and_peek(name, payload, options=None):
        seen.append(songs.get(alice, payload["song_id"]).fetch_state)
        return await enqueue(name, payload, options)

    fake_queue.enqueue = enqueue_and_peek
    library = LibraryService(songs, job_queue=fake_queue)

    song = await library.create_song(alice, "Amazing Grace")

    assert seen == [FetchState.FETCHING]
    assert song.fetch_state == FetchState.FETCHING
    set_fetch_state.assert_not_called()
