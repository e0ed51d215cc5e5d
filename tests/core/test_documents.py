"""Tests for the lyrics document store."""

import sqlite3
import threading

import pytest

from lyricsvault.core.documents import LyricsDocumentStore
from lyricsvault.core.songs import SongStore
from lyricsvault.db.client import DatabaseClient
from lyricsvault.core.versions import VERSIONS_TO_KEEP
from lyricsvault.db.models import FetchState
from lyricsvault.exceptions import ConflictError, NotFoundError


def save_many(documents, caller, song_id, count, start=1):
    for i in range(start, start + count):
        documents.save(caller, song_id, f"text {i}")


class TestSave:
    """Tests for saving documents."""

    def test_first_save_creates_version_one(self, documents, alice, song):
        """Test that the first save creates a document at version 1 with split lines."""
        document = documents.save(alice, song.id, "line1\n\nline2")

        assert document.version == 1
        assert [line.text for line in document.lines] == ["line1", "", "line2"]
        assert [line.line_number for line in document.lines] == [1, 2, 3]
        assert document.versions == []

    def test_second_save_snapshots_previous_state(self, documents, alice, song):
        """Test that saving again bumps the version and snapshots the old text."""
        documents.save(alice, song.id, "line1\n\nline2")
        document = documents.save(alice, song.id, "only one line")

        assert document.version == 2
        assert [line.text for line in document.lines] == ["only one line"]
        assert len(document.versions) == 1
        assert document.versions[0].version == 1
        assert document.versions[0].raw_text == "line1\n\nline2"

    def test_identical_text_still_creates_version(self, documents, alice, song):
        """Test that saving unchanged text is still a new version."""
        documents.save(alice, song.id, "same")
        document = documents.save(alice, song.id, "same")

        assert document.version == 2
        assert document.versions[0].raw_text == "same"

    @pytest.mark.parametrize("raw_text", ["", "\n", "a\n", "\nb", "a\n\n\nb\n"])
    def test_line_count_matches_segments(self, documents, alice, song, raw_text):
        """Test that line count and max line number equal the newline segments."""
        documents.save(alice, song.id, "seed")
        document = documents.save(alice, song.id, raw_text)

        segments = raw_text.count("\n") + 1
        assert len(document.lines) == segments
        assert max(line.line_number for line in document.lines) == segments

    def test_history_is_bounded(self, documents, alice, song):
        """Test that 25 saves after creation keep only snapshots of versions 6-25."""
        documents.save(alice, song.id, "text 0")
        save_many(documents, alice, song.id, 25)

        document = documents.get(alice, song.id)
        assert document.version == 26
        assert len(document.versions) == VERSIONS_TO_KEEP
        assert [snap.version for snap in document.versions] == list(range(25, 5, -1))

    def test_snapshots_hold_pre_update_states(self, documents, alice, song):
        """Test that each snapshot holds the text its version had."""
        documents.save(alice, song.id, "text 1")
        save_many(documents, alice, song.id, 29, start=2)

        document = documents.get(alice, song.id)
        assert document.version == 30
        for snap in document.versions:
            assert snap.raw_text == f"text {snap.version}"

    def test_pruning_is_physical(self, db, documents, alice, song):
        """Test that evicted snapshots are deleted from the table."""
        documents.save(alice, song.id, "text 0")
        save_many(documents, alice, song.id, 30)

        count = db.connection.execute("SELECT COUNT(*) FROM lyrics_versions").fetchone()[0]
        assert count == VERSIONS_TO_KEEP

    def test_save_replaces_line_ids(self, documents, alice, song):
        """Test that every save replaces the full line set."""
        first = documents.save(alice, song.id, "a\nb")
        second = documents.save(alice, song.id, "a\nb")

        assert {line.id for line in first.lines}.isdisjoint({line.id for line in second.lines})

    def test_save_updates_legacy_mirror(self, songs, documents, alice, song):
        """Test that the legacy text field follows the latest save."""
        documents.save(alice, song.id, "mirrored text")

        assert songs.get(alice, song.id).legacy_lyrics == "mirrored text"

    def test_mirror_failure_does_not_fail_save(self, mocker, songs, documents, alice, song, caplog):
        """Test that a failed legacy mirror write leaves the save in place."""
        broken = mocker.MagicMock()
        broken.transaction.side_effect = sqlite3.OperationalError("database is locked")
        documents.mirror.db = broken

        document = documents.save(alice, song.id, "structured only")

        assert document.version == 1
        assert documents.get(alice, song.id).raw_text == "structured only"
        assert songs.get(alice, song.id).legacy_lyrics == ""
        assert "Legacy mirror sync failed" in caplog.text

    def test_non_owner_cannot_save(self, documents, bob, song):
        """Test that saving someone else's song looks like a missing song."""
        with pytest.raises(NotFoundError):
            documents.save(bob, song.id, "hijack")

    def test_unknown_song(self, documents, alice):
        """Test saving lyrics for a song that does not exist."""
        with pytest.raises(NotFoundError):
            documents.save(alice, "song_missing", "text")


class TestCompareAndSwap:
    """Tests for expected_version checks."""

    def test_matching_expected_version(self, documents, alice, song):
        """Test that a save based on the current version succeeds."""
        documents.save(alice, song.id, "v1", expected_version=0)
        document = documents.save(alice, song.id, "v2", expected_version=1)

        assert document.version == 2

    def test_stale_expected_version_conflicts(self, documents, alice, song):
        """Test that a stale expected_version is rejected and changes nothing."""
        documents.save(alice, song.id, "v1")
        documents.save(alice, song.id, "v2")

        with pytest.raises(ConflictError) as exc_info:
            documents.save(alice, song.id, "lost edit", expected_version=1)

        assert exc_info.value.expected == 1
        assert exc_info.value.actual == 2

        document = documents.get(alice, song.id)
        assert document.version == 2
        assert document.raw_text == "v2"
        assert len(document.versions) == 1

    def test_expected_zero_when_document_exists(self, documents, alice, song):
        """Test that expected_version=0 means 'no lyrics yet'."""
        documents.save(alice, song.id, "v1")

        with pytest.raises(ConflictError):
            documents.save(alice, song.id, "again", expected_version=0)

    def test_expected_version_on_new_document(self, documents, alice, song):
        """Test that a non-zero expected version conflicts before the first save."""
        with pytest.raises(ConflictError):
            documents.save(alice, song.id, "first", expected_version=3)


class TestGet:
    """Tests for reading documents."""

    def test_missing_document(self, documents, alice, song):
        """Test that a song without lyrics has no document."""
        with pytest.raises(NotFoundError, match="Lyrics not found"):
            documents.get(alice, song.id)

    def test_non_owner(self, documents, alice, bob, song):
        """Test that another user cannot read the document."""
        documents.save(alice, song.id, "private words")

        with pytest.raises(NotFoundError):
            documents.get(bob, song.id)

    def test_get_is_idempotent(self, documents, alice, song):
        """Test that two reads without a save return identical content."""
        documents.save(alice, song.id, "a\nb")
        documents.save(alice, song.id, "c")

        assert documents.get(alice, song.id) == documents.get(alice, song.id)


class TestRestore:
    """Tests for restoring earlier versions."""

    def test_restore_creates_new_version(self, documents, alice, song):
        """Test restoring version 6 of a version-25 document."""
        documents.save(alice, song.id, "text 1")
        save_many(documents, alice, song.id, 24, start=2)
        assert documents.get(alice, song.id).version == 25

        document = documents.restore_version(alice, song.id, 6)

        assert document.version == 26
        assert document.raw_text == "text 6"
        assert [line.text for line in document.lines] == ["text 6"]
        assert document.versions[0].version == 25
        assert document.versions[0].raw_text == "text 25"

    def test_restore_counts_as_save(self, documents, alice, song):
        """Test that the version grows by one per save including restores."""
        documents.save(alice, song.id, "a")
        documents.save(alice, song.id, "b")
        documents.restore_version(alice, song.id, 1)
        document = documents.save(alice, song.id, "c")

        assert document.version == 4

    def test_restore_current_version_is_not_found(self, documents, alice, song):
        """Test that the current version has no snapshot to restore."""
        documents.save(alice, song.id, "a")
        documents.save(alice, song.id, "b")

        with pytest.raises(NotFoundError, match="Version 2 not found"):
            documents.restore_version(alice, song.id, 2)

    def test_restore_pruned_version(self, documents, alice, song):
        """Test that pruned versions can no longer be restored."""
        documents.save(alice, song.id, "text 0")
        save_many(documents, alice, song.id, 25)

        with pytest.raises(NotFoundError):
            documents.restore_version(alice, song.id, 5)

    def test_restore_without_document(self, documents, alice, song):
        """Test restoring on a song without lyrics."""
        with pytest.raises(NotFoundError, match="Lyrics not found"):
            documents.restore_version(alice, song.id, 1)

    def test_restore_with_stale_expected_version(self, documents, alice, song):
        """Test that restore honors expected_version."""
        documents.save(alice, song.id, "a")
        documents.save(alice, song.id, "b")

        with pytest.raises(ConflictError):
            documents.restore_version(alice, song.id, 1, expected_version=1)

    def test_restore_by_non_owner(self, documents, alice, bob, song):
        """Test that restore is scoped to the owner."""
        documents.save(alice, song.id, "a")
        documents.save(alice, song.id, "b")

        with pytest.raises(NotFoundError):
            documents.restore_version(bob, song.id, 1)


class TestSaveFetched:
    """Tests for storing automatically fetched lyrics."""

    def test_creates_version_one_and_marks_done(self, songs, documents, alice, song):
        """Test that fetched lyrics become version 1 and the fetch is done."""
        songs.set_fetch_state(song.id, FetchState.FETCHING)

        document = documents.save_fetched(song.id, "fetched\nlyrics")

        assert document.version == 1
        saved = songs.get(alice, song.id)
        assert saved.fetch_state == FetchState.DONE
        assert saved.legacy_lyrics == "fetched\nlyrics"

    def test_does_not_overwrite_existing_document(self, songs, documents, alice, song):
        """Test that a fetch never replaces lyrics the user already saved."""
        documents.save(alice, song.id, "user text")
        songs.set_fetch_state(song.id, FetchState.FETCHING)

        with pytest.raises(ConflictError):
            documents.save_fetched(song.id, "provider text")

        assert documents.get(alice, song.id).raw_text == "user text"
        assert songs.get(alice, song.id).fetch_state == FetchState.FETCHING

    def test_vanished_song(self, documents):
        """Test storing lyrics for a deleted song."""
        with pytest.raises(NotFoundError):
            documents.save_fetched("song_gone", "text")


class TestTimings:
    """Tests for line timestamps."""

    def test_set_line_timestamps(self, documents, alice, song):
        """Test setting and clearing timestamps by line number."""
        documents.save(alice, song.id, "a\nb\nc")

        document = documents.set_line_timestamps(alice, song.id, {1: 0, 3: 4200})
        assert [line.timestamp_ms for line in document.lines] == [0, None, 4200]

        document = documents.set_line_timestamps(alice, song.id, {3: None})
        assert [line.timestamp_ms for line in document.lines] == [0, None, None]

    def test_timestamps_do_not_create_versions(self, documents, alice, song):
        """Test that timings are not a save."""
        documents.save(alice, song.id, "a\nb")
        document = documents.set_line_timestamps(alice, song.id, {1: 100})

        assert document.version == 1
        assert document.versions == []

    def test_unknown_line_rolls_back(self, documents, alice, song):
        """Test that an unknown line number rejects the whole update."""
        documents.save(alice, song.id, "a\nb")

        with pytest.raises(NotFoundError, match="Line 5 not found"):
            documents.set_line_timestamps(alice, song.id, {1: 100, 5: 200})

        assert documents.get(alice, song.id).lines[0].timestamp_ms is None

    def test_save_drops_timestamps(self, documents, alice, song):
        """Test that replacing lines drops their timings."""
        documents.save(alice, song.id, "a\nb")
        documents.set_line_timestamps(alice, song.id, {1: 100})

        document = documents.save(alice, song.id, "a\nb")
        assert all(line.timestamp_ms is None for line in document.lines)

    def test_import_lrc_timings(self, documents, alice, song):
        """Test aligning LRC content onto the current lines."""
        documents.save(alice, song.id, "Amazing grace\n\nHow sweet the sound")

        matched = documents.import_lrc_timings(
            alice, song.id, "[00:01.00] Amazing grace\n[00:05.50] how sweet the sound"
        )

        assert matched == 2
        lines = documents.get(alice, song.id).lines
        assert [line.timestamp_ms for line in lines] == [1000, None, 5500]

    def test_import_invalid_lrc(self, documents, alice, song):
        """Test that LRC without timings is rejected."""
        documents.save(alice, song.id, "a")

        with pytest.raises(ValueError):
            documents.import_lrc_timings(alice, song.id, "not lrc")


class TestBackfill:
    """Tests for converting legacy flat-text lyrics."""

    def test_backfill_converts_legacy_text(self, songs, documents, alice):
        """Test that legacy text becomes version 1 and reruns are no-ops."""
        legacy = songs.create(alice, track="Old", legacy_lyrics="old\n\nwords")
        blank = songs.create(alice, track="Blank", legacy_lyrics="   ")
        songs.create(alice, track="Empty")

        assert documents.backfill_from_legacy() == (1, 1)

        document = documents.get(alice, legacy.id)
        assert document.version == 1
        assert [line.text for line in document.lines] == ["old", "", "words"]
        with pytest.raises(NotFoundError):
            documents.get(alice, blank.id)

        assert documents.backfill_from_legacy() == (0, 1)


def test_has_document(documents, alice, song):
    """Test the system-side existence check."""
    assert documents.has_document(song.id) is False
    documents.save(alice, song.id, "x")
    assert documents.has_document(song.id) is True


def test_store_uses_default_collaborators(db, songs):
    """Test that a store builds its own version store and mirror."""
    store = LyricsDocumentStore(db, songs)

    assert store.versions is not None
    assert store.mirror.db is db


class TestConcurrentSaves:
    """Tests for saves racing on one document."""

    def test_version_moved_inside_transaction_conflicts(self, documents, alice, song, mocker):
        """Test that the version-guarded update rejects a document that moved mid-save."""
        documents.save(alice, song.id, "first")

        def bump_version(conn, document_id, version, raw_text):
            conn.execute(
                "UPDATE lyrics_documents SET version = version + 1 WHERE id = ?",
                (document_id,),
            )

        mocker.patch.object(documents.versions, "snapshot", side_effect=bump_version)

        with pytest.raises(ConflictError):
            documents.save(alice, song.id, "second")

        document = documents.get(alice, song.id)
        assert document.version == 1
        assert document.raw_text == "first"
        assert document.versions == []

    def test_parallel_saves_commit_serially(self, temp_db_path, documents, alice, song):
        """Test that two saves from separate connections both land, one after the other."""
        documents.save(alice, song.id, "base")

        clients = [DatabaseClient(temp_db_path) for _ in range(2)]
        stores = [LyricsDocumentStore(client, SongStore(client)) for client in clients]
        barrier = threading.Barrier(2)
        errors = []

        def save(store, text):
            barrier.wait()
            try:
                store.save(alice, song.id, text)
            except Exception as e:
                errors.append(e)

        threads = [
            threading.Thread(target=save, args=(store, text))
            for store, text in zip(stores, ["from a", "from b"])
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        for client in clients:
            client.close()

        assert errors == []
        document = documents.get(alice, song.id)
        assert document.version == 3
        assert [snap.version for snap in document.versions] == [2, 1]
        assert document.versions[1].raw_text == "base"
        assert {document.raw_text, document.versions[0].raw_text} == {"from a", "from b"}
        assert [line.text for line in document.lines] == [document.raw_text]
