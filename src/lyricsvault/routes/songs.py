"""Saved song endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Response

from ..bootstrap import AppServices
from ..core.context import Caller
from ..db.models import SavedSong
from ..exceptions import NotFoundError
from ..models import NoteRequest, SongCreateRequest, SongResponse, VisibilityRequest
from .deps import get_caller, get_services

router = APIRouter(prefix="/songs", tags=["songs"])


def song_to_response(song: SavedSong) -> SongResponse:
    """Convert SavedSong to SongResponse."""
    return SongResponse(
        id=song.id,
        track=song.track,
        artist=song.artist,
        legacy_lyrics=song.legacy_lyrics,
        fetch_state=song.fetch_state,
        visibility=song.visibility,
        note=song.note,
        created_at=song.created_at,
        updated_at=song.updated_at,
    )


@router.post("", response_model=SongResponse, status_code=201)
async def create_song(
    request: SongCreateRequest,
    caller: Caller = Depends(get_caller),
    app_services: AppServices = Depends(get_services),
) -> SongResponse:
    """Save a song; without lyrics, an automatic fetch is queued.

    Poll GET /songs/{song_id} while fetch_state is "fetching".
    """
    song = await app_services.library.create_song(
        caller,
        track=request.track,
        artist=request.artist,
        lyrics=request.lyrics,
        visibility=request.visibility,
    )
    return song_to_response(song)


@router.get("", response_model=list[SongResponse])
def list_songs(
    limit: int = 100,
    caller: Caller = Depends(get_caller),
    app_services: AppServices = Depends(get_services),
) -> list[SongResponse]:
    """List the caller's songs, newest first."""
    return [song_to_response(song) for song in app_services.songs.list_songs(caller, limit=limit)]


@router.get("/{song_id}", response_model=SongResponse)
def get_song(
    song_id: str,
    caller: Caller = Depends(get_caller),
    app_services: AppServices = Depends(get_services),
) -> SongResponse:
    """Get a song, including its lyrics fetch state."""
    try:
        return song_to_response(app_services.songs.get(caller, song_id))
    except NotFoundError as e:
        raise HTTPException(404, str(e))


@router.patch("/{song_id}/visibility", response_model=SongResponse)
def set_visibility(
    song_id: str,
    request: VisibilityRequest,
    caller: Caller = Depends(get_caller),
    app_services: AppServices = Depends(get_services),
) -> SongResponse:
    """Change who may see a song."""
    try:
        return song_to_response(app_services.songs.set_visibility(caller, song_id, request.visibility))
    except NotFoundError as e:
        raise HTTPException(404, str(e))


@router.put("/{song_id}/note", response_model=SongResponse)
def set_note(
    song_id: str,
    request: NoteRequest,
    caller: Caller = Depends(get_caller),
    app_services: AppServices = Depends(get_services),
) -> SongResponse:
    """Set or clear the personal note on a song."""
    try:
        return song_to_response(app_services.songs.set_note(caller, song_id, request.text))
    except NotFoundError as e:
        raise HTTPException(404, str(e))


@router.delete("/{song_id}", status_code=204)
def delete_song(
    song_id: str,
    caller: Caller = Depends(get_caller),
    app_services: AppServices = Depends(get_services),
) -> Response:
    """Delete a song with its lyrics, history and annotations."""
    try:
        app_services.songs.delete(caller, song_id)
    except NotFoundError as e:
        raise HTTPException(404, str(e))
    return Response(status_code=204)
