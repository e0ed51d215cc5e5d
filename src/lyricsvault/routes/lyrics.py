"""Structured lyrics endpoints: read, save, restore and line timings."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ..bootstrap import AppServices
from ..core.context import Caller
from ..db.models import LyricsDocument
from ..exceptions import ConflictError, NotFoundError
from ..models import (
    DocumentResponse,
    LineResponse,
    RestoreRequest,
    SaveLyricsRequest,
    SnapshotResponse,
    TimingsRequest,
    TimingsResponse,
)
from .deps import get_caller, get_services

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/lyrics", tags=["lyrics"])


def document_to_response(document: LyricsDocument) -> DocumentResponse:
    """Convert LyricsDocument to DocumentResponse."""
    return DocumentResponse(
        id=document.id,
        song_id=document.song_id,
        raw_text=document.raw_text,
        version=document.version,
        created_at=document.created_at,
        updated_at=document.updated_at,
        lines=[
            LineResponse(
                id=line.id,
                line_number=line.line_number,
                text=line.text,
                timestamp_ms=line.timestamp_ms,
            )
            for line in document.lines
        ],
        versions=[
            SnapshotResponse(version=snap.version, raw_text=snap.raw_text, created_at=snap.created_at)
            for snap in document.versions
        ],
    )


def conflict(error: ConflictError) -> HTTPException:
    """409 carrying the version the client expected and the current one."""
    return HTTPException(
        409,
        {
            "message": str(error),
            "expected_version": error.expected,
            "current_version": error.actual,
        },
    )


@router.get("/{song_id}", response_model=DocumentResponse)
def get_lyrics(
    song_id: str,
    caller: Caller = Depends(get_caller),
    app_services: AppServices = Depends(get_services),
) -> DocumentResponse:
    """Get structured lyrics with lines and recent versions."""
    try:
        return document_to_response(app_services.documents.get(caller, song_id))
    except NotFoundError as e:
        raise HTTPException(404, str(e))


@router.put("/{song_id}", response_model=DocumentResponse)
def save_lyrics(
    song_id: str,
    request: SaveLyricsRequest,
    caller: Caller = Depends(get_caller),
    app_services: AppServices = Depends(get_services),
) -> DocumentResponse:
    """Save new lyrics as the next version.

    Send expected_version to reject the save if someone else saved first.
    """
    try:
        document = app_services.documents.save(
            caller, song_id, request.raw_text, expected_version=request.expected_version
        )
    except NotFoundError as e:
        raise HTTPException(404, str(e))
    except ConflictError as e:
        raise conflict(e)
    return document_to_response(document)


@router.post("/{song_id}/restore/{version}", response_model=DocumentResponse)
def restore_lyrics(
    song_id: str,
    version: int,
    request: Optional[RestoreRequest] = None,
    caller: Caller = Depends(get_caller),
    app_services: AppServices = Depends(get_services),
) -> DocumentResponse:
    """Save the text of an earlier version as a new version."""
    expected_version = request.expected_version if request else None
    try:
        document = app_services.documents.restore_version(
            caller, song_id, version, expected_version=expected_version
        )
    except NotFoundError as e:
        raise HTTPException(404, str(e))
    except ConflictError as e:
        raise conflict(e)
    return document_to_response(document)


@router.put("/{song_id}/timings", response_model=TimingsResponse)
def set_timings(
    song_id: str,
    request: TimingsRequest,
    caller: Caller = Depends(get_caller),
    app_services: AppServices = Depends(get_services),
) -> TimingsResponse:
    """Set line timestamps from a line-number map or from LRC content."""
    documents = app_services.documents
    try:
        if request.lrc_content is not None:
            matched = documents.import_lrc_timings(caller, song_id, request.lrc_content)
            document = documents.get(caller, song_id)
        else:
            document = documents.set_line_timestamps(caller, song_id, request.timestamps)
            matched = sum(1 for value in request.timestamps.values() if value is not None)
    except NotFoundError as e:
        raise HTTPException(404, str(e))
    except ValueError as e:
        raise HTTPException(422, str(e))

    return TimingsResponse(matched_lines=matched, document=document_to_response(document))
