"""Pydantic models for API requests/responses and queued jobs."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from lyricsvault.db.models import FetchState, Visibility


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# Songs


class SongCreateRequest(BaseModel):
    """Request to save a song."""

    track: str = Field(..., min_length=1)
    artist: str = ""
    lyrics: Optional[str] = None  # None or blank triggers an automatic fetch
    visibility: Visibility = Visibility.PRIVATE


class VisibilityRequest(BaseModel):
    """Request to change song visibility."""

    visibility: Visibility


class NoteRequest(BaseModel):
    """Request to set (or clear, with null) a personal note."""

    text: Optional[str] = None


class SongResponse(BaseModel):
    """Saved song, including the fetch state clients poll."""

    id: str
    track: str
    artist: str
    legacy_lyrics: str
    fetch_state: FetchState
    visibility: Visibility
    note: Optional[str] = None
    created_at: str
    updated_at: str


# Lyrics documents


class SaveLyricsRequest(BaseModel):
    """Request to save a new version of a song's lyrics."""

    raw_text: str
    expected_version: Optional[int] = Field(
        default=None, ge=0, description="Version the edit is based on (0 = no lyrics yet)"
    )


class RestoreRequest(BaseModel):
    """Optional body for a restore."""

    expected_version: Optional[int] = Field(default=None, ge=0)


class TimingsRequest(BaseModel):
    """Line timings, either as a line-number map or as LRC content."""

    timestamps: Optional[Dict[int, Optional[int]]] = None
    lrc_content: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one_source(self) -> "TimingsRequest":
        if (self.timestamps is None) == (self.lrc_content is None):
            raise ValueError("Provide exactly one of 'timestamps' or 'lrc_content'")
        return self


class LineResponse(BaseModel):
    """One lyrics line."""

    id: str
    line_number: int
    text: str
    timestamp_ms: Optional[int] = None


class SnapshotResponse(BaseModel):
    """One retained earlier version."""

    version: int
    raw_text: str
    created_at: Optional[str] = None


class DocumentResponse(BaseModel):
    """Structured lyrics with lines ascending and snapshots by version descending."""

    id: str
    song_id: str
    raw_text: str
    version: int
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    lines: List[LineResponse] = Field(default_factory=list)
    versions: List[SnapshotResponse] = Field(default_factory=list)


class TimingsResponse(BaseModel):
    """Result of applying line timings."""

    matched_lines: int
    document: DocumentResponse


# Annotations


class AnnotationRequest(BaseModel):
    """Create or replace an annotation."""

    text: str = Field(..., max_length=500)
    emoji: Optional[str] = Field(default=None, max_length=2)


class AnnotationResponse(BaseModel):
    """A line annotation."""

    id: str
    line_id: str
    text: str
    emoji: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


# Jobs


class JobStatus(str, Enum):
    """Job status values."""

    QUEUED = "queued"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class BackoffType(str, Enum):
    """Retry delay growth."""

    FIXED = "fixed"
    EXPONENTIAL = "exponential"


class BackoffStrategy(BaseModel):
    """Delay before retrying a failed attempt."""

    type: BackoffType = BackoffType.EXPONENTIAL
    delay_seconds: float = Field(default=5.0, ge=0)

    def delay_for(self, attempts_made: int) -> float:
        """Seconds to wait after the given number of failed attempts (1-based)."""
        if self.type == BackoffType.FIXED:
            return self.delay_seconds
        return self.delay_seconds * 2 ** max(attempts_made - 1, 0)


class JobOptions(BaseModel):
    """Retry and retention policy of a job."""

    max_attempts: int = Field(default=3, ge=1)
    backoff: BackoffStrategy = Field(default_factory=BackoffStrategy)
    keep_on_success: bool = False
    keep_on_failure: bool = True


class Job(BaseModel):
    """A unit of background work in the durable queue."""

    id: str
    name: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    options: JobOptions = Field(default_factory=JobOptions)
    status: JobStatus = JobStatus.QUEUED
    attempts_made: int = 0
    run_at: datetime = Field(default_factory=_utc_now)
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class JobResponse(BaseModel):
    """Job as shown to operators."""

    job_id: str
    name: str
    status: JobStatus
    payload: Dict[str, Any]
    attempts_made: int
    max_attempts: int
    run_at: datetime
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class LyricsFetchPayload(BaseModel):
    """Payload of a lyrics fetch job."""

    song_id: str
    track: str
    artist: str = ""
