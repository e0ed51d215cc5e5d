"""Operator endpoints for the fetch job queue."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ..bootstrap import AppServices
from ..models import Job, JobResponse, JobStatus
from .deps import get_services, verify_api_key

router = APIRouter(prefix="/jobs", tags=["jobs"])


def job_to_response(job: Job) -> JobResponse:
    """Convert Job to JobResponse."""
    return JobResponse(
        job_id=job.id,
        name=job.name,
        status=job.status,
        payload=job.payload,
        attempts_made=job.attempts_made,
        max_attempts=job.options.max_attempts,
        run_at=job.run_at,
        error_message=job.error_message,
        created_at=job.created_at,
        updated_at=job.updated_at,
    )


def _require_queue(app_services: AppServices):
    if app_services.job_queue is None:
        raise HTTPException(503, "Lyrics fetching is disabled")
    return app_services.job_queue


@router.get("", response_model=list[JobResponse])
async def list_jobs(
    status: Optional[JobStatus] = None,
    name: Optional[str] = None,
    limit: int = 100,
    api_key: str = Depends(verify_api_key),
    app_services: AppServices = Depends(get_services),
) -> list[JobResponse]:
    """List jobs, newest first (e.g. status=failed)."""
    job_queue = _require_queue(app_services)
    jobs = await job_queue.list_jobs(status=status, name=name, limit=limit)
    return [job_to_response(job) for job in jobs]


@router.post("/{job_id}/retry", response_model=JobResponse)
async def retry_job(
    job_id: str,
    api_key: str = Depends(verify_api_key),
    app_services: AppServices = Depends(get_services),
) -> JobResponse:
    """Requeue a failed job with a fresh attempt budget."""
    job_queue = _require_queue(app_services)
    job = await job_queue.retry_job(job_id)
    if job is None:
        raise HTTPException(404, f"No failed job {job_id}")
    return job_to_response(job)
