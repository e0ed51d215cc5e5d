"""Health check endpoint."""

import logging

from fastapi import APIRouter, Depends

from .. import __version__
from ..bootstrap import AppServices
from .deps import get_services

logger = logging.getLogger(__name__)
router = APIRouter()


def check_database(app_services: AppServices) -> dict:
    """Check that the lyrics database answers.

    Returns:
        Status dictionary
    """
    try:
        counts = app_services.db.get_table_counts()
        return {"status": "healthy", "path": str(app_services.db.db_path), "songs": counts["saved_songs"]}
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return {"status": "unhealthy", "error": str(e)}


async def check_job_queue(app_services: AppServices) -> dict:
    """Check the fetch job queue.

    Returns:
        Status dictionary with job counts
    """
    if app_services.job_queue is None:
        return {"status": "disabled"}
    try:
        counts = await app_services.job_queue.job_store.count_by_status()
        return {"status": "healthy", "jobs": {status.value: count for status, count in counts.items()}}
    except Exception as e:
        logger.warning(f"Job queue health check failed: {e}")
        return {"status": "unhealthy", "error": str(e)}


@router.get("/health")
async def health_check(app_services: AppServices = Depends(get_services)) -> dict:
    """Health check endpoint.

    Returns:
        Service health status
    """
    database = check_database(app_services)
    job_queue = await check_job_queue(app_services)

    healthy = database["status"] == "healthy" and job_queue["status"] != "unhealthy"
    return {
        "status": "healthy" if healthy else "degraded",
        "version": __version__,
        "services": {
            "database": database,
            "job_queue": job_queue,
        },
    }
