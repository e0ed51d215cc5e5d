"""FastAPI application entry point."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from . import __version__
from .bootstrap import build_services
from .config import settings
from .logging_config import setup_logging
from .routes import annotations, health, jobs, lyrics, songs
from .routes.deps import set_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan.

    Args:
        app: FastAPI application

    Yields:
        None
    """
    # Startup
    setup_logging(settings.LYRICSVAULT_LOG_DIR, settings.LYRICSVAULT_LOG_LEVEL)
    app_services = build_services(settings)

    task: Optional[asyncio.Task] = None
    if app_services.job_queue is not None:
        await app_services.job_queue.initialize()
        if settings.RUN_WORKER_IN_PROCESS:
            # Start background job processor
            task = asyncio.create_task(app_services.job_queue.process_jobs())
            logger.info("Started in-process lyrics fetch worker")

    set_services(app_services)

    yield

    # Shutdown
    set_services(None)
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    await app_services.close()


app = FastAPI(
    title="LyricsVault",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(health.router, prefix="/api/v1")
app.include_router(songs.router, prefix="/api/v1")
app.include_router(lyrics.router, prefix="/api/v1")
app.include_router(annotations.router, prefix="/api/v1")
app.include_router(jobs.router, prefix="/api/v1")


@app.get("/")
async def root() -> dict:
    """Root endpoint.

    Returns:
        Service info
    """
    return {
        "message": "LyricsVault",
        "version": __version__,
    }


def main(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Entry point for running the service directly."""
    import uvicorn

    uvicorn.run(
        "lyricsvault.main:app",
        host=host,
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    main()
