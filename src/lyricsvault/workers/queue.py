"""Durable job queue with retries and exponential backoff."""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from ..models import Job, JobOptions, JobStatus
from ..storage.job_store import JobStore

logger = logging.getLogger(__name__)

JobHandler = Callable[[Job], Awaitable[None]]
FailureHandler = Callable[[Job, Exception], Awaitable[None]]


@dataclass
class _Registration:
    handler: JobHandler
    on_failed: Optional[FailureHandler] = None


class JobQueue:
    """Persistent job queue with concurrent execution control.

    Jobs live in SQLite, so queued and delayed retries survive a restart.
    Each attempt runs the handler registered for the job's name; a handler
    that raises is retried after its backoff delay until `max_attempts` is
    reached, after which the job is marked failed and `on_failed` is called.
    """

    def __init__(
        self,
        db_path: Path,
        concurrency: int = 2,
        poll_interval: float = 1.0,
    ):
        """Initialize job queue.

        Args:
            db_path: Path to the job database
            concurrency: Maximum jobs running at once
            poll_interval: Seconds between polls when no job is due
        """
        self.concurrency = concurrency
        self.poll_interval = poll_interval
        self.job_store = JobStore(db_path)
        self._handlers: Dict[str, _Registration] = {}
        self._semaphore = asyncio.Semaphore(concurrency)
        self._wakeup = asyncio.Event()
        self._tasks: Set[asyncio.Task] = set()
        self._running = False
        self._logging_task: Optional[asyncio.Task] = None
        self._log_interval_seconds: float = 60.0

    async def initialize(self) -> None:
        """Initialize persistent store and recover interrupted jobs."""
        await self.job_store.initialize()

        # Jobs left ACTIVE were cut off mid-attempt when the worker died
        interrupted = await self.job_store.get_interrupted_jobs()
        for job in interrupted:
            logger.info(f"Recovering interrupted job {job.id} (attempt {job.attempts_made})")
            await self.job_store.update_job(
                job.id, status=JobStatus.QUEUED, run_at=datetime.now(timezone.utc)
            )

        if interrupted:
            logger.info(f"Recovered {len(interrupted)} interrupted jobs")

    def register(
        self,
        name: str,
        handler: JobHandler,
        on_failed: Optional[FailureHandler] = None,
    ) -> None:
        """Register the handler for jobs with the given name.

        Args:
            name: Job name
            handler: Coroutine run once per attempt; raising schedules a retry
            on_failed: Coroutine called once when the job fails for good
        """
        self._handlers[name] = _Registration(handler, on_failed)
        logger.debug(f"Registered handler for {name!r} jobs")

    async def enqueue(
        self,
        name: str,
        payload: Dict[str, Any],
        options: Optional[JobOptions] = None,
    ) -> Job:
        """Persist a new job and wake the worker.

        Args:
            name: Job name (selects the handler)
            payload: JSON-serializable job data
            options: Retry and retention policy

        Returns:
            Created job instance
        """
        job = Job(
            id=f"job_{uuid.uuid4().hex[:12]}",
            name=name,
            payload=payload,
            options=options or JobOptions(),
        )
        await self.job_store.insert_job(job)
        self._wakeup.set()

        logger.info(f"Enqueued {name} job {job.id}")
        return job

    async def get_job(self, job_id: str) -> Optional[Job]:
        """Get job by ID."""
        return await self.job_store.get_job(job_id)

    async def list_jobs(
        self,
        status: Optional[JobStatus] = None,
        name: Optional[str] = None,
        limit: int = 100,
    ) -> list[Job]:
        """List jobs with optional filtering, newest first."""
        return await self.job_store.list_jobs(status, name, limit)

    async def retry_job(self, job_id: str) -> Optional[Job]:
        """Requeue a failed job with a fresh attempt budget.

        Returns:
            The requeued job, or None if no failed job has this ID
        """
        job = await self.job_store.get_job(job_id)
        if job is None or job.status != JobStatus.FAILED:
            return None

        await self.job_store.update_job(
            job_id,
            status=JobStatus.QUEUED,
            attempts_made=0,
            run_at=datetime.now(timezone.utc),
            error_message=None,
        )
        self._wakeup.set()
        logger.info(f"Requeued failed job {job_id}")
        return await self.job_store.get_job(job_id)

    async def purge_failed_jobs(self, max_age_days: int) -> int:
        """Delete failed jobs older than max_age_days."""
        return await self.job_store.purge_failed_jobs(max_age_days)

    async def run_job(self, job: Job) -> None:
        """Run one attempt of a claimed job and record the outcome.

        Args:
            job: Job already moved to ACTIVE
        """
        registration = self._handlers.get(job.name)
        if registration is None:
            logger.error(f"No handler registered for {job.name!r}, failing job {job.id}")
            await self.job_store.update_job(
                job.id,
                status=JobStatus.FAILED,
                error_message=f"No handler registered for {job.name!r}",
            )
            return

        job.attempts_made += 1
        await self.job_store.update_job(job.id, attempts_made=job.attempts_made)
        logger.info(
            f"[{job.id}] Starting {job.name} attempt {job.attempts_made}/{job.options.max_attempts}"
        )

        try:
            await registration.handler(job)
        except Exception as e:
            await self._handle_failure(job, registration, e)
            return

        logger.info(f"[{job.id}] {job.name} job completed")
        if job.options.keep_on_success:
            job.status = JobStatus.COMPLETED
            await self.job_store.update_job(job.id, status=JobStatus.COMPLETED, error_message=None)
        else:
            await self.job_store.delete_job(job.id)

    async def _handle_failure(self, job: Job, registration: _Registration, error: Exception) -> None:
        """Schedule a retry, or fail the job once attempts are exhausted."""
        job.error_message = str(error) or type(error).__name__

        if job.attempts_made < job.options.max_attempts:
            delay = job.options.backoff.delay_for(job.attempts_made)
            job.status = JobStatus.QUEUED
            job.run_at = datetime.now(timezone.utc) + timedelta(seconds=delay)
            await self.job_store.update_job(
                job.id,
                status=JobStatus.QUEUED,
                run_at=job.run_at,
                error_message=job.error_message,
            )
            self._wakeup.set()
            logger.warning(
                f"[{job.id}] Attempt {job.attempts_made} failed ({job.error_message}), "
                f"retrying in {delay:.1f}s"
            )
            return

        logger.error(
            f"[{job.id}] {job.name} job failed after {job.attempts_made} attempts: {job.error_message}"
        )
        job.status = JobStatus.FAILED
        if job.options.keep_on_failure:
            await self.job_store.update_job(
                job.id, status=JobStatus.FAILED, error_message=job.error_message
            )
        else:
            await self.job_store.delete_job(job.id)

        if registration.on_failed is not None:
            try:
                await registration.on_failed(job, error)
            except Exception as e:
                logger.error(f"[{job.id}] Failure handler raised: {e}")

    async def process_jobs(self) -> None:
        """Background task that processes due jobs until stopped."""
        self._running = True
        self._start_periodic_logging()

        while self._running:
            try:
                await self._semaphore.acquire()
                try:
                    job = await self.job_store.claim_due_job()
                except Exception as e:
                    self._semaphore.release()
                    logger.error(f"Failed to claim job from database: {e}")
                    await asyncio.sleep(self.poll_interval)
                    continue

                if job is None:
                    self._semaphore.release()
                    await self._wait_for_work()
                    continue

                task = asyncio.create_task(self._run_with_semaphore(job))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)

            except asyncio.CancelledError:
                break

    async def _run_with_semaphore(self, job: Job) -> None:
        try:
            await self.run_job(job)
        except Exception as e:
            logger.error(f"[{job.id}] Unexpected error while running job: {e}")
        finally:
            self._semaphore.release()

    async def _wait_for_work(self) -> None:
        """Sleep until a job is enqueued or the poll interval passes."""
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=self.poll_interval)
        except asyncio.TimeoutError:
            pass
        self._wakeup.clear()

    async def drain(self) -> int:
        """Run queued jobs in the foreground until none remain.

        Delayed retries are waited for, so on return every job has either
        succeeded or failed for good.

        Returns:
            Number of attempts made
        """
        attempts = 0
        while True:
            job = await self.job_store.claim_due_job()
            if job is not None:
                await self.run_job(job)
                attempts += 1
                continue

            next_run_at = await self.job_store.next_run_at()
            if next_run_at is None:
                return attempts

            wait = (next_run_at - datetime.now(timezone.utc)).total_seconds()
            await asyncio.sleep(max(wait, 0.0))

    async def stop(self) -> None:
        """Stop processing, let running attempts finish and close the store."""
        self._running = False
        self._wakeup.set()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self.stop_periodic_logging()
        await self.job_store.close()

    async def _log_queue_state(self) -> None:
        """Log current queue state statistics."""
        try:
            counts = await self.job_store.count_by_status()
        except Exception as e:
            logger.error(f"Failed to read queue state: {e}")
            return

        summary = ",".join(f"{status.value}:{count}" for status, count in counts.items())
        logger.info(f"Queue state: [{summary}] running:{len(self._tasks)}/{self.concurrency}")

    async def _periodic_logging_loop(self) -> None:
        """Background task that logs queue state periodically."""
        while self._running:
            await self._log_queue_state()
            try:
                await asyncio.sleep(self._log_interval_seconds)
            except asyncio.CancelledError:
                break

    def _start_periodic_logging(self) -> None:
        """Start the periodic logging background task."""
        self._logging_task = asyncio.create_task(self._periodic_logging_loop())

    async def stop_periodic_logging(self) -> None:
        """Stop the periodic logging task gracefully."""
        if self._logging_task:
            self._logging_task.cancel()
            try:
                await self._logging_task
            except asyncio.CancelledError:
                pass
            self._logging_task = None
