"""SQLite-backed persistent store for the background job queue."""

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

import aiosqlite

from ..models import Job, JobOptions, JobStatus

logger = logging.getLogger(__name__)

_JOB_COLUMNS = (
    "id, name, status, payload_json, options_json, attempts_made, run_at, error_message, created_at, updated_at"
)


def _ts(value: datetime) -> str:
    """Sortable ISO timestamp (always with microseconds, UTC)."""
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


class JobStore:
    """SQLite-backed persistent job store."""

    def __init__(self, db_path: Path):
        """Initialize with path to SQLite database file.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        self._db: Optional[aiosqlite.Connection] = None

    async def initialize(self) -> None:
        """Create tables if not exist. Called once at startup."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self.db_path)
        await self._db.execute("PRAGMA journal_mode=WAL")
        await self._db.executescript(
            """
            CREATE TABLE IF NOT EXISTS jobs (
                id              TEXT PRIMARY KEY,
                name            TEXT NOT NULL,
                status          TEXT NOT NULL DEFAULT 'queued',

                payload_json    TEXT NOT NULL,
                options_json    TEXT NOT NULL,

                attempts_made   INTEGER NOT NULL DEFAULT 0,
                run_at          TEXT NOT NULL,
                error_message   TEXT,

                created_at      TEXT NOT NULL,
                updated_at      TEXT NOT NULL,

                CHECK (status IN ('queued', 'active', 'completed', 'failed'))
            );

            CREATE INDEX IF NOT EXISTS idx_jobs_status_run_at ON jobs(status, run_at);
            CREATE INDEX IF NOT EXISTS idx_jobs_name ON jobs(name);
            """
        )
        await self._db.commit()
        logger.info(f"JobStore initialized with database at {self.db_path}")

    def _require_db(self) -> aiosqlite.Connection:
        if not self._db:
            raise RuntimeError("JobStore not initialized")
        return self._db

    async def insert_job(self, job: Job) -> None:
        """Insert a new job record.

        Args:
            job: Job to insert
        """
        db = self._require_db()
        await db.execute(
            f"INSERT INTO jobs ({_JOB_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                job.id,
                job.name,
                job.status.value,
                json.dumps(job.payload),
                job.options.model_dump_json(),
                job.attempts_made,
                _ts(job.run_at),
                job.error_message,
                _ts(job.created_at),
                _ts(job.updated_at),
            ),
        )
        await db.commit()
        logger.debug(f"Inserted job {job.id} into database")

    async def update_job(self, job_id: str, **fields: Any) -> None:
        """Update specific fields on a job.

        Args:
            job_id: Job ID to update
            **fields: Column values (e.g., status, attempts_made, run_at, error_message)
        """
        db = self._require_db()

        if not fields:
            return

        set_clauses = []
        values = []

        for key, value in fields.items():
            if isinstance(value, datetime):
                value = _ts(value)
            elif isinstance(value, JobStatus):
                value = value.value
            set_clauses.append(f"{key} = ?")
            values.append(value)

        # Always update updated_at timestamp
        set_clauses.append("updated_at = ?")
        values.append(_ts(datetime.now(timezone.utc)))

        values.append(job_id)

        await db.execute(
            f"UPDATE jobs SET {', '.join(set_clauses)} WHERE id = ?",
            values,
        )
        await db.commit()
        logger.debug(f"Updated job {job_id}: {fields}")

    async def delete_job(self, job_id: str) -> None:
        """Remove a job record."""
        db = self._require_db()
        await db.execute("DELETE FROM jobs WHERE id = ?", (job_id,))
        await db.commit()
        logger.debug(f"Deleted job {job_id} from database")

    def _row_to_job(self, row: tuple) -> Job:
        """Convert database row to Job instance."""
        (
            job_id,
            name,
            status_str,
            payload_json,
            options_json,
            attempts_made,
            run_at_str,
            error_message,
            created_at_str,
            updated_at_str,
        ) = row

        return Job(
            id=job_id,
            name=name,
            status=JobStatus(status_str),
            payload=json.loads(payload_json),
            options=JobOptions.model_validate_json(options_json),
            attempts_made=attempts_made,
            run_at=datetime.fromisoformat(run_at_str),
            error_message=error_message,
            created_at=datetime.fromisoformat(created_at_str),
            updated_at=datetime.fromisoformat(updated_at_str),
        )

    async def get_job(self, job_id: str) -> Optional[Job]:
        """Retrieve a single job by ID.

        Returns:
            Job instance or None if not found
        """
        db = self._require_db()
        async with db.execute(f"SELECT {_JOB_COLUMNS} FROM jobs WHERE id = ?", (job_id,)) as cursor:
            row = await cursor.fetchone()

        if row is None:
            return None
        return self._row_to_job(row)

    async def claim_due_job(self, now: Optional[datetime] = None) -> Optional[Job]:
        """Atomically move the oldest due queued job to ACTIVE.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            The claimed job, or None if nothing is due
        """
        db = self._require_db()
        now = now or datetime.now(timezone.utc)

        while True:
            async with db.execute(
                """
                SELECT id FROM jobs
                WHERE status = 'queued' AND run_at <= ?
                ORDER BY run_at, created_at
                LIMIT 1
                """,
                (_ts(now),),
            ) as cursor:
                row = await cursor.fetchone()

            if row is None:
                return None

            # Guard on status so a concurrent worker process cannot claim it twice
            cursor = await db.execute(
                "UPDATE jobs SET status = 'active', updated_at = ? WHERE id = ? AND status = 'queued'",
                (_ts(datetime.now(timezone.utc)), row[0]),
            )
            await db.commit()
            if cursor.rowcount == 1:
                return await self.get_job(row[0])

    async def next_run_at(self) -> Optional[datetime]:
        """Earliest run_at among queued jobs."""
        db = self._require_db()
        async with db.execute("SELECT MIN(run_at) FROM jobs WHERE status = 'queued'") as cursor:
            row = await cursor.fetchone()
        return datetime.fromisoformat(row[0]) if row and row[0] else None

    async def get_interrupted_jobs(self) -> list[Job]:
        """Return jobs left ACTIVE by a worker that died (for restart recovery)."""
        db = self._require_db()
        async with db.execute(f"SELECT {_JOB_COLUMNS} FROM jobs WHERE status = 'active'") as cursor:
            rows = await cursor.fetchall()

        jobs = [self._row_to_job(row) for row in rows]
        logger.info(f"Found {len(jobs)} interrupted jobs in database")
        return jobs

    async def count_by_status(self) -> dict[JobStatus, int]:
        """Number of jobs per status."""
        db = self._require_db()
        counts = {status: 0 for status in JobStatus}
        async with db.execute("SELECT status, COUNT(*) FROM jobs GROUP BY status") as cursor:
            for status_str, count in await cursor.fetchall():
                counts[JobStatus(status_str)] = count
        return counts

    async def purge_failed_jobs(self, max_age_days: int) -> int:
        """Delete failed jobs last touched more than max_age_days ago.

        Returns:
            Number of jobs deleted
        """
        db = self._require_db()
        cutoff = datetime.now(timezone.utc) - timedelta(days=max_age_days)

        cursor = await db.execute(
            "DELETE FROM jobs WHERE status = 'failed' AND updated_at < ?",
            (_ts(cutoff),),
        )
        await db.commit()

        deleted_count = cursor.rowcount
        if deleted_count > 0:
            logger.info(f"Purged {deleted_count} failed jobs older than {max_age_days} days")

        return deleted_count

    async def list_jobs(
        self,
        status: Optional[JobStatus] = None,
        name: Optional[str] = None,
        limit: int = 100,
    ) -> list[Job]:
        """List jobs with optional filtering, newest first.

        Args:
            status: Filter by job status
            name: Filter by job name
            limit: Maximum number of jobs to return
        """
        db = self._require_db()

        query = f"SELECT {_JOB_COLUMNS} FROM jobs"
        conditions = []
        values: list[Any] = []

        if status:
            conditions.append("status = ?")
            values.append(status.value)

        if name:
            conditions.append("name = ?")
            values.append(name)

        if conditions:
            query += " WHERE " + " AND ".join(conditions)

        query += " ORDER BY created_at DESC LIMIT ?"
        values.append(limit)

        async with db.execute(query, values) as cursor:
            rows = await cursor.fetchall()

        return [self._row_to_job(row) for row in rows]

    async def close(self) -> None:
        """Close the database connection."""
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("JobStore database connection closed")
