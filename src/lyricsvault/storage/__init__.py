"""Storage layer for the durable job queue."""

from .job_store import JobStore

__all__ = ["JobStore"]
