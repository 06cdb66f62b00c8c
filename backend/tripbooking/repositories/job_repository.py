"""Repository for persisted background jobs."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, List

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import JobStatus
from ..core.ulid_helper import generate_ulid
from ..models.background_job import BackgroundJob
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

_BACKOFF_BASE_SECONDS = 30
_BACKOFF_CAP_SECONDS = 1800


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobRepository(BaseRepository[BackgroundJob]):
    """Data access helpers for the background_jobs table."""

    def __init__(self, db: Session):
        super().__init__(db, BackgroundJob)
        bind = db.get_bind()
        self._dialect = bind.dialect.name if bind is not None else "postgresql"

    def enqueue(
        self,
        *,
        type: str,
        payload: dict[str, Any],
        available_at: datetime | None = None,
    ) -> str:
        """Persist a new job ready for processing."""
        job_id = generate_ulid()
        self.create(
            id=job_id,
            type=type,
            payload=payload,
            status=JobStatus.QUEUED.value,
            attempts=0,
            available_at=available_at or _utcnow(),
        )
        return job_id

    def fetch_due(self, *, limit: int = 50) -> List[BackgroundJob]:
        """Return queued jobs that are ready to run, oldest first.

        On Postgres the rows stay locked until the caller commits; rows another
        worker has locked are skipped.
        """
        query = (
            self.query()
            .filter(
                BackgroundJob.status == JobStatus.QUEUED.value,
                BackgroundJob.available_at <= _utcnow(),
            )
            .order_by(BackgroundJob.available_at.asc(), BackgroundJob.id.asc())
            .limit(limit)
        )
        if self._dialect == "postgresql":
            query = query.with_for_update(skip_locked=True)
        return query.all()

    def requeue_stale(self, *, visibility_timeout_seconds: float) -> int:
        """
        Count RUNNING jobs not finished within the visibility timeout as failed attempts.

        Such a job was claimed by a worker that died or hung; it goes back to
        the queue with backoff, or becomes terminal once out of attempts.
        """
        cutoff = _utcnow() - timedelta(seconds=visibility_timeout_seconds)
        query = self.query().filter(
            BackgroundJob.status == JobStatus.RUNNING.value,
            BackgroundJob.updated_at < cutoff,
        )
        if self._dialect == "postgresql":
            query = query.with_for_update(skip_locked=True)
        stale = query.all()
        for job in stale:
            self.mark_failed(job, "Worker did not finish the job within the visibility timeout")
        if stale:
            logger.warning("Requeued %d stale notification jobs", len(stale))
        return len(stale)

    def mark_running(self, job: BackgroundJob) -> None:
        self.update(job, status=JobStatus.RUNNING.value, updated_at=_utcnow())

    def mark_succeeded(self, job: BackgroundJob) -> None:
        self.update(job, status=JobStatus.DONE.value, updated_at=_utcnow())

    def mark_failed(self, job: BackgroundJob, error: str) -> bool:
        """
        Record a failed attempt and reschedule with exponential backoff.

        Returns True when the job has exhausted its attempts and is now terminal.
        """
        attempts = (job.attempts or 0) + 1
        terminal = attempts >= settings.notification_max_attempts
        backoff_seconds = min(_BACKOFF_CAP_SECONDS, _BACKOFF_BASE_SECONDS * (2 ** (attempts - 1)))

        self.update(
            job,
            status=JobStatus.FAILED.value if terminal else JobStatus.QUEUED.value,
            attempts=attempts,
            available_at=job.available_at if terminal else _utcnow() + timedelta(seconds=backoff_seconds),
            last_error=error[:2000],
            updated_at=_utcnow(),
        )
        return terminal
