"""
Job Tracker Service

Persists background job state for callers that poll for progress.

State machine:
    queued -> processing -> completed | failed
    queued -> failed
Terminal states are absorbing.

Every update is a compare-and-swap on CrawlJob.version, so two workers
that somehow own the same job cannot silently overwrite each other.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import update

from db.database_manager import DatabaseManager
from db.models import CrawlJob, JOB_STATUSES, TERMINAL_JOB_STATUSES, new_job_id
from runner.logging_setup import get_logger
from seo_pipeline.exceptions import InvalidJobTransition, JobConflictError, JobNotFoundError

logger = get_logger("job_tracker")

ALLOWED_TRANSITIONS = {
    'queued': {'processing', 'failed'},
    'processing': {'processing', 'completed', 'failed'},
    'completed': set(),
    'failed': set(),
}


def _clamp_progress(progress: int) -> int:
    return max(0, min(100, int(progress)))


class JobTracker:
    """
    Service for creating, reading and updating CrawlJob records.

    Usage:
        tracker = JobTracker(db)
        job_id = tracker.create(site_id=1)
        tracker.mark(job_id, 'processing', progress=5)
        tracker.mark(job_id, 'completed', result={...})
    """

    def __init__(self, db: DatabaseManager, max_retries: int = 3):
        self.db = db
        self.max_retries = max_retries

    def create(self, site_id: int, job_type: str = "metadata_extract", job_id: Optional[str] = None) -> str:
        """
        Create a queued job.

        Returns:
            str: Job ID for polling
        """
        job_id = job_id or new_job_id()

        with self.db.get_session() as session:
            session.add(CrawlJob(
                id=job_id,
                site_id=site_id,
                job_type=job_type,
                status='queued',
                progress=0,
                version=0,
                updated_at=datetime.utcnow(),
            ))

        logger.info(f"Created job {job_id} ({job_type}) for site {site_id}")
        return job_id

    def get(self, job_id: str) -> Optional[Dict[str, Any]]:
        """Return the job as a dict, or None if it does not exist."""
        with self.db.get_session() as session:
            job = session.get(CrawlJob, job_id)
            return job.to_dict() if job else None

    def mark(
        self,
        job_id: str,
        status: str,
        progress: Optional[int] = None,
        result: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Partially update a job.

        Args:
            job_id: Job to update
            status: New status (queued, processing, completed, failed)
            progress: New progress 0-100; never lowered while processing
            result: Summary stored when status is 'completed'
            error: Message stored when status is 'failed'

        Returns:
            dict: The updated job

        Raises:
            JobNotFoundError: Unknown job
            InvalidJobTransition: Status change not allowed
            JobConflictError: Concurrent writer kept winning the version race
        """
        if status not in JOB_STATUSES:
            raise InvalidJobTransition(f"Unknown job status: {status}")

        for attempt in range(self.max_retries + 1):
            updated = self._try_mark(job_id, status, progress, result, error)
            if updated is not None:
                return updated

            logger.warning(
                f"Version conflict updating job {job_id} "
                f"(attempt {attempt + 1}/{self.max_retries + 1})"
            )

        raise JobConflictError(f"Job {job_id} was modified concurrently")

    def _try_mark(
        self,
        job_id: str,
        status: str,
        progress: Optional[int],
        result: Optional[Dict[str, Any]],
        error: Optional[str],
    ) -> Optional[Dict[str, Any]]:
        """One compare-and-swap attempt. Returns None on version mismatch."""
        with self.db.get_session() as session:
            job = session.get(CrawlJob, job_id)
            if job is None:
                raise JobNotFoundError(f"Job not found: {job_id}")

            if status not in ALLOWED_TRANSITIONS[job.status]:
                raise InvalidJobTransition(
                    f"Job {job_id} cannot move from '{job.status}' to '{status}'"
                )

            now = datetime.utcnow()
            values: Dict[str, Any] = {
                'status': status,
                'updated_at': now,
                'version': job.version + 1,
            }

            if status == 'processing':
                if progress is not None:
                    values['progress'] = max(job.progress, _clamp_progress(progress))
            elif status == 'completed':
                values['progress'] = 100
                values['result'] = result
            elif status == 'failed':
                values['error'] = error or "Unknown error"
                if progress is not None:
                    values['progress'] = _clamp_progress(progress)

            if status in TERMINAL_JOB_STATUSES:
                values['completed_at'] = now

            stmt = (
                update(CrawlJob)
                .where(CrawlJob.id == job_id, CrawlJob.version == job.version)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if session.execute(stmt).rowcount != 1:
                return None

            session.refresh(job)
            logger.debug(
                f"Job {job_id}: status={status} progress={job.progress} version={job.version}"
            )
            return job.to_dict()
