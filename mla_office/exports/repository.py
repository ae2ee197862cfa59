# mla_office/exports/repository.py

from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from mla_office.exports.exceptions import ExportJobNotFoundError, InvalidExportTransitionError
from mla_office.exports.models import STATUS_ORDER, ExportFormat, ExportJob, ExportStatus
from mla_office.utils.logger import get_logger

logger = get_logger(__name__)


class ExportJobRepository:
    """
    Data Access Layer for export jobs.

    Every write goes through `update_progress`, which refuses updates that
    would move a job backwards or modify a job that already finished.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        export_type: str,
        export_format: ExportFormat,
        filters: Optional[Dict],
        created_by: str,
    ) -> ExportJob:
        """Persist a new pending job and return it."""
        now = datetime.utcnow()
        job = ExportJob(
            type=export_type,
            format=export_format,
            filters=filters or {},
            status=ExportStatus.PENDING,
            progress=0,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        self.db.add(job)
        self.db.commit()
        self.db.refresh(job)
        return job

    def get_by_id(self, export_id: str) -> Optional[ExportJob]:
        """
        Fetches a single export job by id.
        Returns None if not found.
        """
        stmt = select(ExportJob).where(ExportJob.id == export_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_by_user(self, user_id: str, limit: int = 10) -> List[ExportJob]:
        """Most recent jobs created by a user, newest first."""
        stmt = (
            select(ExportJob)
            .where(ExportJob.created_by == user_id)
            .order_by(desc(ExportJob.created_at), desc(ExportJob.id))
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def update_progress(
        self,
        export_id: str,
        status: Optional[ExportStatus] = None,
        progress: Optional[int] = None,
        total_records: Optional[int] = None,
        processed_records: Optional[int] = None,
        file_url: Optional[str] = None,
        file_name: Optional[str] = None,
        file_size_kb: Optional[int] = None,
        error_message: Optional[str] = None,
        celery_task_id: Optional[str] = None,
    ) -> ExportJob:
        """
        Apply a partial update to a job and commit it.

        Only the arguments that are not None are written.
        """
        job = self.get_by_id(export_id)
        if not job:
            raise ExportJobNotFoundError(export_id)

        self._check_update(job, status, progress, file_url, error_message)

        if status is not None:
            job.status = status
        if progress is not None:
            job.progress = progress
        if total_records is not None:
            job.total_records = total_records
        if processed_records is not None:
            job.processed_records = processed_records
        if file_url is not None:
            job.file_url = file_url
        if file_name is not None:
            job.file_name = file_name
        if file_size_kb is not None:
            job.file_size_kb = file_size_kb
        if error_message is not None:
            job.error_message = error_message
        if celery_task_id is not None:
            job.celery_task_id = celery_task_id

        now = datetime.utcnow()
        job.updated_at = now
        if status is not None and status.is_terminal:
            job.completed_at = now

        self.db.commit()
        self.db.refresh(job)

        logger.debug(
            "Export job updated",
            export_id=export_id,
            status=job.status.value,
            progress=job.progress,
        )
        return job

    @staticmethod
    def _check_update(
        job: ExportJob,
        status: Optional[ExportStatus],
        progress: Optional[int],
        file_url: Optional[str],
        error_message: Optional[str],
    ) -> None:
        if job.status.is_terminal:
            raise InvalidExportTransitionError(
                job.id, f"job is already {job.status.value}"
            )

        if status is not None and STATUS_ORDER[status] < STATUS_ORDER[job.status]:
            raise InvalidExportTransitionError(
                job.id, f"cannot move from {job.status.value} to {status.value}"
            )

        if progress is not None:
            if not 0 <= progress <= 100:
                raise InvalidExportTransitionError(job.id, f"progress {progress} out of range")
            if progress < job.progress:
                raise InvalidExportTransitionError(
                    job.id, f"progress cannot go from {job.progress} to {progress}"
                )

        if status == ExportStatus.COMPLETED:
            if progress != 100 or not file_url:
                raise InvalidExportTransitionError(
                    job.id, "completion requires progress 100 and a file URL"
                )
        elif file_url is not None:
            raise InvalidExportTransitionError(
                job.id, "file URL can only be set on completion"
            )

        if status == ExportStatus.FAILED:
            if not error_message:
                raise InvalidExportTransitionError(job.id, "failure requires an error message")
            if progress is not None:
                raise InvalidExportTransitionError(job.id, "progress is frozen on failure")
        elif error_message is not None:
            raise InvalidExportTransitionError(
                job.id, "error message can only be set on failure"
            )
