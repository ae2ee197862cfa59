# mla_office/exports/services.py

"""
Export orchestration.

`create_export_job` runs in the request; `process_export` runs in the Celery
worker and moves the job through its progress checkpoints:

    0   processing started
    5   total record count known
    20  records fetched
    30  rows expanded
    70  file encoded
    100 file uploaded, job completed
"""

from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from mla_office.exports.columns import resolve_columns
from mla_office.exports.encoders import encode_export
from mla_office.exports.exceptions import ExportJobNotFoundError, InvalidExportTransitionError
from mla_office.exports.expansion import RECORD_KEY, expand_rows, should_expand
from mla_office.exports.models import ExportJob, ExportStatus
from mla_office.exports.publisher import ArtifactPublisher, build_file_name
from mla_office.exports.repository import ExportJobRepository
from mla_office.exports.schemas import ExportRequest
from mla_office.utils.logger import get_logger
from mla_office.voters.repository import VoterExportRepository

logger = get_logger(__name__)

UNKNOWN_ERROR_MESSAGE = "Unknown error"


def selected_columns_from_filters(filters: Optional[Dict]) -> List[str]:
    """Column keys requested through filters.selectedColumns (strings only)."""
    requested = (filters or {}).get("selectedColumns")
    if not isinstance(requested, (list, tuple)):
        return []
    return [key for key in requested if isinstance(key, str)]


class ExportService:
    """Creates export jobs and runs the export pipeline for them."""

    def __init__(
        self,
        db: Session,
        voter_repo: VoterExportRepository = None,
        publisher: ArtifactPublisher = None,
    ):
        self.db = db
        self.repo = ExportJobRepository(db)
        self.voter_repo = voter_repo or VoterExportRepository(db)
        self.publisher = publisher or ArtifactPublisher()

    def create_export_job(self, export_request: ExportRequest, user_id: str) -> ExportJob:
        """Persist a pending export job. Nothing is processed here."""
        job = self.repo.create(
            export_type=export_request.type,
            export_format=export_request.format,
            filters=export_request.filters,
            created_by=user_id,
        )
        logger.info(
            "Created export job",
            export_id=job.id,
            user_id=user_id,
            export_type=job.type,
            format=job.format.value,
        )
        return job

    def schedule_export(self, export_id: str) -> None:
        """
        Hand the job to the Celery worker without waiting for it.

        If the task cannot be queued the job is marked failed so that it does
        not sit in pending forever.
        """
        from mla_office.exports.tasks import process_export_job

        try:
            task = process_export_job.delay(export_id)
        except Exception as e:
            logger.error("Failed to queue export job", export_id=export_id, error=str(e), exc_info=True)
            self.mark_failed(export_id, f"Failed to schedule export: {e}")
            return

        # The worker records the task id itself; by now it may already have
        # finished the job.
        logger.info("Triggered Celery task for export job", export_id=export_id, task_id=task.id)

    def process_export(
        self,
        export_id: str,
        now: Optional[datetime] = None,
        task_id: Optional[str] = None,
    ) -> ExportJob:
        """
        Run the full pipeline for one job and return the completed job.

        `task_id` is stored on the job along with the move to processing.
        Exceptions propagate to the caller, which is expected to record them
        with `mark_failed`.
        """
        job = self.repo.update_progress(
            export_id,
            status=ExportStatus.PROCESSING,
            progress=0,
            celery_task_id=task_id,
        )
        filters = dict(job.filters or {})
        export_type = job.type
        export_format = job.format

        logger.info(
            "Starting export job",
            export_id=export_id,
            export_type=export_type,
            format=export_format.value,
        )

        total_records = self.voter_repo.count_for_export(filters)
        self.repo.update_progress(export_id, total_records=total_records, progress=5)

        records = self.voter_repo.get_for_export(filters)
        self.repo.update_progress(export_id, progress=20, processed_records=0)

        columns = resolve_columns(selected_columns_from_filters(filters))
        column_keys = [column.key for column in columns]

        related = {}
        if should_expand(column_keys):
            related = self.voter_repo.get_mobile_numbers_by_epic_numbers(
                record[RECORD_KEY] for record in records
            )
        rows = expand_rows(records, related, column_keys)
        self.repo.update_progress(export_id, progress=30, processed_records=0)

        generated_at = now or datetime.now()
        artifact = encode_export(export_format, rows, columns, filters, generated_at)
        file_name = build_file_name(export_type, artifact.extension, generated_at)
        self.repo.update_progress(export_id, progress=70, processed_records=len(rows))

        published = self.publisher.publish(file_name, artifact)

        job = self.repo.update_progress(
            export_id,
            status=ExportStatus.COMPLETED,
            progress=100,
            processed_records=len(rows),
            file_url=published.url,
            file_name=published.file_name,
            file_size_kb=published.file_size_kb,
        )
        logger.info(
            "Export job completed",
            export_id=export_id,
            records=total_records,
            rows=len(rows),
            file_name=published.file_name,
            file_size_kb=published.file_size_kb,
        )
        return job

    def mark_failed(self, export_id: str, error_message: Optional[str]) -> Optional[ExportJob]:
        """
        Move a job to failed, keeping its last progress value.

        Never raises: this is the last step of a background run and nothing
        above it could handle the error.
        """
        self.db.rollback()
        try:
            return self.repo.update_progress(
                export_id,
                status=ExportStatus.FAILED,
                error_message=error_message or UNKNOWN_ERROR_MESSAGE,
            )
        except (ExportJobNotFoundError, InvalidExportTransitionError) as e:
            logger.warning("Export job not marked failed", export_id=export_id, reason=str(e))
        except Exception as e:
            logger.error("Failed to update export job status", export_id=export_id, error=str(e), exc_info=True)
            self.db.rollback()
        return None
