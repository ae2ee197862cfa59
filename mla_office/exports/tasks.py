"""
Celery Tasks for Async Export Processing

These tasks handle the actual export generation in the background,
freeing up the API to return immediately to the user. The outcome is only
ever reported through the export job row.
"""

from celery import shared_task
from celery.exceptions import SoftTimeLimitExceeded, TimeLimitExceeded
from celery.signals import task_failure

from mla_office.core.config import settings
from mla_office.core.db import SessionLocal
from mla_office.exports.services import ExportService
from mla_office.utils.logger import get_logger

logger = get_logger(__name__)

TIMEOUT_ERROR_MESSAGE = "Export timed out"


@shared_task(
    name="exports.process_export_job",
    bind=True,
    soft_time_limit=settings.export_soft_time_limit,
    time_limit=settings.export_time_limit,
)
def process_export_job(self, export_id: str):
    """
    Celery task to generate an export file asynchronously.

    This task:
    1. Marks the job as processing
    2. Counts and fetches the matching voters
    3. Expands voters by mobile number when those columns are exported
    4. Encodes and uploads the file
    5. Records the result, or the failure, on the job

    Errors are recorded on the job and never re-raised, so a failed export
    does not surface as a failed Celery task.

    Args:
        export_id: ID of ExportJob to process

    Returns:
        dict: Result summary
    """
    db = SessionLocal()
    service = ExportService(db)

    try:
        job = service.process_export(export_id, task_id=self.request.id)
        return {
            "status": "success",
            "export_id": export_id,
            "record_count": job.processed_records,
            "file_url": job.file_url,
        }

    except SoftTimeLimitExceeded:
        logger.error("Export job exceeded its time limit", export_id=export_id)
        service.mark_failed(export_id, TIMEOUT_ERROR_MESSAGE)
        return {"status": "failed", "export_id": export_id, "message": TIMEOUT_ERROR_MESSAGE}

    except Exception as e:
        logger.error(f"Error in process_export_job for job {export_id}: {e}", exc_info=True)
        service.mark_failed(export_id, str(e))
        return {"status": "failed", "export_id": export_id, "message": str(e)}

    finally:
        db.close()


@task_failure.connect
def mark_export_failed_on_task_failure(sender=None, task_id=None, exception=None, args=None, **kwargs):
    """
    Fail the job when the task dies without reaching its own error handling.

    `process_export_job` catches everything it can, so this only fires for
    the hard time limit or a lost worker process. It runs in the worker's
    parent process, which survives the killed child.
    """
    if getattr(sender, "name", None) != process_export_job.name or not args:
        return

    export_id = args[0]
    if isinstance(exception, TimeLimitExceeded):
        message = TIMEOUT_ERROR_MESSAGE
    else:
        message = str(exception)
    logger.error("Export task died", export_id=export_id, task_id=task_id, error=repr(exception))

    db = SessionLocal()
    try:
        ExportService(db).mark_failed(export_id, message)
    finally:
        db.close()
