### mla_office/exports/router.py

"""
Export API Endpoints

Provides REST API for creating and monitoring exports. Clients poll the job
until it is completed or failed; the download URL is on the job.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from mla_office.core.config import settings
from mla_office.core.db import get_db
from mla_office.exports.exceptions import ExportError
from mla_office.exports.schemas import ExportJobResponse, ExportRequest
from mla_office.exports.services import ExportService
from mla_office.users.models import User
from mla_office.users.utils import require_module_access
from mla_office.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/exports", tags=["Exports"])

require_export_access = require_module_access(settings.export_module_key)


def get_export_service(db: Session = Depends(get_db)) -> ExportService:
    """Provides an instance of ExportService with the current DB session."""
    return ExportService(db)


@router.post("", response_model=ExportJobResponse, status_code=status.HTTP_201_CREATED)
def request_export(
    export_request: ExportRequest,
    export_service: ExportService = Depends(get_export_service),
    current_user: User = Depends(require_export_access),
):
    """
    Create a new export job and trigger background processing.

    Returns the pending job immediately. Poll `GET /exports/{id}` (or the
    list endpoint) to follow progress.

    **Supported Formats:**
    - csv
    - excel (CSV with a UTF-8 byte order mark)
    - pdf (printable HTML report)
    """
    try:
        export_job = export_service.create_export_job(export_request, current_user.id)
        response = ExportJobResponse.model_validate(export_job)
    except ExportError as e:
        logger.warning("Business logic error in request_export: %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except Exception as e:
        logger.error("Error creating export job: %s", e, exc_info=True)
        export_service.db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create export job"
        ) from e

    export_service.schedule_export(export_job.id)
    return response


@router.get("", response_model=List[ExportJobResponse])
def list_my_exports(
    limit: int = Query(
        settings.export_list_default_limit,
        ge=1,
        description="Number of jobs to return"
    ),
    export_service: ExportService = Depends(get_export_service),
    current_user: User = Depends(require_export_access),
):
    """
    List the most recent export jobs of the current user, newest first.
    """
    try:
        jobs = export_service.repo.list_by_user(current_user.id, limit=limit)
    except Exception as e:
        logger.error("Error fetching export jobs: %s", e, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch export jobs"
        ) from e
    return [ExportJobResponse.model_validate(job) for job in jobs]


@router.get("/{export_id}", response_model=ExportJobResponse)
def get_export_status(
    export_id: str,
    export_service: ExportService = Depends(get_export_service),
    current_user: User = Depends(require_export_access),
):
    """
    Check the status of an export job.

    **Status Values:**
    - pending: Export job created, waiting to start
    - processing: Export is being generated (see progress)
    - completed: Export ready, fileUrl is set
    - failed: Export failed (see errorMessage)
    """
    export_job = export_service.repo.get_by_id(export_id)

    if not export_job:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Export job not found"
        )

    if export_job.created_by != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied"
        )

    return ExportJobResponse.model_validate(export_job)
