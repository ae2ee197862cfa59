# mla_office/exports/models.py

"""
Database models for tracking async export jobs.

Stores export job metadata, progress, status, and file locations.
"""

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from mla_office.core.db import Base


class ExportStatus(str, PyEnum):
    """Export job status enumeration"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ExportStatus.COMPLETED, ExportStatus.FAILED)


# Position of each status in the only allowed order of progression
STATUS_ORDER = {
    ExportStatus.PENDING: 0,
    ExportStatus.PROCESSING: 1,
    ExportStatus.COMPLETED: 2,
    ExportStatus.FAILED: 2,
}


class ExportFormat(str, PyEnum):
    """Export file format enumeration ("pdf" produces a printable HTML report)"""
    CSV = "csv"
    EXCEL = "excel"
    PDF = "pdf"


class ExportJob(Base):
    """
    Model for tracking async export jobs.

    Stores all metadata about an export request including filters,
    progress, status, and location of the generated file.
    """
    __tablename__ = "export_jobs"

    # Primary Key
    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    # Export Configuration
    type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
        comment="Export category (voters, visitors, register, ...)"
    )

    format: Mapped[ExportFormat] = mapped_column(
        Enum(ExportFormat, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        comment="Export file format (csv, excel, pdf)"
    )

    # Job Status
    status: Mapped[ExportStatus] = mapped_column(
        Enum(ExportStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ExportStatus.PENDING,
        index=True,
        comment="Current status of export job"
    )

    progress: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Progress percentage (0-100)"
    )

    total_records: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Number of source records matching the filters"
    )

    processed_records: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Number of rows written to the export file"
    )

    # Celery Task Tracking
    celery_task_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        index=True,
        comment="Celery task ID for tracking background job"
    )

    # Filter Parameters (stored as JSON, passed through untouched)
    filters: Mapped[Optional[dict]] = mapped_column(
        JSON,
        nullable=True,
        comment="JSON object containing all filter parameters applied"
    )

    # Results
    file_url: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        comment="Public URL of the generated export file"
    )

    file_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Generated filename"
    )

    file_size_kb: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Size of the generated file in KB"
    )

    # Error Handling
    error_message: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Error details if export failed"
    )

    # User Tracking
    created_by: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", name="fk_export_jobs_created_by"),
        nullable=False,
        index=True,
        comment="User who requested the export"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        index=True,
        comment="When export was requested"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        comment="Last write to this job"
    )

    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        nullable=True,
        comment="When export finished (success or failure)"
    )

    def __repr__(self):
        return (
            f"<ExportJob(id={self.id}, type={self.type}, "
            f"format={self.format}, status={self.status}, progress={self.progress})>"
        )
