"""
Pydantic schemas for export API requests and responses.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from mla_office.exports.models import ExportFormat, ExportStatus


class ExportRequest(BaseModel):
    """Request schema for creating an export job"""

    type: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Export category, e.g. voters"
    )

    format: ExportFormat = Field(
        ...,
        description="Export format (csv, excel, pdf)"
    )

    filters: Optional[Dict[str, Any]] = Field(
        default_factory=dict,
        description="Filter parameters passed through to the data query, plus selectedColumns"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "voters",
                "format": "csv",
                "filters": {
                    "partNo": "12",
                    "gender": "F",
                    "selectedColumns": ["epicNumber", "fullName", "mobileNumber"]
                }
            }
        }
    )

    @field_validator("type")
    @classmethod
    def strip_type(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("type must not be blank")
        return value

    @field_validator("filters")
    @classmethod
    def default_filters(cls, value: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        return value or {}


class ExportJobResponse(BaseModel):
    """Export job as returned to clients (camelCase keys)"""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(..., description="Export job ID")
    type: str = Field(..., description="Export category")
    format: ExportFormat = Field(..., description="Export format")
    status: ExportStatus = Field(..., description="Current status")
    progress: int = Field(..., ge=0, le=100, description="Progress percentage (0-100)")
    total_records: Optional[int] = Field(None, description="Records matching the filters")
    processed_records: Optional[int] = Field(None, description="Rows written to the file")
    filters: Optional[Dict[str, Any]] = Field(None, description="Filters the export was requested with")
    file_url: Optional[str] = Field(None, description="Download URL (when completed)")
    file_name: Optional[str] = Field(None, description="Generated filename")
    file_size_kb: Optional[int] = Field(None, description="File size in KB")
    error_message: Optional[str] = Field(None, description="Error details (if failed)")
    created_by: str = Field(..., description="User ID who created export")
    created_at: datetime = Field(..., description="When export was requested")
    updated_at: datetime = Field(..., description="Last update")
    completed_at: Optional[datetime] = Field(None, description="When export finished")
