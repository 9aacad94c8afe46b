"""Audit log data models."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_serializer


class AuditStatus(str, Enum):
    """Status of an audit log entry."""

    SUCCESS = "success"
    FAILURE = "failure"


class AuditLogEntry(BaseModel):
    """One recorded lifecycle operation."""

    id: int | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    resource_type: str
    operation: str
    resource_id: str = ""
    parameters: dict
    status: AuditStatus
    error_message: str | None = None
    execution_time_ms: float | None = None
    correlation_id: str | None = None

    @field_serializer("timestamp")
    def serialize_timestamp(self, timestamp: datetime) -> str:
        return timestamp.isoformat()
