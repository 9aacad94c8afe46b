"""Asynchronous remote job data model."""

from enum import Enum

from pydantic import BaseModel, Field


class JobState(str, Enum):
    """Coarse job state derived from the remote status string."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class AsyncJob(BaseModel):
    """Outcome of waiting on a remote job."""

    job_id: str = Field(..., description="Remote job identifier")
    state: JobState = Field(..., description="Terminal or last observed state")
    remote_status: str | None = Field(None, description="Status string reported by the API")
    fail_reason: str | None = Field(None, description="Failure reason reported by the API")
    polls: int = Field(0, ge=0, description="Number of status queries issued")
    elapsed_seconds: float = Field(0.0, ge=0.0, description="Time spent waiting")
