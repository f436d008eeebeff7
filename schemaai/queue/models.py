"""
Queue reporting models.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from schemaai.storage.models import Job, JobStatus


class FailedJobSummary(BaseModel):
    content_id: int
    last_error: str
    updated_at: datetime

    @classmethod
    def from_job(cls, job: Job) -> "FailedJobSummary":
        return cls(content_id=job.content_id, last_error=job.last_error, updated_at=job.updated_at)


class QueueStats(BaseModel):
    """
    Snapshot of the job table for the admin dashboard.
    """

    counts: dict[str, int] = Field(
        default_factory=lambda: {status.value: 0 for status in JobStatus},
        description="Number of jobs per status",
    )
    last_failed: Optional[FailedJobSummary] = Field(default=None, description="Most recently updated failed job")


class RunResult(BaseModel):
    """
    Outcome of one drain run.
    """

    locked: bool = Field(default=False, description="True when another run held the lock and nothing was done")
    processed: int = 0
    completed: int = 0
    failed: int = 0
