"""
Records exchanged with storage backends.

Backends persist these however they like (SQL rows, dicts); the rest of the
package only sees these pydantic models.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemaai.validation.report import ValidationReport

GENERATE_TASK = "generate"


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"


ACTIVE_STATUSES = (JobStatus.PENDING, JobStatus.RUNNING)


class Job(BaseModel):
    """
    One generation job for a content item at a given content hash.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Autoincrement job id; FIFO order")
    content_id: int
    task: str = GENERATE_TASK
    status: JobStatus = JobStatus.PENDING
    attempts: int = 0
    max_attempts: int = 3
    content_hash: str = Field(description="md5 of title, body and modified time at enqueue")
    last_error: str = ""
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


class SchemaState(BaseModel):
    """
    Derived schema data for one content item.

    `template_id` and `reviewed_type` are editor overrides and survive a
    clear; everything in `DERIVED_FIELDS` is regenerated.
    """

    model_config = ConfigDict(from_attributes=True)

    content_id: int
    live_json: str = Field(default="", description="Published JSON-LD document")
    draft_json: str = Field(default="", description="Last rejected document, kept for inspection")
    validation: Optional[ValidationReport] = None
    last_error: str = ""
    generated_at: Optional[datetime] = None
    template_id: str = Field(default="", description="Forced primary type; empty means Auto")
    reviewed_type: str = Field(default="", description="Forced reviewed-item type for reviews")
    schema_type: str = Field(default="", description="Primary type of the live document")
    justification: str = ""
    summary: str = ""
    missing_info: list[str] = Field(default_factory=list)
    last_content_hash: str = Field(default="", description="Hash of the content last generated successfully")

    @property
    def has_live(self) -> bool:
        return bool(self.live_json.strip())


DERIVED_FIELDS = (
    "live_json",
    "draft_json",
    "validation",
    "last_error",
    "generated_at",
    "schema_type",
    "justification",
    "summary",
    "missing_info",
)

SCHEMA_STATE_FIELDS = frozenset(SchemaState.model_fields) - {"content_id"}

JOB_UPDATE_FIELDS = frozenset(
    {"status", "attempts", "last_error", "started_at", "completed_at", "updated_at"}
)
