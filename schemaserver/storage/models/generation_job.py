"""
Generation job rows: one per (content, content hash) generation request.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Text
from sqlmodel import Field, SQLModel


class GenerationJob(SQLModel, table=True):
    """
    A single schema generation job (pending, running, complete, or failed).
    """

    __tablename__ = "generation_jobs"

    id: Optional[int] = Field(default=None, primary_key=True)
    content_id: int = Field(index=True, description="CMS content id")
    task: str = Field(default="generate", max_length=50)
    status: str = Field(default="pending", index=True, description="pending | running | complete | failed")
    attempts: int = Field(default=0)
    max_attempts: int = Field(default=3)
    content_hash: str = Field(default="", index=True, max_length=32)
    last_error: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: datetime = Field(description="When the job was created")
    updated_at: datetime = Field(description="Last status change")
    started_at: Optional[datetime] = Field(default=None, description="When the job was last claimed")
    completed_at: Optional[datetime] = Field(default=None, description="When the job completed")
