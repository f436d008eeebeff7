"""
Derived schema state per content item.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Text
from sqlmodel import Field, SQLModel


class ContentSchemaState(SQLModel, table=True):
    """
    Live and draft JSON-LD plus generation metadata for one content item.
    The validation report and missing-info list are stored as JSON text.
    """

    __tablename__ = "content_schema_state"

    content_id: int = Field(primary_key=True, sa_column_kwargs={"autoincrement": False})
    live_json: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    draft_json: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    validation_json: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    last_error: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    generated_at: Optional[datetime] = Field(default=None)
    template_id: str = Field(default="")
    reviewed_type: str = Field(default="")
    schema_type: str = Field(default="")
    justification: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    summary: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    missing_info_json: str = Field(default="[]", sa_column=Column(Text, nullable=False, default="[]"))
    last_content_hash: str = Field(default="", max_length=32)
