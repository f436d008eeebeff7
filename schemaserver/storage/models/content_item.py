"""
Local mirror of CMS content records.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Text
from sqlmodel import Field, SQLModel


class ContentItem(SQLModel, table=True):
    """
    One post or page as last pushed by the CMS.
    """

    __tablename__ = "content_items"

    content_id: int = Field(primary_key=True, sa_column_kwargs={"autoincrement": False})
    kind: str = Field(default="post", index=True)
    status: str = Field(default="publish", index=True)
    title: str = Field(default="")
    body: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    excerpt: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    permalink: str = Field(description="Canonical URL")
    published_at: datetime = Field(index=True)
    modified_at: datetime = Field()
    author_id: int = Field(default=0)
    author_name: str = Field(default="")
    author_url: str = Field(default="")
    author_avatar_url: Optional[str] = Field(default=None)
    featured_image_url: Optional[str] = Field(default=None)
    is_front_page: bool = Field(default=False)
    is_revision: bool = Field(default=False)
