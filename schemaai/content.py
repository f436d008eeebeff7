"""The content record boundary.

The CMS owns its posts and pages; this module only describes the slice of a
record that schema generation reads, plus the interface a content store must
offer. Records are immutable snapshots: the scheduler loads one per job and
hands it to the classifier request and the graph builder.
"""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUPPORTED_KINDS = ("post", "page")
PUBLISHED_STATUSES = ("publish", "future", "private")


class Author(BaseModel):
    model_config = ConfigDict(frozen=True)

    author_id: int = 0
    display_name: str = ""
    url: str = Field(default="", description="Author archive URL")
    avatar_url: Optional[str] = None


class ContentRecord(BaseModel):
    """A post or page as seen by the generator."""

    model_config = ConfigDict(frozen=True)

    content_id: int = Field(description="CMS primary key")
    kind: str = Field(default="post", description="post | page | anything else the CMS stores")
    status: str = Field(default="publish", description="CMS publication status")
    title: str = ""
    body: str = Field(default="", description="Raw HTML body")
    excerpt: str = ""
    permalink: str = ""
    published_at: datetime
    modified_at: datetime
    author: Author = Field(default_factory=Author)
    featured_image_url: Optional[str] = None
    is_front_page: bool = False
    is_revision: bool = False

    @field_validator("published_at", "modified_at")
    @classmethod
    def timestamps_must_be_timezone_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError("content timestamps must be timezone-aware")
        return value

    @property
    def is_supported_kind(self) -> bool:
        return self.kind in SUPPORTED_KINDS

    @property
    def is_published(self) -> bool:
        return self.status in PUBLISHED_STATUSES


def compute_content_hash(record: ContentRecord) -> str:
    """Fingerprint of title, body and GMT modification time."""
    modified_gmt = record.modified_at.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
    raw = f"{record.title}||{record.body}||{modified_gmt}"
    return hashlib.md5(raw.encode("utf-8")).hexdigest()


class ContentStoreInterface(ABC):
    """Access to the mirrored CMS content store."""

    @abstractmethod
    def put(self, record: ContentRecord) -> None:
        """Insert or replace a record, as pushed by the CMS on save."""

    @abstractmethod
    def get(self, content_id: int) -> ContentRecord | None:
        """Return the record, or None if it does not exist."""

    @abstractmethod
    def list_ids(
        self,
        kinds: Sequence[str] = SUPPORTED_KINDS,
        statuses: Sequence[str] = PUBLISHED_STATUSES,
        limit: int = 500,
    ) -> list[int]:
        """Return ids of matching records, newest first."""
