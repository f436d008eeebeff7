"""
SQLModel schemas for database persistence.
"""

from .content_item import ContentItem
from .content_schema_state import ContentSchemaState
from .generation_job import GenerationJob
from .run_lease import RunLease

__all__ = ["ContentItem", "ContentSchemaState", "GenerationJob", "RunLease"]
