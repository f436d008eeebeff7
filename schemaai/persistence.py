"""Draft/live persistence of generated documents.

A document only becomes live after it parses and validates without errors.
Anything else is kept as a draft with the reason in `last_error`, and the
previous live document stays untouched.
"""

import json
import logging
from enum import Enum
from typing import Optional, Sequence

from pydantic import BaseModel, computed_field

from schemaai.clock import Clock, SystemClock
from schemaai.storage.interfaces import SchemaStoreInterface
from schemaai.text import strip_tags
from schemaai.validation.report import ValidationReport
from schemaai.validation.validator import SchemaValidator

logger = logging.getLogger(__name__)


class SaveStatus(str, Enum):
    CLEARED = "cleared"
    INVALID_JSON = "invalid_json"
    REJECTED = "rejected"
    LIVE = "live"


class SaveOutcome(BaseModel):
    status: SaveStatus
    report: Optional[ValidationReport] = None
    error: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def saved(self) -> bool:
        return self.status in (SaveStatus.CLEARED, SaveStatus.LIVE)


class PersistenceGateway:
    def __init__(self, schema_store: SchemaStoreInterface, validator: SchemaValidator, clock: Optional[Clock] = None):
        self.schema_store = schema_store
        self.validator = validator
        self.clock = clock or SystemClock()

    def save(
        self,
        content_id: int,
        json_text: str,
        schema_type: str = "",
        justification: str = "",
        summary: str = "",
        missing_info: Sequence[str] = (),
    ) -> bool:
        """Returns True when the document was published or explicitly cleared."""
        return self.store(content_id, json_text, schema_type, justification, summary, missing_info).saved

    def store(
        self,
        content_id: int,
        json_text: str,
        schema_type: str = "",
        justification: str = "",
        summary: str = "",
        missing_info: Sequence[str] = (),
    ) -> SaveOutcome:
        json_text = json_text.strip()
        if not json_text:
            self.schema_store.clear(content_id)
            logger.info("Cleared schema for content %s", content_id)
            return SaveOutcome(status=SaveStatus.CLEARED)

        try:
            decoded = json.loads(json_text)
        except json.JSONDecodeError as exc:
            error = f"Invalid JSON: {exc.msg}"
        else:
            error = "" if isinstance(decoded, dict) else "Invalid JSON: expected an object"

        if error:
            self.schema_store.update(
                content_id, draft_json=json_text, validation=None, missing_info=[], last_error=error
            )
            logger.warning("Content %s: %s", content_id, error)
            return SaveOutcome(status=SaveStatus.INVALID_JSON, error=error)

        report = self.validator.validate_document(decoded)
        if report.errors:
            error = f"Schema validation failed: {report.summary}"
            self.schema_store.update(content_id, validation=report, draft_json=json_text, last_error=error)
            logger.warning("Content %s kept as draft: %s", content_id, report.summary)
            return SaveOutcome(status=SaveStatus.REJECTED, report=report, error=error)

        fields = {
            "validation": report,
            "live_json": json_text,
            "draft_json": "",
            "last_error": "",
            "generated_at": self.clock.now(),
            "missing_info": [strip_tags(item) for item in missing_info if strip_tags(item)],
        }
        if schema_type:
            fields["schema_type"] = strip_tags(schema_type)
        if justification:
            fields["justification"] = strip_tags(justification)
        if summary:
            fields["summary"] = strip_tags(summary)
        self.schema_store.update(content_id, **fields)
        logger.info("Content %s published (%s)", content_id, report.summary)
        return SaveOutcome(status=SaveStatus.LIVE, report=report)
