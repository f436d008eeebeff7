"""
SQL implementation of the schemaai storage interfaces.

One `SQLStorage` owns an engine and exposes four stores over it. Every
operation opens its own short session, so the drain worker and request
handlers can share the storage object. Job claim and lease acquisition are
single conditional statements; their row counts decide the outcome.
"""

import json
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence

from sqlalchemy import delete, func, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, SQLModel, select

from schemaai.content import (
    PUBLISHED_STATUSES,
    SUPPORTED_KINDS,
    Author,
    ContentRecord,
    ContentStoreInterface,
)
from schemaai.storage.interfaces import JobStoreInterface, RunLockInterface, SchemaStoreInterface
from schemaai.storage.models import (
    DERIVED_FIELDS,
    JOB_UPDATE_FIELDS,
    SCHEMA_STATE_FIELDS,
    Job,
    JobStatus,
    SchemaState,
)
from schemaai.validation.report import ValidationReport
from schemaserver.storage.models import ContentItem, ContentSchemaState, GenerationJob, RunLease

logger = logging.getLogger(__name__)


def _to_db(value: Optional[datetime]) -> Optional[datetime]:
    """Aware UTC. Naive input is taken to be UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _from_db(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _job_from_row(row: GenerationJob) -> Job:
    return Job(
        id=row.id,
        content_id=row.content_id,
        task=row.task,
        status=JobStatus(row.status),
        attempts=row.attempts,
        max_attempts=row.max_attempts,
        content_hash=row.content_hash,
        last_error=row.last_error or "",
        created_at=_from_db(row.created_at),
        updated_at=_from_db(row.updated_at),
        started_at=_from_db(row.started_at),
        completed_at=_from_db(row.completed_at),
    )


class SQLJobStore(JobStoreInterface):
    def __init__(self, engine: Engine):
        self.engine = engine

    def create(self, content_id: int, content_hash: str, max_attempts: int, now: datetime) -> Job:
        row = GenerationJob(
            content_id=content_id,
            content_hash=content_hash,
            max_attempts=max_attempts,
            created_at=_to_db(now),
            updated_at=_to_db(now),
        )
        with Session(self.engine) as session:
            session.add(row)
            session.commit()
            session.refresh(row)
            return _job_from_row(row)

    def get(self, job_id: int) -> Optional[Job]:
        with Session(self.engine) as session:
            row = session.get(GenerationJob, job_id)
            return _job_from_row(row) if row else None

    def find_active(self, content_id: int, content_hash: str) -> Optional[Job]:
        statement = (
            select(GenerationJob)
            .where(GenerationJob.content_id == content_id)
            .where(GenerationJob.content_hash == content_hash)
            .where(GenerationJob.status.in_([JobStatus.PENDING.value, JobStatus.RUNNING.value]))  # type: ignore[attr-defined]
            .limit(1)
        )
        with Session(self.engine) as session:
            row = session.exec(statement).first()
            return _job_from_row(row) if row else None

    def list_pending(self, limit: int) -> Sequence[Job]:
        statement = (
            select(GenerationJob)
            .where(GenerationJob.status == JobStatus.PENDING.value)
            .order_by(GenerationJob.id)
            .limit(limit)
        )
        with Session(self.engine) as session:
            return [_job_from_row(row) for row in session.exec(statement).all()]

    def claim(self, job_id: int, now: datetime) -> bool:
        statement = (
            update(GenerationJob)
            .where(GenerationJob.id == job_id)
            .where(GenerationJob.status == JobStatus.PENDING.value)
            .values(status=JobStatus.RUNNING.value, started_at=_to_db(now), updated_at=_to_db(now))
        )
        with Session(self.engine) as session:
            result = session.execute(statement)
            session.commit()
            return result.rowcount == 1

    def update(self, job_id: int, **fields: Any) -> Optional[Job]:
        unknown = set(fields) - JOB_UPDATE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update job fields: {sorted(unknown)}")
        with Session(self.engine) as session:
            row = session.get(GenerationJob, job_id)
            if row is None:
                return None
            for key, value in fields.items():
                if isinstance(value, JobStatus):
                    value = value.value
                elif isinstance(value, datetime):
                    value = _to_db(value)
                setattr(row, key, value)
            session.add(row)
            session.commit()
            session.refresh(row)
            return _job_from_row(row)

    def count_by_status(self) -> dict[str, int]:
        counts = {status.value: 0 for status in JobStatus}
        statement = select(GenerationJob.status, func.count(GenerationJob.id)).group_by(GenerationJob.status)  # type: ignore[arg-type] # pylint: disable=not-callable
        with Session(self.engine) as session:
            for status, count in session.exec(statement).all():
                counts[status] = count
        return counts

    def last_failed(self) -> Optional[Job]:
        statement = (
            select(GenerationJob)
            .where(GenerationJob.status == JobStatus.FAILED.value)
            .order_by(GenerationJob.updated_at.desc(), GenerationJob.id.desc())  # type: ignore[attr-defined,union-attr]
            .limit(1)
        )
        with Session(self.engine) as session:
            row = session.exec(statement).first()
            return _job_from_row(row) if row else None

    def list_stale_running(self, started_before: datetime) -> Sequence[Job]:
        statement = (
            select(GenerationJob)
            .where(GenerationJob.status == JobStatus.RUNNING.value)
            .where(GenerationJob.started_at < _to_db(started_before))  # type: ignore[operator]
            .order_by(GenerationJob.id)
        )
        with Session(self.engine) as session:
            return [_job_from_row(row) for row in session.exec(statement).all()]


class SQLSchemaStore(SchemaStoreInterface):
    def __init__(self, engine: Engine):
        self.engine = engine

    @staticmethod
    def _state_from_row(row: ContentSchemaState) -> SchemaState:
        validation = None
        if row.validation_json:
            validation = ValidationReport.model_validate_json(row.validation_json)
        return SchemaState(
            content_id=row.content_id,
            live_json=row.live_json or "",
            draft_json=row.draft_json or "",
            validation=validation,
            last_error=row.last_error or "",
            generated_at=_from_db(row.generated_at),
            template_id=row.template_id or "",
            reviewed_type=row.reviewed_type or "",
            schema_type=row.schema_type or "",
            justification=row.justification or "",
            summary=row.summary or "",
            missing_info=json.loads(row.missing_info_json or "[]"),
            last_content_hash=row.last_content_hash or "",
        )

    @staticmethod
    def _apply(row: ContentSchemaState, state: SchemaState) -> None:
        row.live_json = state.live_json
        row.draft_json = state.draft_json
        row.validation_json = state.validation.model_dump_json() if state.validation else None
        row.last_error = state.last_error
        row.generated_at = _to_db(state.generated_at)
        row.template_id = state.template_id
        row.reviewed_type = state.reviewed_type
        row.schema_type = state.schema_type
        row.justification = state.justification
        row.summary = state.summary
        row.missing_info_json = json.dumps(state.missing_info, ensure_ascii=False)
        row.last_content_hash = state.last_content_hash

    def get(self, content_id: int) -> SchemaState:
        with Session(self.engine) as session:
            row = session.get(ContentSchemaState, content_id)
            return self._state_from_row(row) if row else SchemaState(content_id=content_id)

    def update(self, content_id: int, **fields: Any) -> SchemaState:
        unknown = set(fields) - SCHEMA_STATE_FIELDS
        if unknown:
            raise ValueError(f"Unknown schema state fields: {sorted(unknown)}")
        with Session(self.engine) as session:
            row = session.get(ContentSchemaState, content_id)
            if row is None:
                row = ContentSchemaState(content_id=content_id)
                current = SchemaState(content_id=content_id)
            else:
                current = self._state_from_row(row)
            state = current.model_copy(update=fields)
            state = SchemaState.model_validate(state.model_dump())
            self._apply(row, state)
            session.add(row)
            session.commit()
            return state

    def clear(self, content_id: int) -> None:
        defaults = SchemaState(content_id=content_id)
        self.update(content_id, **{name: getattr(defaults, name) for name in DERIVED_FIELDS})

    def has_live(self, content_id: int) -> bool:
        statement = select(ContentSchemaState.live_json).where(ContentSchemaState.content_id == content_id)
        with Session(self.engine) as session:
            live = session.exec(statement).first()
        return bool(live and live.strip())


class SQLRunLock(RunLockInterface):
    def __init__(self, engine: Engine):
        self.engine = engine

    def acquire(self, key: str, ttl_seconds: int, now: datetime) -> Optional[str]:
        token = uuid.uuid4().hex
        expires_at = _to_db(now + timedelta(seconds=ttl_seconds))
        take_expired = (
            update(RunLease)
            .where(RunLease.key == key)
            .where(RunLease.expires_at <= _to_db(now))  # type: ignore[operator]
            .values(token=token, expires_at=expires_at)
        )
        with Session(self.engine) as session:
            if session.execute(take_expired).rowcount == 1:
                session.commit()
                return token
            session.add(RunLease(key=key, token=token, expires_at=expires_at))
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                return None
        return token

    def renew(self, key: str, token: str, ttl_seconds: int, now: datetime) -> bool:
        statement = (
            update(RunLease)
            .where(RunLease.key == key)
            .where(RunLease.token == token)
            .values(expires_at=_to_db(now + timedelta(seconds=ttl_seconds)))
        )
        with Session(self.engine) as session:
            renewed = session.execute(statement).rowcount == 1
            session.commit()
        return renewed

    def release(self, key: str, token: str) -> None:
        statement = delete(RunLease).where(RunLease.key == key).where(RunLease.token == token)  # type: ignore[arg-type]
        with Session(self.engine) as session:
            session.execute(statement)
            session.commit()


class SQLContentStore(ContentStoreInterface):
    def __init__(self, engine: Engine):
        self.engine = engine

    @staticmethod
    def _record_from_row(row: ContentItem) -> ContentRecord:
        return ContentRecord(
            content_id=row.content_id,
            kind=row.kind,
            status=row.status,
            title=row.title,
            body=row.body,
            excerpt=row.excerpt,
            permalink=row.permalink,
            published_at=_from_db(row.published_at),
            modified_at=_from_db(row.modified_at),
            author=Author(
                author_id=row.author_id,
                display_name=row.author_name,
                url=row.author_url,
                avatar_url=row.author_avatar_url,
            ),
            featured_image_url=row.featured_image_url,
            is_front_page=row.is_front_page,
            is_revision=row.is_revision,
        )

    def put(self, record: ContentRecord) -> None:
        with Session(self.engine) as session:
            row = session.get(ContentItem, record.content_id) or ContentItem(
                content_id=record.content_id,
                permalink=record.permalink,
                published_at=_to_db(record.published_at),
                modified_at=_to_db(record.modified_at),
            )
            row.kind = record.kind
            row.status = record.status
            row.title = record.title
            row.body = record.body
            row.excerpt = record.excerpt
            row.permalink = record.permalink
            row.published_at = _to_db(record.published_at)
            row.modified_at = _to_db(record.modified_at)
            row.author_id = record.author.author_id
            row.author_name = record.author.display_name
            row.author_url = record.author.url
            row.author_avatar_url = record.author.avatar_url
            row.featured_image_url = record.featured_image_url
            row.is_front_page = record.is_front_page
            row.is_revision = record.is_revision
            session.add(row)
            session.commit()

    def get(self, content_id: int) -> Optional[ContentRecord]:
        with Session(self.engine) as session:
            row = session.get(ContentItem, content_id)
            return self._record_from_row(row) if row else None

    def list_ids(
        self,
        kinds: Sequence[str] = SUPPORTED_KINDS,
        statuses: Sequence[str] = PUBLISHED_STATUSES,
        limit: int = 500,
    ) -> list[int]:
        statement = (
            select(ContentItem.content_id)
            .where(ContentItem.kind.in_(list(kinds)))  # type: ignore[attr-defined]
            .where(ContentItem.status.in_(list(statuses)))  # type: ignore[attr-defined]
            .where(ContentItem.is_revision == False)  # noqa: E712
            .order_by(ContentItem.published_at.desc(), ContentItem.content_id.desc())  # type: ignore[attr-defined,union-attr]
            .limit(limit)
        )
        with Session(self.engine) as session:
            return list(session.exec(statement).all())


class SQLStorage:
    """
    All schemaai stores over one engine. Tables are created on construction.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        SQLModel.metadata.create_all(self.engine)
        self.jobs = SQLJobStore(engine)
        self.schemas = SQLSchemaStore(engine)
        self.run_lock = SQLRunLock(engine)
        self.content = SQLContentStore(engine)
        logger.info("SQL storage ready on %s", engine.url.render_as_string(hide_password=True))
