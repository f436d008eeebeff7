"""
In-memory storage implementations, for tests and local development.

All stores guard their dicts with a lock so check-and-set operations (job
claim, lease acquisition) are atomic across threads.
"""

import threading
import uuid
from datetime import datetime, timedelta
from typing import Any, Optional, Sequence

from schemaai.content import (
    PUBLISHED_STATUSES,
    SUPPORTED_KINDS,
    ContentRecord,
    ContentStoreInterface,
)
from schemaai.storage.interfaces import JobStoreInterface, RunLockInterface, SchemaStoreInterface
from schemaai.storage.models import (
    ACTIVE_STATUSES,
    DERIVED_FIELDS,
    JOB_UPDATE_FIELDS,
    SCHEMA_STATE_FIELDS,
    Job,
    JobStatus,
    SchemaState,
)


class InMemoryContentStore(ContentStoreInterface):
    def __init__(self, records: Sequence[ContentRecord] = ()):
        self._lock = threading.Lock()
        self._records: dict[int, ContentRecord] = {r.content_id: r for r in records}

    def put(self, record: ContentRecord) -> None:
        with self._lock:
            self._records[record.content_id] = record

    def delete(self, content_id: int) -> None:
        with self._lock:
            self._records.pop(content_id, None)

    def get(self, content_id: int) -> Optional[ContentRecord]:
        with self._lock:
            return self._records.get(content_id)

    def list_ids(
        self,
        kinds: Sequence[str] = SUPPORTED_KINDS,
        statuses: Sequence[str] = PUBLISHED_STATUSES,
        limit: int = 500,
    ) -> list[int]:
        with self._lock:
            matching = [
                r
                for r in self._records.values()
                if r.kind in kinds and r.status in statuses and not r.is_revision
            ]
        matching.sort(key=lambda r: (r.published_at, r.content_id), reverse=True)
        return [r.content_id for r in matching[:limit]]


class InMemoryJobStore(JobStoreInterface):
    def __init__(self):
        self._lock = threading.Lock()
        self._jobs: dict[int, Job] = {}
        self._next_id = 1

    def create(self, content_id: int, content_hash: str, max_attempts: int, now: datetime) -> Job:
        with self._lock:
            job = Job(
                id=self._next_id,
                content_id=content_id,
                content_hash=content_hash,
                max_attempts=max_attempts,
                created_at=now,
                updated_at=now,
            )
            self._jobs[job.id] = job
            self._next_id += 1
            return job.model_copy()

    def get(self, job_id: int) -> Optional[Job]:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy() if job else None

    def find_active(self, content_id: int, content_hash: str) -> Optional[Job]:
        with self._lock:
            for job in self._jobs.values():
                if job.content_id == content_id and job.content_hash == content_hash and job.status in ACTIVE_STATUSES:
                    return job.model_copy()
        return None

    def list_pending(self, limit: int) -> Sequence[Job]:
        with self._lock:
            pending = sorted((j for j in self._jobs.values() if j.status == JobStatus.PENDING), key=lambda j: j.id)
            return [j.model_copy() for j in pending[:limit]]

    def claim(self, job_id: int, now: datetime) -> bool:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status != JobStatus.PENDING:
                return False
            self._jobs[job_id] = job.model_copy(
                update={"status": JobStatus.RUNNING, "started_at": now, "updated_at": now}
            )
            return True

    def update(self, job_id: int, **fields: Any) -> Optional[Job]:
        unknown = set(fields) - JOB_UPDATE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update job fields: {sorted(unknown)}")
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            updated = Job.model_validate({**job.model_dump(), **fields})
            self._jobs[job_id] = updated
            return updated.model_copy()

    def count_by_status(self) -> dict[str, int]:
        counts = {status.value: 0 for status in JobStatus}
        with self._lock:
            for job in self._jobs.values():
                counts[job.status.value] += 1
        return counts

    def last_failed(self) -> Optional[Job]:
        with self._lock:
            failed = [j for j in self._jobs.values() if j.status == JobStatus.FAILED]
        if not failed:
            return None
        return max(failed, key=lambda j: (j.updated_at, j.id)).model_copy()

    def list_stale_running(self, started_before: datetime) -> Sequence[Job]:
        with self._lock:
            return [
                j.model_copy()
                for j in sorted(self._jobs.values(), key=lambda j: j.id)
                if j.status == JobStatus.RUNNING and j.started_at is not None and j.started_at < started_before
            ]


class InMemorySchemaStore(SchemaStoreInterface):
    def __init__(self):
        self._lock = threading.Lock()
        self._states: dict[int, SchemaState] = {}

    def get(self, content_id: int) -> SchemaState:
        with self._lock:
            state = self._states.get(content_id)
        return state.model_copy(deep=True) if state else SchemaState(content_id=content_id)

    def update(self, content_id: int, **fields: Any) -> SchemaState:
        unknown = set(fields) - SCHEMA_STATE_FIELDS
        if unknown:
            raise ValueError(f"Unknown schema state fields: {sorted(unknown)}")
        with self._lock:
            current = self._states.get(content_id) or SchemaState(content_id=content_id)
            updated = SchemaState.model_validate({**current.model_dump(), **fields})
            self._states[content_id] = updated
            return updated.model_copy(deep=True)

    def clear(self, content_id: int) -> None:
        defaults = SchemaState(content_id=content_id)
        self.update(content_id, **{name: getattr(defaults, name) for name in DERIVED_FIELDS})

    def has_live(self, content_id: int) -> bool:
        return self.get(content_id).has_live


class InMemoryRunLock(RunLockInterface):
    def __init__(self):
        self._lock = threading.Lock()
        self._leases: dict[str, tuple[str, datetime]] = {}

    def acquire(self, key: str, ttl_seconds: int, now: datetime) -> Optional[str]:
        with self._lock:
            held = self._leases.get(key)
            if held is not None and held[1] > now:
                return None
            token = uuid.uuid4().hex
            self._leases[key] = (token, now + timedelta(seconds=ttl_seconds))
            return token

    def renew(self, key: str, token: str, ttl_seconds: int, now: datetime) -> bool:
        with self._lock:
            held = self._leases.get(key)
            if held is None or held[0] != token:
                return False
            self._leases[key] = (token, now + timedelta(seconds=ttl_seconds))
            return True

    def release(self, key: str, token: str) -> None:
        with self._lock:
            held = self._leases.get(key)
            if held is not None and held[0] == token:
                del self._leases[key]
