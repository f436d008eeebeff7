"""
Storage interfaces for the generation queue and derived schema state.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional, Sequence

from schemaai.storage.models import Job, SchemaState


class JobStoreInterface(ABC):
    """
    Abstract interface for the persistent job table.

    Every mutation touches a single job row by id.
    """

    @abstractmethod
    def create(self, content_id: int, content_hash: str, max_attempts: int, now: datetime) -> Job:
        """
        Insert a pending job with zero attempts and return it.
        """
        pass

    @abstractmethod
    def get(self, job_id: int) -> Optional[Job]:
        """
        Get a job by id, or None if not found.
        """
        pass

    @abstractmethod
    def find_active(self, content_id: int, content_hash: str) -> Optional[Job]:
        """
        Get the pending or running job for this content at this hash, if any.
        """
        pass

    @abstractmethod
    def list_pending(self, limit: int) -> Sequence[Job]:
        """
        Up to `limit` pending jobs, oldest (lowest id) first.
        """
        pass

    @abstractmethod
    def claim(self, job_id: int, now: datetime) -> bool:
        """
        Atomically move a job from pending to running, stamping `started_at`.
        Returns False when the job was not pending.
        """
        pass

    @abstractmethod
    def update(self, job_id: int, **fields: Any) -> Optional[Job]:
        """
        Update a job by id; return the updated job or None if not found.
        """
        pass

    @abstractmethod
    def count_by_status(self) -> dict[str, int]:
        """
        Number of jobs per status value.
        """
        pass

    @abstractmethod
    def last_failed(self) -> Optional[Job]:
        """
        The most recently updated failed job.
        """
        pass

    @abstractmethod
    def list_stale_running(self, started_before: datetime) -> Sequence[Job]:
        """
        Running jobs whose `started_at` is older than `started_before`.
        """
        pass


class SchemaStoreInterface(ABC):
    """
    Abstract interface for per-content derived schema state.
    """

    @abstractmethod
    def get(self, content_id: int) -> SchemaState:
        """
        State for a content item; an empty state when nothing is stored.
        """
        pass

    @abstractmethod
    def update(self, content_id: int, **fields: Any) -> SchemaState:
        """
        Set the given fields, creating the state if needed.
        """
        pass

    @abstractmethod
    def clear(self, content_id: int) -> None:
        """
        Reset all derived fields; editor overrides are kept.
        """
        pass

    @abstractmethod
    def has_live(self, content_id: int) -> bool:
        """
        Whether the content item has a published document.
        """
        pass


class RunLockInterface(ABC):
    """
    Named lease locks with owner tokens.
    """

    @abstractmethod
    def acquire(self, key: str, ttl_seconds: int, now: datetime) -> Optional[str]:
        """
        Take the lease if it is free or expired. Returns the owner token,
        or None when another holder's lease is still valid.
        """
        pass

    @abstractmethod
    def renew(self, key: str, token: str, ttl_seconds: int, now: datetime) -> bool:
        """
        Extend the lease; False when `token` no longer holds it.
        """
        pass

    @abstractmethod
    def release(self, key: str, token: str) -> None:
        """
        Drop the lease if `token` holds it.
        """
        pass
