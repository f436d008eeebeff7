from __future__ import annotations

from datetime import datetime, timedelta, timezone

from typing import Protocol

from pydantic import BaseModel, field_validator


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in UTC. The scheduler and the gateway only ever ask for `now()`."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock(BaseModel):
    """A clock that only moves when told to; used to make lease expiry deterministic."""

    current: datetime

    @field_validator("current")
    @classmethod
    def current_must_be_timezone_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError("FrozenClock value must be timezone-aware")
        return value

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> datetime:
        self.current = self.current + timedelta(seconds=seconds)
        return self.current
