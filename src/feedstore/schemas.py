from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from .errors import RetrievalError


def now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)


class DTOBase(BaseModel):
    model_config = ConfigDict(extra="forbid")


class FeedImage(DTOBase):
    model_config = ConfigDict(frozen=True)

    id: UUID
    description: str | None = None
    location: str | None = None
    url: str

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("url must not be empty")
        return value


class CacheSnapshot(DTOBase):
    """The single durable unit: an ordered feed and the instant it was cached."""

    model_config = ConfigDict(frozen=True)

    feed: tuple[FeedImage, ...] = Field(default_factory=tuple)
    timestamp: datetime


class CacheStatus(StrEnum):
    EMPTY = "empty"
    FOUND = "found"
    FAILURE = "failure"


@dataclass(frozen=True, slots=True)
class RetrieveResult:
    status: CacheStatus
    snapshot: CacheSnapshot | None = None
    error: RetrievalError | None = None

    @classmethod
    def empty(cls) -> RetrieveResult:
        return cls(status=CacheStatus.EMPTY)

    @classmethod
    def found(cls, snapshot: CacheSnapshot) -> RetrieveResult:
        return cls(status=CacheStatus.FOUND, snapshot=snapshot)

    @classmethod
    def failure(cls, error: RetrievalError) -> RetrieveResult:
        return cls(status=CacheStatus.FAILURE, error=error)

    @property
    def feed(self) -> tuple[FeedImage, ...]:
        if self.snapshot is None:
            return ()
        return self.snapshot.feed

    @property
    def timestamp(self) -> datetime | None:
        if self.snapshot is None:
            return None
        return self.snapshot.timestamp


_FEED_ADAPTER = TypeAdapter(list[FeedImage])


def validate_feed_json(payload: str | bytes | bytearray) -> list[FeedImage]:
    return _FEED_ADAPTER.validate_json(payload)
