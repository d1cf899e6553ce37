"""Message and decision contracts for Mention Guard.

Records coming from the messaging backend are immutable once built.
All instants are timezone-aware UTC datetimes.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def from_epoch_millis(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def to_epoch_millis(value: datetime) -> int:
    return int(_as_utc(value).timestamp() * 1000)


class Message(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1)
    author_id: str = Field(min_length=1)
    channel_id: str = Field(min_length=1)
    text: str = ""
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, value: datetime) -> datetime:
        return _as_utc(value)


class Channel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str = Field(min_length=1)
    team_id: str = ""
    name: str = ""


class ChannelMembership(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    team_id: str
    channel_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)


class User(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str = Field(min_length=1)
    username: str = ""
    locale: str = ""


class MessagePage(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    messages: list[Message] = Field(default_factory=list)
    has_next: bool = False
    next_cursor: str = ""

    @model_validator(mode="after")
    def validate_cursor(self) -> "MessagePage":
        if self.has_next and not self.next_cursor:
            raise ValueError("has_next requires next_cursor")
        return self


class HistoryWindow(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    since: datetime
    memberships: tuple[ChannelMembership, ...] = ()

    @field_validator("since")
    @classmethod
    def normalize_since(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @property
    def since_millis(self) -> int:
        return to_epoch_millis(self.since)


class RateLimitDecision(BaseModel):
    """Outcome for a single message event.

    An allow carries no retry_after and no reason. A block always carries both.
    retry_after is zero for fail-closed rejections.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    allow: bool
    retry_after: Optional[timedelta] = None
    reason_text: str = ""

    @model_validator(mode="after")
    def validate_complete(self) -> "RateLimitDecision":
        if self.allow:
            if self.retry_after is not None or self.reason_text:
                raise ValueError("allow decision must not carry retry_after or reason_text")
        else:
            if self.retry_after is None:
                raise ValueError("block decision requires retry_after")
            if self.retry_after < timedelta(0):
                raise ValueError("retry_after must not be negative")
            if not self.reason_text:
                raise ValueError("block decision requires reason_text")
        return self

    @property
    def retry_after_seconds(self) -> Optional[float]:
        if self.retry_after is None:
            return None
        return self.retry_after.total_seconds()
