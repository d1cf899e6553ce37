"""Threshold and cooldown arithmetic for broadcast mentions."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from src.models.message import Message
from src.security.mention_filter import is_broadcast_mention


@dataclass(frozen=True)
class ThresholdOutcome:
    qualifying: list[Message]
    threshold: int

    @property
    def count(self) -> int:
        return len(self.qualifying)

    @property
    def exceeded(self) -> bool:
        # exactly `threshold` qualifying mentions is still allowed
        return self.count > self.threshold


@dataclass(frozen=True)
class Cooldown:
    most_recent: Message
    expiry: datetime
    remaining: timedelta

    @property
    def lapsed(self) -> bool:
        return self.remaining <= timedelta(0)


def filter_qualifying(history: Sequence[Message], author_id: str) -> list[Message]:
    return [m for m in history if m.author_id == author_id and is_broadcast_mention(m.text)]


def sort_by_created_desc(messages: Sequence[Message]) -> list[Message]:
    # sorted() is stable, so equal timestamps keep input order
    return sorted(messages, key=lambda m: m.created_at, reverse=True)


def evaluate_threshold(history: Sequence[Message], author_id: str, threshold: int) -> ThresholdOutcome:
    if threshold < 0:
        raise ValueError("threshold must be >= 0")
    return ThresholdOutcome(qualifying=filter_qualifying(history, author_id), threshold=threshold)


def compute_cooldown(qualifying: Sequence[Message], timeout_seconds: int, now: datetime) -> Cooldown:
    if not qualifying:
        raise ValueError("cooldown requires at least one qualifying message")
    if timeout_seconds < 0:
        raise ValueError("timeout_seconds must be >= 0")
    most_recent = sort_by_created_desc(qualifying)[0]
    expiry = most_recent.created_at + timedelta(seconds=timeout_seconds)
    return Cooldown(most_recent=most_recent, expiry=expiry, remaining=expiry - now)
