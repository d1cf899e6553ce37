"""Allow/block decision composition."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from src.models.message import RateLimitDecision
from src.plugin.templates import BLOCKED_NOTICE, BLOCKED_REASON, ERROR_KEYS, Translator

LOGGER = logging.getLogger(__name__)


def format_retry_at(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def format_remaining(remaining: timedelta) -> str:
    return f"{max(remaining.total_seconds(), 0.0):.1f}"


def permitted_after_block(threshold: int) -> int:
    return max(threshold - 1, 0)


class DecisionComposer:
    def __init__(self, translator: Translator) -> None:
        self._translator = translator

    @staticmethod
    def allow() -> RateLimitDecision:
        return RateLimitDecision(allow=True)

    def notice_text(self, threshold: int, remaining: timedelta, now: datetime, locale: str = "") -> str:
        return self._translator.translate(
            locale,
            BLOCKED_NOTICE,
            {
                "threshold": permitted_after_block(threshold),
                "remaining_seconds": format_remaining(remaining),
                "retry_at": format_retry_at(now + remaining),
            },
        )

    def compose(
        self,
        author_id: str,
        threshold: int,
        remaining: timedelta,
        now: datetime,
        locale: str = "",
    ) -> RateLimitDecision:
        retry_after = max(remaining, timedelta(0))
        reason = self._translator.translate(
            locale,
            BLOCKED_REASON,
            {
                "threshold": permitted_after_block(threshold),
                "retry_at": format_retry_at(now + retry_after),
            },
        )
        LOGGER.info(
            "broadcast mention blocked user_id=%s threshold=%s retry_after=%.1fs",
            author_id,
            threshold,
            retry_after.total_seconds(),
        )
        return RateLimitDecision(allow=False, retry_after=retry_after, reason_text=reason)

    def fail_closed(self, reason_kind: str, locale: str = "") -> RateLimitDecision:
        key = ERROR_KEYS.get(reason_kind)
        if key is None:
            raise ValueError(f"unknown failure kind: {reason_kind}")
        reason = self._translator.translate(locale, key)
        return RateLimitDecision(allow=False, retry_after=timedelta(0), reason_text=reason)
