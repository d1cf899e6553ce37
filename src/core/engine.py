"""Broadcast mention rate-limit decision engine.

Evaluating -> Allowed | Blocked, single-shot per message.
No state is kept between events; every call re-derives the outcome from
the author's message history across the channels of the posting team.
Lookup failures on the decision path reject the message (fail-closed).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from src.adapters.message_store import MessageStore, MessageStoreError
from src.audit.decision_log import DecisionAuditLogger
from src.config.snapshot import ConfigurationHolder
from src.core.decision import DecisionComposer
from src.core.errors import (
    ChannelLookupError,
    MembershipLookupError,
    MentionGuardError,
    NoticeDeliveryError,
    UserLookupError,
)
from src.models.message import ChannelMembership, HistoryWindow, Message, RateLimitDecision
from src.plugin.templates import TranslationError
from src.security.history import PAGE_SIZE, HistoryAggregator
from src.security.mention_filter import is_broadcast_mention
from src.security.mention_limit import compute_cooldown, evaluate_threshold

LOGGER = logging.getLogger(__name__)

MEMBERSHIP_PAGE_SIZE = 200


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MentionRateLimiter:
    def __init__(
        self,
        store: MessageStore,
        config: ConfigurationHolder,
        composer: DecisionComposer,
        audit: Optional[DecisionAuditLogger] = None,
        clock: Callable[[], datetime] = _utcnow,
        history_page_size: int = PAGE_SIZE,
        membership_page_size: int = MEMBERSHIP_PAGE_SIZE,
    ) -> None:
        if membership_page_size <= 0:
            raise ValueError("membership_page_size must be > 0")
        self._store = store
        self._config = config
        self._composer = composer
        self._audit = audit
        self._clock = clock
        self._aggregator = HistoryAggregator(store, per_page=history_page_size)
        self._membership_page_size = membership_page_size

    def evaluate(self, message: Message) -> RateLimitDecision:
        if not is_broadcast_mention(message.text):
            return self._composer.allow()

        limit = self._config.mention_limit()
        if not limit.active:
            return self._composer.allow()

        now = self._clock()
        try:
            window = self.history_window(message, now - timedelta(seconds=limit.user_timeout_in_seconds))
            history = self._aggregator.collect(window.memberships, window.since)
        except MentionGuardError as exc:
            return self._fail_closed(message, exc)

        outcome = evaluate_threshold(history, message.author_id, limit.channel_mentions_threshold)
        if not outcome.exceeded:
            return self._composer.allow()

        cooldown = compute_cooldown(outcome.qualifying, limit.user_timeout_in_seconds, now)
        if cooldown.lapsed:
            LOGGER.info(
                "cooldown already lapsed user_id=%s count=%s expiry=%s; allowing",
                message.author_id,
                outcome.count,
                cooldown.expiry.isoformat(),
            )
            return self._composer.allow()

        try:
            locale = self._user_locale(message.author_id)
        except UserLookupError as exc:
            return self._fail_closed(message, exc)

        try:
            decision, notice = self._compose_block(message, limit.channel_mentions_threshold, cooldown.remaining, now, locale)
        except TranslationError as exc:
            LOGGER.warning("locale catalog unusable locale=%s: %s; using default locale", locale, exc)
            decision, notice = self._compose_block(message, limit.channel_mentions_threshold, cooldown.remaining, now, "")
        try:
            self._send_notice(message, notice)
        except NoticeDeliveryError as exc:
            LOGGER.warning("notice delivery failed user_id=%s channel_id=%s: %s", message.author_id, message.channel_id, exc)

        self._record(message, "rate_limited", decision, qualifying_count=outcome.count)
        return decision

    def _compose_block(
        self,
        message: Message,
        threshold: int,
        remaining: timedelta,
        now: datetime,
        locale: str,
    ) -> tuple[RateLimitDecision, str]:
        decision = self._composer.compose(message.author_id, threshold, remaining, now, locale=locale)
        notice = self._composer.notice_text(threshold, remaining, now, locale=locale)
        return decision, notice

    def history_window(self, message: Message, since: datetime) -> HistoryWindow:
        return HistoryWindow(since=since, memberships=tuple(self._memberships(message)))

    def _memberships(self, message: Message) -> list[ChannelMembership]:
        try:
            channel = self._store.get_channel(message.channel_id)
        except MessageStoreError as exc:
            raise ChannelLookupError(f"channel lookup failed: channel={message.channel_id}") from exc

        if not channel.team_id:
            # direct and group message channels belong to no team
            return [ChannelMembership(team_id="", channel_id=message.channel_id, user_id=message.author_id)]

        out: list[ChannelMembership] = []
        page = 0
        while True:
            try:
                batch = self._store.get_channel_memberships_for_user(
                    channel.team_id,
                    message.author_id,
                    page,
                    self._membership_page_size,
                )
            except MessageStoreError as exc:
                raise MembershipLookupError(
                    f"membership lookup failed: team={channel.team_id} user={message.author_id} page={page}"
                ) from exc
            out.extend(batch)
            if len(batch) < self._membership_page_size:
                return out
            page += 1

    def _user_locale(self, user_id: str) -> str:
        try:
            return self._store.get_user(user_id).locale
        except MessageStoreError as exc:
            raise UserLookupError(f"user lookup failed: user={user_id}") from exc

    def _send_notice(self, message: Message, text: str) -> None:
        try:
            self._store.send_ephemeral_notice(message.author_id, message.channel_id, text)
        except MessageStoreError as exc:
            raise NoticeDeliveryError(f"ephemeral notice failed: channel={message.channel_id}") from exc

    def _fail_closed(self, message: Message, exc: MentionGuardError) -> RateLimitDecision:
        LOGGER.warning(
            "rejecting message fail-closed user_id=%s channel_id=%s step=%s: %s",
            message.author_id,
            message.channel_id,
            exc.reason_kind,
            exc,
        )
        decision = self._composer.fail_closed(exc.reason_kind)
        self._record(message, exc.reason_kind, decision)
        return decision

    def _record(
        self,
        message: Message,
        reason_kind: str,
        decision: RateLimitDecision,
        qualifying_count: Optional[int] = None,
    ) -> None:
        if self._audit is None:
            return
        try:
            self._audit.append(
                user_id=message.author_id,
                channel_id=message.channel_id,
                reason_kind=reason_kind,
                retry_after_seconds=decision.retry_after_seconds or 0.0,
                qualifying_count=qualifying_count,
            )
        except OSError:
            LOGGER.exception("audit append failed user_id=%s", message.author_id)
