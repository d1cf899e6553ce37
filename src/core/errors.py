"""Failure taxonomy for the mention rate-limit decision path."""

from __future__ import annotations


class MentionGuardError(RuntimeError):
    """Base class for failures scoped to a single message event."""

    reason_kind = "internal"


class ChannelLookupError(MentionGuardError):
    """Raised when the posting channel cannot be resolved."""

    reason_kind = "channel_lookup"


class MembershipLookupError(MentionGuardError):
    """Raised when the author's channel memberships cannot be listed."""

    reason_kind = "membership_lookup"


class HistoryFetchError(MentionGuardError):
    """Raised when any history page fetch fails."""

    reason_kind = "history_fetch"

    def __init__(self, channel_id: str, cursor: str = "") -> None:
        self.channel_id = channel_id
        self.cursor = cursor
        where = f"channel={channel_id}"
        if cursor:
            where += f" cursor={cursor}"
        super().__init__(f"history fetch failed: {where}")


class UserLookupError(MentionGuardError):
    """Raised when the author's user record cannot be loaded."""

    reason_kind = "user_lookup"


class NoticeDeliveryError(MentionGuardError):
    """Raised when the ephemeral notice cannot be delivered."""

    reason_kind = "notice_delivery"
