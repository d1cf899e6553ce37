"""Message history aggregation across a user's channels.

Pages are fetched sequentially: first page by creation cutoff, then by the
cursor of the previous page until a page reports no further pages.
Any page failure aborts the whole aggregation; callers never see a
partial result.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from datetime import datetime

from src.adapters.message_store import MessageStore, MessageStoreError
from src.core.errors import HistoryFetchError
from src.models.message import ChannelMembership, Message, MessagePage, to_epoch_millis

LOGGER = logging.getLogger(__name__)

PAGE_SIZE = 1000


def iter_channel_messages(
    store: MessageStore,
    channel_id: str,
    since: datetime,
    per_page: int = PAGE_SIZE,
) -> Iterator[Message]:
    """Yield a channel's messages created at or after the cutoff, in host fetch order.

    The host may return older posts that were edited after the cutoff; those
    are skipped. Restartable: each call starts again from the first page.
    """
    cursor = ""
    try:
        page: MessagePage = store.get_messages_since(channel_id, to_epoch_millis(since))
    except MessageStoreError as exc:
        raise HistoryFetchError(channel_id) from exc

    while True:
        for message in page.messages:
            if message.created_at >= since:
                yield message
        if not page.has_next:
            return
        cursor = page.next_cursor
        try:
            page = store.get_messages_after(channel_id, cursor, 0, per_page)
        except MessageStoreError as exc:
            raise HistoryFetchError(channel_id, cursor) from exc


class HistoryAggregator:
    def __init__(self, store: MessageStore, per_page: int = PAGE_SIZE) -> None:
        if per_page <= 0:
            raise ValueError("per_page must be > 0")
        self._store = store
        self._per_page = per_page

    def collect(self, memberships: Iterable[ChannelMembership], since: datetime) -> list[Message]:
        collected: list[Message] = []
        seen_channels: set[str] = set()
        for membership in memberships:
            if membership.channel_id in seen_channels:
                continue
            seen_channels.add(membership.channel_id)
            collected.extend(
                iter_channel_messages(self._store, membership.channel_id, since, per_page=self._per_page)
            )
        LOGGER.debug("history collected channels=%s messages=%s", len(seen_channels), len(collected))
        return collected
