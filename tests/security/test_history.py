from datetime import datetime, timedelta, timezone

import pytest

from src.adapters.message_store import MessageStoreTransportError
from src.core.errors import HistoryFetchError
from src.models.message import ChannelMembership, Message, MessagePage
from src.security.history import HistoryAggregator, iter_channel_messages

SINCE = datetime(2023, 5, 23, 4, 0, 0, tzinfo=timezone.utc)


def _msg(mid: str, channel_id: str, minutes: int = 0) -> Message:
    return Message(
        id=mid,
        author_id="U",
        channel_id=channel_id,
        text="@here",
        created_at=SINCE + timedelta(minutes=minutes),
    )


class _PagedStore:
    """Serves scripted pages per channel; raises where a page is an exception."""

    def __init__(self, pages: dict[str, list]) -> None:
        self._pages = pages
        self.calls: list[tuple] = []

    def _page(self, channel_id: str, index: int) -> MessagePage:
        item = self._pages[channel_id][index]
        if isinstance(item, Exception):
            raise item
        return item

    def get_messages_since(self, channel_id: str, since_millis: int) -> MessagePage:
        self.calls.append(("since", channel_id, since_millis))
        return self._page(channel_id, 0)

    def get_messages_after(self, channel_id: str, cursor: str, page: int, per_page: int) -> MessagePage:
        self.calls.append(("after", channel_id, cursor, page, per_page))
        index = int(cursor.rsplit("-", 1)[1])
        return self._page(channel_id, index)


def _membership(channel_id: str) -> ChannelMembership:
    return ChannelMembership(team_id="T", channel_id=channel_id, user_id="U")


def test_two_pages_are_concatenated_in_page_order() -> None:
    store = _PagedStore(
        {
            "C1": [
                MessagePage(messages=[_msg("a", "C1"), _msg("b", "C1")], has_next=True, next_cursor="cur-1"),
                MessagePage(messages=[_msg("c", "C1")], has_next=False),
            ]
        }
    )
    out = HistoryAggregator(store).collect([_membership("C1")], SINCE)
    assert [m.id for m in out] == ["a", "b", "c"]
    assert store.calls[0] == ("since", "C1", int(SINCE.timestamp() * 1000))
    assert store.calls[1] == ("after", "C1", "cur-1", 0, 1000)


def test_channels_are_processed_in_order() -> None:
    store = _PagedStore(
        {
            "C1": [MessagePage(messages=[_msg("late", "C1", 30)])],
            "C2": [MessagePage(messages=[_msg("early", "C2", 1)])],
        }
    )
    out = HistoryAggregator(store).collect([_membership("C1"), _membership("C2"), _membership("C1")], SINCE)
    # retrieval order, not chronological; duplicate memberships scanned once
    assert [m.id for m in out] == ["late", "early"]
    assert [c[1] for c in store.calls] == ["C1", "C2"]


def test_second_page_failure_returns_nothing_and_names_cursor() -> None:
    store = _PagedStore(
        {
            "C1": [
                MessagePage(messages=[_msg("a", "C1")], has_next=True, next_cursor="cur-1"),
                MessageStoreTransportError("boom"),
            ]
        }
    )
    with pytest.raises(HistoryFetchError) as info:
        HistoryAggregator(store).collect([_membership("C1")], SINCE)
    assert info.value.channel_id == "C1"
    assert info.value.cursor == "cur-1"
    assert "cur-1" in str(info.value)


def test_failure_in_later_channel_aborts_everything() -> None:
    store = _PagedStore(
        {
            "C1": [MessagePage(messages=[_msg("a", "C1")])],
            "C2": [MessageStoreTransportError("down")],
        }
    )
    with pytest.raises(HistoryFetchError) as info:
        HistoryAggregator(store).collect([_membership("C1"), _membership("C2")], SINCE)
    assert info.value.channel_id == "C2"
    assert info.value.cursor == ""


def test_channel_iterator_is_restartable() -> None:
    store = _PagedStore({"C1": [MessagePage(messages=[_msg("a", "C1")])]})
    first = list(iter_channel_messages(store, "C1", SINCE))
    second = list(iter_channel_messages(store, "C1", SINCE))
    assert first == second
    assert len(store.calls) == 2


def test_iterator_is_lazy() -> None:
    store = _PagedStore({"C1": [MessagePage(messages=[_msg("a", "C1")])]})
    iter_channel_messages(store, "C1", SINCE)
    assert store.calls == []


def test_empty_memberships() -> None:
    assert HistoryAggregator(_PagedStore({})).collect([], SINCE) == []


def test_page_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        HistoryAggregator(_PagedStore({}), per_page=0)


def test_messages_created_before_cutoff_are_dropped() -> None:
    # an old post edited after the cutoff still matches the host's since query
    edited = Message(id="old", author_id="U", channel_id="C1", text="@channel", created_at=SINCE - timedelta(hours=1))
    at_cutoff = _msg("edge", "C1")
    store = _PagedStore({"C1": [MessagePage(messages=[_msg("new", "C1", 5), edited, at_cutoff])]})
    out = HistoryAggregator(store).collect([_membership("C1")], SINCE)
    assert [m.id for m in out] == ["new", "edge"]
