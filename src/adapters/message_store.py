"""Messaging backend capability interface."""

from __future__ import annotations

from typing import Protocol

from src.models.message import Channel, ChannelMembership, MessagePage, User


class MessageStoreError(RuntimeError):
    """Raised when the messaging backend cannot serve a request."""


class MessageStoreNotFound(MessageStoreError):
    """Raised when the requested record does not exist."""


class MessageStoreTransportError(MessageStoreError):
    """Raised on connection, protocol or unexpected HTTP failures."""


class MessageStore(Protocol):
    def get_channel(self, channel_id: str) -> Channel:
        """Return channel record including its team id."""

    def get_channel_memberships_for_user(
        self,
        team_id: str,
        user_id: str,
        page: int,
        per_page: int,
    ) -> list[ChannelMembership]:
        """Return one page of the user's channel memberships in a team."""

    def get_messages_since(self, channel_id: str, since_millis: int) -> MessagePage:
        """Return the first page of messages created at or after since_millis."""

    def get_messages_after(self, channel_id: str, cursor: str, page: int, per_page: int) -> MessagePage:
        """Return the page of messages following the cursor message."""

    def get_user(self, user_id: str) -> User:
        """Return user record including locale preference."""

    def send_ephemeral_notice(self, user_id: str, channel_id: str, text: str) -> None:
        """Deliver a notice visible only to user_id."""
