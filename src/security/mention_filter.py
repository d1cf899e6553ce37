"""Broadcast mention detection."""

from __future__ import annotations

BROADCAST_TOKENS = ("@channel", "@all", "@here")


def is_broadcast_mention(text: str) -> bool:
    # Plain case-sensitive substring match; "@channelbot" counts too.
    return any(token in text for token in BROADCAST_TOKENS)
