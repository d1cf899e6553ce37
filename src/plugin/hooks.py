"""Host-facing hooks.

The host calls `message_will_be_posted` before persisting a message and
`on_configuration_change` after the administrator edits settings.
"""

from __future__ import annotations

import logging
from typing import Optional

from src.config.policy import MentionLimitConfig, PolicyConfig
from src.config.snapshot import ConfigurationHolder
from src.core.engine import MentionRateLimiter
from src.models.message import Message
from src.plugin.bridge import EVALUATION_FAILED_REASON

LOGGER = logging.getLogger(__name__)


class MentionGuardHook:
    def __init__(self, limiter: MentionRateLimiter, config: ConfigurationHolder) -> None:
        self._limiter = limiter
        self._config = config

    def message_will_be_posted(self, message: Message) -> tuple[Optional[Message], str]:
        try:
            decision = self._limiter.evaluate(message)
        except Exception:
            LOGGER.exception("rejecting message after evaluation failure id=%s", message.id)
            return None, EVALUATION_FAILED_REASON
        if decision.allow:
            return message, ""
        return None, decision.reason_text

    def on_configuration_change(self, policy: PolicyConfig) -> None:
        previous = self._config.replace(policy)
        if previous.mention_limit != policy.mention_limit:
            LOGGER.info("mention limit updated %s", _describe(policy.mention_limit))


def _describe(cfg: MentionLimitConfig) -> str:
    return (
        f"disabled={cfg.disabled} "
        f"timeout={cfg.user_timeout_in_seconds}s "
        f"threshold={cfg.channel_mentions_threshold}"
    )
