"""Line-oriented JSON bridge between a host process and the engine.

One JSON message event per input line, one JSON decision per output line.
Unlike `MentionGuardHook.message_will_be_posted`, which answers an in-process
host with `(message, "")` or `(None, reason)`, each output line carries the
full decision including `retry_after_seconds` so out-of-process hosts can
schedule a retry. Malformed events and events whose evaluation fails are
rejected (fail-closed); one bad event never stops the loop.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import IO, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.models.message import Message, RateLimitDecision, from_epoch_millis

LOGGER = logging.getLogger(__name__)

INVALID_EVENT_REASON = "Message rejected: the message event could not be read."
EVALUATION_FAILED_REASON = "Message rejected: the message could not be checked. Please try again later."


class MessageEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    channel_id: str = Field(min_length=1)
    message: str = ""
    create_at: Optional[int] = Field(default=None, ge=0)

    def to_message(self) -> Message:
        created = from_epoch_millis(self.create_at) if self.create_at is not None else datetime.now(timezone.utc)
        return Message(
            id=self.id,
            author_id=self.user_id,
            channel_id=self.channel_id,
            text=self.message,
            created_at=created,
        )


class EventParseError(RuntimeError):
    """Raised when an input line is not a valid message event."""


def parse_event(line: str) -> Message:
    try:
        return MessageEvent.model_validate_json(line).to_message()
    except ValidationError as exc:
        raise EventParseError(f"invalid message event: {exc.error_count()} error(s)") from exc


def decision_payload(decision: RateLimitDecision) -> dict:
    return {
        "allow": decision.allow,
        "reason": decision.reason_text,
        "retry_after_seconds": decision.retry_after_seconds,
    }


def serve_lines(evaluate: Callable[[Message], RateLimitDecision], stdin: IO[str], stdout: IO[str]) -> int:
    """Process events until EOF. Returns the number of events handled."""
    handled = 0
    for line in stdin:
        if not line.strip():
            continue
        try:
            payload = decision_payload(evaluate(parse_event(line)))
        except EventParseError as exc:
            LOGGER.warning("rejecting unreadable event: %s", exc)
            payload = {"allow": False, "reason": INVALID_EVENT_REASON, "retry_after_seconds": 0.0}
        except Exception:
            LOGGER.exception("rejecting event after evaluation failure")
            payload = {"allow": False, "reason": EVALUATION_FAILED_REASON, "retry_after_seconds": 0.0}
        stdout.write(json.dumps(payload, ensure_ascii=False) + "\n")
        stdout.flush()
        handled += 1
    return handled
