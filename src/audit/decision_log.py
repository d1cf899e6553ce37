"""JSONL audit trail of block decisions with hash-chain.

Write-only: the decision engine never reads it back.
"""

from __future__ import annotations

import hashlib
import json
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

GENESIS = "GENESIS"


@dataclass(frozen=True)
class DecisionEvent:
    ts: str
    event_id: str
    user_id: str
    channel_id: str
    reason_kind: str
    qualifying_count: Optional[int]
    retry_after_seconds: float
    prev_hash: str
    event_hash: str


class DecisionAuditLogger:
    def __init__(
        self,
        out_dir: Path,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._out_dir = out_dir
        self._out_dir.mkdir(parents=True, exist_ok=True)
        self._clock = clock
        self._lock = threading.Lock()

    def jsonl_path_for(self, day: datetime) -> Path:
        return self._out_dir / f"decisions-{day.strftime('%Y%m%d')}.jsonl"

    def append(
        self,
        user_id: str,
        channel_id: str,
        reason_kind: str,
        retry_after_seconds: float,
        qualifying_count: Optional[int] = None,
    ) -> DecisionEvent:
        now = self._clock()
        path = self.jsonl_path_for(now)
        with self._lock:
            prev_hash = self._last_hash(path)
            canonical: dict[str, Any] = {
                "ts": now.isoformat(),
                "event_id": f"evt_{uuid.uuid4().hex}",
                "user_id": user_id,
                "channel_id": channel_id,
                "reason_kind": reason_kind,
                "qualifying_count": qualifying_count,
                "retry_after_seconds": round(retry_after_seconds, 3),
                "prev_hash": prev_hash,
            }
            event_hash = hashlib.sha256(
                json.dumps(canonical, sort_keys=True, ensure_ascii=True).encode("utf-8")
            ).hexdigest()
            line = dict(canonical, event_hash=event_hash)
            with path.open("a", encoding="utf-8") as fp:
                fp.write(json.dumps(line, ensure_ascii=True) + "\n")
        return DecisionEvent(**line)

    @staticmethod
    def _last_hash(path: Path) -> str:
        if not path.exists():
            return GENESIS
        last: Optional[str] = None
        with path.open("r", encoding="utf-8") as fp:
            for line in fp:
                if not line.strip():
                    continue
                last = json.loads(line).get("event_hash")
        return last or GENESIS


def verify_chain(path: Path) -> bool:
    prev = GENESIS
    with path.open("r", encoding="utf-8") as fp:
        for line in fp:
            if not line.strip():
                continue
            row = json.loads(line)
            event_hash = row.pop("event_hash", "")
            if row.get("prev_hash") != prev:
                return False
            digest = hashlib.sha256(json.dumps(row, sort_keys=True, ensure_ascii=True).encode("utf-8")).hexdigest()
            if digest != event_hash:
                return False
            prev = event_hash
    return True
