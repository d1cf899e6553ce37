import json
from datetime import datetime, timezone
from pathlib import Path

from src.audit.decision_log import GENESIS, DecisionAuditLogger, verify_chain

NOW = datetime(2023, 5, 23, 5, 31, 0, tzinfo=timezone.utc)


def test_hash_chain_advances(tmp_path: Path) -> None:
    logger = DecisionAuditLogger(tmp_path / "jsonl", clock=lambda: NOW)
    e1 = logger.append("U", "C", "rate_limited", 12.5, qualifying_count=4)
    e2 = logger.append("U", "C", "history_fetch", 0.0)
    assert e1.prev_hash == GENESIS
    assert e2.prev_hash == e1.event_hash
    path = logger.jsonl_path_for(NOW)
    assert path.name == "decisions-20230523.jsonl"
    assert verify_chain(path)


def test_tampering_breaks_chain(tmp_path: Path) -> None:
    logger = DecisionAuditLogger(tmp_path, clock=lambda: NOW)
    logger.append("U", "C", "rate_limited", 12.5, qualifying_count=4)
    logger.append("U", "C", "rate_limited", 3.0, qualifying_count=5)
    path = logger.jsonl_path_for(NOW)
    rows = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    rows[0]["qualifying_count"] = 1
    path.write_text("".join(json.dumps(r) + "\n" for r in rows), encoding="utf-8")
    assert not verify_chain(path)


def test_log_never_contains_message_text(tmp_path: Path) -> None:
    logger = DecisionAuditLogger(tmp_path, clock=lambda: NOW)
    event = logger.append("U", "C", "rate_limited", 1.0, qualifying_count=2)
    row = json.loads(logger.jsonl_path_for(NOW).read_text(encoding="utf-8"))
    assert set(row) == {
        "ts",
        "event_id",
        "user_id",
        "channel_id",
        "reason_kind",
        "qualifying_count",
        "retry_after_seconds",
        "prev_hash",
        "event_hash",
    }
    assert row["event_hash"] == event.event_hash
