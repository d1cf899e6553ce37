from pathlib import Path

import yaml

from src.config.policy import PolicyConfig
from src.core.reload_watcher import PolicyReloadWatcher


def _copy_policy(tmp_path: Path) -> tuple[Path, dict]:
    data = yaml.safe_load(Path("config/policy.yaml").read_text(encoding="utf-8"))
    path = tmp_path / "policy.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path, data


def test_unchanged_file_is_not_reloaded(tmp_path: Path) -> None:
    path, _ = _copy_policy(tmp_path)
    applied: list[PolicyConfig] = []
    watcher = PolicyReloadWatcher(path, applied.append)
    assert not watcher.check_once()
    assert applied == []


def test_changed_file_replaces_policy(tmp_path: Path) -> None:
    path, data = _copy_policy(tmp_path)
    applied: list[PolicyConfig] = []
    watcher = PolicyReloadWatcher(path, applied.append)

    data["mention_limit"]["channel_mentions_threshold"] = 7
    path.write_text(yaml.safe_dump(data), encoding="utf-8")

    assert watcher.check_once()
    assert applied[0].mention_limit.channel_mentions_threshold == 7
    assert not watcher.check_once()


def test_invalid_file_keeps_active_policy(tmp_path: Path) -> None:
    path, data = _copy_policy(tmp_path)
    applied: list[PolicyConfig] = []
    watcher = PolicyReloadWatcher(path, applied.append)

    data["mention_limit"]["user_timeout_in_seconds"] = -5
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    assert not watcher.check_once()

    path.unlink()
    assert not watcher.check_once()
    assert applied == []


def test_start_and_stop(tmp_path: Path) -> None:
    path, _ = _copy_policy(tmp_path)
    watcher = PolicyReloadWatcher(path, lambda policy: None, interval_seconds=1)
    watcher.start()
    watcher.start()
    watcher.stop()
