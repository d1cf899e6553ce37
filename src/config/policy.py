"""Policy loader for Mention Guard."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import re
from typing import Any

import yaml


@dataclass(frozen=True)
class MentionLimitConfig:
    disabled: bool
    user_timeout_in_seconds: int
    channel_mentions_threshold: int

    @property
    def active(self) -> bool:
        # a zero timeout disables the rule regardless of threshold
        return not self.disabled and self.user_timeout_in_seconds > 0


@dataclass(frozen=True)
class ServerConfig:
    url: str
    timeout_seconds: int


@dataclass(frozen=True)
class UiConfig:
    default_locale: str
    i18n_dir: str


@dataclass(frozen=True)
class AuditConfig:
    enabled: bool
    jsonl_dir: str


@dataclass(frozen=True)
class ReloadConfig:
    interval_seconds: int


@dataclass(frozen=True)
class InstanceConfig:
    id: str


@dataclass(frozen=True)
class PolicyConfig:
    version: str
    mention_limit: MentionLimitConfig
    server: ServerConfig
    ui: UiConfig
    audit: AuditConfig
    reload: ReloadConfig
    instance: InstanceConfig


class PolicyLoadError(RuntimeError):
    """Raised when policy cannot be loaded."""


def _require(data: dict[str, Any], key: str) -> Any:
    if key not in data:
        raise PolicyLoadError(f"missing required policy key: {key}")
    return data[key]


def _section(data: dict[str, Any], key: str, required: bool = False) -> dict[str, Any]:
    raw = _require(data, key) if required else data.get(key, {})
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise PolicyLoadError(f"{key} must be an object")
    return raw


def _int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise PolicyLoadError(f"{name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise PolicyLoadError(f"{name} must be an integer") from exc


def _bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    raise PolicyLoadError(f"{name} must be a boolean")


def parse_mention_limit(raw: dict[str, Any]) -> MentionLimitConfig:
    disabled = _bool(raw.get("disabled", False), "mention_limit.disabled")
    timeout = _int(_require(raw, "user_timeout_in_seconds"), "mention_limit.user_timeout_in_seconds")
    threshold = _int(_require(raw, "channel_mentions_threshold"), "mention_limit.channel_mentions_threshold")
    if timeout < 0:
        raise PolicyLoadError("mention_limit.user_timeout_in_seconds must be >= 0")
    if threshold < 0:
        raise PolicyLoadError("mention_limit.channel_mentions_threshold must be >= 0")
    return MentionLimitConfig(
        disabled=disabled,
        user_timeout_in_seconds=timeout,
        channel_mentions_threshold=threshold,
    )


def load_policy(path: Path) -> PolicyConfig:
    if not path.exists():
        raise PolicyLoadError(f"policy file not found: {path}")

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise PolicyLoadError(f"policy file is not valid YAML: {path}") from exc
    if not isinstance(raw, dict):
        raise PolicyLoadError("policy root must be an object")

    mention_limit = parse_mention_limit(_section(raw, "mention_limit", required=True))

    server_raw = _section(raw, "server", required=True)
    server_url = str(_require(server_raw, "url")).strip().rstrip("/")
    if not re.fullmatch(r"https?://[^\s/]+(/[^\s]*)?", server_url):
        raise PolicyLoadError(f"invalid server.url: {server_url}")
    server_timeout = _int(server_raw.get("timeout_seconds", 10), "server.timeout_seconds")
    if server_timeout <= 0:
        raise PolicyLoadError("server.timeout_seconds must be > 0")

    ui_raw = _section(raw, "ui")
    default_locale = str(ui_raw.get("default_locale", "en")).strip().lower()
    if default_locale not in {"en", "ja"}:
        raise PolicyLoadError(f"invalid ui.default_locale: {default_locale}")
    i18n_dir = str(ui_raw.get("i18n_dir", "assets/i18n")).strip()
    if not i18n_dir:
        raise PolicyLoadError("ui.i18n_dir must not be empty")

    audit_raw = _section(raw, "audit")
    audit_dir = str(audit_raw.get("jsonl_dir", "data/audit")).strip()
    if not audit_dir:
        raise PolicyLoadError("audit.jsonl_dir must not be empty")

    reload_raw = _section(raw, "reload")
    interval = _int(reload_raw.get("interval_seconds", 5), "reload.interval_seconds")
    if interval < 1:
        raise PolicyLoadError("reload.interval_seconds must be >= 1")

    instance_raw = _section(raw, "instance")
    instance_id = str(instance_raw.get("id", "default")).strip()
    if not instance_id:
        raise PolicyLoadError("instance.id must not be empty")
    if not re.fullmatch(r"[A-Za-z0-9_-]{1,40}", instance_id):
        raise PolicyLoadError(f"invalid instance.id: {instance_id}")

    return PolicyConfig(
        version=str(_require(raw, "version")),
        mention_limit=mention_limit,
        server=ServerConfig(url=server_url, timeout_seconds=server_timeout),
        ui=UiConfig(default_locale=default_locale, i18n_dir=i18n_dir),
        audit=AuditConfig(
            enabled=_bool(audit_raw.get("enabled", True), "audit.enabled"),
            jsonl_dir=audit_dir,
        ),
        reload=ReloadConfig(interval_seconds=interval),
        instance=InstanceConfig(id=instance_id),
    )


def ensure_storage_dirs(root: Path, policy: PolicyConfig) -> None:
    if policy.audit.enabled:
        (root / policy.audit.jsonl_dir).mkdir(parents=True, exist_ok=True)
