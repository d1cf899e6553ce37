"""Mention Guard entrypoint."""

from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
import re
import sys
import uuid
from datetime import datetime, timezone
from typing import Optional

from src.config.policy import PolicyLoadError
from src.core.runtime import AppRuntime
from src.models.message import Message
from src.plugin.bridge import decision_payload, serve_lines
from src.plugin.templates import TranslationError
from src.secrets.base import SecretStoreError
from src.secrets.factory import service_name_for

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    stream=sys.stderr,
)


def _resolve_instance_id(raw: str) -> str:
    value = (raw or "default").strip()
    if not value:
        return "default"
    if not re.fullmatch(r"[A-Za-z0-9_-]{1,40}", value):
        raise ValueError("instance_id must match [A-Za-z0-9_-]{1,40}")
    return value


def _default_policy_path(workspace_root: Path, instance_id: str) -> Path:
    if instance_id == "default":
        return workspace_root / "config/policy.yaml"
    return workspace_root / "config" / "instances" / instance_id / "policy.yaml"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Mention Guard: broadcast mention rate limiting")
    parser.add_argument("--instance-id", help="Instance id for multi-server isolation (default: default)")
    parser.add_argument("--policy", help="Policy YAML path (default: config/policy.yaml)")
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Evaluate one message against the live server")
    check.add_argument("--user-id", required=True)
    check.add_argument("--channel-id", required=True)
    check.add_argument("--text", required=True)

    sub.add_parser("serve", help="Read JSON message events from stdin, write decisions to stdout")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    workspace_root = Path(os.getenv("MG_WORKSPACE_ROOT", Path(__file__).resolve().parents[1]))
    instance_id = _resolve_instance_id(args.instance_id or os.getenv("MG_INSTANCE_ID", "default"))
    policy_path = Path(args.policy) if args.policy else _default_policy_path(workspace_root, instance_id)
    secret_service_name = service_name_for(instance_id)
    logging.info(
        "starting instance_id=%s policy=%s secret_service=%s",
        instance_id,
        policy_path,
        secret_service_name,
    )

    try:
        runtime = AppRuntime(
            workspace_root=workspace_root,
            policy_path=policy_path,
            secret_service_name=secret_service_name,
        )
    except SecretStoreError as exc:
        logging.error("startup blocked by missing secret: %s", exc)
        print(
            "Startup failed: Mattermost bot token is missing in OS credential store.\n"
            f"- instance_id: {instance_id}\n"
            f"- secret_service: {secret_service_name}\n"
            f"- detail: {exc}",
            file=sys.stderr,
        )
        return 2
    except PolicyLoadError as exc:
        logging.error("startup blocked by invalid policy: %s", exc)
        print(
            "Startup failed: policy is invalid.\n"
            f"- policy: {policy_path}\n"
            f"- detail: {exc}",
            file=sys.stderr,
        )
        return 2

    try:
        if args.command == "check":
            message = Message(
                id=f"check_{uuid.uuid4().hex[:12]}",
                author_id=args.user_id,
                channel_id=args.channel_id,
                text=args.text,
                created_at=datetime.now(timezone.utc),
            )
            decision = runtime.evaluate(message)
            print(json.dumps(decision_payload(decision), ensure_ascii=False))
            return 0 if decision.allow else 1

        runtime.watcher.start()
        try:
            handled = serve_lines(runtime.evaluate, sys.stdin, sys.stdout)
        finally:
            runtime.watcher.stop()
        logging.info("serve finished events=%s", handled)
        return 0
    except TranslationError as exc:
        logging.error("locale files are invalid: %s", exc)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
