#!/usr/bin/env python3
"""Export deterministic JSON schemas for the serve bridge contract."""

from __future__ import annotations

import json
import pathlib
import sys
from typing import Optional

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.models.message import RateLimitDecision  # noqa: E402
from src.plugin.bridge import MessageEvent  # noqa: E402


def export_schemas(out_dir: pathlib.Path) -> list[pathlib.Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    written: list[pathlib.Path] = []
    for name, model in (("message_event", MessageEvent), ("rate_limit_decision", RateLimitDecision)):
        out_path = out_dir / f"{name}.schema.json"
        out_path.write_text(
            json.dumps(model.model_json_schema(), indent=2, sort_keys=True, ensure_ascii=True) + "\n",
            encoding="utf-8",
        )
        written.append(out_path)
    return written


def main(out_dir: Optional[pathlib.Path] = None) -> None:
    for path in export_schemas(out_dir or ROOT / "schemas"):
        print(f"wrote {path}")


if __name__ == "__main__":
    main()
