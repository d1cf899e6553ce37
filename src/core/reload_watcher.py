"""File-backed policy hot reload.

Polls the policy file's content hash on a background thread. A changed
and valid file replaces the configuration snapshot; an invalid file is
logged and the active snapshot is kept.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from pathlib import Path
from typing import Callable, Optional

from src.config.policy import PolicyConfig, PolicyLoadError, load_policy

LOGGER = logging.getLogger(__name__)


def _file_hash(path: Path) -> Optional[str]:
    try:
        return hashlib.sha256(path.read_bytes()).hexdigest()
    except FileNotFoundError:
        return None


class PolicyReloadWatcher:
    def __init__(
        self,
        policy_path: Path,
        on_change: Callable[[PolicyConfig], None],
        interval_seconds: float = 5.0,
    ) -> None:
        self._policy_path = policy_path
        self._on_change = on_change
        self._interval_seconds = max(1.0, float(interval_seconds))
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_hash = _file_hash(policy_path)

    def check_once(self) -> bool:
        """Reload if the file changed. Returns True when a new policy was applied."""
        new_hash = _file_hash(self._policy_path)
        if new_hash is None:
            LOGGER.debug("policy file missing: %s; keeping active policy", self._policy_path)
            return False
        if new_hash == self._last_hash:
            return False
        self._last_hash = new_hash
        try:
            policy = load_policy(self._policy_path)
        except PolicyLoadError as exc:
            LOGGER.error("policy reload rejected path=%s: %s", self._policy_path, exc)
            return False
        self._on_change(policy)
        LOGGER.info("policy reloaded path=%s", self._policy_path)
        return True

    def _run(self) -> None:
        while not self._stop.wait(self._interval_seconds):
            self.check_once()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            LOGGER.warning("policy reload watcher already running; ignoring duplicate start")
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="policy-reload", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self._interval_seconds + 1)
            self._thread = None
