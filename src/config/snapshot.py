"""Shared configuration snapshot behind a reader/writer lock.

Readers hold the shared lock only while copying the current reference.
The writer holds the exclusive lock only while swapping it.
Snapshots are frozen dataclasses and are never mutated in place.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from src.config.policy import MentionLimitConfig, PolicyConfig


class ReadWriteLock:
    """Many readers or one writer; waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ConfigurationHolder:
    def __init__(self, policy: PolicyConfig) -> None:
        self._lock = ReadWriteLock()
        self._policy = policy

    def get(self) -> PolicyConfig:
        with self._lock.read():
            return self._policy

    def mention_limit(self) -> MentionLimitConfig:
        return self.get().mention_limit

    def replace(self, policy: PolicyConfig) -> PolicyConfig:
        """Swap in a new snapshot and return the previous one."""
        with self._lock.write():
            previous = self._policy
            self._policy = policy
        return previous
