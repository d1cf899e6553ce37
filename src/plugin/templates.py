"""Localized notice templates (i18n).

Locale files live in `<i18n_dir>/<locale>.json` as flat key -> template maps.
Templates use `{name}` placeholders.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Optional, Protocol

LOGGER = logging.getLogger(__name__)

BLOCKED_NOTICE = "mention_guard.blocked.notice"
BLOCKED_REASON = "mention_guard.blocked.reason"
ERROR_KEYS = {
    "channel_lookup": "mention_guard.error.channel_lookup",
    "membership_lookup": "mention_guard.error.membership_lookup",
    "history_fetch": "mention_guard.error.history_fetch",
    "user_lookup": "mention_guard.error.user_lookup",
}


class TranslationError(RuntimeError):
    """Raised when a message key has no template in any usable locale."""


class Translator(Protocol):
    def translate(self, locale: str, key: str, params: Optional[dict[str, Any]] = None) -> str:
        """Return the localized text for key with params substituted."""


def resolve_locale(raw: str, available: set[str], default: str) -> str:
    locale = (raw or "").strip().replace("_", "-")
    if locale in available:
        return locale
    base = locale.split("-", 1)[0].lower()
    if base in available:
        return base
    return default


class JsonTranslator:
    def __init__(self, i18n_dir: Path, default_locale: str = "en") -> None:
        self._i18n_dir = i18n_dir
        self._default_locale = default_locale
        self._lock = threading.Lock()
        self._cache: dict[str, dict[str, str]] = {}

    @property
    def available_locales(self) -> set[str]:
        if not self._i18n_dir.is_dir():
            return set()
        return {p.stem for p in self._i18n_dir.glob("*.json")}

    def _catalog(self, locale: str) -> dict[str, str]:
        with self._lock:
            cached = self._cache.get(locale)
            if cached is not None:
                return cached
            path = self._i18n_dir / f"{locale}.json"
            try:
                raw = json.loads(path.read_text(encoding="utf-8"))
            except FileNotFoundError:
                raw = {}
            except (OSError, json.JSONDecodeError) as exc:
                raise TranslationError(f"invalid locale file: {path}") from exc
            if not isinstance(raw, dict):
                raise TranslationError(f"locale file root must be an object: {path}")
            catalog = {str(k): str(v) for k, v in raw.items()}
            self._cache[locale] = catalog
            return catalog

    def translate(self, locale: str, key: str, params: Optional[dict[str, Any]] = None) -> str:
        resolved = resolve_locale(locale, self.available_locales, self._default_locale)
        template = self._catalog(resolved).get(key)
        if template is None and resolved != self._default_locale:
            LOGGER.debug("missing translation locale=%s key=%s; using %s", resolved, key, self._default_locale)
            template = self._catalog(self._default_locale).get(key)
        if template is None:
            raise TranslationError(f"no template for key: {key}")
        try:
            return template.format(**(params or {}))
        except (KeyError, IndexError, ValueError) as exc:
            raise TranslationError(f"template parameters do not match for key: {key}") from exc
