import json
from pathlib import Path

import pytest

from src.plugin.templates import BLOCKED_NOTICE, ERROR_KEYS, JsonTranslator, TranslationError, resolve_locale


def _write(dir_: Path, locale: str, data: dict) -> None:
    (dir_ / f"{locale}.json").write_text(json.dumps(data), encoding="utf-8")


def test_shipped_locales_define_every_key() -> None:
    keys = {BLOCKED_NOTICE, "mention_guard.blocked.reason", *ERROR_KEYS.values()}
    for path in Path("assets/i18n").glob("*.json"):
        data = json.loads(path.read_text(encoding="utf-8"))
        assert keys <= set(data), path.name


def test_resolve_locale_falls_back() -> None:
    available = {"en", "ja", "pt-BR"}
    assert resolve_locale("ja", available, "en") == "ja"
    assert resolve_locale("pt_BR", available, "en") == "pt-BR"
    assert resolve_locale("ja-JP", available, "en") == "ja"
    assert resolve_locale("de", available, "en") == "en"
    assert resolve_locale("", available, "en") == "en"


def test_translate_substitutes_params(tmp_path: Path) -> None:
    _write(tmp_path, "en", {"k": "wait {n}s"})
    assert JsonTranslator(tmp_path).translate("en", "k", {"n": 5}) == "wait 5s"


def test_missing_key_uses_default_locale(tmp_path: Path) -> None:
    _write(tmp_path, "en", {"k": "english"})
    _write(tmp_path, "ja", {"other": "x"})
    assert JsonTranslator(tmp_path).translate("ja", "k") == "english"


def test_missing_key_everywhere_raises(tmp_path: Path) -> None:
    _write(tmp_path, "en", {})
    with pytest.raises(TranslationError):
        JsonTranslator(tmp_path).translate("en", "k")


def test_param_mismatch_raises(tmp_path: Path) -> None:
    _write(tmp_path, "en", {"k": "{missing}"})
    with pytest.raises(TranslationError):
        JsonTranslator(tmp_path).translate("en", "k", {})


def test_invalid_locale_file_raises(tmp_path: Path) -> None:
    (tmp_path / "en.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(TranslationError):
        JsonTranslator(tmp_path).translate("en", "k")
