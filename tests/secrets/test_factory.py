import keyring
import pytest
from keyring.errors import KeyringError

from src.secrets.base import SecretStoreError
from src.secrets.factory import create_secret_store, service_name_for
from src.secrets.keyring_store import KeyringSecretStore


def test_service_name_per_instance() -> None:
    assert service_name_for("default") == "mentionguard"
    assert service_name_for("ops") == "mentionguard.ops"


def test_factory_returns_keyring_store() -> None:
    store = create_secret_store("mentionguard.ops")
    assert isinstance(store, KeyringSecretStore)
    assert store.service_name == "mentionguard.ops"


def test_factory_rejects_bad_service_name() -> None:
    with pytest.raises(SecretStoreError):
        create_secret_store("bad name/..")


def test_keyring_store_reads_password(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(keyring, "get_password", lambda service, account: f"{service}:{account}")
    assert KeyringSecretStore("svc").get_secret("acct") == "svc:acct"


def test_keyring_store_missing_password(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(keyring, "get_password", lambda service, account: None)
    with pytest.raises(SecretStoreError):
        KeyringSecretStore("svc").get_secret("acct")


def test_keyring_store_backend_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    def _fail(service: str, account: str) -> str:
        raise KeyringError("locked")

    monkeypatch.setattr(keyring, "get_password", _fail)
    with pytest.raises(SecretStoreError):
        KeyringSecretStore("svc").get_secret("acct")
