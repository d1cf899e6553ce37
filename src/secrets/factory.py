"""Secret store factory."""

from __future__ import annotations

import re

from src.secrets.base import SecretStore, SecretStoreError
from src.secrets.keyring_store import KeyringSecretStore

DEFAULT_SERVICE_NAME = "mentionguard"


def service_name_for(instance_id: str) -> str:
    if instance_id == "default":
        return DEFAULT_SERVICE_NAME
    return f"{DEFAULT_SERVICE_NAME}.{instance_id}"


def create_secret_store(service_name: str = DEFAULT_SERVICE_NAME) -> SecretStore:
    if not re.fullmatch(r"[A-Za-z0-9_.-]{1,80}", service_name or ""):
        raise SecretStoreError(f"invalid secret service name: {service_name!r}")
    return KeyringSecretStore(service_name=service_name)
