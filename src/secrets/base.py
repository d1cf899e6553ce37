"""SecretStore abstractions.

The Mattermost bot token must come from the OS credential store only.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class SecretStoreError(RuntimeError):
    """Raised when a secret cannot be loaded securely."""


class SecretStore(ABC):
    """Credential store interface."""

    @abstractmethod
    def get_secret(self, account: str) -> str:
        """Return secret value for an account or raise SecretStoreError."""


def require_secret(store: SecretStore, account: str) -> str:
    value = store.get_secret(account).strip()
    if not value:
        raise SecretStoreError(f"secret is empty: {account}")
    return value
