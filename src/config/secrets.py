"""Secret accessor facade.

Accounts in OS store:
- mattermost_bot_token
"""

from __future__ import annotations

from dataclasses import dataclass

from src.secrets.base import require_secret
from src.secrets.factory import DEFAULT_SERVICE_NAME, create_secret_store

MATTERMOST_TOKEN_ACCOUNT = "mattermost_bot_token"


@dataclass(frozen=True)
class RuntimeSecrets:
    mattermost_bot_token: str

    def __repr__(self) -> str:
        return "RuntimeSecrets(mattermost_bot_token=***)"


def load_runtime_secrets(service_name: str = DEFAULT_SERVICE_NAME) -> RuntimeSecrets:
    store = create_secret_store(service_name=service_name)
    return RuntimeSecrets(mattermost_bot_token=require_secret(store, MATTERMOST_TOKEN_ACCOUNT))
