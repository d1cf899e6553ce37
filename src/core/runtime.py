"""Application runtime wiring."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from src.adapters.mattermost_http import MattermostMessageStore
from src.adapters.message_store import MessageStore
from src.audit.decision_log import DecisionAuditLogger
from src.config.policy import PolicyConfig, ensure_storage_dirs, load_policy
from src.config.secrets import load_runtime_secrets
from src.config.snapshot import ConfigurationHolder
from src.core.decision import DecisionComposer
from src.core.engine import MentionRateLimiter
from src.core.reload_watcher import PolicyReloadWatcher
from src.models.message import Message, RateLimitDecision
from src.plugin.hooks import MentionGuardHook
from src.plugin.templates import JsonTranslator
from src.secrets.factory import DEFAULT_SERVICE_NAME


class AppRuntime:
    def __init__(
        self,
        workspace_root: Path,
        policy_path: Path,
        secret_service_name: str = DEFAULT_SERVICE_NAME,
        store: Optional[MessageStore] = None,
    ) -> None:
        self.workspace_root = workspace_root.resolve()
        self.policy_path = policy_path
        policy: PolicyConfig = load_policy(policy_path)
        ensure_storage_dirs(self.workspace_root, policy)
        self.instance_id = policy.instance.id
        self.config = ConfigurationHolder(policy)

        if store is None:
            secrets = load_runtime_secrets(service_name=secret_service_name)
            store = MattermostMessageStore(
                base_url=policy.server.url,
                token=secrets.mattermost_bot_token,
                timeout_seconds=policy.server.timeout_seconds,
            )
        self.store = store

        self.translator = JsonTranslator(
            self.workspace_root / policy.ui.i18n_dir,
            default_locale=policy.ui.default_locale,
        )
        self.composer = DecisionComposer(self.translator)
        self.audit: Optional[DecisionAuditLogger] = None
        if policy.audit.enabled:
            self.audit = DecisionAuditLogger(self.workspace_root / policy.audit.jsonl_dir)

        self.limiter = MentionRateLimiter(
            store=self.store,
            config=self.config,
            composer=self.composer,
            audit=self.audit,
        )
        self.hook = MentionGuardHook(self.limiter, self.config)
        self.watcher = PolicyReloadWatcher(
            policy_path,
            on_change=self.hook.on_configuration_change,
            interval_seconds=policy.reload.interval_seconds,
        )

    @property
    def policy(self) -> PolicyConfig:
        return self.config.get()

    def evaluate(self, message: Message) -> RateLimitDecision:
        """Full decision for the line bridge, which also reports `retry_after_seconds`.

        In-process hosts go through `self.hook.message_will_be_posted` instead.
        """
        return self.limiter.evaluate(message)

    def reload_policy(self) -> PolicyConfig:
        policy = load_policy(self.policy_path)
        self.hook.on_configuration_change(policy)
        return policy
