"""Add, edit, delete and switch flows for provider profiles.

Flows gather raw values through an ``InputSource``, reconcile them with the
stored provider and commit through the ``ProfileStore``. All prompting
happens before the store is touched; cancelling at any prompt leaves the store
exactly as it was.

Each flow returns a ``FlowOutcome`` that is either ``ok`` (with the resulting
provider), ``cancelled`` or ``failed`` (with the ``ProfileError``).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Generic, Optional, Protocol, Sequence, Tuple, TypeVar

from ccswitch.core.config import AppType, Provider, current_timestamp
from ccswitch.core.errors import Cancelled, ProfileError
from ccswitch.core.identity import generate_provider_id
from ccswitch.core.merge import ProviderDraft, merge_provider, require_text
from ccswitch.core.schema import (
    ClaudeSettings,
    CodexSettings,
    GeminiAuthMode,
    GeminiSettings,
    build_settings_config,
    decode_settings,
    default_gemini_auth_choice,
)
from ccswitch.core.store import ProfileStore
from ccswitch.utils.log import get_logger

logger = get_logger()

T = TypeVar("T")
Clock = Callable[[], int]


class InputSource(Protocol):
    """Where raw field values come from (terminal prompts, forms, test scripts).

    Every method raises ``Cancelled`` when the user aborts.
    """

    def text(
        self,
        label: str,
        *,
        current: Optional[str] = None,
        placeholder: str = "",
        multiline: bool = False,
    ) -> str:
        """Return raw text. ``current`` is pre-filled when editing."""
        ...

    def select(self, label: str, options: Sequence[Tuple[str, str]], *, default: str) -> str:
        """Return the value of one ``(value, label)`` option."""
        ...

    def confirm(self, label: str, *, default: bool) -> bool: ...

    def show(self, label: str, body: str) -> None:
        """Display a read-only block, e.g. the value a confirm refers to."""
        ...


class FlowStatus(str, Enum):
    OK = "ok"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class FlowOutcome(Generic[T]):
    """Three-way result of an interactive flow."""

    status: FlowStatus
    value: Optional[T] = None
    error: Optional[ProfileError] = None

    @classmethod
    def ok(cls, value: T) -> "FlowOutcome[T]":
        return cls(FlowStatus.OK, value=value)

    @classmethod
    def cancelled(cls) -> "FlowOutcome[T]":
        return cls(FlowStatus.CANCELLED)

    @classmethod
    def failed(cls, error: ProfileError) -> "FlowOutcome[T]":
        return cls(FlowStatus.FAILED, error=error)

    @property
    def is_ok(self) -> bool:
        return self.status is FlowStatus.OK

    @property
    def is_cancelled(self) -> bool:
        return self.status is FlowStatus.CANCELLED

    @property
    def is_failed(self) -> bool:
        return self.status is FlowStatus.FAILED


GEMINI_AUTH_LABELS: Dict[GeminiAuthMode, str] = {
    GeminiAuthMode.OAUTH: "Google OAuth (official)",
    GeminiAuthMode.PACKYCODE: "PackyCode API key",
    GeminiAuthMode.GENERIC: "Generic API key",
}

_CLAUDE_MODEL_PROMPTS: Tuple[Tuple[str, str, str], ...] = (
    ("model", "Default model", "claude-sonnet-4-5"),
    ("haiku_model", "Haiku (fast) model", "claude-haiku-4-5"),
    ("sonnet_model", "Sonnet (mid) model", "claude-sonnet-4-5"),
    ("opus_model", "Opus (premium) model", "claude-opus-4-1"),
)


def _prompt_claude(inputs: InputSource, current: ClaudeSettings) -> Dict[str, str]:
    submitted = {
        "auth_token": inputs.text("API key", current=current.auth_token, placeholder="sk-ant-..."),
        "base_url": inputs.text(
            "Base URL", current=current.base_url, placeholder="https://api.anthropic.com"
        ),
    }
    has_models = any(getattr(current, name) for name in ClaudeSettings.MODEL_FIELDS)
    # Declining leaves any stored model overrides untouched.
    if inputs.confirm("Configure model names?", default=has_models):
        for name, label, placeholder in _CLAUDE_MODEL_PROMPTS:
            submitted[name] = inputs.text(
                label, current=getattr(current, name), placeholder=placeholder
            )
    return submitted


def _prompt_codex(inputs: InputSource, current: CodexSettings) -> Dict[str, str]:
    submitted = {
        "api_key": inputs.text("OpenAI API key", current=current.api_key, placeholder="sk-..."),
    }
    inputs.show("Current config.toml", current.config_or_default)
    if inputs.confirm("Use current config.toml?", default=True):
        submitted["config"] = current.config_or_default
    else:
        submitted["config"] = inputs.text(
            "config.toml", placeholder=current.config_or_default, multiline=True
        )
    return submitted


def _prompt_gemini(
    inputs: InputSource, current: GeminiSettings, payload: Optional[dict]
) -> Dict[str, str]:
    default_mode = default_gemini_auth_choice(payload)
    mode = GeminiAuthMode(
        inputs.select(
            "Auth type",
            [(m.value, GEMINI_AUTH_LABELS[m]) for m in GeminiAuthMode.choices()],
            default=default_mode.value,
        )
    )
    submitted = {"auth_mode": mode.value}
    if mode is GeminiAuthMode.OAUTH:
        return submitted

    same_mode = current.auth_mode is mode
    submitted["api_key"] = inputs.text(
        "Gemini API key",
        current=current.api_key,
        placeholder="pk-..." if mode is GeminiAuthMode.PACKYCODE else "AIza...",
    )
    submitted["base_url"] = inputs.text(
        "Base URL",
        current=current.base_url if same_mode else None,
        placeholder=(
            "https://packycode.com/api"
            if mode is GeminiAuthMode.PACKYCODE
            else "https://generativelanguage.googleapis.com"
        ),
    )
    return submitted


def collect_settings_input(
    inputs: InputSource, app_type: AppType, payload: Optional[dict] = None
) -> Dict[str, str]:
    """Prompt for the family-specific settings, pre-filled from ``payload``."""
    current = decode_settings(app_type, payload)
    if isinstance(current, ClaudeSettings):
        return _prompt_claude(inputs, current)
    if isinstance(current, CodexSettings):
        return _prompt_codex(inputs, current)
    return _prompt_gemini(inputs, current, payload)


def collect_draft(
    inputs: InputSource, app_type: AppType, existing: Optional[Provider] = None
) -> ProviderDraft:
    """Prompt for every field of a provider, pre-filling from ``existing``."""
    draft = ProviderDraft()
    draft.name = inputs.text(
        "Provider name", current=existing.name if existing else None, placeholder="OpenAI"
    )
    # Fail before asking anything else.
    require_text("Provider name", draft.name, None)
    draft.website_url = inputs.text(
        "Website URL",
        current=existing.website_url if existing else None,
        placeholder="https://openai.com",
    )
    draft.settings = collect_settings_input(
        inputs, app_type, existing.settings_config if existing else None
    )
    draft.notes = inputs.text(
        "Notes", current=existing.notes if existing else None, placeholder="e.g. company account"
    )
    draft.sort_index = inputs.text(
        "Sort index",
        current=(
            str(existing.sort_index) if existing and existing.sort_index is not None else None
        ),
        placeholder="blank = unsorted",
    )
    return draft


def add_provider(
    store: ProfileStore,
    inputs: InputSource,
    app_type: AppType,
    *,
    clock: Clock = current_timestamp,
) -> FlowOutcome[Provider]:
    """Interactively create a provider and commit it."""
    app_type = AppType(app_type)
    try:
        draft = collect_draft(inputs, app_type)
        settings_config = build_settings_config(app_type, draft.settings)
        # Provisional; the store picks the final id under its write lock.
        provider_id = generate_provider_id(
            require_text("Provider name", draft.name, None), store.ids(app_type)
        )
        candidate = merge_provider(
            None,
            draft,
            app_type=app_type,
            provider_id=provider_id,
            settings_config=settings_config,
            timestamp=clock(),
        )
        activate = inputs.confirm(
            "Switch to this provider now?", default=store.active_id(app_type) is None
        )
        stored = store.create(candidate, activate=activate)
    except Cancelled:
        logger.info("[flow] Add provider cancelled", extra={"app_type": app_type.value})
        return FlowOutcome.cancelled()
    except ProfileError as exc:
        logger.info(
            "[flow] Add provider failed: %s",
            exc.error_code,
            extra={"app_type": app_type.value},
        )
        return FlowOutcome.failed(exc)

    logger.info(
        "[flow] Provider added",
        extra={"app_type": app_type.value, "provider_id": stored.id, "activated": activate},
    )
    return FlowOutcome.ok(stored)


def apply_edit(
    store: ProfileStore,
    app_type: AppType,
    provider_id: str,
    draft: ProviderDraft,
    *,
    clock: Clock = current_timestamp,
) -> Provider:
    """Merge ``draft`` into the stored provider under the store's write lock.

    The merge runs against the provider as stored at commit time, so fields
    the draft does not touch are never overwritten with stale values.
    """
    timestamp = clock()

    def _mutate(current: Provider) -> Provider:
        settings_config = build_settings_config(app_type, draft.settings, current.settings_config)
        return merge_provider(
            current,
            draft,
            app_type=app_type,
            provider_id=current.id,
            settings_config=settings_config,
            timestamp=timestamp,
        )

    return store.update(app_type, provider_id, _mutate)


def edit_provider(
    store: ProfileStore,
    inputs: InputSource,
    app_type: AppType,
    provider_id: str,
    *,
    clock: Clock = current_timestamp,
) -> FlowOutcome[Provider]:
    """Interactively edit a provider; id and app type never change."""
    app_type = AppType(app_type)
    extra = {"app_type": app_type.value, "provider_id": provider_id}
    try:
        existing = store.get(app_type, provider_id)
        draft = collect_draft(inputs, app_type, existing)
        updated = apply_edit(store, app_type, provider_id, draft, clock=clock)
    except Cancelled:
        logger.info("[flow] Edit provider cancelled", extra=extra)
        return FlowOutcome.cancelled()
    except ProfileError as exc:
        logger.info("[flow] Edit provider failed: %s", exc.error_code, extra=extra)
        return FlowOutcome.failed(exc)

    logger.info("[flow] Provider updated", extra=extra)
    return FlowOutcome.ok(updated)


def delete_provider(
    store: ProfileStore,
    inputs: Optional[InputSource],
    app_type: AppType,
    provider_id: str,
) -> FlowOutcome[Provider]:
    """Delete a provider after confirmation (skipped when ``inputs`` is None)."""
    app_type = AppType(app_type)
    extra = {"app_type": app_type.value, "provider_id": provider_id}
    try:
        existing = store.get(app_type, provider_id)
        if inputs is not None and not inputs.confirm(
            f"Delete provider '{existing.name}' ({existing.id})?", default=False
        ):
            raise Cancelled()
        removed = store.remove(app_type, provider_id)
    except Cancelled:
        logger.info("[flow] Delete provider cancelled", extra=extra)
        return FlowOutcome.cancelled()
    except ProfileError as exc:
        logger.info("[flow] Delete provider failed: %s", exc.error_code, extra=extra)
        return FlowOutcome.failed(exc)

    logger.info("[flow] Provider deleted", extra=extra)
    return FlowOutcome.ok(removed)


def switch_provider(
    store: ProfileStore, app_type: AppType, provider_id: str
) -> FlowOutcome[Provider]:
    """Make a provider the active one for its tool family."""
    app_type = AppType(app_type)
    extra = {"app_type": app_type.value, "provider_id": provider_id}
    try:
        provider = store.set_active(app_type, provider_id)
    except ProfileError as exc:
        logger.info("[flow] Switch provider failed: %s", exc.error_code, extra=extra)
        return FlowOutcome.failed(exc)
    logger.info("[flow] Active provider switched", extra=extra)
    return FlowOutcome.ok(provider)


__all__ = [
    "FlowOutcome",
    "FlowStatus",
    "GEMINI_AUTH_LABELS",
    "InputSource",
    "add_provider",
    "apply_edit",
    "collect_draft",
    "collect_settings_input",
    "delete_provider",
    "edit_provider",
    "switch_provider",
]
