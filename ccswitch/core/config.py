"""Provider data model and store persistence for ccswitch.

This module defines the provider profile model, the per-tool partitions of the
profile store and the backends that load and save the store document.
"""

from __future__ import annotations

import json
import os
import time
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from ccswitch.utils.log import get_logger


logger = get_logger()

CONFIG_DIR_NAME = ".cc-switch"
CONFIG_FILE_NAME = "config.json"
STORE_VERSION = 2


class AppType(str, Enum):
    """Supported downstream CLI tool families."""

    CLAUDE = "claude"
    CODEX = "codex"
    GEMINI = "gemini"

    @classmethod
    def _aliases(cls) -> Dict[str, "AppType"]:
        return {
            "claude-code": cls.CLAUDE,
            "anthropic": cls.CLAUDE,
            "openai": cls.CODEX,
            "codex-cli": cls.CODEX,
            "gemini-cli": cls.GEMINI,
            "google": cls.GEMINI,
        }

    @classmethod
    def _missing_(cls, value: object) -> Optional["AppType"]:
        """Accept case variants and common aliases of the tool names."""
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
            return cls._aliases().get(normalized)
        return None

    @property
    def display_name(self) -> str:
        return {
            AppType.CLAUDE: "Claude Code",
            AppType.CODEX: "Codex",
            AppType.GEMINI: "Gemini CLI",
        }[self]


class Provider(BaseModel):
    """One saved configuration profile for a downstream tool."""

    # Keys ccswitch does not model (e.g. "meta") are kept and written back.
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, extra="allow")

    id: str
    name: str
    app_type: AppType
    # Shape depends on app_type; only ccswitch.core.schema reads inside it.
    settings_config: Dict[str, Any] = Field(default_factory=dict)
    website_url: Optional[str] = None
    category: Optional[str] = None
    notes: Optional[str] = None
    icon: Optional[str] = None
    icon_color: Optional[str] = None
    sort_index: Optional[int] = Field(default=None, ge=0)
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    def to_document(self) -> Dict[str, Any]:
        """Serialize for storage; unset optional fields are omitted, not nulled."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AppPartition(BaseModel):
    """Providers of one tool family plus the id of the active one."""

    model_config = ConfigDict(extra="allow")

    providers: Dict[str, Provider] = Field(default_factory=dict)
    current: str = ""


class StoreSnapshot(BaseModel):
    """Persisted document holding every partition of the profile store."""

    # Other sections of a shared config file (e.g. "mcp") survive a save.
    model_config = ConfigDict(extra="allow")

    version: int = STORE_VERSION
    claude: AppPartition = Field(default_factory=AppPartition)
    codex: AppPartition = Field(default_factory=AppPartition)
    gemini: AppPartition = Field(default_factory=AppPartition)

    @model_validator(mode="before")
    @classmethod
    def _fill_app_types(cls, data: Any) -> Any:
        """Older documents do not repeat the app type on each provider."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for app_type in AppType:
            partition = data.get(app_type.value)
            if not isinstance(partition, dict):
                continue
            providers = partition.get("providers")
            if not isinstance(providers, dict):
                continue
            filled: Dict[str, Any] = {}
            for provider_id, raw in providers.items():
                if isinstance(raw, dict):
                    raw = dict(raw)
                    if "appType" not in raw and "app_type" not in raw:
                        raw["appType"] = app_type.value
                    raw.setdefault("id", provider_id)
                filled[provider_id] = raw
            data[app_type.value] = {**partition, "providers": filled}
        return data

    @model_validator(mode="after")
    def _check_partitions(self) -> "StoreSnapshot":
        for app_type in AppType:
            partition = self.partition(app_type)
            for provider_id, provider in partition.providers.items():
                if provider.app_type != app_type:
                    raise ValueError(
                        f"Provider '{provider_id}' is stored under '{app_type.value}' "
                        f"but declares app type '{provider.app_type.value}'."
                    )
                if provider.id != provider_id:
                    raise ValueError(
                        f"Provider key '{provider_id}' does not match its id '{provider.id}'."
                    )
            if partition.current and partition.current not in partition.providers:
                logger.warning(
                    "[config] Dropping dangling active provider pointer",
                    extra={"app_type": app_type.value, "current": partition.current},
                )
                partition.current = ""
        return self

    def partition(self, app_type: AppType) -> AppPartition:
        return getattr(self, AppType(app_type).value)

    def to_document(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.model_extra or {})
        data["version"] = self.version
        for app_type in AppType:
            partition = self.partition(app_type)
            data[app_type.value] = {
                **(partition.model_extra or {}),
                "providers": {
                    provider_id: provider.to_document()
                    for provider_id, provider in partition.providers.items()
                },
                "current": partition.current,
            }
        return data


class StoreBackend(Protocol):
    """Durable storage for the profile store document."""

    def load(self) -> StoreSnapshot: ...

    def save(self, snapshot: StoreSnapshot) -> None: ...


def get_config_dir() -> Path:
    """Return the ccswitch config directory (``CCSWITCH_CONFIG_DIR`` overrides)."""
    override = os.getenv("CCSWITCH_CONFIG_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / CONFIG_DIR_NAME


def get_config_path() -> Path:
    """Return the path of the provider store document."""
    return get_config_dir() / CONFIG_FILE_NAME


def current_timestamp() -> int:
    """Current time in whole seconds since the epoch."""
    return int(time.time())


class JsonFileBackend:
    """Stores the snapshot as pretty-printed JSON with owner-only permissions."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path or get_config_path()
        # Set when an unreadable file could not be moved aside; saving would destroy it.
        self._blocked_reason: Optional[str] = None

    def _quarantine(self, reason: str) -> Optional[Path]:
        """Move an unusable store file aside so the next save cannot overwrite it."""
        backup = self.path.with_name(f"{self.path.name}.corrupt-{current_timestamp()}")
        try:
            self.path.rename(backup)
        except OSError as exc:
            self._blocked_reason = (
                f"{self.path} could not be loaded ({reason}) or moved aside ({exc})"
            )
            logger.warning(
                "[config] Could not move unreadable provider store aside; saving is disabled",
                extra={"path": str(self.path), "error": str(exc)},
            )
            return None
        return backup

    def load(self) -> StoreSnapshot:
        self._blocked_reason = None
        if not self.path.exists():
            logger.debug(
                "[config] Provider store not found; using defaults",
                extra={"path": str(self.path)},
            )
            return StoreSnapshot()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            snapshot = StoreSnapshot(**data)
        except (
            json.JSONDecodeError,
            OSError,
            UnicodeDecodeError,
            ValueError,
            TypeError,
        ) as exc:
            reason = f"{type(exc).__name__}: {exc}"
            backup = self._quarantine(reason)
            logger.warning(
                "[config] Error loading provider store: %s",
                reason,
                extra={"path": str(self.path), "backup": str(backup) if backup else None},
            )
            return StoreSnapshot()
        logger.debug(
            "[config] Loaded provider store",
            extra={
                "path": str(self.path),
                "provider_counts": {
                    app_type.value: len(snapshot.partition(app_type).providers)
                    for app_type in AppType
                },
            },
        )
        return snapshot

    def save(self, snapshot: StoreSnapshot) -> None:
        if self._blocked_reason:
            raise OSError(f"Refusing to overwrite provider store: {self._blocked_reason}")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(snapshot.to_document(), indent=2, ensure_ascii=False) + "\n"
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        tmp_path.write_text(payload, encoding="utf-8")
        try:
            tmp_path.chmod(0o600)
        except OSError:
            logger.debug("[config] Failed to set strict permissions", extra={"path": str(tmp_path)})
        os.replace(tmp_path, self.path)
        logger.debug("[config] Saved provider store", extra={"path": str(self.path)})


class MemoryBackend:
    """Keeps the snapshot in memory; used by tests and dry runs."""

    def __init__(self, snapshot: Optional[StoreSnapshot] = None) -> None:
        self._snapshot = snapshot.model_copy(deep=True) if snapshot else StoreSnapshot()
        self.save_count = 0

    def load(self) -> StoreSnapshot:
        return self._snapshot.model_copy(deep=True)

    def save(self, snapshot: StoreSnapshot) -> None:
        self._snapshot = snapshot.model_copy(deep=True)
        self.save_count += 1
