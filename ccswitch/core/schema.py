"""Per-tool settings schemas.

``Provider.settings_config`` is stored as a plain nested mapping so every tool
family shares one on-disk representation. Inside the engine each family has a
typed settings model; ``decode`` lifts the logical fields out of a payload and
``encode`` writes them back on top of the existing payload, touching only the
keys the family owns. Unrelated keys (extra env variables, other sections)
survive every edit.
"""

from __future__ import annotations

import copy
from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, Literal, Mapping, Optional, Union

import tomli
from pydantic import BaseModel, Field

from ccswitch.core.config import AppType
from ccswitch.core.errors import InvalidInputError, ValidationError
from ccswitch.core.merge import merge_text, require_text, set_or_remove
from ccswitch.utils.log import get_logger

logger = get_logger()

DEFAULT_CODEX_CONFIG = 'base_url = "https://api.openai.com"\nmodel = "gpt-4"'
PACKYCODE_MARKER = "packycode"


def _section(payload: Optional[Mapping[str, Any]], key: str) -> Dict[str, Any]:
    if not payload:
        return {}
    value = payload.get(key)
    return dict(value) if isinstance(value, Mapping) else {}


def _str_value(section: Mapping[str, Any], key: str) -> Optional[str]:
    value = section.get(key)
    if isinstance(value, str) and value:
        return value
    return None


def _base_payload(base: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    return copy.deepcopy(dict(base)) if base else {}


def _check_fields(model: type, submitted: Mapping[str, str]) -> None:
    unknown = set(submitted) - set(model.EDITABLE_FIELDS)
    if unknown:
        raise KeyError(f"Unknown {model.__name__} field(s): {', '.join(sorted(unknown))}")


class ClaudeSettings(BaseModel):
    """Claude Code: token, endpoint and four optional model tier overrides."""

    kind: Literal["claude"] = "claude"
    auth_token: Optional[str] = None
    base_url: Optional[str] = None
    model: Optional[str] = None
    haiku_model: Optional[str] = None
    sonnet_model: Optional[str] = None
    opus_model: Optional[str] = None

    ENV_KEYS: ClassVar[Dict[str, str]] = {
        "auth_token": "ANTHROPIC_AUTH_TOKEN",
        "base_url": "ANTHROPIC_BASE_URL",
        "model": "ANTHROPIC_MODEL",
        "haiku_model": "ANTHROPIC_DEFAULT_HAIKU_MODEL",
        "sonnet_model": "ANTHROPIC_DEFAULT_SONNET_MODEL",
        "opus_model": "ANTHROPIC_DEFAULT_OPUS_MODEL",
    }
    MODEL_FIELDS: ClassVar[tuple[str, ...]] = ("model", "haiku_model", "sonnet_model", "opus_model")
    EDITABLE_FIELDS: ClassVar[tuple[str, ...]] = tuple(ENV_KEYS)

    @classmethod
    def decode(cls, payload: Optional[Mapping[str, Any]]) -> "ClaudeSettings":
        env = _section(payload, "env")
        return cls(**{name: _str_value(env, key) for name, key in cls.ENV_KEYS.items()})

    def edit(self, submitted: Mapping[str, str]) -> "ClaudeSettings":
        _check_fields(type(self), submitted)
        values = {
            name: merge_text(getattr(self, name), submitted[name])
            for name in self.EDITABLE_FIELDS
            if name in submitted
        }
        if "auth_token" in submitted:
            values["auth_token"] = require_text("API key", submitted["auth_token"], self.auth_token)
        return self.model_copy(update=values)

    def encode(self, base: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        payload = _base_payload(base)
        env = _section(payload, "env")
        for name, key in self.ENV_KEYS.items():
            set_or_remove(env, key, getattr(self, name))
        payload["env"] = env
        return payload

    @property
    def secret(self) -> Optional[str]:
        return self.auth_token

    @property
    def endpoint(self) -> Optional[str]:
        return self.base_url

    @property
    def model_override(self) -> Optional[str]:
        return self.model


def validate_config_toml(text: str) -> None:
    """Raise ``ValidationError`` if ``text`` is not a valid TOML document."""
    try:
        tomli.loads(text)
    except tomli.TOMLDecodeError as exc:
        raise ValidationError(f"Invalid config.toml: {exc}") from exc


class CodexSettings(BaseModel):
    """Codex: OpenAI API key plus a raw ``config.toml`` block."""

    kind: Literal["codex"] = "codex"
    api_key: Optional[str] = None
    config: Optional[str] = None

    EDITABLE_FIELDS: ClassVar[tuple[str, ...]] = ("api_key", "config")

    @classmethod
    def decode(cls, payload: Optional[Mapping[str, Any]]) -> "CodexSettings":
        auth = _section(payload, "auth")
        config = payload.get("config") if payload else None
        return cls(
            api_key=_str_value(auth, "OPENAI_API_KEY"),
            config=config if isinstance(config, str) and config else None,
        )

    @property
    def config_or_default(self) -> str:
        """The block offered when the user keeps or abandons their input."""
        return self.config or DEFAULT_CODEX_CONFIG

    def edit(self, submitted: Mapping[str, str]) -> "CodexSettings":
        _check_fields(type(self), submitted)
        values: Dict[str, Any] = {}
        if "api_key" in submitted:
            values["api_key"] = require_text("API key", submitted["api_key"], self.api_key)
        if "config" in submitted:
            text = submitted["config"].strip()
            if not text:
                text = self.config_or_default
            try:
                validate_config_toml(text)
            except ValidationError as exc:
                exc.fallback = self.config_or_default
                raise
            values["config"] = text
        return self.model_copy(update=values)

    def encode(self, base: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        payload = _base_payload(base)
        auth = _section(payload, "auth")
        set_or_remove(auth, "OPENAI_API_KEY", self.api_key)
        payload["auth"] = auth
        if self.config is None:
            payload.pop("config", None)
        else:
            payload["config"] = self.config
        return payload

    @property
    def secret(self) -> Optional[str]:
        return self.api_key

    @property
    def endpoint(self) -> Optional[str]:
        if not self.config:
            return None
        try:
            value = tomli.loads(self.config).get("base_url")
        except tomli.TOMLDecodeError:
            return None
        return value if isinstance(value, str) else None

    @property
    def model_override(self) -> Optional[str]:
        if not self.config:
            return None
        try:
            value = tomli.loads(self.config).get("model")
        except tomli.TOMLDecodeError:
            return None
        return value if isinstance(value, str) else None

    @property
    def config_line_count(self) -> int:
        return len(self.config.splitlines()) if self.config else 0


class GeminiAuthMode(str, Enum):
    """Gemini CLI authentication modes."""

    OAUTH = "oauth"
    PACKYCODE = "packycode"
    GENERIC = "generic"
    UNKNOWN = "unknown"

    @classmethod
    def choices(cls) -> tuple["GeminiAuthMode", ...]:
        """Modes a user can select (everything but UNKNOWN)."""
        return (cls.OAUTH, cls.PACKYCODE, cls.GENERIC)


_GEMINI_KEY = "GEMINI_API_KEY"
_GEMINI_GATEWAY_URL = "GOOGLE_GEMINI_BASE_URL"
_GEMINI_GENERIC_URL = "BASE_URL"


def detect_gemini_auth_mode(payload: Optional[Mapping[str, Any]]) -> GeminiAuthMode:
    """Infer the auth mode from an existing Gemini payload.

    A key paired with a gateway URL means the hosted gateway, any other key
    means a generic endpoint, and an empty env means Google OAuth. An env with
    other variables but no key is ``UNKNOWN``.
    """
    env = _section(payload, "env")
    if _GEMINI_KEY in env:
        gateway_url = env.get(_GEMINI_GATEWAY_URL)
        if isinstance(gateway_url, str) and PACKYCODE_MARKER in gateway_url:
            return GeminiAuthMode.PACKYCODE
        return GeminiAuthMode.GENERIC
    if not env:
        return GeminiAuthMode.OAUTH
    return GeminiAuthMode.UNKNOWN


def default_gemini_auth_choice(payload: Optional[Mapping[str, Any]]) -> GeminiAuthMode:
    """Mode pre-selected in the prompt; undetectable payloads default to the gateway."""
    detected = detect_gemini_auth_mode(payload)
    if detected is GeminiAuthMode.UNKNOWN:
        return GeminiAuthMode.PACKYCODE
    return detected


class GeminiSettings(BaseModel):
    """Gemini CLI: OAuth, hosted gateway key, or generic key + endpoint."""

    kind: Literal["gemini"] = "gemini"
    auth_mode: Optional[GeminiAuthMode] = None
    api_key: Optional[str] = None
    base_url: Optional[str] = None

    EDITABLE_FIELDS: ClassVar[tuple[str, ...]] = ("auth_mode", "api_key", "base_url")

    @classmethod
    def decode(cls, payload: Optional[Mapping[str, Any]]) -> "GeminiSettings":
        env = _section(payload, "env")
        mode = detect_gemini_auth_mode(payload)
        if mode is GeminiAuthMode.UNKNOWN:
            return cls()
        if mode is GeminiAuthMode.OAUTH:
            return cls(auth_mode=mode)
        url_key = _GEMINI_GATEWAY_URL if mode is GeminiAuthMode.PACKYCODE else _GEMINI_GENERIC_URL
        return cls(
            auth_mode=mode,
            api_key=_str_value(env, _GEMINI_KEY),
            base_url=_str_value(env, url_key),
        )

    def edit(self, submitted: Mapping[str, str]) -> "GeminiSettings":
        _check_fields(type(self), submitted)
        mode = self.auth_mode
        if "auth_mode" in submitted:
            try:
                mode = GeminiAuthMode(submitted["auth_mode"].strip().lower())
            except ValueError:
                mode = None
            if mode not in GeminiAuthMode.choices():
                raise InvalidInputError(f"Unknown Gemini auth mode '{submitted['auth_mode']}'.")

        if mode is GeminiAuthMode.OAUTH:
            return GeminiSettings(auth_mode=mode)

        touches_keys = "api_key" in submitted or "base_url" in submitted
        if mode is None:
            if touches_keys:
                raise InvalidInputError("Select a Gemini auth mode before setting an API key.")
            return self.model_copy()

        values: Dict[str, Any] = {"auth_mode": mode}
        if "api_key" in submitted:
            values["api_key"] = require_text("API key", submitted["api_key"], self.api_key)
        if "base_url" in submitted:
            values["base_url"] = merge_text(self.base_url, submitted["base_url"])
        return self.model_copy(update=values)

    def encode(self, base: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        payload = _base_payload(base)
        env = _section(payload, "env")
        if self.auth_mode is None:
            # Undetected layout and no mode selected: leave the env as found.
            pass
        elif self.auth_mode is GeminiAuthMode.OAUTH:
            for key in (_GEMINI_KEY, _GEMINI_GATEWAY_URL, _GEMINI_GENERIC_URL):
                env.pop(key, None)
        else:
            url_key, stale_key = (
                (_GEMINI_GATEWAY_URL, _GEMINI_GENERIC_URL)
                if self.auth_mode is GeminiAuthMode.PACKYCODE
                else (_GEMINI_GENERIC_URL, _GEMINI_GATEWAY_URL)
            )
            set_or_remove(env, _GEMINI_KEY, self.api_key)
            set_or_remove(env, url_key, self.base_url)
            env.pop(stale_key, None)
        payload["env"] = env
        config = payload.get("config")
        payload["config"] = dict(config) if isinstance(config, Mapping) else {}
        return payload

    @property
    def secret(self) -> Optional[str]:
        return self.api_key

    @property
    def endpoint(self) -> Optional[str]:
        return self.base_url

    @property
    def model_override(self) -> Optional[str]:
        return None


Settings = Annotated[
    Union[ClaudeSettings, CodexSettings, GeminiSettings],
    Field(discriminator="kind"),
]

_CODECS: Dict[AppType, type] = {
    AppType.CLAUDE: ClaudeSettings,
    AppType.CODEX: CodexSettings,
    AppType.GEMINI: GeminiSettings,
}


def settings_model_for(app_type: AppType) -> type:
    """Return the settings model class for a tool family."""
    return _CODECS[AppType(app_type)]


def decode_settings(app_type: AppType, payload: Optional[Mapping[str, Any]]) -> Settings:
    """Extract the logical fields of ``payload`` for pre-filling an edit."""
    return settings_model_for(app_type).decode(payload)


def encode_settings(
    settings: Settings, base: Optional[Mapping[str, Any]] = None
) -> Dict[str, Any]:
    """Write ``settings`` on top of ``base`` and return the new payload."""
    return settings.encode(base)


def extract_secret(app_type: AppType, payload: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Primary secret of a payload (token or API key), if any."""
    return decode_settings(app_type, payload).secret


def extract_base_url(app_type: AppType, payload: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Endpoint of a payload. Gemini checks the gateway key before the generic one."""
    if AppType(app_type) is AppType.GEMINI:
        env = _section(payload, "env")
        return _str_value(env, _GEMINI_GATEWAY_URL) or _str_value(env, _GEMINI_GENERIC_URL)
    return decode_settings(app_type, payload).endpoint


def build_settings_config(
    app_type: AppType,
    submitted: Mapping[str, str],
    base: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Apply submitted field values to ``base`` for ``app_type``.

    Fields missing from ``submitted`` keep their stored values. Raises
    ``ValidationError`` for a malformed Codex config block and
    ``InvalidInputError`` for a blank API key.
    """
    current = decode_settings(app_type, base)
    updated = current.edit(submitted)
    payload = encode_settings(updated, base)
    logger.debug(
        "[schema] Built settings payload",
        extra={"app_type": AppType(app_type).value, "fields": sorted(submitted)},
    )
    return payload


__all__ = [
    "ClaudeSettings",
    "CodexSettings",
    "DEFAULT_CODEX_CONFIG",
    "GeminiAuthMode",
    "GeminiSettings",
    "PACKYCODE_MARKER",
    "Settings",
    "build_settings_config",
    "decode_settings",
    "default_gemini_auth_choice",
    "detect_gemini_auth_mode",
    "encode_settings",
    "extract_base_url",
    "extract_secret",
    "settings_model_for",
    "validate_config_toml",
]
