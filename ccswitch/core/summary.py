"""Display-safe provider summaries.

A summary carries only what the display layer needs. The secret is masked
before it leaves this module, so renderers never see the raw value.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

from ccswitch.core.config import AppType, Provider
from ccswitch.core.schema import CodexSettings, decode_settings, extract_base_url, extract_secret
from ccswitch.utils.masking import mask_secret


class ProviderSummary(BaseModel):
    """Fields shown for one provider."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    app_type: AppType
    website_url: Optional[str] = None
    masked_secret: Optional[str] = None
    base_url: Optional[str] = None
    model: Optional[str] = None
    config_lines: Optional[int] = None
    notes: Optional[str] = None
    sort_index: Optional[int] = None
    active: bool = False


def build_summary(provider: Provider, *, active: bool = False) -> ProviderSummary:
    settings = decode_settings(provider.app_type, provider.settings_config)
    secret = extract_secret(provider.app_type, provider.settings_config)
    config_lines = settings.config_line_count if isinstance(settings, CodexSettings) else None
    return ProviderSummary(
        id=provider.id,
        name=provider.name,
        app_type=provider.app_type,
        website_url=provider.website_url,
        masked_secret=mask_secret(secret) if secret else None,
        base_url=extract_base_url(provider.app_type, provider.settings_config),
        model=settings.model_override,
        config_lines=config_lines,
        notes=provider.notes,
        sort_index=provider.sort_index,
        active=active,
    )


def display_order_key(provider: Provider) -> tuple:
    """Sort by explicit index first, then creation time, then name."""
    return (
        provider.sort_index is None,
        provider.sort_index if provider.sort_index is not None else 0,
        provider.created_at or 0,
        provider.name.lower(),
    )


__all__ = ["ProviderSummary", "build_summary", "display_order_key"]
