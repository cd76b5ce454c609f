"""Field-by-field reconciliation of edited values against a stored provider.

Every optional field follows the same tri-state rule:

* not asked in this session (``UNSET``) -> the stored value is kept;
* submitted blank -> the field is removed;
* submitted non-blank -> the trimmed value is stored.

A pre-filled value that is submitted unchanged therefore round-trips to the
same stored value, and clearing a field removes the key instead of storing an
empty string.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, MutableMapping, Optional, Union

from ccswitch.core.config import AppType, Provider
from ccswitch.core.errors import InvalidInputError, ProfileInvariantError


class _Unset:
    """Marker for a field the current edit session did not touch."""

    _instance: Optional["_Unset"] = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()

FieldInput = Union[str, _Unset]


def merge_text(current: Optional[str], submitted: FieldInput) -> Optional[str]:
    """Apply the tri-state rule to a single text field."""
    if isinstance(submitted, _Unset):
        return current
    trimmed = submitted.strip()
    return trimmed or None


def parse_sort_index(raw: str) -> Optional[int]:
    """Parse a sort index; blank means no index."""
    value = raw.strip()
    if not value:
        return None
    digits = value[1:] if value.startswith("+") else value
    if not (digits.isascii() and digits.isdigit()):
        raise InvalidInputError(f"Sort index must be a non-negative integer, got '{value}'.")
    return int(digits)


def merge_sort_index(current: Optional[int], submitted: FieldInput) -> Optional[int]:
    if isinstance(submitted, _Unset):
        return current
    return parse_sort_index(submitted)


def set_or_remove(target: MutableMapping[str, Any], key: str, value: Optional[str]) -> None:
    """Store ``value`` under ``key``, or drop the key when the value is cleared."""
    if value is None:
        target.pop(key, None)
    else:
        target[key] = value


def require_text(label: str, submitted: FieldInput, current: Optional[str]) -> str:
    """Merge a required text field; a blank result is rejected."""
    value = merge_text(current, submitted)
    if not value:
        raise InvalidInputError(f"{label} is required.")
    return value


@dataclass
class ProviderDraft:
    """Raw values collected for the flat provider fields in one session.

    Family-specific settings travel separately in ``settings`` keyed by the
    logical field name of the family's settings model.
    """

    name: FieldInput = UNSET
    website_url: FieldInput = UNSET
    notes: FieldInput = UNSET
    sort_index: FieldInput = UNSET
    settings: Dict[str, str] = field(default_factory=dict)


def merge_provider(
    existing: Optional[Provider],
    draft: ProviderDraft,
    *,
    app_type: AppType,
    provider_id: str,
    settings_config: Dict[str, Any],
    timestamp: int,
) -> Provider:
    """Build the candidate provider for an add (``existing`` is None) or an edit.

    Fields the draft does not mention, including ``icon``, ``icon_color`` and
    ``category``, are carried over from ``existing`` unchanged.
    """
    if existing is not None:
        if existing.app_type != app_type:
            raise ProfileInvariantError(
                f"Provider '{existing.id}' belongs to '{existing.app_type.value}', "
                f"not '{app_type.value}'."
            )
        if existing.id != provider_id:
            raise ProfileInvariantError(
                f"Provider id is immutable ('{existing.id}' -> '{provider_id}')."
            )
        return existing.model_copy(
            update={
                "name": require_text("Provider name", draft.name, existing.name),
                "website_url": merge_text(existing.website_url, draft.website_url),
                "notes": merge_text(existing.notes, draft.notes),
                "sort_index": merge_sort_index(existing.sort_index, draft.sort_index),
                "settings_config": settings_config,
                "updated_at": timestamp,
            },
            deep=True,
        )

    return Provider(
        id=provider_id,
        name=require_text("Provider name", draft.name, None),
        app_type=app_type,
        settings_config=settings_config,
        website_url=merge_text(None, draft.website_url),
        notes=merge_text(None, draft.notes),
        sort_index=merge_sort_index(None, draft.sort_index),
        created_at=timestamp,
    )


__all__ = [
    "FieldInput",
    "ProviderDraft",
    "UNSET",
    "merge_provider",
    "merge_sort_index",
    "merge_text",
    "parse_sort_index",
    "require_text",
    "set_or_remove",
]
