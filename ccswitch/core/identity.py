"""Provider id generation."""

from __future__ import annotations

from typing import Iterable

# Base used when a name has no characters that survive normalization.
EMPTY_ID_BASE = "-"


def normalize_provider_name(name: str) -> str:
    """Lowercase ``name`` and turn it into a kebab-style id base.

    Alphanumerics, ``-`` and ``_`` are kept; anything else becomes ``-``.
    Leading and trailing dashes are stripped.
    """
    chars = [c if c.isalnum() or c in "-_" else "-" for c in name.lower()]
    return "".join(chars).strip("-")


def generate_provider_id(name: str, existing_ids: Iterable[str]) -> str:
    """Derive a unique, deterministic id for ``name``.

    >>> generate_provider_id("Open AI Mirror", [])
    'open-ai-mirror'
    >>> generate_provider_id("Open AI Mirror", ["open-ai-mirror"])
    'open-ai-mirror-1'
    """
    taken = set(existing_ids)
    base = normalize_provider_name(name) or EMPTY_ID_BASE
    if base not in taken:
        return base

    counter = 1
    while True:
        candidate = f"{base}-{counter}"
        if candidate not in taken:
            return candidate
        counter += 1


__all__ = ["EMPTY_ID_BASE", "generate_provider_id", "normalize_provider_name"]
