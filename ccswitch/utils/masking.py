"""Display-safe rendering of secrets."""

from __future__ import annotations

from typing import Optional

MASK_PLACEHOLDER = "***"
MASK_SEPARATOR = "…"
_VISIBLE_CHARS = 4


def mask_secret(secret: Optional[str]) -> str:
    """Return ``abcd…wxyz`` for secrets longer than 8 chars, else ``***``."""
    if not secret or len(secret) <= 2 * _VISIBLE_CHARS:
        return MASK_PLACEHOLDER
    return f"{secret[:_VISIBLE_CHARS]}{MASK_SEPARATOR}{secret[-_VISIBLE_CHARS:]}"


__all__ = ["MASK_PLACEHOLDER", "MASK_SEPARATOR", "mask_secret"]
