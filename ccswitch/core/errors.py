"""Error types shared by the profile engine, the store and the flows."""

from __future__ import annotations

from typing import Optional


class ProfileError(Exception):
    """User-facing profile failure with a stable error code."""

    def __init__(self, error_code: str, message: str) -> None:
        super().__init__(message)
        self.error_code = error_code


class InvalidInputError(ProfileError):
    """Empty required field, bad sort index or cross-partition activation."""

    def __init__(self, message: str) -> None:
        super().__init__("invalid_input", message)


class ValidationError(ProfileError):
    """A structured text block failed to parse.

    ``fallback`` holds the value the caller should offer instead: the previous
    block when editing, or the built-in default.
    """

    def __init__(self, message: str, *, fallback: Optional[str] = None) -> None:
        super().__init__("validation_error", message)
        self.fallback = fallback


class NotFoundError(ProfileError):
    """The operation targets a provider id that does not exist."""

    def __init__(self, message: str) -> None:
        super().__init__("not_found", message)


class ConflictError(ProfileError):
    """A provider with the same id already exists in the partition."""

    def __init__(self, message: str) -> None:
        super().__init__("conflict", message)


class PersistenceError(ProfileError):
    """Writing the store to its backend failed; the mutation was rolled back."""

    def __init__(self, message: str) -> None:
        super().__init__("persistence_error", message)


class Cancelled(Exception):
    """The user aborted an interactive step. Not a failure."""


class ProfileInvariantError(RuntimeError):
    """A caller broke an invariant the store relies on (programming error)."""


__all__ = [
    "Cancelled",
    "ConflictError",
    "InvalidInputError",
    "NotFoundError",
    "PersistenceError",
    "ProfileError",
    "ProfileInvariantError",
    "ValidationError",
]
