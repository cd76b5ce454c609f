"""Shared, concurrency-safe provider store.

The store owns one ``StoreSnapshot`` for the whole process. Reads take the
shared side of a reader/writer lock; every mutation takes the exclusive side,
applies the change, saves through the backend and rolls the in-memory state
back if the save fails. Nothing here prompts the user, so the lock is never
held across an interactive step.
"""

from __future__ import annotations

from typing import Callable, List, Optional, TypeVar

from ccswitch.core.config import AppType, Provider, StoreBackend, StoreSnapshot
from ccswitch.core.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    PersistenceError,
    ProfileInvariantError,
)
from ccswitch.core.identity import generate_provider_id
from ccswitch.utils.log import get_logger
from ccswitch.utils.rwlock import ReadWriteLock

logger = get_logger()

Mutator = Callable[[Provider], Provider]
T = TypeVar("T")


class ProfileStore:
    """Providers per tool family plus the active provider of each family."""

    def __init__(self, backend: StoreBackend, snapshot: Optional[StoreSnapshot] = None) -> None:
        self._backend = backend
        self._snapshot = snapshot if snapshot is not None else StoreSnapshot()
        self._lock = ReadWriteLock()

    @classmethod
    def open(cls, backend: StoreBackend) -> "ProfileStore":
        """Load the store once at startup."""
        return cls(backend, backend.load())

    # Reads

    def get(self, app_type: AppType, provider_id: str) -> Provider:
        with self._lock.read_locked():
            provider = self._snapshot.partition(app_type).providers.get(provider_id)
            if provider is None:
                raise NotFoundError(
                    f"Provider '{provider_id}' does not exist for {AppType(app_type).value}."
                )
            return provider.model_copy(deep=True)

    def list(self, app_type: AppType) -> List[Provider]:
        """Providers of one family in insertion order."""
        with self._lock.read_locked():
            return [
                provider.model_copy(deep=True)
                for provider in self._snapshot.partition(app_type).providers.values()
            ]

    def ids(self, app_type: AppType) -> List[str]:
        with self._lock.read_locked():
            return list(self._snapshot.partition(app_type).providers)

    def get_active(self, app_type: AppType) -> Optional[Provider]:
        with self._lock.read_locked():
            partition = self._snapshot.partition(app_type)
            provider = partition.providers.get(partition.current) if partition.current else None
            return provider.model_copy(deep=True) if provider else None

    def active_id(self, app_type: AppType) -> Optional[str]:
        with self._lock.read_locked():
            return self._snapshot.partition(app_type).current or None

    def snapshot(self) -> StoreSnapshot:
        """Deep copy of the whole store, e.g. for export."""
        with self._lock.read_locked():
            return self._snapshot.model_copy(deep=True)

    # Mutations

    def add(self, provider: Provider, *, activate: bool = False) -> Provider:
        """Insert a new provider; ``ConflictError`` if its id is taken."""

        def _add(snapshot: StoreSnapshot) -> Provider:
            partition = snapshot.partition(provider.app_type)
            if provider.id in partition.providers:
                raise ConflictError(
                    f"Provider '{provider.id}' already exists for {provider.app_type.value}."
                )
            stored = provider.model_copy(deep=True)
            partition.providers[stored.id] = stored
            if activate:
                partition.current = stored.id
            return stored.model_copy(deep=True)

        return self._commit(_add, "add", provider.app_type, provider.id)

    def create(self, provider: Provider, *, activate: bool = False) -> Provider:
        """Insert a new provider under an id derived from its name.

        The id is chosen while the write lock is held, so two concurrent
        creates with the same name get ``name`` and ``name-1`` instead of a
        conflict. ``provider.id`` is ignored.
        """

        def _create(snapshot: StoreSnapshot) -> Provider:
            partition = snapshot.partition(provider.app_type)
            provider_id = generate_provider_id(provider.name, partition.providers)
            stored = provider.model_copy(update={"id": provider_id}, deep=True)
            partition.providers[provider_id] = stored
            if activate:
                partition.current = provider_id
            return stored.model_copy(deep=True)

        return self._commit(_create, "create", provider.app_type, provider.name)

    def update(self, app_type: AppType, provider_id: str, mutator: Mutator) -> Provider:
        """Replace a provider with ``mutator(copy_of_current)``.

        The mutator must keep ``id`` and ``app_type``; changing either is a
        programming error and raises ``ProfileInvariantError``.
        """

        def _update(snapshot: StoreSnapshot) -> Provider:
            partition = snapshot.partition(app_type)
            current = partition.providers.get(provider_id)
            if current is None:
                raise NotFoundError(
                    f"Provider '{provider_id}' does not exist for {AppType(app_type).value}."
                )
            updated = mutator(current.model_copy(deep=True))
            if updated.id != current.id or updated.app_type != current.app_type:
                raise ProfileInvariantError(
                    f"Provider '{provider_id}' cannot change its id or app type "
                    f"(got id='{updated.id}', app_type='{updated.app_type.value}')."
                )
            partition.providers[provider_id] = updated.model_copy(deep=True)
            return updated

        return self._commit(_update, "update", app_type, provider_id)

    def remove(self, app_type: AppType, provider_id: str) -> Provider:
        """Delete a provider, clearing the active pointer if it referenced it."""

        def _remove(snapshot: StoreSnapshot) -> Provider:
            partition = snapshot.partition(app_type)
            removed = partition.providers.pop(provider_id, None)
            if removed is None:
                raise NotFoundError(
                    f"Provider '{provider_id}' does not exist for {AppType(app_type).value}."
                )
            if partition.current == provider_id:
                partition.current = ""
            return removed

        return self._commit(_remove, "remove", app_type, provider_id)

    def set_active(self, app_type: AppType, provider_id: str) -> Provider:
        """Make ``provider_id`` the active provider of ``app_type``."""
        app_type = AppType(app_type)

        def _set_active(snapshot: StoreSnapshot) -> Provider:
            partition = snapshot.partition(app_type)
            provider = partition.providers.get(provider_id)
            if provider is None:
                for other in AppType:
                    if other is not app_type and provider_id in snapshot.partition(other).providers:
                        raise InvalidInputError(
                            f"Provider '{provider_id}' belongs to {other.value}, "
                            f"not {app_type.value}."
                        )
                raise NotFoundError(
                    f"Provider '{provider_id}' does not exist for {app_type.value}."
                )
            partition.current = provider_id
            return provider.model_copy(deep=True)

        return self._commit(_set_active, "set_active", app_type, provider_id)

    def _commit(
        self,
        mutation: Callable[[StoreSnapshot], T],
        action: str,
        app_type: AppType,
        provider_id: str,
    ) -> T:
        context = {"action": action, "app_type": AppType(app_type).value, "provider_id": provider_id}
        with self._lock.write_locked():
            backup = self._snapshot.model_copy(deep=True)
            try:
                result = mutation(self._snapshot)
            except BaseException:
                self._snapshot = backup
                raise
            try:
                self._backend.save(self._snapshot)
            except OSError as exc:
                self._snapshot = backup
                logger.warning(
                    "[store] Failed to persist provider store: %s: %s",
                    type(exc).__name__,
                    exc,
                    extra=context,
                )
                raise PersistenceError(f"Failed to save provider store: {exc}") from exc
        logger.debug("[store] Committed provider change", extra=context)
        return result


__all__ = ["Mutator", "ProfileStore"]
