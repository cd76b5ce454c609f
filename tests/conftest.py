"""Pytest configuration and fixtures for all tests."""

from typing import Optional

import pytest

from ccswitch.core.config import AppType, MemoryBackend, Provider, StoreSnapshot
from ccswitch.core.store import ProfileStore


class FailingBackend(MemoryBackend):
    """Memory backend whose saves fail while ``fail`` is set."""

    def __init__(self, snapshot: Optional[StoreSnapshot] = None) -> None:
        super().__init__(snapshot)
        self.fail = False

    def save(self, snapshot: StoreSnapshot) -> None:
        if self.fail:
            raise OSError("disk full")
        super().save(snapshot)


@pytest.fixture
def backend():
    return FailingBackend()


@pytest.fixture
def store(backend):
    return ProfileStore.open(backend)


@pytest.fixture
def clock():
    """Deterministic clock returning 1000, 1001, ..."""
    ticks = iter(range(1000, 100000))
    return lambda: next(ticks)


def make_provider(
    provider_id: str,
    app_type: AppType = AppType.CLAUDE,
    name: Optional[str] = None,
    **fields,
) -> Provider:
    settings = fields.pop(
        "settings_config",
        {"env": {"ANTHROPIC_AUTH_TOKEN": "sk-ant-test-0000", "ANTHROPIC_BASE_URL": "https://x.example"}},
    )
    return Provider(
        id=provider_id,
        name=name or provider_id,
        app_type=app_type,
        settings_config=settings,
        created_at=fields.pop("created_at", 1700000000),
        **fields,
    )


@pytest.fixture
def provider_factory():
    return make_provider
