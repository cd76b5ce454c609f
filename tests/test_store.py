"""Test the shared provider store."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from ccswitch.core.config import AppType, JsonFileBackend, StoreSnapshot
from ccswitch.core.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    PersistenceError,
    ProfileInvariantError,
)
from ccswitch.core.store import ProfileStore


def test_open_loads_backend_snapshot(backend, provider_factory):
    snapshot = StoreSnapshot()
    snapshot.codex.providers["relay"] = provider_factory("relay", AppType.CODEX, settings_config={})
    backend.save(snapshot)

    store = ProfileStore.open(backend)
    assert store.ids(AppType.CODEX) == ["relay"]
    assert store.ids(AppType.CLAUDE) == []


def test_add_and_get(store, backend, provider_factory):
    stored = store.add(provider_factory("mirror"))

    assert stored.id == "mirror"
    assert store.get(AppType.CLAUDE, "mirror") == stored
    assert store.active_id(AppType.CLAUDE) is None
    assert backend.save_count == 1
    assert backend.load().claude.providers["mirror"] == stored


def test_add_with_activation(store, provider_factory):
    store.add(provider_factory("mirror"), activate=True)
    assert store.active_id(AppType.CLAUDE) == "mirror"
    assert store.get_active(AppType.CLAUDE).id == "mirror"


def test_add_duplicate_id_conflicts(store, backend, provider_factory):
    store.add(provider_factory("mirror"))
    with pytest.raises(ConflictError):
        store.add(provider_factory("mirror", name="Other"))
    assert store.get(AppType.CLAUDE, "mirror").name == "mirror"
    assert backend.save_count == 1


def test_same_id_allowed_in_different_partitions(store, provider_factory):
    store.add(provider_factory("shared"))
    store.add(provider_factory("shared", AppType.GEMINI, settings_config={"env": {}, "config": {}}))
    assert store.ids(AppType.CLAUDE) == ["shared"]
    assert store.ids(AppType.GEMINI) == ["shared"]


def test_get_missing_raises_not_found(store):
    with pytest.raises(NotFoundError) as exc_info:
        store.get(AppType.CLAUDE, "missing")
    assert exc_info.value.error_code == "not_found"


def test_reads_return_copies(store, provider_factory):
    store.add(provider_factory("mirror"))
    copy = store.get(AppType.CLAUDE, "mirror")
    copy.settings_config["env"]["ANTHROPIC_AUTH_TOKEN"] = "tampered"
    copy.name = "Tampered"

    stored = store.get(AppType.CLAUDE, "mirror")
    assert stored.name == "mirror"
    assert stored.settings_config["env"]["ANTHROPIC_AUTH_TOKEN"] == "sk-ant-test-0000"


def test_list_keeps_insertion_order(store, provider_factory):
    for provider_id in ("b", "a", "c"):
        store.add(provider_factory(provider_id))
    assert [p.id for p in store.list(AppType.CLAUDE)] == ["b", "a", "c"]


def test_update_applies_mutator(store, provider_factory):
    store.add(provider_factory("mirror"))
    updated = store.update(
        AppType.CLAUDE, "mirror", lambda p: p.model_copy(update={"notes": "hello"})
    )
    assert updated.notes == "hello"
    assert store.get(AppType.CLAUDE, "mirror").notes == "hello"


def test_update_missing_raises_not_found(store):
    with pytest.raises(NotFoundError):
        store.update(AppType.CLAUDE, "missing", lambda p: p)


def test_update_refuses_id_change(store, backend, provider_factory):
    store.add(provider_factory("mirror"))
    with pytest.raises(ProfileInvariantError):
        store.update(AppType.CLAUDE, "mirror", lambda p: p.model_copy(update={"id": "other"}))
    assert store.ids(AppType.CLAUDE) == ["mirror"]
    assert backend.save_count == 1


def test_update_refuses_app_type_change(store, provider_factory):
    store.add(provider_factory("mirror"))
    with pytest.raises(ProfileInvariantError):
        store.update(
            AppType.CLAUDE, "mirror", lambda p: p.model_copy(update={"app_type": AppType.CODEX})
        )
    assert store.get(AppType.CLAUDE, "mirror").app_type == AppType.CLAUDE


def test_failing_mutator_leaves_store_untouched(store, provider_factory):
    store.add(provider_factory("mirror"))

    def _mutate(provider):
        provider.notes = "half-done"
        raise ValueError("boom")

    with pytest.raises(ValueError):
        store.update(AppType.CLAUDE, "mirror", _mutate)
    assert store.get(AppType.CLAUDE, "mirror").notes is None


def test_remove_clears_active_pointer(store, backend, provider_factory):
    store.add(provider_factory("mirror"), activate=True)
    store.add(provider_factory("other"))

    removed = store.remove(AppType.CLAUDE, "mirror")

    assert removed.id == "mirror"
    assert store.ids(AppType.CLAUDE) == ["other"]
    assert store.active_id(AppType.CLAUDE) is None
    assert backend.load().claude.current == ""


def test_remove_inactive_keeps_pointer(store, provider_factory):
    store.add(provider_factory("mirror"), activate=True)
    store.add(provider_factory("other"))
    store.remove(AppType.CLAUDE, "other")
    assert store.active_id(AppType.CLAUDE) == "mirror"


def test_remove_missing_raises_not_found(store):
    with pytest.raises(NotFoundError):
        store.remove(AppType.CODEX, "missing")


def test_set_active(store, provider_factory):
    store.add(provider_factory("a"), activate=True)
    store.add(provider_factory("b"))
    provider = store.set_active(AppType.CLAUDE, "b")
    assert provider.id == "b"
    assert store.active_id(AppType.CLAUDE) == "b"


def test_set_active_from_other_partition_is_invalid_input(store, provider_factory):
    store.add(provider_factory("relay", AppType.CODEX, settings_config={}))
    with pytest.raises(InvalidInputError):
        store.set_active(AppType.CLAUDE, "relay")
    assert store.active_id(AppType.CLAUDE) is None
    assert store.active_id(AppType.CODEX) is None


def test_set_active_missing_keeps_pointer(store, provider_factory):
    store.add(provider_factory("a"), activate=True)
    with pytest.raises(NotFoundError):
        store.set_active(AppType.CLAUDE, "missing")
    assert store.active_id(AppType.CLAUDE) == "a"


def test_failed_save_rolls_back(store, backend, provider_factory):
    """A persistence failure must leave memory and disk at the previous state."""
    store.add(provider_factory("mirror"), activate=True)
    backend.fail = True

    with pytest.raises(PersistenceError) as exc_info:
        store.add(provider_factory("other"), activate=True)
    assert exc_info.value.error_code == "persistence_error"
    assert "disk full" in str(exc_info.value)

    with pytest.raises(PersistenceError):
        store.remove(AppType.CLAUDE, "mirror")
    with pytest.raises(PersistenceError):
        store.update(AppType.CLAUDE, "mirror", lambda p: p.model_copy(update={"notes": "x"}))

    assert store.ids(AppType.CLAUDE) == ["mirror"]
    assert store.active_id(AppType.CLAUDE) == "mirror"
    assert store.get(AppType.CLAUDE, "mirror").notes is None

    backend.fail = False
    store.add(provider_factory("other"))
    assert store.ids(AppType.CLAUDE) == ["mirror", "other"]


def test_failed_json_save_rolls_back(tmp_path, provider_factory):
    """Saving into a path blocked by a regular file raises PersistenceError."""
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = ProfileStore.open(JsonFileBackend(blocker / "config.json"))

    with pytest.raises(PersistenceError):
        store.add(provider_factory("mirror"))
    assert store.ids(AppType.CLAUDE) == []


def test_snapshot_is_a_copy(store, provider_factory):
    store.add(provider_factory("mirror"))
    snapshot = store.snapshot()
    snapshot.claude.providers.clear()
    assert store.ids(AppType.CLAUDE) == ["mirror"]


def test_concurrent_updates_are_not_lost(store, provider_factory):
    """Read-modify-write mutators run one at a time."""
    store.add(provider_factory("counter", sort_index=0))

    def _increment(_):
        return store.update(
            AppType.CLAUDE,
            "counter",
            lambda p: p.model_copy(update={"sort_index": p.sort_index + 1}),
        )

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(_increment, range(200)))

    assert store.get(AppType.CLAUDE, "counter").sort_index == 200


def test_concurrent_adds_and_reads(store, provider_factory):
    def _add(index):
        store.add(provider_factory(f"p{index}"))
        return len(store.list(AppType.CLAUDE))

    with ThreadPoolExecutor(max_workers=8) as pool:
        counts = list(pool.map(_add, range(50)))

    assert len(store.ids(AppType.CLAUDE)) == 50
    assert all(1 <= count <= 50 for count in counts)


def test_concurrent_updates_on_different_ids_stay_separate(store, provider_factory):
    """Each provider sees exactly its own updates."""
    ids = [f"p{index}" for index in range(4)]
    for provider_id in ids:
        store.add(provider_factory(provider_id, sort_index=0))

    def _touch(provider_id):
        return store.update(
            AppType.CLAUDE,
            provider_id,
            lambda p: p.model_copy(
                update={
                    "sort_index": p.sort_index + 1,
                    "notes": f"{p.id}:{p.sort_index + 1}",
                }
            ),
        )

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(_touch, ids * 25))

    for provider_id in ids:
        provider = store.get(AppType.CLAUDE, provider_id)
        assert provider.sort_index == 25
        assert provider.notes == f"{provider_id}:25"


def test_create_derives_id_from_name(store, provider_factory):
    first = store.create(provider_factory("ignored", name="Relay"), activate=True)
    second = store.create(provider_factory("ignored", name="Relay"))

    assert (first.id, second.id) == ("relay", "relay-1")
    assert store.ids(AppType.CLAUDE) == ["relay", "relay-1"]
    assert store.active_id(AppType.CLAUDE) == "relay"


def test_concurrent_creates_with_same_name_never_conflict(store, provider_factory):
    def _create(_):
        return store.create(provider_factory("ignored", name="Relay")).id

    with ThreadPoolExecutor(max_workers=8) as pool:
        created = list(pool.map(_create, range(20)))

    assert sorted(created) == sorted(["relay"] + [f"relay-{n}" for n in range(1, 20)])
