"""Tests for the metadata cache."""

from __future__ import annotations

from mydbi.database.cache import MetadataCache, Scope


def _populated() -> MetadataCache:
    cache = MetadataCache()
    cache.set(Scope.DATABASES, "", None, ["shop", "crm"])
    cache.set(Scope.TABLE_NAMES, "shop", None, ["orders", "users"])
    cache.set(Scope.TABLES, "shop", None, ["summaries"])
    cache.set(Scope.COLUMNS, "shop", "users", {"id": "int"})
    cache.set(Scope.INDEXES, "shop", "users", ["PRIMARY"])
    cache.set(Scope.COLUMNS, "shop", "orders", {"id": "int"})
    cache.set(Scope.COLUMNS, "crm", "users", {"id": "int"})
    return cache


def test_get_counts_hits_and_misses() -> None:
    cache = MetadataCache()
    cache.set(Scope.COLUMNS, "shop", "users", {"id": "int"})

    assert cache.get(Scope.COLUMNS, "shop", "users") == {"id": "int"}
    assert cache.get(Scope.COLUMNS, "shop", "orders") is None

    assert cache.hits == 1
    assert cache.misses == 1


def test_get_or_load_runs_loader_once() -> None:
    cache = MetadataCache()
    calls = []

    def loader() -> list[str]:
        calls.append(1)
        return ["orders"]

    assert cache.get_or_load(Scope.TABLE_NAMES, "shop", None, loader) == ["orders"]
    assert cache.get_or_load(Scope.TABLE_NAMES, "shop", None, loader) == ["orders"]
    assert len(calls) == 1


def test_get_or_load_does_not_store_failures() -> None:
    cache = MetadataCache()

    assert cache.get_or_load(Scope.TABLE_NAMES, "shop", None, lambda: None) is None

    assert (Scope.TABLE_NAMES, "shop", None) not in cache


def test_empty_results_are_cached() -> None:
    cache = MetadataCache()

    cache.get_or_load(Scope.TABLE_NAMES, "empty", None, lambda: [])

    assert (Scope.TABLE_NAMES, "empty", None) in cache


def test_invalidate_table_drops_only_that_table_and_database_listings() -> None:
    cache = _populated()

    removed = cache.invalidate("shop", "users")

    assert removed == 4
    assert (Scope.COLUMNS, "shop", "users") not in cache
    assert (Scope.INDEXES, "shop", "users") not in cache
    assert (Scope.TABLE_NAMES, "shop", None) not in cache
    assert (Scope.COLUMNS, "shop", "orders") in cache
    assert (Scope.COLUMNS, "crm", "users") in cache
    assert (Scope.DATABASES, "", None) in cache


def test_invalidate_database_drops_its_entries_and_database_list() -> None:
    cache = _populated()

    cache.invalidate("shop")

    assert len(cache) == 1
    assert (Scope.COLUMNS, "crm", "users") in cache


def test_clear_empties_cache() -> None:
    cache = _populated()

    cache.clear()

    assert len(cache) == 0
