"""Tests for the fetch_all reducers."""

from __future__ import annotations

import pytest

from mydbi.database.errors import QueryFailed
from mydbi.database.interface import DatabaseInterface
from mydbi.database.result import FETCH_NUM, KeySelector, Result

from conftest import FakeConnection, FakeCursor, rows_reply

USERS = rows_reply(
    ["id", "group", "name"],
    (1, "admin", "Ann"),
    (2, "admin", "Bo"),
    (3, "dev", "Cy"),
)


def _users() -> Result:
    return Result(FakeCursor(USERS))


def test_single_column_result_flattens_to_scalars() -> None:
    result = Result(FakeCursor(rows_reply(["name"], ("Ann",), ("Bo",))))

    assert result.fetch_all() == ["Ann", "Bo"]


def test_single_column_result_through_facade(dbi: DatabaseInterface, link: FakeConnection) -> None:
    link.script("SELECT name FROM users", rows_reply(["name"], ("Ann",), ("Bo",)))

    assert dbi.fetch_all("SELECT name FROM users") == ["Ann", "Bo"]


def test_multi_column_result_without_key_is_list_of_mappings() -> None:
    rows = _users().fetch_all()

    assert rows[0] == {"id": 1, "group": "admin", "name": "Ann"}
    assert len(rows) == 3


def test_group_then_append_builds_lists() -> None:
    grouped = Result(FakeCursor(rows_reply(["group", "name"], ("admin", "Ann"), ("admin", "Bo")))).fetch_all(
        ["group", None], "name"
    )

    assert grouped == {"admin": ["Ann", "Bo"]}


def test_group_then_append_with_several_groups() -> None:
    assert _users().fetch_all(["group", None], "name") == {"admin": ["Ann", "Bo"], "dev": ["Cy"]}


def test_scalar_name_key_maps_to_rows() -> None:
    by_id = _users().fetch_all("id")

    assert by_id[3] == {"id": 3, "group": "dev", "name": "Cy"}


def test_scalar_position_key_maps_to_positional_rows() -> None:
    by_id = _users().fetch_all(0)

    assert by_id[2] == [2, "admin", "Bo"]


def test_key_with_value_selector() -> None:
    assert _users().fetch_all("id", "name") == {1: "Ann", 2: "Bo", 3: "Cy"}


def test_nested_keys_are_built_left_to_right() -> None:
    nested = _users().fetch_all(["group", "name"], "id")

    assert nested == {"admin": {"Ann": 1, "Bo": 2}, "dev": {"Cy": 3}}


def test_append_only_key_lists_values() -> None:
    assert _users().fetch_all([None], "name") == ["Ann", "Bo", "Cy"]


def test_leading_append_wraps_each_row() -> None:
    assert _users().fetch_all([KeySelector.append(), "name"], "id") == [{"Ann": 1}, {"Bo": 2}, {"Cy": 3}]


def test_explicit_selectors_mix_names_and_positions() -> None:
    assert _users().fetch_all([KeySelector.by_index(1), KeySelector.by_name("id")], 2) == {
        "admin": {1: "Ann", 2: "Bo"},
        "dev": {3: "Cy"},
    }


def test_value_selector_without_key_lists_values() -> None:
    assert _users().fetch_all(None, "name") == ["Ann", "Bo", "Cy"]


def test_unknown_column_raises_key_error() -> None:
    with pytest.raises(KeyError, match="missing"):
        _users().fetch_all("missing")


def test_boolean_selector_is_rejected() -> None:
    with pytest.raises(TypeError):
        KeySelector.coerce(True)


def test_fetch_all_returns_empty_list_on_failure(dbi: DatabaseInterface, link: FakeConnection) -> None:
    link.fail("SELECT nope", QueryFailed("Unknown column 'nope'", 1054))

    assert dbi.fetch_all("SELECT nope", "id") == []


def test_fetch_single_row_modes(dbi: DatabaseInterface, link: FakeConnection) -> None:
    link.script("SELECT id, name FROM users LIMIT 1", rows_reply(["id", "name"], (1, "Ann")))

    assert dbi.fetch_single_row("SELECT id, name FROM users LIMIT 1") == {"id": 1, "name": "Ann"}
    assert dbi.fetch_single_row("SELECT id, name FROM users LIMIT 1", FETCH_NUM) == [1, "Ann"]


def test_fetch_value_by_name_and_without_rows(dbi: DatabaseInterface, link: FakeConnection) -> None:
    link.script("SELECT id, name FROM users LIMIT 1", rows_reply(["id", "name"], (1, "Ann")))
    link.script("SELECT id FROM empty", rows_reply(["id"]))

    assert dbi.fetch_value("SELECT id, name FROM users LIMIT 1", "name") == "Ann"
    assert dbi.fetch_value("SELECT id FROM empty") is None
