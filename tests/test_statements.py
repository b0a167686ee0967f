"""Tests for schema change detection."""

from __future__ import annotations

import pytest

from mydbi.database.statements import (
    SchemaChange,
    detect_database_switch,
    detect_schema_changes,
    is_schema_change,
    split_qualified,
)


@pytest.mark.parametrize(
    ("query", "expected"),
    [
        ("CREATE TABLE users (id INT)", [SchemaChange("CREATE", None, "users")]),
        ("create table if not exists `shop`.`users` (id int)", [SchemaChange("CREATE", "shop", "users")]),
        ("ALTER TABLE shop.users ADD COLUMN age INT", [SchemaChange("ALTER", "shop", "users")]),
        ("TRUNCATE orders", [SchemaChange("TRUNCATE", None, "orders")]),
        ("CREATE UNIQUE INDEX idx_email ON users (email)", [SchemaChange("INDEX", None, "users")]),
        ("DROP INDEX idx_email ON `shop`.`users`", [SchemaChange("INDEX", "shop", "users")]),
        ("CREATE OR REPLACE VIEW v_active AS SELECT 1", [SchemaChange("VIEW", None, "v_active")]),
        ("DROP DATABASE IF EXISTS `shop`", [SchemaChange("DATABASE", "shop", None)]),
    ],
)
def test_detects_single_target(query: str, expected: list[SchemaChange]) -> None:
    assert detect_schema_changes(query) == expected


def test_drop_table_list() -> None:
    assert detect_schema_changes("DROP TABLE IF EXISTS users, `shop`.`orders`;") == [
        SchemaChange("DROP", None, "users"),
        SchemaChange("DROP", "shop", "orders"),
    ]


def test_rename_table_touches_both_names() -> None:
    assert detect_schema_changes("RENAME TABLE old_users TO users, a TO b") == [
        SchemaChange("RENAME", None, "old_users"),
        SchemaChange("RENAME", None, "users"),
        SchemaChange("RENAME", None, "a"),
        SchemaChange("RENAME", None, "b"),
    ]


def test_leading_comments_are_ignored() -> None:
    assert detect_schema_changes("/* migration 12 */\n  ALTER TABLE users DROP COLUMN age") == [
        SchemaChange("ALTER", None, "users"),
    ]


@pytest.mark.parametrize(
    "query",
    [
        "SELECT * FROM users",
        "UPDATE users SET name = 'CREATE TABLE x'",
        "INSERT INTO audit VALUES ('DROP TABLE users')",
        "",
        "   ",
    ],
)
def test_data_statements_are_not_schema_changes(query: str) -> None:
    assert not is_schema_change(query)


def test_split_qualified_unquotes_backticks() -> None:
    assert split_qualified("`my``db`.`tbl`") == ("my`db", "tbl")
    assert split_qualified("tbl") == (None, "tbl")


@pytest.mark.parametrize(
    ("query", "expected"),
    [
        ("USE shop", "shop"),
        ("use `my``db`;", "my`db"),
        ("/* switch */ USE other", "other"),
        ("USE shop; DROP TABLE users", None),
        ("SELECT 'USE shop'", None),
    ],
)
def test_detect_database_switch(query: str, expected: str | None) -> None:
    assert detect_database_switch(query) == expected
