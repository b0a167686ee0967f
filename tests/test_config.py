"""Tests for environment settings."""

from __future__ import annotations

import pytest

from mydbi.config import Settings, load_settings, server_params_from_env
from mydbi.constants import DEFAULT_CONNECT_TIMEOUT, MAX_TABLE_LIST
from mydbi.database.connection import Role


def test_load_settings_defaults_when_unset() -> None:
    assert load_settings({}) == Settings()
    assert Settings().max_table_list == MAX_TABLE_LIST


def test_load_settings_reads_values() -> None:
    settings = load_settings({
        "MYDBI_NATURAL_ORDER": "off",
        "MYDBI_DISABLE_IS": "YES",
        "MYDBI_MAX_TABLE_LIST": "50",
        "MYDBI_SESSION_TIME_ZONE": " +02:00 ",
        "MYDBI_CONNECT_TIMEOUT": "2.5",
    })

    assert settings == Settings(
        natural_order=False,
        disable_is=True,
        max_table_list=50,
        session_time_zone="+02:00",
        connect_timeout=2.5,
    )


def test_load_settings_rejects_malformed_boolean() -> None:
    with pytest.raises(ValueError, match="MYDBI_DISABLE_IS"):
        load_settings({"MYDBI_DISABLE_IS": "maybe"})


@pytest.mark.parametrize("value", ["0", "-5", "many"])
def test_load_settings_rejects_bad_numbers(value: str) -> None:
    with pytest.raises(ValueError, match="MYDBI_MAX_TABLE_LIST"):
        load_settings({"MYDBI_MAX_TABLE_LIST": value})


def test_load_settings_reads_process_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MYDBI_NATURAL_ORDER", "0")

    assert load_settings().natural_order is False


def test_server_params_from_role_dsn() -> None:
    environ = {"MYDBI_DSN": "mysql://app:pw@db.local:3307/shop?charset=utf8"}

    params = server_params_from_env(Role.USER, environ)

    assert params.user == "app"
    assert params.password == "pw"
    assert params.port == 3307
    assert params.charset == "utf8"
    assert params.connect_timeout == DEFAULT_CONNECT_TIMEOUT


def test_server_params_accepts_role_names_and_timeout() -> None:
    environ = {"MYDBI_AUXILIARY_DSN": "mysql://aux@localhost"}

    params = server_params_from_env("auxiliary", environ, Settings(connect_timeout=3.0))

    assert params.password == ""
    assert params.connect_timeout == 3.0


def test_server_params_missing_dsn() -> None:
    assert server_params_from_env(Role.CONTROL, {}) is None
