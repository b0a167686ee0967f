"""Runtime settings loaded from the environment."""

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Mapping, Optional

from mydbi.constants import DEFAULT_CONNECT_TIMEOUT, MAX_TABLE_LIST

if TYPE_CHECKING:
    from mydbi.database.connection import ServerParams

# Environment variable holding the DSN of each connection role
DSN_VARIABLES = {
    "user": "MYDBI_DSN",
    "control": "MYDBI_CONTROL_DSN",
    "auxiliary": "MYDBI_AUXILIARY_DSN",
}

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass(frozen=True)
class Settings:
    """Behavior switches of the access layer.

    Attributes:
        natural_order: Sort table and database names numerically aware
            (``t2`` before ``t10``) instead of lexicographically
        disable_is: Never query information_schema; always use SHOW statements
        max_table_list: Page size used when a listing asks for "the configured limit"
        session_time_zone: Time zone applied to user sessions after connecting
        connect_timeout: Seconds the driver waits for the server at connect time
    """

    natural_order: bool = True
    disable_is: bool = False
    max_table_list: int = MAX_TABLE_LIST
    session_time_zone: str = ""
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT


def _env_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    value = environ.get(name)
    if value is None or not value.strip():
        return default
    value = value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(
        f"Invalid boolean for {name}: {value!r}\n"
        f"  Hint: Use one of {', '.join(_TRUE_VALUES + _FALSE_VALUES)}"
    )


def _env_number(environ: Mapping[str, str], name: str, default, cast):
    value = environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        number = cast(value.strip())
    except ValueError:
        raise ValueError(f"Invalid number for {name}: {value!r}") from None
    if number <= 0:
        raise ValueError(f"{name} must be positive, got {value!r}")
    return number


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from ``MYDBI_*`` environment variables.

    Args:
        environ: Mapping to read instead of ``os.environ``

    Returns:
        Settings with defaults for every unset variable

    Raises:
        ValueError: If a variable holds a malformed value
    """
    if environ is None:
        environ = os.environ

    return Settings(
        natural_order=_env_bool(environ, "MYDBI_NATURAL_ORDER", True),
        disable_is=_env_bool(environ, "MYDBI_DISABLE_IS", False),
        max_table_list=_env_number(environ, "MYDBI_MAX_TABLE_LIST", MAX_TABLE_LIST, int),
        session_time_zone=environ.get("MYDBI_SESSION_TIME_ZONE", "").strip(),
        connect_timeout=_env_number(environ, "MYDBI_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT, float),
    )


def server_params_from_env(
    role: str = "user",
    environ: Optional[Mapping[str, str]] = None,
    settings: Optional[Settings] = None,
) -> Optional["ServerParams"]:
    """Connection parameters for ``role`` from its DSN variable, if set.

    Args:
        role: Role name or ``Role`` member (user, control, auxiliary)
        environ: Mapping to read instead of ``os.environ``
        settings: Settings supplying the connect timeout
    """
    from mydbi.database.connection import ServerParams

    if environ is None:
        environ = os.environ
    dsn = environ.get(DSN_VARIABLES[getattr(role, "value", role)], "").strip()
    if not dsn:
        return None
    timeout = settings.connect_timeout if settings else DEFAULT_CONNECT_TIMEOUT
    return ServerParams.from_dsn(dsn, connect_timeout=timeout)
