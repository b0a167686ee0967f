"""Native driver adapters."""

from .base import Connection, Extension, ResultCursor
from .mysql import PyMySQLExtension

__all__ = [
    "Connection",
    "Extension",
    "ResultCursor",
    "PyMySQLExtension",
    "create_extension",
]


def create_extension(driver: str = "pymysql") -> Extension:
    """Factory function to create the adapter for a native driver.

    Args:
        driver: Driver name

    Returns:
        Extension instance for the driver

    Raises:
        ValueError: If the driver is not supported
    """
    if driver == "pymysql":
        return PyMySQLExtension()
    raise ValueError(
        f"Unsupported database driver: {driver}\n"
        f"  Supported drivers: pymysql"
    )
