"""mydbi - typed MySQL access layer with metadata caching."""

from mydbi.config import Settings, load_settings
from mydbi.constants import PACKAGE_VERSION
from mydbi.database import DatabaseInterface, Role, ServerParams

__version__ = PACKAGE_VERSION

__all__ = [
    "DatabaseInterface",
    "Role",
    "ServerParams",
    "Settings",
    "load_settings",
    "__version__",
]
