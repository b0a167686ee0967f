"""Process-lifetime cache for schema introspection results."""

import enum
from typing import Any, Callable, Optional

from mydbi.database.logging import log_cache_event


class Scope(enum.Enum):
    """Metadata shape held by a cache entry."""

    TABLE_NAMES = "table_names"
    TABLES = "tables"
    TABLE_STATUS = "table_status"
    COLUMNS = "columns"
    COLUMNS_FULL = "columns_full"
    INDEXES = "indexes"
    DATABASES = "databases"


# Scopes describing a whole database rather than a single table
DATABASE_SCOPES = frozenset({Scope.TABLE_NAMES, Scope.TABLES})

CacheKey = tuple[Scope, str, Optional[str]]

_MISSING = object()


class MetadataCache:
    """Memoizes introspection results keyed by ``(scope, database, table)``.

    Entries never expire on their own; they stay valid until a statement
    that changes the structure of their ``(database, table)`` runs and the
    key is invalidated. Invalidating a table also drops the database-wide
    listings of its database, which include that table.
    """

    def __init__(self):
        self._entries: dict[CacheKey, Any] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def get(self, scope: Scope, database: str, table: Optional[str] = None, default: Any = None) -> Any:
        value = self._entries.get((scope, database, table), _MISSING)
        if value is _MISSING:
            self.misses += 1
            log_cache_event("miss", scope.value, database, table)
            return default
        self.hits += 1
        log_cache_event("hit", scope.value, database, table)
        return value

    def set(self, scope: Scope, database: str, table: Optional[str], value: Any) -> None:
        self._entries[(scope, database, table)] = value
        log_cache_event("store", scope.value, database, table)

    def get_or_load(
        self,
        scope: Scope,
        database: str,
        table: Optional[str],
        loader: Callable[[], Any],
    ) -> Any:
        """Return the cached value, running ``loader`` and storing its result on a miss.

        A loader result of None (failed introspection) is returned without
        being stored, so the next call retries.
        """
        value = self.get(scope, database, table, default=_MISSING)
        if value is not _MISSING:
            return value
        value = loader()
        if value is not None:
            self.set(scope, database, table, value)
        return value

    def invalidate(self, database: str, table: Optional[str] = None) -> int:
        """Drop the entries a structure change of ``database.table`` made stale.

        Args:
            database: Database whose metadata changed
            table: Changed table, or None when the whole database changed

        Returns:
            Number of entries removed
        """
        stale = []
        for key in self._entries:
            scope, key_database, key_table = key
            if scope is Scope.DATABASES:
                if table is None:
                    stale.append(key)
                continue
            if key_database != database:
                continue
            if table is None or key_table == table or (key_table is None and scope in DATABASE_SCOPES):
                stale.append(key)

        for key in stale:
            del self._entries[key]

        log_cache_event("invalidate", "*", database, table)
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
        log_cache_event("clear", "*", "*")
