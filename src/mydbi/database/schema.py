"""Cached table, column and index introspection."""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Optional, Sequence, Union

from mydbi.config import Settings
from mydbi.database.cache import MetadataCache, Scope
from mydbi.database.connection import Role
from mydbi.database.errors import DbiError
from mydbi.database.queries import (
    backquote,
    get_columns_sql,
    get_sql_for_tables_full,
    get_table_condition,
    get_table_indexes_sql,
    get_table_status_sql,
    status_to_schema_row,
)

if TYPE_CHECKING:
    from mydbi.database.interface import DatabaseInterface

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r'(\d+)')


def natural_sort_key(name: str) -> list:
    """Key comparing embedded digit runs as numbers, case-insensitively.

    ``sorted(["t10", "t2", "t1"], key=natural_sort_key)`` gives
    ``["t1", "t2", "t10"]``.
    """
    return [int(part) if part.isdigit() else part.lower() for part in _DIGITS.split(name)]


def sort_names(names: Sequence[str], natural_order: bool, reverse: bool = False) -> list[str]:
    """Sort names naturally or lexicographically."""
    if natural_order:
        return sorted(names, key=natural_sort_key, reverse=reverse)
    return sorted(names, reverse=reverse)


def _to_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class TableSummary:
    """One table or view of a database listing."""

    name: str
    database: str
    table_type: str = "BASE TABLE"
    engine: Optional[str] = None
    rows: Optional[int] = None
    data_length: int = 0
    index_length: int = 0
    collation: Optional[str] = None
    comment: str = ""

    @property
    def is_view(self) -> bool:
        return self.table_type == "VIEW"

    @property
    def size(self) -> int:
        return self.data_length + self.index_length

    @classmethod
    def from_status(cls, row: dict[str, Any], database: str) -> "TableSummary":
        rows = row.get("Rows")
        return cls(
            name=str(row.get("Name") or row.get("TABLE_NAME")),
            database=database,
            table_type=str(row.get("TABLE_TYPE") or "BASE TABLE"),
            engine=row.get("Engine"),
            rows=_to_int(rows) if rows is not None else None,
            data_length=_to_int(row.get("Data_length")),
            index_length=_to_int(row.get("Index_length")),
            collation=row.get("Collation"),
            comment=str(row.get("Comment") or ""),
        )


@dataclass(frozen=True)
class ColumnDescriptor:
    """One row of ``SHOW [FULL] COLUMNS``."""

    name: str
    type: str
    nullable: bool = True
    key: str = ""
    default: Any = None
    extra: str = ""
    collation: Optional[str] = None
    privileges: Optional[str] = None
    comment: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ColumnDescriptor":
        return cls(
            name=str(row["Field"]),
            type=str(row.get("Type") or ""),
            nullable=str(row.get("Null") or "").upper() == "YES",
            key=str(row.get("Key") or ""),
            default=row.get("Default"),
            extra=str(row.get("Extra") or ""),
            collation=row.get("Collation"),
            privileges=row.get("Privileges"),
            comment=row.get("Comment"),
        )


@dataclass(frozen=True)
class IndexDefinition:
    """An index and the position of each of its columns."""

    name: str
    unique: bool
    index_type: str = "BTREE"
    comment: str = ""
    columns: dict[str, int] = field(default_factory=dict)

    def has_column(self, column: str) -> bool:
        return column in self.columns

    def seq_in_index(self, column: str) -> int:
        return self.columns[column]

    @classmethod
    def from_rows(cls, rows: Sequence[dict[str, Any]]) -> list["IndexDefinition"]:
        """Group ``SHOW INDEXES`` rows (one per column) into indexes."""
        grouped: dict[str, dict[str, Any]] = {}
        for row in rows:
            name = str(row["Key_name"])
            entry = grouped.setdefault(name, {
                "unique": str(row.get("Non_unique")) == "0",
                "index_type": str(row.get("Index_type") or "BTREE"),
                "comment": str(row.get("Index_comment") or ""),
                "columns": {},
            })
            column = row.get("Column_name")
            if column is not None:
                entry["columns"][str(column)] = _to_int(row.get("Seq_in_index"))
        return [cls(name=name, **entry) for name, entry in grouped.items()]


class SchemaIntrospector:
    """Answers table, column and index questions, caching the answers.

    Results are memoized in a ``MetadataCache`` and stay cached until the
    affected ``(database, table)`` is invalidated, either explicitly or by
    the facade noticing a DDL statement.
    """

    def __init__(self, dbi: "DatabaseInterface", cache: MetadataCache, settings: Settings):
        self._dbi = dbi
        self._cache = cache
        self._settings = settings

    @property
    def cache(self) -> MetadataCache:
        return self._cache

    def _natural(self, natural_order: Optional[bool]) -> bool:
        return self._settings.natural_order if natural_order is None else natural_order

    def _fetch(self, sql: str, key=None, value=None, role: Role = Role.USER):
        """Run an introspection query; None when it failed."""
        result = self._dbi.execute(sql, role, buffered=True, cache_affected_rows=False)
        if isinstance(result, DbiError):
            logger.debug(f"Introspection query failed: {result.message}")
            return None
        return result.fetch_all(key, value)

    def get_table_names(
        self,
        database: str,
        natural_order: Optional[bool] = None,
        role: Role = Role.USER,
    ) -> list[str]:
        """Names of the tables and views in ``database`` (``SHOW TABLES``)."""
        if database == "":
            return []

        names = self._cache.get_or_load(
            Scope.TABLE_NAMES,
            database,
            None,
            lambda: self._fetch(f"SHOW TABLES FROM {backquote(database)};", None, 0, role),
        )
        return sort_names(names or [], self._natural(natural_order))

    def get_tables(
        self,
        database: str,
        natural_order: Optional[bool] = None,
        role: Role = Role.USER,
    ) -> list[TableSummary]:
        """Summaries of every table in ``database``, sorted by name.

        Uses information_schema first and falls back to ``SHOW TABLE STATUS``
        when that returns nothing (e.g. unreadable database directories).
        """
        if database == "":
            return []

        tables = self._cache.get_or_load(
            Scope.TABLES,
            database,
            None,
            lambda: self._load_tables(database, role),
        )
        if tables is None:
            return []
        if self._natural(natural_order):
            return sorted(tables, key=lambda table: natural_sort_key(table.name))
        return sorted(tables, key=lambda table: table.name)

    def _load_tables(self, database: str, role: Role) -> Optional[list[TableSummary]]:
        rows = self._tables_full(database, role=role)
        if rows is None:
            return None
        return [TableSummary.from_status(row, database) for row in rows.values()]

    def get_tables_full(
        self,
        database: str,
        table: Union[str, Sequence[str]] = "",
        table_is_group: bool = False,
        limit_offset: int = 0,
        limit_count: Union[int, bool, None] = None,
        sort_by: str = "Name",
        sort_order: str = "ASC",
        table_type: Optional[str] = None,
        natural_order: Optional[bool] = None,
        role: Role = Role.USER,
    ) -> dict[str, dict[str, Any]]:
        """Status rows of the tables of ``database`` keyed by table name.

        Args:
            database: Unquoted database name
            table: Table name, name prefix (``table_is_group``) or list of names
            table_is_group: Treat ``table`` as a name prefix
            limit_offset: Zero-based offset of the first table returned
            limit_count: Number of tables to return; True for the configured limit
            sort_by: Status column to sort by; ``Data_length`` sorts by data + index size
            sort_order: ``ASC`` or ``DESC``
            table_type: ``"table"``, ``"view"`` or None for both
            natural_order: Override the configured natural ordering
            role: Connection to query on

        Returns:
            Ordered mapping of table name to its status row; rows carry both
            ``SHOW TABLE STATUS`` and information_schema column names
        """
        tables = self._tables_full(
            database, table, table_is_group, limit_offset, limit_count,
            sort_by, sort_order, table_type, natural_order, role,
        )
        return tables or {}

    def _tables_full(
        self,
        database: str,
        table: Union[str, Sequence[str]] = "",
        table_is_group: bool = False,
        limit_offset: int = 0,
        limit_count: Union[int, bool, None] = None,
        sort_by: str = "Name",
        sort_order: str = "ASC",
        table_type: Optional[str] = None,
        natural_order: Optional[bool] = None,
        role: Role = Role.USER,
    ) -> Optional[dict[str, dict[str, Any]]]:
        if limit_count is True:
            limit_count = self._settings.max_table_list
        natural = self._natural(natural_order)
        sort_order = sort_order.upper()
        tables: dict[str, dict[str, dict[str, Any]]] = {}

        if not self._settings.disable_is:
            if isinstance(table, (list, tuple)):
                escaped_table = [self._dbi.escape_string(name, role) for name in table]
            else:
                escaped_table = self._dbi.escape_string(table, role)
            where_table = get_table_condition(escaped_table, table_is_group, table_type)
            sql = get_sql_for_tables_full([self._dbi.escape_string(database, role)], where_table)
            sql += f" ORDER BY {backquote(sort_by)} {sort_order}"
            if limit_count:
                sql += f" LIMIT {int(limit_count)} OFFSET {int(limit_offset)}"

            tables = self._fetch(sql, ["TABLE_SCHEMA", "TABLE_NAME"], None, role) or {}
            if (sort_by == "Name" and natural) or sort_by == "Data_length":
                for schema_name, schema_tables in tables.items():
                    tables[schema_name] = self._sort_tables(schema_tables, sort_by, sort_order, natural)

        # If permissions are wrong on even one database directory,
        # information_schema returns no table info for any database
        if not tables:
            each_tables = self._fetch(self._table_status_sql(database, table, table_is_group, table_type, role),
                                      "Name", None, role)
            if each_tables is None:
                return None

            each_tables = self._sort_tables(each_tables, sort_by, sort_order, natural)
            if limit_count:
                names = list(each_tables)[limit_offset:limit_offset + int(limit_count)]
                each_tables = {name: each_tables[name] for name in names}

            tables[database] = {
                name: status_to_schema_row(row, database) for name, row in each_tables.items()
            }

        # Cache table status so single-table probes need no further query
        for schema_name, schema_tables in tables.items():
            for table_name, row in schema_tables.items():
                self._cache.set(Scope.TABLE_STATUS, schema_name, table_name, row)

        if database in tables:
            return tables[database]
        # lower_case_table_names = 1 reports `Test` as `test` in information_schema
        return tables.get(database.lower(), {})

    def _table_status_sql(
        self,
        database: str,
        table: Union[str, Sequence[str]],
        table_is_group: bool,
        table_type: Optional[str],
        role: Role,
    ) -> str:
        if isinstance(table, (list, tuple)) and table:
            return get_table_status_sql(
                database,
                quoted_names=[self._dbi.quote(name, role) for name in table],
                table_type=table_type,
            )
        if (isinstance(table, str) and table) or table_is_group:
            prefix = table if isinstance(table, str) else ""
            return get_table_status_sql(
                database,
                escaped_prefix=self._dbi.escape_like(prefix, role),
                table_type=table_type,
            )
        return get_table_status_sql(database, table_type=table_type)

    @staticmethod
    def _sort_tables(
        tables: dict[str, dict[str, Any]],
        sort_by: str,
        sort_order: str,
        natural: bool,
    ) -> dict[str, dict[str, Any]]:
        reverse = sort_order == "DESC"
        if sort_by == "Name" and natural:
            names = sorted(tables, key=natural_sort_key, reverse=reverse)
        elif sort_by == "Data_length":
            names = sorted(
                tables,
                key=lambda name: _to_int(tables[name].get("Data_length")) + _to_int(tables[name].get("Index_length")),
                reverse=reverse,
            )
        else:
            names = sorted(tables, key=lambda name: str(tables[name].get(sort_by) or "").lower(), reverse=reverse)
        return {name: tables[name] for name in names}

    def get_table_status(self, database: str, table: str, role: Role = Role.USER) -> Optional[dict[str, Any]]:
        """Status row of one table, served from the cache when listed before."""
        status = self._cache.get(Scope.TABLE_STATUS, database, table)
        if status is not None:
            return status
        return self.get_tables_full(database, table, role=role).get(table)

    def get_columns(
        self,
        database: str,
        table: str,
        full: bool = False,
        role: Role = Role.USER,
    ) -> dict[str, ColumnDescriptor]:
        """Columns of ``database.table`` in definition order.

        Columns that are a non-leading part of a multi-column index get the
        key flag of that index (``UNI`` or ``MUL``); flags reported by the
        server are kept as they are.
        """
        scope = Scope.COLUMNS_FULL if full else Scope.COLUMNS
        columns = self._cache.get_or_load(
            scope,
            database,
            table,
            lambda: self._load_columns(database, table, full, role),
        )
        return dict(columns or {})

    def _load_columns(self, database: str, table: str, full: bool, role: Role) -> Optional[dict[str, ColumnDescriptor]]:
        rows = self._fetch(get_columns_sql(database, table, full=full), "Field", None, role)
        if rows is None:
            return None
        columns = {name: ColumnDescriptor.from_row(row) for name, row in rows.items()}
        return self._attach_index_info(database, table, columns, role)

    def _attach_index_info(
        self,
        database: str,
        table: str,
        columns: dict[str, ColumnDescriptor],
        role: Role,
    ) -> dict[str, ColumnDescriptor]:
        if not columns:
            return columns

        indexes = self.get_table_indexes(database, table, role)
        for name, column in columns.items():
            if column.key:
                continue

            key = ""
            for index in indexes:
                if not index.has_column(name) or index.seq_in_index(name) <= 1:
                    continue
                key = "UNI" if index.unique else "MUL"

            if key:
                columns[name] = replace(column, key=key)

        return columns

    def get_column(
        self,
        database: str,
        table: str,
        column: str,
        full: bool = False,
        role: Role = Role.USER,
    ) -> Optional[ColumnDescriptor]:
        """Description of a single column (not cached)."""
        sql = get_columns_sql(database, table, self._dbi.escape_like(column, role), full)
        rows = self._fetch(sql, "Field", None, role)
        if not rows:
            return None
        columns = {name: ColumnDescriptor.from_row(row) for name, row in rows.items()}
        columns = self._attach_index_info(database, table, columns, role)
        return next(iter(columns.values()))

    def get_column_names(self, database: str, table: str, role: Role = Role.USER) -> list[str]:
        return list(self.get_columns(database, table, role=role))

    def get_table_indexes(self, database: str, table: str, role: Role = Role.USER) -> list[IndexDefinition]:
        indexes = self._cache.get_or_load(
            Scope.INDEXES,
            database,
            table,
            lambda: self._load_indexes(database, table, role),
        )
        return list(indexes or [])

    def _load_indexes(self, database: str, table: str, role: Role) -> Optional[list[IndexDefinition]]:
        rows = self._fetch(get_table_indexes_sql(database, table), None, None, role)
        if rows is None:
            return None
        return IndexDefinition.from_rows(rows)

    def get_databases(self, natural_order: Optional[bool] = None, role: Role = Role.USER) -> list[str]:
        names = self._cache.get_or_load(
            Scope.DATABASES,
            "",
            None,
            lambda: self._fetch("SHOW DATABASES;", None, 0, role),
        )
        return sort_names(names or [], self._natural(natural_order))

    def invalidate(self, database: str, table: Optional[str] = None) -> int:
        """Forget cached metadata of ``database.table`` (or the whole database)."""
        return self._cache.invalidate(database, table)
