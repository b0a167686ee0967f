"""SQL text builders for introspection and administration statements."""

from typing import Any, Optional, Sequence, Union

# Escapes applied by the MySQL client library's real_escape_string
_ESCAPES = {
    "\0": "\\0",
    "\n": "\\n",
    "\r": "\\r",
    "\\": "\\\\",
    "'": "\\'",
    '"': '\\"',
    "\x1a": "\\Z",
}

_TABLES_FULL_COLUMNS = [
    ("TABLE_SCHEMA", "Db"),
    ("TABLE_NAME", "Name"),
    ("TABLE_TYPE", "TABLE_TYPE"),
    ("ENGINE", "Engine"),
    ("ENGINE", "Type"),
    ("VERSION", "Version"),
    ("ROW_FORMAT", "Row_format"),
    ("TABLE_ROWS", "Rows"),
    ("AVG_ROW_LENGTH", "Avg_row_length"),
    ("DATA_LENGTH", "Data_length"),
    ("MAX_DATA_LENGTH", "Max_data_length"),
    ("INDEX_LENGTH", "Index_length"),
    ("DATA_FREE", "Data_free"),
    ("AUTO_INCREMENT", "Auto_increment"),
    ("CREATE_TIME", "Create_time"),
    ("UPDATE_TIME", "Update_time"),
    ("CHECK_TIME", "Check_time"),
    ("TABLE_COLLATION", "Collation"),
    ("CHECKSUM", "Checksum"),
    ("CREATE_OPTIONS", "Create_options"),
    ("TABLE_COMMENT", "Comment"),
]

# SHOW TABLE STATUS column -> information_schema.TABLES column
_STATUS_TO_SCHEMA = {
    "Engine": "ENGINE",
    "Version": "VERSION",
    "Row_format": "ROW_FORMAT",
    "Rows": "TABLE_ROWS",
    "Avg_row_length": "AVG_ROW_LENGTH",
    "Data_length": "DATA_LENGTH",
    "Max_data_length": "MAX_DATA_LENGTH",
    "Index_length": "INDEX_LENGTH",
    "Data_free": "DATA_FREE",
    "Auto_increment": "AUTO_INCREMENT",
    "Create_time": "CREATE_TIME",
    "Update_time": "UPDATE_TIME",
    "Check_time": "CHECK_TIME",
    "Collation": "TABLE_COLLATION",
    "Checksum": "CHECKSUM",
    "Create_options": "CREATE_OPTIONS",
    "Comment": "TABLE_COMMENT",
}


def backquote(identifier: str) -> str:
    """Quote an identifier with backticks, doubling embedded backticks."""
    return "`" + identifier.replace("`", "``") + "`"


def escape_string(text: str) -> str:
    """Escape ``text`` for a quoted literal without asking the server.

    Used when no connection is available to do server-aware escaping.
    """
    return "".join(_ESCAPES.get(char, char) for char in text)


def like_pattern(text: str) -> str:
    """Neutralize LIKE wildcards; the result still needs string escaping."""
    return text.replace("\\", "\\\\").replace("_", "\\_").replace("%", "\\%")


def escape_wildcards(escaped: str) -> str:
    """Neutralize LIKE wildcards in text that is already string-escaped."""
    return escaped.replace("_", "\\_").replace("%", "\\%")


def get_table_condition(
    table: Union[str, Sequence[str]],
    table_is_group: bool,
    table_type: Optional[str],
) -> str:
    """Build the ``AND ...`` filter for the information_schema tables query.

    Args:
        table: Escaped table name, name prefix, or list of escaped names
        table_is_group: Whether ``table`` is a name prefix
        table_type: ``"view"``, ``"table"`` or None for both
    """
    condition = ""
    if isinstance(table, (list, tuple)):
        if table:
            names = ", ".join(f"'{name}'" for name in table)
            condition = f" AND t.`TABLE_NAME` IN ({names})"
    elif table_is_group:
        condition = f" AND t.`TABLE_NAME` LIKE '{escape_wildcards(table)}%'"
    elif table:
        condition = f" AND t.`TABLE_NAME` = BINARY '{table}'"

    if table_type == "view":
        condition += " AND t.`TABLE_TYPE` NOT IN ('BASE TABLE', 'SYSTEM VERSIONED')"
    elif table_type == "table":
        condition += " AND t.`TABLE_TYPE` IN ('BASE TABLE', 'SYSTEM VERSIONED')"

    return condition


def get_sql_for_tables_full(escaped_databases: Sequence[str], where_table: str) -> str:
    """information_schema query returning ``SHOW TABLE STATUS`` shaped rows."""
    aliases = ", ".join(f"`{schema}` AS `{status}`" for schema, status in _TABLES_FULL_COLUMNS)
    databases = ", ".join(f"'{name}'" for name in escaped_databases)
    return (
        f"SELECT *, {aliases}"
        f" FROM `information_schema`.`TABLES` t"
        f" WHERE `TABLE_SCHEMA` IN ({databases}){where_table}"
    )


def get_table_status_sql(
    database: str,
    quoted_names: Optional[Sequence[str]] = None,
    escaped_prefix: Optional[str] = None,
    table_type: Optional[str] = None,
) -> str:
    """``SHOW TABLE STATUS`` with optional name and type filters.

    Args:
        database: Unquoted database name
        quoted_names: Already quoted table names for an ``IN`` filter
        escaped_prefix: Escaped, LIKE-safe name prefix
        table_type: ``"view"``, ``"table"`` or None
    """
    conditions = []
    if quoted_names:
        conditions.append(f"`Name` IN ({', '.join(quoted_names)})")
    elif escaped_prefix is not None:
        conditions.append(f"`Name` LIKE '{escaped_prefix}%'")

    if table_type == "view":
        conditions.append("`Comment` = 'VIEW'")
    elif table_type == "table":
        conditions.append("`Comment` != 'VIEW'")

    sql = f"SHOW TABLE STATUS FROM {backquote(database)}"
    if conditions:
        sql += " WHERE " + " AND ".join(conditions)
    return sql


def get_columns_sql(database: str, table: str, escaped_column: Optional[str] = None, full: bool = False) -> str:
    """``SHOW [FULL] COLUMNS`` for one table, optionally one LIKE-escaped column."""
    sql = f"SHOW {'FULL ' if full else ''}COLUMNS FROM {backquote(database)}.{backquote(table)}"
    if escaped_column is not None:
        sql += f" LIKE '{escaped_column}'"
    return sql


def get_table_indexes_sql(database: str, table: str) -> str:
    return f"SHOW INDEXES FROM {backquote(database)}.{backquote(table)}"


def status_to_schema_row(status: dict[str, Any], database: str) -> dict[str, Any]:
    """Add information_schema style keys to a ``SHOW TABLE STATUS`` row.

    Rows from both listing paths then expose the same keys.
    """
    row = dict(status)
    row["Db"] = database
    row["TABLE_CATALOG"] = "def"
    row["TABLE_SCHEMA"] = database
    row["TABLE_NAME"] = status.get("Name")
    for status_key, schema_key in _STATUS_TO_SCHEMA.items():
        row[schema_key] = status.get(status_key)
    row["Type"] = status.get("Engine")
    comment = str(status.get("Comment") or "")
    row["TABLE_TYPE"] = "VIEW" if comment.upper() == "VIEW" else "BASE TABLE"
    return row


def get_kill_query(process_id: int, amazon_rds: bool = False) -> str:
    if amazon_rds:
        return f"CALL mysql.rds_kill({int(process_id)});"
    return f"KILL {int(process_id)};"


def get_variable_sql(name: str, scope: Optional[str]) -> str:
    modifier = f" {scope.upper()}" if scope else ""
    return f"SHOW{modifier} VARIABLES LIKE '{escape_string(name)}';"
