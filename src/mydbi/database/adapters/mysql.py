"""MySQL driver adapter implementation."""

import logging
from typing import Optional

import pymysql
import pymysql.cursors
from pymysql.charset import charset_by_id
from pymysql.constants import CLIENT, FIELD_TYPE, FLAG

from mydbi.constants import AUTH_ERROR_CODES, CONNECTION_LOST_CODES
from mydbi.database.adapters.base import Connection, Extension, ResultCursor
from mydbi.database.connection import ServerParams
from mydbi.database.errors import ConnectFailed, ConnectionLost, ConnectReason, DbiError, QueryFailed
from mydbi.database.result import FieldMetadata

logger = logging.getLogger(__name__)

BINARY_CHARSET_ID = 63
UNKNOWN_AFFECTED_ROWS = 18446744073709551615

_TYPE_NAMES = {
    FIELD_TYPE.DECIMAL: "decimal",
    FIELD_TYPE.NEWDECIMAL: "decimal",
    FIELD_TYPE.TINY: "tinyint",
    FIELD_TYPE.SHORT: "smallint",
    FIELD_TYPE.INT24: "mediumint",
    FIELD_TYPE.LONG: "int",
    FIELD_TYPE.LONGLONG: "bigint",
    FIELD_TYPE.FLOAT: "float",
    FIELD_TYPE.DOUBLE: "double",
    FIELD_TYPE.NULL: "null",
    FIELD_TYPE.TIMESTAMP: "timestamp",
    FIELD_TYPE.DATE: "date",
    FIELD_TYPE.NEWDATE: "date",
    FIELD_TYPE.TIME: "time",
    FIELD_TYPE.DATETIME: "datetime",
    FIELD_TYPE.YEAR: "year",
    FIELD_TYPE.BIT: "bit",
    FIELD_TYPE.JSON: "json",
    FIELD_TYPE.ENUM: "enum",
    FIELD_TYPE.SET: "set",
    FIELD_TYPE.GEOMETRY: "geometry",
    FIELD_TYPE.VARCHAR: "varchar",
    FIELD_TYPE.VAR_STRING: "varchar",
    FIELD_TYPE.STRING: "char",
}

_BLOB_TYPES = {
    FIELD_TYPE.TINY_BLOB,
    FIELD_TYPE.MEDIUM_BLOB,
    FIELD_TYPE.LONG_BLOB,
    FIELD_TYPE.BLOB,
}


def translate_error(error: pymysql.Error, query: str = "") -> DbiError:
    """Map a PyMySQL exception onto the access layer's error taxonomy.

    Args:
        error: Exception raised by PyMySQL
        query: Statement that was being executed, if any

    Returns:
        ConnectionLost for dead sessions, QueryFailed otherwise
    """
    code = error.args[0] if error.args and isinstance(error.args[0], int) else None
    message = str(error.args[1]) if len(error.args) > 1 else str(error)

    if isinstance(error, pymysql.err.InterfaceError) or code in CONNECTION_LOST_CODES:
        return ConnectionLost(message or "Connection to the server was lost", code)
    return QueryFailed(message, code, query)


def _type_name(type_code: int, charsetnr: int) -> str:
    if type_code in _BLOB_TYPES:
        return "blob" if charsetnr == BINARY_CHARSET_ID else "text"
    return _TYPE_NAMES.get(type_code, "unknown")


def _collation(charsetnr: int) -> str:
    try:
        return charset_by_id(charsetnr).collation
    except KeyError:
        return ""


def field_metadata(descriptor) -> FieldMetadata:
    """Build column metadata from a PyMySQL ``FieldDescriptor``."""
    charsetnr = getattr(descriptor, "charsetnr", BINARY_CHARSET_ID)
    flags = getattr(descriptor, "flags", 0)
    return FieldMetadata(
        name=descriptor.name,
        table=getattr(descriptor, "table_name", "") or "",
        org_table=getattr(descriptor, "org_table", "") or "",
        org_name=getattr(descriptor, "org_name", "") or "",
        database=getattr(descriptor, "db", "") or "",
        type_name=_type_name(descriptor.type_code, charsetnr),
        collation=_collation(charsetnr),
        nullable=not flags & FLAG.NOT_NULL,
        length=getattr(descriptor, "length", 0) or 0,
        flags=flags,
    )


def _fields_from_cursor(cursor) -> list[FieldMetadata]:
    # The DB-API description lacks the originating table and collation,
    # so prefer the protocol-level field descriptors when present.
    result = getattr(cursor, "_result", None)
    descriptors = getattr(result, "fields", None)
    if descriptors:
        return [field_metadata(descriptor) for descriptor in descriptors]

    return [
        FieldMetadata(
            name=column[0],
            type_name=_TYPE_NAMES.get(column[1], "unknown"),
            nullable=bool(column[6]) if len(column) > 6 else True,
        )
        for column in cursor.description or ()
    ]


def _close_quietly(cursor) -> None:
    try:
        cursor.close()
    except pymysql.Error as e:
        logger.debug(f"Ignoring error while closing cursor: {e}")


class PyMySQLCursor(ResultCursor):
    """Result cursor over a PyMySQL cursor."""

    def __init__(self, cursor, owns_cursor: bool = True):
        """Wrap a cursor that has just executed a statement.

        Args:
            cursor: PyMySQL cursor positioned on a result set
            owns_cursor: Whether closing this wrapper closes the cursor.
                Multi-statement cursors stay open so later results remain
                reachable.
        """
        self._cursor = cursor
        self._owns_cursor = owns_cursor
        self._fields = _fields_from_cursor(cursor)

    @property
    def fields(self) -> list[FieldMetadata]:
        return self._fields

    def fetchone(self) -> Optional[tuple]:
        try:
            return self._cursor.fetchone()
        except pymysql.Error as e:
            raise translate_error(e) from e

    def fetchall(self) -> list[tuple]:
        try:
            return list(self._cursor.fetchall())
        except pymysql.Error as e:
            raise translate_error(e) from e

    def close(self) -> None:
        if self._owns_cursor:
            _close_quietly(self._cursor)


class PyMySQLConnection(Connection):
    """MySQL session backed by a PyMySQL connection."""

    def __init__(self, link: pymysql.connections.Connection):
        self._link = link
        self._warning_count = 0
        self._multi_cursor = None

    def _run(self, cursor, sql: str) -> None:
        try:
            cursor.execute(sql)
        except pymysql.Error as e:
            _close_quietly(cursor)
            raise translate_error(e, sql) from e
        self._warning_count = getattr(getattr(cursor, "_result", None), "warning_count", 0) or 0

    def query(self, sql: str, buffered: bool = True) -> Optional[ResultCursor]:
        cursor_class = pymysql.cursors.Cursor if buffered else pymysql.cursors.SSCursor
        cursor = self._link.cursor(cursor_class)
        self._run(cursor, sql)

        if cursor.description is None:
            _close_quietly(cursor)
            return None
        return PyMySQLCursor(cursor)

    def multi_query(self, sql: str) -> Optional[ResultCursor]:
        cursor = self._link.cursor(pymysql.cursors.Cursor)
        self._run(cursor, sql)
        self._multi_cursor = cursor

        if cursor.description is None:
            return None
        return PyMySQLCursor(cursor, owns_cursor=False)

    def more_results(self) -> bool:
        if self._multi_cursor is None:
            return False
        result = getattr(self._link, "_result", None)
        return bool(getattr(result, "has_next", False))

    def next_result(self) -> Optional[ResultCursor]:
        cursor = self._multi_cursor
        if cursor is None:
            return None

        try:
            advanced = cursor.nextset()
        except pymysql.Error as e:
            self._multi_cursor = None
            raise translate_error(e) from e

        if not advanced:
            self._multi_cursor = None
            return None

        self._warning_count = getattr(getattr(cursor, "_result", None), "warning_count", 0) or 0
        if not self.more_results():
            self._multi_cursor = None
        if cursor.description is None:
            return None
        return PyMySQLCursor(cursor, owns_cursor=False)

    def affected_rows(self) -> int:
        affected = self._link.affected_rows()
        # Unbuffered results report the count as an unsigned -1
        if affected is None or affected == UNKNOWN_AFFECTED_ROWS:
            return -1
        return int(affected)

    def warning_count(self) -> int:
        return self._warning_count

    def escape_string(self, text: str) -> str:
        return self._link.escape_string(text)

    def select_db(self, database: str) -> None:
        try:
            self._link.select_db(database)
        except pymysql.Error as e:
            raise translate_error(e, f"USE {database}") from e

    def host_info(self) -> str:
        return self._link.get_host_info()

    def protocol_version(self) -> int:
        return int(self._link.get_proto_info())

    def close(self) -> None:
        try:
            self._link.close()
        except pymysql.Error as e:
            # Closing an already dead session is not an error for callers
            logger.debug(f"Ignoring error while closing MySQL connection: {e}")


class PyMySQLExtension(Extension):
    """MySQL/MariaDB adapter using the PyMySQL driver."""

    name = "pymysql"

    def connect(self, params: ServerParams) -> Connection:
        """Establish MySQL connection.

        Raises:
            ConnectFailed: If connection fails
        """
        connection_params = {
            "host": params.host,
            "port": params.port,
            "user": params.user,
            "password": params.password,
            "charset": params.charset,
            "connect_timeout": params.connect_timeout,
            "client_flag": CLIENT.MULTI_STATEMENTS,
            "autocommit": True,
        }

        # Only add optional parameters when specified
        if params.database:
            connection_params["database"] = params.database
        if params.socket:
            connection_params["unix_socket"] = params.socket

        try:
            link = pymysql.connect(**connection_params)
        except pymysql.err.OperationalError as e:
            code = e.args[0] if e.args and isinstance(e.args[0], int) else None
            message = str(e.args[1]) if len(e.args) > 1 else str(e)
            reason = ConnectReason.AUTH_ERROR if code in AUTH_ERROR_CODES else ConnectReason.UNREACHABLE
            raise ConnectFailed(reason, message, code) from e
        except pymysql.Error as e:
            raise ConnectFailed(ConnectReason.UNREACHABLE, str(e)) from e

        return PyMySQLConnection(link)

    def client_info(self) -> str:
        return pymysql.get_client_info()
