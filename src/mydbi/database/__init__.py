"""Typed MySQL access layer with metadata caching.

Architecture:
- interface.py: DatabaseInterface, the connection/execution facade
- connection.py: connection roles, server parameters and DSN parsing
- result.py: result handles and fetch reducers
- cache.py / schema.py: memoized table, column and index introspection
- statements.py: DDL detection driving cache invalidation
- formatting.py: plain-text rendering of results
- adapters/: native driver implementations (PyMySQL)
"""

from mydbi.database.cache import MetadataCache, Scope
from mydbi.database.connection import ConnectionHandle, ConnectionState, Role, ServerParams, parse_dsn
from mydbi.database.errors import (
    ConnectFailed,
    ConnectionLost,
    ConnectReason,
    DbiError,
    NotConnected,
    NotSupportedUnbuffered,
    ProtocolViolation,
    QueryFailed,
)
from mydbi.database.interface import DatabaseInterface
from mydbi.database.result import FETCH_ASSOC, FETCH_NUM, FieldMetadata, KeySelector, Result
from mydbi.database.schema import ColumnDescriptor, IndexDefinition, SchemaIntrospector, TableSummary

__all__ = [
    "DatabaseInterface",
    "MetadataCache",
    "Scope",
    "SchemaIntrospector",
    "TableSummary",
    "ColumnDescriptor",
    "IndexDefinition",
    "ConnectionHandle",
    "ConnectionState",
    "Role",
    "ServerParams",
    "parse_dsn",
    "Result",
    "FieldMetadata",
    "KeySelector",
    "FETCH_ASSOC",
    "FETCH_NUM",
    "DbiError",
    "ConnectFailed",
    "ConnectReason",
    "ConnectionLost",
    "NotConnected",
    "NotSupportedUnbuffered",
    "ProtocolViolation",
    "QueryFailed",
]
