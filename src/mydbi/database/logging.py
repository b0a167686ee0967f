"""Structured logging and telemetry for database operations."""

import hashlib
import json
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Optional

from mydbi.constants import QUERY_PREVIEW_LENGTH

# Configure logger for database operations
db_logger = logging.getLogger("mydbi.database")


def sanitize_dsn(dsn: str) -> str:
    """Sanitize DSN by removing credentials.

    Args:
        dsn: Database connection string

    Returns:
        DSN with credentials masked
    """
    return re.sub(r'://([^@]+)@', '://***:***@', dsn)


def hash_query(query: str) -> str:
    """Generate hash of query for logging (deduplication).

    Args:
        query: SQL query

    Returns:
        SHA256 hash of query (first 16 characters)
    """
    return hashlib.sha256(query.encode()).hexdigest()[:16]


def _query_preview(query: str) -> str:
    return query[:QUERY_PREVIEW_LENGTH] + ("..." if len(query) > QUERY_PREVIEW_LENGTH else "")


def log_connection(
    dsn: str,
    role: str,
    success: bool,
    error: Optional[str] = None,
    duration: float = 0.0,
) -> None:
    """Log database connection attempt.

    Args:
        dsn: Database connection string (will be sanitized)
        role: Connection role the session was opened for
        success: Whether connection succeeded
        error: Error message if failed
        duration: Connection time in seconds
    """
    log_data = {
        "event": "database_connection",
        "dsn": sanitize_dsn(dsn),
        "role": role,
        "success": success,
        "duration_seconds": round(duration, 3),
    }

    if error:
        log_data["error"] = error

    if success:
        db_logger.info(json.dumps(log_data))
    else:
        db_logger.error(json.dumps(log_data))


def log_query_execution(
    query: str,
    role: str,
    success: bool,
    buffered: bool = True,
    affected_rows: int = 0,
    warning_count: int = 0,
    duration: float = 0.0,
    error: Optional[str] = None,
) -> None:
    """Log query execution with metadata.

    Args:
        query: SQL query (will be hashed)
        role: Connection role the statement ran on
        success: Whether query executed successfully
        buffered: Whether the result was materialized before returning
        affected_rows: Rows affected as reported by the server
        warning_count: Number of warnings raised by the statement
        duration: Query execution time in seconds
        error: Error message if failed
    """
    log_data = {
        "event": "query_execution",
        "query_hash": hash_query(query),
        "query_preview": _query_preview(query),
        "role": role,
        "success": success,
        "buffered": buffered,
        "affected_rows": affected_rows,
        "warning_count": warning_count,
        "duration_seconds": round(duration, 3),
        "timestamp": time.time(),
    }

    if error:
        log_data["error"] = error

    if success:
        db_logger.info(json.dumps(log_data))
    else:
        db_logger.error(json.dumps(log_data))


def log_protocol_violation(query: str, role: str, reason: str) -> None:
    """Log a statement refused because the connection was busy.

    Args:
        query: SQL query that was refused (will be hashed)
        role: Connection role the statement targeted
        reason: Human readable explanation
    """
    log_data = {
        "event": "protocol_violation",
        "query_hash": hash_query(query),
        "query_preview": _query_preview(query),
        "role": role,
        "reason": reason,
    }

    db_logger.warning(json.dumps(log_data))


def log_cache_event(operation: str, scope: str, database: str, table: Optional[str] = None) -> None:
    """Log metadata cache operations.

    Args:
        operation: Operation type (hit, miss, store, invalidate, clear)
        scope: Metadata shape the entry holds
        database: Database part of the key
        table: Table part of the key, if any
    """
    log_data = {
        "event": "metadata_cache",
        "operation": operation,
        "scope": scope,
        "database": database,
        "table": table,
    }

    db_logger.debug(json.dumps(log_data))


class QueryTimer:
    """Context manager for timing query execution."""

    def __init__(self):
        self.start_time: float = 0.0
        self.duration: float = 0.0

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.time() - self.start_time


@dataclass
class ServerWarning:
    """One row of ``SHOW WARNINGS``."""

    level: str
    code: int
    message: str

    @classmethod
    def from_row(cls, row: dict) -> "ServerWarning":
        try:
            code = int(row.get("Code") or 0)
        except (TypeError, ValueError):
            code = 0
        return cls(
            level=str(row.get("Level") or "?"),
            code=code,
            message=str(row.get("Message") or ""),
        )

    def __str__(self) -> str:
        return f"{self.level}: #{self.code} {self.message}"


@dataclass
class QueryTelemetry:
    """Telemetry of the last statement sent on one connection.

    Overwritten by every execution, never accumulated.
    """

    duration: float = 0.0
    error: str = ""
    warning_count: int = 0
    warnings: list[ServerWarning] = field(default_factory=list)

    def record(self, duration: float, error: str = "", warning_count: int = 0) -> None:
        self.duration = duration
        self.error = error
        self.warning_count = warning_count
        self.warnings = []
