"""Scripted fake driver shared by the test suite."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

import pytest

from mydbi.config import Settings
from mydbi.database.adapters.base import Connection, Extension, ResultCursor
from mydbi.database.cache import MetadataCache
from mydbi.database.connection import Role, ServerParams
from mydbi.database.errors import DbiError
from mydbi.database.interface import DatabaseInterface
from mydbi.database.result import FieldMetadata


@dataclass
class Reply:
    """What the fake server answers to one statement."""

    columns: list[Union[str, FieldMetadata]] = field(default_factory=list)
    rows: list[tuple] = field(default_factory=list)
    affected: int = 0
    warnings: int = 0
    error: Optional[DbiError] = None
    has_result: Optional[bool] = None

    @property
    def returns_rows(self) -> bool:
        if self.has_result is not None:
            return self.has_result
        return bool(self.columns)


def rows_reply(columns: list[str], *rows: tuple) -> Reply:
    return Reply(columns=list(columns), rows=list(rows))


class FakeCursor(ResultCursor):
    def __init__(self, reply: Reply):
        self._fields = [
            column if isinstance(column, FieldMetadata) else FieldMetadata(name=column)
            for column in reply.columns
        ]
        self._rows = list(reply.rows)
        self.closed = False

    @property
    def fields(self) -> list[FieldMetadata]:
        return self._fields

    def fetchone(self) -> Optional[tuple]:
        if not self._rows:
            return None
        return self._rows.pop(0)

    def fetchall(self) -> list[tuple]:
        rows, self._rows = self._rows, []
        return rows

    def close(self) -> None:
        self.closed = True


class FakeConnection(Connection):
    """Answers statements from a script and records everything it was sent."""

    def __init__(self):
        self.replies: dict[str, Reply] = {}
        self.queries: list[str] = []
        self.buffered_flags: list[bool] = []
        self.closed = False
        self.selected: list[str] = []
        self._affected = 0
        self._warnings = 0
        self._batch: list[Reply] = []
        self.cursors: list[FakeCursor] = []
        self.script("SELECT @@version, @@version_comment",
                    rows_reply(["@@version", "@@version_comment"], ("8.0.32", "MySQL Community Server - GPL")))

    def script(self, sql: str, reply: Reply) -> None:
        self.replies[sql] = reply

    def fail(self, sql: str, error: DbiError) -> None:
        self.replies[sql] = Reply(error=error)

    def statements(self, prefix: str) -> list[str]:
        return [sql for sql in self.queries if sql.startswith(prefix)]

    def _reply_for(self, sql: str) -> Reply:
        if sql in self.replies:
            return self.replies[sql]
        for key, reply in self.replies.items():
            if sql.startswith(key):
                return reply
        return Reply()

    def _answer(self, reply: Reply) -> Optional[ResultCursor]:
        if reply.error is not None:
            raise reply.error
        self._affected = reply.affected if not reply.returns_rows else len(reply.rows)
        self._warnings = reply.warnings
        if not reply.returns_rows:
            return None
        cursor = FakeCursor(reply)
        self.cursors.append(cursor)
        return cursor

    def query(self, sql: str, buffered: bool = True) -> Optional[ResultCursor]:
        self.queries.append(sql)
        self.buffered_flags.append(buffered)
        return self._answer(self._reply_for(sql))

    def multi_query(self, sql: str) -> Optional[ResultCursor]:
        self.queries.append(sql)
        statements = [part.strip() for part in sql.split(";") if part.strip()]
        replies = [self._reply_for(statement) for statement in statements]
        first, self._batch = replies[0], replies[1:]
        return self._answer(first)

    def more_results(self) -> bool:
        return bool(self._batch)

    def next_result(self) -> Optional[ResultCursor]:
        if not self._batch:
            return None
        reply = self._batch.pop(0)
        if reply.error is not None:
            self._batch = []
        return self._answer(reply)

    def affected_rows(self) -> int:
        return self._affected

    def warning_count(self) -> int:
        return self._warnings

    def escape_string(self, text: str) -> str:
        return text.replace("\\", "\\\\").replace("'", "\\'")

    def select_db(self, database: str) -> None:
        self.selected.append(database)

    def host_info(self) -> str:
        return "localhost via TCP/IP"

    def protocol_version(self) -> int:
        return 10

    def close(self) -> None:
        self.closed = True


class FakeExtension(Extension):
    name = "fake"

    def __init__(self):
        self.connections: list[FakeConnection] = []
        self.params: list[ServerParams] = []
        self.error: Optional[DbiError] = None
        self.prepare: Any = None

    def connect(self, params: ServerParams) -> Connection:
        self.params.append(params)
        if self.error is not None:
            raise self.error
        connection = FakeConnection()
        if self.prepare is not None:
            self.prepare(connection)
        self.connections.append(connection)
        return connection

    @property
    def connection(self) -> FakeConnection:
        return self.connections[-1]

    def client_info(self) -> str:
        return "fake-client 1.0"


PARAMS = ServerParams(user="root", password="secret", host="db.local", database="shop")


@pytest.fixture
def extension() -> FakeExtension:
    return FakeExtension()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def dbi(extension: FakeExtension, settings: Settings) -> DatabaseInterface:
    interface = DatabaseInterface(extension, settings, MetadataCache())
    handle = interface.connect(Role.USER, PARAMS)
    assert not isinstance(handle, DbiError)
    return interface


@pytest.fixture
def link(dbi: DatabaseInterface, extension: FakeExtension) -> FakeConnection:
    connection = extension.connection
    connection.queries.clear()
    return connection
