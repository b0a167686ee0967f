"""Capability interfaces every native driver adapter implements."""

from abc import ABC, abstractmethod
from typing import Optional

from mydbi.database.connection import ServerParams
from mydbi.database.result import FieldMetadata


class ResultCursor(ABC):
    """Row cursor over one result set produced by the driver."""

    @property
    @abstractmethod
    def fields(self) -> list[FieldMetadata]:
        """Column metadata of the result set."""
        pass

    @abstractmethod
    def fetchone(self) -> Optional[tuple]:
        """Return the next row, or None when the cursor is exhausted."""
        pass

    @abstractmethod
    def fetchall(self) -> list[tuple]:
        """Return all remaining rows."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Discard remaining rows and release driver resources."""
        pass


class Connection(ABC):
    """One open session of a native driver.

    Statement failures are reported by raising ``QueryFailed`` (connection
    still usable) or ``ConnectionLost`` (connection unusable); adapters must
    translate their driver's exceptions accordingly.
    """

    @abstractmethod
    def query(self, sql: str, buffered: bool = True) -> Optional[ResultCursor]:
        """Send one statement.

        Returns:
            Cursor over the result set, or None for statements without one

        Raises:
            QueryFailed: If the server rejects the statement
            ConnectionLost: If the session died
        """
        pass

    @abstractmethod
    def multi_query(self, sql: str) -> Optional[ResultCursor]:
        """Send a batch of statements and return the first result set."""
        pass

    @abstractmethod
    def more_results(self) -> bool:
        """Whether a multi-statement batch has further results."""
        pass

    @abstractmethod
    def next_result(self) -> Optional[ResultCursor]:
        """Advance to the next result of a multi-statement batch."""
        pass

    @abstractmethod
    def affected_rows(self) -> int:
        pass

    @abstractmethod
    def warning_count(self) -> int:
        pass

    @abstractmethod
    def escape_string(self, text: str) -> str:
        """Escape ``text`` for use inside a quoted SQL literal."""
        pass

    @abstractmethod
    def select_db(self, database: str) -> None:
        pass

    @abstractmethod
    def host_info(self) -> str:
        pass

    @abstractmethod
    def protocol_version(self) -> int:
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the session; must not raise."""
        pass


class Extension(ABC):
    """Factory for sessions of one native driver."""

    name: str = "abstract"

    @abstractmethod
    def connect(self, params: ServerParams) -> Connection:
        """Open a session.

        Raises:
            ConnectFailed: If authentication fails or the server is unreachable
        """
        pass

    @abstractmethod
    def client_info(self) -> str:
        """Version string of the client library."""
        pass
