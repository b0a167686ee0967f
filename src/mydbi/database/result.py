"""Result handles and row reducers."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional, Sequence, Union

from mydbi.database.errors import NotSupportedUnbuffered, ProtocolViolation

if TYPE_CHECKING:
    from mydbi.database.adapters.base import ResultCursor

FETCH_ASSOC = "assoc"
FETCH_NUM = "num"


@dataclass(frozen=True)
class FieldMetadata:
    """Column metadata captured when the statement ran."""

    name: str
    table: str = ""
    org_table: str = ""
    org_name: str = ""
    database: str = ""
    type_name: str = ""
    collation: str = ""
    nullable: bool = True
    length: int = 0
    flags: int = 0


@dataclass(frozen=True)
class KeySelector:
    """One step of a ``fetch_all`` key path.

    A selector picks a column by name or by position, or appends to a list
    instead of keying a mapping.
    """

    kind: str
    column: Union[str, int, None] = None

    COLUMN = "column"
    INDEX = "index"
    APPEND = "append"

    @classmethod
    def by_name(cls, name: str) -> "KeySelector":
        return cls(cls.COLUMN, name)

    @classmethod
    def by_index(cls, index: int) -> "KeySelector":
        return cls(cls.INDEX, index)

    @classmethod
    def append(cls) -> "KeySelector":
        return cls(cls.APPEND)

    @classmethod
    def coerce(cls, spec: Union["KeySelector", str, int, None]) -> "KeySelector":
        """Accept raw selectors: a name, a position or ``None`` for append."""
        if isinstance(spec, KeySelector):
            return spec
        if spec is None:
            return cls.append()
        if isinstance(spec, bool):
            raise TypeError(f"Invalid key selector: {spec!r}")
        if isinstance(spec, int):
            return cls.by_index(spec)
        if isinstance(spec, str):
            return cls.by_name(spec)
        raise TypeError(f"Invalid key selector: {spec!r}")

    @property
    def appends(self) -> bool:
        return self.kind == self.APPEND

    def pick(self, row: Sequence[Any], columns: dict[str, int]) -> Any:
        if self.kind == self.INDEX:
            return row[self.column]
        try:
            return row[columns[self.column]]
        except KeyError:
            raise KeyError(f"Unknown column in result: {self.column}") from None


KeySpec = Union[KeySelector, str, int, None, Sequence[Union[KeySelector, str, int, None]]]


class Result:
    """Cursor over the rows one statement produced.

    Buffered results are materialized at construction and allow random
    access; unbuffered results stream rows from the driver and must be
    drained (or discarded) before the connection accepts another statement.
    """

    def __init__(
        self,
        cursor: Optional["ResultCursor"],
        buffered: bool = True,
        on_release: Optional[Callable[["Result"], None]] = None,
    ):
        self._buffered = buffered
        self._on_release = on_release
        self._released = False
        self._invalidated = False
        self._cursor: Optional["ResultCursor"] = None
        self._rows: list[tuple] = []
        self._position = 0

        self._fields: list[FieldMetadata] = list(cursor.fields) if cursor is not None else []
        self._columns: dict[str, int] = {}
        for index, meta in enumerate(self._fields):
            # Duplicate names resolve to the last column, as with assoc fetches
            self._columns[meta.name] = index

        if cursor is None:
            self._released = True
        elif buffered:
            try:
                self._rows = list(cursor.fetchall())
            finally:
                cursor.close()
            self._released = True
        else:
            self._cursor = cursor

    @classmethod
    def empty(cls) -> "Result":
        """Result of a statement that produced no result set."""
        return cls(None)

    @property
    def buffered(self) -> bool:
        return self._buffered

    @property
    def exhausted(self) -> bool:
        if self._buffered:
            return self._position >= len(self._rows)
        return self._released

    @property
    def invalidated(self) -> bool:
        return self._invalidated

    def invalidate(self) -> None:
        """Forbid further reads (the connection moved on to another result)."""
        self._invalidated = True
        self._release()

    def abandon(self) -> None:
        """Invalidate without draining; the connection is about to be closed."""
        self._invalidated = True
        self._cursor = None
        self._release()

    def _check_readable(self) -> None:
        if self._invalidated:
            raise ProtocolViolation(
                "Result handle was invalidated by advancing to the next result of a multi-statement batch"
            )

    def _release(self) -> None:
        if self._released:
            return
        self._released = True
        cursor, self._cursor = self._cursor, None
        if cursor is not None:
            cursor.close()
        if self._on_release is not None:
            self._on_release(self)

    def _next_raw(self) -> Optional[tuple]:
        self._check_readable()
        if self._buffered:
            if self._position >= len(self._rows):
                return None
            row = self._rows[self._position]
            self._position += 1
            return row

        if self._cursor is None:
            return None
        row = self._cursor.fetchone()
        if row is None:
            self._release()
        return row

    def fetch_row(self) -> Optional[list]:
        """Next row as a positional list, or ``None`` at the end."""
        row = self._next_raw()
        return list(row) if row is not None else None

    def fetch_assoc(self) -> Optional[dict[str, Any]]:
        """Next row keyed by column name, or ``None`` at the end."""
        row = self._next_raw()
        if row is None:
            return None
        return {name: row[index] for name, index in self._columns.items()}

    def fetch_value(self, field: Union[int, str] = 0) -> Any:
        """First requested field of the next row, or ``None`` without rows."""
        row = self._next_raw()
        if row is None:
            return None
        return KeySelector.coerce(field).pick(row, self._columns)

    def fetch_all_rows(self) -> list[list]:
        return [list(row) for row in self._iter_raw()]

    def fetch_all(self, key: KeySpec = None, value: Union[str, int, None] = None) -> Union[list, dict]:
        """Reduce the remaining rows into a list or (nested) mapping.

        - ``key=None``: a list of rows; when the result has exactly one
          column the list holds that column's scalars instead of rows.
        - ``key`` a name or position: a mapping from that column to the row.
        - ``key`` a list of selectors: nested mappings built left to right,
          where ``None`` (or ``KeySelector.append()``) appends to a list.
        - ``value``: store only that column instead of the whole row.

        Rows are mappings, except with a positional scalar ``key`` where they
        are positional lists.
        """
        value_selector = KeySelector.coerce(value) if value is not None else None

        if key is None:
            # No nested rows when the result has a single column
            if self.num_fields() == 1:
                return [row[0] for row in self._iter_raw()]
            return [self._extract(row, value_selector, as_list=False) for row in self._iter_raw()]

        if isinstance(key, (list, tuple)):
            return self._fetch_nested([KeySelector.coerce(part) for part in key], value_selector)

        key_selector = KeySelector.coerce(key)
        as_list = key_selector.kind == KeySelector.INDEX
        rows: dict = {}
        for row in self._iter_raw():
            rows[key_selector.pick(row, self._columns)] = self._extract(row, value_selector, as_list)
        return rows

    def _fetch_nested(self, selectors: list[KeySelector], value: Optional[KeySelector]) -> Union[list, dict]:
        if not selectors:
            return [self._extract(row, value, as_list=False) for row in self._iter_raw()]

        def container(selector: KeySelector) -> Union[list, dict]:
            return [] if selector.appends else {}

        result = container(selectors[0])
        for row in self._iter_raw():
            target = result
            for depth, selector in enumerate(selectors):
                last = depth == len(selectors) - 1
                item = self._extract(row, value, as_list=False) if last else container(selectors[depth + 1])
                if selector.appends:
                    target.append(item)
                    target = item
                    continue
                row_key = selector.pick(row, self._columns)
                if last:
                    target[row_key] = item
                else:
                    target = target.setdefault(row_key, item)
        return result

    def _extract(self, row: tuple, value: Optional[KeySelector], as_list: bool) -> Any:
        if value is not None:
            return value.pick(row, self._columns)
        if as_list:
            return list(row)
        return {name: row[index] for name, index in self._columns.items()}

    def _iter_raw(self) -> Iterator[tuple]:
        while True:
            row = self._next_raw()
            if row is None:
                return
            yield row

    def __iter__(self) -> Iterator[dict[str, Any]]:
        for row in self._iter_raw():
            yield {name: row[index] for name, index in self._columns.items()}

    def num_rows(self) -> int:
        """Total number of rows; only defined for buffered results."""
        if not self._buffered:
            raise NotSupportedUnbuffered("Row count is not available for unbuffered results")
        return len(self._rows)

    def num_fields(self) -> int:
        return len(self._fields)

    def seek(self, offset: int) -> bool:
        """Move the buffered cursor to ``offset``; False when out of range."""
        self._check_readable()
        if not self._buffered:
            raise NotSupportedUnbuffered("Seeking is not available for unbuffered results")
        if offset < 0 or offset > len(self._rows):
            return False
        self._position = offset
        return True

    def get_field_names(self) -> list[str]:
        return [meta.name for meta in self._fields]

    def get_fields_meta(self) -> list[FieldMetadata]:
        return list(self._fields)

    def free(self) -> None:
        """Discard the remaining rows and release the connection."""
        if not self._buffered and not self._released and not self._invalidated:
            while self._next_raw() is not None:
                pass
        self._release()

    discard = free

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.free()
