"""Plain-text rendering of results and metadata."""

from typing import Any, Optional, Sequence

from mydbi.database.logging import QueryTelemetry
from mydbi.database.result import FieldMetadata

RESULT_SEPARATOR = "=" * 80
ROW_SEPARATOR = "-" * 80


def _cell(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value)


def format_table(columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> list[str]:
    """Column-aligned lines for ``rows``, numbered from 1."""
    widths = [len(str(column)) for column in columns]
    for row in rows:
        for index, value in enumerate(row):
            widths[index] = max(widths[index], len(_cell(value)))

    header = ["Row#"] + [str(column).ljust(widths[index]) for index, column in enumerate(columns)]
    lines = ["  ".join(header), ROW_SEPARATOR]
    for number, row in enumerate(rows, start=1):
        parts = [f"{number:4d}"] + [_cell(value).ljust(widths[index]) for index, value in enumerate(row)]
        lines.append("  ".join(parts))
    return lines


def format_query_results(
    columns: Sequence[str],
    rows: Sequence[Sequence[Any]],
    query: str,
    database_name: Optional[str] = None,
    affected_rows: int = -1,
    telemetry: Optional[QueryTelemetry] = None,
) -> str:
    """Format one statement's outcome as plain text.

    Formats results in a structured, readable format:
    - Clear section headers with separators
    - Column-aligned tabular format
    - Row numbers for reference
    - Telemetry footer (duration, affected rows, warnings)

    Args:
        columns: Column names of the result, empty for statements without one
        rows: Positional rows
        query: The statement that produced these results
        database_name: Current database, if any
        affected_rows: Rows the statement changed; -1 when unknown
        telemetry: Telemetry recorded for the statement

    Returns:
        Plain text formatted results with clear separators
    """
    output = [
        RESULT_SEPARATOR,
        "QUERY RESULTS",
        RESULT_SEPARATOR,
        f"Database: {database_name or '(none)'}",
        f"Query: {query}",
    ]

    if not columns:
        output.append("Result: Statement returned no result set")
    elif not rows:
        output.append("Result: No rows returned (empty result set)")
    else:
        output.append(f"Rows returned: {len(rows)}")
        output.append("")
        output.append(ROW_SEPARATOR)
        output.extend(format_table(columns, rows))

    output.append(ROW_SEPARATOR)
    if affected_rows >= 0:
        output.append(f"Affected rows: {affected_rows}")
    if telemetry is not None:
        output.append(f"Duration: {telemetry.duration:.3f}s")
        output.append(f"Warnings: {telemetry.warning_count}")
        for warning in telemetry.warnings:
            output.append(f"  {warning}")
    output.extend([RESULT_SEPARATOR, ""])

    return "\n".join(output)


def format_fields_meta(fields: Sequence[FieldMetadata]) -> str:
    """Column metadata of a result, one line per column."""
    if not fields:
        return "No columns\n"

    columns = ["Name", "Table", "Org table", "Database", "Type", "Collation", "Null"]
    rows = [
        [meta.name, meta.table, meta.org_table, meta.database, meta.type_name, meta.collation,
         "YES" if meta.nullable else "NO"]
        for meta in fields
    ]
    return "\n".join(["FIELD METADATA", ROW_SEPARATOR] + format_table(columns, rows) + [""])


def format_error(query: str, error: Any) -> str:
    return (
        f"{RESULT_SEPARATOR}\n"
        f"QUERY FAILED\n"
        f"{RESULT_SEPARATOR}\n"
        f"Query: {query}\n"
        f"Error: {error}\n"
        f"{RESULT_SEPARATOR}\n"
    )
