"""Detection of statements that change schema metadata."""

import re
from dataclasses import dataclass
from typing import Optional

# Identifier: `quoted` (with `` escapes), "quoted" (ANSI_QUOTES) or bare word
_IDENT = r'(?:`(?:[^`]|``)+`|"(?:[^"]|"")+"|[\w$]+)'
_QUALIFIED = rf'(?P<name>{_IDENT}(?:\s*\.\s*{_IDENT})?)'
_IF_EXISTS = r'(?:IF\s+(?:NOT\s+)?EXISTS\s+)?'

# Patterns for statements whose effect is limited to the named tables
TABLE_DDL_PATTERNS = [
    (r'^CREATE\s+(?:OR\s+REPLACE\s+)?(?:TEMPORARY\s+)?TABLE\s+' + _IF_EXISTS + _QUALIFIED, 'CREATE'),
    (r'^ALTER\s+(?:ONLINE\s+|IGNORE\s+)*TABLE\s+' + _IF_EXISTS + _QUALIFIED, 'ALTER'),
    (r'^TRUNCATE\s+(?:TABLE\s+)?' + _QUALIFIED, 'TRUNCATE'),
    (r'^(?:CREATE\s+(?:OR\s+REPLACE\s+)?(?:UNIQUE\s+|FULLTEXT\s+|SPATIAL\s+)?|DROP\s+)INDEX\s+'
     + _IF_EXISTS + _IDENT + r'\s+ON\s+' + _QUALIFIED, 'INDEX'),
    (r'^(?:CREATE\s+(?:OR\s+REPLACE\s+)?|ALTER\s+)(?:ALGORITHM\s*=\s*\w+\s+)?'
     r'(?:DEFINER\s*=\s*\S+\s+)?(?:SQL\s+SECURITY\s+\w+\s+)?VIEW\s+' + _IF_EXISTS + _QUALIFIED, 'VIEW'),
]

# Statements naming a list of tables
_TABLE_LIST_PATTERNS = [
    (r'^DROP\s+(?:TEMPORARY\s+)?TABLES?\s+' + _IF_EXISTS + r'(?P<names>.+?)(?:\s+(?:RESTRICT|CASCADE))?$', 'DROP'),
    (r'^DROP\s+VIEW\s+' + _IF_EXISTS + r'(?P<names>.+?)(?:\s+(?:RESTRICT|CASCADE))?$', 'DROP'),
]

_RENAME_PATTERN = re.compile(r'^RENAME\s+TABLES?\s+(?P<pairs>.+)$', re.IGNORECASE | re.DOTALL)
_DATABASE_PATTERN = re.compile(
    r'^(?:CREATE|ALTER|DROP)\s+(?:DATABASE|SCHEMA)\s+' + _IF_EXISTS + rf'(?P<name>{_IDENT})',
    re.IGNORECASE,
)
_USE_PATTERN = re.compile(rf'^USE\s+(?P<name>{_IDENT})$', re.IGNORECASE)

# Compiled patterns for performance
COMPILED_TABLE_PATTERNS = [(re.compile(pattern, re.IGNORECASE | re.DOTALL), operation)
                           for pattern, operation in TABLE_DDL_PATTERNS]
COMPILED_LIST_PATTERNS = [(re.compile(pattern, re.IGNORECASE | re.DOTALL), operation)
                          for pattern, operation in _TABLE_LIST_PATTERNS]


@dataclass(frozen=True)
class SchemaChange:
    """A (database, table) whose cached metadata a statement made stale.

    ``database`` is None when the statement did not qualify the name and
    the connection's current database applies. ``table`` is None when the
    whole database changed.
    """

    operation: str
    database: Optional[str]
    table: Optional[str]


def _strip_comments(query: str) -> str:
    query = re.sub(r'/\*(?!\!).*?\*/', ' ', query, flags=re.DOTALL)
    query = re.sub(r'(?m)(?:--\s|#).*$', ' ', query)
    return query


def _unquote(identifier: str) -> str:
    identifier = identifier.strip()
    if len(identifier) >= 2 and identifier[0] == identifier[-1] and identifier[0] in '`"':
        quote = identifier[0]
        return identifier[1:-1].replace(quote * 2, quote)
    return identifier


def split_qualified(name: str) -> tuple[Optional[str], str]:
    """Split ``db.table`` (quoted or bare) into its unquoted parts."""
    parts = re.findall(_IDENT, name)
    if len(parts) >= 2:
        return _unquote(parts[0]), _unquote(parts[1])
    return None, _unquote(parts[0]) if parts else name.strip()


def detect_schema_changes(query: str) -> list[SchemaChange]:
    """Find the tables a statement changes the structure of.

    Performs regex-based detection of data definition statements:
    - Table level: CREATE/ALTER/DROP/TRUNCATE/RENAME TABLE
    - Index level: CREATE/DROP INDEX ... ON table
    - Views: CREATE/ALTER/DROP VIEW
    - Database level: CREATE/ALTER/DROP DATABASE

    Args:
        query: SQL statement that executed successfully

    Returns:
        Affected keys, empty for statements that leave metadata untouched
    """
    if not query or not query.strip():
        return []

    # Normalize whitespace for better pattern matching
    normalized_query = ' '.join(_strip_comments(query).split()).rstrip(';').strip()

    match = _DATABASE_PATTERN.match(normalized_query)
    if match:
        return [SchemaChange('DATABASE', _unquote(match.group('name')), None)]

    for pattern, operation in COMPILED_TABLE_PATTERNS:
        match = pattern.match(normalized_query)
        if match:
            database, table = split_qualified(match.group('name'))
            return [SchemaChange(operation, database, table)]

    for pattern, operation in COMPILED_LIST_PATTERNS:
        match = pattern.match(normalized_query)
        if match:
            changes = []
            for name in match.group('names').split(','):
                database, table = split_qualified(name)
                changes.append(SchemaChange(operation, database, table))
            return changes

    match = _RENAME_PATTERN.match(normalized_query)
    if match:
        changes = []
        for pair in match.group('pairs').split(','):
            names = re.split(r'\s+TO\s+', pair.strip(), flags=re.IGNORECASE)
            for name in names:
                database, table = split_qualified(name)
                changes.append(SchemaChange('RENAME', database, table))
        return changes

    return []


def detect_database_switch(query: str) -> Optional[str]:
    """Database a ``USE`` statement selects, or None for any other statement."""
    if not query or not query.strip():
        return None
    normalized_query = ' '.join(_strip_comments(query).split()).rstrip(';').strip()
    match = _USE_PATTERN.match(normalized_query)
    if not match:
        return None
    return _unquote(match.group('name'))


def is_schema_change(query: str) -> bool:
    """Quick check if a statement changes schema metadata.

    Args:
        query: Statement to check

    Returns:
        True if cached metadata may be stale after running it
    """
    return bool(detect_schema_changes(query))
