"""Best-effort ``CREATE TABLE`` parser.

This is deliberately a regex-and-split parser, not a SQL grammar: it
understands the DDL PostgreSQL itself emits (``pg_dump``, ``\\d+`` copies,
hand-written migrations) and ignores clauses it does not recognise.  Table
bodies are split on depth-zero commas, each part is classified as a table
constraint or a column, and column types are canonicalised with
:func:`~relq.schema.ast.parse_type`.

Example::

    table = parse_create_table(
        "CREATE TABLE users (id SERIAL PRIMARY KEY, email VARCHAR(255) NOT NULL UNIQUE)"
    )
    table.columns[1].type   # "varchar(255)"
    table.primary_key       # ["id"]
"""

from __future__ import annotations

import logging
import re

from relq.errors import RelqQueryError
from relq.schema.ast import (
    ParsedCheckConstraint,
    ParsedColumn,
    ParsedForeignKey,
    ParsedForeignKeyTarget,
    ParsedGenerated,
    ParsedIndex,
    ParsedReference,
    ParsedTable,
    ParsedUniqueConstraint,
    parse_type,
)

logger = logging.getLogger(__name__)

_FLAGS = re.IGNORECASE | re.DOTALL

_IDENT = r'(?:"(?:[^"]|"")+"|[\w$]+)'

#: Quoted spans are matched first so comment markers inside them survive.
_COMMENT_RE = re.compile(r"""('(?:[^']|'')*'|"(?:[^"]|"")*")|--[^\n]*|/\*.*?\*/""", re.DOTALL)

_CREATE_TABLE_RE = re.compile(
    rf"CREATE\s+(?:(?:GLOBAL|LOCAL)\s+)?(?:TEMP(?:ORARY)?\s+|UNLOGGED\s+)?TABLE\s+"
    rf"(?:IF\s+NOT\s+EXISTS\s+)?(?:({_IDENT})\s*\.\s*)?({_IDENT})\s*\(",
    _FLAGS,
)
_CREATE_INDEX_RE = re.compile(
    rf"CREATE\s+(UNIQUE\s+)?INDEX\s+(?:CONCURRENTLY\s+)?(?:IF\s+NOT\s+EXISTS\s+)?({_IDENT})\s+"
    rf"ON\s+(?:ONLY\s+)?(?:{_IDENT}\s*\.\s*)?({_IDENT})\s*(?:USING\s+(\w+)\s*)?\(",
    _FLAGS,
)
_STATEMENT_SPLIT_RE = re.compile(
    r";\s*(?=CREATE\s+(?:(?:GLOBAL|LOCAL)\s+)?(?:TEMP(?:ORARY)?\s+|UNLOGGED\s+|UNIQUE\s+)?(?:TABLE|INDEX)\b)",
    re.IGNORECASE,
)

#: Type spellings that need more than one word, tried before the generic form.
_TYPE_RE = re.compile(
    r"""^(
        (?:DOUBLE\s+PRECISION|CHARACTER\s+VARYING|BIT\s+VARYING|TIMESTAMP|TIME)\b
            (?:\s*\(\s*\d+\s*\))?(?:\s+WITH(?:OUT)?\s+TIME\s+ZONE)?
        | INTERVAL\b(?:\s+(?:YEAR|MONTH|DAY|HOUR|MINUTE|SECOND)\b(?:\s+TO\s+(?:MONTH|HOUR|MINUTE|SECOND)\b)?)?
        | [\w$.]+(?:\s*\(\s*\d+\s*(?:,\s*\d+\s*)?\))?
    )((?:\s*\[\s*\d*\s*\])*)""",
    re.IGNORECASE | re.VERBOSE,
)

_CONSTRAINT_PREFIX_RE = re.compile(r"^(?:CONSTRAINT|PRIMARY\s+KEY|UNIQUE|CHECK|FOREIGN\s+KEY|EXCLUDE)\b", _FLAGS)
_CONSTRAINT_NAME_RE = re.compile(rf"^CONSTRAINT\s+({_IDENT})\s+", _FLAGS)
_TABLE_PK_RE = re.compile(r"^PRIMARY\s+KEY\s*\(([^)]*)\)", _FLAGS)
_TABLE_UNIQUE_RE = re.compile(r"^UNIQUE(?:\s+NULLS\s+(?:NOT\s+)?DISTINCT)?\s*\(([^)]*)\)", _FLAGS)
_TABLE_CHECK_RE = re.compile(r"^CHECK\s*\(", _FLAGS)
_TABLE_FK_RE = re.compile(
    rf"^FOREIGN\s+KEY\s*\(([^)]*)\)\s*REFERENCES\s+(?:{_IDENT}\s*\.\s*)?({_IDENT})\s*(?:\(([^)]*)\))?",
    _FLAGS,
)

_NOT_NULL_RE = re.compile(r"\bNOT\s+NULL\b", _FLAGS)
_PRIMARY_KEY_RE = re.compile(r"\bPRIMARY\s+KEY\b", _FLAGS)
_UNIQUE_RE = re.compile(r"\bUNIQUE\b", _FLAGS)
_DEFAULT_RE = re.compile(
    r"\bDEFAULT\s+(.+?)(?=\s+(?:NOT\s+NULL|NULL|PRIMARY\s+KEY|UNIQUE|REFERENCES|CHECK|GENERATED|CONSTRAINT|COLLATE)\b|\s*$)",
    _FLAGS,
)
_REFERENCES_RE = re.compile(rf"\bREFERENCES\s+(?:{_IDENT}\s*\.\s*)?({_IDENT})(?:\s*\(\s*({_IDENT})\s*\))?", _FLAGS)
_ACTION = r"(SET\s+NULL|SET\s+DEFAULT|NO\s+ACTION|CASCADE|RESTRICT)"
_ON_DELETE_RE = re.compile(rf"\bON\s+DELETE\s+{_ACTION}", _FLAGS)
_ON_UPDATE_RE = re.compile(rf"\bON\s+UPDATE\s+{_ACTION}", _FLAGS)
_CHECK_RE = re.compile(r"\bCHECK\s*\(", _FLAGS)
_GENERATED_RE = re.compile(r"\bGENERATED\s+ALWAYS\s+AS\s*\(", _FLAGS)
_STORED_RE = re.compile(r"^\s*STORED\b", _FLAGS)


# ---------------------------------------------------------------------------
# Lexical helpers
# ---------------------------------------------------------------------------


def _strip_comments(sql: str) -> str:
    return _COMMENT_RE.sub(lambda m: m.group(1) or "", sql).strip()


def _identifier(token: str) -> str:
    """Unquote a quoted identifier; fold an unquoted one to lower case."""
    token = token.strip()
    if len(token) >= 2 and token[0] == token[-1] == '"':
        return token[1:-1].replace('""', '"')
    return token.lower()


def _identifier_list(text: str) -> list[str]:
    return [_identifier(part) for part in text.split(",") if part.strip()]


def _balanced(text: str, open_index: int) -> tuple[str, int | None]:
    """Return the text inside the parenthesis at *open_index* and the index after its close.

    Quoted strings and identifiers are skipped.  An unterminated group
    returns everything up to the end of *text* and ``None``.
    """
    depth = 0
    quote: str | None = None
    i = open_index
    while i < len(text):
        char = text[i]
        if quote:
            if char == quote:
                if i + 1 < len(text) and text[i + 1] == quote:
                    i += 1
                else:
                    quote = None
        elif char in ("'", '"'):
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return text[open_index + 1 : i], i + 1
        i += 1
    return text[open_index + 1 :], None


def split_table_body(body: str) -> list[str]:
    """Split a table body on commas that sit outside parentheses and quotes.

    Example::

        split_table_body("id int, price numeric(10, 2), CHECK (price > 0)")
        # ["id int", "price numeric(10, 2)", "CHECK (price > 0)"]
    """
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    quote: str | None = None
    i = 0
    while i < len(body):
        char = body[i]
        if quote:
            current.append(char)
            if char == quote:
                if i + 1 < len(body) and body[i + 1] == quote:
                    current.append(body[i + 1])
                    i += 1
                else:
                    quote = None
        elif char in ("'", '"'):
            quote = char
            current.append(char)
        elif char == "(":
            depth += 1
            current.append(char)
        elif char == ")":
            depth -= 1
            current.append(char)
        elif char == "," and depth == 0:
            part = "".join(current).strip()
            if part:
                parts.append(part)
            current = []
        else:
            current.append(char)
        i += 1
    part = "".join(current).strip()
    if part:
        parts.append(part)
    return parts


# ---------------------------------------------------------------------------
# Columns and constraints
# ---------------------------------------------------------------------------


def _action(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    return " ".join(match.group(1).upper().split()) if match else None


def parse_column_definition(definition: str) -> ParsedColumn | None:
    """Parse one column entry of a table body, or return ``None`` if it is not one."""
    match = re.match(rf"^\s*({_IDENT})\s+", definition, _FLAGS)
    if match is None:
        return None
    name = _identifier(match.group(1))
    rest = definition[match.end() :]
    type_match = _TYPE_RE.match(rest)
    if type_match is None:
        return None
    dimensions = type_match.group(2).count("[")
    type_str = " ".join(type_match.group(1).split()) + "[]" * dimensions
    info = parse_type(type_str)
    modifiers = rest[type_match.end() :]

    primary_key = bool(_PRIMARY_KEY_RE.search(modifiers))
    column = ParsedColumn(
        name=name,
        type=info.code,
        sql_type=info.type + "[]" * info.dimensions,
        nullable=not (primary_key or _NOT_NULL_RE.search(modifiers)),
        primary_key=primary_key,
        unique=bool(_UNIQUE_RE.search(modifiers)),
        array=info.is_array,
        array_dimensions=info.dimensions,
    )

    if default := _DEFAULT_RE.search(modifiers):
        column.default = default.group(1).strip()
    if reference := _REFERENCES_RE.search(modifiers):
        tail = modifiers[reference.end() :]
        column.references = ParsedReference(
            table=_identifier(reference.group(1)),
            column=_identifier(reference.group(2)) if reference.group(2) else "id",
            on_delete=_action(_ON_DELETE_RE, tail),
            on_update=_action(_ON_UPDATE_RE, tail),
        )
    if check := _CHECK_RE.search(modifiers):
        column.check = _balanced(modifiers, check.end() - 1)[0].strip()
    if generated := _GENERATED_RE.search(modifiers):
        expression, end = _balanced(modifiers, generated.end() - 1)
        column.generated = ParsedGenerated(
            expression=expression.strip(), stored=end is not None and bool(_STORED_RE.match(modifiers[end:]))
        )
    return column


def _apply_table_constraint(table: ParsedTable, definition: str) -> None:
    name = None
    if match := _CONSTRAINT_NAME_RE.match(definition):
        name = _identifier(match.group(1))
        definition = definition[match.end() :]

    if match := _TABLE_PK_RE.match(definition):
        table.primary_key = _identifier_list(match.group(1))
    elif match := _TABLE_UNIQUE_RE.match(definition):
        table.unique_constraints.append(ParsedUniqueConstraint(columns=_identifier_list(match.group(1)), name=name))
    elif match := _TABLE_CHECK_RE.match(definition):
        expression = _balanced(definition, match.end() - 1)[0].strip()
        table.check_constraints.append(ParsedCheckConstraint(expression=expression, name=name))
    elif match := _TABLE_FK_RE.match(definition):
        columns = _identifier_list(match.group(1))
        ref_columns = _identifier_list(match.group(3)) if match.group(3) else ["id"] * len(columns)
        tail = definition[match.end() :]
        table.foreign_keys.append(
            ParsedForeignKey(
                columns=columns,
                references=ParsedForeignKeyTarget(table=_identifier(match.group(2)), columns=ref_columns),
                on_delete=_action(_ON_DELETE_RE, tail),
                on_update=_action(_ON_UPDATE_RE, tail),
                name=name,
            )
        )
    else:
        logger.debug("Skipping unsupported table constraint: %s", definition)


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


def parse_create_table(sql: str) -> ParsedTable:
    """Parse a single ``CREATE TABLE`` statement.

    Args:
        sql: The statement text; comments are ignored.

    Returns:
        The table in the shared AST shape.

    Raises:
        RelqQueryError: If no ``CREATE TABLE ... (`` header or column list
            can be found.
    """
    clean = _strip_comments(sql)
    header = _CREATE_TABLE_RE.search(clean)
    if header is None:
        raise RelqQueryError(
            "Invalid CREATE TABLE statement",
            sql=sql,
            hint="SQL must start with CREATE TABLE name (...)",
        )
    body, end = _balanced(clean, header.end() - 1)
    if end is None:
        raise RelqQueryError(
            "Could not parse table body",
            sql=sql,
            hint="Ensure the table definition includes its column list in parentheses",
        )

    table = ParsedTable(
        name=_identifier(header.group(2)),
        schema_name=_identifier(header.group(1)) if header.group(1) else None,
    )
    for definition in split_table_body(body):
        if _CONSTRAINT_PREFIX_RE.match(definition):
            _apply_table_constraint(table, definition)
            continue
        column = parse_column_definition(definition)
        if column is None:
            logger.debug("Skipping unrecognised table entry: %s", definition)
            continue
        table.columns.append(column)
        if column.primary_key and not table.primary_key:
            table.primary_key = [column.name]
    if not table.columns:
        raise RelqQueryError(
            f"No columns found in CREATE TABLE {table.name}",
            sql=sql,
            hint="Column entries must look like: name TYPE [modifiers]",
        )
    return table


def parse_create_index(sql: str) -> tuple[str, ParsedIndex] | None:
    """Parse ``CREATE INDEX`` into ``(table_name, index)``; ``None`` if *sql* is not one."""
    clean = _strip_comments(sql)
    match = _CREATE_INDEX_RE.search(clean)
    if match is None:
        return None
    keys, end = _balanced(clean, match.end() - 1)
    columns = [_identifier(re.split(r"\s+", part.strip(), maxsplit=1)[0]) for part in split_table_body(keys)]
    where = re.search(r"\bWHERE\s+(.+?)\s*;?\s*$", clean[end:], _FLAGS) if end is not None else None
    index = ParsedIndex(
        name=_identifier(match.group(2)),
        columns=columns,
        unique=bool(match.group(1)),
        using=match.group(4).upper() if match.group(4) else None,
        where=where.group(1) if where else None,
    )
    return _identifier(match.group(3)), index


def split_statements(sql: str) -> list[str]:
    """Split a DDL script before each ``CREATE TABLE`` / ``CREATE INDEX``."""
    return [s.strip() for s in _STATEMENT_SPLIT_RE.split(_strip_comments(sql)) if s.strip()]


def parse_tables(sql: str) -> list[ParsedTable]:
    """Parse every table of a script and attach its ``CREATE INDEX`` statements.

    Indexes on tables the script does not create are logged and dropped.
    """
    tables: list[ParsedTable] = []
    by_name: dict[str, ParsedTable] = {}
    for statement in split_statements(sql):
        if _CREATE_TABLE_RE.search(statement):
            table = parse_create_table(statement)
            tables.append(table)
            by_name[table.name] = table
        elif parsed := parse_create_index(statement):
            table_name, index = parsed
            if table_name in by_name:
                by_name[table_name].indexes.append(index)
            else:
                logger.debug("Index %s targets unknown table %s", index.name, table_name)
    return tables
