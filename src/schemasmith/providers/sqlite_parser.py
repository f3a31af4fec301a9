"""Parser for SQLite ``CREATE TABLE`` statements.

SQLite keeps no catalog of constraint names, check expressions or default
expressions; the only record is the original statement in
``sqlite_master.sql``. This module recovers a :class:`Table` from it.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..core.utils import equals_ignore_case, generate_check_constraint_name
from ..models.schema import (
    CheckConstraint,
    Column,
    DefaultConstraint,
    ForeignKeyAction,
    ForeignKeyConstraint,
    PrimaryKeyConstraint,
    Table,
    UniqueConstraint,
)

_TOKEN_PATTERN = re.compile(
    r"""
    (?P<space>\s+|--[^\n]*|/\*.*?\*/)
    |(?P<string>'(?:[^']|'')*')
    |(?P<quoted>"(?:[^"]|"")*"|`(?:[^`]|``)*`|\[[^\]]*\])
    |(?P<number>\d+(?:\.\d*)?(?:[eE][-+]?\d+)?|\.\d+)
    |(?P<word>[A-Za-z_][\w$]*)
    |(?P<symbol>\(|\)|,|;|\.|\|\||<=|>=|<>|!=|==|<<|>>|.)
    """,
    re.VERBOSE | re.DOTALL,
)

_COLUMN_CONSTRAINT_WORDS = frozenset(
    {"CONSTRAINT", "PRIMARY", "NOT", "NULL", "UNIQUE", "CHECK", "DEFAULT", "COLLATE", "REFERENCES", "GENERATED", "AS"}
)
_TABLE_CONSTRAINT_WORDS = frozenset({"CONSTRAINT", "PRIMARY", "UNIQUE", "CHECK", "FOREIGN"})
_TYPE_ARGUMENTS = re.compile(r"\(\s*(\d+)\s*(?:,\s*(\d+)\s*)?\)")
_LENGTH_TYPES = ("char", "text", "clob", "binary", "blob")


@dataclass
class Token:
    kind: str
    text: str
    start: int
    end: int

    @property
    def upper(self) -> str:
        return self.text.upper() if self.kind == "word" else self.text

    @property
    def name(self) -> str:
        """Identifier value with quoting removed."""
        if self.kind == "quoted":
            opening, body = self.text[0], self.text[1:-1]
            if opening == "[":
                return body
            return body.replace(opening * 2, opening)
        if self.kind == "string":
            return self.text[1:-1].replace("''", "'")
        return self.text


def tokenize(sql: str) -> List[Token]:
    tokens = []
    for match in _TOKEN_PATTERN.finditer(sql):
        kind = match.lastgroup
        if kind == "space":
            continue
        tokens.append(Token(kind, match.group(0), match.start(), match.end()))
    return tokens


def parse_type_arguments(data_type: str) -> Tuple[Optional[int], Optional[int], Optional[int]]:
    """Return ``(max_length, precision, scale)`` from a type like ``decimal(10, 2)``."""
    match = _TYPE_ARGUMENTS.search(data_type or "")
    if not match:
        return None, None, None
    first = int(match.group(1))
    second = int(match.group(2)) if match.group(2) else None
    base = data_type.split("(", 1)[0].lower()
    if second is None and any(marker in base for marker in _LENGTH_TYPES):
        return first, None, None
    return None, first, second


def infer_check_column(table_name: str, constraint_name: Optional[str], expression: str, columns: List[Column]) -> Optional[str]:
    """Guess the column a table-level check constraint belongs to.

    A synthesized ``ck_<table>_<column>`` name wins; otherwise the column is
    returned when the expression mentions exactly one of the table's columns.
    """
    for column in columns:
        if constraint_name and equals_ignore_case(
            constraint_name, generate_check_constraint_name(table_name, column.column_name)
        ):
            return column.column_name

    mentioned = [
        column.column_name
        for column in columns
        if re.search(r"(?<![\w$])[\"`\[]?" + re.escape(column.column_name) + r"[\"`\]]?(?![\w$])", expression, re.IGNORECASE)
    ]
    return mentioned[0] if len(mentioned) == 1 else None


class _Cursor:
    """Position over a token list with SQL-aware helpers."""

    def __init__(self, sql: str, tokens: List[Token]) -> None:
        self.sql = sql
        self.tokens = tokens
        self.position = 0

    def peek(self, offset: int = 0) -> Optional[Token]:
        index = self.position + offset
        return self.tokens[index] if index < len(self.tokens) else None

    def at(self, *words: str) -> bool:
        for offset, word in enumerate(words):
            token = self.peek(offset)
            if token is None or token.upper != word:
                return False
        return True

    def next(self) -> Optional[Token]:
        token = self.peek()
        if token is not None:
            self.position += 1
        return token

    def accept(self, *words: str) -> bool:
        if self.at(*words):
            self.position += len(words)
            return True
        return False

    def done(self) -> bool:
        return self.position >= len(self.tokens)

    def parenthesized_text(self) -> str:
        """Consume ``( ... )`` and return the raw text between the parentheses."""
        opening = self.next()
        depth = 1
        start = opening.end
        while not self.done():
            token = self.next()
            if token.text == "(":
                depth += 1
            elif token.text == ")":
                depth -= 1
                if depth == 0:
                    return self.sql[start:token.start].strip()
        return self.sql[start:].strip()

    def name_list(self) -> List[str]:
        """Consume ``(a, b COLLATE x DESC)`` and return the leading name of each item."""
        names: List[str] = []
        self.next()
        expecting_name = True
        depth = 1
        while not self.done():
            token = self.next()
            if token.text == "(":
                depth += 1
            elif token.text == ")":
                depth -= 1
                if depth == 0:
                    break
            elif token.text == "," and depth == 1:
                expecting_name = True
            elif expecting_name and token.kind in ("word", "quoted", "string"):
                names.append(token.name)
                expecting_name = False
        return names

    def skip_conflict_clause(self) -> None:
        if self.accept("ON", "CONFLICT"):
            self.next()


def _split_definitions(tokens: List[Token]) -> List[List[Token]]:
    definitions: List[List[Token]] = [[]]
    depth = 0
    for token in tokens:
        if token.text == "(":
            depth += 1
        elif token.text == ")":
            depth -= 1
        if token.text == "," and depth == 0:
            definitions.append([])
            continue
        definitions[-1].append(token)
    return [d for d in definitions if d]


def _parse_references(cursor: _Cursor) -> Tuple[str, List[str], ForeignKeyAction, ForeignKeyAction]:
    referenced = cursor.next().name
    if cursor.at("."):
        cursor.next()
        referenced = cursor.next().name
    referenced_columns = cursor.name_list() if cursor.at("(") else []

    on_delete = ForeignKeyAction.NO_ACTION
    on_update = ForeignKeyAction.NO_ACTION
    while not cursor.done():
        if cursor.accept("ON"):
            event = cursor.next().upper
            words = [cursor.next().upper]
            if words[0] in ("SET", "NO"):
                words.append(cursor.next().upper)
            action = ForeignKeyAction.parse(" ".join(words))
            if event == "DELETE":
                on_delete = action
            else:
                on_update = action
        elif cursor.accept("MATCH"):
            cursor.next()
        elif cursor.at("NOT", "DEFERRABLE") or cursor.at("DEFERRABLE"):
            cursor.accept("NOT")
            cursor.next()
            if cursor.accept("INITIALLY"):
                cursor.next()
        else:
            break
    return referenced, referenced_columns, on_delete, on_update


def _parse_column(cursor: _Cursor, table: Table) -> None:
    column_name = cursor.next().name
    type_start = type_end = None
    depth = 0
    while not cursor.done():
        token = cursor.peek()
        if depth == 0 and token.upper in _COLUMN_CONSTRAINT_WORDS:
            break
        if token.text == "(":
            depth += 1
        elif token.text == ")":
            depth -= 1
        type_start = token.start if type_start is None else type_start
        type_end = token.end
        cursor.next()

    data_type = cursor.sql[type_start:type_end].strip() if type_start is not None else ""
    max_length, precision, scale = parse_type_arguments(data_type)
    column = Column(
        column_name=column_name,
        provider_data_type=data_type,
        max_length=max_length,
        precision=precision,
        scale=scale,
    )
    table.columns.append(column)

    constraint_name: Optional[str] = None
    while not cursor.done():
        if cursor.accept("CONSTRAINT"):
            constraint_name = cursor.next().name
            continue

        if cursor.accept("PRIMARY", "KEY"):
            cursor.accept("ASC") or cursor.accept("DESC")
            cursor.skip_conflict_clause()
            if cursor.accept("AUTOINCREMENT"):
                column.is_auto_increment = True
            table.primary_key_constraint = PrimaryKeyConstraint(
                column_names=[column_name], constraint_name=constraint_name
            )
            column.is_nullable = False
        elif cursor.accept("NOT", "NULL"):
            cursor.skip_conflict_clause()
            column.is_nullable = False
        elif cursor.accept("NULL"):
            column.is_nullable = True
        elif cursor.accept("UNIQUE"):
            cursor.skip_conflict_clause()
            table.unique_constraints.append(
                UniqueConstraint(column_names=[column_name], constraint_name=constraint_name)
            )
        elif cursor.accept("CHECK"):
            expression = cursor.parenthesized_text()
            table.check_constraints.append(
                CheckConstraint(check_expression=expression, constraint_name=constraint_name, column_name=column_name)
            )
        elif cursor.accept("DEFAULT"):
            if cursor.at("("):
                expression = cursor.parenthesized_text()
            else:
                token = cursor.next()
                expression = token.text
                if token.text in ("-", "+") and cursor.peek() is not None:
                    expression += cursor.next().text
            table.default_constraints.append(
                DefaultConstraint(column_name=column_name, expression=expression, constraint_name=constraint_name)
            )
        elif cursor.accept("COLLATE"):
            cursor.next()
        elif cursor.accept("REFERENCES"):
            referenced, referenced_columns, on_delete, on_update = _parse_references(cursor)
            table.foreign_key_constraints.append(
                ForeignKeyConstraint(
                    column_names=[column_name],
                    referenced_table_name=referenced,
                    referenced_column_names=referenced_columns,
                    constraint_name=constraint_name,
                    on_delete=on_delete,
                    on_update=on_update,
                )
            )
        elif cursor.accept("GENERATED", "ALWAYS") or cursor.at("AS"):
            cursor.accept("AS")
            if cursor.at("("):
                cursor.parenthesized_text()
            cursor.accept("STORED") or cursor.accept("VIRTUAL")
        else:
            cursor.next()
        constraint_name = None


def _parse_table_constraint(cursor: _Cursor, table: Table) -> None:
    constraint_name = None
    if cursor.accept("CONSTRAINT"):
        constraint_name = cursor.next().name

    if cursor.accept("PRIMARY", "KEY"):
        table.primary_key_constraint = PrimaryKeyConstraint(
            column_names=cursor.name_list(), constraint_name=constraint_name
        )
    elif cursor.accept("UNIQUE"):
        table.unique_constraints.append(
            UniqueConstraint(column_names=cursor.name_list(), constraint_name=constraint_name)
        )
    elif cursor.accept("CHECK"):
        expression = cursor.parenthesized_text()
        table.check_constraints.append(
            CheckConstraint(
                check_expression=expression,
                constraint_name=constraint_name,
                column_name=infer_check_column(table.table_name, constraint_name, expression, table.columns),
            )
        )
    elif cursor.accept("FOREIGN", "KEY"):
        columns = cursor.name_list()
        cursor.accept("REFERENCES")
        referenced, referenced_columns, on_delete, on_update = _parse_references(cursor)
        table.foreign_key_constraints.append(
            ForeignKeyConstraint(
                column_names=columns,
                referenced_table_name=referenced,
                referenced_column_names=referenced_columns,
                constraint_name=constraint_name,
                on_delete=on_delete,
                on_update=on_update,
            )
        )


def parse_create_table(sql: Optional[str]) -> Optional[Table]:
    """Parse a ``CREATE TABLE`` statement.

    Constraint names are returned as written; unnamed constraints come back
    with ``constraint_name`` None.

    Returns:
        Table, or None when the statement is not a column-list CREATE TABLE
    """
    if not sql:
        return None

    tokens = tokenize(sql)
    cursor = _Cursor(sql, tokens)
    if not cursor.accept("CREATE"):
        return None
    cursor.accept("TEMP") or cursor.accept("TEMPORARY")
    if not cursor.accept("TABLE"):
        return None
    cursor.accept("IF", "NOT", "EXISTS")

    name_token = cursor.next()
    if cursor.at("."):
        cursor.next()
        name_token = cursor.next()
    if name_token is None or not cursor.at("("):
        return None

    table = Table(table_name=name_token.name)

    body_start = cursor.position + 1
    depth = 0
    body_end = len(tokens)
    for index in range(cursor.position, len(tokens)):
        if tokens[index].text == "(":
            depth += 1
        elif tokens[index].text == ")":
            depth -= 1
            if depth == 0:
                body_end = index
                break

    for definition in _split_definitions(tokens[body_start:body_end]):
        item = _Cursor(sql, definition)
        if definition[0].upper in _TABLE_CONSTRAINT_WORDS and definition[0].kind == "word":
            _parse_table_constraint(item, table)
        else:
            _parse_column(item, table)

    return table
