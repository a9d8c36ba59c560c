"""
Display formatting for generated code.

Pure text transforms with no network access or state.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import sqlglot
from sqlglot.errors import SqlglotError
from sqlglot.tokens import Tokenizer

logger = logging.getLogger(__name__)

INDENT_WIDTH = 4

# Text that does not open with one of these is not treated as SQL
STATEMENT_KEYWORDS = {
    "SELECT", "WITH", "INSERT", "UPDATE", "DELETE", "CREATE", "ALTER",
    "DROP", "TRUNCATE", "MERGE", "REPLACE", "EXPLAIN", "VALUES",
}

# Start a line at the statement level; their content goes one level deeper
CLAUSE_KEYWORDS = {
    "SELECT", "FROM", "WHERE", "GROUP BY", "ORDER BY", "HAVING", "LIMIT",
    "OFFSET", "VALUES", "SET", "RETURNING", "WITH", "QUALIFY", "WINDOW",
}

SET_OPERATORS = {"UNION", "INTERSECT", "EXCEPT", "MINUS"}
JOIN_MODIFIERS = {"LEFT", "RIGHT", "INNER", "OUTER", "FULL", "CROSS", "NATURAL"}
SUBQUERY_STARTS = {"SELECT", "WITH"}


@dataclass
class _Unit:
    """One token as it will be written."""
    text: str
    keyword: bool
    spaced: bool
    comment: Optional[str] = None

    @property
    def upper(self) -> str:
        return self.text.upper() if self.keyword else ""


@dataclass
class _Scope:
    """A statement or subquery being laid out."""
    base: int
    close_level: int = 0
    depth: int = 0


class _Writer:
    """Accumulates output lines with indentation."""

    def __init__(self):
        self.text = ""
        self.level = 0
        self.line_start = True

    def newline(self, level: int) -> None:
        self.text = self.text.rstrip(" ")
        if self.text and not self.text.endswith("\n"):
            self.text += "\n"
        self.text += " " * (INDENT_WIDTH * level)
        self.level = level
        self.line_start = True

    def blank_line(self) -> None:
        self.text = self.text.rstrip() + "\n\n"
        self.level = 0
        self.line_start = True

    def write(self, text: str, spaced: bool) -> None:
        if spaced and not self.line_start:
            self.text += " "
        self.text += text
        self.line_start = False

    def comment(self, text: str) -> None:
        self.write(text, True)
        # A line comment runs to the end of the line
        if "--" in text.splitlines()[-1]:
            self.newline(self.level)


def format_sql(code: str) -> str:
    """Re-indent SQL with 4-space indentation and upper-cased keywords.

    Works on tokens only: every token keeps its original text apart from
    keyword case, and comments are kept where they were. Clauses start new
    lines with their content indented one level; subqueries are indented
    one level further. Text that does not start like a SQL statement, or
    cannot be tokenized, is returned stripped. Formatting is idempotent.

    Args:
        code: SQL text, possibly several statements

    Returns:
        Formatted SQL text
    """
    text = code.strip()
    if not text:
        return text

    try:
        tokens = sqlglot.tokenize(text)
    except SqlglotError as e:
        logger.debug(f"Leaving untokenizable SQL unformatted: {e}")
        return text

    units, trailing = _to_units(text, tokens)
    if not units or units[0].upper not in STATEMENT_KEYWORDS:
        return text

    return _layout(units, trailing)


def format_plain(code: str) -> str:
    """Return code with surrounding whitespace removed."""
    return code.strip()


def _to_units(text: str, tokens) -> Tuple[List[_Unit], Optional[str]]:
    """Slice each token's source text and the comments between tokens."""
    units: List[_Unit] = []
    position = 0
    for token in tokens:
        gap = text[position:token.start]
        raw = text[token.start:token.end + 1]
        position = token.end + 1

        normalized = " ".join(raw.split())
        keyword = normalized[:1].isalpha() and normalized.upper() in Tokenizer.KEYWORDS
        unit = _Unit(
            text=normalized.upper() if keyword else raw,
            keyword=keyword,
            spaced=bool(gap),
            comment=gap.strip() or None
        )

        # GROUP BY / ORDER BY may arrive as two tokens
        previous = units[-1] if units else None
        if (previous is not None and unit.upper == "BY"
                and previous.upper in ("GROUP", "ORDER") and not unit.comment):
            previous.text = f"{previous.text} BY"
            continue
        units.append(unit)

    trailing = text[position:].strip() or None
    return units, trailing


def _starts_join(units: List[_Unit], i: int) -> bool:
    word = units[i].upper
    before = units[i - 1].upper if i > 0 else ""
    after = units[i + 1].upper if i + 1 < len(units) else ""
    if before in JOIN_MODIFIERS:
        return False
    if word == "JOIN":
        return True
    return word in JOIN_MODIFIERS and (after == "JOIN" or after in JOIN_MODIFIERS)


def _layout(units: List[_Unit], trailing: Optional[str]) -> str:
    writer = _Writer()
    scopes = [_Scope(base=0)]
    pending: Optional[int] = None
    between = False

    for i, unit in enumerate(units):
        scope = scopes[-1]
        top = scope.depth == 0
        word = unit.upper
        following = units[i + 1].upper if i + 1 < len(units) else ""

        if unit.comment:
            writer.comment(unit.comment)

        if unit.text == ";":
            writer.write(";", False)
            writer.blank_line()
            scopes = [_Scope(base=0)]
            pending = None
            between = False
            continue

        if top and word in CLAUSE_KEYWORDS:
            writer.newline(scope.base)
            writer.write(unit.text, unit.spaced)
            pending = scope.base + 1
            continue

        if top and word in SET_OPERATORS:
            writer.newline(scope.base)
            writer.write(unit.text, unit.spaced)
            pending = None
            continue

        if top and _starts_join(units, i):
            writer.newline(scope.base + 1)
            writer.write(unit.text, unit.spaced)
            pending = None
            continue

        if pending is not None:
            if word in ("DISTINCT", "ALL"):
                writer.write(unit.text, unit.spaced)
                continue
            writer.newline(pending)
            pending = None
        elif top and word in ("AND", "OR"):
            if between and word == "AND":
                between = False
            else:
                writer.newline(scope.base + 1)

        if unit.text == "(":
            writer.write("(", unit.spaced)
            if following in SUBQUERY_STARTS:
                scopes.append(_Scope(base=writer.level + 1, close_level=writer.level))
            else:
                scope.depth += 1
            continue

        if unit.text == ")":
            if scope.depth > 0:
                scope.depth -= 1
                writer.write(")", unit.spaced)
            elif len(scopes) > 1:
                scopes.pop()
                writer.newline(scope.close_level)
                writer.write(")", False)
            else:
                writer.write(")", unit.spaced)
            continue

        writer.write(unit.text, unit.spaced)
        if word == "BETWEEN":
            between = True
        elif top and unit.text == ",":
            pending = scope.base + 1

    if trailing:
        writer.comment(trailing)

    return writer.text.strip()
