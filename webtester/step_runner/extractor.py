"""Extract scalar values from API responses and query results."""

import json
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from webtester.step_runner.exceptions import (
    ColumnNotFoundError,
    InvalidPathError,
    NoRowsError,
)

ROW_COUNT_COLUMN = "rowcount"

_SEGMENT = re.compile(
    r"\.(?P<name>[^.\[\]]+)"
    r"|\[(?P<index>-?\d+)\]"
    r"|\[(?P<quote>['\"])(?P<key>.*?)(?P=quote)\]"
)
_MISSING = object()


@dataclass(frozen=True)
class QueryResult:
    """Tabular result of a database query."""

    columns: list[str] = field(default_factory=list)
    rows: list[tuple[Any, ...]] = field(default_factory=list)
    affected_rows: int = 0

    @property
    def row_count(self) -> int:
        """Number of rows returned."""
        return len(self.rows)


def to_text(value: Any) -> str:
    """Render a value as the text assertions compare against."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def parse_path(path: str) -> list[str | int]:
    """Split a JSONPath-style expression into keys and indexes.

    Supported syntax examples:
      - "$" -> the whole document
      - "$.data.token" -> nested fields
      - "$.items[0].id" / "$.items[-1]" -> list index
      - "$['odd key']" -> bracketed field name
      - "data.token" -> same as "$.data.token"

    Raises:
        InvalidPathError: If the expression cannot be parsed

    """
    expr = path.strip()
    if expr.startswith("$"):
        expr = expr[1:]
    elif not expr.startswith((".", "[")):
        expr = "." + expr

    segments: list[str | int] = []
    pos = 0
    while pos < len(expr):
        match = _SEGMENT.match(expr, pos)
        if match is None:
            raise InvalidPathError(f"Invalid path expression: '{path}'")
        if match.group("name") is not None:
            segments.append(match.group("name"))
        elif match.group("index") is not None:
            segments.append(int(match.group("index")))
        else:
            segments.append(match.group("key"))
        pos = match.end()
    return segments


def _resolve(document: Any, segments: Sequence[str | int]) -> Any:
    node = document
    for segment in segments:
        if isinstance(node, dict):
            if not isinstance(segment, str) or segment not in node:
                return _MISSING
            node = node[segment]
        elif isinstance(node, list):
            if isinstance(segment, str):
                if not segment.isdigit():
                    return _MISSING
                segment = int(segment)
            try:
                node = node[segment]
            except IndexError:
                return _MISSING
        else:
            return _MISSING
    return node


def extract_json(document: Any, path: str | None) -> str | None:
    """Resolve a path expression against a parsed JSON document.

    Args:
        document: Parsed response, or None when there was no JSON response
        path: Path expression; empty selects the whole document

    Returns:
        Value rendered as text, or None when the path matches nothing

    Raises:
        InvalidPathError: If the path expression is malformed

    """
    if document is None:
        return None
    if not path or not path.strip():
        return to_text(document)

    node = _resolve(document, parse_path(path))
    if node is _MISSING:
        return None
    return to_text(node)


def extract_column(result: QueryResult, column: str | None) -> str:
    """Read a column value from the first row of a query result.

    The synthetic column rowCount yields the number of rows instead.

    Raises:
        ColumnNotFoundError: If the column is not in the result
        NoRowsError: If the column exists but no rows were returned

    """
    name = (column or "").strip()
    if name.lower() == ROW_COUNT_COLUMN:
        return str(result.row_count)

    lowered = [c.lower() for c in result.columns]
    if not name or name.lower() not in lowered:
        raise ColumnNotFoundError(f"Column '{column}' not found in query results")

    if not result.rows:
        raise NoRowsError("No rows returned from database query")

    # Only the first row is inspected
    return to_text(result.rows[0][lowered.index(name.lower())])
