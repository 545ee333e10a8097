"""
Safety utilities — row-limit guarantee for read queries and message-size
checks for outbound frames. Pure functions, no I/O.
"""

from __future__ import annotations

import json
import re
from typing import Any, Optional

DEFAULT_ROW_LIMIT = 50
MAX_MESSAGE_SIZE = 1_048_576  # 1 MiB

_TOKEN = re.compile(
    r"""
    (?P<comment>--[^\n]*|/\*.*?(?:\*/|\Z))
    |(?P<string>'(?:[^']|'')*'|"(?:[^"]|"")*")
    |(?P<word>[A-Za-z_][A-Za-z_0-9$]*)
    |(?P<space>\s+)
    |(?P<other>.)
    """,
    re.VERBOSE | re.DOTALL,
)
_LIMIT_CLAUSE = re.compile(r"\bLIMIT\s+\d+", re.IGNORECASE)

# Keywords that can open the main statement after a WITH list
_STATEMENT_KEYWORDS = {"SELECT", "INSERT", "UPDATE", "DELETE", "MERGE", "VALUES", "TABLE"}


def _statement_keyword(tokens: list[re.Match]) -> Optional[str]:
    """First top-level keyword of the statement, looking past any CTE list."""
    depth = 0
    in_cte_list = False
    for token in tokens:
        kind, text = token.lastgroup, token.group()
        if kind == "other":
            if text == "(":
                depth += 1
            elif text == ")":
                depth -= 1
            continue
        if kind != "word" or depth:
            continue
        word = text.upper()
        if not in_cte_list:
            if word != "WITH":
                return word
            in_cte_list = True
        elif word in _STATEMENT_KEYWORDS:
            return word
    return None


def _code(tokens: list[re.Match]) -> str:
    """Query text with comments removed and string literals emptied."""
    parts = []
    for token in tokens:
        if token.lastgroup == "comment":
            parts.append(" ")
        elif token.lastgroup == "string":
            parts.append("''")
        else:
            parts.append(token.group())
    return "".join(parts)


def is_read_query(query: str) -> bool:
    """True for SELECT statements, including ones behind a WITH clause."""
    return _statement_keyword(list(_TOKEN.finditer(query))) == "SELECT"


def ensure_query_limit(query: str, default_limit: int = DEFAULT_ROW_LIMIT) -> str:
    """Append ``LIMIT <default_limit>`` to a read query that has no bound.

    Non-read statements and queries already carrying a LIMIT are returned
    untouched. The clause goes before a trailing semicolon and before any
    trailing comment.
    """
    if not query or not query.strip():
        return query

    trimmed = query.strip()
    tokens = list(_TOKEN.finditer(trimmed))
    if _statement_keyword(tokens) != "SELECT":
        return query
    if _LIMIT_CLAUSE.search(_code(tokens)):
        return query

    end = 0
    for token in tokens:
        if token.lastgroup not in ("comment", "space"):
            end = token.end()
    statement, trailer = trimmed[:end], trimmed[end:]

    terminated = statement.endswith(";")
    body = statement[:-1].rstrip() if terminated else statement
    bounded = f"{body} LIMIT {default_limit}"
    return f"{bounded}{';' if terminated else ''}{trailer}"


def json_size_in_bytes(obj: Any) -> int:
    """UTF-8 byte length of the JSON serialisation of ``obj``."""
    if isinstance(obj, str):
        text = obj
    else:
        text = json.dumps(obj, ensure_ascii=False, separators=(",", ":"), default=str)
    return len(text.encode("utf-8"))


def validate_message_size(message: Any, max_size: int = MAX_MESSAGE_SIZE) -> dict[str, Any]:
    """Check a message against the size ceiling.

    Returns ``{"is_valid", "size", "max_size"}`` so callers can put both
    numbers in a diagnostic payload.
    """
    size = json_size_in_bytes(message)
    return {"is_valid": size <= max_size, "size": size, "max_size": max_size}
