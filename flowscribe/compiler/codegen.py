"""Helpers for rendering Python source fragments in generated scripts."""

from __future__ import annotations

import re

_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}

# Backslash, quote and every C0/DEL control character
_ESCAPE_RE = re.compile(r"[\\'\x00-\x1f\x7f]")

# Control characters that would end or corrupt a single source line
_LINE_BREAK_RE = re.compile(r"[\x00-\x08\n-\x1f\x7f]")


def _escape(match: re.Match) -> str:
    char = match.group(0)
    return _ESCAPES.get(char, f"\\x{ord(char):02x}")


def quote(value: str) -> str:
    """Render ``value`` as a single-quoted Python string literal."""
    return "'" + _ESCAPE_RE.sub(_escape, value) + "'"


def quote_list(values: list[str]) -> str:
    return "[" + ", ".join(quote(v) for v in values) + "]"


def comment_text(value: str) -> str:
    """Keep ``value`` on one line so it cannot terminate a ``#`` comment."""
    return _LINE_BREAK_RE.sub(_escape, value)


def docstring_text(value: str) -> str:
    """Make ``value`` safe inside a triple-double-quoted docstring line."""
    return comment_text(value.replace("\\", "\\\\")).replace('"', '\\"')


def camel_case(name: str) -> str:
    return "".join(part.capitalize() for part in re.split(r"[^0-9a-zA-Z]+", name) if part)


def identifier(name: str, prefix: str = "") -> str:
    """Turn a free-form name into a valid lower-case Python identifier."""
    ident = re.sub(r"[^0-9a-zA-Z]+", "_", name).strip("_").lower()
    if not ident:
        ident = "flow"
    if prefix:
        return f"{prefix}{ident}"
    if ident[0].isdigit():
        ident = f"_{ident}"
    return ident


def indent_lines(lines: list[str], indent: str = "    ") -> list[str]:
    return [indent + line if line else "" for line in lines]
