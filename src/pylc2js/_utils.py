"""Validation helpers and JavaScript literal utilities."""

from __future__ import annotations

import re

from pylc2js._errors import ERR_MSG_INVALID_BINDING, InvalidBindingError

IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

RESERVED_JS_WORDS: set[str] = {
    "await", "break", "case", "catch", "class", "const", "continue",
    "debugger", "default", "delete", "do", "else", "enum", "export",
    "extends", "false", "finally", "for", "function", "if", "import",
    "in", "instanceof", "let", "new", "null", "return", "super", "switch",
    "this", "throw", "true", "try", "typeof", "undefined", "var", "void",
    "while", "with", "yield",
}

_SIMPLE_ESCAPES: dict[str, str] = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}

_ESCAPE_RE = re.compile(
    r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|.)", re.S
)


def validate_identifier(name: str) -> None:
    """Validate a plain loop variable used as a callback parameter."""
    if not name:
        raise InvalidBindingError(
            "loop variable cannot be empty",
            "empty loop variable provided",
        )
    if not IDENTIFIER_RE.match(name):
        raise InvalidBindingError(
            ERR_MSG_INVALID_BINDING,
            f"loop variable '{name}' is not a valid identifier",
        )
    if name in RESERVED_JS_WORDS:
        raise InvalidBindingError(
            "loop variable is a reserved word",
            f"loop variable '{name}' is a reserved JavaScript word",
        )


def is_destructuring_pattern(pattern: str) -> bool:
    """Classify a loop pattern the way the generator binds it."""
    return "[" in pattern or "{" in pattern


def template_content(literal: str) -> str:
    """Return the raw content of a template literal token."""
    return literal[1:-1]


def has_substitutions(raw: str) -> bool:
    """Check whether raw template content contains ``${...}`` substitutions."""
    i = raw.find("${")
    while i != -1:
        backslashes = 0
        j = i - 1
        while j >= 0 and raw[j] == "\\":
            backslashes += 1
            j -= 1
        if backslashes % 2 == 0:
            return True
        i = raw.find("${", i + 2)
    return False


def _unescape(match: re.Match[str]) -> str:
    seq = match.group(1)
    if seq.startswith("u{"):
        return chr(int(seq[2:-1], 16))
    if seq.startswith("u") and len(seq) == 5:
        return chr(int(seq[1:], 16))
    if seq.startswith("x") and len(seq) == 3:
        return chr(int(seq[1:], 16))
    if seq in ("\n", "\r\n", "\r", "\u2028", "\u2029"):
        # Line continuation
        return ""
    return _SIMPLE_ESCAPES.get(seq, seq)


def decode_escapes(body: str) -> str:
    """Process JavaScript escape sequences in string or template content."""
    return _ESCAPE_RE.sub(_unescape, body)


def decode_string_literal(literal: str) -> str:
    """Decode a quoted JavaScript string literal token to its value."""
    return decode_escapes(literal[1:-1])


def format_number(value: int | float) -> str:
    """Format a number the way JavaScript's ToString does for common values."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if value != value:
        return "NaN"
    if value in (float("inf"), float("-inf")):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)
