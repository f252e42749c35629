"""SHON token grammar.

Shared vocabulary between the encoder and the decoder:

    -t / -f      boolean true / false
    -n           absent option or unit
    --           the next token is a literal string
    [ ... ]      a group; a sequence, or a key/value group when the first
                 token inside it is a ``--name`` key
    []           empty sequence
    [--]         empty key/value group
    --name       key, field name or variant tag
    anything     unsigned integer, else signed integer, else float, else string
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, NamedTuple

TRUE = "-t"
FALSE = "-f"
NONE = "-n"
ESCAPE = "--"
OPEN = "["
CLOSE = "]"
EMPTY_SEQ = "[]"
EMPTY_MAP = "[--]"

SENTINELS = frozenset({TRUE, FALSE, NONE, ESCAPE, OPEN, CLOSE, EMPTY_SEQ, EMPTY_MAP, "-"})

U64_MAX = 2**64 - 1
I64_MIN = -(2**63)
I64_MAX = 2**63 - 1

_UINT_RE = re.compile(r"\+?[0-9]+")
_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:inf|infinity|nan|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)",
    re.IGNORECASE,
)


class Shape(Enum):
    """What a single token stands for."""

    BOOL = "bool"
    UINT = "uint"
    INT = "int"
    FLOAT = "float"
    STR = "str"
    NONE = "none"
    KEY = "key"
    ESCAPE = "escape"
    OPEN = "open"
    CLOSE = "close"
    EMPTY_SEQ = "empty_seq"
    EMPTY_MAP = "empty_map"


class Classified(NamedTuple):
    """Shape of one token, with its parsed value for scalars and keys."""

    shape: Shape
    value: Any = None


_FIXED = {
    TRUE: Classified(Shape.BOOL, True),
    FALSE: Classified(Shape.BOOL, False),
    NONE: Classified(Shape.NONE),
    ESCAPE: Classified(Shape.ESCAPE),
    OPEN: Classified(Shape.OPEN),
    CLOSE: Classified(Shape.CLOSE),
    EMPTY_SEQ: Classified(Shape.EMPTY_SEQ),
    EMPTY_MAP: Classified(Shape.EMPTY_MAP),
}


def is_key(token: str) -> bool:
    """Return True for ``--name`` tokens (name non-empty)."""
    return token.startswith(ESCAPE) and len(token) > len(ESCAPE)


def parse_uint(token: str) -> int | None:
    """Parse an unsigned 64-bit integer, or return None."""
    if _UINT_RE.fullmatch(token):
        value = int(token)
        if value <= U64_MAX:
            return value
    return None


def parse_int(token: str) -> int | None:
    """Parse a signed 64-bit integer, or return None."""
    if _INT_RE.fullmatch(token):
        value = int(token)
        if I64_MIN <= value <= I64_MAX:
            return value
    return None


def parse_float(token: str) -> float | None:
    """Parse a float, including inf and nan, or return None."""
    if _FLOAT_RE.fullmatch(token):
        return float(token)
    return None


def parse_scalar(token: str) -> Classified:
    """Parse a bare token as u64, then i64, then f64, falling back to a string."""
    if (uint := parse_uint(token)) is not None:
        return Classified(Shape.UINT, uint)
    if (sint := parse_int(token)) is not None:
        return Classified(Shape.INT, sint)
    if (real := parse_float(token)) is not None:
        return Classified(Shape.FLOAT, real)
    return Classified(Shape.STR, token)


def classify(token: str) -> Classified:
    """Classify one token without looking at its neighbours.

    Example:
        >>> classify("-t")
        Classified(shape=<Shape.BOOL: 'bool'>, value=True)
        >>> classify("--name")
        Classified(shape=<Shape.KEY: 'key'>, value='name')
    """
    if fixed := _FIXED.get(token):
        return fixed
    if is_key(token):
        return Classified(Shape.KEY, token[len(ESCAPE) :])
    return parse_scalar(token)


def needs_escape(token: str) -> bool:
    """Return True if a literal string token would be misread by the decoder."""
    return token in SENTINELS or is_key(token) or parse_scalar(token).shape is not Shape.STR
