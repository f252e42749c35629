"""SHON Protocol.

SHON (SHell Object Notation) expresses structured values as a flat list of
shell-friendly tokens, so a program can take its configuration from argv:

    [ --str data --int 123 --seq [ a b ] ]

Core features:
    - Typed scalars: ``-t``/``-f`` booleans, ``-n`` for absent values, numbers.
    - Groups: ``[ ... ]`` holds a sequence, or a key/value group when it
      starts with a ``--key`` token.
    - Enums: bare tags for unit variants, ``[ --Tag payload ]`` otherwise.
    - Escaping: ``--`` marks the next token as a literal string.
"""

from __future__ import annotations

import logging
import shlex
import sys
from collections.abc import Iterable
from typing import Any, TypeVar, overload

from shon.decoder import Decoder
from shon.encoder import Encoder
from shon.errors import ShonError
from shon.model import deserialize, serialize

logger = logging.getLogger(__name__)

T = TypeVar("T")


def trim(tokens: Iterable[str]) -> list[str]:
    """Strip whitespace around each token and drop empty ones."""
    return [stripped for token in tokens if (stripped := token.strip())]


def encode_to_tokens(value: Any, *, escape: bool = True) -> list[str]:
    """Encode a value into a list of SHON tokens.

    Args:
        value: Value to encode: scalars, ``None``, lists, tuples, dicts,
            dataclasses, named tuples, enums and ``Tagged`` variants.
        escape: Quote strings for a POSIX shell with ``shlex.quote``. Pass
            False for tokens handed straight to ``subprocess`` as argv.

    Returns:
        The token list.

    Raises:
        ShonError: If the value (or a nested value) cannot be encoded.

    Example:
        >>> encode_to_tokens({"a": [1, 2]})
        ['[', '--a', '[', '1', '2', ']', ']']
    """
    encoder = Encoder(serialize, escape=escape)
    serialize(value, encoder)
    logger.debug("encoded %s into %d tokens", type(value).__name__, len(encoder.output))
    return encoder.output


def encode_to_string(value: Any) -> str:
    """Encode a value into a single command line fragment.

    The result splits back into the same tokens with ``shlex.split``.
    """
    return " ".join(encode_to_tokens(value))


@overload
def decode_from_tokens(tokens: Iterable[str], into: type[T], *, skip_program: bool = False) -> T: ...


@overload
def decode_from_tokens(tokens: Iterable[str], into: Any = Any, *, skip_program: bool = False) -> Any: ...


def decode_from_tokens(tokens: Iterable[str], into: Any = Any, *, skip_program: bool = False) -> Any:
    """Decode a list of SHON tokens.

    Args:
        tokens: Tokens, e.g. ``sys.argv[1:]``. Whitespace around tokens is
            trimmed and empty tokens are dropped.
        into: Target type hint. ``Any`` (default) yields plain Python values.
        skip_program: Drop the first token (the program name of an argv list).

    Returns:
        The decoded value.

    Raises:
        ShonError: If the tokens are malformed, do not match ``into``, or are
            not fully consumed.
    """
    trimmed = trim(tokens)
    if skip_program:
        trimmed = trimmed[1:]
    decoder = Decoder(trimmed)
    value = deserialize(into, decoder)
    if decoder.remaining:
        raise ShonError(
            f"premature cancel of parse: {decoder.remaining} unconsumed token(s)",
            position=decoder.pos,
        )
    logger.debug("decoded %d tokens into %s", len(trimmed), type(value).__name__)
    return value


def decode_from_args(into: Any = Any, argv: Iterable[str] | None = None) -> Any:
    """Decode the process arguments, skipping the program name.

    Args:
        into: Target type hint.
        argv: Argument list including the program name (default: ``sys.argv``).
    """
    return decode_from_tokens(sys.argv if argv is None else argv, into, skip_program=True)


def decode_from_string(text: str, into: Any = Any) -> Any:
    """Split a command line with ``shlex.split`` and decode the tokens."""
    try:
        tokens = shlex.split(text)
    except ValueError as e:
        raise ShonError(f"invalid command line: {e}") from e
    return decode_from_tokens(tokens, into)


class SHON:
    """Encoder/decoder facade for SHON token lists."""

    @staticmethod
    def encode(value: Any, *, escape: bool = True) -> list[str]:
        """Encode a value into SHON tokens. See ``encode_to_tokens``."""
        return encode_to_tokens(value, escape=escape)

    @staticmethod
    def dumps(value: Any) -> str:
        """Encode a value into a space separated SHON string."""
        return encode_to_string(value)

    @staticmethod
    def decode(tokens: Iterable[str], into: Any = Any, *, skip_program: bool = False) -> Any:
        """Decode SHON tokens. See ``decode_from_tokens``."""
        return decode_from_tokens(tokens, into, skip_program=skip_program)

    @staticmethod
    def loads(text: str, into: Any = Any) -> Any:
        """Decode a SHON command line string."""
        return decode_from_string(text, into)

    @staticmethod
    def from_args(into: Any = Any, argv: Iterable[str] | None = None) -> Any:
        """Decode ``sys.argv`` (or ``argv``) without its program name."""
        return decode_from_args(into, argv)
