"""SHON encoder.

The encoder is push-based: a driver (see ``shon.model.serialize``) walks a
value and calls the ``serialize_*`` methods below in traversal order. Each
call appends tokens to ``Encoder.output``.

Compound shapes return a small helper (``SeqEncoder``, ``MapEncoder``,
``StructEncoder``) whose ``end()`` emits the closing bracket(s).
"""

from __future__ import annotations

import shlex
from typing import TYPE_CHECKING, Any

from shon import grammar
from shon.errors import ShonError

if TYPE_CHECKING:
    from collections.abc import Callable  # pragma: no cover

    SerializeFn = Callable[[Any, "Encoder"], None]  # pragma: no cover

_QUOTE = "'"


class Encoder:
    """Collects SHON tokens for one top-level value.

    Args:
        serialize: Driver used for nested values (elements, entries, payloads).
        escape: Pass strings through ``shlex.quote``. Disable to produce raw
            tokens suitable for an argv list.
    """

    def __init__(self, serialize: SerializeFn, *, escape: bool = True) -> None:
        self.output: list[str] = []
        self.escape = escape
        self._serialize = serialize
        self._empty_group = False

    def emit(self, value: Any) -> None:
        """Encode a nested value through the driver."""
        self._serialize(value, self)

    # Scalars

    def serialize_bool(self, v: bool) -> None:
        self.output.append(grammar.TRUE if v else grammar.FALSE)

    def serialize_int(self, v: int) -> None:
        if not grammar.I64_MIN <= v <= grammar.U64_MAX:
            raise ShonError(f"integer {v} does not fit in 64 bits")
        self.output.append(str(v))

    def serialize_float(self, v: float) -> None:
        # repr keeps the fractional part so the token decodes as a float again
        self.output.append(repr(float(v)))

    def serialize_char(self, v: str) -> None:
        if len(v) != 1:
            raise ShonError(f"expected a single character, got {v!r}")
        self.serialize_str(v)

    def serialize_str(self, v: str) -> None:
        token = shlex.quote(v) if self.escape else v
        # the shell strips the quotes again, so check the unquoted text too
        if grammar.needs_escape(v) or grammar.needs_escape(token):
            self.output.append(grammar.ESCAPE)
        self.output.append(token)

    def serialize_bytes(self, v: bytes) -> None:
        seq = self.serialize_seq(len(v))
        for byte in v:
            self.serialize_int(byte)
        seq.end()

    # Options and units

    def serialize_none(self) -> None:
        self.serialize_unit()

    def serialize_some(self, value: Any) -> None:
        self.emit(value)

    def serialize_unit(self) -> None:
        self.output.append(grammar.NONE)

    def serialize_unit_struct(self, name: str) -> None:
        self.serialize_unit()

    def serialize_newtype_struct(self, name: str, value: Any) -> None:
        self.emit(value)

    # Enum variants

    def serialize_unit_variant(self, name: str, index: int, variant: str) -> None:
        self.serialize_str(variant)

    def serialize_newtype_variant(self, name: str, index: int, variant: str, value: Any) -> None:
        entries = self.serialize_map(1)
        entries.serialize_key(variant)
        entries.serialize_value(value)
        entries.end()

    def serialize_tuple_variant(self, name: str, index: int, variant: str, length: int) -> SeqEncoder:
        self._open_variant(variant)
        return SeqEncoder(self, closers=2)

    def serialize_struct_variant(
        self, name: str, index: int, variant: str, length: int
    ) -> StructEncoder:
        self._open_variant(variant)
        return StructEncoder(self, closers=2)

    def _open_variant(self, variant: str) -> None:
        self.output.extend((grammar.OPEN, grammar.ESCAPE + variant, grammar.OPEN))

    # Groups

    def serialize_seq(self, length: int | None = None) -> SeqEncoder:
        self.output.append(grammar.OPEN)
        return SeqEncoder(self)

    def serialize_tuple(self, length: int) -> SeqEncoder:
        return self.serialize_seq(length)

    def serialize_tuple_struct(self, name: str, length: int) -> SeqEncoder:
        return self.serialize_seq(length)

    def serialize_map(self, length: int | None = None) -> MapEncoder:
        self._open_keyed(length)
        return MapEncoder(self)

    def serialize_struct(self, name: str, length: int) -> StructEncoder:
        self._open_keyed(length)
        return StructEncoder(self)

    def _open_keyed(self, length: int | None) -> None:
        # `[ ]` would read back as a sequence
        if length == 0:
            self.output.append(grammar.EMPTY_MAP)
            self._empty_group = True
        else:
            self.output.append(grammar.OPEN)

    def close(self, closers: int = 1) -> None:
        self.output.extend([grammar.CLOSE] * closers)

    def close_keyed(self, closers: int) -> None:
        if self._empty_group:
            self._empty_group = False
            return
        self.close(closers)

    def key_token(self, key: Any) -> str:
        """Render a map key as a ``--key`` token.

        The key goes through the scalar path; a literal-escape marker is
        dropped since the ``--`` prefix already marks the token as a key.
        """
        mark = len(self.output)
        self.emit(key)
        rendered = self.output[mark:]
        del self.output[mark:]
        literal = len(rendered) == 2 and rendered[0] == grammar.ESCAPE
        if literal:
            rendered = rendered[1:]
        if len(rendered) != 1 or (not literal and rendered[0] in grammar.SENTINELS):
            raise ShonError(f"map key must be a string or number, got {key!r}")
        token = rendered[0]
        if token in ("", _QUOTE * 2):
            raise ShonError("map key must not be empty")
        if self.escape and token.startswith(_QUOTE):
            return _QUOTE + grammar.ESCAPE + token[1:]
        return grammar.ESCAPE + token


class SeqEncoder:
    """Element writer for sequences, tuples and tuple variants."""

    def __init__(self, encoder: Encoder, *, closers: int = 1) -> None:
        self.encoder = encoder
        self.closers = closers

    def serialize_element(self, value: Any) -> None:
        self.encoder.emit(value)

    serialize_field = serialize_element

    def end(self) -> None:
        self.encoder.close(self.closers)


class MapEncoder:
    """Entry writer for maps."""

    def __init__(self, encoder: Encoder) -> None:
        self.encoder = encoder

    def serialize_key(self, key: Any) -> None:
        self.encoder.output.append(self.encoder.key_token(key))

    def serialize_value(self, value: Any) -> None:
        self.encoder.emit(value)

    def serialize_entry(self, key: Any, value: Any) -> None:
        self.serialize_key(key)
        self.serialize_value(value)

    def end(self) -> None:
        self.encoder.close_keyed(1)


class StructEncoder:
    """Field writer for structs and struct variants."""

    def __init__(self, encoder: Encoder, *, closers: int = 1) -> None:
        self.encoder = encoder
        self.closers = closers

    def serialize_field(self, name: str, value: Any) -> None:
        self.encoder.output.append(grammar.ESCAPE + name)
        self.encoder.emit(value)

    def end(self) -> None:
        self.encoder.close_keyed(self.closers)
