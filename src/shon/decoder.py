"""SHON decoder.

The decoder is pull-based. A driver (see ``shon.model.deserialize``) asks
for the next value by calling ``deserialize_*`` with a ``Visitor``; the
decoder classifies the next token(s) and calls back exactly one
``visit_*`` method, recursing into ``GroupAccess`` / ``VariantAccess`` for
nested groups.

The expected type is not consulted: every ``deserialize_*`` request except
options and enums goes through ``deserialize_any``.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any, TypeVar

from shon import grammar
from shon.errors import ShonError
from shon.grammar import Shape

if TYPE_CHECKING:
    Seed = Callable[["Decoder"], "T"]  # pragma: no cover

T = TypeVar("T")

# nested groups deeper than this are rejected before the interpreter stack runs out
MAX_DEPTH = 64


class Visitor:
    """Callbacks invoked by the decoder once the next value is classified.

    Subclasses override the callbacks for the shapes they accept; the
    defaults reject the value with an ``invalid type`` error.
    """

    expecting = "a value"

    def visit_bool(self, v: bool) -> Any:
        raise ShonError.invalid_type(f"boolean `{'true' if v else 'false'}`", self.expecting)

    def visit_u64(self, v: int) -> Any:
        raise ShonError.invalid_type(f"integer `{v}`", self.expecting)

    def visit_i64(self, v: int) -> Any:
        raise ShonError.invalid_type(f"integer `{v}`", self.expecting)

    def visit_f64(self, v: float) -> Any:
        raise ShonError.invalid_type(f"floating point `{v}`", self.expecting)

    def visit_str(self, v: str) -> Any:
        raise ShonError.invalid_type(f"string {v!r}", self.expecting)

    def visit_none(self) -> Any:
        raise ShonError.invalid_type("Option value", self.expecting)

    def visit_some(self, decoder: Decoder) -> Any:
        raise ShonError.invalid_type("Option value", self.expecting)

    def visit_seq(self, access: GroupAccess) -> Any:
        raise ShonError.invalid_type("sequence", self.expecting)

    def visit_map(self, access: GroupAccess) -> Any:
        raise ShonError.invalid_type("map", self.expecting)

    def visit_enum(self, access: VariantAccess) -> Any:
        raise ShonError.invalid_type("enum", self.expecting)


class Decoder:
    """Cursor over one token list.

    Args:
        tokens: Already trimmed tokens; see ``shon.core.decode_from_tokens``.
    """

    def __init__(self, tokens: Sequence[str]) -> None:
        self.tokens = tuple(tokens)
        self.pos = 0
        # set by `[]` / `[--]`: the group that was just opened has no elements
        self.empty = False
        self.depth = 0

    @property
    def remaining(self) -> int:
        return len(self.tokens) - self.pos

    def peek(self) -> str | None:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def pop(self) -> str:
        if self.pos >= len(self.tokens):
            raise ShonError("unexpected end of input", position=self.pos)
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def expect_close(self, opened_at: int) -> None:
        token = self.peek()
        if token is None:
            raise ShonError(f"unterminated group opened at token {opened_at}", position=self.pos)
        if token != grammar.CLOSE:
            raise ShonError(f"expected ']' but found {token!r}", position=self.pos)
        self.pos += 1

    def deserialize_any(self, visitor: Visitor) -> Any:
        if not self.remaining:
            return visitor.visit_none()
        position = self.pos
        shape, value = grammar.classify(self.pop())
        try:
            match shape:
                case Shape.BOOL:
                    return visitor.visit_bool(value)
                case Shape.NONE:
                    return visitor.visit_none()
                case Shape.ESCAPE:
                    return visitor.visit_str(self.pop())
                case Shape.KEY:
                    return visitor.visit_str(value)
                case Shape.UINT:
                    return visitor.visit_u64(value)
                case Shape.INT:
                    return visitor.visit_i64(value)
                case Shape.FLOAT:
                    return visitor.visit_f64(value)
                case Shape.STR:
                    return visitor.visit_str(value)
                case Shape.OPEN:
                    return self._group(visitor, position)
                case Shape.EMPTY_SEQ:
                    return self._empty_group(visitor.visit_seq)
                case Shape.EMPTY_MAP:
                    return self._empty_group(visitor.visit_map)
                case _:
                    raise ShonError("unexpected ']'")
        except ShonError as e:
            if e.position is None:
                e.position = position
            raise

    def _group(self, visitor: Visitor, opened_at: int) -> Any:
        following = self.peek()
        if following is None:
            raise ShonError(f"unterminated group opened at token {opened_at}", position=self.pos)
        self.enter(opened_at)
        try:
            if grammar.is_key(following):
                result = visitor.visit_map(GroupAccess(self))
            else:
                result = visitor.visit_seq(GroupAccess(self))
        finally:
            self.depth -= 1
        self.expect_close(opened_at)
        return result

    def _empty_group(self, visit: Callable[[GroupAccess], Any]) -> Any:
        self.empty = True
        try:
            return visit(GroupAccess(self))
        finally:
            # visitors with nothing to read never ask for an element
            self.empty = False

    def enter(self, opened_at: int) -> None:
        """Count one more open group, failing past ``MAX_DEPTH``."""
        self.depth += 1
        if self.depth > MAX_DEPTH:
            self.depth -= 1
            raise ShonError(
                f"nesting too deep (more than {MAX_DEPTH} groups)", position=opened_at
            )

    deserialize_bool = deserialize_int = deserialize_float = deserialize_char = deserialize_any
    deserialize_str = deserialize_bytes = deserialize_unit = deserialize_identifier = deserialize_any
    deserialize_seq = deserialize_tuple = deserialize_map = deserialize_struct = deserialize_any
    deserialize_ignored_any = deserialize_any

    def deserialize_option(self, visitor: Visitor) -> Any:
        token = self.peek()
        if token is None:
            return visitor.visit_none()
        if token == grammar.NONE:
            self.pos += 1
            return visitor.visit_none()
        return visitor.visit_some(self)

    def deserialize_enum(self, name: str, variants: Sequence[str], visitor: Visitor) -> Any:
        token = self.peek()
        if token is None:
            raise ShonError(f"expected enum {name}, found end of input", position=self.pos)
        if token != grammar.OPEN:
            position = self.pos
            tag = self.pop()
            if tag == grammar.ESCAPE:
                tag = self.pop()
            try:
                return visitor.visit_enum(UnitVariantAccess(tag))
            except ShonError as e:
                if e.position is None:
                    e.position = position
                raise
        opened_at = self.pos
        self.pos += 1
        self.enter(opened_at)
        try:
            value = visitor.visit_enum(VariantAccess(self))
        finally:
            self.depth -= 1
        self.expect_close(opened_at)
        return value


class GroupAccess:
    """Element and entry supplier for the group that was just opened."""

    def __init__(self, decoder: Decoder) -> None:
        self.decoder = decoder

    def has_next(self) -> bool:
        """Return False once the group is exhausted."""
        decoder = self.decoder
        if decoder.empty:
            decoder.empty = False
            return False
        token = decoder.peek()
        if token is None:
            raise ShonError("unterminated group", position=decoder.pos)
        return token != grammar.CLOSE

    def next_element(self, seed: Seed[T]) -> T:
        return seed(self.decoder)

    next_key = next_value = next_element


class _TagVisitor(Visitor):
    expecting = "a variant tag"

    def visit_str(self, v: str) -> str:
        return v


class VariantAccess:
    """Payload access for a bracketed variant: ``[ --Tag payload ]``."""

    def __init__(self, decoder: Decoder) -> None:
        self.decoder = decoder

    def variant(self) -> str:
        return self.decoder.deserialize_identifier(_TagVisitor())

    def unit_variant(self) -> None:
        if self.decoder.peek() == grammar.NONE:
            self.decoder.pos += 1
            return
        raise ShonError.invalid_type("variant with payload", "unit variant")

    def newtype_variant(self, seed: Seed[T]) -> T:
        return seed(self.decoder)

    def tuple_variant(self, length: int, visitor: Visitor) -> Any:
        return self.decoder.deserialize_seq(visitor)

    def struct_variant(self, fields: Sequence[str], visitor: Visitor) -> Any:
        return self.decoder.deserialize_map(visitor)


class UnitVariantAccess:
    """Variant access for a bare tag token."""

    def __init__(self, tag: str) -> None:
        self.tag = tag

    def variant(self) -> str:
        return self.tag

    def unit_variant(self) -> None:
        return None

    def newtype_variant(self, seed: Seed[T]) -> T:
        raise ShonError.invalid_type("unit variant", "newtype variant")

    def tuple_variant(self, length: int, visitor: Visitor) -> Any:
        raise ShonError.invalid_type("unit variant", "tuple variant")

    def struct_variant(self, fields: Sequence[str], visitor: Visitor) -> Any:
        raise ShonError.invalid_type("unit variant", "struct variant")
