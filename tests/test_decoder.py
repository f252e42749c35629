"""Tests for decoding SHON tokens.

Covers shape inference for untyped targets, typed targets through the
object model, enum forms, and malformed input.
"""

import enum
from dataclasses import dataclass
from typing import Any, NamedTuple, Optional

import pytest
from conftest import (
    E,
    Empty,
    Example,
    Newtype,
    StructVariant,
    TupleVariant,
    Unit,
    WithDefaults,
)

from shon import ShonError, decode_from_args, decode_from_tokens
from shon.decoder import MAX_DEPTH, Decoder, Visitor


class Color(enum.Enum):
    RED = 1
    GREEN = 2


class Point(NamedTuple):
    x: int
    y: float


@dataclass
class SeqHolder:
    seq: list[str]
    extra: int


@dataclass
class MapHolder:
    map: dict[str, str]
    extra: int


@dataclass
class EmptyHolder:
    e: Empty
    xs: list[int]


class TestUntypedShapes:
    def test_scalars(self) -> None:
        assert decode_from_tokens(["-t"]) is True
        assert decode_from_tokens(["-f"]) is False
        assert decode_from_tokens(["-n"]) is None
        assert decode_from_tokens(["42"]) == 42
        assert decode_from_tokens(["-42"]) == -42
        assert decode_from_tokens(["4.5"]) == 4.5
        assert decode_from_tokens(["data"]) == "data"

    def test_key_token_outside_group_is_a_string(self) -> None:
        assert decode_from_tokens(["--name"]) == "name"

    @pytest.mark.parametrize("text", ["-", "--", "123", "4.5", "-t", "["])
    def test_escape_marker_forces_string(self, text: str) -> None:
        assert decode_from_tokens(["--", text]) == text

    def test_bracket_with_key_is_a_map(self) -> None:
        assert decode_from_tokens(["[", "--key", "value", "]"]) == {"key": "value"}

    def test_bracket_without_key_is_a_sequence(self) -> None:
        assert decode_from_tokens(["[", "1", "2", "3", "]"]) == [1, 2, 3]

    def test_escaped_first_element_is_still_a_sequence(self) -> None:
        assert decode_from_tokens(["[", "--", "1", "2", "]"]) == ["1", 2]

    def test_empty_groups(self) -> None:
        assert decode_from_tokens(["[]"]) == []
        assert decode_from_tokens(["[--]"]) == {}
        assert decode_from_tokens(["[", "]"]) == []

    def test_nested(self) -> None:
        tokens = ["[", "--a", "[", "[--]", "[]", "-n", "]", "--b", "[", "--c", "-t", "]", "]"]
        assert decode_from_tokens(tokens) == {"a": [{}, [], None], "b": {"c": True}}

    def test_tokens_are_trimmed(self) -> None:
        assert decode_from_tokens(["  [ ", "", "1", "  ", " ]"]) == [1]

    def test_empty_input_is_absent(self) -> None:
        assert decode_from_tokens([]) is None


class TestTypedTargets:
    def test_empty_struct_before_sibling_field(self) -> None:
        tokens = ["[", "--e", "[]", "--xs", "[", "1", "]", "]"]
        assert decode_from_tokens(tokens, EmptyHolder) == EmptyHolder(e=Empty(), xs=[1])
        tokens = ["[", "--e", "[--]", "--xs", "[", "1", "]", "]"]
        assert decode_from_tokens(tokens, EmptyHolder) == EmptyHolder(e=Empty(), xs=[1])

    def test_empty_tuple_before_sibling(self) -> None:
        tokens = ["[", "[]", "[", "2", "]", "]"]
        assert decode_from_tokens(tokens, tuple[tuple[()], list[int]]) == ((), [2])

    def test_scalars(self) -> None:
        assert decode_from_tokens(["-t"], bool) is True
        assert decode_from_tokens(["7"], int) == 7
        assert decode_from_tokens(["7"], float) == 7.0
        assert decode_from_tokens(["a"], str) == "a"

    def test_type_mismatch_is_reported(self) -> None:
        with pytest.raises(ShonError, match="invalid type: string 'a', expected an integer"):
            decode_from_tokens(["a"], int)
        with pytest.raises(ShonError, match="invalid type: integer `1`, expected a string"):
            decode_from_tokens(["1"], str)

    def test_option(self) -> None:
        assert decode_from_tokens(["-n"], Optional[int]) is None
        assert decode_from_tokens(["5"], int | None) == 5
        assert decode_from_tokens([], Optional[int]) is None

    def test_containers(self) -> None:
        assert decode_from_tokens(["[", "1", "2", "]"], list[int]) == [1, 2]
        assert decode_from_tokens(["[", "1", "2", "]"], set[int]) == {1, 2}
        assert decode_from_tokens(["[", "1", "a", "]"], tuple[int, str]) == (1, "a")
        assert decode_from_tokens(["[", "1", "2", "]"], tuple[int, ...]) == (1, 2)
        assert decode_from_tokens(["[", "--1", "a", "]"], dict[int, str]) == {1: "a"}

    def test_short_tuple(self) -> None:
        with pytest.raises(ShonError, match="invalid length 1"):
            decode_from_tokens(["[", "1", "]"], tuple[int, int])

    def test_long_tuple(self) -> None:
        with pytest.raises(ShonError, match="expected ']'"):
            decode_from_tokens(["[", "1", "2", "3", "]"], tuple[int, int])

    def test_bytes(self) -> None:
        assert decode_from_tokens(["[", "0", "255", "]"], bytes) == b"\x00\xff"
        with pytest.raises(ShonError, match="expected a byte"):
            decode_from_tokens(["[", "256", "]"], bytes)

    def test_struct(self, example_tokens: list[str]) -> None:
        value = decode_from_tokens(example_tokens, Example, skip_program=True)
        assert value == Example(
            str="data",
            int=123,
            int1=456,
            int2=None,
            int3=None,
            data=True,
            seq=["'hello there'", "general", "kenobi"],
            map={"one": 2, "three": 4},
            e=Unit(),
        )

    def test_from_args(self, example_tokens: list[str]) -> None:
        value = decode_from_args(Example, example_tokens)
        assert value.e == Unit()

    def test_empty_struct(self) -> None:
        assert decode_from_tokens(["[--]"], Empty) == Empty()

    def test_empty_sequence_field(self) -> None:
        tokens = ["[", "--seq", "[]", "--extra", "-1", "]"]
        assert decode_from_tokens(tokens, SeqHolder) == SeqHolder(seq=[], extra=-1)

    def test_empty_map_field(self) -> None:
        tokens = ["[", "--map", "[--]", "--extra", "-1", "]"]
        assert decode_from_tokens(tokens, MapHolder) == MapHolder(map={}, extra=-1)

    def test_defaults_and_unknown_fields(self) -> None:
        tokens = ["[", "--name", "x", "--unknown", "[", "1", "]", "]"]
        assert decode_from_tokens(tokens, WithDefaults) == WithDefaults(name="x")

    def test_missing_field(self) -> None:
        with pytest.raises(ShonError, match="missing field `extra`"):
            decode_from_tokens(["[", "--seq", "[]", "]"], SeqHolder)

    def test_duplicate_field(self) -> None:
        with pytest.raises(ShonError, match="duplicate field `name`"):
            decode_from_tokens(["[", "--name", "a", "--name", "b", "]"], WithDefaults)

    def test_struct_from_positional_sequence(self) -> None:
        assert decode_from_tokens(["[", "a", "5", "]"], WithDefaults) == WithDefaults("a", 5)

    def test_named_tuple(self) -> None:
        assert decode_from_tokens(["[", "1", "2", "]"], Point) == Point(1, 2.0)
        assert decode_from_tokens(["[", "--y", "2.5", "--x", "1", "]"], Point) == Point(1, 2.5)

    def test_unsupported_target(self) -> None:
        with pytest.raises(ShonError, match="unsupported target type"):
            decode_from_tokens(["1"], complex)


class TestEnums:
    def test_unit_variant(self) -> None:
        assert decode_from_tokens(["Unit"], E) == Unit()

    def test_newtype_variant(self) -> None:
        assert decode_from_tokens(["[", "--Newtype", "1", "]"], E) == Newtype(1)

    def test_tuple_variant(self) -> None:
        tokens = ["[", "--Tuple", "[", "1", "2", "]", "]"]
        assert decode_from_tokens(tokens, E) == TupleVariant(1, 2)

    def test_struct_variant(self) -> None:
        tokens = ["[", "--Struct", "[", "--a", "1", "]", "]"]
        assert decode_from_tokens(tokens, E) == StructVariant(a=1)

    def test_escaped_unit_tag(self) -> None:
        assert decode_from_tokens(["--", "GREEN"], Color) is Color.GREEN

    def test_enum_member(self) -> None:
        assert decode_from_tokens(["RED"], Color) is Color.RED

    def test_unknown_variant(self) -> None:
        with pytest.raises(ShonError, match="unknown variant `Blue`"):
            decode_from_tokens(["Blue"], Color)

    def test_payload_for_unit_only_enum(self) -> None:
        with pytest.raises(ShonError, match="expected unit variant"):
            decode_from_tokens(["[", "--RED", "1", "]"], Color)

    def test_unit_tag_for_payload_variant(self) -> None:
        with pytest.raises(ShonError, match="expected newtype variant"):
            decode_from_tokens(["Newtype"], E)

    def test_specific_variant_target(self) -> None:
        assert decode_from_tokens(["[", "--Newtype", "4", "]"], Newtype) == Newtype(4)
        with pytest.raises(ShonError, match="expected variant Newtype"):
            decode_from_tokens(["Unit"], Newtype)

    def test_missing_close(self) -> None:
        with pytest.raises(ShonError, match="unterminated group"):
            decode_from_tokens(["[", "--Newtype", "1"], E)


class TestMalformedInput:
    def test_trailing_input(self) -> None:
        with pytest.raises(ShonError, match="premature cancel of parse") as excinfo:
            decode_from_tokens(["-t", "extra"], bool)
        assert excinfo.value.position == 1

    def test_unmatched_open(self) -> None:
        with pytest.raises(ShonError, match="unterminated group"):
            decode_from_tokens(["["])
        with pytest.raises(ShonError, match="unterminated group"):
            decode_from_tokens(["[", "1", "2"])

    def test_stray_close(self) -> None:
        with pytest.raises(ShonError, match="unexpected '\\]' at token 0"):
            decode_from_tokens(["]"])

    def test_key_without_value(self) -> None:
        with pytest.raises(ShonError, match="unexpected '\\]'") as excinfo:
            decode_from_tokens(["[", "--a", "]"])
        assert excinfo.value.position == 2

    def test_escape_at_end(self) -> None:
        with pytest.raises(ShonError, match="unexpected end of input"):
            decode_from_tokens(["--"])

    def test_enum_at_end(self) -> None:
        with pytest.raises(ShonError, match="expected enum E, found end of input"):
            decode_from_tokens([], E)

    def test_group_in_key_position(self) -> None:
        with pytest.raises(ShonError, match="map key must be a string or number") as excinfo:
            decode_from_tokens(["[", "--a", "1", "[", "1", "]", "2", "]"])
        assert excinfo.value.position == 3

    def test_group_in_key_position_of_skipped_field(self) -> None:
        tokens = ["[", "--unknown", "[", "--a", "1", "[", "]", "2", "]", "--seq", "[", "]", "]"]
        with pytest.raises(ShonError, match="map key must be a string or number"):
            decode_from_tokens(tokens, SeqHolder)

    def test_nesting_too_deep(self) -> None:
        with pytest.raises(ShonError, match="nesting too deep") as excinfo:
            decode_from_tokens(["["] * 5000 + ["]"] * 5000)
        assert excinfo.value.position == MAX_DEPTH

    def test_nested_maps_too_deep(self) -> None:
        with pytest.raises(ShonError, match="nesting too deep"):
            decode_from_tokens(["[", "--a"] * 5000)

    def test_nesting_at_limit(self) -> None:
        tokens = ["["] * MAX_DEPTH + ["1"] + ["]"] * MAX_DEPTH
        value = decode_from_tokens(tokens)
        for _ in range(MAX_DEPTH):
            assert isinstance(value, list)
            (value,) = value
        assert value == 1


class RecordingVisitor(Visitor):
    """Records which callback the decoder chose."""

    def visit_u64(self, v: int) -> Any:
        return ("u64", v)

    def visit_i64(self, v: int) -> Any:
        return ("i64", v)

    def visit_f64(self, v: float) -> Any:
        return ("f64", v)

    def visit_str(self, v: str) -> Any:
        return ("str", v)


class TestDecoderCursor:
    def test_numeric_dispatch_order(self) -> None:
        assert Decoder(["1"]).deserialize_any(RecordingVisitor()) == ("u64", 1)
        assert Decoder(["-1"]).deserialize_any(RecordingVisitor()) == ("i64", -1)
        assert Decoder(["1.5"]).deserialize_any(RecordingVisitor()) == ("f64", 1.5)
        assert Decoder(["x"]).deserialize_any(RecordingVisitor()) == ("str", "x")

    def test_typed_requests_use_the_same_dispatch(self) -> None:
        decoder = Decoder(["x", "2"])
        assert decoder.deserialize_int(RecordingVisitor()) == ("str", "x")
        assert decoder.deserialize_str(RecordingVisitor()) == ("u64", 2)
        assert decoder.remaining == 0

    def test_default_visitor_rejects(self) -> None:
        with pytest.raises(ShonError, match="invalid type: boolean `true`, expected a value"):
            Decoder(["-t"]).deserialize_any(Visitor())
