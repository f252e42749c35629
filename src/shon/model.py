"""Object model driving the SHON encoder and decoder.

``serialize`` walks plain Python values, dataclasses, named tuples,
``enum.Enum`` members and ``Tagged`` variants, and reports them to an
``Encoder``. ``deserialize`` turns a type hint into a ``Visitor`` and lets
the ``Decoder`` call it back.

Data-carrying enums are declared with ``Tagged``:

    >>> from dataclasses import dataclass
    >>> class Shape(Tagged): ...
    >>> @dataclass
    ... class Circle(Shape, kind="newtype"):
    ...     radius: float
    >>> @dataclass
    ... class Rect(Shape, kind="struct"):
    ...     w: int
    ...     h: int
"""

from __future__ import annotations

import dataclasses
import enum
import functools
import types
import typing
from collections.abc import Mapping, MutableSequence, Sequence, Set
from typing import TYPE_CHECKING, Any, ClassVar, Literal, NamedTuple, Union

from shon.decoder import Visitor
from shon.errors import ShonError

if TYPE_CHECKING:
    from collections.abc import Callable  # pragma: no cover

    from shon.decoder import Decoder, GroupAccess, VariantAccess  # pragma: no cover
    from shon.encoder import Encoder  # pragma: no cover

Kind = Literal["unit", "newtype", "tuple", "struct"]
KINDS: tuple[Kind, ...] = ("unit", "newtype", "tuple", "struct")

_MISSING = dataclasses.MISSING


class Tagged:
    """Base for enums whose variants carry data.

    A direct subclass of ``Tagged`` is the enum itself; its dataclass
    subclasses are the variants. ``kind`` picks the variant form and
    ``tag`` overrides the tag (defaults to the class name).
    """

    __shon_variants__: ClassVar[dict[str, type[Tagged]]]
    __shon_kind__: ClassVar[Kind]
    __shon_tag__: ClassVar[str]

    def __init_subclass__(cls, *, kind: Kind = "struct", tag: str | None = None, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if Tagged in cls.__bases__:
            cls.__shon_variants__ = {}
            return
        if kind not in KINDS:
            raise TypeError(f"unknown variant kind {kind!r}, expected one of {KINDS}")
        cls.__shon_kind__ = kind
        cls.__shon_tag__ = tag or cls.__name__
        cls.__shon_variants__[cls.__shon_tag__] = cls

    @classmethod
    def enum_root(cls) -> type[Tagged]:
        return next(c for c in cls.__mro__ if Tagged in c.__bases__)


class Field(NamedTuple):
    name: str
    wire: str
    hint: Any
    default: Any = _MISSING
    factory: Any = _MISSING


@functools.cache
def fields_of(cls: type) -> tuple[Field, ...]:
    """Constructor fields of a dataclass or named tuple, in declaration order."""
    hints = typing.get_type_hints(cls)
    if dataclasses.is_dataclass(cls):
        return tuple(
            Field(
                f.name,
                f.metadata.get("shon", {}).get("rename", f.name),
                hints.get(f.name, Any),
                f.default,
                f.default_factory,
            )
            for f in dataclasses.fields(cls)
            if f.init
        )
    defaults = getattr(cls, "_field_defaults", {})
    return tuple(
        Field(name, name, hints.get(name, Any), defaults.get(name, _MISSING))
        for name in cls._fields  # type: ignore[attr-defined]
    )


def _is_namedtuple(value: Any) -> bool:
    return isinstance(value, tuple) and hasattr(type(value), "_fields")


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def serialize(value: Any, encoder: Encoder) -> None:
    """Report ``value`` to ``encoder`` using the SHON encoding vocabulary."""
    if value is None:
        encoder.serialize_none()
    elif isinstance(value, bool):
        encoder.serialize_bool(value)
    elif isinstance(value, enum.Enum):
        members = list(type(value).__members__)
        encoder.serialize_unit_variant(type(value).__name__, members.index(value.name), value.name)
    elif isinstance(value, Tagged):
        _serialize_variant(value, encoder)
    elif isinstance(value, int):
        encoder.serialize_int(value)
    elif isinstance(value, float):
        encoder.serialize_float(value)
    elif isinstance(value, str):
        encoder.serialize_str(value)
    elif isinstance(value, (bytes, bytearray, memoryview)):
        encoder.serialize_bytes(bytes(value))
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        _serialize_struct(value, encoder)
    elif _is_namedtuple(value):
        seq = encoder.serialize_tuple_struct(type(value).__name__, len(value))
        for item in value:
            seq.serialize_field(item)
        seq.end()
    elif isinstance(value, tuple):
        seq = encoder.serialize_tuple(len(value))
        for item in value:
            seq.serialize_element(item)
        seq.end()
    elif isinstance(value, Mapping):
        entries = encoder.serialize_map(len(value))
        for key, item in value.items():
            entries.serialize_entry(key, item)
        entries.end()
    elif isinstance(value, (MutableSequence, Set, range)):
        items = value
        if isinstance(value, Set):
            try:
                items = sorted(value)
            except TypeError:
                items = list(value)
        seq = encoder.serialize_seq(len(value))
        for item in items:
            seq.serialize_element(item)
        seq.end()
    else:
        raise ShonError(f"unsupported type {type(value).__name__}")


def _serialize_struct(value: Any, encoder: Encoder) -> None:
    fields = fields_of(type(value))
    struct = encoder.serialize_struct(type(value).__name__, len(fields))
    for f in fields:
        struct.serialize_field(f.wire, getattr(value, f.name))
    struct.end()


def _serialize_variant(value: Tagged, encoder: Encoder) -> None:
    root = type(value).enum_root()
    tag = value.__shon_tag__
    index = list(root.__shon_variants__).index(tag)
    fields = fields_of(type(value)) if dataclasses.is_dataclass(value) else ()

    match value.__shon_kind__:
        case "unit":
            encoder.serialize_unit_variant(root.__name__, index, tag)
        case "newtype":
            if len(fields) != 1:
                raise ShonError(f"newtype variant {tag} must have exactly one field")
            payload = getattr(value, fields[0].name)
            encoder.serialize_newtype_variant(root.__name__, index, tag, payload)
        case "tuple":
            seq = encoder.serialize_tuple_variant(root.__name__, index, tag, len(fields))
            for f in fields:
                seq.serialize_field(getattr(value, f.name))
            seq.end()
        case "struct":
            struct = encoder.serialize_struct_variant(root.__name__, index, tag, len(fields))
            for f in fields:
                struct.serialize_field(f.wire, getattr(value, f.name))
            struct.end()


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


class ValueVisitor(Visitor):
    """Builds untyped Python values: bool, int, float, str, None, list, dict."""

    expecting = "any value"

    def visit_bool(self, v: bool) -> bool:
        return v

    def visit_u64(self, v: int) -> int:
        return v

    visit_i64 = visit_u64

    def visit_f64(self, v: float) -> float:
        return v

    def visit_str(self, v: str) -> str:
        return v

    def visit_none(self) -> None:
        return None

    def visit_some(self, decoder: Decoder) -> Any:
        return decoder.deserialize_any(self)

    def visit_seq(self, access: GroupAccess) -> list[Any]:
        items = []
        while access.has_next():
            items.append(access.next_element(self._value))
        return items

    def visit_map(self, access: GroupAccess) -> dict[Any, Any]:
        entries = {}
        while access.has_next():
            position = access.decoder.pos
            key = access.next_key(self._value)
            if isinstance(key, (list, dict)):
                raise ShonError(
                    "map key must be a string or number, found a group", position=position
                )
            entries[key] = access.next_value(self._value)
        return entries

    def _value(self, decoder: Decoder) -> Any:
        return decoder.deserialize_any(self)


class BoolVisitor(Visitor):
    expecting = "a boolean"

    def visit_bool(self, v: bool) -> bool:
        return v


class IntVisitor(Visitor):
    expecting = "an integer"

    def visit_u64(self, v: int) -> int:
        return v

    visit_i64 = visit_u64


class FloatVisitor(Visitor):
    expecting = "a float"

    def visit_f64(self, v: float) -> float:
        return v

    def visit_u64(self, v: int) -> float:
        return float(v)

    visit_i64 = visit_u64


class StrVisitor(Visitor):
    expecting = "a string"

    def visit_str(self, v: str) -> str:
        return v


class BytesVisitor(Visitor):
    expecting = "a byte sequence"

    def visit_str(self, v: str) -> bytes:
        return v.encode()

    def visit_seq(self, access: GroupAccess) -> bytes:
        data = bytearray()
        while access.has_next():
            byte = access.next_element(_deserializer(int))
            if not 0 <= byte <= 255:
                raise ShonError(f"invalid value: integer `{byte}`, expected a byte")
            data.append(byte)
        return bytes(data)


class UnitVisitor(Visitor):
    expecting = "unit"

    def visit_none(self) -> None:
        return None


class OptionVisitor(Visitor):
    expecting = "an option"

    def __init__(self, inner: Any) -> None:
        self.inner = inner

    def visit_none(self) -> None:
        return None

    def visit_some(self, decoder: Decoder) -> Any:
        return deserialize(self.inner, decoder)


class SeqVisitor(Visitor):
    expecting = "a sequence"

    def __init__(self, element: Any, factory: Callable[[list[Any]], Any] = list) -> None:
        self.element = element
        self.factory = factory

    def visit_seq(self, access: GroupAccess) -> Any:
        seed = _deserializer(self.element)
        items = []
        while access.has_next():
            items.append(access.next_element(seed))
        return self.factory(items)


class TupleVisitor(Visitor):
    def __init__(self, elements: tuple[Any, ...]) -> None:
        self.elements = elements
        self.expecting = f"a tuple of size {len(elements)}"

    def visit_seq(self, access: GroupAccess) -> tuple[Any, ...]:
        items = []
        for index, element in enumerate(self.elements):
            if not access.has_next():
                raise ShonError(f"invalid length {index}, expected {self.expecting}")
            items.append(access.next_element(_deserializer(element)))
        return tuple(items)


class KeyVisitor(Visitor):
    """Map keys arrive as ``--key`` text; convert them to the key type."""

    def __init__(self, key: Any) -> None:
        self.key = key
        self.expecting = f"a {getattr(key, '__name__', key)} key"

    def visit_str(self, v: str) -> Any:
        if self.key in (Any, object, str):
            return v
        try:
            return self.key(v)
        except ValueError as e:
            raise ShonError(f"invalid map key {v!r}, expected {self.expecting}") from e

    def visit_u64(self, v: int) -> Any:
        return self.visit_str(str(v))

    visit_i64 = visit_f64 = visit_u64


class DictVisitor(Visitor):
    expecting = "a map"

    def __init__(self, key: Any, value: Any) -> None:
        if key not in (Any, object, str, int, float):
            raise ShonError(f"unsupported map key type {key!r}")
        self.key = KeyVisitor(key)
        self.value = value

    def visit_map(self, access: GroupAccess) -> dict[Any, Any]:
        seed = _deserializer(self.value)
        entries = {}
        while access.has_next():
            key = access.next_key(lambda d: d.deserialize_identifier(self.key))
            entries[key] = access.next_value(seed)
        return entries

    def visit_seq(self, access: GroupAccess) -> dict[Any, Any]:
        # a hand written `[ ]` reads as a sequence
        if access.has_next():
            return super().visit_seq(access)
        return {}


class StructVisitor(Visitor):
    """Builds a dataclass or named tuple from named entries or positional elements."""

    def __init__(self, cls: type) -> None:
        self.cls = cls
        self.fields = fields_of(cls)
        self.expecting = f"struct {cls.__name__}"

    def visit_map(self, access: GroupAccess) -> Any:
        by_wire = {f.wire: f for f in self.fields}
        values: dict[str, Any] = {}
        while access.has_next():
            name = access.next_key(lambda d: d.deserialize_identifier(StrVisitor()))
            field = by_wire.get(name)
            if field is None:
                access.next_value(lambda d: d.deserialize_ignored_any(ValueVisitor()))
                continue
            if field.name in values:
                raise ShonError(f"duplicate field `{name}`")
            values[field.name] = access.next_value(_deserializer(field.hint))
        return self._build(values)

    def visit_seq(self, access: GroupAccess) -> Any:
        values: dict[str, Any] = {}
        for field in self.fields:
            if not access.has_next():
                break
            values[field.name] = access.next_element(_deserializer(field.hint))
        return self._build(values)

    def _build(self, values: dict[str, Any]) -> Any:
        for field in self.fields:
            if field.name in values:
                continue
            if field.default is not _MISSING:
                values[field.name] = field.default
            elif field.factory is not _MISSING:
                values[field.name] = field.factory()
            elif _is_optional(field.hint):
                values[field.name] = None
            else:
                raise ShonError(f"missing field `{field.wire}`")
        try:
            return self.cls(**values)
        except TypeError as e:
            raise ShonError(f"cannot build {self.cls.__name__}: {e}") from e


class EnumVisitor(Visitor):
    """``enum.Enum`` classes: every member is a unit variant."""

    def __init__(self, cls: type[enum.Enum]) -> None:
        self.cls = cls
        self.expecting = f"enum {cls.__name__}"

    def visit_enum(self, access: VariantAccess) -> enum.Enum:
        tag = access.variant()
        member = self.cls.__members__.get(tag)
        if member is None:
            raise _unknown_variant(tag, list(self.cls.__members__))
        access.unit_variant()
        return member


class TaggedVisitor(Visitor):
    def __init__(self, root: type[Tagged]) -> None:
        self.root = root
        self.expecting = f"enum {root.__name__}"

    def visit_enum(self, access: VariantAccess) -> Tagged:
        tag = access.variant()
        cls = self.root.__shon_variants__.get(tag)
        if cls is None:
            raise _unknown_variant(tag, list(self.root.__shon_variants__))
        fields = fields_of(cls) if dataclasses.is_dataclass(cls) else ()

        match cls.__shon_kind__:
            case "unit":
                access.unit_variant()
                return cls()
            case "newtype":
                if len(fields) != 1:
                    raise ShonError(f"newtype variant {tag} must have exactly one field")
                return cls(access.newtype_variant(_deserializer(fields[0].hint)))
            case "tuple":
                return access.tuple_variant(len(fields), StructVisitor(cls))
            case _:
                return access.struct_variant([f.wire for f in fields], StructVisitor(cls))


def _unknown_variant(tag: str, known: list[str]) -> ShonError:
    return ShonError(f"unknown variant `{tag}`, expected one of {', '.join(known)}")


def _is_optional(tp: Any) -> bool:
    return typing.get_origin(tp) in (Union, types.UnionType) and type(None) in typing.get_args(tp)


def _deserializer(tp: Any) -> Callable[[Decoder], Any]:
    return functools.partial(deserialize, tp)


_SEQUENCES: dict[Any, Callable[[list[Any]], Any]] = {
    list: list,
    set: set,
    frozenset: frozenset,
    Sequence: list,
    MutableSequence: list,
    Set: frozenset,
}


def deserialize(tp: Any, decoder: Decoder) -> Any:
    """Decode the next value from ``decoder`` as an instance of the type hint ``tp``."""
    if tp is Any or tp is object:
        return decoder.deserialize_any(ValueVisitor())
    if tp is None or tp is type(None):
        return decoder.deserialize_unit(UnitVisitor())

    origin = typing.get_origin(tp)
    args = typing.get_args(tp)

    if origin is typing.Annotated:
        return deserialize(args[0], decoder)
    if origin in (Union, types.UnionType):
        inner = [a for a in args if a is not type(None)]
        if len(inner) != 1 or len(inner) == len(args):
            raise ShonError(f"unsupported union {tp!r}, only Optional[X] is supported")
        return decoder.deserialize_option(OptionVisitor(inner[0]))
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return decoder.deserialize_seq(SeqVisitor(args[0], tuple))
        return decoder.deserialize_tuple(TupleVisitor(args))
    if origin in _SEQUENCES:
        return decoder.deserialize_seq(SeqVisitor(args[0] if args else Any, _SEQUENCES[origin]))
    if origin in (dict, Mapping):
        key, value = args or (Any, Any)
        return decoder.deserialize_map(DictVisitor(key, value))

    if tp is bool:
        return decoder.deserialize_bool(BoolVisitor())
    if tp is int:
        return decoder.deserialize_int(IntVisitor())
    if tp is float:
        return decoder.deserialize_float(FloatVisitor())
    if tp is str:
        return decoder.deserialize_str(StrVisitor())
    if tp is bytes:
        return decoder.deserialize_bytes(BytesVisitor())
    if tp is tuple:
        return decoder.deserialize_seq(SeqVisitor(Any, tuple))
    if tp in _SEQUENCES:
        return decoder.deserialize_seq(SeqVisitor(Any, _SEQUENCES[tp]))
    if tp is dict:
        return decoder.deserialize_map(DictVisitor(Any, Any))

    if isinstance(tp, type):
        if issubclass(tp, enum.Enum):
            return decoder.deserialize_enum(tp.__name__, list(tp.__members__), EnumVisitor(tp))
        if issubclass(tp, Tagged):
            root = tp.enum_root()
            value = decoder.deserialize_enum(
                root.__name__, list(root.__shon_variants__), TaggedVisitor(root)
            )
            if not isinstance(value, tp):
                raise ShonError.invalid_type(f"variant {value.__shon_tag__}", f"variant {tp.__name__}")
            return value
        if dataclasses.is_dataclass(tp) or (issubclass(tp, tuple) and hasattr(tp, "_fields")):
            return decoder.deserialize_struct(StructVisitor(tp))

    raise ShonError(f"unsupported target type {tp!r}")
