"""Pytest configuration and shared fixtures."""

from dataclasses import dataclass, field
from typing import Optional

import pytest

from shon import Tagged


class E(Tagged):
    """Enum with one variant of each form."""


@dataclass
class Unit(E, kind="unit"):
    pass


@dataclass
class Newtype(E, kind="newtype"):
    value: int


@dataclass
class TupleVariant(E, kind="tuple", tag="Tuple"):
    first: int
    second: int


@dataclass
class StructVariant(E, kind="struct", tag="Struct"):
    a: int


@dataclass
class Example:
    str: str
    int: int
    int1: Optional[int]
    int2: Optional[int]
    int3: Optional[int]
    data: bool
    seq: list[str]
    map: dict[str, int]
    e: E


@dataclass
class Empty:
    pass


@dataclass
class WithDefaults:
    name: str
    retries: int = 3
    tags: list[str] = field(default_factory=list)


@pytest.fixture
def example() -> Example:
    """Struct exercising scalars, options, sequences, maps and enums."""
    return Example(
        str="data",
        int=123,
        int1=456,
        int2=None,
        int3=None,
        data=True,
        seq=["hello there", "general", "kenobi"],
        map={"one": 2, "three": 4},
        e=Newtype(3),
    )


@pytest.fixture
def example_tokens() -> list[str]:
    """Hand written argv for the ``Example`` struct, program name included."""
    return [
        "./binary",
        "[",
        "--str",
        "data",
        "--int",
        "123",
        "--int1",
        "456",
        "--int2",
        "-n",
        "--seq",
        "[",
        "--",
        "'hello there'",
        "general",
        "kenobi",
        "]",
        "--data",
        "-t",
        "--map",
        "[",
        "--one",
        "2",
        "--three",
        "4",
        "]",
        "--e",
        "Unit",
        "]",
    ]
