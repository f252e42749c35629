"""SHON error types."""

from __future__ import annotations


class ShonError(Exception):
    """Raised when a value cannot be encoded or a token list cannot be decoded.

    Attributes:
        message: Human readable description of the failure.
        position: Index of the offending token in the (trimmed) input, when known.
    """

    def __init__(self, message: str, *, position: int | None = None) -> None:
        self.message = message
        self.position = position
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.position is None:
            return self.message
        return f"{self.message} at token {self.position}"

    @classmethod
    def invalid_type(cls, got: str, expected: str) -> ShonError:
        return cls(f"invalid type: {got}, expected {expected}")
