"""SHON - SHell Object Notation.

Encode structured values as command line tokens and decode them back.
"""

from shon.core import (
    SHON,
    decode_from_args,
    decode_from_string,
    decode_from_tokens,
    encode_to_string,
    encode_to_tokens,
)
from shon.errors import ShonError
from shon.model import Tagged

__all__ = [
    "SHON",
    "ShonError",
    "Tagged",
    "decode_from_args",
    "decode_from_string",
    "decode_from_tokens",
    "encode_to_string",
    "encode_to_tokens",
]
__version__ = "0.1.0"
