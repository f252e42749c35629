"""Command line converter between JSON and SHON.

    shon encode '{"a": [1, 2]}'      ->  [ --a [ 1 2 ] ]
    shon decode [ --a [ 1 2 ] ]      ->  {"a":[1,2]}
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

import orjson

from shon.core import decode_from_tokens, encode_to_tokens
from shon.errors import ShonError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shon",
        allow_abbrev=False,
        description="Convert between JSON documents and SHON command line tokens.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--raw",
        action="store_true",
        help="encode: print unquoted tokens, one per line",
    )
    parser.add_argument("command", choices=["encode", "decode"])
    parser.add_argument(
        "args",
        nargs=argparse.REMAINDER,
        help="encode: a JSON document; decode: SHON tokens",
    )
    return parser


def run_encode(args: argparse.Namespace) -> str:
    try:
        document = orjson.loads(" ".join(args.args))
    except orjson.JSONDecodeError as e:
        raise ShonError(f"Invalid JSON: {e}") from e
    tokens = encode_to_tokens(document, escape=not args.raw)
    return "\n".join(tokens) if args.raw else " ".join(tokens)


def run_decode(args: argparse.Namespace) -> str:
    value = decode_from_tokens(args.args)
    return orjson.dumps(value).decode()


def main(argv: Sequence[str] | None = None) -> int:
    raw = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()
    args = parser.parse_args(raw)
    # argparse drops a `--` after the command, which is a SHON escape marker
    args.args = raw[raw.index(args.command) + 1 :]
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    handler = run_encode if args.command == "encode" else run_decode
    try:
        output = handler(args)
    except ShonError as e:
        logger.debug("%s failed", args.command, exc_info=True)
        print(f"shon: {e}", file=sys.stderr)
        return 1
    print(output)
    return 0
