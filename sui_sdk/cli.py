# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Convert transactions between their binary form, given as base64, and their textual JSON form.

    python -m sui_sdk.cli convert --type transaction --from binary --to textual --input tx.b64
    python -m sui_sdk.cli digest --input tx.b64
"""

from __future__ import annotations

import argparse
import base64
import contextlib
import io
import logging
import os
import sys
import tempfile
import unittest
from typing import List, Optional

from .codec import CodecConfig, Mode, bytes_from_json
from .errors import DecodeError
from .metadata import Metadata
from .signed_transaction import SignedTransaction
from .transactions import CONSENSUS_PROLOGUE, Transaction

TYPES = {"transaction": Transaction, "signed-transaction": SignedTransaction}
MODES = {"binary": Mode.BINARY, "textual": Mode.TEXTUAL}


def read_input(path: Optional[str]) -> str:
    if path is None:
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as handle:
        return handle.read()


def load(data: str, mode: Mode) -> bytes:
    if mode == Mode.BINARY:
        return bytes_from_json("".join(data.split()), "input")
    return data.encode()


def dump(data: bytes, mode: Mode) -> str:
    if mode == Mode.BINARY:
        return base64.b64encode(data).decode()
    return data.decode()


def main(args: List[str]) -> int:
    parser = argparse.ArgumentParser(description="Sui Python transaction codec")
    parser.add_argument(
        "command",
        type=str,
        help="The command to execute",
        choices=["convert", "digest"],
        nargs="?",
    )
    parser.add_argument(
        "--type",
        help="The kind of value being converted",
        choices=sorted(TYPES.keys()),
        default="transaction",
    )
    parser.add_argument(
        "--from",
        dest="source",
        help="The form of the input; binary input is base64 encoded",
        choices=sorted(MODES.keys()),
        default="binary",
    )
    parser.add_argument(
        "--to",
        dest="target",
        help="The form to write; binary output is base64 encoded",
        choices=sorted(MODES.keys()),
        default="textual",
    )
    parser.add_argument(
        "--input", help="Read from this file instead of stdin", type=str
    )
    parser.add_argument("--indent", help="Indentation of textual output", type=int)
    parser.add_argument("--verbose", help="Log decode failures", action="store_true")
    parser.add_argument("--version", help="Print the version", action="store_true")
    parsed_args = parser.parse_args(args)

    logging.basicConfig(level=logging.DEBUG if parsed_args.verbose else logging.WARNING)

    if parsed_args.version:
        print(Metadata.get_version_string())
        return 0
    if parsed_args.command is None:
        parser.error("Missing command")

    config = CodecConfig()
    config.json_indent = parsed_args.indent

    try:
        if parsed_args.command == "digest":
            data = load(read_input(parsed_args.input), Mode.BINARY)
            transaction = Transaction.decode(Mode.BINARY, data, config)
            print(transaction.digest())
            return 0

        source = MODES[parsed_args.source]
        target = MODES[parsed_args.target]
        data = load(read_input(parsed_args.input), source)
        value = TYPES[parsed_args.type].decode(source, data, config)
        print(dump(value.encode(target, config), target))
    except DecodeError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


class Test(unittest.TestCase):
    def run_cli(self, args: List[str], data: str):
        with tempfile.NamedTemporaryFile("w", suffix=".txt", delete=False) as handle:
            handle.write(data)
        self.addCleanup(os.remove, handle.name)

        stdout = io.StringIO()
        stderr = io.StringIO()
        with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
            code = main(args + ["--input", handle.name])
        return (code, stdout.getvalue().strip(), stderr.getvalue())

    def test_round_trip(self):
        fixture = "".join(CONSENSUS_PROLOGUE.split())
        code, text, _ = self.run_cli(["convert", "--to", "textual"], fixture)
        self.assertEqual(code, 0)
        self.assertIn('"kind":"consensus_commit_prologue"', text)

        code, binary, _ = self.run_cli(
            ["convert", "--from", "textual", "--to", "binary"], text
        )
        self.assertEqual(code, 0)
        self.assertEqual(binary, fixture)

    def test_digest(self):
        data = base64.b64decode(CONSENSUS_PROLOGUE)
        transaction = Transaction.decode(Mode.BINARY, data)
        code, digest, _ = self.run_cli(["digest"], CONSENSUS_PROLOGUE)
        self.assertEqual(code, 0)
        self.assertEqual(digest, str(transaction.digest()))

    def test_decode_error(self):
        code, _, stderr = self.run_cli(["convert"], "AAA=")
        self.assertEqual(code, 1)
        self.assertIn("error:", stderr)

    def test_signed_transaction_rejects_plain_transaction(self):
        code, _, stderr = self.run_cli(
            ["convert", "--type", "signed-transaction"], CONSENSUS_PROLOGUE
        )
        self.assertEqual(code, 1)
        self.assertIn("length 1", stderr)


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
