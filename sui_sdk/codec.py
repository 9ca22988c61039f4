# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Entry points for moving values between memory and their two wire forms.

Each entity is implemented once and exposes a binary mapping (`serialize` / `deserialize`, the
canonical BCS bytes used for hashing and signing) and a textual mapping (`to_json` /
`from_json`, the self-describing JSON used by query services). The caller picks the form with
a `Mode`; the value never records which form it came from.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
import typing
import unittest
from enum import Enum

from .bcs import (
    MAX_DEPTH,
    MAX_SEQUENCE_LENGTH,
    MAX_U8,
    MAX_U16,
    MAX_U64,
    Deserializer,
    Serializer,
)
from .errors import (
    DecodeError,
    MalformedBytesError,
    MalformedIntegerError,
    MalformedValueError,
    TrailingBytesError,
    UnknownVariantError,
)

DECIMAL = re.compile(r"[0-9]+")


class Mode(Enum):
    TEXTUAL = "textual"
    BINARY = "binary"


class CodecConfig:
    """Common configuration for encoding and decoding"""

    json_indent: typing.Optional[int] = None
    max_sequence_length: int = MAX_SEQUENCE_LENGTH
    max_depth: int = MAX_DEPTH


class Encodable:
    """
    Mixin giving an entity `encode(mode)` and `decode(mode, data)`. Subclasses provide
    `serialize`, `deserialize`, `to_json` and `from_json`.
    """

    def encode(self, mode: Mode, config: CodecConfig = CodecConfig()) -> bytes:
        return encode(self, mode, config)

    @classmethod
    def decode(
        cls, mode: Mode, data: bytes, config: CodecConfig = CodecConfig()
    ) -> typing.Any:
        return decode(cls, data, mode, config)


def encode(value: typing.Any, mode: Mode, config: CodecConfig = CodecConfig()) -> bytes:
    if mode == Mode.BINARY:
        ser = Serializer()
        value.serialize(ser)
        return ser.output()

    if config.json_indent is None:
        text = json.dumps(value.to_json(), separators=(",", ":"))
    else:
        text = json.dumps(value.to_json(), indent=config.json_indent)
    return text.encode()


def decode(
    cls: typing.Any, data: bytes, mode: Mode, config: CodecConfig = CodecConfig()
) -> typing.Any:
    try:
        if mode == Mode.BINARY:
            der = Deserializer(data, config.max_sequence_length, config.max_depth)
            value = cls.deserialize(der)
            der.ensure_finished()
            return value

        try:
            raw = json.loads(data)
        except (ValueError, RecursionError) as e:
            raise MalformedValueError(f"Invalid JSON: {e}") from e
        return cls.from_json(raw)
    except DecodeError as e:
        logging.debug(f"Failed to decode {cls.__name__} from {mode.value} form: {e}")
        raise


# Helpers shared by the textual mappings.


def expect_object(value: typing.Any, entity: str) -> typing.Dict[str, typing.Any]:
    if not isinstance(value, dict):
        raise MalformedValueError(f"Expected an object for {entity}, found {value!r}")
    return value


def field(obj: typing.Dict[str, typing.Any], name: str, entity: str) -> typing.Any:
    if name not in obj:
        raise MalformedValueError(f"Missing field '{name}' for {entity}")
    return obj[name]


def tagged(
    value: typing.Any, tag: str, names: typing.Dict[str, int], entity: str
) -> typing.Tuple[typing.Dict[str, typing.Any], int]:
    """
    Resolve an internally tagged object: returns the object and the variant index named by its
    `tag` field.
    """
    obj = expect_object(value, entity)
    name = field(obj, tag, entity)
    if not isinstance(name, str) or name not in names:
        raise UnknownVariantError(entity, name)
    return (obj, names[name])


def list_from_json(
    value: typing.Any,
    name: str,
    decoder: typing.Callable[[typing.Any], typing.Any],
) -> typing.List[typing.Any]:
    if not isinstance(value, list):
        raise MalformedValueError(f"Expected a list for {name}, found {value!r}")
    return [decoder(item) for item in value]


def u64_to_json(value: int) -> str:
    return str(value)


def u64_from_json(value: typing.Any, name: str) -> int:
    # Carried as a decimal string so text-based numeric types cannot lose precision.
    if not isinstance(value, str) or not DECIMAL.fullmatch(value):
        raise MalformedIntegerError(name, value)
    number = int(value)
    if number > MAX_U64:
        raise MalformedIntegerError(name, value, "exceeds u64")
    return number


def _small_uint_from_json(value: typing.Any, name: str, max_value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedIntegerError(name, value)
    if value < 0 or value > max_value:
        raise MalformedIntegerError(name, value, "out of range")
    return value


def u8_from_json(value: typing.Any, name: str) -> int:
    return _small_uint_from_json(value, name, MAX_U8)


def u16_from_json(value: typing.Any, name: str) -> int:
    return _small_uint_from_json(value, name, MAX_U16)


def bool_from_json(value: typing.Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise MalformedValueError(f"Expected a boolean for {name}, found {value!r}")
    return value


def str_from_json(value: typing.Any, name: str) -> str:
    if not isinstance(value, str):
        raise MalformedValueError(f"Expected a string for {name}, found {value!r}")
    return value


def bytes_to_json(value: bytes) -> str:
    return base64.b64encode(value).decode()


def bytes_from_json(value: typing.Any, name: str) -> bytes:
    if not isinstance(value, str):
        raise MalformedBytesError(name, value)
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedBytesError(name, value, str(e)) from e


class Pair(Encodable):
    """A u16 and a blob, used to exercise both modes without a domain type."""

    def __init__(self, index: int, blob: bytes):
        self.index = index
        self.blob = blob

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Pair):
            return NotImplemented
        return self.index == other.index and self.blob == other.blob

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Pair:
        return Pair(deserializer.u16(), deserializer.bytes())

    def serialize(self, serializer: Serializer):
        serializer.u16(self.index)
        serializer.bytes(self.blob)

    @staticmethod
    def from_json(value: typing.Any) -> Pair:
        obj = expect_object(value, "Pair")
        return Pair(
            u16_from_json(field(obj, "index", "Pair"), "index"),
            bytes_from_json(field(obj, "blob", "Pair"), "blob"),
        )

    def to_json(self) -> typing.Any:
        return {"index": self.index, "blob": bytes_to_json(self.blob)}


class Test(unittest.TestCase):
    def test_binary(self):
        pair = Pair(258, b"\x01\x02")
        encoded = pair.encode(Mode.BINARY)
        self.assertEqual(encoded, b"\x02\x01\x02\x01\x02")
        self.assertEqual(Pair.decode(Mode.BINARY, encoded), pair)

    def test_binary_trailing(self):
        with self.assertRaises(TrailingBytesError):
            Pair.decode(Mode.BINARY, b"\x02\x01\x02\x01\x02\x00")

    def test_textual(self):
        pair = Pair(3, b"\x01\x02\x03\x04")
        encoded = pair.encode(Mode.TEXTUAL)
        self.assertEqual(encoded, b'{"index":3,"blob":"AQIDBA=="}')
        self.assertEqual(Pair.decode(Mode.TEXTUAL, encoded), pair)

    def test_textual_indent(self):
        config = CodecConfig()
        config.json_indent = 2
        encoded = Pair(3, b"").encode(Mode.TEXTUAL, config)
        self.assertIn(b'\n  "index": 3', encoded)

    def test_invalid_json(self):
        with self.assertRaises(MalformedValueError):
            Pair.decode(Mode.TEXTUAL, b"{not json")
        with self.assertRaises(MalformedValueError):
            Pair.decode(Mode.TEXTUAL, b"[]")
        with self.assertRaises(MalformedValueError):
            Pair.decode(Mode.TEXTUAL, b'{"index":3}')

    def test_malformed_bytes(self):
        with self.assertRaises(MalformedBytesError):
            Pair.decode(Mode.TEXTUAL, b'{"index":3,"blob":"not base64!"}')

    def test_u64_from_json(self):
        self.assertEqual(u64_from_json("0", "v"), 0)
        self.assertEqual(u64_from_json("18446744073709551615", "v"), MAX_U64)
        for bad in ["-1", "1.5", "", " 1", "5\n", "0x10", "18446744073709551616", 5]:
            with self.assertRaises(MalformedIntegerError):
                u64_from_json(bad, "v")

    def test_u16_from_json(self):
        self.assertEqual(u16_from_json(65535, "v"), 65535)
        for bad in [65536, -1, "1", True, 1.0]:
            with self.assertRaises(MalformedIntegerError):
                u16_from_json(bad, "v")

    def test_tagged(self):
        names = {"a": 0, "b": 1}
        self.assertEqual(tagged({"kind": "b"}, "kind", names, "E"), ({"kind": "b"}, 1))
        with self.assertRaises(UnknownVariantError):
            tagged({"kind": "c"}, "kind", names, "E")
        with self.assertRaises(MalformedValueError):
            tagged({}, "kind", names, "E")


if __name__ == "__main__":
    unittest.main()
