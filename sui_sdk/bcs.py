# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
This is a strict BCS serializer and deserializer. Learn more at https://github.com/diem/bcs

Every value has exactly one accepted encoding: lengths and variant indices are minimal ULEB128,
booleans and option tags are a single 0 or 1 byte, and maps are ordered by their encoded keys.
"""

from __future__ import annotations

import io
import typing
import unittest

from typing_extensions import Protocol

from .errors import (
    EncodeError,
    MalformedValueError,
    NonCanonicalError,
    TrailingBytesError,
    UnexpectedEndError,
)

MAX_U8 = 2**8 - 1
MAX_U16 = 2**16 - 1
MAX_U32 = 2**32 - 1
MAX_U64 = 2**64 - 1
MAX_U128 = 2**128 - 1
MAX_U256 = 2**256 - 1

# Largest sequence length accepted while decoding unless configured otherwise.
MAX_SEQUENCE_LENGTH = 2**31 - 1

# Deepest nesting of recursive values, such as vector and struct type tags.
MAX_DEPTH = 64


class Deserializable(Protocol):
    @staticmethod
    def deserialize(deserializer: Deserializer) -> Deserializable:
        ...


class Serializable(Protocol):
    def serialize(self, serializer: Serializer):
        ...


class Deserializer:
    _input: io.BytesIO
    _length: int
    _max_sequence_length: int
    _max_depth: int
    _depth: int

    def __init__(
        self,
        data: bytes,
        max_sequence_length: int = MAX_SEQUENCE_LENGTH,
        max_depth: int = MAX_DEPTH,
    ):
        self._length = len(data)
        self._input = io.BytesIO(data)
        self._max_sequence_length = max_sequence_length
        self._max_depth = max_depth
        self._depth = 0

    def remaining(self) -> int:
        return self._length - self._input.tell()

    def ensure_finished(self):
        if self.remaining() != 0:
            raise TrailingBytesError(self.remaining())

    def bool(self) -> bool:
        value = self._read_int(1)
        if value == 0:
            return False
        elif value == 1:
            return True
        else:
            raise NonCanonicalError(f"Unexpected boolean value: {value}")

    def bytes(self) -> bytes:
        return self._read(self._sequence_length())

    def fixed_bytes(self, length: int) -> bytes:
        return self._read(length)

    def map(
        self,
        key_decoder: typing.Callable[[Deserializer], typing.Any],
        value_decoder: typing.Callable[[Deserializer], typing.Any],
    ) -> typing.Dict[typing.Any, typing.Any]:
        length = self._sequence_length()
        values: typing.Dict[typing.Any, typing.Any] = {}
        previous_key: typing.Optional[bytes] = None
        for _ in range(length):
            start = self._input.tell()
            key = key_decoder(self)
            encoded_key = self._input.getbuffer()[start : self._input.tell()].tobytes()
            if previous_key is not None and encoded_key <= previous_key:
                raise NonCanonicalError("Map keys are not sorted or are duplicated")
            previous_key = encoded_key
            values[key] = value_decoder(self)
        return values

    def option(
        self,
        value_decoder: typing.Callable[[Deserializer], typing.Any],
    ) -> typing.Optional[typing.Any]:
        tag = self._read_int(1)
        if tag == 0:
            return None
        elif tag == 1:
            return value_decoder(self)
        else:
            raise NonCanonicalError(f"Unexpected option tag: {tag}")

    def nested(
        self,
        value_decoder: typing.Callable[[Deserializer], typing.Any],
    ) -> typing.Any:
        """Decode one level of a recursive value, bounded by the depth limit."""
        if self._depth >= self._max_depth:
            raise MalformedValueError(f"Nesting exceeds depth limit {self._max_depth}")
        self._depth += 1
        try:
            return value_decoder(self)
        finally:
            self._depth -= 1

    def sequence(
        self,
        value_decoder: typing.Callable[[Deserializer], typing.Any],
    ) -> typing.List[typing.Any]:
        length = self._sequence_length()
        values = []
        while len(values) < length:
            values.append(value_decoder(self))
        return values

    def str(self) -> str:
        value = self.bytes()
        try:
            return value.decode()
        except UnicodeDecodeError as e:
            raise MalformedValueError(f"Invalid UTF-8 string: {value!r}") from e

    def struct(self, struct: typing.Any) -> typing.Any:
        return struct.deserialize(self)

    def u8(self) -> int:
        return self._read_int(1)

    def u16(self) -> int:
        return self._read_int(2)

    def u32(self) -> int:
        return self._read_int(4)

    def u64(self) -> int:
        return self._read_int(8)

    def u128(self) -> int:
        return self._read_int(16)

    def u256(self) -> int:
        return self._read_int(32)

    def uleb128(self) -> int:
        value = 0
        shift = 0

        while True:
            byte = self._read_int(1)
            value |= (byte & 0x7F) << shift
            if value > MAX_U32:
                raise NonCanonicalError("Unexpectedly large uleb128 value")
            if byte & 0x80 == 0:
                # A zero final byte after a continuation could have been left out.
                if byte == 0 and shift > 0:
                    raise NonCanonicalError("Non-minimal uleb128 encoding")
                break
            shift += 7

        return value

    def _sequence_length(self) -> int:
        length = self.uleb128()
        if length > self._max_sequence_length:
            raise MalformedValueError(
                f"Sequence length {length} exceeds limit {self._max_sequence_length}"
            )
        return length

    def _read(self, length: int) -> bytes:
        value = self._input.read(length)
        if value is None or len(value) < length:
            actual_length = 0 if value is None else len(value)
            error = (
                f"Unexpected end of input. Requested: {length}, found: {actual_length}"
            )
            raise UnexpectedEndError(error)
        return value

    def _read_int(self, length: int) -> int:
        return int.from_bytes(self._read(length), byteorder="little", signed=False)


class Serializer:
    _output: io.BytesIO

    def __init__(self):
        self._output = io.BytesIO()

    def output(self) -> bytes:
        return self._output.getvalue()

    def bool(self, value: bool):
        if not isinstance(value, bool):
            raise EncodeError(f"Cannot encode {value!r} into bool")
        self._write_int(int(value), 1)

    def bytes(self, value: bytes):
        self.uleb128(len(value))
        self._output.write(value)

    def fixed_bytes(self, value):
        self._output.write(value)

    def map(
        self,
        values: typing.Dict[typing.Any, typing.Any],
        key_encoder: typing.Callable[[Serializer, typing.Any], None],
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        encoded_values = []
        for key, value in values.items():
            encoded_values.append(
                (encoder(key, key_encoder), encoder(value, value_encoder))
            )
        encoded_values.sort(key=lambda item: item[0])

        self.uleb128(len(encoded_values))
        for key, value in encoded_values:
            self.fixed_bytes(key)
            self.fixed_bytes(value)

    def option(
        self,
        value: typing.Optional[typing.Any],
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        if value is None:
            self.u8(0)
        else:
            self.u8(1)
            value_encoder(self, value)

    @staticmethod
    def sequence_serializer(
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        return lambda self, values: self.sequence(values, value_encoder)

    def sequence(
        self,
        values: typing.List[typing.Any],
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        self.uleb128(len(values))
        for value in values:
            value_encoder(self, value)

    def str(self, value: str):
        self.bytes(value.encode())

    def struct(self, value: typing.Any):
        value.serialize(self)

    def u8(self, value: int):
        self._write_uint(value, 1, MAX_U8, "u8")

    def u16(self, value: int):
        self._write_uint(value, 2, MAX_U16, "u16")

    def u32(self, value: int):
        self._write_uint(value, 4, MAX_U32, "u32")

    def u64(self, value: int):
        self._write_uint(value, 8, MAX_U64, "u64")

    def u128(self, value: int):
        self._write_uint(value, 16, MAX_U128, "u128")

    def u256(self, value: int):
        self._write_uint(value, 32, MAX_U256, "u256")

    def uleb128(self, value: int):
        if value < 0 or value > MAX_U32:
            raise EncodeError(f"Cannot encode {value} into uleb128")

        while value >= 0x80:
            # Write 7 (lowest) bits of data and set the 8th bit to 1.
            byte = value & 0x7F
            self.u8(byte | 0x80)
            value >>= 7

        # Write the remaining bits of data and set the highest bit to 0.
        self.u8(value & 0x7F)

    def _write_uint(self, value: int, length: int, max_value: int, name: str):
        if isinstance(value, bool) or not isinstance(value, int):
            raise EncodeError(f"Cannot encode {value!r} into {name}")
        if value < 0 or value > max_value:
            raise EncodeError(f"Cannot encode {value} into {name}")

        self._write_int(value, length)

    def _write_int(self, value: int, length: int):
        self._output.write(value.to_bytes(length, "little", signed=False))


def encoder(
    value: typing.Any, encoder: typing.Callable[[Serializer, typing.Any], None]
) -> bytes:
    ser = Serializer()
    encoder(ser, value)
    return ser.output()


class Test(unittest.TestCase):
    def test_bool_true(self):
        in_value = True

        ser = Serializer()
        ser.bool(in_value)
        der = Deserializer(ser.output())
        out_value = der.bool()

        self.assertEqual(in_value, out_value)

    def test_bool_error(self):
        der = Deserializer(b"\x02")
        with self.assertRaises(NonCanonicalError):
            der.bool()

    def test_bytes(self):
        in_value = b"1234567890"

        ser = Serializer()
        ser.bytes(in_value)
        self.assertEqual(ser.output(), b"\x0a" + in_value)
        der = Deserializer(ser.output())
        out_value = der.bytes()

        self.assertEqual(in_value, out_value)

    def test_map(self):
        in_value = {"c": 23829, "a": 12345, "b": 99234}

        ser = Serializer()
        ser.map(in_value, Serializer.str, Serializer.u32)
        der = Deserializer(ser.output())
        out_value = der.map(Deserializer.str, Deserializer.u32)

        self.assertEqual(in_value, out_value)
        self.assertEqual(list(out_value.keys()), ["a", "b", "c"])

    def test_map_unsorted(self):
        ser = Serializer()
        ser.uleb128(2)
        ser.str("b")
        ser.u8(1)
        ser.str("a")
        ser.u8(2)
        der = Deserializer(ser.output())
        with self.assertRaises(NonCanonicalError):
            der.map(Deserializer.str, Deserializer.u8)

    def test_option(self):
        ser = Serializer()
        ser.option(None, Serializer.u8)
        ser.option(7, Serializer.u8)
        self.assertEqual(ser.output(), b"\x00\x01\x07")

        der = Deserializer(ser.output())
        self.assertIsNone(der.option(Deserializer.u8))
        self.assertEqual(der.option(Deserializer.u8), 7)

        with self.assertRaises(NonCanonicalError):
            Deserializer(b"\x02\x07").option(Deserializer.u8)

    def test_sequence(self):
        in_value = ["a", "abc", "def", "ghi"]

        ser = Serializer()
        ser.sequence(in_value, Serializer.str)
        der = Deserializer(ser.output())
        out_value = der.sequence(Deserializer.str)

        self.assertEqual(in_value, out_value)

    def test_sequence_serializer(self):
        in_value = ["a", "abc", "def", "ghi"]

        ser = Serializer()
        seq_ser = Serializer.sequence_serializer(Serializer.str)
        seq_ser(ser, in_value)
        der = Deserializer(ser.output())
        out_value = der.sequence(Deserializer.str)

        self.assertEqual(in_value, out_value)

    def test_sequence_short(self):
        ser = Serializer()
        ser.uleb128(3)
        ser.u8(1)
        ser.u8(2)
        der = Deserializer(ser.output())
        with self.assertRaises(UnexpectedEndError):
            der.sequence(Deserializer.u8)

    def test_sequence_limit(self):
        ser = Serializer()
        ser.uleb128(11)
        der = Deserializer(ser.output(), max_sequence_length=10)
        with self.assertRaises(MalformedValueError):
            der.sequence(Deserializer.u8)

    def test_str(self):
        in_value = "1234567890"

        ser = Serializer()
        ser.str(in_value)
        der = Deserializer(ser.output())
        out_value = der.str()

        self.assertEqual(in_value, out_value)

    def test_integers_little_endian(self):
        ser = Serializer()
        ser.u8(0x01)
        ser.u16(0x0203)
        ser.u32(0x04050607)
        ser.u64(0x08090A0B0C0D0E0F)
        self.assertEqual(
            ser.output(),
            bytes.fromhex("01" "0302" "07060504" "0f0e0d0c0b0a0908"),
        )

        der = Deserializer(ser.output())
        self.assertEqual(der.u8(), 0x01)
        self.assertEqual(der.u16(), 0x0203)
        self.assertEqual(der.u32(), 0x04050607)
        self.assertEqual(der.u64(), 0x08090A0B0C0D0E0F)
        der.ensure_finished()

    def test_u128(self):
        in_value = 1111111111111111111111111111111111115

        ser = Serializer()
        ser.u128(in_value)
        der = Deserializer(ser.output())
        out_value = der.u128()

        self.assertEqual(in_value, out_value)

    def test_u256(self):
        in_value = 111111111111111111111111111111111111111111111111111111111111115

        ser = Serializer()
        ser.u256(in_value)
        der = Deserializer(ser.output())
        out_value = der.u256()

        self.assertEqual(in_value, out_value)

    def test_out_of_range(self):
        ser = Serializer()
        with self.assertRaises(EncodeError):
            ser.u8(256)
        with self.assertRaises(EncodeError):
            ser.u16(-1)
        with self.assertRaises(EncodeError):
            ser.u64(MAX_U64 + 1)
        with self.assertRaises(EncodeError):
            ser.uleb128(MAX_U32 + 1)

    def test_uleb128(self):
        in_value = 1111111115

        ser = Serializer()
        ser.uleb128(in_value)
        der = Deserializer(ser.output())
        out_value = der.uleb128()

        self.assertEqual(in_value, out_value)

    def test_uleb128_boundaries(self):
        for value, encoded in [
            (0, "00"),
            (0x7F, "7f"),
            (0x80, "8001"),
            (0x3FFF, "ff7f"),
            (0x4000, "808001"),
            (MAX_U32, "ffffffff0f"),
        ]:
            ser = Serializer()
            ser.uleb128(value)
            self.assertEqual(ser.output().hex(), encoded)
            self.assertEqual(Deserializer(bytes.fromhex(encoded)).uleb128(), value)

    def test_uleb128_non_minimal(self):
        for encoded in ["8000", "ff00", "80808000"]:
            with self.assertRaises(NonCanonicalError):
                Deserializer(bytes.fromhex(encoded)).uleb128()

    def test_uleb128_overflow(self):
        with self.assertRaises(NonCanonicalError):
            Deserializer(bytes.fromhex("ffffffff10")).uleb128()

    def test_short_input(self):
        with self.assertRaises(UnexpectedEndError):
            Deserializer(b"\x01\x02").u32()
        with self.assertRaises(UnexpectedEndError):
            Deserializer(b"\x80").uleb128()
        with self.assertRaises(UnexpectedEndError):
            Deserializer(b"\x05abc").bytes()

    def test_trailing_bytes(self):
        der = Deserializer(b"\x01\x02")
        der.u8()
        with self.assertRaises(TrailingBytesError):
            der.ensure_finished()

    def test_bool_encode_error(self):
        for value in [2, 1, None]:
            with self.assertRaises(EncodeError):
                Serializer().bool(value)

    def test_nested_depth(self):
        def vector_depth(der: Deserializer) -> int:
            if der.u8() == 0:
                return 0
            return 1 + der.nested(vector_depth)

        self.assertEqual(vector_depth(Deserializer(b"\x01\x01\x00", max_depth=2)), 2)
        with self.assertRaises(MalformedValueError):
            vector_depth(Deserializer(b"\x01\x01\x00", max_depth=1))
        with self.assertRaises(MalformedValueError):
            vector_depth(Deserializer(b"\x01" * 5000 + b"\x00"))


if __name__ == "__main__":
    unittest.main()
