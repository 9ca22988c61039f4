# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import hashlib
import re
import typing
import unittest
from dataclasses import dataclass

from .bcs import Deserializer, Serializer
from .errors import MalformedScalarError

HEX = re.compile(r"[0-9a-fA-F]+")


class ParseAddressError(MalformedScalarError):
    """
    There was an error parsing an address.
    """

    @property
    def kind(self) -> str:
        return "address"


class Address:
    """
    A 32 byte account address. The binary form is the raw bytes, the textual form is 0x
    followed by 64 lowercase hex characters.
    """

    address: bytes
    LENGTH: int = 32

    def __init__(self, address: bytes):
        self.address = address

        if len(address) != Address.LENGTH:
            raise ParseAddressError(
                type(self).__name__, address, "expected 32 bytes"
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self.address == other.address

    def __hash__(self) -> int:
        return hash(self.address)

    def __str__(self):
        return f"0x{self.address.hex()}"

    def __repr__(self):
        return self.__str__()

    @classmethod
    def from_str(cls, address: str) -> typing.Any:
        """
        Parse 0x followed by 1 to 64 hex characters. Shorter forms, such as 0x2, are padded
        with leading zeroes.
        """
        if not isinstance(address, str) or not address.startswith("0x"):
            raise ParseAddressError(cls.__name__, address, "missing 0x prefix")

        digits = address[2:]
        if not HEX.fullmatch(digits) or len(digits) > cls.LENGTH * 2:
            raise ParseAddressError(
                cls.__name__, address, "expected 1 to 64 hex digits"
            )

        return cls(bytes.fromhex(digits.rjust(cls.LENGTH * 2, "0")))

    @classmethod
    def from_hash(cls, flag: bytes, public_key: bytes) -> typing.Any:
        hasher = hashlib.blake2b(digest_size=cls.LENGTH)
        hasher.update(flag)
        hasher.update(public_key)
        return cls(hasher.digest())

    @classmethod
    def deserialize(cls, deserializer: Deserializer) -> typing.Any:
        return cls(deserializer.fixed_bytes(cls.LENGTH))

    def serialize(self, serializer: Serializer):
        serializer.fixed_bytes(self.address)

    @classmethod
    def from_json(cls, value: typing.Any) -> typing.Any:
        return cls.from_str(value)

    def to_json(self) -> typing.Any:
        return str(self)


class ObjectId(Address):
    """The identifier of an on-chain object, which shares the address space."""


@dataclass(init=True, frozen=True)
class TestAddresses:
    short_with_0x: str
    long_with_0x: str
    bytes: bytes


ADDRESS_TWO = TestAddresses(
    short_with_0x="0x2",
    long_with_0x="0x0000000000000000000000000000000000000000000000000000000000000002",
    bytes=bytes([0] * 31 + [2]),
)

ADDRESS_OTHER = TestAddresses(
    short_with_0x="0xca843279e3427144cead5e4d5999a3d0ca843279e3427144cead5e4d5999a3d0",
    long_with_0x="0xca843279e3427144cead5e4d5999a3d0ca843279e3427144cead5e4d5999a3d0",
    bytes=bytes.fromhex(
        "ca843279e3427144cead5e4d5999a3d0ca843279e3427144cead5e4d5999a3d0"
    ),
)


class Test(unittest.TestCase):
    def test_from_str(self):
        for case in [ADDRESS_TWO, ADDRESS_OTHER]:
            self.assertEqual(Address.from_str(case.short_with_0x).address, case.bytes)
            self.assertEqual(Address.from_str(case.long_with_0x).address, case.bytes)
            self.assertEqual(str(Address(case.bytes)), case.long_with_0x)

    def test_uppercase_is_normalized(self):
        upper = ADDRESS_OTHER.long_with_0x.upper().replace("0X", "0x")
        address = Address.from_str(upper)
        self.assertEqual(str(address), ADDRESS_OTHER.long_with_0x)

    def test_invalid(self):
        for bad in ["2", "0x", "0xzz", "0x" + "1" * 65, " 0x1", "0x2\n", "0x2 "]:
            with self.assertRaises(ParseAddressError):
                Address.from_str(bad)
        with self.assertRaises(ParseAddressError):
            Address(b"\x01" * 31)

    def test_binary(self):
        ser = Serializer()
        ObjectId(ADDRESS_OTHER.bytes).serialize(ser)
        self.assertEqual(ser.output(), ADDRESS_OTHER.bytes)
        der = Deserializer(ser.output())
        object_id = ObjectId.deserialize(der)
        self.assertIsInstance(object_id, ObjectId)
        self.assertEqual(object_id.address, ADDRESS_OTHER.bytes)

    def test_hashable(self):
        ids = {ObjectId(ADDRESS_TWO.bytes): 1}
        self.assertEqual(ids[ObjectId.from_str("0x2")], 1)


if __name__ == "__main__":
    unittest.main()
