# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import typing
import unittest

from .bcs import Deserializer, Serializer
from .codec import bytes_from_json, bytes_to_json
from .errors import MalformedBytesError


class UserSignature:
    """
    A signature attached to a transaction, kept as the opaque bytes produced by the signer.
    The first byte is a flag naming the signature scheme; everything after it is scheme
    specific, e.g., for Ed25519 the 64 byte signature followed by the 32 byte public key.
    """

    ED25519: int = 0x00
    SECP256K1: int = 0x01
    SECP256R1: int = 0x02
    MULTISIG: int = 0x03
    ZKLOGIN: int = 0x05
    PASSKEY: int = 0x06

    signature: bytes

    def __init__(self, signature: bytes):
        if len(signature) == 0:
            raise MalformedBytesError("UserSignature", signature, "missing scheme flag")
        self.signature = signature

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UserSignature):
            return NotImplemented
        return self.signature == other.signature

    def __str__(self) -> str:
        return bytes_to_json(self.signature)

    def __repr__(self):
        return self.__str__()

    def scheme(self) -> int:
        return self.signature[0]

    @staticmethod
    def deserialize(deserializer: Deserializer) -> UserSignature:
        return UserSignature(deserializer.bytes())

    def serialize(self, serializer: Serializer):
        serializer.bytes(self.signature)

    @staticmethod
    def from_json(value: typing.Any) -> UserSignature:
        return UserSignature(bytes_from_json(value, "signatures"))

    def to_json(self) -> typing.Any:
        return bytes_to_json(self.signature)


class Test(unittest.TestCase):
    def test_binary(self):
        signature = UserSignature(b"\x00" + b"\x01" * 96)
        ser = Serializer()
        signature.serialize(ser)
        self.assertEqual(ser.output()[:2], b"\x61\x00")
        self.assertEqual(
            UserSignature.deserialize(Deserializer(ser.output())), signature
        )
        self.assertEqual(signature.scheme(), UserSignature.ED25519)

    def test_textual(self):
        signature = UserSignature(b"\x03\xff")
        self.assertEqual(signature.to_json(), "A/8=")
        self.assertEqual(UserSignature.from_json("A/8="), signature)

    def test_empty(self):
        with self.assertRaises(MalformedBytesError):
            UserSignature.deserialize(Deserializer(b"\x00"))
        with self.assertRaises(MalformedBytesError):
            UserSignature.from_json("")


if __name__ == "__main__":
    unittest.main()
