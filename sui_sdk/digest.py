# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import hashlib
import typing
import unittest

import base58

from .bcs import Deserializer, Serializer
from .errors import MalformedBytesError


class Digest:
    """
    A 32 byte Blake2b-256 digest. The binary form is length prefixed, the textual form is
    base58.
    """

    digest: bytes
    LENGTH: int = 32

    def __init__(self, digest: bytes):
        if len(digest) != Digest.LENGTH:
            raise MalformedBytesError(type(self).__name__, digest, "expected 32 bytes")
        self.digest = digest

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Digest):
            return NotImplemented
        return type(self) is type(other) and self.digest == other.digest

    def __hash__(self) -> int:
        return hash(self.digest)

    def __str__(self):
        return base58.b58encode(self.digest).decode()

    def __repr__(self):
        return self.__str__()

    @classmethod
    def blake2b(cls, *parts: bytes) -> typing.Any:
        hasher = hashlib.blake2b(digest_size=cls.LENGTH)
        for part in parts:
            hasher.update(part)
        return cls(hasher.digest())

    @classmethod
    def from_str(cls, digest: str) -> typing.Any:
        if not isinstance(digest, str):
            raise MalformedBytesError(cls.__name__, digest)
        try:
            value = base58.b58decode(digest)
        except ValueError as e:
            raise MalformedBytesError(cls.__name__, digest, str(e)) from e
        if len(value) != cls.LENGTH:
            raise MalformedBytesError(cls.__name__, digest, "expected 32 bytes")
        return cls(value)

    @classmethod
    def deserialize(cls, deserializer: Deserializer) -> typing.Any:
        value = deserializer.bytes()
        if len(value) != cls.LENGTH:
            raise MalformedBytesError(cls.__name__, value, "expected 32 bytes")
        return cls(value)

    def serialize(self, serializer: Serializer):
        serializer.bytes(self.digest)

    @classmethod
    def from_json(cls, value: typing.Any) -> typing.Any:
        return cls.from_str(value)

    def to_json(self) -> typing.Any:
        return str(self)


class ObjectDigest(Digest):
    pass


class TransactionDigest(Digest):
    pass


class CheckpointDigest(Digest):
    pass


class ConsensusCommitDigest(Digest):
    pass


class Test(unittest.TestCase):
    def test_zero(self):
        digest = ObjectDigest(b"\x00" * 32)
        self.assertEqual(str(digest), "1" * 32)
        self.assertEqual(ObjectDigest.from_str("1" * 32), digest)

    def test_text_round_trip(self):
        digest = TransactionDigest.blake2b(b"abc")
        parsed = TransactionDigest.from_json(digest.to_json())
        self.assertIsInstance(parsed, TransactionDigest)
        self.assertEqual(parsed, digest)

    def test_kinds_are_distinct(self):
        value = bytes(range(32))
        self.assertEqual(ObjectDigest(value), ObjectDigest(value))
        self.assertNotEqual(ObjectDigest(value), TransactionDigest(value))
        self.assertNotEqual(CheckpointDigest(value), ConsensusCommitDigest(value))

    def test_binary(self):
        digest = CheckpointDigest(bytes(range(32)))
        ser = Serializer()
        digest.serialize(ser)
        self.assertEqual(ser.output(), b"\x20" + bytes(range(32)))
        self.assertEqual(
            CheckpointDigest.deserialize(Deserializer(ser.output())), digest
        )

    def test_wrong_length(self):
        ser = Serializer()
        ser.bytes(b"\x01" * 31)
        with self.assertRaises(MalformedBytesError):
            Digest.deserialize(Deserializer(ser.output()))
        with self.assertRaises(MalformedBytesError):
            Digest.from_str("1111")
        with self.assertRaises(MalformedBytesError):
            Digest.from_str("0OIl")


if __name__ == "__main__":
    unittest.main()
