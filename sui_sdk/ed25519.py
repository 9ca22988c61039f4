# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import typing
import unittest

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from .address import Address
from .authenticator import UserSignature
from .bcs import Deserializer, Serializer


class PrivateKey:
    LENGTH: int = 32

    key: SigningKey

    def __init__(self, key: SigningKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return self.key == other.key

    def __str__(self):
        return self.hex()

    @staticmethod
    def from_str(value: str) -> PrivateKey:
        if value[0:2] == "0x":
            value = value[2:]
        return PrivateKey(SigningKey(bytes.fromhex(value)))

    def hex(self) -> str:
        return f"0x{self.key.encode().hex()}"

    def public_key(self) -> PublicKey:
        return PublicKey(self.key.verify_key)

    @staticmethod
    def random() -> PrivateKey:
        return PrivateKey(SigningKey.generate())

    def sign(self, data: bytes) -> Signature:
        return Signature(self.key.sign(data).signature)

    def sign_transaction(self, transaction: typing.Any) -> UserSignature:
        """
        Sign the Blake2b-256 hash of the transaction's intent message. The result is the
        scheme flag, the signature and the public key.
        """
        signature = self.sign(transaction.signing_digest())
        return signature.to_user_signature(self.public_key())

    @staticmethod
    def deserialize(deserializer: Deserializer) -> PrivateKey:
        key = deserializer.bytes()
        if len(key) != PrivateKey.LENGTH:
            raise ValueError("Length mismatch")

        return PrivateKey(SigningKey(key))

    def serialize(self, serializer: Serializer):
        serializer.bytes(self.key.encode())


class PublicKey:
    LENGTH: int = 32

    key: VerifyKey

    def __init__(self, key: VerifyKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.key == other.key

    def __str__(self) -> str:
        return f"0x{self.key.encode().hex()}"

    def verify(self, data: bytes, signature: Signature) -> bool:
        try:
            self.key.verify(data, signature.data())
        except BadSignatureError:
            return False
        return True

    def verify_transaction(
        self, transaction: typing.Any, signature: UserSignature
    ) -> bool:
        parsed = Signature.from_user_signature(signature)
        if parsed is None:
            return False
        inner, public_key = parsed
        if public_key != self:
            return False
        return self.verify(transaction.signing_digest(), inner)

    def to_address(self) -> Address:
        flag = bytes([UserSignature.ED25519])
        return Address.from_hash(flag, self.to_crypto_bytes())

    def to_crypto_bytes(self) -> bytes:
        return self.key.encode()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> PublicKey:
        key = deserializer.bytes()
        if len(key) != PublicKey.LENGTH:
            raise ValueError("Length mismatch")

        return PublicKey(VerifyKey(key))

    def serialize(self, serializer: Serializer):
        serializer.bytes(self.key.encode())


class Signature:
    LENGTH: int = 64

    signature: bytes

    def __init__(self, signature: bytes):
        self.signature = signature

    def __eq__(self, other: object):
        if not isinstance(other, Signature):
            return NotImplemented
        return self.signature == other.signature

    def __str__(self) -> str:
        return f"0x{self.signature.hex()}"

    def data(self) -> bytes:
        return self.signature

    def to_user_signature(self, public_key: PublicKey) -> UserSignature:
        return UserSignature(
            bytes([UserSignature.ED25519])
            + self.signature
            + public_key.to_crypto_bytes()
        )

    @staticmethod
    def from_user_signature(
        signature: UserSignature,
    ) -> typing.Optional[typing.Tuple[Signature, PublicKey]]:
        """Split an Ed25519 user signature, or return None if it uses another scheme."""
        raw = signature.signature
        if signature.scheme() != UserSignature.ED25519:
            return None
        if len(raw) != 1 + Signature.LENGTH + PublicKey.LENGTH:
            return None
        inner = Signature(raw[1 : 1 + Signature.LENGTH])
        public_key = PublicKey(VerifyKey(raw[1 + Signature.LENGTH :]))
        return (inner, public_key)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Signature:
        signature = deserializer.bytes()
        if len(signature) != Signature.LENGTH:
            raise ValueError("Length mismatch")

        return Signature(signature)

    def serialize(self, serializer: Serializer):
        serializer.bytes(self.signature)


class Message:
    """Anything with a signing digest, standing in for a transaction."""

    def __init__(self, digest: bytes):
        self.digest = digest

    def signing_digest(self) -> bytes:
        return self.digest


class Test(unittest.TestCase):
    def test_sign_and_verify(self):
        in_value = b"test_message"

        private_key = PrivateKey.random()
        public_key = private_key.public_key()

        signature = private_key.sign(in_value)
        self.assertTrue(public_key.verify(in_value, signature))
        self.assertFalse(public_key.verify(b"other_message", signature))

    def test_sign_transaction(self):
        private_key = PrivateKey.from_str(
            "4e5e3be60f4bbd5e98d086d932f3ce779ff4b58da99bf9e5241ae1212a29e5fe"
        )
        public_key = private_key.public_key()
        message = Message(b"\x11" * 32)

        user_signature = private_key.sign_transaction(message)
        self.assertEqual(len(user_signature.signature), 97)
        self.assertEqual(user_signature.scheme(), UserSignature.ED25519)
        self.assertEqual(user_signature.signature[65:], public_key.to_crypto_bytes())
        self.assertTrue(public_key.verify_transaction(message, user_signature))
        self.assertFalse(
            public_key.verify_transaction(Message(b"\x22" * 32), user_signature)
        )

        other_key = PrivateKey.random().public_key()
        self.assertFalse(other_key.verify_transaction(message, user_signature))

    def test_other_scheme_is_not_split(self):
        signature = UserSignature(bytes([UserSignature.SECP256K1]) + b"\x00" * 97)
        self.assertIsNone(Signature.from_user_signature(signature))

    def test_address(self):
        public_key = PrivateKey.random().public_key()
        address = public_key.to_address()
        expected = Address.from_hash(b"\x00", public_key.to_crypto_bytes())
        self.assertEqual(address, expected)

    def test_private_key_serialization(self):
        private_key = PrivateKey.random()
        ser = Serializer()

        private_key.serialize(ser)
        ser_private_key = PrivateKey.deserialize(Deserializer(ser.output()))
        self.assertEqual(private_key, ser_private_key)

    def test_public_key_serialization(self):
        private_key = PrivateKey.random()
        public_key = private_key.public_key()

        ser = Serializer()
        public_key.serialize(ser)
        ser_public_key = PublicKey.deserialize(Deserializer(ser.output()))
        self.assertEqual(public_key, ser_public_key)


if __name__ == "__main__":
    unittest.main()
