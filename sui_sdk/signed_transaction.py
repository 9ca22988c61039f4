# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
The signed transaction envelope. In binary form the transaction is wrapped in its intent and,
together with its signatures, placed in a sequence that must hold exactly one element:

    uleb128(1) || scope || version || app_id || transaction || signatures

The textual form has neither wrapper; the transaction's fields are followed by `signatures`.
A signed transaction embedded in another value uses the plain binary form, which also drops
both wrappers:

    transaction || signatures
"""

from __future__ import annotations

import base64
import logging
import unittest
from typing import Any, Dict, List

from . import ed25519
from .authenticator import UserSignature
from .bcs import Deserializer, Serializer
from .codec import Encodable, Mode, expect_object, field, list_from_json
from .errors import (
    DecodeError,
    InvalidIntentError,
    MalformedEnvelopeError,
    NonCanonicalError,
)
from .intent import TRANSACTION_INTENT, IntentMessage
from .transactions import PROGRAMMABLE, GasPayment, Transaction

# Number of signed transactions in a binary envelope. Reserved for bundling several signed
# transactions later; only 1 is accepted today.
ENVELOPE_LENGTH = 1


class SignedTransaction(Encodable):
    transaction: Transaction
    signatures: List[UserSignature]

    def __init__(self, transaction: Transaction, signatures: List[UserSignature]):
        self.transaction = transaction
        self.signatures = signatures

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SignedTransaction):
            return NotImplemented
        return (
            self.transaction == other.transaction
            and self.signatures == other.signatures
        )

    def __str__(self) -> str:
        return f"""SignedTransaction:
    transaction: {self.transaction}
    signatures: {self.signatures}
"""

    def digest(self):
        return self.transaction.digest()

    def verify(self) -> bool:
        """
        True if every signature is a valid Ed25519 signature over the transaction and the
        signers are exactly the sender and the gas owner.
        """
        required = {self.transaction.sender, self.transaction.gas_payment.owner}
        signers = set()
        for signature in self.signatures:
            parsed = ed25519.Signature.from_user_signature(signature)
            if parsed is None:
                logging.info(f"Cannot verify signature scheme {signature.scheme()}")
                return False
            _, public_key = parsed
            if not public_key.verify_transaction(self.transaction, signature):
                return False
            signers.add(public_key.to_address())
        return signers == required

    @staticmethod
    def deserialize(deserializer: Deserializer) -> SignedTransaction:
        if deserializer.remaining() == 0:
            raise MalformedEnvelopeError("Missing signed transaction envelope")
        length = deserializer.uleb128()
        if length != ENVELOPE_LENGTH:
            raise MalformedEnvelopeError(
                f"Expected a sequence with length {ENVELOPE_LENGTH}, found {length}"
            )
        message = IntentMessage.deserialize(
            deserializer, Transaction.deserialize, TRANSACTION_INTENT
        )
        signatures = deserializer.sequence(UserSignature.deserialize)
        return SignedTransaction(message.value, signatures)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(ENVELOPE_LENGTH)
        IntentMessage(TRANSACTION_INTENT, self.transaction).serialize(serializer)
        serializer.sequence(self.signatures, Serializer.struct)

    @staticmethod
    def deserialize_plain(deserializer: Deserializer) -> SignedTransaction:
        transaction = Transaction.deserialize(deserializer)
        signatures = deserializer.sequence(UserSignature.deserialize)
        return SignedTransaction(transaction, signatures)

    def serialize_plain(self, serializer: Serializer):
        self.transaction.serialize(serializer)
        serializer.sequence(self.signatures, Serializer.struct)

    @staticmethod
    def from_json(value: Any) -> SignedTransaction:
        obj = expect_object(value, "SignedTransaction")
        return SignedTransaction(
            Transaction.from_json(obj),
            list_from_json(
                field(obj, "signatures", "SignedTransaction"),
                "signatures",
                UserSignature.from_json,
            ),
        )

    def to_json(self) -> Dict[str, Any]:
        value = self.transaction.to_json()
        value["signatures"] = [signature.to_json() for signature in self.signatures]
        return value


class Test(unittest.TestCase):
    def setUp(self):
        self.transaction = Transaction.decode(
            Mode.BINARY, base64.b64decode(PROGRAMMABLE)
        )
        self.signed = SignedTransaction(
            self.transaction, [UserSignature(b"\x00" + b"\x07" * 96)]
        )

    def test_binary_layout(self):
        encoded = self.signed.encode(Mode.BINARY)
        tx_bytes = self.transaction.to_bytes()
        self.assertEqual(encoded[:4], b"\x01\x00\x00\x00")
        self.assertEqual(encoded[4 : 4 + len(tx_bytes)], tx_bytes)
        self.assertEqual(encoded[4 + len(tx_bytes) :], b"\x01\x61\x00" + b"\x07" * 96)
        self.assertEqual(SignedTransaction.decode(Mode.BINARY, encoded), self.signed)

    def test_plain_binary_layout(self):
        ser = Serializer()
        self.signed.serialize_plain(ser)
        plain = ser.output()
        signatures = b"\x01\x61\x00" + b"\x07" * 96
        self.assertEqual(plain, self.transaction.to_bytes() + signatures)
        self.assertEqual(plain, self.signed.encode(Mode.BINARY)[4:])

        der = Deserializer(plain)
        self.assertEqual(SignedTransaction.deserialize_plain(der), self.signed)
        der.ensure_finished()

        # Neither form decodes as the other.
        with self.assertRaises(MalformedEnvelopeError):
            SignedTransaction.decode(Mode.BINARY, plain)
        with self.assertRaises(DecodeError):
            der = Deserializer(self.signed.encode(Mode.BINARY))
            SignedTransaction.deserialize_plain(der)
            der.ensure_finished()

    def test_textual_layout(self):
        text = self.signed.to_json()
        self.assertEqual(text["version"], "1")
        signature = base64.b64encode(b"\x00" + b"\x07" * 96).decode()
        self.assertEqual(text["signatures"], [signature])
        self.assertNotIn("intent", text)
        encoded = self.signed.encode(Mode.TEXTUAL)
        self.assertEqual(SignedTransaction.decode(Mode.TEXTUAL, encoded), self.signed)

    def test_intent_rejection(self):
        encoded = self.signed.encode(Mode.BINARY)
        for intent in [(1, 0, 0), (0, 1, 0), (0, 0, 1)]:
            tampered = encoded[:1] + bytes(intent) + encoded[4:]
            with self.assertRaises(InvalidIntentError) as context:
                SignedTransaction.decode(Mode.BINARY, tampered)
            self.assertEqual(context.exception.intent, intent)

    def test_envelope_length(self):
        encoded = self.signed.encode(Mode.BINARY)
        for length in [b"\x00", b"\x02"]:
            with self.assertRaises(MalformedEnvelopeError):
                SignedTransaction.decode(Mode.BINARY, length + encoded[1:])
        with self.assertRaises(MalformedEnvelopeError):
            SignedTransaction.decode(Mode.BINARY, b"")
        with self.assertRaises(NonCanonicalError):
            SignedTransaction.decode(Mode.BINARY, b"\x81\x00" + encoded[1:])
        self.assertEqual(SignedTransaction.decode(Mode.BINARY, encoded), self.signed)

    def test_sign_and_verify(self):
        key = ed25519.PrivateKey.random()
        sender = key.public_key().to_address()
        transaction = Transaction(
            self.transaction.kind,
            sender,
            GasPayment(
                self.transaction.gas_payment.objects,
                sender,
                self.transaction.gas_payment.price,
                self.transaction.gas_payment.budget,
            ),
            self.transaction.expiration,
        )
        signed = SignedTransaction(transaction, [key.sign_transaction(transaction)])
        self.assertTrue(signed.verify())

        decoded = SignedTransaction.decode(Mode.BINARY, signed.encode(Mode.BINARY))
        self.assertTrue(decoded.verify())

        # Signed by someone other than the sender.
        stranger = ed25519.PrivateKey.random()
        forged = SignedTransaction(
            transaction, [stranger.sign_transaction(transaction)]
        )
        self.assertFalse(forged.verify())

        # Not an Ed25519 signature.
        opaque = SignedTransaction(transaction, [UserSignature(b"\x05\x01")])
        self.assertFalse(opaque.verify())


if __name__ == "__main__":
    unittest.main()
