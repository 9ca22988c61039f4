# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Domain separation for signed messages. Every signed payload is prefixed with an intent, three
single byte values naming what the payload is, which protocol version it follows, and which
application it is meant for. The same bytes therefore never produce the same signing input in
two different contexts.
"""

from __future__ import annotations

import typing
import unittest
from typing import Any, Tuple

from .bcs import Deserializer, Serializer
from .errors import InvalidIntentError, UnexpectedEndError


class IntentScope:
    TRANSACTION_DATA: int = 0
    TRANSACTION_EFFECTS: int = 1
    CHECKPOINT_SUMMARY: int = 2
    PERSONAL_MESSAGE: int = 3
    SENDER_SIGNED_TRANSACTION: int = 4
    PROOF_OF_POSSESSION: int = 5
    HEADER_DIGEST: int = 6
    BRIDGE_EVENT_UNUSED: int = 7
    CONSENSUS_BLOCK: int = 8


class IntentVersion:
    V0: int = 0


class AppId:
    SUI: int = 0
    NARWHAL: int = 1
    CONSENSUS: int = 2


class Intent:
    scope: int
    version: int
    app_id: int

    def __init__(self, scope: int, version: int, app_id: int):
        self.scope = scope
        self.version = version
        self.app_id = app_id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Intent):
            return NotImplemented
        return self.as_tuple() == other.as_tuple()

    def __hash__(self) -> int:
        return hash(self.as_tuple())

    def __str__(self):
        return str(self.as_tuple())

    def __repr__(self):
        return self.__str__()

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.scope, self.version, self.app_id)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Intent:
        return Intent(deserializer.u8(), deserializer.u8(), deserializer.u8())

    def serialize(self, serializer: Serializer):
        serializer.u8(self.scope)
        serializer.u8(self.version)
        serializer.u8(self.app_id)


# The only intent a transaction may be signed under.
TRANSACTION_INTENT = Intent(IntentScope.TRANSACTION_DATA, IntentVersion.V0, AppId.SUI)


class IntentMessage:
    """
    A value prefixed by its intent. The binary form is the positional tuple
    (scope, version, app_id, value); there is no textual form.
    """

    intent: Intent
    value: Any

    def __init__(self, intent: Intent, value: Any):
        self.intent = intent
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IntentMessage):
            return NotImplemented
        return self.intent == other.intent and self.value == other.value

    def __str__(self):
        return f"IntentMessage{self.intent}: {self.value}"

    @staticmethod
    def deserialize(
        deserializer: Deserializer,
        value_decoder: typing.Callable[[Deserializer], Any],
        expected: Intent = TRANSACTION_INTENT,
    ) -> IntentMessage:
        intent = Intent.deserialize(deserializer)
        if intent != expected:
            raise InvalidIntentError(intent.as_tuple())
        return IntentMessage(intent, value_decoder(deserializer))

    def serialize(self, serializer: Serializer):
        self.intent.serialize(serializer)
        self.value.serialize(serializer)

    def to_bytes(self) -> bytes:
        ser = Serializer()
        self.serialize(ser)
        return ser.output()


class Payload:
    """Stand in for a transaction in the tests below."""

    def __init__(self, data: bytes):
        self.data = data

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Payload):
            return NotImplemented
        return self.data == other.data

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Payload:
        return Payload(deserializer.bytes())

    def serialize(self, serializer: Serializer):
        serializer.bytes(self.data)


class Test(unittest.TestCase):
    def test_transaction_intent(self):
        self.assertEqual(TRANSACTION_INTENT.as_tuple(), (0, 0, 0))
        message = IntentMessage(TRANSACTION_INTENT, Payload(b"\xaa"))
        self.assertEqual(message.to_bytes(), b"\x00\x00\x00\x01\xaa")
        der = Deserializer(message.to_bytes())
        self.assertEqual(IntentMessage.deserialize(der, Payload.deserialize), message)
        der.ensure_finished()

    def test_rejects_other_intents(self):
        for intent in [(1, 0, 0), (0, 1, 0), (0, 0, 1), (3, 0, 0)]:
            encoded = bytes(intent) + b"\x01\xaa"
            with self.assertRaises(InvalidIntentError) as context:
                IntentMessage.deserialize(Deserializer(encoded), Payload.deserialize)
            self.assertEqual(context.exception.intent, intent)
            self.assertIn(str(intent), str(context.exception))

    def test_other_expected_intent(self):
        personal = Intent(IntentScope.PERSONAL_MESSAGE, IntentVersion.V0, AppId.SUI)
        message = IntentMessage(personal, Payload(b"hi"))
        decoded = IntentMessage.deserialize(
            Deserializer(message.to_bytes()), Payload.deserialize, personal
        )
        self.assertEqual(decoded, message)

    def test_short_intent(self):
        with self.assertRaises(UnexpectedEndError):
            IntentMessage.deserialize(Deserializer(b"\x00\x00"), Payload.deserialize)


if __name__ == "__main__":
    unittest.main()
