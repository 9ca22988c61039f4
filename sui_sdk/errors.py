# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Failures raised while converting transactions to and from their binary and textual forms.

Every decode failure derives from `DecodeError` and is terminal: no partially decoded value is
ever returned. `EncodeError` indicates that an in-memory value cannot be represented at all and
is a programming error on the caller's side.
"""

from __future__ import annotations

import unittest
from typing import Any, Tuple


class DecodeError(Exception):
    """
    The input could not be decoded into a value.
    """


class EncodeError(Exception):
    """
    The value cannot be represented in the requested form.
    """


class UnknownVariantError(DecodeError):
    entity: str
    variant: Any

    def __init__(self, entity: str, variant: Any):
        super().__init__(f"Unknown variant {variant!r} for {entity}")
        self.entity = entity
        self.variant = variant


class MalformedScalarError(DecodeError):
    field: str
    value: Any

    def __init__(self, field: str, value: Any, reason: str = ""):
        message = f"Malformed {self.kind} for {field}: {value!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
        self.field = field
        self.value = value

    @property
    def kind(self) -> str:
        return "scalar"


class MalformedIntegerError(MalformedScalarError):
    @property
    def kind(self) -> str:
        return "integer"


class MalformedBytesError(MalformedScalarError):
    @property
    def kind(self) -> str:
        return "byte payload"


class MalformedValueError(DecodeError):
    """
    Textual input does not have the expected shape, e.g., a missing field or a list where an
    object was expected.
    """


class InvalidIntentError(DecodeError):
    intent: Tuple[int, int, int]

    def __init__(self, intent: Tuple[int, int, int]):
        scope, version, app_id = intent
        super().__init__(f"Invalid intent message ({scope}, {version}, {app_id})")
        self.intent = intent


class MalformedEnvelopeError(DecodeError):
    """
    The singleton sequence wrapping a signed transaction is absent, empty, or holds more than
    one element.
    """


class UnexpectedEndError(DecodeError):
    """
    Binary input ended before a complete value was read.
    """


class TrailingBytesError(DecodeError):
    remaining: int

    def __init__(self, remaining: int):
        super().__init__(f"Unexpected trailing bytes: {remaining} remaining")
        self.remaining = remaining


class NonCanonicalError(DecodeError):
    """
    Binary input decodes to a value but is not that value's unique canonical encoding.
    """


class Test(unittest.TestCase):
    def test_unknown_variant_names_entity(self):
        error = UnknownVariantError("Argument", 9)
        self.assertEqual(error.entity, "Argument")
        self.assertEqual(error.variant, 9)
        self.assertIn("Argument", str(error))

    def test_malformed_scalar_kinds(self):
        self.assertIn("integer", str(MalformedIntegerError("version", "abc")))
        self.assertIn("byte payload", str(MalformedBytesError("value", "%%")))
        self.assertTrue(issubclass(MalformedIntegerError, DecodeError))

    def test_malformed_scalar_fields(self):
        error = MalformedIntegerError("epoch", "5\n", "not a decimal string")
        self.assertEqual(error.field, "epoch")
        self.assertEqual(error.value, "5\n")
        self.assertEqual(
            str(error),
            "Malformed integer for epoch: '5\\n' (not a decimal string)",
        )

    def test_invalid_intent_names_tuple(self):
        error = InvalidIntentError((1, 0, 0))
        self.assertEqual(str(error), "Invalid intent message (1, 0, 0)")


if __name__ == "__main__":
    unittest.main()
