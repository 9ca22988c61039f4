# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
This translates Sui transactions to and from their canonical binary form, which is hashed and
signed, and their textual form, which is returned by query services.
"""

from __future__ import annotations

import base64
import hashlib
import json
import unittest
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .address import Address, ParseAddressError
from .bcs import Deserializer, Serializer
from .codec import (
    Encodable,
    Mode,
    expect_object,
    field,
    list_from_json,
    tagged,
    u64_from_json,
    u64_to_json,
)
from .digest import TransactionDigest
from .errors import (
    MalformedIntegerError,
    MalformedValueError,
    TrailingBytesError,
    UnexpectedEndError,
    UnknownVariantError,
)
from .intent import TRANSACTION_INTENT, IntentMessage
from .object import ObjectReference
from .programmable import Argument, Command, InputArgument, ProgrammableTransaction
from .system_transactions import (
    AuthenticatorStateUpdate,
    ChangeEpoch,
    ConsensusCommitPrologue,
    ConsensusCommitPrologueV2,
    EndOfEpochTransactionKind,
    GenesisTransaction,
    RandomnessStateUpdate,
)
from .type_tag import StructTag


@dataclass(init=True, frozen=True)
class EndOfEpoch:
    """The list of system operations run at the end of an epoch."""

    commands: List[EndOfEpochTransactionKind]

    @staticmethod
    def deserialize(deserializer: Deserializer) -> EndOfEpoch:
        return EndOfEpoch(deserializer.sequence(EndOfEpochTransactionKind.deserialize))

    def serialize(self, serializer: Serializer):
        serializer.sequence(self.commands, Serializer.struct)

    @staticmethod
    def from_json(obj: Dict[str, Any]) -> EndOfEpoch:
        return EndOfEpoch(
            list_from_json(
                field(obj, "commands", "EndOfEpoch"),
                "commands",
                EndOfEpochTransactionKind.from_json,
            )
        )

    def to_json(self) -> Dict[str, Any]:
        return {"commands": [command.to_json() for command in self.commands]}


class TransactionKind:
    PROGRAMMABLE_TRANSACTION: int = 0
    CHANGE_EPOCH: int = 1
    GENESIS: int = 2
    CONSENSUS_COMMIT_PROLOGUE: int = 3
    AUTHENTICATOR_STATE_UPDATE: int = 4
    END_OF_EPOCH: int = 5
    RANDOMNESS_STATE_UPDATE: int = 6
    CONSENSUS_COMMIT_PROLOGUE_V2: int = 7

    # Variant index, payload type and textual name, in declaration order. The order is part
    # of the binary format and must never change.
    VARIANTS: List[Tuple[int, Any, str]] = [
        (PROGRAMMABLE_TRANSACTION, ProgrammableTransaction, "programmable_transaction"),
        (CHANGE_EPOCH, ChangeEpoch, "change_epoch"),
        (GENESIS, GenesisTransaction, "genesis"),
        (
            CONSENSUS_COMMIT_PROLOGUE,
            ConsensusCommitPrologue,
            "consensus_commit_prologue",
        ),
        (
            AUTHENTICATOR_STATE_UPDATE,
            AuthenticatorStateUpdate,
            "authenticator_state_update",
        ),
        (END_OF_EPOCH, EndOfEpoch, "end_of_epoch"),
        (RANDOMNESS_STATE_UPDATE, RandomnessStateUpdate, "randomness_state_update"),
        (
            CONSENSUS_COMMIT_PROLOGUE_V2,
            ConsensusCommitPrologueV2,
            "consensus_commit_prologue_v2",
        ),
    ]

    variant: int
    value: Any

    def __init__(self, kind: Any):
        for variant, payload_type, _ in TransactionKind.VARIANTS:
            if isinstance(kind, payload_type):
                self.variant = variant
                break
        else:
            raise ValueError("Invalid type")
        self.value = kind

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TransactionKind):
            return NotImplemented
        return self.variant == other.variant and self.value == other.value

    def __str__(self) -> str:
        return self.value.__str__()

    def __repr__(self):
        return self.__str__()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> TransactionKind:
        variant = deserializer.uleb128()
        if variant >= len(TransactionKind.VARIANTS):
            raise UnknownVariantError("TransactionKind", variant)
        payload_type = TransactionKind.VARIANTS[variant][1]
        return TransactionKind(payload_type.deserialize(deserializer))

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        self.value.serialize(serializer)

    @staticmethod
    def from_json(value: Any) -> TransactionKind:
        names = {name: variant for variant, _, name in TransactionKind.VARIANTS}
        obj, variant = tagged(value, "kind", names, "TransactionKind")
        return TransactionKind(TransactionKind.VARIANTS[variant][1].from_json(obj))

    def to_json(self) -> Dict[str, Any]:
        value = {"kind": TransactionKind.VARIANTS[self.variant][2]}
        value.update(self.value.to_json())
        return value


@dataclass(init=True, frozen=True)
class GasPayment:
    objects: List[ObjectReference]
    owner: Address
    price: int
    budget: int

    @staticmethod
    def deserialize(deserializer: Deserializer) -> GasPayment:
        return GasPayment(
            deserializer.sequence(ObjectReference.deserialize),
            Address.deserialize(deserializer),
            deserializer.u64(),
            deserializer.u64(),
        )

    def serialize(self, serializer: Serializer):
        serializer.sequence(self.objects, Serializer.struct)
        self.owner.serialize(serializer)
        serializer.u64(self.price)
        serializer.u64(self.budget)

    @staticmethod
    def from_json(value: Any) -> GasPayment:
        obj = expect_object(value, "GasPayment")
        return GasPayment(
            list_from_json(
                field(obj, "objects", "GasPayment"), "objects", ObjectReference.from_json
            ),
            Address.from_json(field(obj, "owner", "GasPayment")),
            u64_from_json(field(obj, "price", "GasPayment"), "price"),
            u64_from_json(field(obj, "budget", "GasPayment"), "budget"),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "objects": [reference.to_json() for reference in self.objects],
            "owner": self.owner.to_json(),
            "price": u64_to_json(self.price),
            "budget": u64_to_json(self.budget),
        }


class TransactionExpiration:
    NONE: int = 0
    EPOCH: int = 1

    NAMES: Dict[int, str] = {NONE: "none", EPOCH: "epoch"}

    variant: int
    epoch: Optional[int]

    def __init__(self, variant: int, epoch: Optional[int] = None):
        if variant not in TransactionExpiration.NAMES:
            raise ValueError(f"Invalid TransactionExpiration variant {variant}")
        self.variant = variant
        self.epoch = epoch

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TransactionExpiration):
            return NotImplemented
        return self.variant == other.variant and self.epoch == other.epoch

    def __str__(self):
        if self.variant == TransactionExpiration.NONE:
            return "None"
        return f"Epoch({self.epoch})"

    def __repr__(self):
        return self.__str__()

    @staticmethod
    def none() -> TransactionExpiration:
        return TransactionExpiration(TransactionExpiration.NONE)

    @staticmethod
    def at_epoch(epoch: int) -> TransactionExpiration:
        return TransactionExpiration(TransactionExpiration.EPOCH, epoch)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> TransactionExpiration:
        variant = deserializer.uleb128()
        if variant == TransactionExpiration.NONE:
            return TransactionExpiration.none()
        elif variant == TransactionExpiration.EPOCH:
            return TransactionExpiration.at_epoch(deserializer.u64())
        raise UnknownVariantError("TransactionExpiration", variant)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        if self.variant == TransactionExpiration.EPOCH:
            serializer.u64(self.epoch)

    @staticmethod
    def from_json(value: Any) -> TransactionExpiration:
        names = {name: variant for variant, name in TransactionExpiration.NAMES.items()}
        obj, variant = tagged(value, "kind", names, "TransactionExpiration")
        if variant == TransactionExpiration.NONE:
            return TransactionExpiration.none()
        epoch = field(obj, "epoch", "TransactionExpiration")
        return TransactionExpiration.at_epoch(u64_from_json(epoch, "epoch"))

    def to_json(self) -> Dict[str, Any]:
        value: Dict[str, Any] = {"kind": TransactionExpiration.NAMES[self.variant]}
        if self.variant == TransactionExpiration.EPOCH:
            value["epoch"] = u64_to_json(self.epoch)
        return value


class Transaction(Encodable):
    """
    The data a sender signs. Both forms carry a version tag ahead of the fields so a later
    schema can be added beside V1 without breaking V1 decoders.
    """

    V1: int = 0

    # Version variant and its textual name.
    VERSIONS: Dict[int, str] = {V1: "1"}

    # What the transaction does.
    kind: TransactionKind
    # Address of the account sending the transaction.
    sender: Address
    # Coins paying for the transaction and the price and budget in MIST.
    gas_payment: GasPayment
    # When the transaction stops being valid.
    expiration: TransactionExpiration

    def __init__(
        self,
        kind: TransactionKind,
        sender: Address,
        gas_payment: GasPayment,
        expiration: TransactionExpiration,
    ):
        self.kind = kind
        self.sender = sender
        self.gas_payment = gas_payment
        self.expiration = expiration

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Transaction):
            return NotImplemented
        return (
            self.kind == other.kind
            and self.sender == other.sender
            and self.gas_payment == other.gas_payment
            and self.expiration == other.expiration
        )

    def __str__(self):
        return f"""Transaction:
    kind: {self.kind}
    sender: {self.sender}
    gas_payment: {self.gas_payment}
    expiration: {self.expiration}
"""

    def to_bytes(self) -> bytes:
        return self.encode(Mode.BINARY)

    def digest(self) -> TransactionDigest:
        return TransactionDigest.blake2b(b"TransactionData::", self.to_bytes())

    def signing_message(self) -> bytes:
        """The intent message (0, 0, 0) || transaction, whose hash is what gets signed."""
        return IntentMessage(TRANSACTION_INTENT, self).to_bytes()

    def signing_digest(self) -> bytes:
        hasher = hashlib.blake2b(digest_size=32)
        hasher.update(self.signing_message())
        return hasher.digest()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Transaction:
        version = deserializer.uleb128()
        if version != Transaction.V1:
            raise UnknownVariantError("Transaction version", version)
        return Transaction(
            TransactionKind.deserialize(deserializer),
            Address.deserialize(deserializer),
            GasPayment.deserialize(deserializer),
            TransactionExpiration.deserialize(deserializer),
        )

    def serialize(self, serializer: Serializer):
        serializer.uleb128(Transaction.V1)
        self.kind.serialize(serializer)
        self.sender.serialize(serializer)
        self.gas_payment.serialize(serializer)
        self.expiration.serialize(serializer)

    @staticmethod
    def from_json(value: Any) -> Transaction:
        # The kind's fields share one object with the transaction's own fields.
        names = {name: variant for variant, name in Transaction.VERSIONS.items()}
        obj, _ = tagged(value, "version", names, "Transaction version")
        return Transaction(
            TransactionKind.from_json(obj),
            Address.from_json(field(obj, "sender", "Transaction")),
            GasPayment.from_json(field(obj, "gas_payment", "Transaction")),
            TransactionExpiration.from_json(field(obj, "expiration", "Transaction")),
        )

    def to_json(self) -> Dict[str, Any]:
        value: Dict[str, Any] = {"version": Transaction.VERSIONS[Transaction.V1]}
        value.update(self.kind.to_json())
        value["sender"] = self.sender.to_json()
        value["gas_payment"] = self.gas_payment.to_json()
        value["expiration"] = self.expiration.to_json()
        return value


CONSENSUS_PROLOGUE = (
    "AAMAAAAAAAAAAAIAAAAAAAAAtkjHeocBAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAEA"
    "AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAIAAAAAAAAAAAAAAAAAAAAAAAAAAA"
    "AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAABAAAAAAAAAAAAAAAAAAAA"
    "AA=="
)
EPOCH_CHANGE = (
    "AAUCAmkBAAAAAAAAmSrgAQAAAAAAagEAAAAAAAApAAAAAAAAALAQCoNLLwAAnNn0sywGAABsVBEfSC0A"
    "AKQnlhd1AAAAzve+vo4BAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAABAAAAAAAAAAAA"
    "AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAACAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA"
    "AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAQAAAAAAAAAAAAAAAAAAAAA="
)
PROGRAMMABLE = (
    "AAADAQFEBbUNeR/TNGdU6Bcaqra8LtJsLEbv3QM8FLMK5QesMyx96QEAAAAAAQAIVsakAAAAAAABALyy"
    "okbZ/8ynfWQer6UyP1DpeCnPU1NC7AyFNJSaTztnQF40BQAAAAAgffPXh5XuG6TWjHk6qC5w9k2a+41o"
    "TWfm0sC1FOYRqsEBAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAN7pB2Nsb2JfdjIMY2FuY2Vs"
    "X29yZGVyAgcAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAgNzdWkDU1VJAAddSzAlBmRcN/8T"
    "O5jEtQpa4UhBZZc41tcz1Z0NIXqTvwRjb2luBENPSU4AAwEAAAEBAAECAPgh00g/x3Jeuvqlo9Ejc9SZ"
    "Ab384UhPIZ2qcGajDfd9ASXQjpFOD6mfycbzwD1wc+IOkCXQ8rHQo/Vi5SDOGMR/Jl40BQAAAAAgV7P1"
    "E0IMKon5uI82R/0arWLt+dc1ng/4VwKDqpTCxHT4IdNIP8dyXrr6paPRI3PUmQG9/OFITyGdqnBmow33"
    "fe4CAAAAAAAAAMqaOwAAAAAA"
)


class Test(unittest.TestCase):
    def verify_fixture(self, fixture: str) -> Transaction:
        encoded = base64.b64decode(fixture)
        transaction = Transaction.decode(Mode.BINARY, encoded)
        self.assertEqual(transaction.encode(Mode.BINARY), encoded)

        text = transaction.encode(Mode.TEXTUAL)
        self.assertEqual(Transaction.decode(Mode.TEXTUAL, text), transaction)
        self.assertEqual(Transaction.decode(Mode.TEXTUAL, text).to_bytes(), encoded)
        return transaction

    def test_consensus_prologue_fixture(self):
        transaction = self.verify_fixture(CONSENSUS_PROLOGUE)
        prologue = transaction.kind.value
        self.assertIsInstance(prologue, ConsensusCommitPrologue)
        self.assertEqual(prologue.epoch, 0)
        self.assertEqual(prologue.round, 2)
        self.assertEqual(prologue.commit_timestamp_ms, 1681392093366)
        self.assertEqual(transaction.expiration, TransactionExpiration.none())

    def test_epoch_change_fixture(self):
        transaction = self.verify_fixture(EPOCH_CHANGE)
        self.assertEqual(transaction.kind.variant, TransactionKind.END_OF_EPOCH)
        commands = transaction.kind.value.commands
        self.assertEqual(
            [command.variant for command in commands],
            [
                EndOfEpochTransactionKind.AUTHENTICATOR_STATE_EXPIRE,
                EndOfEpochTransactionKind.CHANGE_EPOCH,
            ],
        )
        self.assertEqual(commands[0].value.min_epoch, 361)
        self.assertEqual(commands[1].value.epoch, 362)
        self.assertEqual(commands[1].value.protocol_version, 41)

        text = transaction.to_json()
        self.assertEqual(text["kind"], "end_of_epoch")
        self.assertEqual(text["commands"][0]["kind"], "authenticator_state_expire")
        self.assertEqual(text["commands"][1]["epoch"], "362")

    def test_programmable_fixture(self):
        transaction = self.verify_fixture(PROGRAMMABLE)
        programmable = transaction.kind.value
        self.assertEqual(
            [argument.variant for argument in programmable.inputs],
            [
                InputArgument.SHARED,
                InputArgument.PURE,
                InputArgument.IMMUTABLE_OR_OWNED,
            ],
        )
        self.assertTrue(programmable.inputs[0].value.mutable)
        self.assertEqual(
            programmable.inputs[1].value, bytes.fromhex("56c6a40000000000")
        )

        (command,) = programmable.commands
        self.assertEqual(command.variant, Command.MOVE_CALL)
        self.assertEqual(command.value.module, "clob_v2")
        self.assertEqual(command.value.function, "cancel_order")
        self.assertEqual(
            command.value.type_arguments[0].value, StructTag.from_str("0x2::sui::SUI")
        )
        self.assertEqual(
            command.value.arguments,
            [Argument.input(0), Argument.input(1), Argument.input(2)],
        )
        self.assertEqual(transaction.gas_payment.price, 750)
        self.assertEqual(transaction.gas_payment.budget, 1000000000)
        self.assertEqual(transaction.sender, transaction.gas_payment.owner)

    def test_textual_shape(self):
        transaction = Transaction.decode(Mode.BINARY, base64.b64decode(PROGRAMMABLE))
        text = transaction.to_json()
        self.assertEqual(text["version"], "1")
        self.assertEqual(text["kind"], "programmable_transaction")
        self.assertEqual(
            set(text.keys()),
            {
                "version",
                "kind",
                "inputs",
                "commands",
                "sender",
                "gas_payment",
                "expiration",
            },
        )
        self.assertEqual(text["gas_payment"]["price"], "750")
        self.assertEqual(text["expiration"], {"kind": "none"})

    def test_expiration(self):
        expirations = [TransactionExpiration.none(), TransactionExpiration.at_epoch(5)]
        for expiration in expirations:
            ser = Serializer()
            expiration.serialize(ser)
            self.assertEqual(
                TransactionExpiration.deserialize(Deserializer(ser.output())), expiration
            )
            self.assertEqual(
                TransactionExpiration.from_json(expiration.to_json()), expiration
            )
        self.assertEqual(
            TransactionExpiration.at_epoch(5).to_json(), {"kind": "epoch", "epoch": "5"}
        )

    def test_unknown_version(self):
        encoded = bytearray(base64.b64decode(CONSENSUS_PROLOGUE))
        encoded[0] = 1
        with self.assertRaises(UnknownVariantError):
            Transaction.decode(Mode.BINARY, bytes(encoded))

        text = Transaction.decode(
            Mode.BINARY, base64.b64decode(CONSENSUS_PROLOGUE)
        ).to_json()
        text["version"] = "2"
        with self.assertRaises(UnknownVariantError):
            Transaction.from_json(text)

    def test_unknown_kind(self):
        encoded = bytearray(base64.b64decode(CONSENSUS_PROLOGUE))
        encoded[1] = 8
        with self.assertRaises(UnknownVariantError) as context:
            Transaction.decode(Mode.BINARY, bytes(encoded))
        self.assertEqual(context.exception.entity, "TransactionKind")

    def test_malformed_textual(self):
        text = Transaction.decode(
            Mode.BINARY, base64.b64decode(CONSENSUS_PROLOGUE)
        ).to_json()
        text["epoch"] = 0
        with self.assertRaises(MalformedIntegerError):
            Transaction.from_json(text)
        del text["epoch"]
        with self.assertRaises(MalformedValueError):
            Transaction.from_json(text)

    def test_textual_rejects_trailing_newlines(self):
        text = Transaction.decode(
            Mode.BINARY, base64.b64decode(CONSENSUS_PROLOGUE)
        ).to_json()
        text["sender"] = "0x2\n"
        with self.assertRaises(ParseAddressError):
            Transaction.decode(Mode.TEXTUAL, json.dumps(text).encode())

        text["sender"] = "0x2"
        text["epoch"] = "5\n"
        with self.assertRaises(MalformedIntegerError):
            Transaction.decode(Mode.TEXTUAL, json.dumps(text).encode())

    def test_deeply_nested_json(self):
        with self.assertRaises(MalformedValueError):
            Transaction.decode(Mode.TEXTUAL, b"[" * 100000)

    def test_trailing_and_short(self):
        encoded = base64.b64decode(CONSENSUS_PROLOGUE)
        with self.assertRaises(TrailingBytesError):
            Transaction.decode(Mode.BINARY, encoded + b"\x00")
        with self.assertRaises(UnexpectedEndError):
            Transaction.decode(Mode.BINARY, encoded[:-1])

    def test_digests(self):
        transaction = Transaction.decode(Mode.BINARY, base64.b64decode(PROGRAMMABLE))
        self.assertEqual(
            transaction.digest(),
            TransactionDigest.blake2b(b"TransactionData::" + transaction.to_bytes()),
        )
        message = transaction.signing_message()
        self.assertEqual(message[:3], b"\x00\x00\x00")
        self.assertEqual(message[3:], transaction.to_bytes())
        self.assertEqual(
            transaction.signing_digest(),
            hashlib.blake2b(message, digest_size=32).digest(),
        )


if __name__ == "__main__":
    unittest.main()
