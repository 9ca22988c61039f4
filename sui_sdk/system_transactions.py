# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Transactions created by the system rather than by users: epoch changes, genesis, consensus
commit prologues and the authenticator and randomness state updates.
"""

from __future__ import annotations

import unittest
from dataclasses import dataclass
from typing import Any, Dict, List

from .address import ObjectId
from .bcs import Deserializer, Serializer
from .codec import (
    bytes_from_json,
    bytes_to_json,
    expect_object,
    field,
    list_from_json,
    str_from_json,
    tagged,
    u64_from_json,
    u64_to_json,
)
from .digest import CheckpointDigest, ConsensusCommitDigest
from .errors import MalformedIntegerError, UnknownVariantError
from .object import GenesisObject, MovePackage, ObjectData, Owner, object_id
from .programmable import dependencies_from_json, modules_from_json


def u64_field(obj: Dict[str, Any], name: str, entity: str) -> int:
    return u64_from_json(field(obj, name, entity), name)


@dataclass(init=True, frozen=True)
class SystemPackage:
    version: int
    modules: List[bytes]
    dependencies: List[ObjectId]

    @staticmethod
    def deserialize(deserializer: Deserializer) -> SystemPackage:
        return SystemPackage(
            deserializer.u64(),
            deserializer.sequence(Deserializer.bytes),
            deserializer.sequence(ObjectId.deserialize),
        )

    def serialize(self, serializer: Serializer):
        serializer.u64(self.version)
        serializer.sequence(self.modules, Serializer.bytes)
        serializer.sequence(self.dependencies, Serializer.struct)

    @staticmethod
    def from_json(value: Any) -> SystemPackage:
        obj = expect_object(value, "SystemPackage")
        return SystemPackage(
            u64_field(obj, "version", "SystemPackage"),
            modules_from_json(obj, "SystemPackage"),
            dependencies_from_json(obj, "SystemPackage"),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "version": u64_to_json(self.version),
            "modules": [bytes_to_json(module) for module in self.modules],
            "dependencies": [dependency.to_json() for dependency in self.dependencies],
        }


@dataclass(init=True, frozen=True)
class ChangeEpoch:
    epoch: int
    protocol_version: int
    storage_charge: int
    computation_charge: int
    storage_rebate: int
    non_refundable_storage_fee: int
    epoch_start_timestamp_ms: int
    system_packages: List[SystemPackage]

    # The u64 fields, in binary order.
    AMOUNTS = (
        "epoch",
        "protocol_version",
        "storage_charge",
        "computation_charge",
        "storage_rebate",
        "non_refundable_storage_fee",
        "epoch_start_timestamp_ms",
    )

    @staticmethod
    def deserialize(deserializer: Deserializer) -> ChangeEpoch:
        amounts = [deserializer.u64() for _ in ChangeEpoch.AMOUNTS]
        return ChangeEpoch(
            *amounts, deserializer.sequence(SystemPackage.deserialize)
        )

    def serialize(self, serializer: Serializer):
        for name in ChangeEpoch.AMOUNTS:
            serializer.u64(getattr(self, name))
        serializer.sequence(self.system_packages, Serializer.struct)

    @staticmethod
    def from_json(obj: Dict[str, Any]) -> ChangeEpoch:
        amounts = [u64_field(obj, name, "ChangeEpoch") for name in ChangeEpoch.AMOUNTS]
        return ChangeEpoch(
            *amounts,
            list_from_json(
                field(obj, "system_packages", "ChangeEpoch"),
                "system_packages",
                SystemPackage.from_json,
            ),
        )

    def to_json(self) -> Dict[str, Any]:
        value: Dict[str, Any] = {
            name: u64_to_json(getattr(self, name)) for name in ChangeEpoch.AMOUNTS
        }
        value["system_packages"] = [
            package.to_json() for package in self.system_packages
        ]
        return value


@dataclass(init=True, frozen=True)
class GenesisTransaction:
    objects: List[GenesisObject]

    @staticmethod
    def deserialize(deserializer: Deserializer) -> GenesisTransaction:
        return GenesisTransaction(deserializer.sequence(GenesisObject.deserialize))

    def serialize(self, serializer: Serializer):
        serializer.sequence(self.objects, Serializer.struct)

    @staticmethod
    def from_json(obj: Dict[str, Any]) -> GenesisTransaction:
        return GenesisTransaction(
            list_from_json(
                field(obj, "objects", "GenesisTransaction"),
                "objects",
                GenesisObject.from_json,
            )
        )

    def to_json(self) -> Dict[str, Any]:
        return {"objects": [genesis.to_json() for genesis in self.objects]}


@dataclass(init=True, frozen=True)
class ConsensusCommitPrologue:
    epoch: int
    round: int
    commit_timestamp_ms: int

    @staticmethod
    def deserialize(deserializer: Deserializer) -> ConsensusCommitPrologue:
        return ConsensusCommitPrologue(
            deserializer.u64(), deserializer.u64(), deserializer.u64()
        )

    def serialize(self, serializer: Serializer):
        serializer.u64(self.epoch)
        serializer.u64(self.round)
        serializer.u64(self.commit_timestamp_ms)

    @staticmethod
    def from_json(obj: Dict[str, Any]) -> ConsensusCommitPrologue:
        entity = "ConsensusCommitPrologue"
        return ConsensusCommitPrologue(
            u64_field(obj, "epoch", entity),
            u64_field(obj, "round", entity),
            u64_field(obj, "commit_timestamp_ms", entity),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "epoch": u64_to_json(self.epoch),
            "round": u64_to_json(self.round),
            "commit_timestamp_ms": u64_to_json(self.commit_timestamp_ms),
        }


@dataclass(init=True, frozen=True)
class ConsensusCommitPrologueV2:
    epoch: int
    round: int
    commit_timestamp_ms: int
    consensus_commit_digest: ConsensusCommitDigest

    @staticmethod
    def deserialize(deserializer: Deserializer) -> ConsensusCommitPrologueV2:
        return ConsensusCommitPrologueV2(
            deserializer.u64(),
            deserializer.u64(),
            deserializer.u64(),
            ConsensusCommitDigest.deserialize(deserializer),
        )

    def serialize(self, serializer: Serializer):
        serializer.u64(self.epoch)
        serializer.u64(self.round)
        serializer.u64(self.commit_timestamp_ms)
        self.consensus_commit_digest.serialize(serializer)

    @staticmethod
    def from_json(obj: Dict[str, Any]) -> ConsensusCommitPrologueV2:
        entity = "ConsensusCommitPrologueV2"
        return ConsensusCommitPrologueV2(
            u64_field(obj, "epoch", entity),
            u64_field(obj, "round", entity),
            u64_field(obj, "commit_timestamp_ms", entity),
            ConsensusCommitDigest.from_json(
                field(obj, "consensus_commit_digest", entity)
            ),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "epoch": u64_to_json(self.epoch),
            "round": u64_to_json(self.round),
            "commit_timestamp_ms": u64_to_json(self.commit_timestamp_ms),
            "consensus_commit_digest": self.consensus_commit_digest.to_json(),
        }


@dataclass(init=True, frozen=True)
class JwkId:
    iss: str
    kid: str

    @staticmethod
    def deserialize(deserializer: Deserializer) -> JwkId:
        return JwkId(deserializer.str(), deserializer.str())

    def serialize(self, serializer: Serializer):
        serializer.str(self.iss)
        serializer.str(self.kid)

    @staticmethod
    def from_json(value: Any) -> JwkId:
        obj = expect_object(value, "JwkId")
        return JwkId(
            str_from_json(field(obj, "iss", "JwkId"), "iss"),
            str_from_json(field(obj, "kid", "JwkId"), "kid"),
        )

    def to_json(self) -> Dict[str, Any]:
        return {"iss": self.iss, "kid": self.kid}


@dataclass(init=True, frozen=True)
class Jwk:
    """An RSA JSON web key as published by an OpenID provider."""

    kty: str
    e: str
    n: str
    alg: str

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Jwk:
        return Jwk(
            deserializer.str(),
            deserializer.str(),
            deserializer.str(),
            deserializer.str(),
        )

    def serialize(self, serializer: Serializer):
        serializer.str(self.kty)
        serializer.str(self.e)
        serializer.str(self.n)
        serializer.str(self.alg)

    @staticmethod
    def from_json(value: Any) -> Jwk:
        obj = expect_object(value, "Jwk")
        return Jwk(
            *[
                str_from_json(field(obj, name, "Jwk"), name)
                for name in ("kty", "e", "n", "alg")
            ]
        )

    def to_json(self) -> Dict[str, Any]:
        return {"kty": self.kty, "e": self.e, "n": self.n, "alg": self.alg}


@dataclass(init=True, frozen=True)
class ActiveJwk:
    jwk_id: JwkId
    jwk: Jwk
    epoch: int

    @staticmethod
    def deserialize(deserializer: Deserializer) -> ActiveJwk:
        return ActiveJwk(
            JwkId.deserialize(deserializer),
            Jwk.deserialize(deserializer),
            deserializer.u64(),
        )

    def serialize(self, serializer: Serializer):
        self.jwk_id.serialize(serializer)
        self.jwk.serialize(serializer)
        serializer.u64(self.epoch)

    @staticmethod
    def from_json(value: Any) -> ActiveJwk:
        obj = expect_object(value, "ActiveJwk")
        return ActiveJwk(
            JwkId.from_json(field(obj, "jwk_id", "ActiveJwk")),
            Jwk.from_json(field(obj, "jwk", "ActiveJwk")),
            u64_field(obj, "epoch", "ActiveJwk"),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "jwk_id": self.jwk_id.to_json(),
            "jwk": self.jwk.to_json(),
            "epoch": u64_to_json(self.epoch),
        }


@dataclass(init=True, frozen=True)
class AuthenticatorStateUpdate:
    epoch: int
    round: int
    new_active_jwks: List[ActiveJwk]
    authenticator_obj_initial_shared_version: int

    @staticmethod
    def deserialize(deserializer: Deserializer) -> AuthenticatorStateUpdate:
        return AuthenticatorStateUpdate(
            deserializer.u64(),
            deserializer.u64(),
            deserializer.sequence(ActiveJwk.deserialize),
            deserializer.u64(),
        )

    def serialize(self, serializer: Serializer):
        serializer.u64(self.epoch)
        serializer.u64(self.round)
        serializer.sequence(self.new_active_jwks, Serializer.struct)
        serializer.u64(self.authenticator_obj_initial_shared_version)

    @staticmethod
    def from_json(obj: Dict[str, Any]) -> AuthenticatorStateUpdate:
        entity = "AuthenticatorStateUpdate"
        return AuthenticatorStateUpdate(
            u64_field(obj, "epoch", entity),
            u64_field(obj, "round", entity),
            list_from_json(
                field(obj, "new_active_jwks", entity),
                "new_active_jwks",
                ActiveJwk.from_json,
            ),
            u64_field(obj, "authenticator_obj_initial_shared_version", entity),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "epoch": u64_to_json(self.epoch),
            "round": u64_to_json(self.round),
            "new_active_jwks": [jwk.to_json() for jwk in self.new_active_jwks],
            "authenticator_obj_initial_shared_version": u64_to_json(
                self.authenticator_obj_initial_shared_version
            ),
        }


@dataclass(init=True, frozen=True)
class RandomnessStateUpdate:
    epoch: int
    randomness_round: int
    random_bytes: bytes
    randomness_obj_initial_shared_version: int

    @staticmethod
    def deserialize(deserializer: Deserializer) -> RandomnessStateUpdate:
        return RandomnessStateUpdate(
            deserializer.u64(),
            deserializer.u64(),
            deserializer.bytes(),
            deserializer.u64(),
        )

    def serialize(self, serializer: Serializer):
        serializer.u64(self.epoch)
        serializer.u64(self.randomness_round)
        serializer.bytes(self.random_bytes)
        serializer.u64(self.randomness_obj_initial_shared_version)

    @staticmethod
    def from_json(obj: Dict[str, Any]) -> RandomnessStateUpdate:
        entity = "RandomnessStateUpdate"
        return RandomnessStateUpdate(
            u64_field(obj, "epoch", entity),
            u64_field(obj, "randomness_round", entity),
            bytes_from_json(field(obj, "random_bytes", entity), "random_bytes"),
            u64_field(obj, "randomness_obj_initial_shared_version", entity),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "epoch": u64_to_json(self.epoch),
            "randomness_round": u64_to_json(self.randomness_round),
            "random_bytes": bytes_to_json(self.random_bytes),
            "randomness_obj_initial_shared_version": u64_to_json(
                self.randomness_obj_initial_shared_version
            ),
        }


@dataclass(init=True, frozen=True)
class AuthenticatorStateExpire:
    min_epoch: int
    authenticator_obj_initial_shared_version: int

    @staticmethod
    def deserialize(deserializer: Deserializer) -> AuthenticatorStateExpire:
        return AuthenticatorStateExpire(deserializer.u64(), deserializer.u64())

    def serialize(self, serializer: Serializer):
        serializer.u64(self.min_epoch)
        serializer.u64(self.authenticator_obj_initial_shared_version)

    @staticmethod
    def from_json(obj: Dict[str, Any]) -> AuthenticatorStateExpire:
        entity = "AuthenticatorStateExpire"
        return AuthenticatorStateExpire(
            u64_field(obj, "min_epoch", entity),
            u64_field(obj, "authenticator_obj_initial_shared_version", entity),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "min_epoch": u64_to_json(self.min_epoch),
            "authenticator_obj_initial_shared_version": u64_to_json(
                self.authenticator_obj_initial_shared_version
            ),
        }


class EndOfEpochTransactionKind:
    CHANGE_EPOCH: int = 0
    AUTHENTICATOR_STATE_CREATE: int = 1
    AUTHENTICATOR_STATE_EXPIRE: int = 2
    RANDOMNESS_STATE_CREATE: int = 3
    DENY_LIST_STATE_CREATE: int = 4
    BRIDGE_STATE_CREATE: int = 5
    BRIDGE_COMMITTEE_INIT: int = 6

    NAMES: Dict[int, str] = {
        CHANGE_EPOCH: "change_epoch",
        AUTHENTICATOR_STATE_CREATE: "authenticator_state_create",
        AUTHENTICATOR_STATE_EXPIRE: "authenticator_state_expire",
        RANDOMNESS_STATE_CREATE: "randomness_state_create",
        DENY_LIST_STATE_CREATE: "deny_list_state_create",
        BRIDGE_STATE_CREATE: "bridge_state_create",
        BRIDGE_COMMITTEE_INIT: "bridge_committee_init",
    }

    UNIT_VARIANTS = (
        AUTHENTICATOR_STATE_CREATE,
        RANDOMNESS_STATE_CREATE,
        DENY_LIST_STATE_CREATE,
    )

    variant: int
    # ChangeEpoch, AuthenticatorStateExpire, the bridge chain id as a CheckpointDigest, the
    # bridge object version, or None for unit variants.
    value: Any

    def __init__(self, variant: int, value: Any = None):
        if variant not in EndOfEpochTransactionKind.NAMES:
            raise ValueError(f"Invalid EndOfEpochTransactionKind variant {variant}")
        self.variant = variant
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EndOfEpochTransactionKind):
            return NotImplemented
        return self.variant == other.variant and self.value == other.value

    def __str__(self):
        name = EndOfEpochTransactionKind.NAMES[self.variant]
        if self.value is None:
            return name
        return f"{name}({self.value})"

    def __repr__(self):
        return self.__str__()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> EndOfEpochTransactionKind:
        variant = deserializer.uleb128()
        if variant == EndOfEpochTransactionKind.CHANGE_EPOCH:
            value: Any = ChangeEpoch.deserialize(deserializer)
        elif variant == EndOfEpochTransactionKind.AUTHENTICATOR_STATE_EXPIRE:
            value = AuthenticatorStateExpire.deserialize(deserializer)
        elif variant == EndOfEpochTransactionKind.BRIDGE_STATE_CREATE:
            value = CheckpointDigest.deserialize(deserializer)
        elif variant == EndOfEpochTransactionKind.BRIDGE_COMMITTEE_INIT:
            value = deserializer.u64()
        elif variant in EndOfEpochTransactionKind.UNIT_VARIANTS:
            value = None
        else:
            raise UnknownVariantError("EndOfEpochTransactionKind", variant)
        return EndOfEpochTransactionKind(variant, value)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        if self.variant == EndOfEpochTransactionKind.BRIDGE_COMMITTEE_INIT:
            serializer.u64(self.value)
        elif self.value is not None:
            self.value.serialize(serializer)

    @staticmethod
    def from_json(value: Any) -> EndOfEpochTransactionKind:
        names = {
            name: variant for variant, name in EndOfEpochTransactionKind.NAMES.items()
        }
        obj, variant = tagged(value, "kind", names, "EndOfEpochTransactionKind")
        if variant == EndOfEpochTransactionKind.CHANGE_EPOCH:
            payload: Any = ChangeEpoch.from_json(obj)
        elif variant == EndOfEpochTransactionKind.AUTHENTICATOR_STATE_EXPIRE:
            payload = AuthenticatorStateExpire.from_json(obj)
        elif variant == EndOfEpochTransactionKind.BRIDGE_STATE_CREATE:
            payload = CheckpointDigest.from_json(
                field(obj, "chain_id", "EndOfEpochTransactionKind")
            )
        elif variant == EndOfEpochTransactionKind.BRIDGE_COMMITTEE_INIT:
            payload = u64_field(
                obj, "bridge_object_version", "EndOfEpochTransactionKind"
            )
        else:
            payload = None
        return EndOfEpochTransactionKind(variant, payload)

    def to_json(self) -> Any:
        value: Dict[str, Any] = {"kind": EndOfEpochTransactionKind.NAMES[self.variant]}
        if self.variant == EndOfEpochTransactionKind.BRIDGE_STATE_CREATE:
            value["chain_id"] = self.value.to_json()
        elif self.variant == EndOfEpochTransactionKind.BRIDGE_COMMITTEE_INIT:
            value["bridge_object_version"] = u64_to_json(self.value)
        elif self.value is not None:
            value.update(self.value.to_json())
        return value


class Test(unittest.TestCase):
    def round_trip(self, value: Any):
        ser = Serializer()
        value.serialize(ser)
        der = Deserializer(ser.output())
        self.assertEqual(type(value).deserialize(der), value)
        der.ensure_finished()
        return ser.output()

    def test_end_of_epoch_kinds(self):
        change_epoch = ChangeEpoch(
            362,
            41,
            1,
            2,
            3,
            4,
            1711000000000,
            [SystemPackage(1, [b"\x01"], [object_id(1), object_id(2)])],
        )
        kinds = [
            EndOfEpochTransactionKind(
                EndOfEpochTransactionKind.CHANGE_EPOCH, change_epoch
            ),
            EndOfEpochTransactionKind(
                EndOfEpochTransactionKind.AUTHENTICATOR_STATE_CREATE
            ),
            EndOfEpochTransactionKind(
                EndOfEpochTransactionKind.AUTHENTICATOR_STATE_EXPIRE,
                AuthenticatorStateExpire(361, 31468185),
            ),
            EndOfEpochTransactionKind(
                EndOfEpochTransactionKind.RANDOMNESS_STATE_CREATE
            ),
            EndOfEpochTransactionKind(EndOfEpochTransactionKind.DENY_LIST_STATE_CREATE),
            EndOfEpochTransactionKind(
                EndOfEpochTransactionKind.BRIDGE_STATE_CREATE,
                CheckpointDigest(bytes(range(32))),
            ),
            EndOfEpochTransactionKind(
                EndOfEpochTransactionKind.BRIDGE_COMMITTEE_INIT, 7
            ),
        ]
        for kind in kinds:
            encoded = self.round_trip(kind)
            self.assertEqual(encoded[0], kind.variant)
            self.assertEqual(EndOfEpochTransactionKind.from_json(kind.to_json()), kind)

    def test_unit_variant_is_one_byte(self):
        kind = EndOfEpochTransactionKind(
            EndOfEpochTransactionKind.DENY_LIST_STATE_CREATE
        )
        self.assertEqual(self.round_trip(kind), b"\x04")
        self.assertEqual(kind.to_json(), {"kind": "deny_list_state_create"})

    def test_bridge_committee_init_json(self):
        kind = EndOfEpochTransactionKind(
            EndOfEpochTransactionKind.BRIDGE_COMMITTEE_INIT, 18446744073709551615
        )
        self.assertEqual(
            kind.to_json(),
            {
                "kind": "bridge_committee_init",
                "bridge_object_version": "18446744073709551615",
            },
        )
        with self.assertRaises(MalformedIntegerError):
            EndOfEpochTransactionKind.from_json(
                {"kind": "bridge_committee_init", "bridge_object_version": "-1"}
            )

    def test_unknown_end_of_epoch_kind(self):
        with self.assertRaises(UnknownVariantError):
            EndOfEpochTransactionKind.deserialize(Deserializer(b"\x07"))
        with self.assertRaises(UnknownVariantError):
            EndOfEpochTransactionKind.from_json({"kind": "ChangeEpoch"})

    def test_system_payloads(self):
        package = MovePackage(object_id(1), 1, {"address": b"\xa1\x1c\xeb\x0b"}, [], {})
        jwk = ActiveJwk(
            JwkId("https://accounts.google.com", "key-1"),
            Jwk("RSA", "AQAB", "modulus", "RS256"),
            3,
        )
        payloads = [
            GenesisTransaction(
                [GenesisObject(ObjectData(package), Owner(Owner.IMMUTABLE))]
            ),
            ConsensusCommitPrologue(0, 2, 1682342020278),
            ConsensusCommitPrologueV2(1, 2, 3, ConsensusCommitDigest(bytes(32))),
            AuthenticatorStateUpdate(3, 4, [jwk], 5),
            RandomnessStateUpdate(3, 4, b"\x09" * 32, 5),
        ]
        for payload in payloads:
            self.round_trip(payload)
            self.assertEqual(type(payload).from_json(payload.to_json()), payload)


if __name__ == "__main__":
    unittest.main()
