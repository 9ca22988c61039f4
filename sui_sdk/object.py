# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Objects as they appear inside transactions: references to existing objects, ownership, and the
raw objects written by the genesis transaction.
"""

from __future__ import annotations

import typing
import unittest
from dataclasses import dataclass
from typing import Dict, List

from .address import Address, ObjectId
from .bcs import Deserializer, Serializer
from .codec import (
    bool_from_json,
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
from .digest import ObjectDigest
from .errors import MalformedValueError, NonCanonicalError, UnknownVariantError
from .type_tag import StructTag, TypeTag, deserialize_identifier, validate_identifier


@dataclass(init=True, frozen=True)
class ObjectReference:
    object_id: ObjectId
    version: int
    digest: ObjectDigest

    @staticmethod
    def deserialize(deserializer: Deserializer) -> ObjectReference:
        return ObjectReference(
            ObjectId.deserialize(deserializer),
            deserializer.u64(),
            ObjectDigest.deserialize(deserializer),
        )

    def serialize(self, serializer: Serializer):
        self.object_id.serialize(serializer)
        serializer.u64(self.version)
        self.digest.serialize(serializer)

    @staticmethod
    def from_json(value: typing.Any) -> ObjectReference:
        obj = expect_object(value, "ObjectReference")
        return ObjectReference.from_fields(obj, "ObjectReference")

    @staticmethod
    def from_fields(obj: Dict[str, typing.Any], entity: str) -> ObjectReference:
        return ObjectReference(
            ObjectId.from_json(field(obj, "object_id", entity)),
            u64_from_json(field(obj, "version", entity), "version"),
            ObjectDigest.from_json(field(obj, "digest", entity)),
        )

    def to_json(self) -> typing.Any:
        return {
            "object_id": self.object_id.to_json(),
            "version": u64_to_json(self.version),
            "digest": self.digest.to_json(),
        }


class Owner:
    ADDRESS: int = 0
    OBJECT: int = 1
    SHARED: int = 2
    IMMUTABLE: int = 3

    NAMES: Dict[int, str] = {
        ADDRESS: "address",
        OBJECT: "object",
        SHARED: "shared",
        IMMUTABLE: "immutable",
    }

    variant: int
    # Address for ADDRESS, ObjectId for OBJECT, the initial shared version for SHARED.
    value: typing.Any

    def __init__(self, variant: int, value: typing.Any = None):
        if variant not in Owner.NAMES:
            raise ValueError(f"Invalid Owner variant {variant}")
        self.variant = variant
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Owner):
            return NotImplemented
        return self.variant == other.variant and self.value == other.value

    def __str__(self):
        if self.variant == Owner.IMMUTABLE:
            return "Immutable"
        return f"{Owner.NAMES[self.variant]}({self.value})"

    def __repr__(self):
        return self.__str__()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Owner:
        variant = deserializer.uleb128()
        if variant == Owner.ADDRESS:
            return Owner(variant, Address.deserialize(deserializer))
        elif variant == Owner.OBJECT:
            return Owner(variant, ObjectId.deserialize(deserializer))
        elif variant == Owner.SHARED:
            return Owner(variant, deserializer.u64())
        elif variant == Owner.IMMUTABLE:
            return Owner(variant)
        raise UnknownVariantError("Owner", variant)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        if self.variant == Owner.SHARED:
            serializer.u64(self.value)
        elif self.variant != Owner.IMMUTABLE:
            self.value.serialize(serializer)

    @staticmethod
    def from_json(value: typing.Any) -> Owner:
        names = {name: variant for variant, name in Owner.NAMES.items()}
        obj, variant = tagged(value, "kind", names, "Owner")
        if variant == Owner.ADDRESS:
            return Owner(variant, Address.from_json(field(obj, "address", "Owner")))
        elif variant == Owner.OBJECT:
            return Owner(variant, ObjectId.from_json(field(obj, "object", "Owner")))
        elif variant == Owner.SHARED:
            version = field(obj, "initial_shared_version", "Owner")
            return Owner(variant, u64_from_json(version, "initial_shared_version"))
        return Owner(variant)

    def to_json(self) -> typing.Any:
        value: Dict[str, typing.Any] = {"kind": Owner.NAMES[self.variant]}
        if self.variant == Owner.ADDRESS:
            value["address"] = self.value.to_json()
        elif self.variant == Owner.OBJECT:
            value["object"] = self.value.to_json()
        elif self.variant == Owner.SHARED:
            value["initial_shared_version"] = u64_to_json(self.value)
        return value


@dataclass(init=True, frozen=True)
class TypeOrigin:
    module_name: str
    struct_name: str
    package: ObjectId

    @staticmethod
    def deserialize(deserializer: Deserializer) -> TypeOrigin:
        return TypeOrigin(
            deserialize_identifier(deserializer),
            deserialize_identifier(deserializer),
            ObjectId.deserialize(deserializer),
        )

    def serialize(self, serializer: Serializer):
        serializer.str(self.module_name)
        serializer.str(self.struct_name)
        self.package.serialize(serializer)

    @staticmethod
    def from_json(value: typing.Any) -> TypeOrigin:
        obj = expect_object(value, "TypeOrigin")
        return TypeOrigin(
            validate_identifier(
                str_from_json(field(obj, "module_name", "TypeOrigin"), "module_name")
            ),
            validate_identifier(
                str_from_json(field(obj, "struct_name", "TypeOrigin"), "struct_name")
            ),
            ObjectId.from_json(field(obj, "package", "TypeOrigin")),
        )

    def to_json(self) -> typing.Any:
        return {
            "module_name": self.module_name,
            "struct_name": self.struct_name,
            "package": self.package.to_json(),
        }


@dataclass(init=True, frozen=True)
class UpgradeInfo:
    upgraded_id: ObjectId
    upgraded_version: int

    @staticmethod
    def deserialize(deserializer: Deserializer) -> UpgradeInfo:
        return UpgradeInfo(ObjectId.deserialize(deserializer), deserializer.u64())

    def serialize(self, serializer: Serializer):
        self.upgraded_id.serialize(serializer)
        serializer.u64(self.upgraded_version)

    @staticmethod
    def from_json(value: typing.Any) -> UpgradeInfo:
        obj = expect_object(value, "UpgradeInfo")
        return UpgradeInfo(
            ObjectId.from_json(field(obj, "upgraded_id", "UpgradeInfo")),
            u64_from_json(
                field(obj, "upgraded_version", "UpgradeInfo"), "upgraded_version"
            ),
        )

    def to_json(self) -> typing.Any:
        return {
            "upgraded_id": self.upgraded_id.to_json(),
            "upgraded_version": u64_to_json(self.upgraded_version),
        }


@dataclass(init=True, frozen=True)
class MovePackage:
    id: ObjectId
    version: int
    modules: Dict[str, bytes]
    type_origin_table: List[TypeOrigin]
    linkage_table: Dict[ObjectId, UpgradeInfo]

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MovePackage:
        return MovePackage(
            ObjectId.deserialize(deserializer),
            deserializer.u64(),
            deserializer.map(deserialize_identifier, Deserializer.bytes),
            deserializer.sequence(TypeOrigin.deserialize),
            deserializer.map(ObjectId.deserialize, UpgradeInfo.deserialize),
        )

    def serialize(self, serializer: Serializer):
        self.id.serialize(serializer)
        serializer.u64(self.version)
        serializer.map(self.modules, Serializer.str, Serializer.bytes)
        serializer.sequence(self.type_origin_table, Serializer.struct)
        serializer.map(self.linkage_table, Serializer.struct, Serializer.struct)

    @staticmethod
    def from_json(value: typing.Any) -> MovePackage:
        obj = expect_object(value, "MovePackage")
        modules = expect_object(field(obj, "modules", "MovePackage"), "modules")
        linkage_table = expect_object(
            field(obj, "linkage_table", "MovePackage"), "linkage_table"
        )
        return MovePackage(
            ObjectId.from_json(field(obj, "id", "MovePackage")),
            u64_from_json(field(obj, "version", "MovePackage"), "version"),
            {
                validate_identifier(name): bytes_from_json(module, name)
                for name, module in modules.items()
            },
            list_from_json(
                field(obj, "type_origin_table", "MovePackage"),
                "type_origin_table",
                TypeOrigin.from_json,
            ),
            {
                ObjectId.from_json(key): UpgradeInfo.from_json(info)
                for key, info in linkage_table.items()
            },
        )

    def to_json(self) -> typing.Any:
        return {
            "id": self.id.to_json(),
            "version": u64_to_json(self.version),
            "modules": {
                name: bytes_to_json(module) for name, module in self.modules.items()
            },
            "type_origin_table": [
                origin.to_json() for origin in self.type_origin_table
            ],
            "linkage_table": {
                key.to_json(): info.to_json()
                for key, info in self.linkage_table.items()
            },
        }


GAS_COIN = StructTag.from_str("0x2::coin::Coin<0x2::sui::SUI>")
STAKED_SUI = StructTag.from_str("0x3::staking_pool::StakedSui")
COIN_ADDRESS = Address.from_str("0x2")


def is_coin(struct_tag: StructTag) -> bool:
    return (
        struct_tag.address == COIN_ADDRESS
        and struct_tag.module == "coin"
        and struct_tag.name == "Coin"
        and len(struct_tag.type_params) == 1
    )


class MoveObjectType:
    """
    The binary form of a Move struct's type, which gives the most common types a compact
    encoding. Only the most specific variant is canonical.
    """

    OTHER: int = 0
    GAS_COIN: int = 1
    STAKED_SUI: int = 2
    COIN: int = 3

    @staticmethod
    def deserialize(deserializer: Deserializer) -> StructTag:
        variant = deserializer.uleb128()
        if variant == MoveObjectType.OTHER:
            struct_tag = StructTag.deserialize(deserializer)
            if struct_tag == STAKED_SUI or is_coin(struct_tag):
                raise NonCanonicalError(f"{struct_tag} has a more specific encoding")
            return struct_tag
        elif variant == MoveObjectType.GAS_COIN:
            return GAS_COIN
        elif variant == MoveObjectType.STAKED_SUI:
            return STAKED_SUI
        elif variant == MoveObjectType.COIN:
            coin_type = TypeTag.deserialize(deserializer)
            struct_tag = StructTag(COIN_ADDRESS, "coin", "Coin", [coin_type])
            if struct_tag == GAS_COIN:
                raise NonCanonicalError(f"{struct_tag} has a more specific encoding")
            return struct_tag
        raise UnknownVariantError("MoveObjectType", variant)

    @staticmethod
    def serialize(serializer: Serializer, struct_tag: StructTag):
        if struct_tag == GAS_COIN:
            serializer.uleb128(MoveObjectType.GAS_COIN)
        elif struct_tag == STAKED_SUI:
            serializer.uleb128(MoveObjectType.STAKED_SUI)
        elif is_coin(struct_tag):
            serializer.uleb128(MoveObjectType.COIN)
            serializer.struct(struct_tag.type_params[0])
        else:
            serializer.uleb128(MoveObjectType.OTHER)
            serializer.struct(struct_tag)


@dataclass(init=True, frozen=True)
class MoveStruct:
    type: StructTag
    has_public_transfer: bool
    version: int
    contents: bytes

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MoveStruct:
        return MoveStruct(
            MoveObjectType.deserialize(deserializer),
            deserializer.bool(),
            deserializer.u64(),
            deserializer.bytes(),
        )

    def serialize(self, serializer: Serializer):
        MoveObjectType.serialize(serializer, self.type)
        serializer.bool(self.has_public_transfer)
        serializer.u64(self.version)
        serializer.bytes(self.contents)

    @staticmethod
    def from_json(value: typing.Any) -> MoveStruct:
        obj = expect_object(value, "MoveStruct")
        return MoveStruct(
            StructTag.from_str(str_from_json(field(obj, "type", "MoveStruct"), "type")),
            bool_from_json(
                field(obj, "has_public_transfer", "MoveStruct"), "has_public_transfer"
            ),
            u64_from_json(field(obj, "version", "MoveStruct"), "version"),
            bytes_from_json(field(obj, "contents", "MoveStruct"), "contents"),
        )

    def to_json(self) -> typing.Any:
        return {
            "type": str(self.type),
            "has_public_transfer": self.has_public_transfer,
            "version": u64_to_json(self.version),
            "contents": bytes_to_json(self.contents),
        }


class ObjectData:
    STRUCT: int = 0
    PACKAGE: int = 1

    NAMES: Dict[int, str] = {STRUCT: "struct", PACKAGE: "package"}

    variant: int
    value: typing.Any

    def __init__(self, value: typing.Any):
        if isinstance(value, MoveStruct):
            self.variant = ObjectData.STRUCT
        elif isinstance(value, MovePackage):
            self.variant = ObjectData.PACKAGE
        else:
            raise ValueError("Invalid type")
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ObjectData):
            return NotImplemented
        return self.variant == other.variant and self.value == other.value

    def __str__(self) -> str:
        return self.value.__str__()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> ObjectData:
        variant = deserializer.uleb128()
        if variant == ObjectData.STRUCT:
            return ObjectData(MoveStruct.deserialize(deserializer))
        elif variant == ObjectData.PACKAGE:
            return ObjectData(MovePackage.deserialize(deserializer))
        raise UnknownVariantError("ObjectData", variant)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        self.value.serialize(serializer)

    @staticmethod
    def from_json(value: typing.Any) -> ObjectData:
        names = {name: variant for variant, name in ObjectData.NAMES.items()}
        obj, variant = tagged(value, "kind", names, "ObjectData")
        if variant == ObjectData.STRUCT:
            return ObjectData(MoveStruct.from_json(obj))
        return ObjectData(MovePackage.from_json(obj))

    def to_json(self) -> typing.Any:
        value = {"kind": ObjectData.NAMES[self.variant]}
        value.update(self.value.to_json())
        return value


# Genesis objects are a binary sum type with a single variant.
GENESIS_RAW_OBJECT = 0


@dataclass(init=True, frozen=True)
class GenesisObject:
    data: ObjectData
    owner: Owner

    @staticmethod
    def deserialize(deserializer: Deserializer) -> GenesisObject:
        variant = deserializer.uleb128()
        if variant != GENESIS_RAW_OBJECT:
            raise UnknownVariantError("GenesisObject", variant)
        return GenesisObject(
            ObjectData.deserialize(deserializer), Owner.deserialize(deserializer)
        )

    def serialize(self, serializer: Serializer):
        serializer.uleb128(GENESIS_RAW_OBJECT)
        self.data.serialize(serializer)
        self.owner.serialize(serializer)

    @staticmethod
    def from_json(value: typing.Any) -> GenesisObject:
        obj = expect_object(value, "GenesisObject")
        return GenesisObject(
            ObjectData.from_json(field(obj, "data", "GenesisObject")),
            Owner.from_json(field(obj, "owner", "GenesisObject")),
        )

    def to_json(self) -> typing.Any:
        return {"data": self.data.to_json(), "owner": self.owner.to_json()}


def object_id(suffix: int) -> ObjectId:
    return ObjectId(bytes(31) + bytes([suffix]))


def round_trip_binary(test: unittest.TestCase, value: typing.Any) -> bytes:
    ser = Serializer()
    value.serialize(ser)
    der = Deserializer(ser.output())
    test.assertEqual(type(value).deserialize(der), value)
    der.ensure_finished()
    return ser.output()


class Test(unittest.TestCase):
    def test_object_reference_json(self):
        reference = ObjectReference(object_id(0), 1, ObjectDigest(bytes(32)))
        self.assertEqual(
            reference.to_json(),
            {
                "object_id": "0x" + "0" * 64,
                "version": "1",
                "digest": "11111111111111111111111111111111",
            },
        )
        self.assertEqual(ObjectReference.from_json(reference.to_json()), reference)

    def test_owner(self):
        for owner in [
            Owner(Owner.ADDRESS, Address(bytes([7] * 32))),
            Owner(Owner.OBJECT, object_id(9)),
            Owner(Owner.SHARED, 42),
            Owner(Owner.IMMUTABLE),
        ]:
            round_trip_binary(self, owner)
            self.assertEqual(Owner.from_json(owner.to_json()), owner)
        self.assertEqual(
            Owner(Owner.SHARED, 42).to_json(),
            {"kind": "shared", "initial_shared_version": "42"},
        )
        with self.assertRaises(UnknownVariantError):
            Owner.deserialize(Deserializer(b"\x04"))

    def test_move_object_type_compression(self):
        gas = MoveStruct(GAS_COIN, True, 1, b"\x01")
        self.assertEqual(round_trip_binary(self, gas)[0], MoveObjectType.GAS_COIN)

        staked = MoveStruct(STAKED_SUI, True, 1, b"")
        self.assertEqual(round_trip_binary(self, staked)[0], MoveObjectType.STAKED_SUI)

        usdc = StructTag.from_str("0x2::coin::Coin<0x7::usdc::USDC>")
        coin = MoveStruct(usdc, True, 3, b"")
        self.assertEqual(round_trip_binary(self, coin)[0], MoveObjectType.COIN)

        other = MoveStruct(StructTag.from_str("0x2::clock::Clock"), False, 3, b"")
        self.assertEqual(round_trip_binary(self, other)[0], MoveObjectType.OTHER)

    def test_move_object_type_rejects_generic_form(self):
        ser = Serializer()
        ser.uleb128(MoveObjectType.OTHER)
        GAS_COIN.serialize(ser)
        with self.assertRaises(NonCanonicalError):
            MoveObjectType.deserialize(Deserializer(ser.output()))

    def test_genesis_object(self):
        package = MovePackage(
            object_id(2),
            1,
            {"coin": b"\x01\x02", "balance": b"\x03"},
            [TypeOrigin("coin", "Coin", object_id(2))],
            {object_id(1): UpgradeInfo(object_id(1), 1)},
        )
        for data in [
            ObjectData(package),
            ObjectData(MoveStruct(GAS_COIN, True, 1, bytes(40))),
        ]:
            genesis = GenesisObject(data, Owner(Owner.IMMUTABLE))
            round_trip_binary(self, genesis)
            self.assertEqual(GenesisObject.from_json(genesis.to_json()), genesis)

    def test_move_package_modules_sorted(self):
        package = MovePackage(object_id(2), 1, {"z": b"", "a": b""}, [], {})
        encoded = round_trip_binary(self, package)
        self.assertEqual(encoded[40:45], b"\x02\x01a\x00\x01")

    def test_object_data_unknown_kind(self):
        with self.assertRaises(UnknownVariantError):
            ObjectData.from_json({"kind": "module"})
        with self.assertRaises(MalformedValueError):
            ObjectData.from_json(["struct"])


if __name__ == "__main__":
    unittest.main()
