# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Programmable transactions: a list of declared inputs and a list of commands whose arguments
refer back to those inputs, to the gas coin, or to earlier command results.
"""

from __future__ import annotations

import unittest
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .address import ObjectId
from .bcs import Deserializer, Serializer
from .codec import (
    bool_from_json,
    bytes_from_json,
    bytes_to_json,
    field,
    list_from_json,
    str_from_json,
    tagged,
    u16_from_json,
    u64_from_json,
    u64_to_json,
)
from .digest import ObjectDigest
from .errors import (
    MalformedIntegerError,
    MalformedValueError,
    UnknownVariantError,
)
from .object import ObjectReference, object_id
from .type_tag import TypeTag, deserialize_identifier, validate_identifier


class Argument:
    """A reference to the gas coin, an input, or the result of an earlier command."""

    GAS_COIN: int = 0
    INPUT: int = 1
    RESULT: int = 2
    NESTED_RESULT: int = 3

    NAMES: Dict[int, str] = {
        GAS_COIN: "gas_coin",
        INPUT: "input",
        RESULT: "result",
        NESTED_RESULT: "nested_result",
    }

    variant: int
    # None for GAS_COIN, an index for INPUT or RESULT, a pair for NESTED_RESULT.
    value: Any

    def __init__(self, variant: int, value: Any = None):
        if variant not in Argument.NAMES:
            raise ValueError(f"Invalid Argument variant {variant}")
        self.variant = variant
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Argument):
            return NotImplemented
        return self.variant == other.variant and self.value == other.value

    def __str__(self):
        if self.variant == Argument.GAS_COIN:
            return "GasCoin"
        elif self.variant == Argument.INPUT:
            return f"Input({self.value})"
        elif self.variant == Argument.RESULT:
            return f"Result({self.value})"
        return f"NestedResult({self.value[0]}, {self.value[1]})"

    def __repr__(self):
        return self.__str__()

    @staticmethod
    def gas_coin() -> Argument:
        return Argument(Argument.GAS_COIN)

    @staticmethod
    def input(index: int) -> Argument:
        return Argument(Argument.INPUT, index)

    @staticmethod
    def result(index: int) -> Argument:
        return Argument(Argument.RESULT, index)

    @staticmethod
    def nested_result(index: int, subindex: int) -> Argument:
        return Argument(Argument.NESTED_RESULT, (index, subindex))

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Argument:
        variant = deserializer.uleb128()
        if variant == Argument.GAS_COIN:
            return Argument.gas_coin()
        elif variant == Argument.INPUT:
            return Argument.input(deserializer.u16())
        elif variant == Argument.RESULT:
            return Argument.result(deserializer.u16())
        elif variant == Argument.NESTED_RESULT:
            return Argument.nested_result(deserializer.u16(), deserializer.u16())
        raise UnknownVariantError("Argument", variant)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        if self.variant in (Argument.INPUT, Argument.RESULT):
            serializer.u16(self.value)
        elif self.variant == Argument.NESTED_RESULT:
            serializer.u16(self.value[0])
            serializer.u16(self.value[1])

    @staticmethod
    def from_json(value: Any) -> Argument:
        names = {name: variant for variant, name in Argument.NAMES.items()}
        obj, variant = tagged(value, "type", names, "Argument")
        if variant == Argument.GAS_COIN:
            return Argument.gas_coin()
        elif variant == Argument.INPUT:
            return Argument.input(
                u16_from_json(field(obj, "input", "Argument"), "input")
            )
        elif variant == Argument.RESULT:
            return Argument.result(
                u16_from_json(field(obj, "result", "Argument"), "result")
            )
        return Argument.nested_result(
            u16_from_json(field(obj, "result", "Argument"), "result"),
            u16_from_json(field(obj, "subresult", "Argument"), "subresult"),
        )

    def to_json(self) -> Any:
        value: Dict[str, Any] = {"type": Argument.NAMES[self.variant]}
        if self.variant == Argument.INPUT:
            value["input"] = self.value
        elif self.variant == Argument.RESULT:
            value["result"] = self.value
        elif self.variant == Argument.NESTED_RESULT:
            value["result"] = self.value[0]
            value["subresult"] = self.value[1]
        return value


@dataclass(init=True, frozen=True)
class SharedObject:
    object_id: ObjectId
    initial_shared_version: int
    mutable: bool


# The binary form of an input is a two level sum type:
#   CallArg   = Pure(bytes) | Object(ObjectArg)
#   ObjectArg = ImmutableOrOwned(ObjectReference) | Shared(SharedObject)
#             | Receiving(ObjectReference)
CALL_ARG_PURE: int = 0
CALL_ARG_OBJECT: int = 1
OBJECT_ARG_IMMUTABLE_OR_OWNED: int = 0
OBJECT_ARG_SHARED: int = 1
OBJECT_ARG_RECEIVING: int = 2


class InputArgument:
    """A declared input of a programmable transaction."""

    PURE: int = 0
    IMMUTABLE_OR_OWNED: int = 1
    SHARED: int = 2
    RECEIVING: int = 3

    NAMES: Dict[int, str] = {
        PURE: "pure",
        IMMUTABLE_OR_OWNED: "immutable_or_owned",
        SHARED: "shared",
        RECEIVING: "receiving",
    }

    # Each input variant and the (CallArg, ObjectArg) variants it is written as.
    WIRE: Dict[int, Tuple[int, Optional[int]]] = {
        PURE: (CALL_ARG_PURE, None),
        IMMUTABLE_OR_OWNED: (CALL_ARG_OBJECT, OBJECT_ARG_IMMUTABLE_OR_OWNED),
        SHARED: (CALL_ARG_OBJECT, OBJECT_ARG_SHARED),
        RECEIVING: (CALL_ARG_OBJECT, OBJECT_ARG_RECEIVING),
    }
    FROM_WIRE: Dict[Tuple[int, Optional[int]], int] = {
        wire: variant for variant, wire in WIRE.items()
    }

    variant: int
    # bytes for PURE, SharedObject for SHARED, otherwise an ObjectReference.
    value: Any

    def __init__(self, variant: int, value: Any):
        if variant not in InputArgument.NAMES:
            raise ValueError(f"Invalid InputArgument variant {variant}")
        self.variant = variant
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InputArgument):
            return NotImplemented
        return self.variant == other.variant and self.value == other.value

    def __str__(self):
        return f"{InputArgument.NAMES[self.variant]}({self.value})"

    def __repr__(self):
        return self.__str__()

    @staticmethod
    def pure(value: bytes) -> InputArgument:
        return InputArgument(InputArgument.PURE, value)

    @staticmethod
    def immutable_or_owned(reference: ObjectReference) -> InputArgument:
        return InputArgument(InputArgument.IMMUTABLE_OR_OWNED, reference)

    @staticmethod
    def shared(
        object_id: ObjectId, initial_shared_version: int, mutable: bool
    ) -> InputArgument:
        return InputArgument(
            InputArgument.SHARED,
            SharedObject(object_id, initial_shared_version, mutable),
        )

    @staticmethod
    def receiving(reference: ObjectReference) -> InputArgument:
        return InputArgument(InputArgument.RECEIVING, reference)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> InputArgument:
        call_arg = deserializer.uleb128()
        if call_arg == CALL_ARG_PURE:
            object_arg = None
        elif call_arg == CALL_ARG_OBJECT:
            object_arg = deserializer.uleb128()
        else:
            raise UnknownVariantError("CallArg", call_arg)

        variant = InputArgument.FROM_WIRE.get((call_arg, object_arg))
        if variant is None:
            raise UnknownVariantError("ObjectArg", object_arg)

        if variant == InputArgument.PURE:
            return InputArgument.pure(deserializer.bytes())
        elif variant == InputArgument.SHARED:
            return InputArgument.shared(
                ObjectId.deserialize(deserializer),
                deserializer.u64(),
                deserializer.bool(),
            )
        return InputArgument(variant, ObjectReference.deserialize(deserializer))

    def serialize(self, serializer: Serializer):
        call_arg, object_arg = InputArgument.WIRE[self.variant]
        serializer.uleb128(call_arg)
        if object_arg is not None:
            serializer.uleb128(object_arg)

        if self.variant == InputArgument.PURE:
            serializer.bytes(self.value)
        elif self.variant == InputArgument.SHARED:
            self.value.object_id.serialize(serializer)
            serializer.u64(self.value.initial_shared_version)
            serializer.bool(self.value.mutable)
        else:
            self.value.serialize(serializer)

    @staticmethod
    def from_json(value: Any) -> InputArgument:
        names = {name: variant for variant, name in InputArgument.NAMES.items()}
        obj, variant = tagged(value, "type", names, "InputArgument")
        if variant == InputArgument.PURE:
            return InputArgument.pure(
                bytes_from_json(field(obj, "value", "InputArgument"), "value")
            )
        elif variant == InputArgument.SHARED:
            return InputArgument.shared(
                ObjectId.from_json(field(obj, "object_id", "InputArgument")),
                u64_from_json(
                    field(obj, "initial_shared_version", "InputArgument"),
                    "initial_shared_version",
                ),
                bool_from_json(field(obj, "mutable", "InputArgument"), "mutable"),
            )
        return InputArgument(
            variant, ObjectReference.from_fields(obj, "InputArgument")
        )

    def to_json(self) -> Any:
        value: Dict[str, Any] = {"type": InputArgument.NAMES[self.variant]}
        if self.variant == InputArgument.PURE:
            value["value"] = bytes_to_json(self.value)
        elif self.variant == InputArgument.SHARED:
            value["object_id"] = self.value.object_id.to_json()
            value["initial_shared_version"] = u64_to_json(
                self.value.initial_shared_version
            )
            value["mutable"] = self.value.mutable
        else:
            value.update(self.value.to_json())
        return value


def arguments_from_json(obj: Dict[str, Any], name: str, entity: str) -> List[Argument]:
    return list_from_json(field(obj, name, entity), name, Argument.from_json)


def arguments_to_json(arguments: List[Argument]) -> List[Any]:
    return [argument.to_json() for argument in arguments]


@dataclass(init=True, frozen=True)
class MoveCall:
    package: ObjectId
    module: str
    function: str
    type_arguments: List[TypeTag]
    arguments: List[Argument]

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MoveCall:
        return MoveCall(
            ObjectId.deserialize(deserializer),
            deserialize_identifier(deserializer),
            deserialize_identifier(deserializer),
            deserializer.sequence(TypeTag.deserialize),
            deserializer.sequence(Argument.deserialize),
        )

    def serialize(self, serializer: Serializer):
        self.package.serialize(serializer)
        serializer.str(self.module)
        serializer.str(self.function)
        serializer.sequence(self.type_arguments, Serializer.struct)
        serializer.sequence(self.arguments, Serializer.struct)

    @staticmethod
    def from_json(obj: Dict[str, Any]) -> MoveCall:
        return MoveCall(
            ObjectId.from_json(field(obj, "package", "MoveCall")),
            validate_identifier(
                str_from_json(field(obj, "module", "MoveCall"), "module"), "module"
            ),
            validate_identifier(
                str_from_json(field(obj, "function", "MoveCall"), "function"),
                "function",
            ),
            list_from_json(
                field(obj, "type_arguments", "MoveCall"),
                "type_arguments",
                TypeTag.from_json,
            ),
            arguments_from_json(obj, "arguments", "MoveCall"),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "package": self.package.to_json(),
            "module": self.module,
            "function": self.function,
            "type_arguments": [tag.to_json() for tag in self.type_arguments],
            "arguments": arguments_to_json(self.arguments),
        }


@dataclass(init=True, frozen=True)
class TransferObjects:
    objects: List[Argument]
    address: Argument

    @staticmethod
    def deserialize(deserializer: Deserializer) -> TransferObjects:
        return TransferObjects(
            deserializer.sequence(Argument.deserialize),
            Argument.deserialize(deserializer),
        )

    def serialize(self, serializer: Serializer):
        serializer.sequence(self.objects, Serializer.struct)
        self.address.serialize(serializer)

    @staticmethod
    def from_json(obj: Dict[str, Any]) -> TransferObjects:
        return TransferObjects(
            arguments_from_json(obj, "objects", "TransferObjects"),
            Argument.from_json(field(obj, "address", "TransferObjects")),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "objects": arguments_to_json(self.objects),
            "address": self.address.to_json(),
        }


@dataclass(init=True, frozen=True)
class SplitCoins:
    coin: Argument
    amounts: List[Argument]

    @staticmethod
    def deserialize(deserializer: Deserializer) -> SplitCoins:
        return SplitCoins(
            Argument.deserialize(deserializer),
            deserializer.sequence(Argument.deserialize),
        )

    def serialize(self, serializer: Serializer):
        self.coin.serialize(serializer)
        serializer.sequence(self.amounts, Serializer.struct)

    @staticmethod
    def from_json(obj: Dict[str, Any]) -> SplitCoins:
        return SplitCoins(
            Argument.from_json(field(obj, "coin", "SplitCoins")),
            arguments_from_json(obj, "amounts", "SplitCoins"),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "coin": self.coin.to_json(),
            "amounts": arguments_to_json(self.amounts),
        }


@dataclass(init=True, frozen=True)
class MergeCoins:
    coin: Argument
    coins_to_merge: List[Argument]

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MergeCoins:
        return MergeCoins(
            Argument.deserialize(deserializer),
            deserializer.sequence(Argument.deserialize),
        )

    def serialize(self, serializer: Serializer):
        self.coin.serialize(serializer)
        serializer.sequence(self.coins_to_merge, Serializer.struct)

    @staticmethod
    def from_json(obj: Dict[str, Any]) -> MergeCoins:
        return MergeCoins(
            Argument.from_json(field(obj, "coin", "MergeCoins")),
            arguments_from_json(obj, "coins_to_merge", "MergeCoins"),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "coin": self.coin.to_json(),
            "coins_to_merge": arguments_to_json(self.coins_to_merge),
        }


def modules_from_json(obj: Dict[str, Any], entity: str) -> List[bytes]:
    return list_from_json(
        field(obj, "modules", entity),
        "modules",
        lambda module: bytes_from_json(module, "modules"),
    )


def dependencies_from_json(obj: Dict[str, Any], entity: str) -> List[ObjectId]:
    return list_from_json(
        field(obj, "dependencies", entity), "dependencies", ObjectId.from_json
    )


@dataclass(init=True, frozen=True)
class Publish:
    modules: List[bytes]
    dependencies: List[ObjectId]

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Publish:
        return Publish(
            deserializer.sequence(Deserializer.bytes),
            deserializer.sequence(ObjectId.deserialize),
        )

    def serialize(self, serializer: Serializer):
        serializer.sequence(self.modules, Serializer.bytes)
        serializer.sequence(self.dependencies, Serializer.struct)

    @staticmethod
    def from_json(obj: Dict[str, Any]) -> Publish:
        return Publish(
            modules_from_json(obj, "Publish"), dependencies_from_json(obj, "Publish")
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "modules": [bytes_to_json(module) for module in self.modules],
            "dependencies": [dependency.to_json() for dependency in self.dependencies],
        }


@dataclass(init=True, frozen=True)
class MakeMoveVector:
    type: Optional[TypeTag]
    elements: List[Argument]

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MakeMoveVector:
        return MakeMoveVector(
            deserializer.option(TypeTag.deserialize),
            deserializer.sequence(Argument.deserialize),
        )

    def serialize(self, serializer: Serializer):
        serializer.option(self.type, Serializer.struct)
        serializer.sequence(self.elements, Serializer.struct)

    @staticmethod
    def from_json(obj: Dict[str, Any]) -> MakeMoveVector:
        type_tag = field(obj, "type", "MakeMoveVector")
        return MakeMoveVector(
            None if type_tag is None else TypeTag.from_json(type_tag),
            arguments_from_json(obj, "elements", "MakeMoveVector"),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "type": None if self.type is None else self.type.to_json(),
            "elements": arguments_to_json(self.elements),
        }


@dataclass(init=True, frozen=True)
class Upgrade:
    modules: List[bytes]
    dependencies: List[ObjectId]
    package: ObjectId
    ticket: Argument

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Upgrade:
        return Upgrade(
            deserializer.sequence(Deserializer.bytes),
            deserializer.sequence(ObjectId.deserialize),
            ObjectId.deserialize(deserializer),
            Argument.deserialize(deserializer),
        )

    def serialize(self, serializer: Serializer):
        serializer.sequence(self.modules, Serializer.bytes)
        serializer.sequence(self.dependencies, Serializer.struct)
        self.package.serialize(serializer)
        self.ticket.serialize(serializer)

    @staticmethod
    def from_json(obj: Dict[str, Any]) -> Upgrade:
        return Upgrade(
            modules_from_json(obj, "Upgrade"),
            dependencies_from_json(obj, "Upgrade"),
            ObjectId.from_json(field(obj, "package", "Upgrade")),
            Argument.from_json(field(obj, "ticket", "Upgrade")),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "modules": [bytes_to_json(module) for module in self.modules],
            "dependencies": [dependency.to_json() for dependency in self.dependencies],
            "package": self.package.to_json(),
            "ticket": self.ticket.to_json(),
        }


class Command:
    MOVE_CALL: int = 0
    TRANSFER_OBJECTS: int = 1
    SPLIT_COINS: int = 2
    MERGE_COINS: int = 3
    PUBLISH: int = 4
    MAKE_MOVE_VECTOR: int = 5
    UPGRADE: int = 6

    # Variant index, payload type and textual name, in declaration order.
    VARIANTS: List[Tuple[int, Any, str]] = [
        (MOVE_CALL, MoveCall, "move_call"),
        (TRANSFER_OBJECTS, TransferObjects, "transfer_objects"),
        (SPLIT_COINS, SplitCoins, "split_coins"),
        (MERGE_COINS, MergeCoins, "merge_coins"),
        (PUBLISH, Publish, "publish"),
        (MAKE_MOVE_VECTOR, MakeMoveVector, "make_move_vector"),
        (UPGRADE, Upgrade, "upgrade"),
    ]

    variant: int
    value: Any

    def __init__(self, command: Any):
        for variant, payload_type, _ in Command.VARIANTS:
            if isinstance(command, payload_type):
                self.variant = variant
                break
        else:
            raise ValueError("Invalid type")
        self.value = command

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Command):
            return NotImplemented
        return self.variant == other.variant and self.value == other.value

    def __str__(self) -> str:
        return self.value.__str__()

    def __repr__(self):
        return self.__str__()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Command:
        variant = deserializer.uleb128()
        if variant >= len(Command.VARIANTS):
            raise UnknownVariantError("Command", variant)
        payload_type = Command.VARIANTS[variant][1]
        return Command(payload_type.deserialize(deserializer))

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        self.value.serialize(serializer)

    @staticmethod
    def from_json(value: Any) -> Command:
        names = {name: variant for variant, _, name in Command.VARIANTS}
        obj, variant = tagged(value, "command", names, "Command")
        return Command(Command.VARIANTS[variant][1].from_json(obj))

    def to_json(self) -> Any:
        value = {"command": Command.VARIANTS[self.variant][2]}
        value.update(self.value.to_json())
        return value


@dataclass(init=True, frozen=True)
class ProgrammableTransaction:
    inputs: List[InputArgument]
    commands: List[Command]

    @staticmethod
    def deserialize(deserializer: Deserializer) -> ProgrammableTransaction:
        return ProgrammableTransaction(
            deserializer.sequence(InputArgument.deserialize),
            deserializer.sequence(Command.deserialize),
        )

    def serialize(self, serializer: Serializer):
        serializer.sequence(self.inputs, Serializer.struct)
        serializer.sequence(self.commands, Serializer.struct)

    @staticmethod
    def from_json(obj: Dict[str, Any]) -> ProgrammableTransaction:
        return ProgrammableTransaction(
            list_from_json(
                field(obj, "inputs", "ProgrammableTransaction"),
                "inputs",
                InputArgument.from_json,
            ),
            list_from_json(
                field(obj, "commands", "ProgrammableTransaction"),
                "commands",
                Command.from_json,
            ),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "inputs": [argument.to_json() for argument in self.inputs],
            "commands": [command.to_json() for command in self.commands],
        }


ZERO_REFERENCE = ObjectReference(object_id(0), 1, ObjectDigest(bytes(32)))


class Test(unittest.TestCase):
    def binary(self, value: Any) -> bytes:
        ser = Serializer()
        value.serialize(ser)
        return ser.output()

    def test_argument_json(self):
        cases = [
            (Argument.gas_coin(), {"type": "gas_coin"}),
            (Argument.input(1), {"type": "input", "input": 1}),
            (Argument.result(2), {"type": "result", "result": 2}),
            (
                Argument.nested_result(3, 4),
                {"type": "nested_result", "result": 3, "subresult": 4},
            ),
        ]
        for argument, expected in cases:
            self.assertEqual(argument.to_json(), expected)
            self.assertEqual(Argument.from_json(expected), argument)

    def test_argument_binary(self):
        cases = [
            (Argument.gas_coin(), "00"),
            (Argument.input(1), "010100"),
            (Argument.result(258), "020201"),
            (Argument.nested_result(3, 4), "0303000400"),
        ]
        for argument, encoded in cases:
            self.assertEqual(self.binary(argument).hex(), encoded)
            self.assertEqual(
                Argument.deserialize(Deserializer(bytes.fromhex(encoded))), argument
            )

    def test_argument_invalid(self):
        with self.assertRaises(UnknownVariantError):
            Argument.deserialize(Deserializer(b"\x04"))
        with self.assertRaises(UnknownVariantError):
            Argument.from_json({"type": "gas"})
        with self.assertRaises(MalformedIntegerError):
            Argument.from_json({"type": "input", "input": 65536})
        with self.assertRaises(MalformedValueError):
            Argument.from_json({"type": "nested_result", "result": 1})

    def test_input_argument_json(self):
        cases = [
            (
                InputArgument.pure(bytes([1, 2, 3, 4])),
                {"type": "pure", "value": "AQIDBA=="},
            ),
            (
                InputArgument.immutable_or_owned(ZERO_REFERENCE),
                {
                    "type": "immutable_or_owned",
                    "object_id": "0x" + "0" * 64,
                    "version": "1",
                    "digest": "11111111111111111111111111111111",
                },
            ),
            (
                InputArgument.shared(object_id(0), 1, True),
                {
                    "type": "shared",
                    "object_id": "0x" + "0" * 64,
                    "initial_shared_version": "1",
                    "mutable": True,
                },
            ),
            (
                InputArgument.receiving(ZERO_REFERENCE),
                {
                    "type": "receiving",
                    "object_id": "0x" + "0" * 64,
                    "version": "1",
                    "digest": "11111111111111111111111111111111",
                },
            ),
        ]
        for argument, expected in cases:
            self.assertEqual(argument.to_json(), expected)
            self.assertEqual(InputArgument.from_json(expected), argument)

    def test_input_argument_pure_binary(self):
        encoded = self.binary(InputArgument.pure(b"\x05\x06"))
        self.assertEqual(encoded, b"\x00\x02\x05\x06")
        self.assertEqual(
            InputArgument.deserialize(Deserializer(encoded)),
            InputArgument.pure(b"\x05\x06"),
        )

    def test_input_argument_immutable_or_owned_binary(self):
        argument = InputArgument.immutable_or_owned(ZERO_REFERENCE)
        encoded = self.binary(argument)
        self.assertEqual(encoded[:2], b"\x01\x00")
        self.assertEqual(encoded[2:], self.binary(ZERO_REFERENCE))
        self.assertEqual(InputArgument.deserialize(Deserializer(encoded)), argument)

    def test_input_argument_shared_binary(self):
        argument = InputArgument.shared(object_id(5), 7, False)
        encoded = self.binary(argument)
        self.assertEqual(encoded[:2], b"\x01\x01")
        self.assertEqual(encoded[2:34], object_id(5).address)
        self.assertEqual(encoded[34:], (7).to_bytes(8, "little") + b"\x00")
        self.assertEqual(InputArgument.deserialize(Deserializer(encoded)), argument)

    def test_input_argument_receiving_binary(self):
        argument = InputArgument.receiving(ZERO_REFERENCE)
        encoded = self.binary(argument)
        self.assertEqual(encoded[:2], b"\x01\x02")
        self.assertEqual(encoded[2:], self.binary(ZERO_REFERENCE))
        self.assertEqual(InputArgument.deserialize(Deserializer(encoded)), argument)

    def test_input_argument_unknown_wire_variants(self):
        with self.assertRaises(UnknownVariantError) as context:
            InputArgument.deserialize(Deserializer(b"\x02"))
        self.assertEqual(context.exception.entity, "CallArg")
        with self.assertRaises(UnknownVariantError) as context:
            InputArgument.deserialize(Deserializer(b"\x01\x03"))
        self.assertEqual(context.exception.entity, "ObjectArg")

    def test_input_argument_malformed_json(self):
        with self.assertRaises(MalformedIntegerError):
            InputArgument.from_json(
                {
                    "type": "shared",
                    "object_id": "0x0",
                    "initial_shared_version": 1,
                    "mutable": True,
                }
            )

    def test_commands(self):
        package = ObjectId.from_str("0x2")
        commands = [
            Command(
                MoveCall(
                    package,
                    "coin",
                    "join",
                    [TypeTag.from_str("0x2::sui::SUI")],
                    [Argument.input(0), Argument.result(1)],
                )
            ),
            Command(TransferObjects([Argument.nested_result(0, 1)], Argument.input(2))),
            Command(SplitCoins(Argument.gas_coin(), [Argument.input(1)])),
            Command(MergeCoins(Argument.gas_coin(), [Argument.input(3)])),
            Command(Publish([b"\x01\x02"], [package])),
            Command(MakeMoveVector(None, [Argument.input(4)])),
            Command(MakeMoveVector(TypeTag(TypeTag.U64), [])),
            Command(Upgrade([b"\x03"], [package], package, Argument.result(0))),
        ]
        for command in commands:
            encoded = self.binary(command)
            self.assertEqual(encoded[0], command.variant)
            der = Deserializer(encoded)
            self.assertEqual(Command.deserialize(der), command)
            der.ensure_finished()
            self.assertEqual(Command.from_json(command.to_json()), command)

    def test_command_json_shape(self):
        command = Command(SplitCoins(Argument.gas_coin(), [Argument.input(1)]))
        self.assertEqual(
            command.to_json(),
            {
                "command": "split_coins",
                "coin": {"type": "gas_coin"},
                "amounts": [{"type": "input", "input": 1}],
            },
        )
        vector = Command(MakeMoveVector(None, []))
        self.assertEqual(
            vector.to_json(),
            {"command": "make_move_vector", "type": None, "elements": []},
        )

    def test_command_unknown(self):
        with self.assertRaises(UnknownVariantError):
            Command.deserialize(Deserializer(b"\x07"))
        with self.assertRaises(UnknownVariantError):
            Command.from_json({"command": "MoveCall"})

    def test_make_move_vector_nesting_is_bounded(self):
        encoded = b"\x05\x01" + b"\x06" * 5000 + b"\x01\x00"
        with self.assertRaises(MalformedValueError):
            Command.deserialize(Deserializer(encoded))


if __name__ == "__main__":
    unittest.main()
