# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import re
import typing
import unittest
from typing import List, Optional

from .address import Address, ParseAddressError
from .bcs import MAX_DEPTH, Deserializer, Serializer
from .errors import MalformedScalarError, MalformedValueError, UnknownVariantError

IDENTIFIER = re.compile(r"[a-zA-Z][a-zA-Z0-9_]*|_[a-zA-Z0-9_]+")
TOKEN = re.compile(r"\s*(::|<|>|,|[a-zA-Z0-9_]+)")


class TypeTagParseError(MalformedScalarError):
    @property
    def kind(self) -> str:
        return "type tag"


def validate_identifier(value: str, field: str = "identifier") -> str:
    if not IDENTIFIER.fullmatch(value):
        raise TypeTagParseError(field, value, "invalid Move identifier")
    return value


def deserialize_identifier(deserializer: Deserializer) -> str:
    return validate_identifier(deserializer.str())


class TypeTag:
    """TypeTag represents a Move type."""

    BOOL: int = 0
    U8: int = 1
    U64: int = 2
    U128: int = 3
    ADDRESS: int = 4
    SIGNER: int = 5
    VECTOR: int = 6
    STRUCT: int = 7
    U16: int = 8
    U32: int = 9
    U256: int = 10

    PRIMITIVES: typing.Dict[int, str] = {
        BOOL: "bool",
        U8: "u8",
        U16: "u16",
        U32: "u32",
        U64: "u64",
        U128: "u128",
        U256: "u256",
        ADDRESS: "address",
        SIGNER: "signer",
    }

    variant: int
    # The element type for vectors, the struct for structs, otherwise None.
    value: typing.Any

    def __init__(self, variant: int, value: typing.Any = None):
        if variant == TypeTag.VECTOR:
            if not isinstance(value, TypeTag):
                raise ValueError("vector expects an element TypeTag")
        elif variant == TypeTag.STRUCT:
            if not isinstance(value, StructTag):
                raise ValueError("struct expects a StructTag")
        elif variant in TypeTag.PRIMITIVES:
            value = None
        else:
            raise ValueError(f"Invalid TypeTag variant {variant}")

        self.variant = variant
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypeTag):
            return NotImplemented
        return self.variant == other.variant and self.value == other.value

    def __str__(self):
        if self.variant == TypeTag.VECTOR:
            return f"vector<{self.value}>"
        elif self.variant == TypeTag.STRUCT:
            return str(self.value)
        return TypeTag.PRIMITIVES[self.variant]

    def __repr__(self):
        return self.__str__()

    @staticmethod
    def vector(element: TypeTag) -> TypeTag:
        return TypeTag(TypeTag.VECTOR, element)

    @staticmethod
    def struct(struct_tag: StructTag) -> TypeTag:
        return TypeTag(TypeTag.STRUCT, struct_tag)

    @staticmethod
    def from_str(type_tag: str, max_depth: int = MAX_DEPTH) -> TypeTag:
        parser = TypeTagParser(type_tag, max_depth)
        tag = parser.type_tag()
        parser.finish()
        return tag

    @staticmethod
    def deserialize(deserializer: Deserializer) -> TypeTag:
        return deserializer.nested(TypeTag._deserialize_variant)

    @staticmethod
    def _deserialize_variant(deserializer: Deserializer) -> TypeTag:
        variant = deserializer.uleb128()
        if variant in TypeTag.PRIMITIVES:
            return TypeTag(variant)
        elif variant == TypeTag.VECTOR:
            return TypeTag(variant, TypeTag.deserialize(deserializer))
        elif variant == TypeTag.STRUCT:
            return TypeTag(variant, StructTag.deserialize(deserializer))
        raise UnknownVariantError("TypeTag", variant)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        if self.value is not None:
            serializer.struct(self.value)

    @staticmethod
    def from_json(value: typing.Any) -> TypeTag:
        if not isinstance(value, str):
            raise TypeTagParseError("TypeTag", value)
        return TypeTag.from_str(value)

    def to_json(self) -> typing.Any:
        return str(self)


class StructTag:
    address: Address
    module: str
    name: str
    type_params: List[TypeTag]

    def __init__(
        self, address: Address, module: str, name: str, type_params: List[TypeTag]
    ):
        self.address = address
        self.module = module
        self.name = name
        self.type_params = type_params

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StructTag):
            return NotImplemented
        return (
            self.address == other.address
            and self.module == other.module
            and self.name == other.name
            and self.type_params == other.type_params
        )

    def __str__(self) -> str:
        value = f"{self.address}::{self.module}::{self.name}"
        if len(self.type_params) > 0:
            value += f"<{self.type_params[0]}"
            for type_param in self.type_params[1:]:
                value += f", {type_param}"
            value += ">"
        return value

    def __repr__(self):
        return self.__str__()

    @staticmethod
    def from_str(struct_tag: str) -> StructTag:
        tag = TypeTag.from_str(struct_tag)
        if tag.variant != TypeTag.STRUCT:
            raise TypeTagParseError("StructTag", struct_tag, "not a struct type")
        return tag.value

    @staticmethod
    def deserialize(deserializer: Deserializer) -> StructTag:
        address = Address.deserialize(deserializer)
        module = deserialize_identifier(deserializer)
        name = deserialize_identifier(deserializer)
        type_params = deserializer.sequence(TypeTag.deserialize)
        return StructTag(address, module, name, type_params)

    def serialize(self, serializer: Serializer):
        self.address.serialize(serializer)
        serializer.str(self.module)
        serializer.str(self.name)
        serializer.sequence(self.type_params, Serializer.struct)


class TypeTagParser:
    """
    Recursive descent parser for strings such as `vector<0x2::coin::Coin<0x2::sui::SUI>>`.
    Addresses may be in short form and whitespace between tokens is ignored.
    """

    _source: str
    _tokens: List[str]
    _position: int
    _max_depth: int
    _depth: int

    def __init__(self, source: str, max_depth: int = MAX_DEPTH):
        self._source = source
        self._tokens = []
        self._position = 0
        self._max_depth = max_depth
        self._depth = 0

        index = 0
        while index < len(source):
            match = TOKEN.match(source, index)
            if match is None:
                if source[index:].strip() == "":
                    break
                self._fail(f"unexpected character at {index}")
            self._tokens.append(match.group(1))
            index = match.end()

    def finish(self):
        if self._position != len(self._tokens):
            self._fail(f"unexpected token '{self._tokens[self._position]}'")

    def type_tag(self) -> TypeTag:
        if self._depth >= self._max_depth:
            raise MalformedValueError(
                f"Type tag nesting exceeds depth limit {self._max_depth}"
            )
        self._depth += 1
        try:
            return self._type_tag()
        finally:
            self._depth -= 1

    def _type_tag(self) -> TypeTag:
        token = self._next()
        for variant, name in TypeTag.PRIMITIVES.items():
            if token == name:
                return TypeTag(variant)

        if token == "vector":
            self._expect("<")
            element = self.type_tag()
            self._expect(">")
            return TypeTag.vector(element)

        return TypeTag.struct(self._struct_tag(token))

    def _struct_tag(self, address: str) -> StructTag:
        try:
            parsed_address = Address.from_str(address)
        except ParseAddressError as e:
            raise TypeTagParseError("TypeTag", self._source, str(e)) from e

        self._expect("::")
        module = self._identifier()
        self._expect("::")
        name = self._identifier()

        type_params: List[TypeTag] = []
        if self._peek() == "<":
            self._next()
            type_params.append(self.type_tag())
            while self._peek() == ",":
                self._next()
                type_params.append(self.type_tag())
            self._expect(">")
        return StructTag(parsed_address, module, name, type_params)

    def _identifier(self) -> str:
        token = self._next()
        if not IDENTIFIER.fullmatch(token):
            self._fail(f"invalid identifier '{token}'")
        return token

    def _expect(self, expected: str):
        token = self._next()
        if token != expected:
            self._fail(f"expected '{expected}', found '{token}'")

    def _peek(self) -> Optional[str]:
        if self._position < len(self._tokens):
            return self._tokens[self._position]
        return None

    def _next(self) -> str:
        token = self._peek()
        if token is None:
            self._fail("unexpected end of type tag")
        self._position += 1
        return typing.cast(str, token)

    def _fail(self, reason: str):
        raise TypeTagParseError("TypeTag", self._source, reason)


SUI_COIN = "0x2::coin::Coin<0x2::sui::SUI>"


class Test(unittest.TestCase):
    def test_primitives(self):
        names = ["bool", "u8", "u16", "u32", "u64", "u128", "u256", "address", "signer"]
        for name in names:
            self.assertEqual(str(TypeTag.from_str(name)), name)

    def test_nested(self):
        tag = TypeTag.from_str(f"vector< {SUI_COIN} >")
        self.assertEqual(tag.variant, TypeTag.VECTOR)
        self.assertEqual(
            str(tag),
            "vector<0x0000000000000000000000000000000000000000000000000000000000000002"
            "::coin::Coin<0x0000000000000000000000000000000000000000000000000000000000000002"
            "::sui::SUI>>",
        )
        self.assertEqual(TypeTag.from_str(str(tag)), tag)

    def test_multiple_params(self):
        tag = StructTag.from_str("0x1::pool::Pool<u8, vector<u64>,bool>")
        self.assertEqual(len(tag.type_params), 3)
        self.assertEqual(tag.type_params[1], TypeTag.vector(TypeTag(TypeTag.U64)))

    def test_invalid(self):
        for bad in [
            "",
            "vector",
            "vector<u8",
            "u8>",
            "0x2::coin",
            "0x2::coin::Coin<>",
            "0x2::1coin::Coin",
            "2::coin::Coin",
            "u8 u8",
            "0x2::coin::Coin<u8>$",
        ]:
            with self.assertRaises(TypeTagParseError, msg=bad):
                TypeTag.from_str(bad)

    def test_binary(self):
        tag = TypeTag.vector(TypeTag.from_str(SUI_COIN))
        ser = Serializer()
        tag.serialize(ser)
        encoded = ser.output()
        self.assertEqual(encoded[:2], b"\x06\x07")
        der = Deserializer(encoded)
        self.assertEqual(TypeTag.deserialize(der), tag)
        der.ensure_finished()

    def test_unknown_variant(self):
        with self.assertRaises(UnknownVariantError):
            TypeTag.deserialize(Deserializer(b"\x0b"))

    def test_invalid_identifier_in_binary(self):
        ser = Serializer()
        ser.uleb128(TypeTag.STRUCT)
        Address.from_str("0x2").serialize(ser)
        ser.str("not valid")
        ser.str("SUI")
        ser.uleb128(0)
        with self.assertRaises(TypeTagParseError):
            TypeTag.deserialize(Deserializer(ser.output()))

    def test_identifier_with_trailing_newline(self):
        with self.assertRaises(TypeTagParseError):
            validate_identifier("coin\n")

        ser = Serializer()
        ser.uleb128(TypeTag.STRUCT)
        Address.from_str("0x2").serialize(ser)
        ser.str("coin\n")
        ser.str("Coin")
        ser.uleb128(0)
        with self.assertRaises(TypeTagParseError):
            TypeTag.deserialize(Deserializer(ser.output()))

    def test_depth_limit(self):
        nested = "vector<" * 3 + "u8" + ">" * 3
        self.assertEqual(str(TypeTag.from_str(nested, max_depth=4)), nested)
        with self.assertRaises(MalformedValueError):
            TypeTag.from_str(nested, max_depth=3)
        with self.assertRaises(MalformedValueError):
            TypeTag.from_str("vector<" * 5000 + "u8" + ">" * 5000)

        encoded = b"\x06" * 3 + b"\x01"
        self.assertEqual(
            TypeTag.deserialize(Deserializer(encoded, max_depth=4)),
            TypeTag.from_str(nested),
        )
        with self.assertRaises(MalformedValueError):
            TypeTag.deserialize(Deserializer(encoded, max_depth=3))
        with self.assertRaises(MalformedValueError):
            TypeTag.deserialize(Deserializer(b"\x06" * 5000 + b"\x01"))


if __name__ == "__main__":
    unittest.main()
