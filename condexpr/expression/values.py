"""
Document Value Model.

Documents are plain decoded Python structures. Each value belongs to exactly
one kind, reported by :func:`kind_of`:

    =======  ==================================  =====
    Kind     Python representation               Code
    =======  ==================================  =====
    String   str                                 S
    Number   int, float, Decimal (never bool)    N
    Binary   bytes, bytearray                    B
    Bool     bool                                BOOL
    Null     None                                NULL
    Array    list, tuple                         L
    Map      dict                                M
    Sets     StringSet, NumberSet, BinarySet     SS, NS, BS
    =======  ==================================  =====

Sets are dedicated ``frozenset`` subclasses, never plain lists, so that a set
is always recognised by its class rather than by guessing from its contents.

Absence of a value is the :data:`MISSING` sentinel, distinct from Null.

Example:
    >>> kind_of(StringSet({"a", "b"}))
    <ValueKind.STRING_SET: 'SS'>
    >>> kind_of(["a", "b"])
    <ValueKind.LIST: 'L'>
"""

from __future__ import annotations

import base64
import binascii
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping

from .exceptions import InvalidArgumentTypeError, InvalidExpressionTreeError


class _Missing:
    """Marker for a value that is not present."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


class ValueKind(Enum):
    """Runtime kinds of document values, keyed by their type code."""
    STRING = "S"
    NUMBER = "N"
    BINARY = "B"
    BOOLEAN = "BOOL"
    NULL = "NULL"
    LIST = "L"
    MAP = "M"
    STRING_SET = "SS"
    NUMBER_SET = "NS"
    BINARY_SET = "BS"

    def is_set(self) -> bool:
        """Check if kind is one of the three set kinds."""
        return self in (ValueKind.STRING_SET, ValueKind.NUMBER_SET, ValueKind.BINARY_SET)

    def supports_ordering(self) -> bool:
        """Check if kind supports ordering (lt, le, gt, ge)."""
        return self in (ValueKind.STRING, ValueKind.NUMBER, ValueKind.BINARY)

    @classmethod
    def from_code(cls, code: str) -> "ValueKind":
        """
        Look up a kind by its type code.

        Raises:
            ValueError: If code is not a known type code
        """
        return cls(code)


def is_number(value: Any) -> bool:
    """Check for a numeric value. Booleans are not numbers."""
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def is_binary(value: Any) -> bool:
    """Check for a binary value."""
    return isinstance(value, (bytes, bytearray))


class _ValueSet(frozenset):
    """Base class for the typed set values."""

    kind: ValueKind

    def __new__(cls, members: Iterable[Any] = ()):
        members = [cls._coerce(member) for member in members]
        return super().__new__(cls, members)

    @classmethod
    def _coerce(cls, member: Any) -> Any:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({sorted(self)!r})"


class StringSet(_ValueSet):
    """Set of strings."""

    kind = ValueKind.STRING_SET

    @classmethod
    def _coerce(cls, member: Any) -> str:
        if not isinstance(member, str):
            raise InvalidArgumentTypeError(
                "StringSet", "members must be strings", actual=type(member).__name__
            )
        return member


class NumberSet(_ValueSet):
    """Set of numbers."""

    kind = ValueKind.NUMBER_SET

    @classmethod
    def _coerce(cls, member: Any) -> Any:
        if not is_number(member):
            raise InvalidArgumentTypeError(
                "NumberSet", "members must be numbers", actual=type(member).__name__
            )
        return member


class BinarySet(_ValueSet):
    """Set of binary values."""

    kind = ValueKind.BINARY_SET

    @classmethod
    def _coerce(cls, member: Any) -> bytes:
        if not is_binary(member):
            raise InvalidArgumentTypeError(
                "BinarySet", "members must be binary", actual=type(member).__name__
            )
        return bytes(member)


def is_set(value: Any) -> bool:
    """Check if value is one of the dedicated set kinds."""
    return isinstance(value, _ValueSet)


def kind_of(value: Any) -> ValueKind:
    """
    Report the kind of a document value.

    Args:
        value: Decoded document value

    Returns:
        The value's kind

    Raises:
        InvalidArgumentTypeError: If value is not part of the value model
    """
    if value is None:
        return ValueKind.NULL
    # bool before numbers: bool is a subclass of int
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if is_number(value):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if is_binary(value):
        return ValueKind.BINARY
    if is_set(value):
        return value.kind
    if isinstance(value, (list, tuple)):
        return ValueKind.LIST
    if isinstance(value, Mapping):
        return ValueKind.MAP
    raise InvalidArgumentTypeError(
        "kind_of", "value is not a document value", actual=type(value).__name__
    )


# ==================== Typed JSON ====================

SET_KEY = "$set"
BINARY_KEY = "$binary"


def decode_value(raw: Any) -> Any:
    """
    Decode a JSON-loaded structure into document values.

    Two wrapper objects are recognised:
        - ``{"$binary": "<base64>"}`` becomes ``bytes``
        - ``{"$set": [...]}`` becomes a StringSet, NumberSet or BinarySet,
          chosen by the kind of its (decoded) members

    Raises:
        InvalidExpressionTreeError: If a wrapper is malformed
    """
    if isinstance(raw, dict):
        if len(raw) == 1 and BINARY_KEY in raw:
            try:
                return base64.b64decode(raw[BINARY_KEY], validate=True)
            except (binascii.Error, TypeError, ValueError) as e:
                raise InvalidExpressionTreeError(f"Invalid {BINARY_KEY} value: {e}")
        if len(raw) == 1 and SET_KEY in raw:
            return _decode_set(raw[SET_KEY])
        return {key: decode_value(value) for key, value in raw.items()}
    if isinstance(raw, list):
        return [decode_value(item) for item in raw]
    return raw


def _decode_set(raw_members: Any) -> Any:
    if not isinstance(raw_members, list) or not raw_members:
        raise InvalidExpressionTreeError(f"{SET_KEY} must be a non-empty list")

    members = [decode_value(member) for member in raw_members]
    kinds = {kind_of(member) for member in members}
    if kinds == {ValueKind.STRING}:
        return StringSet(members)
    if kinds == {ValueKind.NUMBER}:
        return NumberSet(members)
    if kinds == {ValueKind.BINARY}:
        return BinarySet(members)
    raise InvalidExpressionTreeError(
        f"{SET_KEY} members must all be strings, numbers or binary, "
        f"got {sorted(kind.value for kind in kinds)}"
    )


def encode_value(value: Any) -> Any:
    """Encode a document value into its typed JSON form (inverse of decode_value)."""
    if is_binary(value):
        return {BINARY_KEY: base64.b64encode(bytes(value)).decode("ascii")}
    if is_set(value):
        return {SET_KEY: [encode_value(member) for member in sorted(value)]}
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, (list, tuple)):
        return [encode_value(item) for item in value]
    if isinstance(value, Mapping):
        return {key: encode_value(item) for key, item in value.items()}
    return value
