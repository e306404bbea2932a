"""
Condition Expression Function Library.

Implements the document functions available in condition expressions:
size(), begins_with(), contains() and field_type().

The functions take already-located values. A missing field or placeholder is
passed in as MISSING and, except for size(), makes the function evaluate to
False. Operands of a kind the function cannot handle at all raise
InvalidArgumentTypeError.
"""

from typing import Any

from .comparator import values_equal
from .exceptions import InvalidArgumentTypeError, UnresolvableTypeCodeError
from .values import MISSING, ValueKind, is_binary, is_set, kind_of


class FunctionLibrary:
    """Condition expression function implementations."""

    @staticmethod
    def size(value: Any) -> int:
        """
        Size of a field value.

        Args:
            value: Located field value, or MISSING

        Returns:
            - String: number of characters
            - Binary: number of bytes
            - Array, any Set: number of elements
            - Map: number of keys
            - MISSING: 0

        Raises:
            InvalidArgumentTypeError: For Number, Bool and Null values

        Example:
            >>> FunctionLibrary.size(["a", "b", "c"])
            3
        """
        if value is MISSING:
            return 0

        kind = kind_of(value)
        if kind in (ValueKind.STRING, ValueKind.BINARY, ValueKind.LIST, ValueKind.MAP):
            return len(value)
        if kind.is_set():
            return len(value)

        raise InvalidArgumentTypeError(
            "size",
            "unsupported type, supported types: String, Binary, Set, List, Map",
            actual=kind.value,
        )

    @staticmethod
    def begins_with(value: Any, prefix: Any) -> bool:
        """
        Check if a String or Binary value starts with a prefix.

        Args:
            value: Located field value, or MISSING
            prefix: Placeholder value, or MISSING

        Returns:
            True if value starts with prefix. False if either is missing
            or their kinds differ.

        Raises:
            InvalidArgumentTypeError: If prefix is neither String nor Binary

        Example:
            >>> FunctionLibrary.begins_with("hello", "he")
            True
            >>> FunctionLibrary.begins_with(b"\\x01\\x02", "he")
            False
        """
        if value is MISSING or prefix is MISSING:
            return False

        if not isinstance(prefix, str) and not is_binary(prefix):
            raise InvalidArgumentTypeError(
                "begins_with",
                "only String and Binary data types are supported",
                actual=kind_of(prefix).value,
            )

        if isinstance(value, str) and isinstance(prefix, str):
            return value.startswith(prefix)
        if is_binary(value) and is_binary(prefix):
            if len(prefix) > len(value):
                return False
            return bytes(value[:len(prefix)]) == bytes(prefix)

        return False

    @staticmethod
    def contains(value: Any, element: Any) -> bool:
        """
        Check if a field value contains an element.

        - String: substring containment (element must be a String)
        - Array: any element equal to ``element``
        - Set: any member equal to ``element``
        - Anything else: False

        Example:
            >>> FunctionLibrary.contains("HelloWorld", "loW")
            True
        """
        if value is MISSING or element is MISSING:
            return False

        if isinstance(value, str):
            if not isinstance(element, str):
                return False
            return element in value
        if is_set(value) or isinstance(value, (list, tuple)):
            return any(values_equal(member, element) for member in value)
        return False

    @staticmethod
    def field_type(value: Any, type_code: Any, placeholder: str = "") -> bool:
        """
        Check the kind of a field value against a type code.

        Args:
            value: Located field value, or MISSING
            type_code: One of S, N, B, BOOL, NULL, L, M, SS, NS, BS
            placeholder: Placeholder the code came from, for error reporting

        Returns:
            True if the value is of the given kind, False if value is missing

        Raises:
            UnresolvableTypeCodeError: If type_code is missing or unknown
        """
        if value is MISSING:
            return False

        if type_code is MISSING:
            raise UnresolvableTypeCodeError(placeholder)
        if not isinstance(type_code, str):
            raise UnresolvableTypeCodeError(placeholder, type_code)
        try:
            expected = ValueKind.from_code(type_code)
        except ValueError:
            raise UnresolvableTypeCodeError(placeholder, type_code)

        return kind_of(value) == expected
