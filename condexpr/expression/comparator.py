"""
Typed value comparison.

Values compare only when they are of the same kind. A comparison across kinds,
or with a missing operand, is simply not a match and returns False.

Ordering (lt, le, gt, ge) is defined for:
    - Numbers: by magnitude, regardless of int / float / Decimal
    - Strings: lexicographic by code point (same order as UTF-8 bytes)
    - Binary: unsigned byte order

Equality is additionally defined for Bool, Null, Arrays (element-wise), Maps
(same keys, equal values) and Sets (same set kind, same members).
"""

from enum import Enum
from typing import Any

from .values import MISSING, ValueKind, is_set, kind_of


class CompareOp(Enum):
    """Relational operators understood by the comparator."""
    EQUALS = "="
    LESS = "<"
    LESS_OR_EQUAL = "<="
    GREATER = ">"
    GREATER_OR_EQUAL = ">="


def values_equal(left: Any, right: Any) -> bool:
    """
    Same-kind deep equality.

    Unlike ``==``, never treats ``True`` as ``1``, ``"5"`` as ``5`` or a
    StringSet as a plain list.
    """
    if left is MISSING or right is MISSING:
        return False

    left_kind = kind_of(left)
    if left_kind != kind_of(right):
        return False

    if left_kind == ValueKind.LIST:
        return len(left) == len(right) and all(
            values_equal(a, b) for a, b in zip(left, right)
        )
    if left_kind == ValueKind.MAP:
        return left.keys() == right.keys() and all(
            values_equal(value, right[key]) for key, value in left.items()
        )
    if left_kind == ValueKind.BINARY:
        return bytes(left) == bytes(right)
    if is_set(left):
        return frozenset(left) == frozenset(right)

    return left == right


def compare(value: Any, literal: Any, op: CompareOp) -> bool:
    """
    Compare a document value against a literal.

    Args:
        value: Resolved document value (or MISSING)
        literal: Placeholder value (or MISSING)
        op: Relational operator

    Returns:
        True if ``value <op> literal`` holds for same-kind operands
    """
    if value is MISSING or literal is MISSING:
        return False

    if op == CompareOp.EQUALS:
        return values_equal(value, literal)

    kind = kind_of(value)
    if kind != kind_of(literal) or not kind.supports_ordering():
        return False

    if kind == ValueKind.BINARY:
        value, literal = bytes(value), bytes(literal)

    if op == CompareOp.LESS:
        return value < literal
    elif op == CompareOp.LESS_OR_EQUAL:
        return value <= literal
    elif op == CompareOp.GREATER:
        return value > literal
    elif op == CompareOp.GREATER_OR_EQUAL:
        return value >= literal

    raise ValueError(f"Unknown comparison operator: {op}")
