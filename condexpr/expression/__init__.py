"""
Condition expression evaluation.

This module provides the document value model, the expression tree and the
evaluator that checks a tree against a single document.
"""

from condexpr.expression.values import (
    MISSING,
    ValueKind,
    StringSet,
    NumberSet,
    BinarySet,
    kind_of,
    is_set,
    decode_value,
    encode_value,
)
from condexpr.expression.nodes import (
    NodeType,
    ConditionNode,
    ConditionVisitor,
    LiteralNode,
    FieldSizeNode,
    AndNode,
    OrNode,
    NotNode,
    EqualNode,
    NotEqualNode,
    LessThanNode,
    LessThanOrEqualNode,
    GreaterThanNode,
    GreaterThanOrEqualNode,
    BetweenNode,
    InListNode,
    ExistsNode,
    BeginsWithNode,
    ContainsNode,
    FieldTypeNode,
    node_from_dict,
)
from condexpr.expression.aliases import AliasResolver, resolve_aliases, sort_alias_tokens
from condexpr.expression.comparator import CompareOp, compare, values_equal
from condexpr.expression.locator import FieldLocator, DocumentPathLocator, TopLevelLocator
from condexpr.expression.evaluator import ConditionEvaluator, evaluate, evaluate_condition
from condexpr.expression.exceptions import (
    ConditionExpressionError,
    UnrecognizedNodeError,
    InvalidArgumentTypeError,
    UnresolvableTypeCodeError,
    ExpressionDepthExceededError,
    InvalidExpressionTreeError,
)

__all__ = [
    "MISSING",
    "ValueKind",
    "StringSet",
    "NumberSet",
    "BinarySet",
    "kind_of",
    "is_set",
    "decode_value",
    "encode_value",
    "NodeType",
    "ConditionNode",
    "ConditionVisitor",
    "LiteralNode",
    "FieldSizeNode",
    "AndNode",
    "OrNode",
    "NotNode",
    "EqualNode",
    "NotEqualNode",
    "LessThanNode",
    "LessThanOrEqualNode",
    "GreaterThanNode",
    "GreaterThanOrEqualNode",
    "BetweenNode",
    "InListNode",
    "ExistsNode",
    "BeginsWithNode",
    "ContainsNode",
    "FieldTypeNode",
    "node_from_dict",
    "AliasResolver",
    "resolve_aliases",
    "sort_alias_tokens",
    "CompareOp",
    "compare",
    "values_equal",
    "FieldLocator",
    "DocumentPathLocator",
    "TopLevelLocator",
    "ConditionEvaluator",
    "evaluate",
    "evaluate_condition",
    "ConditionExpressionError",
    "UnrecognizedNodeError",
    "InvalidArgumentTypeError",
    "UnresolvableTypeCodeError",
    "ExpressionDepthExceededError",
    "InvalidExpressionTreeError",
]
