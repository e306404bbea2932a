"""
Condition Expression Tree.

Immutable node types produced by the condition-expression parser, plus a
visitor interface covering every node kind and a builder for the JSON tree
document form.

Node kinds form a closed set (:class:`NodeType`). :class:`ConditionVisitor`
declares one abstract method per kind, so a visitor that forgets a kind cannot
be instantiated.

Tree shape:
    - Field references and placeholder references are :class:`LiteralNode`
      values holding the raw token (``"#n.age"``, ``":v1"``)
    - The left operand of a comparison is a :class:`LiteralNode` naming a field
      or a :class:`FieldSizeNode`
    - Field predicates hold their field and argument as literals

Example:
    >>> tree = AndNode((
    ...     ExistsNode("name"),
    ...     GreaterThanNode(FieldSizeNode("tags"), ":min"),
    ... ))
    >>> print(tree)
    (attribute_exists(name) AND size(tags) > :min)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Tuple, Union

from .comparator import CompareOp
from .exceptions import (
    ExpressionDepthExceededError,
    InvalidExpressionTreeError,
    UnrecognizedNodeError,
)


class NodeType(Enum):
    """Closed set of expression node kinds."""
    LITERAL = "literal"
    FIELD_SIZE = "field_size"
    AND = "and"
    OR = "or"
    NOT = "not"
    EQUAL = "equal"
    NOT_EQUAL = "not_equal"
    LESS_THAN = "less_than"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    GREATER_THAN = "greater_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    BETWEEN = "between"
    IN_LIST = "in_list"
    EXISTS = "exists"
    BEGINS_WITH = "begins_with"
    CONTAINS = "contains"
    FIELD_TYPE = "field_type"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ConditionNode(ABC):
    """
    Base class for all expression nodes.

    Nodes are frozen and own their children; trees are acyclic.
    """
    node_type: ClassVar[NodeType]

    @abstractmethod
    def accept(self, visitor: 'ConditionVisitor') -> Any:
        """Dispatch to the visitor method for this node kind."""
        pass


def _as_literal(value: Any) -> Any:
    if isinstance(value, ConditionNode):
        return value
    return LiteralNode(value)


@dataclass(frozen=True)
class LiteralNode(ConditionNode):
    """
    Literal token: a field key or a placeholder name.

    Attributes:
        value: Raw token text
    """
    node_type: ClassVar[NodeType] = NodeType.LITERAL

    value: Any

    def accept(self, visitor: 'ConditionVisitor') -> Any:
        return visitor.visit_literal(self)

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class FieldSizeNode(ConditionNode):
    """size(field) as the left operand of a comparison."""
    node_type: ClassVar[NodeType] = NodeType.FIELD_SIZE

    field: LiteralNode

    def __post_init__(self):
        object.__setattr__(self, "field", _as_literal(self.field))

    def accept(self, visitor: 'ConditionVisitor') -> Any:
        return visitor.visit_field_size(self)

    def __str__(self) -> str:
        return f"size({self.field})"


@dataclass(frozen=True)
class AndNode(ConditionNode):
    """Conjunction of child conditions, evaluated in order."""
    node_type: ClassVar[NodeType] = NodeType.AND

    children: Tuple[ConditionNode, ...]

    def __post_init__(self):
        object.__setattr__(self, "children", tuple(self.children))

    def accept(self, visitor: 'ConditionVisitor') -> Any:
        return visitor.visit_and(self)

    def __str__(self) -> str:
        return "(" + " AND ".join(str(child) for child in self.children) + ")"


@dataclass(frozen=True)
class OrNode(ConditionNode):
    """Disjunction of child conditions, evaluated in order."""
    node_type: ClassVar[NodeType] = NodeType.OR

    children: Tuple[ConditionNode, ...]

    def __post_init__(self):
        object.__setattr__(self, "children", tuple(self.children))

    def accept(self, visitor: 'ConditionVisitor') -> Any:
        return visitor.visit_or(self)

    def __str__(self) -> str:
        return "(" + " OR ".join(str(child) for child in self.children) + ")"


@dataclass(frozen=True)
class NotNode(ConditionNode):
    node_type: ClassVar[NodeType] = NodeType.NOT

    child: ConditionNode

    def accept(self, visitor: 'ConditionVisitor') -> Any:
        return visitor.visit_not(self)

    def __str__(self) -> str:
        return f"NOT {self.child}"


@dataclass(frozen=True)
class ComparisonNode(ConditionNode):
    """
    Binary comparison ``lhs <op> rhs``.

    Attributes:
        lhs: Field key literal or size() node
        rhs: Placeholder literal
    """
    operator: ClassVar[CompareOp]
    negate: ClassVar[bool] = False
    symbol: ClassVar[str]

    lhs: Union[LiteralNode, FieldSizeNode]
    rhs: LiteralNode

    def __post_init__(self):
        object.__setattr__(self, "lhs", _as_literal(self.lhs))
        object.__setattr__(self, "rhs", _as_literal(self.rhs))

    def accept(self, visitor: 'ConditionVisitor') -> Any:
        return visitor.visit_comparison(self)

    def __str__(self) -> str:
        return f"{self.lhs} {self.symbol} {self.rhs}"


@dataclass(frozen=True)
class EqualNode(ComparisonNode):
    node_type: ClassVar[NodeType] = NodeType.EQUAL
    operator: ClassVar[CompareOp] = CompareOp.EQUALS
    symbol: ClassVar[str] = "="


@dataclass(frozen=True)
class NotEqualNode(ComparisonNode):
    node_type: ClassVar[NodeType] = NodeType.NOT_EQUAL
    operator: ClassVar[CompareOp] = CompareOp.EQUALS
    negate: ClassVar[bool] = True
    symbol: ClassVar[str] = "<>"


@dataclass(frozen=True)
class LessThanNode(ComparisonNode):
    node_type: ClassVar[NodeType] = NodeType.LESS_THAN
    operator: ClassVar[CompareOp] = CompareOp.LESS
    symbol: ClassVar[str] = "<"


@dataclass(frozen=True)
class LessThanOrEqualNode(ComparisonNode):
    node_type: ClassVar[NodeType] = NodeType.LESS_THAN_OR_EQUAL
    operator: ClassVar[CompareOp] = CompareOp.LESS_OR_EQUAL
    symbol: ClassVar[str] = "<="


@dataclass(frozen=True)
class GreaterThanNode(ComparisonNode):
    node_type: ClassVar[NodeType] = NodeType.GREATER_THAN
    operator: ClassVar[CompareOp] = CompareOp.GREATER
    symbol: ClassVar[str] = ">"


@dataclass(frozen=True)
class GreaterThanOrEqualNode(ComparisonNode):
    node_type: ClassVar[NodeType] = NodeType.GREATER_THAN_OR_EQUAL
    operator: ClassVar[CompareOp] = CompareOp.GREATER_OR_EQUAL
    symbol: ClassVar[str] = ">="


@dataclass(frozen=True)
class BetweenNode(ConditionNode):
    """``lhs [NOT] BETWEEN low AND high``, inclusive at both ends."""
    node_type: ClassVar[NodeType] = NodeType.BETWEEN

    lhs: Union[LiteralNode, FieldSizeNode]
    low: LiteralNode
    high: LiteralNode
    negate: bool = False

    def __post_init__(self):
        object.__setattr__(self, "lhs", _as_literal(self.lhs))
        object.__setattr__(self, "low", _as_literal(self.low))
        object.__setattr__(self, "high", _as_literal(self.high))

    def accept(self, visitor: 'ConditionVisitor') -> Any:
        return visitor.visit_between(self)

    def __str__(self) -> str:
        keyword = "NOT BETWEEN" if self.negate else "BETWEEN"
        return f"{self.lhs} {keyword} {self.low} AND {self.high}"


@dataclass(frozen=True)
class InListNode(ConditionNode):
    """``lhs [NOT] IN (v1, v2, ...)``."""
    node_type: ClassVar[NodeType] = NodeType.IN_LIST

    lhs: Union[LiteralNode, FieldSizeNode]
    values: Tuple[LiteralNode, ...]
    negate: bool = False

    def __post_init__(self):
        object.__setattr__(self, "lhs", _as_literal(self.lhs))
        object.__setattr__(self, "values", tuple(_as_literal(value) for value in self.values))

    def accept(self, visitor: 'ConditionVisitor') -> Any:
        return visitor.visit_in_list(self)

    def __str__(self) -> str:
        keyword = "NOT IN" if self.negate else "IN"
        return f"{self.lhs} {keyword} ({', '.join(str(v) for v in self.values)})"


@dataclass(frozen=True)
class ExistsNode(ConditionNode):
    """
    attribute_exists(field) or, with ``exists=False``, attribute_not_exists(field).
    """
    node_type: ClassVar[NodeType] = NodeType.EXISTS

    field: LiteralNode
    exists: bool = True

    def __post_init__(self):
        object.__setattr__(self, "field", _as_literal(self.field))

    def accept(self, visitor: 'ConditionVisitor') -> Any:
        return visitor.visit_exists(self)

    def __str__(self) -> str:
        function = "attribute_exists" if self.exists else "attribute_not_exists"
        return f"{function}({self.field})"


@dataclass(frozen=True)
class BeginsWithNode(ConditionNode):
    node_type: ClassVar[NodeType] = NodeType.BEGINS_WITH

    field: LiteralNode
    prefix: LiteralNode

    def __post_init__(self):
        object.__setattr__(self, "field", _as_literal(self.field))
        object.__setattr__(self, "prefix", _as_literal(self.prefix))

    def accept(self, visitor: 'ConditionVisitor') -> Any:
        return visitor.visit_begins_with(self)

    def __str__(self) -> str:
        return f"begins_with({self.field}, {self.prefix})"


@dataclass(frozen=True)
class ContainsNode(ConditionNode):
    node_type: ClassVar[NodeType] = NodeType.CONTAINS

    field: LiteralNode
    value: LiteralNode

    def __post_init__(self):
        object.__setattr__(self, "field", _as_literal(self.field))
        object.__setattr__(self, "value", _as_literal(self.value))

    def accept(self, visitor: 'ConditionVisitor') -> Any:
        return visitor.visit_contains(self)

    def __str__(self) -> str:
        return f"contains({self.field}, {self.value})"


@dataclass(frozen=True)
class FieldTypeNode(ConditionNode):
    node_type: ClassVar[NodeType] = NodeType.FIELD_TYPE

    field: LiteralNode
    type_code: LiteralNode

    def __post_init__(self):
        object.__setattr__(self, "field", _as_literal(self.field))
        object.__setattr__(self, "type_code", _as_literal(self.type_code))

    def accept(self, visitor: 'ConditionVisitor') -> Any:
        return visitor.visit_field_type(self)

    def __str__(self) -> str:
        return f"field_type({self.field}, {self.type_code})"


class ConditionVisitor(ABC):
    """
    Abstract base class for expression tree visitors.

    One method per node kind; comparison kinds share visit_comparison and
    are told apart by the node's ``operator`` and ``negate`` attributes.
    """

    @abstractmethod
    def visit_literal(self, node: LiteralNode) -> Any:
        pass

    @abstractmethod
    def visit_field_size(self, node: FieldSizeNode) -> Any:
        pass

    @abstractmethod
    def visit_and(self, node: AndNode) -> Any:
        pass

    @abstractmethod
    def visit_or(self, node: OrNode) -> Any:
        pass

    @abstractmethod
    def visit_not(self, node: NotNode) -> Any:
        pass

    @abstractmethod
    def visit_comparison(self, node: ComparisonNode) -> Any:
        pass

    @abstractmethod
    def visit_between(self, node: BetweenNode) -> Any:
        pass

    @abstractmethod
    def visit_in_list(self, node: InListNode) -> Any:
        pass

    @abstractmethod
    def visit_exists(self, node: ExistsNode) -> Any:
        pass

    @abstractmethod
    def visit_begins_with(self, node: BeginsWithNode) -> Any:
        pass

    @abstractmethod
    def visit_contains(self, node: ContainsNode) -> Any:
        pass

    @abstractmethod
    def visit_field_type(self, node: FieldTypeNode) -> Any:
        pass


# ==================== Tree documents ====================

DEFAULT_MAX_DEPTH = 64

COMPARISON_OPS = {
    "eq": EqualNode,
    "ne": NotEqualNode,
    "lt": LessThanNode,
    "le": LessThanOrEqualNode,
    "gt": GreaterThanNode,
    "ge": GreaterThanOrEqualNode,
}


def node_from_dict(data: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> ConditionNode:
    """
    Build an expression tree from its JSON tree document form.

    Every node is an object with an ``op`` key::

        {"op": "and", "children": [...]}          {"op": "or", "children": [...]}
        {"op": "not", "child": {...}}
        {"op": "eq"|"ne"|"lt"|"le"|"gt"|"ge", "lhs": LHS, "rhs": ":v"}
        {"op": "between", "lhs": LHS, "low": ":lo", "high": ":hi", "negate": false}
        {"op": "in", "lhs": LHS, "values": [":a", ":b"], "negate": false}
        {"op": "exists", "field": "a.b", "exists": true}
        {"op": "begins_with", "field": "name", "prefix": ":p"}
        {"op": "contains", "field": "tags", "value": ":t"}
        {"op": "field_type", "field": "name", "type": ":t"}

    LHS is a field key string or ``{"op": "size", "field": "tags"}``. Field
    keys and placeholders must be strings; ``negate`` and ``exists`` must be
    JSON booleans.

    Args:
        data: Decoded tree document
        max_depth: Maximum nesting depth of condition nodes

    Raises:
        UnrecognizedNodeError: If ``op`` names no known node kind
        InvalidExpressionTreeError: If a node is missing keys or has keys of
            the wrong type
        ExpressionDepthExceededError: If the tree is nested deeper than
            ``max_depth``
    """
    try:
        return _build_node(data, 1, max_depth)
    except RecursionError:
        raise ExpressionDepthExceededError(max_depth)


def _build_node(data: Any, depth: int, max_depth: int) -> ConditionNode:
    if depth > max_depth:
        raise ExpressionDepthExceededError(max_depth)
    if not isinstance(data, Mapping) or "op" not in data:
        raise InvalidExpressionTreeError(f"Tree node must be an object with an 'op' key: {data!r}")

    op = str(data["op"]).lower()
    if op in ("and", "or"):
        children = _require(data, "children")
        if not isinstance(children, list):
            raise InvalidExpressionTreeError(f"'{op}' node requires a list of children")
        children = tuple(_build_node(child, depth + 1, max_depth) for child in children)
        return AndNode(children) if op == "and" else OrNode(children)
    if op == "not":
        return NotNode(_build_node(_require(data, "child"), depth + 1, max_depth))
    if op in COMPARISON_OPS:
        return COMPARISON_OPS[op](_lhs_from_dict(_require(data, "lhs")), _token(data, "rhs"))
    if op == "between":
        return BetweenNode(
            _lhs_from_dict(_require(data, "lhs")),
            _token(data, "low"),
            _token(data, "high"),
            negate=_flag(data, "negate", False),
        )
    if op == "in":
        values = _require(data, "values")
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise InvalidExpressionTreeError("'in' node requires a list of placeholder strings")
        return InListNode(
            _lhs_from_dict(_require(data, "lhs")),
            tuple(values),
            negate=_flag(data, "negate", False),
        )
    if op == "exists":
        return ExistsNode(_token(data, "field"), exists=_flag(data, "exists", True))
    if op == "begins_with":
        return BeginsWithNode(_token(data, "field"), _token(data, "prefix"))
    if op == "contains":
        return ContainsNode(_token(data, "field"), _token(data, "value"))
    if op == "field_type":
        return FieldTypeNode(_token(data, "field"), _token(data, "type"))

    raise UnrecognizedNodeError(data, f"Unknown node op '{op}'")


def _lhs_from_dict(data: Any) -> Union[LiteralNode, FieldSizeNode]:
    if isinstance(data, str):
        return LiteralNode(data)
    if isinstance(data, Mapping) and str(data.get("op", "")).lower() == "size":
        return FieldSizeNode(_token(data, "field"))
    raise InvalidExpressionTreeError(
        f"Comparison operand must be a field key or a size() node: {data!r}"
    )


def _require(data: Dict[str, Any], key: str) -> Any:
    if key not in data:
        raise InvalidExpressionTreeError(f"'{data.get('op')}' node requires '{key}'")
    return data[key]


def _token(data: Dict[str, Any], key: str) -> str:
    """Field key or placeholder name under ``key``."""
    value = _require(data, key)
    if not isinstance(value, str):
        raise InvalidExpressionTreeError(
            f"'{data.get('op')}' node: '{key}' must be a string, got {type(value).__name__}"
        )
    return value


def _flag(data: Dict[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise InvalidExpressionTreeError(
            f"'{data.get('op')}' node: '{key}' must be a boolean, got {value!r}"
        )
    return value
