"""
Condition Expression Evaluator.

Walks a parsed condition-expression tree against a single document and
produces a boolean verdict, used to gate conditional writes or to filter rows.

Inputs:
    - tree: expression tree (see :mod:`condexpr.expression.nodes`)
    - document: decoded document, a dict of field name to value
    - placeholders: placeholder token (``:v1``) to literal value
    - aliases: alias token (``#n``) to actual field name, optional

No match vs error:
    - A missing field, a missing placeholder, a comparison across kinds and a
      contains() on a kind that cannot contain anything all evaluate to False.
    - An unrecognized node, an operand kind a function cannot handle at all
      and an unresolvable field_type() code raise ConditionExpressionError
      subclasses and abort the whole evaluation.

Example:
    >>> from condexpr.expression.nodes import GreaterThanNode
    >>> evaluator = ConditionEvaluator()
    >>> evaluator.evaluate(GreaterThanNode("age", ":v1"), {"age": 30}, {":v1": 25})
    True
"""

import logging
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence, Union

from ..core.config_manager import EvaluatorConfig
from .aliases import AliasResolver, resolve_aliases, sort_alias_tokens
from .comparator import CompareOp, compare
from .exceptions import ExpressionDepthExceededError, UnrecognizedNodeError
from .functions import FunctionLibrary
from .locator import DocumentPathLocator, FieldLocator, TopLevelLocator
from .nodes import (
    AndNode,
    BeginsWithNode,
    BetweenNode,
    ComparisonNode,
    ConditionNode,
    ConditionVisitor,
    ContainsNode,
    DEFAULT_MAX_DEPTH,
    ExistsNode,
    FieldSizeNode,
    FieldTypeNode,
    InListNode,
    LiteralNode,
    NotNode,
    OrNode,
)
from .values import MISSING

logger = logging.getLogger(__name__)


class DocumentConditionVisitor(ConditionVisitor):
    """
    Visitor evaluating one tree against one document.

    Created per evaluation; holds no state beyond the recursion depth.
    """

    def __init__(
        self,
        document: Mapping[str, Any],
        placeholders: Optional[Mapping[str, Any]],
        aliases: Optional[Mapping[str, str]],
        sorted_alias_tokens: Sequence[str],
        locator: FieldLocator,
        max_depth: int = DEFAULT_MAX_DEPTH
    ):
        self.document = document
        self.placeholders = placeholders or {}
        self.aliases = aliases or {}
        self.sorted_alias_tokens = sorted_alias_tokens
        self.locator = locator
        self.max_depth = max_depth
        self._depth = 0

    def evaluate(self, node: Any) -> bool:
        """
        Evaluate a node as a condition.

        Raises:
            UnrecognizedNodeError: If node is not a condition node
            ExpressionDepthExceededError: If nesting exceeds max_depth
        """
        if not isinstance(node, ConditionNode):
            raise UnrecognizedNodeError(node)

        self._depth += 1
        try:
            if self._depth > self.max_depth:
                raise ExpressionDepthExceededError(self.max_depth)
            return node.accept(self)
        except RecursionError:
            # Interpreter stack ran out before max_depth was reached
            raise ExpressionDepthExceededError(self.max_depth)
        finally:
            self._depth -= 1

    # ==================== Operand resolution ====================

    def field_name(self, node: Any) -> str:
        """Alias-resolved field key of a literal node."""
        if not isinstance(node, LiteralNode) or not isinstance(node.value, str):
            raise UnrecognizedNodeError(node, f"Expected a field key literal, got {node!r}")
        return resolve_aliases(node.value, self.aliases, self.sorted_alias_tokens)

    def locate(self, node: Any) -> Any:
        """Value of the field named by a literal node, or MISSING."""
        return self.locator.locate(self.document, self.field_name(node))

    def placeholder(self, node: Any) -> Any:
        """Value bound to a placeholder literal, or MISSING."""
        if not isinstance(node, LiteralNode) or not isinstance(node.value, str):
            raise UnrecognizedNodeError(node, f"Expected a placeholder literal, got {node!r}")
        return self.placeholders.get(node.value, MISSING)

    def resolve_lhs(self, node: Any) -> Union[str, int]:
        """
        Resolve the left operand of a comparison.

        Returns:
            The alias-resolved field name for a literal, or the computed
            size for a size() node
        """
        if isinstance(node, LiteralNode):
            return self.field_name(node)
        if isinstance(node, FieldSizeNode):
            return FunctionLibrary.size(self.locate(node.field))
        raise UnrecognizedNodeError(node, f"Node {node!r} is not a valid comparison operand")

    def lhs_value(self, node: Any) -> Any:
        lhs = self.resolve_lhs(node)
        if isinstance(lhs, str):
            return self.locator.locate(self.document, lhs)
        return lhs

    # ==================== Operands ====================

    def visit_literal(self, node: LiteralNode) -> Any:
        raise UnrecognizedNodeError(
            node, f"Literal {node} is not recognized as a condition for document comparison"
        )

    def visit_field_size(self, node: FieldSizeNode) -> Any:
        raise UnrecognizedNodeError(
            node, f"{node} is a comparison operand, not a condition"
        )

    # ==================== Logical ====================

    def visit_and(self, node: AndNode) -> bool:
        for child in node.children:
            if not self.evaluate(child):
                return False
        return True

    def visit_or(self, node: OrNode) -> bool:
        for child in node.children:
            if self.evaluate(child):
                return True
        return False

    def visit_not(self, node: NotNode) -> bool:
        return not self.evaluate(node.child)

    # ==================== Comparisons ====================

    def visit_comparison(self, node: ComparisonNode) -> bool:
        result = compare(self.lhs_value(node.lhs), self.placeholder(node.rhs), node.operator)
        return node.negate != result

    def visit_between(self, node: BetweenNode) -> bool:
        value = self.lhs_value(node.lhs)
        result = (
            compare(value, self.placeholder(node.low), CompareOp.GREATER_OR_EQUAL)
            and compare(value, self.placeholder(node.high), CompareOp.LESS_OR_EQUAL)
        )
        return node.negate != result

    def visit_in_list(self, node: InListNode) -> bool:
        value = self.lhs_value(node.lhs)
        result = False
        if value is not MISSING:
            result = any(
                compare(value, self.placeholder(candidate), CompareOp.EQUALS)
                for candidate in node.values
            )
        return node.negate != result

    # ==================== Field functions ====================

    def visit_exists(self, node: ExistsNode) -> bool:
        found = self.locate(node.field) is not MISSING
        return node.exists == found

    def visit_begins_with(self, node: BeginsWithNode) -> bool:
        return FunctionLibrary.begins_with(self.locate(node.field), self.placeholder(node.prefix))

    def visit_contains(self, node: ContainsNode) -> bool:
        return FunctionLibrary.contains(self.locate(node.field), self.placeholder(node.value))

    def visit_field_type(self, node: FieldTypeNode) -> bool:
        value = self.locate(node.field)
        if value is MISSING:
            return False
        return FunctionLibrary.field_type(
            value, self.placeholder(node.type_code), placeholder=str(node.type_code)
        )


def evaluate(
    node: ConditionNode,
    document: Mapping[str, Any],
    placeholders: Optional[Mapping[str, Any]] = None,
    aliases: Optional[Mapping[str, str]] = None,
    sorted_alias_tokens: Optional[Sequence[str]] = None,
    locator: Optional[FieldLocator] = None,
    max_depth: int = DEFAULT_MAX_DEPTH
) -> bool:
    """
    Evaluate a condition tree against a document.

    Args:
        node: Root of the expression tree
        document: Document to evaluate against
        placeholders: Placeholder token to literal value
        aliases: Alias token to actual field name
        sorted_alias_tokens: Alias tokens by descending length; computed from
            ``aliases`` when omitted
        locator: Field locator (defaults to DocumentPathLocator)
        max_depth: Maximum tree nesting depth

    Returns:
        Boolean verdict

    Raises:
        ConditionExpressionError: On structural or contract errors
    """
    if sorted_alias_tokens is None:
        sorted_alias_tokens = sort_alias_tokens(aliases)
    visitor = DocumentConditionVisitor(
        document=document,
        placeholders=placeholders,
        aliases=aliases,
        sorted_alias_tokens=sorted_alias_tokens,
        locator=locator or DocumentPathLocator(),
        max_depth=max_depth,
    )
    return bool(visitor.evaluate(node))


class ConditionEvaluator:
    """
    Configured entry point for condition evaluation.

    Holds only read-only settings, so one instance can serve concurrent
    evaluations.

    Example:
        >>> evaluator = ConditionEvaluator(EvaluatorConfig(max_depth=16))
        >>> matches = list(evaluator.filter_documents(tree, documents, {":v1": 25}))
    """

    def __init__(
        self,
        config: Optional[EvaluatorConfig] = None,
        locator: Optional[FieldLocator] = None
    ):
        """
        Initialize evaluator.

        Args:
            config: Evaluator settings (defaults apply when omitted)
            locator: Field locator; chosen from ``config.nested_paths`` when omitted
        """
        self.config = config or EvaluatorConfig()
        if locator is None:
            locator = DocumentPathLocator() if self.config.nested_paths else TopLevelLocator()
        self.locator = locator

    def evaluate(
        self,
        tree: Optional[ConditionNode],
        document: Optional[Mapping[str, Any]],
        placeholders: Optional[Mapping[str, Any]] = None,
        aliases: Optional[Mapping[str, str]] = None
    ) -> bool:
        """
        Evaluate a condition tree against a document.

        A missing tree or document is logged and evaluates to False.
        """
        if tree is None or document is None:
            logger.warning(
                f"Document and/or condition expression are empty. "
                f"Document: {document!r}, condition expression: {tree}"
            )
            return False

        resolver = AliasResolver(aliases)
        return self._evaluate(tree, document, placeholders, resolver)

    def filter_documents(
        self,
        tree: ConditionNode,
        documents: Iterable[Mapping[str, Any]],
        placeholders: Optional[Mapping[str, Any]] = None,
        aliases: Optional[Mapping[str, str]] = None
    ) -> Iterator[Mapping[str, Any]]:
        """
        Lazily yield the documents for which the condition holds.

        Errors raised for one document abort the iteration.
        """
        resolver = AliasResolver(aliases)
        scanned = 0
        matched = 0
        for document in documents:
            scanned += 1
            if self._evaluate(tree, document, placeholders, resolver):
                matched += 1
                yield document
        logger.debug(f"Filtered documents: scanned={scanned}, matched={matched}")

    def _evaluate(
        self,
        tree: ConditionNode,
        document: Mapping[str, Any],
        placeholders: Optional[Mapping[str, Any]],
        resolver: AliasResolver
    ) -> bool:
        result = evaluate(
            tree,
            document,
            placeholders,
            aliases=resolver.aliases,
            sorted_alias_tokens=resolver.sorted_tokens,
            locator=self.locator,
            max_depth=self.config.max_depth,
        )
        logger.debug(f"Evaluated condition {tree}: {result}")
        return result


def evaluate_condition(
    tree: Optional[ConditionNode],
    document: Optional[Mapping[str, Any]],
    placeholders: Optional[Mapping[str, Any]] = None,
    aliases: Optional[Mapping[str, str]] = None
) -> bool:
    """Evaluate with default settings. See ConditionEvaluator.evaluate."""
    return ConditionEvaluator().evaluate(tree, document, placeholders, aliases)
