"""
Unit tests for the condition expression evaluator.

Covers:
- Every node kind
- Alias substitution before lookup
- No-match (False) vs error policy
- Short-circuit evaluation
- Depth guard
- Document filtering
"""

import logging

import pytest

from condexpr.core.config_manager import EvaluatorConfig
from condexpr.expression.evaluator import ConditionEvaluator, evaluate, evaluate_condition
from condexpr.expression.exceptions import (
    ExpressionDepthExceededError,
    InvalidArgumentTypeError,
    UnrecognizedNodeError,
    UnresolvableTypeCodeError,
)
from condexpr.expression.locator import FieldLocator
from condexpr.expression.nodes import (
    AndNode,
    BeginsWithNode,
    BetweenNode,
    ContainsNode,
    EqualNode,
    ExistsNode,
    FieldSizeNode,
    FieldTypeNode,
    GreaterThanNode,
    GreaterThanOrEqualNode,
    InListNode,
    LessThanNode,
    LessThanOrEqualNode,
    LiteralNode,
    NotEqualNode,
    NotNode,
    OrNode,
)
from condexpr.expression.values import MISSING, StringSet


DOCUMENT = {
    "name": "hello",
    "age": 30,
    "score": 7.5,
    "active": True,
    "nothing": None,
    "tags": ["a", "b", "c"],
    "colors": StringSet({"red", "blue"}),
    "blob": b"\x01\x02\x03",
    "profile": {"city": "Oslo", "langs": ["en", "no"]},
}


class RecordingLocator(FieldLocator):
    """Locator that records every looked-up path."""

    def __init__(self):
        self.paths = []

    def locate(self, document, path):
        self.paths.append(path)
        return document.get(path, MISSING)


class TestEndToEnd:
    """Reference scenarios."""

    def test_exists(self):
        """Test Exists("name") on a document that has it."""
        assert evaluate_condition(ExistsNode("name"), {"name": "x"}) is True

    def test_greater(self):
        """Test Greater("age", ":v1")."""
        assert evaluate_condition(GreaterThanNode("age", ":v1"), {"age": 30}, {":v1": 25}) is True

    def test_size_equal(self):
        """Test Equal(SizeOf("tags"), ":v1")."""
        tree = EqualNode(FieldSizeNode("tags"), ":v1")
        assert evaluate_condition(tree, {"tags": ["a", "b", "c"]}, {":v1": 3}) is True

    def test_begins_with_alias(self):
        """Test BeginsWith with an aliased field name."""
        tree = BeginsWithNode(LiteralNode("#n"), ":p")
        result = evaluate_condition(tree, {"name": "hello"}, {":p": "he"}, {"#n": "name"})
        assert result is True

    def test_not_equal(self):
        """Test Not(Equal("a", ":v1"))."""
        tree = NotNode(EqualNode("a", ":v1"))
        assert evaluate_condition(tree, {"a": 5}, {":v1": 5}) is False

    def test_empty_and(self):
        """Test And([]) is vacuously true."""
        assert evaluate_condition(AndNode(()), {"a": 1}) is True

    def test_empty_or(self):
        """Test Or([]) is false."""
        assert evaluate_condition(OrNode(()), {"a": 1}) is False


class TestExists:
    """Tests for attribute_exists / attribute_not_exists."""

    def test_present_and_absent(self):
        """Test exists on present and absent fields."""
        assert evaluate(ExistsNode("age"), DOCUMENT) is True
        assert evaluate(ExistsNode("missing"), DOCUMENT) is False

    def test_null_exists(self):
        """Test an explicit null counts as present."""
        assert evaluate(ExistsNode("nothing"), DOCUMENT) is True

    def test_not_exists(self):
        """Test the negated form."""
        assert evaluate(ExistsNode("missing", exists=False), DOCUMENT) is True
        assert evaluate(ExistsNode("age", exists=False), DOCUMENT) is False

    def test_nested_path(self):
        """Test nested paths are resolved by the locator."""
        assert evaluate(ExistsNode("profile.city"), DOCUMENT) is True
        assert evaluate(ExistsNode("profile.langs[1]"), DOCUMENT) is True
        assert evaluate(ExistsNode("profile.langs[2]"), DOCUMENT) is False


class TestComparisons:
    """Tests for comparison nodes."""

    @pytest.mark.parametrize("node,expected", [
        (EqualNode("age", ":v"), False),
        (NotEqualNode("age", ":v"), True),
        (LessThanNode("age", ":v"), False),
        (LessThanOrEqualNode("age", ":v"), False),
        (GreaterThanNode("age", ":v"), True),
        (GreaterThanOrEqualNode("age", ":v"), True),
    ])
    def test_operators(self, node, expected):
        """Test each operator against age=30, :v=25."""
        assert evaluate(node, DOCUMENT, {":v": 25}) is expected

    def test_missing_field_is_false(self):
        """Test comparing a missing field is no match."""
        assert evaluate(EqualNode("missing", ":v"), DOCUMENT, {":v": 1}) is False
        assert evaluate(LessThanNode("missing", ":v"), DOCUMENT, {":v": 1}) is False

    def test_missing_field_not_equal(self):
        """Test <> on a missing field is the negation of no match."""
        assert evaluate(NotEqualNode("missing", ":v"), DOCUMENT, {":v": 1}) is True

    def test_missing_placeholder_is_false(self):
        """Test a missing placeholder is no match."""
        assert evaluate(EqualNode("age", ":nope"), DOCUMENT, {}) is False

    def test_cross_kind_is_false(self):
        """Test 30 vs "30" is never equal."""
        assert evaluate(EqualNode("age", ":v"), DOCUMENT, {":v": "30"}) is False
        assert evaluate(GreaterThanNode("age", ":v"), DOCUMENT, {":v": "1"}) is False

    def test_null_equality(self):
        """Test null equals null."""
        assert evaluate(EqualNode("nothing", ":v"), DOCUMENT, {":v": None}) is True

    def test_size_missing_is_zero(self):
        """Test size() of a missing field compares as 0."""
        tree = EqualNode(FieldSizeNode("missing"), ":v")
        assert evaluate(tree, DOCUMENT, {":v": 0}) is True

    def test_size_of_string_and_map(self):
        """Test size() of string and map."""
        assert evaluate(EqualNode(FieldSizeNode("name"), ":v"), DOCUMENT, {":v": 5}) is True
        assert evaluate(EqualNode(FieldSizeNode("profile"), ":v"), DOCUMENT, {":v": 2}) is True
        assert evaluate(LessThanNode(FieldSizeNode("colors"), ":v"), DOCUMENT, {":v": 3}) is True

    def test_size_of_boolean_raises(self):
        """Test size() of a boolean is an error."""
        with pytest.raises(InvalidArgumentTypeError):
            evaluate(EqualNode(FieldSizeNode("active"), ":v"), DOCUMENT, {":v": 1})


class TestBetween:
    """Tests for BETWEEN."""

    @pytest.mark.parametrize("low,high,expected", [
        (25, 35, True),
        (30, 30, True),
        (31, 40, False),
        (10, 29, False),
    ])
    def test_inclusive(self, low, high, expected):
        """Test both bounds are inclusive."""
        tree = BetweenNode("age", ":lo", ":hi")
        assert evaluate(tree, DOCUMENT, {":lo": low, ":hi": high}) is expected

    def test_negate(self):
        """Test NOT BETWEEN is the complement."""
        tree = BetweenNode("age", ":lo", ":hi", negate=True)
        assert evaluate(tree, DOCUMENT, {":lo": 25, ":hi": 35}) is False
        assert evaluate(tree, DOCUMENT, {":lo": 31, ":hi": 35}) is True

    def test_strings(self):
        """Test string ranges."""
        tree = BetweenNode("name", ":lo", ":hi")
        assert evaluate(tree, DOCUMENT, {":lo": "a", ":hi": "m"}) is True

    def test_size(self):
        """Test BETWEEN on size()."""
        tree = BetweenNode(FieldSizeNode("tags"), ":lo", ":hi")
        assert evaluate(tree, DOCUMENT, {":lo": 1, ":hi": 3}) is True


class TestInList:
    """Tests for IN."""

    def test_member(self):
        """Test membership."""
        tree = InListNode("name", (":a", ":b"))
        assert evaluate(tree, DOCUMENT, {":a": "bye", ":b": "hello"}) is True
        assert evaluate(tree, DOCUMENT, {":a": "bye", ":b": "hi"}) is False

    def test_same_kind_equality(self):
        """Test membership uses same-kind equality."""
        tree = InListNode("age", (":a",))
        assert evaluate(tree, DOCUMENT, {":a": "30"}) is False
        assert evaluate(tree, DOCUMENT, {":a": 30.0}) is True

    def test_negate(self):
        """Test NOT IN inverts the result."""
        tree = InListNode("name", (":a",), negate=True)
        assert evaluate(tree, DOCUMENT, {":a": "hello"}) is False
        assert evaluate(tree, DOCUMENT, {":a": "other"}) is True

    def test_missing_field(self):
        """Test a missing field is never in the list."""
        assert evaluate(InListNode("missing", (":a",)), DOCUMENT, {":a": 1}) is False
        assert evaluate(InListNode("missing", (":a",), negate=True), DOCUMENT, {":a": 1}) is True


class TestFunctions:
    """Tests for function nodes."""

    def test_begins_with(self):
        """Test begins_with on strings and binary."""
        assert evaluate(BeginsWithNode("name", ":p"), DOCUMENT, {":p": "he"}) is True
        assert evaluate(BeginsWithNode("blob", ":p"), DOCUMENT, {":p": b"\x01\x02"}) is True
        assert evaluate(BeginsWithNode("blob", ":p"), DOCUMENT, {":p": "he"}) is False

    def test_begins_with_missing(self):
        """Test begins_with on missing field or prefix."""
        assert evaluate(BeginsWithNode("missing", ":p"), DOCUMENT, {":p": "he"}) is False
        assert evaluate(BeginsWithNode("name", ":p"), DOCUMENT, {}) is False

    def test_begins_with_bad_prefix_raises(self):
        """Test begins_with with a numeric prefix raises."""
        with pytest.raises(InvalidArgumentTypeError):
            evaluate(BeginsWithNode("name", ":p"), DOCUMENT, {":p": 1})

    def test_contains(self):
        """Test contains on strings, arrays and sets."""
        assert evaluate(ContainsNode("name", ":v"), DOCUMENT, {":v": "ell"}) is True
        assert evaluate(ContainsNode("tags", ":v"), DOCUMENT, {":v": "b"}) is True
        assert evaluate(ContainsNode("colors", ":v"), DOCUMENT, {":v": "red"}) is True
        assert evaluate(ContainsNode("colors", ":v"), DOCUMENT, {":v": "green"}) is False

    def test_contains_unsupported_is_false(self):
        """Test contains on a number is no match, not an error."""
        assert evaluate(ContainsNode("age", ":v"), DOCUMENT, {":v": 3}) is False

    def test_field_type(self):
        """Test field_type checks."""
        assert evaluate(FieldTypeNode("colors", ":t"), DOCUMENT, {":t": "SS"}) is True
        assert evaluate(FieldTypeNode("tags", ":t"), DOCUMENT, {":t": "SS"}) is False
        assert evaluate(FieldTypeNode("tags", ":t"), DOCUMENT, {":t": "L"}) is True
        assert evaluate(FieldTypeNode("nothing", ":t"), DOCUMENT, {":t": "NULL"}) is True

    def test_field_type_missing_field(self):
        """Test field_type on a missing field is false."""
        assert evaluate(FieldTypeNode("missing", ":t"), DOCUMENT, {":t": "S"}) is False

    def test_field_type_bad_code_raises(self):
        """Test unresolvable type codes raise."""
        with pytest.raises(UnresolvableTypeCodeError):
            evaluate(FieldTypeNode("name", ":t"), DOCUMENT, {})
        with pytest.raises(UnresolvableTypeCodeError):
            evaluate(FieldTypeNode("name", ":t"), DOCUMENT, {":t": "STRING"})


class TestLogical:
    """Tests for logical nodes and short-circuiting."""

    def test_and_or_not(self):
        """Test connectives."""
        true_node = ExistsNode("name")
        false_node = ExistsNode("missing")
        assert evaluate(AndNode((true_node, true_node)), DOCUMENT) is True
        assert evaluate(AndNode((true_node, false_node)), DOCUMENT) is False
        assert evaluate(OrNode((false_node, true_node)), DOCUMENT) is True
        assert evaluate(OrNode((false_node, false_node)), DOCUMENT) is False
        assert evaluate(NotNode(false_node), DOCUMENT) is True

    def test_and_short_circuits(self):
        """Test AND stops at the first false child."""
        locator = RecordingLocator()
        tree = AndNode((ExistsNode("missing"), ExistsNode("name")))
        assert evaluate(tree, DOCUMENT, locator=locator) is False
        assert locator.paths == ["missing"]

    def test_or_short_circuits(self):
        """Test OR stops at the first true child."""
        locator = RecordingLocator()
        tree = OrNode((ExistsNode("name"), ExistsNode("missing")))
        assert evaluate(tree, DOCUMENT, locator=locator) is True
        assert locator.paths == ["name"]

    def test_short_circuit_skips_errors(self):
        """Test a skipped child cannot raise."""
        tree = OrNode((ExistsNode("name"), FieldTypeNode("name", ":undefined")))
        assert evaluate(tree, DOCUMENT) is True


class TestAliases:
    """Tests for alias substitution during evaluation."""

    def test_longest_alias_first(self):
        """Test '#ab' resolves to its own field, not '#a' + 'b'."""
        document = {"x": 1, "xb": 2, "y": 3}
        aliases = {"#a": "x", "#ab": "y"}
        tree = EqualNode("#ab", ":v")
        assert evaluate(tree, document, {":v": 3}, aliases) is True
        assert evaluate(tree, document, {":v": 2}, aliases) is False

    def test_alias_in_nested_path(self):
        """Test aliases inside nested paths."""
        tree = EqualNode("#p.#c", ":v")
        aliases = {"#p": "profile", "#c": "city"}
        assert evaluate(tree, DOCUMENT, {":v": "Oslo"}, aliases) is True

    def test_alias_in_size_and_predicates(self):
        """Test aliases apply to size() and function fields."""
        aliases = {"#t": "tags"}
        assert evaluate(EqualNode(FieldSizeNode("#t"), ":v"), DOCUMENT, {":v": 3}, aliases) is True
        assert evaluate(ContainsNode("#t", ":v"), DOCUMENT, {":v": "a"}, aliases) is True
        assert evaluate(ExistsNode("#t"), DOCUMENT, {}, aliases) is True

    def test_explicit_token_order(self):
        """Test a caller-supplied token order is used as given."""
        document = {"xb": 2}
        aliases = {"#a": "x", "#ab": "y"}
        tree = EqualNode("#ab", ":v")
        result = evaluate(tree, document, {":v": 2}, aliases, sorted_alias_tokens=["#a", "#ab"])
        assert result is True


class TestErrors:
    """Tests for structural errors."""

    def test_unrecognized_object(self):
        """Test non-node objects are rejected."""
        with pytest.raises(UnrecognizedNodeError):
            evaluate("name = :v", DOCUMENT)

    def test_unrecognized_child(self):
        """Test non-node children are rejected."""
        with pytest.raises(UnrecognizedNodeError):
            evaluate(AndNode((ExistsNode("name"), object())), DOCUMENT)

    def test_literal_as_condition(self):
        """Test literals are not conditions."""
        with pytest.raises(UnrecognizedNodeError) as exc_info:
            evaluate(LiteralNode("name"), DOCUMENT)
        assert exc_info.value.details["node_kind"] == "literal"

    def test_size_as_condition(self):
        """Test size() is not a condition."""
        with pytest.raises(UnrecognizedNodeError):
            evaluate(FieldSizeNode("tags"), DOCUMENT)

    def test_bad_comparison_operand(self):
        """Test comparison operands must be literals or size()."""
        with pytest.raises(UnrecognizedNodeError):
            evaluate(EqualNode(ExistsNode("name"), ":v"), DOCUMENT, {":v": 1})

    def test_error_to_dict(self):
        """Test errors serialize with their code."""
        with pytest.raises(UnresolvableTypeCodeError) as exc_info:
            evaluate(FieldTypeNode("name", ":t"), DOCUMENT, {":t": "Q"})
        payload = exc_info.value.to_dict()
        assert payload["error"]["code"] == "UnresolvableTypeCode"


class TestDepthGuard:
    """Tests for the nesting depth guard."""

    @staticmethod
    def nested_not(depth):
        node = ExistsNode("name")
        for _ in range(depth):
            node = NotNode(node)
        return node

    def test_within_limit(self):
        """Test trees at the limit evaluate."""
        assert evaluate(self.nested_not(4), DOCUMENT, max_depth=5) is True

    def test_exceeds_limit(self):
        """Test deeper trees raise."""
        with pytest.raises(ExpressionDepthExceededError) as exc_info:
            evaluate(self.nested_not(5), DOCUMENT, max_depth=5)
        assert exc_info.value.max_depth == 5

    def test_configured_limit(self):
        """Test ConditionEvaluator uses the configured limit."""
        evaluator = ConditionEvaluator(EvaluatorConfig(max_depth=3))
        with pytest.raises(ExpressionDepthExceededError):
            evaluator.evaluate(self.nested_not(3), DOCUMENT)


class TestConditionEvaluator:
    """Tests for the configured evaluator."""

    def test_none_inputs_are_false(self, caplog):
        """Test missing tree or document is logged and false."""
        evaluator = ConditionEvaluator()
        with caplog.at_level(logging.WARNING, logger="condexpr"):
            assert evaluator.evaluate(None, DOCUMENT) is False
            assert evaluator.evaluate(ExistsNode("name"), None) is False
        assert "empty" in caplog.text

    def test_top_level_locator(self):
        """Test nested paths can be turned off."""
        evaluator = ConditionEvaluator(EvaluatorConfig(nested_paths=False))
        assert evaluator.evaluate(ExistsNode("profile.city"), DOCUMENT) is False
        assert evaluator.evaluate(ExistsNode("profile"), DOCUMENT) is True

    def test_custom_locator(self):
        """Test an injected locator is used."""
        locator = RecordingLocator()
        evaluator = ConditionEvaluator(locator=locator)
        evaluator.evaluate(ExistsNode("#n"), DOCUMENT, aliases={"#n": "name"})
        assert locator.paths == ["name"]

    def test_filter_documents(self):
        """Test filtering yields matching documents lazily."""
        documents = [{"age": 20}, {"age": 40}, {"name": "x"}, {"age": 35}]
        evaluator = ConditionEvaluator()
        matches = evaluator.filter_documents(GreaterThanNode("age", ":v"), documents, {":v": 30})
        assert next(matches) == {"age": 40}
        assert list(matches) == [{"age": 35}]

    def test_filter_documents_error_aborts(self):
        """Test an error on one document stops filtering."""
        documents = [{"t": "a"}, {"t": True}]
        evaluator = ConditionEvaluator()
        matches = evaluator.filter_documents(BeginsWithNode("t", ":p"), documents, {":p": 5})
        with pytest.raises(InvalidArgumentTypeError):
            list(matches)

    def test_inputs_not_mutated(self):
        """Test evaluation leaves inputs untouched."""
        document = {"tags": ["a"], "n": 1}
        placeholders = {":v": 1}
        aliases = {"#t": "tags"}
        tree = AndNode((ContainsNode("#t", ":s"), EqualNode("n", ":v")))
        evaluate_condition(tree, document, {**placeholders, ":s": "a"}, aliases)
        assert document == {"tags": ["a"], "n": 1}
        assert aliases == {"#t": "tags"}


class TestStackSafety:
    """Tests for trees deeper than the interpreter stack."""

    def test_recursion_reported_as_depth_error(self):
        """Test running out of stack raises a condition error."""
        node = ExistsNode("name")
        for _ in range(5000):
            node = NotNode(node)

        with pytest.raises(ExpressionDepthExceededError):
            evaluate(node, DOCUMENT, max_depth=100000)

    def test_configured_maximum_is_stack_safe(self):
        """Test the largest configurable depth limit is enforced as a depth error."""
        node = ExistsNode("name")
        for _ in range(2000):
            node = NotNode(node)

        evaluator = ConditionEvaluator(EvaluatorConfig(max_depth=256))
        with pytest.raises(ExpressionDepthExceededError) as exc_info:
            evaluator.evaluate(node, DOCUMENT)
        assert exc_info.value.max_depth == 256

    def test_non_string_placeholder_literal(self):
        """Test a placeholder literal holding a non-string is unrecognized."""
        with pytest.raises(UnrecognizedNodeError):
            evaluate(EqualNode("age", LiteralNode([1])), DOCUMENT, {":v": 1})
