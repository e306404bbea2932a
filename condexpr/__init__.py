"""
condexpr: condition-expression evaluation for document data.

Evaluates parsed condition expressions (comparisons, boolean connectives and
document functions) against decoded documents.
"""

__version__ = "0.1.0"

from .expression.evaluator import ConditionEvaluator, evaluate_condition

__all__ = ["ConditionEvaluator", "evaluate_condition", "__version__"]
