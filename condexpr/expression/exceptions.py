"""
Condition Expression Exception Hierarchy

Structural and contract errors raised while evaluating a condition expression.
Data that is merely absent or of a different kind never raises; it evaluates
to False instead.
"""

from typing import Any, Dict, Optional


class ConditionExpressionError(Exception):
    """
    Base exception for all condition expression errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., 'UnrecognizedNodeKind')
        details: Additional context (node kind, function name, etc.)
    """

    error_code: str = "ConditionExpressionError"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


class UnrecognizedNodeError(ConditionExpressionError):
    """Raised when the tree contains a node the evaluator does not implement."""
    error_code = "UnrecognizedNodeKind"

    def __init__(self, node: Any, message: Optional[str] = None):
        node_kind = getattr(getattr(node, "node_type", None), "value", type(node).__name__)
        message = message or f"Node {node!r} is not recognized for document comparison"
        super().__init__(message, details={"node_kind": node_kind})


class InvalidArgumentTypeError(ConditionExpressionError):
    """Raised when a function receives an operand of an unsupported kind."""
    error_code = "InvalidArgumentType"

    def __init__(
        self,
        function: str,
        reason: str,
        actual: Optional[str] = None,
        message: Optional[str] = None
    ):
        message = message or f"{function}(): {reason}"
        details = {"function": function, "reason": reason}
        if actual is not None:
            details["actual"] = actual
        super().__init__(message, details=details)


class UnresolvableTypeCodeError(ConditionExpressionError):
    """Raised when field_type() cannot resolve its type code."""
    error_code = "UnresolvableTypeCode"

    def __init__(self, placeholder: str, type_code: Any = None, message: Optional[str] = None):
        if message is None:
            if type_code is None:
                message = (
                    f"Value for type placeholder '{placeholder}' was not found "
                    "in the placeholder table"
                )
            else:
                message = (
                    f"Unsupported type in field_type(): {type_code!r}, "
                    "valid types: {S,N,B,BOOL,NULL,L,M,SS,NS,BS}"
                )
        details = {"placeholder": placeholder}
        if type_code is not None:
            details["type_code"] = repr(type_code)
        super().__init__(message, details=details)


class ExpressionDepthExceededError(ConditionExpressionError):
    """Raised when the expression tree is nested deeper than allowed."""
    error_code = "ExpressionDepthExceeded"

    def __init__(self, max_depth: int):
        super().__init__(
            f"Expression tree exceeds maximum depth of {max_depth}",
            details={"max_depth": max_depth}
        )
        self.max_depth = max_depth


class InvalidExpressionTreeError(ConditionExpressionError):
    """Raised when a tree document or typed JSON value cannot be decoded."""
    error_code = "InvalidExpressionTree"
