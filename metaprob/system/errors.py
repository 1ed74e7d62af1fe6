"""
System-wide custom error types.

Every error raised by the evaluator core is fatal for the evaluation that
raised it. The one soft failure (an intervention disagreeing with a target)
is reported as a score of negative infinity, not as an exception.
"""
from typing import Any


class SexpSyntaxError(ValueError):
    """
    Custom exception raised when S-expression parsing fails due to syntax errors.
    Inherits from ValueError for general compatibility but provides specific context.
    """
    def __init__(self, message: str, sexp_string: str, error_details: str = ""):
        """
        Initializes the SexpSyntaxError.

        Args:
            message: A high-level error message.
            sexp_string: The original S-expression string that caused the error.
            error_details: Specific details from the underlying parser, if available.
        """
        full_message = f"{message}\nInput: '{sexp_string}'"
        if error_details:
            full_message += f"\nDetails: {error_details}"
        super().__init__(full_message)
        self.sexp_string = sexp_string
        self.error_details = error_details


class InferEvaluationError(Exception):
    """
    Base class for errors raised while evaluating expressions or applying
    procedures. Carries the offending expression (or value) and optional details.
    """
    def __init__(self, message: str, expression: Any = "", error_details: str = ""):
        """
        Initializes the InferEvaluationError.

        Args:
            message: A high-level error message describing the evaluation failure.
            expression: The expression node or value being processed when the error occurred.
            error_details: Specific details about the error.
        """
        full_message = f"{message}"
        if expression is not None and expression != "":
            full_message += f"\nExpression: '{expression}'"
        if error_details:
            full_message += f"\nDetails: {error_details}"
        super().__init__(full_message)
        self.message = message
        self.expression = expression
        self.error_details = error_details


class ExpressionSyntaxError(InferEvaluationError):
    """A parsed S-expression cannot be turned into an expression tree."""


class PatternArityError(InferEvaluationError):
    """
    Raised by the pattern binder when a tuple pattern and its input disagree in length.

    Attributes:
        reason: Either "too few inputs" or "too many inputs".
        inputs: The input sequence that was being destructured.
        expected: The number of sub-patterns in the tuple pattern.
        pattern: The tuple pattern.
    """
    def __init__(self, reason: str, inputs: Any, expected: int, pattern: Any):
        super().__init__(
            reason,
            expression=pattern,
            error_details=f"inputs={list(inputs)!r} (length {len(inputs)}), expected {expected} sub-patterns",
        )
        self.reason = reason
        self.inputs = inputs
        self.expected = expected
        self.pattern = pattern


class BadPatternError(InferEvaluationError):
    """A pattern node is neither a variable nor a tuple, or misuses the rest marker."""
    def __init__(self, message: str, pattern: Any, inputs: Any = None):
        super().__init__(message, expression=pattern,
                         error_details=f"inputs={inputs!r}" if inputs is not None else "")
        self.pattern = pattern
        self.inputs = inputs


class BadEnvironmentError(InferEvaluationError):
    """An attempt was made to bind a name outside of a frame (e.g. at top level)."""


class UnboundVariableError(InferEvaluationError):
    """No frame and no top-level resolver knows the name."""
    def __init__(self, name: str):
        super().__init__(f"Unbound variable: '{name}' is not defined.")
        self.name = name


class NotAProcedureError(InferEvaluationError):
    """The value in call position is neither native, foreign, nor special."""


class UnknownExpressionKindError(InferEvaluationError):
    """An expression node's discriminant lies outside the closed set of kinds."""


class InvalidKeyError(InferEvaluationError):
    """A computed address key fails the address-key validity check."""


class InvalidInputsError(InferEvaluationError):
    """Procedure inputs are not a list or tuple, or the output trace is not a mutable trie."""


class InvalidTagAddressError(InferEvaluationError):
    """A quasi-address does not begin with a tag captured by `this`."""


class ReadOnlyTrieError(InferEvaluationError):
    """A mutation was attempted on an immutable trie."""


class InferenceBudgetExceededError(InferEvaluationError):
    """An inference loop exhausted its iteration budget without producing a sample."""
