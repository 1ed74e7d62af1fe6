"""
Unit tests for the error types.
"""
from metaprob.system.errors import (
    BadPatternError, InferEvaluationError, PatternArityError, SexpSyntaxError, UnboundVariableError,
)


def test_evaluation_error_message_includes_expression_and_details():
    """Test the formatted message of an evaluation error."""
    error = InferEvaluationError("failed", expression="(f x)", error_details="because")
    assert error.message == "failed"
    assert "Expression: '(f x)'" in str(error)
    assert "Details: because" in str(error)

def test_pattern_arity_error_carries_diagnostics():
    """Test the diagnostics of an arity error."""
    error = PatternArityError("too few inputs", [1], 2, "pattern")
    assert isinstance(error, InferEvaluationError)
    assert error.reason == "too few inputs"
    assert error.expected == 2
    assert "length 1" in str(error)

def test_bad_pattern_error_keeps_inputs():
    """Test that a bad pattern error keeps the inputs."""
    error = BadPatternError("bad pattern", "p", inputs=[1, 2])
    assert error.inputs == [1, 2]
    assert "inputs=[1, 2]" in str(error)

def test_unbound_variable_error_names_variable():
    """Test that an unbound variable error names the variable."""
    error = UnboundVariableError("zz")
    assert error.name == "zz"
    assert "zz" in str(error)

def test_sexp_syntax_error_is_value_error():
    """Test the base class of syntax errors."""
    error = SexpSyntaxError("bad", "(a", error_details="unbalanced")
    assert isinstance(error, ValueError)
    assert error.sexp_string == "(a"
