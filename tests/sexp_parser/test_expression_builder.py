"""
Unit tests for the expression constructors and ExpressionBuilder.
"""

import pytest

from metaprob.sexp_parser.expression_builder import (
    application, block, definition, gen, if_, literal, parse_expression, parse_program,
    rest_marker, this, tuple_pattern, variable, with_address,
)
from metaprob.system.errors import ExpressionSyntaxError, SexpSyntaxError
from metaprob.system.models import ExpressionKind, PatternKind

# --- Constructors ---

def test_constructed_nodes_are_immutable():
    """Test that built expression nodes are immutable."""
    node = application(variable("f"), literal(1))
    assert not node.mutable
    assert not node.subtrie(0).mutable

def test_definition_stores_rhs_under_its_name():
    """Test the layout of a simple definition node."""
    node = definition(variable("x"), literal(3))
    assert node.get() == ExpressionKind.DEFINITION.value
    assert node.keys() == ["pattern", "x"]
    assert node.get_at(("x", "value")) == 3

def test_definition_with_tuple_pattern_uses_definiens():
    """Test the layout of a tuple definition node."""
    node = definition(tuple_pattern(variable("a"), variable("b")), literal([1, 2]))
    assert node.has_subtrie("definiens")

def test_definition_named_pattern_is_rejected():
    """Test defining the reserved name pattern."""
    with pytest.raises(ExpressionSyntaxError):
        definition(variable("pattern"), literal(1))

def test_if_without_else_gets_none_literal():
    """Test building an if without an else branch."""
    node = if_(literal(True), literal(1))
    assert node.get_at(("else", "value")) is None

# --- Building from text ---

def test_atoms():
    """Test building atoms."""
    assert parse_expression("42") == literal(42)
    assert parse_expression("\"s\"") == literal("s")
    assert parse_expression("true") == literal(True)
    assert parse_expression("nil") == literal(None)
    assert parse_expression("x") == variable("x")

def test_quote_forms():
    """Test building quoted data."""
    assert parse_expression("(quote (a 1))") == literal(["a", 1])
    assert parse_expression("'sym") == literal("sym")
    assert parse_expression("'(x 2)") == literal(["x", 2])

def test_application():
    """Test building an application."""
    assert parse_expression("(f 1 y)") == application(variable("f"), literal(1), variable("y"))

def test_empty_list_is_empty_list_literal():
    """Test building the empty list."""
    assert parse_expression("()") == literal([])

def test_gen_with_parameter_list():
    """Test building gen with a parameter list."""
    expected = gen(tuple_pattern(variable("a"), rest_marker(), variable("more")), variable("a"))
    assert parse_expression("(gen (a & more) a)") == expected

def test_gen_with_symbol_parameter_binds_all_inputs():
    """Test building gen with a single parameter symbol."""
    assert parse_expression("(gen args args)") == gen(variable("args"), variable("args"))

def test_gen_with_several_body_forms_builds_block():
    """Test building gen with several body forms."""
    node = parse_expression("(gen () 1 2)")
    assert node.subtrie("body") == block(literal(1), literal(2))
    assert node.subtrie("pattern").get() == PatternKind.TUPLE.value

def test_define_names_its_gen():
    """Test that define names the procedure it defines."""
    node = parse_expression("(define f (gen (x) x))")
    assert node.get_at(("f", "name")) == "f"

def test_special_forms():
    """Test building the remaining special forms."""
    assert parse_expression("(if p 1 2)") == if_(variable("p"), literal(1), literal(2))
    assert parse_expression("(block)") == block()
    assert parse_expression("(this)") == this()
    assert parse_expression("(with-address t e)") == with_address(variable("t"), variable("e"))

@pytest.mark.parametrize("text", [
    "(gen (x))",
    "(define x)",
    "(define x 1 2)",
    "(if p)",
    "(if p 1 2 3)",
    "(this 1)",
    "(with-address t)",
    "(quote)",
    "(gen (1) x)",
])
def test_malformed_special_forms(text):
    """Test building malformed special forms."""
    with pytest.raises(ExpressionSyntaxError):
        parse_expression(text)

def test_parse_program_wraps_several_forms_in_block():
    """Test parsing a program of several forms."""
    assert parse_program("(define x 1) x") == block(definition(variable("x"), literal(1)), variable("x"))
    assert parse_program("x") == variable("x")

def test_parse_program_syntax_error():
    """Test parsing a program with a syntax error."""
    with pytest.raises(SexpSyntaxError):
        parse_program("(block")
