"""
Unit tests for the SexpParser class.
"""

import pytest
from sexpdata import Symbol

from metaprob.sexp_parser.sexp_parser import SexpParser
from metaprob.system.errors import SexpSyntaxError


@pytest.fixture
def parser():
    """Provides a SexpParser instance for tests."""
    return SexpParser()

# --- Valid S-expressions ---

def test_parse_simple_list(parser):
    """Test parsing a simple list with symbols and literals."""
    assert parser.parse_string("(add 1 2)") == [Symbol('add'), 1, 2]

def test_parse_nested_list(parser):
    """Test parsing nested lists."""
    expected = [Symbol('list'), 1, [Symbol('inner'), Symbol('a'), Symbol('b')], 3]
    assert parser.parse_string("(list 1 (inner a b) 3)") == expected

def test_parse_atom_types(parser):
    """Test parsing various atomic types."""
    ast = parser.parse_string("(data 123 4.5 \"hello\" true false sym)")
    assert ast == [Symbol('data'), 123, 4.5, "hello", True, False, Symbol('sym')]
    assert ast[4] is True
    assert ast[5] is False

def test_nil_stays_a_symbol(parser):
    """Test that the parser leaves nil as a symbol."""
    # The expression builder maps nil to a None literal
    assert parser.parse_string("nil") == Symbol('nil')

def test_parse_empty_list(parser):
    """Test parsing the empty list."""
    assert parser.parse_string("()") == []

def test_parse_all_returns_every_form(parser):
    """Test parsing several top-level forms."""
    assert parser.parse_all("(a) 2 b") == [[Symbol('a')], 2, Symbol('b')]

def test_surrounding_whitespace_is_ignored(parser):
    """Test parsing with surrounding whitespace."""
    assert parser.parse_string("  \n 42 \t") == 42

# --- Errors ---

@pytest.mark.parametrize("text", ["", "   ", "\n"])
def test_empty_input(parser, text):
    """Test parsing empty input."""
    with pytest.raises(SexpSyntaxError, match="empty"):
        parser.parse_string(text)

def test_unbalanced_open_paren(parser):
    """Test parsing an unclosed list."""
    with pytest.raises(SexpSyntaxError, match="Unbalanced"):
        parser.parse_string("(add 1 2")

def test_unexpected_closing_paren(parser):
    """Test parsing a stray closing parenthesis."""
    with pytest.raises(SexpSyntaxError):
        parser.parse_string("(add 1 2))")

def test_multiple_expressions_rejected_by_parse_string(parser):
    """Test that parse_string accepts a single form only."""
    with pytest.raises(SexpSyntaxError, match="Unexpected content"):
        parser.parse_string("(a) (b)")

def test_non_string_input(parser):
    """Test parsing a value that is not a string."""
    with pytest.raises(TypeError):
        parser.parse_string(123)
