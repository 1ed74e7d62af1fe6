"""
Tests for the builtin procedures: generic apply and map, the foreign
helpers, special procedures, and this / with-address.
"""

import pytest

from metaprob.infer_evaluator.infer_environment import TopLevelEnvironment
from metaprob.infer_evaluator.infer_evaluator import InferEvaluator
from metaprob.infer_evaluator.infer_primitives import BUILTINS
from metaprob.infer_evaluator.infer_procedure import InferProcedure, is_foreign_procedure, make_infer_procedure
from metaprob.infer_evaluator.infer_tag_address import TraceContext
from metaprob.sexp_parser.expression_builder import parse_program
from metaprob.system.errors import InvalidTagAddressError, PatternArityError
from metaprob.trace.trace import Trie, trie_from_addresses

# --- Foreign helpers ---

@pytest.mark.parametrize("program, expected", [
    ("(+ 1 2 3)", 6),
    ("(- 10 4 1)", 5),
    ("(- 3)", -3),
    ("(* 2 3 4)", 24),
    ("(/ 12 4)", 3.0),
    ("(< 1 2)", True),
    ("(>= 1 2)", False),
    ("(not nil)", True),
    ("(not 0)", False),
    ("(eq (list 1 2) (tuple 1 2))", True),
    ("(neq 1 2)", True),
    ("(pair 1 (list 2 3))", [1, 2, 3]),
    ("(first (list 4 5))", 4),
    ("(rest (tuple 1 2 3))", (2, 3)),
    ("(nth (list 4 5 6) 2)", 6),
    ("(length (list 1 2))", 2),
    ("(range 3)", [0, 1, 2]),
    ("(addr 1 \"x\")", (1, "x")),
])
def test_foreign_helpers(run, program, expected):
    """Test the host helper procedures."""
    value, score = run(program)
    assert value == expected
    assert score == 0

def test_builtins_are_foreign_procedures():
    """Test that every builtin is a plain callable."""
    assert all(is_foreign_procedure(proc) for proc in BUILTINS.values())

def test_extra_bindings_extend_top_level(settings):
    """Test adding bindings to the top level."""
    ev = InferEvaluator(settings=settings, extra_bindings={"double": lambda x: 2 * x})
    assert isinstance(ev.top_level, TopLevelEnvironment)
    assert ev.top_level.lookup("double")(4) == 8
    assert ev.top_level.lookup("+") is BUILTINS["+"]

# --- Special procedures ---

def test_make_infer_procedure_names_and_calls():
    """Test naming and direct calls of special procedures."""
    proc = make_infer_procedure("const", lambda inputs, i, t, o: ("constant", -1.0))
    assert isinstance(proc, InferProcedure)
    assert proc.name == "inf-const"
    # Called from Python: untraced, value only
    assert proc(1, 2) == "constant"

def test_special_procedure_result_is_returned_unmodified(evaluator):
    """Test that a special procedure's result is returned as is."""
    proc = make_infer_procedure("const", lambda inputs, i, t, o: ("constant", -1.0))
    # The target is the special procedure's own business
    assert evaluator.infer_apply(proc, [], None, Trie("ignored")) == ("constant", -1.0)

# --- apply ---

def test_apply_foreign(run, output):
    """Test apply with a foreign procedure."""
    assert run("(apply + (list 1 2 3))", output=output) == (6, 0.0)
    assert output.get_at(("apply",)) == 6

def test_apply_native_records_under_call_address(run, output):
    """Test apply with a native procedure and an output trace."""
    value, _ = run("(apply (gen (a b) (* a b)) (list 3 4))", output=output)
    assert value == 12
    assert output.get_at(("apply",)) == 12
    assert output.get_at(("apply", "*")) == 12

def test_apply_respects_target(run):
    """Test that apply passes targets to the applied procedure."""
    target = trie_from_addresses({("apply",): 0})
    assert run("(apply + (list 1 2))", target=target) == (0, 0.0)

def test_apply_arity(evaluator):
    """Test apply with the wrong number of inputs."""
    with pytest.raises(PatternArityError):
        evaluator.primitives.apply_infer_method([sum], None, None, None)

# --- map ---

def test_map_over_list(run, output):
    """Test mapping a procedure over a list."""
    value, score = run("(map (gen (x) (+ x 1)) (list 1 2 3))", output=output)
    assert value == [2, 3, 4]
    assert score == 0
    assert output.get_at(("map",)) == [2, 3, 4]
    assert output.get_at(("map", 0)) == 2
    assert output.get_at(("map", 2, "+")) == 4

def test_map_preserves_tuples(run):
    """Test that map returns a tuple for tuple input."""
    assert run("(map (gen (x) x) (tuple 1 2))")[0] == (1, 2)

def test_map_element_targets(run):
    """Test targets for individual map elements."""
    target = trie_from_addresses({("map", 1): 100})
    assert run("(map (gen (x) (+ x 1)) (list 1 2 3))", target=target)[0] == [2, 100, 4]

def test_map_sums_element_scores(settings):
    """Test that map sums the scores of its elements."""
    scored = make_infer_procedure("scored", lambda inputs, i, t, o: (inputs[0], -1.0))
    ev = InferEvaluator(settings=settings, extra_bindings={"scored": scored})
    assert ev.infer_eval(parse_program("(map scored (list 1 2 3))")) == ([1, 2, 3], -3.0)

def test_map_called_from_python(evaluator):
    """Test calling map directly from Python."""
    assert evaluator.primitives.map(lambda x: x * 2, [1, 2]) == [2, 4]

# --- this / with-address ---

def test_this_captures_context(run):
    """Test that this captures the current overlays."""
    value, score = run("(this)")
    assert isinstance(value, TraceContext)
    assert score == 0

def test_with_address_records_at_captured_location(run, output):
    """Test with-address recording relative to a captured tag."""
    program = """
    (block (define here (this))
           (with-address (pair here (addr "a")) (+ 1 2)))
    """
    value, _ = run(program, output=output)
    assert value == 3
    assert output.get_at(("a", "+")) == 3
    assert not output.has_at((0, "here"))

def test_with_address_reads_target_at_captured_location(run):
    """Test with-address reading targets relative to a captured tag."""
    program = """
    (block (define here (this))
           (with-address (pair here (addr "a" 0)) (+ 1 2)))
    """
    target = trie_from_addresses({("a", 0, "+"): 10})
    assert run(program, target=target)[0] == 10

def test_with_address_inside_procedure_is_relative_to_its_call(run, output):
    """Test with-address inside a procedure body."""
    program = """
    (block (define f (gen (x) (block (define here (this))
                                     (with-address (pair here (addr "slot")) (+ x 1)))))
           (f 4))
    """
    value, _ = run(program, output=output)
    assert value == 5
    assert output.get_at((1, "f", "slot", "+")) == 5

def test_with_address_requires_captured_tag(run):
    """Test with-address with a tag not captured by this."""
    with pytest.raises(InvalidTagAddressError):
        run("(with-address (list 1 2) 3)")
