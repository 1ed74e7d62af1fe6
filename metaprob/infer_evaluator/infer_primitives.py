"""
Builtin procedures of the top-level environment.

InferPrimitives builds the generic `apply` and `map` special procedures
against one evaluator, and assembles the top-level environment from them and
the foreign (plain Python) helpers defined in this module.
"""
import functools
import logging
import math
import operator
from typing import Any, Dict, List, Optional, Sequence, TYPE_CHECKING, Tuple

from metaprob.infer_evaluator.infer_environment import TopLevelEnvironment
from metaprob.infer_evaluator.infer_procedure import InferProcedure, make_infer_procedure
from metaprob.system.errors import InvalidInputsError, PatternArityError
from metaprob.trace.trace import Trie, addr, lookup, maybe_subtrie, same_trace_states

if TYPE_CHECKING:
    from .infer_evaluator import InferEvaluator

logger = logging.getLogger(__name__)


# --- Foreign helpers ---

def add(*args: Any) -> Any:
    if not args:
        return 0
    return functools.reduce(operator.add, args)


def subtract(first: Any, *rest: Any) -> Any:
    if not rest:
        return -first
    return functools.reduce(operator.sub, rest, first)


def multiply(*args: Any) -> Any:
    return functools.reduce(operator.mul, args, 1)


def divide(first: Any, *rest: Any) -> Any:
    if not rest:
        return 1 / first
    return functools.reduce(operator.truediv, rest, first)


def equal(a: Any, b: Any) -> bool:
    return same_trace_states(a, b)


def not_equal(a: Any, b: Any) -> bool:
    return not same_trace_states(a, b)


def logical_not(x: Any) -> bool:
    return x is None or x is False


def make_list(*items: Any) -> list:
    return list(items)


def make_tuple(*items: Any) -> tuple:
    return tuple(items)


def pair(head: Any, tail: Any) -> Any:
    """Prepends `head` to the sequence `tail`, keeping its list/tuple type."""
    if isinstance(tail, tuple):
        return (head,) + tail
    if isinstance(tail, list):
        return [head] + tail
    raise InvalidInputsError("pair: second argument must be a list or tuple", expression=tail)


def first(seq: Sequence) -> Any:
    return seq[0]


def rest(seq: Sequence) -> Sequence:
    return seq[1:]


def nth(seq: Sequence, i: int) -> Any:
    return seq[i]


def length(seq: Sequence) -> int:
    return len(seq)


def int_range(n: int) -> list:
    return list(range(n))


BUILTINS: Dict[str, Any] = {
    "+": add,
    "-": subtract,
    "*": multiply,
    "/": divide,
    "=": equal,
    "eq": equal,
    "neq": not_equal,
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
    "not": logical_not,
    "list": make_list,
    "tuple": make_tuple,
    "pair": pair,
    "addr": addr,
    "first": first,
    "rest": rest,
    "nth": nth,
    "length": length,
    "range": int_range,
    "exp": math.exp,
    "log": math.log,
}


class InferPrimitives:
    """
    Special procedures defined directly against `evaluator.infer_apply`.

    Args:
        evaluator_instance: The InferEvaluator whose infer_apply the
                            primitives recurse through.
    """

    def __init__(self, evaluator_instance: 'InferEvaluator'):
        self.evaluator = evaluator_instance
        self.apply: InferProcedure = make_infer_procedure("apply", self.apply_infer_method)
        self.map: InferProcedure = make_infer_procedure("map", self.map_infer_method)
        logger.debug("InferPrimitives initialized.")

    def apply_infer_method(self, inputs: Sequence[Any], intervene: Optional[Trie],
                           target: Optional[Trie], output: Optional[Trie]) -> Tuple[Any, float]:
        """(apply proc args): applies `proc` to the sequence `args` under the same overlays."""
        if len(inputs) != 2:
            reason = "too few inputs" if len(inputs) < 2 else "too many inputs"
            raise PatternArityError(reason, inputs, 2, "(proc args)")
        proc, args = inputs
        return self.evaluator.infer_apply(proc, args, intervene, target, output)

    def map_infer_method(self, inputs: Sequence[Any], intervene: Optional[Trie],
                         target: Optional[Trie], output: Optional[Trie]) -> Tuple[Any, float]:
        """
        (map fun seq): applies `fun` to each element, element `i` using the
        overlays found at address `(i,)`. Returns a list or tuple matching
        the input and the summed score.
        """
        if len(inputs) != 2:
            reason = "too few inputs" if len(inputs) < 2 else "too many inputs"
            raise PatternArityError(reason, inputs, 2, "(fun seq)")
        fun, sequence = inputs
        if not isinstance(sequence, (list, tuple)):
            raise InvalidInputsError("map: second argument must be a list or tuple", expression=sequence)

        values: List[Any] = []
        total = 0.0
        for i, item in enumerate(sequence):
            value, score = self.evaluator.infer_apply(
                fun, [item], maybe_subtrie(intervene, i), maybe_subtrie(target, i), lookup(output, i))
            values.append(value)
            total += score
        result = tuple(values) if isinstance(sequence, tuple) else values
        if output is not None:
            output.set(result)
        return result, total

    def make_top_level(self, extra: Optional[Dict[str, Any]] = None) -> TopLevelEnvironment:
        """A top-level environment with the builtins, `apply`, `map` and `extra`."""
        bindings = dict(BUILTINS)
        bindings["apply"] = self.apply
        bindings["map"] = self.map
        if extra:
            bindings.update(extra)
        logger.debug(f"Top-level environment with {len(bindings)} names")
        return TopLevelEnvironment(bindings)
