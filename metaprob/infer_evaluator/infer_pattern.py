"""
Destructuring of parameter patterns against argument sequences.
"""

import logging
from typing import Any, Sequence

from metaprob.infer_evaluator.infer_environment import env_bind
from metaprob.system.errors import BadPatternError, PatternArityError
from metaprob.system.models import PatternKind
from metaprob.trace.trace import Address, Trie, addr

logger = logging.getLogger(__name__)

DEFINIENS_KEY = "definiens"


def _kind(pattern: Any) -> Any:
    if isinstance(pattern, Trie) and pattern.has():
        return pattern.get()
    return None


def is_rest_marker(pattern: Any) -> bool:
    return _kind(pattern) == PatternKind.REST_MARKER.value


def _as_sequence(inputs: Any, pattern: Trie) -> Sequence:
    if isinstance(inputs, (list, tuple)):
        return inputs
    try:
        return list(inputs)
    except TypeError:
        raise BadPatternError("tuple pattern needs a list or tuple of inputs", pattern, inputs) from None


def match_bind(pattern: Trie, inputs: Any, env: Any) -> None:
    """
    Binds the names in `pattern` to the corresponding parts of `inputs` in `env`.

    A variable pattern binds the whole input. A tuple pattern walks the input
    element by element; when its second-to-last sub-pattern is the rest
    marker `&`, the last sub-pattern receives the remaining inputs (possibly
    empty) as one sequence of the same type as the input.

    Raises:
        PatternArityError: "too few inputs" / "too many inputs".
        BadPatternError: Unknown pattern kind, or a rest marker anywhere
                         other than second-to-last.
    """
    kind = _kind(pattern)
    if kind == PatternKind.VARIABLE.value:
        env_bind(env, pattern.get_at("name"), inputs)
        return
    if kind != PatternKind.TUPLE.value:
        raise BadPatternError("bad pattern", pattern, inputs)

    count = pattern.count()
    for i in range(count):
        if is_rest_marker(pattern.subtrie(i)) and i != count - 2:
            raise BadPatternError("rest marker '&' is only supported as the second-to-last sub-pattern",
                                  pattern, inputs)

    sequence = _as_sequence(inputs, pattern)
    cursor = 0
    i = 0
    while i < count:
        if i == count - 2 and is_rest_marker(pattern.subtrie(i)):
            match_bind(pattern.subtrie(i + 1), sequence[cursor:], env)
            return
        if cursor >= len(sequence):
            raise PatternArityError("too few inputs", sequence, count, pattern)
        match_bind(pattern.subtrie(i), sequence[cursor], env)
        cursor += 1
        i += 1
    if cursor < len(sequence):
        raise PatternArityError("too many inputs", sequence, count, pattern)


def name_for_definiens(pattern: Trie) -> Address:
    """
    The address key under which a definition's right-hand side is evaluated
    (and stored in its expression node): the variable's name for a simple
    variable other than `_`, otherwise the generic key "definiens".
    """
    if _kind(pattern) == PatternKind.VARIABLE.value:
        name = pattern.get_at("name")
        if name != "_":
            return addr(name)
    return addr(DEFINIENS_KEY)
