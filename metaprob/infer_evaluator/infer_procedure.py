"""
Procedure values understood by the evaluator.

- NativeProcedure: the closure produced by evaluating a `gen` expression.
- InferProcedure: a "special" procedure carrying its own infer method,
  produced by `make_infer_procedure`.
- Foreign procedures: any other Python callable. They are opaque to the
  evaluator and are simply called with the argument values.
"""
import logging
from typing import Any, Callable, Optional, Sequence, Tuple

from metaprob.trace.trace import Trie

logger = logging.getLogger(__name__)

# (inputs, intervene, target, output) -> (value, score)
InferMethod = Callable[[Sequence[Any], Optional[Trie], Optional[Trie], Optional[Trie]], Tuple[Any, float]]


class NativeProcedure:
    def __init__(self, source: Trie, environment: Any, name: Optional[str] = None):
        """
        Represents a generative procedure written in the interpreted language.

        Args:
            source: The `gen` expression node; its "pattern" and "body"
                    subtries are the parameter pattern and the body.
            environment: The environment captured when the `gen` node was evaluated.
            name: Optional name for diagnostics.
        """
        self.source = source
        self.environment = environment
        self.name = name
        logger.debug(f"NativeProcedure created: name={name!r}, env_id={id(environment)}")

    @property
    def pattern(self) -> Trie:
        return self.source.subtrie("pattern")

    @property
    def body(self) -> Trie:
        return self.source.subtrie("body")

    def __repr__(self):
        return f"<NativeProcedure name={self.name!r} env_id={id(self.environment)}>"


class InferProcedure:
    """
    A procedure that supplies its own (inputs, intervene, target, output) ->
    (value, score) implementation. Called directly from Python it runs
    untraced and returns only the value.
    """

    def __init__(self, name: str, infer_method: InferMethod):
        self.name = name
        self.infer_method = infer_method

    def __call__(self, *inputs: Any) -> Any:
        value, _score = self.infer_method(list(inputs), None, None, None)
        return value

    def __repr__(self):
        return f"<InferProcedure {self.name}>"


def make_infer_procedure(name: str, infer_method: InferMethod) -> InferProcedure:
    """Wraps `infer_method` as a first-class special procedure."""
    return InferProcedure(f"inf-{name}", infer_method)


def is_native_procedure(obj: Any) -> bool:
    return isinstance(obj, NativeProcedure)


def is_infer_procedure(obj: Any) -> bool:
    return isinstance(obj, InferProcedure)


def is_foreign_procedure(obj: Any) -> bool:
    return callable(obj) and not isinstance(obj, (NativeProcedure, InferProcedure))


def call_foreign(proc: Callable, inputs: Sequence[Any]) -> Any:
    return proc(*inputs)


def procedure_name(proc: Any) -> str:
    name = getattr(proc, "name", None) or getattr(proc, "__name__", None)
    return str(name) if name else repr(proc)
