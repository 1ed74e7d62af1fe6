"""
Per-kind evaluation of expression nodes.

ExpressionFormProcessor holds one handler per expression kind. Every handler
takes `(exp, env, address, context)`, where `address` is the position of
`exp` relative to the start of the current evaluation and `context` holds the
intervention, target and output traces. Handlers return `(value, score)`.
"""
import logging
from typing import Any, TYPE_CHECKING, Tuple

from metaprob.infer_evaluator.infer_environment import Environment, env_lookup, make_env
from metaprob.infer_evaluator.infer_pattern import match_bind, name_for_definiens
from metaprob.infer_evaluator.infer_procedure import NativeProcedure
from metaprob.infer_evaluator.infer_tag_address import (
    TraceContext, capture_tag_address, is_tag_address, resolve_tag_address,
)
from metaprob.system.errors import InvalidKeyError
from metaprob.system.models import ExpressionKind
from metaprob.trace.trace import Address, Key, Trie, extend_addr, lookup, maybe_subtrie, ok_key

if TYPE_CHECKING:
    from .infer_evaluator import InferEvaluator

logger = logging.getLogger(__name__)

ValueScore = Tuple[Any, float]

# Key of a call whose operator is not a plain variable
CALL_KEY = "call"


def procedure_key(operator_exp: Trie) -> Key:
    """
    The address key for the call made by an application: the operator's
    name when the operator is a variable, otherwise "call".
    """
    if operator_exp.has() and operator_exp.get() == ExpressionKind.VARIABLE.value:
        key = operator_exp.get_at("name")
    else:
        key = CALL_KEY
    if not ok_key(key):
        raise InvalidKeyError(f"Procedure key {key!r} is not a valid address key", expression=operator_exp)
    return key


def is_truthy(value: Any) -> bool:
    """Only None and False count as false."""
    return value is not None and value is not False


class ExpressionFormProcessor:
    """
    Evaluates each kind of expression node for the InferEvaluator.
    Sub-expressions are evaluated through `evaluator.walk` so that forced
    values from the intervention trace are applied at every address.
    """

    def __init__(self, evaluator_instance: 'InferEvaluator'):
        """
        Args:
            evaluator_instance: The InferEvaluator used for recursive evaluation
                                and procedure application.
        """
        self.evaluator = evaluator_instance
        logger.debug("ExpressionFormProcessor initialized.")

    def handle_application(self, exp: Trie, env: Environment, address: Address,
                           context: TraceContext) -> ValueScore:
        """
        Evaluates operator and operands at `address + (i,)`, then applies the
        operator with the overlays found at `address + (procedure key,)`.
        The score is the sum of the operand scores and the call's score.
        """
        values = []
        subscore = 0.0
        for i in range(exp.count()):
            value, score = self.evaluator.walk(exp.subtrie(i), env, extend_addr(address, i), context)
            values.append(value)
            subscore += score

        call_address = extend_addr(address, procedure_key(exp.subtrie(0)))
        logger.debug(f"  application at {address!r}: calling {values[0]!r} at {call_address!r}")
        value, score = self.evaluator.infer_apply(
            values[0],
            values[1:],
            maybe_subtrie(context.intervene, call_address),
            maybe_subtrie(context.target, call_address),
            lookup(context.output, call_address),
        )
        return value, subscore + score

    def handle_variable(self, exp: Trie, env: Environment, address: Address,
                        context: TraceContext) -> ValueScore:
        return env_lookup(env, exp.get_at("name")), 0.0

    def handle_literal(self, exp: Trie, env: Environment, address: Address,
                       context: TraceContext) -> ValueScore:
        return exp.get_at("value"), 0.0

    def handle_gen(self, exp: Trie, env: Environment, address: Address,
                   context: TraceContext) -> ValueScore:
        """Closes over `env`; the body is not evaluated."""
        name = exp.get_at("name") if exp.has_at("name") else None
        return NativeProcedure(exp, env, name=name), 0.0

    def handle_if(self, exp: Trie, env: Environment, address: Address,
                  context: TraceContext) -> ValueScore:
        predicate, pred_score = self.evaluator.walk(
            exp.subtrie("predicate"), env, extend_addr(address, "predicate"), context)
        branch = "then" if is_truthy(predicate) else "else"
        logger.debug(f"  'if' at {address!r}: predicate={predicate!r}, taking '{branch}'")
        value, score = self.evaluator.walk(exp.subtrie(branch), env, extend_addr(address, branch), context)
        return value, pred_score + score

    def handle_block(self, exp: Trie, env: Environment, address: Address,
                     context: TraceContext) -> ValueScore:
        """
        Evaluates the statements in order in a new frame. An empty block
        yields an empty immutable trie.
        """
        block_env = make_env(env)
        value: Any = Trie(mutable=False)
        total = 0.0
        for i in range(exp.count()):
            value, score = self.evaluator.walk(exp.subtrie(i), block_env, extend_addr(address, i), context)
            total += score
        return value, total

    def handle_definition(self, exp: Trie, env: Environment, address: Address,
                          context: TraceContext) -> ValueScore:
        """
        Evaluates the right-hand side, which is stored under the key given by
        `name_for_definiens`, and binds the pattern in the current frame.
        The value is recorded at the right-hand side's address unless it is
        a captured tag, which would make the output refer to itself.
        """
        pattern = exp.subtrie("pattern")
        subaddress = name_for_definiens(pattern)
        rhs_address = address + subaddress
        value, score = self.evaluator.walk(exp.subtrie(subaddress[0]), env, rhs_address, context)
        match_bind(pattern, value, env)
        if context.output is not None and not is_tag_address(value):
            context.output.lookup(rhs_address).set(value)
        return value, score

    def handle_this(self, exp: Trie, env: Environment, address: Address,
                    context: TraceContext) -> ValueScore:
        return capture_tag_address(context), 0.0

    def handle_with_address(self, exp: Trie, env: Environment, address: Address,
                            context: TraceContext) -> ValueScore:
        """
        Evaluates the tag to a quasi-address and evaluates the body from the
        empty address against the overlays the quasi-address designates.
        """
        tag, tag_score = self.evaluator.walk(exp.subtrie("tag"), env, extend_addr(address, "tag"), context)
        resolved = resolve_tag_address(tag)
        value, score = self.evaluator.infer_eval(
            exp.subtrie("expression"), env, resolved.intervene, resolved.target, resolved.output)
        return value, tag_score + score
