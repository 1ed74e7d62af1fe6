"""
The meta-circular evaluator.

`infer_apply` applies any procedure while respecting an intervention trace
(forced values), a target trace (observed values) and an output trace (a
record of every value produced). `infer_eval` walks an expression tree with
the same three overlays, recording choices at addresses derived from the
shape of the expression. Both return a `(value, score)` pair, where score is
the accumulated log-probability adjustment of the execution.

Invariant: if `output` is given, then on return `output` holds the returned
value at its root.
"""

import logging
import random
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from metaprob.infer_evaluator.infer_environment import Environment, make_env
from metaprob.infer_evaluator.infer_forms import ExpressionFormProcessor
from metaprob.infer_evaluator.infer_pattern import match_bind
from metaprob.infer_evaluator.infer_primitives import InferPrimitives
from metaprob.infer_evaluator.infer_procedure import (
    NativeProcedure, call_foreign, is_foreign_procedure, is_infer_procedure,
    is_native_procedure, procedure_name,
)
from metaprob.infer_evaluator.infer_stack import run_with_deep_stack
from metaprob.infer_evaluator.infer_tag_address import TraceContext
from metaprob.system.errors import InvalidInputsError, NotAProcedureError, UnknownExpressionKindError
from metaprob.system.models import EvaluatorSettings, ExpressionKind, InferResult
from metaprob.trace.trace import Address, Trie, same_trace_states

logger = logging.getLogger(__name__)

NEGATIVE_INFINITY = float("-inf")

ValueScore = Tuple[Any, float]


def _check_inputs(inputs: Any) -> None:
    if not isinstance(inputs, (list, tuple)):
        raise InvalidInputsError("inputs neither list nor tuple", expression=inputs)


def _check_output(output: Any) -> None:
    if output is not None and not (isinstance(output, Trie) and output.mutable):
        raise InvalidInputsError("output must be absent or a mutable trie", expression=output)


class InferEvaluator:
    """
    Applies procedures and evaluates expression trees under intervention,
    target and output traces.

    Args:
        top_level: The environment that resolves free names. Defaults to the
                   builtins from InferPrimitives plus `extra_bindings`.
        settings: Evaluator settings; defaults to EvaluatorSettings().
        extra_bindings: Additional top-level names (ignored when `top_level` is given).
    """

    def __init__(
        self,
        top_level: Optional[Environment] = None,
        settings: Optional[EvaluatorSettings] = None,
        extra_bindings: Optional[Dict[str, Any]] = None,
    ):
        self.settings = settings if settings is not None else EvaluatorSettings()
        # Random source for distributions created against this evaluator
        self.rng = random.Random(self.settings.seed)

        # Helper processors
        self.form_processor = ExpressionFormProcessor(self)
        self.primitives = InferPrimitives(self)

        self.top_level = top_level if top_level is not None else self.primitives.make_top_level(extra_bindings)

        self.FORM_HANDLERS: Dict[str, Callable[..., ValueScore]] = {
            ExpressionKind.APPLICATION.value: self.form_processor.handle_application,
            ExpressionKind.VARIABLE.value: self.form_processor.handle_variable,
            ExpressionKind.LITERAL.value: self.form_processor.handle_literal,
            ExpressionKind.GEN.value: self.form_processor.handle_gen,
            ExpressionKind.IF.value: self.form_processor.handle_if,
            ExpressionKind.BLOCK.value: self.form_processor.handle_block,
            ExpressionKind.DEFINITION.value: self.form_processor.handle_definition,
            ExpressionKind.THIS.value: self.form_processor.handle_this,
            ExpressionKind.WITH_ADDRESS.value: self.form_processor.handle_with_address,
        }
        logger.debug(f"InferEvaluator initialized. FORM_HANDLERS keys: {list(self.FORM_HANDLERS.keys())}")

    # --- Procedure application ---

    def infer_apply(
        self,
        proc: Any,
        inputs: Sequence[Any],
        intervene: Optional[Trie] = None,
        target: Optional[Trie] = None,
        output: Optional[Trie] = None,
    ) -> ValueScore:
        """
        Applies `proc` to `inputs`, honouring interventions and targets,
        recording into `output`, and computing the score.

        Returns:
            (value, score). A score of negative infinity marks an execution in
            which an intervention and a target disagree.

        Raises:
            InvalidInputsError: `inputs` is not a list/tuple or `output` is not a mutable trie.
            NotAProcedureError: `proc` cannot be applied.
        """
        _check_inputs(inputs)
        _check_output(output)

        if is_infer_procedure(proc):
            # Special procedures compute value and score themselves
            return proc.infer_method(inputs, intervene, target, output)

        if is_foreign_procedure(proc) and intervene is None and target is None and output is None:
            return call_foreign(proc, inputs), 0.0

        # The call is made even under intervention: it may have side effects.
        if is_native_procedure(proc):
            value, score = self.infer_apply_native(proc, inputs, intervene, target, output)
        elif is_foreign_procedure(proc):
            value, score = call_foreign(proc, inputs), 0.0
        else:
            logger.error(f"infer_apply: not a procedure: {proc!r}")
            raise NotAProcedureError("infer-apply: not a procedure", expression=proc)

        intervened = intervene is not None and intervene.has()
        post_intervention_value = intervene.get() if intervened else value

        if target is not None and target.has():
            final_value = target.get()
            if intervened and not same_trace_states(final_value, post_intervention_value):
                if self.settings.warn_on_mismatch:
                    logger.warning(
                        f"value mismatch! target={final_value!r} intervention={post_intervention_value!r} "
                        f"in call to {procedure_name(proc)}"
                    )
                score = NEGATIVE_INFINITY
        else:
            final_value = post_intervention_value

        if output is not None:
            output.set(final_value)
        return final_value, score

    def infer_apply_native(
        self,
        proc: NativeProcedure,
        inputs: Sequence[Any],
        intervene: Optional[Trie],
        target: Optional[Trie],
        output: Optional[Trie],
    ) -> ValueScore:
        """Binds the procedure's pattern to `inputs` in a fresh frame and evaluates its body."""
        new_env = make_env(proc.environment)
        match_bind(proc.pattern, inputs, new_env)
        return self.infer_eval(proc.body, new_env, intervene, target, output)

    # --- Expression evaluation ---

    def infer_eval(
        self,
        exp: Trie,
        env: Optional[Environment] = None,
        intervene: Optional[Trie] = None,
        target: Optional[Trie] = None,
        output: Optional[Trie] = None,
    ) -> ValueScore:
        """
        Evaluates `exp` in `env` (the top-level environment when omitted),
        starting at the empty address.
        """
        _check_output(output)
        context = TraceContext(intervene, target, output)
        return self.walk(exp, self.top_level if env is None else env, (), context)

    def walk(self, exp: Trie, env: Environment, address: Address, context: TraceContext) -> ValueScore:
        kind = exp.get() if isinstance(exp, Trie) and exp.has() else None
        handler = self.FORM_HANDLERS.get(kind) if isinstance(kind, str) else None
        if handler is None:
            logger.error(f"walk: not a code expression at {address!r}: {exp!r}")
            raise UnknownExpressionKindError("Not a code expression", expression=exp)

        value, score = handler(exp, env, address, context)

        # Forced values apply to every kind of node
        if context.intervene is not None and context.intervene.has_at(address):
            return context.intervene.get_at(address), score
        return value, score

    # --- Entry point for inference algorithms ---

    def infer(
        self,
        procedure: Any,
        inputs: Sequence[Any] = (),
        observation_trace: Optional[Trie] = None,
        intervention_trace: Optional[Trie] = None,
    ) -> InferResult:
        """
        Runs `procedure` on `inputs` with `observation_trace` as target and a
        fresh output trace.

        Returns:
            InferResult(value, trace, score), where `trace` is the full execution trace.
        """
        output = Trie()
        if self.settings.deep_recursion:
            value, score = run_with_deep_stack(
                self.infer_apply, procedure, inputs, intervention_trace, observation_trace, output,
                recursion_limit=self.settings.recursion_limit,
                stack_size_mb=self.settings.stack_size_mb,
            )
        else:
            value, score = self.infer_apply(procedure, inputs, intervention_trace, observation_trace, output)
        logger.debug(f"infer({procedure_name(procedure)}) -> value={value!r} score={score}")
        return InferResult(value, output, score)
