"""
Sampling-based inference built only on `InferEvaluator.infer`.

Every run gets its own output trace; observation traces are only read and
may be shared between runs.
"""
import logging
import math
from typing import Any, List, Optional, Sequence, Tuple

from metaprob.infer_evaluator.infer_evaluator import InferEvaluator
from metaprob.system.errors import InferenceBudgetExceededError
from metaprob.trace.trace import Trie

logger = logging.getLogger(__name__)

Particle = Tuple[Trie, float]


def rejection_sampling(evaluator: InferEvaluator, model: Any, inputs: Sequence[Any],
                       observation_trace: Optional[Trie], log_bound: float,
                       max_attempts: int = 10000) -> Trie:
    """
    Runs `model` against `observation_trace` until a run is accepted, and
    returns that run's execution trace. A run with score `s` is accepted with
    probability `exp(s - log_bound)`; `log_bound` must bound every score.

    Raises:
        InferenceBudgetExceededError: No run accepted within `max_attempts`.
    """
    for attempt in range(1, max_attempts + 1):
        result = evaluator.infer(model, inputs, observation_trace)
        # 1 - random() lies in (0, 1], so its log is finite
        if math.log(1.0 - evaluator.rng.random()) < result.score - log_bound:
            logger.debug(f"rejection_sampling: accepted attempt {attempt} with score {result.score}")
            return result.trace
    raise InferenceBudgetExceededError(
        f"rejection sampling accepted no sample in {max_attempts} attempts",
        error_details=f"log_bound={log_bound}",
    )


def importance_sampling(evaluator: InferEvaluator, model: Any, inputs: Sequence[Any],
                        observation_trace: Optional[Trie], n_particles: int) -> List[Particle]:
    """Returns `n_particles` (execution trace, log weight) pairs."""
    particles = []
    for _ in range(n_particles):
        result = evaluator.infer(model, inputs, observation_trace)
        particles.append((result.trace, result.score))
    return particles


def log_sum_exp(scores: Sequence[float]) -> float:
    top = max(scores)
    if top == float("-inf"):
        return top
    return top + math.log(sum(math.exp(s - top) for s in scores))


def importance_resampling(evaluator: InferEvaluator, model: Any, inputs: Sequence[Any],
                          observation_trace: Optional[Trie], n_particles: int) -> Trie:
    """
    Draws `n_particles` weighted particles and returns one trace chosen in
    proportion to the particle weights.

    Raises:
        InferenceBudgetExceededError: Every particle has weight zero.
    """
    particles = importance_sampling(evaluator, model, inputs, observation_trace, n_particles)
    scores = [score for _trace, score in particles]
    total = log_sum_exp(scores)
    if total == float("-inf"):
        raise InferenceBudgetExceededError(f"all {n_particles} particles have zero weight")
    weights = [math.exp(score - total) for score in scores]
    logger.debug(f"importance_resampling: log marginal estimate {total - math.log(n_particles)}")
    trace, _score = evaluator.rng.choices(particles, weights=weights, k=1)[0]
    return trace
