"""
Primitive random procedures.

A distribution is a special procedure built with `make_infer_procedure`, so
it handles the overlays itself:

- a target value is returned and scored with the log density (an
  intervention that disagrees with it makes the execution impossible);
- otherwise an intervention value is returned with score 0;
- otherwise a fresh sample is returned with score 0.

The returned value is recorded in the output trace.
"""
import logging
import math
import random
from typing import Any, Callable, Dict, Optional, Sequence

from metaprob.infer_evaluator.infer_procedure import InferProcedure, make_infer_procedure
from metaprob.trace.trace import Trie, same_trace_states

logger = logging.getLogger(__name__)

NEGATIVE_INFINITY = float("-inf")

Sampler = Callable[..., Any]      # (rng, *params) -> value
LogDensity = Callable[..., float]  # (value, *params) -> log density


def make_distribution(name: str, sampler: Sampler, log_density: LogDensity,
                      rng: Optional[random.Random] = None, warn_on_mismatch: bool = True) -> InferProcedure:
    """
    Builds a random procedure from a sampler and a log density.

    Args:
        name: Name for diagnostics.
        sampler: Called as `sampler(rng, *inputs)` to draw a value.
        log_density: Called as `log_density(value, *inputs)` to score a target value.
        rng: Random source; a fresh `random.Random()` if omitted.
        warn_on_mismatch: Log a warning when an intervention disagrees with the target.
    """
    source = rng if rng is not None else random.Random()

    def infer_method(inputs: Sequence[Any], intervene: Optional[Trie],
                     target: Optional[Trie], output: Optional[Trie]):
        if target is not None and target.has():
            value = target.get()
            if intervene is not None and intervene.has() and not same_trace_states(value, intervene.get()):
                if warn_on_mismatch:
                    logger.warning(
                        f"value mismatch! target={value!r} intervention={intervene.get()!r} in call to {name}"
                    )
                score = NEGATIVE_INFINITY
            else:
                score = log_density(value, *inputs)
        elif intervene is not None and intervene.has():
            value, score = intervene.get(), 0.0
        else:
            value, score = sampler(source, *inputs), 0.0
        if output is not None:
            output.set(value)
        return value, score

    return make_infer_procedure(name, infer_method)


def _safe_log(x: float) -> float:
    return math.log(x) if x > 0 else NEGATIVE_INFINITY


def flip_log_density(value: Any, p: float) -> float:
    return _safe_log(p) if value is True else _safe_log(1.0 - p)


def uniform_log_density(value: float, a: float, b: float) -> float:
    return -math.log(b - a) if a <= value <= b else NEGATIVE_INFINITY


def gaussian_log_density(value: float, mu: float, sigma: float) -> float:
    z = (value - mu) / sigma
    return -0.5 * math.log(2 * math.pi) - math.log(sigma) - 0.5 * z * z


def make_flip(rng: Optional[random.Random] = None, warn_on_mismatch: bool = True) -> InferProcedure:
    """(flip p): True with probability p."""
    return make_distribution("flip", lambda r, p: r.random() < p, flip_log_density, rng, warn_on_mismatch)


def make_uniform(rng: Optional[random.Random] = None, warn_on_mismatch: bool = True) -> InferProcedure:
    """(uniform a b): a real number drawn uniformly from [a, b]."""
    return make_distribution("uniform", lambda r, a, b: r.uniform(a, b), uniform_log_density,
                             rng, warn_on_mismatch)


def make_gaussian(rng: Optional[random.Random] = None, warn_on_mismatch: bool = True) -> InferProcedure:
    """(gaussian mu sigma): a normally distributed real number."""
    return make_distribution("gaussian", lambda r, mu, sigma: r.gauss(mu, sigma), gaussian_log_density,
                             rng, warn_on_mismatch)


def standard_distributions(rng: Optional[random.Random] = None,
                           warn_on_mismatch: bool = True) -> Dict[str, InferProcedure]:
    """Top-level bindings for the provided distributions, sharing one random source."""
    source = rng if rng is not None else random.Random()
    return {
        "flip": make_flip(source, warn_on_mismatch),
        "uniform": make_uniform(source, warn_on_mismatch),
        "gaussian": make_gaussian(source, warn_on_mismatch),
    }
