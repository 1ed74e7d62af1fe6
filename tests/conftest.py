import pytest

from metaprob.infer_evaluator.infer_evaluator import InferEvaluator
from metaprob.inference.distributions import standard_distributions
from metaprob.sexp_parser.expression_builder import parse_program
from metaprob.system.models import EvaluatorSettings
from metaprob.trace.trace import Trie


@pytest.fixture
def settings():
    """Deterministic settings for tests."""
    return EvaluatorSettings(seed=1234)


@pytest.fixture
def evaluator(settings):
    """An InferEvaluator with the default builtins."""
    return InferEvaluator(settings=settings)


@pytest.fixture
def prob_evaluator(settings):
    """An InferEvaluator whose top level also binds flip, uniform and gaussian."""
    ev = InferEvaluator(settings=settings)
    distributions = standard_distributions(ev.rng, ev.settings.warn_on_mismatch)
    ev.top_level = ev.primitives.make_top_level(distributions)
    return ev


@pytest.fixture
def run(evaluator):
    """Parses program text and evaluates it at top level; returns (value, score)."""
    def _run(text, intervene=None, target=None, output=None):
        return evaluator.infer_eval(parse_program(text), None, intervene, target, output)
    return _run


@pytest.fixture
def output():
    return Trie()
