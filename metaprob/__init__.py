"""
metaprob: a meta-circular evaluator for probabilistic programs with
address-keyed traces, interventions, targets and scores.
"""
from metaprob.infer_evaluator.infer_evaluator import InferEvaluator
from metaprob.infer_evaluator.infer_procedure import make_infer_procedure
from metaprob.system.models import EvaluatorSettings, InferResult
from metaprob.trace.trace import Trie, addr, trie_from_addresses

__all__ = [
    "InferEvaluator",
    "make_infer_procedure",
    "EvaluatorSettings",
    "InferResult",
    "Trie",
    "addr",
    "trie_from_addresses",
]
