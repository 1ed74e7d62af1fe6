"""
The meta-circular evaluator: environments, patterns, procedures, tag
addresses and the InferEvaluator itself.
"""
from metaprob.infer_evaluator.infer_evaluator import InferEvaluator
from metaprob.infer_evaluator.infer_procedure import make_infer_procedure

__all__ = ["InferEvaluator", "make_infer_procedure"]
