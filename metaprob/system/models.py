"""
System-wide models: evaluator settings, expression kinds and result types.
"""

import logging
import os
from enum import Enum
from typing import Any, NamedTuple, Optional

from pydantic import BaseModel, Field, PositiveInt

from metaprob.trace.trace import Trie

# Configure logger
logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"1", "true", "yes", "on"}


class ExpressionKind(str, Enum):
    """The closed set of expression-node discriminants."""
    APPLICATION = "application"
    VARIABLE = "variable"
    LITERAL = "literal"
    GEN = "gen"
    IF = "if"
    BLOCK = "block"
    DEFINITION = "definition"
    THIS = "this"
    WITH_ADDRESS = "with-address"


class PatternKind(str, Enum):
    VARIABLE = "variable"
    TUPLE = "tuple"
    REST_MARKER = "&"


class EvaluatorSettings(BaseModel):
    """
    Evaluator configuration.
    """
    warn_on_mismatch: bool = Field(True, description="Log a warning when an intervention and a target disagree.")
    deep_recursion: bool = Field(False, description="Run infer() on a worker thread with an enlarged stack.")
    recursion_limit: PositiveInt = Field(100000, description="Interpreter recursion limit used in deep recursion mode.")
    stack_size_mb: PositiveInt = Field(512, description="Worker thread stack size (MiB) used in deep recursion mode.")
    seed: Optional[int] = Field(None, description="Seed for the random source handed to distributions.")

    @classmethod
    def from_env(cls, prefix: str = "METAPROB_") -> 'EvaluatorSettings':
        """Builds settings from METAPROB_* environment variables, falling back to defaults."""
        values = {}
        for name in cls.model_fields:
            raw = os.environ.get(f"{prefix}{name.upper()}")
            if raw is None or raw == "":
                continue
            if name in ("warn_on_mismatch", "deep_recursion"):
                values[name] = raw.strip().lower() in _TRUE_STRINGS
            else:
                values[name] = raw
        logger.debug(f"EvaluatorSettings from environment: {values}")
        return cls(**values)


class InferResult(NamedTuple):
    """Result of `infer`: the value, the full execution trace and the log score."""
    value: Any
    trace: Trie
    score: float
