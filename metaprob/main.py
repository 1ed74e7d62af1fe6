#!/usr/bin/env python3
"""
Command line entry point.

Runs a program through `infer` with the standard distributions available,
optionally conditioned on observations, and prints the value, the score and
the execution trace.

    metaprob "(block (define x (flip 0.5)) x)" --observe 0/x/flip=true
"""

import argparse
import sys
from typing import Any, List, Optional, Sequence, Tuple

from metaprob.config.logging_config import get_logger, setup_logging
from metaprob.inference.distributions import standard_distributions
from metaprob.infer_evaluator.infer_evaluator import InferEvaluator
from metaprob.sexp_parser.expression_builder import gen, parse_program, sexp_to_datum, tuple_pattern
from metaprob.sexp_parser.sexp_parser import SexpParser
from metaprob.system.errors import InferEvaluationError, SexpSyntaxError
from metaprob.system.models import EvaluatorSettings, InferResult
from metaprob.trace.trace import Address, trie_from_addresses

logger = get_logger(__name__)

ROOT_LABEL = "<root>"


def parse_address(text: str) -> Address:
    """Splits a `/`-separated address; integer-looking keys become ints."""
    keys: List[Any] = []
    for part in text.strip("/").split("/"):
        if not part:
            continue
        try:
            keys.append(int(part))
        except ValueError:
            keys.append(part)
    return tuple(keys)


def parse_observation(text: str) -> Tuple[Address, Any]:
    """Parses `ADDR=VALUE`, reading VALUE as an S-expression atom or list."""
    if "=" not in text:
        raise argparse.ArgumentTypeError(f"observation must look like ADDR=VALUE, got '{text}'")
    address_text, value_text = text.split("=", 1)
    try:
        value = sexp_to_datum(SexpParser().parse_string(value_text))
    except SexpSyntaxError as e:
        raise argparse.ArgumentTypeError(f"bad observed value '{value_text}': {e}") from e
    return parse_address(address_text), value


def format_address(address: Address) -> str:
    return "/".join(str(key) for key in address) if address else ROOT_LABEL


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parses command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Run a probabilistic program and print its value, score and execution trace.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    source_group = parser.add_mutually_exclusive_group(required=True)
    source_group.add_argument("program", nargs="?", help="Program text.")
    source_group.add_argument("-f", "--file", help="Path to a file containing the program.")
    parser.add_argument("-o", "--observe", action="append", type=parse_observation, default=[],
                        metavar="ADDR=VALUE", help="Observed value at a `/`-separated address (repeatable).")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the random source.")
    parser.add_argument("--deep-recursion", action="store_true",
                        help="Evaluate on a worker thread with a large stack.")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], help="Set the logging level.")
    parser.add_argument("--log-file", default=None, help="Write log records to this file instead of stderr.")
    return parser.parse_args(argv)


def run_program(text: str, observations: Sequence[Tuple[Address, Any]] = (),
                settings: Optional[EvaluatorSettings] = None) -> InferResult:
    """Parses `text`, wraps it in a procedure of no arguments and runs it through `infer`."""
    settings = settings if settings is not None else EvaluatorSettings()
    evaluator = InferEvaluator(settings=settings)
    distributions = standard_distributions(evaluator.rng, settings.warn_on_mismatch)
    evaluator.top_level = evaluator.primitives.make_top_level(distributions)

    procedure, _score = evaluator.infer_eval(gen(tuple_pattern(), parse_program(text)))
    observation_trace = trie_from_addresses(list(observations)) if observations else None
    return evaluator.infer(procedure, [], observation_trace)


def print_result(result: InferResult, stream=None) -> None:
    out = stream if stream is not None else sys.stdout
    print(f"value: {result.value!r}", file=out)
    print(f"score: {result.score}", file=out)
    print("trace:", file=out)
    for address, value in result.trace.addresses():
        print(f"  {format_address(address)} => {value!r}", file=out)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_arguments(argv)
    setup_logging(args.log_level, args.log_file)

    if args.file:
        try:
            with open(args.file, "r", encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            logger.error(f"Cannot read program file {args.file}: {e}")
            print(f"Error: cannot read {args.file}: {e}", file=sys.stderr)
            return 1
    else:
        text = args.program

    settings = EvaluatorSettings.from_env()
    updates = {}
    if args.seed is not None:
        updates["seed"] = args.seed
    if args.deep_recursion:
        updates["deep_recursion"] = True
    if updates:
        settings = settings.model_copy(update=updates)

    try:
        result = run_program(text, args.observe, settings)
    except (SexpSyntaxError, InferEvaluationError) as e:
        logger.error(f"Evaluation failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print_result(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
