"""
Deep recursion mode.

Programs express loops as self-recursive generative procedures, so the
evaluator's Python call depth grows with the iteration count. This module
runs a call on a worker thread that has a larger stack and a raised
recursion limit.
"""
import logging
import sys
import threading
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)


def run_with_deep_stack(fn: Callable[..., Any], *args: Any, recursion_limit: int = 100000,
                        stack_size_mb: int = 512, **kwargs: Any) -> Any:
    """
    Calls `fn(*args, **kwargs)` on a worker thread with a `stack_size_mb` MiB
    stack and a recursion limit of at least `recursion_limit`, waits for it
    and returns its result. An exception raised by `fn` is re-raised here.
    The previous thread stack size and recursion limit are restored.
    """
    outcome: Dict[str, Any] = {}

    def runner() -> None:
        try:
            outcome["value"] = fn(*args, **kwargs)
        except Exception as e:
            outcome["error"] = e

    old_limit = sys.getrecursionlimit()
    old_stack_size = threading.stack_size()
    threading.stack_size(stack_size_mb * 1024 * 1024)
    try:
        sys.setrecursionlimit(max(old_limit, recursion_limit))
        logger.debug(f"Deep evaluation: stack={stack_size_mb} MiB, recursion limit={sys.getrecursionlimit()}")
        worker = threading.Thread(target=runner, name="metaprob-deep-eval")
        worker.start()
        worker.join()
    finally:
        threading.stack_size(old_stack_size)
        sys.setrecursionlimit(old_limit)

    if "error" in outcome:
        raise outcome["error"]
    return outcome["value"]
