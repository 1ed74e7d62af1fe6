"""
Capture and resolution of tag addresses, used by `this` and `with-address`.

`this` captures the overlay triple active in the current evaluation as a
TraceContext. A client pairs it with a suffix address to form a
quasi-address, `(captured, key1, key2, ...)`; `with-address` resolves that
back into an overlay triple positioned at the suffix.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from metaprob.system.errors import InvalidKeyError, InvalidTagAddressError
from metaprob.trace.trace import Trie, lookup, maybe_subtrie, ok_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class TraceContext:
    """The intervention, target and output traces of one evaluation."""
    intervene: Optional[Trie] = None
    target: Optional[Trie] = None
    output: Optional[Trie] = None

    def __repr__(self) -> str:
        return "<captured tag address>"


def capture_tag_address(context: TraceContext) -> TraceContext:
    return TraceContext(context.intervene, context.target, context.output)


def make_quasi_address(captured: TraceContext, *keys: Any) -> tuple:
    return (captured,) + tuple(keys)


def is_tag_address(value: Any) -> bool:
    """True for a captured tag or a quasi-address built from one."""
    if isinstance(value, TraceContext):
        return True
    return isinstance(value, (list, tuple)) and len(value) > 0 and isinstance(value[0], TraceContext)


def resolve_tag_address(quasi_address: Any) -> TraceContext:
    """
    Splits a quasi-address into its captured tag and suffix, and returns the
    overlays reachable at the suffix. Absent overlays stay absent; the output
    trace gets the suffix path created so the evaluation can record into it.
    """
    if not isinstance(quasi_address, (list, tuple)) or not quasi_address:
        raise InvalidTagAddressError("quasi-address must be a non-empty sequence", expression=quasi_address)
    captured, suffix = quasi_address[0], tuple(quasi_address[1:])
    if not isinstance(captured, TraceContext):
        raise InvalidTagAddressError("quasi-address must start with a tag captured by 'this'",
                                     expression=quasi_address)
    for key in suffix:
        if not ok_key(key):
            raise InvalidKeyError(f"Invalid key {key!r} in quasi-address", expression=suffix)
    logger.debug(f"Resolving tag address with suffix {suffix!r}")
    return TraceContext(
        maybe_subtrie(captured.intervene, suffix),
        maybe_subtrie(captured.target, suffix),
        lookup(captured.output, suffix),
    )
