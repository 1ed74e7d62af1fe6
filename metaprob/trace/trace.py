"""
Address-keyed tries.

A trie node carries at most one value and an insertion-ordered mapping from
keys to child nodes. The same structure serves as expression tree, as the
backing store of environment frames, and as the intervention, target and
output traces of an evaluation. One class covers both variants; the
`mutable` tag decides whether the mutating operations are allowed.
"""

import logging
from typing import Any, Dict, Iterator, Mapping, Optional, Sequence, Tuple, Union

from metaprob.system.errors import InvalidKeyError, ReadOnlyTrieError

logger = logging.getLogger(__name__)

Key = Union[str, int]
Address = Tuple[Key, ...]


class _NoValue:
    """Marker for a trie node that has no value."""
    def __repr__(self) -> str:
        return "<no value>"


NO_VALUE = _NoValue()


def ok_key(key: Any) -> bool:
    """Returns True if `key` may be used as an address key: a name or an integer."""
    # bool is excluded: True and 1 hash alike and would share a child
    return isinstance(key, str) or (isinstance(key, int) and not isinstance(key, bool))


def addr(*keys: Key) -> Address:
    """Builds an address from its keys."""
    for key in keys:
        if not ok_key(key):
            raise InvalidKeyError(f"Invalid address key: {key!r}", expression=keys)
    return tuple(keys)


def extend_addr(address: Address, key: Key) -> Address:
    """Returns a new address with `key` appended."""
    return address + (key,)


def _as_address(address_or_key: Any) -> Address:
    if isinstance(address_or_key, tuple):
        return address_or_key
    if isinstance(address_or_key, list):
        return tuple(address_or_key)
    return (address_or_key,)


class Trie:
    """
    Ordered keyed container with an optional value at every node.

    Args:
        value: The node's own value; omit for a node without a value.
        children: Optional mapping of key to child. Children that are not
                  tries are wrapped as leaf nodes holding that value.
        mutable: Selects the mutable or the immutable variant.
    """

    def __init__(self, value: Any = NO_VALUE, children: Optional[Mapping[Key, Any]] = None,
                 mutable: bool = True):
        self._value = value
        self._children: Dict[Key, 'Trie'] = {}
        self._mutable = mutable
        if children:
            for key, child in children.items():
                if not ok_key(key):
                    raise InvalidKeyError(f"Invalid trie key: {key!r}")
                self._children[key] = child if isinstance(child, Trie) else Trie(child, mutable=mutable)

    @property
    def mutable(self) -> bool:
        return self._mutable

    def _check_mutable(self) -> None:
        if not self._mutable:
            raise ReadOnlyTrieError("Cannot modify an immutable trie", expression=self)

    # --- Node value ---

    def has(self) -> bool:
        return self._value is not NO_VALUE

    def get(self) -> Any:
        if self._value is NO_VALUE:
            raise KeyError("trie node has no value")
        return self._value

    def set(self, value: Any) -> None:
        self._check_mutable()
        self._value = value

    def clear(self) -> None:
        """Removes this node's value (children are kept)."""
        self._check_mutable()
        self._value = NO_VALUE

    # --- Children ---

    def _child(self, key: Any) -> Optional['Trie']:
        return self._children.get(key) if ok_key(key) else None

    def has_subtrie(self, key: Key) -> bool:
        return self._child(key) is not None

    def subtrie(self, key: Key) -> 'Trie':
        child = self._child(key)
        if child is None:
            raise KeyError(f"trie has no subtrie at key {key!r}")
        return child

    def set_subtrie(self, key: Key, child: 'Trie') -> None:
        self._check_mutable()
        if not ok_key(key):
            raise InvalidKeyError(f"Invalid trie key: {key!r}")
        self._children[key] = child

    def keys(self) -> list:
        return list(self._children.keys())

    def items(self) -> list:
        return list(self._children.items())

    def count(self) -> int:
        """Number of direct children."""
        return len(self._children)

    # --- Addressed access ---

    def maybe_subtrie(self, address: Any) -> Optional['Trie']:
        node = self
        for key in _as_address(address):
            node = node._child(key)
            if node is None:
                return None
        return node

    def has_at(self, address: Any) -> bool:
        node = self.maybe_subtrie(address)
        return node is not None and node.has()

    def get_at(self, address: Any) -> Any:
        node = self.maybe_subtrie(address)
        if node is None or not node.has():
            raise KeyError(f"trie has no value at address {_as_address(address)!r}")
        return node._value

    def lookup(self, address: Any) -> 'Trie':
        """
        Returns the node at `address`, creating missing nodes along the way.
        On an immutable trie a missing node is an error.
        """
        node = self
        for key in _as_address(address):
            if not ok_key(key):
                raise InvalidKeyError(f"Invalid trie key: {key!r}", expression=address)
            child = node._children.get(key)
            if child is None:
                node._check_mutable()
                child = Trie(mutable=True)
                node._children[key] = child
            node = child
        return node

    def set_at(self, address: Any, value: Any) -> None:
        self._check_mutable()
        self.lookup(address).set(value)

    def addresses(self, prefix: Address = ()) -> Iterator[Tuple[Address, Any]]:
        """Yields (address, value) for every node that holds a value, depth first."""
        if self.has():
            yield prefix, self._value
        for key, child in self._children.items():
            yield from child.addresses(prefix + (key,))

    # --- Copying ---

    def copy(self, mutable: Optional[bool] = None) -> 'Trie':
        """Deep copy of the trie structure; values themselves are shared."""
        flag = self._mutable if mutable is None else mutable
        clone = Trie(self._value, mutable=flag)
        for key, child in self._children.items():
            clone._children[key] = child.copy(flag)
        return clone

    def freeze(self) -> 'Trie':
        return self.copy(mutable=False)

    def thaw(self) -> 'Trie':
        return self.copy(mutable=True)

    # --- Dunder ---

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Trie):
            return NotImplemented
        return same_trace_states(self, other)

    __hash__ = None

    def __repr__(self) -> str:
        parts = []
        if self.has():
            parts.append(repr(self._value))
        if self._children:
            inner = ", ".join(f"{k!r}: {v!r}" for k, v in self._children.items())
            parts.append("{" + inner + "}")
        return f"Trie({', '.join(parts)})"


def is_trie(obj: Any) -> bool:
    return isinstance(obj, Trie)


def maybe_subtrie(trie: Optional[Trie], address: Any) -> Optional[Trie]:
    """The subtrie at `address`, or None when `trie` is None or has no such node."""
    if trie is None:
        return None
    return trie.maybe_subtrie(address)


def lookup(trie: Optional[Trie], address: Any) -> Optional[Trie]:
    """The (possibly newly created) subtrie at `address`, or None when `trie` is None."""
    if trie is None:
        return None
    return trie.lookup(address)


def same_trace_states(a: Any, b: Any) -> bool:
    """
    Structural equality. Tries compare by value and children regardless of
    mutability; lists and tuples compare element-wise with each other.
    """
    if isinstance(a, Trie) and isinstance(b, Trie):
        if a.has() != b.has():
            return False
        if a.has() and not same_trace_states(a._value, b._value):
            return False
        if set(a._children) != set(b._children):
            return False
        return all(same_trace_states(child, b._children[key]) for key, child in a._children.items())
    if isinstance(a, Trie) or isinstance(b, Trie):
        return False
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(same_trace_states(x, y) for x, y in zip(a, b))
    if isinstance(a, (list, tuple)) or isinstance(b, (list, tuple)):
        return False
    return a == b


def trie_from_addresses(entries: Union[Mapping[Any, Any], Sequence[Tuple[Any, Any]]],
                        mutable: bool = True) -> Trie:
    """Builds a trie from (address, value) pairs, e.g. an observation trace."""
    trie = Trie()
    pairs = entries.items() if isinstance(entries, Mapping) else entries
    for address, value in pairs:
        trie.set_at(address, value)
    return trie if mutable else trie.freeze()
