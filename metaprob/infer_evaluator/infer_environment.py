"""
Lexical environments for the evaluator.

A frame is a mutable trie of bindings plus a reference to its parent
environment. The chain always ends in a TopLevelEnvironment, which is not a
frame: it delegates name resolution to a resolver supplied by the embedding
program and refuses new bindings.
"""

import logging
from typing import Any, Callable, Mapping, Optional, Union

from metaprob.system.errors import BadEnvironmentError, UnboundVariableError
from metaprob.trace.trace import Trie

logger = logging.getLogger(__name__)

# Reserved name of the parent link
PARENT_KEY = "*parent*"

Resolver = Union[Mapping[str, Any], Callable[[str], Any]]


class TopLevelEnvironment:
    """
    The distinguished outermost environment.

    Args:
        resolver: Either a mapping from names to values or a callable
                  `resolver(name)` that returns the value or raises KeyError.
    """

    def __init__(self, resolver: Optional[Resolver] = None):
        self._resolver = resolver if resolver is not None else {}

    def lookup(self, name: str) -> Any:
        try:
            if callable(self._resolver):
                return self._resolver(name)
            return self._resolver[name]
        except KeyError:
            logger.debug(f"Top-level lookup failed for '{name}'")
            raise UnboundVariableError(name) from None

    def define(self, name: str, value: Any) -> None:
        raise BadEnvironmentError(f"Cannot bind '{name}' at top level", expression=self)

    def extend(self) -> 'InferEnvironment':
        return InferEnvironment(parent=self)

    def __repr__(self) -> str:
        kind = "resolver" if callable(self._resolver) else f"{len(self._resolver)} names"
        return f"<TopLevelEnvironment {kind}>"


Environment = Union['InferEnvironment', TopLevelEnvironment]


class InferEnvironment:
    """
    A frame: bindings for one scope and a link to the enclosing environment.
    Binding always mutates this frame only; lookup walks outwards.
    """

    def __init__(self, parent: Environment):
        self._bindings = Trie()
        self._parent = parent

    @property
    def parent(self) -> Environment:
        return self._parent

    def has_binding(self, name: str) -> bool:
        return self._bindings.has_at(name)

    def lookup(self, name: str) -> Any:
        env: Environment = self
        while isinstance(env, InferEnvironment):
            if env._bindings.has_at(name):
                return env._bindings.get_at(name)
            env = env._parent
        return env.lookup(name)

    def define(self, name: str, value: Any) -> None:
        if name == PARENT_KEY:
            raise BadEnvironmentError(f"'{PARENT_KEY}' is reserved and cannot be bound", expression=self)
        self._bindings.set_at(name, value)

    def extend(self) -> 'InferEnvironment':
        return InferEnvironment(parent=self)

    def get_local_bindings(self) -> dict:
        """Returns a copy of the bindings defined directly in this frame."""
        return {key: child.get() for key, child in self._bindings.items() if child.has()}

    def __repr__(self) -> str:
        return f"<InferEnvironment id={id(self)} parent={id(self._parent)} bindings={self._bindings.keys()}>"


def is_frame(obj: Any) -> bool:
    return isinstance(obj, InferEnvironment)


def make_env(parent: Environment) -> InferEnvironment:
    """Allocates a new frame whose parent is `parent`."""
    return InferEnvironment(parent=parent)


def env_lookup(env: Environment, name: str) -> Any:
    return env.lookup(name)


def env_bind(env: Any, name: str, value: Any) -> None:
    """Binds `name` in the innermost frame of `env`; fails for anything that is not a frame."""
    if not is_frame(env):
        raise BadEnvironmentError(f"bad env-bind: cannot bind '{name}' in {env!r}", expression=env)
    env.define(name, value)
