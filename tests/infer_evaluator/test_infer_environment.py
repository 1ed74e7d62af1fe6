"""
Unit tests for frames and the top-level environment.
"""

import pytest

from metaprob.infer_evaluator.infer_environment import (
    PARENT_KEY, InferEnvironment, TopLevelEnvironment, env_bind, env_lookup, is_frame, make_env,
)
from metaprob.system.errors import BadEnvironmentError, UnboundVariableError


@pytest.fixture
def top_level():
    return TopLevelEnvironment({"pi": 3.14, "answer": 42})

# --- Top level ---

def test_top_level_resolves_from_mapping(top_level):
    """Test resolving top-level names from a mapping."""
    assert top_level.lookup("answer") == 42

def test_top_level_resolves_from_callable():
    """Test resolving top-level names through a callable."""
    env = TopLevelEnvironment(lambda name: name.upper())
    assert env_lookup(env, "abc") == "ABC"

def test_top_level_unknown_name_raises(top_level):
    """Test looking up an unknown top-level name."""
    with pytest.raises(UnboundVariableError) as excinfo:
        top_level.lookup("missing")
    assert excinfo.value.name == "missing"

def test_top_level_is_not_a_frame(top_level):
    """Test that definitions cannot be bound into the top level."""
    assert not is_frame(top_level)
    with pytest.raises(BadEnvironmentError, match="bad env-bind"):
        env_bind(top_level, "x", 1)

# --- Frames ---

def test_make_env_links_parent(top_level):
    """Test that a new frame links to its parent."""
    frame = make_env(top_level)
    assert isinstance(frame, InferEnvironment)
    assert frame.parent is top_level

def test_frame_lookup_walks_outwards(top_level):
    """Test looking up a name bound in an enclosing frame."""
    outer = make_env(top_level)
    env_bind(outer, "x", 1)
    inner = make_env(outer)
    env_bind(inner, "y", 2)
    assert env_lookup(inner, "y") == 2
    assert env_lookup(inner, "x") == 1
    assert env_lookup(inner, "pi") == 3.14

def test_inner_binding_shadows_outer(top_level):
    """Test that an inner binding shadows an outer one."""
    outer = make_env(top_level)
    env_bind(outer, "x", "outer")
    inner = make_env(outer)
    env_bind(inner, "x", "inner")
    assert env_lookup(inner, "x") == "inner"
    assert env_lookup(outer, "x") == "outer"

def test_bind_only_mutates_innermost_frame(top_level):
    """Test that binding leaves enclosing frames untouched."""
    outer = make_env(top_level)
    inner = make_env(outer)
    env_bind(inner, "z", None)
    assert inner.has_binding("z")
    assert not outer.has_binding("z")
    assert env_lookup(inner, "z") is None

def test_unbound_name_in_frame_chain_raises(top_level):
    """Test looking up a name bound nowhere in the chain."""
    frame = make_env(make_env(top_level))
    with pytest.raises(UnboundVariableError):
        env_lookup(frame, "nowhere")

def test_parent_key_is_reserved(top_level):
    """Test that the parent link key cannot be bound."""
    frame = make_env(top_level)
    with pytest.raises(BadEnvironmentError):
        env_bind(frame, PARENT_KEY, 1)

def test_get_local_bindings(top_level):
    """Test listing a frame's own bindings."""
    frame = top_level.extend()
    frame.define("a", 1)
    frame.define("b", 2)
    assert frame.get_local_bindings() == {"a": 1, "b": 2}
