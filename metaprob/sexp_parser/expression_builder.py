"""
Construction of expression tries, and conversion of parsed S-expressions into them.

Surface syntax:

    literal            1, 2.5, "text", true, false, nil, (quote datum), 'datum
    variable           x
    (gen params body...)         params: a symbol, or a list of patterns
    (define pattern rhs)
    (if predicate then [else])
    (block statement...)
    (this)
    (with-address tag expression)
    (operator operand...)        any other list is an application

Patterns are symbols, nested lists of patterns, and the rest marker `&`
(allowed only as the second-to-last element of a list).
"""

import logging
from typing import Any, Dict, Optional

from sexpdata import Quoted, Symbol

from metaprob.infer_evaluator.infer_pattern import name_for_definiens
from metaprob.sexp_parser.sexp_parser import SexpParser
from metaprob.system.errors import ExpressionSyntaxError
from metaprob.system.models import ExpressionKind, PatternKind
from metaprob.trace.trace import Trie

logger = logging.getLogger(__name__)

NIL_SYMBOL = "nil"


def _node(kind: str, children: Optional[Dict[Any, Trie]] = None) -> Trie:
    return Trie(kind, children, mutable=False)


def _leaf(value: Any) -> Trie:
    return Trie(value, mutable=False)


# --- Expression constructors ---

def literal(value: Any) -> Trie:
    return _node(ExpressionKind.LITERAL.value, {"value": _leaf(value)})


def variable(name: str) -> Trie:
    """A variable reference; the same node shape serves as a variable pattern."""
    return _node(ExpressionKind.VARIABLE.value, {"name": _leaf(name)})


def application(operator: Trie, *operands: Trie) -> Trie:
    return _node(ExpressionKind.APPLICATION.value, dict(enumerate((operator,) + operands)))


def gen(pattern: Trie, body: Trie, name: Optional[str] = None) -> Trie:
    children = {"pattern": pattern, "body": body}
    if name is not None:
        children["name"] = _leaf(name)
    return _node(ExpressionKind.GEN.value, children)


def if_(predicate: Trie, then: Trie, else_: Optional[Trie] = None) -> Trie:
    return _node(ExpressionKind.IF.value, {
        "predicate": predicate,
        "then": then,
        "else": else_ if else_ is not None else literal(None),
    })


def block(*statements: Trie) -> Trie:
    return _node(ExpressionKind.BLOCK.value, dict(enumerate(statements)))


def definition(pattern: Trie, rhs: Trie) -> Trie:
    """The right-hand side is stored under the key it is evaluated at."""
    key = name_for_definiens(pattern)[0]
    if key == "pattern":
        raise ExpressionSyntaxError("'pattern' cannot be used as a defined name", expression=pattern)
    return _node(ExpressionKind.DEFINITION.value, {"pattern": pattern, key: rhs})


def this() -> Trie:
    return _node(ExpressionKind.THIS.value)


def with_address(tag: Trie, expression: Trie) -> Trie:
    return _node(ExpressionKind.WITH_ADDRESS.value, {"tag": tag, "expression": expression})


def tuple_pattern(*subpatterns: Trie) -> Trie:
    return _node(PatternKind.TUPLE.value, dict(enumerate(subpatterns)))


def rest_marker() -> Trie:
    return _node(PatternKind.REST_MARKER.value)


# --- Conversion from parsed S-expressions ---

def sexp_to_datum(node: Any) -> Any:
    """Converts quoted data: symbols become strings, lists stay lists."""
    if isinstance(node, Symbol):
        return str(node)
    if isinstance(node, Quoted):
        return sexp_to_datum(node.x)
    if isinstance(node, list):
        return [sexp_to_datum(item) for item in node]
    return node


class ExpressionBuilder:
    """Turns sexpdata ASTs into expression tries."""

    def __init__(self):
        self.FORM_BUILDERS = {
            "quote": self._build_quote,
            "gen": self._build_gen,
            "define": self._build_define,
            "if": self._build_if,
            "block": self._build_block,
            "this": self._build_this,
            "with-address": self._build_with_address,
        }

    def build(self, node: Any) -> Trie:
        """
        Converts one parsed S-expression to an expression trie.

        Raises:
            ExpressionSyntaxError: If a special form is malformed.
        """
        if isinstance(node, Symbol):
            name = str(node)
            return literal(None) if name == NIL_SYMBOL else variable(name)
        if isinstance(node, Quoted):
            return literal(sexp_to_datum(node.x))
        if isinstance(node, list):
            if not node:
                return literal([])
            head = node[0]
            if isinstance(head, Symbol) and str(head) in self.FORM_BUILDERS:
                return self.FORM_BUILDERS[str(head)](node)
            return application(*[self.build(item) for item in node])
        if isinstance(node, (bool, int, float, str)):
            return literal(node)
        raise ExpressionSyntaxError(f"Cannot build an expression from {type(node).__name__}", expression=node)

    def build_pattern(self, node: Any) -> Trie:
        if isinstance(node, Symbol):
            name = str(node)
            return rest_marker() if name == PatternKind.REST_MARKER.value else variable(name)
        if isinstance(node, list):
            return tuple_pattern(*[self.build_pattern(item) for item in node])
        raise ExpressionSyntaxError("Patterns must be symbols or lists of patterns", expression=node)

    def _build_body(self, forms: list, form_name: str, original: list) -> Trie:
        if not forms:
            raise ExpressionSyntaxError(f"'{form_name}' requires a body", expression=original)
        if len(forms) == 1:
            return self.build(forms[0])
        return block(*[self.build(form) for form in forms])

    def _build_quote(self, node: list) -> Trie:
        if len(node) != 2:
            raise ExpressionSyntaxError("'quote' requires exactly one argument: (quote datum)", expression=node)
        return literal(sexp_to_datum(node[1]))

    def _build_gen(self, node: list, name: Optional[str] = None) -> Trie:
        if len(node) < 3:
            raise ExpressionSyntaxError("'gen' requires parameters and a body: (gen params body...)", expression=node)
        pattern = self.build_pattern(node[1])
        return gen(pattern, self._build_body(node[2:], "gen", node), name=name)

    def _build_define(self, node: list) -> Trie:
        if len(node) != 3:
            raise ExpressionSyntaxError("'define' requires a pattern and a value: (define pattern rhs)",
                                        expression=node)
        pattern = self.build_pattern(node[1])
        rhs_node = node[2]
        if (isinstance(node[1], Symbol) and isinstance(rhs_node, list) and rhs_node
                and isinstance(rhs_node[0], Symbol) and str(rhs_node[0]) == "gen"):
            rhs = self._build_gen(rhs_node, name=str(node[1]))
        else:
            rhs = self.build(rhs_node)
        return definition(pattern, rhs)

    def _build_if(self, node: list) -> Trie:
        if len(node) not in (3, 4):
            raise ExpressionSyntaxError("'if' requires a predicate, a then branch and an optional else branch",
                                        expression=node)
        else_ = self.build(node[3]) if len(node) == 4 else None
        return if_(self.build(node[1]), self.build(node[2]), else_)

    def _build_block(self, node: list) -> Trie:
        return block(*[self.build(item) for item in node[1:]])

    def _build_this(self, node: list) -> Trie:
        if len(node) != 1:
            raise ExpressionSyntaxError("'this' takes no arguments", expression=node)
        return this()

    def _build_with_address(self, node: list) -> Trie:
        if len(node) != 3:
            raise ExpressionSyntaxError("'with-address' requires a tag and an expression", expression=node)
        return with_address(self.build(node[1]), self.build(node[2]))


def parse_expression(text: str) -> Trie:
    """Parses exactly one expression."""
    return ExpressionBuilder().build(SexpParser().parse_string(text))


def parse_program(text: str) -> Trie:
    """Parses one or more top-level forms; several forms are wrapped in a block."""
    builder = ExpressionBuilder()
    forms = [builder.build(form) for form in SexpParser().parse_all(text)]
    logger.debug(f"parse_program: {len(forms)} top-level form(s)")
    return forms[0] if len(forms) == 1 else block(*forms)
