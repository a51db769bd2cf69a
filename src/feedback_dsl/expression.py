"""
Conditional Expression Evaluator - {{#if ...}} conditions.

Conditions are parsed with a Lark grammar (``condition.lark``) into a small
AST of literals, variable atoms, ``not``, comparisons and ``and``/``or``
nodes, then evaluated by walking the tree. Nothing is ever executed as
code; anything that does not parse or evaluate cleanly is false.

The character whitelist applies twice: to the template text before parsing,
and to every participant value a ``var:`` atom substitutes, in its
JSON-quoted form. A string answer such as ``"Why?"`` therefore makes the
whole condition false.

Equality is strict, as everywhere else in the DSL: a survey answer stored as
the string ``"3"`` does not equal the number ``3``. Compare string-typed
answers against quoted literals (``var:q1 == '3'``).
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedInput

from .coercion import compare, parse_literal, unquote
from .exceptions import ConditionSyntaxError
from .extractor import extract_variables
from .grammar import VAR_ATOM_RE
from .models import EnrichedResult, VariableSeries

logger = logging.getLogger(__name__)


# ============================================================
# AST
# ============================================================

@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class VariableAtom:
    """A ``var:name[:modifier]`` operand."""
    name: str
    modifier: Optional[str] = None


@dataclass(frozen=True)
class Not:
    operand: "Node"


@dataclass(frozen=True)
class Comparison:
    op: str
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class Logical:
    op: str                  # "and" | "or"
    left: "Node"
    right: "Node"


Node = Union[Literal, VariableAtom, Not, Comparison, Logical]


def iter_atoms(node: Node) -> Iterator[VariableAtom]:
    """Every variable atom in the tree, left to right."""
    if isinstance(node, VariableAtom):
        yield node
    elif isinstance(node, Not):
        yield from iter_atoms(node.operand)
    elif isinstance(node, (Comparison, Logical)):
        yield from iter_atoms(node.left)
        yield from iter_atoms(node.right)


# ============================================================
# PARSER
# ============================================================

# Whitelist for condition text (var: atoms masked) and for substituted values
_UNSAFE_CHAR_RE = re.compile(r"[^\w\s+\-*/%<>=!&|().'\",]", re.ASCII)


def unsafe_value_char(value: Any) -> Optional[str]:
    """
    First disallowed character in a substituted value, or None.

    Numbers, booleans and null substitute as bare literals and are always
    safe. Anything else is checked as its JSON-quoted string, so quotes and
    newlines (escaped with a backslash) and non-ASCII text (escaped as
    ``\\uXXXX``) are all rejected.
    """
    if value is None or isinstance(value, (bool, int, float)):
        return None
    unsafe = _UNSAFE_CHAR_RE.search(json.dumps(str(value)))
    return unsafe.group(0) if unsafe else None


class _AstBuilder:
    """Builds AST nodes from the Lark parse tree."""

    def build(self, node: Union[Tree, Token]) -> Node:
        if isinstance(node, Token):
            raise ConditionSyntaxError(f"Unexpected token {node!r}")
        method_name = f"_build_{node.data}"
        if not hasattr(self, method_name):
            raise ConditionSyntaxError(f"Unsupported construct '{node.data}'")
        return getattr(self, method_name)(node)

    # --------------------------------------------------------
    # Operands
    # --------------------------------------------------------

    def _build_var_ref(self, node: Tree) -> VariableAtom:
        match = VAR_ATOM_RE.fullmatch(str(node.children[0]))
        return VariableAtom(name=match.group(1), modifier=match.group(2))

    def _build_number(self, node: Tree) -> Literal:
        return Literal(parse_literal(str(node.children[0])))

    def _build_string(self, node: Tree) -> Literal:
        return Literal(unquote(str(node.children[0])))

    def _build_true(self, node: Tree) -> Literal:
        return Literal(True)

    def _build_false(self, node: Tree) -> Literal:
        return Literal(False)

    def _build_null(self, node: Tree) -> Literal:
        return Literal(None)

    # --------------------------------------------------------
    # Operators
    # --------------------------------------------------------

    def _build_not_op(self, node: Tree) -> Not:
        return Not(self.build(node.children[0]))

    def _build_comparison(self, node: Tree) -> Comparison:
        left, op, right = node.children
        return Comparison(op=str(op), left=self.build(left), right=self.build(right))

    def _build_and_expr(self, node: Tree) -> Node:
        return self._fold("and", node.children)

    def _build_or_expr(self, node: Tree) -> Node:
        return self._fold("or", node.children)

    def _fold(self, op: str, children: List[Any]) -> Node:
        result = self.build(children[0])
        for child in children[1:]:
            result = Logical(op=op, left=result, right=self.build(child))
        return result


class ConditionParser:
    """
    Parser for {{#if}} conditions.

    Usage:
        node = ConditionParser().parse('var:correct == true and var:rt < 500')
    """

    _instance: Optional["ConditionParser"] = None
    _parser: Optional[Lark] = None

    def __new__(cls) -> "ConditionParser":
        """Singleton pattern for parser reuse."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize the parser with the grammar file."""
        if ConditionParser._parser is not None:
            return

        grammar_path = Path(__file__).parent / "condition.lark"

        if not grammar_path.exists():
            raise FileNotFoundError(
                f"Grammar file not found: {grammar_path}\n"
                "Ensure condition.lark is installed next to expression.py"
            )

        with open(grammar_path, "r", encoding="utf-8") as f:
            grammar = f.read()

        ConditionParser._parser = Lark(
            grammar,
            start="start",
            parser="lalr",
            maybe_placeholders=False,
        )

    def parse(self, expression: str) -> Node:
        """
        Parse a condition into an AST.

        Raises:
            ConditionSyntaxError: On disallowed characters or invalid syntax
        """
        if not expression or not expression.strip():
            raise ConditionSyntaxError("Empty condition", expression, 0)

        masked = VAR_ATOM_RE.sub("null", expression)
        unsafe = _UNSAFE_CHAR_RE.search(masked)
        if unsafe:
            raise ConditionSyntaxError(
                f"Disallowed character {unsafe.group(0)!r} in condition",
                expression,
            )

        try:
            tree = ConditionParser._parser.parse(expression)
        except UnexpectedInput as e:
            raise ConditionSyntaxError(
                f"Invalid condition at position {e.pos_in_stream}",
                expression,
                e.pos_in_stream,
            ) from e
        return _AstBuilder().build(tree)


def parse_condition(expression: str) -> Node:
    """Parse a condition expression. Module-level convenience function."""
    return ConditionParser().parse(expression)


# ============================================================
# EVALUATOR
# ============================================================

def truthy(value: Any) -> bool:
    """Truthiness of a condition value; lists and objects are always true."""
    if isinstance(value, (list, dict)):
        return True
    if isinstance(value, float) and math.isnan(value):
        return False
    return bool(value)


class ConditionEvaluator:
    """Walks a condition AST against one participant's variables."""

    def __init__(self, variables: Dict[str, VariableSeries]):
        self.variables = variables

    def test(self, node: Node) -> bool:
        """
        Truth value of a whole condition.

        Every atom is resolved first, including atoms a short-circuit would
        skip; one unsafe value makes the condition false.
        """
        for atom in iter_atoms(node):
            unsafe = unsafe_value_char(self._eval_variableatom(atom))
            if unsafe is not None:
                logger.debug("Value of var:%s has disallowed character %r", atom.name, unsafe)
                return False
        return truthy(self.evaluate(node))

    def evaluate(self, node: Node) -> Any:
        method_name = f"_eval_{type(node).__name__.lower()}"
        return getattr(self, method_name)(node)

    def _eval_literal(self, node: Literal) -> Any:
        return node.value

    def _eval_variableatom(self, node: VariableAtom) -> Any:
        """One representative value; conditions never see a whole list."""
        series = self.variables.get(node.name)
        if series is None or not series.values:
            return None
        if node.modifier == "last":
            return series.last()
        return series.first()

    def _eval_not(self, node: Not) -> bool:
        return not truthy(self.evaluate(node.operand))

    def _eval_comparison(self, node: Comparison) -> bool:
        return compare(self.evaluate(node.left), node.op, self.evaluate(node.right))

    def _eval_logical(self, node: Logical) -> Any:
        left = self.evaluate(node.left)
        if node.op == "and":
            return self.evaluate(node.right) if truthy(left) else left
        return left if truthy(left) else self.evaluate(node.right)


def evaluate_condition(expression: str, result: EnrichedResult) -> bool:
    """
    Evaluate an {{#if}} condition against one participant's result.

    Returns:
        The condition's truth value; False on any parse or evaluation failure
    """
    try:
        node = parse_condition(expression)
    except ConditionSyntaxError as e:
        logger.debug("Condition %r rejected: %s", expression, e)
        return False

    try:
        return ConditionEvaluator(extract_variables(result)).test(node)
    except Exception as e:
        logger.debug("Condition %r failed to evaluate: %s", expression, e)
        return False
