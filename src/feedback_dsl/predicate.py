"""
Predicate Compiler - where: filter clauses.

Compiles the text after ``| where:`` into a boolean test over one trial
record or response object. A clause is a conjunction of at most
``MAX_FILTER_CLAUSES`` simple comparisons:

- ``field in [v1, v2, ...]``
- ``field OP value`` with OP one of ``== != >= <= > <``

Fields may be dotted paths into nested objects. There is no ``or``: the
text after an ``or`` becomes part of the compared literal, so such a
sub-clause never matches.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from .coercion import MISSING, compare, parse_literal, strict_equal
from .config import MAX_FILTER_CLAUSES
from .models import Record

logger = logging.getLogger(__name__)


# ============================================================
# CLAUSE GRAMMAR
# ============================================================

FIELD_PATTERN = r"[A-Za-z0-9_.]+"

_IN_RE = re.compile(rf"^({FIELD_PATTERN})\s+(?i:in)\s*\[(.*)\]$", re.DOTALL)
_CMP_RE = re.compile(rf"^({FIELD_PATTERN})\s*(==|!=|>=|<=|>|<)\s*(.+)$", re.DOTALL)

# Conjunction keywords, skipping over quoted strings
_CONJUNCTION_RE = re.compile(
    r"\"(?:\\.|[^\"\\])*\"|'(?:\\.|[^'\\])*'|\band\b|&&",
    re.IGNORECASE,
)


@dataclass
class ClauseSpec:
    """One parsed sub-clause of a where: filter."""
    field: str
    op: str                  # "in" or a comparison operator
    value: Any               # literal, or list of literals for "in"
    text: str = ""


def split_conjuncts(clause: str) -> List[Tuple[str, int]]:
    """
    Split a where: clause on ``and`` / ``&&`` outside quoted strings.

    Returns:
        List of (stripped sub-clause, offset of its first character in clause)
    """
    pieces = []
    start = 0
    for match in _CONJUNCTION_RE.finditer(clause):
        if match.group(0)[0] in "\"'":
            continue
        pieces.append((clause[start:match.start()], start))
        start = match.end()
    pieces.append((clause[start:], start))

    result = []
    for text, offset in pieces:
        stripped = text.strip()
        if stripped:
            result.append((stripped, offset + len(text) - len(text.lstrip())))
    return result


def _split_list(raw: str) -> List[str]:
    """Split list literal content on commas that are not inside quotes."""
    items: List[str] = []
    current: List[str] = []
    quote = ""
    escaped = False
    for ch in raw:
        if quote:
            current.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = ""
            continue
        if ch in "\"'":
            quote = ch
            current.append(ch)
        elif ch == ",":
            items.append("".join(current))
            current = []
        else:
            current.append(ch)
    items.append("".join(current))
    return [item.strip() for item in items if item.strip()]


def parse_clause(text: str) -> Optional[ClauseSpec]:
    """Parse a single sub-clause; None when it matches neither form."""
    text = text.strip()

    in_match = _IN_RE.match(text)
    if in_match:
        items = [parse_literal(item) for item in _split_list(in_match.group(2))]
        return ClauseSpec(field=in_match.group(1), op="in", value=items, text=text)

    cmp_match = _CMP_RE.match(text)
    if cmp_match:
        return ClauseSpec(
            field=cmp_match.group(1),
            op=cmp_match.group(2),
            value=parse_literal(cmp_match.group(3)),
            text=text,
        )

    return None


def resolve_path(record: Any, path: str) -> Any:
    """Nested-key lookup of a dotted path; MISSING when it does not resolve."""
    current = record
    for key in path.split("."):
        if isinstance(current, dict):
            if key not in current:
                return MISSING
            current = current[key]
        elif isinstance(current, list) and key.isdigit():
            index = int(key)
            if index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


# ============================================================
# COMPILER
# ============================================================

ClauseTest = Callable[[Record], bool]


class CompiledPredicate:
    """
    Boolean test over one record built from up to three clauses.

    Calling it never raises: a clause that fails internally counts as
    "does not match".
    """

    __slots__ = ("clauses", "_tests")

    def __init__(self, clauses: List[ClauseSpec], tests: List[ClauseTest]):
        self.clauses = clauses
        self._tests = tests

    def __call__(self, record: Record) -> bool:
        for test in self._tests:
            try:
                if not test(record):
                    return False
            except Exception as e:
                logger.debug("Filter clause failed on record: %s", e)
                return False
        return True

    def __repr__(self) -> str:
        return f"CompiledPredicate({[c.text for c in self.clauses]!r})"


class PredicateCompiler:
    """
    Compiles where: clauses to predicate functions.

    Usage:
        predicate = PredicateCompiler().compile('correct == true and rt < 500')
        kept = [row for row in trials if predicate(row)]
    """

    def __init__(self, max_clauses: int = MAX_FILTER_CLAUSES):
        self.max_clauses = max_clauses

    def compile(self, where_clause: str) -> CompiledPredicate:
        """
        Compile a where: clause.

        Args:
            where_clause: Text after ``where:``

        Returns:
            CompiledPredicate; an empty clause accepts every record
        """
        conjuncts = split_conjuncts(where_clause or "")
        if len(conjuncts) > self.max_clauses:
            logger.debug(
                "Dropping %d filter clause(s) beyond the first %d",
                len(conjuncts) - self.max_clauses, self.max_clauses,
            )

        clauses: List[ClauseSpec] = []
        tests: List[ClauseTest] = []
        for text, _offset in conjuncts[:self.max_clauses]:
            spec = parse_clause(text)
            if spec is None:
                logger.debug("Ignoring unrecognised filter clause %r", text)
                continue
            clauses.append(spec)
            tests.append(self._compile_clause(spec))

        return CompiledPredicate(clauses, tests)

    def _compile_clause(self, spec: ClauseSpec) -> ClauseTest:
        if spec.op == "in":
            return self._compile_in_list(spec)
        return self._compile_comparison(spec)

    # --------------------------------------------------------
    # Clause Forms
    # --------------------------------------------------------

    def _compile_in_list(self, spec: ClauseSpec) -> ClauseTest:
        """Compile 'field in [list]' check."""
        def check(r, f=spec.field, items=spec.value):
            value = resolve_path(r, f)
            if value is MISSING:
                return False
            return any(strict_equal(value, item) for item in items)
        return check

    def _compile_comparison(self, spec: ClauseSpec) -> ClauseTest:
        """Compile 'field OP value' comparison."""
        return lambda r, f=spec.field, op=spec.op, v=spec.value: compare(resolve_path(r, f), op, v)


def compile_predicate(where_clause: str) -> CompiledPredicate:
    """Compile a where: clause to a predicate function."""
    return PredicateCompiler().compile(where_clause)
