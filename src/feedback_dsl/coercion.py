"""
Value coercion shared by the predicate compiler, the condition evaluator
and the renderer.

Literal parsing, strict/numeric comparison and display formatting live here
so that a where: filter and an {{#if}} condition agree on what ``==`` or
``>`` mean for the same pair of values.
"""

import json
import math
import operator
import re
from typing import Any, Callable, Dict, Optional, Union

from .config import STAT_DECIMALS

Number = Union[int, float]

_INT_RE = re.compile(r"[+-]?\d+")


class _Missing:
    """Marker for a field path that does not resolve in a record."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


def is_missing(value: Any) -> bool:
    return value is MISSING


# ============================================================
# NUMBERS
# ============================================================

def _parse_number(text: str) -> Optional[Number]:
    """Parse numeric text, rejecting NaN and Python-only spellings."""
    if not text or "_" in text:
        return None
    if _INT_RE.fullmatch(text):
        return int(text)
    try:
        value = float(text)
    except ValueError:
        return None
    if math.isnan(value):
        return None
    return value


def to_number(value: Any) -> Optional[Number]:
    """
    Coerce a raw value to a number.

    Numbers (but not booleans) and non-blank numeric strings succeed,
    everything else returns None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        return _parse_number(value.strip())
    return None


# ============================================================
# LITERALS
# ============================================================

_ESCAPE_RE = re.compile(r"\\(.)")
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}


def _unescape(text: str) -> str:
    return _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(1)), text)


def unquote(token: str) -> str:
    """Strip matching quotes and resolve backslash escapes."""
    if len(token) >= 2 and token[0] in "\"'" and token[-1] == token[0]:
        return _unescape(token[1:-1])
    # Unterminated quote: keep everything after it
    return token[1:]


def parse_literal(token: str) -> Any:
    """
    Parse a literal token from a filter or condition.

    Recognizes single- or double-quoted strings, ``true``, ``false``,
    ``null`` and bare numbers. Anything else is returned unchanged as a
    string, so ``stimulus in [blue, red]`` compares against "blue"/"red".
    """
    token = token.strip()
    if token[:1] in ("\"", "'"):
        return unquote(token)
    if token == "true":
        return True
    if token == "false":
        return False
    if token == "null":
        return None
    number = _parse_number(token)
    if number is not None:
        return number
    return token


# ============================================================
# COMPARISON
# ============================================================

_ORDERING: Dict[str, Callable[[Number, Number], bool]] = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
}

COMPARE_OPERATORS = ("==", "!=", ">=", "<=", ">", "<")


def strict_equal(lhs: Any, rhs: Any) -> bool:
    """Equality without cross-type coercion (``true`` never equals ``1``)."""
    lhs_bool = isinstance(lhs, bool)
    rhs_bool = isinstance(rhs, bool)
    if lhs_bool or rhs_bool:
        return lhs_bool and rhs_bool and lhs == rhs
    if isinstance(lhs, (int, float)) and isinstance(rhs, (int, float)):
        return lhs == rhs
    if type(lhs) is not type(rhs):
        return False
    return lhs == rhs


def compare(lhs: Any, op: str, rhs: Any) -> bool:
    """
    Compare two raw values with one of ``== != > < >= <=``.

    Ordering operators coerce both sides with :func:`to_number`; a
    non-numeric side makes the comparison false. Any comparison involving
    an unresolved field is false. Never raises.
    """
    if lhs is MISSING or rhs is MISSING:
        return False
    if op == "==":
        return strict_equal(lhs, rhs)
    if op == "!=":
        return not strict_equal(lhs, rhs)

    fn = _ORDERING.get(op)
    if fn is None:
        return False
    left = to_number(lhs)
    right = to_number(rhs)
    if left is None or right is None:
        return False
    return fn(left, right)


# ============================================================
# DISPLAY
# ============================================================

def round_half_up(value: float, decimals: int = STAT_DECIMALS) -> float:
    if not math.isfinite(value):
        return value
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def _number_text(value: Number) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer():
        return str(int(value))
    return repr(value)


def format_number(value: Optional[Number], decimals: int = STAT_DECIMALS) -> str:
    """Render a statistic: rounded half up, integral values without ``.0``."""
    if value is None:
        return ""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return _number_text(round_half_up(float(value), decimals))


def format_display(value: Any) -> str:
    """Render a raw value the way it appears in a feedback document."""
    if value is None or value is MISSING:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _number_text(value)
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    return str(value)


def truncate(text: str, max_length: int) -> str:
    if len(text) > max_length:
        return text[:max_length] + "..."
    return text
