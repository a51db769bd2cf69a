"""
Template references - which variables a feedback template needs.

Used when a template is saved: the names it reads are recorded with a
stable hash, and coverage against the variables an extraction produced
is reported as missing and extra keys.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Tuple

from .config import RESERVED_WORDS
from .grammar import IDENT, PLACEHOLDER_RE, VAR_ATOM_RE
from .predicate import parse_clause, split_conjuncts

_STAT_NAME_RE = re.compile(rf"stat:({IDENT})\.")
_NUMERIC_RE = re.compile(r"[0-9]+(\.[0-9]+)?")

NO_KEYS_HASH = "none"


class CoverageStatus(str, Enum):
    VALID = "VALID"
    INVALID = "INVALID"


@dataclass
class CoverageReport:
    """How a template's required names line up with available variables."""
    status: CoverageStatus
    missing_keys: List[str] = field(default_factory=list)
    extra_keys: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "missingKeys": list(self.missing_keys),
            "extraKeys": list(self.extra_keys),
        }


def _where_fields(template: str) -> List[Tuple[int, str]]:
    found = []
    for match in PLACEHOLDER_RE.finditer(template):
        group = "var_where" if match.group("var_name") is not None else "stat_where"
        where = match.group(group)
        if not where:
            continue
        offset = match.start(group)
        for text, clause_offset in split_conjuncts(where):
            spec = parse_clause(text)
            if spec is None:
                continue
            if spec.field.lower() in RESERVED_WORDS or _NUMERIC_RE.fullmatch(spec.field):
                continue
            found.append((offset + clause_offset, spec.field))
    return found


def extract_required_variable_names(template: str) -> List[str]:
    """
    Names a template reads, in order of first appearance.

    Covers var: references (placeholders and {{#if}} conditions), stat:
    placeholders and the fields of where: clauses.
    """
    template = template or ""
    found: List[Tuple[int, str]] = []
    found.extend((m.start(), m.group(1)) for m in VAR_ATOM_RE.finditer(template))
    found.extend((m.start(), m.group(1)) for m in _STAT_NAME_RE.finditer(template))
    found.extend(_where_fields(template))

    names: List[str] = []
    for _position, name in sorted(found, key=lambda item: item[0]):
        if name not in names:
            names.append(name)
    return names


def build_required_keys_hash(names: Iterable[str]) -> str:
    """Order-independent key for a set of names: sorted and joined with '|'."""
    ordered = sorted(names)
    return "|".join(ordered) if ordered else NO_KEYS_HASH


def check_template_coverage(template: str, available_names: Iterable[str]) -> CoverageReport:
    """
    Compare the names a template needs with the names an extraction provides.

    Returns:
        CoverageReport; VALID only when nothing is missing and nothing extra
    """
    required = extract_required_variable_names(template.strip())
    available = list(dict.fromkeys(available_names))
    available_set = set(available)
    required_set = set(required)

    missing = [name for name in required if name not in available_set]
    extra = [name for name in available if name not in required_set]

    status = CoverageStatus.VALID if not missing and not extra else CoverageStatus.INVALID
    return CoverageReport(status=status, missing_keys=missing, extra_keys=extra)
