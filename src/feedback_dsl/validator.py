"""
DSL Validator - static diagnostics for feedback templates.

This module checks a template against one participant's result without
rendering it:
- var:/stat: placeholders reference known variables, modifiers, metrics
  and scopes
- where: clauses parse and filter on known fields
- {{#if}} conditions parse and reference known variables
- braces and conditional tags are balanced, and placeholders are well formed

Every diagnostic carries a half-open character span into the template so
an editor can underline it.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Set

from .config import MAX_FILTER_CLAUSES, VALID_METRICS, VALID_MODIFIERS, VALID_SCOPES
from .exceptions import ConditionSyntaxError
from .expression import parse_condition
from .extractor import extract_variables, list_fields
from .grammar import (
    CLOSE_TAG_RE,
    IF_CLOSE_RE,
    IF_HEAD_RE,
    IF_OPEN_RE,
    OPEN_TAG_RE,
    PLACEHOLDER_RE,
    STAT_SPAN_RE,
    VAR_ATOM_RE,
    VAR_SPAN_RE,
    WELL_FORMED_STAT_RE,
    WELL_FORMED_VAR_RE,
)
from .models import (
    Diagnostic,
    DiagnosticKind,
    EnrichedResult,
    Severity,
    ValidationResult,
    VariableSeries,
)
from .predicate import parse_clause, split_conjuncts

logger = logging.getLogger(__name__)

# "or" / "||" outside quoted strings
_OR_RE = re.compile(
    r"\"(?:\\.|[^\"\\])*\"|'(?:\\.|[^'\\])*'|\bor\b|\|\|",
    re.IGNORECASE,
)


class DSLValidator:
    """
    Validates feedback templates against an enriched result.

    Usage:
        validator = DSLValidator()
        result = validator.validate(template, enriched_result)
        if not result.is_valid:
            for diagnostic in result.errors:
                print(diagnostic.message)
    """

    def __init__(self, max_clauses: int = MAX_FILTER_CLAUSES):
        self.max_clauses = max_clauses
        self.issues: List[Diagnostic] = []
        self.variables: Dict[str, VariableSeries] = {}
        self.fields: Set[str] = set()

    def validate(self, template: str, enriched_result: EnrichedResult) -> ValidationResult:
        """
        Validate a template.

        Args:
            template: Markdown with DSL placeholders
            enriched_result: Sample participant result defining the known
                variables and filterable fields

        Returns:
            ValidationResult with diagnostics in discovery order
        """
        self.issues = []
        self.variables = extract_variables(enriched_result)
        self.fields = {f.name for f in list_fields(enriched_result, include_excluded=True)}

        template = template or ""
        self._check_placeholders(template)
        self._check_conditionals(template)
        self._check_malformed(template)
        self._check_structure(template)

        logger.debug("Validated template: %d diagnostic(s)", len(self.issues))
        return ValidationResult(errors=list(self.issues))

    def _add_issue(
        self,
        kind: DiagnosticKind,
        message: str,
        start: int,
        end: int,
        severity: Severity = Severity.ERROR,
    ) -> None:
        self.issues.append(Diagnostic(kind, message, start, end, severity))

    # ============================================================
    # PLACEHOLDERS
    # ============================================================

    def _check_placeholders(self, template: str) -> None:
        for match in PLACEHOLDER_RE.finditer(template):
            if match.group("var_name") is not None:
                self._check_var_ref(
                    match.group("var_name"),
                    match.group("var_modifier"),
                    DiagnosticKind.VARIABLE,
                    match.start(),
                    match.end(),
                )
                where_group = "var_where"
            else:
                self._check_stat_ref(match)
                where_group = "stat_where"

            if match.group(where_group) is not None:
                self._check_where(
                    match.group(where_group),
                    match.start(where_group),
                    match.start(),
                    match.end(),
                )

    def _check_var_ref(
        self,
        name: str,
        modifier: Optional[str],
        kind: DiagnosticKind,
        start: int,
        end: int,
    ) -> None:
        if name not in self.variables:
            self._add_issue(kind, f"Unknown variable '{name}'", start, end)
        if modifier is not None and modifier not in VALID_MODIFIERS:
            self._add_issue(
                kind,
                f"Unknown modifier '{modifier}'. Expected one of: {', '.join(VALID_MODIFIERS)}",
                start, end,
            )

    def _check_stat_ref(self, match: re.Match) -> None:
        name = match.group("stat_name")
        metric = match.group("stat_metric")
        scope = match.group("stat_scope")
        start, end = match.start(), match.end()

        if name not in self.variables:
            self._add_issue(DiagnosticKind.STAT, f"Unknown variable '{name}'", start, end)
        if metric not in VALID_METRICS:
            self._add_issue(
                DiagnosticKind.STAT,
                f"Unknown metric '{metric}'. Expected one of: {', '.join(VALID_METRICS)}",
                start, end,
            )
        if scope is not None and scope not in VALID_SCOPES:
            self._add_issue(
                DiagnosticKind.STAT,
                f"Unknown scope '{scope}'. Expected one of: {', '.join(VALID_SCOPES)}",
                start, end,
            )

    # ============================================================
    # WHERE CLAUSES
    # ============================================================

    def _check_where(self, where: str, offset: int, start: int, end: int) -> None:
        if not where.strip():
            self._add_issue(DiagnosticKind.FILTER, "Empty where clause", start, end)
            return

        for match in _OR_RE.finditer(where):
            if match.group(0)[0] in "\"'":
                continue
            self._add_issue(
                DiagnosticKind.FILTER,
                "'or' is not supported in where clauses; only 'and' combines conditions",
                offset + match.start(),
                offset + match.end(),
                Severity.WARNING,
            )

        conjuncts = split_conjuncts(where)
        if len(conjuncts) > self.max_clauses:
            ignored = len(conjuncts) - self.max_clauses
            self._add_issue(
                DiagnosticKind.FILTER,
                f"Only the first {self.max_clauses} filter clauses are applied; "
                f"{ignored} ignored",
                offset,
                offset + len(where.rstrip()),
                Severity.WARNING,
            )

        for text, clause_offset in conjuncts:
            clause_start = offset + clause_offset
            spec = parse_clause(text)
            if spec is None:
                self._add_issue(
                    DiagnosticKind.FILTER,
                    f"Invalid filter clause '{text}'. "
                    "Expected 'field OP value' or 'field in [values]'",
                    clause_start,
                    clause_start + len(text),
                )
                continue
            if not self._is_known_field(spec.field):
                self._add_issue(
                    DiagnosticKind.FILTER,
                    f"Unknown field '{spec.field}'",
                    clause_start,
                    clause_start + len(spec.field),
                )

    def _is_known_field(self, path: str) -> bool:
        return path in self.fields or path.split(".", 1)[0] in self.fields

    # ============================================================
    # CONDITIONALS
    # ============================================================

    def _check_conditionals(self, template: str) -> None:
        for match in IF_HEAD_RE.finditer(template):
            condition = match.group("condition")
            offset = match.start("condition")

            for atom in VAR_ATOM_RE.finditer(condition):
                self._check_var_ref(
                    atom.group(1),
                    atom.group(2),
                    DiagnosticKind.CONDITIONAL,
                    offset + atom.start(),
                    offset + atom.end(),
                )

            try:
                parse_condition(condition)
            except ConditionSyntaxError as e:
                self._add_issue(
                    DiagnosticKind.CONDITIONAL,
                    f"Invalid condition: {e}",
                    offset,
                    offset + len(condition),
                )

    # ============================================================
    # STRUCTURE
    # ============================================================

    def _check_malformed(self, template: str) -> None:
        for pattern, well_formed, label in (
            (VAR_SPAN_RE, WELL_FORMED_VAR_RE, "variable"),
            (STAT_SPAN_RE, WELL_FORMED_STAT_RE, "statistic"),
        ):
            for match in pattern.finditer(template):
                if not well_formed.fullmatch(match.group(0)):
                    self._add_issue(
                        DiagnosticKind.SYNTAX,
                        f"Malformed {label} placeholder '{match.group(0)}'",
                        match.start(),
                        match.end(),
                    )

    def _check_structure(self, template: str) -> None:
        opened = len(OPEN_TAG_RE.findall(template))
        closed = len(CLOSE_TAG_RE.findall(template))
        if opened != closed:
            self._add_issue(
                DiagnosticKind.SYNTAX,
                f"Unbalanced braces: {opened} '{{{{' but {closed} '}}}}'",
                0,
                len(template),
            )

        if_opened = len(IF_OPEN_RE.findall(template))
        if_closed = len(IF_CLOSE_RE.findall(template))
        if if_opened != if_closed:
            self._add_issue(
                DiagnosticKind.SYNTAX,
                f"Unbalanced conditionals: {if_opened} '{{{{#if}}}}' but {if_closed} '{{{{/if}}}}'",
                0,
                len(template),
            )


def validate_template(template: str, enriched_result: EnrichedResult) -> ValidationResult:
    """Validate a feedback template. Module-level convenience function."""
    return DSLValidator().validate(template, enriched_result)
