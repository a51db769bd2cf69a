"""
Template Renderer - feedback markdown with live participant data.

Rendering runs in two passes over the template:

1. ``{{#if condition}} ... {{else}} ... {{/if}}`` blocks are resolved to one
   of their branches.
2. ``{{ var:... }}`` and ``{{ stat:... }}`` placeholders are substituted in
   a single scan, so substituted values are never interpreted again.

The renderer never raises. Each block and each placeholder is resolved in
isolation; a failure is logged at debug level and yields an empty string
(or the else branch of a conditional).
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from .coercion import format_display
from .config import DEFAULT_EXAMPLE_MAX_LENGTH
from .expression import ConditionEvaluator, parse_condition
from .extractor import extract_variables
from .grammar import CONDITIONAL_RE, PLACEHOLDER_RE
from .models import EnrichedResult, Metric, RenderContext, Scope, StatExpression, VariableSeries
from .predicate import PredicateCompiler
from .stats import StatisticsEngine, format_stat

logger = logging.getLogger(__name__)

LIST_SEPARATOR = ", "


class FeedbackRenderer:
    """
    Renders feedback templates against enriched results.

    Usage:
        renderer = FeedbackRenderer()
        markdown = renderer.render(template, RenderContext(result, all_results))
    """

    def __init__(
        self,
        stats_engine: Optional[StatisticsEngine] = None,
        compiler: Optional[PredicateCompiler] = None,
        example_max_length: int = DEFAULT_EXAMPLE_MAX_LENGTH,
    ):
        self.compiler = compiler or PredicateCompiler()
        self.stats_engine = stats_engine or StatisticsEngine(self.compiler)
        self.example_max_length = example_max_length

    def render(self, template: str, context: RenderContext) -> str:
        """
        Render a template.

        Args:
            template: Markdown with DSL placeholders
            context: The participant's result and, for across-scope
                statistics, every participant's result

        Returns:
            Rendered markdown; a template without placeholders is returned unchanged
        """
        if not template:
            return ""

        variables = extract_variables(
            context.enriched_result, example_max_length=self.example_max_length
        )

        text = CONDITIONAL_RE.sub(
            lambda m: self._resolve_conditional(m, variables), template
        )
        return PLACEHOLDER_RE.sub(
            lambda m: self._resolve_placeholder(m, context, variables), text
        )

    # ============================================================
    # CONDITIONALS
    # ============================================================

    def _resolve_conditional(self, match: re.Match, variables: Dict[str, VariableSeries]) -> str:
        otherwise = match.group("otherwise") or ""
        condition = match.group("condition").strip()
        try:
            node = parse_condition(condition)
            passed = ConditionEvaluator(variables).test(node)
        except Exception as e:
            logger.debug("Condition %r treated as false: %s", condition, e)
            return otherwise
        return match.group("then") if passed else otherwise

    # ============================================================
    # PLACEHOLDERS
    # ============================================================

    def _resolve_placeholder(
        self,
        match: re.Match,
        context: RenderContext,
        variables: Dict[str, VariableSeries],
    ) -> str:
        try:
            if match.group("var_name") is not None:
                return self._render_var(
                    match.group("var_name"),
                    match.group("var_modifier"),
                    match.group("var_where"),
                    context,
                    variables,
                )
            return self._render_stat(
                match.group("stat_name"),
                match.group("stat_metric"),
                match.group("stat_scope"),
                match.group("stat_where"),
                context,
            )
        except Exception as e:
            logger.debug("Placeholder %r rendered empty: %s", match.group(0), e)
            return ""

    def _render_var(
        self,
        name: str,
        modifier: Optional[str],
        where: Optional[str],
        context: RenderContext,
        variables: Dict[str, VariableSeries],
    ) -> str:
        where = (where or "").strip()
        if where:
            predicate = self.compiler.compile(where)
            series = extract_variables(context.enriched_result, predicate).get(name)
            values = [v for v in series.values if v is not None] if series else []
        else:
            series = variables.get(name)
            values = series.values if series else []

        if not values:
            return ""
        return self._select(values, modifier)

    def _select(self, values: List[Any], modifier: Optional[str]) -> str:
        if modifier == "first":
            return format_display(values[0])
        if modifier == "last":
            return format_display(values[-1])
        # "all", no modifier, and unknown modifiers
        return LIST_SEPARATOR.join(format_display(v) for v in values)

    def _render_stat(
        self,
        name: str,
        metric: str,
        scope: Optional[str],
        where: Optional[str],
        context: RenderContext,
    ) -> str:
        try:
            expr = StatExpression(
                variable=name,
                metric=Metric(metric),
                scope=Scope(scope) if scope else Scope.WITHIN,
                where=(where or "").strip() or None,
            )
        except ValueError:
            logger.debug("Unknown metric or scope in stat:%s.%s:%s", name, metric, scope)
            return ""

        value = self.stats_engine.compute(expr, context.enriched_result, context.all_results)
        return format_stat(value)


def render_template(
    template: str,
    enriched_result: EnrichedResult,
    all_results: Optional[Sequence[EnrichedResult]] = None,
) -> str:
    """Render a feedback template. Module-level convenience function."""
    context = RenderContext(
        enriched_result=enriched_result,
        all_results=list(all_results) if all_results is not None else None,
    )
    return FeedbackRenderer().render(template, context)
