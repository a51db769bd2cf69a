"""
Statistics Engine - descriptive statistics for stat: placeholders.

Values are collected by re-running extraction (with the optional where:
predicate applied per record) over every result in scope, so nothing is
cached between calls.
"""

from __future__ import annotations

import logging
import statistics
from typing import Any, List, Optional, Sequence, Union

from .coercion import format_number, to_number
from .extractor import extract_variables
from .models import EnrichedResult, Metric, Scope, StatExpression
from .predicate import PredicateCompiler

logger = logging.getLogger(__name__)

Number = Union[int, float]


def mean(xs: Sequence[Number]) -> Optional[float]:
    if not xs:
        return None
    return statistics.fmean(xs)


def median(xs: Sequence[Number]) -> Optional[Number]:
    if not xs:
        return None
    return statistics.median(xs)


def population_sd(xs: Sequence[Number]) -> Optional[float]:
    """Population standard deviation (divides by N)."""
    if not xs:
        return None
    return statistics.pstdev([float(x) for x in xs])


def numeric_series(values: Sequence[Any]) -> List[Number]:
    """Keep the values that coerce to numbers."""
    series = []
    for value in values:
        number = to_number(value)
        if number is not None:
            series.append(number)
    return series


class StatisticsEngine:
    """
    Computes stat: expressions over one or many enriched results.

    Usage:
        engine = StatisticsEngine()
        expr = StatExpression(variable="rt", metric=Metric.AVG)
        value = engine.compute(expr, current_result)
    """

    def __init__(self, compiler: Optional[PredicateCompiler] = None):
        self.compiler = compiler or PredicateCompiler()

    def resolve_results(
        self,
        scope: Scope,
        current: EnrichedResult,
        all_results: Optional[Sequence[EnrichedResult]] = None,
    ) -> List[EnrichedResult]:
        """within -> the current result; across -> any supplied collection, even empty."""
        if scope == Scope.ACROSS and all_results is not None:
            return list(all_results)
        return [current]

    def collect(
        self,
        expr: StatExpression,
        current: EnrichedResult,
        all_results: Optional[Sequence[EnrichedResult]] = None,
    ) -> List[Any]:
        """Raw values of the variable over the filtered records in scope."""
        predicate = self.compiler.compile(expr.where) if expr.where else None
        values: List[Any] = []
        for result in self.resolve_results(expr.scope, current, all_results):
            series = extract_variables(result, predicate).get(expr.variable)
            if series is not None:
                values.extend(series.values)
        return values

    def compute(
        self,
        expr: StatExpression,
        current: EnrichedResult,
        all_results: Optional[Sequence[EnrichedResult]] = None,
    ) -> Optional[Number]:
        """
        Compute a statistic.

        Returns:
            int for count; avg/median/sd as numbers, or None when no
            numeric values remain after filtering
        """
        values = self.collect(expr, current, all_results)

        if expr.metric == Metric.COUNT:
            return sum(1 for v in values if v is not None)

        series = numeric_series(values)
        if expr.metric == Metric.AVG:
            return mean(series)
        if expr.metric == Metric.MEDIAN:
            return median(series)
        if expr.metric == Metric.SD:
            return population_sd(series)

        logger.debug("Unsupported metric %r", expr.metric)
        return None


def compute_stat(
    expr: StatExpression,
    current: EnrichedResult,
    all_results: Optional[Sequence[EnrichedResult]] = None,
) -> Optional[Number]:
    """Compute a stat: expression. Module-level convenience function."""
    return StatisticsEngine().compute(expr, current, all_results)


def format_stat(value: Optional[Number]) -> str:
    """Display form of a statistic: empty for None, else two decimals at most."""
    return format_number(value)
