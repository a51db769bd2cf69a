"""
Variable extraction from enriched results.

Every component's parsed data is folded record by record into a mapping
from variable name to the ordered series of raw values observed for it.
Trial sequences append, single responses replace (most recent component
wins). Framework bookkeeping fields are never extracted.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterator, List, Optional, Union

from .coercion import format_display, truncate
from .config import DEFAULT_EXAMPLE_MAX_LENGTH, EXCLUDED_FIELDS
from .models import (
    EnrichedResult,
    FieldInfo,
    Record,
    SingleResponse,
    TrialSequence,
    VariableInfo,
    VariableSeries,
    VariableType,
)

logger = logging.getLogger(__name__)

RecordPredicate = Callable[[Record], bool]


def infer_type(value) -> VariableType:
    """Map a raw JSON value to the variable type tag."""
    if isinstance(value, bool):
        return VariableType.BOOLEAN
    if isinstance(value, (int, float)):
        return VariableType.NUMBER
    return VariableType.STRING


def format_example(value, max_length: int = DEFAULT_EXAMPLE_MAX_LENGTH) -> str:
    """Short display form of a value for catalogues and editor hints."""
    if value is None:
        return "null"
    return truncate(format_display(value), max_length)


def _iter_parsed_data(result: EnrichedResult) -> Iterator[Union[TrialSequence, SingleResponse]]:
    for component in result.component_results:
        if component.parsed_data is not None:
            yield component.parsed_data


def extract_variables(
    result: EnrichedResult,
    predicate: Optional[RecordPredicate] = None,
    example_max_length: int = DEFAULT_EXAMPLE_MAX_LENGTH,
) -> Dict[str, VariableSeries]:
    """
    Flatten an enriched result into variable series.

    Args:
        result: The participant's enriched result
        predicate: Optional per-record filter; only records it accepts
            contribute values, so several variables stay correlated per trial
        example_max_length: Truncation length of the example display value

    Returns:
        Mapping of variable name to VariableSeries, in first-seen order
    """
    variables: Dict[str, VariableSeries] = {}

    for data in _iter_parsed_data(result):
        for record in data.iter_records():
            if predicate is not None and not predicate(record):
                continue
            for key, value in record.items():
                if key in EXCLUDED_FIELDS:
                    continue
                series = variables.get(key)
                if series is None or data.overwrites:
                    variables[key] = VariableSeries(
                        name=key,
                        type=infer_type(value),
                        values=[value],
                        example=format_example(value, example_max_length),
                    )
                else:
                    series.values.append(value)

    return variables


# ============================================================
# AUTHORING CATALOGUE
# ============================================================

def list_variables(
    result: EnrichedResult,
    example_max_length: int = DEFAULT_EXAMPLE_MAX_LENGTH,
) -> List[VariableInfo]:
    """
    Describe every variable for the template editor.

    Trial variables count occurrences and show an example taken from one
    of the first three occurrences; response variables are replaced by
    later components.
    """
    catalogue: Dict[str, VariableInfo] = {}

    for data in _iter_parsed_data(result):
        structure = "object" if data.overwrites else "array"
        for record in data.iter_records():
            for key, value in record.items():
                if key in EXCLUDED_FIELDS:
                    continue
                existing = catalogue.get(key)
                if existing is None or data.overwrites:
                    catalogue[key] = VariableInfo(
                        name=key,
                        type=infer_type(value),
                        example=format_example(value, example_max_length),
                        occurrences=1,
                        structure=structure,
                    )
                    continue
                existing.occurrences += 1
                if existing.occurrences <= 3:
                    existing.example = format_example(value, example_max_length)

    logger.debug("Catalogued %d variables", len(catalogue))
    return sorted(catalogue.values(), key=lambda v: v.name)


def list_fields(result: EnrichedResult, include_excluded: bool = False) -> List[FieldInfo]:
    """Fields available to where: filters, sorted by name."""
    fields: Dict[str, FieldInfo] = {}

    for data in _iter_parsed_data(result):
        for record in data.iter_records():
            for key, value in record.items():
                if not include_excluded and key in EXCLUDED_FIELDS:
                    continue
                if key not in fields or data.overwrites:
                    fields[key] = FieldInfo(name=key, type=infer_type(value))

    return sorted(fields.values(), key=lambda f: f.name)
