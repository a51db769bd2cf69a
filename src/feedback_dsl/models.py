"""
Data models for the Feedback DSL engine

Pydantic models for the enriched experiment results the engine reads, and
plain dataclasses for the values it produces (variable series, statistic
expressions, diagnostics).
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ResultLoadError

Record = Dict[str, Any]


# ============================================================================
# Enums
# ============================================================================

class VariableType(str, Enum):
    """Type inferred from the first observed value of a variable"""
    NUMBER = "number"
    BOOLEAN = "boolean"
    STRING = "string"        # Default, also used for arrays/objects/null


class Metric(str, Enum):
    """Descriptive statistic computed by a stat: placeholder"""
    AVG = "avg"
    MEDIAN = "median"
    SD = "sd"                # Population standard deviation
    COUNT = "count"


class Scope(str, Enum):
    """Which results a statistic is computed over"""
    WITHIN = "within"        # Current participant only
    ACROSS = "across"        # Every supplied participant result


class DiagnosticKind(str, Enum):
    """Placeholder family a diagnostic belongs to"""
    VARIABLE = "variable"
    STAT = "stat"
    CONDITIONAL = "conditional"
    FILTER = "filter"
    SYNTAX = "syntax"


class Severity(str, Enum):
    """Severity level for diagnostics."""
    ERROR = "error"
    WARNING = "warning"


# ============================================================================
# Enriched Results (input)
# ============================================================================

class TrialSequence(BaseModel):
    """Repeated-structure component data, one record per trial"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["sequence"] = "sequence"
    records: List[Record] = Field(default_factory=list)

    overwrites: ClassVar[bool] = False

    def iter_records(self) -> List[Record]:
        return list(self.records)


class SingleResponse(BaseModel):
    """One-shot component data, a single flat response object"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["single"] = "single"
    record: Record = Field(default_factory=dict)

    # Later single responses replace earlier values of the same key
    overwrites: ClassVar[bool] = True

    def iter_records(self) -> List[Record]:
        return [self.record]


ParsedData = Annotated[Union[TrialSequence, SingleResponse], Field(discriminator="kind")]

_TAGGED_KEYS = ({"kind", "records"}, {"kind", "record"})


class ComponentResult(BaseModel):
    """Data captured by one screen/module of an experiment run"""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    parsed_data: Optional[ParsedData] = Field(default=None, alias="parsedData")

    @field_validator("parsed_data", mode="before")
    @classmethod
    def _tag_raw_data(cls, value: Any) -> Any:
        """Turn raw JSON (array of trials or single object) into the tagged variant."""
        if value is None or isinstance(value, (TrialSequence, SingleResponse)):
            return value
        if isinstance(value, list):
            return {"kind": "sequence", "records": [r for r in value if isinstance(r, dict)]}
        if isinstance(value, dict):
            if set(value.keys()) in _TAGGED_KEYS and value.get("kind") in ("sequence", "single"):
                return value
            return {"kind": "single", "record": value}
        # Unparsed payloads (plain strings, numbers) contribute nothing
        return None


class EnrichedResult(BaseModel):
    """One participant's complete experiment outcome"""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    component_results: List[ComponentResult] = Field(default_factory=list, alias="componentResults")


# ============================================================================
# Engine Values (output)
# ============================================================================

@dataclass
class VariableSeries:
    """All raw values observed for one variable, in observation order."""
    name: str
    type: VariableType
    values: List[Any] = field(default_factory=list)
    example: str = ""

    def first(self) -> Any:
        return self.values[0] if self.values else None

    def last(self) -> Any:
        return self.values[-1] if self.values else None


@dataclass
class VariableInfo:
    """Catalogue entry describing a variable for template authors."""
    name: str
    type: VariableType
    example: str
    occurrences: int
    structure: Literal["array", "object"]

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.type.value,
            "example": self.example,
            "occurrences": self.occurrences,
            "structure": self.structure,
        }


@dataclass
class FieldInfo:
    """A record field usable inside where: filters."""
    name: str
    type: VariableType

    def to_dict(self) -> dict:
        return {"name": self.name, "type": self.type.value}


@dataclass
class StatExpression:
    """A parsed stat: placeholder."""
    variable: str
    metric: Metric
    scope: Scope = Scope.WITHIN
    where: Optional[str] = None


@dataclass
class RenderContext:
    """Participant data a template is rendered against."""
    enriched_result: EnrichedResult
    all_results: Optional[List[EnrichedResult]] = None


@dataclass
class Diagnostic:
    """A single validation finding with a half-open character span."""
    kind: DiagnosticKind
    message: str
    start: int
    end: int
    severity: Severity = Severity.ERROR

    def to_dict(self) -> dict:
        return {
            "type": self.kind.value,
            "message": self.message,
            "start": self.start,
            "end": self.end,
            "severity": self.severity.value,
        }


@dataclass
class ValidationResult:
    """Result of validating a feedback template."""
    errors: List[Diagnostic] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not any(d.severity == Severity.ERROR for d in self.errors)

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.errors if d.severity == Severity.WARNING]

    def __bool__(self) -> bool:
        return self.is_valid

    def to_dict(self) -> dict:
        return {
            "errors": [d.to_dict() for d in self.errors],
            "isValid": self.is_valid,
        }


# ============================================================================
# Loading
# ============================================================================

def load_enriched_results(source: Union[str, Path, Any]) -> List[EnrichedResult]:
    """
    Load one or more enriched results.

    Args:
        source: Path to a JSON file, or already-decoded JSON. A JSON object
            is a single result, a JSON array a collection of results.

    Returns:
        List of validated EnrichedResult models

    Raises:
        ResultLoadError: If the file cannot be read or the data has the wrong shape
    """
    data = source
    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise ResultLoadError(f"Cannot read {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ResultLoadError(f"Invalid JSON in {path}: {e}") from e

    items = data if isinstance(data, list) else [data]
    results = []
    for index, item in enumerate(items):
        try:
            results.append(EnrichedResult.model_validate(item))
        except ValidationError as e:
            raise ResultLoadError(f"Result #{index} is not an enriched result: {e}") from e
    return results
