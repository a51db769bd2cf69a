"""
Feedback DSL - participant feedback templates for research studies

Renders markdown feedback documents that reference a participant's
experiment data through ``{{ var:... }}``, ``{{ stat:... }}`` and
``{{#if ...}}`` placeholders, and validates such templates without
rendering them.
"""

__version__ = "0.1.0"

from .exceptions import (
    ConditionSyntaxError,
    FeedbackDSLError,
    MessageDataError,
    MessageTemplateError,
    MessageTemplateNotFoundError,
    ResultLoadError,
    TemplateError,
)
from .models import (
    ComponentResult,
    Diagnostic,
    DiagnosticKind,
    EnrichedResult,
    Metric,
    RenderContext,
    Scope,
    Severity,
    SingleResponse,
    StatExpression,
    TrialSequence,
    ValidationResult,
    VariableSeries,
    VariableType,
    load_enriched_results,
)
from .coercion import MISSING, compare, format_display, format_number, is_missing, parse_literal, to_number
from .extractor import extract_variables, list_fields, list_variables
from .predicate import CompiledPredicate, PredicateCompiler, compile_predicate
from .stats import StatisticsEngine, compute_stat, format_stat
from .expression import ConditionParser, evaluate_condition, parse_condition
from .renderer import FeedbackRenderer, render_template
from .validator import DSLValidator, validate_template
from .references import (
    CoverageReport,
    build_required_keys_hash,
    check_template_coverage,
    extract_required_variable_names,
)
from .messages import MessageTemplateCache, MessageTemplates, strip_html_tags
from .config import EngineConfig
from .logging_config import configure_logging

__all__ = [
    "__version__",
    # Errors
    "FeedbackDSLError",
    "TemplateError",
    "ConditionSyntaxError",
    "ResultLoadError",
    "MessageTemplateError",
    "MessageTemplateNotFoundError",
    "MessageDataError",
    # Models
    "EnrichedResult",
    "ComponentResult",
    "TrialSequence",
    "SingleResponse",
    "VariableSeries",
    "VariableType",
    "StatExpression",
    "Metric",
    "Scope",
    "RenderContext",
    "Diagnostic",
    "DiagnosticKind",
    "Severity",
    "ValidationResult",
    "load_enriched_results",
    # Coercion
    "MISSING",
    "is_missing",
    "to_number",
    "parse_literal",
    "compare",
    "format_number",
    "format_display",
    # Engine
    "extract_variables",
    "list_variables",
    "list_fields",
    "PredicateCompiler",
    "CompiledPredicate",
    "compile_predicate",
    "StatisticsEngine",
    "compute_stat",
    "format_stat",
    "ConditionParser",
    "parse_condition",
    "evaluate_condition",
    "FeedbackRenderer",
    "render_template",
    "DSLValidator",
    "validate_template",
    # References
    "extract_required_variable_names",
    "build_required_keys_hash",
    "check_template_coverage",
    "CoverageReport",
    # Messages
    "MessageTemplateCache",
    "MessageTemplates",
    "strip_html_tags",
    # Ambient
    "EngineConfig",
    "configure_logging",
]
