"""
Command-line front end: ``feedback-dsl render|validate|variables``.

    feedback-dsl render feedback.md result.json --all results.json
    feedback-dsl validate feedback.md result.json --json
    feedback-dsl variables result.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import EngineConfig
from .exceptions import FeedbackDSLError, ResultLoadError
from .extractor import list_fields, list_variables
from .logging_config import configure_logging
from .models import EnrichedResult, RenderContext, Severity, load_enriched_results
from .renderer import FeedbackRenderer
from .validator import validate_template

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_LOAD_ERROR = 2


def _read_template(path: Path) -> str:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        raise ResultLoadError(f"Cannot read template {path}: {e}") from e


def _load_one(path: Path) -> EnrichedResult:
    results = load_enriched_results(path)
    if not results:
        raise ResultLoadError(f"{path} contains no results")
    if len(results) > 1:
        logger.info("%s holds %d results; using the first", path, len(results))
    return results[0]


# ============================================================
# COMMANDS
# ============================================================

def cmd_render(args: argparse.Namespace, console: Console, config: EngineConfig) -> int:
    template = _read_template(args.template)
    result = _load_one(args.result)
    all_results = load_enriched_results(args.all) if args.all else None

    renderer = FeedbackRenderer(example_max_length=config.example_max_length)
    rendered = renderer.render(template, RenderContext(result, all_results))
    sys.stdout.write(rendered)
    if rendered and not rendered.endswith("\n"):
        sys.stdout.write("\n")
    return EXIT_OK


def cmd_validate(args: argparse.Namespace, console: Console, config: EngineConfig) -> int:
    template = _read_template(args.template)
    result = _load_one(args.result)
    validation = validate_template(template, result)

    if args.json:
        sys.stdout.write(json.dumps(validation.to_dict(), indent=2) + "\n")
    elif not validation.errors:
        console.print("[green]Template is valid[/green]")
    else:
        table = Table(title=f"{len(validation.errors)} diagnostic(s)")
        table.add_column("Severity")
        table.add_column("Type", style="cyan")
        table.add_column("Span", style="dim")
        table.add_column("Message")
        for diagnostic in validation.errors:
            style = "red" if diagnostic.severity == Severity.ERROR else "yellow"
            table.add_row(
                f"[{style}]{diagnostic.severity.value}[/{style}]",
                diagnostic.kind.value,
                f"{diagnostic.start}-{diagnostic.end}",
                escape(diagnostic.message),
            )
        console.print(table)

    return EXIT_OK if validation.is_valid else EXIT_INVALID


def cmd_variables(args: argparse.Namespace, console: Console, config: EngineConfig) -> int:
    result = _load_one(args.result)
    variables = list_variables(result, example_max_length=config.example_max_length)

    if args.json:
        payload = {
            "variables": [v.to_dict() for v in variables],
            "fields": [f.to_dict() for f in list_fields(result)],
        }
        sys.stdout.write(json.dumps(payload, indent=2) + "\n")
        return EXIT_OK

    table = Table(title=f"{len(variables)} variable(s)")
    table.add_column("Name", style="bold")
    table.add_column("Type", style="cyan")
    table.add_column("Structure")
    table.add_column("Occurrences", justify="right")
    table.add_column("Example", style="dim")
    for info in variables:
        table.add_row(escape(info.name), info.type.value, info.structure, str(info.occurrences), escape(info.example))
    console.print(table)
    return EXIT_OK


# ============================================================
# ENTRY POINT
# ============================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="feedback-dsl",
        description="Render and validate participant feedback templates",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", help="Logging level (default: FEEDBACK_DSL_LOG_LEVEL or WARNING)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    render = subparsers.add_parser("render", help="Render a template against one result")
    render.add_argument("template", type=Path, help="Markdown template file")
    render.add_argument("result", type=Path, help="Enriched result JSON of the participant")
    render.add_argument("--all", type=Path, help="JSON array of every participant's result (for across-scope stats)")
    render.set_defaults(handler=cmd_render)

    validate = subparsers.add_parser("validate", help="Report diagnostics for a template")
    validate.add_argument("template", type=Path, help="Markdown template file")
    validate.add_argument("result", type=Path, help="Sample enriched result JSON")
    validate.add_argument("--json", action="store_true", help="Print diagnostics as JSON")
    validate.set_defaults(handler=cmd_validate)

    variables = subparsers.add_parser("variables", help="List the variables of a result")
    variables.add_argument("result", type=Path, help="Enriched result JSON")
    variables.add_argument("--json", action="store_true", help="Print the catalogue as JSON")
    variables.set_defaults(handler=cmd_variables)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the feedback-dsl command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = EngineConfig.from_env()
    configure_logging(level=args.log_level, config=config)

    console = Console()
    error_console = Console(stderr=True)
    try:
        return args.handler(args, console, config)
    except FeedbackDSLError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
        return EXIT_LOAD_ERROR


if __name__ == "__main__":
    sys.exit(main())
