"""CLI entry point: command definitions using Click.

Commands:
    init          Generate a template config file
    aggregate     Merge coverage, metrics and SARIF inputs into one report
    thresholds    Show the resolved threshold table
"""

import functools
import json
import logging
import sys
from typing import Any

import click

from quality_report import __version__


# ---------------------------------------------------------------------------
# Helpers shared by all data commands
# ---------------------------------------------------------------------------

def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _load_config(ctx: click.Context):
    """Load the configuration. Exits on error.

    A missing file is only an error when --config was given explicitly.
    """
    from quality_report.config import DEFAULT_CONFIG_PATH, ConfigError, load

    obj = ctx.obj
    config_path = obj["config_path"]
    try:
        config = load(config_path, allow_missing=config_path == DEFAULT_CONFIG_PATH)
    except ConfigError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)

    if obj["verbose"]:
        click.echo(f"[verbose] Configuration loaded from '{config_path}'", err=True)
    return config


def _emit_json(data: Any, ctx: click.Context) -> None:
    """Write JSON to stdout or to the file specified by --output."""
    obj = ctx.obj
    indent = 2 if obj["pretty"] else None
    text = json.dumps(data, indent=indent, ensure_ascii=False)

    output_path: str | None = obj["output_path"]
    if output_path:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(text)
        click.echo(f"Report written to '{output_path}'", err=True)
    else:
        click.echo(text)


def _handle_errors(func):
    """Decorator that catches report errors and exits cleanly."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        from quality_report.errors import DuplicateSymbolError, QualityReportError
        from quality_report.sources import (
            AuthenticationError,
            NetworkError,
            SourceError,
            SourceNotFoundError,
        )

        try:
            return func(*args, **kwargs)
        except DuplicateSymbolError as exc:
            click.echo(f"Duplicate symbol: {exc}", err=True)
            sys.exit(1)
        except AuthenticationError as exc:
            click.echo(f"Authentication error: {exc}", err=True)
            sys.exit(1)
        except SourceNotFoundError as exc:
            click.echo(f"Not found: {exc}", err=True)
            sys.exit(1)
        except NetworkError as exc:
            click.echo(f"Network error: {exc}", err=True)
            sys.exit(1)
        except SourceError as exc:
            click.echo(f"Input error: {exc}", err=True)
            sys.exit(1)
        except QualityReportError as exc:
            click.echo(f"Error: {exc}", err=True)
            sys.exit(1)

    return wrapper


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--config", "config_path", default="quality-config.yaml", show_default=True,
              help="Path to the configuration file.")
@click.option("--output", "output_path", default=None,
              help="Write JSON output to a file instead of stdout.")
@click.option("--pretty", is_flag=True, default=False,
              help="Pretty-print the JSON output.")
@click.option("--verbose", is_flag=True, default=False,
              help="Enable verbose logging.")
@click.version_option(__version__, prog_name="quality-report")
@click.pass_context
def cli(ctx: click.Context, config_path: str, output_path: str | None,
        pretty: bool, verbose: bool) -> None:
    """Quality report tool: merge coverage, code metrics and SARIF diagnostics."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["output_path"] = output_path
    ctx.obj["pretty"] = pretty
    ctx.obj["verbose"] = verbose


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

@cli.command("init")
@click.option("--output", "output_path", default="quality-config.yaml", show_default=True,
              help="Path where the template config file will be written.")
def init_command(output_path: str) -> None:
    """Generate a template quality-config.yaml file."""
    from quality_report.config import ConfigError, generate_template
    try:
        generate_template(output_path)
        click.echo(f"Template written to '{output_path}'.")
        click.echo("Edit it with your input paths, exclusions and thresholds.")
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


# ---------------------------------------------------------------------------
# aggregate
# ---------------------------------------------------------------------------

@cli.command("aggregate")
@click.option("--solution", default=None, help="Solution name (overrides config).")
@click.option("--coverage", "coverage", multiple=True,
              help="Coverage document (JSON). Repeatable; overrides config.")
@click.option("--metrics", "metrics", multiple=True,
              help="Code metrics document (JSON). Repeatable; overrides config.")
@click.option("--sarif", "sarif", multiple=True,
              help="SARIF log. Repeatable; overrides config.")
@click.option("--baseline", default=None,
              help="Previous report (path or URL) used for deltas.")
@click.option("--suppressions", default=None,
              help="Suppression list (JSON).")
@click.pass_context
@_handle_errors
def aggregate_command(ctx: click.Context, solution: str | None, coverage: tuple[str, ...],
                      metrics: tuple[str, ...], sarif: tuple[str, ...],
                      baseline: str | None, suppressions: str | None) -> None:
    """Build the aggregated quality report and emit it as JSON."""
    from quality_report.aggregation import AggregationInput, MetricsAggregationService
    from quality_report.report import report_to_dict
    from quality_report.sources import SourceReader

    config = _load_config(ctx)
    verbose = ctx.obj["verbose"]
    inputs = config.inputs

    coverage_paths = list(coverage) or inputs.coverage
    metrics_paths = list(metrics) or inputs.metrics
    sarif_paths = list(sarif) or inputs.sarif
    baseline_path = baseline or inputs.baseline
    suppressions_path = suppressions or inputs.suppressions

    if not (coverage_paths or metrics_paths or sarif_paths):
        click.echo("No inputs: pass --coverage, --metrics or --sarif, or list them in the config.",
                   err=True)
        sys.exit(1)

    reader = SourceReader(token=config.token)

    if verbose:
        click.echo(f"[verbose] Loading {len(coverage_paths)} coverage, {len(metrics_paths)} metrics "
                   f"and {len(sarif_paths)} SARIF input(s)", err=True)

    request = AggregationInput(
        solution_name=solution or config.solution,
        coverage_documents=[reader.load_document(p) for p in coverage_paths],
        metrics_documents=[reader.load_document(p) for p in metrics_paths],
        sarif_documents=[reader.load_document(p, kind="sarif") for p in sarif_paths],
        baseline=reader.load_baseline(baseline_path) if baseline_path else None,
        baseline_reference=baseline_path,
        thresholds=config.thresholds,
        filters=config.build_filters(),
        suppressions=reader.load_suppressions(suppressions_path) if suppressions_path else [],
    )

    report = MetricsAggregationService().build_report(request)
    _emit_json(report_to_dict(report), ctx)


# ---------------------------------------------------------------------------
# thresholds
# ---------------------------------------------------------------------------

@cli.command("thresholds")
@click.pass_context
def thresholds_command(ctx: click.Context) -> None:
    """Show the threshold table after configuration overrides."""
    from quality_report.report import to_number

    config = _load_config(ctx)
    table = {}
    for metric, definition in config.thresholds.items():
        table[metric.name] = {
            "description": definition.description,
            "levels": {
                level.name: {
                    "warning": to_number(t.warning),
                    "error": to_number(t.error),
                    "higher_is_better": t.higher_is_better,
                }
                for level, t in definition.levels.items()
            },
        }
    _emit_json(table, ctx)
