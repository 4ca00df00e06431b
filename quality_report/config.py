"""Configuration loading and validation.

Usage:
    config = load("quality-config.yaml")         # raises ConfigError on bad config
    filters = config.build_filters()             # ReportFilters for the merger
    generate_template("quality-config.yaml")     # writes example file to disk
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path

import yaml

from quality_report.aggregation.thresholds import default_thresholds
from quality_report.errors import QualityReportError
from quality_report.filters import (
    DEFAULT_EXCLUDED_MEMBERS,
    AssemblyFilter,
    MemberFilter,
    MemberKindFilter,
    ReportFilters,
    TypeFilter,
)
from quality_report.models import (
    MetricIdentifier,
    MetricThreshold,
    SymbolLevel,
    ThresholdDefinition,
    ThresholdMap,
)

DEFAULT_CONFIG_PATH = "quality-config.yaml"

_MEMBER_KINDS = ("methods", "properties", "fields", "events")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ConfigError(QualityReportError):
    """Raised when the configuration is missing or invalid."""


# ---------------------------------------------------------------------------
# Config dataclasses
# ---------------------------------------------------------------------------

@dataclass
class InputsConfig:
    coverage: list[str] = field(default_factory=list)
    metrics: list[str] = field(default_factory=list)
    sarif: list[str] = field(default_factory=list)
    baseline: str | None = None
    suppressions: str | None = None


@dataclass
class Config:
    solution: str = ""
    token: str | None = None
    inputs: InputsConfig = field(default_factory=InputsConfig)
    exclude_members: str | None = DEFAULT_EXCLUDED_MEMBERS
    exclude_assemblies: str | None = None
    exclude_types: str | None = None
    exclude_member_kinds: list[str] = field(default_factory=list)
    thresholds: ThresholdMap = field(default_factory=default_thresholds)

    def build_filters(self) -> ReportFilters:
        kinds = set(self.exclude_member_kinds)
        return ReportFilters(
            members=MemberFilter.from_string(self.exclude_members),
            assemblies=AssemblyFilter.from_string(self.exclude_assemblies),
            types=TypeFilter.from_string(self.exclude_types),
            member_kinds=MemberKindFilter(
                exclude_methods="methods" in kinds,
                exclude_properties="properties" in kinds,
                exclude_fields="fields" in kinds,
                exclude_events="events" in kinds,
            ),
        )


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load(config_path: str = DEFAULT_CONFIG_PATH, allow_missing: bool = False) -> Config:
    """Load and validate configuration from a YAML file.

    Environment variables QUALITY_REPORT_SOLUTION, QUALITY_REPORT_BASELINE and
    QUALITY_REPORT_TOKEN override file values. With *allow_missing* a missing
    file yields the built-in defaults instead of an error.

    Raises:
        ConfigError: if the file is missing, malformed, or holds invalid
                     values.
    """
    path = Path(config_path)

    if not path.exists():
        if not allow_missing:
            raise ConfigError(
                f"Config file not found: '{config_path}'\n"
                "Run `quality-report init` to generate a template."
            )
        raw: dict = {}
    else:
        try:
            with path.open(encoding="utf-8") as f:
                raw = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse '{config_path}': {exc}") from exc

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigError(f"'{config_path}' must be a YAML mapping at the top level.")

    return from_mapping(raw)


def from_mapping(raw: dict) -> Config:
    """Build a Config from an already parsed mapping (env overrides applied)."""
    errors: list[str] = []

    inputs_raw = _section(raw, "inputs", errors)
    exclude_raw = _section(raw, "exclude", errors)

    inputs = InputsConfig(
        coverage=_string_list(inputs_raw.get("coverage"), "inputs.coverage", errors),
        metrics=_string_list(inputs_raw.get("metrics"), "inputs.metrics", errors),
        sarif=_string_list(inputs_raw.get("sarif"), "inputs.sarif", errors),
        baseline=os.environ.get("QUALITY_REPORT_BASELINE") or inputs_raw.get("baseline"),
        suppressions=inputs_raw.get("suppressions"),
    )

    config = Config(
        solution=str(os.environ.get("QUALITY_REPORT_SOLUTION") or raw.get("solution") or "").strip(),
        token=os.environ.get("QUALITY_REPORT_TOKEN") or raw.get("token"),
        inputs=inputs,
        exclude_members=_patterns(exclude_raw.get("members", DEFAULT_EXCLUDED_MEMBERS)),
        exclude_assemblies=_patterns(exclude_raw.get("assemblies")),
        exclude_types=_patterns(exclude_raw.get("types")),
        exclude_member_kinds=[
            str(k).strip().lower()
            for k in _string_list(exclude_raw.get("member_kinds"), "exclude.member_kinds", errors)
        ],
        thresholds=_parse_thresholds(raw.get("thresholds"), errors),
    )
    _validate(config, errors)
    return config


def _section(raw: dict, name: str, errors: list[str]) -> dict:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        errors.append(f"  - '{name}' must be a mapping")
        return {}
    return value


def _string_list(value, name: str, errors: list[str]) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        errors.append(f"  - '{name}' must be a string or a list of strings")
        return []
    return [str(v) for v in value]


def _patterns(value) -> str | None:
    """Accept a delimited string or a YAML list of patterns."""
    if isinstance(value, list):
        return ",".join(str(v) for v in value)
    return None if value is None else str(value)


def _bound(value, name: str, errors: list[str]) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, bool):
        errors.append(f"  - '{name}' must be a number, got {value!r}")
        return None
    try:
        bound = Decimal(str(value))
    except InvalidOperation:
        errors.append(f"  - '{name}' must be a number, got {value!r}")
        return None
    if not bound.is_finite():
        errors.append(f"  - '{name}' must be a finite number, got {value!r}")
        return None
    return bound


def _parse_thresholds(raw, errors: list[str]) -> ThresholdMap:
    """Overlay configured metrics on the built-in table.

    A configured metric replaces its built-in definition; only the levels it
    lists are set, other levels fall back to the Type level at evaluation.
    """
    thresholds = default_thresholds()
    if raw is None:
        return thresholds
    if not isinstance(raw, dict):
        errors.append("  - 'thresholds' must be a mapping of metric name to definition")
        return thresholds

    for metric_name, entry in raw.items():
        metric = MetricIdentifier.parse(str(metric_name))
        if metric is None:
            errors.append(f"  - 'thresholds.{metric_name}' is not a known metric")
            continue
        if not isinstance(entry, dict):
            errors.append(f"  - 'thresholds.{metric_name}' must be a mapping")
            continue

        builtin = thresholds[metric]
        builtin_level = builtin.levels.get(SymbolLevel.Type) or MetricThreshold()
        higher = bool(entry.get("higher_is_better", builtin_level.higher_is_better))
        neutral = bool(entry.get("positive_delta_neutral", builtin_level.positive_delta_neutral))

        levels: dict[SymbolLevel, MetricThreshold] = {}
        levels_raw = entry.get("levels") or {}
        if not isinstance(levels_raw, dict):
            errors.append(f"  - 'thresholds.{metric_name}.levels' must be a mapping")
            levels_raw = {}
        for level_name, bounds in levels_raw.items():
            level = SymbolLevel.parse(str(level_name))
            prefix = f"thresholds.{metric_name}.levels.{level_name}"
            if level is None:
                errors.append(f"  - '{prefix}' is not a known level")
                continue
            if not isinstance(bounds, dict):
                errors.append(f"  - '{prefix}' must be a mapping with 'warning' and 'error'")
                continue
            levels[level] = MetricThreshold(
                warning=_bound(bounds.get("warning"), f"{prefix}.warning", errors),
                error=_bound(bounds.get("error"), f"{prefix}.error", errors),
                higher_is_better=higher,
                positive_delta_neutral=neutral,
            )

        thresholds[metric] = ThresholdDefinition(
            description=entry.get("description", builtin.description),
            levels=levels,
        )
    return thresholds


def _validate(config: Config, errors: list[str]) -> None:
    """Raise ConfigError listing every problem found."""
    for kind in config.exclude_member_kinds:
        if kind not in _MEMBER_KINDS:
            errors.append(
                f"  - 'exclude.member_kinds' contains '{kind}' "
                f"(expected one of: {', '.join(_MEMBER_KINDS)})"
            )

    if errors:
        raise ConfigError("Invalid configuration:\n" + "\n".join(errors))


# ---------------------------------------------------------------------------
# Template generator (used by `init` command)
# ---------------------------------------------------------------------------

TEMPLATE = """\
solution: "MySolution"            # or set QUALITY_REPORT_SOLUTION

inputs:
  coverage: ["build/coverage.json"]
  metrics: ["build/metrics.json"]
  sarif: ["build/analyzers.sarif"]
  baseline: "build/metrics-baseline.json"   # path or http(s) URL, or QUALITY_REPORT_BASELINE
  suppressions: "build/suppressions.json"

exclude:
  assemblies: "Tests;Benchmarks"    # case-insensitive substrings
  types: "*Generated*"              # wildcards * and ?, plain text matches substrings
  members: "ctor,cctor,MoveNext,SetStateMachine,MoveNextAsync,DisposeAsync"
  member_kinds: []                  # methods, properties, fields, events

thresholds:
  # Overrides the built-in table per metric. Levels not listed fall back to "type".
  RoslynMaintainabilityIndex:
    higher_is_better: true
    levels:
      type:   {warning: 65, error: 40}
      member: {warning: 60, error: 35}
"""


def generate_template(output_path: str = DEFAULT_CONFIG_PATH) -> None:
    """Write a template quality-config.yaml to *output_path*.

    Raises:
        ConfigError: if the file already exists.
    """
    path = Path(output_path)
    if path.exists():
        raise ConfigError(
            f"'{output_path}' already exists. Remove it first or choose a different path."
        )
    path.write_text(TEMPLATE, encoding="utf-8")
