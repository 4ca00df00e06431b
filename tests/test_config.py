"""Tests for quality_report/config.py"""

import textwrap
from decimal import Decimal
from pathlib import Path

import pytest

from quality_report.config import (
    DEFAULT_CONFIG_PATH,
    ConfigError,
    generate_template,
    load,
)
from quality_report.filters import DEFAULT_EXCLUDED_MEMBERS
from quality_report.models import MetricIdentifier, SymbolLevel


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def write_config(tmp_path: Path, content: str) -> Path:
    p = tmp_path / "quality-config.yaml"
    p.write_text(textwrap.dedent(content), encoding="utf-8")
    return p


VALID_YAML = """\
    solution: "Rca.Loader"
    token: "ci-token"
    inputs:
      coverage: ["build/coverage.json"]
      metrics: "build/metrics.json"
      sarif: ["build/a.sarif", "build/b.sarif"]
      baseline: "https://ci.example.com/metrics.json"
    exclude:
      assemblies: "Tests;Benchmarks"
      types: ["*Generated*", "Migrations"]
      member_kinds: ["Fields"]
    """


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("QUALITY_REPORT_SOLUTION", "QUALITY_REPORT_BASELINE", "QUALITY_REPORT_TOKEN"):
        monkeypatch.delenv(name, raising=False)


# ---------------------------------------------------------------------------
# load() happy path
# ---------------------------------------------------------------------------

def test_load_valid_config(tmp_path):
    config = load(str(write_config(tmp_path, VALID_YAML)))
    assert config.solution == "Rca.Loader"
    assert config.token == "ci-token"
    assert config.inputs.coverage == ["build/coverage.json"]
    assert config.inputs.metrics == ["build/metrics.json"]
    assert config.inputs.sarif == ["build/a.sarif", "build/b.sarif"]
    assert config.inputs.baseline == "https://ci.example.com/metrics.json"
    assert config.inputs.suppressions is None
    assert config.exclude_types == "*Generated*,Migrations"
    assert config.exclude_member_kinds == ["fields"]


def test_defaults_when_sections_missing(tmp_path):
    config = load(str(write_config(tmp_path, "solution: App\n")))
    assert config.exclude_members == DEFAULT_EXCLUDED_MEMBERS
    assert config.exclude_assemblies is None
    assert config.inputs.coverage == []
    assert set(config.thresholds) == set(MetricIdentifier)


def test_empty_file_is_defaults(tmp_path):
    config = load(str(write_config(tmp_path, "")))
    assert config.solution == ""


def test_build_filters(tmp_path):
    filters = load(str(write_config(tmp_path, VALID_YAML))).build_filters()
    assert filters.assemblies.is_excluded("App.Tests")
    assert filters.types.should_exclude_type("App.AutoGenerated")
    assert filters.members.should_exclude_method("MoveNext")
    assert filters.member_kinds.exclude_fields
    assert not filters.member_kinds.exclude_methods


# ---------------------------------------------------------------------------
# load() missing file
# ---------------------------------------------------------------------------

def test_load_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load(str(tmp_path / "no-such-file.yaml"))


def test_load_missing_file_allowed(tmp_path):
    config = load(str(tmp_path / "no-such-file.yaml"), allow_missing=True)
    assert config.inputs.coverage == []
    assert config.exclude_members == DEFAULT_EXCLUDED_MEMBERS


# ---------------------------------------------------------------------------
# load() invalid content
# ---------------------------------------------------------------------------

def test_load_invalid_yaml(tmp_path):
    p = tmp_path / "quality-config.yaml"
    p.write_text("inputs: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="Failed to parse"):
        load(str(p))


def test_load_top_level_not_mapping(tmp_path):
    p = write_config(tmp_path, "- a\n- b\n")
    with pytest.raises(ConfigError, match="mapping at the top level"):
        load(str(p))


def test_errors_are_collected(tmp_path):
    p = write_config(tmp_path, """\
        inputs: "build/coverage.json"
        exclude:
          member_kinds: ["constructors"]
        thresholds:
          NotAMetric: {}
        """)
    with pytest.raises(ConfigError) as excinfo:
        load(str(p))
    message = str(excinfo.value)
    assert message.startswith("Invalid configuration:")
    assert "'inputs' must be a mapping" in message
    assert "'constructors'" in message
    assert "'thresholds.NotAMetric' is not a known metric" in message


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

def test_threshold_override(tmp_path):
    p = write_config(tmp_path, """\
        thresholds:
          RoslynCyclomaticComplexity:
            description: "Branches per method"
            levels:
              member: {warning: 8, error: 15.5}
        """)
    definition = load(str(p)).thresholds[MetricIdentifier.RoslynCyclomaticComplexity]
    assert definition.description == "Branches per method"
    assert set(definition.levels) == {SymbolLevel.Member}
    member = definition.levels[SymbolLevel.Member]
    assert member.warning == Decimal("8")
    assert member.error == Decimal("15.5")
    assert not member.higher_is_better


def test_threshold_override_keeps_builtin_description(tmp_path):
    p = write_config(tmp_path, """\
        thresholds:
          AltCoverSequenceCoverage:
            levels:
              type: {warning: 90, error: 80}
        """)
    config = load(str(p))
    definition = config.thresholds[MetricIdentifier.AltCoverSequenceCoverage]
    assert definition.description == "Sequence coverage (%)"
    assert definition.levels[SymbolLevel.Type].higher_is_better
    # untouched metrics keep their built-in table
    assert SymbolLevel.Member in config.thresholds[MetricIdentifier.RoslynClassCoupling].levels


@pytest.mark.parametrize("bound", ["high", "true"])
def test_threshold_bound_must_be_numeric(tmp_path, bound):
    p = write_config(tmp_path, f"""\
        thresholds:
          RoslynClassCoupling:
            levels:
              type: {{warning: {bound}, error: 80}}
        """)
    with pytest.raises(ConfigError, match="levels.type.warning' must be a number"):
        load(str(p))


@pytest.mark.parametrize("bound", [".nan", ".inf", "-.inf"])
def test_threshold_bound_must_be_finite(tmp_path, bound):
    p = write_config(tmp_path, f"""\
        thresholds:
          RoslynClassCoupling:
            levels:
              type: {{warning: {bound}, error: 80}}
        """)
    with pytest.raises(ConfigError, match="levels.type.warning' must be a finite number"):
        load(str(p))


def test_threshold_unknown_level(tmp_path):
    p = write_config(tmp_path, """\
        thresholds:
          RoslynClassCoupling:
            levels:
              package: {warning: 1, error: 2}
        """)
    with pytest.raises(ConfigError, match="not a known level"):
        load(str(p))


# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------

def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("QUALITY_REPORT_SOLUTION", "FromEnv")
    monkeypatch.setenv("QUALITY_REPORT_BASELINE", "env-baseline.json")
    monkeypatch.setenv("QUALITY_REPORT_TOKEN", "env-token")
    config = load(str(write_config(tmp_path, VALID_YAML)))
    assert config.solution == "FromEnv"
    assert config.inputs.baseline == "env-baseline.json"
    assert config.token == "env-token"


# ---------------------------------------------------------------------------
# generate_template()
# ---------------------------------------------------------------------------

def test_generate_template_creates_loadable_file(tmp_path):
    out = tmp_path / DEFAULT_CONFIG_PATH
    generate_template(str(out))
    config = load(str(out))
    assert config.solution == "MySolution"
    assert config.inputs.sarif == ["build/analyzers.sarif"]
    member = config.thresholds[MetricIdentifier.RoslynMaintainabilityIndex].levels[SymbolLevel.Member]
    assert member.warning == Decimal("60")


def test_generate_template_refuses_overwrite(tmp_path):
    out = tmp_path / DEFAULT_CONFIG_PATH
    out.write_text("existing", encoding="utf-8")
    with pytest.raises(ConfigError, match="already exists"):
        generate_template(str(out))
    assert out.read_text(encoding="utf-8") == "existing"
