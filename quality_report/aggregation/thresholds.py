"""Threshold evaluation and baseline deltas.

Functions:
    evaluate(metric, value, thresholds, level)   -> ThresholdStatus
    calculate_delta(current, baseline)           -> Decimal | None
    default_thresholds()                         -> ThresholdMap
    thresholds_by_level(thresholds)              -> dict
"""

from decimal import Decimal

from quality_report.models import (
    MetricIdentifier,
    MetricThreshold,
    SymbolLevel,
    ThresholdDefinition,
    ThresholdMap,
    ThresholdStatus,
)

M = MetricIdentifier

#: metric -> (description, warning, error, higher_is_better, positive_delta_neutral)
_DEFAULTS: dict[MetricIdentifier, tuple] = {
    M.AltCoverSequenceCoverage: ("Sequence coverage (%)", 75, 60, True, False),
    M.AltCoverBranchCoverage: ("Branch coverage (%)", 70, 55, True, False),
    M.AltCoverCyclomaticComplexity: ("Cyclomatic complexity (coverage)", 15, 30, False, False),
    M.AltCoverNPathComplexity: ("NPath complexity", 200, 400, False, False),
    M.RoslynMaintainabilityIndex: ("Maintainability index", 65, 40, True, False),
    M.RoslynCyclomaticComplexity: ("Cyclomatic complexity", 12, 25, False, False),
    M.RoslynClassCoupling: ("Class coupling", 50, 80, False, False),
    M.RoslynDepthOfInheritance: ("Depth of inheritance", 5, 8, False, False),
    M.RoslynSourceLines: ("Source lines", None, None, False, True),
    M.RoslynExecutableLines: ("Executable lines", None, None, False, True),
    M.SarifCaRuleViolations: ("Code analysis (CA) rule violations", 5, 10, False, False),
    M.SarifIdeRuleViolations: ("Code style (IDE) rule violations", 10, 20, False, False),
}


def _decimal(value) -> Decimal | None:
    return None if value is None else Decimal(str(value))


def default_thresholds() -> ThresholdMap:
    """Built-in thresholds, identical for every symbol level."""
    thresholds: ThresholdMap = {}
    for metric, (description, warning, error, higher, neutral) in _DEFAULTS.items():
        levels = {
            level: MetricThreshold(
                warning=_decimal(warning),
                error=_decimal(error),
                higher_is_better=higher,
                positive_delta_neutral=neutral,
            )
            for level in SymbolLevel
        }
        thresholds[metric] = ThresholdDefinition(description=description, levels=levels)
    return thresholds


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

def evaluate(
    metric: MetricIdentifier,
    value: Decimal | None,
    thresholds: ThresholdMap,
    level: SymbolLevel,
) -> ThresholdStatus:
    """Map a measured value to a status.

    The threshold for *level* is used, falling back to the Type level. A
    metric without a policy is never a failure.
    """
    if value is None:
        return ThresholdStatus.NotApplicable

    definition = thresholds.get(metric)
    if definition is None:
        return ThresholdStatus.Success

    threshold = definition.levels.get(level) or definition.levels.get(SymbolLevel.Type)
    if threshold is None:
        return ThresholdStatus.Success
    if threshold.warning is None and threshold.error is None:
        return ThresholdStatus.Success

    if threshold.higher_is_better:
        if threshold.error is not None and value < threshold.error:
            return ThresholdStatus.Error
        if threshold.warning is not None and value < threshold.warning:
            return ThresholdStatus.Warning
    else:
        if threshold.error is not None and value > threshold.error:
            return ThresholdStatus.Error
        if threshold.warning is not None and value > threshold.warning:
            return ThresholdStatus.Warning
    return ThresholdStatus.Success


def calculate_delta(current: Decimal | None, baseline: Decimal | None) -> Decimal | None:
    """``current - baseline``; None when either is missing or nothing changed."""
    if current is None or baseline is None:
        return None
    delta = current - baseline
    if delta == 0:
        return None
    return delta


def thresholds_by_level(
    thresholds: ThresholdMap,
) -> dict[SymbolLevel, dict[MetricIdentifier, MetricThreshold]]:
    """Pivot the threshold table to level -> metric -> threshold."""
    pivot: dict[SymbolLevel, dict[MetricIdentifier, MetricThreshold]] = {}
    for level in SymbolLevel:
        per_level = {
            metric: definition.levels[level]
            for metric, definition in thresholds.items()
            if level in definition.levels
        }
        if per_level:
            pivot[level] = per_level
    return pivot
