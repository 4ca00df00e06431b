"""Bind suppression entries to the diagnostic metric they silence.

Suppressions usually only name a rule id. The metric is resolved from the
rule id prefix when the suppressed node carries that metric, otherwise from
the first diagnostic metric measured on the node. Entries that cannot be
resolved are left as they are.
"""

import logging

from quality_report.aggregation.workspace import AggregationWorkspace
from quality_report.models import MetricIdentifier, MetricsNode, SuppressedSymbolInfo
from quality_report.rules import metric_for_rule
from quality_report.symbols import normalize_fully_qualified_method_name, normalize_type_name

logger = logging.getLogger(__name__)

_FALLBACK_METRICS: list[MetricIdentifier] = [
    MetricIdentifier.SarifIdeRuleViolations,
    MetricIdentifier.SarifCaRuleViolations,
]


def _has_value(node: MetricsNode, metric: MetricIdentifier) -> bool:
    value = node.metrics.get(metric)
    return value is not None and value.value is not None


def resolve_metric(node: MetricsNode, rule_id: str | None) -> MetricIdentifier | None:
    preferred = metric_for_rule(rule_id)
    if preferred is not None and _has_value(node, preferred):
        return preferred
    for metric in _FALLBACK_METRICS:
        if _has_value(node, metric):
            return metric
    return None


def bind_suppressions(workspace: AggregationWorkspace, suppressions: list[SuppressedSymbolInfo]) -> int:
    """Fill in ``metric`` on each entry that does not name a known metric.

    Returns the number of entries bound.
    """
    bound = 0
    for entry in suppressions:
        fqn = (entry.fully_qualified_name or "").strip()
        if not fqn:
            continue
        if MetricIdentifier.parse(entry.metric) is not None:
            continue

        node = workspace.find_by_fqn(fqn)
        if node is None and "(" in fqn:
            node = workspace.members.get(normalize_fully_qualified_method_name(fqn))
        elif node is None:
            node = workspace.find_by_fqn(normalize_type_name(fqn))
        if node is None:
            logger.debug("Suppressed symbol %s not found in the report", fqn)
            continue

        metric = resolve_metric(node, entry.rule_id)
        if metric is None:
            continue
        entry.metric = metric.name
        bound += 1
    return bound
