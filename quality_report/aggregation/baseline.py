"""Baseline comparison.

Nodes are matched against a previous report by their name path
(``Solution/Assembly/Namespace/Type/Member``). Every non-root node absent
from the baseline is flagged as new. Metrics are rebuilt in identifier
order with a fresh threshold status and a delta against the baseline value;
metrics without a measured value are dropped.
"""

from quality_report.aggregation.thresholds import calculate_delta, evaluate
from quality_report.models import (
    MetricIdentifier,
    MetricsNode,
    MetricValue,
    SolutionNode,
    ThresholdMap,
    ThresholdStatus,
    children_of,
    level_of,
)
from quality_report.rules import clone_breakdown


def _walk(node: MetricsNode, path: str):
    yield node, path
    for child in children_of(node):
        yield from _walk(child, f"{path}/{child.name}")


def process_metrics(
    current: dict[MetricIdentifier, MetricValue],
    baseline: dict[MetricIdentifier, MetricValue],
    thresholds: ThresholdMap,
    node: MetricsNode,
) -> dict[MetricIdentifier, MetricValue]:
    level = level_of(node)
    processed: dict[MetricIdentifier, MetricValue] = {}
    for metric in MetricIdentifier:
        value = current.get(metric)
        if value is None:
            continue
        status = evaluate(metric, value.value, thresholds, level)
        if status == ThresholdStatus.NotApplicable:
            continue
        previous = baseline.get(metric)
        processed[metric] = MetricValue(
            value=value.value,
            status=status,
            delta=calculate_delta(value.value, previous.value if previous else None),
            breakdown=clone_breakdown(value.breakdown),
        )
    return processed


class BaselineEvaluator:
    def __init__(self, baseline: SolutionNode | None, thresholds: ThresholdMap) -> None:
        self.thresholds = thresholds
        self._lookup: dict[str, MetricsNode] = {}
        if baseline is not None:
            self._lookup = dict((path, node) for node, path in _walk(baseline, baseline.name))

    def apply(self, root: SolutionNode) -> None:
        for node, path in _walk(root, root.name):
            previous = self._lookup.get(path)
            if not isinstance(node, SolutionNode):
                node.is_new = previous is None
            node.metrics = process_metrics(
                node.metrics,
                previous.metrics if previous is not None else {},
                self.thresholds,
                node,
            )
