"""Analyzer rule ids and per-rule breakdowns.

Functions:
    is_valid_rule_id(rule_id)                 -> bool
    metric_for_rule(rule_id)                  -> MetricIdentifier | None
    clone_breakdown(breakdown)                -> dict | None
    merge_breakdowns(existing, incoming)      -> dict | None
    collect_rule_ids(node)                    -> set[str]
"""

import re

from quality_report.models import (
    BreakdownEntry,
    MetricIdentifier,
    MetricsNode,
    children_of,
)

_RULE_ID = re.compile(r"^(CA|IDE)\d{4}$")

#: Prefix checks in evaluation order.
_RULE_PREFIXES: list[tuple[str, MetricIdentifier]] = [
    ("CA", MetricIdentifier.SarifCaRuleViolations),
    ("IDE", MetricIdentifier.SarifIdeRuleViolations),
]


def is_valid_rule_id(rule_id: str | None) -> bool:
    """True for ``CA`` or ``IDE`` followed by exactly four digits."""
    return bool(rule_id) and _RULE_ID.match(rule_id) is not None


def metric_for_rule(rule_id: str | None) -> MetricIdentifier | None:
    """Map a rule id to its diagnostic-count metric by prefix."""
    if not rule_id:
        return None
    upper = rule_id.strip().upper()
    for prefix, metric in _RULE_PREFIXES:
        if upper.startswith(prefix):
            return metric
    return None


def clone_breakdown(breakdown: dict[str, BreakdownEntry] | None) -> dict[str, BreakdownEntry] | None:
    if not breakdown:
        return None
    return {rule: entry.clone() for rule, entry in breakdown.items()}


def merge_breakdowns(
    existing: dict[str, BreakdownEntry] | None,
    incoming: dict[str, BreakdownEntry] | None,
) -> dict[str, BreakdownEntry] | None:
    """Sum counts per rule and concatenate copies of the violation details."""
    if not incoming:
        return clone_breakdown(existing)
    if not existing:
        return clone_breakdown(incoming)

    merged = clone_breakdown(existing) or {}
    for rule, entry in incoming.items():
        target = merged.get(rule)
        if target is None:
            merged[rule] = entry.clone()
            continue
        target.count += entry.count
        target.violations.extend(v.clone() for v in entry.violations)
    return merged


def collect_rule_ids(node: MetricsNode) -> set[str]:
    """Return every rule id used in a breakdown anywhere under *node*."""
    used: set[str] = set()
    stack = [node]
    while stack:
        current = stack.pop()
        for metric in current.metrics.values():
            if metric.breakdown:
                used.update(metric.breakdown.keys())
        stack.extend(children_of(current))
    return used
