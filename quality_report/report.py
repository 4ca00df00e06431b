"""Report serialization.

Functions:
    report_to_dict(report)        -> dict   JSON-ready report
    report_from_dict(data)        -> MetricsReport
    solution_from_dict(data)      -> SolutionNode   (baseline input)
    node_to_dict(node)            -> dict

Numbers are emitted as ``int`` when whole and ``float`` otherwise; keys use
snake_case; enum members are emitted by name.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from quality_report.models import (
    AssemblyNode,
    BreakdownEntry,
    MemberKind,
    MemberNode,
    MetricIdentifier,
    MetricsNode,
    MetricsReport,
    MetricThreshold,
    MetricValue,
    NamespaceNode,
    ReportMetadata,
    RuleDescription,
    SolutionNode,
    SourceLocation,
    SuppressedSymbolInfo,
    SymbolLevel,
    ThresholdStatus,
    TypeNode,
    ViolationDetail,
)


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------

def to_number(value: Decimal | None):
    """Return *value* as int when whole, float otherwise, None when absent."""
    if value is None:
        return None
    if not value.is_finite():
        return None
    f = float(value)
    return int(f) if f == int(f) else f


def to_decimal(raw: Any) -> Decimal | None:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return None
    return value if value.is_finite() else None


def _parse_enum(enum_cls, raw, default):
    if raw is None:
        return default
    try:
        return enum_cls[raw]
    except KeyError:
        return default


# ---------------------------------------------------------------------------
# To dict
# ---------------------------------------------------------------------------

def _source_to_dict(source: SourceLocation) -> dict:
    return {"path": source.path, "start_line": source.start_line, "end_line": source.end_line}


def metric_to_dict(value: MetricValue) -> dict:
    data: dict[str, Any] = {
        "value": to_number(value.value),
        "status": value.status.name,
    }
    if value.delta is not None:
        data["delta"] = to_number(value.delta)
    if value.breakdown:
        data["breakdown"] = {
            rule: {
                "count": entry.count,
                "violations": [
                    {
                        "message": v.message,
                        "uri": v.uri,
                        "start_line": v.start_line,
                        "end_line": v.end_line,
                    }
                    for v in entry.violations
                ],
            }
            for rule, entry in value.breakdown.items()
        }
    return data


def node_to_dict(node: MetricsNode) -> dict:
    data: dict[str, Any] = {"name": node.name}
    if node.fully_qualified_name:
        data["fully_qualified_name"] = node.fully_qualified_name
    if node.source is not None:
        data["source"] = _source_to_dict(node.source)
    data["is_new"] = node.is_new
    data["metrics"] = {metric.name: metric_to_dict(v) for metric, v in node.metrics.items()}

    match node:
        case SolutionNode():
            data["assemblies"] = [node_to_dict(child) for child in node.assemblies]
        case AssemblyNode():
            data["namespaces"] = [node_to_dict(child) for child in node.namespaces]
        case NamespaceNode():
            data["types"] = [node_to_dict(child) for child in node.types]
        case TypeNode():
            data["members"] = [node_to_dict(child) for child in node.members]
        case MemberNode():
            data["member_kind"] = node.member_kind.name
            data["has_sarif_violations"] = node.has_sarif_violations
            data["includes_iterator_state_machine_coverage"] = (
                node.includes_iterator_state_machine_coverage
            )
    return data


def _threshold_to_dict(threshold: MetricThreshold) -> dict:
    return {
        "warning": to_number(threshold.warning),
        "error": to_number(threshold.error),
        "higher_is_better": threshold.higher_is_better,
        "positive_delta_neutral": threshold.positive_delta_neutral,
    }


def metadata_to_dict(metadata: ReportMetadata) -> dict:
    return {
        "generated_at": metadata.generated_at.isoformat(),
        "baseline_reference": metadata.baseline_reference,
        "thresholds_by_level": {
            level.name: {metric.name: _threshold_to_dict(t) for metric, t in per_level.items()}
            for level, per_level in metadata.thresholds_by_level.items()
        },
        "threshold_descriptions": {
            metric.name: text for metric, text in metadata.threshold_descriptions.items()
        },
        "excluded_member_names": metadata.excluded_member_names,
        "excluded_assembly_names": metadata.excluded_assembly_names,
        "excluded_type_names": metadata.excluded_type_names,
        "suppressed_symbols": [
            {
                "file_path": s.file_path,
                "fully_qualified_name": s.fully_qualified_name,
                "rule_id": s.rule_id,
                "metric": s.metric,
                "justification": s.justification,
            }
            for s in metadata.suppressed_symbols
        ],
        "rule_descriptions": {
            rule: {
                "short_description": d.short_description,
                "full_description": d.full_description,
                "help_uri": d.help_uri,
                "category": d.category,
            }
            for rule, d in metadata.rule_descriptions.items()
        },
    }


def report_to_dict(report: MetricsReport) -> dict:
    return {
        "report_type": "quality",
        "metadata": metadata_to_dict(report.metadata),
        "solution": node_to_dict(report.solution),
    }


# ---------------------------------------------------------------------------
# From dict
# ---------------------------------------------------------------------------

def source_from_dict(raw: dict | None) -> SourceLocation | None:
    if not isinstance(raw, dict):
        return None
    return SourceLocation(
        path=raw.get("path"),
        start_line=raw.get("start_line"),
        end_line=raw.get("end_line"),
    )


def metric_from_dict(raw: dict) -> MetricValue:
    breakdown = None
    if raw.get("breakdown"):
        breakdown = {
            rule: BreakdownEntry(
                count=int(entry.get("count", 0)),
                violations=[
                    ViolationDetail(
                        message=v.get("message"),
                        uri=v.get("uri"),
                        start_line=v.get("start_line"),
                        end_line=v.get("end_line"),
                    )
                    for v in entry.get("violations") or []
                ],
            )
            for rule, entry in raw["breakdown"].items()
        }
    return MetricValue(
        value=to_decimal(raw.get("value")),
        status=_parse_enum(ThresholdStatus, raw.get("status"), ThresholdStatus.NotApplicable),
        delta=to_decimal(raw.get("delta")),
        breakdown=breakdown,
    )


def metrics_from_dict(raw: dict | None) -> dict[MetricIdentifier, MetricValue]:
    metrics: dict[MetricIdentifier, MetricValue] = {}
    for name, value in (raw or {}).items():
        metric = MetricIdentifier.parse(name)
        if metric is not None and isinstance(value, dict):
            metrics[metric] = metric_from_dict(value)
    return metrics


def _common(raw: dict) -> dict:
    return {
        "name": raw.get("name", ""),
        "fully_qualified_name": raw.get("fully_qualified_name"),
        "source": source_from_dict(raw.get("source")),
        "is_new": bool(raw.get("is_new", False)),
        "metrics": metrics_from_dict(raw.get("metrics")),
    }


def _member_from_dict(raw: dict) -> MemberNode:
    return MemberNode(
        **_common(raw),
        member_kind=MemberKind.parse(raw.get("member_kind")),
        has_sarif_violations=bool(raw.get("has_sarif_violations", False)),
        includes_iterator_state_machine_coverage=bool(
            raw.get("includes_iterator_state_machine_coverage", False)
        ),
    )


def _type_from_dict(raw: dict) -> TypeNode:
    return TypeNode(**_common(raw), members=[_member_from_dict(m) for m in raw.get("members") or []])


def _namespace_from_dict(raw: dict) -> NamespaceNode:
    return NamespaceNode(**_common(raw), types=[_type_from_dict(t) for t in raw.get("types") or []])


def _assembly_from_dict(raw: dict) -> AssemblyNode:
    return AssemblyNode(
        **_common(raw), namespaces=[_namespace_from_dict(n) for n in raw.get("namespaces") or []]
    )


def solution_from_dict(data: dict) -> SolutionNode:
    """Read a solution tree; accepts a full report or a bare solution node."""
    raw = data.get("solution", data)
    return SolutionNode(
        **_common(raw), assemblies=[_assembly_from_dict(a) for a in raw.get("assemblies") or []]
    )


def _threshold_from_dict(raw: dict) -> MetricThreshold:
    return MetricThreshold(
        warning=to_decimal(raw.get("warning")),
        error=to_decimal(raw.get("error")),
        higher_is_better=bool(raw.get("higher_is_better", True)),
        positive_delta_neutral=bool(raw.get("positive_delta_neutral", False)),
    )


def _by_metric(raw: dict, convert) -> dict:
    result = {}
    for name, value in raw.items():
        metric = MetricIdentifier.parse(name)
        if metric is not None:
            result[metric] = convert(value)
    return result


def metadata_from_dict(raw: dict) -> ReportMetadata:
    thresholds: dict[SymbolLevel, dict[MetricIdentifier, MetricThreshold]] = {}
    for level_name, per_level in (raw.get("thresholds_by_level") or {}).items():
        level = SymbolLevel.parse(level_name)
        if level is None:
            continue
        thresholds[level] = _by_metric(per_level, _threshold_from_dict)

    generated_at = raw.get("generated_at")
    return ReportMetadata(
        generated_at=datetime.fromisoformat(generated_at) if generated_at else datetime.min,
        baseline_reference=raw.get("baseline_reference"),
        thresholds_by_level=thresholds,
        threshold_descriptions=_by_metric(raw.get("threshold_descriptions") or {}, str),
        excluded_member_names=raw.get("excluded_member_names"),
        excluded_assembly_names=raw.get("excluded_assembly_names"),
        excluded_type_names=raw.get("excluded_type_names"),
        suppressed_symbols=[SuppressedSymbolInfo(**s) for s in raw.get("suppressed_symbols") or []],
        rule_descriptions={
            rule: RuleDescription(**d) for rule, d in (raw.get("rule_descriptions") or {}).items()
        },
    )


def report_from_dict(data: dict) -> MetricsReport:
    return MetricsReport(
        metadata=metadata_from_dict(data.get("metadata") or {}),
        solution=solution_from_dict(data),
    )
