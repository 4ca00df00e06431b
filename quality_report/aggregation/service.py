"""Aggregation orchestrator.

Usage:
    service = MetricsAggregationService()
    report = service.build_report(AggregationInput(
        solution_name="MySolution",
        coverage_documents=[coverage],
        metrics_documents=[metrics],
        sarif_documents=[sarif],
    ))

The pipeline order is fixed: validation, coverage merge, metrics merge,
line index, SARIF application, iterator reconciliation, nested-type
reconciliation, branch applicability, baseline and thresholds, suppression
binding, metadata.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from quality_report.aggregation.baseline import BaselineEvaluator
from quality_report.aggregation.diagnostics import SarifMetricsApplier
from quality_report.aggregation.line_index import backfill_type_sources, build_line_index
from quality_report.aggregation.merger import StructuralElementMerger
from quality_report.aggregation.reconcilers import (
    apply_commands,
    reconcile_iterator_coverage,
    reconcile_nested_type_coverage,
    remove_inapplicable_branch_coverage,
)
from quality_report.aggregation.rule_descriptions import filter_to_used, merge_rule_descriptions
from quality_report.aggregation.suppressions import bind_suppressions
from quality_report.aggregation.thresholds import default_thresholds, thresholds_by_level
from quality_report.aggregation.validation import validate_unique_symbols
from quality_report.aggregation.workspace import AggregationWorkspace
from quality_report.errors import InvalidInputError
from quality_report.filters import ReportFilters
from quality_report.models import (
    MetricsReport,
    ParsedDocument,
    ReportMetadata,
    SolutionNode,
    SuppressedSymbolInfo,
    ThresholdMap,
)
from quality_report.rules import collect_rule_ids

logger = logging.getLogger(__name__)


@dataclass
class AggregationInput:
    solution_name: str = ""
    coverage_documents: list[ParsedDocument] = field(default_factory=list)
    metrics_documents: list[ParsedDocument] = field(default_factory=list)
    sarif_documents: list[ParsedDocument] = field(default_factory=list)
    baseline: SolutionNode | None = None
    baseline_reference: str | None = None
    thresholds: ThresholdMap = field(default_factory=default_thresholds)
    filters: ReportFilters = field(default_factory=ReportFilters)
    suppressions: list[SuppressedSymbolInfo] = field(default_factory=list)

    def resolve_solution_name(self) -> str:
        if self.solution_name and self.solution_name.strip():
            return self.solution_name.strip()
        for document in (*self.metrics_documents, *self.coverage_documents, *self.sarif_documents):
            if document.solution_name and document.solution_name.strip():
                return document.solution_name.strip()
        raise InvalidInputError(
            "Solution name is missing: pass it explicitly or provide a document that names it."
        )


class MetricsAggregationService:
    def build_report(self, inputs: AggregationInput) -> MetricsReport:
        if inputs.thresholds is None:
            raise InvalidInputError("Threshold table is required.")

        validate_unique_symbols(inputs.coverage_documents)
        validate_unique_symbols(inputs.metrics_documents)

        workspace = AggregationWorkspace(inputs.resolve_solution_name(), inputs.filters)
        merger = StructuralElementMerger(workspace)
        for document in inputs.coverage_documents:
            merger.merge_document(document)
        for document in inputs.metrics_documents:
            merger.merge_document(document)

        backfill_type_sources(workspace.types.values())
        build_line_index(workspace)

        applier = SarifMetricsApplier(workspace)
        for document in inputs.sarif_documents:
            applier.apply_document(document)

        commands = reconcile_iterator_coverage(workspace)
        logger.debug("Iterator reconciliation produced %d command(s)", len(commands))
        apply_commands(workspace, commands)

        commands = reconcile_nested_type_coverage(workspace)
        logger.debug("Nested type reconciliation produced %d command(s)", len(commands))
        apply_commands(workspace, commands)

        remove_inapplicable_branch_coverage(workspace)

        BaselineEvaluator(inputs.baseline, inputs.thresholds).apply(workspace.solution)
        bind_suppressions(workspace, inputs.suppressions)

        metadata = self._build_metadata(inputs, workspace)
        logger.info(
            "Report built: %d assembly(ies), %d type(s), %d member(s)",
            len(workspace.solution.assemblies),
            len(workspace.types),
            len(workspace.members),
        )
        return MetricsReport(metadata=metadata, solution=workspace.solution)

    @staticmethod
    def _build_metadata(inputs: AggregationInput, workspace: AggregationWorkspace) -> ReportMetadata:
        descriptions = merge_rule_descriptions(inputs.sarif_documents)
        descriptions = filter_to_used(descriptions, collect_rule_ids(workspace.solution))

        return ReportMetadata(
            generated_at=datetime.now(timezone.utc),
            baseline_reference=inputs.baseline_reference,
            thresholds_by_level=thresholds_by_level(inputs.thresholds),
            threshold_descriptions={
                metric: definition.description
                for metric, definition in inputs.thresholds.items()
                if definition.description
            },
            excluded_member_names=_join_patterns(inputs.filters.members.raw_patterns),
            excluded_assembly_names=_join_patterns(inputs.filters.assemblies.raw_patterns),
            excluded_type_names=_join_patterns(inputs.filters.types.raw_patterns),
            suppressed_symbols=list(inputs.suppressions),
            rule_descriptions=descriptions,
        )


def _join_patterns(patterns: list[str]) -> str | None:
    if not patterns:
        return None
    return ", ".join(sorted(patterns))
