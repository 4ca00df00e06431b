"""Attach SARIF diagnostic counts to tree nodes.

Each diagnostic element carries one metric and a file/line. The line index
resolves it to a member or type; unresolved diagnostics fall back to the
file's assembly, and diagnostics of excluded assemblies land on the
solution root so they still count in aggregate.
"""

import logging

from quality_report.aggregation.merger import merge_metric_maps
from quality_report.aggregation.workspace import AggregationWorkspace
from quality_report.models import MemberNode, MetricsNode, ParsedCodeElement, ParsedDocument

logger = logging.getLogger(__name__)


class SarifMetricsApplier:
    def __init__(self, workspace: AggregationWorkspace) -> None:
        self.workspace = workspace

    def apply_document(self, document: ParsedDocument) -> int:
        """Apply every diagnostic of *document*; return how many were applied."""
        applied = 0
        for element in document.elements:
            if self.apply(element):
                applied += 1
        logger.debug("Applied %d diagnostic(s) from %s", applied, document.source_path or "<sarif>")
        return applied

    def apply(self, element: ParsedCodeElement) -> bool:
        source = element.source
        if source is None or not source.path or not element.metrics:
            return False

        metric, value = next(iter(element.metrics.items()))
        if value.value is None:
            return False

        line = source.start_line if source.start_line is not None else source.end_line
        target = self._resolve_target(source.path, line)
        merge_metric_maps(target.metrics, {metric: value})

        if isinstance(target, MemberNode) and element.has_sarif_violations:
            target.has_sarif_violations = True
        return True

    def _resolve_target(self, path: str, line: int | None) -> MetricsNode:
        workspace = self.workspace
        if line is not None:
            node = workspace.line_index.find_node(path, line)
            if node is not None:
                return node

        assembly = workspace.line_index.try_get_assembly(path)
        if assembly is not None:
            if workspace.filters.assemblies.is_excluded(assembly.name):
                return workspace.solution
            return assembly

        logger.debug("No symbol found for %s:%s, counting at solution level", path, line)
        return workspace.solution
