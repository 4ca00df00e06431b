"""Structural element merging.

Each parsed element is routed to the node it describes: the
Solution > Assembly > Namespace > Type > Member chain is found or created,
then the element's metrics and source location are merged into it.
Filtered elements never reach the tree; elements that resolve to an
excluded or unknown assembly are merged into detached placeholder nodes.

Functions:
    merge_metric_maps(target, incoming)     -> None
    merge_source(node, incoming)            -> None
"""

import logging

from quality_report.aggregation.workspace import AggregationWorkspace
from quality_report.models import (
    DIAGNOSTIC_METRICS,
    AssemblyNode,
    MemberKind,
    MemberNode,
    MetricIdentifier,
    MetricsNode,
    MetricValue,
    NamespaceEntry,
    NamespaceNode,
    ParsedCodeElement,
    ParsedDocument,
    SourceLocation,
    SymbolLevel,
    ThresholdStatus,
    TypeEntry,
    TypeNode,
)
from quality_report.rules import merge_breakdowns
from quality_report.symbols import (
    GLOBAL_NAMESPACE,
    declaring_type_name,
    member_display_name,
    member_key,
    normalize_type_name,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Metric and source merging
# ---------------------------------------------------------------------------

def merge_metric_maps(
    target: dict[MetricIdentifier, MetricValue],
    incoming: dict[MetricIdentifier, MetricValue],
) -> None:
    """Merge *incoming* metrics into *target* in place.

    Diagnostic counts are summed with their breakdowns merged. Any other
    metric takes the latest measured value; a missing measurement never
    erases an existing one.
    """
    for metric, value in incoming.items():
        existing = target.get(metric)
        if existing is None:
            target[metric] = value.clone()
            continue

        if value.value is None:
            continue

        if metric in DIAGNOSTIC_METRICS:
            existing.value = (existing.value or 0) + value.value
            existing.breakdown = merge_breakdowns(existing.breakdown, value.breakdown)
            existing.status = ThresholdStatus.NotApplicable
            existing.delta = None
            continue

        target[metric] = value.clone()


def merge_source(node: MetricsNode, incoming: SourceLocation | None) -> None:
    """Replace the node location when *incoming* is more complete."""
    if incoming is None:
        return
    existing = node.source
    if existing is None:
        node.source = incoming.clone()
    elif existing.start_line is None and incoming.start_line is not None:
        node.source = incoming.clone()
    elif (
        existing.start_line is not None
        and incoming.start_line is not None
        and existing.end_line is None
        and incoming.end_line is not None
    ):
        node.source = incoming.clone()


def _apply(node: MetricsNode, element: ParsedCodeElement) -> None:
    merge_metric_maps(node.metrics, element.metrics)
    merge_source(node, element.source)


# ---------------------------------------------------------------------------
# Merger
# ---------------------------------------------------------------------------

class StructuralElementMerger:
    def __init__(self, workspace: AggregationWorkspace) -> None:
        self.workspace = workspace
        self.filters = workspace.filters

    def merge_document(self, document: ParsedDocument) -> None:
        logger.debug(
            "Merging %d element(s) from %s",
            len(document.elements),
            document.source_path or document.solution_name or "<document>",
        )
        for element in document.elements:
            self.merge(element)

    def merge(self, element: ParsedCodeElement) -> None:
        match element.kind:
            case SymbolLevel.Assembly:
                self.merge_assembly(element)
            case SymbolLevel.Namespace:
                self.merge_namespace(element)
            case SymbolLevel.Type:
                self.merge_type(element)
            case SymbolLevel.Member:
                self.merge_member(element)
            case SymbolLevel.Solution:
                merge_metric_maps(self.workspace.solution.metrics, element.metrics)

    # ------------------------------------------------------------------
    # Per kind
    # ------------------------------------------------------------------

    def merge_assembly(self, element: ParsedCodeElement) -> None:
        name = element.fully_qualified_name or element.name
        if not name or self.filters.assemblies.is_excluded(name):
            return

        assembly = self.workspace.get_assembly(name)
        if assembly is None:
            assembly = AssemblyNode(name=element.name or name, fully_qualified_name=name)
            self.workspace.add_assembly(name, assembly)
        _apply(assembly, element)

    def merge_namespace(self, element: ParsedCodeElement) -> None:
        assembly_name = element.parent_fully_qualified_name or element.containing_assembly_name or ""
        if self.filters.assemblies.is_excluded(assembly_name):
            return

        namespace_name = element.fully_qualified_name or element.name
        entry = self._get_or_create_namespace(assembly_name, namespace_name)
        if not self.workspace.is_attached(entry.assembly):
            return
        _apply(entry.node, element)

    def merge_type(self, element: ParsedCodeElement) -> None:
        type_fqn = normalize_type_name(element.fully_qualified_name or element.name)
        if not type_fqn:
            return
        parent = normalize_type_name(element.parent_fully_qualified_name)

        assembly_name = element.containing_assembly_name
        if not assembly_name:
            if parent and self.workspace.get_assembly(parent) is not None:
                assembly_name = parent
            else:
                assembly_name = (
                    self.workspace.try_resolve_assembly(parent)
                    or self.resolve_assembly_name_from_fqn(type_fqn)
                )

        types = self.filters.types
        if types.should_exclude_type(type_fqn) or types.should_exclude_type(element.name):
            return
        if self.filters.assemblies.is_excluded(assembly_name):
            return

        namespace_name = self._resolve_namespace(parent, assembly_name, type_fqn)
        display_name = _type_display_name(element.name, type_fqn)
        entry = self._get_or_create_type(assembly_name, namespace_name, type_fqn, display_name)
        if not self.workspace.is_attached(entry.assembly):
            return
        _apply(entry.node, element)

    def merge_member(self, element: ParsedCodeElement) -> None:
        raw_name = element.fully_qualified_name
        members = self.filters.members
        if members.should_exclude_method(element.name) or members.should_exclude_method_by_fqn(raw_name):
            return
        if self.filters.member_kinds.should_exclude(element.member_kind, element.has_sarif_violations):
            return
        if not raw_name or not raw_name.strip():
            return

        type_fqn = (
            normalize_type_name(element.parent_fully_qualified_name)
            or declaring_type_name(member_key(raw_name, None))
        )
        if not type_fqn:
            logger.debug("Skipping member without declaring type: %s", raw_name)
            return
        if self.filters.types.should_exclude_type(type_fqn):
            return

        assembly_name = element.containing_assembly_name
        if not assembly_name:
            known = self.workspace.types.get(type_fqn)
            assembly_name = known.assembly.name if known else self.resolve_assembly_name_from_fqn(type_fqn)
        if self.filters.assemblies.is_excluded(assembly_name):
            return

        type_entry = self._ensure_type_for_member(type_fqn, assembly_name)
        if not self.workspace.is_attached(type_entry.assembly):
            return

        key = member_key(raw_name, type_fqn)
        member = self.workspace.members.get(key)
        if member is None:
            member = MemberNode(name=member_display_name(key), fully_qualified_name=key)
            type_entry.node.members.append(member)
            self.workspace.members[key] = member

        _update_member_metadata(member, element)
        _apply(member, element)

    # ------------------------------------------------------------------
    # Resolution helpers
    # ------------------------------------------------------------------

    def resolve_assembly_name_from_fqn(self, fqn: str) -> str:
        """Best-effort owning assembly for a type or member FQN."""
        namespace = self.workspace.find_known_namespace(fqn)
        if namespace is not None:
            return self.workspace.try_resolve_assembly(namespace)

        namespace = _namespace_part(fqn)
        excluded = self.filters.assemblies.is_excluded
        if excluded(fqn):
            return fqn
        if namespace != GLOBAL_NAMESPACE:
            if excluded(namespace):
                return namespace
            root = namespace.split(".")[0]
            if excluded(root):
                return root

        if self.workspace.assemblies:
            return next(iter(self.workspace.assemblies.values())).name
        return self.workspace.solution.name

    def _resolve_namespace(self, parent: str | None, assembly_name: str, type_fqn: str) -> str:
        if parent == GLOBAL_NAMESPACE:
            return GLOBAL_NAMESPACE
        if parent and parent.lower() != (assembly_name or "").lower():
            key = self.workspace.namespace_key(assembly_name or "", parent)
            if key in self.workspace.namespaces or parent in self.workspace.namespace_index:
                return parent
        known = self.workspace.find_known_namespace(type_fqn)
        if known is not None:
            return known
        return _namespace_part(type_fqn)

    def _get_or_create_namespace(self, assembly_name: str, namespace_name: str) -> NamespaceEntry:
        assembly = self.workspace.get_assembly(assembly_name)
        if assembly is None:
            detached = AssemblyNode(name=assembly_name, fully_qualified_name=assembly_name)
            return NamespaceEntry(NamespaceNode(name=namespace_name, fully_qualified_name=namespace_name), detached)

        key = self.workspace.namespace_key(assembly.name, namespace_name)
        namespace = self.workspace.namespaces.get(key)
        if namespace is not None:
            return NamespaceEntry(namespace, assembly)
        namespace = NamespaceNode(name=namespace_name, fully_qualified_name=namespace_name)
        return self.workspace.add_namespace(assembly, namespace)

    def _get_or_create_type(
        self, assembly_name: str, namespace_name: str, type_fqn: str, display_name: str
    ) -> TypeEntry:
        existing = self.workspace.types.get(type_fqn)
        if existing is not None:
            return existing

        assembly = self.workspace.get_assembly(assembly_name)
        node = TypeNode(name=display_name, fully_qualified_name=type_fqn)
        if assembly is None:
            detached = AssemblyNode(name=assembly_name, fully_qualified_name=assembly_name)
            return TypeEntry(node, detached)

        namespace = self._get_or_create_namespace(assembly.name, namespace_name)
        namespace.node.types.append(node)
        entry = TypeEntry(node, assembly)
        self.workspace.types[type_fqn] = entry
        return entry

    def _ensure_type_for_member(self, type_fqn: str, assembly_name: str) -> TypeEntry:
        existing = self.workspace.types.get(type_fqn)
        if existing is not None:
            return existing
        namespace_name = self._resolve_namespace(None, assembly_name, type_fqn)
        return self._get_or_create_type(
            assembly_name, namespace_name, type_fqn, _type_display_name(None, type_fqn)
        )


def _namespace_part(fqn: str) -> str:
    last_dot = fqn.rfind(".")
    if last_dot <= 0:
        return GLOBAL_NAMESPACE
    return fqn[:last_dot]


def _type_display_name(name: str | None, type_fqn: str) -> str:
    if not name or "." in name:
        return type_fqn[type_fqn.rfind(".") + 1:]
    return normalize_type_name(name)


def _update_member_metadata(member: MemberNode, element: ParsedCodeElement) -> None:
    kind = element.member_kind
    if kind != MemberKind.Unknown:
        if member.member_kind == MemberKind.Unknown or (
            member.member_kind == MemberKind.Method and kind != MemberKind.Method
        ):
            member.member_kind = kind
    if element.has_sarif_violations:
        member.has_sarif_violations = True
