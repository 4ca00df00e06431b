"""Per-run aggregation state.

The workspace owns the solution tree and the lookup maps every pipeline
stage reads and mutates. A fresh workspace is created for each run.
"""

from quality_report.aggregation.line_index import LineIndex
from quality_report.filters import ReportFilters
from quality_report.models import (
    AssemblyNode,
    MemberNode,
    MetricsNode,
    NamespaceEntry,
    NamespaceNode,
    SolutionNode,
    TypeEntry,
)
from quality_report.symbols import GLOBAL_NAMESPACE


class AggregationWorkspace:
    def __init__(self, solution_name: str, filters: ReportFilters | None = None) -> None:
        self.solution = SolutionNode(name=solution_name, fully_qualified_name=solution_name)
        self.filters = filters or ReportFilters()
        # keyed by lower-cased assembly name
        self.assemblies: dict[str, AssemblyNode] = {}
        # keyed by "<assembly>::<namespace>"
        self.namespaces: dict[str, NamespaceNode] = {}
        self.namespace_index: dict[str, list[NamespaceEntry]] = {}
        self.types: dict[str, TypeEntry] = {}
        self.members: dict[str, MemberNode] = {}
        self.line_index = LineIndex()

    # ------------------------------------------------------------------
    # Assemblies
    # ------------------------------------------------------------------

    def get_assembly(self, name: str | None) -> AssemblyNode | None:
        if not name:
            return None
        return self.assemblies.get(name.lower())

    def add_assembly(self, key: str, assembly: AssemblyNode) -> None:
        self.assemblies[key.lower()] = assembly
        self.solution.assemblies.append(assembly)

    def is_attached(self, assembly: AssemblyNode) -> bool:
        """False for the placeholder assemblies of filtered or unknown input."""
        return assembly in self.solution.assemblies

    def is_live_assembly(self, assembly: AssemblyNode | None) -> bool:
        return (
            assembly is not None
            and self.is_attached(assembly)
            and not self.filters.assemblies.is_excluded(assembly.name)
        )

    # ------------------------------------------------------------------
    # Namespaces
    # ------------------------------------------------------------------

    @staticmethod
    def namespace_key(assembly_name: str, namespace: str) -> str:
        return f"{assembly_name.lower()}::{namespace}"

    def add_namespace(self, assembly: AssemblyNode, namespace: NamespaceNode) -> NamespaceEntry:
        entry = NamespaceEntry(namespace, assembly)
        self.namespaces[self.namespace_key(assembly.name, namespace.name)] = namespace
        self.namespace_index.setdefault(namespace.name, []).append(entry)
        assembly.namespaces.append(namespace)
        return entry

    def try_resolve_assembly(self, namespace: str | None) -> str | None:
        """Return the assembly that first registered *namespace*."""
        if not namespace:
            return None
        entries = self.namespace_index.get(namespace)
        if not entries:
            return None
        return entries[0].assembly.name

    def find_known_namespace(self, type_fqn: str) -> str | None:
        """Return the longest registered namespace prefixing *type_fqn*."""
        candidate = type_fqn
        while True:
            last_dot = candidate.rfind(".")
            if last_dot <= 0:
                return None
            candidate = candidate[:last_dot]
            if candidate in self.namespace_index:
                return candidate

    # ------------------------------------------------------------------
    # Lookup by FQN
    # ------------------------------------------------------------------

    def find_by_fqn(self, fully_qualified_name: str) -> MetricsNode | None:
        """Search assemblies, namespaces, types then members."""
        assembly = self.get_assembly(fully_qualified_name)
        if assembly is not None:
            return assembly
        entries = self.namespace_index.get(fully_qualified_name)
        if entries and fully_qualified_name != GLOBAL_NAMESPACE:
            return entries[0].node
        type_entry = self.types.get(fully_qualified_name)
        if type_entry is not None:
            return type_entry.node
        return self.members.get(fully_qualified_name)

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def remove_type(self, type_fqn: str) -> bool:
        """Detach a type from its namespace and forget it and its members."""
        entry = self.types.pop(type_fqn, None)
        if entry is None:
            return False
        for namespace in entry.assembly.namespaces:
            if entry.node in namespace.types:
                namespace.types.remove(entry.node)
                break
        for member in entry.node.members:
            if self.members.get(member.fully_qualified_name) is member:
                del self.members[member.fully_qualified_name]
        return True
