"""Data models for the aggregated quality report.

Contains the enumerations and dataclasses shared by every stage:
    - MetricIdentifier, ThresholdStatus, SymbolLevel, MemberKind
    - SourceLocation, ViolationDetail, BreakdownEntry, MetricValue
    - SolutionNode, AssemblyNode, NamespaceNode, TypeNode, MemberNode
    - ParsedCodeElement, ParsedDocument  (input shape)
    - MetricThreshold, ThresholdDefinition, RuleDescription
    - SuppressedSymbolInfo, ReportMetadata, MetricsReport  (output shape)
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class MetricIdentifier(Enum):
    """Known metrics, in report emission order."""

    AltCoverSequenceCoverage = "AltCoverSequenceCoverage"
    AltCoverBranchCoverage = "AltCoverBranchCoverage"
    AltCoverCyclomaticComplexity = "AltCoverCyclomaticComplexity"
    AltCoverNPathComplexity = "AltCoverNPathComplexity"
    RoslynMaintainabilityIndex = "RoslynMaintainabilityIndex"
    RoslynCyclomaticComplexity = "RoslynCyclomaticComplexity"
    RoslynClassCoupling = "RoslynClassCoupling"
    RoslynDepthOfInheritance = "RoslynDepthOfInheritance"
    RoslynSourceLines = "RoslynSourceLines"
    RoslynExecutableLines = "RoslynExecutableLines"
    SarifCaRuleViolations = "SarifCaRuleViolations"
    SarifIdeRuleViolations = "SarifIdeRuleViolations"

    @classmethod
    def parse(cls, name: str | None) -> "MetricIdentifier | None":
        """Case-insensitive lookup by name; None when unknown."""
        if not name:
            return None
        lowered = name.strip().lower()
        for member in cls:
            if member.name.lower() == lowered:
                return member
        return None


#: Metrics whose values are summed across diagnostics instead of first-wins.
DIAGNOSTIC_METRICS: frozenset[MetricIdentifier] = frozenset({
    MetricIdentifier.SarifCaRuleViolations,
    MetricIdentifier.SarifIdeRuleViolations,
})


class ThresholdStatus(Enum):
    NotApplicable = "NotApplicable"
    Success = "Success"
    Warning = "Warning"
    Error = "Error"


class SymbolLevel(Enum):
    """Hierarchy level of a node; also used to key thresholds."""

    Solution = "Solution"
    Assembly = "Assembly"
    Namespace = "Namespace"
    Type = "Type"
    Member = "Member"

    @classmethod
    def parse(cls, name: str | None) -> "SymbolLevel | None":
        if not name:
            return None
        lowered = name.strip().lower()
        for member in cls:
            if member.name.lower() == lowered:
                return member
        return None


class MemberKind(Enum):
    Unknown = "Unknown"
    Method = "Method"
    Property = "Property"
    Field = "Field"
    Event = "Event"

    @classmethod
    def parse(cls, name: str | None) -> "MemberKind":
        if not name:
            return cls.Unknown
        lowered = name.strip().lower()
        for member in cls:
            if member.name.lower() == lowered:
                return member
        return cls.Unknown


# ---------------------------------------------------------------------------
# Metric values
# ---------------------------------------------------------------------------

@dataclass
class SourceLocation:
    path: str | None = None
    start_line: int | None = None
    end_line: int | None = None

    def clone(self) -> "SourceLocation":
        return SourceLocation(self.path, self.start_line, self.end_line)


@dataclass
class ViolationDetail:
    message: str | None = None
    uri: str | None = None
    start_line: int | None = None
    end_line: int | None = None

    def clone(self) -> "ViolationDetail":
        return ViolationDetail(self.message, self.uri, self.start_line, self.end_line)


@dataclass
class BreakdownEntry:
    count: int = 0
    violations: list[ViolationDetail] = field(default_factory=list)

    def clone(self) -> "BreakdownEntry":
        return BreakdownEntry(self.count, [v.clone() for v in self.violations])


@dataclass
class MetricValue:
    """A single measured value.

    ``value`` None means "not measured", never zero. ``breakdown`` is only
    populated for diagnostic-count metrics.
    """

    value: Decimal | None = None
    status: ThresholdStatus = ThresholdStatus.NotApplicable
    delta: Decimal | None = None
    breakdown: dict[str, BreakdownEntry] | None = None

    def clone(self) -> "MetricValue":
        breakdown = None
        if self.breakdown:
            breakdown = {rule: entry.clone() for rule, entry in self.breakdown.items()}
        return MetricValue(self.value, self.status, self.delta, breakdown)


# ---------------------------------------------------------------------------
# Tree nodes
# ---------------------------------------------------------------------------
# eq=False keeps identity semantics: nodes are shared between the tree and
# the workspace lookup maps.

@dataclass(eq=False)
class _Node:
    name: str
    fully_qualified_name: str | None = None
    source: SourceLocation | None = None
    is_new: bool = False
    metrics: dict[MetricIdentifier, MetricValue] = field(default_factory=dict)


@dataclass(eq=False)
class MemberNode(_Node):
    member_kind: MemberKind = MemberKind.Unknown
    has_sarif_violations: bool = False
    includes_iterator_state_machine_coverage: bool = False


@dataclass(eq=False)
class TypeNode(_Node):
    members: list[MemberNode] = field(default_factory=list)


@dataclass(eq=False)
class NamespaceNode(_Node):
    types: list[TypeNode] = field(default_factory=list)


@dataclass(eq=False)
class AssemblyNode(_Node):
    namespaces: list[NamespaceNode] = field(default_factory=list)


@dataclass(eq=False)
class SolutionNode(_Node):
    assemblies: list[AssemblyNode] = field(default_factory=list)


MetricsNode = SolutionNode | AssemblyNode | NamespaceNode | TypeNode | MemberNode


def level_of(node: MetricsNode) -> SymbolLevel:
    """Return the hierarchy level of *node*."""
    match node:
        case SolutionNode():
            return SymbolLevel.Solution
        case AssemblyNode():
            return SymbolLevel.Assembly
        case NamespaceNode():
            return SymbolLevel.Namespace
        case TypeNode():
            return SymbolLevel.Type
        case MemberNode():
            return SymbolLevel.Member
    raise TypeError(f"Unsupported node type: {type(node).__name__}")


def children_of(node: MetricsNode) -> list:
    match node:
        case SolutionNode():
            return node.assemblies
        case AssemblyNode():
            return node.namespaces
        case NamespaceNode():
            return node.types
        case TypeNode():
            return node.members
        case MemberNode():
            return []
    raise TypeError(f"Unsupported node type: {type(node).__name__}")


@dataclass
class TypeEntry:
    node: TypeNode
    assembly: AssemblyNode


@dataclass
class NamespaceEntry:
    node: NamespaceNode
    assembly: AssemblyNode


# ---------------------------------------------------------------------------
# Parsed input
# ---------------------------------------------------------------------------

@dataclass
class ParsedCodeElement:
    kind: SymbolLevel
    name: str
    fully_qualified_name: str | None = None
    parent_fully_qualified_name: str | None = None
    containing_assembly_name: str | None = None
    source: SourceLocation | None = None
    metrics: dict[MetricIdentifier, MetricValue] = field(default_factory=dict)
    member_kind: MemberKind = MemberKind.Unknown
    has_sarif_violations: bool = False


@dataclass
class RuleDescription:
    short_description: str | None = None
    full_description: str | None = None
    help_uri: str | None = None
    category: str | None = None


@dataclass
class ParsedDocument:
    solution_name: str = ""
    elements: list[ParsedCodeElement] = field(default_factory=list)
    rule_descriptions: dict[str, RuleDescription] = field(default_factory=dict)
    source_path: str | None = None


# ---------------------------------------------------------------------------
# Thresholds and report output
# ---------------------------------------------------------------------------

@dataclass
class MetricThreshold:
    warning: Decimal | None = None
    error: Decimal | None = None
    higher_is_better: bool = True
    positive_delta_neutral: bool = False


@dataclass
class ThresholdDefinition:
    description: str | None = None
    levels: dict[SymbolLevel, MetricThreshold] = field(default_factory=dict)


ThresholdMap = dict[MetricIdentifier, ThresholdDefinition]


@dataclass
class SuppressedSymbolInfo:
    file_path: str | None = None
    fully_qualified_name: str | None = None
    rule_id: str | None = None
    metric: str | None = None
    justification: str | None = None


@dataclass
class ReportMetadata:
    generated_at: datetime
    baseline_reference: str | None = None
    thresholds_by_level: dict[SymbolLevel, dict[MetricIdentifier, MetricThreshold]] = field(
        default_factory=dict
    )
    threshold_descriptions: dict[MetricIdentifier, str] = field(default_factory=dict)
    excluded_member_names: str | None = None
    excluded_assembly_names: str | None = None
    excluded_type_names: str | None = None
    suppressed_symbols: list[SuppressedSymbolInfo] = field(default_factory=list)
    rule_descriptions: dict[str, RuleDescription] = field(default_factory=dict)


@dataclass
class MetricsReport:
    metadata: ReportMetadata
    solution: SolutionNode
