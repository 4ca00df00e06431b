"""Tests for quality_report/aggregation/merger.py"""

from decimal import Decimal

import pytest

from quality_report.aggregation.merger import (
    StructuralElementMerger,
    merge_metric_maps,
    merge_source,
)
from quality_report.aggregation.workspace import AggregationWorkspace
from quality_report.filters import (
    AssemblyFilter,
    MemberFilter,
    MemberKindFilter,
    ReportFilters,
    TypeFilter,
)
from quality_report.models import (
    BreakdownEntry,
    MemberKind,
    MemberNode,
    MetricIdentifier,
    MetricValue,
    ParsedCodeElement,
    SourceLocation,
    SymbolLevel,
    ThresholdStatus,
)

M = MetricIdentifier
ASSEMBLY = "Sample.Assembly"
NAMESPACE = "Sample.Namespace"
TYPE = "Sample.Namespace.SampleType"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _metrics(**values) -> dict[MetricIdentifier, MetricValue]:
    return {M[name]: MetricValue(value=None if v is None else Decimal(str(v))) for name, v in values.items()}


def _assembly(name: str = ASSEMBLY) -> ParsedCodeElement:
    return ParsedCodeElement(kind=SymbolLevel.Assembly, name=name, fully_qualified_name=name)


def _namespace(name: str = NAMESPACE, assembly: str = ASSEMBLY) -> ParsedCodeElement:
    return ParsedCodeElement(
        kind=SymbolLevel.Namespace, name=name, fully_qualified_name=name,
        parent_fully_qualified_name=assembly,
    )


def _type(fqn: str = TYPE, parent: str | None = NAMESPACE, **metrics) -> ParsedCodeElement:
    return ParsedCodeElement(
        kind=SymbolLevel.Type, name=fqn.rsplit(".", 1)[-1], fully_qualified_name=fqn,
        parent_fully_qualified_name=parent, metrics=_metrics(**metrics),
    )


def _member(signature: str, parent: str | None = TYPE, kind: MemberKind = MemberKind.Method,
            source: SourceLocation | None = None, **metrics) -> ParsedCodeElement:
    return ParsedCodeElement(
        kind=SymbolLevel.Member, name=signature, fully_qualified_name=signature,
        parent_fully_qualified_name=parent, member_kind=kind, source=source,
        metrics=_metrics(**metrics),
    )


def _merge(*elements, filters: ReportFilters | None = None) -> AggregationWorkspace:
    workspace = AggregationWorkspace("SampleSolution", filters)
    merger = StructuralElementMerger(workspace)
    for element in elements:
        merger.merge(element)
    return workspace


# ---------------------------------------------------------------------------
# merge_metric_maps() / merge_source()
# ---------------------------------------------------------------------------

class TestMergeMetricMaps:
    def test_adds_missing_metric_as_copy(self):
        incoming = _metrics(RoslynMaintainabilityIndex=80)
        target = {}
        merge_metric_maps(target, incoming)
        assert target[M.RoslynMaintainabilityIndex].value == 80
        assert target[M.RoslynMaintainabilityIndex] is not incoming[M.RoslynMaintainabilityIndex]

    def test_latest_measured_value_wins(self):
        target = _metrics(RoslynMaintainabilityIndex=80)
        merge_metric_maps(target, _metrics(RoslynMaintainabilityIndex=70))
        assert target[M.RoslynMaintainabilityIndex].value == 70

    def test_missing_value_never_erases(self):
        target = _metrics(RoslynMaintainabilityIndex=80)
        merge_metric_maps(target, _metrics(RoslynMaintainabilityIndex=None))
        assert target[M.RoslynMaintainabilityIndex].value == 80

    def test_diagnostic_counts_are_summed(self):
        first = MetricValue(Decimal(1), ThresholdStatus.Warning, Decimal(1),
                            {"CA1000": BreakdownEntry(1, [])})
        second = MetricValue(Decimal(2), breakdown={"CA1000": BreakdownEntry(2, []),
                                                    "CA2000": BreakdownEntry(1, [])})
        target = {M.SarifCaRuleViolations: first}
        merge_metric_maps(target, {M.SarifCaRuleViolations: second})

        merged = target[M.SarifCaRuleViolations]
        assert merged.value == 3
        assert merged.status == ThresholdStatus.NotApplicable
        assert merged.delta is None
        assert merged.breakdown["CA1000"].count == 3
        assert merged.breakdown["CA2000"].count == 1


class TestMergeSource:
    def test_sets_missing_source(self):
        node = MemberNode(name="Run")
        merge_source(node, SourceLocation("a.cs", 10, None))
        assert node.source == SourceLocation("a.cs", 10, None)

    def test_prefers_source_with_end_line(self):
        node = MemberNode(name="Run", source=SourceLocation("a.cs", 10, None))
        merge_source(node, SourceLocation("a.cs", 9, 20))
        assert node.source == SourceLocation("a.cs", 9, 20)

    def test_keeps_complete_source(self):
        node = MemberNode(name="Run", source=SourceLocation("a.cs", 10, 20))
        merge_source(node, SourceLocation("b.cs", 1, 2))
        assert node.source.path == "a.cs"


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------

class TestStructure:
    def test_builds_full_chain(self):
        workspace = _merge(_assembly(), _namespace(), _type(), _member("void DoWork(int count)"))

        assembly = workspace.solution.assemblies[0]
        namespace = assembly.namespaces[0]
        type_node = namespace.types[0]
        member = type_node.members[0]
        assert (assembly.name, namespace.name, type_node.name) == (ASSEMBLY, NAMESPACE, "SampleType")
        assert member.fully_qualified_name == f"{TYPE}.DoWork(...)"
        assert member.name == "DoWork(...)"
        assert workspace.members[f"{TYPE}.DoWork(...)"] is member

    def test_type_parented_by_assembly_finds_known_namespace(self):
        workspace = _merge(_assembly(), _namespace(), _type(parent=ASSEMBLY))
        namespace = workspace.solution.assemblies[0].namespaces[0]
        assert namespace.name == NAMESPACE
        assert namespace.types[0].fully_qualified_name == TYPE

    def test_namespace_derived_from_type_name(self):
        workspace = _merge(_assembly(), _type("Other.Space.Widget", parent=ASSEMBLY))
        assert workspace.solution.assemblies[0].namespaces[0].name == "Other.Space"

    def test_global_namespace(self):
        workspace = _merge(_assembly(), _type("Widget", parent=ASSEMBLY))
        assert workspace.solution.assemblies[0].namespaces[0].name == "<global>"

    def test_member_creates_missing_type(self):
        workspace = _merge(_assembly(), _namespace(), _member("void Run()", parent="Sample.Namespace.Lazy"))
        assert "Sample.Namespace.Lazy" in workspace.types
        assert workspace.types["Sample.Namespace.Lazy"].node.name == "Lazy"

    def test_unknown_assembly_is_detached(self):
        workspace = _merge(_type(parent=None))
        assert workspace.solution.assemblies == []
        assert workspace.types == {}

    def test_symbol_unification(self):
        coverage = _member(
            "void Rca.Loader.LoaderApp.OnApplicationIdling(System.Object, Autodesk.Revit.UI.Events.IdlingEventArgs)",
            parent="Rca.Loader.LoaderApp", AltCoverSequenceCoverage=50,
        )
        metrics = _member(
            "void OnApplicationIdling(object? sender, IdlingEventArgs e)",
            parent="Rca.Loader.LoaderApp", RoslynMaintainabilityIndex=80,
        )
        workspace = _merge(_assembly("Rca.Loader"), _namespace("Rca.Loader", "Rca.Loader"),
                           _type("Rca.Loader.LoaderApp", parent="Rca.Loader"), coverage, metrics)

        members = workspace.types["Rca.Loader.LoaderApp"].node.members
        assert len(members) == 1
        assert members[0].fully_qualified_name == "Rca.Loader.LoaderApp.OnApplicationIdling(...)"
        assert members[0].metrics[M.AltCoverSequenceCoverage].value == 50
        assert members[0].metrics[M.RoslynMaintainabilityIndex].value == 80


class TestGenericTypes:
    REPO = f"{NAMESPACE}.Repo"

    def _sources(self):
        metrics_side = [
            _type(f"{self.REPO}<T>", RoslynMaintainabilityIndex=70),
            _member("void Get()", parent=f"{self.REPO}<T>", RoslynMaintainabilityIndex=80),
        ]
        coverage_side = [
            _type(f"{self.REPO}<TEntity>", parent=ASSEMBLY, AltCoverSequenceCoverage=40),
            _member(f"System.Void {self.REPO}<TEntity>::Get()", parent=f"{self.REPO}<TEntity>",
                    AltCoverSequenceCoverage=60),
        ]
        return metrics_side, coverage_side

    def test_spellings_share_one_type_and_member(self):
        metrics_side, coverage_side = self._sources()
        workspace = _merge(_assembly(), _namespace(), *metrics_side, *coverage_side)

        types = workspace.solution.assemblies[0].namespaces[0].types
        assert [t.fully_qualified_name for t in types] == [self.REPO]
        assert types[0].name == "Repo"
        assert types[0].metrics[M.RoslynMaintainabilityIndex].value == 70
        assert types[0].metrics[M.AltCoverSequenceCoverage].value == 40

        members = types[0].members
        assert [m.fully_qualified_name for m in members] == [f"{self.REPO}.Get(...)"]
        assert members[0].metrics[M.RoslynMaintainabilityIndex].value == 80
        assert members[0].metrics[M.AltCoverSequenceCoverage].value == 60

    def test_source_order_does_not_matter(self):
        metrics_side, coverage_side = self._sources()
        workspace = _merge(_assembly(), _namespace(), *coverage_side, *metrics_side)
        assert list(workspace.types) == [self.REPO]
        assert list(workspace.members) == [f"{self.REPO}.Get(...)"]

    def test_declaring_type_taken_from_member_name(self):
        workspace = _merge(
            _assembly(), _namespace(), _type(f"{self.REPO}<T>"),
            _member(f"System.Void {self.REPO}<TEntity>::Get()", parent=None),
        )
        assert list(workspace.types) == [self.REPO]
        assert list(workspace.members) == [f"{self.REPO}.Get(...)"]

    def test_state_machine_of_generic_type_keeps_its_name(self):
        workspace = _merge(_assembly(), _namespace(), _type(f"{self.REPO}<T>+<Items>d__3"))
        assert list(workspace.types) == [f"{self.REPO}+<Items>d__3"]
        assert workspace.types[f"{self.REPO}+<Items>d__3"].node.name == "Repo+<Items>d__3"


# ---------------------------------------------------------------------------
# Filters during merge
# ---------------------------------------------------------------------------

class TestFiltering:
    def test_excluded_member_name(self):
        filters = ReportFilters(members=MemberFilter.from_string("ctor"))
        workspace = _merge(_assembly(), _namespace(), _type(),
                           _member(f"System.Void {TYPE}::.ctor()"), filters=filters)
        assert workspace.members == {}

    def test_excluded_member_kind(self):
        filters = ReportFilters(member_kinds=MemberKindFilter(exclude_fields=True))
        workspace = _merge(_assembly(), _namespace(), _type(),
                           _member("_count", kind=MemberKind.Field), filters=filters)
        assert workspace.members == {}

    def test_excluded_type(self):
        filters = ReportFilters(types=TypeFilter.from_string("*Type"))
        workspace = _merge(_assembly(), _namespace(), _type(), _member("void Run()"), filters=filters)
        assert workspace.types == {}
        assert workspace.members == {}

    def test_excluded_assembly(self):
        filters = ReportFilters(assemblies=AssemblyFilter.from_string("sample"))
        workspace = _merge(_assembly(), _namespace(), _type(), filters=filters)
        assert workspace.solution.assemblies == []
        assert workspace.types == {}


# ---------------------------------------------------------------------------
# Member metadata
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("first, second, expected", [
    (MemberKind.Unknown, MemberKind.Property, MemberKind.Property),
    (MemberKind.Method, MemberKind.Property, MemberKind.Property),
    (MemberKind.Property, MemberKind.Method, MemberKind.Property),
    (MemberKind.Field, MemberKind.Unknown, MemberKind.Field),
])
def test_member_kind_upgrade(first, second, expected):
    workspace = _merge(_assembly(), _namespace(), _type(),
                       _member("Value", kind=first), _member("Value", kind=second))
    assert workspace.members[f"{TYPE}.Value"].member_kind == expected
