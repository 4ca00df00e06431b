"""Tests for quality_report/aggregation/suppressions.py"""

from decimal import Decimal

import pytest

from quality_report.aggregation.merger import StructuralElementMerger
from quality_report.aggregation.suppressions import bind_suppressions, resolve_metric
from quality_report.aggregation.workspace import AggregationWorkspace
from quality_report.models import (
    MemberNode,
    MetricIdentifier,
    MetricValue,
    ParsedCodeElement,
    SuppressedSymbolInfo,
    SymbolLevel,
)

CA = MetricIdentifier.SarifCaRuleViolations
IDE = MetricIdentifier.SarifIdeRuleViolations


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _node(**values) -> MemberNode:
    return MemberNode(
        name="Run(...)",
        metrics={MetricIdentifier[k]: MetricValue(None if v is None else Decimal(v)) for k, v in values.items()},
    )


@pytest.fixture
def workspace() -> AggregationWorkspace:
    ws = AggregationWorkspace("Solution")
    merger = StructuralElementMerger(ws)
    merger.merge(ParsedCodeElement(kind=SymbolLevel.Assembly, name="App", fully_qualified_name="App"))
    merger.merge(ParsedCodeElement(
        kind=SymbolLevel.Namespace, name="App.Core", fully_qualified_name="App.Core",
        parent_fully_qualified_name="App",
    ))
    merger.merge(ParsedCodeElement(
        kind=SymbolLevel.Member, name="void Run(int count)", fully_qualified_name="void Run(int count)",
        parent_fully_qualified_name="App.Core.Widget",
        metrics={CA: MetricValue(Decimal(2))},
    ))
    return ws


# ---------------------------------------------------------------------------
# Metric resolution
# ---------------------------------------------------------------------------

class TestResolveMetric:
    def test_preferred_metric_with_value(self):
        assert resolve_metric(_node(SarifCaRuleViolations=1, SarifIdeRuleViolations=1), "CA1000") == CA

    def test_preferred_metric_without_value_falls_back(self):
        node = _node(SarifCaRuleViolations=None, SarifIdeRuleViolations=1)
        assert resolve_metric(node, "CA1000") == IDE

    def test_fallback_order_prefers_ide(self):
        assert resolve_metric(_node(SarifCaRuleViolations=1, SarifIdeRuleViolations=1), "CS8618") == IDE

    @pytest.mark.parametrize("rule_id", ["CA1000", "IDE0051", "CS8618"])
    def test_fallback_skips_unmeasured_metric(self, rule_id):
        node = _node(SarifIdeRuleViolations=None, SarifCaRuleViolations=3)
        assert resolve_metric(node, rule_id) == CA

    def test_only_unmeasured_diagnostics(self):
        assert resolve_metric(_node(SarifCaRuleViolations=None, SarifIdeRuleViolations=None), "CA1000") is None

    def test_no_diagnostics(self):
        assert resolve_metric(_node(RoslynMaintainabilityIndex=80), "CA1000") is None


# ---------------------------------------------------------------------------
# bind_suppressions()
# ---------------------------------------------------------------------------

class TestBindSuppressions:
    def test_binds_member_by_signature(self, workspace):
        entry = SuppressedSymbolInfo(fully_qualified_name="App.Core.Widget.Run(System.Int32)", rule_id="CA1822")
        assert bind_suppressions(workspace, [entry]) == 1
        assert entry.metric == "SarifCaRuleViolations"

    def test_binds_normalized_name(self, workspace):
        entry = SuppressedSymbolInfo(fully_qualified_name="App.Core.Widget.Run(...)", rule_id="CA1822")
        assert bind_suppressions(workspace, [entry]) == 1

    def test_keeps_known_metric(self, workspace):
        entry = SuppressedSymbolInfo(
            fully_qualified_name="App.Core.Widget.Run(...)", rule_id="IDE0051", metric="SarifIdeRuleViolations",
        )
        assert bind_suppressions(workspace, [entry]) == 0
        assert entry.metric == "SarifIdeRuleViolations"

    def test_unknown_symbol_left_unbound(self, workspace):
        entry = SuppressedSymbolInfo(fully_qualified_name="App.Core.Missing", rule_id="CA1000")
        assert bind_suppressions(workspace, [entry]) == 0
        assert entry.metric is None

    def test_blank_name_skipped(self, workspace):
        entry = SuppressedSymbolInfo(fully_qualified_name="  ", rule_id="CA1000")
        assert bind_suppressions(workspace, [entry]) == 0

    def test_node_without_diagnostics(self, workspace):
        entry = SuppressedSymbolInfo(fully_qualified_name="App.Core.Widget", rule_id="CA1000")
        assert bind_suppressions(workspace, [entry]) == 0
        assert entry.metric is None


def test_binds_generic_type_and_member():
    ws = AggregationWorkspace("Solution")
    merger = StructuralElementMerger(ws)
    merger.merge(ParsedCodeElement(kind=SymbolLevel.Assembly, name="App", fully_qualified_name="App"))
    merger.merge(ParsedCodeElement(
        kind=SymbolLevel.Type, name="Repo<T>", fully_qualified_name="App.Repo<T>",
        parent_fully_qualified_name="App", metrics={IDE: MetricValue(Decimal(1))},
    ))
    merger.merge(ParsedCodeElement(
        kind=SymbolLevel.Member, name="void Get()", fully_qualified_name="void Get()",
        parent_fully_qualified_name="App.Repo<T>", metrics={CA: MetricValue(Decimal(1))},
    ))
    type_entry = SuppressedSymbolInfo(fully_qualified_name="App.Repo<TEntity>", rule_id="IDE0051")
    member_entry = SuppressedSymbolInfo(fully_qualified_name="App.Repo<TEntity>.Get()", rule_id="CA1822")

    assert bind_suppressions(ws, [type_entry, member_entry]) == 2
    assert type_entry.metric == "SarifIdeRuleViolations"
    assert member_entry.metric == "SarifCaRuleViolations"
