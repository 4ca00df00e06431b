"""Tests for quality_report/aggregation/validation.py and rule_descriptions.py"""

import logging

import pytest

from quality_report.aggregation.rule_descriptions import filter_to_used, merge_rule_descriptions
from quality_report.aggregation.validation import document_id, validate_unique_symbols
from quality_report.errors import DuplicateSymbolError
from quality_report.models import ParsedCodeElement, ParsedDocument, RuleDescription, SymbolLevel


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _document(path: str | None, *elements: tuple[SymbolLevel, str]) -> ParsedDocument:
    return ParsedDocument(
        source_path=path,
        elements=[ParsedCodeElement(kind=kind, name=fqn, fully_qualified_name=fqn) for kind, fqn in elements],
    )


def _sarif(path: str, **descriptions: str) -> ParsedDocument:
    return ParsedDocument(
        source_path=path,
        rule_descriptions={rule: RuleDescription(short_description=text) for rule, text in descriptions.items()},
    )


# ---------------------------------------------------------------------------
# validate_unique_symbols()
# ---------------------------------------------------------------------------

class TestValidateUniqueSymbols:
    def test_distinct_symbols_pass(self):
        validate_unique_symbols([
            _document("a.json", (SymbolLevel.Type, "App.Widget")),
            _document("b.json", (SymbolLevel.Type, "App.Gadget")),
        ])

    def test_duplicate_type_across_documents(self):
        documents = [
            _document("a.json", (SymbolLevel.Type, "App.Widget")),
            _document("b.json", (SymbolLevel.Type, "App.Widget")),
        ]
        with pytest.raises(DuplicateSymbolError, match="App.Widget") as excinfo:
            validate_unique_symbols(documents)
        assert excinfo.value.first_document == "a.json"
        assert excinfo.value.second_document == "b.json"

    def test_repeat_within_one_document_is_allowed(self):
        validate_unique_symbols([
            _document("a.json", (SymbolLevel.Member, "App.Widget.Run(...)"), (SymbolLevel.Member, "App.Widget.Run(...)")),
        ])

    def test_document_ids_compare_case_insensitively(self):
        validate_unique_symbols([
            _document("Coverage.json", (SymbolLevel.Type, "App.Widget")),
            _document("coverage.JSON", (SymbolLevel.Type, "App.Widget")),
        ])

    def test_assemblies_and_namespaces_may_repeat(self):
        validate_unique_symbols([
            _document("a.json", (SymbolLevel.Assembly, "App"), (SymbolLevel.Namespace, "App.Core")),
            _document("b.json", (SymbolLevel.Assembly, "App"), (SymbolLevel.Namespace, "App.Core")),
        ])

    def test_anonymous_documents_get_positional_ids(self):
        documents = [_document(None, (SymbolLevel.Type, "App.Widget")), _document(None, (SymbolLevel.Type, "App.Widget"))]
        with pytest.raises(DuplicateSymbolError, match="Document#0"):
            validate_unique_symbols(documents)
        assert document_id(documents[1], 1) == "Document#1"


# ---------------------------------------------------------------------------
# Rule descriptions
# ---------------------------------------------------------------------------

class TestRuleDescriptions:
    def test_first_description_wins(self, caplog):
        with caplog.at_level(logging.WARNING):
            merged = merge_rule_descriptions([
                _sarif("a.sarif", CA1822="Mark members as static"),
                _sarif("b.sarif", CA1822="Something else", IDE0051="Remove unused private member"),
            ])
        assert merged["CA1822"].short_description == "Mark members as static"
        assert "IDE0051" in merged
        assert "Conflicting descriptions for rule CA1822" in caplog.text

    def test_identical_descriptions_do_not_warn(self, caplog):
        with caplog.at_level(logging.WARNING):
            merge_rule_descriptions([_sarif("a.sarif", CA1822="Same"), _sarif("b.sarif", CA1822="Same")])
        assert caplog.text == ""

    def test_filter_to_used(self):
        descriptions = {"CA1822": RuleDescription(), "IDE0051": RuleDescription()}
        assert list(filter_to_used(descriptions, {"CA1822", "CA2000"})) == ["CA1822"]

    def test_nothing_used_keeps_everything(self):
        descriptions = {"CA1822": RuleDescription()}
        assert filter_to_used(descriptions, set()) == descriptions
