"""Analyzer rule descriptions collected from SARIF documents."""

import logging

from quality_report.models import ParsedDocument, RuleDescription

logger = logging.getLogger(__name__)


def merge_rule_descriptions(documents: list[ParsedDocument]) -> dict[str, RuleDescription]:
    """Merge descriptions across documents; the first one seen for a rule wins."""
    merged: dict[str, RuleDescription] = {}
    for document in documents:
        for rule_id, description in document.rule_descriptions.items():
            existing = merged.get(rule_id)
            if existing is None:
                merged[rule_id] = description
            elif existing != description:
                logger.warning(
                    "Conflicting descriptions for rule %s in %s, keeping the first one",
                    rule_id,
                    document.source_path or "<sarif>",
                )
    return merged


def filter_to_used(
    descriptions: dict[str, RuleDescription], used_rule_ids: set[str]
) -> dict[str, RuleDescription]:
    """Keep descriptions of rules that appear in the report.

    When no rule is used at all the descriptions are returned unfiltered.
    """
    if not used_rule_ids:
        return dict(descriptions)
    return {rule: d for rule, d in descriptions.items() if rule in used_rule_ids}
