"""SARIF diagnostics parsing.

Turns a SARIF 2.1 log into a ParsedDocument holding one Member element per
analyzer result. Only results of the ``CA`` and ``IDE`` rule families are
kept; results without a rule id or a physical location are skipped.

Usage:
    document = parse_sarif(json.load(f), source_path="build/analyzers.sarif")
"""

import logging
from decimal import Decimal
from urllib.parse import unquote, urlparse

from quality_report.models import (
    BreakdownEntry,
    MetricValue,
    ParsedCodeElement,
    ParsedDocument,
    RuleDescription,
    SourceLocation,
    SymbolLevel,
    ViolationDetail,
)
from quality_report.rules import is_valid_rule_id, metric_for_rule

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def uri_to_path(uri: str) -> str:
    """Return a local path for ``file:`` URIs; other URIs are kept as is."""
    parsed = urlparse(uri)
    if parsed.scheme != "file":
        return uri
    path = unquote(parsed.path)
    # file:///C:/repo/x.cs -> C:/repo/x.cs
    if len(path) > 2 and path[0] == "/" and path[2] == ":":
        path = path[1:]
    if parsed.netloc:
        return f"//{parsed.netloc}{path}"
    return path


def _text(node) -> str | None:
    if isinstance(node, dict):
        return node.get("text")
    return None


def _primary_location(result: dict) -> tuple[str, str, int | None, int | None] | None:
    """Return ``(uri, path, start_line, end_line)`` of the first usable location."""
    for location in result.get("locations") or []:
        physical = (location or {}).get("physicalLocation") or {}
        uri = (physical.get("artifactLocation") or {}).get("uri")
        if not uri:
            continue
        region = physical.get("region") or {}
        start = region.get("startLine")
        end = region.get("endLine", start)
        return uri, uri_to_path(uri), start, end
    return None


def _rule_descriptions(run: dict) -> dict[str, RuleDescription]:
    rules = ((run.get("tool") or {}).get("driver") or {}).get("rules") or []
    descriptions: dict[str, RuleDescription] = {}
    for rule in rules:
        rule_id = rule.get("id")
        if not rule_id or metric_for_rule(rule_id) is None:
            continue
        descriptions.setdefault(
            rule_id,
            RuleDescription(
                short_description=_text(rule.get("shortDescription")),
                full_description=_text(rule.get("fullDescription")),
                help_uri=rule.get("helpUri"),
                category=(rule.get("properties") or {}).get("category"),
            ),
        )
    return descriptions


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_result(result: dict) -> ParsedCodeElement | None:
    """Build the element for one SARIF result, or None when it is unusable."""
    rule_id = result.get("ruleId")
    metric = metric_for_rule(rule_id)
    if metric is None:
        return None

    location = _primary_location(result)
    if location is None:
        logger.debug("Skipping %s result without a physical location", rule_id)
        return None
    uri, path, start, end = location

    value = MetricValue(value=Decimal(1))
    if is_valid_rule_id(rule_id):
        detail = ViolationDetail(
            message=_text(result.get("message")),
            uri=uri,
            start_line=start,
            end_line=end,
        )
        value.breakdown = {rule_id: BreakdownEntry(count=1, violations=[detail])}

    return ParsedCodeElement(
        kind=SymbolLevel.Member,
        name=rule_id,
        source=SourceLocation(path=path, start_line=start, end_line=end),
        metrics={metric: value},
        has_sarif_violations=True,
    )


def parse_sarif(data: dict, source_path: str | None = None, solution_name: str = "") -> ParsedDocument:
    document = ParsedDocument(solution_name=solution_name, source_path=source_path)
    for run in data.get("runs") or []:
        for rule_id, description in _rule_descriptions(run).items():
            document.rule_descriptions.setdefault(rule_id, description)
        for result in run.get("results") or []:
            element = parse_result(result)
            if element is not None:
                document.elements.append(element)
    logger.debug("Parsed %d diagnostic(s) from %s", len(document.elements), source_path or "<sarif>")
    return document
