"""Input loading from local files or HTTP(S) locations.

Usage:
    reader   = SourceReader(token="ci-token")
    coverage = reader.load_document("build/coverage.json")
    sarif    = reader.load_document("build/analyzers.sarif", kind="sarif")
    baseline = reader.load_baseline("https://ci.example.com/artifacts/metrics.json")
    entries  = reader.load_suppressions("build/suppressions.json")
"""

import json
from pathlib import Path
from typing import Any

import requests

from quality_report.errors import QualityReportError
from quality_report.models import (
    MemberKind,
    MetricIdentifier,
    MetricValue,
    ParsedCodeElement,
    ParsedDocument,
    RuleDescription,
    SolutionNode,
    SuppressedSymbolInfo,
    SymbolLevel,
)
from quality_report.report import (
    metric_from_dict,
    solution_from_dict,
    source_from_dict,
    to_decimal,
)
from quality_report.sarif import parse_sarif


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class SourceError(QualityReportError):
    """Base exception for all input loading errors."""


class AuthenticationError(SourceError):
    """Raised on HTTP 401 or 403: missing, invalid or expired token."""


class SourceNotFoundError(SourceError):
    """Raised when a file does not exist or a URL answers HTTP 404."""


class NetworkError(SourceError):
    """Raised on connection timeout or unreachable server."""


def is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def _get(raw: dict, *keys: str, default=None):
    """Return the first key present, accepting snake_case and camelCase."""
    for key in keys:
        if key in raw:
            return raw[key]
    return default


# ---------------------------------------------------------------------------
# Document shape
# ---------------------------------------------------------------------------

def _element_metrics(raw: dict | None) -> dict[MetricIdentifier, MetricValue]:
    metrics: dict[MetricIdentifier, MetricValue] = {}
    for name, value in (raw or {}).items():
        metric = MetricIdentifier.parse(name)
        if metric is None:
            continue
        # a bare number is shorthand for {"value": number}
        if isinstance(value, dict):
            metrics[metric] = metric_from_dict(value)
        else:
            metrics[metric] = MetricValue(value=to_decimal(value))
    return metrics


def element_from_dict(raw: dict) -> ParsedCodeElement | None:
    kind = SymbolLevel.parse(raw.get("kind"))
    if kind is None:
        return None
    return ParsedCodeElement(
        kind=kind,
        name=raw.get("name") or "",
        fully_qualified_name=_get(raw, "fully_qualified_name", "fullyQualifiedName"),
        parent_fully_qualified_name=_get(raw, "parent_fully_qualified_name", "parentFullyQualifiedName"),
        containing_assembly_name=_get(raw, "containing_assembly_name", "containingAssemblyName"),
        source=source_from_dict(_get(raw, "source", "sourceLocation")),
        metrics=_element_metrics(raw.get("metrics")),
        member_kind=MemberKind.parse(_get(raw, "member_kind", "memberKind")),
        has_sarif_violations=bool(_get(raw, "has_sarif_violations", "hasSarifViolations", default=False)),
    )


def document_from_dict(data: dict, source_path: str | None = None) -> ParsedDocument:
    """Read the intermediate document shape; elements of unknown kind are skipped."""
    if not isinstance(data, dict):
        raise SourceError(f"'{source_path or 'document'}' must be a JSON object.")
    elements = []
    for raw in data.get("elements") or []:
        element = element_from_dict(raw) if isinstance(raw, dict) else None
        if element is not None:
            elements.append(element)
    descriptions = {
        rule: RuleDescription(
            short_description=_get(d, "short_description", "shortDescription"),
            full_description=_get(d, "full_description", "fullDescription"),
            help_uri=_get(d, "help_uri", "helpUri"),
            category=d.get("category"),
        )
        for rule, d in (_get(data, "rule_descriptions", "ruleDescriptions") or {}).items()
    }
    return ParsedDocument(
        solution_name=_get(data, "solution_name", "solutionName", default="") or "",
        elements=elements,
        rule_descriptions=descriptions,
        source_path=source_path,
    )


def suppressions_from_json(data: Any) -> list[SuppressedSymbolInfo]:
    entries = data.get("suppressions", []) if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise SourceError("Suppressions must be a JSON list or an object with a 'suppressions' list.")
    return [
        SuppressedSymbolInfo(
            file_path=_get(e, "file_path", "filePath"),
            fully_qualified_name=_get(e, "fully_qualified_name", "fullyQualifiedName"),
            rule_id=_get(e, "rule_id", "ruleId"),
            metric=e.get("metric"),
            justification=e.get("justification"),
        )
        for e in entries
        if isinstance(e, dict)
    ]


# ---------------------------------------------------------------------------
# Reader
# ---------------------------------------------------------------------------

class SourceReader:
    """Loads JSON inputs from disk or over HTTP(S)."""

    def __init__(self, token: str | None = None, timeout: int = 30) -> None:
        self._timeout = timeout
        self._session = requests.Session()
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def read_json(self, location: str) -> Any:
        """Return the parsed JSON at *location*.

        Raises:
            SourceNotFoundError: missing file or HTTP 404
            AuthenticationError: HTTP 401 or 403
            NetworkError:        timeout or connection failure
            SourceError:         any other non-2xx response or invalid JSON
        """
        if is_url(location):
            return self._request(location)

        path = Path(location)
        if not path.exists():
            raise SourceNotFoundError(f"Input file not found: '{location}'")
        try:
            with path.open(encoding="utf-8-sig") as f:
                return json.load(f)
        except json.JSONDecodeError as exc:
            raise SourceError(f"Failed to parse '{location}': {exc}") from exc

    def load_document(self, location: str, kind: str = "json") -> ParsedDocument:
        data = self.read_json(location)
        if kind == "sarif":
            if not isinstance(data, dict):
                raise SourceError(f"'{location}' is not a SARIF log.")
            return parse_sarif(data, source_path=location)
        return document_from_dict(data, source_path=location)

    def load_baseline(self, location: str) -> SolutionNode:
        data = self.read_json(location)
        if not isinstance(data, dict):
            raise SourceError(f"Baseline '{location}' must be a JSON object.")
        return solution_from_dict(data)

    def load_suppressions(self, location: str) -> list[SuppressedSymbolInfo]:
        return suppressions_from_json(self.read_json(location))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _request(self, url: str) -> Any:
        try:
            response = self._session.get(url, timeout=self._timeout)
        except requests.exceptions.Timeout as exc:
            raise NetworkError(
                f"Request timed out after {self._timeout}s while fetching '{url}'"
            ) from exc
        except requests.exceptions.ConnectionError as exc:
            raise NetworkError(f"Unable to reach '{url}'") from exc

        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"Access to '{url}' was refused; check that your token is valid."
            )
        if response.status_code == 404:
            raise SourceNotFoundError(f"Resource not found: {url}")
        if not response.ok:
            raise SourceError(
                f"Unexpected response {response.status_code} from {url}: {response.text[:200]}"
            )

        try:
            return response.json()
        except ValueError as exc:
            raise SourceError(f"Response from {url} is not valid JSON") from exc
