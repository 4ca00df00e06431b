"""Exclusion filters applied before nodes enter the report tree.

Patterns are separated by ``,`` or ``;``. A pattern containing ``*`` or
``?`` is a wildcard matched against the whole candidate; plain text is an
exact match for member names and a substring match for type names.
Assembly patterns are case-insensitive substrings.

Usage:
    filters = ReportFilters(
        members=MemberFilter.from_string("ctor,MoveNext"),
        assemblies=AssemblyFilter.from_string("Tests;Benchmarks"),
        types=TypeFilter.from_string("*Generated*"),
        member_kinds=MemberKindFilter(exclude_fields=True),
    )
"""

import re
from dataclasses import dataclass, field

from quality_report.models import MemberKind
from quality_report.symbols import extract_method_name

DEFAULT_EXCLUDED_MEMBERS = "ctor,cctor,MoveNext,SetStateMachine,MoveNextAsync,DisposeAsync"

_DELIMITERS = re.compile(r"[,;]")


def split_patterns(raw: str | None) -> list[str]:
    """Split a pattern string on ``,`` and ``;`` dropping blank parts."""
    if not raw or not raw.strip():
        return []
    return [part.strip() for part in _DELIMITERS.split(raw) if part.strip()]


# ---------------------------------------------------------------------------
# Pattern set
# ---------------------------------------------------------------------------

class NamePatternSet:
    def __init__(self, patterns: list[str], plain_text_is_exact_match: bool) -> None:
        self.raw_patterns = list(patterns)
        self._predicates = [self._compile(p, plain_text_is_exact_match) for p in patterns]

    @classmethod
    def from_string(cls, raw: str | None, plain_text_is_exact_match: bool) -> "NamePatternSet":
        return cls(split_patterns(raw), plain_text_is_exact_match)

    @staticmethod
    def _compile(pattern: str, exact: bool):
        if "*" not in pattern and "?" not in pattern:
            if exact:
                return lambda candidate: candidate == pattern
            return lambda candidate: pattern in candidate

        expression = "^" + re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".") + "$"
        regex = re.compile(expression)
        return lambda candidate: regex.match(candidate) is not None

    def __bool__(self) -> bool:
        return bool(self._predicates)

    def is_match(self, candidate: str | None) -> bool:
        if not self._predicates or not candidate or not candidate.strip():
            return False
        return any(predicate(candidate) for predicate in self._predicates)


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

class MemberFilter:
    """Excludes members by bare method name (``ctor``, ``MoveNext`` ...)."""

    def __init__(self, patterns: list[str] | None = None) -> None:
        cleaned = [p[1:] if p.startswith(".") else p for p in (patterns or [])]
        self._names = NamePatternSet([p for p in cleaned if p], plain_text_is_exact_match=True)
        self._excludes_constructors = self.should_exclude_method("ctor")

    @classmethod
    def from_string(cls, raw: str | None) -> "MemberFilter":
        return cls(split_patterns(raw))

    @property
    def raw_patterns(self) -> list[str]:
        return self._names.raw_patterns

    def should_exclude_method(self, method_name: str | None) -> bool:
        if not method_name or not method_name.strip():
            return False
        name = method_name[1:] if method_name.startswith(".") else method_name
        return self._names.is_match(name)

    def should_exclude_method_by_fqn(self, fully_qualified_name: str | None) -> bool:
        """Match the method name extracted from a full signature.

        A metrics-style constructor (method named after its type) counts as
        ``ctor`` when constructors are excluded.
        """
        if not fully_qualified_name or not fully_qualified_name.strip():
            return False

        method_name = extract_method_name(fully_qualified_name)
        if self.should_exclude_method(method_name):
            return True

        if self._excludes_constructors:
            return _is_named_after_type(fully_qualified_name, method_name)
        return False


def _is_named_after_type(fully_qualified_name: str, method_name: str) -> bool:
    paren = fully_qualified_name.find("(")
    search_end = paren if paren >= 0 else len(fully_qualified_name)
    last_dot = fully_qualified_name.rfind(".", 0, search_end)
    if last_dot <= 0:
        return False
    type_part = fully_qualified_name[:last_dot]
    space = type_part.find(" ")
    if space >= 0:
        type_part = type_part[space + 1:]
    type_name = type_part[type_part.rfind(".") + 1:]
    generic_start = type_name.find("<")
    if generic_start > 0:
        type_name = type_name[:generic_start]
    return bool(type_name) and type_name == method_name


class AssemblyFilter:
    """Excludes assemblies whose name contains one of the patterns."""

    def __init__(self, patterns: list[str] | None = None) -> None:
        self.raw_patterns = list(patterns or [])
        self._lowered = [p.lower() for p in self.raw_patterns]

    @classmethod
    def from_string(cls, raw: str | None) -> "AssemblyFilter":
        return cls(split_patterns(raw))

    def is_excluded(self, assembly_name: str | None) -> bool:
        if not assembly_name or not assembly_name.strip():
            return False
        lowered = assembly_name.lower()
        return any(pattern in lowered for pattern in self._lowered)


class TypeFilter:
    """Excludes types by name; plain patterns match as substrings."""

    def __init__(self, patterns: list[str] | None = None) -> None:
        self._names = NamePatternSet(list(patterns or []), plain_text_is_exact_match=False)

    @classmethod
    def from_string(cls, raw: str | None) -> "TypeFilter":
        return cls(split_patterns(raw))

    @property
    def raw_patterns(self) -> list[str]:
        return self._names.raw_patterns

    def should_exclude_type(self, type_name: str | None) -> bool:
        return self._names.is_match(type_name)


@dataclass
class MemberKindFilter:
    exclude_methods: bool = False
    exclude_properties: bool = False
    exclude_fields: bool = False
    exclude_events: bool = False

    def should_exclude(self, kind: MemberKind, has_sarif_violations: bool = False) -> bool:
        """Members carrying diagnostics are never excluded."""
        if has_sarif_violations:
            return False
        match kind:
            case MemberKind.Method:
                return self.exclude_methods
            case MemberKind.Property:
                return self.exclude_properties
            case MemberKind.Field:
                return self.exclude_fields
            case MemberKind.Event:
                return self.exclude_events
        return False


@dataclass
class ReportFilters:
    members: MemberFilter = field(default_factory=MemberFilter)
    assemblies: AssemblyFilter = field(default_factory=AssemblyFilter)
    types: TypeFilter = field(default_factory=TypeFilter)
    member_kinds: MemberKindFilter = field(default_factory=MemberKindFilter)
