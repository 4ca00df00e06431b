"""File/line to symbol resolution.

Diagnostics only carry a file and a line. The index maps them back to the
member (or, failing that, the type) that owns the line, bridging two
systematic skews between producers: metrics documents often index a
method at its declaration line only, and analyzers often report one line
before the indexed body start.

Usage:
    index = LineIndex()
    index.add_member("src/App.cs", node, 20, 22)
    index.sort()
    index.find_node("SRC\\App.cs", 21)   # -> node
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

from quality_report.models import (
    AssemblyNode,
    MemberNode,
    MetricsNode,
    SourceLocation,
    TypeEntry,
    TypeNode,
)

if TYPE_CHECKING:
    from quality_report.aggregation.workspace import AggregationWorkspace


@dataclass
class LineEntry:
    node: MetricsNode
    start: int
    end: int

    @property
    def span(self) -> int:
        return self.end - self.start

    @property
    def is_single_line(self) -> bool:
        return self.start == self.end


class LineIndex:
    def __init__(self) -> None:
        self._members: dict[str, list[LineEntry]] = {}
        self._types: dict[str, list[LineEntry]] = {}
        self._file_assemblies: dict[str, AssemblyNode] = {}

    @staticmethod
    def normalize_path(path: str) -> str:
        return path.replace("\\", "/").lower()

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def add_member(self, path: str, node: MemberNode, start: int, end: int | None = None) -> None:
        self._add(self._members, path, node, start, end)

    def add_type(self, path: str, node: TypeNode, start: int, end: int | None = None) -> None:
        self._add(self._types, path, node, start, end)

    @classmethod
    def _add(cls, bucket, path, node, start, end) -> None:
        end = start if end is None or end < start else end
        bucket.setdefault(cls.normalize_path(path), []).append(LineEntry(node, start, end))

    def register_file_assembly(self, path: str, assembly: AssemblyNode) -> None:
        """Remember the assembly owning *path*; a later registration replaces an earlier one."""
        self._file_assemblies[self.normalize_path(path)] = assembly

    def sort(self) -> None:
        for bucket in (self._members, self._types):
            for entries in bucket.values():
                entries.sort(key=lambda e: e.start)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def try_get_assembly(self, path: str | None) -> AssemblyNode | None:
        if not path:
            return None
        return self._file_assemblies.get(self.normalize_path(path))

    def find_node(self, path: str | None, line: int | None) -> MetricsNode | None:
        """Return the member owning *line*, else the type, else None."""
        if not path or line is None:
            return None
        key = self.normalize_path(path)
        for bucket in (self._members, self._types):
            entries = bucket.get(key)
            if not entries:
                continue
            entry = _find_entry(entries, line)
            if entry is not None:
                return entry.node
        return None


def _shortest(current: LineEntry | None, candidate: LineEntry) -> LineEntry:
    if current is None or candidate.span < current.span:
        return candidate
    return current


def _find_entry(entries: list[LineEntry], line: int) -> LineEntry | None:
    """Pick the entry for *line* from a list sorted by start line.

    Preference: starts exactly on the line, starts on the next line
    (declaration/body skew), shortest containing range, then the nearest
    preceding single-line entry with no other entry starting in between.
    """
    exact = following = containing = None
    for entry in entries:
        if entry.start == line:
            exact = _shortest(exact, entry)
        elif entry.start == line + 1:
            following = _shortest(following, entry)
        if entry.start <= line <= entry.end:
            containing = _shortest(containing, entry)

    for found in (exact, following, containing):
        if found is not None:
            return found

    candidate = None
    for entry in entries:
        if entry.start > line:
            break
        if entry.is_single_line:
            candidate = entry
    if candidate is None:
        return None
    if any(candidate.start < entry.start < line for entry in entries):
        return None
    return candidate


# ---------------------------------------------------------------------------
# Index construction
# ---------------------------------------------------------------------------

def _has_location(source: SourceLocation | None) -> bool:
    return source is not None and bool(source.path) and source.start_line is not None


def build_line_index(workspace: "AggregationWorkspace") -> LineIndex:
    """Index every located type and member of a live assembly."""
    index = workspace.line_index
    for entry in workspace.types.values():
        assembly = entry.assembly
        if not workspace.is_live_assembly(assembly):
            continue

        for member in entry.node.members:
            if not _has_location(member.source):
                continue
            source = member.source
            index.add_member(source.path, member, source.start_line, source.end_line)
            index.register_file_assembly(source.path, assembly)

        if _has_location(entry.node.source):
            source = entry.node.source
            index.add_type(source.path, entry.node, source.start_line, source.end_line)
            index.register_file_assembly(source.path, assembly)

    index.sort()
    return index


def backfill_type_sources(types: Iterable[TypeEntry]) -> None:
    """Give types without a location the location of their members.

    The file holding most members wins (ties: lowest start line); the range
    spans from the first member start to the last member end. Values the
    type already has are kept.
    """
    for entry in types:
        node = entry.node
        current = node.source
        if current is not None and current.path and current.start_line is not None:
            continue

        groups: dict[str, list[MemberNode]] = {}
        for member in node.members:
            if _has_location(member.source):
                groups.setdefault(LineIndex.normalize_path(member.source.path), []).append(member)
        if not groups:
            continue

        best = min(
            groups.values(),
            key=lambda group: (-len(group), min(m.source.start_line for m in group)),
        )
        start = min(m.source.start_line for m in best)
        end = max(m.source.end_line or m.source.start_line for m in best)

        node.source = SourceLocation(
            path=current.path if current and current.path else best[0].source.path,
            start_line=current.start_line if current and current.start_line is not None else start,
            end_line=current.end_line if current and current.end_line is not None else end,
        )
