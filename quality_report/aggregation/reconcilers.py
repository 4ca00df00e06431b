"""Post-merge coverage reconciliation.

Coverage tools attribute instrumented lines to compiler-generated types:
iterator/async state machines (``Outer+<Method>d__N``) and nested types
spelled with ``+`` where the metrics source uses ``.``. The passes below
move that coverage back onto the user-authored symbol.

Passes never delete or add tree nodes themselves; they return commands
that the orchestrator applies once the pass is over.

Functions:
    reconcile_iterator_coverage(workspace)        -> list[command]
    reconcile_nested_type_coverage(workspace)     -> list[command]
    apply_commands(workspace, commands)           -> None
    remove_inapplicable_branch_coverage(workspace)-> int
"""

import logging
from dataclasses import dataclass

from quality_report.aggregation.workspace import AggregationWorkspace
from quality_report.models import MemberNode, MetricIdentifier, MetricValue
from quality_report.symbols import PARAMETER_PLACEHOLDER, extract_method_name
from quality_report.synthetic_names import parse_iterator_type, parse_nested_type

logger = logging.getLogger(__name__)

SEQUENCE = MetricIdentifier.AltCoverSequenceCoverage
BRANCH = MetricIdentifier.AltCoverBranchCoverage
CYCLOMATIC = MetricIdentifier.AltCoverCyclomaticComplexity
NPATH = MetricIdentifier.AltCoverNPathComplexity

COVERAGE_METRICS: list[MetricIdentifier] = [SEQUENCE, BRANCH, CYCLOMATIC, NPATH]


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RemoveType:
    type_fqn: str


@dataclass(frozen=True)
class AddMember:
    type_fqn: str
    member: MemberNode


def apply_commands(workspace: AggregationWorkspace, commands: list) -> None:
    for command in commands:
        match command:
            case AddMember(type_fqn=type_fqn, member=member):
                entry = workspace.types.get(type_fqn)
                if entry is None:
                    continue
                entry.node.members.append(member)
                workspace.members[member.fully_qualified_name] = member
            case RemoveType(type_fqn=type_fqn):
                workspace.remove_type(type_fqn)
            case _:
                raise TypeError(f"Unknown reconciliation command: {command!r}")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def has_coverage(metrics: dict[MetricIdentifier, MetricValue]) -> bool:
    """True when sequence or branch coverage is measured and non-zero."""
    for metric in (SEQUENCE, BRANCH):
        value = metrics.get(metric)
        if value is not None and value.value is not None and value.value != 0:
            return True
    return False


def copy_if_present(
    source: dict[MetricIdentifier, MetricValue],
    target: dict[MetricIdentifier, MetricValue],
    metric: MetricIdentifier,
) -> bool:
    """Copy *metric* when the source measured it and the target did not
    (missing, None or zero)."""
    incoming = source.get(metric)
    if incoming is None or incoming.value is None:
        return False
    existing = target.get(metric)
    if existing is not None and existing.value is not None and existing.value != 0:
        return False
    target[metric] = MetricValue(value=incoming.value, status=incoming.status, delta=incoming.delta)
    return True


def _first_by_name(members: list[MemberNode]) -> dict[str, MemberNode]:
    """Map bare method name to the first member carrying it (overloads collapse)."""
    by_name: dict[str, MemberNode] = {}
    for member in members:
        by_name.setdefault(extract_method_name(member.fully_qualified_name), member)
    return by_name


# ---------------------------------------------------------------------------
# Iterator / async state machines
# ---------------------------------------------------------------------------

def reconcile_iterator_coverage(workspace: AggregationWorkspace) -> list:
    commands: list = []
    for type_fqn, entry in list(workspace.types.items()):
        parsed = parse_iterator_type(type_fqn)
        if parsed is None:
            continue

        outer = workspace.types.get(parsed.outer_type)
        if outer is None:
            continue
        method = _first_by_name(outer.node.members).get(parsed.method_name)
        if method is None:
            continue

        method_covered = has_coverage(method.metrics)
        synthetic_covered = has_coverage(entry.node.metrics)

        if method_covered and synthetic_covered:
            logger.debug("Both %s and %s carry coverage, leaving them", method.fully_qualified_name, type_fqn)
            continue
        if method_covered:
            continue

        if synthetic_covered:
            _transfer_state_machine_coverage(entry.node.metrics, method)
            logger.debug("Moved coverage of %s onto %s", type_fqn, method.fully_qualified_name)
        commands.append(RemoveType(type_fqn))
    return commands


def _transfer_state_machine_coverage(
    source: dict[MetricIdentifier, MetricValue], method: MemberNode
) -> None:
    copy_if_present(source, method.metrics, SEQUENCE)
    # branch points of the scaffolding only count when the method has its own
    if BRANCH in method.metrics:
        copy_if_present(source, method.metrics, BRANCH)
    copy_if_present(source, method.metrics, CYCLOMATIC)
    copy_if_present(source, method.metrics, NPATH)
    method.includes_iterator_state_machine_coverage = True


# ---------------------------------------------------------------------------
# Plus-separated nested types
# ---------------------------------------------------------------------------

def reconcile_nested_type_coverage(workspace: AggregationWorkspace) -> list:
    commands: list = []
    for plus_fqn, plus_entry in list(workspace.types.items()):
        parsed = parse_nested_type(plus_fqn)
        if parsed is None:
            continue

        dot_fqn = parsed.dot_name
        dot_entry = workspace.types.get(dot_fqn)
        if dot_entry is None or dot_entry is plus_entry:
            continue

        plus_type, dot_type = plus_entry.node, dot_entry.node
        plus_covered = has_coverage(plus_type.metrics)
        dot_covered = has_coverage(dot_type.metrics)
        if plus_covered and dot_covered:
            continue

        dot_methods = _first_by_name(dot_type.members)
        if _has_method_conflict(plus_type.members, dot_methods):
            logger.debug("Coverage conflict between %s and %s, leaving them", plus_fqn, dot_fqn)
            continue

        if plus_covered:
            for metric in COVERAGE_METRICS:
                copy_if_present(plus_type.metrics, dot_type.metrics, metric)

        for member in plus_type.members:
            if not has_coverage(member.metrics):
                continue
            name = extract_method_name(member.fully_qualified_name)
            target = dot_methods.get(name)
            if target is not None and has_coverage(target.metrics):
                continue
            if target is None:
                target = _dot_side_member(member, plus_fqn, dot_fqn, name)
                dot_methods[name] = target
                commands.append(AddMember(dot_fqn, target))
            for metric in COVERAGE_METRICS:
                copy_if_present(member.metrics, target.metrics, metric)
            target.includes_iterator_state_machine_coverage = True

        commands.append(RemoveType(plus_fqn))
    return commands


def _has_method_conflict(plus_members: list[MemberNode], dot_methods: dict[str, MemberNode]) -> bool:
    for member in plus_members:
        counterpart = dot_methods.get(extract_method_name(member.fully_qualified_name))
        if counterpart is not None and has_coverage(member.metrics) and has_coverage(counterpart.metrics):
            return True
    return False


def _dot_side_member(member: MemberNode, plus_fqn: str, dot_fqn: str, name: str) -> MemberNode:
    fqn = member.fully_qualified_name or ""
    if fqn.startswith(plus_fqn + "."):
        new_fqn = dot_fqn + fqn[len(plus_fqn):]
    else:
        new_fqn = f"{dot_fqn}.{name}({PARAMETER_PLACEHOLDER})"
    return MemberNode(
        name=member.name,
        fully_qualified_name=new_fqn,
        source=member.source.clone() if member.source else None,
        member_kind=member.member_kind,
    )


# ---------------------------------------------------------------------------
# Type branch coverage
# ---------------------------------------------------------------------------

def remove_inapplicable_branch_coverage(workspace: AggregationWorkspace) -> int:
    """Drop type branch coverage when no member has branch points.

    A type with no measured branch value on any member and a zero or
    missing value of its own reports nothing meaningful. Returns the
    number of types changed.
    """
    removed = 0
    for entry in workspace.types.values():
        node = entry.node
        branch = node.metrics.get(BRANCH)
        if branch is None:
            continue
        if any(
            m.metrics.get(BRANCH) is not None and m.metrics[BRANCH].value is not None
            for m in node.members
        ):
            continue
        if branch.value is None or branch.value == 0:
            del node.metrics[BRANCH]
            removed += 1
    return removed
