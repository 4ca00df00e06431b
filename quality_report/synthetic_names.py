"""Grammar for compiler-generated type names.

Two shapes are recognized:

    Outer+<Method>d__N      iterator / async state machine nested in Outer
    Ns.Outer+Inner          plain nested type spelled with ``+``; the metrics
                            side spells the same type ``Ns.Outer.Inner``

Functions:
    parse_iterator_type(fqn)      -> IteratorTypeName | None
    parse_nested_type(fqn)        -> NestedTypeName | None
"""

from dataclasses import dataclass

from quality_report.symbols import GLOBAL_NAMESPACE

_STATE_MACHINE_SUFFIX = "d__"


@dataclass(frozen=True)
class IteratorTypeName:
    outer_type: str
    method_name: str


@dataclass(frozen=True)
class NestedTypeName:
    namespace: str
    segments: tuple[str, ...]

    @property
    def dot_name(self) -> str:
        """The type FQN as the metrics source spells it."""
        joined = ".".join(self.segments)
        if self.namespace == GLOBAL_NAMESPACE:
            return joined
        return f"{self.namespace}.{joined}"


def parse_iterator_type(fqn: str | None) -> IteratorTypeName | None:
    """Parse ``Outer+<Method>d__N``; return None for any other shape."""
    if not fqn:
        return None

    plus = fqn.rfind("+")
    if plus <= 0 or plus == len(fqn) - 1:
        return None

    nested = fqn[plus + 1:]
    if not nested.startswith("<"):
        return None
    close = nested.find(">")
    if close <= 1 or close == len(nested) - 1:
        return None

    suffix = nested[close + 1:]
    if not suffix.startswith(_STATE_MACHINE_SUFFIX):
        return None
    ordinal = suffix[len(_STATE_MACHINE_SUFFIX):]
    if not ordinal.isdigit():
        return None

    return IteratorTypeName(outer_type=fqn[:plus], method_name=nested[1:close])


def _namespace_of(fqn: str) -> str:
    last_dot = fqn.rfind(".")
    if last_dot <= 0:
        return GLOBAL_NAMESPACE
    return fqn[:last_dot]


def parse_nested_type(fqn: str | None) -> NestedTypeName | None:
    """Parse ``Ns.Outer+Inner``.

    Every segment must be free of ``<``, ``>`` and ``__`` so compiler
    generated names never qualify; at least two segments are required.
    """
    if not fqn:
        return None

    namespace = _namespace_of(fqn)
    prefix = "" if namespace == GLOBAL_NAMESPACE else namespace + "."
    if not fqn.startswith(prefix) or len(fqn) <= len(prefix):
        return None

    type_part = fqn[len(prefix):]
    if "+" not in type_part:
        return None

    segments = tuple(s.strip() for s in type_part.split("+") if s.strip())
    if len(segments) < 2:
        return None
    if any("<" in s or ">" in s or "__" in s for s in segments):
        return None

    return NestedTypeName(namespace=namespace, segments=segments)
