"""Input validation run before aggregation."""

from quality_report.errors import DuplicateSymbolError
from quality_report.models import ParsedDocument, SymbolLevel


def document_id(document: ParsedDocument, index: int) -> str:
    return document.source_path or f"Document#{index}"


def validate_unique_symbols(documents: list[ParsedDocument]) -> None:
    """Fail when two documents of the same set define the same type or member.

    Raises:
        DuplicateSymbolError: on the first symbol found in two documents.
    """
    owners: dict[str, str] = {}
    for index, document in enumerate(documents):
        current = document_id(document, index)
        for element in document.elements:
            if element.kind not in (SymbolLevel.Type, SymbolLevel.Member):
                continue
            fqn = element.fully_qualified_name
            if not fqn:
                continue
            owner = owners.setdefault(fqn, current)
            if owner.lower() != current.lower():
                raise DuplicateSymbolError(fqn, owner, current)
