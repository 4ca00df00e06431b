"""Exception hierarchy shared by the aggregation pipeline."""


class QualityReportError(Exception):
    """Base exception for all quality report errors."""


class DuplicateSymbolError(QualityReportError):
    """Raised when the same type or member appears in two input documents."""

    def __init__(self, fully_qualified_name: str, first_document: str, second_document: str) -> None:
        self.fully_qualified_name = fully_qualified_name
        self.first_document = first_document
        self.second_document = second_document
        super().__init__(
            f"Symbol '{fully_qualified_name}' is defined in both "
            f"'{first_document}' and '{second_document}'."
        )


class InvalidInputError(QualityReportError):
    """Raised when the aggregation inputs are incomplete or inconsistent."""
