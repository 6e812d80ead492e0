"""
Document numbering formats.

Pure formatting over values allocated by SequenceService:

    format_document_number("PO", 42)              -> "PO-000042"
    format_yearly_document_number("PR", 2024, 7)  -> "PR-2024-0007"

Widths are minimums: a value that outgrows the padding is printed in full,
so numbers stay unique.
"""

from dataclasses import dataclass

DOCUMENT_NUMBER_WIDTH = 6
YEARLY_NUMBER_WIDTH = 4


def format_document_number(prefix: str, sequence_value: int) -> str:
    if sequence_value < 1:
        raise ValueError(f"Sequence value must be positive, got {sequence_value}")
    return f"{prefix}-{sequence_value:0{DOCUMENT_NUMBER_WIDTH}d}"


def format_yearly_document_number(prefix: str, year: int, sequence_value: int) -> str:
    if sequence_value < 1:
        raise ValueError(f"Sequence value must be positive, got {sequence_value}")
    return f"{prefix}-{year:04d}-{sequence_value:0{YEARLY_NUMBER_WIDTH}d}"


@dataclass(frozen=True)
class NumberingScheme:
    """Counter name plus format for one document category."""

    prefix: str
    year_scoped: bool = False

    @property
    def sequence_name(self) -> str:
        return self.prefix

    def format(self, sequence_value: int, year: int | None = None) -> str:
        if self.year_scoped:
            if year is None:
                raise ValueError(f"{self.prefix} numbering is year-scoped; year required")
            return format_yearly_document_number(self.prefix, year, sequence_value)
        return format_document_number(self.prefix, sequence_value)


PURCHASE_REQUEST_YEARLY = NumberingScheme("PR", year_scoped=True)
PURCHASE_REQUEST_GLOBAL = NumberingScheme("PR")
PURCHASE_ORDER = NumberingScheme("PO")
RECEIPT = NumberingScheme("RCV")
