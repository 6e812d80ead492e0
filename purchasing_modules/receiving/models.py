"""
Receiving Domain Models.

Receipts record goods physically arriving on a project.  Lines may be
"blind" (no PO line link yet) and linked later during reconciliation.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class ReceiptStatus(str, Enum):
    """Receipt lifecycle states."""
    PENDING = "pending"
    RECEIVED = "received"
    RECONCILED = "reconciled"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ReceiptLine:
    """A line on a receipt."""
    id: UUID
    receipt_id: UUID
    description: str
    qty_received: Decimal
    po_line_id: UUID | None = None
    uom: str | None = None
    condition: str | None = None
    notes: str | None = None

    @property
    def is_linked(self) -> bool:
        return self.po_line_id is not None


@dataclass(frozen=True)
class Receipt:
    """A receipt."""
    id: UUID
    receipt_number: str
    project_id: UUID
    status: ReceiptStatus
    vendor_id: UUID | None = None
    purchase_order_id: UUID | None = None
    received_at: datetime | None = None
    received_by_id: UUID | None = None
    location: str | None = None
    notes: str | None = None
    lines: tuple[ReceiptLine, ...] = field(default_factory=tuple)

    @property
    def unlinked_count(self) -> int:
        return sum(1 for line in self.lines if not line.is_linked)
