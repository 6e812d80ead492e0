"""
Purchase Order Domain Models.

The nouns of the ordering side: purchase orders, their lines, and the
ship-to address block.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from purchasing_kernel.db.types import ZERO, extended_cost


class PurchaseOrderStatus(str, Enum):
    """Purchase order lifecycle states."""
    DRAFT = "draft"
    ISSUED = "issued"
    ACKNOWLEDGED = "acknowledged"
    PARTIALLY_RECEIVED = "partially_received"
    RECEIVED = "received"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class PurchaseOrderLineStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    CANCELLED = "cancelled"


# Lines may not be edited once the PO reaches one of these
LOCKED_STATUSES = frozenset({
    PurchaseOrderStatus.CLOSED,
    PurchaseOrderStatus.CANCELLED,
})


@dataclass(frozen=True)
class ShipToAddress:
    """Where the vendor delivers; every field optional."""
    name: str | None = None
    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None


@dataclass(frozen=True)
class PurchaseOrderLine:
    """A line item on a purchase order."""
    id: UUID
    purchase_order_id: UUID
    description: str
    qty: Decimal
    unit_cost: Decimal
    uom: str | None = None
    status: PurchaseOrderLineStatus = PurchaseOrderLineStatus.OPEN
    source_pr_line_id: UUID | None = None
    catalog_item_id: UUID | None = None
    sov_item_id: UUID | None = None
    timeline_task_id: UUID | None = None
    sort_order: int = 0
    is_active: bool = True

    @property
    def extended_cost(self) -> Decimal:
        return extended_cost(self.qty, self.unit_cost)


@dataclass(frozen=True)
class PurchaseOrder:
    """A purchase order."""
    id: UUID
    po_number: str
    project_id: UUID
    vendor_id: UUID
    status: PurchaseOrderStatus
    source_pr_id: UUID | None = None
    ship_to: ShipToAddress = field(default_factory=ShipToAddress)
    needed_by_date: date | None = None
    freight_estimate: Decimal = ZERO
    tax_estimate: Decimal = ZERO
    notes: str | None = None
    issued_at: datetime | None = None
    acknowledged_at: datetime | None = None
    lines: tuple[PurchaseOrderLine, ...] = field(default_factory=tuple)

    @property
    def active_lines(self) -> tuple[PurchaseOrderLine, ...]:
        return tuple(line for line in self.lines if line.is_active)

    @property
    def subtotal(self) -> Decimal:
        return sum((line.extended_cost for line in self.active_lines), ZERO)

    @property
    def total(self) -> Decimal:
        """Subtotal plus freight and tax estimates."""
        return self.subtotal + (self.freight_estimate or ZERO) + (self.tax_estimate or ZERO)
