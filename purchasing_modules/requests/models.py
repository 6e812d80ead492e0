"""
Purchase Request Domain Models.

The nouns of the request side: a purchase request (PR) and its lines.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from purchasing_kernel.db.types import ZERO, extended_cost


class PurchaseRequestStatus(str, Enum):
    """Purchase request lifecycle states."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


# Statuses in which lines and header may still be edited
EDITABLE_STATUSES = frozenset({
    PurchaseRequestStatus.DRAFT,
    PurchaseRequestStatus.SUBMITTED,
    PurchaseRequestStatus.APPROVED,
})


@dataclass(frozen=True)
class PurchaseRequestLine:
    """A line item on a purchase request."""
    id: UUID
    purchase_request_id: UUID
    description: str
    qty: Decimal
    uom: str | None = None
    est_unit_cost: Decimal | None = None
    catalog_item_id: UUID | None = None
    sov_item_id: UUID | None = None
    timeline_task_id: UUID | None = None
    sort_order: int = 0
    is_active: bool = True
    po_line_id: UUID | None = None

    @property
    def extended_cost(self) -> Decimal:
        return extended_cost(self.qty, self.est_unit_cost)


@dataclass(frozen=True)
class PurchaseRequest:
    """A purchase request."""
    id: UUID
    pr_number: str
    project_id: UUID
    status: PurchaseRequestStatus
    requested_by_id: UUID
    approved_by_id: UUID | None = None
    approved_at: datetime | None = None
    needed_by_date: date | None = None
    priority: str | None = None
    notes: str | None = None
    purchase_order_id: UUID | None = None
    converted_at: datetime | None = None
    converted_by_id: UUID | None = None
    lines: tuple[PurchaseRequestLine, ...] = field(default_factory=tuple)

    @property
    def active_lines(self) -> tuple[PurchaseRequestLine, ...]:
        return tuple(line for line in self.lines if line.is_active)

    @property
    def total(self) -> Decimal:
        """Sum of extended cost over active lines."""
        return sum((line.extended_cost for line in self.active_lines), ZERO)

    @property
    def is_converted(self) -> bool:
        return self.purchase_order_id is not None
