"""
SQLAlchemy ORM persistence models for purchase orders.

Invariants enforced
-------------------
* ``po_number`` is unique and assigned once at creation.
* ``source_pr_id`` is unique: at most one purchase order per purchase
  request.  A second conversion fails at flush even if two requests race
  past the service-level check.
* Rows are never hard-deleted (see ``purchasing_kernel.db.immutability``).
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from purchasing_kernel.db.base import TrackedBase, UUIDString
from purchasing_kernel.db.types import ZERO, extended_cost


class PurchaseOrderModel(TrackedBase):
    """
    A purchase order header.

    Maps to the ``PurchaseOrder`` DTO in ``purchasing_modules.orders.models``.
    """

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("po_number", name="uq_purchase_order_number"),
        UniqueConstraint("source_pr_id", name="uq_purchase_order_source_pr"),
        Index("idx_purchase_order_project", "project_id"),
        Index("idx_purchase_order_vendor", "vendor_id"),
        Index("idx_purchase_order_status", "status"),
    )

    po_number: Mapped[str] = mapped_column(String(32), nullable=False)
    project_id: Mapped[UUID] = mapped_column(ForeignKey("projects.id"), nullable=False)
    vendor_id: Mapped[UUID] = mapped_column(ForeignKey("vendors.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="draft")
    source_pr_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("purchase_requests.id"), nullable=True
    )

    ship_to_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ship_to_address1: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ship_to_address2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ship_to_city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    ship_to_state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    ship_to_zip: Mapped[str | None] = mapped_column(String(20), nullable=True)

    needed_by_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    freight_estimate: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    tax_estimate: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)
    issued_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    acknowledged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    lines: Mapped[list["PurchaseOrderLineModel"]] = relationship(
        "PurchaseOrderLineModel",
        back_populates="purchase_order",
        cascade="save-update, merge",
        order_by="PurchaseOrderLineModel.sort_order",
        lazy="selectin",
    )

    def apply_ship_to(self, ship_to) -> None:
        self.ship_to_name = ship_to.name
        self.ship_to_address1 = ship_to.address1
        self.ship_to_address2 = ship_to.address2
        self.ship_to_city = ship_to.city
        self.ship_to_state = ship_to.state
        self.ship_to_zip = ship_to.zip

    def to_dto(self):
        from purchasing_modules.orders.models import (
            PurchaseOrder,
            PurchaseOrderStatus,
            ShipToAddress,
        )

        return PurchaseOrder(
            id=self.id,
            po_number=self.po_number,
            project_id=self.project_id,
            vendor_id=self.vendor_id,
            status=PurchaseOrderStatus(self.status),
            source_pr_id=self.source_pr_id,
            ship_to=ShipToAddress(
                name=self.ship_to_name,
                address1=self.ship_to_address1,
                address2=self.ship_to_address2,
                city=self.ship_to_city,
                state=self.ship_to_state,
                zip=self.ship_to_zip,
            ),
            needed_by_date=self.needed_by_date,
            freight_estimate=self.freight_estimate,
            tax_estimate=self.tax_estimate,
            notes=self.notes,
            issued_at=self.issued_at,
            acknowledged_at=self.acknowledged_at,
            lines=tuple(line.to_dto() for line in self.lines),
        )

    def __repr__(self) -> str:
        return f"<PurchaseOrderModel {self.po_number} [{self.status}]>"


class PurchaseOrderLineModel(TrackedBase):
    """A line on a purchase order.  Soft-deleted via ``is_active``."""

    __tablename__ = "purchase_order_lines"

    __table_args__ = (
        Index("idx_purchase_order_line_po", "purchase_order_id"),
        Index("idx_purchase_order_line_source", "source_pr_line_id"),
    )

    purchase_order_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_orders.id"), nullable=False
    )
    description: Mapped[str] = mapped_column(String(1000), nullable=False)
    qty: Mapped[Decimal] = mapped_column(nullable=False)
    uom: Mapped[str | None] = mapped_column(String(20), nullable=True)
    unit_cost: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="open")
    source_pr_line_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("purchase_request_lines.id"), nullable=True
    )
    catalog_item_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    sov_item_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    timeline_task_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    purchase_order: Mapped["PurchaseOrderModel"] = relationship(
        "PurchaseOrderModel",
        back_populates="lines",
    )

    @property
    def extended_cost(self) -> Decimal:
        return extended_cost(self.qty, self.unit_cost)

    def to_dto(self):
        from purchasing_modules.orders.models import (
            PurchaseOrderLine,
            PurchaseOrderLineStatus,
        )

        return PurchaseOrderLine(
            id=self.id,
            purchase_order_id=self.purchase_order_id,
            description=self.description,
            qty=self.qty,
            unit_cost=self.unit_cost,
            uom=self.uom,
            status=PurchaseOrderLineStatus(self.status),
            source_pr_line_id=self.source_pr_line_id,
            catalog_item_id=self.catalog_item_id,
            sov_item_id=self.sov_item_id,
            timeline_task_id=self.timeline_task_id,
            sort_order=self.sort_order,
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return f"<PurchaseOrderLineModel {self.description!r} x{self.qty}>"
