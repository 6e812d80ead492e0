"""
SQLAlchemy ORM persistence models for receipts.

Invariants enforced
-------------------
* ``receipt_number`` is unique.
* ``received_at`` / ``received_by_id`` are stamped once, on the first
  transition out of pending, and never overwritten.
* When ``purchase_order_id`` is set, the PO belongs to the same project
  (checked by ReceiptService at creation).
* Rows are never hard-deleted (see ``purchasing_kernel.db.immutability``).
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from purchasing_kernel.db.base import TrackedBase, UUIDString


class ReceiptModel(TrackedBase):
    """A receipt header.  Maps to the ``Receipt`` DTO."""

    __tablename__ = "receipts"

    __table_args__ = (
        UniqueConstraint("receipt_number", name="uq_receipt_number"),
        Index("idx_receipt_project", "project_id"),
        Index("idx_receipt_po", "purchase_order_id"),
        Index("idx_receipt_status", "status"),
    )

    receipt_number: Mapped[str] = mapped_column(String(32), nullable=False)
    project_id: Mapped[UUID] = mapped_column(ForeignKey("projects.id"), nullable=False)
    vendor_id: Mapped[UUID | None] = mapped_column(ForeignKey("vendors.id"), nullable=True)
    purchase_order_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("purchase_orders.id"), nullable=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    received_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    received_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    lines: Mapped[list["ReceiptLineModel"]] = relationship(
        "ReceiptLineModel",
        back_populates="receipt",
        cascade="save-update, merge",
        order_by="ReceiptLineModel.created_at",
        lazy="selectin",
    )

    @property
    def unlinked_count(self) -> int:
        return sum(1 for line in self.lines if line.po_line_id is None)

    def to_dto(self):
        from purchasing_modules.receiving.models import Receipt, ReceiptStatus

        return Receipt(
            id=self.id,
            receipt_number=self.receipt_number,
            project_id=self.project_id,
            status=ReceiptStatus(self.status),
            vendor_id=self.vendor_id,
            purchase_order_id=self.purchase_order_id,
            received_at=self.received_at,
            received_by_id=self.received_by_id,
            location=self.location,
            notes=self.notes,
            lines=tuple(line.to_dto() for line in self.lines),
        )

    def __repr__(self) -> str:
        return f"<ReceiptModel {self.receipt_number} [{self.status}]>"


class ReceiptLineModel(TrackedBase):
    """A line on a receipt; ``po_line_id`` is nullable for blind receiving."""

    __tablename__ = "receipt_lines"

    __table_args__ = (
        Index("idx_receipt_line_receipt", "receipt_id"),
        Index("idx_receipt_line_po_line", "po_line_id"),
    )

    receipt_id: Mapped[UUID] = mapped_column(ForeignKey("receipts.id"), nullable=False)
    po_line_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("purchase_order_lines.id"), nullable=True
    )
    description: Mapped[str] = mapped_column(String(1000), nullable=False)
    qty_received: Mapped[Decimal] = mapped_column(nullable=False)
    uom: Mapped[str | None] = mapped_column(String(20), nullable=True)
    condition: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    receipt: Mapped["ReceiptModel"] = relationship(
        "ReceiptModel",
        back_populates="lines",
    )

    def to_dto(self):
        from purchasing_modules.receiving.models import ReceiptLine

        return ReceiptLine(
            id=self.id,
            receipt_id=self.receipt_id,
            description=self.description,
            qty_received=self.qty_received,
            po_line_id=self.po_line_id,
            uom=self.uom,
            condition=self.condition,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return f"<ReceiptLineModel {self.description!r} x{self.qty_received}>"
