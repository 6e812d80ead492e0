"""
SQLAlchemy ORM persistence models for purchase requests.

Invariants enforced
-------------------
* ``pr_number`` is unique and assigned once at creation.
* ``approved_by_id`` and ``approved_at`` are set together and cleared
  together (checked in ``assert_approval_consistent``; the service is
  the only writer).
* Quantities and costs are ``Decimal`` (Numeric(38,9)); never float.
* Catalog, SOV and timeline references are bare UUIDs with no foreign key:
  they live in the external project spine.
* Rows are never hard-deleted (see ``purchasing_kernel.db.immutability``).
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from purchasing_kernel.db.base import TrackedBase, UUIDString
from purchasing_kernel.db.types import ZERO, extended_cost
from purchasing_kernel.exceptions import InconsistentApprovalError


class PurchaseRequestModel(TrackedBase):
    """
    A purchase request header.

    Maps to the ``PurchaseRequest`` DTO in ``purchasing_modules.requests.models``.
    """

    __tablename__ = "purchase_requests"

    __table_args__ = (
        UniqueConstraint("pr_number", name="uq_purchase_request_number"),
        Index("idx_purchase_request_project", "project_id"),
        Index("idx_purchase_request_status", "status"),
    )

    pr_number: Mapped[str] = mapped_column(String(32), nullable=False)
    project_id: Mapped[UUID] = mapped_column(ForeignKey("projects.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    requested_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    approved_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    needed_by_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    priority: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    # Set by conversion; the unique link lives on purchase_orders.source_pr_id
    purchase_order_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    converted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    converted_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    lines: Mapped[list["PurchaseRequestLineModel"]] = relationship(
        "PurchaseRequestLineModel",
        back_populates="purchase_request",
        cascade="save-update, merge",
        order_by="PurchaseRequestLineModel.sort_order",
        lazy="selectin",
    )

    @property
    def active_lines(self) -> list["PurchaseRequestLineModel"]:
        return [line for line in self.lines if line.is_active]

    @property
    def total(self) -> Decimal:
        return sum((line.extended_cost for line in self.active_lines), ZERO)

    def assert_approval_consistent(self) -> None:
        approved = self.status == "approved"
        if approved != (self.approved_by_id is not None) or approved != (
            self.approved_at is not None
        ):
            raise InconsistentApprovalError(self.pr_number, self.status)

    def to_dto(self):
        from purchasing_modules.requests.models import (
            PurchaseRequest,
            PurchaseRequestStatus,
        )

        return PurchaseRequest(
            id=self.id,
            pr_number=self.pr_number,
            project_id=self.project_id,
            status=PurchaseRequestStatus(self.status),
            requested_by_id=self.requested_by_id,
            approved_by_id=self.approved_by_id,
            approved_at=self.approved_at,
            needed_by_date=self.needed_by_date,
            priority=self.priority,
            notes=self.notes,
            purchase_order_id=self.purchase_order_id,
            converted_at=self.converted_at,
            converted_by_id=self.converted_by_id,
            lines=tuple(line.to_dto() for line in self.lines),
        )

    def __repr__(self) -> str:
        return f"<PurchaseRequestModel {self.pr_number} [{self.status}]>"


class PurchaseRequestLineModel(TrackedBase):
    """
    A line on a purchase request.

    Maps to the ``PurchaseRequestLine`` DTO.  Soft-deleted via ``is_active``.
    """

    __tablename__ = "purchase_request_lines"

    __table_args__ = (
        Index("idx_purchase_request_line_pr", "purchase_request_id"),
    )

    purchase_request_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_requests.id"), nullable=False
    )
    description: Mapped[str] = mapped_column(String(1000), nullable=False)
    qty: Mapped[Decimal] = mapped_column(nullable=False)
    uom: Mapped[str | None] = mapped_column(String(20), nullable=True)
    est_unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    catalog_item_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    sov_item_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    timeline_task_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # Back-link set when the PR is converted
    po_line_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    purchase_request: Mapped["PurchaseRequestModel"] = relationship(
        "PurchaseRequestModel",
        back_populates="lines",
    )

    @property
    def extended_cost(self) -> Decimal:
        return extended_cost(self.qty, self.est_unit_cost)

    def to_dto(self):
        from purchasing_modules.requests.models import PurchaseRequestLine

        return PurchaseRequestLine(
            id=self.id,
            purchase_request_id=self.purchase_request_id,
            description=self.description,
            qty=self.qty,
            uom=self.uom,
            est_unit_cost=self.est_unit_cost,
            catalog_item_id=self.catalog_item_id,
            sov_item_id=self.sov_item_id,
            timeline_task_id=self.timeline_task_id,
            sort_order=self.sort_order,
            is_active=self.is_active,
            po_line_id=self.po_line_id,
        )

    def __repr__(self) -> str:
        return f"<PurchaseRequestLineModel {self.description!r} x{self.qty}>"
