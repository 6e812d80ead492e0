"""
Module: purchasing_kernel.models.vendor
Responsibility: ORM persistence for vendors (suppliers) that POs and
    receipts reference.

Vendors are never deleted; ``is_active = False`` blocks new purchase orders
and PR conversions against them while keeping history intact.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from purchasing_kernel.db.base import TrackedBase


@dataclass(frozen=True)
class Vendor:
    id: UUID
    name: str
    trade: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    payment_terms: str | None = None
    notes: str | None = None
    is_active: bool = True


# Editable fields, in the order they are compared for change logging
VENDOR_FIELDS: tuple[str, ...] = (
    "name",
    "trade",
    "phone",
    "email",
    "website",
    "address_line1",
    "address_line2",
    "city",
    "state",
    "postal_code",
    "payment_terms",
    "notes",
    "is_active",
)


class VendorModel(TrackedBase):

    __tablename__ = "vendors"
    __table_args__ = (Index("idx_vendor_name", "name"),)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    trade: Mapped[str | None] = mapped_column(String(100), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    website: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address_line1: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address_line2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    payment_terms: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self) -> Vendor:
        return Vendor(id=self.id, **{f: getattr(self, f) for f in VENDOR_FIELDS})

    def __repr__(self) -> str:
        return f"<VendorModel {self.name}>"
