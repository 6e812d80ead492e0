"""
Module: purchasing_kernel.models.status_log
Responsibility: ORM persistence for the append-only status log.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: UPDATE and DELETE are rejected by the ORM listeners in
      db/immutability.py.
    - seq is unique and monotonically increasing, allocated by
      SequenceService, so entries written within the same clock instant
      still have a stable order.
    - StatusLogService is the only writer.

Each row records one logical change: a status transition (from/to set) or a
non-status edit (from/to null) with a message and structured metadata.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, BigInteger, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from purchasing_kernel.db.base import Base, UUIDString


@dataclass(frozen=True)
class StatusLog:
    id: UUID
    seq: int
    entity_type: str
    entity_id: UUID
    project_id: UUID | None
    from_status: str | None
    to_status: str | None
    message: str | None
    actor_id: UUID
    created_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


class StatusLogEntry(Base):
    """One immutable audit entry."""

    __tablename__ = "status_logs"
    __table_args__ = (
        Index("idx_status_log_entity", "entity_type", "entity_id"),
        Index("idx_status_log_project", "project_id"),
        Index("idx_status_log_created", "created_at"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)

    # "purchase_request", "purchase_order", "receipt", "vendor", ...
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)

    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    project_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    from_status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    to_status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    message: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    # "metadata" is reserved on declarative classes
    details: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)

    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def to_dto(self) -> StatusLog:
        return StatusLog(
            id=self.id,
            seq=self.seq,
            entity_type=self.entity_type,
            entity_id=self.entity_id,
            project_id=self.project_id,
            from_status=self.from_status,
            to_status=self.to_status,
            message=self.message,
            actor_id=self.actor_id,
            created_at=self.created_at,
            metadata=dict(self.details or {}),
        )

    def __repr__(self) -> str:
        return (
            f"<StatusLogEntry #{self.seq} {self.entity_type}:{self.entity_id} "
            f"{self.from_status}->{self.to_status}>"
        )
