"""
Module: purchasing_kernel.models.actor
Responsibility: ORM persistence for actor profiles (user identity + role).
Architecture position: Kernel > Models.  May import from db/ and domain/.

Every mutating operation takes an explicit actor id and loads the profile
to read its role.  Unknown ids are rejected with ActorNotFoundError before
anything is written.  ``role`` is stored as the Role string value and only
changes through ActorService.set_user_role.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from purchasing_kernel.db.base import Base
from purchasing_kernel.domain.roles import Role


@dataclass(frozen=True)
class Actor:
    id: UUID
    display_name: str | None
    email: str | None
    role: Role
    is_active: bool


class ActorModel(Base):
    """A user profile: opaque id, display fields, one role."""

    __tablename__ = "profiles"

    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=Role.USER.value,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    @property
    def role_enum(self) -> Role:
        return Role.parse(self.role)

    def to_dto(self) -> Actor:
        return Actor(
            id=self.id,
            display_name=self.display_name,
            email=self.email,
            role=self.role_enum,
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return f"<ActorModel {self.id} [{self.role}]>"
