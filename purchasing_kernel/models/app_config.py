"""
Module: purchasing_kernel.models.app_config
Responsibility: Key/value rows for runtime-mutable configuration.

The only key the workflow engine reads is PR_APPROVAL_THRESHOLD.  Values
are stored as strings and parsed by ConfigService.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from purchasing_kernel.db.base import Base, UUIDString

PR_APPROVAL_THRESHOLD_KEY = "PR_APPROVAL_THRESHOLD"


class AppConfigEntry(Base):

    __tablename__ = "app_config"

    key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    value: Mapped[str] = mapped_column(String(4000), nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    updated_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def __repr__(self) -> str:
        return f"<AppConfigEntry {self.key}={self.value}>"
