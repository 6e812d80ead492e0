"""
BaseService -- common constructor and lookup helpers for every service.

Responsibility:
    Holds the Session and Clock, and provides the row-loading helpers that
    every lifecycle operation runs before it mutates anything:

    * ``_require_actor``  -- actor must exist (ActorNotFoundError) and be active.
    * ``_lock``           -- load a row ``FOR UPDATE``; NotFound subclass if absent.
    * ``_require_project`` / ``_require_vendor``.
    * ``_authorize``      -- evaluate a pure gate predicate, raise
      AuthorizationError when it fails.

Transaction boundaries:
    Public lifecycle operations own one unit of work each (commit on
    success, rollback and re-raise on failure).  Helpers here only read
    and flush.
"""

from abc import ABC
from collections.abc import Callable
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from purchasing_kernel.domain.clock import Clock, SystemClock
from purchasing_kernel.exceptions import (
    ActorNotFoundError,
    AuthorizationError,
    NotFoundError,
    ProjectNotFoundError,
    ValidationError,
    VendorNotFoundError,
)
from purchasing_kernel.logging_config import get_logger
from purchasing_kernel.models.actor import ActorModel
from purchasing_kernel.models.project import ProjectModel
from purchasing_kernel.models.vendor import VendorModel

logger = get_logger("services.base")


def apply_changes(row, values: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """
    Set attributes on ``row`` and return the ones that actually changed.

    Result shape: ``{field: {"old": old_value, "new": new_value}}``.
    Decimal values compare numerically, so 5 and 5.000 are not a change.
    """
    changed: dict[str, dict[str, Any]] = {}
    for name, new in values.items():
        old = getattr(row, name)
        if old != new:
            changed[name] = {"old": old, "new": new}
            setattr(row, name, new)
    return changed


class BaseService(ABC):
    """
    Abstract base class for purchasing services.

    Args:
        session: SQLAlchemy session for database operations.
        clock: Time source; defaults to SystemClock.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    def _lock(self, model, entity_id: UUID, not_found: type[NotFoundError]):
        """Load ``model`` by id with a row lock, refreshing any cached state."""
        row = self.session.execute(
            select(model)
            .where(model.id == entity_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if row is None:
            raise not_found(str(entity_id))
        return row

    def _require_actor(self, actor_id: UUID) -> ActorModel:
        if actor_id is None:
            raise ValidationError("actor_id", "is required")
        actor = self.session.get(ActorModel, actor_id)
        if actor is None:
            raise ActorNotFoundError(str(actor_id))
        if not actor.is_active:
            raise AuthorizationError(actor_id, actor.role, "act while deactivated")
        return actor

    def _require_project(self, project_id: UUID) -> ProjectModel:
        if project_id is None:
            raise ValidationError("project_id", "is required")
        project = self.session.get(ProjectModel, project_id)
        if project is None:
            raise ProjectNotFoundError(str(project_id))
        return project

    def _require_vendor(self, vendor_id: UUID, *, active: bool = True) -> VendorModel:
        if vendor_id is None:
            raise ValidationError("vendor_id", "is required")
        vendor = self.session.get(VendorModel, vendor_id)
        if vendor is None:
            raise VendorNotFoundError(str(vendor_id))
        if active and not vendor.is_active:
            raise ValidationError("vendor_id", f"vendor {vendor.name} is inactive")
        return vendor

    def _authorize(
        self,
        actor: ActorModel,
        predicate: Callable[..., bool],
        operation: str,
        *args,
        amount: Decimal | None = None,
    ) -> None:
        """Raise AuthorizationError unless ``predicate(role, *args)`` holds."""
        role = actor.role_enum
        if not predicate(role, *args):
            logger.warning(
                "authorization_denied",
                extra={
                    "actor_id": str(actor.id),
                    "role": role.value,
                    "operation": operation,
                    "amount": str(amount) if amount is not None else None,
                },
            )
            raise AuthorizationError(actor.id, role.value, operation, amount=amount)
