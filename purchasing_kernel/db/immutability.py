"""
ORM-level append-only enforcement.

Two rules are enforced with SQLAlchemy mapper events:

    1. StatusLogEntry rows are never updated or deleted once inserted.
    2. Purchase requests, purchase orders, receipts and their lines are never
       hard-deleted.  Lines are soft-deactivated via ``is_active`` and
       documents move to a terminal status instead.

A violation raises ImmutabilityViolationError inside the flush, so the
surrounding unit of work rolls back.

register_immutability_listeners() is called by init_engine_from_url();
unregister_immutability_listeners() exists for tests that need to
deliberately bypass the rules.
"""

from sqlalchemy import event

from purchasing_kernel.exceptions import ImmutabilityViolationError
from purchasing_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _blocked(target, operation: str, reason: str) -> None:
    entity_type = type(target).__name__
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_status_log_update(mapper, connection, target):
    _blocked(target, "UPDATE", "Status log entries are append-only")


def _check_status_log_delete(mapper, connection, target):
    _blocked(target, "DELETE", "Status log entries cannot be deleted")


def _check_document_delete(mapper, connection, target):
    _blocked(
        target,
        "DELETE",
        "Purchasing documents and lines are never hard-deleted; "
        "deactivate or change status instead",
    )


def _delete_protected_models() -> list[type]:
    from purchasing_modules.orders.orm import PurchaseOrderLineModel, PurchaseOrderModel
    from purchasing_modules.receiving.orm import ReceiptLineModel, ReceiptModel
    from purchasing_modules.requests.orm import (
        PurchaseRequestLineModel,
        PurchaseRequestModel,
    )

    return [
        PurchaseRequestModel,
        PurchaseRequestLineModel,
        PurchaseOrderModel,
        PurchaseOrderLineModel,
        ReceiptModel,
        ReceiptLineModel,
    ]


def register_immutability_listeners() -> None:
    """Register all append-only listeners (safe to call repeatedly)."""
    from purchasing_kernel.models.status_log import StatusLogEntry

    _safe_add_listener(StatusLogEntry, "before_update", _check_status_log_update)
    _safe_add_listener(StatusLogEntry, "before_delete", _check_status_log_delete)

    for model in _delete_protected_models():
        _safe_add_listener(model, "before_delete", _check_document_delete)

    logger.debug("immutability_listeners_registered")


def _safe_add_listener(target, event_name, listener_fn):
    if not event.contains(target, event_name, listener_fn):
        event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners() -> None:
    """
    Remove the append-only listeners.

    WARNING: Only use this in tests that intentionally violate the rules.
    """
    from purchasing_kernel.models.status_log import StatusLogEntry

    _safe_remove_listener(StatusLogEntry, "before_update", _check_status_log_update)
    _safe_remove_listener(StatusLogEntry, "before_delete", _check_status_log_delete)

    for model in _delete_protected_models():
        _safe_remove_listener(model, "before_delete", _check_document_delete)
