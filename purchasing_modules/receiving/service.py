"""
Receipt Service.

Operations
----------
* ``create``         -- pending receipt, optionally against a PO of the same
  project; vendor defaults to the PO's vendor.
* ``upsert_line``    -- add/edit lines unless cancelled; PO line link is
  optional (blind receiving) and may be set later.
* ``mark_received``  -- pending/received -> received when lines are still
  unlinked, -> reconciled when none are.  Stamps received_at/received_by
  on the first transition only.
* ``reconcile``      -- received -> reconciled; fails naming the number of
  unlinked lines.
* ``cancel``         -- pending/received -> cancelled.

Authorization: receiving tier for create, lines, mark_received and cancel;
the stricter reconciliation tier for reconcile.
"""

from typing import Any
from uuid import UUID

from purchasing_kernel.domain.authorization import can_receive, can_reconcile
from purchasing_kernel.domain.numbering import RECEIPT
from purchasing_kernel.domain.values import (
    UNSET,
    clean_text,
    optional_uuid,
    require_non_negative,
    require_text,
)
from purchasing_kernel.exceptions import (
    InvalidStateError,
    LineNotFoundError,
    PurchaseOrderNotFoundError,
    ReceiptNotFoundError,
    UnlinkedReceiptLinesError,
    ValidationError,
)
from purchasing_kernel.logging_config import LogContext, get_logger
from purchasing_kernel.services.base import BaseService, apply_changes
from purchasing_kernel.services.sequence_service import SequenceService
from purchasing_kernel.services.status_log_service import StatusLogService
from purchasing_modules.orders.orm import PurchaseOrderLineModel, PurchaseOrderModel
from purchasing_modules.receiving.models import Receipt, ReceiptLine, ReceiptStatus
from purchasing_modules.receiving.orm import ReceiptLineModel, ReceiptModel
from purchasing_modules.receiving.workflows import RECEIPT_WORKFLOW

logger = get_logger("modules.receiving.service")

ENTITY_TYPE = "receipt"


class ReceiptService(BaseService):
    """
    Receipt lifecycle.

    Transaction boundary: public methods commit on success and roll back on
    failure.
    """

    def get(self, receipt_id: UUID) -> Receipt:
        receipt = self.session.get(ReceiptModel, receipt_id)
        if receipt is None:
            raise ReceiptNotFoundError(str(receipt_id))
        return receipt.to_dto()

    def create(
        self,
        project_id: UUID,
        actor_id: UUID,
        *,
        vendor_id: UUID | None = None,
        purchase_order_id: UUID | None = None,
        location: str | None = None,
        notes: str | None = None,
    ) -> Receipt:
        with LogContext.bind(actor_id=actor_id, project_id=project_id):
            try:
                actor = self._require_actor(actor_id)
                self._require_project(project_id)
                if vendor_id is not None:
                    self._require_vendor(vendor_id, active=False)

                if purchase_order_id is not None:
                    po = self.session.get(PurchaseOrderModel, purchase_order_id)
                    if po is None:
                        raise PurchaseOrderNotFoundError(str(purchase_order_id))
                    if po.project_id != project_id:
                        raise ValidationError(
                            "purchase_order_id",
                            "receipt project must match the purchase order project",
                        )
                    if vendor_id is None:
                        vendor_id = po.vendor_id
                    elif vendor_id != po.vendor_id:
                        raise ValidationError(
                            "vendor_id", "receipt vendor must match the purchase order vendor"
                        )

                self._authorize(actor, can_receive, "create receipts")

                receipt = ReceiptModel(
                    receipt_number=SequenceService(self.session).next_document_number(RECEIPT),
                    project_id=project_id,
                    vendor_id=vendor_id,
                    purchase_order_id=purchase_order_id,
                    status=RECEIPT_WORKFLOW.initial_state,
                    location=clean_text(location),
                    notes=clean_text(notes),
                    created_by_id=actor.id,
                    updated_by_id=actor.id,
                )
                self.session.add(receipt)
                self.session.flush()

                self._log(receipt, actor, None, receipt.status, "Receipt created", {
                    "receipt_number": receipt.receipt_number,
                    "purchase_order_id": purchase_order_id,
                    "vendor_id": vendor_id,
                })
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info(
            "receipt_created",
            extra={
                "receipt_id": str(receipt.id),
                "receipt_number": receipt.receipt_number,
                "purchase_order_id": str(purchase_order_id) if purchase_order_id else None,
            },
        )
        return receipt.to_dto()

    def upsert_line(
        self,
        receipt_id: UUID,
        actor_id: UUID,
        line_id: UUID | None = None,
        *,
        po_line_id: Any = UNSET,
        description: Any = UNSET,
        qty_received: Any = UNSET,
        uom: Any = UNSET,
        condition: Any = UNSET,
        notes: Any = UNSET,
    ) -> ReceiptLine:
        with LogContext.bind(actor_id=actor_id):
            try:
                actor = self._require_actor(actor_id)
                receipt = self._lock(ReceiptModel, receipt_id, ReceiptNotFoundError)
                if receipt.status == ReceiptStatus.CANCELLED.value:
                    raise InvalidStateError(ENTITY_TYPE, receipt.id, receipt.status, "edit lines of")
                self._authorize(actor, can_receive, "edit receipt lines")

                values: dict[str, Any] = {}
                if description is not UNSET or line_id is None:
                    values["description"] = require_text(
                        "description", None if description is UNSET else description
                    )
                if qty_received is not UNSET or line_id is None:
                    values["qty_received"] = require_non_negative(
                        "qty_received", None if qty_received is UNSET else qty_received
                    )
                if po_line_id is not UNSET:
                    if po_line_id is None and receipt.status == ReceiptStatus.RECONCILED.value:
                        raise InvalidStateError(
                            ENTITY_TYPE, receipt.id, receipt.status, "unlink lines of"
                        )
                    values["po_line_id"] = self._check_po_line(
                        receipt, optional_uuid("po_line_id", po_line_id)
                    )
                for name, raw in (("uom", uom), ("condition", condition), ("notes", notes)):
                    if raw is not UNSET:
                        values[name] = clean_text(raw)

                if line_id is None:
                    line = ReceiptLineModel(
                        receipt_id=receipt.id,
                        created_by_id=actor.id,
                        **values,
                    )
                    receipt.lines.append(line)
                    changed: dict[str, dict] = {}
                    message = "Receipt line created"
                else:
                    line = self._find_line(receipt, line_id)
                    changed = apply_changes(line, values)
                    line.updated_by_id = actor.id
                    message = "Receipt line updated"
                receipt.updated_by_id = actor.id
                self.session.flush()

                self._log(receipt, actor, None, None, message, {
                    "receipt_number": receipt.receipt_number,
                    "line_id": line.id,
                    "po_line_id": line.po_line_id,
                    "qty_received": line.qty_received,
                    "changed": changed,
                })
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info(
            "receipt_line_upserted",
            extra={
                "receipt_id": str(receipt_id),
                "line_id": str(line.id),
                "linked": line.po_line_id is not None,
            },
        )
        return line.to_dto()

    def _find_line(self, receipt: ReceiptModel, line_id: UUID) -> ReceiptLineModel:
        for line in receipt.lines:
            if line.id == line_id:
                return line
        raise LineNotFoundError(str(line_id))

    def _check_po_line(self, receipt: ReceiptModel, po_line_id: UUID | None) -> UUID | None:
        """PO line must exist, share the receipt's project, and its PO if set."""
        if po_line_id is None:
            return None
        po_line = self.session.get(PurchaseOrderLineModel, po_line_id)
        if po_line is None:
            raise LineNotFoundError(str(po_line_id))
        po = po_line.purchase_order
        if po.project_id != receipt.project_id:
            raise ValidationError("po_line_id", "PO line belongs to a different project")
        if receipt.purchase_order_id is not None and po.id != receipt.purchase_order_id:
            raise ValidationError("po_line_id", "PO line is not on the receipt's purchase order")
        return po_line.id

    def mark_received(
        self,
        receipt_id: UUID,
        actor_id: UUID,
        message: str | None = None,
    ) -> Receipt:
        with LogContext.bind(actor_id=actor_id):
            try:
                actor = self._require_actor(actor_id)
                receipt = self._lock(ReceiptModel, receipt_id, ReceiptNotFoundError)
                self._authorize(actor, can_receive, "mark receipts received")

                unlinked = receipt.unlinked_count
                target = ReceiptStatus.RECEIVED if unlinked else ReceiptStatus.RECONCILED
                old_status = receipt.status
                if not RECEIPT_WORKFLOW.can_transition(old_status, target.value, "mark_received"):
                    raise InvalidStateError(ENTITY_TYPE, receipt.id, old_status, "mark received")

                receipt.status = target.value
                if receipt.received_at is None:
                    receipt.received_at = self.clock.now_utc()
                    receipt.received_by_id = actor.id
                receipt.updated_by_id = actor.id
                self.session.flush()

                self._log(receipt, actor, old_status, receipt.status, message or "Receipt marked received", {
                    "receipt_number": receipt.receipt_number,
                    "unlinked_lines": unlinked,
                })
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info(
            "receipt_marked_received",
            extra={
                "receipt_id": str(receipt_id),
                "from_status": old_status,
                "to_status": target.value,
                "unlinked_lines": unlinked,
            },
        )
        return receipt.to_dto()

    def reconcile(
        self,
        receipt_id: UUID,
        actor_id: UUID,
        message: str | None = None,
    ) -> Receipt:
        with LogContext.bind(actor_id=actor_id):
            try:
                actor = self._require_actor(actor_id)
                receipt = self._lock(ReceiptModel, receipt_id, ReceiptNotFoundError)
                self._authorize(actor, can_reconcile, "reconcile receipts")

                old_status = receipt.status
                if not RECEIPT_WORKFLOW.can_transition(
                    old_status, ReceiptStatus.RECONCILED.value, "reconcile"
                ):
                    raise InvalidStateError(ENTITY_TYPE, receipt.id, old_status, "reconcile")
                unlinked = receipt.unlinked_count
                if unlinked:
                    raise UnlinkedReceiptLinesError(receipt.id, unlinked)

                receipt.status = ReceiptStatus.RECONCILED.value
                receipt.updated_by_id = actor.id
                self.session.flush()

                self._log(receipt, actor, old_status, receipt.status, message or "Receipt reconciled", {
                    "receipt_number": receipt.receipt_number,
                })
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info(
            "receipt_reconciled",
            extra={"receipt_id": str(receipt_id), "from_status": old_status},
        )
        return receipt.to_dto()

    def cancel(
        self,
        receipt_id: UUID,
        actor_id: UUID,
        message: str | None = None,
    ) -> Receipt:
        with LogContext.bind(actor_id=actor_id):
            try:
                actor = self._require_actor(actor_id)
                receipt = self._lock(ReceiptModel, receipt_id, ReceiptNotFoundError)
                self._authorize(actor, can_receive, "cancel receipts")

                old_status = receipt.status
                if not RECEIPT_WORKFLOW.can_transition(
                    old_status, ReceiptStatus.CANCELLED.value, "cancel"
                ):
                    raise InvalidStateError(ENTITY_TYPE, receipt.id, old_status, "cancel")

                receipt.status = ReceiptStatus.CANCELLED.value
                receipt.updated_by_id = actor.id
                self.session.flush()

                self._log(receipt, actor, old_status, receipt.status, message or "Receipt cancelled", {
                    "receipt_number": receipt.receipt_number,
                })
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info(
            "receipt_cancelled",
            extra={"receipt_id": str(receipt_id), "from_status": old_status},
        )
        return receipt.to_dto()

    def _log(self, receipt, actor, from_status, to_status, message, metadata) -> None:
        StatusLogService(self.session, self.clock).record(
            ENTITY_TYPE,
            receipt.id,
            actor.id,
            project_id=receipt.project_id,
            from_status=from_status,
            to_status=to_status,
            message=message,
            metadata=metadata,
        )
