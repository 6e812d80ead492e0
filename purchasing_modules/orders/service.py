"""
Purchase Order Service.

Operations
----------
* ``create``        -- draft PO for an active vendor on an existing project.
* ``upsert_line``   -- add or edit a line while the PO is not closed/cancelled.
* ``set_status``    -- move along PURCHASE_ORDER_WORKFLOW; stamps issued_at /
  acknowledged_at the first time those states are entered.
* ``get``           -- DTO with lines.

Every public operation is one unit of work: committed on success, rolled
back and re-raised on any failure.  ``create_from_request`` is the
flush-only helper PurchaseRequestService.convert_to_po runs inside its own
unit of work.

Authorization: create, line edits and every status change need the
PO-issuance tier.
"""

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from purchasing_kernel.db.types import ZERO
from purchasing_kernel.domain.authorization import can_issue_po
from purchasing_kernel.domain.numbering import PURCHASE_ORDER
from purchasing_kernel.domain.values import (
    UNSET,
    clean_text,
    optional_date,
    optional_uuid,
    require_int,
    require_non_negative,
    require_text,
)
from purchasing_kernel.exceptions import (
    InvalidStateError,
    InvalidTransitionError,
    LineNotFoundError,
    PurchaseOrderNotFoundError,
    ValidationError,
)
from purchasing_kernel.logging_config import LogContext, get_logger
from purchasing_kernel.models.actor import ActorModel
from purchasing_kernel.services.base import BaseService, apply_changes
from purchasing_kernel.services.sequence_service import SequenceService
from purchasing_kernel.services.status_log_service import StatusLogService
from purchasing_modules.orders.models import (
    LOCKED_STATUSES,
    PurchaseOrder,
    PurchaseOrderLine,
    PurchaseOrderLineStatus,
    PurchaseOrderStatus,
    ShipToAddress,
)
from purchasing_modules.orders.orm import PurchaseOrderLineModel, PurchaseOrderModel
from purchasing_modules.orders.workflows import PURCHASE_ORDER_WORKFLOW

logger = get_logger("modules.orders.service")

ENTITY_TYPE = "purchase_order"


def _parse_enum(enum_cls, field: str, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise ValidationError(field, f"unknown value '{value}'") from exc


class PurchaseOrderService(BaseService):
    """
    Purchase order lifecycle.

    Transaction boundary: public methods commit on success and roll back on
    failure.  Clock is injectable for deterministic testing.
    """

    def get(self, po_id: UUID) -> PurchaseOrder:
        po = self.session.get(PurchaseOrderModel, po_id)
        if po is None:
            raise PurchaseOrderNotFoundError(str(po_id))
        return po.to_dto()

    # =========================================================================
    # Create
    # =========================================================================

    def create(
        self,
        project_id: UUID,
        vendor_id: UUID,
        actor_id: UUID,
        *,
        ship_to: ShipToAddress | None = None,
        needed_by_date: date | None = None,
        freight_estimate: Decimal | None = None,
        tax_estimate: Decimal | None = None,
        notes: str | None = None,
    ) -> PurchaseOrder:
        with LogContext.bind(actor_id=actor_id, project_id=project_id):
            try:
                actor = self._require_actor(actor_id)
                self._require_project(project_id)
                self._require_vendor(vendor_id)
                self._authorize(actor, can_issue_po, "create purchase orders")

                po = self._insert_header(
                    project_id,
                    vendor_id,
                    actor,
                    ship_to=ship_to,
                    needed_by_date=needed_by_date,
                    freight_estimate=freight_estimate,
                    tax_estimate=tax_estimate,
                    notes=notes,
                )
                self._log(po, actor, None, po.status, "PO created", {
                    "po_number": po.po_number,
                    "vendor_id": po.vendor_id,
                })
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info(
            "purchase_order_created",
            extra={"po_id": str(po.id), "po_number": po.po_number},
        )
        return po.to_dto()

    def create_from_request(
        self,
        pr,
        vendor_id: UUID,
        actor: ActorModel,
        *,
        ship_to: ShipToAddress | None = None,
        notes: str | None = None,
    ) -> PurchaseOrderModel:
        """
        Build a draft PO from an approved purchase request (flush only).

        One PO line per active PR line: description, qty, uom and estimated
        unit cost (missing cost becomes 0) are copied, along with the
        catalog/SOV/timeline links, and each PO line points back at its
        source PR line.  Writes the "PO created from PR" log entry.
        """
        po = self._insert_header(
            pr.project_id,
            vendor_id,
            actor,
            ship_to=ship_to,
            needed_by_date=pr.needed_by_date,
            notes=notes if notes is not None else pr.notes,
            source_pr_id=pr.id,
        )
        for pr_line in pr.active_lines:
            po.lines.append(
                PurchaseOrderLineModel(
                    purchase_order_id=po.id,
                    description=pr_line.description,
                    qty=pr_line.qty,
                    uom=pr_line.uom,
                    unit_cost=pr_line.est_unit_cost if pr_line.est_unit_cost is not None else ZERO,
                    status=PurchaseOrderLineStatus.OPEN.value,
                    source_pr_line_id=pr_line.id,
                    catalog_item_id=pr_line.catalog_item_id,
                    sov_item_id=pr_line.sov_item_id,
                    timeline_task_id=pr_line.timeline_task_id,
                    sort_order=pr_line.sort_order,
                    is_active=True,
                    created_by_id=actor.id,
                )
            )
        self.session.flush()

        self._log(po, actor, None, po.status, "PO created from PR", {
            "po_number": po.po_number,
            "vendor_id": po.vendor_id,
            "source_pr_id": pr.id,
            "source_pr_number": pr.pr_number,
            "line_count": len(po.lines),
        })
        return po

    def _insert_header(
        self,
        project_id: UUID,
        vendor_id: UUID,
        actor: ActorModel,
        *,
        ship_to: ShipToAddress | None = None,
        needed_by_date: date | None = None,
        freight_estimate: Decimal | None = None,
        tax_estimate: Decimal | None = None,
        notes: str | None = None,
        source_pr_id: UUID | None = None,
    ) -> PurchaseOrderModel:
        freight = require_non_negative("freight_estimate", freight_estimate, allow_none=True)
        tax = require_non_negative("tax_estimate", tax_estimate, allow_none=True)

        po = PurchaseOrderModel(
            po_number=SequenceService(self.session).next_document_number(PURCHASE_ORDER),
            project_id=project_id,
            vendor_id=vendor_id,
            status=PURCHASE_ORDER_WORKFLOW.initial_state,
            source_pr_id=source_pr_id,
            needed_by_date=optional_date("needed_by_date", needed_by_date),
            freight_estimate=freight if freight is not None else ZERO,
            tax_estimate=tax if tax is not None else ZERO,
            notes=clean_text(notes),
            created_by_id=actor.id,
            updated_by_id=actor.id,
        )
        po.apply_ship_to(ship_to or ShipToAddress())
        self.session.add(po)
        self.session.flush()
        return po

    # =========================================================================
    # Lines
    # =========================================================================

    def upsert_line(
        self,
        po_id: UUID,
        actor_id: UUID,
        line_id: UUID | None = None,
        *,
        description: Any = UNSET,
        qty: Any = UNSET,
        uom: Any = UNSET,
        unit_cost: Any = UNSET,
        status: Any = UNSET,
        source_pr_line_id: Any = UNSET,
        catalog_item_id: Any = UNSET,
        sov_item_id: Any = UNSET,
        timeline_task_id: Any = UNSET,
        sort_order: Any = UNSET,
        is_active: Any = UNSET,
    ) -> PurchaseOrderLine:
        """
        Create a line (``line_id`` None) or update one.

        On create, description and qty are required and unit_cost defaults
        to 0.  On update, omitted fields keep their stored value.
        """
        with LogContext.bind(actor_id=actor_id):
            try:
                actor = self._require_actor(actor_id)
                po = self._lock(PurchaseOrderModel, po_id, PurchaseOrderNotFoundError)
                if PurchaseOrderStatus(po.status) in LOCKED_STATUSES:
                    raise InvalidStateError(ENTITY_TYPE, po.id, po.status, "edit lines of")
                self._authorize(actor, can_issue_po, "edit purchase order lines")

                values: dict[str, Any] = {}
                if description is not UNSET or line_id is None:
                    values["description"] = require_text(
                        "description", None if description is UNSET else description
                    )
                if qty is not UNSET or line_id is None:
                    values["qty"] = require_non_negative("qty", None if qty is UNSET else qty)
                if unit_cost is not UNSET or line_id is None:
                    values["unit_cost"] = require_non_negative(
                        "unit_cost", ZERO if unit_cost is UNSET else unit_cost
                    )
                if uom is not UNSET:
                    values["uom"] = clean_text(uom)
                if status is not UNSET:
                    values["status"] = _parse_enum(
                        PurchaseOrderLineStatus, "status", status
                    ).value
                if source_pr_line_id is not UNSET:
                    values["source_pr_line_id"] = self._check_pr_line(
                        po, optional_uuid("source_pr_line_id", source_pr_line_id)
                    )
                for name, raw in (
                    ("catalog_item_id", catalog_item_id),
                    ("sov_item_id", sov_item_id),
                    ("timeline_task_id", timeline_task_id),
                ):
                    if raw is not UNSET:
                        values[name] = optional_uuid(name, raw)
                if sort_order is not UNSET:
                    values["sort_order"] = require_int("sort_order", sort_order)
                if is_active is not UNSET:
                    values["is_active"] = bool(is_active)

                if line_id is None:
                    defaults = {
                        "status": PurchaseOrderLineStatus.OPEN.value,
                        "sort_order": 0,
                        "is_active": True,
                    }
                    line = PurchaseOrderLineModel(
                        purchase_order_id=po.id,
                        created_by_id=actor.id,
                        **{**defaults, **values},
                    )
                    po.lines.append(line)
                    changed: dict[str, dict] = {}
                    message = "PO line created"
                else:
                    line = self._find_line(po, line_id)
                    changed = apply_changes(line, values)
                    line.updated_by_id = actor.id
                    message = "PO line updated"
                po.updated_by_id = actor.id
                self.session.flush()

                self._log(po, actor, None, None, message, {
                    "po_number": po.po_number,
                    "line_id": line.id,
                    "description": line.description,
                    "qty": line.qty,
                    "unit_cost": line.unit_cost,
                    "changed": changed,
                })
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info(
            "purchase_order_line_upserted",
            extra={
                "po_id": str(po_id),
                "line_id": str(line.id),
                "is_new": line_id is None,
                "changed_fields": sorted(changed),
            },
        )
        return line.to_dto()

    def _find_line(self, po: PurchaseOrderModel, line_id: UUID) -> PurchaseOrderLineModel:
        for line in po.lines:
            if line.id == line_id:
                return line
        raise LineNotFoundError(str(line_id))

    def _check_pr_line(self, po: PurchaseOrderModel, pr_line_id: UUID | None) -> UUID | None:
        if pr_line_id is None:
            return None
        from purchasing_modules.requests.orm import PurchaseRequestLineModel

        pr_line = self.session.get(PurchaseRequestLineModel, pr_line_id)
        if pr_line is None:
            raise LineNotFoundError(str(pr_line_id))
        if pr_line.purchase_request.project_id != po.project_id:
            raise ValidationError(
                "source_pr_line_id", "PR line belongs to a different project"
            )
        return pr_line.id

    # =========================================================================
    # Status
    # =========================================================================

    def set_status(
        self,
        po_id: UUID,
        new_status: PurchaseOrderStatus | str,
        actor_id: UUID,
        message: str | None = None,
    ) -> PurchaseOrder:
        with LogContext.bind(actor_id=actor_id):
            try:
                actor = self._require_actor(actor_id)
                po = self._lock(PurchaseOrderModel, po_id, PurchaseOrderNotFoundError)
                target = _parse_enum(PurchaseOrderStatus, "status", new_status)
                self._authorize(actor, can_issue_po, f"set purchase order status to {target.value}")

                old_status = po.status
                if not PURCHASE_ORDER_WORKFLOW.can_transition(old_status, target.value):
                    raise InvalidTransitionError(ENTITY_TYPE, po.id, old_status, target.value)

                now = self.clock.now_utc()
                po.status = target.value
                if target is PurchaseOrderStatus.ISSUED and po.issued_at is None:
                    po.issued_at = now
                if target is PurchaseOrderStatus.ACKNOWLEDGED and po.acknowledged_at is None:
                    po.acknowledged_at = now
                po.updated_by_id = actor.id
                self.session.flush()

                self._log(po, actor, old_status, po.status, message or "PO status updated", {
                    "po_number": po.po_number,
                })
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info(
            "purchase_order_status_changed",
            extra={
                "po_id": str(po_id),
                "from_status": old_status,
                "to_status": target.value,
            },
        )
        return po.to_dto()

    def _log(self, po, actor, from_status, to_status, message, metadata) -> None:
        StatusLogService(self.session, self.clock).record(
            ENTITY_TYPE,
            po.id,
            actor.id,
            project_id=po.project_id,
            from_status=from_status,
            to_status=to_status,
            message=message,
            metadata=metadata,
        )
