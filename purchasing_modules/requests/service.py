"""
Purchase Request Service.

Operations
----------
* ``create``         -- draft PR on an existing project; number allocated from
  the configured scheme (``PR-2024-0007`` or ``PR-000042``).
* ``upsert_line``    -- add/edit a line while draft, submitted or approved.
* ``update_header``  -- needed-by date, priority, notes.
* ``submit``         -- draft -> submitted; idempotent when already submitted.
* ``approve``        -- submitted -> approved, gated by role and PR total.
* ``reject``         -- submitted/approved -> rejected, same gate as approve.
* ``convert_to_po``  -- approved PR -> new draft PO, one PO line per active
  PR line, linked both ways.

Approval reset
--------------
Any line write on an approved PR, or a header update that actually changes
a value, moves it back to submitted and clears the approver fields.  The
reset is logged as its own entry after the edit entry.

Once ``purchase_order_id`` is set the PR is locked: line edits, header
edits and rejection raise InvalidStateError.
"""

from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from purchasing_kernel.config import PurchasingConfig
from purchasing_kernel.domain.authorization import (
    ApprovalPolicy,
    can_approve_pr,
    can_convert_pr,
)
from purchasing_kernel.domain.clock import Clock
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
    AlreadyConvertedError,
    InvalidStateError,
    LineNotFoundError,
    PurchaseRequestNotFoundError,
    ValidationError,
)
from purchasing_kernel.logging_config import LogContext, get_logger
from purchasing_kernel.services.base import BaseService, apply_changes
from purchasing_kernel.services.config_service import ConfigService
from purchasing_kernel.services.sequence_service import SequenceService
from purchasing_kernel.services.status_log_service import StatusLogService
from purchasing_modules.orders.models import PurchaseOrder, ShipToAddress
from purchasing_modules.orders.orm import PurchaseOrderModel
from purchasing_modules.orders.service import PurchaseOrderService
from purchasing_modules.requests.models import (
    EDITABLE_STATUSES,
    PurchaseRequest,
    PurchaseRequestLine,
    PurchaseRequestStatus,
)
from purchasing_modules.requests.orm import PurchaseRequestLineModel, PurchaseRequestModel
from purchasing_modules.requests.workflows import PURCHASE_REQUEST_WORKFLOW

logger = get_logger("modules.requests.service")

ENTITY_TYPE = "purchase_request"


class PurchaseRequestService(BaseService):
    """
    Purchase request lifecycle.

    Args:
        session: SQLAlchemy session; each public method is one unit of work.
        clock: Time source for approval/conversion stamps and the PR year.
        policy: Fixed approval policy.  When omitted the live threshold is
            read from ``app_config`` at the start of each gated operation.
        config: Process configuration (numbering mode, default threshold).
    """

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        policy: ApprovalPolicy | None = None,
        config: PurchasingConfig | None = None,
    ):
        super().__init__(session, clock)
        self._policy = policy
        self._config = config or PurchasingConfig.with_defaults()

    def _approval_policy(self) -> ApprovalPolicy:
        if self._policy is not None:
            return self._policy
        return ConfigService(self.session, self.clock, self._config).get_approval_policy()

    def get(self, pr_id: UUID) -> PurchaseRequest:
        pr = self.session.get(PurchaseRequestModel, pr_id)
        if pr is None:
            raise PurchaseRequestNotFoundError(str(pr_id))
        return pr.to_dto()

    # =========================================================================
    # Create / edit
    # =========================================================================

    def create(
        self,
        project_id: UUID,
        actor_id: UUID,
        *,
        needed_by_date: date | None = None,
        priority: str | None = None,
        notes: str | None = None,
    ) -> PurchaseRequest:
        with LogContext.bind(actor_id=actor_id, project_id=project_id):
            try:
                actor = self._require_actor(actor_id)
                self._require_project(project_id)

                scheme = self._config.pr_numbering_scheme
                year = self.clock.now_utc().year if scheme.year_scoped else None
                pr = PurchaseRequestModel(
                    pr_number=SequenceService(self.session).next_document_number(scheme, year),
                    project_id=project_id,
                    status=PURCHASE_REQUEST_WORKFLOW.initial_state,
                    requested_by_id=actor.id,
                    needed_by_date=optional_date("needed_by_date", needed_by_date),
                    priority=clean_text(priority),
                    notes=clean_text(notes),
                    created_by_id=actor.id,
                    updated_by_id=actor.id,
                )
                self.session.add(pr)
                self.session.flush()

                self._log(pr, actor, None, pr.status, "PR created", {
                    "pr_number": pr.pr_number,
                })
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info(
            "purchase_request_created",
            extra={"pr_id": str(pr.id), "pr_number": pr.pr_number},
        )
        return pr.to_dto()

    def upsert_line(
        self,
        pr_id: UUID,
        actor_id: UUID,
        line_id: UUID | None = None,
        *,
        description: Any = UNSET,
        qty: Any = UNSET,
        uom: Any = UNSET,
        est_unit_cost: Any = UNSET,
        catalog_item_id: Any = UNSET,
        sov_item_id: Any = UNSET,
        timeline_task_id: Any = UNSET,
        sort_order: Any = UNSET,
        is_active: Any = UNSET,
    ) -> PurchaseRequestLine:
        """
        Create a line (``line_id`` None) or update one.

        Description and qty are required on create; on update an explicit
        ``qty=None`` is rejected rather than cleared.
        """
        with LogContext.bind(actor_id=actor_id):
            try:
                actor = self._require_actor(actor_id)
                pr = self._lock(PurchaseRequestModel, pr_id, PurchaseRequestNotFoundError)
                self._require_editable(pr, "edit lines of")

                values: dict[str, Any] = {}
                if description is not UNSET or line_id is None:
                    values["description"] = require_text(
                        "description", None if description is UNSET else description
                    )
                if qty is not UNSET or line_id is None:
                    values["qty"] = require_non_negative("qty", None if qty is UNSET else qty)
                if est_unit_cost is not UNSET:
                    values["est_unit_cost"] = require_non_negative(
                        "est_unit_cost", est_unit_cost, allow_none=True
                    )
                if uom is not UNSET:
                    values["uom"] = clean_text(uom)
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
                    defaults = {"sort_order": len(pr.lines), "is_active": True}
                    line = PurchaseRequestLineModel(
                        purchase_request_id=pr.id,
                        created_by_id=actor.id,
                        **{**defaults, **values},
                    )
                    pr.lines.append(line)
                    changed: dict[str, dict] = {}
                    message = "PR line created"
                else:
                    line = self._find_line(pr, line_id)
                    changed = apply_changes(line, values)
                    line.updated_by_id = actor.id
                    message = "PR line updated"
                pr.updated_by_id = actor.id
                self.session.flush()

                self._log(pr, actor, None, None, message, {
                    "pr_number": pr.pr_number,
                    "line_id": line.id,
                    "description": line.description,
                    "qty": line.qty,
                    "est_unit_cost": line.est_unit_cost,
                    "changed": changed,
                })
                reset = self._reset_approval(pr, actor, "line change")
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info(
            "purchase_request_line_upserted",
            extra={
                "pr_id": str(pr_id),
                "line_id": str(line.id),
                "is_new": line_id is None,
                "approval_reset": reset,
            },
        )
        return line.to_dto()

    def update_header(
        self,
        pr_id: UUID,
        actor_id: UUID,
        *,
        needed_by_date: Any = UNSET,
        priority: Any = UNSET,
        notes: Any = UNSET,
    ) -> PurchaseRequest:
        """Apply supplied header fields; no entries are written when nothing differs."""
        with LogContext.bind(actor_id=actor_id):
            try:
                actor = self._require_actor(actor_id)
                pr = self._lock(PurchaseRequestModel, pr_id, PurchaseRequestNotFoundError)
                self._require_editable(pr, "edit")

                values: dict[str, Any] = {}
                if needed_by_date is not UNSET:
                    values["needed_by_date"] = optional_date("needed_by_date", needed_by_date)
                if priority is not UNSET:
                    values["priority"] = clean_text(priority)
                if notes is not UNSET:
                    values["notes"] = clean_text(notes)

                changed = apply_changes(pr, values)
                reset = False
                if changed:
                    pr.updated_by_id = actor.id
                    self.session.flush()
                    self._log(pr, actor, None, None, "PR header updated", {
                        "pr_number": pr.pr_number,
                        "changed": changed,
                    })
                    reset = self._reset_approval(pr, actor, "header change")
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info(
            "purchase_request_header_updated",
            extra={
                "pr_id": str(pr_id),
                "changed_fields": sorted(changed),
                "approval_reset": reset,
            },
        )
        return pr.to_dto()

    def _require_editable(self, pr: PurchaseRequestModel, operation: str) -> None:
        if pr.purchase_order_id is not None:
            raise InvalidStateError(
                ENTITY_TYPE, pr.id, pr.status, operation, detail="already converted to a PO"
            )
        if PurchaseRequestStatus(pr.status) not in EDITABLE_STATUSES:
            raise InvalidStateError(ENTITY_TYPE, pr.id, pr.status, operation)

    def _find_line(self, pr: PurchaseRequestModel, line_id: UUID) -> PurchaseRequestLineModel:
        for line in pr.lines:
            if line.id == line_id:
                return line
        raise LineNotFoundError(str(line_id))

    def _reset_approval(self, pr: PurchaseRequestModel, actor, reason: str) -> bool:
        """approved -> submitted with approver fields cleared; one extra entry."""
        if not PURCHASE_REQUEST_WORKFLOW.can_transition(
            pr.status, PurchaseRequestStatus.SUBMITTED.value, "reset_approval"
        ):
            return False
        old_approver = pr.approved_by_id
        pr.status = PurchaseRequestStatus.SUBMITTED.value
        pr.approved_by_id = None
        pr.approved_at = None
        pr.assert_approval_consistent()
        self.session.flush()

        self._log(
            pr,
            actor,
            PurchaseRequestStatus.APPROVED.value,
            pr.status,
            f"Approval reset due to {reason}",
            {"pr_number": pr.pr_number, "previous_approver_id": old_approver},
        )
        logger.info(
            "purchase_request_approval_reset",
            extra={"pr_id": str(pr.id), "reason": reason},
        )
        return True

    # =========================================================================
    # Transitions
    # =========================================================================

    def submit(
        self,
        pr_id: UUID,
        actor_id: UUID,
        message: str | None = None,
    ) -> PurchaseRequest:
        with LogContext.bind(actor_id=actor_id):
            try:
                actor = self._require_actor(actor_id)
                pr = self._lock(PurchaseRequestModel, pr_id, PurchaseRequestNotFoundError)

                if pr.status == PurchaseRequestStatus.SUBMITTED.value:
                    # Double submit returns the current state unchanged
                    self.session.commit()
                    logger.info(
                        "purchase_request_submit_noop",
                        extra={"pr_id": str(pr_id)},
                    )
                    return pr.to_dto()

                if not PURCHASE_REQUEST_WORKFLOW.can_transition(
                    pr.status, PurchaseRequestStatus.SUBMITTED.value, "submit"
                ):
                    raise InvalidStateError(ENTITY_TYPE, pr.id, pr.status, "submit")
                if not pr.active_lines:
                    raise ValidationError("lines", "at least one active line is required to submit")

                old_status = pr.status
                pr.status = PurchaseRequestStatus.SUBMITTED.value
                pr.updated_by_id = actor.id
                self.session.flush()

                self._log(pr, actor, old_status, pr.status, message or "PR submitted", {
                    "pr_number": pr.pr_number,
                    "line_count": len(pr.active_lines),
                })
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info(
            "purchase_request_submitted",
            extra={"pr_id": str(pr_id), "from_status": old_status},
        )
        return pr.to_dto()

    def approve(
        self,
        pr_id: UUID,
        actor_id: UUID,
        message: str | None = None,
    ) -> PurchaseRequest:
        with LogContext.bind(actor_id=actor_id):
            try:
                actor = self._require_actor(actor_id)
                pr = self._lock(PurchaseRequestModel, pr_id, PurchaseRequestNotFoundError)
                if not PURCHASE_REQUEST_WORKFLOW.can_transition(
                    pr.status, PurchaseRequestStatus.APPROVED.value, "approve"
                ):
                    raise InvalidStateError(ENTITY_TYPE, pr.id, pr.status, "approve")

                total = pr.total
                policy = self._approval_policy()
                self._authorize(
                    actor, can_approve_pr, "approve purchase requests", total, policy,
                    amount=total,
                )

                pr.status = PurchaseRequestStatus.APPROVED.value
                pr.approved_by_id = actor.id
                pr.approved_at = self.clock.now_utc()
                pr.updated_by_id = actor.id
                pr.assert_approval_consistent()
                self.session.flush()

                self._log(
                    pr,
                    actor,
                    PurchaseRequestStatus.SUBMITTED.value,
                    pr.status,
                    message or "PR approved",
                    {
                        "pr_number": pr.pr_number,
                        "total": total,
                        "threshold": policy.threshold,
                        "high_value": policy.is_high_value(total),
                    },
                )
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info(
            "purchase_request_approved",
            extra={
                "pr_id": str(pr_id),
                "total": str(total),
                "threshold": str(policy.threshold),
            },
        )
        return pr.to_dto()

    def reject(
        self,
        pr_id: UUID,
        actor_id: UUID,
        message: str | None = None,
    ) -> PurchaseRequest:
        with LogContext.bind(actor_id=actor_id):
            try:
                actor = self._require_actor(actor_id)
                pr = self._lock(PurchaseRequestModel, pr_id, PurchaseRequestNotFoundError)
                if pr.purchase_order_id is not None:
                    raise InvalidStateError(
                        ENTITY_TYPE, pr.id, pr.status, "reject", detail="already converted to a PO"
                    )
                if not PURCHASE_REQUEST_WORKFLOW.can_transition(
                    pr.status, PurchaseRequestStatus.REJECTED.value, "reject"
                ):
                    raise InvalidStateError(ENTITY_TYPE, pr.id, pr.status, "reject")

                total = pr.total
                policy = self._approval_policy()
                self._authorize(
                    actor, can_approve_pr, "reject purchase requests", total, policy,
                    amount=total,
                )

                old_status = pr.status
                pr.status = PurchaseRequestStatus.REJECTED.value
                pr.approved_by_id = None
                pr.approved_at = None
                pr.updated_by_id = actor.id
                pr.assert_approval_consistent()
                self.session.flush()

                self._log(pr, actor, old_status, pr.status, message or "PR rejected", {
                    "pr_number": pr.pr_number,
                    "total": total,
                    "threshold": policy.threshold,
                })
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info(
            "purchase_request_rejected",
            extra={"pr_id": str(pr_id), "from_status": old_status},
        )
        return pr.to_dto()

    # =========================================================================
    # Conversion
    # =========================================================================

    def convert_to_po(
        self,
        pr_id: UUID,
        vendor_id: UUID,
        actor_id: UUID,
        *,
        ship_to: ShipToAddress | None = None,
        notes: str | None = None,
    ) -> PurchaseOrder:
        """
        Create a draft PO from an approved PR.

        Checks, in order: PR exists, not already converted, status approved,
        vendor exists and is active, at least one active line, actor may
        issue POs or approve a PR of this total.  The PR stays approved and
        gains ``purchase_order_id``/``converted_at``/``converted_by_id``;
        each PR line gains its ``po_line_id``.
        """
        with LogContext.bind(actor_id=actor_id):
            try:
                actor = self._require_actor(actor_id)
                pr = self._lock(PurchaseRequestModel, pr_id, PurchaseRequestNotFoundError)
                self._require_not_converted(pr)
                if pr.status != PurchaseRequestStatus.APPROVED.value:
                    raise InvalidStateError(ENTITY_TYPE, pr.id, pr.status, "convert")
                self._require_vendor(vendor_id)
                if not pr.active_lines:
                    raise ValidationError("lines", "at least one active line is required to convert")

                total = pr.total
                policy = self._approval_policy()
                self._authorize(
                    actor, can_convert_pr, "convert purchase requests", total, policy,
                    amount=total,
                )

                orders = PurchaseOrderService(self.session, self.clock)
                try:
                    po = orders.create_from_request(pr, vendor_id, actor, ship_to=ship_to, notes=notes)
                except IntegrityError as exc:
                    raise AlreadyConvertedError(pr.id) from exc

                by_source = {line.source_pr_line_id: line.id for line in po.lines}
                for pr_line in pr.active_lines:
                    pr_line.po_line_id = by_source[pr_line.id]
                    pr_line.updated_by_id = actor.id
                pr.purchase_order_id = po.id
                pr.converted_at = self.clock.now_utc()
                pr.converted_by_id = actor.id
                pr.updated_by_id = actor.id
                self.session.flush()

                self._log(pr, actor, None, None, "PR converted to PO", {
                    "pr_number": pr.pr_number,
                    "purchase_order_id": po.id,
                    "po_number": po.po_number,
                    "vendor_id": vendor_id,
                    "line_count": len(po.lines),
                })
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info(
            "purchase_request_converted",
            extra={
                "pr_id": str(pr_id),
                "po_id": str(po.id),
                "po_number": po.po_number,
                "total": str(total),
            },
        )
        return po.to_dto()

    def _require_not_converted(self, pr: PurchaseRequestModel) -> None:
        if pr.purchase_order_id is not None:
            raise AlreadyConvertedError(pr.id, pr.purchase_order_id)
        existing = self.session.execute(
            select(PurchaseOrderModel.id).where(PurchaseOrderModel.source_pr_id == pr.id)
        ).scalar_one_or_none()
        if existing is not None:
            raise AlreadyConvertedError(pr.id, existing)

    def _log(self, pr, actor, from_status, to_status, message, metadata) -> None:
        StatusLogService(self.session, self.clock).record(
            ENTITY_TYPE,
            pr.id,
            actor.id,
            project_id=pr.project_id,
            from_status=from_status,
            to_status=to_status,
            message=message,
            metadata=metadata,
        )
