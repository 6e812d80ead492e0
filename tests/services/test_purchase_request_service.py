"""
PurchaseRequestService tests.

Validates:
- Creation and year-scoped numbering
- Line and header edits, including the approval reset on edit
- Submit (idempotent), approve, reject with the threshold gate
- Conversion to a purchase order
- Audit entry counts per operation
"""

from decimal import Decimal
from datetime import date
from uuid import uuid4

import pytest

from purchasing_kernel.config import PurchasingConfig
from purchasing_kernel.exceptions import (
    ActorNotFoundError,
    AlreadyConvertedError,
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    ProjectNotFoundError,
    PurchaseRequestNotFoundError,
    ValidationError,
)
from purchasing_kernel.services.config_service import ConfigService
from purchasing_modules.orders.models import PurchaseOrderStatus
from purchasing_modules.requests.models import PurchaseRequestStatus
from purchasing_modules.requests.service import PurchaseRequestService

ENTITY = "purchase_request"


def _entries(status_log, pr_id):
    return status_log.for_entity(ENTITY, pr_id)


class TestCreate:

    def test_create_draft_with_yearly_number(self, pr_service, project, requester, status_log):
        pr = pr_service.create(project, requester, notes="  slab pour  ")

        assert pr.status is PurchaseRequestStatus.DRAFT
        assert pr.pr_number == "PR-2024-0001"
        assert pr.requested_by_id == requester
        assert pr.notes == "slab pour"
        assert pr.lines == ()

        entries = _entries(status_log, pr.id)
        assert len(entries) == 1
        assert entries[0].from_status is None
        assert entries[0].to_status == "draft"
        assert entries[0].project_id == project

    def test_numbers_increase(self, pr_service, project, requester):
        first = pr_service.create(project, requester)
        second = pr_service.create(project, requester)
        assert (first.pr_number, second.pr_number) == ("PR-2024-0001", "PR-2024-0002")

    def test_numbering_restarts_each_year(
        self, pr_service, project, requester, deterministic_clock
    ):
        pr_service.create(project, requester)
        deterministic_clock.advance(366 * 24 * 3600)
        assert pr_service.create(project, requester).pr_number == "PR-2025-0001"

    def test_global_numbering(self, session, deterministic_clock, project, requester):
        service = PurchaseRequestService(
            session,
            deterministic_clock,
            config=PurchasingConfig.from_dict({"pr_numbering": "global"}),
        )
        assert service.create(project, requester).pr_number == "PR-000001"

    def test_unknown_project(self, pr_service, requester):
        with pytest.raises(ProjectNotFoundError):
            pr_service.create(uuid4(), requester)

    def test_unknown_actor(self, pr_service, project):
        with pytest.raises(ActorNotFoundError):
            pr_service.create(project, uuid4())

    def test_deactivated_actor(self, pr_service, project, make_actor):
        inactive = make_actor("user", is_active=False)
        with pytest.raises(AuthorizationError):
            pr_service.create(project, inactive)

    def test_get_unknown(self, pr_service):
        with pytest.raises(PurchaseRequestNotFoundError):
            pr_service.get(uuid4())


class TestLines:

    def test_add_line(self, pr_service, project, requester, status_log):
        pr = pr_service.create(project, requester)
        line = pr_service.upsert_line(
            pr.id, requester, description="#4 rebar", qty="120", uom="ea", est_unit_cost="1.25"
        )

        assert line.description == "#4 rebar"
        assert line.qty == Decimal("120")
        assert line.extended_cost == Decimal("150")
        assert pr_service.get(pr.id).total == Decimal("150")
        assert len(_entries(status_log, pr.id)) == 2

    def test_missing_cost_counts_as_zero(self, pr_service, project, requester):
        pr = pr_service.create(project, requester)
        pr_service.upsert_line(pr.id, requester, description="Misc", qty="3")
        assert pr_service.get(pr.id).total == Decimal("0")

    def test_null_qty_rejected(self, pr_service, project, requester):
        pr = pr_service.create(project, requester)
        with pytest.raises(ValidationError) as exc_info:
            pr_service.upsert_line(pr.id, requester, description="Lumber", qty=None)
        assert exc_info.value.field == "qty"

    def test_omitted_qty_rejected_on_create(self, pr_service, project, requester):
        pr = pr_service.create(project, requester)
        with pytest.raises(ValidationError):
            pr_service.upsert_line(pr.id, requester, description="Lumber")

    def test_negative_qty_rejected(self, pr_service, project, requester):
        pr = pr_service.create(project, requester)
        with pytest.raises(ValidationError):
            pr_service.upsert_line(pr.id, requester, description="Lumber", qty="-1")

    def test_blank_description_rejected(self, pr_service, project, requester):
        pr = pr_service.create(project, requester)
        with pytest.raises(ValidationError):
            pr_service.upsert_line(pr.id, requester, description="   ", qty="1")

    def test_failed_line_leaves_no_trace(self, pr_service, project, requester, status_log):
        pr = pr_service.create(project, requester)
        with pytest.raises(ValidationError):
            pr_service.upsert_line(pr.id, requester, description="Bad", qty="-5")

        assert pr_service.get(pr.id).lines == ()
        assert len(_entries(status_log, pr.id)) == 1

    def test_update_keeps_omitted_fields(self, make_pr, pr_service, requester):
        pr = make_pr([("10", "25.00")])
        line = pr.lines[0]

        updated = pr_service.upsert_line(pr.id, requester, line.id, qty="12")

        assert updated.qty == Decimal("12")
        assert updated.description == line.description
        assert updated.est_unit_cost == Decimal("25")

    def test_update_can_clear_cost(self, make_pr, pr_service, requester):
        pr = make_pr([("10", "25.00")])
        updated = pr_service.upsert_line(pr.id, requester, pr.lines[0].id, est_unit_cost=None)
        assert updated.est_unit_cost is None

    def test_explicit_null_qty_rejected_on_update(self, make_pr, pr_service, requester):
        pr = make_pr()
        with pytest.raises(ValidationError):
            pr_service.upsert_line(pr.id, requester, pr.lines[0].id, qty=None)

    def test_deactivated_line_excluded_from_total(self, make_pr, pr_service, requester):
        pr = make_pr([("10", "25.00"), ("1", "100")])
        pr_service.upsert_line(pr.id, requester, pr.lines[1].id, is_active=False)

        reloaded = pr_service.get(pr.id)
        assert len(reloaded.lines) == 2
        assert reloaded.total == Decimal("250")

    def test_rejected_pr_is_not_editable(self, make_pr, pr_service, requester, executive):
        pr = make_pr()
        pr_service.submit(pr.id, requester)
        pr_service.reject(pr.id, executive)

        with pytest.raises(InvalidStateError) as exc_info:
            pr_service.upsert_line(pr.id, requester, description="More", qty="1")
        assert exc_info.value.current_status == "rejected"

    @pytest.mark.parametrize(
        "field, value",
        [("sort_order", "x"), ("sov_item_id", "not-a-uuid"), ("catalog_item_id", 42)],
    )
    def test_malformed_line_fields_rejected(self, make_pr, pr_service, requester, field, value):
        pr = make_pr()
        with pytest.raises(ValidationError) as exc_info:
            pr_service.upsert_line(pr.id, requester, pr.lines[0].id, **{field: value})
        assert exc_info.value.field == field

    def test_link_ids_accept_strings(self, make_pr, pr_service, requester):
        pr = make_pr()
        task_id = uuid4()
        line = pr_service.upsert_line(
            pr.id, requester, pr.lines[0].id, timeline_task_id=str(task_id), sort_order="3"
        )
        assert line.timeline_task_id == task_id
        assert line.sort_order == 3

    def test_malformed_needed_by_date_rejected(self, make_pr, pr_service, requester, project):
        pr = make_pr()
        with pytest.raises(ValidationError):
            pr_service.update_header(pr.id, requester, needed_by_date=12345)
        with pytest.raises(ValidationError):
            pr_service.create(project, requester, needed_by_date="soon")

        updated = pr_service.update_header(pr.id, requester, needed_by_date="2024-03-01")
        assert updated.needed_by_date == date(2024, 3, 1)


class TestApprovalReset:

    def test_line_edit_resets_approval(self, approved_pr, pr_service, requester, status_log):
        pr = approved_pr()
        before = len(_entries(status_log, pr.id))

        pr_service.upsert_line(pr.id, requester, pr.lines[0].id, qty="11")

        reloaded = pr_service.get(pr.id)
        assert reloaded.status is PurchaseRequestStatus.SUBMITTED
        assert reloaded.approved_by_id is None
        assert reloaded.approved_at is None

        entries = _entries(status_log, pr.id)
        assert len(entries) == before + 2
        reset = entries[-1]
        assert reset.message == "Approval reset due to line change"
        assert (reset.from_status, reset.to_status) == ("approved", "submitted")

    def test_unchanged_line_write_still_resets(self, approved_pr, pr_service, requester):
        pr = approved_pr()
        pr_service.upsert_line(pr.id, requester, pr.lines[0].id, qty="10")
        assert pr_service.get(pr.id).status is PurchaseRequestStatus.SUBMITTED

    def test_new_line_on_submitted_pr_does_not_reset(self, make_pr, pr_service, requester, status_log):
        pr = make_pr()
        pr_service.submit(pr.id, requester)
        before = len(_entries(status_log, pr.id))

        pr_service.upsert_line(pr.id, requester, description="Extra", qty="1")

        assert pr_service.get(pr.id).status is PurchaseRequestStatus.SUBMITTED
        assert len(_entries(status_log, pr.id)) == before + 1

    def test_header_change_resets_approval(self, approved_pr, pr_service, requester, status_log):
        pr = approved_pr()
        before = len(_entries(status_log, pr.id))

        pr_service.update_header(pr.id, requester, priority="urgent")

        reloaded = pr_service.get(pr.id)
        assert reloaded.status is PurchaseRequestStatus.SUBMITTED
        assert reloaded.priority == "urgent"
        entries = _entries(status_log, pr.id)
        assert len(entries) == before + 2
        assert entries[-1].message == "Approval reset due to header change"

    def test_header_without_difference_is_silent(self, approved_pr, pr_service, requester, status_log):
        pr = approved_pr()
        before = len(_entries(status_log, pr.id))

        pr_service.update_header(pr.id, requester, priority=pr.priority, notes=pr.notes)

        assert pr_service.get(pr.id).status is PurchaseRequestStatus.APPROVED
        assert len(_entries(status_log, pr.id)) == before

    def test_header_update_on_draft(self, make_pr, pr_service, requester, status_log):
        pr = make_pr()
        before = len(_entries(status_log, pr.id))

        updated = pr_service.update_header(pr.id, requester, needed_by_date=date(2024, 3, 1))

        assert updated.needed_by_date == date(2024, 3, 1)
        assert updated.status is PurchaseRequestStatus.DRAFT
        entries = _entries(status_log, pr.id)
        assert len(entries) == before + 1
        assert "needed_by_date" in entries[-1].metadata["changed"]

    def test_header_can_clear_notes(self, pr_service, project, requester):
        pr = pr_service.create(project, requester, notes="call first")
        assert pr_service.update_header(pr.id, requester, notes=None).notes is None


class TestSubmit:

    def test_submit_requires_active_line(self, pr_service, project, requester, status_log):
        pr = pr_service.create(project, requester)
        with pytest.raises(ValidationError):
            pr_service.submit(pr.id, requester)
        assert pr_service.get(pr.id).status is PurchaseRequestStatus.DRAFT
        assert len(_entries(status_log, pr.id)) == 1

    def test_submit_with_only_inactive_lines_rejected(self, make_pr, pr_service, requester):
        pr = make_pr()
        pr_service.upsert_line(pr.id, requester, pr.lines[0].id, is_active=False)
        with pytest.raises(ValidationError):
            pr_service.submit(pr.id, requester)

    def test_submit(self, make_pr, pr_service, requester, status_log):
        pr = make_pr()
        submitted = pr_service.submit(pr.id, requester)

        assert submitted.status is PurchaseRequestStatus.SUBMITTED
        last = _entries(status_log, pr.id)[-1]
        assert (last.from_status, last.to_status) == ("draft", "submitted")

    def test_resubmit_is_noop(self, make_pr, pr_service, requester, status_log):
        pr = make_pr()
        pr_service.submit(pr.id, requester)
        before = len(_entries(status_log, pr.id))

        again = pr_service.submit(pr.id, requester)

        assert again.status is PurchaseRequestStatus.SUBMITTED
        assert len(_entries(status_log, pr.id)) == before

    def test_submit_approved_pr_rejected(self, approved_pr, pr_service, requester, status_log):
        pr = approved_pr()
        before = len(_entries(status_log, pr.id))

        with pytest.raises(InvalidStateError) as exc_info:
            pr_service.submit(pr.id, requester)

        assert "approved" in str(exc_info.value)
        current = pr_service.get(pr.id)
        assert current.status is PurchaseRequestStatus.APPROVED
        assert current.approved_by_id is not None
        assert current.approved_at is not None
        assert len(_entries(status_log, pr.id)) == before

    def test_submit_rejected_pr_rejected(self, make_pr, pr_service, requester, executive):
        pr = make_pr()
        pr_service.submit(pr.id, requester)
        pr_service.reject(pr.id, executive)

        with pytest.raises(InvalidStateError):
            pr_service.submit(pr.id, requester)


class TestApprove:

    def test_ops_may_approve_below_threshold(self, make_pr, pr_service, requester, ops_manager):
        pr = make_pr([("1", "999.99")])
        pr_service.submit(pr.id, requester)

        approved = pr_service.approve(pr.id, ops_manager)

        assert approved.status is PurchaseRequestStatus.APPROVED
        assert approved.approved_by_id == ops_manager
        assert approved.approved_at is not None

    def test_ops_denied_at_threshold(self, make_pr, pr_service, requester, ops_manager, status_log):
        pr = make_pr([("10", "100")])
        pr_service.submit(pr.id, requester)
        before = len(_entries(status_log, pr.id))

        with pytest.raises(AuthorizationError) as exc_info:
            pr_service.approve(pr.id, ops_manager)

        assert exc_info.value.amount == Decimal("1000")
        reloaded = pr_service.get(pr.id)
        assert reloaded.status is PurchaseRequestStatus.SUBMITTED
        assert reloaded.approved_by_id is None
        assert len(_entries(status_log, pr.id)) == before

    def test_executive_approves_high_value(self, make_pr, pr_service, requester, executive, status_log):
        pr = make_pr([("10", "100")])
        pr_service.submit(pr.id, requester)

        pr_service.approve(pr.id, executive, message="ok to buy")

        last = _entries(status_log, pr.id)[-1]
        assert last.message == "ok to buy"
        assert Decimal(last.metadata["total"]) == Decimal("1000")
        assert Decimal(last.metadata["threshold"]) == Decimal("1000")

    def test_requester_cannot_approve(self, make_pr, pr_service, requester):
        pr = make_pr()
        pr_service.submit(pr.id, requester)
        with pytest.raises(AuthorizationError):
            pr_service.approve(pr.id, requester)

    def test_draft_cannot_be_approved(self, make_pr, pr_service, executive):
        pr = make_pr()
        with pytest.raises(InvalidStateError):
            pr_service.approve(pr.id, executive)

    def test_threshold_read_from_app_config(
        self, session, deterministic_clock, make_pr, pr_service, requester, ops_manager, admin
    ):
        ConfigService(session, deterministic_clock).set_approval_threshold(admin, "5000")
        live = PurchaseRequestService(session, deterministic_clock)
        pr = make_pr([("10", "150")])
        pr_service.submit(pr.id, requester)

        assert live.approve(pr.id, ops_manager).status is PurchaseRequestStatus.APPROVED

    def test_configured_default_threshold(
        self, session, deterministic_clock, make_pr, pr_service, requester, ops_manager
    ):
        strict = PurchaseRequestService(
            session,
            deterministic_clock,
            config=PurchasingConfig.from_dict({"default_approval_threshold": "100"}),
        )
        pr = make_pr([("1", "150")])
        pr_service.submit(pr.id, requester)

        with pytest.raises(AuthorizationError):
            strict.approve(pr.id, ops_manager)


class TestReject:

    def test_reject_approved_clears_approver(self, approved_pr, pr_service, executive):
        pr = approved_pr()
        rejected = pr_service.reject(pr.id, executive, message="over budget")

        assert rejected.status is PurchaseRequestStatus.REJECTED
        assert rejected.approved_by_id is None
        assert rejected.approved_at is None

    def test_reject_uses_approval_gate(self, make_pr, pr_service, requester, ops_manager):
        pr = make_pr([("20", "100")])
        pr_service.submit(pr.id, requester)
        with pytest.raises(AuthorizationError):
            pr_service.reject(pr.id, ops_manager)

    def test_draft_cannot_be_rejected(self, make_pr, pr_service, executive):
        pr = make_pr()
        with pytest.raises(InvalidStateError):
            pr_service.reject(pr.id, executive)


class TestConvertToPO:

    def test_convert(self, approved_pr, pr_service, vendor, purchasing_agent, status_log):
        pr = approved_pr([("10", "25.00"), ("4", "12.50"), ("2", None)])

        po = pr_service.convert_to_po(pr.id, vendor, purchasing_agent)

        assert po.status is PurchaseOrderStatus.DRAFT
        assert po.po_number == "PO-000001"
        assert po.source_pr_id == pr.id
        assert po.vendor_id == vendor
        assert po.project_id == pr.project_id
        assert len(po.lines) == 3
        assert {line.source_pr_line_id for line in po.lines} == {line.id for line in pr.lines}
        assert [line.unit_cost for line in po.lines] == [Decimal("25"), Decimal("12.5"), Decimal("0")]

        converted = pr_service.get(pr.id)
        assert converted.status is PurchaseRequestStatus.APPROVED
        assert converted.purchase_order_id == po.id
        assert converted.converted_by_id == purchasing_agent
        assert converted.converted_at is not None
        by_source = {line.source_pr_line_id: line.id for line in po.lines}
        for line in converted.lines:
            assert line.po_line_id == by_source[line.id]

        assert _entries(status_log, pr.id)[-1].message == "PR converted to PO"
        po_entries = status_log.for_entity("purchase_order", po.id)
        assert len(po_entries) == 1
        assert po_entries[0].message == "PO created from PR"

    def test_inactive_lines_not_copied(self, approved_pr, pr_service, requester, executive, vendor, purchasing_agent):
        pr = approved_pr([("10", "25.00"), ("1", "5")])
        pr_service.upsert_line(pr.id, requester, pr.lines[1].id, is_active=False)
        pr_service.approve(pr.id, executive)

        po = pr_service.convert_to_po(pr.id, vendor, purchasing_agent)

        assert [line.source_pr_line_id for line in po.lines] == [pr.lines[0].id]

    def test_convert_twice_conflicts(self, approved_pr, pr_service, vendor, purchasing_agent):
        pr = approved_pr()
        first = pr_service.convert_to_po(pr.id, vendor, purchasing_agent)

        with pytest.raises(ConflictError) as exc_info:
            pr_service.convert_to_po(pr.id, vendor, purchasing_agent)

        assert isinstance(exc_info.value, AlreadyConvertedError)
        assert exc_info.value.purchase_order_id == str(first.id)

    def test_submitted_pr_cannot_convert(self, make_pr, pr_service, requester, vendor, purchasing_agent):
        pr = make_pr()
        pr_service.submit(pr.id, requester)
        with pytest.raises(InvalidStateError):
            pr_service.convert_to_po(pr.id, vendor, purchasing_agent)

    def test_inactive_vendor_rejected(self, approved_pr, pr_service, make_vendor, purchasing_agent):
        pr = approved_pr()
        closed_vendor = make_vendor("Defunct Lumber", is_active=False)
        with pytest.raises(ValidationError):
            pr_service.convert_to_po(pr.id, closed_vendor, purchasing_agent)

    def test_shop_user_cannot_convert(self, approved_pr, pr_service, vendor, shop_user):
        pr = approved_pr()
        with pytest.raises(AuthorizationError):
            pr_service.convert_to_po(pr.id, vendor, shop_user)

    def test_converted_pr_is_locked(self, approved_pr, pr_service, requester, executive, vendor, purchasing_agent):
        pr = approved_pr()
        pr_service.convert_to_po(pr.id, vendor, purchasing_agent)

        with pytest.raises(InvalidStateError):
            pr_service.upsert_line(pr.id, requester, pr.lines[0].id, qty="99")
        with pytest.raises(InvalidStateError):
            pr_service.update_header(pr.id, requester, priority="urgent")
        with pytest.raises(InvalidStateError):
            pr_service.reject(pr.id, executive)

        assert pr_service.get(pr.id).status is PurchaseRequestStatus.APPROVED
