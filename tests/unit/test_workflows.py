"""State machine definitions for the three document lifecycles."""

import pytest

from purchasing_kernel.domain.workflow import Transition, Workflow
from purchasing_modules.orders.workflows import PURCHASE_ORDER_WORKFLOW
from purchasing_modules.receiving.workflows import RECEIPT_WORKFLOW
from purchasing_modules.requests.workflows import PURCHASE_REQUEST_WORKFLOW


class TestWorkflowDefinition:

    def test_unknown_initial_state_rejected(self):
        with pytest.raises(ValueError):
            Workflow(
                name="broken",
                description="",
                initial_state="missing",
                states=("a",),
                transitions=(),
            )

    def test_transition_to_unknown_state_rejected(self):
        with pytest.raises(ValueError):
            Workflow(
                name="broken",
                description="",
                initial_state="a",
                states=("a",),
                transitions=(Transition("a", "b", action="go"),),
            )

    @pytest.mark.parametrize(
        "workflow",
        [PURCHASE_REQUEST_WORKFLOW, PURCHASE_ORDER_WORKFLOW, RECEIPT_WORKFLOW],
        ids=lambda w: w.name,
    )
    def test_terminal_states_have_no_exits(self, workflow):
        for state in workflow.terminal_states:
            assert workflow.allowed_targets(state) == ()


class TestPurchaseRequestWorkflow:

    def test_initial_state(self):
        assert PURCHASE_REQUEST_WORKFLOW.initial_state == "draft"

    def test_draft_cannot_be_approved_directly(self):
        assert not PURCHASE_REQUEST_WORKFLOW.can_transition("draft", "approved")

    def test_approval_reset_edge(self):
        assert PURCHASE_REQUEST_WORKFLOW.can_transition("approved", "submitted")

    def test_approval_reset_edge_is_not_a_submit(self):
        assert PURCHASE_REQUEST_WORKFLOW.can_transition("approved", "submitted", "reset_approval")
        assert not PURCHASE_REQUEST_WORKFLOW.can_transition("approved", "submitted", "submit")

    def test_submit_only_from_draft(self):
        sources = [
            t.from_state for t in PURCHASE_REQUEST_WORKFLOW.transitions if t.action == "submit"
        ]
        assert sources == ["draft"]

    def test_rejected_is_terminal(self):
        assert PURCHASE_REQUEST_WORKFLOW.is_terminal("rejected")


class TestPurchaseOrderWorkflow:

    @pytest.mark.parametrize(
        "state", ["draft", "issued", "acknowledged", "partially_received", "received"]
    )
    def test_cancel_from_any_non_terminal_state(self, state):
        assert PURCHASE_ORDER_WORKFLOW.can_transition(state, "cancelled")

    @pytest.mark.parametrize("state", ["closed", "cancelled"])
    def test_no_cancel_from_terminal(self, state):
        assert not PURCHASE_ORDER_WORKFLOW.can_transition(state, "cancelled")

    def test_draft_cannot_skip_to_received(self):
        assert not PURCHASE_ORDER_WORKFLOW.can_transition("draft", "received")


class TestReceiptWorkflow:

    def test_pending_targets(self):
        assert set(RECEIPT_WORKFLOW.allowed_targets("pending")) == {
            "received",
            "reconciled",
            "cancelled",
        }

    def test_reconciled_cannot_be_cancelled(self):
        assert not RECEIPT_WORKFLOW.can_transition("reconciled", "cancelled")

    def test_reconcile_action_requires_received(self):
        assert RECEIPT_WORKFLOW.can_transition("pending", "reconciled", "mark_received")
        assert not RECEIPT_WORKFLOW.can_transition("pending", "reconciled", "reconcile")
        assert RECEIPT_WORKFLOW.can_transition("received", "reconciled", "reconcile")

    def test_find_returns_matching_action(self):
        edge = RECEIPT_WORKFLOW.find("received", "reconciled", "reconcile")
        assert edge is not None
        assert edge.action == "reconcile"
        assert RECEIPT_WORKFLOW.find("received", "reconciled", "cancel") is None
