"""
Purchase Request Workflow.

    draft -> submitted -> approved | rejected
    approved -> submitted   (approval reset when a line or the header changes)
    approved -> rejected

Rejected is terminal.  An approved PR that has been converted to a PO is
locked by the service (its purchase_order_id is set), not by a state.
"""

from purchasing_kernel.domain.workflow import Guard, Transition, Workflow
from purchasing_kernel.logging_config import get_logger

logger = get_logger("modules.requests.workflows")

HAS_ACTIVE_LINES = Guard(
    name="has_active_lines",
    description="Purchase request has at least one active line",
)

APPROVER_AUTHORIZED = Guard(
    name="approver_authorized",
    description="Actor role may approve a PR of this total under the threshold policy",
)

PURCHASE_REQUEST_WORKFLOW = Workflow(
    name="purchase_request",
    description="Purchase request lifecycle",
    initial_state="draft",
    states=("draft", "submitted", "approved", "rejected"),
    transitions=(
        Transition("draft", "submitted", action="submit", guard=HAS_ACTIVE_LINES),
        Transition("submitted", "approved", action="approve", guard=APPROVER_AUTHORIZED),
        Transition("submitted", "rejected", action="reject", guard=APPROVER_AUTHORIZED),
        Transition("approved", "rejected", action="reject", guard=APPROVER_AUTHORIZED),
        Transition("approved", "submitted", action="reset_approval"),
    ),
    terminal_states=("rejected",),
)

logger.info(
    "purchase_request_workflow_registered",
    extra={
        "workflow_name": PURCHASE_REQUEST_WORKFLOW.name,
        "state_count": len(PURCHASE_REQUEST_WORKFLOW.states),
        "transition_count": len(PURCHASE_REQUEST_WORKFLOW.transitions),
    },
)
