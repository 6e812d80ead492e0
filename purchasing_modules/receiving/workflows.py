"""
Receipt Workflow.

    pending -> received      (lines still unlinked)
    pending -> reconciled    (every line already linked to a PO line)
    received -> received     (re-marking while lines remain unlinked)
    received -> reconciled   (mark received once linked, or reconcile)
    pending | received -> cancelled
"""

from purchasing_kernel.domain.workflow import Guard, Transition, Workflow
from purchasing_kernel.logging_config import get_logger

logger = get_logger("modules.receiving.workflows")

ALL_LINES_LINKED = Guard(
    name="all_lines_linked",
    description="Every receipt line references a purchase order line",
)

RECEIPT_WORKFLOW = Workflow(
    name="receipt",
    description="Receipt lifecycle",
    initial_state="pending",
    states=("pending", "received", "reconciled", "cancelled"),
    transitions=(
        Transition("pending", "received", action="mark_received"),
        Transition("pending", "reconciled", action="mark_received", guard=ALL_LINES_LINKED),
        Transition("received", "received", action="mark_received"),
        Transition("received", "reconciled", action="mark_received", guard=ALL_LINES_LINKED),
        Transition("received", "reconciled", action="reconcile", guard=ALL_LINES_LINKED),
        Transition("pending", "cancelled", action="cancel"),
        Transition("received", "cancelled", action="cancel"),
    ),
    terminal_states=("reconciled", "cancelled"),
)

logger.info(
    "receipt_workflow_registered",
    extra={
        "workflow_name": RECEIPT_WORKFLOW.name,
        "state_count": len(RECEIPT_WORKFLOW.states),
        "transition_count": len(RECEIPT_WORKFLOW.transitions),
    },
)
