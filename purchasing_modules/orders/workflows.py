"""
Purchase Order Workflow.

    draft -> issued -> acknowledged -> partially_received | received -> closed

Receiving may start straight from issued.  ``cancelled`` is reachable from
every non-terminal state.  Every transition requires the PO-issuance tier.
"""

from purchasing_kernel.domain.workflow import Transition, Workflow
from purchasing_kernel.logging_config import get_logger

logger = get_logger("modules.orders.workflows")

_NON_TERMINAL = ("draft", "issued", "acknowledged", "partially_received", "received")

PURCHASE_ORDER_WORKFLOW = Workflow(
    name="purchase_order",
    description="Purchase order lifecycle",
    initial_state="draft",
    states=(
        "draft",
        "issued",
        "acknowledged",
        "partially_received",
        "received",
        "closed",
        "cancelled",
    ),
    transitions=(
        Transition("draft", "issued", action="issue"),
        Transition("issued", "acknowledged", action="acknowledge"),
        Transition("issued", "partially_received", action="receive_partial"),
        Transition("issued", "received", action="receive"),
        Transition("acknowledged", "partially_received", action="receive_partial"),
        Transition("acknowledged", "received", action="receive"),
        Transition("partially_received", "received", action="receive"),
        Transition("partially_received", "closed", action="close"),
        Transition("received", "closed", action="close"),
    ) + tuple(Transition(state, "cancelled", action="cancel") for state in _NON_TERMINAL),
    terminal_states=("closed", "cancelled"),
)

logger.info(
    "purchase_order_workflow_registered",
    extra={
        "workflow_name": PURCHASE_ORDER_WORKFLOW.name,
        "state_count": len(PURCHASE_ORDER_WORKFLOW.states),
        "transition_count": len(PURCHASE_ORDER_WORKFLOW.transitions),
    },
)
