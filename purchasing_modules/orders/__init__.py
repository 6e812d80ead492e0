"""
Purchase Orders Module (``purchasing_modules.orders``).

Purchase orders against one vendor on one project, created directly or
from an approved purchase request, and moved along the issue ->
acknowledge -> receive -> close path (or cancelled).
"""

from purchasing_modules.orders.models import (
    LOCKED_STATUSES,
    PurchaseOrder,
    PurchaseOrderLine,
    PurchaseOrderLineStatus,
    PurchaseOrderStatus,
    ShipToAddress,
)
from purchasing_modules.orders.service import PurchaseOrderService
from purchasing_modules.orders.workflows import PURCHASE_ORDER_WORKFLOW

__all__ = [
    "LOCKED_STATUSES",
    "PurchaseOrder",
    "PurchaseOrderLine",
    "PurchaseOrderLineStatus",
    "PurchaseOrderStatus",
    "ShipToAddress",
    "PurchaseOrderService",
    "PURCHASE_ORDER_WORKFLOW",
]
