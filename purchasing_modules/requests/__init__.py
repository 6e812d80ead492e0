"""
Purchase Requests Module (``purchasing_modules.requests``).

Responsibility
--------------
Purchase requests from draft through approval, the approval reset that
follows any edit to an approved request, and conversion of an approved
request into a draft purchase order.

Transaction boundary
--------------------
``PurchaseRequestService`` owns one unit of work per public operation.
Conversion reuses the flush-only PO header helper so the PR update and
the new PO commit together.
"""

from purchasing_modules.requests.models import (
    EDITABLE_STATUSES,
    PurchaseRequest,
    PurchaseRequestLine,
    PurchaseRequestStatus,
)
from purchasing_modules.requests.service import PurchaseRequestService
from purchasing_modules.requests.workflows import PURCHASE_REQUEST_WORKFLOW

__all__ = [
    "EDITABLE_STATUSES",
    "PurchaseRequest",
    "PurchaseRequestLine",
    "PurchaseRequestStatus",
    "PurchaseRequestService",
    "PURCHASE_REQUEST_WORKFLOW",
]
