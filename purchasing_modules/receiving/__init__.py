"""
Receiving Module (``purchasing_modules.receiving``).

Receipts of goods on a project, optionally against a PO.  Lines may be
received blind and linked to PO lines later; a receipt is reconciled once
every line is linked.  ``CoverageSelector`` computes received-vs-ordered
quantities per PO line, per PO and per vendor.
"""

from purchasing_modules.receiving.coverage import CoverageSelector
from purchasing_modules.receiving.models import Receipt, ReceiptLine, ReceiptStatus
from purchasing_modules.receiving.service import ReceiptService
from purchasing_modules.receiving.workflows import RECEIPT_WORKFLOW

__all__ = [
    "CoverageSelector",
    "Receipt",
    "ReceiptLine",
    "ReceiptStatus",
    "ReceiptService",
    "RECEIPT_WORKFLOW",
]
