"""
CoverageSelector -- received-vs-ordered quantities for PO lines.

Read-only.  Receipt lines on cancelled receipts never count toward the
received total; everything else (pending, received, reconciled) does.

Rollups cover active, non-cancelled PO lines.  The vendor rollup spans every
non-cancelled PO issued to the vendor.
"""

from collections import defaultdict
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from purchasing_kernel.domain.coverage import (
    CoverageRollup,
    LineCoverage,
    compute_line_coverage,
    rollup,
)
from purchasing_kernel.exceptions import LineNotFoundError, PurchaseOrderNotFoundError
from purchasing_kernel.logging_config import get_logger
from purchasing_kernel.selectors.base import BaseSelector
from purchasing_modules.orders.models import PurchaseOrderLineStatus, PurchaseOrderStatus
from purchasing_modules.orders.orm import PurchaseOrderLineModel, PurchaseOrderModel
from purchasing_modules.receiving.models import ReceiptStatus
from purchasing_modules.receiving.orm import ReceiptLineModel, ReceiptModel

logger = get_logger("modules.receiving.coverage")


class CoverageSelector(BaseSelector):

    def _received_by_line(self, po_line_ids: list[UUID]) -> dict[UUID, list[Decimal]]:
        received: dict[UUID, list[Decimal]] = defaultdict(list)
        if not po_line_ids:
            return received
        rows = self.session.execute(
            select(ReceiptLineModel.po_line_id, ReceiptLineModel.qty_received)
            .join(ReceiptModel, ReceiptLineModel.receipt_id == ReceiptModel.id)
            .where(
                ReceiptLineModel.po_line_id.in_(po_line_ids),
                ReceiptModel.status != ReceiptStatus.CANCELLED.value,
            )
        )
        for po_line_id, qty in rows:
            received[po_line_id].append(qty)
        return received

    def _coverage(self, lines: list[PurchaseOrderLineModel]) -> list[LineCoverage]:
        received = self._received_by_line([line.id for line in lines])
        return [
            compute_line_coverage(
                line.id,
                line.purchase_order_id,
                line.qty,
                line.unit_cost,
                received.get(line.id, ()),
            )
            for line in lines
        ]

    def line_coverage(self, po_line_id: UUID) -> LineCoverage:
        line = self.session.get(PurchaseOrderLineModel, po_line_id)
        if line is None:
            raise LineNotFoundError(str(po_line_id))
        return self._coverage([line])[0]

    def purchase_order_rollup(self, purchase_order_id: UUID) -> CoverageRollup:
        if self.session.get(PurchaseOrderModel, purchase_order_id) is None:
            raise PurchaseOrderNotFoundError(str(purchase_order_id))
        lines = self.session.execute(
            select(PurchaseOrderLineModel)
            .where(
                PurchaseOrderLineModel.purchase_order_id == purchase_order_id,
                PurchaseOrderLineModel.is_active.is_(True),
                PurchaseOrderLineModel.status != PurchaseOrderLineStatus.CANCELLED.value,
            )
            .order_by(PurchaseOrderLineModel.sort_order)
        ).scalars().all()
        result = rollup(self._coverage(list(lines)))
        logger.debug(
            "purchase_order_rollup_computed",
            extra={
                "purchase_order_id": str(purchase_order_id),
                "line_count": result.line_count,
                "qty_open_total": str(result.qty_open_total),
            },
        )
        return result

    def vendor_rollup(self, vendor_id: UUID) -> CoverageRollup:
        lines = self.session.execute(
            select(PurchaseOrderLineModel)
            .join(PurchaseOrderModel, PurchaseOrderLineModel.purchase_order_id == PurchaseOrderModel.id)
            .where(
                PurchaseOrderModel.vendor_id == vendor_id,
                PurchaseOrderModel.status != PurchaseOrderStatus.CANCELLED.value,
                PurchaseOrderLineModel.is_active.is_(True),
                PurchaseOrderLineModel.status != PurchaseOrderLineStatus.CANCELLED.value,
            )
            .order_by(PurchaseOrderModel.po_number, PurchaseOrderLineModel.sort_order)
        ).scalars().all()
        return rollup(self._coverage(list(lines)))
