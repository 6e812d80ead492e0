"""
Coverage arithmetic -- received-vs-ordered quantity for PO lines.

Pure functions; the CoverageSelector feeds them rows already filtered to
non-cancelled receipts.

    qty_received_total = sum(qty_received of linked receipt lines)
    qty_open_remaining = max(0, qty_ordered - qty_received_total)
    coverage_state     = unknown       qty ordered is 0 or missing
                         not_received  nothing received
                         partial       0 < received < ordered
                         received      received >= ordered
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from uuid import UUID

ZERO = Decimal("0")


class CoverageState(str, Enum):
    UNKNOWN = "unknown"
    NOT_RECEIVED = "not_received"
    PARTIAL = "partial"
    RECEIVED = "received"


def qty_received_total(quantities: Iterable[Decimal | None]) -> Decimal:
    return sum((q for q in quantities if q is not None), ZERO)


def qty_open_remaining(qty_ordered: Decimal | None, received: Decimal) -> Decimal:
    if qty_ordered is None:
        return ZERO
    return max(ZERO, qty_ordered - received)


def coverage_state(qty_ordered: Decimal | None, received: Decimal) -> CoverageState:
    if qty_ordered is None or qty_ordered == 0:
        return CoverageState.UNKNOWN
    if received <= 0:
        return CoverageState.NOT_RECEIVED
    if received < qty_ordered:
        return CoverageState.PARTIAL
    return CoverageState.RECEIVED


@dataclass(frozen=True)
class LineCoverage:
    """Coverage of a single PO line."""

    po_line_id: UUID
    purchase_order_id: UUID
    qty_ordered: Decimal
    unit_cost: Decimal
    qty_received_total: Decimal
    qty_open_remaining: Decimal
    state: CoverageState

    @property
    def extended_cost(self) -> Decimal:
        return self.qty_ordered * self.unit_cost


def compute_line_coverage(
    po_line_id: UUID,
    purchase_order_id: UUID,
    qty_ordered: Decimal | None,
    unit_cost: Decimal | None,
    received_quantities: Iterable[Decimal | None],
) -> LineCoverage:
    received = qty_received_total(received_quantities)
    return LineCoverage(
        po_line_id=po_line_id,
        purchase_order_id=purchase_order_id,
        qty_ordered=qty_ordered if qty_ordered is not None else ZERO,
        unit_cost=unit_cost if unit_cost is not None else ZERO,
        qty_received_total=received,
        qty_open_remaining=qty_open_remaining(qty_ordered, received),
        state=coverage_state(qty_ordered, received),
    )


@dataclass(frozen=True)
class CoverageRollup:
    """Aggregate over a set of PO lines (one PO, or every PO of a vendor)."""

    line_count: int = 0
    committed_total: Decimal = ZERO
    qty_ordered_total: Decimal = ZERO
    qty_received_total: Decimal = ZERO
    qty_open_total: Decimal = ZERO
    lines_received: int = 0
    lines_partial: int = 0
    lines_not_received: int = 0
    lines_unknown: int = 0
    lines: tuple[LineCoverage, ...] = field(default=())

    @property
    def fully_received(self) -> bool:
        return self.line_count > 0 and self.lines_received == self.line_count


def rollup(lines: Iterable[LineCoverage]) -> CoverageRollup:
    lines = tuple(lines)
    counts = {state: 0 for state in CoverageState}
    for line in lines:
        counts[line.state] += 1
    return CoverageRollup(
        line_count=len(lines),
        committed_total=sum((l.extended_cost for l in lines), ZERO),
        qty_ordered_total=sum((l.qty_ordered for l in lines), ZERO),
        qty_received_total=sum((l.qty_received_total for l in lines), ZERO),
        qty_open_total=sum((l.qty_open_remaining for l in lines), ZERO),
        lines_received=counts[CoverageState.RECEIVED],
        lines_partial=counts[CoverageState.PARTIAL],
        lines_not_received=counts[CoverageState.NOT_RECEIVED],
        lines_unknown=counts[CoverageState.UNKNOWN],
        lines=lines,
    )
