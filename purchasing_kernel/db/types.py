"""
Module: purchasing_kernel.db.types
Responsibility: Annotated column aliases and the quantity/cost helpers shared
    by every document model, so lines, rollups and the approval gate all use
    identical precision.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and selectors/.  MUST NOT import from any of those layers.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Annotated

from sqlalchemy import Numeric, String

# Quantities and unit costs: 38 digits, 9 decimal places
Quantity = Annotated[Decimal, Numeric(38, 9)]
Money = Annotated[Decimal, Numeric(38, 9)]

# Document numbers such as PR-2024-0007 or PO-000042
DocumentNumber = Annotated[str, String(32)]

ShortCode = Annotated[str, String(50)]
Name = Annotated[str, String(255)]
LongText = Annotated[str, String(4000)]

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    """Coerce int/str/Decimal input to Decimal.

    Floats go through ``str`` so 0.1 becomes Decimal("0.1"), not its
    binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def extended_cost(qty: Decimal | None, unit_cost: Decimal | None) -> Decimal:
    """qty x unit cost; a missing cost or quantity contributes zero."""
    if qty is None or unit_cost is None:
        return ZERO
    return to_decimal(qty) * to_decimal(unit_cost)


def round_money(amount: Decimal, places: int = MONEY_DECIMAL_PLACES) -> Decimal:
    """Round a monetary amount for display and comparison."""
    quantum = Decimal(1).scaleb(-places)
    return to_decimal(amount).quantize(quantum, rounding=DEFAULT_ROUNDING)
