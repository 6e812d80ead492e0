"""
Small value helpers shared by the lifecycle services.

``UNSET`` distinguishes "field not supplied" from "field supplied as None"
in partial updates: an omitted keyword keeps the stored value, an explicit
``None`` clears it.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Final
from uuid import UUID

from purchasing_kernel.exceptions import ValidationError


class _Unset:
    """Sentinel type for omitted keyword arguments."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self):
        return (_Unset, ())


UNSET: Final = _Unset()


def require_text(field: str, value: str | None) -> str:
    """Strip and require a non-blank string."""
    if value is None or not str(value).strip():
        raise ValidationError(field, "is required")
    return str(value).strip()


def clean_text(value: str | None) -> str | None:
    """Strip a free-text value; blank collapses to None."""
    if value is None:
        return None
    stripped = str(value).strip()
    return stripped or None


def require_non_negative(field: str, value: Any, *, allow_none: bool = False) -> Decimal | None:
    """
    Coerce to Decimal and require ``>= 0``.

    Raises ValidationError for None (unless ``allow_none``), non-numeric
    input, NaN/infinity and negative values.
    """
    if value is None:
        if allow_none:
            return None
        raise ValidationError(field, "is required")
    if isinstance(value, bool):
        raise ValidationError(field, "must be a number")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(field, "must be a number") from exc
    if not amount.is_finite():
        raise ValidationError(field, "must be a finite number")
    if amount < 0:
        raise ValidationError(field, "must be >= 0")
    return amount


def require_int(field: str, value: Any, *, default: int = 0) -> int:
    """Coerce to int; None becomes ``default``."""
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValidationError(field, "must be an integer")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ValidationError(field, "must be an integer") from exc


def optional_date(field: str, value: Any) -> date | None:
    """Accept a date, a datetime (its date part) or an ISO ``YYYY-MM-DD`` string."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError as exc:
            raise ValidationError(field, "must be an ISO date") from exc
    raise ValidationError(field, "must be a date")


def optional_uuid(field: str, value: Any) -> UUID | None:
    if value is None:
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise ValidationError(field, "must be a UUID") from exc
