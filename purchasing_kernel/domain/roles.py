"""
Role -- the closed enumeration of actor roles.

Roles are stored as their string value.  ``Role.parse`` is the only way
free text becomes a Role, so a typo can never silently widen access.
"""

from enum import Enum

from purchasing_kernel.exceptions import ValidationError


class Role(str, Enum):
    USER = "user"
    PM = "pm"
    SUPER = "super"
    OPS = "ops"
    EXECUTIVE = "executive"
    ACCOUNTING = "accounting"
    SHOP = "shop"
    PURCHASING = "purchasing"
    ADMIN = "admin"
    COMMANDANT = "commandant"

    @classmethod
    def parse(cls, value: "str | Role") -> "Role":
        if isinstance(value, Role):
            return value
        normalized = str(value).strip().lower() if value is not None else ""
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ValidationError("role", f"unknown role '{value}'") from exc
