"""
Purchasing Modules.

The three document lifecycles built on the purchasing kernel.  Each
subpackage contains:
- Domain models (frozen DTOs and status enums)
- ORM persistence models
- Workflows (state machines)
- A service owning the lifecycle operations

Modules:
- Requests: purchase requests, approval, conversion to a PO
- Orders: purchase orders and their lines
- Receiving: receipts, reconciliation, PO line coverage
"""

from purchasing_modules import orders, receiving, requests

__all__ = [
    "orders",
    "receiving",
    "requests",
]
