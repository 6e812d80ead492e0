"""
Typed exception hierarchy for the purchasing workflow engine.

Every error a lifecycle operation can raise is a subclass of
``PurchasingError`` with a machine-readable ``code`` class attribute and
structured attributes (entity ids, statuses, counts).  Callers catch by type
and read attributes; they never parse messages.

Hierarchy:

    PurchasingError (base)
    |
    +-- NotFoundError
    |   +-- ActorNotFoundError
    |   +-- ProjectNotFoundError
    |   +-- VendorNotFoundError
    |   +-- PurchaseRequestNotFoundError
    |   +-- PurchaseOrderNotFoundError
    |   +-- ReceiptNotFoundError
    |   +-- LineNotFoundError
    |
    +-- InvalidStateError
    |   +-- InvalidTransitionError
    |
    +-- InconsistentApprovalError
    |
    +-- ValidationError
    |   +-- UnlinkedReceiptLinesError
    |
    +-- AuthorizationError
    |
    +-- ConflictError
    |   +-- AlreadyConvertedError
    |
    +-- ImmutabilityViolationError

Codes:

Category      | Code                     | When raised
--------------|--------------------------|------------------------------------
Not found     | ACTOR_NOT_FOUND          | Actor id has no profile
              | PROJECT_NOT_FOUND        | Project id does not exist
              | VENDOR_NOT_FOUND         | Vendor id does not exist
              | PURCHASE_REQUEST_NOT_FOUND
              | PURCHASE_ORDER_NOT_FOUND |
              | RECEIPT_NOT_FOUND        |
              | LINE_NOT_FOUND           | Line id missing or owned elsewhere
State         | INVALID_STATE            | Operation forbidden in current status
              | INVALID_TRANSITION       | No edge from current to target status
              | INCONSISTENT_APPROVAL    | Approver fields disagree with PR status
Validation    | VALIDATION_ERROR         | Blank/missing field, negative value
              | UNLINKED_RECEIPT_LINES   | Reconcile with unlinked lines
Authorization | AUTHORIZATION_DENIED     | Role (and amount) fails the gate
Conflict      | CONFLICT                 | Uniqueness violation
              | ALREADY_CONVERTED        | PR already linked to a PO
Immutability  | IMMUTABILITY_VIOLATION   | Update/delete of append-only rows
"""

from decimal import Decimal


class PurchasingError(Exception):
    """Base exception for all purchasing workflow errors."""

    code: str = "PURCHASING_ERROR"


# Not-found errors


class NotFoundError(PurchasingError):
    """A referenced entity does not exist."""

    code: str = "NOT_FOUND"
    entity_label: str = "Entity"

    def __init__(self, entity_id: str):
        self.entity_id = str(entity_id)
        super().__init__(f"{self.entity_label} not found: {entity_id}")


class ActorNotFoundError(NotFoundError):
    code: str = "ACTOR_NOT_FOUND"
    entity_label = "Actor"


class ProjectNotFoundError(NotFoundError):
    code: str = "PROJECT_NOT_FOUND"
    entity_label = "Project"


class VendorNotFoundError(NotFoundError):
    code: str = "VENDOR_NOT_FOUND"
    entity_label = "Vendor"


class PurchaseRequestNotFoundError(NotFoundError):
    code: str = "PURCHASE_REQUEST_NOT_FOUND"
    entity_label = "Purchase request"


class PurchaseOrderNotFoundError(NotFoundError):
    code: str = "PURCHASE_ORDER_NOT_FOUND"
    entity_label = "Purchase order"


class ReceiptNotFoundError(NotFoundError):
    code: str = "RECEIPT_NOT_FOUND"
    entity_label = "Receipt"


class LineNotFoundError(NotFoundError):
    """Line id does not exist or does not belong to the given document."""

    code: str = "LINE_NOT_FOUND"
    entity_label = "Line"


# State errors


class InvalidStateError(PurchasingError):
    """Operation attempted while the entity is in a status that forbids it."""

    code: str = "INVALID_STATE"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_status: str,
        operation: str,
        detail: str | None = None,
    ):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.current_status = current_status
        self.operation = operation
        message = (
            f"Cannot {operation} {entity_type} {entity_id} "
            f"in status '{current_status}'"
        )
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class InvalidTransitionError(InvalidStateError):
    """No workflow edge from the current status to the requested one."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_status: str,
        target_status: str,
    ):
        self.target_status = target_status
        super().__init__(
            entity_type,
            entity_id,
            current_status,
            operation=f"transition to '{target_status}'",
        )


class InconsistentApprovalError(PurchasingError):
    """Approver fields disagree with the purchase request status."""

    code: str = "INCONSISTENT_APPROVAL"

    def __init__(self, pr_number: str, status: str):
        self.pr_number = pr_number
        self.status = status
        super().__init__(
            f"PR {pr_number}: approver fields out of step with status '{status}'"
        )


# Validation errors


class ValidationError(PurchasingError):
    """Missing/blank required field or out-of-range value."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class UnlinkedReceiptLinesError(ValidationError):
    """Receipt still has lines without a purchase order line link."""

    code: str = "UNLINKED_RECEIPT_LINES"

    def __init__(self, receipt_id: str, unlinked_count: int):
        self.receipt_id = str(receipt_id)
        self.unlinked_count = unlinked_count
        super().__init__(
            "po_line_id",
            f"Receipt still has {unlinked_count} unlinked lines",
        )


# Authorization errors


class AuthorizationError(PurchasingError):
    """
    Actor is not permitted to perform the operation.

    The message names the actor's role and the operation only; it never
    lists which roles would have succeeded.
    """

    code: str = "AUTHORIZATION_DENIED"

    def __init__(
        self,
        actor_id: str,
        role: str,
        operation: str,
        amount: Decimal | None = None,
    ):
        self.actor_id = str(actor_id)
        self.role = role
        self.operation = operation
        self.amount = amount
        message = f"Role '{role}' is not permitted to {operation}"
        if amount is not None:
            message = f"{message} for amount {amount}"
        super().__init__(message)


# Conflict errors


class ConflictError(PurchasingError):
    """Uniqueness violation."""

    code: str = "CONFLICT"

    def __init__(self, message: str):
        super().__init__(message)


class AlreadyConvertedError(ConflictError):
    """Purchase request already has a purchase order linked to it."""

    code: str = "ALREADY_CONVERTED"

    def __init__(self, purchase_request_id: str, purchase_order_id: str | None = None):
        self.purchase_request_id = str(purchase_request_id)
        self.purchase_order_id = (
            str(purchase_order_id) if purchase_order_id is not None else None
        )
        super().__init__(
            f"Purchase request {purchase_request_id} already converted to a purchase order"
        )


# Immutability errors


class ImmutabilityViolationError(PurchasingError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
