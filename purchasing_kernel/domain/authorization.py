"""
Authorization gate -- pure permission predicates over Role (+ amount).

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.  The approval threshold is
    passed in as an ``ApprovalPolicy`` value; the gate never looks it up.

Rules:
    can_approve_pr   below threshold: purchasing, ops, executive, accounting,
                     admin, commandant.  At or above threshold: executive,
                     accounting, admin, commandant.
    can_issue_po     purchasing, ops, accounting, executive, admin, commandant
    can_reconcile    same tier as can_issue_po
    can_receive      shop, super, ops, admin, commandant
    can_manage_roles admin, commandant
    can_convert_pr   can_issue_po, or can_approve_pr for the PR total
"""

from dataclasses import dataclass
from decimal import Decimal

from purchasing_kernel.domain.roles import Role

DEFAULT_APPROVAL_THRESHOLD = Decimal("1000")

HIGH_VALUE_APPROVERS: frozenset[Role] = frozenset({
    Role.EXECUTIVE,
    Role.ACCOUNTING,
    Role.ADMIN,
    Role.COMMANDANT,
})

STANDARD_APPROVERS: frozenset[Role] = HIGH_VALUE_APPROVERS | {
    Role.PURCHASING,
    Role.OPS,
}

PO_ISSUERS: frozenset[Role] = frozenset({
    Role.PURCHASING,
    Role.OPS,
    Role.ACCOUNTING,
    Role.EXECUTIVE,
    Role.ADMIN,
    Role.COMMANDANT,
})

RECEIVERS: frozenset[Role] = frozenset({
    Role.SHOP,
    Role.SUPER,
    Role.OPS,
    Role.ADMIN,
    Role.COMMANDANT,
})

RECONCILERS: frozenset[Role] = PO_ISSUERS

ROLE_MANAGERS: frozenset[Role] = frozenset({Role.ADMIN, Role.COMMANDANT})


@dataclass(frozen=True)
class ApprovalPolicy:
    """PR approval threshold; totals at or above it need a high-value approver."""

    threshold: Decimal = DEFAULT_APPROVAL_THRESHOLD

    def __post_init__(self) -> None:
        if not isinstance(self.threshold, Decimal):
            object.__setattr__(self, "threshold", Decimal(str(self.threshold)))
        if self.threshold < 0:
            raise ValueError("Approval threshold must be >= 0")

    def is_high_value(self, total: Decimal) -> bool:
        return total >= self.threshold


def can_approve_pr(
    role: Role,
    pr_total: Decimal,
    policy: ApprovalPolicy | None = None,
) -> bool:
    """Approve/reject permission for a PR with the given estimated total."""
    policy = policy or ApprovalPolicy()
    if policy.is_high_value(pr_total):
        return role in HIGH_VALUE_APPROVERS
    return role in STANDARD_APPROVERS


def can_issue_po(role: Role) -> bool:
    return role in PO_ISSUERS


def can_receive(role: Role) -> bool:
    return role in RECEIVERS


def can_reconcile(role: Role) -> bool:
    return role in RECONCILERS


def can_manage_roles(role: Role) -> bool:
    return role in ROLE_MANAGERS


def can_convert_pr(
    role: Role,
    pr_total: Decimal,
    policy: ApprovalPolicy | None = None,
) -> bool:
    """PR -> PO conversion: PO-issuance tier or PR-approval tier."""
    return can_issue_po(role) or can_approve_pr(role, pr_total, policy)
