"""Pure domain layer: roles, authorization gate, numbering, workflows, coverage."""

from purchasing_kernel.domain.authorization import (
    ApprovalPolicy,
    can_approve_pr,
    can_convert_pr,
    can_issue_po,
    can_manage_roles,
    can_receive,
    can_reconcile,
)
from purchasing_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from purchasing_kernel.domain.coverage import CoverageRollup, CoverageState, LineCoverage
from purchasing_kernel.domain.numbering import (
    NumberingScheme,
    format_document_number,
    format_yearly_document_number,
)
from purchasing_kernel.domain.roles import Role
from purchasing_kernel.domain.values import UNSET
from purchasing_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "ApprovalPolicy",
    "Clock",
    "CoverageRollup",
    "CoverageState",
    "DeterministicClock",
    "Guard",
    "LineCoverage",
    "NumberingScheme",
    "Role",
    "SystemClock",
    "Transition",
    "UNSET",
    "Workflow",
    "can_approve_pr",
    "can_convert_pr",
    "can_issue_po",
    "can_manage_roles",
    "can_receive",
    "can_reconcile",
    "format_document_number",
    "format_yearly_document_number",
]
