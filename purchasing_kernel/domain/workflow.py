"""
Canonical workflow types (``purchasing_kernel.domain.workflow``).

Pure value objects for the document state machines.  Each lifecycle module
declares its Workflow once in its ``workflows.py``; services ask the
Workflow whether an edge exists instead of hard-coding status checks.

Architecture position: Kernel > Domain.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Guard:
    """A condition that must hold before a transition fires (descriptive only)."""

    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""

    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle.

    ``transitions`` reference only states in ``states``; ``initial_state``
    is a member of ``states``.
    """

    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"{self.name}: initial state '{self.initial_state}' not in states"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"{self.name}: transition {t.from_state}->{t.to_state} "
                    "references unknown state"
                )

    def find(self, from_state: str, to_state: str, action: str | None = None) -> Transition | None:
        """Edge from ``from_state`` to ``to_state``, restricted to ``action`` when given."""
        for t in self.transitions:
            if t.from_state != from_state or t.to_state != to_state:
                continue
            if action is None or t.action == action:
                return t
        return None

    def can_transition(self, from_state: str, to_state: str, action: str | None = None) -> bool:
        return self.find(from_state, to_state, action) is not None

    def allowed_targets(self, from_state: str) -> tuple[str, ...]:
        return tuple(t.to_state for t in self.transitions if t.from_state == from_state)

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states
