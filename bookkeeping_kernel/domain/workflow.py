"""
Canonical workflow types (``bookkeeping_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for document state machines.  Used by the bill and
invoice modules so that Guard, Transition, and Workflow are defined once,
together with the lookup helpers every module needs.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/`` or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* An undeclared transition is rejected with ``InvalidTransitionError``;
  it never silently no-ops.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from bookkeeping_kernel.exceptions import InvalidTransitionError


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the module service does.
    """
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

    Contract: frozen; ``transitions`` reference only states in ``states``.
    Guarantees: ``initial_state`` is a member of ``states``.
    ``terminal_states`` are states with no outgoing transitions (optional).
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
                f"Workflow {self.name}: initial state {self.initial_state!r} "
                "is not a declared state"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.action!r} "
                    f"({t.from_state} -> {t.to_state}) references an undeclared state"
                )


def _state(value: str | Enum) -> str:
    return value.value if isinstance(value, Enum) else value


def find_transition(
    workflow: Workflow,
    current: str | Enum,
    target: str | Enum,
) -> Transition | None:
    """Return the declared transition from current to target, if any."""
    current, target = _state(current), _state(target)
    for t in workflow.transitions:
        if t.from_state == current and t.to_state == target:
            return t
    return None


def can_transition(workflow: Workflow, current: str | Enum, target: str | Enum) -> bool:
    """True iff the workflow declares current -> target."""
    return find_transition(workflow, current, target) is not None


def require_transition(
    workflow: Workflow,
    current: str | Enum,
    target: str | Enum,
) -> Transition:
    """
    Return the declared transition or raise.

    Raises:
        InvalidTransitionError: If current -> target is not declared.
    """
    transition = find_transition(workflow, current, target)
    if transition is None:
        raise InvalidTransitionError(workflow.name, _state(current), _state(target))
    return transition


def allowed_targets(workflow: Workflow, current: str | Enum) -> tuple[str, ...]:
    """All states reachable in one step from ``current``."""
    current = _state(current)
    return tuple(t.to_state for t in workflow.transitions if t.from_state == current)
