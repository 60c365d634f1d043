"""
Generic lifecycle state machine (``staff_portal.domain.lifecycle``).

Responsibility
--------------
Pure value objects describing a status lifecycle: the states, the
(from, action) -> to edges, and which states are terminal.  The onboarding
submission, HR acknowledgment and training completion workflows are each
one ``Lifecycle`` instance over their own status enum.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports from
``db/``, ``services/``, ``selectors/`` or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Lifecycle.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from staff_portal.exceptions import InvalidTransitionError

S = TypeVar("S", bound=Enum)


@dataclass(frozen=True)
class Guard:
    """A named precondition attached to a transition.

    Descriptive only; the owning service evaluates it.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition(Generic[S]):
    """One edge: ``from_state --action--> to_state``."""
    from_state: S
    to_state: S
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Lifecycle(Generic[S]):
    """A state machine definition for one workflow.

    Contract: frozen; validated at construction.
    """
    name: str
    description: str
    initial_state: S
    states: tuple[S, ...]
    transitions: tuple[Transition[S], ...]
    terminal_states: frozenset[S] = frozenset()
    _edges: dict[tuple[S, str], Transition[S]] = field(
        init=False, repr=False, compare=False,
    )

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"{self.name}: initial state {self.initial_state!r} not in states"
            )
        edges: dict[tuple[S, str], Transition[S]] = {}
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(f"{self.name}: transition {t!r} references unknown state")
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"{self.name}: terminal state {t.from_state.value!r} has outgoing edge"
                )
            key = (t.from_state, t.action)
            if key in edges:
                raise ValueError(f"{self.name}: duplicate edge {key!r}")
            edges[key] = t
        object.__setattr__(self, "_edges", edges)

    def is_terminal(self, state: S) -> bool:
        return state in self.terminal_states

    def can(self, state: S, action: str) -> bool:
        return (state, action) in self._edges

    def allowed_actions(self, state: S) -> frozenset[str]:
        return frozenset(action for (src, action) in self._edges if src == state)

    def sources_for(self, action: str) -> frozenset[S]:
        """All states from which ``action`` may fire."""
        return frozenset(src for (src, act) in self._edges if act == action)

    def transition_for(self, state: S, action: str) -> Transition[S]:
        """Return the edge for (state, action) or raise InvalidTransitionError."""
        try:
            return self._edges[(state, action)]
        except KeyError:
            raise InvalidTransitionError(self.name, state.value, action) from None

    def fire(self, state: S, action: str) -> S:
        """Return the target state of (state, action)."""
        return self.transition_for(state, action).to_state
