"""
State machine value objects.

A ``Workflow`` is a declared state set plus a transition table.  Any move
not in the table is illegal; there is no implicit edge.  Construction
fails fast on a table that names an undeclared state or lets a terminal
state move on.  Pure, no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Transition:
    from_state: str
    to_state: str
    action: str


@dataclass(frozen=True)
class Workflow:
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()
    _edges: dict[tuple[str, str], Transition] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        declared = set(self.states)
        problems: list[str] = []
        if self.initial_state not in declared:
            problems.append(f"initial state {self.initial_state!r} is not a declared state")
        for t in self.transitions:
            if not {t.from_state, t.to_state} <= declared:
                problems.append(
                    f"transition {t.from_state!r} -> {t.to_state!r} "
                    "references an undeclared state"
                )
        for state in self.terminal_states:
            if any(t.from_state == state for t in self.transitions):
                problems.append(f"terminal state {state!r} has outgoing transitions")
        if problems:
            raise ValueError(f"Workflow {self.name}: " + "; ".join(problems))

        object.__setattr__(
            self, "_edges", {(t.from_state, t.to_state): t for t in self.transitions}
        )

    def transitions_from(self, state: str) -> tuple[Transition, ...]:
        """Outgoing transitions of ``state`` in declaration order."""
        return tuple(t for t in self.transitions if t.from_state == state)

    def find_transition(self, from_state: str, to_state: str) -> Transition | None:
        return self._edges.get((from_state, to_state))

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states
