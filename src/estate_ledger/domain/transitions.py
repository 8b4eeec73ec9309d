"""Explicit transition tables for the estate's state machines.

Every status change on a Debt, AssetLiquidation, GiftInterVivos, Asset or
Estate goes through a TransitionTable lookup keyed by (state, action).
A pair that is not in the table is rejected with InvalidTransitionError.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from estate_ledger.exceptions import InvalidTransitionError


@dataclass(frozen=True)
class TransitionTable:
    machine: str
    transitions: Mapping[tuple[Enum, str], Enum]
    terminal_states: frozenset[Enum] = field(default_factory=frozenset)

    def allows(self, current: Enum, action: str) -> bool:
        return (current, action) in self.transitions

    def next_state(self, current: Enum, action: str, subject_id: UUID | str) -> Enum:
        try:
            return self.transitions[(current, action)]
        except KeyError:
            raise InvalidTransitionError(
                self.machine, current.value, action, subject_id
            ) from None

    def require(self, current: Enum, action: str, subject_id: UUID | str) -> None:
        self.next_state(current, action, subject_id)

    def actions_from(self, current: Enum) -> set[str]:
        return {action for (state, action) in self.transitions if state == current}

    def successors(self, current: Enum) -> set[Enum]:
        return {
            target for (state, _), target in self.transitions.items() if state == current
        }

    def reachable_from(self, start: Enum) -> set[Enum]:
        seen: set[Enum] = {start}
        frontier = [start]
        while frontier:
            state = frontier.pop()
            for target in self.successors(state):
                if target not in seen:
                    seen.add(target)
                    frontier.append(target)
        return seen

    def is_terminal(self, state: Enum) -> bool:
        return state in self.terminal_states


def build_table(
    machine: str,
    rows: Iterable[tuple[Enum, str, Enum]],
    terminal_states: Iterable[Enum] = (),
) -> TransitionTable:
    """Build a TransitionTable from (from_state, action, to_state) rows."""
    transitions: dict[tuple[Enum, str], Enum] = {}
    for from_state, action, to_state in rows:
        transitions[(from_state, action)] = to_state
    return TransitionTable(
        machine=machine,
        transitions=transitions,
        terminal_states=frozenset(terminal_states),
    )


__all__ = ["TransitionTable", "build_table"]
