"""Domain enumerations for Match Log."""
from __future__ import annotations

from enum import Enum


class ToggleState(str, Enum):
    """Lifecycle of one optimistic preference toggle on the client."""

    IDLE = "idle"
    PENDING_SYNC = "pending_sync"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"

    @property
    def is_terminal(self) -> bool:
        return self in (ToggleState.CONFIRMED, ToggleState.ROLLED_BACK)

    def can_transition_to(self, target: "ToggleState") -> bool:
        return target in _TOGGLE_TRANSITIONS[self]


_TOGGLE_TRANSITIONS: dict[ToggleState, frozenset[ToggleState]] = {
    ToggleState.IDLE: frozenset({ToggleState.PENDING_SYNC}),
    ToggleState.PENDING_SYNC: frozenset({ToggleState.CONFIRMED, ToggleState.ROLLED_BACK}),
    ToggleState.CONFIRMED: frozenset(),
    ToggleState.ROLLED_BACK: frozenset(),
}


class SyncOutcome(str, Enum):
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"
