"""
Bakery Workflow Primitive — Generic State Machine
====================================================
Deterministic state machine definitions used by engines that
track lifecycle state.

Used by:
    Order Engine — NEW → CONFIRMED → IN_PRODUCTION → READY
                   → OUT_FOR_DELIVERY → COMPLETED, plus the
                   CANCELLED and REFUNDED exit states

RULES (NON-NEGOTIABLE):
- State transitions are deterministic (same input → same output)
- Invalid transitions are rejected — no silent state skips
- Every transition is recorded with actor + timestamp
- State machine definition is immutable (frozen)

This file contains NO persistence logic.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, Optional, Tuple

from core.primitives.fulfillment import (
    ORDER_STATUS_SEQUENCE,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_CONFIRMED,
    STATUS_IN_PRODUCTION,
    STATUS_NEW,
    STATUS_OUT_FOR_DELIVERY,
    STATUS_READY,
    STATUS_REFUNDED,
)


# ══════════════════════════════════════════════════════════════
# TRANSITION RECORD
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StateTransition:
    """
    An immutable record of a single state transition.
    """
    from_state: str
    to_state: str
    actor_id: str
    transitioned_at: datetime
    reason: str = ""

    def __post_init__(self):
        if not self.from_state or not isinstance(self.from_state, str):
            raise ValueError("from_state must be non-empty string.")
        if not self.to_state or not isinstance(self.to_state, str):
            raise ValueError("to_state must be non-empty string.")
        if not self.actor_id or not isinstance(self.actor_id, str):
            raise ValueError("actor_id must be non-empty string.")
        if not isinstance(self.transitioned_at, datetime):
            raise ValueError("transitioned_at must be datetime.")

    def to_dict(self) -> dict:
        return {
            "from_state": self.from_state,
            "to_state": self.to_state,
            "actor_id": self.actor_id,
            "transitioned_at": self.transitioned_at.isoformat(),
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StateTransition":
        return cls(
            from_state=data["from_state"],
            to_state=data["to_state"],
            actor_id=data["actor_id"],
            transitioned_at=datetime.fromisoformat(data["transitioned_at"]),
            reason=data.get("reason", ""),
        )


# ══════════════════════════════════════════════════════════════
# WORKFLOW DEFINITION (state machine schema)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class WorkflowDefinition:
    """
    Defines the valid states and transitions for a workflow type.

    Fields:
        name:            Identifier for this workflow type (e.g. "Order")
        initial_state:   Starting state for all new instances
        terminal_states: States from which the forward sequence has ended
        transitions:     Dict of {from_state → frozenset(allowed_to_states)}
        sequence:        The ordered forward path walked one step at a time

    A terminal state may still list escape transitions (e.g.
    COMPLETED → REFUNDED). "Terminal" means no forward progress
    and no cancellation.
    """
    name: str
    initial_state: str
    terminal_states: FrozenSet[str]
    transitions: Dict[str, FrozenSet[str]]
    sequence: Tuple[str, ...] = ()

    def __post_init__(self):
        if not self.name:
            raise ValueError("Workflow name must be non-empty.")
        if not self.initial_state:
            raise ValueError("initial_state must be non-empty.")
        if self.initial_state not in self.transitions:
            raise ValueError(
                f"initial_state '{self.initial_state}' not in transitions."
            )
        for state in self.sequence:
            if state not in self.transitions:
                raise ValueError(f"sequence state '{state}' not in transitions.")

    def is_valid_transition(self, from_state: str, to_state: str) -> bool:
        """Check if a transition is allowed by this definition."""
        allowed = self.transitions.get(from_state, frozenset())
        return to_state in allowed

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states

    def next_forward_state(self, from_state: str) -> Optional[str]:
        """The single next step along the sequence, or None at the end."""
        if self.is_terminal(from_state) or from_state not in self.sequence:
            return None
        idx = self.sequence.index(from_state)
        if idx + 1 >= len(self.sequence):
            return None
        return self.sequence[idx + 1]


# ══════════════════════════════════════════════════════════════
# ORDER WORKFLOW (canonical bakery order state machine)
# ══════════════════════════════════════════════════════════════

_EXITS = frozenset({STATUS_CANCELLED, STATUS_REFUNDED})

ORDER_WORKFLOW = WorkflowDefinition(
    name="Order",
    initial_state=STATUS_NEW,
    terminal_states=frozenset({STATUS_COMPLETED, STATUS_CANCELLED, STATUS_REFUNDED}),
    transitions={
        STATUS_NEW: frozenset({STATUS_CONFIRMED}) | _EXITS,
        STATUS_CONFIRMED: frozenset({STATUS_IN_PRODUCTION}) | _EXITS,
        STATUS_IN_PRODUCTION: frozenset({STATUS_READY}) | _EXITS,
        STATUS_READY: frozenset({STATUS_OUT_FOR_DELIVERY}) | _EXITS,
        STATUS_OUT_FOR_DELIVERY: frozenset({STATUS_COMPLETED}) | _EXITS,
        # Paid orders can still be refunded after completion or cancellation.
        STATUS_COMPLETED: frozenset({STATUS_REFUNDED}),
        STATUS_CANCELLED: frozenset({STATUS_REFUNDED}),
        STATUS_REFUNDED: frozenset(),
    },
    sequence=ORDER_STATUS_SEQUENCE,
)
