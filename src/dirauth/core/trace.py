"""
DirAuth Decision Trace

Per-attempt record of the authentication decision's state transitions:

    Start -> ValidateInput -> {Disabled | Unmapped | Mapped} -> Result

Design Principles:
1. One trace per attempt, never shared between attempts
2. All state changes through explicit, table-checked transitions
3. Complete transition history for audit logging and tests
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Tuple
import json

import attrs
import structlog
from returns.result import Failure, Result, Success


class DecisionState(Enum):
    """States of a single authentication decision."""

    START = "Start"
    VALIDATE_INPUT = "ValidateInput"
    DISABLED = "Disabled"
    UNMAPPED = "Unmapped"
    MAPPED = "Mapped"
    RESULT = "Result"


ALLOWED_TRANSITIONS: FrozenSet[Tuple[DecisionState, DecisionState]] = frozenset({
    (DecisionState.START, DecisionState.VALIDATE_INPUT),
    # empty username or password
    (DecisionState.VALIDATE_INPUT, DecisionState.RESULT),
    (DecisionState.VALIDATE_INPUT, DecisionState.DISABLED),
    (DecisionState.VALIDATE_INPUT, DecisionState.UNMAPPED),
    (DecisionState.VALIDATE_INPUT, DecisionState.MAPPED),
    (DecisionState.DISABLED, DecisionState.RESULT),
    (DecisionState.UNMAPPED, DecisionState.RESULT),
    (DecisionState.MAPPED, DecisionState.RESULT),
})


@attrs.define(frozen=True, slots=True)
class Transition:
    """Immutable record of a state transition."""

    from_state: DecisionState
    to_state: DecisionState
    timestamp: datetime
    detail: Dict[str, Any] = attrs.Factory(dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "from_state": self.from_state.value,
            "to_state": self.to_state.value,
            "timestamp": self.timestamp.isoformat(),
            "detail": self.detail,
        }


@attrs.define
class DecisionTrace:
    """
    Transition history of one authentication attempt.

    Usage:
        trace = DecisionTrace()
        trace.advance(DecisionState.VALIDATE_INPUT)
        trace.advance(DecisionState.MAPPED, domain_id=7)
        trace.advance(DecisionState.RESULT, authenticated=True)
    """

    _state: DecisionState = attrs.field(default=DecisionState.START, alias="_state")
    _history: List[Transition] = attrs.field(factory=list, alias="_history")
    _logger: Any = attrs.field(factory=lambda: structlog.get_logger(), alias="_logger")

    @property
    def state(self) -> DecisionState:
        """Current state (read-only)."""
        return self._state

    @property
    def is_complete(self) -> bool:
        return self._state is DecisionState.RESULT

    def advance(self, to_state: DecisionState, **detail: Any) -> Result[DecisionState, str]:
        """
        Move to the next state.

        Returns:
            Success(new_state) if the transition is allowed
            Failure(error_message) otherwise; the trace is left unchanged
        """
        if (self._state, to_state) not in ALLOWED_TRANSITIONS:
            self._logger.warning(
                "invalid_transition",
                current_state=self._state.value,
                requested_state=to_state.value,
            )
            return Failure(
                f"No transition from {self._state.value} to {to_state.value}"
            )

        self._history.append(
            Transition(
                from_state=self._state,
                to_state=to_state,
                timestamp=datetime.now(timezone.utc),
                detail=dict(detail),
            )
        )
        self._logger.debug(
            "decision_transition",
            from_state=self._state.value,
            to_state=to_state.value,
            **detail,
        )
        self._state = to_state
        return Success(to_state)

    def get_trace(self) -> List[Transition]:
        """Return a copy of the transition history."""
        return list(self._history)

    def states(self) -> List[DecisionState]:
        """Visited states in order, starting with Start."""
        visited = [DecisionState.START]
        visited.extend(t.to_state for t in self._history)
        return visited

    def export_trace_json(self) -> str:
        """Export trace as JSON string."""
        return json.dumps(
            {
                "final_state": self._state.value,
                "states": [s.value for s in self.states()],
                "transitions": [t.to_dict() for t in self._history],
            },
            indent=2,
            default=str,
        )


def verify_trace(trace: List[Transition]) -> List[str]:
    """
    Check a transition history against the allowed transitions.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []
    expected_from = DecisionState.START

    for i, t in enumerate(trace):
        if t.from_state is not expected_from:
            errors.append(
                f"Transition {i}: starts at {t.from_state.value}, "
                f"expected {expected_from.value}"
            )
        if (t.from_state, t.to_state) not in ALLOWED_TRANSITIONS:
            errors.append(
                f"Transition {i}: Invalid transition "
                f"{t.from_state.value} --> {t.to_state.value}"
            )
        expected_from = t.to_state

    return errors
