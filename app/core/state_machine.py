"""Generic State Machine for status transitions.

This module provides a reusable state machine pattern for managing
status transitions, used by the publish pipeline to track each run.

Example:
    # Define transitions
    TRANSITIONS: TransitionMap[RunState] = {
        RunState.IDLE: [RunState.AUTHENTICATING, RunState.FAILED],
        RunState.AUTHENTICATING: [RunState.FETCHING, RunState.CLEANING_UP, RunState.FAILED],
        ...
    }

    # Create state machine
    sm = StateMachine(RunState.IDLE, TRANSITIONS)

    # Check and perform transitions
    if sm.can_transition(RunState.AUTHENTICATING):
        sm.transition(RunState.AUTHENTICATING)

    # Or use transition_to for simpler API
    sm.transition_to(RunState.FETCHING)
"""

from enum import Enum
from typing import Generic, TypeVar

from app.core.exceptions import ReelayError

T = TypeVar("T", bound=str | Enum)

# Type alias for transition maps
TransitionMap = dict[T, list[T]]


class InvalidTransitionError(ReelayError):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, current: T, target: T, allowed: list[T] | None = None):
        self.current = current
        self.target = target
        self.allowed = allowed or []
        self.error_code = "INVALID_TRANSITION"
        allowed_str = ", ".join(str(s) for s in self.allowed) if self.allowed else "none"
        super().__init__(
            message=f"Invalid transition from '{current}' to '{target}'. "
            f"Allowed transitions: {allowed_str}",
            context={
                "current": str(current),
                "target": str(target),
                "allowed": [str(s) for s in self.allowed],
            },
        )


class StateMachine(Generic[T]):
    """Generic state machine for status transitions.

    Provides a type-safe way to manage status transitions with
    explicit allowed transitions defined upfront.

    Attributes:
        current: Current state
        transitions: Map of allowed transitions from each state
        history: States visited, in order
    """

    def __init__(self, initial: T, transitions: TransitionMap[T]):
        """Initialize state machine.

        Args:
            initial: Initial state
            transitions: Map of state -> list of allowed target states
        """
        self._current = initial
        self._transitions = transitions
        self._history: list[T] = [initial]

    @property
    def current(self) -> T:
        """Get current state."""
        return self._current

    @property
    def history(self) -> list[T]:
        """Get the states visited so far, including the current one."""
        return list(self._history)

    @property
    def allowed_transitions(self) -> list[T]:
        """Get list of states we can transition to from current state."""
        return self._transitions.get(self._current, [])

    @property
    def is_terminal(self) -> bool:
        """Check whether the current state has no outgoing transitions."""
        return not self.allowed_transitions

    def can_transition(self, target: T) -> bool:
        """Check if transition to target state is allowed.

        Args:
            target: Target state to check

        Returns:
            True if transition is allowed, False otherwise
        """
        return target in self.allowed_transitions

    def transition(self, target: T) -> None:
        """Perform transition to target state.

        Args:
            target: Target state

        Raises:
            InvalidTransitionError: If transition is not allowed
        """
        if not self.can_transition(target):
            raise InvalidTransitionError(
                current=self._current,
                target=target,
                allowed=self.allowed_transitions,
            )
        self._current = target
        self._history.append(target)

    def transition_to(self, target: T) -> T:
        """Perform transition and return new state.

        Args:
            target: Target state

        Returns:
            The new current state (same as target)

        Raises:
            InvalidTransitionError: If transition is not allowed
        """
        self.transition(target)
        return self._current

    def __str__(self) -> str:
        return f"StateMachine(current={self._current})"

    def __repr__(self) -> str:
        return f"StateMachine(current={self._current!r}, allowed={self.allowed_transitions!r})"


# ============================================
# Predefined Transition Maps
# ============================================


def get_run_transitions() -> TransitionMap:
    """Get transition map for RunState.

    Every non-terminal state may fail. Steps that can own resources route
    failures through CLEANING_UP.
    """
    from app.models.publish import RunState

    return {
        RunState.IDLE: [RunState.AUTHENTICATING, RunState.FAILED],
        RunState.AUTHENTICATING: [RunState.FETCHING, RunState.CLEANING_UP, RunState.FAILED],
        RunState.FETCHING: [RunState.STAGING, RunState.CLEANING_UP, RunState.FAILED],
        RunState.STAGING: [RunState.MATERIALIZING, RunState.CLEANING_UP, RunState.FAILED],
        RunState.MATERIALIZING: [RunState.PUBLISHING, RunState.CLEANING_UP, RunState.FAILED],
        RunState.PUBLISHING: [RunState.CLEANING_UP, RunState.FAILED],
        RunState.CLEANING_UP: [RunState.COMPLETED, RunState.FAILED],
        RunState.COMPLETED: [],  # Terminal state
        RunState.FAILED: [],  # Terminal state
    }


# ============================================
# Factory Functions
# ============================================


def create_run_state_machine(initial_state: str | None = None) -> StateMachine:
    """Create a state machine for a publish run.

    Args:
        initial_state: Initial state (default: IDLE)

    Returns:
        Configured StateMachine for a run
    """
    from app.models.publish import RunState

    initial = RunState(initial_state) if initial_state else RunState.IDLE
    return StateMachine(initial, get_run_transitions())
