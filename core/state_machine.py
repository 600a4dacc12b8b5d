"""
State Machine
-------------
Tracks one invocation through the dispatch pipeline.
Every transition is validated and logged.

A fresh machine is created per invocation; nothing is shared between them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Callable, Dict, List, Optional, Set
import logging


class State(Enum):
    """Dispatch states for a single invocation."""
    IDLE = auto()              # Line received, trigger not yet checked
    TRIGGER_MATCHED = auto()   # Line starts with the global trigger
    TOOL_RESOLVED = auto()     # Tool word found in the catalog
    ENV_CHECKED = auto()       # Required env vars present
    DEPS_CHECKED = auto()      # Required executables present
    AUTHORIZED = auto()        # Channel may run the tool
    PARAMS_VALIDATED = auto()  # Every parameter accepted
    BUILT = auto()             # Final command composed
    EXECUTED = auto()          # Command ran
    RESPONDED = auto()         # Result (or help / farewell) delivered
    REJECTED = auto()          # A gate failed; one diagnostic sent


@dataclass
class StateTransition:
    """Record of a state transition."""
    from_state: State
    to_state: State
    timestamp: datetime
    reason: str
    metadata: Dict = field(default_factory=dict)

    def __repr__(self) -> str:
        return (
            f"StateTransition({self.from_state.name} → {self.to_state.name}, "
            f"reason='{self.reason}')"
        )


VALID_TRANSITIONS: Dict[State, Set[State]] = {
    State.IDLE: {State.TRIGGER_MATCHED},
    # RESPONDED: exit farewell; REJECTED: unknown tool
    State.TRIGGER_MATCHED: {State.TOOL_RESOLVED, State.RESPONDED, State.REJECTED},
    State.TOOL_RESOLVED: {State.ENV_CHECKED, State.REJECTED},
    State.ENV_CHECKED: {State.DEPS_CHECKED, State.REJECTED},
    # RESPONDED: help block; REJECTED: user lookup or authorization
    State.DEPS_CHECKED: {State.AUTHORIZED, State.RESPONDED, State.REJECTED},
    State.AUTHORIZED: {State.PARAMS_VALIDATED, State.REJECTED},
    State.PARAMS_VALIDATED: {State.BUILT},
    State.BUILT: {State.EXECUTED},
    State.EXECUTED: {State.RESPONDED},
    State.RESPONDED: set(),
    State.REJECTED: set(),
}

TERMINAL_STATES: Set[State] = {State.RESPONDED, State.REJECTED}


class StateMachine:
    """
    State machine for one dispatch.

    Responsibilities:
    - Track current state
    - Validate state transitions
    - Log all transitions
    - Notify listeners of state changes
    """

    def __init__(self, initial_state: State = State.IDLE):
        self._state = initial_state
        self._history: List[StateTransition] = []
        self._listeners: List[Callable[[StateTransition], None]] = []
        self._logger = logging.getLogger("bashbot.state")

    @property
    def state(self) -> State:
        """Get current state."""
        return self._state

    @property
    def history(self) -> List[StateTransition]:
        """Get transition history."""
        return self._history.copy()

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    def can_transition(self, to_state: State) -> bool:
        """Check if transition to given state is valid."""
        return to_state in VALID_TRANSITIONS.get(self._state, set())

    def transition(
        self,
        to_state: State,
        reason: str,
        metadata: Optional[Dict] = None
    ) -> StateTransition:
        """
        Transition to a new state.

        Raises:
            ValueError: If transition is not valid
        """
        if not self.can_transition(to_state):
            valid = VALID_TRANSITIONS.get(self._state, set())
            valid_names = sorted(s.name for s in valid)
            raise ValueError(
                f"Invalid transition: {self._state.name} → {to_state.name}. "
                f"Valid targets: {valid_names}"
            )

        transition = StateTransition(
            from_state=self._state,
            to_state=to_state,
            timestamp=datetime.now(),
            reason=reason,
            metadata=metadata or {}
        )

        old_state = self._state
        self._state = to_state
        self._history.append(transition)

        self._logger.debug(
            f"State transition: {old_state.name} → {to_state.name} "
            f"(reason: {reason})"
        )

        for listener in self._listeners:
            try:
                listener(transition)
            except Exception as e:
                self._logger.warning(f"Listener error: {e}")

        return transition

    def reject(self, reason: str, metadata: Optional[Dict] = None) -> StateTransition:
        """Shortcut for the early exit taken by every gate."""
        return self.transition(State.REJECTED, reason, metadata)

    def add_listener(self, callback: Callable[[StateTransition], None]) -> None:
        """Add a state change listener."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[StateTransition], None]) -> None:
        """Remove a state change listener."""
        if callback in self._listeners:
            self._listeners.remove(callback)

    def path(self) -> List[State]:
        """States visited so far, starting with the initial one."""
        if not self._history:
            return [self._state]
        return [self._history[0].from_state] + [t.to_state for t in self._history]

    def get_history_summary(self) -> str:
        """Get a human-readable summary of the transitions."""
        if not self._history:
            return "No transitions recorded."

        lines = ["State Transition History:", "-" * 40]
        for t in self._history:
            lines.append(
                f"  {t.timestamp.strftime('%H:%M:%S')} | "
                f"{t.from_state.name:16} → {t.to_state.name:16} | "
                f"{t.reason}"
            )
        return "\n".join(lines)
