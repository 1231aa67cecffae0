"""State machine for the request executor lifecycle."""

from enum import Enum

import structlog

from fetchcat.request.errors import AlreadyExecutedError, NotReadyError


logger = structlog.get_logger()


class ExecutorState(str, Enum):
    """Lifecycle state of a RequestExecutor.

    - CONFIGURING: Accepting configuration, not yet executed
    - EXECUTING: Attempts in progress
    - SUCCEEDED: An attempt succeeded (terminal)
    - FAILED: All attempts failed (terminal)
    """

    CONFIGURING = "CONFIGURING"
    EXECUTING = "EXECUTING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


# Valid state transitions
_VALID_TRANSITIONS: dict[ExecutorState, set[ExecutorState]] = {
    ExecutorState.CONFIGURING: {ExecutorState.EXECUTING},
    ExecutorState.EXECUTING: {ExecutorState.SUCCEEDED, ExecutorState.FAILED},
    ExecutorState.SUCCEEDED: set(),  # Terminal state
    ExecutorState.FAILED: set(),  # Terminal state
}


class ExecutorStateTransitionError(Exception):
    """Raised when an illegal state transition is attempted."""

    def __init__(self, from_state: ExecutorState, to_state: ExecutorState) -> None:
        """Initialize the transition error.

        Args:
            from_state: Current state.
            to_state: Attempted target state.
        """
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Illegal executor state transition: {from_state.value} -> {to_state.value}"
        )


class ExecutorStateMachine:
    """Guards which executor operations are legal in the current state.

    Configuration is only accepted while CONFIGURING. Response accessors
    are legal as soon as execution has started, whatever its outcome.
    """

    def __init__(self, initial_state: ExecutorState = ExecutorState.CONFIGURING) -> None:
        self._state = initial_state
        self._log = logger.bind(component="request", subcomponent="state")

    @property
    def state(self) -> ExecutorState:
        """Get the current state."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        """Check if current state is terminal."""
        return self._state in (ExecutorState.SUCCEEDED, ExecutorState.FAILED)

    @property
    def has_started(self) -> bool:
        """Check if execution has been entered at least once."""
        return self._state is not ExecutorState.CONFIGURING

    def can_transition_to(self, target: ExecutorState) -> bool:
        """Check if a transition to the target state is valid.

        Args:
            target: The target state.

        Returns:
            True if the transition is valid.
        """
        return target in _VALID_TRANSITIONS.get(self._state, set())

    def transition_to(self, target: ExecutorState) -> None:
        """Transition to a new state.

        Args:
            target: The target state.

        Raises:
            ExecutorStateTransitionError: If the transition is invalid.
        """
        if not self.can_transition_to(target):
            self._log.error(
                "illegal_state_transition",
                from_state=self._state.value,
                to_state=target.value,
            )
            raise ExecutorStateTransitionError(self._state, target)

        old_state = self._state
        self._state = target
        self._log.debug(
            "state_transition",
            from_state=old_state.value,
            to_state=target.value,
        )

    def begin(self) -> None:
        """Enter EXECUTING.

        Raises:
            AlreadyExecutedError: If execution was already entered.
        """
        if self.has_started:
            msg = f"fetch already done (state {self._state.value})"
            raise AlreadyExecutedError(msg)
        self.transition_to(ExecutorState.EXECUTING)

    def succeed(self) -> None:
        """Transition to SUCCEEDED."""
        self.transition_to(ExecutorState.SUCCEEDED)

    def fail(self) -> None:
        """Transition to FAILED."""
        self.transition_to(ExecutorState.FAILED)

    def require_configuring(self) -> None:
        """Ensure configuration is still accepted.

        Raises:
            AlreadyExecutedError: If execution has started.
        """
        if self.has_started:
            msg = f"cannot configure after fetch (state {self._state.value})"
            raise AlreadyExecutedError(msg)

    def require_started(self) -> None:
        """Ensure response accessors are legal.

        Raises:
            NotReadyError: If execution has not started.
        """
        if not self.has_started:
            msg = "fetch not done"
            raise NotReadyError(msg)
