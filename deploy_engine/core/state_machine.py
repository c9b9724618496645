# deploy_engine/core/state_machine.py

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from deploy_engine.core.errors import InvalidStateTransition
from deploy_engine.core.models import DeployState


ALLOWED_TRANSITIONS = {
    DeployState.IDLE: {
        DeployState.SUBMITTED,
        DeployState.FAILED,
    },
    DeployState.SUBMITTED: {
        DeployState.APPLIED,
        DeployState.CHANGE_SET_EMPTY,
        DeployState.FAILED,
    },
    DeployState.CHANGE_SET_EMPTY: {
        DeployState.CHECKING_STALENESS,
    },
    DeployState.CHECKING_STALENESS: {
        DeployState.SKIPPED,
        DeployState.FORCE_UPDATING,
        DeployState.FAILED,
    },
    DeployState.FORCE_UPDATING: {
        DeployState.COMPLETED,
        DeployState.TIMED_OUT,
        DeployState.FAILED,
    },
}

TERMINAL_STATES = {
    DeployState.APPLIED,
    DeployState.CHANGE_SET_EMPTY,
    DeployState.FAILED,
    DeployState.SKIPPED,
    DeployState.COMPLETED,
    DeployState.TIMED_OUT,
}


@dataclass
class DeployRun:
    """Per-invocation record of where a deploy is in its lifecycle."""

    stack_name: str
    started_at: datetime
    state: DeployState = DeployState.IDLE
    history: List[Tuple[DeployState, datetime]] = field(default_factory=list)

    submitted_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    error_message: Optional[str] = None

    def is_finished(self) -> bool:
        return self.state in TERMINAL_STATES and self.finished_at is not None


class DeployStateMachine:
    @staticmethod
    def transition(
        run: DeployRun,
        new_state: DeployState,
        *,
        now: datetime,
        error_message: str | None = None,
    ) -> DeployRun:
        current = run.state

        if current == new_state:
            return run

        allowed = ALLOWED_TRANSITIONS.get(current, set())
        if new_state not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition from {current.value} to {new_state.value}"
            )

        if new_state == DeployState.SUBMITTED:
            run.submitted_at = now

        # CHANGE_SET_EMPTY is terminal only when no force update follows;
        # the deployer stamps finished_at when it stops there.
        if new_state in TERMINAL_STATES and new_state != DeployState.CHANGE_SET_EMPTY:
            run.finished_at = now

        if error_message is not None:
            run.error_message = error_message

        run.history.append((new_state, now))
        run.state = new_state
        return run

    @staticmethod
    def finish(run: DeployRun, *, now: datetime) -> DeployRun:
        """Mark a run finished in its current (terminal) state."""
        if run.state not in TERMINAL_STATES:
            raise InvalidStateTransition(f"Cannot finish from {run.state.value}")
        run.finished_at = run.finished_at or now
        return run
