# deploy_engine/orchestrator/waiter.py
"""Bounded, cancellable polling for service stability."""

import logging
import threading
from typing import Callable, Optional

from deploy_engine.core.errors import DeployCancelledError, StabilityTimeoutError

logger = logging.getLogger(__name__)


class StabilityWaiter:
    """
    Polls a stability check on a fixed interval.

    - At most max_attempts checks are made
    - Sleeping happens on the cancel event, so setting it wakes the waiter
      immediately instead of after the current interval
    - Errors raised by the check itself propagate unchanged
    """

    def __init__(self, poll_interval_seconds: float = 15.0, max_attempts: int = 80):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.poll_interval_seconds = poll_interval_seconds
        self.max_attempts = max_attempts

    def wait(
        self,
        check: Callable[[], bool],
        cancel_event: Optional[threading.Event] = None,
        description: str = "service",
    ) -> int:
        """
        Block until check() returns True.

        Returns:
            Number of checks made

        Raises:
            DeployCancelledError: If cancel_event is set before stability
            StabilityTimeoutError: If every attempt reports unstable
        """
        cancel_event = cancel_event or threading.Event()

        for attempt in range(1, self.max_attempts + 1):
            if cancel_event.is_set():
                raise DeployCancelledError(f"wait for {description} to be stable cancelled")

            if check():
                logger.info(f"[waiter] {description} stable after {attempt} check(s)")
                return attempt

            logger.debug(
                f"[waiter] {description} not stable yet "
                f"(attempt {attempt}/{self.max_attempts})"
            )

            if attempt < self.max_attempts and cancel_event.wait(self.poll_interval_seconds):
                raise DeployCancelledError(f"wait for {description} to be stable cancelled")

        raise StabilityTimeoutError(self.max_attempts)
