"""
Cancellable condition poller.

A refresh function reports the current remote state of a subject; the
poller calls it with exponential backoff until the state reaches a target
value, leaves the pending set, disappears, or the deadline passes.
"""

import logging
import threading
import time
from typing import Any, Callable, Iterable, Optional, Tuple

from .errors import NotFoundError, UnexpectedStateError, WaitCancelledError, WaitTimeoutError

logger = logging.getLogger(__name__)


# (result, state); a None result means the subject was not found
RefreshFunc = Callable[[], Tuple[Any, str]]


class StateChangeConf:
    """Wait for a refresh function to report one of the target states."""

    def __init__(
        self,
        pending: Iterable[str],
        target: Iterable[str],
        refresh: RefreshFunc,
        timeout: Optional[float],
        delay: float = 0.0,
        min_interval: float = 0.1,
        max_interval: float = 10.0,
        not_found_checks: int = 20,
        describe_failure: Optional[Callable[[Any], Optional[str]]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.pending = list(pending)
        self.target = list(target)
        self.refresh = refresh
        self.timeout = timeout
        self.delay = delay
        self.min_interval = min_interval
        self.max_interval = max_interval
        self.not_found_checks = max(1, not_found_checks)
        self.describe_failure = describe_failure
        self.clock = clock
        self.last_result = None

    def wait(self, cancel: Optional[threading.Event] = None) -> Any:
        """
        Poll until the target state is reached.

        Args:
            cancel: Event that aborts the wait when set

        Returns:
            The last refresh result, or None when timeout is zero or unset
            (no refresh is made in that case)

        Raises:
            WaitTimeoutError: Deadline passed before the target state
            UnexpectedStateError: State left the pending set without reaching target
            NotFoundError: Subject was missing for not_found_checks refreshes in a row
            WaitCancelledError: cancel was set
        """
        if not self.timeout or self.timeout <= 0:
            return None

        cancel = cancel or threading.Event()
        deadline = self.clock() + self.timeout

        if self.delay > 0:
            self._sleep(min(self.delay, self.timeout), cancel)

        interval = self.min_interval
        not_found = 0
        last_state = ""

        while True:
            if cancel.is_set():
                raise WaitCancelledError("wait cancelled")

            result, state = self.refresh()

            if result is None:
                not_found += 1
                logger.debug(f"Subject not found ({not_found}/{self.not_found_checks})")
                if not_found >= self.not_found_checks:
                    raise NotFoundError(f"couldn't find resource ({not_found} retries)")
            else:
                not_found = 0
                last_state = state
                self.last_result = result
                if state in self.target:
                    return result
                if state not in self.pending:
                    raise UnexpectedStateError(state, self.target, self._failure_detail())

            remaining = deadline - self.clock()
            if remaining <= 0:
                raise WaitTimeoutError(last_state, self.timeout, self._failure_detail())

            self._sleep(min(interval, remaining), cancel)
            interval = min(interval * 2, self.max_interval)

    def _failure_detail(self) -> Optional[str]:
        if self.describe_failure is None or self.last_result is None:
            return None
        return self.describe_failure(self.last_result)

    def _sleep(self, seconds: float, cancel: threading.Event) -> None:
        if cancel.wait(seconds):
            raise WaitCancelledError("wait cancelled")
