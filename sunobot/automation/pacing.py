"""Cooperative cancellation and bounded waits.

Every wait in the bot (poll intervals, challenge and manual-login windows,
inter-job delays) goes through ``Waiter.sleep`` so a stop request is
noticed within one slice instead of after the full wait.
"""

import logging
import threading
import time

from automation.errors import JobCancelled

logger = logging.getLogger("sunobot.automation")


class CancelToken:
    """Thread-safe stop flag shared by the orchestrator and its components."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def reset(self) -> None:
        self._event.clear()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, step: str | None = None) -> None:
        if self._event.is_set():
            raise JobCancelled("Stopped by user", step=step)


class Waiter:
    """Sleeps in slices of at most ``slice_s`` seconds, checking the token.

    While a page is attached, slices are spent in ``page.wait_for_timeout``
    so Playwright keeps servicing browser events during the wait.
    """

    def __init__(self, token: CancelToken | None = None, page=None,
                 slice_s: float = 2.0, clock=time.monotonic, sleep_fn=None):
        self.token = token or CancelToken()
        self.page = page
        self.slice_s = max(0.05, float(slice_s))
        self._clock = clock
        self._sleep_fn = sleep_fn

    def now(self) -> float:
        return self._clock()

    def sleep(self, seconds: float, step: str | None = None) -> None:
        """Wait *seconds*, raising JobCancelled as soon as a stop is seen."""
        deadline = self.now() + max(0.0, seconds)
        while True:
            self.token.raise_if_cancelled(step)
            remaining = deadline - self.now()
            if remaining <= 0:
                return
            self._pause(min(remaining, self.slice_s))

    def _pause(self, seconds: float) -> None:
        if self._sleep_fn is not None:
            self._sleep_fn(seconds)
        elif self.page is not None and not self.page.is_closed():
            self.page.wait_for_timeout(int(seconds * 1000))
        else:
            time.sleep(seconds)
