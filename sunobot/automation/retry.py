"""
SunoBot - Retry & Backoff Utility

Retries idempotent browser operations (listing navigation) on transient
Playwright errors with exponential backoff.  Never used for sign-in or for
the Create click, which must not be repeated.
"""

import functools
import logging
import time

logger = logging.getLogger("sunobot.automation")


def retry_call(
    fn,
    args=(),
    kwargs=None,
    max_attempts: int = 3,
    backoff_base: float = 2,
    retryable_exceptions: tuple = (Exception,),
    non_retryable_exceptions: tuple = (),
    stop_check=None,
    sleep=time.sleep,
):
    """Call ``fn(*args, **kwargs)``, retrying on *retryable_exceptions*.

    Args:
        max_attempts: Maximum number of attempts (including the first).
        backoff_base: Wait ``backoff_base ** attempt`` seconds between tries.
        non_retryable_exceptions: Subclasses of a retryable type that must
            propagate immediately.
        stop_check: Optional callable returning True to abort retrying.
        sleep: Callable used for the backoff wait.
    """
    if kwargs is None:
        kwargs = {}

    for attempt in range(1, max_attempts + 1):
        try:
            return fn(*args, **kwargs)
        except retryable_exceptions as e:
            if non_retryable_exceptions and isinstance(e, non_retryable_exceptions):
                raise
            if attempt == max_attempts:
                raise
            if stop_check and stop_check():
                raise

            wait = backoff_base ** attempt
            logger.warning(
                "Retry %d/%d for %s: %s (wait %.1fs)",
                attempt,
                max_attempts,
                getattr(fn, "__name__", repr(fn)),
                e,
                wait,
            )
            sleep(wait)


def with_retry(max_attempts: int = 3, backoff_base: float = 2,
               retryable_exceptions: tuple = (Exception,), stop_check=None):
    """Decorator form of :func:`retry_call`."""

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            return retry_call(
                fn, args, kwargs,
                max_attempts=max_attempts,
                backoff_base=backoff_base,
                retryable_exceptions=retryable_exceptions,
                stop_check=stop_check,
            )

        return wrapper

    return decorator
