"""Anti-automation challenge detection and human hand-off.

When a CAPTCHA, a suspicious-activity banner or an error route shows up,
scripted input stops, the observer is told a human is needed, and the bot
waits (bounded, cancellable) until the page is clear again.  Nothing here
tries to solve a challenge.
"""

import logging
from urllib.parse import urlparse

from automation.debug_capture import capture_debug_screenshot
from automation.errors import ChallengeTimeout, SessionLost
from automation.models import Status
from automation.pacing import Waiter
from timeouts import get_timeout

logger = logging.getLogger("sunobot.automation.challenge")

ERROR_ROUTE_MARKERS = ("404", "error", "not-found")


def _no_emit(status, message="", data=None):
    pass


def is_error_route(url: str) -> bool:
    """True for not-found and error pages, judged by the URL path."""
    path = urlparse(url or "").path.lower()
    segments = [s for s in path.split("/") if s]
    return any(marker in segment for segment in segments for marker in ERROR_ROUTE_MARKERS)


class ChallengeHandler:
    """Detects challenges and waits for a human to clear them."""

    def __init__(self, page, resolver, config, emit=None, waiter: Waiter | None = None):
        self.page = page
        self.resolver = resolver
        self.config = config
        self.emit = emit or _no_emit
        self.waiter = waiter or Waiter(page=page)

    def detect(self) -> str | None:
        """Return the kind of challenge on screen, or None.

        Kinds: ``"error_route"``, ``"captcha"``, ``"automation_block"``.
        """
        if is_error_route(self.page.url):
            return "error_route"
        if self.resolver.is_present("challenge_marker"):
            return "captcha"
        if self.resolver.is_present("automation_block_marker"):
            return "automation_block"
        return None

    def check_and_await_resolution(self, max_wait_s: float | None = None) -> bool:
        """Wait out a challenge if one is showing.

        Returns:
            False if no challenge was present, True once one was cleared.

        Raises:
            ChallengeTimeout: If the challenge is still up after *max_wait_s*.
            SessionLost: If the browser window is closed while waiting.
            JobCancelled: If a stop is requested while waiting.
        """
        kind = self.detect()
        if kind is None:
            return False

        if max_wait_s is None:
            max_wait_s = get_timeout(self.config, "challenge_wait_s")
        poll_s = get_timeout(self.config, "challenge_poll_s")

        logger.warning(f"Challenge detected ({kind}) at {self.page.url}; waiting up to {max_wait_s}s")
        capture_debug_screenshot(self.page, self.config.debug_dir, f"challenge-{kind}")
        self.emit(
            Status.CHALLENGE_PRESENTED,
            "Verification required. Complete it in the browser window.",
            {"kind": kind, "url": self.page.url, "max_wait_s": max_wait_s},
        )

        start = self.waiter.now()
        deadline = start + max_wait_s
        while True:
            remaining = deadline - self.waiter.now()
            if remaining <= 0:
                break
            self.waiter.sleep(min(poll_s, remaining), step="challenge")
            if self.page.is_closed():
                raise SessionLost("Browser window closed during a challenge", step="challenge")
            if self.detect() is None:
                elapsed = self.waiter.now() - start
                logger.info(f"Challenge ({kind}) cleared after {elapsed:.0f}s")
                self.emit(
                    Status.CHALLENGE_RESOLVED,
                    "Verification complete, resuming",
                    {"kind": kind, "elapsed_s": round(elapsed, 1)},
                )
                return True

        raise ChallengeTimeout(
            f"Challenge ({kind}) not resolved within {max_wait_s}s",
            step="challenge",
            context={"kind": kind, "url": self.page.url},
        )
