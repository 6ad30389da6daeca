"""Completion detection on the song listing.

The site offers no job API, so completion is read off the listing page
(newest first).  Each poll refreshes the listing and scans the first
SCAN_WINDOW visible entries top-down:

* an entry showing a spinner is still generating;
* the first non-generating entry with an Edit or Publish action, a
  rendered duration, or a play control is complete;
* a complete entry below a generating one belongs to an older job, so the
  newest job is not done yet.

Jobs are identified by position, not by title: the listing does not
reliably show the submitted title.  This only holds while nothing else
submits songs on the same account, which is why the bot runs jobs strictly
one at a time.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum

from playwright.sync_api import Error as PlaywrightError

from automation.errors import SessionLost
from automation.pacing import Waiter
from automation.retry import retry_call
from timeouts import get_timeout

logger = logging.getLogger("sunobot.automation.poller")

SCAN_WINDOW = 10
DURATION_RE = re.compile(r"\b\d{1,2}:\d{2}\b")


class PollOutcome(Enum):
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"


class EntryState(Enum):
    GENERATING = "generating"
    COMPLETE = "complete"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PollResult:
    outcome: PollOutcome
    elapsed_s: float
    polls: int
    entry_index: int | None = None

    @property
    def completed(self) -> bool:
        return self.outcome is PollOutcome.COMPLETED


class CompletionPoller:
    """Polls the listing until the newest job finishes or time runs out."""

    def __init__(self, page, resolver, challenge, config, waiter: Waiter | None = None):
        self.page = page
        self.resolver = resolver
        self.challenge = challenge
        self.config = config
        self.waiter = waiter or Waiter(page=page)

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def open_listing(self, deadline: float | None = None) -> bool:
        """Load (or reload) the listing page, retrying navigation errors.

        With a *deadline*, every navigation timeout and backoff is clipped
        to the time left.  Returns False when the deadline passed before the
        page loaded.
        """
        url = f"{self.config.base_url}/me"

        def past_deadline() -> bool:
            return deadline is not None and self.waiter.now() >= deadline

        def load() -> bool:
            timeout_ms = get_timeout(self.config, "page_load_ms")
            if deadline is not None:
                remaining_ms = int((deadline - self.waiter.now()) * 1000)
                if remaining_ms <= 0:
                    return False
                timeout_ms = min(timeout_ms, remaining_ms)
            self.page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
            return True

        def backoff(seconds: float) -> None:
            if deadline is not None:
                seconds = min(seconds, max(0.0, deadline - self.waiter.now()))
            self.waiter.sleep(seconds, step="open_listing")

        try:
            loaded = retry_call(
                load,
                max_attempts=3,
                retryable_exceptions=(PlaywrightError,),
                stop_check=lambda: (self.waiter.token.cancelled or self.page.is_closed()
                                    or past_deadline()),
                sleep=backoff,
            )
        except PlaywrightError as e:
            if not past_deadline():
                raise
            logger.warning(f"Listing did not load before the wait ran out: {e}")
            return False
        if not loaded:
            return False

        settle = get_timeout(self.config, "listing_settle_ms") / 1000
        if deadline is not None:
            settle = min(settle, max(0.0, deadline - self.waiter.now()))
        self.waiter.sleep(settle, step="open_listing")
        return True

    def classify_entry(self, entry) -> EntryState:
        if self.resolver.is_present("generating_indicator", scope=entry):
            return EntryState.GENERATING
        if self.resolver.is_present("completion_marker", scope=entry):
            return EntryState.COMPLETE
        text = entry.inner_text(timeout=1000) or ""
        if DURATION_RE.search(text):
            return EntryState.COMPLETE
        return EntryState.UNKNOWN

    def scan_listing(self) -> int | None:
        """Return the index of the completed newest entry, or None."""
        selector, entries = self.resolver.all_visible("listing_entry", limit=SCAN_WINDOW)
        if not entries:
            logger.debug("No listing entries visible yet")
            return None

        generating_above = False
        for index, entry in enumerate(entries):
            try:
                state = self.classify_entry(entry)
            except PlaywrightError as e:
                # Entries re-render while generating; skip the stale handle
                logger.debug(f"Entry {index} vanished mid-scan: {e}")
                continue
            if state is EntryState.GENERATING:
                generating_above = True
                continue
            if state is EntryState.COMPLETE:
                if generating_above:
                    logger.info(
                        f"Entry {index} is complete but a newer entry is still generating"
                    )
                    return None
                logger.info(f"Entry {index} complete (matched via {selector})")
                return index
        return None

    # ------------------------------------------------------------------
    # Poll loop
    # ------------------------------------------------------------------

    def await_completion(self, job_hint=None, max_wait_s: float | None = None,
                         poll_interval_s: float | None = None,
                         progress_callback=None) -> PollResult:
        """Poll until the newest listing entry completes.

        Args:
            job_hint: The JobRequest being waited on (used for logging only).
            max_wait_s: Overall bound; TIMED_OUT is returned once it passes.
            poll_interval_s: Sleep between listing refreshes.
            progress_callback: Optional callable(elapsed_s, polls).

        Raises:
            SessionLost: If the browser window was closed.
            ChallengeTimeout: If a challenge appears and is not solved.
            JobCancelled: If a stop is requested.
        """
        if max_wait_s is None:
            max_wait_s = get_timeout(self.config, "max_wait_s")
        if poll_interval_s is None:
            poll_interval_s = get_timeout(self.config, "poll_interval_s")
        title = getattr(job_hint, "title", "") or "<untitled>"
        logger.info(
            f"Waiting for {title!r} to finish (max {max_wait_s}s, every {poll_interval_s}s)"
        )

        start = self.waiter.now()
        deadline = start + max_wait_s
        polls = 0
        while True:
            self.waiter.token.raise_if_cancelled("poll")
            if self.page.is_closed():
                raise SessionLost(
                    "Browser window was closed while waiting for generation",
                    step="poll",
                )
            self.challenge.check_and_await_resolution()

            if not self.open_listing(deadline):
                break
            polls += 1
            index = self.scan_listing()
            elapsed = self.waiter.now() - start
            if index is not None:
                logger.info(f"{title!r} completed after {elapsed:.0f}s ({polls} polls)")
                return PollResult(PollOutcome.COMPLETED, elapsed, polls, index)

            if progress_callback is not None:
                progress_callback(elapsed, polls)

            remaining = deadline - self.waiter.now()
            if remaining <= 0:
                break
            self.waiter.sleep(min(poll_interval_s, remaining), step="poll")
            if self.waiter.now() >= deadline:
                break

        elapsed = self.waiter.now() - start
        logger.warning(f"{title!r} not complete after {elapsed:.0f}s ({polls} polls)")
        return PollResult(PollOutcome.TIMED_OUT, elapsed, polls)
