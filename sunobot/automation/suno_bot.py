"""Session-scoped orchestrator for SunoBot.

One ``SunoBot`` owns one browser session for a whole batch: the session
is opened and signed in once, every job runs submit -> await completion ->
download in turn, and the session is released exactly once on the way
out, however the batch ended.

A failing job is recorded and the batch moves on (after a short grace
period that leaves the page up for inspection).  Sign-in failures and a
locked profile end the batch.  Every state change is pushed to the status
callback as ``{"status": token, "message": str, "data": dict}``.

The profile directory may only be used by one live session; running two
bots against the same profile is an operator error (the second one fails
with ProfileLocked).
"""

import logging
import threading
import time

from automation.auth import AuthManager
from automation.browser_session import BrowserSession
from automation.challenge import ChallengeHandler
from automation.creator import CreationDirector
from automation.debug_capture import capture_debug_screenshot
from automation.download_manager import DownloadManager
from automation.errors import (
    BotBusy, GenerationTimeout, JobCancelled, RateLimitedOrBlocked,
    SessionLost, SunoBotError,
)
from automation.human import HumanInput
from automation.locator import LocatorResolver
from automation.models import BatchResult, JobRequest, JobState, JobStatus, Status, StatusEvent
from automation.pacing import CancelToken, Waiter
from automation.poller import CompletionPoller
from automation.retriever import ArtifactRetriever
from automation.selector_registry import SelectorRegistry
from secure_config import CredentialStore
from timeouts import get_timeout

logger = logging.getLogger("sunobot.automation.bot")


class SunoBot:
    """Creates songs on the site and downloads the results."""

    def __init__(self, config, status_callback=None, credential_store=None,
                 session_factory=None, registry: SelectorRegistry | None = None,
                 clock=time.monotonic, sleep_fn=None):
        self.config = config
        self._status_callback = status_callback
        self.credential_store = credential_store or CredentialStore(config)
        self._session_factory = session_factory or (lambda: BrowserSession(config))
        self.registry = registry
        self.token = CancelToken()
        self.waiter = Waiter(
            token=self.token,
            slice_s=get_timeout(config, "cancel_slice_s"),
            clock=clock,
            sleep_fn=sleep_fn,
        )
        self._run_lock = threading.Lock()
        self._busy = False
        self.session = None
        self.authenticated = False

        self.resolver = None
        self.human = None
        self.challenge = None
        self.auth = None
        self.creator = None
        self.poller = None
        self.retriever = None

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # ------------------------------------------------------------------
    # Status events
    # ------------------------------------------------------------------

    def _emit(self, status: Status, message: str = "", data: dict | None = None) -> None:
        event = StatusEvent(status, message, data or {})
        logger.info(f"[{status.value}] {message}")
        if self._status_callback is None:
            return
        try:
            self._status_callback(event.to_dict())
        except Exception:
            logger.exception(f"Status callback failed for {status.value}")

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def _build_components(self, page) -> None:
        if self.registry is None:
            self.registry = SelectorRegistry(
                overrides_path=self.config.get_config("selector_overrides_path") or None
            )
        self.waiter.page = page
        self.resolver = LocatorResolver(
            page, self.registry,
            candidate_timeout_ms=get_timeout(self.config, "candidate_visible_ms"),
            debug_dir=self.config.debug_dir,
        )
        self.human = HumanInput(
            page,
            enabled=self.config.flag("human_pacing"),
            typing_char_limit=int(self.config.get_config("typing_char_limit")),
        )
        self.challenge = ChallengeHandler(page, self.resolver, self.config,
                                          emit=self._emit, waiter=self.waiter)
        self.auth = AuthManager(page, self.resolver, self.human, self.config,
                                credential_store=self.credential_store, emit=self._emit,
                                waiter=self.waiter, session=self.session)
        self.creator = CreationDirector(page, self.resolver, self.human, self.challenge,
                                        self.config, waiter=self.waiter)
        self.poller = CompletionPoller(page, self.resolver, self.challenge, self.config,
                                       waiter=self.waiter)
        self.retriever = ArtifactRetriever(page, self.resolver, self.human,
                                           DownloadManager(self.config.download_dir),
                                           self.config, waiter=self.waiter)

    def initialize(self) -> None:
        """Open the browser session and sign in.

        May wait minutes for a human to finish sign-in; progress is
        reported through the status callback meanwhile.  On failure the
        session is released before the error propagates.
        """
        if self.session is not None and self.authenticated:
            return
        self._emit(Status.LOADING_CONFIG, "Loading configuration", {
            "auth_method": self.config.auth_method,
            "base_url": self.config.base_url,
            "download_dir": self.config.download_dir,
        })
        try:
            self._emit(Status.INITIALIZING_BROWSER, "Starting browser")
            self.session = self._session_factory()
            page = self.session.open()
            self._build_components(page)
            self.auth.ensure_authenticated()
            self.authenticated = True
        except BaseException:
            self._release_session()
            raise

    def _ensure_session(self) -> None:
        if self.session is not None and self.authenticated and self.session.is_alive():
            return
        if self.session is not None:
            logger.warning("Browser session is gone; starting a new one")
            self._release_session()
        self.initialize()

    def _release_session(self) -> None:
        session, self.session = self.session, None
        self.authenticated = False
        self.waiter.page = None
        if session is not None:
            session.close()

    def close(self) -> None:
        """Release the browser session.  Safe to call more than once."""
        had_session = self.session is not None
        self._release_session()
        if had_session:
            self._emit(Status.CLOSED, "Browser closed")

    def stop(self) -> None:
        """Request a stop.

        A running batch notices within one wait slice and releases the
        session itself.  An idle bot only releases its session; the next
        call starts normally.  Call from the thread that owns the bot when
        it is idle.
        """
        logger.info("Stop requested")
        if self._busy:
            self.token.cancel()
        else:
            self.close()

    def is_busy(self) -> bool:
        """True while a batch is running."""
        return self._busy

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def submit_and_retrieve(self, request: JobRequest) -> BatchResult:
        """Run a single job in its own batch."""
        return self.run_batch([request])

    def run_rounds(self, request: JobRequest, rounds: int) -> BatchResult:
        """Submit the same request *rounds* times in one session."""
        return self.run_batch([request] * rounds, report_rounds=True)

    def run_batch(self, requests, shared_session: bool = True,
                  report_rounds: bool = False) -> BatchResult:
        """Run every request in order, isolating per-job failures.

        Args:
            requests: Iterable of JobRequest.
            shared_session: When False, each job gets a fresh browser session.
            report_rounds: Emit ``round_complete`` after every job.

        Returns:
            BatchResult with success/failure counts and all artifacts.

        Raises:
            BotBusy: If a batch is already running on this bot.
            AuthError / LoginTimeout / ProfileLocked: Fatal session errors;
                the session has been released when they propagate.
        """
        requests = list(requests)
        if not self._run_lock.acquire(blocking=False):
            raise BotBusy("A batch is already running", step="run_batch")
        self._busy = True
        result = BatchResult()
        total = len(requests)
        try:
            self._emit(Status.BATCH_STARTED, f"Starting {total} job(s)", {"total": total})
            for index, request in enumerate(requests):
                if self.token.cancelled:
                    break
                if index:
                    self.waiter.sleep(get_timeout(self.config, "job_delay_s"), step="between_jobs")
                    if not shared_session:
                        self._release_session()
                self._ensure_session()

                job = JobState(request)
                try:
                    self._run_job(job, index, total)
                finally:
                    result.record(job)
                if report_rounds:
                    self._emit(Status.ROUND_COMPLETE, f"Round {index + 1}/{total} finished", {
                        "round": index + 1, "rounds": total, "success": job.succeeded,
                    })
        except JobCancelled:
            logger.info("Batch stopped by user")
        except Exception as e:
            message = e.user_message if isinstance(e, SunoBotError) else str(e)
            data = e.to_dict() if isinstance(e, SunoBotError) else {"error": str(e)}
            data.update(result.to_dict())
            self._emit(Status.FAILED, message, data)
            raise
        finally:
            stopped = self.token.cancelled
            self.token.reset()
            self._release_session()
            self._busy = False
            self._run_lock.release()

        if stopped:
            self._emit(Status.STOPPED, "Stopped by user", result.to_dict())
        else:
            self._emit(
                Status.COMPLETE,
                f"Batch finished: {result.success_count} succeeded, {result.failure_count} failed",
                result.to_dict(),
            )
        return result

    def _run_job(self, job: JobState, index: int, total: int) -> None:
        """Drive one job to a terminal state.

        Per-job failures are recorded on *job*; fatal session errors and
        cancellation propagate after the job is marked.
        """
        request = job.request
        label = request.title or f"job {index + 1}"
        base_data = {"index": index, "total": total, **request.summary()}
        self._emit(Status.JOB_STARTED, f"Starting {label} ({index + 1}/{total})", base_data)

        try:
            job.transition(JobStatus.SUBMITTING)
            self._emit(Status.CREATING_SONG, f"Creating {label}", base_data)
            receipt = self.creator.submit(request)
            job.submitted_at = receipt.submitted_at
            self._emit(Status.SONG_CREATED, f"Submitted {label}", {
                **base_data, "challenge_cleared": receipt.challenge_cleared,
            })

            job.transition(JobStatus.GENERATING)
            max_wait = get_timeout(self.config, "max_wait_s")
            poll_interval = get_timeout(self.config, "poll_interval_s")
            self._emit(Status.WAITING_FOR_COMPLETION, f"Waiting for {label} to generate", {
                **base_data, "max_wait_s": max_wait, "poll_interval_s": poll_interval,
            })
            poll = self.poller.await_completion(
                request, max_wait, poll_interval,
                progress_callback=lambda elapsed, polls: self._emit(
                    Status.WAITING_FOR_COMPLETION,
                    f"Still generating ({elapsed:.0f}s)",
                    {**base_data, "elapsed_s": round(elapsed, 1), "polls": polls},
                ),
            )
            if not poll.completed:
                self._emit(Status.COMPLETION_TIMEOUT,
                           f"{label} not finished after {poll.elapsed_s:.0f}s",
                           {**base_data, "polls": poll.polls})
                raise GenerationTimeout(
                    f"Generation not complete within {max_wait}s", step="poll",
                )
            job.completed_at = time.time()
            self._emit(Status.SONG_COMPLETED, f"{label} finished generating", {
                **base_data, "elapsed_s": round(poll.elapsed_s, 1),
            })

            job.transition(JobStatus.DOWNLOADING)
            self._emit(Status.DOWNLOADING, f"Downloading {request.variant_count} variant(s)", base_data)
            job.artifacts = self.retriever.download_all(
                request, request.variant_count,
                on_variant=lambda artifact: self._emit(
                    Status.VARIANT_DOWNLOADED,
                    f"Saved variant {artifact.variant_index + 1}",
                    {**base_data, **artifact.to_dict()},
                ),
            )
            job.transition(JobStatus.COMPLETE)
            self._emit(Status.DOWNLOAD_COMPLETE, f"{label} downloaded", {
                **base_data, "artifacts": [a.to_dict() for a in job.artifacts],
            })
        except JobCancelled as e:
            job.error = str(e)
            job.transition(JobStatus.CANCELLED)
            self._emit(Status.JOB_CANCELLED, f"{label} cancelled", base_data)
            raise
        except SunoBotError as e:
            self._fail_job(job, e, base_data)
            if e.fatal_for_session:
                raise
        except Exception as e:
            logger.exception(f"Unexpected failure in {label}")
            self._fail_job(job, SunoBotError(str(e), step=job.status.value), base_data)

    def _fail_job(self, job: JobState, error: SunoBotError, base_data: dict) -> None:
        stage = job.status
        job.error = str(error)
        if isinstance(error, RateLimitedOrBlocked):
            job.transition(JobStatus.RATE_LIMITED)
            self._emit(Status.RATE_LIMITED, error.user_message, {**base_data, **error.to_dict()})
        elif isinstance(error, GenerationTimeout):
            job.transition(JobStatus.TIMED_OUT)
        else:
            job.transition(JobStatus.FAILED)
            if stage is JobStatus.SUBMITTING:
                self._emit(Status.CREATION_FAILED, str(error), {**base_data, **error.to_dict()})
            elif stage is JobStatus.DOWNLOADING:
                self._emit(Status.DOWNLOAD_FAILED, str(error), {**base_data, **error.to_dict()})

        logger.error(f"Job failed at {stage.value}: {error}")
        self._emit(Status.JOB_FAILED, error.user_message, {
            **base_data, **error.to_dict(), "job_status": job.status.value,
        })

        if isinstance(error, SessionLost) or error.fatal_for_session:
            return
        if self.session is not None and self.session.is_alive():
            capture_debug_screenshot(self.session.page, self.config.debug_dir, f"job-{base_data['index'] + 1}-failed")
            grace = get_timeout(self.config, "error_grace_s")
            logger.info(f"Keeping the page open {grace}s for inspection")
            self.waiter.sleep(grace, step="error_grace")
