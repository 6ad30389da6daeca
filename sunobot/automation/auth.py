"""Sign-in state machine for SunoBot.

Flow::

    UNINITIALIZED -> BROWSER_READY -> CHECKING_SESSION -> AUTHENTICATED
                                            |
                                       NEEDS_LOGIN -> LOGGING_IN ----------> AUTHENTICATED
                                                          |                      ^
                                                          v                      |
                                               AWAITING_MANUAL_COMPLETION -------+
                                                          |
                                                        FAILED  (LoginTimeout)

Two methods are supported, picked by ``auth_method`` in the config:

* ``oauth``: the site's "Continue with Google" button.  With saved
  credentials the email and password steps are scripted; the moment a
  2-step prompt, an automation warning or a CAPTCHA appears, the bot stops
  typing and hands over to the human at the browser window.
* ``password``: email/password form on the site itself.

A successful sign-in lives on in the persistent profile, so later runs go
straight from CHECKING_SESSION to AUTHENTICATED.  Login is never retried
automatically.
"""

import logging
from enum import Enum
from urllib.parse import urlparse

from automation.errors import AuthError, JobCancelled, LoginTimeout, SunoBotError
from automation.models import Status
from automation.pacing import Waiter
from logging_config import mask_email
from timeouts import get_timeout

logger = logging.getLogger("sunobot.automation.auth")

SIGN_IN_PATH_MARKERS = ("/sign-in", "/signin", "/sign-up", "/login", "/auth")
AUTH_HOST_PREFIXES = ("accounts.", "auth.", "clerk.", "login.")
MANUAL_POLL_S = 2


class AuthState(Enum):
    UNINITIALIZED = "uninitialized"
    BROWSER_READY = "browser_ready"
    CHECKING_SESSION = "checking_session"
    NEEDS_LOGIN = "needs_login"
    LOGGING_IN = "logging_in"
    AWAITING_MANUAL_COMPLETION = "awaiting_manual_completion"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


def on_authenticated_domain(url: str, base_url: str) -> bool:
    """True when *url* is on the target site and outside any sign-in route."""
    parsed = urlparse(url or "")
    host = (parsed.hostname or "").lower()
    base_host = (urlparse(base_url).hostname or "").lower()
    if not base_host or not (host == base_host or host.endswith("." + base_host)):
        return False
    if host.startswith(AUTH_HOST_PREFIXES):
        return False
    path = parsed.path.lower()
    return not any(marker in path for marker in SIGN_IN_PATH_MARKERS)


class AuthManager:
    """Drives the browser from a fresh profile to an authenticated session."""

    def __init__(self, page, resolver, human, config, credential_store=None,
                 emit=None, waiter: Waiter | None = None, session=None):
        self.page = page
        self.resolver = resolver
        self.human = human
        self.config = config
        self.credential_store = credential_store
        self.emit = emit or (lambda status, message="", data=None: None)
        self.waiter = waiter or Waiter(page=page)
        self.session = session
        self.state = AuthState.BROWSER_READY if page is not None else AuthState.UNINITIALIZED

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _set_state(self, state: AuthState) -> None:
        if state is not self.state:
            logger.info(f"Auth state {self.state.value} -> {state.value}")
        self.state = state

    def _step(self, step: str, message: str, level: str = "INFO") -> None:
        log = logger.warning if level in ("WARNING", "ERROR") else logger.info
        log(f"[{step}] {message}")
        self.emit(Status.LOGIN_STEP, message, {"step": step, "level": level})

    @property
    def base_url(self) -> str:
        return self.config.base_url

    def is_authenticated_url(self, url: str) -> bool:
        return on_authenticated_domain(url, self.base_url)

    def _settle(self, seconds: float = 2) -> None:
        self.waiter.sleep(seconds, step="login")

    def _signed_in(self, marker_timeout_ms: int | None = None) -> bool:
        """True when the page is on the site and shows a signed-in UI.

        The sign-in dialog opens on the site itself, so the URL alone is not
        enough: the account marker must be visible, or at least the sign-in
        button must be gone.  With *marker_timeout_ms* the marker is waited
        for; otherwise it is only probed.
        """
        if not self.is_authenticated_url(self.page.url):
            return False
        if marker_timeout_ms is None:
            if self.resolver.is_present("authenticated_marker") is not None:
                return True
        elif self.resolver.find("authenticated_marker", timeout_ms=marker_timeout_ms) is not None:
            return True
        return self.resolver.is_present("sign_in_button") is None

    # ------------------------------------------------------------------
    # Session check
    # ------------------------------------------------------------------

    def check_session(self) -> bool:
        """Open the create page and decide whether we are signed in."""
        self._set_state(AuthState.CHECKING_SESSION)
        self._step("check_session", "Checking for an existing session")
        self.page.goto(
            f"{self.base_url}/create",
            wait_until="domcontentloaded",
            timeout=get_timeout(self.config, "page_load_ms"),
        )
        self._settle(get_timeout(self.config, "listing_settle_ms") / 1000)

        url = self.page.url
        if not self.is_authenticated_url(url):
            logger.info(f"Redirected to sign-in (url={url})")
            self._set_state(AuthState.NEEDS_LOGIN)
            return False

        if self._signed_in(get_timeout(self.config, "candidate_visible_ms")):
            self._step("check_session", "Existing session found", "SUCCESS")
            self._set_state(AuthState.AUTHENTICATED)
            return True

        self._step("check_session", "Not signed in")
        self._set_state(AuthState.NEEDS_LOGIN)
        return False

    # ------------------------------------------------------------------
    # Login methods
    # ------------------------------------------------------------------

    def login(self) -> bool:
        """Run the configured login method."""
        credentials = self.credential_store.load() if self.credential_store else None
        method = self.config.auth_method
        logger.info(f"Signing in via {method} (account {mask_email(credentials and credentials.email)})")
        if method == "password":
            return self.login_with_password(credentials)
        return self.login_with_oauth(credentials)

    def _open_sign_in(self) -> None:
        self._step("open_sign_in", "Opening the sign-in dialog")
        button = self.resolver.find("sign_in_button")
        if button is None:
            self._step("open_sign_in", "No sign-in button visible; continuing on current page", "WARNING")
            return
        self.human.click(button.locator)
        self._settle(2)

    def login_with_oauth(self, credentials=None) -> bool:
        """Sign in through the OAuth provider, scripted where possible."""
        self._set_state(AuthState.LOGGING_IN)
        self._open_sign_in()

        provider = self.resolver.find("oauth_provider_button")
        if provider is None:
            self._step("oauth_provider", "OAuth button not found", "WARNING")
            return self.await_manual_completion()
        self._step("oauth_provider", "Opening the OAuth provider")
        self.human.click(provider.locator)
        self._settle(3)

        if credentials is None:
            self._step("oauth_credentials", "No saved credentials; finish sign-in in the browser", "WAITING")
            return self.await_manual_completion()

        if self._scripted_oauth(credentials):
            if self._wait_for_redirect(get_timeout(self.config, "oauth_redirect_s")):
                self._step("oauth_redirect", "Redirected back to the site", "SUCCESS")
                return True
            self._step("oauth_redirect", "No redirect after scripted sign-in", "WARNING")
        return self.await_manual_completion()

    def _scripted_oauth(self, credentials) -> bool:
        """Type email and password on the provider page.

        Returns False as soon as anything needs a human.
        """
        if self._needs_human("before_email"):
            return False

        email_field = self.resolver.find("oauth_email_input", timeout_ms=5000)
        if email_field is None:
            self._step("oauth_email", "Email field not found", "WARNING")
            return False
        self._step("oauth_email", "Entering email")
        self.human.type(email_field.locator, credentials.email)
        if not self._click_next("oauth_email"):
            return False
        self._settle(3)

        if self._needs_human("after_email"):
            return False

        password_field = self.resolver.find("oauth_password_input", timeout_ms=5000)
        if password_field is None:
            self._step("oauth_password", "Password field not found", "WARNING")
            return False
        self._step("oauth_password", "Entering password")
        self.human.type(password_field.locator, credentials.password)
        if not self._click_next("oauth_password"):
            return False
        self._settle(3)

        return not self._needs_human("after_password")

    def _click_next(self, step: str) -> bool:
        button = self.resolver.find("oauth_next_button")
        if button is None:
            self._step(step, "Next button not found or disabled", "WARNING")
            return False
        self.human.click(button.locator)
        return True

    def _needs_human(self, stage: str) -> bool:
        if self.resolver.is_present("automation_block_marker"):
            self._step(stage, "Provider flagged the browser as automated", "WARNING")
            return True
        if self.resolver.is_present("two_factor_marker"):
            self._step(stage, "Two-step verification required", "WARNING")
            return True
        if self.resolver.is_present("challenge_marker"):
            self._step(stage, "Verification challenge shown", "WARNING")
            return True
        return False

    def login_with_password(self, credentials=None) -> bool:
        """Sign in with the site's own email/password form."""
        if credentials is None:
            self._set_state(AuthState.FAILED)
            raise AuthError(
                "Password sign-in needs saved credentials",
                step="login_with_password",
            )
        self._set_state(AuthState.LOGGING_IN)
        self._open_sign_in()

        option = self.resolver.find("email_login_option")
        if option is not None:
            self._step("password_login", "Choosing email sign-in")
            self.human.click(option.locator)
            self._settle(2)

        email_field = self.resolver.resolve("password_email_input", step="password_login_email")
        self._step("password_login", "Entering email")
        self.human.type(email_field.locator, credentials.email)

        password_field = self.resolver.resolve("password_input", step="password_login_password")
        self._step("password_login", "Entering password")
        self.human.type(password_field.locator, credentials.password)

        submit = self.resolver.resolve("password_submit", step="password_login_submit")
        self.human.click(submit.locator)
        self._step("password_login", "Submitted, waiting for redirect", "WAITING")

        if self._wait_for_redirect(get_timeout(self.config, "oauth_redirect_s")):
            self._step("password_login", "Signed in", "SUCCESS")
            return True
        if self._needs_human("password_submitted"):
            return self.await_manual_completion()

        self._set_state(AuthState.FAILED)
        raise AuthError(
            f"No redirect back to {self.base_url} after password sign-in",
            step="login_with_password",
            context={"url": self.page.url},
        )

    def _wait_for_redirect(self, timeout_s: float) -> bool:
        deadline = self.waiter.now() + timeout_s
        while True:
            if self._signed_in():
                return True
            remaining = deadline - self.waiter.now()
            if remaining <= 0:
                return False
            self.waiter.sleep(min(1.0, remaining), step="login_redirect")

    # ------------------------------------------------------------------
    # Manual completion
    # ------------------------------------------------------------------

    def await_manual_completion(self, timeout_s: float | None = None) -> bool:
        """Let the human finish sign-in; poll until the site is back.

        Raises:
            LoginTimeout: If the site is not reached within *timeout_s*.
            AuthError: If the browser window is closed while waiting.
        """
        if timeout_s is None:
            timeout_s = get_timeout(self.config, "login_wait_s")
        self._set_state(AuthState.AWAITING_MANUAL_COMPLETION)
        self.emit(
            Status.MANUAL_ACTION_REQUIRED,
            "Complete the sign-in in the browser window. "
            "The bot continues automatically afterwards.",
            {"timeout_s": timeout_s, "url": self.page.url},
        )
        logger.info(f"Waiting for manual sign-in (timeout: {timeout_s}s)...")

        deadline = self.waiter.now() + timeout_s
        while self.waiter.now() < deadline:
            if self.page.is_closed():
                self._set_state(AuthState.FAILED)
                raise AuthError("Browser window closed during sign-in", step="manual_login")
            if self._signed_in():
                logger.info(f"Sign-in detected (url={self.page.url})")
                self._step("manual_login", "Sign-in completed", "SUCCESS")
                return True
            self.waiter.sleep(min(MANUAL_POLL_S, max(0.0, deadline - self.waiter.now())),
                              step="manual_login")

        self._set_state(AuthState.FAILED)
        self._step("manual_login", f"Sign-in not completed within {timeout_s}s", "ERROR")
        raise LoginTimeout(f"Manual sign-in timed out after {timeout_s}s", step="manual_login")

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def ensure_authenticated(self) -> bool:
        """Reach AUTHENTICATED or raise.

        Raises:
            AuthError / LoginTimeout: Sign-in could not be completed.
            JobCancelled: A stop was requested during a wait.
        """
        self.emit(Status.AUTHENTICATING, "Checking sign-in")
        try:
            if not self.check_session():
                self.login()
        except JobCancelled:
            raise
        except SunoBotError as e:
            self._set_state(AuthState.FAILED)
            self.emit(Status.AUTH_FAILED, e.user_message, e.to_dict())
            raise

        self._set_state(AuthState.AUTHENTICATED)
        if self.session is not None:
            self.session.save_state()
        self.emit(Status.AUTHENTICATED, "Signed in")
        return True
