"""Typed failures raised by the SunoBot automation components."""

from enum import Enum


class ErrorCategory(Enum):
    """Categorizes SunoBotError for actionable user messages."""
    SELECTOR_NOT_FOUND = "selector_not_found"
    AUTH_FAILED = "auth_failed"
    LOGIN_TIMEOUT = "login_timeout"
    PROFILE_LOCKED = "profile_locked"
    RATE_LIMITED = "rate_limited"
    CHALLENGE_TIMEOUT = "challenge_timeout"
    SESSION_LOST = "session_lost"
    GENERATION_TIMEOUT = "generation_timeout"
    DOWNLOAD_FAILED = "download_failed"
    CANCELLED = "cancelled"
    BUSY = "busy"


# Map error categories to user-friendly action messages
ERROR_MESSAGES = {
    ErrorCategory.SELECTOR_NOT_FOUND: (
        "UI elements no longer match the site. It may have been updated. "
        "Check the debug screenshots and the selector overrides file."
    ),
    ErrorCategory.AUTH_FAILED: (
        "Sign-in could not be completed. Check the configured auth method "
        "and saved credentials."
    ),
    ErrorCategory.LOGIN_TIMEOUT: (
        "Nobody finished the sign-in in the browser window in time. "
        "Run the login command and complete it manually."
    ),
    ErrorCategory.PROFILE_LOCKED: (
        "The browser profile is in use by another browser. Close the other "
        "window (or the other bot process) and try again."
    ),
    ErrorCategory.RATE_LIMITED: (
        "The site rejected the submission or redirected to an error page. "
        "Wait before submitting more songs."
    ),
    ErrorCategory.CHALLENGE_TIMEOUT: (
        "A verification challenge was shown and not solved in time."
    ),
    ErrorCategory.SESSION_LOST: (
        "The browser window was closed during automation. Leave it open "
        "while the bot is running."
    ),
    ErrorCategory.GENERATION_TIMEOUT: (
        "The song did not finish generating within the configured wait. "
        "It may still appear in your library later."
    ),
    ErrorCategory.DOWNLOAD_FAILED: (
        "Generated audio could not be downloaded or was empty."
    ),
    ErrorCategory.CANCELLED: "Stopped by user.",
    ErrorCategory.BUSY: "A batch is already running.",
}


class SunoBotError(Exception):
    """Raised when an automation step fails.

    ``step`` names the operation that failed and ``context`` carries
    diagnostics such as the selectors that were tried.
    """

    category: ErrorCategory | None = None
    fatal_for_session = False

    def __init__(self, message: str, category: ErrorCategory | None = None,
                 step: str | None = None, context: dict | None = None):
        super().__init__(message)
        if category is not None:
            self.category = category
        self.step = step
        self.context = context or {}

    @property
    def user_message(self) -> str:
        """Return an actionable message for the user."""
        if self.category and self.category in ERROR_MESSAGES:
            return ERROR_MESSAGES[self.category]
        return str(self)

    def to_dict(self) -> dict:
        return {
            "error": str(self),
            "category": self.category.value if self.category else None,
            "step": self.step,
            "user_message": self.user_message,
        }


class LocatorNotFound(SunoBotError):
    category = ErrorCategory.SELECTOR_NOT_FOUND

    def __init__(self, role: str, tried: list[str], screenshot: str | None = None,
                 elements: list[str] | None = None, step: str | None = None):
        tried_text = ", ".join(tried) if tried else "<no candidates>"
        super().__init__(
            f"Could not locate {role!r}. Tried selectors: {tried_text}",
            step=step or role,
            context={"role": role, "tried": list(tried),
                     "screenshot": screenshot, "elements": elements or []},
        )
        self.role = role
        self.tried = list(tried)
        self.screenshot = screenshot
        self.elements = elements or []


class AuthError(SunoBotError):
    category = ErrorCategory.AUTH_FAILED
    fatal_for_session = True


class LoginTimeout(AuthError):
    category = ErrorCategory.LOGIN_TIMEOUT


class ProfileLocked(SunoBotError):
    category = ErrorCategory.PROFILE_LOCKED
    fatal_for_session = True


class RateLimitedOrBlocked(SunoBotError):
    category = ErrorCategory.RATE_LIMITED


class ChallengeTimeout(SunoBotError):
    category = ErrorCategory.CHALLENGE_TIMEOUT


class SessionLost(SunoBotError):
    category = ErrorCategory.SESSION_LOST


class GenerationTimeout(SunoBotError):
    category = ErrorCategory.GENERATION_TIMEOUT


class DownloadFailed(SunoBotError):
    category = ErrorCategory.DOWNLOAD_FAILED

    def __init__(self, message: str, actual_size: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.actual_size = actual_size


class JobCancelled(SunoBotError):
    category = ErrorCategory.CANCELLED


class BotBusy(SunoBotError):
    category = ErrorCategory.BUSY
