"""Creation form driver for SunoBot.

Fills the custom-mode form (lyrics, style, title) on the create page and
clicks Create exactly once.  Lyrics and style are both free-text areas, so
the style field is told apart by attributes (the 1000-character limit and
its placeholder), never by being "the first textarea", and anything inside
the collapsed Advanced Options panel is skipped.
"""

import logging
import time
from dataclasses import dataclass

from playwright.sync_api import Error as PlaywrightError

from automation.auth import on_authenticated_domain
from automation.challenge import is_error_route
from automation.debug_capture import capture_debug_screenshot
from automation.errors import AuthError, RateLimitedOrBlocked
from automation.pacing import Waiter
from timeouts import get_timeout

logger = logging.getLogger("sunobot.automation.creator")

LYRICS_PLACEHOLDER_HINTS = ("lyric", "write some", "leave empty for instrumental")
STYLE_PLACEHOLDER_HINTS = ("hip-hop", "r&b", "upbeat", "style")
STYLE_MAXLENGTH = "1000"

# True when the element sits inside a collapsed "Advanced Options" region
_IN_COLLAPSED_ADVANCED_JS = """
el => {
    for (let n = el.parentElement; n; n = n.parentElement) {
        const collapsed = n.getAttribute('data-state') === 'closed'
            || n.getAttribute('aria-hidden') === 'true'
            || n.hidden;
        if (collapsed && /advanced options/i.test(n.textContent || '')) return true;
    }
    return false;
}
"""


def _placeholder(locator) -> str:
    return (locator.get_attribute("placeholder") or "").lower()


def looks_like_style_field(locator) -> bool:
    """Accept filter for the style input."""
    placeholder = _placeholder(locator)
    if any(hint in placeholder for hint in LYRICS_PLACEHOLDER_HINTS):
        return False
    if locator.evaluate(_IN_COLLAPSED_ADVANCED_JS):
        return False
    return True


def looks_like_lyrics_field(locator) -> bool:
    """Accept filter for the lyrics input: reject the style-shaped field."""
    if locator.get_attribute("maxlength") == STYLE_MAXLENGTH:
        return False
    placeholder = _placeholder(locator)
    if any(hint in placeholder for hint in STYLE_PLACEHOLDER_HINTS):
        return False
    return True


@dataclass(frozen=True)
class SubmitReceipt:
    submitted_at: float
    url: str
    challenge_cleared: bool = False


class CreationDirector:
    """Submits one JobRequest through the site's create form."""

    def __init__(self, page, resolver, human, challenge, config, waiter: Waiter | None = None):
        self.page = page
        self.resolver = resolver
        self.human = human
        self.challenge = challenge
        self.config = config
        self.waiter = waiter or Waiter(page=page)

    def submit(self, request) -> SubmitReceipt:
        """Fill the form for *request* and click Create.

        Raises:
            LocatorNotFound: Style (or non-empty lyrics) field or the
                Create button could not be located.
            RateLimitedOrBlocked: The site redirected to an error route.
            ChallengeTimeout: A post-submit challenge was not solved.
            AuthError: The create page redirected to sign-in.
        """
        logger.info(f"Submitting {request.title or '<untitled>'!r} ({request.style!r})")
        self.open_create_page()
        self.select_custom_mode()
        if not request.instrumental:
            self.fill_lyrics(request.lyrics)
        else:
            logger.info("No lyrics: instrumental submission")
        self.fill_style(request.style)
        if request.title:
            self.fill_title(request.title)
        self.click_create()
        return self.check_after_submit()

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def open_create_page(self) -> None:
        base_url = self.config.base_url
        self.page.goto(
            f"{base_url}/create",
            wait_until="domcontentloaded",
            timeout=get_timeout(self.config, "page_load_ms"),
        )
        settle_ms = self.human.rng.randint(
            get_timeout(self.config, "create_settle_min_ms"),
            get_timeout(self.config, "create_settle_max_ms"),
        )
        self.waiter.sleep(settle_ms / 1000, step="open_create")
        if not on_authenticated_domain(self.page.url, base_url):
            raise AuthError(
                "Redirected to sign-in; the session may have expired",
                step="open_create",
                context={"url": self.page.url},
            )
        logger.info(f"On create page (url={self.page.url})")

    def select_custom_mode(self) -> bool:
        toggle = self.resolver.find("custom_mode_toggle")
        if toggle is None:
            logger.info("No Custom toggle found; form may already be in custom mode")
            return False
        self.human.click(toggle.locator)
        self.human.pause(800, 1500)
        logger.info(f"Custom mode selected via {toggle.selector}")
        return True

    def fill_lyrics(self, lyrics: str) -> None:
        field = self.resolver.resolve(
            "lyrics_input", accept=looks_like_lyrics_field, step="fill_lyrics"
        )
        logger.info(f"Filling lyrics ({len(lyrics)} chars) via {field.selector}")
        self.human.type(field.locator, lyrics)

    def fill_style(self, style: str) -> None:
        field = self.resolver.resolve(
            "style_input", accept=looks_like_style_field, step="fill_style"
        )
        logger.info(f"Filling style via {field.selector}")
        self.human.type(field.locator, style)

    def fill_title(self, title: str) -> bool:
        """Best effort: a missing title field never fails the job."""
        try:
            reveal = self.resolver.find("title_reveal")
            if reveal is not None:
                self.human.click(reveal.locator)
                self.human.pause(500, 1000)
            field = self.resolver.find("title_input", timeout_ms=3000)
            if field is None:
                logger.warning("Title field not found; continuing without a title")
                return False
            self.human.type(field.locator, title)
        except PlaywrightError as e:
            logger.warning(f"Could not set title: {e}")
            return False
        logger.info(f"Title set to {title!r}")
        return True

    def click_create(self) -> None:
        self.human.pause(2000, 3000)
        button = self.resolver.find("create_button", timeout_ms=5000)
        if button is None:
            raise self.resolver.not_found("create_button", step="click_create")
        self.human.click(button.locator)
        logger.info(f"Create clicked via {button.selector}")

    def check_after_submit(self) -> SubmitReceipt:
        submitted_at = time.time()
        self.waiter.sleep(3, step="after_submit")

        url = self.page.url
        if is_error_route(url):
            capture_debug_screenshot(self.page, self.config.debug_dir, "submit-error-route")
            raise RateLimitedOrBlocked(
                f"Redirected to an error page after submit ({url})",
                step="after_submit",
                context={"url": url},
            )

        cleared = self.challenge.check_and_await_resolution()
        return SubmitReceipt(submitted_at=submitted_at, url=self.page.url,
                             challenge_cleared=cleared)
