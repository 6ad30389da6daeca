"""Persistent-profile browser session for SunoBot.

One session owns one Playwright instance, one persistent Chromium context
and the page all automation runs on.  It is opened once per batch and
closed exactly once, whatever happened in between.
"""

import logging
import os

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from automation.browser_profiles import check_profile_lock, get_profile_path
from automation.errors import ProfileLocked
from automation.stealth import StealthProfile

logger = logging.getLogger("sunobot.automation.session")

STATE_FILENAME = "storage_state.json"


class BrowserSession:
    """Launches and releases the persistent browser context."""

    def __init__(self, config, stealth: StealthProfile | None = None,
                 playwright_factory=sync_playwright, profile_path: str | None = None):
        self.config = config
        self.stealth = stealth or StealthProfile.from_config(config)
        self._playwright_factory = playwright_factory
        self.profile_path = profile_path
        self._playwright = None
        self.context = None
        self.page = None
        self.closed = False

    def _launch_args(self) -> dict:
        launch_args = {
            "headless": self.config.flag("headless"),
            "slow_mo": int(self.config.get_config("slow_mo_ms") or 0),
            "accept_downloads": True,
            "args": self.stealth.launch_args(),
        }
        launch_args.update(self.stealth.context_options())
        browser_path = self.config.get_config("browser_path")
        if browser_path:
            launch_args["executable_path"] = browser_path
        return launch_args

    def open(self):
        """Launch the browser on the persistent profile and return the page.

        Raises:
            ProfileLocked: If another live browser holds the profile.
        """
        if self.page is not None:
            return self.page

        profile = self.profile_path or get_profile_path(
            self.config.get_config("profile_name") or "suno"
        )
        self.profile_path = profile
        check_profile_lock(profile)

        self._playwright = self._playwright_factory().start()
        try:
            self.context = self._launch(profile, self._launch_args())
        except PlaywrightError as e:
            self._stop_playwright()
            message = str(e)
            if "ProcessSingleton" in message or "SingletonLock" in message:
                raise ProfileLocked(
                    f"Browser profile {profile} is already in use",
                    step="launch", context={"profile": profile},
                ) from e
            raise

        self.stealth.apply(self.context)
        self.context.set_default_timeout(
            int(self.config.get_config("default_timeout_ms") or 60000)
        )
        self.page = self.context.pages[0] if self.context.pages else self.context.new_page()
        return self.page

    def _launch(self, profile: str, launch_args: dict):
        chromium = self._playwright.chromium
        channel = self.config.get_config("browser_channel")
        if channel and "executable_path" not in launch_args:
            try:
                context = chromium.launch_persistent_context(
                    profile, channel=channel, **launch_args
                )
                logger.info(f"Launched {channel} with persistent profile {profile}")
                return context
            except PlaywrightError as e:
                logger.info(f"System {channel} unavailable ({e}); using bundled Chromium")
        context = chromium.launch_persistent_context(profile, **launch_args)
        logger.info(f"Launched bundled Chromium with persistent profile {profile}")
        return context

    def is_alive(self) -> bool:
        if self.page is None or self.closed:
            return False
        try:
            return not self.page.is_closed()
        except PlaywrightError:
            return False

    def save_state(self) -> str | None:
        """Write cookies/storage next to the profile for backup."""
        if self.context is None or not self.profile_path:
            return None
        path = os.path.join(self.profile_path, STATE_FILENAME)
        try:
            self.context.storage_state(path=path)
        except PlaywrightError as e:
            logger.warning(f"Could not save browser state: {e}")
            return None
        logger.info(f"Browser state saved to {path}")
        return path

    def close(self) -> bool:
        """Close the context and stop Playwright.  Safe to call twice.

        Returns:
            True if this call released the session.
        """
        if self.closed:
            return False
        self.closed = True
        if self.context is not None:
            try:
                self.context.close()
            except PlaywrightError as e:
                logger.warning(f"Error closing browser context: {e}")
        self._stop_playwright()
        self.context = None
        self.page = None
        logger.info("Browser session closed")
        return True

    def _stop_playwright(self) -> None:
        if self._playwright is not None:
            try:
                self._playwright.stop()
            except PlaywrightError as e:
                logger.warning(f"Error stopping Playwright: {e}")
            self._playwright = None
