"""Human-like pointer and keyboard pacing for SunoBot.

Randomized pointer paths and delays reduce the most obvious automation
signatures.  None of this affects correctness: with ``enabled=False`` every
action runs immediately.
"""

import logging
import random

from playwright.sync_api import Error as PlaywrightError

logger = logging.getLogger("sunobot.automation.human")

NEAR_OFFSET_PX = 50
CENTER_JITTER_PX = 5
CHAR_DELAY_MS = (30, 80)


class HumanInput:
    """Wraps click / type / scroll / hover with randomized timing."""

    def __init__(self, page, enabled: bool = True, rng: random.Random | None = None,
                 typing_char_limit: int = 200):
        self.page = page
        self.enabled = enabled
        self.rng = rng or random.Random()
        self.typing_char_limit = typing_char_limit

    def pause(self, lo_ms: int, hi_ms: int) -> None:
        """Sleep a random number of milliseconds in [lo_ms, hi_ms]."""
        if self.enabled:
            self.page.wait_for_timeout(self.rng.randint(lo_ms, hi_ms))

    def move_to(self, locator) -> bool:
        """Glide the pointer near the element, then onto its centre.

        Returns False when the element has no box (detached or hidden).
        """
        try:
            box = locator.bounding_box()
        except PlaywrightError as e:
            logger.debug(f"No bounding box for pointer move: {e}")
            return False
        if not box:
            return False

        near_x = box["x"] + self.rng.uniform(-NEAR_OFFSET_PX, NEAR_OFFSET_PX)
        near_y = box["y"] + self.rng.uniform(-NEAR_OFFSET_PX, NEAR_OFFSET_PX)
        self.page.mouse.move(near_x, near_y, steps=self.rng.randint(5, 12))
        self.pause(100, 300)

        center_x = box["x"] + box["width"] / 2
        center_y = box["y"] + box["height"] / 2
        self.page.mouse.move(
            center_x + self.rng.uniform(-CENTER_JITTER_PX, CENTER_JITTER_PX),
            center_y + self.rng.uniform(-CENTER_JITTER_PX, CENTER_JITTER_PX),
            steps=self.rng.randint(3, 8),
        )
        self.pause(50, 150)
        return True

    def click(self, locator) -> None:
        if self.enabled:
            self.move_to(locator)
        locator.click()
        self.pause(200, 500)

    def hover(self, locator) -> None:
        if self.enabled:
            self.move_to(locator)
        locator.hover()
        self.pause(200, 400)

    def type(self, locator, text: str) -> None:
        """Focus, clear, enter *text* and fire input/change events.

        Short values are typed key by key with a random per-character
        delay; long ones (lyrics) are filled in one step.
        """
        self.click(locator)
        self.pause(200, 500)
        locator.fill("")

        if self.enabled and len(text) <= self.typing_char_limit:
            for ch in text:
                self.page.keyboard.type(ch)
                self.page.wait_for_timeout(self.rng.randint(*CHAR_DELAY_MS))
        else:
            locator.fill(text)

        # Some frameworks only pick up synthetic events
        locator.dispatch_event("input")
        locator.dispatch_event("change")
        self.pause(300, 600)

    def scroll(self, amount: int | None = None) -> None:
        delta = amount if amount is not None else self.rng.randint(100, 400)
        self.page.mouse.wheel(0, delta)
        self.pause(300, 800)
