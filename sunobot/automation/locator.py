"""Locator resolution for SunoBot.

Resolves a semantic role to the first candidate selector whose element is
visible (and enabled, for roles that need it).  The site's markup is
undocumented and changes without notice, so resilience comes from breadth
of candidates plus diagnostics when all of them miss: a debug screenshot
and a summary of the live interactive elements travel with the
``LocatorNotFound`` error.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from automation.debug_capture import capture_debug_screenshot, describe_live_elements
from automation.errors import LocatorNotFound

logger = logging.getLogger("sunobot.automation.locator")

# Matches examined per selector when an accept filter is in play
MAX_FILTER_SCAN = 5


@dataclass(frozen=True)
class Match:
    locator: object
    selector: str
    role: str


class LocatorResolver:
    """Resolves roles from a SelectorRegistry against a page or sub-element."""

    def __init__(self, page, registry, candidate_timeout_ms: int = 1500,
                 debug_dir: str | Path | None = None):
        self.page = page
        self.registry = registry
        self.candidate_timeout_ms = candidate_timeout_ms
        self.debug_dir = debug_dir

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find(self, role: str, scope=None, accept=None,
             timeout_ms: int | None = None) -> Match | None:
        """Return the first accepted match for *role*, or None.

        Args:
            role: Registered role name.
            scope: Page or Locator to search within (default: the page).
            accept: Optional predicate ``accept(locator) -> bool``; when
                given, up to MAX_FILTER_SCAN matches per selector are tried.
            timeout_ms: Per-candidate visibility timeout.
        """
        candidate_set = self.registry.get(role)
        if candidate_set is None:
            logger.warning(f"No locator candidates registered for role {role!r}")
            return None
        return self.find_first(
            self.registry.get_selectors(role),
            scope=scope,
            accept=accept,
            timeout_ms=timeout_ms,
            require_enabled=candidate_set.require_enabled,
            pick_last=candidate_set.pick_last,
            role=role,
            learn=candidate_set.adaptive,
        )

    def find_first(self, selectors, *, scope=None, accept=None,
                   timeout_ms: int | None = None, require_enabled: bool = False,
                   pick_last: bool = False, role: str = "", learn: bool = False) -> Match | None:
        """Try *selectors* in order and return the first accepted match."""
        base = scope if scope is not None else self.page
        timeout = self.candidate_timeout_ms if timeout_ms is None else timeout_ms

        for sel in selectors:
            try:
                loc = base.locator(sel)
                if accept is None:
                    candidate = loc.last if pick_last else loc.first
                    candidate.wait_for(state="visible", timeout=timeout)
                    if require_enabled and not candidate.is_enabled():
                        logger.debug(f"[{role}] {sel} visible but disabled")
                        continue
                else:
                    candidate = self._scan(loc, accept, require_enabled, timeout)
                    if candidate is None:
                        continue
            except PlaywrightTimeoutError:
                continue
            except PlaywrightError as e:
                logger.debug(f"[{role}] selector {sel} errored: {e}")
                if learn:
                    self.registry.demote(role, sel)
                continue

            if learn:
                self.registry.promote(role, sel)
            logger.debug(f"[{role}] matched {sel}")
            return Match(candidate, sel, role)
        return None

    def _scan(self, loc, accept, require_enabled: bool, timeout: int):
        loc.first.wait_for(state="attached", timeout=timeout)
        count = min(loc.count(), MAX_FILTER_SCAN)
        for i in range(count):
            candidate = loc.nth(i)
            if not candidate.is_visible():
                continue
            if require_enabled and not candidate.is_enabled():
                continue
            if accept(candidate):
                return candidate
        return None

    def resolve(self, role: str, scope=None, accept=None,
                timeout_ms: int | None = None, step: str | None = None) -> Match:
        """Like find(), but raise LocatorNotFound with diagnostics on a miss."""
        match = self.find(role, scope=scope, accept=accept, timeout_ms=timeout_ms)
        if match is None:
            raise self.not_found(role, step=step)
        return match

    def not_found(self, role: str, step: str | None = None) -> LocatorNotFound:
        """Build a LocatorNotFound for *role*, capturing the page state."""
        tried = self.registry.get_selectors(role)
        screenshot = None
        if self.debug_dir is not None:
            screenshot = capture_debug_screenshot(
                self.page, self.debug_dir, f"{step or role}-not-found"
            )
        elements = describe_live_elements(self.page)
        logger.error(
            f"No candidate matched role {role!r} ({len(tried)} tried). "
            f"Live elements: {elements}"
        )
        return LocatorNotFound(role, tried, screenshot=screenshot,
                               elements=elements, step=step)

    # ------------------------------------------------------------------
    # Probes
    # ------------------------------------------------------------------

    def is_present(self, role: str, scope=None) -> str | None:
        """Return the first selector of *role* that is visible right now."""
        base = scope if scope is not None else self.page
        for sel in self.registry.get_selectors(role):
            try:
                if base.locator(sel).first.is_visible():
                    return sel
            except PlaywrightError as e:
                logger.debug(f"[{role}] probe {sel} errored: {e}")
        return None

    def all_visible(self, role: str, scope=None, limit: int = 10) -> tuple[str | None, list]:
        """Return (selector, visible matches) for the first selector with any.

        Hidden or off-screen duplicates are filtered out so that indexes
        line up with what the user sees.
        """
        base = scope if scope is not None else self.page
        for sel in self.registry.get_selectors(role):
            try:
                loc = base.locator(sel)
                count = loc.count()
                if not count:
                    continue
                visible = []
                for i in range(min(count, limit * 4)):
                    item = loc.nth(i)
                    if item.is_visible():
                        visible.append(item)
                        if len(visible) >= limit:
                            break
            except PlaywrightError as e:
                logger.debug(f"[{role}] listing {sel} errored: {e}")
                continue
            if visible:
                return sel, visible
        return None, []
