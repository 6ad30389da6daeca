"""Selector health check for the suno.com pages SunoBot drives.

Loads each page in an already signed-in session and reports, per role,
which candidate selector (if any) resolves right now.  Roles that only
exist transiently (menus, challenges, sign-in forms) are not checked.
"""

import logging
from dataclasses import dataclass, field

from playwright.sync_api import Error as PlaywrightError

logger = logging.getLogger("sunobot.automation.selector_health")


@dataclass
class CheckResult:
    """Result of a single role check."""
    role: str
    url: str
    selector: str = ""
    ok: bool = False
    error: str = ""


@dataclass
class HealthReport:
    """Aggregated results from a health check run."""
    results: list[CheckResult] = field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    @property
    def total(self) -> int:
        return len(self.results)

    def summary(self) -> str:
        lines = [f"Selector Health Check: {self.passed}/{self.total} passed"]
        for r in self.results:
            status = "PASS" if r.ok else "FAIL"
            lines.append(f"  [{status}] {r.role}" + (f" -> {r.selector}" if r.selector else ""))
            if r.error:
                lines.append(f"         Error: {r.error}")
        return "\n".join(lines)


# Page path -> roles expected to be visible there once signed in
PAGE_CHECKS = {
    "/create": [
        "authenticated_marker",
        "custom_mode_toggle",
        "lyrics_input",
        "style_input",
        "create_button",
    ],
    "/me": [
        "listing_entry",
        "download_entry",
    ],
}


class SelectorHealthChecker:
    """Runs role checks with a LocatorResolver on a live page.

    Usage::

        checker = SelectorHealthChecker(resolver, base_url)
        report = checker.run_checks()
        print(report.summary())
    """

    def __init__(self, resolver, base_url: str, timeout_ms: int = 15000,
                 candidate_timeout_ms: int = 3000):
        self.resolver = resolver
        self.base_url = base_url.rstrip("/")
        self.timeout_ms = timeout_ms
        self.candidate_timeout_ms = candidate_timeout_ms

    def run_checks(self, checks: dict[str, list[str]] | None = None) -> HealthReport:
        """Visit each page and resolve its roles.

        Args:
            checks: Optional mapping of page path to role names.
                    Defaults to PAGE_CHECKS.
        """
        if checks is None:
            checks = PAGE_CHECKS
        report = HealthReport()
        page = self.resolver.page

        for path, roles in checks.items():
            url = f"{self.base_url}{path}"
            try:
                page.goto(url, timeout=self.timeout_ms, wait_until="domcontentloaded")
            except PlaywrightError as e:
                for role in roles:
                    report.results.append(CheckResult(role, url, error=f"Page load failed: {e}"))
                continue
            for role in roles:
                result = self._check_one(role, url)
                report.results.append(result)
                logger.info(
                    "Health check [%s] %s: %s",
                    "PASS" if result.ok else "FAIL",
                    role,
                    result.selector or result.error,
                )
        return report

    def _check_one(self, role: str, url: str) -> CheckResult:
        candidate_set = self.resolver.registry.get(role)
        if candidate_set is None:
            return CheckResult(role, url, error="No candidates registered")
        match = self.resolver.find_first(
            self.resolver.registry.get_selectors(role),
            timeout_ms=self.candidate_timeout_ms,
            require_enabled=False,
            pick_last=candidate_set.pick_last,
            role=role,
        )
        if match is None:
            return CheckResult(role, url, error="No candidate selector is visible")
        return CheckResult(role, url, selector=match.selector, ok=True)
