"""Tests for the selector health checker."""

from unittest.mock import MagicMock

from automation.locator import Match
from automation.selector_health import HealthReport, CheckResult, SelectorHealthChecker
from automation.selector_registry import SelectorRegistry
from playwright.sync_api import Error as PlaywrightError


def make_checker(tmp_path, visible_roles):
    resolver = MagicMock()
    resolver.registry = SelectorRegistry(path=tmp_path / "registry.json")

    def find_first(selectors, role="", **kwargs):
        if role in visible_roles:
            return Match(MagicMock(), selectors[0], role)
        return None

    resolver.find_first.side_effect = find_first
    return SelectorHealthChecker(resolver, "https://suno.com/"), resolver


def test_all_roles_pass(tmp_path):
    checker, resolver = make_checker(tmp_path, {
        "authenticated_marker", "custom_mode_toggle", "lyrics_input",
        "style_input", "create_button", "listing_entry", "download_entry",
    })
    report = checker.run_checks()
    assert report.total == 7
    assert report.failed == 0
    visited = [c.args[0] for c in resolver.page.goto.call_args_list]
    assert visited == ["https://suno.com/create", "https://suno.com/me"]


def test_missing_role_reported(tmp_path):
    checker, resolver = make_checker(tmp_path, {"style_input"})
    report = checker.run_checks({"/create": ["style_input", "create_button"]})
    assert report.passed == 1
    failed = [r for r in report.results if not r.ok]
    assert failed[0].role == "create_button"
    assert "[FAIL] create_button" in report.summary()


def test_checks_never_learn(tmp_path):
    checker, resolver = make_checker(tmp_path, {"style_input"})
    checker.run_checks({"/create": ["style_input"]})
    assert resolver.find_first.call_args.kwargs.get("learn", False) is False


def test_unknown_role(tmp_path):
    checker, resolver = make_checker(tmp_path, set())
    report = checker.run_checks({"/create": ["no_such_role"]})
    assert report.results[0].error == "No candidates registered"
    resolver.find_first.assert_not_called()


def test_page_load_failure_fails_its_roles(tmp_path):
    checker, resolver = make_checker(tmp_path, {"style_input", "listing_entry"})
    resolver.page.goto.side_effect = [PlaywrightError("net::ERR_TIMED_OUT"), None]
    report = checker.run_checks({"/create": ["style_input"], "/me": ["listing_entry"]})
    create, me = report.results
    assert not create.ok
    assert "Page load failed" in create.error
    assert me.ok


def test_summary_counts():
    report = HealthReport([
        CheckResult("a", "u", selector="#a", ok=True),
        CheckResult("b", "u", error="No candidate selector is visible"),
    ])
    text = report.summary()
    assert text.splitlines()[0] == "Selector Health Check: 1/2 passed"
    assert "Error: No candidate selector is visible" in text
