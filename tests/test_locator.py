"""Tests for locator resolution against a mocked Playwright page."""

from unittest.mock import MagicMock

import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from automation.debug_capture import MAX_SCREENSHOTS, capture_debug_screenshot
from automation.errors import LocatorNotFound
from automation.locator import LocatorResolver
from automation.selector_registry import CandidateSet, SelectorRegistry


def visible(enabled=True):
    loc = MagicMock()
    loc.first.is_enabled.return_value = enabled
    loc.first.is_visible.return_value = True
    return loc


def hidden():
    loc = MagicMock()
    loc.first.wait_for.side_effect = PlaywrightTimeoutError("Timeout 1500ms exceeded")
    loc.first.is_visible.return_value = False
    loc.count.return_value = 0
    return loc


def make_page(locators):
    page = MagicMock()
    page.locator.side_effect = lambda sel: locators[sel]
    page.evaluate.return_value = ['button text="Create"']
    return page


@pytest.fixture
def registry(tmp_path):
    return SelectorRegistry(path=tmp_path / "registry.json", defaults=[
        CandidateSet("create_button", ("#primary", "#fallback"), require_enabled=True),
        CandidateSet("style_input", ("textarea.style", "textarea"), adaptive=False),
        CandidateSet("menu_root", ("[role=menu]",), pick_last=True),
    ])


class TestFindFirst:
    def test_empty_list_returns_none(self, registry):
        resolver = LocatorResolver(make_page({}), registry)
        assert resolver.find_first([]) is None

    def test_first_visible_wins(self, registry):
        locs = {"#primary": hidden(), "#fallback": visible()}
        resolver = LocatorResolver(make_page(locs), registry)
        match = resolver.find("create_button")
        assert match.selector == "#fallback"
        assert match.locator is locs["#fallback"].first

    def test_disabled_candidate_skipped(self, registry):
        locs = {"#primary": visible(enabled=False), "#fallback": visible()}
        resolver = LocatorResolver(make_page(locs), registry)
        assert resolver.find("create_button").selector == "#fallback"

    def test_success_promotes_adaptive_role(self, registry):
        locs = {"#primary": hidden(), "#fallback": visible()}
        LocatorResolver(make_page(locs), registry).find("create_button")
        assert registry.get_selectors("create_button") == ["#fallback", "#primary"]

    def test_error_demotes(self, registry):
        broken = MagicMock()
        broken.first.wait_for.side_effect = PlaywrightError("bad selector")
        locs = {"#primary": broken, "#fallback": visible()}
        LocatorResolver(make_page(locs), registry).find("create_button")
        assert registry.get_selectors("create_button")[0] == "#fallback"

    def test_pick_last(self, registry):
        loc = visible()
        loc.last.is_enabled.return_value = True
        resolver = LocatorResolver(make_page({"[role=menu]": loc}), registry)
        assert resolver.find("menu_root").locator is loc.last

    def test_scope_used_instead_of_page(self, registry):
        page = make_page({})
        scope = MagicMock()
        scope.locator.return_value = visible()
        resolver = LocatorResolver(page, registry)
        assert resolver.find("create_button", scope=scope) is not None
        page.locator.assert_not_called()


class TestAcceptFilter:
    def test_filter_skips_rejected_matches(self, registry):
        lyrics_box, style_box = MagicMock(name="lyrics"), MagicMock(name="style")
        for box in (lyrics_box, style_box):
            box.is_visible.return_value = True
            box.is_enabled.return_value = True
        generic = MagicMock()
        generic.count.return_value = 2
        generic.nth.side_effect = [lyrics_box, style_box]
        locs = {"textarea.style": hidden(), "textarea": generic}
        resolver = LocatorResolver(make_page(locs), registry)

        match = resolver.find("style_input", accept=lambda loc: loc is style_box)
        assert match.locator is style_box

    def test_filter_rejects_all(self, registry):
        generic = MagicMock()
        generic.count.return_value = 1
        generic.nth.return_value.is_visible.return_value = True
        locs = {"textarea.style": hidden(), "textarea": generic}
        resolver = LocatorResolver(make_page(locs), registry)
        assert resolver.find("style_input", accept=lambda loc: False) is None

    def test_non_adaptive_role_not_reordered(self, registry):
        locs = {"textarea.style": hidden(), "textarea": visible()}
        LocatorResolver(make_page(locs), registry).find("style_input")
        assert registry.get_selectors("style_input") == ["textarea.style", "textarea"]


class TestResolve:
    def test_not_found_carries_diagnostics(self, registry, tmp_path):
        locs = {"#primary": hidden(), "#fallback": hidden()}
        resolver = LocatorResolver(make_page(locs), registry, debug_dir=tmp_path)
        with pytest.raises(LocatorNotFound) as exc_info:
            resolver.resolve("create_button", step="click_create")
        err = exc_info.value
        assert err.role == "create_button"
        assert err.tried == ["#primary", "#fallback"]
        assert err.elements == ['button text="Create"']
        assert err.screenshot is not None
        assert "#primary" in str(err)

    def test_unknown_role(self, registry):
        resolver = LocatorResolver(make_page({}), registry)
        assert resolver.find("missing_role") is None
        with pytest.raises(LocatorNotFound):
            resolver.resolve("missing_role")


class TestProbes:
    def test_is_present(self, registry):
        locs = {"#primary": hidden(), "#fallback": visible()}
        resolver = LocatorResolver(make_page(locs), registry)
        assert resolver.is_present("create_button") == "#fallback"

    def test_all_visible_filters_hidden(self, registry):
        shown, ghost = MagicMock(), MagicMock()
        shown.is_visible.return_value = True
        ghost.is_visible.return_value = False
        rows = MagicMock()
        rows.count.return_value = 3
        rows.nth.side_effect = [ghost, shown, shown]
        resolver = LocatorResolver(make_page({"[role=menu]": rows}), registry)
        selector, items = resolver.all_visible("menu_root")
        assert selector == "[role=menu]"
        assert items == [shown, shown]


class TestDebugCapture:
    def test_screenshot_rotation(self, tmp_path):
        page = MagicMock()
        page.screenshot.side_effect = lambda path, full_page: open(path, "wb").close()
        for i in range(MAX_SCREENSHOTS + 5):
            (tmp_path / f"debug-old{i}-x.png").write_bytes(b"")
        capture_debug_screenshot(page, tmp_path, "step")
        assert len(list(tmp_path.glob("debug-*.png"))) == MAX_SCREENSHOTS

    def test_screenshot_failure_returns_none(self, tmp_path):
        page = MagicMock()
        page.screenshot.side_effect = PlaywrightError("Target closed")
        assert capture_debug_screenshot(page, tmp_path, "step") is None
