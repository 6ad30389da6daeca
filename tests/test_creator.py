"""Tests for the creation form driver."""

import random
from unittest.mock import MagicMock

import pytest
from automation.creator import CreationDirector, looks_like_lyrics_field, looks_like_style_field
from automation.errors import AuthError, LocatorNotFound, RateLimitedOrBlocked
from automation.models import JobRequest


def field(placeholder="", maxlength=None, in_advanced=False):
    loc = MagicMock()
    attrs = {"placeholder": placeholder, "maxlength": maxlength}
    loc.get_attribute.side_effect = lambda name: attrs.get(name)
    loc.evaluate.return_value = in_advanced
    return loc


# ── Field filters ────────────────────────────────────────────────────


class TestFieldFilters:
    def test_style_rejects_lyrics_box(self):
        assert looks_like_style_field(field("Write some lyrics or a prompt")) is False

    def test_style_rejects_advanced_options(self):
        assert looks_like_style_field(field("Enter style", in_advanced=True)) is False

    def test_style_accepts_style_box(self):
        assert looks_like_style_field(field("Hip-hop, R&B, upbeat", maxlength="1000")) is True

    def test_lyrics_rejects_length_limited_field(self):
        assert looks_like_lyrics_field(field("", maxlength="1000")) is False

    def test_lyrics_rejects_style_placeholder(self):
        assert looks_like_lyrics_field(field("Enter style of music")) is False

    def test_lyrics_accepts_lyrics_box(self):
        assert looks_like_lyrics_field(field("Write some lyrics")) is True


# ── Submission ───────────────────────────────────────────────────────


@pytest.fixture
def director(config, waiter):
    page = MagicMock()
    page.url = "https://suno.com/create"
    resolver = MagicMock()
    log = []

    def find(role, **kwargs):
        log.append(("find", role))
        return MagicMock(selector=f"#{role}", locator=MagicMock(name=role))

    def resolve(role, **kwargs):
        log.append(("resolve", role))
        return MagicMock(selector=f"#{role}", locator=MagicMock(name=role))

    resolver.find.side_effect = find
    resolver.resolve.side_effect = resolve
    human = MagicMock()
    human.rng = random.Random(0)
    challenge = MagicMock()
    challenge.check_and_await_resolution.return_value = False
    director = CreationDirector(page, resolver, human, challenge, config, waiter=waiter)
    director.log = log
    return director


def create_clicks(director):
    return [c for c in director.human.click.call_args_list
            if "create_button" in repr(c.args[0])]


def test_submit_fills_in_order(director):
    receipt = director.submit(JobRequest(style="indie pop", title="Test", lyrics="la la"))
    roles = [role for _kind, role in director.log]
    assert roles.index("lyrics_input") < roles.index("style_input") < roles.index("create_button")
    typed = [c.args[1] for c in director.human.type.call_args_list]
    assert typed == ["la la", "indie pop", "Test"]
    assert len(create_clicks(director)) == 1
    assert receipt.challenge_cleared is False
    assert receipt.url == "https://suno.com/create"


def test_instrumental_skips_lyrics(director):
    director.submit(JobRequest(style="ambient"))
    roles = [role for _kind, role in director.log]
    assert "lyrics_input" not in roles
    assert "title_input" not in roles


def test_filters_passed_to_resolver(director):
    director.submit(JobRequest(style="ambient", lyrics="words"))
    accepts = {c.args[0]: c.kwargs.get("accept") for c in director.resolver.resolve.call_args_list}
    assert accepts["style_input"] is looks_like_style_field
    assert accepts["lyrics_input"] is looks_like_lyrics_field


def test_missing_create_button(director):
    original = director.resolver.find.side_effect
    director.resolver.find.side_effect = (
        lambda role, **kw: None if role == "create_button" else original(role, **kw)
    )
    director.resolver.not_found.return_value = LocatorNotFound("create_button", ["#go"])
    with pytest.raises(LocatorNotFound):
        director.submit(JobRequest(style="ambient"))
    assert create_clicks(director) == []


def test_missing_title_is_not_fatal(director):
    original = director.resolver.find.side_effect
    director.resolver.find.side_effect = (
        lambda role, **kw: None if role in ("title_input", "title_reveal") else original(role, **kw)
    )
    director.submit(JobRequest(style="ambient", title="No Field"))
    assert len(create_clicks(director)) == 1


def test_error_route_after_submit_is_rate_limited(director):
    def click(locator):
        if "create_button" in repr(locator):
            director.page.url = "https://suno.com/error"

    director.human.click.side_effect = click
    with pytest.raises(RateLimitedOrBlocked):
        director.submit(JobRequest(style="ambient"))
    director.challenge.check_and_await_resolution.assert_not_called()


def test_challenge_after_submit_does_not_reclick(director):
    director.challenge.check_and_await_resolution.return_value = True
    receipt = director.submit(JobRequest(style="ambient"))
    assert receipt.challenge_cleared is True
    assert len(create_clicks(director)) == 1


def test_expired_session_redirect(director):
    director.page.url = "https://accounts.google.com/signin"
    with pytest.raises(AuthError) as exc_info:
        director.submit(JobRequest(style="ambient"))
    assert exc_info.value.fatal_for_session
