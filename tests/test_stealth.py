"""Tests for browser fingerprint settings."""

from unittest.mock import MagicMock

from automation.stealth import BASE_LAUNCH_ARGS, StealthProfile
from config_store import ConfigStore


def test_from_config_defaults():
    profile = StealthProfile.from_config(ConfigStore(values={}))
    assert profile.enabled is True
    assert profile.viewport == (1920, 1080)
    assert profile.locale == "en-US"


def test_context_options_when_enabled():
    profile = StealthProfile(user_agent="UA/1.0", locale="en-US")
    options = profile.context_options()
    assert options["user_agent"] == "UA/1.0"
    assert options["ignore_default_args"] == ["--enable-automation"]
    assert options["extra_http_headers"]["Accept-Language"] == "en-US,en;q=0.9"
    assert "--disable-blink-features=AutomationControlled" in profile.launch_args()


def test_disabled_profile_keeps_viewport_only():
    profile = StealthProfile(enabled=False, user_agent="UA/1.0")
    options = profile.context_options()
    assert "user_agent" not in options
    assert "ignore_default_args" not in options
    assert options["viewport"] == {"width": 1920, "height": 1080}
    assert profile.launch_args() == []


def test_apply_installs_init_script():
    context = MagicMock()
    StealthProfile(locale="de-DE").apply(context)
    script = context.add_init_script.call_args.args[0]
    assert "webdriver" in script
    assert '"de-DE"' in script


def test_apply_disabled_is_noop():
    context = MagicMock()
    StealthProfile(enabled=False).apply(context)
    context.add_init_script.assert_not_called()


def test_base_args_copied():
    args = StealthProfile().launch_args()
    args.append("--extra")
    assert "--extra" not in BASE_LAUNCH_ARGS
