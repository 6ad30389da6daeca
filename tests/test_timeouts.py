"""Tests for the configuration-driven timeouts module."""

import pytest
from timeouts import TIMEOUTS, get_timeout


def test_all_timeout_keys_exist():
    expected_keys = {
        "login_wait_s", "challenge_wait_s", "max_wait_s", "poll_interval_s",
        "cancel_slice_s", "candidate_visible_ms", "keyboard_download_ms",
        "click_download_ms", "job_delay_s", "error_grace_s",
    }
    assert expected_keys.issubset(set(TIMEOUTS.keys()))


def test_get_timeout_returns_defaults(config):
    for key, value in TIMEOUTS.items():
        assert get_timeout(config, key) == value


def test_get_timeout_with_config_override(config):
    config.set_config("timeout_login_wait_s", "120", persist=False)
    assert get_timeout(config, "login_wait_s") == 120


def test_get_timeout_with_none_config():
    assert get_timeout(None, "login_wait_s") == 300


def test_get_timeout_unknown_key(config):
    with pytest.raises(KeyError):
        get_timeout(config, "nonexistent_key")


def test_get_timeout_bad_override_falls_back(config):
    config.set_config("timeout_login_wait_s", "not_a_number", persist=False)
    assert get_timeout(config, "login_wait_s") == 300
