"""Tests for browser profile management."""

import os

import pytest
from automation.browser_profiles import (
    check_profile_lock, clear_cache, clear_profile, get_profile_path,
    get_profile_size, list_profiles,
)
from automation.errors import ProfileLocked


@pytest.fixture(autouse=True)
def use_tmp_profiles(tmp_path, monkeypatch):
    """Redirect PROFILES_DIR to a temp directory for all tests."""
    test_profiles = str(tmp_path / "profiles")
    monkeypatch.setattr("automation.browser_profiles.PROFILES_DIR", test_profiles)
    yield test_profiles


def test_get_profile_path_creates_dir(use_tmp_profiles):
    path = get_profile_path("suno")
    assert os.path.isdir(path)
    assert path.endswith("suno")


def test_get_profile_path_idempotent(use_tmp_profiles):
    assert get_profile_path("suno") == get_profile_path("suno")


def test_clear_cache_no_cache(use_tmp_profiles):
    get_profile_path("test")
    assert clear_cache("test") is False


def test_clear_cache_with_cache(use_tmp_profiles):
    path = get_profile_path("test")
    cache_dir = os.path.join(path, "Default", "Cache")
    os.makedirs(cache_dir)
    with open(os.path.join(cache_dir, "data"), "w") as f:
        f.write("cached")
    with open(os.path.join(path, "Default", "Cookies"), "w") as f:
        f.write("keep")
    assert clear_cache("test") is True
    assert not os.path.exists(cache_dir)
    assert os.path.exists(os.path.join(path, "Default", "Cookies"))


def test_clear_profile(use_tmp_profiles):
    get_profile_path("test")
    assert clear_profile("test") is True
    assert clear_profile("test") is False  # already gone


def test_get_profile_size(use_tmp_profiles):
    path = get_profile_path("test")
    with open(os.path.join(path, "file.txt"), "w") as f:
        f.write("x" * 100)
    assert get_profile_size("test") >= 100


def test_list_profiles(use_tmp_profiles):
    get_profile_path("alpha")
    get_profile_path("beta")
    names = [p["name"] for p in list_profiles()]
    assert names == ["alpha", "beta"]


# ── Profile lock ─────────────────────────────────────────────────────


class TestProfileLock:
    def test_no_lock(self, use_tmp_profiles):
        assert check_profile_lock(get_profile_path("suno")) is False

    def test_stale_lock_removed(self, use_tmp_profiles, monkeypatch):
        path = get_profile_path("suno")
        os.symlink("somehost-999999", os.path.join(path, "SingletonLock"))
        open(os.path.join(path, "SingletonCookie"), "w").close()
        monkeypatch.setattr("automation.browser_profiles._pid_alive", lambda pid: False)
        assert check_profile_lock(path) is True
        assert not os.path.lexists(os.path.join(path, "SingletonLock"))
        assert not os.path.exists(os.path.join(path, "SingletonCookie"))

    def test_live_owner_raises(self, use_tmp_profiles, monkeypatch):
        path = get_profile_path("suno")
        os.symlink("somehost-4242", os.path.join(path, "SingletonLock"))
        monkeypatch.setattr("automation.browser_profiles._pid_alive", lambda pid: True)
        with pytest.raises(ProfileLocked) as exc_info:
            check_profile_lock(path)
        assert exc_info.value.fatal_for_session
        assert os.path.lexists(os.path.join(path, "SingletonLock"))

    def test_own_pid_lock_is_stale(self, use_tmp_profiles):
        path = get_profile_path("suno")
        os.symlink(f"somehost-{os.getpid()}", os.path.join(path, "SingletonLock"))
        assert check_profile_lock(path) is True

    def test_listed_as_locked(self, use_tmp_profiles):
        path = get_profile_path("suno")
        os.symlink("somehost-1", os.path.join(path, "SingletonLock"))
        assert list_profiles()[0]["locked"] is True
