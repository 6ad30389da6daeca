"""Persistent browser profile management for SunoBot.

The profile directory holds cookies and local storage, so a signed-in
session survives restarts.  One live browser may use a profile at a time;
``check_profile_lock`` clears a stale Chromium lock left by a crash and
refuses to continue while another process still owns the profile.
"""

import logging
import os
import re
import shutil

from automation.errors import ProfileLocked

logger = logging.getLogger("sunobot.automation.browser_profiles")

PROFILES_DIR = os.path.join(os.path.expanduser("~"), ".sunobot", "profiles")

LOCK_FILES = ("SingletonLock", "SingletonSocket", "SingletonCookie")
CACHE_DIRS = (
    os.path.join("Default", "Cache"),
    os.path.join("Default", "Code Cache"),
    os.path.join("Default", "GPUCache"),
)


def get_profile_path(name: str = "suno") -> str:
    """Return the profile directory for *name*, creating it if needed."""
    path = os.path.join(PROFILES_DIR, name)
    os.makedirs(path, exist_ok=True)
    return path


def _lock_owner_pid(lock_path: str) -> int | None:
    """Chromium's SingletonLock is a symlink to ``<hostname>-<pid>``."""
    try:
        target = os.readlink(lock_path)
    except OSError:
        return None
    match = re.search(r"-(\d+)$", target)
    return int(match.group(1)) if match else None


def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except OSError:
        return False
    return True


def check_profile_lock(profile_path: str) -> bool:
    """Clear stale lock files in *profile_path*.

    Returns:
        True if stale lock files were removed.

    Raises:
        ProfileLocked: If a live process still holds the profile.
    """
    lock_path = os.path.join(profile_path, "SingletonLock")
    if not os.path.lexists(lock_path):
        return False

    pid = _lock_owner_pid(lock_path)
    if pid and pid != os.getpid() and _pid_alive(pid):
        raise ProfileLocked(
            f"Browser profile {profile_path} is in use by process {pid}",
            step="open_profile",
            context={"profile": profile_path, "pid": pid},
        )

    removed = False
    for name in LOCK_FILES:
        path = os.path.join(profile_path, name)
        if os.path.lexists(path):
            try:
                os.unlink(path)
                removed = True
                logger.info("Removed stale profile lock: %s", path)
            except OSError as e:
                logger.warning("Could not remove lock %s: %s", path, e)
    return removed


def clear_cache(name: str = "suno") -> bool:
    """Delete browser cache for a profile while preserving cookies/storage.

    Returns:
        True if cache was found and removed.
    """
    profile = get_profile_path(name)
    removed = False
    for rel in CACHE_DIRS:
        cache_dir = os.path.join(profile, rel)
        if os.path.isdir(cache_dir):
            try:
                shutil.rmtree(cache_dir)
                logger.info("Cleared cache: %s", cache_dir)
                removed = True
            except OSError as e:
                logger.warning("Failed to clear cache %s: %s", cache_dir, e)
    return removed


def clear_profile(name: str = "suno") -> bool:
    """Delete the entire profile, forcing a fresh login next time."""
    path = os.path.join(PROFILES_DIR, name)
    if os.path.isdir(path):
        try:
            shutil.rmtree(path)
            logger.info("Cleared profile: %s", path)
            return True
        except OSError as e:
            logger.warning("Failed to clear profile %s: %s", path, e)
    return False


def get_profile_size(name: str) -> int:
    """Return total size in bytes of a profile directory."""
    path = os.path.join(PROFILES_DIR, name)
    if not os.path.isdir(path):
        return 0
    total = 0
    for dirpath, _dirnames, filenames in os.walk(path):
        for f in filenames:
            try:
                total += os.path.getsize(os.path.join(dirpath, f))
            except OSError:
                pass
    return total


def list_profiles() -> list[dict]:
    """Return info about all known profiles.

    Returns:
        List of dicts with keys: name, path, size_bytes, locked.
    """
    result = []
    if not os.path.isdir(PROFILES_DIR):
        return result
    for entry in sorted(os.listdir(PROFILES_DIR)):
        full = os.path.join(PROFILES_DIR, entry)
        if os.path.isdir(full):
            result.append({
                "name": entry,
                "path": full,
                "size_bytes": get_profile_size(entry),
                "locked": os.path.lexists(os.path.join(full, "SingletonLock")),
            })
    return result
