"""
SunoBot - JSON Configuration Store

A small key/value store persisted to ``~/.sunobot/config.json``.  It is the
configuration provider for the automation core: the bot only reads from it,
while the CLI writes user settings and credential fallbacks into it.
"""

import json
import logging
import os

from automation.atomic_io import atomic_write_json

logger = logging.getLogger("sunobot.config")

DEFAULT_CONFIG_PATH = os.path.expanduser("~/.sunobot/config.json")

DEFAULT_CONFIG = {
    "auth_method": "oauth",
    "email": "",
    "base_url": "https://suno.com",
    "download_dir": os.path.expanduser("~/Music/SunoBot"),
    "headless": False,
    "slow_mo_ms": 50,
    "default_timeout_ms": 60000,
    "browser_channel": "chrome",
    "browser_path": "",
    "profile_name": "suno",
    "stealth": True,
    "human_pacing": True,
    "typing_char_limit": 200,
    "locale": "en-US",
    "timezone_id": "America/New_York",
    "user_agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "viewport_width": 1920,
    "viewport_height": 1080,
    "selector_overrides_path": "",
}

AUTH_METHODS = ("oauth", "password")
_AUTH_ALIASES = {"google": "oauth", "credentials": "password", "email": "password"}


class ConfigStore:
    """JSON-backed settings with defaults.

    Values explicitly set by the user live in ``self._values``; anything
    else falls through to ``DEFAULT_CONFIG``.
    """

    def __init__(self, path: str | None = None, values: dict | None = None):
        self.path = path or DEFAULT_CONFIG_PATH
        self._values: dict = {}
        if values is None:
            self._load()
        else:
            self._values = dict(values)

    def _load(self) -> None:
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not read config %s: %s", self.path, e)
            return
        if isinstance(data, dict):
            self._values = data
            logger.debug("Loaded %d config keys from %s", len(data), self.path)
        else:
            logger.warning("Ignoring config %s: top level is not an object", self.path)

    def save(self) -> None:
        atomic_write_json(self.path, self._values)

    def get_config(self, key: str, default=None):
        if key in self._values:
            return self._values[key]
        if default is not None:
            return default
        return DEFAULT_CONFIG.get(key)

    def set_config(self, key: str, value, persist: bool = True) -> None:
        self._values[key] = value
        if persist:
            self.save()

    def as_dict(self) -> dict:
        merged = dict(DEFAULT_CONFIG)
        merged.update(self._values)
        return merged

    # ------------------------------------------------------------------
    # Typed accessors used by the automation core
    # ------------------------------------------------------------------

    @property
    def auth_method(self) -> str:
        method = str(self.get_config("auth_method") or "oauth").strip().lower()
        method = _AUTH_ALIASES.get(method, method)
        if method not in AUTH_METHODS:
            raise ValueError(
                f"Unsupported auth_method {method!r}; expected one of {AUTH_METHODS}"
            )
        return method

    @property
    def base_url(self) -> str:
        return str(self.get_config("base_url")).rstrip("/")

    @property
    def download_dir(self) -> str:
        return os.path.expanduser(str(self.get_config("download_dir")))

    @property
    def debug_dir(self) -> str:
        return os.path.join(self.download_dir, "debug")

    def flag(self, key: str) -> bool:
        value = self.get_config(key)
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
