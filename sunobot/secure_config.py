"""
SunoBot - Secure Credential Storage

Stores the site password in the system keyring, with a fallback to the
JSON config store on systems whose keyring backend is unusable.  The email
address is not secret and lives in the config store directly.
"""

import logging
import time
from dataclasses import dataclass

import keyring
from keyring.errors import KeyringError

logger = logging.getLogger("sunobot.security")

SERVICE_NAME = "SunoBot"
SENSITIVE_KEYS = {"suno_password"}
KEYRING_MARKER = "***"


def has_keyring() -> bool:
    """Return True if the system keyring backend answers."""
    try:
        keyring.get_password(SERVICE_NAME, "__probe__")
        return True
    except (KeyringError, RuntimeError) as e:
        logger.debug("Keyring unavailable: %s", e)
        return False


def get_secret(key: str, fallback=None) -> str | None:
    """Retrieve a secret, trying keyring first then the config store.

    Args:
        key: One of the SENSITIVE_KEYS.
        fallback: Optional ConfigStore for fallback lookup.

    Returns:
        The credential value, or None if not found.
    """
    try:
        value = keyring.get_password(SERVICE_NAME, key)
        if value:
            return value
    except (KeyringError, RuntimeError) as e:
        logger.debug("Keyring read failed for %s: %s", key, e)

    if fallback is not None:
        value = fallback.get_config(key)
        if value and value != KEYRING_MARKER:
            return value

    return None


def set_secret(key: str, value: str, fallback=None) -> None:
    """Store a secret in the keyring, falling back to the config store.

    When the keyring accepts the value, the config store keeps only
    ``***`` to record where the real value lives.
    """
    try:
        keyring.set_password(SERVICE_NAME, key, value)
        if fallback is not None:
            fallback.set_config(key, KEYRING_MARKER)
        logger.info("Stored %s in system keyring", key)
        return
    except (KeyringError, RuntimeError) as e:
        logger.warning("Keyring write failed for %s: %s, using config fallback", key, e)

    if fallback is not None:
        fallback.set_config(key, value)
        logger.info("Stored %s in config file (no keyring available)", key)


def delete_secret(key: str, fallback=None) -> None:
    """Remove a secret from keyring and config store."""
    try:
        keyring.delete_password(SERVICE_NAME, key)
    except (KeyringError, RuntimeError) as e:
        logger.debug("Keyring delete for %s: %s", key, e)

    if fallback is not None:
        fallback.set_config(key, "")


@dataclass(frozen=True)
class Credentials:
    email: str
    password: str
    saved_at: float = 0.0

    def __repr__(self) -> str:
        return f"Credentials(email={self.email!r}, password='***')"


class CredentialStore:
    """load/save/clear capability over the keyring and config store."""

    def __init__(self, config):
        self._config = config

    def load(self) -> Credentials | None:
        email = self._config.get_config("email") or ""
        password = get_secret("suno_password", fallback=self._config)
        if not email or not password:
            return None
        saved_at = self._config.get_config("credentials_saved_at") or 0.0
        return Credentials(email=email, password=password, saved_at=float(saved_at))

    def save(self, email: str, password: str) -> Credentials:
        if not email or not password:
            raise ValueError("Both email and password are required")
        saved_at = time.time()
        self._config.set_config("email", email, persist=False)
        self._config.set_config("credentials_saved_at", saved_at, persist=False)
        set_secret("suno_password", password, fallback=self._config)
        self._config.save()
        return Credentials(email=email, password=password, saved_at=saved_at)

    def clear(self) -> None:
        delete_secret("suno_password", fallback=self._config)
        self._config.set_config("credentials_saved_at", 0.0, persist=False)
        self._config.set_config("email", "")

    def has_credentials(self) -> bool:
        return self.load() is not None
