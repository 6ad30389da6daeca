"""
SunoBot - Centralized Logging Configuration

Sets up rotating file handlers for the bot.  Call ``setup_logging()``
once at startup (in main.py) before any module creates a logger.

All modules should use named loggers under the ``sunobot`` namespace::

    logger = logging.getLogger("sunobot.automation.poller")
    logger.info("Listing scan found %d entries", count)
"""

import logging
import os
from logging.handlers import RotatingFileHandler

LOG_DIR = os.path.expanduser("~/.sunobot/logs/")


def setup_logging(console_level: int = logging.WARNING, log_dir: str | None = None) -> None:
    """Configure the root ``sunobot`` logger with a rotating file handler.

    - Log file: ``~/.sunobot/logs/sunobot.log``
    - Rotation: 5 MB per file, 3 backup copies
    - Console: *console_level* and above to stderr
    """
    log_dir = log_dir or LOG_DIR
    os.makedirs(log_dir, exist_ok=True)

    root = logging.getLogger("sunobot")
    # Avoid adding handlers twice if called more than once
    if root.handlers:
        return
    root.setLevel(logging.DEBUG)

    # --- Rotating file handler (all levels) ---
    log_path = os.path.join(log_dir, "sunobot.log")
    fh = RotatingFileHandler(
        log_path, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(
        logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s")
    )
    root.addHandler(fh)

    # --- Console handler ---
    ch = logging.StreamHandler()
    ch.setLevel(console_level)
    ch.setFormatter(
        logging.Formatter("[%(name)s] %(levelname)s: %(message)s")
    )
    root.addHandler(ch)


def mask_email(email: str | None) -> str:
    """Return *email* with the local part hidden, for log lines."""
    if not email or "@" not in email:
        return "<none>"
    local, _, domain = email.partition("@")
    return f"{local[:1]}***@{domain}"
