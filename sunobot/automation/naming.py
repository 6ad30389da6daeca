"""Filesystem-safe names and timestamps for downloads and debug captures."""

import re
from datetime import datetime

_INVALID_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_WHITESPACE = re.compile(r"\s+")
MAX_NAME_LENGTH = 200


def safe_filename(text: str | None, default: str = "suno-song") -> str:
    """Make *text* usable as a file name while keeping its case.

    Example: 'Night Drive: Part 2' -> 'Night_Drive-_Part_2'
    """
    text = (text or "").strip()
    text = _INVALID_CHARS.sub("-", text)
    text = _WHITESPACE.sub("_", text)
    text = text.strip("._")[:MAX_NAME_LENGTH]
    return text or default


def file_timestamp(now: datetime | None = None) -> str:
    """Second-resolution timestamp without characters that break paths.

    Example: '2026-03-14T09-26-53'
    """
    now = now or datetime.now()
    return now.strftime("%Y-%m-%dT%H-%M-%S")
