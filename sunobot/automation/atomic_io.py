"""
SunoBot - Atomic File Operations

Every file the bot produces (config, selector registry, downloaded audio)
is first written to a sibling temp file and then renamed over the target,
so a crash never leaves a half-written file under the final name.
"""

import json
import logging
import os
import tempfile

logger = logging.getLogger("sunobot.automation")


def _temp_path_for(target_path: str) -> str:
    dir_name = os.path.dirname(target_path) or "."
    os.makedirs(dir_name, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=dir_name, prefix=".partial-", suffix=".tmp"
    )
    os.close(fd)
    return tmp_path


def atomic_write_fn(target_path: str, write_fn) -> int:
    """Write to target_path via a callback: write_fn(tmp_path).

    The callback receives a temporary path in the target directory.  On
    success the temp file replaces target_path and its size is returned;
    on failure the temp file is removed and the error propagates.
    """
    tmp_path = _temp_path_for(target_path)
    try:
        write_fn(tmp_path)
        size = os.path.getsize(tmp_path)
        os.replace(tmp_path, target_path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
    logger.debug("Wrote %s (%d bytes)", target_path, size)
    return size


def atomic_write_text(target_path: str, text: str, encoding: str = "utf-8") -> int:
    """Write text atomically to target_path."""
    def _write(tmp):
        with open(tmp, "w", encoding=encoding) as f:
            f.write(text)

    return atomic_write_fn(target_path, _write)


def atomic_write_json(target_path: str, data) -> int:
    """Serialize *data* as indented JSON and write it atomically."""
    return atomic_write_text(target_path, json.dumps(data, indent=2, sort_keys=True))
