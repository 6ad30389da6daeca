"""Download persistence for SunoBot: naming, atomic save and verification."""

import logging
from pathlib import Path

from automation.atomic_io import atomic_write_fn
from automation.errors import DownloadFailed
from automation.naming import file_timestamp, safe_filename

logger = logging.getLogger("sunobot.automation")

AUDIO_EXTENSIONS = (".mp3", ".wav", ".m4a", ".ogg", ".flac")


class DownloadManager:
    """Places browser downloads under the configured directory."""

    def __init__(self, base_dir: str):
        """
        Args:
            base_dir: Download directory, e.g. ~/Music/SunoBot/
        """
        self.base_dir = Path(base_dir).expanduser()
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.last_download_size = 0

    def get_file_path(self, title: str, variant_number: int, timestamp: str | None = None,
                      extension: str = ".mp3") -> Path:
        """Return a fresh target path for one variant.

        Example: ~/Music/SunoBot/Night_Drive-v1-2026-03-14T09-26-53.mp3

        An existing file is never overwritten; a counter is appended instead.
        """
        stem = f"{safe_filename(title)}-v{variant_number}-{timestamp or file_timestamp()}"
        path = self.base_dir / f"{stem}{extension}"
        counter = 2
        while path.exists():
            path = self.base_dir / f"{stem}-{counter}{extension}"
            counter += 1
        return path

    def save_playwright_download(self, download, title: str, variant_number: int,
                                 timestamp: str | None = None) -> Path:
        """Save a Playwright Download and verify it is not empty.

        Playwright writes to a temp file that is renamed into place, so a
        partial file never appears under the final name.

        Raises:
            DownloadFailed: If the browser reported a failure or the file is
                zero bytes (the empty file is removed).
        """
        failure = download.failure()
        if failure:
            raise DownloadFailed(
                f"Browser download of variant {variant_number} failed: {failure}",
                step="save_download",
            )

        suggested = download.suggested_filename or ""
        extension = Path(suggested).suffix.lower()
        if extension not in AUDIO_EXTENSIONS:
            extension = ".mp3"

        target_path = self.get_file_path(title, variant_number, timestamp, extension)
        logger.info(f"Saving download to: {target_path}")
        size = atomic_write_fn(str(target_path), lambda tmp: download.save_as(tmp))
        self.last_download_size = size

        if size == 0:
            try:
                target_path.unlink()
            except OSError:
                pass
            raise DownloadFailed(
                f"Variant {variant_number} downloaded as an empty file",
                actual_size=0,
                step="save_download",
                context={"suggested_filename": suggested},
            )

        validation = self.validate_audio_file(target_path)
        if validation["format"] is None:
            logger.warning(
                f"  {target_path.name}: {'; '.join(validation['errors'])}"
            )
        else:
            logger.info(f"  Saved {size:,} bytes ({validation['format']})")
        return target_path

    @staticmethod
    def validate_audio_file(path) -> dict:
        """Identify an audio file by its header.

        Returns:
            dict with keys: size (int), format (str|None), errors (list[str]).
        """
        path = Path(path)
        result = {"size": 0, "format": None, "errors": []}

        if not path.exists():
            result["errors"].append("File does not exist")
            return result

        result["size"] = path.stat().st_size
        try:
            with open(path, "rb") as f:
                header = f.read(12)
        except OSError as e:
            result["errors"].append(f"Cannot read file: {e}")
            return result

        if len(header) < 4:
            result["errors"].append(f"File too short to identify ({len(header)} bytes)")
            return result

        if header[0] == 0xFF and (header[1] & 0xE0) == 0xE0:
            result["format"] = "mp3"
        elif header[:3] == b"ID3":
            result["format"] = "mp3/id3"
        elif header[:4] == b"RIFF":
            result["format"] = "wav"
        elif header[:4] == b"OggS":
            result["format"] = "ogg"
        elif header[:4] == b"fLaC":
            result["format"] = "flac"
        elif header[4:8] == b"ftyp":
            result["format"] = "m4a"
        elif header[:1] in (b"<", b"{", b"["):
            result["errors"].append(
                f"File looks like text/markup, not audio (starts with {header[:4]!r})"
            )
        else:
            result["errors"].append(f"Unrecognized audio header: {header[:4].hex()}")
        return result
