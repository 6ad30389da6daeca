"""Artifact download from the song listing.

For each variant, in index order: find the row among the visible rows,
hover it to reveal its "more" menu, open Download > MP3 through the
keyboard (more stable than hovering across a floating submenu), fall back
to clicking the format item, then save and verify the file.  One missing
or empty variant fails the whole job.
"""

import logging

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from automation.debug_capture import capture_debug_screenshot
from automation.errors import DownloadFailed, LocatorNotFound
from automation.models import Artifact
from automation.naming import file_timestamp
from automation.pacing import Waiter
from timeouts import get_timeout

logger = logging.getLogger("sunobot.automation.retriever")


class ArtifactRetriever:
    """Downloads every variant of the newest job."""

    def __init__(self, page, resolver, human, downloads, config, waiter: Waiter | None = None):
        self.page = page
        self.resolver = resolver
        self.human = human
        self.downloads = downloads
        self.config = config
        self.waiter = waiter or Waiter(page=page)

    def download_all(self, request, expected_variant_count: int | None = None,
                     on_variant=None) -> list[Artifact]:
        """Download variants 0..expected_variant_count-1 of the newest job.

        Args:
            request: The JobRequest (its title names the files).
            expected_variant_count: Defaults to ``request.variant_count``.
            on_variant: Optional callable(artifact) after each save.

        Raises:
            DownloadFailed: If any variant cannot be downloaded or is empty.
        """
        count = expected_variant_count or request.variant_count
        timestamp = file_timestamp()
        artifacts = []
        for index in range(count):
            if index:
                self.waiter.sleep(get_timeout(self.config, "variant_delay_s"), step="download")
            try:
                artifact = self.download_variant(request.title, index, timestamp)
            except (LocatorNotFound, PlaywrightError) as e:
                capture_debug_screenshot(self.page, self.config.debug_dir, f"download-v{index + 1}")
                raise DownloadFailed(
                    f"Variant {index + 1}/{count} could not be downloaded: {e}",
                    step="download",
                    context={"variant_index": index},
                ) from e
            artifacts.append(artifact)
            if on_variant is not None:
                on_variant(artifact)

        if len(artifacts) != count:
            raise DownloadFailed(f"Expected {count} artifacts, got {len(artifacts)}", step="download")
        return artifacts

    # ------------------------------------------------------------------
    # One variant
    # ------------------------------------------------------------------

    def _open_listing(self) -> None:
        self.page.goto(
            f"{self.config.base_url}/me",
            wait_until="domcontentloaded",
            timeout=get_timeout(self.config, "page_load_ms"),
        )
        self.waiter.sleep(get_timeout(self.config, "listing_settle_ms") / 1000, step="download")

    def find_row(self, index: int):
        """Return the visible listing row at *index*."""
        _selector, rows = self.resolver.all_visible("download_entry", limit=index + 1)
        if len(rows) <= index:
            # Rows above the fold may be virtualized away after scrolling
            self.page.evaluate("window.scrollTo(0, 0)")
            self.waiter.sleep(1, step="download")
            _selector, rows = self.resolver.all_visible("download_entry", limit=index + 1)
        if len(rows) <= index:
            raise DownloadFailed(
                f"Only {len(rows)} visible song row(s); need row {index + 1}",
                step="find_row",
                context={"variant_index": index, "visible_rows": len(rows)},
            )
        return rows[index]

    def open_row_menu(self, row):
        """Hover *row*, open its menu and return the open menu root."""
        row.scroll_into_view_if_needed()
        self.human.hover(row)
        trigger = self.resolver.resolve("entry_menu_button", scope=row, step="open_row_menu")
        self.human.click(trigger.locator)
        return self.resolver.resolve("menu_root", timeout_ms=5000, step="open_row_menu").locator

    def download_variant(self, title: str, index: int, timestamp: str) -> Artifact:
        variant_number = index + 1
        logger.info(f"Downloading variant {variant_number} of {title or '<untitled>'!r}")
        self._open_listing()
        row = self.find_row(index)
        menu = self.open_row_menu(row)

        sub_trigger = self.resolver.resolve(
            "download_submenu_trigger", scope=menu, step="download_submenu"
        )
        sub_trigger.locator.focus()
        self.page.keyboard.press("Enter")
        self.human.pause(150, 300)

        download = self._download_via_keyboard()
        if download is None:
            download = self._download_via_click()

        path = self.downloads.save_playwright_download(download, title, variant_number, timestamp)
        size = self.downloads.last_download_size
        self.page.keyboard.press("Escape")
        logger.info(f"Variant {variant_number} saved: {path} ({size:,} bytes)")
        return Artifact(variant_index=index, path=path, size_bytes=size)

    def _download_via_keyboard(self):
        try:
            with self.page.expect_download(
                timeout=get_timeout(self.config, "keyboard_download_ms")
            ) as download_info:
                self.page.keyboard.press("Enter")
            return download_info.value
        except PlaywrightTimeoutError:
            logger.info("Keyboard path gave no download; clicking the format item")
            return None

    def _download_via_click(self):
        item = self.resolver.resolve("download_format_item", step="download_format")
        with self.page.expect_download(
            timeout=get_timeout(self.config, "click_download_ms")
        ) as download_info:
            item.locator.click()
        return download_info.value
