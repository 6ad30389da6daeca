"""Debug screenshots and live-element summaries for failed automation steps."""

import logging
from pathlib import Path

from automation.naming import file_timestamp, safe_filename

logger = logging.getLogger("sunobot.automation")

MAX_SCREENSHOTS = 20

_DESCRIBE_ELEMENTS_JS = """
(limit) => Array.from(
    document.querySelectorAll('button, textarea, input, [role="menuitem"], [role="tab"]')
).filter(el => el.offsetParent !== null).slice(0, limit).map(el => {
    const bits = [el.tagName.toLowerCase()];
    for (const attr of ['type', 'name', 'placeholder', 'aria-label', 'data-testid', 'maxlength']) {
        const v = el.getAttribute(attr);
        if (v) bits.push(`${attr}="${v.slice(0, 40)}"`);
    }
    const text = (el.innerText || '').trim().replace(/\\s+/g, ' ').slice(0, 40);
    if (text) bits.push(`text="${text}"`);
    if (el.disabled) bits.push('disabled');
    return bits.join(' ');
})
"""


def capture_debug_screenshot(page, debug_dir: str | Path, context_name: str) -> str | None:
    """Save a full-page screenshot and return its path.

    Keeps at most MAX_SCREENSHOTS files in *debug_dir*, rotating the oldest.
    Returns None when the page cannot be captured; a capture problem must
    never replace the error that triggered it.
    """
    try:
        debug_dir = Path(debug_dir)
        debug_dir.mkdir(parents=True, exist_ok=True)

        existing = sorted(debug_dir.glob("debug-*.png"), key=lambda p: p.stat().st_mtime)
        while len(existing) >= MAX_SCREENSHOTS:
            oldest = existing.pop(0)
            try:
                oldest.unlink()
            except OSError:
                pass

        name = safe_filename(context_name, default="step")
        path = debug_dir / f"debug-{name}-{file_timestamp()}.png"
        page.screenshot(path=str(path), full_page=True)
        logger.info(f"Debug screenshot saved: {path}")
        return str(path)
    except Exception as e:
        logger.warning(f"Failed to capture screenshot: {e}")
        return None


def describe_live_elements(page, limit: int = 10) -> list[str]:
    """Summarize the first visible interactive elements on the page."""
    try:
        described = page.evaluate(_DESCRIBE_ELEMENTS_JS, limit)
    except Exception as e:
        logger.debug(f"Could not enumerate live elements: {e}")
        return []
    if not isinstance(described, list):
        return []
    return [str(item) for item in described]
