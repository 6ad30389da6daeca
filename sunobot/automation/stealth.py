"""Fingerprint normalisation applied before the first navigation.

All launch flags, context options and navigator overrides live here so the
rest of the bot never touches them.  This is a best-effort heuristic; it
does not guarantee anything about detection.
"""

import json
import logging

logger = logging.getLogger("sunobot.automation.stealth")

BASE_LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-first-run",
    "--no-service-autorun",
    "--password-store=basic",
]

_INIT_SCRIPT_TEMPLATE = """
(() => {
    const settings = %(settings)s;
    Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
    window.chrome = window.chrome || { runtime: {}, loadTimes: () => ({}), csi: () => ({}) };
    Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
    Object.defineProperty(navigator, 'languages', { get: () => settings.languages });
    Object.defineProperty(navigator, 'platform', { get: () => settings.platform });
    if (!navigator.connection) {
        Object.defineProperty(navigator, 'connection', {
            get: () => ({ effectiveType: '4g', rtt: 50, downlink: 10, saveData: false }),
        });
    }
    const originalQuery = window.navigator.permissions && window.navigator.permissions.query;
    if (originalQuery) {
        window.navigator.permissions.query = (parameters) => (
            parameters.name === 'notifications'
                ? Promise.resolve({ state: Notification.permission })
                : originalQuery(parameters)
        );
    }
    const getParameter = WebGLRenderingContext.prototype.getParameter;
    WebGLRenderingContext.prototype.getParameter = function (parameter) {
        if (parameter === 37445) return settings.webglVendor;
        if (parameter === 37446) return settings.webglRenderer;
        return getParameter.call(this, parameter);
    };
})();
"""


class StealthProfile:
    """Launch arguments, context options and init script for one session."""

    def __init__(self, enabled: bool = True, user_agent: str = "", locale: str = "en-US",
                 timezone_id: str = "America/New_York", viewport: tuple[int, int] = (1920, 1080),
                 platform: str = "MacIntel", webgl_vendor: str = "Intel Inc.",
                 webgl_renderer: str = "Intel Iris OpenGL Engine"):
        self.enabled = enabled
        self.user_agent = user_agent
        self.locale = locale
        self.timezone_id = timezone_id
        self.viewport = viewport
        self.platform = platform
        self.webgl_vendor = webgl_vendor
        self.webgl_renderer = webgl_renderer

    @classmethod
    def from_config(cls, config) -> "StealthProfile":
        return cls(
            enabled=config.flag("stealth"),
            user_agent=config.get_config("user_agent") or "",
            locale=config.get_config("locale") or "en-US",
            timezone_id=config.get_config("timezone_id") or "America/New_York",
            viewport=(int(config.get_config("viewport_width")),
                      int(config.get_config("viewport_height"))),
        )

    @property
    def languages(self) -> list[str]:
        primary = self.locale
        base = primary.split("-")[0]
        return [primary, base] if base != primary else [primary]

    def launch_args(self) -> list[str]:
        return list(BASE_LAUNCH_ARGS) if self.enabled else []

    def context_options(self) -> dict:
        """Options merged into ``launch_persistent_context``."""
        options = {
            "viewport": {"width": self.viewport[0], "height": self.viewport[1]},
            "locale": self.locale,
            "timezone_id": self.timezone_id,
        }
        if not self.enabled:
            return options
        if self.user_agent:
            options["user_agent"] = self.user_agent
        options["extra_http_headers"] = {
            "Accept-Language": ",".join(
                lang if i == 0 else f"{lang};q=0.9" for i, lang in enumerate(self.languages)
            ),
        }
        options["ignore_default_args"] = ["--enable-automation"]
        return options

    def init_script(self) -> str:
        settings = {
            "languages": self.languages,
            "platform": self.platform,
            "webglVendor": self.webgl_vendor,
            "webglRenderer": self.webgl_renderer,
        }
        return _INIT_SCRIPT_TEMPLATE % {"settings": json.dumps(settings)}

    def apply(self, context) -> None:
        """Install the navigator overrides on every page of *context*."""
        if not self.enabled:
            logger.info("Stealth overrides disabled")
            return
        context.add_init_script(self.init_script())
        logger.debug("Stealth init script installed")
