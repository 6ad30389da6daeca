"""
SunoBot - Configuration-Driven Timeouts

Centralized timing defaults with config-store override support.
Usage: ``get_timeout(config, "max_wait_s")`` returns the configured or default value.
"""


# Default timings; keys describe the operation and unit
TIMEOUTS = {
    "login_wait_s": 300,             # Manual login / 2FA completion window
    "oauth_redirect_s": 30,          # Redirect back after scripted login
    "challenge_wait_s": 300,         # Human CAPTCHA resolution window
    "challenge_poll_s": 5,           # Re-check interval while a challenge is up
    "max_wait_s": 120,               # Max time to wait for generation
    "poll_interval_s": 30,           # Listing refresh interval while generating
    "cancel_slice_s": 2,             # Longest uninterrupted sleep
    "candidate_visible_ms": 1500,    # Per-candidate locator visibility timeout
    "page_load_ms": 15000,           # Page navigation timeout
    "listing_settle_ms": 3000,       # Wait after opening the listing page
    "create_settle_min_ms": 2000,    # Wait after opening the create page
    "create_settle_max_ms": 4000,
    "keyboard_download_ms": 5000,    # Download event after keyboard confirm
    "click_download_ms": 15000,      # Download event after explicit click
    "variant_delay_s": 3,            # Gap between variant downloads
    "job_delay_s": 10,               # Gap between jobs in a batch
    "error_grace_s": 15,             # Keep the page up after a failed job
}


def get_timeout(config, key: str) -> int | float:
    """Get a timing value, checking the config store first.

    Args:
        config: ConfigStore instance (or None for defaults only).
        key: Key from the TIMEOUTS dict.

    Returns:
        The configured value, or the default from TIMEOUTS.

    Raises:
        KeyError: If key is not in TIMEOUTS.
    """
    if key not in TIMEOUTS:
        raise KeyError(f"Unknown timeout key: {key!r}")
    if config is not None:
        override = config.get_config(f"timeout_{key}")
        if override is not None:
            try:
                return type(TIMEOUTS[key])(override)
            except (ValueError, TypeError):
                pass
    return TIMEOUTS[key]
