"""Default locator candidates for the suno.com UI.

Ordered most specific to most generic.  These are the only place selector
strings for the site live; update them (or ship an overrides file) when
the site's markup moves.
"""

from automation.selector_registry import CandidateSet

# ------------------------------------------------------------------
# Authentication
# ------------------------------------------------------------------

AUTH_CANDIDATES = [
    CandidateSet("authenticated_marker", (
        '[data-testid="user-menu"]',
        'button[aria-label*="profile" i]',
        'a[href="/me"]',
        "text=Lyrics",
    )),
    CandidateSet("sign_in_button", (
        "text=Sign In",
        "text=Sign in",
        "text=Log In",
        "text=Login",
        'button:has-text("Sign")',
        'a:has-text("Sign")',
    )),
    CandidateSet("oauth_provider_button", (
        "text=Continue with Google",
        "text=Sign in with Google",
        'button:has-text("Google")',
        '[aria-label*="Google"]',
        ".google-button",
        "#google-signin-button",
    )),
    CandidateSet("oauth_email_input", (
        'input[type="email"]',
        'input[name="identifier"]',
        'input[id="identifierId"]',
        "#Email",
        'input[autocomplete="username"]',
        'input[aria-label*="email" i]',
        'input[placeholder*="email" i]',
    )),
    CandidateSet("oauth_password_input", (
        'input[type="password"]',
        'input[name="password"]',
        'input[name="Passwd"]',
        "#password",
        "#Passwd",
        'input[autocomplete="current-password"]',
        'input[aria-label*="password" i]',
        'input[placeholder*="password" i]',
    )),
    CandidateSet("oauth_next_button", (
        'button:has-text("Next")',
        "#identifierNext",
        "#passwordNext",
        'button[type="submit"]',
        'button:has-text("Continue")',
        'button:has-text("Sign in")',
        ".VfPpkd-LgbsSe",
        '[jsname="LgbsSe"]',
    ), require_enabled=True),
    CandidateSet("two_factor_marker", (
        "text=2-Step Verification",
        "text=Verify it's you",
        "text=Get a verification code",
        "text=Enter the code",
        'input[name="totpPin"]',
        "#totpPin",
        'input[aria-label*="verification code" i]',
        "text=Use your phone to sign in",
        "text=Confirm your recovery email",
    ), adaptive=False),
    CandidateSet("automation_block_marker", (
        "text=automated test software",
        "text=Chrome is being controlled",
        "text=This browser or app may not be secure",
        "text=Suspicious activity",
        "text=Unusual activity",
    ), adaptive=False),
    CandidateSet("email_login_option", (
        "text=Continue with Email",
        "text=Sign in with Email",
        'button:has-text("Email")',
    )),
    CandidateSet("password_email_input", (
        'input[type="email"]',
        'input[name="email"]',
        'input[autocomplete="email"]',
        'input[autocomplete="username"]',
    )),
    CandidateSet("password_input", (
        'input[type="password"]',
        'input[name="password"]',
        'input[autocomplete="current-password"]',
    )),
    CandidateSet("password_submit", (
        'button[type="submit"]',
        'button:has-text("Sign in")',
        'button:has-text("Log in")',
        'button:has-text("Continue")',
    ), require_enabled=True),
]

# ------------------------------------------------------------------
# Creation form
# ------------------------------------------------------------------

CREATE_CANDIDATES = [
    CandidateSet("custom_mode_toggle", (
        'button:has-text("Custom")',
        '[role="tab"]:has-text("Custom")',
        "text=Custom",
        ".custom-mode",
    )),
    # Lyrics and style are both textareas: order is the disambiguation.
    CandidateSet("lyrics_input", (
        'textarea[placeholder*="lyrics" i]',
        'textarea[placeholder*="Write some" i]',
        'textarea[name="lyrics"]',
        '[data-testid="lyrics-input"]',
        "textarea",
    ), adaptive=False),
    CandidateSet("style_input", (
        'textarea[maxlength="1000"]:not([placeholder*="lyric" i])',
        'textarea[placeholder*="Hip-hop" i]',
        'textarea[placeholder*="R&B" i]',
        'textarea[placeholder*="upbeat" i]',
        'textarea[placeholder*="style" i]',
        'input[placeholder*="style" i]',
        'textarea:not([placeholder*="lyric" i]):not([placeholder*="Write some" i])',
    ), adaptive=False),
    CandidateSet("title_reveal", (
        'button:has-text("Add a song title")',
        'button:has-text("Add title")',
    )),
    CandidateSet("title_input", (
        'input[placeholder*="title" i]',
        'input[name="title"]',
        '[data-testid="song-title"] input',
        '[data-testid="song-title"]',
    )),
    CandidateSet("create_button", (
        'button:has-text("Create")',
        'button:has-text("Generate")',
        'button[type="submit"]',
        '[data-testid="create-button"]',
        ".create-button",
        "#create-button",
    ), require_enabled=True),
]

# ------------------------------------------------------------------
# Challenges
# ------------------------------------------------------------------

CHALLENGE_CANDIDATES = [
    CandidateSet("challenge_marker", (
        'iframe[src*="recaptcha"]',
        'iframe[src*="hcaptcha"]',
        'iframe[src*="captcha"]',
        'iframe[src*="arkoselabs"]',
        'iframe[src*="challenges.cloudflare.com"]',
        ".g-recaptcha",
        ".h-captcha",
        "#captcha",
        "#arkose-enforcement",
        '[data-callback*="captcha"]',
        "text=verify you are human",
        "text=I'm not a robot",
    ), adaptive=False),
]

# ------------------------------------------------------------------
# Listing (completion detection and downloads)
# ------------------------------------------------------------------

LISTING_CANDIDATES = [
    CandidateSet("listing_entry", (
        '[data-testid="song-row"][data-clip-id]',
        '[data-testid="song-card"]',
        "[data-clip-id]",
        'div:has(img):has(button:has-text("Edit"))',
        "div:has(img):has-text(/\\d+:\\d+/)",
        'div:has(button:has-text("Edit")):has(button:has-text("Publish"))',
        "article",
        'a[href^="/song/"]',
    ), adaptive=False),
    CandidateSet("generating_indicator", (
        'svg[class*="animate"]',
        'svg[class*="spin"]',
        '[aria-busy="true"]',
        ".loading",
        ".spinner",
    ), adaptive=False),
    CandidateSet("completion_marker", (
        'button:has-text("Edit")',
        'button:has-text("Publish")',
        'button[aria-label*="play" i]',
        'button:has-text("Play")',
    ), adaptive=False),
    CandidateSet("download_entry", (
        '[data-testid="song-row"][data-clip-id]',
        '[data-testid="song-row"]',
        '[data-testid="song-card"]',
        "[data-clip-id]",
    ), adaptive=False),
    CandidateSet("entry_menu_button", (
        'button[aria-label="More Options"]',
        'button[aria-label="More Actions"]',
        'button[aria-label*="more" i]',
        'button[aria-label*="options" i]',
        'button:has-text("⋮")',
        'button[aria-label*="menu" i]',
        'button:has-text("⋯")',
        'button:has-text("...")',
        'button:has-text("•••")',
        '[data-testid="song-menu"]',
        "button.more-options",
        'button[class*="menu"]',
    )),
    CandidateSet("menu_root", (
        '[data-radix-menu-content][data-state="open"]',
        '[role="menu"][data-state="open"]',
        '[role="menu"]',
    ), pick_last=True),
    CandidateSet("download_submenu_trigger", (
        '[data-testid="download-sub-trigger"]',
        '[role="menuitem"][aria-haspopup="menu"]:has-text("Download")',
        '[role="menuitem"]:has-text("Download")',
        "text=Download",
    )),
    CandidateSet("download_format_item", (
        '[role="menuitem"]:has-text("MP3 Audio")',
        '[role="menuitem"]:has-text("MP3")',
        '[role="menuitem"]:has-text("Audio")',
        "text=MP3 Audio",
    )),
]

DEFAULT_CANDIDATES = (
    AUTH_CANDIDATES + CREATE_CANDIDATES + CHALLENGE_CANDIDATES + LISTING_CANDIDATES
)
