"""Traffic source and browser classification, session time formatting."""

SOURCE_DIRECT = "Direct"
SOURCE_GOOGLE = "Google"
SOURCE_FACEBOOK = "Facebook"
SOURCE_TWITTER = "Twitter"
SOURCE_LINKEDIN = "LinkedIn"
SOURCE_INSTAGRAM = "Instagram"
SOURCE_YOUTUBE = "YouTube"
SOURCE_OTHER = "Other"

BROWSER_CHROME = "Chrome"
BROWSER_FIREFOX = "Firefox"
BROWSER_SAFARI = "Safari"
BROWSER_EDGE = "Edge"
BROWSER_OPERA = "Opera"
BROWSER_OTHER = "Other"

# First match wins; "t.co" is Twitter's link shortener.
REFERRER_FRAGMENTS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (SOURCE_GOOGLE, ("google",)),
    (SOURCE_FACEBOOK, ("facebook",)),
    (SOURCE_TWITTER, ("twitter", "t.co")),
    (SOURCE_LINKEDIN, ("linkedin",)),
    (SOURCE_INSTAGRAM, ("instagram",)),
    (SOURCE_YOUTUBE, ("youtube",)),
)


def classify_referrer(referrer: str | None) -> str:
    """
    Bucket a referrer by case-insensitive substring match.
    Returns: Direct | Google | Facebook | Twitter | LinkedIn | Instagram | YouTube | Other
    """
    ref = (referrer or "").strip().lower()
    if not ref or ref == "direct":
        return SOURCE_DIRECT
    for source, fragments in REFERRER_FRAGMENTS:
        if any(f in ref for f in fragments):
            return source
    return SOURCE_OTHER


def classify_browser(user_agent: str | None) -> str:
    """
    Bucket a user agent. Order matters: Chrome UAs also carry "Safari", Edge UAs also carry "Chrome".
    Returns: Chrome | Firefox | Safari | Edge | Opera | Other
    """
    ua = (user_agent or "").lower()
    if "chrome" in ua and "edge" not in ua:
        return BROWSER_CHROME
    if "firefox" in ua:
        return BROWSER_FIREFOX
    if "safari" in ua and "chrome" not in ua:
        return BROWSER_SAFARI
    if "edge" in ua:
        return BROWSER_EDGE
    if "opera" in ua:
        return BROWSER_OPERA
    return BROWSER_OTHER


def format_session_time(seconds: float | None) -> str:
    """Format seconds as "1h 2m 5s", "2m 5s" or "45s". Under one second => "0m 0s"."""
    if not seconds or seconds < 1:
        return "0m 0s"
    total = int(seconds)
    hours = total // 3600
    minutes = (total % 3600) // 60
    secs = total % 60
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
