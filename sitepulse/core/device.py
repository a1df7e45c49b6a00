# ==============================================================================
# Device Classifier - Pure Domain Logic
# ==============================================================================
"""
Map a raw client signature (User-Agent text) to device type, browser and OS.

Rules are ordered and the first match wins. All tests are case-insensitive
substring checks. Signatures routinely name several engines at once
("... Chrome/120 Safari/537.36 Edg/120"), so the more specific families are
tested first and excluded from the generic ones:

- tablet keywords before mobile keywords (iPad signatures also say "Mobile")
- Edge before Chrome, Chrome before Safari
- iOS before macOS (iOS signatures say "like Mac OS X")
- Android before Linux
"""

from sitepulse.core.models import DeviceInfo

UNKNOWN_DEVICE = DeviceInfo(type="unknown", browser="Unknown", os="Unknown")

TABLET_KEYWORDS = ("ipad", "tablet", "kindle", "silk", "playbook")
MOBILE_KEYWORDS = (
    "mobile",
    "iphone",
    "ipod",
    "android",
    "blackberry",
    "windows phone",
    "opera mini",
    "iemobile",
)

EDGE_KEYWORDS = ("edg/", "edge/", "edga/", "edgios/")
CHROME_KEYWORDS = ("chrome", "crios")
FIREFOX_KEYWORDS = ("firefox", "fxios")

IOS_KEYWORDS = ("iphone", "ipad", "ipod")
MACOS_KEYWORDS = ("macintosh", "mac os x")


def _has_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def device_type(ua: str) -> str:
    """Classify a lower-cased signature as tablet, mobile or desktop."""
    if _has_any(ua, TABLET_KEYWORDS) or ("android" in ua and "mobile" not in ua):
        return "tablet"
    if _has_any(ua, MOBILE_KEYWORDS):
        return "mobile"
    return "desktop"


def browser_family(ua: str) -> str:
    """Classify a lower-cased signature into a browser family."""
    if _has_any(ua, EDGE_KEYWORDS):
        return "Edge"
    if _has_any(ua, CHROME_KEYWORDS):
        return "Chrome"
    if _has_any(ua, FIREFOX_KEYWORDS):
        return "Firefox"
    if "safari" in ua:
        return "Safari"
    return "Other"


def operating_system(ua: str) -> str:
    """Classify a lower-cased signature into an operating system."""
    if "windows" in ua:
        return "Windows"
    if _has_any(ua, IOS_KEYWORDS):
        return "iOS"
    if _has_any(ua, MACOS_KEYWORDS):
        return "macOS"
    if "android" in ua:
        return "Android"
    if "linux" in ua:
        return "Linux"
    return "Other"


def classify(signature: str | None) -> DeviceInfo:
    """
    Classify a client signature.

    Args:
        signature: Raw User-Agent text, may be None or empty

    Returns:
        DeviceInfo with type, browser and os. Absent or blank signatures
        yield the "unknown" category for all three fields.
    """
    if not signature or not signature.strip():
        return UNKNOWN_DEVICE

    ua = signature.lower()
    return DeviceInfo(type=device_type(ua), browser=browser_family(ua), os=operating_system(ua))
