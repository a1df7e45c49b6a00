# ==============================================================================
# Traffic Channel Classification
# ==============================================================================
"""
Classify a referrer into a traffic channel: direct, search, social, referral.

Matching is done on the referrer's host name. Referrers without a scheme
("google.com/search?q=x") are tolerated; bare paths ("/pricing") have no
host and fall through to referral.
"""

from enum import StrEnum
from urllib.parse import urlsplit


class Channel(StrEnum):
    DIRECT = "direct"
    SEARCH = "search"
    SOCIAL = "social"
    REFERRAL = "referral"


# Matched as substrings of the host
SEARCH_ENGINE_MARKERS = (
    "google.",
    "bing.",
    "baidu.",
    "yahoo.",
    "duckduckgo.",
    "yandex.",
    "sogou.",
    "ecosia.",
)

# Matched as the host or a parent domain of the host
SOCIAL_DOMAINS = (
    "facebook.com",
    "twitter.com",
    "t.co",
    "x.com",
    "linkedin.com",
    "reddit.com",
    "instagram.com",
    "youtube.com",
    "tiktok.com",
    "pinterest.com",
    "weibo.com",
    "zhihu.com",
)


def referrer_host(referrer: str) -> str:
    """Extract the lower-cased host of a referrer, or "" when it has none."""
    text = referrer.strip()
    if "://" not in text and not text.startswith(("/", "?", "#")):
        text = f"//{text}"
    try:
        return (urlsplit(text).hostname or "").lower()
    except ValueError:
        return ""


def _is_social(host: str) -> bool:
    return any(host == domain or host.endswith(f".{domain}") for domain in SOCIAL_DOMAINS)


def classify_channel(referrer: str | None) -> Channel:
    """
    Classify a referrer.

    Args:
        referrer: Referring URL; None, blank and the literal "direct" mean
                  direct navigation

    Returns:
        The traffic channel
    """
    if referrer is None or not referrer.strip() or referrer.strip().lower() == "direct":
        return Channel.DIRECT

    host = referrer_host(referrer)
    if any(marker in host for marker in SEARCH_ENGINE_MARKERS):
        return Channel.SEARCH
    if _is_social(host):
        return Channel.SOCIAL
    return Channel.REFERRAL
