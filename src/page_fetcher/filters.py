"""Network interception rules installed on every browser context.

Each rule is a named predicate over the request URL. A ``RequestFilter``
evaluates its rules in order and aborts the request as soon as one matches;
requests no rule matches are continued unmodified.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import urlparse

import structlog
from playwright.async_api import BrowserContext, Route

logger = structlog.get_logger(__name__)

# Ad-serving and tracking domains, matched as hostname substrings
AD_SERVING_DOMAINS = [
    "doubleclick.net",
    "adservice.google.com",
    "googlesyndication.com",
    "googletagservices.com",
    "googletagmanager.com",
    "google-analytics.com",
    "adsystem.com",
    "adservice.com",
    "adnxs.com",
    "ads-twitter.com",
    "facebook.net",
    "fbcdn.net",
    "amazon-adsystem.com",
]

MEDIA_EXTENSIONS = (
    "png",
    "jpg",
    "jpeg",
    "gif",
    "svg",
    "mp3",
    "mp4",
    "avi",
    "flac",
    "ogg",
    "wav",
    "webm",
)

_MEDIA_PATTERN = re.compile(
    r"\.(?:" + "|".join(MEDIA_EXTENSIONS) + r")$",
    re.IGNORECASE,
)


def is_media_url(url: str) -> bool:
    """Check whether the last path segment of a URL has a media extension."""
    path = urlparse(url).path
    last_segment = path.rsplit("/", 1)[-1]
    return bool(_MEDIA_PATTERN.search(last_segment))


def is_ad_domain_url(url: str, domains: list[str] | None = None) -> bool:
    """Check whether the URL hostname contains a blocked ad domain."""
    hostname = urlparse(url).hostname or ""
    return any(domain in hostname for domain in (domains or AD_SERVING_DOMAINS))


@dataclass(frozen=True)
class BlockRule:
    """A named predicate deciding whether a request URL is aborted."""

    name: str
    matches: Callable[[str], bool]


MEDIA_RULE = BlockRule(name="media", matches=is_media_url)
AD_DOMAIN_RULE = BlockRule(name="ad_domain", matches=is_ad_domain_url)


class RequestFilter:
    """Ordered set of block rules applied to every request in a context.

    Args:
        rules: Rules evaluated in order; the first match aborts the request.
    """

    def __init__(self, rules: list[BlockRule]) -> None:
        self.rules = list(rules)

    @classmethod
    def from_settings(cls, block_media: bool) -> "RequestFilter":
        """Build the standard filter: media rule (when enabled), then ad domains."""
        rules = [MEDIA_RULE] if block_media else []
        rules.append(AD_DOMAIN_RULE)
        return cls(rules)

    def match(self, url: str) -> BlockRule | None:
        """Return the first rule that blocks ``url``, or None if it is allowed."""
        for rule in self.rules:
            if rule.matches(url):
                return rule
        return None

    def should_abort(self, url: str) -> bool:
        return self.match(url) is not None

    async def handle(self, route: Route) -> None:
        """Playwright route handler: abort blocked requests, continue the rest."""
        url = route.request.url
        rule = self.match(url)
        if rule is not None:
            logger.debug("request_blocked", rule=rule.name, url=url)
            await route.abort()
        else:
            await route.continue_()

    async def install(self, context: BrowserContext) -> None:
        """Intercept every request issued inside ``context``."""
        await context.route("**/*", self.handle)
