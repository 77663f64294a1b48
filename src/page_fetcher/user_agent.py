"""User-agent generation for browser contexts."""

from functools import lru_cache

import structlog
from fake_useragent import UserAgent

logger = structlog.get_logger(__name__)

# Mainstream desktop browsers only
BROWSER_FAMILIES = ["Chrome", "Firefox", "Edge", "Safari"]

FALLBACK_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36"
)


@lru_cache(maxsize=1)
def _generator() -> UserAgent:
    return UserAgent(
        browsers=BROWSER_FAMILIES,
        platforms=["desktop"],
        fallback=FALLBACK_USER_AGENT,
    )


def random_user_agent() -> str:
    """Return a plausible desktop browser user-agent string."""
    try:
        return _generator().random
    except Exception as e:
        logger.warning("user_agent_generation_failed", error=str(e))
        return FALLBACK_USER_AGENT
