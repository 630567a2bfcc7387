"""GitHub API rate limit gating.

Search and core requests are throttled independently by GitHub. Every gated
call site asks the limiter to ``ensure`` its resource class right before the
request; when the remaining quota drops below the threshold the calling
thread sleeps until the window resets (capped at one hour).

The observed ``remaining`` value is advisory: concurrent workers may each see
the same quota and proceed together.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from github import Github

logger: logging.Logger = logging.getLogger(__name__)

# Longest single wait, in seconds
MAX_WAIT_SECONDS = 3600

# Wait for the reset once fewer requests than this remain
MIN_REMAINING_THRESHOLD = 5


class RateLimitResource(StrEnum):
    """Independently limited API resource classes."""

    SEARCH = "search"
    CORE = "core"


@dataclass(frozen=True)
class RateLimitInfo:
    """Quota for a single resource class."""

    remaining: int
    reset: int  # Unix timestamp
    limit: int


class RateLimiter:
    """Checks quota before gated calls and sleeps when it is nearly exhausted."""

    _client: Github
    _clock: Callable[[], float]
    _sleep: Callable[[float], None]

    def __init__(
        self,
        client: Github,
        *,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
        threshold: int = MIN_REMAINING_THRESHOLD,
        max_wait: float = MAX_WAIT_SECONDS,
    ) -> None:
        self._client = client
        self._clock = clock
        self._sleep = sleep
        self.threshold = threshold
        self.max_wait = max_wait

    def check(self, resource: RateLimitResource) -> RateLimitInfo:
        """Fetch the current quota for ``resource``.

        Raises:
            GithubException: If the rate limit endpoint cannot be queried
        """
        overview = self._client.get_rate_limit()
        rate = getattr(overview.resources, resource.value)
        return RateLimitInfo(
            remaining=rate.remaining,
            reset=int(rate.reset.timestamp()),
            limit=rate.limit,
        )

    def check_search_limit(self) -> RateLimitInfo:
        return self.check(RateLimitResource.SEARCH)

    def check_core_limit(self) -> RateLimitInfo:
        return self.check(RateLimitResource.CORE)

    def wait_if_needed(self, info: RateLimitInfo) -> bool:
        """Sleep until ``info.reset`` if the quota is below the threshold.

        Returns:
            True if the caller was suspended, False otherwise
        """
        if info.remaining >= self.threshold:
            return False

        wait_seconds = info.reset - self._clock()
        if wait_seconds <= 0:
            # Window already reset, or clock skew
            return False

        if wait_seconds > self.max_wait:
            logger.warning(
                f"Rate limit reset is {wait_seconds:.0f}s away, capping wait at {self.max_wait:.0f}s"
            )
        actual_wait = min(wait_seconds, self.max_wait)
        logger.info(f"Rate limit low ({info.remaining}/{info.limit} remaining), waiting {actual_wait:.0f}s for reset")
        self._sleep(actual_wait)
        return True

    def ensure(self, resource: RateLimitResource) -> bool:
        """Fetch quota for ``resource`` and wait if it is nearly exhausted."""
        info = self.check(resource)
        logger.debug(f"Rate limit {resource}: {info.remaining}/{info.limit}, resets at {info.reset}")
        return self.wait_if_needed(info)

    def ensure_search(self) -> bool:
        return self.ensure(RateLimitResource.SEARCH)

    def ensure_core(self) -> bool:
        return self.ensure(RateLimitResource.CORE)

    def wait_for_retry_after(self, seconds: float) -> None:
        """Sleep for a provider supplied Retry-After delay, capped at ``max_wait``."""
        actual_wait = min(max(seconds, 0), self.max_wait)
        logger.info(f"Received Retry-After of {seconds:g}s, waiting {actual_wait:g}s")
        self._sleep(actual_wait)
