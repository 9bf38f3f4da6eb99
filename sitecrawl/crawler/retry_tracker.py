"""
Per-URL failure bookkeeping for the crawl scheduler.
"""

import logging
from enum import Enum
from typing import Dict


class RetryDecision(str, Enum):
    """What the scheduler should do with a URL whose fetch failed."""
    RETRYING = "retrying"
    EXCEEDED_LIMIT = "exceeded_limit"
    RETRY_DISABLED = "retry_disabled"


class RetryTracker:
    """
    Tracks how often each URL has failed and decides whether it is retried.

    The tracker never touches the frontier itself; a RETRYING decision tells
    the caller to requeue the URL.
    """

    def __init__(self, retry_limit: int):
        if retry_limit < 0:
            raise ValueError("retry_limit must be non-negative")
        self.retry_limit = retry_limit
        self.logger = logging.getLogger(__name__)
        self._attempts: Dict[str, int] = {}

    def record_failure(self, url: str) -> RetryDecision:
        """Record a failed fetch of `url` and decide whether to retry it."""
        if self.retry_limit == 0:
            return RetryDecision.RETRY_DISABLED

        attempts = self._attempts.get(url)
        if attempts is None:
            self._attempts[url] = 1
            return RetryDecision.RETRYING

        if attempts < self.retry_limit:
            self._attempts[url] = attempts + 1
            return RetryDecision.RETRYING

        return RetryDecision.EXCEEDED_LIMIT

    def clear_on_success(self, url: str) -> bool:
        """Forget recorded failures for `url`. Returns True if there were any."""
        return self._attempts.pop(url, None) is not None

    def attempts(self, url: str) -> int:
        return self._attempts.get(url, 0)

    @property
    def failed_count(self) -> int:
        """Number of URLs with at least one unresolved failure."""
        return len(self._attempts)

    def failed_urls(self) -> Dict[str, int]:
        return dict(self._attempts)
