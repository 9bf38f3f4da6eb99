"""
Crawl scheduler that drives batches of concurrent fetches until the frontier is exhausted.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional

from .fetcher import FetchError, PageFetcher
from .retry_tracker import RetryDecision, RetryTracker
from .url_frontier import URLFrontier
from ..utils.config import CrawlerConfig
from ..utils.monitoring import CrawlerMonitor


class CrawlState(str, Enum):
    """Lifecycle of a single crawl run."""
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class CrawlResult:
    """A successfully fetched page."""
    content: str
    url: str
    counter: int


class CrawlerScheduler:
    """
    Pulls up to `concurrency` URLs from the frontier, fetches them concurrently,
    and yields the successful results in dispatch order.

    The next batch is dispatched only after the current one has been fetched
    and fully consumed, so at most `concurrency` fetches are ever in flight.
    A scheduler runs exactly one crawl.
    """

    def __init__(self, config: CrawlerConfig, fetcher: PageFetcher,
                 monitor: Optional[CrawlerMonitor] = None,
                 stop_event: Optional[asyncio.Event] = None):
        if config.concurrency < 1:
            raise ValueError("concurrency must be at least 1")

        self.base_url = config.base_url
        self.concurrency = config.concurrency
        self.retry_limit = config.retry_limit

        self.fetcher = fetcher
        self.monitor = monitor
        self.stop_event = stop_event
        self.logger = logging.getLogger(__name__)

        self.url_frontier = URLFrontier(self.base_url)
        self.retry_tracker = RetryTracker(self.retry_limit)

        self.state = CrawlState.IDLE
        self.success_count = 0
        self.batches_dispatched = 0
        self.start_time: Optional[float] = None
        self.stopped_early = False

    def add_to_queue(self, url: str) -> bool:
        """Offer a URL to the frontier. Returns True if it was queued."""
        return self.url_frontier.add_to_queue(url)

    @property
    def queue_length(self) -> int:
        return self.url_frontier.queue_length

    @property
    def unique_url_count(self) -> int:
        return self.url_frontier.unique_url_count

    @property
    def failed_url_count(self) -> int:
        return self.retry_tracker.failed_count

    async def crawl(self) -> AsyncIterator[CrawlResult]:
        """
        Crawl until the frontier is empty, yielding one CrawlResult per fetched page.

        Links fed back through `add_to_queue` between results are picked up by
        later batches. The fetch session is released when the crawl ends, fails,
        or the consumer stops iterating (close the generator, e.g. with
        contextlib.aclosing, to release it promptly). A set `stop_event` ends
        the crawl before the next batch is dispatched.
        """
        if self.state is not CrawlState.IDLE:
            raise RuntimeError(f"Scheduler already used (state={self.state.value})")

        self.state = CrawlState.RUNNING
        self.start_time = time.time()
        self.logger.info(f"Starting crawl of {self.base_url} "
                         f"(concurrency={self.concurrency}, retry_limit={self.retry_limit})")

        try:
            async with self.fetcher.session() as session:
                while not self.url_frontier.is_empty():
                    if self.stop_event is not None and self.stop_event.is_set():
                        self.stopped_early = True
                        self.logger.info(f"Stop requested, {self.url_frontier.queue_length} "
                                         f"URLs left in queue")
                        break

                    batch = self.url_frontier.dequeue_batch(self.concurrency)
                    self.batches_dispatched += 1
                    self._update_gauges(len(batch))

                    # Every fetch of the batch has settled before any outcome is handled
                    outcomes = await asyncio.gather(
                        *(self.fetcher.fetch(session, url) for url in batch),
                        return_exceptions=True,
                    )

                    for result in self._settle_batch(batch, outcomes):
                        yield result

                self.state = CrawlState.DRAINING
                if not self.stopped_early:
                    self.logger.info("Frontier exhausted")
        finally:
            self.state = CrawlState.TERMINATED
            self._log_final_stats()

    def _settle_batch(self, batch: List[str], outcomes: List[Any]) -> List[CrawlResult]:
        """
        Apply the outcomes of a finished batch in dispatch order.

        Re-raises the first error that is not a FetchError. URLs to retry go
        back to the head of the queue keeping their dispatch order.
        """
        for outcome in outcomes:
            if isinstance(outcome, BaseException) and not isinstance(outcome, FetchError):
                raise outcome

        results = []
        retries = []
        for url, outcome in zip(batch, outcomes):
            if isinstance(outcome, FetchError):
                if self._handle_failure(url, outcome) is RetryDecision.RETRYING:
                    retries.append(url)
            else:
                results.append(self._handle_success(url, outcome))

        for url in reversed(retries):
            self.url_frontier.requeue_front(url)

        return results

    def _handle_success(self, url: str, content: str) -> CrawlResult:
        self.success_count += 1

        if self.retry_tracker.clear_on_success(url):
            self.logger.info(f"Fetched {url} after retrying", extra={'url': url})
            if self.monitor:
                self.monitor.record_retry_recovered(url)
        if self.monitor:
            self.monitor.record_page_crawled(url)

        return CrawlResult(content=content, url=url, counter=self.success_count)

    def _handle_failure(self, url: str, error: FetchError) -> RetryDecision:
        decision = self.retry_tracker.record_failure(url)

        if decision is RetryDecision.RETRYING:
            self.logger.info(
                f"Retrying URL ({self.retry_tracker.attempts(url)}/{self.retry_limit}): "
                f"{url}: {error.reason}",
                extra={'url': url},
            )
        elif decision is RetryDecision.EXCEEDED_LIMIT:
            self.logger.warning(f"URL failed permanently after {self.retry_limit} retries: "
                                f"{url}: {error.reason}", extra={'url': url})
        else:
            self.logger.warning(f"Error fetching content from URL: {url}: {error.reason}",
                                extra={'url': url})

        if self.monitor:
            self.monitor.record_fetch_failure(url, decision.value)
        return decision

    def _update_gauges(self, batch_size: int):
        if self.monitor:
            self.monitor.update_batch_size(batch_size)
            self.monitor.update_queue_size(self.url_frontier.queue_length)

    def _log_final_stats(self):
        elapsed = time.time() - self.start_time if self.start_time else 0.0
        frontier_stats = self.url_frontier.get_stats()
        self.logger.info(
            f"Crawl finished: "
            f"Fetched={self.success_count}, "
            f"Failed={self.retry_tracker.failed_count}, "
            f"Unique={frontier_stats['unique_urls']}, "
            f"Remaining={frontier_stats['total_queued']}, "
            f"Batches={self.batches_dispatched}, "
            f"Time={elapsed:.2f}s"
        )

    def get_stats(self) -> Dict:
        """Get current crawl statistics."""
        stats: Dict[str, Any] = {
            'state': self.state.value,
            'pages_fetched': self.success_count,
            'failed_urls': self.retry_tracker.failed_count,
            'batches_dispatched': self.batches_dispatched,
            'stopped_early': self.stopped_early,
        }
        stats.update(self.url_frontier.get_stats())
        return stats

    def failed_urls(self) -> List[str]:
        return sorted(self.retry_tracker.failed_urls())
