"""
Site crawler core components.
"""

from .url_frontier import URLFrontier, EnqueueRejection, normalize_url
from .retry_tracker import RetryTracker, RetryDecision
from .fetcher import (
    PageFetcher, BrowserFetcher, HttpFetcher,
    FetchError, SessionError, create_fetcher
)
from .parser import ContentParser, PageDependencies
from .scheduler import CrawlerScheduler, CrawlResult, CrawlState

__all__ = [
    'URLFrontier', 'EnqueueRejection', 'normalize_url',
    'RetryTracker', 'RetryDecision',
    'PageFetcher', 'BrowserFetcher', 'HttpFetcher',
    'FetchError', 'SessionError', 'create_fetcher',
    'ContentParser', 'PageDependencies',
    'CrawlerScheduler', 'CrawlResult', 'CrawlState'
]
