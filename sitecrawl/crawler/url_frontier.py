"""
URL Frontier implementation for managing URLs to crawl.
Owns the pending queue and the set of normalized URLs already accepted.
"""

import logging
import re
import threading
from collections import deque
from enum import Enum
from typing import Deque, Dict, List, Optional, Set
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


DEFAULT_PORTS = {'http': 80, 'https': 443}
TRACKING_PARAM_PATTERN = re.compile(r'^utm_\w+', re.IGNORECASE)
DUPLICATE_SLASHES = re.compile(r'/{2,}')


class EnqueueRejection(str, Enum):
    """Reasons a URL is not accepted into the frontier."""
    FRAGMENT_ONLY = "fragment_only"
    ORIGIN_MISMATCH = "origin_mismatch"
    DUPLICATE_URL = "duplicate_url"


def normalize_url(url: str) -> str:
    """
    Canonical form of a URL, used only for duplicate detection.

    Lower-cases scheme and host, strips a leading "www.", drops default
    ports, collapses repeated slashes, removes the trailing slash, drops
    utm_* tracking parameters, sorts the query and strips the fragment.
    """
    parsed = urlsplit(url.strip())
    scheme = parsed.scheme.lower()

    hostname = (parsed.hostname or '').lower()
    if hostname.startswith('www.'):
        hostname = hostname[4:]

    try:
        port = parsed.port
    except ValueError:
        port = None

    netloc = hostname
    if port and DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{hostname}:{port}"
    if parsed.username:
        credentials = parsed.username
        if parsed.password:
            credentials += f":{parsed.password}"
        netloc = f"{credentials}@{netloc}"

    path = DUPLICATE_SLASHES.sub('/', parsed.path).rstrip('/')

    query = ''
    if parsed.query:
        params = [(key, value) for key, value in parse_qsl(parsed.query, keep_blank_values=True)
                  if not TRACKING_PARAM_PATTERN.match(key)]
        query = urlencode(sorted(params))

    return urlunsplit((scheme, netloc, path, query, ''))


class URLFrontier:
    """
    Pending-URL queue plus the seen set used as the crawl's only dedup gate.

    New URLs are appended to the back of the queue; failed URLs handed back
    by the retry path go to the front so they are fetched before newly
    discovered pages.
    """

    def __init__(self, base_url: str):
        self.base_url = base_url
        self.logger = logging.getLogger(__name__)

        self._queue: Deque[str] = deque()
        self._seen_urls: Set[str] = set()
        self._lock = threading.Lock()

        self._enqueued_count = 0
        self._requeued_count = 0
        self._dequeued_count = 0
        self._rejected: Dict[EnqueueRejection, int] = {reason: 0 for reason in EnqueueRejection}

    def _resolve(self, url: str) -> str:
        if url.startswith('//'):
            return f"{urlsplit(self.base_url).scheme}:{url}"
        if url.startswith('/'):
            return f"{self.base_url.rstrip('/')}{url}"
        return url

    def _reject(self, url: str, reason: EnqueueRejection) -> bool:
        self._rejected[reason] += 1
        self.logger.debug(f"Rejected URL ({reason.value}): {url}")
        return False

    def add_to_queue(self, url: str) -> bool:
        """
        Add a URL to the frontier.
        Returns True if the URL was queued, False if it was rejected.
        """
        url = url.strip()
        resolved = self._resolve(url)

        with self._lock:
            if resolved.startswith('#'):
                return self._reject(url, EnqueueRejection.FRAGMENT_ONLY)

            if not resolved.startswith(self.base_url):
                return self._reject(url, EnqueueRejection.ORIGIN_MISMATCH)

            normalized = normalize_url(resolved)
            if normalized in self._seen_urls:
                return self._reject(url, EnqueueRejection.DUPLICATE_URL)

            self._queue.append(resolved)
            self._seen_urls.add(normalized)
            self._enqueued_count += 1

        self.logger.debug(f"Added URL to frontier: {resolved}")
        return True

    def dequeue_batch(self, size: int) -> List[str]:
        """Remove and return up to `size` URLs from the front of the queue."""
        if size < 1:
            raise ValueError("batch size must be at least 1")

        with self._lock:
            count = min(size, len(self._queue))
            batch = [self._queue.popleft() for _ in range(count)]
            self._dequeued_count += count
        return batch

    def requeue_front(self, url: str):
        """Put a failed URL back at the head of the queue."""
        with self._lock:
            self._queue.appendleft(url)
            self._requeued_count += 1
        self.logger.debug(f"Requeued URL at front: {url}")

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    @property
    def unique_url_count(self) -> int:
        return len(self._seen_urls)

    def is_empty(self) -> bool:
        return not self._queue

    def get_queue(self) -> List[str]:
        """Return a copy of the pending queue."""
        with self._lock:
            return list(self._queue)

    def get_unique_urls(self) -> Set[str]:
        """Return a copy of the normalized URLs seen so far."""
        with self._lock:
            return set(self._seen_urls)

    def rejected_count(self, reason: Optional[EnqueueRejection] = None) -> int:
        if reason is None:
            return sum(self._rejected.values())
        return self._rejected[reason]

    def get_stats(self) -> Dict[str, int]:
        """Get frontier statistics."""
        with self._lock:
            stats = {
                'total_queued': len(self._queue),
                'unique_urls': len(self._seen_urls),
                'enqueued': self._enqueued_count,
                'requeued': self._requeued_count,
                'dequeued': self._dequeued_count,
            }
            for reason, count in self._rejected.items():
                stats[f"rejected_{reason.value}"] = count
        return stats
