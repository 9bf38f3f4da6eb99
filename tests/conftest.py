"""
Shared fixtures: an in-memory page fetcher and configuration builders.
"""

import asyncio
from typing import Dict, List, Optional

import pytest

from sitecrawl.crawler.fetcher import FetchError, PageFetcher, SessionError
from sitecrawl.utils.config import Config, CrawlerConfig


class FakeFetcher(PageFetcher):
    """Serves markup from a dict; URLs listed in `failures` fail that many times first."""

    def __init__(self, pages: Dict[str, str], failures: Optional[Dict[str, int]] = None,
                 delays: Optional[Dict[str, float]] = None, fail_acquire: bool = False):
        self.pages = pages
        self.failures = dict(failures or {})
        self.delays = delays or {}
        self.fail_acquire = fail_acquire

        self.fetched: List[str] = []
        self.acquired = 0
        self.released = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self.in_flight_at_release: Optional[int] = None

    async def acquire_session(self):
        if self.fail_acquire:
            raise SessionError("browser could not be launched")
        self.acquired += 1
        return {'id': self.acquired}

    async def fetch(self, session, url: str) -> str:
        self.fetched.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(url, 0))
            if self.failures.get(url, 0) > 0:
                self.failures[url] -= 1
                raise FetchError(url, "navigation failed")
            if url not in self.pages:
                raise FetchError(url, "not found")
            return self.pages[url]
        finally:
            self.in_flight -= 1

    async def release(self, session) -> None:
        self.released += 1
        self.in_flight_at_release = self.in_flight


def page(*hrefs: str, assets: str = '') -> str:
    links = ''.join(f'<a href="{href}">link</a>' for href in hrefs)
    return f"<html><head>{assets}</head><body>{links}</body></html>"


@pytest.fixture
def fake_fetcher():
    return FakeFetcher


@pytest.fixture
def make_page():
    return page


@pytest.fixture
def crawler_config():
    def build(base_url: str = "https://example.com/", concurrency: int = 2,
              retry_limit: int = 1) -> CrawlerConfig:
        return CrawlerConfig(base_url=base_url, concurrency=concurrency, retry_limit=retry_limit)
    return build


@pytest.fixture
def app_config(tmp_path):
    def build(**crawler) -> Config:
        crawler.setdefault('base_url', "https://example.com/")
        return Config.from_dict({
            'crawler': crawler,
            'storage': {'output_file': 'sitemap.json', 'base_directory': str(tmp_path)},
            'logging': {'file': str(tmp_path / 'logs' / 'crawler.log')},
        })
    return build
