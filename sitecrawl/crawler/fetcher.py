"""
Page fetchers: a headless-browser renderer and a plain HTTP fallback.

Every fetcher hands out one session per crawl run. `fetch` returns the page
markup or raises FetchError; `release` is idempotent and never raises.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

import aiohttp
from aiohttp import ClientSession, ClientTimeout, ClientError
from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from ..utils.config import CrawlerConfig


MAX_CONTENT_SIZE = 10 * 1024 * 1024  # 10MB

TEXT_CONTENT_TYPES = (
    'text/html',
    'text/plain',
    'text/xml',
    'application/xml',
    'application/xhtml+xml',
)


class FetchError(Exception):
    """A single URL could not be fetched. Recoverable by retrying."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class SessionError(Exception):
    """The fetch session could not be created. Fatal to the crawl run."""
    pass


class PageFetcher(ABC):
    """Interface the crawl scheduler uses to obtain page content."""

    @abstractmethod
    async def acquire_session(self) -> Any:
        """Create the session shared by all fetches of one crawl run."""

    @abstractmethod
    async def fetch(self, session: Any, url: str) -> str:
        """Return the content of `url`, raising FetchError on failure."""

    @abstractmethod
    async def release(self, session: Any) -> None:
        """Dispose of a session. Safe to call more than once."""

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Any]:
        """Acquire a session for the duration of the block."""
        session = await self.acquire_session()
        try:
            yield session
        finally:
            await self.release(session)


@dataclass
class BrowserSession:
    """Running Playwright driver, browser and the context pages are opened in."""
    playwright: Playwright
    browser: Browser
    context: BrowserContext
    closed: bool = False


class BrowserFetcher(PageFetcher):
    """
    Renders pages in headless Chromium through Playwright.

    The browser context is shared across the run; each fetch gets its own
    page so concurrent navigations do not interfere.
    """

    def __init__(self, user_agent: str, request_timeout: float = 30.0, headless: bool = True,
                 wait_until: str = 'load', fail_on_http_error: bool = False):
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.headless = headless
        self.wait_until = wait_until
        self.fail_on_http_error = fail_on_http_error
        self.logger = logging.getLogger(__name__)

    async def acquire_session(self) -> BrowserSession:
        playwright = None
        try:
            playwright = await async_playwright().start()
            browser = await playwright.chromium.launch(
                headless=self.headless,
                args=[
                    "--disable-gpu",
                    "--no-sandbox",
                    "--disable-dev-shm-usage",
                ],
            )
            context = await browser.new_context(user_agent=self.user_agent)
        except Exception as e:
            if playwright is not None:
                await playwright.stop()
            raise SessionError(f"Failed to launch browser: {e}") from e

        self.logger.info("Browser session started")
        return BrowserSession(playwright=playwright, browser=browser, context=context)

    async def fetch(self, session: BrowserSession, url: str) -> str:
        page = None
        try:
            page = await session.context.new_page()
            response = await page.goto(
                url,
                wait_until=self.wait_until,
                timeout=self.request_timeout * 1000,
            )
            if self.fail_on_http_error and response is not None and response.status >= 400:
                raise FetchError(url, f"HTTP {response.status}")
            content = await page.content()
        except PlaywrightError as e:
            raise FetchError(url, f"{e.__class__.__name__}: {e}") from e
        finally:
            if page is not None:
                try:
                    await page.close()
                except PlaywrightError as e:
                    self.logger.debug(f"Error closing page for {url}: {e}")

        self.logger.debug(f"Rendered {url} ({len(content)} chars)")
        return content

    async def release(self, session: BrowserSession) -> None:
        if session.closed:
            return
        session.closed = True

        for name, closer in (('context', session.context.close),
                             ('browser', session.browser.close),
                             ('playwright', session.playwright.stop)):
            try:
                await closer()
            except Exception as e:
                self.logger.warning(f"Error closing {name}: {e}")

        self.logger.info("Browser session closed")


class HttpFetcher(PageFetcher):
    """
    Fetches raw pages over HTTP with aiohttp. No JavaScript is executed.
    """

    def __init__(self, user_agent: str, request_timeout: float = 30.0,
                 max_connections: int = 10, fail_on_http_error: bool = False):
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.max_connections = max_connections
        self.fail_on_http_error = fail_on_http_error
        self.logger = logging.getLogger(__name__)

    async def acquire_session(self) -> ClientSession:
        try:
            session = aiohttp.ClientSession(
                timeout=ClientTimeout(total=self.request_timeout),
                headers={'User-Agent': self.user_agent},
                connector=aiohttp.TCPConnector(
                    limit=self.max_connections,
                    ttl_dns_cache=300,
                    use_dns_cache=True
                )
            )
        except Exception as e:
            raise SessionError(f"Failed to create HTTP session: {e}") from e

        self.logger.info("HTTP session started")
        return session

    async def fetch(self, session: ClientSession, url: str) -> str:
        try:
            async with session.get(url) as response:
                if self.fail_on_http_error and response.status >= 400:
                    raise FetchError(url, f"HTTP {response.status}")

                content_type = response.headers.get('content-type', '').lower()
                if not self._is_text_content(content_type):
                    raise FetchError(url, f"Non-text content type: {content_type or 'unknown'}")

                content = await self._read_content_safely(url, response)
        except asyncio.TimeoutError as e:
            raise FetchError(url, "Request timeout") from e
        except ClientError as e:
            raise FetchError(url, f"Client error: {e}") from e

        self.logger.debug(f"Fetched {url}: {response.status} ({len(content)} chars)")
        return content

    async def release(self, session: ClientSession) -> None:
        if session.closed:
            return
        try:
            await session.close()
        except Exception as e:
            self.logger.warning(f"Error closing HTTP session: {e}")
        else:
            self.logger.info("HTTP session closed")

    def _is_text_content(self, content_type: str) -> bool:
        return any(text_type in content_type for text_type in TEXT_CONTENT_TYPES)

    async def _read_content_safely(self, url: str, response: aiohttp.ClientResponse,
                                   max_size: int = MAX_CONTENT_SIZE) -> str:
        """Read the body in chunks, refusing anything larger than max_size bytes."""
        content_length = response.headers.get('content-length')
        if content_length and content_length.isdigit() and int(content_length) > max_size:
            raise FetchError(url, f"Content too large ({content_length} bytes)")

        content_bytes = b''
        async for chunk in response.content.iter_chunked(8192):
            content_bytes += chunk
            if len(content_bytes) > max_size:
                raise FetchError(url, "Content exceeded size limit during reading")

        encoding = response.charset or 'utf-8'
        try:
            return content_bytes.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            return content_bytes.decode('utf-8', errors='replace')


def create_fetcher(config: CrawlerConfig, renderer: Optional[str] = None) -> PageFetcher:
    """Build the fetcher selected by the crawler configuration."""
    renderer = renderer or config.renderer

    if renderer == 'browser':
        return BrowserFetcher(
            user_agent=config.user_agent,
            request_timeout=config.request_timeout,
            headless=config.headless,
            wait_until=config.wait_until,
            fail_on_http_error=config.fail_on_http_error,
        )

    if renderer == 'http':
        return HttpFetcher(
            user_agent=config.user_agent,
            request_timeout=config.request_timeout,
            max_connections=max(config.concurrency, 1) * 2,
            fail_on_http_error=config.fail_on_http_error,
        )

    raise ValueError(f"Unknown renderer: {renderer}")
