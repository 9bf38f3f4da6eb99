"""
Command line driver: feeds crawled pages through the parser into the sitemap store.
"""

import asyncio
import argparse
import logging
import signal
import sys
import time
from contextlib import aclosing
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from . import __version__
from .crawler.fetcher import PageFetcher, SessionError, create_fetcher
from .crawler.parser import ContentParser
from .crawler.scheduler import CrawlerScheduler
from .storage.sitemap_store import PageRecord, SitemapStore, StorageError
from .utils.config import Config, ConfigError, load_config
from .utils.logger import log_system_info, setup_logging
from .utils.monitoring import CrawlerMonitor, initialize_monitoring


logger = logging.getLogger(__name__)


@dataclass
class CrawlSummary:
    """Final figures of a crawl run."""
    unique_urls: int
    pages_saved: int
    failed_urls: int
    output_path: Path
    elapsed_seconds: float
    interrupted: bool = False


async def crawl_site(config: Config, fetcher: PageFetcher, store: SitemapStore,
                     parser: Optional[ContentParser] = None,
                     monitor: Optional[CrawlerMonitor] = None,
                     max_pages: Optional[int] = None,
                     stop_event: Optional[asyncio.Event] = None) -> CrawlSummary:
    """
    Crawl the configured site and flush the sitemap.

    SessionError and other fatal errors propagate before the store is flushed.
    """
    parser = parser or ContentParser()
    started = time.time()
    interrupted = False

    scheduler = CrawlerScheduler(config.crawler, fetcher, monitor, stop_event=stop_event)
    if not scheduler.add_to_queue(config.crawler.base_url):
        logger.warning(f"Base URL was not accepted into the queue: {config.crawler.base_url}")

    async with aclosing(scheduler.crawl()) as results:
        async for result in results:
            dependencies = parser.extract_dependencies(result.content)
            links_added = sum(
                1 for link in parser.extract_links(result.content)
                if scheduler.add_to_queue(link)
            )

            store.append(PageRecord(url=result.url, dependencies=dependencies))
            logger.info(
                f"[{result.counter}] {result.url} "
                f"(+{links_added} links, queue length = {scheduler.queue_length})"
            )

            if max_pages and store.count() >= max_pages:
                logger.info(f"Reached max pages limit: {max_pages}")
                interrupted = True
                break
            if stop_event is not None and stop_event.is_set():
                logger.info("Stop requested, ending crawl early")
                interrupted = True
                break

    if scheduler.stopped_early:
        interrupted = True

    output_path = store.flush()

    return CrawlSummary(
        unique_urls=scheduler.unique_url_count,
        pages_saved=store.count(),
        failed_urls=scheduler.failed_url_count,
        output_path=output_path,
        elapsed_seconds=time.time() - started,
        interrupted=interrupted,
    )


class CrawlerApp:
    """Main application class for the site crawler."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._stop_event = asyncio.Event()

    def setup_signal_handlers(self):
        """
        Setup signal handlers for graceful shutdown.

        The first SIGINT/SIGTERM asks the crawl to stop after the current batch
        and puts the default handlers back, so a second one ends the process.
        """
        def signal_handler(signum, frame):
            self.logger.info(f"Received signal {signum}, finishing current batch "
                             f"(send again to exit immediately)...")
            self._stop_event.set()
            signal.signal(signal.SIGINT, signal.default_int_handler)
            signal.signal(signal.SIGTERM, signal.SIG_DFL)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)
        return signal_handler

    async def run(self, config_path: str, overrides: Optional[Dict[str, Dict[str, Any]]] = None,
                  max_pages: Optional[int] = None, log_level: Optional[str] = None) -> int:
        """Run the crawler. Returns the process exit code."""
        config = load_config(config_path, overrides)
        setup_logging(config.logging, log_level)
        log_system_info()
        self.setup_signal_handlers()

        crawler_config = config.crawler
        self.logger.info("=== SITE CRAWLER STARTING ===")
        self.logger.info(
            f"Started crawling with base_url={crawler_config.base_url}, "
            f"concurrency={crawler_config.concurrency}, "
            f"output_file={config.storage.output_file}, "
            f"retry_limit={crawler_config.retry_limit}, "
            f"renderer={crawler_config.renderer}"
        )

        monitor = initialize_monitoring(config.monitoring.metrics_enabled,
                                        config.monitoring.prometheus_port)
        store = SitemapStore(config.storage.output_file, config.storage.base_directory)
        fetcher = create_fetcher(crawler_config)

        try:
            summary = await crawl_site(config, fetcher, store,
                                       monitor=monitor,
                                       max_pages=max_pages,
                                       stop_event=self._stop_event)
        except SessionError as e:
            self.logger.error(f"Could not start fetch session, no results written: {e}")
            return 1
        except StorageError as e:
            self.logger.error(f"Could not save results: {e}")
            return 1
        except Exception as e:
            self.logger.error(f"Fatal error, no results written: {e}", exc_info=True)
            return 1

        self.log_summary(summary)
        self.logger.debug(f"Metrics: {monitor.get_summary()}")
        return 0

    def log_summary(self, summary: CrawlSummary):
        self.logger.info("=== CRAWL ENDED%s ===" % (" (INTERRUPTED)" if summary.interrupted else ""))
        self.logger.info(f"1] Total unique links crawled = {summary.unique_urls}")
        self.logger.info(f"2] Total links successfully saved = {summary.pages_saved}")
        self.logger.info(f"3] Total links failed = {summary.failed_urls}")
        self.logger.info(f"4] Output file = {summary.output_path}")
        self.logger.info(f"Total time: {summary.elapsed_seconds:.2f} seconds")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='sitecrawl',
        description="Crawl a single website and write a sitemap of its pages and static assets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sitecrawl                                   # Run with default config.yaml
  sitecrawl --config site.yaml                # Run with custom config
  sitecrawl --base-url https://example.com    # Override the site to crawl
  sitecrawl --renderer http --concurrency 10  # Plain HTTP, ten pages at a time
        """
    )

    parser.add_argument('--config', default='config.yaml',
                        help='Path to configuration file (default: config.yaml)')
    parser.add_argument('--base-url', help='Site to crawl; only URLs starting with it are followed')
    parser.add_argument('--concurrency', type=int, help='Number of pages fetched at once')
    parser.add_argument('--retry-limit', type=int, help='Retries per failed URL (0 disables retries)')
    parser.add_argument('--renderer', choices=['browser', 'http'], help='Page fetching backend')
    parser.add_argument('--output', help='Sitemap output file')
    parser.add_argument('--max-pages', type=int, help='Stop after this many pages are saved')
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Override the configured log level')
    parser.add_argument('--version', action='version', version=f'sitecrawl {__version__}')
    return parser


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Dict[str, Any]]:
    return {
        'crawler': {
            'base_url': args.base_url,
            'concurrency': args.concurrency,
            'retry_limit': args.retry_limit,
            'renderer': args.renderer,
        },
        'storage': {
            'output_file': args.output,
        },
    }


def main(argv=None) -> int:
    """Main entry point."""
    args = build_arg_parser().parse_args(argv)

    if not Path(args.config).exists():
        print(f"Error: Configuration file '{args.config}' not found.")
        print("Please create a config.yaml file or specify a different path with --config")
        return 1

    app = CrawlerApp()
    try:
        return asyncio.run(app.run(
            config_path=args.config,
            overrides=overrides_from_args(args),
            max_pages=args.max_pages,
            log_level=args.log_level,
        ))
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1


if __name__ == '__main__':
    sys.exit(main())
