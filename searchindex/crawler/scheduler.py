"""
Crawl loop: selects URLs from the frontier one at a time, runs the page
pipeline, pauses between pages and occasionally reads an RSS/Atom feed.
"""

import asyncio
import logging
import random
from datetime import timedelta
from pathlib import Path
from typing import List, Optional

from .fetcher import FetchError, WebFetcher
from .feeds import FeedReader
from .parser import ContentParser
from .pipeline import PagePipeline
from .state import CrawlerState, CrawlStats
from .url_frontier import URLFrontier
from ..storage.corpus import CorpusWriter
from ..storage.index_store import IndexStore
from ..storage.tables import read_lines
from ..utils.config import Config
from ..utils.monitoring import CrawlerMonitor

PROGRESS_LOG_INTERVAL = 10


class CrawlerScheduler:
    """
    Coordinates the crawler components for a single sequential worker.

    ``stop()`` lets the page in progress finish and then ends the loop.
    """

    def __init__(self, config: Config, fetcher=None, feed_reader=None,
                 monitor: Optional[CrawlerMonitor] = None,
                 rng: Optional[random.Random] = None):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.rng = rng or random.Random()
        self.monitor = monitor

        self.fetcher = fetcher
        self.feed_reader = feed_reader
        self._owns_fetcher = fetcher is None

        self.state: Optional[CrawlerState] = None
        self.pipeline: Optional[PagePipeline] = None
        self.feeds: List[str] = []

        self.is_running = False
        self._stop_event = asyncio.Event()

    @property
    def data_directory(self) -> Path:
        return Path(self.config.storage.data_directory)

    async def initialize(self):
        """Load persisted state, seed an empty frontier and build the pipeline."""
        crawler_config = self.config.crawler
        frontier_config = self.config.frontier

        frontier = URLFrontier(
            self.data_directory / "frontier",
            top_window=frontier_config.top_window,
            recrawl_wait=timedelta(days=frontier_config.recrawl_wait_days),
            max_additions_per_host=frontier_config.max_crawl_additions_per_host,
            rng=self.rng,
        )
        frontier.load()
        index = IndexStore(self.data_directory / "index")
        self.state = CrawlerState(frontier=frontier, index=index)

        if frontier.is_empty():
            self.add_seed_urls()

        feed_file = Path(crawler_config.feed_file)
        if feed_file.exists():
            self.feeds = read_lines(feed_file)
            self.logger.info(f"Loaded {len(self.feeds)} feeds from {feed_file}")

        if self.fetcher is None:
            self.fetcher = WebFetcher(
                user_agent=crawler_config.user_agent,
                max_content_bytes=crawler_config.max_content_bytes,
            )
            await self.fetcher.start()

        if self.feed_reader is None:
            self.feed_reader = FeedReader(self.fetcher, timeout=crawler_config.fetch_timeout)

        self.pipeline = PagePipeline(
            self.state,
            self.fetcher,
            parser=ContentParser(),
            corpus=CorpusWriter(self.data_directory / "corpus.txt"),
            fetch_timeout=crawler_config.fetch_timeout,
            min_word_count=self.config.index.min_word_count_as_keyword,
            monitor=self.monitor,
        )

        self.logger.info("Crawler scheduler initialized successfully")

    def add_seed_urls(self) -> int:
        """Add the configured seed URLs to the frontier."""
        seed_file = Path(self.config.crawler.seed_file)
        if not seed_file.exists():
            self.logger.warning(f"Seed file not found: {seed_file}")
            return 0

        added = self.state.frontier.enqueue_many(read_lines(seed_file))
        self.logger.info(f"Added {added} seed URLs to frontier")
        return added

    async def run(self, max_pages: Optional[int] = None) -> CrawlStats:
        """
        Crawl until the frontier is empty, ``max_pages`` pages have been
        processed, or ``stop()`` is called.
        """
        if self.is_running:
            self.logger.warning("Crawler is already running")
            return self.state.stats

        self.is_running = True
        processed = 0
        frontier = self.state.frontier

        try:
            while not self._stop_event.is_set():
                if max_pages is not None and processed >= max_pages:
                    self.logger.info(f"Reached max pages limit: {max_pages}")
                    break

                url = frontier.select_next()
                if url is None:
                    self.logger.info("Frontier empty, crawl finished")
                    break

                await self.pipeline.process(url)
                processed += 1

                if processed % PROGRESS_LOG_INTERVAL == 0:
                    self._log_current_stats()

                if max_pages is not None and processed >= max_pages:
                    continue

                await self._pause()

                if self.feeds and self.rng.random() < self.config.crawler.feed_discovery_chance:
                    await self.discover_from_feeds()
        finally:
            self.is_running = False
            self._log_final_stats()

        return self.state.stats

    async def _pause(self):
        """Wait ``crawl_interval`` seconds, returning early if a stop is requested."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.config.crawler.crawl_interval)
        except asyncio.TimeoutError:
            pass

    async def discover_from_feeds(self) -> int:
        """Read one randomly chosen feed and enqueue its item links."""
        if not self.feeds:
            return 0

        feed_url = self.rng.choice(self.feeds)
        try:
            links = await self.feed_reader.read(feed_url)
        except FetchError as e:
            self.logger.warning(f"Feed discovery failed: {e}")
            return 0

        added = self.state.frontier.enqueue_many(links)
        self.state.stats.feeds_read += 1
        self.state.stats.added += added
        if self.monitor:
            self.monitor.record_urls_added(added)
        self.logger.info(f"Queued {added} new URLs from feed {feed_url}")
        return added

    def stop(self):
        """Request a stop after the current page."""
        self.logger.info("Stopping crawler after the current page...")
        self._stop_event.set()

    def _log_current_stats(self):
        stats = self.state.stats
        self.logger.info(
            f"Crawl Progress: "
            f"Crawled={stats.crawled}, "
            f"Skipped={stats.skipped}, "
            f"Added={stats.added}, "
            f"Queued={len(self.state.frontier)}, "
            f"Rate={stats.pages_per_minute:.1f} pages/min"
        )

    def _log_final_stats(self):
        stats = self.state.stats
        frontier_stats = self.state.frontier.get_stats()

        self.logger.info("=== CRAWL COMPLETED ===")
        self.logger.info(f"Pages crawled: {stats.crawled}")
        self.logger.info(f"Pages skipped: {stats.skipped}")
        self.logger.info(f"URLs added: {stats.added}")
        self.logger.info(f"Postings upserted: {stats.postings_upserted}")
        self.logger.info(f"Feeds read: {stats.feeds_read}")
        self.logger.info(f"Total time: {stats.elapsed_time:.2f} seconds")
        self.logger.info(f"URLs remaining in queue: {frontier_stats['pending']}")
        if self.fetcher is not None and hasattr(self.fetcher, 'get_stats'):
            self.logger.info(f"Fetcher stats: {self.fetcher.get_stats()}")

    async def close(self):
        """Close connections opened by the scheduler."""
        if self._owns_fetcher and self.fetcher is not None:
            await self.fetcher.close()
        self.logger.info("Crawler scheduler closed")
