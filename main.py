#!/usr/bin/env python3
"""
Main entry point for the search index crawler.
"""

import asyncio
import argparse
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

from searchindex import __version__
from searchindex.crawler.scheduler import CrawlerScheduler
from searchindex.search.engine import SearchEngine, SearchWeights
from searchindex.storage.index_store import IndexStore
from searchindex.utils.config import Config, ConfigError, load_config
from searchindex.utils.logger import setup_logging, log_system_info
from searchindex.utils.monitoring import CrawlerMonitor, MetricsCollector


class CrawlerApp:
    """Main application class for the crawler."""

    def __init__(self):
        self.scheduler: Optional[CrawlerScheduler] = None
        self.logger = logging.getLogger(__name__)

    def setup_signal_handlers(self):
        """Finish the current page, then stop, on SIGINT/SIGTERM."""
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self._handle_signal, signum)
            except NotImplementedError:
                # Windows event loops do not support signal handlers
                pass

    def _handle_signal(self, signum):
        self.logger.info(f"Received signal {signum}, initiating shutdown...")
        if self.scheduler:
            self.scheduler.stop()

    async def crawl(self, config: Config, max_pages: Optional[int] = None) -> int:
        """Run the crawler until the frontier empties or a stop is requested."""
        monitor = CrawlerMonitor(MetricsCollector(
            enable_http=config.monitoring.metrics_enabled,
            prometheus_port=config.monitoring.prometheus_port,
        ))
        monitor.metrics.start_http_server()

        self.scheduler = CrawlerScheduler(config, monitor=monitor)
        try:
            self.logger.info("=== CRAWLER STARTING ===")
            self.logger.info(f"Data directory: {config.storage.data_directory}")
            self.logger.info(f"Crawl interval: {config.crawler.crawl_interval}s")
            self.logger.info(f"Fetch timeout: {config.crawler.fetch_timeout}s")

            await self.scheduler.initialize()
            self.setup_signal_handlers()
            await self.scheduler.run(max_pages=max_pages)
        finally:
            await self.scheduler.close()
            self.logger.info("=== CRAWLER FINISHED ===")

        return 0

    def search(self, config: Config, query: str, weights: SearchWeights,
               limit: int, as_json: bool) -> int:
        """Print ranked results for a query."""
        index = IndexStore(Path(config.storage.data_directory) / "index")
        results = SearchEngine(index).search(query, weights)[:limit]

        if as_json:
            print(json.dumps([result.to_dict() for result in results], ensure_ascii=False, indent=2))
            return 0

        if not results:
            print("No results found.")
            return 0

        for position, result in enumerate(results, start=1):
            print(f"{position}. {result.title}")
            print(f"   {result.url}")
            if result.description:
                print(f"   {result.description}")
            print(
                f"   weighted={result.weighted_score:.4f} keyword={result.keyword_score:.4f} "
                f"reference={result.reference_score:.2f} intersection={result.intersection_score:.1f}"
            )
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Web crawler and search index",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py crawl                         # Crawl with default config.yaml
  python main.py --config my.yaml crawl       # Crawl with custom config
  python main.py crawl --max-pages 100        # Stop after 100 pages
  python main.py search "open source"         # Query the index
  python main.py search "cat dog" --json      # Query with JSON output
        """
    )

    parser.add_argument(
        '--config',
        default='config.yaml',
        help='Path to configuration file (default: config.yaml)'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'Open Search Index {__version__}'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    crawl_parser = subparsers.add_parser('crawl', help='Crawl and index pages')
    crawl_parser.add_argument(
        '--max-pages',
        type=int,
        help='Maximum number of pages to process'
    )

    search_parser = subparsers.add_parser('search', help='Query the index')
    search_parser.add_argument('query', help='Whitespace-separated keywords')
    search_parser.add_argument('--limit', type=int, default=10, help='Number of results to show')
    search_parser.add_argument('--json', action='store_true', help='Print results as JSON')
    search_parser.add_argument('--keyword-weight', type=float, default=0.5)
    search_parser.add_argument('--reference-weight', type=float, default=0.5)
    search_parser.add_argument('--intersection-weight', type=float, default=0.5)

    return parser


def main():
    """Main entry point."""
    args = build_parser().parse_args()

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}")
        print("Please create a config.yaml file or specify a different path with --config")
        return 1

    app = CrawlerApp()

    if args.command == 'search':
        logging.basicConfig(level=logging.WARNING, format=config.logging.format)
        weights = SearchWeights(
            keyword=args.keyword_weight,
            reference=args.reference_weight,
            intersection=args.intersection_weight,
        )
        try:
            return app.search(config, args.query, weights, args.limit, args.json)
        except OSError as e:
            logging.getLogger(__name__).error(f"Cannot read index: {e}", exc_info=True)
            return 1

    setup_logging(config.logging)
    log_system_info()
    try:
        return asyncio.run(app.crawl(config, max_pages=args.max_pages))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1
    except Exception as e:
        logging.getLogger(__name__).error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == '__main__':
    sys.exit(main())
