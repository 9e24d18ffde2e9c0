import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

from searchindex.crawler.scheduler import CrawlerScheduler
from searchindex.storage.index_store import IndexStore
from searchindex.utils.config import ConfigManager

from tests.helpers import FakeFetcher, FixedRandom, html_page
from tests.test_feeds import RSS

FEED_URL = "https://news.example.com/feed"


class StoppingFetcher(FakeFetcher):
    """Requests a scheduler stop while the first page is being fetched."""

    scheduler = None

    async def fetch(self, url: str, timeout: float):
        self.scheduler.stop()
        return await super().fetch(url, timeout)


class SchedulerTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmpdir = TemporaryDirectory()
        self.tmpdir = Path(self._tmpdir.name)
        self.seed_file = self.tmpdir / "tocrawl.txt"
        self.feed_file = self.tmpdir / "feeds.txt"
        self.config = ConfigManager().from_dict({
            'crawler': {
                'seed_file': str(self.seed_file),
                'feed_file': str(self.feed_file),
                'crawl_interval': 0,
                'feed_discovery_chance': 0,
            },
            'storage': {'data_directory': str(self.tmpdir / "data")},
        })

    def tearDown(self) -> None:
        self._tmpdir.cleanup()

    def write_seeds(self, *urls: str) -> None:
        self.seed_file.write_text("\n".join(urls) + "\n", encoding="utf-8")

    async def make_scheduler(self, fetcher) -> CrawlerScheduler:
        scheduler = CrawlerScheduler(self.config, fetcher=fetcher, rng=FixedRandom())
        await scheduler.initialize()
        return scheduler


class RunTests(SchedulerTestCase):
    async def test_crawls_until_frontier_is_empty(self) -> None:
        self.write_seeds("https://example.com/a/")
        fetcher = FakeFetcher({
            "https://example.com/a": html_page("Alpha", "alpha alpha alpha", links=["/b"]),
            "https://example.com/b": html_page("Beta", "beta beta beta", links=["/a"]),
        })
        scheduler = await self.make_scheduler(fetcher)

        stats = await scheduler.run()

        # /a is queued again from /b but is then skipped as recently crawled
        self.assertEqual(2, stats.crawled)
        self.assertEqual(1, stats.skipped)
        self.assertEqual(2, stats.added)
        self.assertTrue(scheduler.state.frontier.is_empty())
        self.assertEqual(["https://example.com/a", "https://example.com/b"],
                         [url for url, _ in fetcher.requests])

        index = IndexStore(self.tmpdir / "data" / "index")
        self.assertEqual("Alpha", index.find("alpha", "https://example.com/a").title)
        self.assertIsNotNone(index.find("beta", "https://example.com/b"))

    async def test_max_pages(self) -> None:
        self.write_seeds("https://example.com/1", "https://example.com/2", "https://example.com/3")
        scheduler = await self.make_scheduler(FakeFetcher())

        stats = await scheduler.run(max_pages=2)

        self.assertEqual(2, stats.crawled + stats.skipped)
        self.assertEqual(["https://example.com/3"], scheduler.state.frontier.pending)

    async def test_zero_max_pages_processes_nothing(self) -> None:
        self.write_seeds("https://example.com/1")
        fetcher = FakeFetcher()
        scheduler = await self.make_scheduler(fetcher)

        stats = await scheduler.run(max_pages=0)

        self.assertEqual(0, stats.crawled + stats.skipped)
        self.assertEqual([], fetcher.requests)
        self.assertEqual(["https://example.com/1"], scheduler.state.frontier.pending)

    async def test_stop_finishes_current_page(self) -> None:
        self.write_seeds("https://example.com/1", "https://example.com/2")
        fetcher = StoppingFetcher({"https://example.com/1": html_page("One", "one one one")})
        scheduler = await self.make_scheduler(fetcher)
        fetcher.scheduler = scheduler

        stats = await scheduler.run()

        self.assertEqual(1, stats.crawled)
        self.assertEqual(1, len(fetcher.requests))
        self.assertFalse(scheduler.is_running)

    async def test_missing_seed_file_leaves_frontier_empty(self) -> None:
        scheduler = await self.make_scheduler(FakeFetcher())

        stats = await scheduler.run()

        self.assertEqual(0, stats.crawled)
        self.assertEqual([], scheduler.state.frontier.pending)


class PersistenceTests(SchedulerTestCase):
    async def test_state_is_written_to_data_directory(self) -> None:
        self.write_seeds("https://example.com/a")
        fetcher = FakeFetcher({"https://example.com/a": html_page("Alpha", "alpha alpha alpha")})
        scheduler = await self.make_scheduler(fetcher)

        await scheduler.run()
        await scheduler.close()

        data = self.tmpdir / "data"
        self.assertTrue((data / "frontier" / "pending.txt").exists())
        self.assertTrue((data / "frontier" / "crawled.tsv").exists())
        self.assertTrue((data / "corpus.txt").exists())

    async def test_restart_resumes_without_reseeding(self) -> None:
        self.write_seeds("https://example.com/a", "https://example.com/c")
        fetcher = FakeFetcher({"https://example.com/a": html_page("Alpha", "alpha alpha alpha")})
        first = await self.make_scheduler(fetcher)
        await first.run(max_pages=1)

        second = await self.make_scheduler(fetcher)

        self.assertEqual(["https://example.com/c"], second.state.frontier.pending)
        self.assertFalse(second.state.frontier.is_eligible("https://example.com/a"))


class FeedDiscoveryTests(SchedulerTestCase):
    async def test_feed_items_are_queued(self) -> None:
        self.feed_file.write_text(FEED_URL + "\n", encoding="utf-8")
        scheduler = await self.make_scheduler(FakeFetcher({FEED_URL: RSS}))

        added = await scheduler.discover_from_feeds()

        self.assertEqual(2, added)
        self.assertEqual(
            ["https://news.example.com/one", "https://news.example.com/two"],
            scheduler.state.frontier.pending,
        )
        self.assertEqual(1, scheduler.state.stats.feeds_read)

    async def test_feed_fetch_failure_is_ignored(self) -> None:
        self.feed_file.write_text(FEED_URL + "\n", encoding="utf-8")
        scheduler = await self.make_scheduler(FakeFetcher())

        self.assertEqual(0, await scheduler.discover_from_feeds())
        self.assertEqual(0, scheduler.state.stats.feeds_read)

    async def test_no_feeds_configured(self) -> None:
        scheduler = await self.make_scheduler(FakeFetcher())

        self.assertEqual([], scheduler.feeds)
        self.assertEqual(0, await scheduler.discover_from_feeds())


if __name__ == "__main__":
    unittest.main()
