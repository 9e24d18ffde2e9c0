import random
import unittest
from datetime import timedelta
from tempfile import TemporaryDirectory

from searchindex.crawler.url_frontier import URLFrontier, TOP_WINDOW
from searchindex.crawler.urls import fold_host, is_crawlable, normalize_url, resolve_link

from tests.helpers import EPOCH, FixedRandom


def frontier_with(urls, draw: float = 0.0, **kwargs) -> URLFrontier:
    frontier = URLFrontier(rng=FixedRandom(draw=draw), **kwargs)
    for url in urls:
        frontier.enqueue_discovered(url)
    return frontier


class UrlHelperTests(unittest.TestCase):
    def test_normalize_strips_fragment_and_trailing_slash(self) -> None:
        self.assertEqual("https://example.com", normalize_url("https://Example.com/"))
        self.assertEqual("https://example.com/a?x=1", normalize_url("https://example.com/a?x=1#top"))
        self.assertEqual("https://example.com/dir", normalize_url("https://example.com/dir/#frag"))

    def test_only_one_path_slash_is_stripped(self) -> None:
        self.assertEqual("https://a.com/login?next=/", normalize_url("https://a.com/login?next=/"))
        self.assertEqual("https://a.com/docs/", normalize_url("https://a.com/docs//"))
        self.assertEqual("https://a.com?q=1", normalize_url("https://a.com/?q=1"))

    def test_control_characters_are_percent_encoded(self) -> None:
        self.assertEqual("https://a.example/p%01q?x=%7F", normalize_url("https://a.example/p\x01q?x=\x7f"))
        self.assertEqual("https://a.example/p%01q", resolve_link("https://a.example", "/p\x01q"))
        self.assertFalse(is_crawlable("https://a\x01b.example/"))

    def test_only_absolute_http_urls_are_crawlable(self) -> None:
        self.assertTrue(is_crawlable("http://example.com/page"))
        self.assertTrue(is_crawlable("https://example.com"))
        self.assertFalse(is_crawlable("mailto:someone@example.com"))
        self.assertFalse(is_crawlable("ftp://example.com/file"))
        self.assertFalse(is_crawlable("/relative/path"))
        self.assertFalse(is_crawlable("javascript:void(0)"))

    def test_resolve_link(self) -> None:
        self.assertEqual("https://example.com/about", resolve_link("https://example.com/pets", "/about#team"))
        self.assertEqual("https://example.com/pets/dogs", resolve_link("https://example.com/pets/", "dogs/"))
        self.assertIsNone(resolve_link("https://example.com", "mailto:x@example.com"))

    def test_fold_host(self) -> None:
        self.assertEqual("example.com", fold_host("blog.example.com", "example.com"))
        self.assertEqual("example.com", fold_host("a.b.example.com", "example.com"))
        self.assertEqual("notexample.com", fold_host("notexample.com", "example.com"))
        self.assertEqual("other.org", fold_host("other.org", "example.com"))


class SelectNextTests(unittest.TestCase):
    def test_empty_queue_returns_none(self) -> None:
        self.assertIsNone(URLFrontier().select_next())

    def test_zero_draw_takes_front(self) -> None:
        frontier = frontier_with(["https://a.example", "https://b.example", "https://c.example"])

        self.assertEqual("https://a.example", frontier.select_next())
        self.assertEqual(["https://b.example", "https://c.example"], frontier.pending)

    def test_draw_is_squared(self) -> None:
        urls = [f"https://example.com/{i}" for i in range(5)]
        frontier = frontier_with(urls, draw=0.5)

        # round(0.25 * 4) == 1
        self.assertEqual("https://example.com/1", frontier.select_next())

    def test_index_never_exceeds_top_window(self) -> None:
        urls = [f"https://example.com/{i}" for i in range(300)]
        frontier = frontier_with(urls, draw=0.9999999)

        self.assertEqual(f"https://example.com/{TOP_WINDOW}", frontier.select_next())

    def test_selection_favours_front_of_queue(self) -> None:
        urls = [f"https://example.com/{i}" for i in range(300)]
        counts = {"front": 0, "back": 0}
        rng = random.Random(1234)
        for _ in range(400):
            frontier = URLFrontier(rng=FixedRandom())
            for url in urls:
                frontier.enqueue_discovered(url)
            frontier.rng = rng
            position = urls.index(frontier.select_next())
            counts["front" if position < 50 else "back"] += 1

        self.assertGreater(counts["front"], counts["back"])

    def test_selected_url_leaves_the_queue(self) -> None:
        frontier = frontier_with(["https://a.example"])
        url = frontier.select_next()

        self.assertFalse(frontier.contains(url))
        self.assertTrue(frontier.is_empty())
        self.assertTrue(frontier.enqueue_discovered(url))


class EnqueueTests(unittest.TestCase):
    def test_pending_urls_are_not_duplicated(self) -> None:
        frontier = frontier_with(["https://a.example"])

        self.assertFalse(frontier.enqueue_discovered("https://a.example"))
        self.assertEqual(1, len(frontier))

    def test_insert_position_comes_from_random_source(self) -> None:
        frontier = frontier_with(["https://a.example", "https://b.example"])
        frontier.rng = FixedRandom(insert_at_end=False)
        frontier.enqueue_discovered("https://c.example")

        self.assertEqual("https://c.example", frontier.pending[0])

    def test_random_insertion_spreads_urls(self) -> None:
        frontier = URLFrontier(rng=random.Random(7))
        for i in range(50):
            frontier.enqueue_discovered(f"https://example.com/{i}")

        self.assertNotEqual([f"https://example.com/{i}" for i in range(50)], frontier.pending)
        self.assertEqual(50, len(set(frontier.pending)))

    def test_enqueue_many_normalizes_and_filters(self) -> None:
        frontier = URLFrontier(rng=FixedRandom())
        added = frontier.enqueue_many([
            "https://example.com/a/",
            "https://example.com/a#x",
            "mailto:someone@example.com",
            "https://example.com/b",
        ])

        self.assertEqual(2, added)
        self.assertEqual(["https://example.com/a", "https://example.com/b"], frontier.pending)


class OutlinkThrottleTests(unittest.TestCase):
    def test_at_most_five_new_urls_per_host(self) -> None:
        frontier = URLFrontier(rng=FixedRandom())
        links = [f"https://other.org/{i}" for i in range(10)] + ["https://third.net/x"]

        added = frontier.enqueue_outlinks(links, "https://example.com/page")

        self.assertEqual(6, added)
        self.assertEqual(5, sum(1 for url in frontier.pending if "other.org" in url))
        self.assertIn("https://third.net/x", frontier.pending)

    def test_subdomains_count_against_source_host(self) -> None:
        frontier = URLFrontier(rng=FixedRandom())
        links = [f"https://s{i}.example.com/" for i in range(4)] + [
            f"https://example.com/{i}" for i in range(4)
        ]

        added = frontier.enqueue_outlinks(links, "https://example.com/page")

        self.assertEqual(5, added)

    def test_already_pending_urls_do_not_use_the_allowance(self) -> None:
        frontier = frontier_with(["https://other.org/0", "https://other.org/1"])
        links = [f"https://other.org/{i}" for i in range(10)]

        added = frontier.enqueue_outlinks(links, "https://example.com/page")

        self.assertEqual(5, added)
        self.assertEqual(7, len(frontier))

    def test_fragments_and_trailing_slashes_are_deduplicated(self) -> None:
        frontier = URLFrontier(rng=FixedRandom())
        links = ["https://other.org/a", "https://other.org/a/", "https://other.org/a#part", "ftp://other.org/f"]

        self.assertEqual(1, frontier.enqueue_outlinks(links, "https://example.com"))
        self.assertEqual(["https://other.org/a"], frontier.pending)

    def test_custom_limit(self) -> None:
        frontier = URLFrontier(rng=FixedRandom(), max_additions_per_host=2)
        links = [f"https://other.org/{i}" for i in range(10)]

        self.assertEqual(2, frontier.enqueue_outlinks(links, "https://example.com"))


class RecrawlTests(unittest.TestCase):
    def test_unseen_url_is_eligible(self) -> None:
        self.assertTrue(URLFrontier().is_eligible("https://example.com", EPOCH))

    def test_recently_crawled_url_is_not_eligible(self) -> None:
        frontier = URLFrontier()
        frontier.record_crawl_attempt("https://example.com", EPOCH)

        self.assertFalse(frontier.is_eligible("https://example.com", EPOCH))
        self.assertFalse(frontier.is_eligible("https://example.com", EPOCH + timedelta(days=6, hours=23)))
        self.assertTrue(frontier.is_eligible("https://example.com", EPOCH + timedelta(days=7)))

    def test_custom_wait(self) -> None:
        frontier = URLFrontier(recrawl_wait=timedelta(hours=1))
        frontier.record_crawl_attempt("https://example.com", EPOCH)

        self.assertTrue(frontier.is_eligible("https://example.com", EPOCH + timedelta(hours=1)))

    def test_record_crawl_attempt(self) -> None:
        frontier = URLFrontier()
        first = frontier.record_crawl_attempt("https://example.com", EPOCH)
        later = EPOCH + timedelta(days=10)
        second = frontier.record_crawl_attempt("https://example.com", later)

        self.assertIs(first, second)
        self.assertEqual(EPOCH, second.first_indexed)
        self.assertEqual(later, second.last_updated)
        self.assertEqual(2, second.times_crawled)


class PersistenceTests(unittest.TestCase):
    def test_state_survives_reload(self) -> None:
        with TemporaryDirectory() as tmpdir:
            frontier = URLFrontier(tmpdir, rng=FixedRandom())
            frontier.enqueue_many(["https://a.example", "https://b.example", "https://c.example"])
            frontier.select_next()
            frontier.record_crawl_attempt("https://a.example", EPOCH)

            reloaded = URLFrontier(tmpdir)
            reloaded.load()

            self.assertEqual(["https://b.example", "https://c.example"], reloaded.pending)
            page = reloaded.crawled_pages["https://a.example"]
            self.assertEqual(EPOCH, page.first_indexed)
            self.assertEqual(1, page.times_crawled)
            self.assertFalse(reloaded.is_eligible("https://a.example", EPOCH))

    def test_url_with_control_characters_stays_ineligible_after_reload(self) -> None:
        with TemporaryDirectory() as tmpdir:
            url = "https://a.example/p\x01q"
            URLFrontier(tmpdir).record_crawl_attempt(url, EPOCH)

            reloaded = URLFrontier(tmpdir)
            reloaded.load()

            self.assertFalse(reloaded.is_eligible(url, EPOCH))
            self.assertEqual(2, reloaded.record_crawl_attempt(url, EPOCH).times_crawled)
            self.assertEqual(1, len(reloaded.crawled_pages))

    def test_memory_only_frontier_writes_nothing(self) -> None:
        frontier = URLFrontier()
        frontier.enqueue_discovered("https://a.example")
        frontier.save()

        self.assertIsNone(frontier.pending_path)


if __name__ == "__main__":
    unittest.main()
