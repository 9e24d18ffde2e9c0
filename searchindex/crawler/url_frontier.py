"""
URL Frontier: pending URLs plus metadata for every URL already attempted.

Selection is biased toward the front of the queue without a priority field,
newly discovered URLs are scattered through the queue, and each page may add
only a few URLs per host.
"""

import logging
import random
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .urls import fold_host, host_of, is_crawlable, normalize_url
from ..storage.tables import (
    MalformedStoredRecord,
    format_timestamp,
    parse_timestamp,
    read_lines,
    read_table,
    strip_control_characters,
    write_lines,
    write_table,
)

TOP_WINDOW = 100
PAGE_RECRAWL_WAIT_DURATION = timedelta(days=7)
MAX_CRAWL_ADDITIONS_PER_HOST = 5

CRAWLED_PAGE_FIELDS = ("url", "first_indexed", "last_updated", "times_crawled")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CrawledPage:
    """Crawl history of one URL."""
    url: str
    first_indexed: datetime
    last_updated: datetime
    times_crawled: int = 0

    def __post_init__(self):
        self.url = strip_control_characters(self.url)

    def to_row(self) -> List[str]:
        return [
            self.url,
            format_timestamp(self.first_indexed),
            format_timestamp(self.last_updated),
            str(self.times_crawled),
        ]

    @classmethod
    def from_record(cls, record: Dict[str, str], path: Path) -> 'CrawledPage':
        try:
            return cls(
                url=record["url"],
                first_indexed=parse_timestamp(record["first_indexed"]),
                last_updated=parse_timestamp(record["last_updated"]),
                times_crawled=int(record["times_crawled"]),
            )
        except ValueError as e:
            raise MalformedStoredRecord(path, f"bad crawled page {record.get('url')!r}: {e}")


class URLFrontier:
    """
    Manages URLs to be crawled and the crawl history used for recrawl pacing.

    With a ``state_directory`` the pending queue and crawl history are written
    back on every change; without one the frontier lives in memory only.
    """

    def __init__(self, state_directory=None,
                 top_window: int = TOP_WINDOW,
                 recrawl_wait: timedelta = PAGE_RECRAWL_WAIT_DURATION,
                 max_additions_per_host: int = MAX_CRAWL_ADDITIONS_PER_HOST,
                 rng: Optional[random.Random] = None):
        self.state_directory = Path(state_directory) if state_directory is not None else None
        self.top_window = top_window
        self.recrawl_wait = recrawl_wait
        self.max_additions_per_host = max_additions_per_host
        self.rng = rng or random.Random()
        self.logger = logging.getLogger(__name__)

        self._pending: List[str] = []
        self._pending_set = set()
        self.crawled_pages: Dict[str, CrawledPage] = {}

    @property
    def pending_path(self) -> Optional[Path]:
        return self.state_directory / "pending.txt" if self.state_directory else None

    @property
    def crawled_path(self) -> Optional[Path]:
        return self.state_directory / "crawled.tsv" if self.state_directory else None

    def load(self):
        """Load persisted state, if any."""
        if self.state_directory is None:
            return

        if self.pending_path.exists():
            for url in read_lines(self.pending_path):
                self._insert_at(url, len(self._pending))

        if self.crawled_path.exists():
            for record in read_table(self.crawled_path, CRAWLED_PAGE_FIELDS):
                page = CrawledPage.from_record(record, self.crawled_path)
                self.crawled_pages[page.url] = page

        self.logger.info(
            f"Loaded frontier with {len(self._pending)} pending URLs "
            f"and {len(self.crawled_pages)} crawled pages"
        )

    def save_pending(self):
        if self.state_directory is not None:
            write_lines(self.pending_path, self._pending)

    def save_crawled(self):
        if self.state_directory is not None:
            write_table(self.crawled_path, CRAWLED_PAGE_FIELDS,
                        (page.to_row() for page in self.crawled_pages.values()))

    def save(self):
        self.save_pending()
        self.save_crawled()

    @property
    def pending(self) -> List[str]:
        return list(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    def is_empty(self) -> bool:
        return not self._pending

    def contains(self, url: str) -> bool:
        return url in self._pending_set

    def select_next(self) -> Optional[str]:
        """
        Remove and return a pending URL, or None if the queue is empty.

        Squaring a uniform draw skews the chosen index toward the front of the
        queue, within the first ``top_window`` + 1 entries.
        """
        if not self._pending:
            return None

        window = min(len(self._pending) - 1, self.top_window)
        index = round((self.rng.random() ** 2) * window)

        url = self._pending.pop(index)
        self._pending_set.discard(url)
        self.save_pending()
        return url

    def is_eligible(self, url: str, now: Optional[datetime] = None) -> bool:
        """True unless the URL was attempted within the recrawl wait."""
        page = self.crawled_pages.get(strip_control_characters(url))
        if page is None:
            return True
        now = now or _utcnow()
        return now - page.last_updated >= self.recrawl_wait

    def record_crawl_attempt(self, url: str, now: Optional[datetime] = None) -> CrawledPage:
        now = now or _utcnow()
        page = self.crawled_pages.get(strip_control_characters(url))
        if page is None:
            page = CrawledPage(url=url, first_indexed=now, last_updated=now)
            self.crawled_pages[page.url] = page
        page.last_updated = now
        page.times_crawled += 1
        self.save_crawled()
        return page

    def _insert_at(self, url: str, position: int) -> bool:
        if url in self._pending_set:
            return False
        self._pending.insert(position, url)
        self._pending_set.add(url)
        return True

    def _insert_random(self, url: str) -> bool:
        if url in self._pending_set:
            return False
        return self._insert_at(url, self.rng.randint(0, len(self._pending)))

    def enqueue_discovered(self, url: str) -> bool:
        """Insert ``url`` at a random position unless it is already pending."""
        added = self._insert_random(url)
        if added:
            self.save_pending()
        return added

    def enqueue_many(self, urls: Iterable[str]) -> int:
        """Normalize and enqueue crawlable URLs (seeds, feed items)."""
        added = 0
        for url in urls:
            if not is_crawlable(url):
                self.logger.debug(f"Ignoring non-crawlable URL: {url}")
                continue
            if self._insert_random(normalize_url(url)):
                added += 1
        if added:
            self.save_pending()
        return added

    def enqueue_outlinks(self, urls: Iterable[str], from_url: str) -> int:
        """
        Enqueue links discovered on ``from_url``, admitting at most
        ``max_additions_per_host`` new URLs per host. Subdomains of the
        source page's host count against the source host.

        Returns:
            Number of URLs added to the queue
        """
        source_host = host_of(from_url)
        by_host: Dict[str, List[str]] = defaultdict(list)
        for url in urls:
            if not is_crawlable(url):
                continue
            url = normalize_url(url)
            by_host[fold_host(host_of(url), source_host)].append(url)

        added = 0
        for host, candidates in by_host.items():
            host_added = 0
            for url in candidates:
                if host_added >= self.max_additions_per_host:
                    break
                if self._insert_random(url):
                    host_added += 1
            added += host_added

        if added:
            self.save_pending()
        self.logger.debug(f"Queued {added} new URLs from {from_url}")
        return added

    def get_stats(self) -> Dict[str, int]:
        return {
            'pending': len(self._pending),
            'crawled_pages': len(self.crawled_pages),
            'total_attempts': sum(page.times_crawled for page in self.crawled_pages.values()),
        }
