"""
Mutable crawl state owned by the crawl loop.
"""

import time
from dataclasses import dataclass, field
from typing import Dict

from .url_frontier import URLFrontier
from ..storage.index_store import IndexStore


@dataclass
class CrawlStats:
    """Counters for crawl operations."""
    start_time: float = field(default_factory=time.time)
    added: int = 0
    crawled: int = 0
    skipped: int = 0
    postings_upserted: int = 0
    feeds_read: int = 0

    @property
    def elapsed_time(self) -> float:
        return time.time() - self.start_time

    @property
    def pages_per_minute(self) -> float:
        elapsed_minutes = self.elapsed_time / 60
        return self.crawled / elapsed_minutes if elapsed_minutes > 0 else 0

    def as_dict(self) -> Dict[str, float]:
        return {
            'added': self.added,
            'crawled': self.crawled,
            'skipped': self.skipped,
            'postings_upserted': self.postings_upserted,
            'feeds_read': self.feeds_read,
            'elapsed_time': self.elapsed_time,
            'pages_per_minute': self.pages_per_minute,
        }


@dataclass
class CrawlerState:
    """Frontier, index and counters for one crawler process."""
    frontier: URLFrontier
    index: IndexStore
    stats: CrawlStats = field(default_factory=CrawlStats)
