"""
Per-page processing: fetch, extract, score keywords, index, discover links.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from .fetcher import FetchError, FetchNetworkError, FetchTimeout, NonSuccessStatus, DEFAULT_FETCH_TIMEOUT
from .parser import ContentParser, MissingContent, ParsedContent
from .state import CrawlerState
from ..index.language import normalize_language
from ..index.tokenizer import (
    DEFAULT_MIN_WORD_COUNT_AS_KEYWORD,
    keyword_score,
    qualifies,
    tokenize,
    word_frequencies,
)
from ..storage.corpus import CorpusWriter
from ..storage.index_store import Posting
from ..storage.tables import MalformedStoredRecord
from ..utils.logger import get_crawler_logger
from ..utils.monitoring import CrawlerMonitor

SKIP_REASONS = {
    FetchTimeout: 'timeout',
    FetchNetworkError: 'network_error',
    NonSuccessStatus: 'http_status',
    MissingContent: 'missing_content',
    MalformedStoredRecord: 'malformed_index',
}


class CrawlOutcome(Enum):
    CRAWLED = "crawled"
    SKIPPED = "skipped"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PagePipeline:
    """
    Processes one URL end to end.

    Per-page failures (fetch errors, missing content, corrupt keyword tables,
    unexpected errors while fetching or parsing) end the attempt as SKIPPED;
    storage I/O errors propagate to the caller.
    """

    def __init__(self, state: CrawlerState, fetcher, parser: Optional[ContentParser] = None,
                 corpus: Optional[CorpusWriter] = None,
                 fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
                 min_word_count: int = DEFAULT_MIN_WORD_COUNT_AS_KEYWORD,
                 monitor: Optional[CrawlerMonitor] = None,
                 clock: Callable[[], datetime] = _utcnow):
        self.state = state
        self.fetcher = fetcher
        self.parser = parser or ContentParser()
        self.corpus = corpus
        self.fetch_timeout = fetch_timeout
        self.min_word_count = min_word_count
        self.monitor = monitor
        self.clock = clock
        self.logger = get_crawler_logger(__name__)

    async def process(self, url: str) -> CrawlOutcome:
        frontier = self.state.frontier
        now = self.clock()

        if not frontier.is_eligible(url, now):
            return self._skip(url, 'recently_crawled', "Crawled recently, skipping")

        frontier.record_crawl_attempt(url, now)
        self.logger.log_url_event(logging.INFO, url, f"Crawling: {url}")

        try:
            result = await self.fetcher.fetch(url, self.fetch_timeout)
            parsed = self.parser.parse(url, result.content)
            parsed.require_text()
            upserted = self.index_page(parsed, now)
        except (FetchError, MissingContent, MalformedStoredRecord) as e:
            return self._skip(url, SKIP_REASONS.get(type(e), 'error'), str(e))
        except OSError:
            raise
        except Exception as e:
            self.logger.error(f"Error processing {url}: {e}", exc_info=True)
            return self._skip(url, 'error', str(e))

        added = frontier.enqueue_outlinks(parsed.links, url)

        if self.corpus is not None:
            self.corpus.append(parsed.content)

        stats = self.state.stats
        stats.crawled += 1
        stats.added += added
        stats.postings_upserted += upserted
        if self.monitor:
            self.monitor.record_page_crawled(url, result.fetch_time)
            self.monitor.record_urls_added(added)
            self.monitor.record_postings_upserted(upserted)
            self.monitor.update_queue_size(len(frontier))

        self.logger.log_url_event(
            logging.INFO, url,
            f"Indexed {upserted} keywords, queued {added} new URLs: {url}",
            outcome=CrawlOutcome.CRAWLED.value
        )
        return CrawlOutcome.CRAWLED

    def index_page(self, parsed: ParsedContent, now: datetime) -> int:
        """
        Upsert a posting for every qualifying keyword of the page.

        Returns:
            Number of postings written
        """
        frequencies = word_frequencies(parsed.content)
        title_words = tokenize(parsed.title)
        in_title = set(title_words)
        language = normalize_language(parsed.language)

        upserted = 0
        for keyword in dict.fromkeys(title_words + list(frequencies)):
            score = keyword_score(frequencies.get(keyword, 0), keyword in in_title)
            if not qualifies(keyword, score, self.min_word_count):
                continue

            self.state.index.upsert(keyword, Posting(
                url=parsed.url,
                title=parsed.title,
                description=parsed.meta_description,
                language=language,
                first_indexed=now,
                last_updated=now,
                keyword_score=score,
            ))
            upserted += 1

        return upserted

    def _skip(self, url: str, reason: str, message: str) -> CrawlOutcome:
        self.state.stats.skipped += 1
        if self.monitor:
            self.monitor.record_page_skipped(url, reason)
        self.logger.log_url_event(logging.INFO, url, f"{message} ({reason})",
                                  outcome=CrawlOutcome.SKIPPED.value)
        return CrawlOutcome.SKIPPED
