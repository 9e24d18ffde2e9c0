"""
Crawler components: frontier, fetcher, parser, feeds, page pipeline and crawl loop.
"""

from .url_frontier import URLFrontier, CrawledPage
from .fetcher import WebFetcher, FetchResult, FetchError, FetchTimeout, FetchNetworkError, NonSuccessStatus
from .parser import ContentParser, ParsedContent, MissingContent
from .feeds import FeedReader, extract_feed_links
from .pipeline import PagePipeline, CrawlOutcome
from .state import CrawlerState, CrawlStats

__all__ = [
    'URLFrontier', 'CrawledPage',
    'WebFetcher', 'FetchResult', 'FetchError', 'FetchTimeout', 'FetchNetworkError', 'NonSuccessStatus',
    'ContentParser', 'ParsedContent', 'MissingContent',
    'FeedReader', 'extract_feed_links',
    'PagePipeline', 'CrawlOutcome',
    'CrawlerState', 'CrawlStats',
]
