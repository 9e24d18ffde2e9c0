"""
RSS and Atom feed reading for URL discovery.
"""

import logging
from typing import List

from bs4 import BeautifulSoup

from .fetcher import WebFetcher, DEFAULT_FETCH_TIMEOUT


def extract_feed_links(feed_content: str) -> List[str]:
    """
    Return the item links of an RSS 2.0 or Atom document, in document order.

    RSS items carry the link as element text; Atom entries carry it in the
    ``href`` of a ``link`` element whose ``rel`` is absent or ``alternate``.
    """
    soup = BeautifulSoup(feed_content, 'xml')
    links = []

    for item in soup.find_all('item'):
        for link in item.find_all('link'):
            text = link.get_text(strip=True)
            if text:
                links.append(text)
                break

    for entry in soup.find_all('entry'):
        for link in entry.find_all('link'):
            if link.get('rel', 'alternate') == 'alternate' and link.get('href'):
                links.append(link['href'].strip())
                break

    return links


class FeedReader:
    """Fetches a feed and lists its item links."""

    def __init__(self, fetcher: WebFetcher, timeout: float = DEFAULT_FETCH_TIMEOUT):
        self.fetcher = fetcher
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    async def read(self, feed_url: str) -> List[str]:
        result = await self.fetcher.fetch(feed_url, self.timeout)
        links = extract_feed_links(result.content)
        self.logger.info(f"Feed {feed_url} listed {len(links)} items")
        return links
