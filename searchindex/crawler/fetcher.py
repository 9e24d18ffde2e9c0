"""
Web page fetcher with a hard per-request timeout.
"""

import asyncio
import aiohttp
import logging
import time
from typing import Optional, Dict
from dataclasses import dataclass
from aiohttp import ClientSession, ClientError

DEFAULT_FETCH_TIMEOUT = 5.0
DEFAULT_MAX_CONTENT_BYTES = 10 * 1024 * 1024


class FetchError(Exception):
    """Base class for failures to obtain a page body."""

    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(f"{message}: {url}")


class FetchTimeout(FetchError):
    """No response arrived within the timeout."""


class FetchNetworkError(FetchError):
    """Connection, TLS or protocol failure."""


class NonSuccessStatus(FetchError):
    """The server answered with a non-2xx status."""

    def __init__(self, url: str, status_code: int):
        self.status_code = status_code
        super().__init__(url, f"HTTP {status_code}")


@dataclass
class FetchResult:
    """Result of a successful fetch."""
    url: str
    status_code: int
    content: str
    headers: Optional[Dict[str, str]] = None
    content_type: Optional[str] = None
    fetch_time: float = 0.0


class WebFetcher:
    """
    Fetches pages with a shared aiohttp session.

    ``fetch`` either returns a 2xx ``FetchResult`` or raises a ``FetchError``.
    """

    def __init__(self, user_agent: str, max_content_bytes: int = DEFAULT_MAX_CONTENT_BYTES):
        self.user_agent = user_agent
        self.max_content_bytes = max_content_bytes
        self.logger = logging.getLogger(__name__)
        self.session: Optional[ClientSession] = None

        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'total_bytes_downloaded': 0
        }

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self):
        """Initialize the fetcher session."""
        if self.session is None:
            self.session = aiohttp.ClientSession(
                headers={'User-Agent': self.user_agent},
                connector=aiohttp.TCPConnector(limit=4, ttl_dns_cache=300)
            )
            self.logger.info("WebFetcher session started")

    async def close(self):
        """Close the fetcher session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.info("WebFetcher session closed")

    async def fetch(self, url: str, timeout: float = DEFAULT_FETCH_TIMEOUT) -> FetchResult:
        """
        Fetch a single URL.

        Args:
            url: The URL to fetch
            timeout: Seconds before the request is cancelled

        Raises:
            FetchTimeout, FetchNetworkError, NonSuccessStatus
        """
        if self.session is None:
            await self.start()

        start_time = time.time()
        self.stats['total_requests'] += 1

        try:
            result = await asyncio.wait_for(self._get(url), timeout)
        except asyncio.TimeoutError:
            self.stats['failed_requests'] += 1
            raise FetchTimeout(url, f"No response within {timeout}s")
        except ClientError as e:
            self.stats['failed_requests'] += 1
            raise FetchNetworkError(url, f"Client error ({e})")

        result.fetch_time = time.time() - start_time

        if not 200 <= result.status_code < 300:
            self.stats['failed_requests'] += 1
            raise NonSuccessStatus(url, result.status_code)

        self.stats['successful_requests'] += 1
        self.stats['total_bytes_downloaded'] += len(result.content)
        self.logger.debug(f"Fetched {url}: {result.status_code} ({len(result.content)} chars)")
        return result

    async def _get(self, url: str) -> FetchResult:
        async with self.session.get(url) as response:
            content = ""
            if 200 <= response.status < 300:
                content = await self._read_content(response)
            return FetchResult(
                url=url,
                status_code=response.status,
                content=content,
                headers=dict(response.headers),
                content_type=response.headers.get('content-type', '').lower(),
            )

    async def _read_content(self, response) -> str:
        """Read the body, stopping at ``max_content_bytes``."""
        content_bytes = bytearray()
        async for chunk in response.content.iter_chunked(8192):
            content_bytes.extend(chunk)
            if len(content_bytes) > self.max_content_bytes:
                self.logger.warning(f"Content exceeded size limit, truncating: {response.url}")
                del content_bytes[self.max_content_bytes:]
                break

        encoding = response.charset or 'utf-8'
        try:
            return content_bytes.decode(encoding, errors='replace')
        except LookupError:
            return content_bytes.decode('utf-8', errors='replace')

    def get_stats(self) -> Dict[str, int]:
        return self.stats.copy()
