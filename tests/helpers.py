import random
from datetime import datetime, timedelta, timezone

from searchindex.crawler.fetcher import FetchResult, NonSuccessStatus

EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FixedRandom(random.Random):
    """Random source with a fixed ``random()`` draw and predictable insert positions."""

    def __init__(self, draw: float = 0.0, insert_at_end: bool = True):
        super().__init__(0)
        self.draw = draw
        self.insert_at_end = insert_at_end

    def random(self) -> float:
        return self.draw

    def randint(self, a: int, b: int) -> int:
        return b if self.insert_at_end else a


class FakeClock:
    def __init__(self, now: datetime = EPOCH):
        self.now = now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)

    def __call__(self) -> datetime:
        return self.now


class FakeFetcher:
    """Serves pages from a dict; an Exception value is raised instead."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.requests = []

    async def fetch(self, url: str, timeout: float) -> FetchResult:
        self.requests.append((url, timeout))
        page = self.pages.get(url)
        if page is None:
            raise NonSuccessStatus(url, 404)
        if isinstance(page, Exception):
            raise page
        return FetchResult(url=url, status_code=200, content=page)

    def get_stats(self):
        return {'total_requests': len(self.requests)}


def html_page(title: str, body: str, links=(), lang: str = "en", description: str = "") -> str:
    anchors = "".join(f'<a href="{href}"></a>' for href in links)
    title_tag = f"<title>{title}</title>" if title is not None else ""
    return (
        f'<html lang="{lang}"><head>{title_tag}'
        f'<meta name="description" content="{description}"></head>'
        f"<body><p>{body}</p>{anchors}</body></html>"
    )
