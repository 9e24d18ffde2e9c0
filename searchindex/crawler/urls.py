"""
URL canonicalization and host grouping.
"""

import re
from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

CRAWLABLE_SCHEMES = ('http', 'https')
CONTROL_CHARACTERS = re.compile(r"[\x00-\x1f\x7f]")


def _escape_controls(value: str) -> str:
    return CONTROL_CHARACTERS.sub(lambda match: f"%{ord(match.group(0)):02X}", value)


def normalize_url(url: str) -> str:
    """
    Strip the fragment and one trailing slash of the path; lowercase scheme
    and host. Control characters in path and query are percent-encoded so the
    URL survives a round trip through the table files unchanged.
    """
    parts = urlsplit(url.strip())
    path = parts.path
    if path.endswith('/'):
        path = path[:-1]
    return urlunsplit((
        parts.scheme.lower(),
        parts.netloc.lower(),
        _escape_controls(path),
        _escape_controls(parts.query),
        ''
    ))


def is_crawlable(url: str) -> bool:
    """Only absolute http(s) URLs with a clean host are crawled."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    if CONTROL_CHARACTERS.search(parts.netloc):
        return False
    return parts.scheme.lower() in CRAWLABLE_SCHEMES and bool(parts.hostname)


def resolve_link(base_url: str, href: str) -> Optional[str]:
    """Resolve ``href`` against ``base_url`` and normalize it, or None if it is not crawlable."""
    try:
        absolute_url = urljoin(base_url, href.strip())
    except ValueError:
        return None
    if not is_crawlable(absolute_url):
        return None
    return normalize_url(absolute_url)


def host_of(url: str) -> str:
    return (urlsplit(url).hostname or '').lower()


def fold_host(host: str, source_host: str) -> str:
    """Count subdomains of the source page's host as the source host itself."""
    if source_host and host.endswith('.' + source_host):
        return source_host
    return host
