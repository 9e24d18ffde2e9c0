"""
HTML parser extracting the text, metadata and links used for indexing.
"""

import re
import logging
from typing import List
from dataclasses import dataclass, field
from bs4 import BeautifulSoup, Comment

from .urls import resolve_link

# Elements whose text is not page content
NON_CONTENT_ELEMENTS = [
    "script", "style", "noscript", "template",
    "button", "input", "select", "option", "textarea", "label",
]


class MissingContent(Exception):
    """A page has no title or no body text to index."""

    def __init__(self, url: str, missing: str):
        self.url = url
        self.missing = missing
        super().__init__(f"No {missing}: {url}")


@dataclass
class ParsedContent:
    """Container for parsed web page content."""
    url: str
    title: str = ""
    meta_description: str = ""
    content: str = ""
    language: str = ""
    links: List[str] = field(default_factory=list)

    def require_text(self):
        """Raise MissingContent unless both title and body text are present."""
        if not self.title:
            raise MissingContent(self.url, "title")
        if not self.content:
            raise MissingContent(self.url, "body text")


class ContentParser:
    """Parses HTML into title, description, visible body text, language and outlinks."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.whitespace_pattern = re.compile(r'\s+')

    def parse(self, url: str, html_content: str) -> ParsedContent:
        """
        Parse HTML content.

        Args:
            url: The URL of the page, used to resolve relative links
            html_content: Raw HTML content
        """
        soup = BeautifulSoup(html_content, 'lxml')

        for element in soup(NON_CONTENT_ELEMENTS):
            element.decompose()

        for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
            comment.extract()

        parsed_content = ParsedContent(url=url)
        self._extract_title(soup, parsed_content)
        self._extract_meta_description(soup, parsed_content)
        self._extract_language(soup, parsed_content)
        self._extract_body_text(soup, parsed_content)
        self._extract_links(soup, parsed_content, url)

        self.logger.debug(f"Parsed {url}: {len(parsed_content.content)} chars, "
                          f"{len(parsed_content.links)} links")
        return parsed_content

    def _extract_title(self, soup: BeautifulSoup, parsed_content: ParsedContent):
        title_tag = soup.find('title')
        if title_tag:
            parsed_content.title = self._clean_text(title_tag.get_text())

    def _extract_meta_description(self, soup: BeautifulSoup, parsed_content: ParsedContent):
        meta_desc = soup.find('meta', attrs={'name': 'description'}) or \
            soup.find('meta', attrs={'property': 'og:description'})
        if meta_desc:
            parsed_content.meta_description = self._clean_text(meta_desc.get('content', ''))

    def _extract_language(self, soup: BeautifulSoup, parsed_content: ParsedContent):
        html_tag = soup.find('html')
        if html_tag:
            parsed_content.language = (html_tag.get('lang') or html_tag.get('xml:lang') or '').strip()

    def _extract_body_text(self, soup: BeautifulSoup, parsed_content: ParsedContent):
        body = soup.find('body')
        if body:
            parsed_content.content = self._clean_text(body.get_text(separator=' '))

    def _extract_links(self, soup: BeautifulSoup, parsed_content: ParsedContent, base_url: str):
        """Resolve every href to a normalized absolute http(s) URL, keeping first-seen order."""
        seen = set()
        for link in soup.find_all('a', href=True):
            resolved = resolve_link(base_url, link['href'])
            if resolved and resolved not in seen:
                seen.add(resolved)
                parsed_content.links.append(resolved)

    def _clean_text(self, text: str) -> str:
        if not text:
            return ""
        return self.whitespace_pattern.sub(' ', text).strip()
