"""
Disk-resident inverted index: one posting table per keyword.
"""

import hashlib
import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from .tables import (
    MalformedStoredRecord,
    format_timestamp,
    parse_timestamp,
    read_table,
    strip_control_characters,
    write_table,
)

REFERENCE_SCORE_INITIAL = 0.01
REFERENCE_SCORE_STEP = 0.01
MAX_SCORE = 1.0

# Longer keywords are stored under a hashed file name
MAX_KEYWORD_FILENAME_BYTES = 200

# Path separators and dots never occur in tokenizer output
UNSAFE_KEYWORD_CHARACTERS = re.compile(r"[/\\.\x00]")

POSTING_FIELDS = (
    "url",
    "title",
    "description",
    "language",
    "first_indexed",
    "last_updated",
    "reference_score",
    "keyword_score",
)


@dataclass
class Posting:
    """One (keyword, URL) entry of the index."""
    url: str
    title: str
    description: str
    language: str
    first_indexed: datetime
    last_updated: datetime
    reference_score: float = REFERENCE_SCORE_INITIAL
    keyword_score: float = 0.0

    def __post_init__(self):
        self.url = strip_control_characters(self.url)
        self.title = strip_control_characters(self.title)
        self.description = strip_control_characters(self.description)

    def to_row(self) -> List[str]:
        return [
            self.url,
            self.title,
            self.description,
            self.language,
            format_timestamp(self.first_indexed),
            format_timestamp(self.last_updated),
            repr(self.reference_score),
            repr(self.keyword_score),
        ]

    @classmethod
    def from_record(cls, record: Dict[str, str], path: Path) -> 'Posting':
        try:
            posting = cls(
                url=record["url"],
                title=record["title"],
                description=record["description"],
                language=record["language"],
                first_indexed=parse_timestamp(record["first_indexed"]),
                last_updated=parse_timestamp(record["last_updated"]),
                reference_score=float(record["reference_score"]),
                keyword_score=float(record["keyword_score"]),
            )
        except ValueError as e:
            raise MalformedStoredRecord(path, f"bad posting for {record.get('url')!r}: {e}")

        for name in ("reference_score", "keyword_score"):
            if not 0.0 <= getattr(posting, name) <= MAX_SCORE:
                raise MalformedStoredRecord(path, f"{name} out of range for {posting.url!r}")
        return posting


class IndexStore:
    """
    Keyword -> posting list mapping, loaded lazily from disk and written back
    synchronously on every upsert.
    """

    def __init__(self, index_directory):
        self.index_directory = Path(index_directory)
        self.logger = logging.getLogger(__name__)
        self._postings: Dict[str, List[Posting]] = {}
        self.stats = {
            'keywords_loaded': 0,
            'postings_created': 0,
            'postings_updated': 0,
        }

    def keyword_path(self, keyword: str) -> Path:
        """Table location for a keyword; raises ValueError for names that could leave the index directory."""
        if not keyword or UNSAFE_KEYWORD_CHARACTERS.search(keyword):
            raise ValueError(f"Not an index keyword: {keyword!r}")
        digest = hashlib.sha256(keyword.encode('utf-8')).hexdigest()
        name = keyword
        if len(keyword.encode('utf-8')) > MAX_KEYWORD_FILENAME_BYTES:
            name = digest
        return self.index_directory / digest[:2] / f"{name}.tsv"

    def load(self, keyword: str) -> List[Posting]:
        """
        Return the posting list for ``keyword``, reading it from disk on first
        access. Keywords without a table are not cached.
        """
        postings = self._postings.get(keyword)
        if postings is not None:
            return postings

        path = self.keyword_path(keyword)
        if not path.exists():
            return []

        postings = [Posting.from_record(record, path) for record in read_table(path, POSTING_FIELDS)]
        self.stats['keywords_loaded'] += 1
        self._postings[keyword] = postings
        return postings

    def find(self, keyword: str, url: str) -> Optional[Posting]:
        url = strip_control_characters(url)
        for posting in self.load(keyword):
            if posting.url == url:
                return posting
        return None

    def upsert(self, keyword: str, posting: Posting) -> Posting:
        """
        Insert or merge a posting for ``keyword`` and persist the keyword's list.

        An existing posting for the same URL keeps its ``first_indexed`` and
        gains ``REFERENCE_SCORE_STEP`` of reference score; every other field
        is taken from the new observation.
        """
        postings = self._postings.setdefault(keyword, self.load(keyword))

        for position, existing in enumerate(postings):
            if existing.url != posting.url:
                continue
            merged = replace(
                posting,
                first_indexed=existing.first_indexed,
                reference_score=min(round(existing.reference_score + REFERENCE_SCORE_STEP, 10), MAX_SCORE),
            )
            postings[position] = merged
            self.stats['postings_updated'] += 1
            break
        else:
            merged = replace(posting, reference_score=REFERENCE_SCORE_INITIAL)
            postings.append(merged)
            self.stats['postings_created'] += 1

        self.save(keyword)
        return merged

    def save(self, keyword: str, postings: Optional[List[Posting]] = None):
        """Write the posting list for ``keyword`` to disk, replacing the cached one if given."""
        if postings is not None:
            self._postings[keyword] = list(postings)
        postings = self._postings.get(keyword, [])
        write_table(self.keyword_path(keyword), POSTING_FIELDS, (p.to_row() for p in postings))
        self.logger.debug(f"Saved {len(postings)} postings for keyword {keyword!r}")

    def cached_keywords(self) -> List[str]:
        return list(self._postings)
