"""
Ranked multi-keyword search over the index store.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional

from ..index.tokenizer import is_single_token, normalize
from ..storage.index_store import IndexStore, Posting
from ..storage.tables import MalformedStoredRecord

INTERSECTION_SCORE_STEP = 0.1
MAX_SCORE = 1.0


@dataclass
class SearchWeights:
    keyword: float = 0.5
    reference: float = 0.5
    intersection: float = 0.5


@dataclass
class SearchResult:
    """One ranked URL."""
    url: str
    title: str
    description: str
    language: str
    reference_score: float
    keyword_score: float
    intersection_score: float = INTERSECTION_SCORE_STEP
    weighted_score: float = 0.0

    @classmethod
    def from_posting(cls, posting: Posting) -> 'SearchResult':
        return cls(
            url=posting.url,
            title=posting.title,
            description=posting.description,
            language=posting.language,
            reference_score=posting.reference_score,
            keyword_score=posting.keyword_score,
        )

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def parse_query(query: str) -> List[str]:
    """
    Split a query on whitespace into distinct normalized keywords. Terms the
    tokenizer would not index as a single word (punctuation, paths) are dropped.
    """
    keywords = (normalize(term) for term in (query or "").split() if is_single_token(term))
    return list(dict.fromkeys(keywords))


class SearchEngine:
    """
    Answers queries from an ``IndexStore``; loaded posting lists stay cached
    in the store between queries.
    """

    def __init__(self, index: IndexStore):
        self.index = index
        self.logger = logging.getLogger(__name__)

    def search(self, query: str, weights: Optional[SearchWeights] = None) -> List[SearchResult]:
        """
        Rank the URLs matching any keyword of ``query``.

        Each additional matching keyword multiplies a URL's keyword score by
        that keyword's score and raises its intersection score by 0.1, so a
        URL's relevance compounds with the number of query terms it matches.
        """
        weights = weights or SearchWeights()
        results: Dict[str, SearchResult] = {}

        for keyword in parse_query(query):
            for posting in self._postings(keyword):
                result = results.get(posting.url)
                if result is None:
                    results[posting.url] = SearchResult.from_posting(posting)
                    continue
                result.keyword_score *= posting.keyword_score
                result.intersection_score = min(
                    round(result.intersection_score + INTERSECTION_SCORE_STEP, 10), MAX_SCORE
                )

        ranked = list(results.values())
        for result in ranked:
            result.weighted_score = (
                result.keyword_score * weights.keyword
                + result.reference_score * weights.reference
                + result.intersection_score * weights.intersection
            )

        ranked.sort(key=lambda result: result.weighted_score, reverse=True)
        self.logger.debug(f"Query {query!r} matched {len(ranked)} URLs")
        return ranked

    def _postings(self, keyword: str) -> List[Posting]:
        try:
            return self.index.load(keyword)
        except MalformedStoredRecord as e:
            self.logger.error(f"Ignoring corrupt postings for {keyword!r}: {e}")
            return []
