"""
Query engine over the inverted index.
"""

from .engine import SearchEngine, SearchResult, SearchWeights, parse_query

__all__ = ['SearchEngine', 'SearchResult', 'SearchWeights', 'parse_query']
