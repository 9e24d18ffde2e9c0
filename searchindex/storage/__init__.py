"""
Storage layer: table files, the per-keyword index and the corpus log.
"""

from .tables import MalformedStoredRecord
from .index_store import IndexStore, Posting
from .corpus import CorpusWriter

__all__ = ['MalformedStoredRecord', 'IndexStore', 'Posting', 'CorpusWriter']
