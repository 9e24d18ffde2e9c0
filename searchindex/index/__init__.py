"""
Text processing for the index: tokenization, keyword scoring, languages.
"""

from .tokenizer import normalize, tokenize, word_frequencies, keyword_score, qualifies
from .language import normalize_language

__all__ = [
    'normalize', 'tokenize', 'word_frequencies', 'keyword_score', 'qualifies',
    'normalize_language'
]
