"""
Tokenization and keyword scoring.

Keyword identity across the index is defined by ``normalize``: lowercase with
apostrophes removed. A page's keyword score combines how often the word occurs
in the body with a flat bonus when it also appears in the title.
"""

import re
from collections import Counter
from typing import List

# Unicode-aware \w, unlike an ASCII-only word class: accented and non-Latin
# words are kept, matching the multilingual language allow-list.
WORD_PATTERN = re.compile(r"[\w']+")
NUMERAL_NOISE_PATTERN = re.compile(r"\d{1,3}")

TITLE_BONUS = 5
KEYWORD_SCORE_SATURATION = 25
DEFAULT_MIN_WORD_COUNT_AS_KEYWORD = 3


def normalize(token: str) -> str:
    """Return the index key for a raw token."""
    return token.lower().replace("'", "")


def tokenize(text: str) -> List[str]:
    """
    Return the normalized words of ``text`` in order, duplicates included.

    >>> tokenize("It's the cat's cat")
    ['its', 'the', 'cats', 'cat']
    """
    words = []
    for match in WORD_PATTERN.finditer(text or ""):
        word = normalize(match.group(0))
        if word:
            words.append(word)
    return words


def is_single_token(term: str) -> bool:
    """True if ``tokenize(term)`` is exactly ``[normalize(term)]``."""
    return WORD_PATTERN.fullmatch(term or "") is not None and bool(normalize(term))


def word_frequencies(text: str) -> Counter:
    """Count occurrences of each normalized word in ``text``."""
    return Counter(tokenize(text))


def keyword_score(count: int, in_title: bool) -> float:
    """Score a word for a page; saturates at 1."""
    weight = count + (TITLE_BONUS if in_title else 0)
    return min(weight / KEYWORD_SCORE_SATURATION, 1.0)


def is_numeral_noise(keyword: str) -> bool:
    # Matches any keyword containing a digit, not only pure numerals.
    return NUMERAL_NOISE_PATTERN.search(keyword) is not None


def min_keyword_score(min_word_count: int = DEFAULT_MIN_WORD_COUNT_AS_KEYWORD) -> float:
    return min_word_count / KEYWORD_SCORE_SATURATION


def qualifies(keyword: str, score: float,
              min_word_count: int = DEFAULT_MIN_WORD_COUNT_AS_KEYWORD) -> bool:
    """Check whether a scored keyword should be indexed for a page."""
    if is_numeral_noise(keyword):
        return False
    return score >= min_keyword_score(min_word_count)
