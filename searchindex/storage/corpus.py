"""
Append-only log of crawled page text.
"""

import re
from pathlib import Path

RECORD_DELIMITER = "\x1e"
WHITESPACE_PATTERN = re.compile(r"\s+")


class CorpusWriter:
    """Appends whitespace-collapsed page bodies, each followed by a record separator byte."""

    def __init__(self, corpus_path):
        self.corpus_path = Path(corpus_path)
        self.records_written = 0

    def append(self, text: str):
        collapsed = WHITESPACE_PATTERN.sub(" ", text.replace(RECORD_DELIMITER, " ")).strip()
        self.corpus_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.corpus_path, "a", encoding="utf-8") as handle:
            handle.write(collapsed + RECORD_DELIMITER)
        self.records_written += 1


def read_corpus(corpus_path) -> list:
    """Return every record of a corpus log."""
    path = Path(corpus_path)
    if not path.exists():
        return []
    records = path.read_text(encoding="utf-8").split(RECORD_DELIMITER)
    return records[:-1]
