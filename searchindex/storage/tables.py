"""
Versioned tab-separated table files.

Layout::

    #searchindex-table v1
    field_a<TAB>field_b
    value<TAB>value

Values never contain tabs or newlines: every value is passed through
``strip_control_characters`` before it is written, so no escaping is needed.
Writes go to a temporary file that replaces the table atomically. Plain URL
lists (pending queue, seeds, feeds) use the same atomic line writer.
"""

import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Sequence

TABLE_MAGIC = "#searchindex-table"
TABLE_VERSION = 1
FIELD_SEPARATOR = "\t"

CONTROL_CHARACTERS = re.compile(r"[\x00-\x1f\x7f]")


class MalformedStoredRecord(Exception):
    """Raised when a persisted table cannot be decoded."""

    def __init__(self, path, message: str):
        self.path = Path(path)
        super().__init__(f"{self.path}: {message}")


def strip_control_characters(value: str) -> str:
    return CONTROL_CHARACTERS.sub("", value or "")


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def write_lines(path, lines: Iterable[str]):
    """Atomically replace the file at ``path`` with ``lines``, one per line."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(path.name + ".tmp")

    with open(temp_path, "w", encoding="utf-8", newline="\n") as handle:
        for line in lines:
            handle.write(line + "\n")
        handle.flush()
        os.fsync(handle.fileno())

    os.replace(temp_path, path)


def read_lines(path) -> List[str]:
    """Read non-empty lines, ignoring ``#`` comments."""
    with open(path, "r", encoding="utf-8") as handle:
        stripped = (line.strip() for line in handle)
        return [line for line in stripped if line and not line.startswith("#")]


def write_table(path, field_names: Sequence[str], rows: Iterable[Sequence[str]]):
    """Atomically replace the table at ``path``."""
    def encode():
        yield f"{TABLE_MAGIC} v{TABLE_VERSION}"
        yield FIELD_SEPARATOR.join(field_names)
        for row in rows:
            if len(row) != len(field_names):
                raise ValueError(f"Row has {len(row)} values, expected {len(field_names)}")
            yield FIELD_SEPARATOR.join(strip_control_characters(str(value)) for value in row)

    write_lines(path, encode())


def read_table(path, field_names: Sequence[str]) -> List[Dict[str, str]]:
    """
    Read every row of the table at ``path`` as a field-name mapping.

    Raises:
        FileNotFoundError: if the table does not exist
        MalformedStoredRecord: on a bad version line, header or row
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8", newline="\n") as handle:
        lines = handle.read().split("\n")

    if lines and lines[-1] == "":
        lines.pop()

    if len(lines) < 2:
        raise MalformedStoredRecord(path, "missing version line or header")

    if lines[0] != f"{TABLE_MAGIC} v{TABLE_VERSION}":
        raise MalformedStoredRecord(path, f"unsupported table version line {lines[0]!r}")

    header = lines[1].split(FIELD_SEPARATOR)
    if header != list(field_names):
        raise MalformedStoredRecord(path, f"unexpected header {header!r}")

    records = []
    for line_number, line in enumerate(lines[2:], start=3):
        values = line.split(FIELD_SEPARATOR)
        if len(values) != len(header):
            raise MalformedStoredRecord(
                path, f"line {line_number} has {len(values)} fields, expected {len(header)}"
            )
        records.append(dict(zip(header, values)))

    return records
