"""
Delimited-row parsing for the incident/return export.

The export is comma separated with double-quoted fields. Quoting only
protects embedded commas: a quote character anywhere on the line toggles
quoted mode, and inside a quoted field a doubled quote (``""``) stands for
one literal quote. Records never span lines.
"""

from typing import Iterator

QUOTE = '"'
DELIMITER = ","

# Positional schema: PO number through the improvement-plan start date.
MIN_COLUMNS = 25


def split_fields(line: str) -> list[str]:
    """
    Split one line into its raw field strings.

    Example:
        >>> split_fields('x,"a,b",y')
        ['x', 'a,b', 'y']
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        char = line[i]
        if char == QUOTE:
            if in_quotes and i + 1 < length and line[i + 1] == QUOTE:
                current.append(QUOTE)
                i += 2
                continue
            in_quotes = not in_quotes
        elif char == DELIMITER and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1

    fields.append("".join(current))
    return fields


def iter_data_lines(text: str) -> Iterator[str]:
    """
    Yield the non-empty data lines of an export.

    The first non-empty line is the header row and is always skipped; column
    positions are fixed, so the header is never read for field names.
    """
    header_seen = False
    for raw in text.split("\n"):
        line = raw[:-1] if raw.endswith("\r") else raw
        if not line.strip():
            continue
        if not header_seen:
            header_seen = True
            continue
        yield line


def is_complete(fields: list[str], min_columns: int = MIN_COLUMNS) -> bool:
    """Whether a split line carries enough columns to be mapped."""
    return len(fields) >= min_columns
