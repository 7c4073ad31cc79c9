"""Quote-aware CSV tokenizer for spreadsheet exports.

Exports pasted from spreadsheets are line-oriented: one record per line, with
commas inside double-quoted fields (``"$1,517.21"``). Some of them carry a few
lines of report metadata above the real header, so the header can be located
by keyword instead of assuming it is the first line.

Contract
--------
- Fields are split on commas outside double quotes.
- ``""`` inside a quoted field is a literal quote.
- An unterminated quote closes at the end of the line.
- Fields are trimmed of surrounding whitespace.
- Blank lines are discarded; ``\\r\\n`` endings are tolerated.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class TokenizedDocument:
    header: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)
    # Position of the header among the non-blank lines (-1 when empty).
    header_index: int = -1

    @property
    def is_empty(self) -> bool:
        return not self.header


def tokenize_line(line: str) -> list[str]:
    """Split one CSV line into trimmed fields."""

    fields: list[str] = []
    buf: list[str] = []
    in_quotes = False
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                buf.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append("".join(buf).strip())
            buf = []
        else:
            buf.append(ch)
        i += 1
    fields.append("".join(buf).strip())
    return fields


def _non_blank_lines(text: str) -> list[str]:
    lines = (ln.rstrip("\r") for ln in text.split("\n"))
    return [ln for ln in lines if ln.strip()]


def tokenize_document(text: str, *, header_keywords: Iterable[str] = ()) -> TokenizedDocument:
    """Tokenize ``text`` into a header and data rows.

    When ``header_keywords`` is given, the header is the first line that
    contains any of the keywords (case-insensitive); lines above it are
    treated as metadata and dropped. Without keywords, or when no line
    matches, the first non-blank line is the header.
    """

    lines = _non_blank_lines(text or "")
    if not lines:
        return TokenizedDocument()

    keywords = [k.lower() for k in header_keywords if k]
    header_index = 0
    if keywords:
        for idx, line in enumerate(lines):
            lowered = line.lower()
            if any(k in lowered for k in keywords):
                header_index = idx
                break

    header = tokenize_line(lines[header_index])
    rows = [tokenize_line(line) for line in lines[header_index + 1 :]]
    return TokenizedDocument(header=header, rows=rows, header_index=header_index)


__all__ = ["TokenizedDocument", "tokenize_line", "tokenize_document"]
