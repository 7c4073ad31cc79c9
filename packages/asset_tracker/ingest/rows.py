"""Typed row access over a tokenized document.

``CsvRow`` is an immutable ``Mapping[str, str]`` from header name to the raw
cell text, with a few named accessors so adapters never index positional
lists or re-implement amount/date parsing.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from ..parsing import parse_amount, parse_flexible_date
from .tokenizer import TokenizedDocument

_DATE_HEADER_RE = re.compile(
    r"^(?:\d{1,2}/\d{1,2}/(?:\d{2}|\d{4})"  # M/D/YY, M/D/YYYY
    r"|\d{1,2}/\d{2}"  # M/YY
    r"|\d{1,2}-\d{1,2}-(?:\d{2}|\d{4}))$"  # M-D-YY, M-D-YYYY
)


def is_date_header(header: str) -> bool:
    """Return True when a column header names a month (schedule column)."""

    return bool(_DATE_HEADER_RE.match((header or "").strip()))


def date_columns(header: Iterable[str], *, exclude: Iterable[str] = ()) -> list[str]:
    """Date-pattern headers in column order, minus ``exclude``."""

    skip = {e.strip().lower() for e in exclude}
    return [h for h in header if is_date_header(h) and h.strip().lower() not in skip]


class CsvRow(Mapping[str, str]):
    """One data row keyed by header name.

    Missing trailing cells read as ``""``. When a header repeats, the first
    occurrence wins. Lookups fall back to a case-insensitive match so that
    ``"memo/description"`` finds ``"Memo/Description"``.
    """

    __slots__ = ("_values", "_folded", "line")

    def __init__(self, header: list[str], cells: list[str], *, line: int = 0) -> None:
        values: dict[str, str] = {}
        for i, name in enumerate(header):
            if name in values:
                continue
            values[name] = cells[i] if i < len(cells) else ""
        self._values = values
        self._folded = {k.casefold(): k for k in reversed(list(values))}
        # 1-based data row number (header excluded) for diagnostics.
        self.line = line

    # Mapping protocol -----------------------------------------------------

    def __getitem__(self, key: str) -> str:
        if key in self._values:
            return self._values[key]
        real = self._folded.get(key.casefold())
        if real is None:
            raise KeyError(key)
        return self._values[real]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"CsvRow(line={self.line}, values={self._values!r})"

    # Named accessors ------------------------------------------------------

    def text(self, col: str) -> str:
        return self.get(col, "").strip()

    def first_text(self, *cols: str) -> str:
        """Return the first non-empty value among ``cols`` (or ``""``)."""

        for col in cols:
            value = self.text(col)
            if value:
                return value
        return ""

    def has(self, col: str) -> bool:
        return col in self

    def amount(self, col: str, *, diagnostics: list[str] | None = None) -> Decimal:
        return parse_amount(self.get(col), diagnostics=diagnostics)

    def date(
        self,
        col: str,
        *,
        today: date | None = None,
        diagnostics: list[str] | None = None,
    ) -> date:
        return parse_flexible_date(self.get(col), today=today, diagnostics=diagnostics)


@dataclass(slots=True)
class MappedRows:
    header: list[str] = field(default_factory=list)
    rows: list[CsvRow] = field(default_factory=list)
    # Rows dropped because the identity column was empty.
    skipped: int = 0


def map_rows(document: TokenizedDocument, *, identity_column: str) -> MappedRows:
    """Build ``CsvRow`` objects, skipping rows with an empty identity column."""

    out = MappedRows(header=list(document.header))
    for n, cells in enumerate(document.rows, start=1):
        row = CsvRow(document.header, cells, line=n)
        if not row.text(identity_column):
            out.skipped += 1
            continue
        out.rows.append(row)
    return out


__all__ = ["CsvRow", "MappedRows", "map_rows", "is_date_header", "date_columns"]
