"""Lenient amount/date parsing and month-key helpers.

Spreadsheet exports are messy: amounts arrive as ``"$1,517.21"``,
``"(40,500.00)"`` or ``"-"``, dates as ``2/1/23``, ``02/01/2023`` or ISO
strings. The parsers here never raise. A value that cannot be understood
degrades to a safe default (``0`` for amounts, *today* for dates) and, when the
caller passes a ``diagnostics`` list, a human-readable note is appended so the
degradation can be surfaced as an import warning.

Month keys
----------
Two spellings are used across the package:

- canonical key ``YYYY-MM-01`` (asset depreciation schedules, reconciliation)
- short key ``M/YY`` (accrual and prepaid monthly grids, as the spreadsheets
  label them)

``normalize_month_key`` converts any supported spelling to the canonical key so
records of different kinds can be aggregated over the same months.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# M/D/YY, M/D/YYYY and the dash variants used by some exports
_MDY_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2}|\d{4})$")
# M/YY (month grid headers)
_MY_RE = re.compile(r"^(\d{1,2})/(\d{2})$")
# YYYY-MM or YYYY-MM-DD (optionally followed by a time component)
_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})(?:-(\d{1,2}))?(?:[T ].*)?$")

_AMOUNT_STRIP_RE = re.compile(r"[$,\s\"()]")
# Amounts must stay quantizable to cents within the default 28-digit context.
_MAX_AMOUNT_ADJUSTED = 14


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------


def to_cents(value: Decimal | int | float | str) -> Decimal:
    """Quantize ``value`` to two decimal places (half-up)."""

    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(text: str | None, *, diagnostics: list[str] | None = None) -> Decimal:
    """Parse a currency-like string into a ``Decimal``.

    - Currency symbols, thousands separators, quotes and whitespace are ignored.
    - Parentheses mark a negative value: ``"(1,234.50)"`` -> ``-1234.50``.
    - Empty input and a lone dash (spreadsheet "zero") yield ``0``.
    - Anything still non-numeric after cleaning yields ``0``.
    - Magnitudes of 10**15 and above (``"1e30"``) are out of range and yield ``0``.
    """

    if text is None:
        return ZERO
    raw = str(text).strip()
    if raw in {"", "-", '""'}:
        return ZERO

    negative = "(" in raw and ")" in raw
    cleaned = _AMOUNT_STRIP_RE.sub("", raw)
    if cleaned in {"", "-", "+"}:
        return ZERO

    try:
        d = Decimal(cleaned)
    except InvalidOperation:
        if diagnostics is not None:
            diagnostics.append(f"unparseable amount {raw!r}; treated as 0")
        return ZERO
    if not d.is_finite():
        if diagnostics is not None:
            diagnostics.append(f"non-finite amount {raw!r}; treated as 0")
        return ZERO
    if d and d.adjusted() > _MAX_AMOUNT_ADJUSTED:
        if diagnostics is not None:
            diagnostics.append(f"amount {raw!r} out of range; treated as 0")
        return ZERO
    return -abs(d) if negative else d


def format_amount(value: Decimal | int | float) -> str:
    """Render ``value`` with exactly two decimals and an ASCII dot."""

    q = to_cents(value)
    if q == 0:
        # Avoid "-0.00" in exports.
        q = ZERO
    return f"{q:.2f}"


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def expand_year(year: int) -> int:
    """Expand a two-digit year: ``< 50`` -> 20xx, ``>= 50`` -> 19xx."""

    if year >= 100:
        return year
    return 2000 + year if year < 50 else 1900 + year


def _strict_date(text: str) -> date | None:
    """Parse the fixed formats we understand without guessing."""

    m = _MDY_RE.match(text)
    if m:
        month, day, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
        try:
            return date(expand_year(year), month, day)
        except ValueError:
            return None
    m = _ISO_RE.match(text)
    if m:
        try:
            return date(int(m.group(1)), int(m.group(2)), int(m.group(3) or 1))
        except ValueError:
            return None
    return None


def parse_flexible_date(
    text: str | None,
    *,
    today: date | None = None,
    diagnostics: list[str] | None = None,
) -> date:
    """Parse a date in ``M/D/YY``, ``M/D/YYYY``, ISO or another common format.

    Empty or unparseable input falls back to ``today`` (``date.today()`` when
    not given) and records a diagnostic.
    """

    fallback = today or date.today()
    s = (text or "").strip().strip('"')
    if not s:
        if diagnostics is not None:
            diagnostics.append(f"missing date; defaulted to {fallback.isoformat()}")
        return fallback

    parsed = _strict_date(s)
    if parsed is not None:
        return parsed

    try:
        return date_parser.parse(s, default=datetime(fallback.year, 1, 1)).date()
    except (ValueError, OverflowError):
        if diagnostics is not None:
            diagnostics.append(f"unparseable date {s!r}; defaulted to {fallback.isoformat()}")
        return fallback


# ---------------------------------------------------------------------------
# Month keys
# ---------------------------------------------------------------------------


def month_key(d: date) -> str:
    """Canonical first-of-month key, e.g. ``2025-02-01``."""

    return f"{d.year:04d}-{d.month:02d}-01"


def short_month_key(d: date) -> str:
    """Spreadsheet-style ``M/YY`` key, e.g. ``2/25``."""

    return f"{d.month}/{d.year % 100:02d}"


def normalize_month_key(value: str | date | None) -> str | None:
    """Return the canonical month key for any supported spelling.

    Accepts ``date`` objects, ``YYYY-MM[-DD]``, ``M/D/YY``, ``M/D/YYYY``,
    ``M-D-YY`` and ``M/YY``. Returns ``None`` when ``value`` is not a
    recognizable month.
    """

    if value is None:
        return None
    if isinstance(value, date):
        return month_key(value)
    s = str(value).strip()
    if not s:
        return None
    m = _MY_RE.match(s)
    if m:
        month, year = int(m.group(1)), int(m.group(2))
        if 1 <= month <= 12:
            return f"{expand_year(year):04d}-{month:02d}-01"
        return None
    d = _strict_date(s)
    return month_key(d) if d is not None else None


def to_short_key(value: str | date) -> str | None:
    """Convert any supported month spelling to the ``M/YY`` key."""

    canonical = normalize_month_key(value)
    if canonical is None:
        return None
    return short_month_key(month_key_to_date(canonical))


def month_key_to_date(key: str) -> date:
    """Return the first day of the month named by ``key``.

    Raises ``ValueError`` when ``key`` is not a recognizable month; callers
    that handle user input should go through ``normalize_month_key`` first.
    """

    canonical = normalize_month_key(key)
    if canonical is None:
        raise ValueError(f"not a month key: {key!r}")
    return date.fromisoformat(canonical)


def month_sort_key(key: str) -> tuple[int, int]:
    """Sort key ordering month keys chronologically (year, then month)."""

    canonical = normalize_month_key(key)
    if canonical is None:
        return (9999, 99)
    return int(canonical[:4]), int(canonical[5:7])


def add_months(d: date, months: int) -> date:
    return d + relativedelta(months=months)


def months_between(start: date, end: date) -> int:
    """Whole calendar months from ``start``'s month to ``end``'s month."""

    return (end.year - start.year) * 12 + (end.month - start.month)


def iter_months(start: date, count: int) -> Iterator[date]:
    """Yield ``count`` first-of-month dates beginning at ``start``'s month."""

    first = start.replace(day=1)
    for i in range(count):
        yield add_months(first, i)


def month_range(start: str | date, end: str | date) -> list[str]:
    """Inclusive list of canonical month keys from ``start`` to ``end``."""

    s = month_key_to_date(start) if isinstance(start, str) else start.replace(day=1)
    e = month_key_to_date(end) if isinstance(end, str) else end.replace(day=1)
    n = months_between(s, e)
    if n < 0:
        return []
    return [month_key(d) for d in iter_months(s, n + 1)]


def month_label(key: str, *, long: bool = False) -> str:
    """Display label such as ``Feb 2025`` (or ``February 2025`` when ``long``)."""

    return month_key_to_date(key).strftime("%B %Y" if long else "%b %Y")


__all__ = [
    "CENT",
    "ZERO",
    "to_cents",
    "parse_amount",
    "format_amount",
    "expand_year",
    "parse_flexible_date",
    "month_key",
    "short_month_key",
    "normalize_month_key",
    "to_short_key",
    "month_key_to_date",
    "month_sort_key",
    "add_months",
    "months_between",
    "iter_months",
    "month_range",
    "month_label",
]
