"""Adapter for accrued-expense schedule CSV exports.

The accrual sheet usually opens with a few lines of report metadata, so the
header is located as the first line mentioning ``Vendor`` or ``Description``.
Columns are matched case-insensitively by substring:

- ``vendor`` → vendor (identity column)
- ``description`` → description
- ``account (dr)`` → debit account code
- ``account (cr)`` → credit account code
- ``balance`` → provided balance

Date-pattern columns are consumed left to right in pairs: the first column of
a pair is the month's reversal, the second its new accrual. A trailing
unpaired column is an accrual. A pair contributes an entry (keyed ``M/YY`` by
its first column) only when either cell is non-zero.

``balance`` is the provided balance when non-zero, otherwise the sum of the
entries. Mismatches are reported by the validator, not here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from ...logging_setup import get_logger
from ...models import Accrual, AccrualEntry, new_id
from ...parsing import to_short_key
from ...schedule import accrual_balance
from ..rows import CsvRow, date_columns, map_rows
from ..tokenizer import TokenizedDocument, tokenize_document

logger = get_logger("asset_tracker.ingest.accrual_csv")

HEADER_KEYWORDS = ("vendor", "description")

# (field, header substring) in match priority order.
_COLUMN_MATCHERS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("vendor", ("vendor",)),
    ("description", ("description",)),
    ("account_dr", ("accrual je account (dr)", "account (dr)")),
    ("account_cr", ("accrual je account (cr)", "account (cr)")),
    ("balance", ("balance",)),
)

REQUIRED_FIELDS: dict[str, str] = {
    "vendor": "Vendor",
    "description": "Description",
    "account_dr": "Accrual JE Account (DR)",
    "account_cr": "Accrual JE Account (CR)",
}


@dataclass(slots=True)
class AccrualParseResult:
    accruals: list[Accrual] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    skipped: int = 0
    total_rows: int = 0


def resolve_columns(header: list[str]) -> dict[str, str]:
    """Map logical field names to the concrete header names present."""

    resolved: dict[str, str] = {}
    for name in header:
        lowered = name.strip().lower()
        for fld, needles in _COLUMN_MATCHERS:
            if any(n in lowered for n in needles):
                resolved.setdefault(fld, name)
                break
    return resolved


def build_monthly_entries(row: CsvRow, columns: list[str], *, diagnostics: list[str]) -> dict[str, AccrualEntry]:
    entries: dict[str, AccrualEntry] = {}

    def _add(col: str, reversal: Decimal, accrual: Decimal) -> None:
        key = to_short_key(col)
        if key is None:
            return
        prior = entries.get(key)
        if prior is not None:
            reversal += prior.reversal
            accrual += prior.accrual
        entries[key] = AccrualEntry(reversal=reversal, accrual=accrual)

    i = 0
    while i < len(columns):
        current = row.amount(columns[i], diagnostics=diagnostics)
        if i + 1 < len(columns):
            nxt = row.amount(columns[i + 1], diagnostics=diagnostics)
            if current != 0 or nxt != 0:
                _add(columns[i], current, nxt)
            i += 2
        else:
            if current != 0:
                _add(columns[i], Decimal("0"), current)
            i += 1
    return entries


def _missing_columns(resolved: dict[str, str]) -> list[str]:
    return [label for fld, label in REQUIRED_FIELDS.items() if fld not in resolved]


def parse_accrual_document(document: TokenizedDocument) -> AccrualParseResult:
    result = AccrualParseResult(total_rows=len(document.rows))
    if document.is_empty:
        result.errors.append("No header row found in CSV")
        return result

    resolved = resolve_columns(document.header)
    missing = _missing_columns(resolved)
    if missing:
        result.errors.append("Missing required columns: " + ", ".join(missing))
        return result

    mapped = map_rows(document, identity_column=resolved["vendor"])
    result.skipped = mapped.skipped
    columns = date_columns(document.header)

    for row in mapped.rows:
        label = f"Row {row.line + 1}"
        diagnostics: list[str] = []
        entries = build_monthly_entries(row, columns, diagnostics=diagnostics)
        calculated = accrual_balance(entries)
        provided = Decimal("0")
        if "balance" in resolved:
            provided = row.amount(resolved["balance"], diagnostics=diagnostics)
        result.warnings.extend(f"{label}: {d}" for d in diagnostics)

        result.accruals.append(
            Accrual(
                id=new_id("accrual"),
                vendor=row.text(resolved["vendor"]),
                description=row.text(resolved["description"]),
                account_dr=row.text(resolved["account_dr"]),
                account_cr=row.text(resolved["account_cr"]),
                balance=provided or calculated,
                monthly_entries=entries,
            )
        )

    logger.info(
        "accrual_csv: mapped %d accruals from %d rows (%d skipped)",
        len(result.accruals),
        result.total_rows,
        result.skipped,
    )
    return result


def parse_accrual_csv(text: str) -> AccrualParseResult:
    """Parse an accrual schedule export into ``Accrual`` records."""

    return parse_accrual_document(tokenize_document(text, header_keywords=HEADER_KEYWORDS))


__all__ = [
    "AccrualParseResult",
    "HEADER_KEYWORDS",
    "REQUIRED_FIELDS",
    "resolve_columns",
    "build_monthly_entries",
    "parse_accrual_document",
    "parse_accrual_csv",
]
