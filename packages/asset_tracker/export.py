"""CSV exports: reconciliation sheet, journal entry, accrual and prepaid grids.

Formatting rules shared by every export:

- Sheet and grid data rows quote every cell, money included, with internal
  quotes doubled.
- Journal lines quote text cells only; Debit and Credit stay bare.
- Money always has exactly two decimals.
- Report title, ``Generated:`` and header lines are written verbatim.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from decimal import Decimal

from .models import Accrual, Asset, JournalLine, Prepaid
from .parsing import ZERO, format_amount, month_label, normalize_month_key, to_short_key
from .reconcile import reconcile

JOURNAL_HEADER = ["Account", "Debit", "Credit", "Line Memo", "Entity", "Department", "Class", "Location"]


def _money(value: Decimal) -> str:
    return format_amount(value)


def _writer(buf: io.StringIO):
    return csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")


def _journal_writer(buf: io.StringIO):
    # Decimal cells are numeric under QUOTE_NONNUMERIC, so they stay unquoted.
    return csv.writer(buf, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")


def _write_header(buf: io.StringIO, cells: Iterable[str]) -> None:
    # Header cells never contain commas; written bare like the source sheets.
    buf.write(",".join(cells) + "\n")


def _us_date(d: date) -> str:
    return f"{d.month}/{d.day}/{d.year}"


def _canonical_keys(keys: Iterable[str | date]) -> list[str]:
    out: list[str] = []
    for k in keys:
        canonical = normalize_month_key(k)
        if canonical is not None:
            out.append(canonical)
    return out


def _write_journal(buf: io.StringIO, lines: Sequence[JournalLine]) -> None:
    _write_header(buf, JOURNAL_HEADER)
    w = _journal_writer(buf)
    for ln in lines:
        w.writerow(
            [
                ln.account,
                Decimal(_money(ln.debit)),
                Decimal(_money(ln.credit)),
                ln.memo,
                ln.entity,
                ln.department,
                ln.line_class,
                ln.location,
            ]
        )


def reconciliation_csv(
    assets: Sequence[Asset],
    keys: Iterable[str | date],
    gl_balances: Mapping[str, Decimal] | None,
    journal: Sequence[JournalLine] = (),
    *,
    generated: date | None = None,
) -> str:
    """Render the depreciation reconciliation sheet followed by its journal entry."""

    month_keys = _canonical_keys(keys)
    rec = reconcile(assets, month_keys, gl_balances)
    buf = io.StringIO()
    buf.write("DEPRECIATION RECONCILIATION\n")
    buf.write(f"Generated: {_us_date(generated or date.today())}\n\n")

    _write_header(buf, ["Asset", "Account", "Department", "Date in Place", *(month_label(k) for k in month_keys), "Total"])
    w = _writer(buf)
    for asset in assets:
        amounts = [asset.schedule_for(k) for k in month_keys]
        w.writerow(
            [
                asset.name,
                asset.account,
                asset.department,
                _us_date(asset.date_in_place),
                *(_money(a) for a in amounts),
                _money(sum(amounts, ZERO)),
            ]
        )
    w.writerow(["Monthly Total", "", "", "", *(_money(m.total) for m in rec.months), _money(rec.grand_total)])
    w.writerow(["GL Balance", "", "", "", *(_money(m.gl_balance) for m in rec.months), _money(rec.gl_total)])
    w.writerow(["Variance", "", "", "", *(_money(m.variance) for m in rec.months), _money(rec.total_variance)])

    buf.write("\n\nJOURNAL ENTRIES\n")
    _write_journal(buf, journal)
    return buf.getvalue()


def journal_entry_csv(
    lines: Sequence[JournalLine],
    key: str | date,
    *,
    generated: date | None = None,
) -> str:
    """Render a single month's journal entry."""

    canonical = normalize_month_key(key)
    title = month_label(canonical, long=True) if canonical else str(key)
    buf = io.StringIO()
    buf.write(f"JOURNAL ENTRY - {title}\n")
    buf.write(f"Generated: {_us_date(generated or date.today())}\n\n")
    _write_journal(buf, lines)
    return buf.getvalue()


def accruals_csv(accruals: Sequence[Accrual], keys: Iterable[str | date]) -> str:
    """Render accruals as ``Vendor, Description, DR, CR, <M/YY> Reversal, <M/YY> Accrual..., Balance``."""

    short_keys = [to_short_key(k) for k in _canonical_keys(keys)]
    buf = io.StringIO()
    header = ["Vendor", "Description", "Accrual JE Account (DR)", "Accrual JE Account (CR)"]
    for k in short_keys:
        header.extend([f"{k} Reversal", f"{k} Accrual"])
    header.append("Balance")
    _write_header(buf, header)
    w = _writer(buf)
    for accrual in accruals:
        row: list[object] = [accrual.vendor, accrual.description, accrual.account_dr, accrual.account_cr]
        for k in short_keys:
            entry = accrual.entry_for(k)
            row.extend(
                [
                    _money(entry.reversal if entry else ZERO),
                    _money(entry.accrual if entry else ZERO),
                ]
            )
        row.append(_money(accrual.balance))
        w.writerow(row)
    return buf.getvalue()


def prepaids_csv(prepaids: Sequence[Prepaid], keys: Iterable[str | date]) -> str:
    """Render prepaids with per-month amortization and the current balance."""

    short_keys = [to_short_key(k) for k in _canonical_keys(keys)]
    buf = io.StringIO()
    _write_header(
        buf,
        [
            "Vendor",
            "Description",
            "Expense Account",
            "Prepaid Account",
            "Initial Amount",
            *short_keys,
            "Current Balance",
        ],
    )
    w = _writer(buf)
    for p in prepaids:
        w.writerow(
            [
                p.vendor,
                p.description,
                p.expense_account,
                p.gl_account,
                _money(p.initial_amount),
                *(_money(p.schedule_for(k)) for k in short_keys),
                _money(p.current_balance),
            ]
        )
    return buf.getvalue()


__all__ = [
    "JOURNAL_HEADER",
    "reconciliation_csv",
    "journal_entry_csv",
    "accruals_csv",
    "prepaids_csv",
]
