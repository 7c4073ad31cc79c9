# ruff: noqa: I001
"""CLI for the ``asset_tracker`` package.

This module exposes callable command handlers (``cmd_import_assets``,
``cmd_reconcile``, ...) that return a process exit code, and a Typer-based
console interface wrapping them. Environment variables (``DATABASE_URL``,
``ASSET_TRACKER_STORE`` and friends) are loaded from a local ``.env`` using
``python-dotenv`` before delegating to command logic. Business logic lives in
``asset_tracker.api`` and related modules.

Errors are written to stderr as ``Error: ...`` and the handler returns 1.
"""

from __future__ import annotations

import os
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .errors import AssetTrackerError, StoreUnavailableError
from .logging_setup import configure_logging

console = Console()


# ---- Small module-level helpers used by CLI commands -------------------------


def _error(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def _parse_date(text: str, *, option: str) -> date:
    """Parse a date option, refusing the lenient fallback to today."""

    from .parsing import parse_flexible_date

    diagnostics: list[str] = []
    parsed = parse_flexible_date(text, diagnostics=diagnostics)
    if diagnostics:
        raise ValueError(f"{option}: could not parse date {text!r}")
    return parsed


def _parse_money(text: str, *, option: str) -> Decimal:
    from .parsing import parse_amount

    diagnostics: list[str] = []
    amount = parse_amount(text, diagnostics=diagnostics)
    if diagnostics:
        raise ValueError(f"{option}: could not parse amount {text!r}")
    return amount


def _parse_month(text: str, *, option: str) -> str:
    from .parsing import normalize_month_key

    key = normalize_month_key(text)
    if key is None:
        raise ValueError(f"{option}: could not parse month {text!r}")
    return key


def _open_store():
    """Open the configured store.

    The in-memory store is used only when ``ASSET_TRACKER_STORE=memory`` is
    set explicitly; otherwise ``DATABASE_URL`` is required.
    """

    from .config import load_settings
    from .store import open_store

    settings = load_settings()
    if settings.store == "memory" and not os.environ.get("ASSET_TRACKER_STORE", "").strip():
        raise StoreUnavailableError(
            "DATABASE_URL is not set (or set ASSET_TRACKER_STORE=memory for a throwaway store)"
        )
    return settings, open_store(settings)


def _read_csv(csv_path: Path) -> str:
    with open(csv_path, encoding="utf-8-sig", newline="") as f:
        return f.read()


def _emit(text: str, output: Path | None) -> None:
    if output is None:
        sys.stdout.write(text)
        return
    output.write_text(text, encoding="utf-8")
    print(f"Wrote {output}", file=sys.stderr)


def _report_import(result) -> int:
    summary = result.summary()
    print(
        "Imported {accepted} of {totalRows} rows "
        "({rejected} rejected, {skipped} skipped, {warnings} warnings)".format(**summary)
    )
    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    for invalid in result.rejected:
        name = getattr(invalid.record, "name", None) or getattr(invalid.record, "vendor", "")
        print(f"Rejected {name}: {'; '.join(invalid.reasons)}", file=sys.stderr)
    if result.errors:
        for err in result.errors:
            print(f"Error: {err}", file=sys.stderr)
        return 1
    return 0


# ---- Command handlers ---------------------------------------------------------


def cmd_import_assets(
    csv_path: str,
    *,
    asset_type: str = "computer-equipment",
    clear_existing: bool = False,
    as_of: str | None = None,
) -> int:
    """Import an asset register CSV into the configured store.

    Parameters
    ----------
    csv_path:
        Path to the asset register export.
    asset_type:
        ``computer-equipment`` or ``furniture``.
    clear_existing:
        Delete stored assets of the same type before writing.
    as_of:
        Reference date for accumulated depreciation (defaults to today).

    Returns
    -------
    int
        ``0`` on success, ``1`` when the file cannot be read or the import
        reports file-level errors.
    """

    from .api import import_assets, save_import
    from .models import AssetType

    try:
        kind = AssetType.parse(asset_type)
        today = _parse_date(as_of, option="--as-of") if as_of else None
        text = _read_csv(Path(csv_path))
    except FileNotFoundError:
        return _error(f"File not found: {csv_path}")
    except PermissionError:
        return _error(f"Permission denied: {csv_path}")
    except ValueError as e:
        return _error(str(e))

    try:
        settings, store = _open_store()
        result = import_assets(text, asset_type=kind, today=today)
        if result.errors:
            return _report_import(result)
        result = save_import(
            store,
            result,
            clear_existing=clear_existing,
            concurrency=settings.write_concurrency,
        )
    except (AssetTrackerError, ValueError) as e:
        return _error(f"import-assets failed: {e}")
    return _report_import(result)


def cmd_import_accruals(csv_path: str, *, clear_existing: bool = False) -> int:
    """Import an accrued-expense schedule CSV into the configured store."""

    from .api import import_accruals, save_import

    try:
        text = _read_csv(Path(csv_path))
    except FileNotFoundError:
        return _error(f"File not found: {csv_path}")
    except PermissionError:
        return _error(f"Permission denied: {csv_path}")

    try:
        settings, store = _open_store()
        result = import_accruals(text)
        if result.errors:
            return _report_import(result)
        result = save_import(
            store,
            result,
            clear_existing=clear_existing,
            concurrency=settings.write_concurrency,
        )
    except (AssetTrackerError, ValueError) as e:
        return _error(f"import-accruals failed: {e}")
    return _report_import(result)


def cmd_add_asset(
    *,
    name: str,
    date_in_place: str,
    cost: str,
    life_months: int,
    account: str,
    department: str,
    asset_type: str = "computer-equipment",
    as_of: str | None = None,
) -> int:
    from .api import add_asset

    try:
        result = add_asset(
            _open_store()[1],
            name=name,
            date_in_place=_parse_date(date_in_place, option="--date-in-place"),
            cost=_parse_money(cost, option="--cost"),
            life_months=life_months,
            account=account,
            department=department,
            asset_type=asset_type,
            today=_parse_date(as_of, option="--as-of") if as_of else None,
        )
    except (AssetTrackerError, ValueError) as e:
        return _error(str(e))

    if result.rejected:
        return _error("; ".join(result.rejected[0].reasons))
    asset = result.accepted[0]
    print(f"{asset.id}\t{asset.name}\t{asset.monthly_dep}")
    return 0


def cmd_update_asset(
    asset_id: str,
    *,
    date_in_place: str | None = None,
    life_months: int | None = None,
    as_of: str | None = None,
) -> int:
    from .api import update_asset

    if date_in_place is None and life_months is None:
        return _error("nothing to update; pass --date-in-place and/or --life-months")
    try:
        asset = update_asset(
            _open_store()[1],
            asset_id,
            date_in_place=_parse_date(date_in_place, option="--date-in-place") if date_in_place else None,
            life_months=life_months,
            today=_parse_date(as_of, option="--as-of") if as_of else None,
        )
    except (AssetTrackerError, ValueError) as e:
        return _error(str(e))
    print(f"{asset.id}\t{asset.life_months}\t{asset.monthly_dep}\t{asset.nbv}")
    return 0


def cmd_add_prepaid(
    *,
    vendor: str,
    description: str,
    amount: str,
    start_date: str,
    term_months: int,
    gl_account: str = "12100",
    expense_account: str = "61200",
) -> int:
    from .api import add_prepaid

    try:
        result = add_prepaid(
            _open_store()[1],
            vendor=vendor,
            description=description,
            initial_amount=_parse_money(amount, option="--amount"),
            start_date=_parse_date(start_date, option="--start-date"),
            term_months=term_months,
            gl_account=gl_account,
            expense_account=expense_account,
        )
    except (AssetTrackerError, ValueError) as e:
        return _error(str(e))

    if result.rejected:
        return _error("; ".join(result.rejected[0].reasons))
    prepaid = result.accepted[0]
    print(f"{prepaid.id}\t{prepaid.vendor}\t{prepaid.monthly_amortization}")
    return 0


def cmd_edit_prepaid(prepaid_id: str, *, month: str, amount: str) -> int:
    from .api import edit_prepaid

    try:
        prepaid = edit_prepaid(
            _open_store()[1],
            prepaid_id,
            _parse_month(month, option="--month"),
            _parse_money(amount, option="--amount"),
        )
    except (AssetTrackerError, ValueError) as e:
        return _error(str(e))
    print(f"{prepaid.id}\t{prepaid.current_balance}")
    return 0


def cmd_set_gl_balance(*, ledger: str, month: str, amount: str) -> int:
    from .api import set_gl_balances

    try:
        key = _parse_month(month, option="--month")
        balances = set_gl_balances(
            _open_store()[1],
            ledger,
            {key: _parse_money(amount, option="--amount")},
        )
    except (AssetTrackerError, ValueError) as e:
        return _error(str(e))
    print(f"{ledger}\t{key}\t{balances[key]}")
    return 0


def cmd_reconcile(*, ledger: str, start: str, end: str) -> int:
    """Render a per-month reconciliation table for ``ledger``."""

    from .api import get_gl_balances, load_ledger
    from .parsing import format_amount, month_label, month_range
    from .reconcile import reconcile

    try:
        keys = month_range(_parse_month(start, option="--start"), _parse_month(end, option="--end"))
        _settings, store = _open_store()
        records = load_ledger(store, ledger)
        rec = reconcile(records, keys, get_gl_balances(store, ledger))
    except (AssetTrackerError, ValueError) as e:
        return _error(str(e))

    table = Table(title=f"{ledger} reconciliation")
    table.add_column("Month")
    table.add_column("Scheduled", justify="right")
    table.add_column("GL Balance", justify="right")
    table.add_column("Variance", justify="right")
    for m in rec.months:
        style = None if m.is_balanced else "red"
        table.add_row(
            month_label(m.key),
            format_amount(m.total),
            format_amount(m.gl_balance),
            format_amount(m.variance),
            style=style,
        )
    table.add_row(
        "Total",
        format_amount(rec.grand_total),
        format_amount(rec.gl_total),
        format_amount(rec.total_variance),
        end_section=True,
    )
    console.print(table)
    return 0 if rec.is_balanced else 2


def cmd_export_reconciliation(
    *,
    asset_type: str,
    start: str,
    end: str,
    journal_month: str | None = None,
    output: Path | None = None,
) -> int:
    from .api import get_gl_balances, load_assets
    from .config import load_settings
    from .export import reconciliation_csv
    from .models import AssetType
    from .parsing import month_range
    from .reconcile import depreciation_journal

    try:
        kind = AssetType.parse(asset_type)
        keys = month_range(_parse_month(start, option="--start"), _parse_month(end, option="--end"))
        je_key = _parse_month(journal_month, option="--journal-month") if journal_month else keys[-1]
        settings, store = _open_store()
        assets = load_assets(store, kind)
        journal = depreciation_journal(assets, je_key, accounts=settings.accounts)
        text = reconciliation_csv(assets, keys, get_gl_balances(store, kind), journal)
    except (AssetTrackerError, ValueError, IndexError) as e:
        return _error(str(e))
    _emit(text, output)
    return 0


def cmd_export_journal_entry(*, ledger: str, month: str, output: Path | None = None) -> int:
    from .api import journal_for
    from .export import journal_entry_csv

    try:
        key = _parse_month(month, option="--month")
        settings, store = _open_store()
        lines = journal_for(store, ledger, key, accounts=settings.accounts)
        text = journal_entry_csv(lines, key)
    except (AssetTrackerError, ValueError) as e:
        return _error(str(e))
    _emit(text, output)
    return 0


def cmd_export_accruals(*, start: str, end: str, output: Path | None = None) -> int:
    from .api import load_accruals
    from .export import accruals_csv
    from .parsing import month_range

    try:
        keys = month_range(_parse_month(start, option="--start"), _parse_month(end, option="--end"))
        accruals = load_accruals(_open_store()[1])
    except (AssetTrackerError, ValueError) as e:
        return _error(str(e))
    _emit(accruals_csv(accruals, keys), output)
    return 0


def cmd_export_prepaids(*, start: str, end: str, output: Path | None = None) -> int:
    from .api import load_prepaids
    from .export import prepaids_csv
    from .parsing import month_range

    try:
        keys = month_range(_parse_month(start, option="--start"), _parse_month(end, option="--end"))
        prepaids = load_prepaids(_open_store()[1])
    except (AssetTrackerError, ValueError) as e:
        return _error(str(e))
    _emit(prepaids_csv(prepaids, keys), output)
    return 0


def cmd_init_db() -> int:
    """Create the document table for the SQL store (outside of Alembic)."""

    from .store import SqlDocumentStore

    try:
        _settings, store = _open_store()
        if not isinstance(store, SqlDocumentStore):
            return _error("init-db requires the SQL store (set DATABASE_URL)")
        store.create_schema()
    except (AssetTrackerError, ValueError) as e:
        return _error(str(e))
    print("Schema ready")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Depreciation, accrual and prepaid schedules with GL reconciliation. "
        "Loads DATABASE_URL and ASSET_TRACKER_* settings from a local .env."
    ),
)

CsvPath = Annotated[Path, typer.Option("--csv-path", help="Path to the CSV export", dir_okay=False)]
AsOf = Annotated[
    str | None, typer.Option("--as-of", help="Reference date for accumulated depreciation")
]
Output = Annotated[
    Path | None, typer.Option("--output", "-o", help="Write CSV here instead of stdout", dir_okay=False)
]
Start = Annotated[str, typer.Option("--start", help="First month (e.g. 1/25 or 2025-01)")]
End = Annotated[str, typer.Option("--end", help="Last month (inclusive)")]
Ledger = Annotated[
    str,
    typer.Option(
        "--ledger", help="computer-equipment, furniture, accruals or prepaids"
    ),
]


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code)


@app.command("import-assets")
def import_assets_cmd(
    csv_path: CsvPath,
    asset_type: Annotated[str, typer.Option(help="computer-equipment or furniture")] = "computer-equipment",
    clear_existing: Annotated[bool, typer.Option(help="Delete stored assets of this type first")] = False,
    as_of: AsOf = None,
) -> None:
    """Import an asset register CSV."""

    _exit(cmd_import_assets(str(csv_path), asset_type=asset_type, clear_existing=clear_existing, as_of=as_of))


@app.command("import-accruals")
def import_accruals_cmd(
    csv_path: CsvPath,
    clear_existing: Annotated[bool, typer.Option(help="Delete stored accruals first")] = False,
) -> None:
    """Import an accrued-expense schedule CSV."""

    _exit(cmd_import_accruals(str(csv_path), clear_existing=clear_existing))


@app.command("add-asset")
def add_asset_cmd(
    name: Annotated[str, typer.Option(help="Asset name")],
    date_in_place: Annotated[str, typer.Option(help="Date placed in service")],
    cost: Annotated[str, typer.Option(help="Acquisition cost")],
    life_months: Annotated[int, typer.Option(help="Useful life in months")] = 36,
    account: Annotated[str, typer.Option(help="Asset account")] = "Computer Equipment",
    department: Annotated[str, typer.Option(help="Department / class")] = "General",
    asset_type: Annotated[str, typer.Option(help="computer-equipment or furniture")] = "computer-equipment",
    as_of: AsOf = None,
) -> None:
    """Add an asset with a straight-line schedule."""

    _exit(
        cmd_add_asset(
            name=name,
            date_in_place=date_in_place,
            cost=cost,
            life_months=life_months,
            account=account,
            department=department,
            asset_type=asset_type,
            as_of=as_of,
        )
    )


@app.command("update-asset")
def update_asset_cmd(
    asset_id: Annotated[str, typer.Argument(help="Asset id")],
    date_in_place: Annotated[str | None, typer.Option(help="New date in place")] = None,
    life_months: Annotated[int | None, typer.Option(help="New useful life in months")] = None,
    as_of: AsOf = None,
) -> None:
    """Change an asset's date in place or life and rebuild its schedule."""

    _exit(cmd_update_asset(asset_id, date_in_place=date_in_place, life_months=life_months, as_of=as_of))


@app.command("add-prepaid")
def add_prepaid_cmd(
    vendor: Annotated[str, typer.Option(help="Vendor name")],
    amount: Annotated[str, typer.Option(help="Initial prepaid amount")],
    start_date: Annotated[str, typer.Option(help="First month of amortization")],
    term_months: Annotated[int, typer.Option(help="Amortization term in months")],
    description: Annotated[str, typer.Option(help="Description")] = "",
    gl_account: Annotated[str, typer.Option(help="Prepaid asset account")] = "12100",
    expense_account: Annotated[str, typer.Option(help="Expense account")] = "61200",
) -> None:
    """Add a prepaid expense with a straight-line amortization schedule."""

    _exit(
        cmd_add_prepaid(
            vendor=vendor,
            description=description,
            amount=amount,
            start_date=start_date,
            term_months=term_months,
            gl_account=gl_account,
            expense_account=expense_account,
        )
    )


@app.command("edit-prepaid")
def edit_prepaid_cmd(
    prepaid_id: Annotated[str, typer.Argument(help="Prepaid id")],
    month: Annotated[str, typer.Option(help="Month to edit (e.g. 3/25)")],
    amount: Annotated[str, typer.Option(help="Actual amortization for the month")],
) -> None:
    """Record an actual amortization amount for one month."""

    _exit(cmd_edit_prepaid(prepaid_id, month=month, amount=amount))


@app.command("set-gl-balance")
def set_gl_balance_cmd(
    ledger: Ledger,
    month: Annotated[str, typer.Option(help="Month (e.g. 1/25)")],
    amount: Annotated[str, typer.Option(help="GL balance for the month")],
) -> None:
    """Store the GL balance for one ledger and month."""

    _exit(cmd_set_gl_balance(ledger=ledger, month=month, amount=amount))


@app.command("reconcile")
def reconcile_cmd(ledger: Ledger, start: Start, end: End) -> None:
    """Compare scheduled totals with GL balances month by month.

    Exits 2 when any month is out of balance.
    """

    _exit(cmd_reconcile(ledger=ledger, start=start, end=end))


@app.command("export-reconciliation")
def export_reconciliation_cmd(
    start: Start,
    end: End,
    asset_type: Annotated[str, typer.Option(help="computer-equipment or furniture")] = "computer-equipment",
    journal_month: Annotated[str | None, typer.Option(help="Journal entry month (defaults to --end)")] = None,
    output: Output = None,
) -> None:
    """Export the depreciation reconciliation sheet with its journal entry."""

    _exit(
        cmd_export_reconciliation(
            asset_type=asset_type,
            start=start,
            end=end,
            journal_month=journal_month,
            output=output,
        )
    )


@app.command("export-journal-entry")
def export_journal_entry_cmd(
    ledger: Ledger,
    month: Annotated[str, typer.Option(help="Month (e.g. 1/25)")],
    output: Output = None,
) -> None:
    """Export one month's balanced journal entry."""

    _exit(cmd_export_journal_entry(ledger=ledger, month=month, output=output))


@app.command("export-accruals")
def export_accruals_cmd(start: Start, end: End, output: Output = None) -> None:
    """Export accruals with per-month reversal/accrual columns."""

    _exit(cmd_export_accruals(start=start, end=end, output=output))


@app.command("export-prepaids")
def export_prepaids_cmd(start: Start, end: End, output: Output = None) -> None:
    """Export prepaids with per-month amortization."""

    _exit(cmd_export_prepaids(start=start, end=end, output=output))


@app.command("init-db")
def init_db_cmd() -> None:
    """Create the SQL document table when not managed by Alembic."""

    _exit(cmd_init_db())


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    app()
