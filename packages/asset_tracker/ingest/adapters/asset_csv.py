"""Adapter for fixed-asset register CSV exports.

Expected header (exact names; order does not matter)::

    Memo/Description, Payee (Name), Account, Class/Department, Cost,
    # of life (months), Monthly Dep, Accumulated Depreciation, NBV (YTD),
    Date, Date in place (Mid-month convention), <M/D/YY>...

Every date-pattern header other than ``Date`` and the date-in-place column is
a depreciation schedule column; non-zero cells become ``dep_schedule`` entries
under the canonical month key.

Row rules
---------
- Rows with an empty ``Memo/Description`` are skipped (counted, no warning).
- Rows whose ``Cost`` is empty or zero are skipped with a warning.
- ``cost`` is taken as an absolute value; ``# of life (months)`` defaults to
  36; ``Account`` defaults to ``Computer Equipment`` and
  ``Class/Department`` to ``General``.
- ``Monthly Dep`` falls back to ``cost / life`` and ``NBV (YTD)`` to
  ``cost - accumulated`` when the cells are empty.
- Imported schedules are capped chronologically at ``cost``.

The adapter does not validate; it returns every mapped asset together with
the diagnostics gathered while parsing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from ...logging_setup import get_logger
from ...models import Asset, AssetType, new_id
from ...parsing import ZERO, format_amount, normalize_month_key, parse_flexible_date, to_cents
from ...schedule import DEFAULT_LIFE_MONTHS, cap_schedule, monthly_amount
from ..naming import KeywordNameStrategy, NameStrategy
from ..rows import CsvRow, date_columns, map_rows
from ..tokenizer import tokenize_document

logger = get_logger("asset_tracker.ingest.asset_csv")

COL_DESCRIPTION = "Memo/Description"
COL_PAYEE = "Payee (Name)"
COL_ACCOUNT = "Account"
COL_DEPARTMENT = "Class/Department"
COL_COST = "Cost"
COL_LIFE = "# of life (months)"
COL_MONTHLY_DEP = "Monthly Dep"
COL_ACCUM_DEP = "Accumulated Depreciation"
COL_NBV = "NBV (YTD)"
COL_DATE = "Date"
COL_DATE_IN_PLACE = "Date in place (Mid-month convention)"

DEFAULT_ACCOUNT = "Computer Equipment"
DEFAULT_DEPARTMENT = "General"


@dataclass(slots=True)
class AssetParseResult:
    assets: list[Asset] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    skipped: int = 0
    total_rows: int = 0


def _life_months(row: CsvRow, label: str, warnings: list[str]) -> int:
    raw = row.amount(COL_LIFE)
    if raw == 0:
        return DEFAULT_LIFE_MONTHS
    life = int(raw)
    if life != raw:
        warnings.append(f"{label}: life {raw} is not a whole number of months; using {life}")
    return life


def _schedule(row: CsvRow, columns: list[str], diagnostics: list[str]) -> dict[str, Decimal]:
    schedule: dict[str, Decimal] = {}
    for col in columns:
        value = row.amount(col, diagnostics=diagnostics)
        if value == 0:
            continue
        key = normalize_month_key(col)
        if key is None:
            continue
        schedule[key] = schedule.get(key, ZERO) + value
    return schedule


def map_asset_row(
    row: CsvRow,
    *,
    schedule_columns: list[str],
    asset_type: AssetType,
    today: date,
    name_strategy: NameStrategy,
    warnings: list[str],
) -> Asset:
    """Map one ``CsvRow`` (with a non-zero cost) to an ``Asset``."""

    label = f"Row {row.line + 1}"
    diagnostics: list[str] = []

    cost = to_cents(abs(row.amount(COL_COST, diagnostics=diagnostics)))
    life = _life_months(row, label, warnings)

    monthly = abs(row.amount(COL_MONTHLY_DEP, diagnostics=diagnostics))
    if monthly == 0:
        monthly = monthly_amount(cost, life)
    accum = abs(row.amount(COL_ACCUM_DEP, diagnostics=diagnostics))
    nbv = row.amount(COL_NBV, diagnostics=diagnostics) if row.text(COL_NBV) else cost - accum

    date_text = row.first_text(COL_DATE_IN_PLACE, COL_DATE)
    in_place = parse_flexible_date(date_text, today=today, diagnostics=diagnostics)

    raw_schedule = _schedule(row, schedule_columns, diagnostics)
    schedule = cap_schedule(raw_schedule, cost)
    raw_total = sum(raw_schedule.values(), ZERO)
    if raw_total > cost:
        warnings.append(
            f"{label}: imported schedule {format_amount(raw_total)} exceeds cost "
            f"{format_amount(cost)}; capped"
        )

    name = name_strategy(row.text(COL_DESCRIPTION), row.text(COL_PAYEE))
    warnings.extend(f"{label}: {d}" for d in diagnostics)

    return Asset(
        id=new_id("asset"),
        name=name,
        date_in_place=in_place,
        account=row.text(COL_ACCOUNT) or DEFAULT_ACCOUNT,
        department=row.text(COL_DEPARTMENT) or DEFAULT_DEPARTMENT,
        cost=cost,
        life_months=life,
        monthly_dep=to_cents(monthly),
        accum_dep=to_cents(accum),
        nbv=to_cents(nbv),
        asset_type=asset_type,
        dep_schedule=schedule,
    )


def parse_asset_csv(
    text: str,
    *,
    asset_type: AssetType | str = AssetType.COMPUTER_EQUIPMENT,
    today: date | None = None,
    name_strategy: NameStrategy | None = None,
) -> AssetParseResult:
    """Parse an asset register export into ``Asset`` records.

    Parameters
    ----------
    text:
        Full CSV text.
    asset_type:
        Type stamped on every imported asset.
    today:
        Reference date for the lenient date fallback (defaults to today).
    name_strategy:
        Display-name synthesis; ``KeywordNameStrategy()`` by default.
    """

    today = today or date.today()
    kind = AssetType.parse(asset_type)
    strategy = name_strategy or KeywordNameStrategy()

    document = tokenize_document(text)
    result = AssetParseResult(total_rows=len(document.rows))
    if document.is_empty or not document.rows:
        result.errors.append("No data rows found in CSV")
        return result

    mapped = map_rows(document, identity_column=COL_DESCRIPTION)
    result.skipped = mapped.skipped
    columns = date_columns(document.header, exclude=(COL_DATE, COL_DATE_IN_PLACE))

    for row in mapped.rows:
        cost_notes: list[str] = []
        if row.amount(COL_COST, diagnostics=cost_notes) == 0:
            result.skipped += 1
            result.warnings.extend(f"Row {row.line + 1}: {d}" for d in cost_notes)
            result.warnings.append(f"Row {row.line + 1}: no cost data; skipped")
            logger.debug("asset_csv: skipping row %d without cost", row.line)
            continue
        result.assets.append(
            map_asset_row(
                row,
                schedule_columns=columns,
                asset_type=kind,
                today=today,
                name_strategy=strategy,
                warnings=result.warnings,
            )
        )

    logger.info(
        "asset_csv: mapped %d assets from %d rows (%d skipped)",
        len(result.assets),
        result.total_rows,
        result.skipped,
    )
    return result


__all__ = [
    "AssetParseResult",
    "DEFAULT_ACCOUNT",
    "DEFAULT_DEPARTMENT",
    "map_asset_row",
    "parse_asset_csv",
]
