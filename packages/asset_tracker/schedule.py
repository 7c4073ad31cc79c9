"""Depreciation and amortization schedule builders.

Everything here is pure: functions take records or plain values and return new
records or mappings, never mutating their inputs. Amounts are ``Decimal`` and
quantized to cents.

Straight-line convention
------------------------
Each month receives ``principal / term`` rounded half-up to cents; the final
month absorbs the rounding remainder so the schedule sums to the principal
exactly. Months are consecutive calendar months starting at the start date's
month (the day of month is ignored).
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from datetime import date, timedelta
from decimal import Decimal

from .logging_setup import get_logger
from .models import (
    AccrualEntry,
    AmortizationEntry,
    Asset,
    AssetType,
    Prepaid,
    new_id,
)
from .parsing import (
    ZERO,
    add_months,
    iter_months,
    month_key,
    month_sort_key,
    months_between,
    normalize_month_key,
    short_month_key,
    to_cents,
    to_short_key,
)

logger = get_logger("asset_tracker.schedule")

DEFAULT_LIFE_MONTHS = 36


# ---------------------------------------------------------------------------
# Straight-line and accumulated depreciation
# ---------------------------------------------------------------------------


def monthly_amount(principal: Decimal, term_months: int) -> Decimal:
    if term_months <= 0:
        return ZERO
    return to_cents(Decimal(principal) / term_months)


def _straight_line_amounts(principal: Decimal, term_months: int) -> list[Decimal]:
    principal = to_cents(principal)
    per = monthly_amount(principal, term_months)
    amounts: list[Decimal] = []
    remaining = principal
    for i in range(term_months):
        if i == term_months - 1:
            amt = remaining
        else:
            amt = min(per, remaining)
        amounts.append(amt)
        remaining -= amt
    return amounts


def straight_line(principal: Decimal, start: date, term_months: int) -> dict[str, Decimal]:
    """Return ``{canonical month key: amount}`` for ``term_months`` months.

    A non-positive term yields an empty schedule.
    """

    if term_months <= 0:
        return {}
    amounts = _straight_line_amounts(principal, term_months)
    return {month_key(d): amt for d, amt in zip(iter_months(start, term_months), amounts)}


def months_elapsed(start: date, today: date) -> int:
    return max(0, months_between(start, today))


def accumulated_to_date(
    cost: Decimal,
    monthly_dep: Decimal,
    start: date,
    *,
    today: date,
) -> tuple[Decimal, Decimal]:
    """Return ``(accum_dep, nbv)`` as of ``today``.

    ``accum_dep = min(monthly_dep * months_elapsed, cost)``; ``nbv = cost - accum``.
    """

    cost = to_cents(cost)
    accum = min(to_cents(Decimal(monthly_dep) * months_elapsed(start, today)), cost)
    return accum, cost - accum


def cap_schedule(schedule: Mapping[str, Decimal], cost: Decimal) -> dict[str, Decimal]:
    """Clamp ``schedule`` so cumulative depreciation never exceeds ``cost``.

    Keys are walked chronologically; once the cap is reached the remaining
    months are dropped. Keys are normalized to the canonical spelling and
    unrecognized keys are discarded.
    """

    cost = to_cents(cost)
    merged: dict[str, Decimal] = {}
    for key, amount in schedule.items():
        canonical = normalize_month_key(key)
        if canonical is None:
            continue
        merged[canonical] = merged.get(canonical, ZERO) + to_cents(amount)

    out: dict[str, Decimal] = {}
    total = ZERO
    for key in sorted(merged, key=month_sort_key):
        amount = merged[key]
        if amount > 0 and total + amount > cost:
            amount = cost - total
        if amount == 0:
            continue
        out[key] = amount
        total += amount
    return out


# ---------------------------------------------------------------------------
# Assets
# ---------------------------------------------------------------------------


def new_asset(
    *,
    name: str,
    date_in_place: date,
    cost: Decimal,
    life_months: int,
    account: str,
    department: str,
    asset_type: AssetType = AssetType.COMPUTER_EQUIPMENT,
    today: date,
    asset_id: str | None = None,
) -> Asset:
    """Build a manually added asset with a straight-line schedule."""

    cost = to_cents(cost)
    monthly = monthly_amount(cost, life_months)
    accum, nbv = accumulated_to_date(cost, monthly, date_in_place, today=today)
    return Asset(
        id=asset_id or new_id("asset"),
        name=name.strip(),
        date_in_place=date_in_place,
        account=account.strip(),
        department=department.strip(),
        cost=cost,
        life_months=life_months,
        monthly_dep=monthly,
        accum_dep=accum,
        nbv=nbv,
        asset_type=AssetType.parse(asset_type),
        dep_schedule=straight_line(cost, date_in_place, life_months),
    )


def regenerate_asset(
    asset: Asset,
    *,
    date_in_place: date | None = None,
    life_months: int | None = None,
    today: date,
) -> Asset:
    """Return a copy of ``asset`` with its derived fields rebuilt.

    Cost, type and identity are kept; ``monthly_dep``, ``accum_dep``, ``nbv``
    and ``dep_schedule`` are recomputed from the (possibly new) date in place
    and life.
    """

    start = date_in_place or asset.date_in_place
    life = life_months if life_months is not None else asset.life_months
    if life <= 0:
        raise ValueError(f"life_months must be positive, got {life}")
    monthly = monthly_amount(asset.cost, life)
    accum, nbv = accumulated_to_date(asset.cost, monthly, start, today=today)
    return dataclasses.replace(
        asset,
        date_in_place=start,
        life_months=life,
        monthly_dep=monthly,
        accum_dep=accum,
        nbv=nbv,
        dep_schedule=straight_line(asset.cost, start, life),
    )


# ---------------------------------------------------------------------------
# Prepaids
# ---------------------------------------------------------------------------


def last_day_of_month(d: date) -> date:
    return add_months(d.replace(day=1), 1) - timedelta(days=1)


def new_prepaid(
    *,
    vendor: str,
    description: str,
    initial_amount: Decimal,
    start_date: date,
    term_months: int,
    gl_account: str = "12100",
    expense_account: str = "61200",
    notes: str | None = None,
    prepaid_id: str | None = None,
) -> Prepaid:
    """Build a prepaid with a straight-line amortization schedule.

    Schedule keys are ``M/YY``. Each entry carries the balance remaining after
    that month's amortization, so the final entry's remaining balance is 0.
    """

    initial = to_cents(initial_amount)
    schedule: dict[str, AmortizationEntry] = {}
    remaining = initial
    if term_months > 0:
        amounts = _straight_line_amounts(initial, term_months)
        for d, amt in zip(iter_months(start_date, term_months), amounts):
            remaining -= amt
            schedule[short_month_key(d)] = AmortizationEntry(amortization=amt, remaining_balance=remaining)
        end = last_day_of_month(add_months(start_date, term_months - 1))
    else:
        end = start_date

    return Prepaid(
        id=prepaid_id or new_id("prepaid"),
        vendor=vendor.strip(),
        description=description.strip(),
        initial_amount=initial,
        start_date=start_date,
        end_date=end,
        term_months=term_months,
        monthly_amortization=monthly_amount(initial, term_months),
        current_balance=initial,
        amortization_schedule=schedule,
        gl_account=gl_account,
        expense_account=expense_account,
        notes=notes,
    )


def edit_prepaid_amortization(prepaid: Prepaid, key: str | date, amount: Decimal) -> Prepaid:
    """Record an actual amortization for one month and re-walk the schedule.

    Remaining balances are recomputed for every month in (year, month) order
    starting from ``initial_amount`` and clamped at 0. ``current_balance``
    becomes the final entry's remaining balance, and ``monthly_amortization``
    is ``(initial_amount - current_balance) / count(actual)``.
    An unknown month returns ``prepaid`` unchanged.
    """

    short = to_short_key(key)
    if short is None or short not in prepaid.amortization_schedule:
        logger.debug("edit_prepaid_amortization: no month %r on %s", key, prepaid.id)
        return prepaid

    schedule = dict(prepaid.amortization_schedule)
    schedule[short] = dataclasses.replace(schedule[short], amortization=to_cents(amount), is_actual=True)

    running = prepaid.initial_amount
    rebuilt: dict[str, AmortizationEntry] = {}
    actual_count = 0
    for k in sorted(schedule, key=month_sort_key):
        entry = schedule[k]
        running = max(ZERO, running - entry.amortization)
        rebuilt[k] = dataclasses.replace(entry, remaining_balance=running)
        if entry.is_actual:
            actual_count += 1
    current = running

    monthly = prepaid.monthly_amortization
    if actual_count:
        monthly = to_cents((prepaid.initial_amount - current) / actual_count)

    return dataclasses.replace(
        prepaid,
        amortization_schedule=rebuilt,
        current_balance=current,
        monthly_amortization=monthly,
    )


# ---------------------------------------------------------------------------
# Accruals
# ---------------------------------------------------------------------------


def accrual_balance(entries: Mapping[str, AccrualEntry] | Iterable[AccrualEntry]) -> Decimal:
    """Sum of ``reversal + accrual`` over all entries."""

    values = entries.values() if isinstance(entries, Mapping) else entries
    return sum((e.net for e in values), ZERO)


__all__ = [
    "DEFAULT_LIFE_MONTHS",
    "monthly_amount",
    "straight_line",
    "months_elapsed",
    "accumulated_to_date",
    "cap_schedule",
    "new_asset",
    "regenerate_asset",
    "last_day_of_month",
    "new_prepaid",
    "edit_prepaid_amortization",
    "accrual_balance",
]
