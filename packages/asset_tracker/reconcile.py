"""Aggregation, GL reconciliation, journal entries and portfolio summaries.

The aggregation functions accept any mix of records that implement
``ScheduleBearing`` (assets, accruals, prepaids) and look amounts up through
``schedule_for`` only, so month keys may be passed in any supported spelling.

Journal builders return balanced ``JournalLine`` lists: each group yields one
debit and one equal credit, and groups that net to zero yield nothing.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TypeVar

from .config import JournalAccounts
from .logging_setup import get_logger
from .models import Accrual, Asset, AssetType, JournalLine, Prepaid, ScheduleBearing
from .parsing import ZERO, add_months, month_label, normalize_month_key, to_cents

logger = get_logger("asset_tracker.reconcile")

BALANCE_TOLERANCE = Decimal("0.01")
DEFAULT_JOURNAL_DEPARTMENT = "General & Administrative"
DEFAULT_ACCRUED_EXPENSES_ACCOUNT = "20005"

T = TypeVar("T", bound=ScheduleBearing)


# ---------------------------------------------------------------------------
# Aggregation and variance
# ---------------------------------------------------------------------------


def active_only(records: Iterable[T]) -> list[T]:
    """Drop records whose ``is_active`` is False (assets are always active)."""

    return [r for r in records if r.is_active]


def monthly_total(records: Iterable[ScheduleBearing], key: str | date) -> Decimal:
    return sum((r.schedule_for(key) for r in records), ZERO)


def grand_total(records: Iterable[ScheduleBearing], keys: Iterable[str | date]) -> Decimal:
    recs = list(records)
    return sum((monthly_total(recs, k) for k in keys), ZERO)


def normalize_gl_balances(gl_balances: Mapping[str, Decimal] | None) -> dict[str, Decimal]:
    """Re-key a GL balance mapping by canonical month key.

    Unrecognized keys are dropped; keys that collapse onto the same month are
    summed.
    """

    out: dict[str, Decimal] = {}
    for key, amount in (gl_balances or {}).items():
        canonical = normalize_month_key(key)
        if canonical is None:
            logger.debug("normalize_gl_balances: ignoring key %r", key)
            continue
        out[canonical] = out.get(canonical, ZERO) + Decimal(amount)
    return out


def gl_balance_for(gl_balances: Mapping[str, Decimal] | None, key: str | date) -> Decimal:
    canonical = normalize_month_key(key)
    if canonical is None:
        return ZERO
    return normalize_gl_balances(gl_balances).get(canonical, ZERO)


def variance(
    gl_balances: Mapping[str, Decimal] | None,
    records: Iterable[ScheduleBearing],
    key: str | date,
) -> Decimal:
    """``GL balance - computed total`` for one month (missing GL counts as 0)."""

    return gl_balance_for(gl_balances, key) - monthly_total(records, key)


def aggregate_variance(
    gl_balances: Mapping[str, Decimal] | None,
    records: Iterable[ScheduleBearing],
    keys: Iterable[str | date],
) -> Decimal:
    recs = list(records)
    return sum((variance(gl_balances, recs, k) for k in keys), ZERO)


@dataclass(frozen=True, slots=True)
class MonthReconciliation:
    key: str
    label: str
    total: Decimal
    gl_balance: Decimal
    variance: Decimal

    @property
    def is_balanced(self) -> bool:
        return abs(self.variance) < BALANCE_TOLERANCE


@dataclass(frozen=True, slots=True)
class Reconciliation:
    months: list[MonthReconciliation] = field(default_factory=list)

    @property
    def grand_total(self) -> Decimal:
        return sum((m.total for m in self.months), ZERO)

    @property
    def gl_total(self) -> Decimal:
        return sum((m.gl_balance for m in self.months), ZERO)

    @property
    def total_variance(self) -> Decimal:
        return sum((m.variance for m in self.months), ZERO)

    @property
    def is_balanced(self) -> bool:
        return all(m.is_balanced for m in self.months)

    def month(self, key: str | date) -> MonthReconciliation | None:
        canonical = normalize_month_key(key)
        return next((m for m in self.months if m.key == canonical), None)


def reconcile(
    records: Iterable[ScheduleBearing],
    keys: Iterable[str | date],
    gl_balances: Mapping[str, Decimal] | None,
) -> Reconciliation:
    """Compute per-month totals, GL balances and variances over ``keys``."""

    recs = list(records)
    gl = normalize_gl_balances(gl_balances)
    months: list[MonthReconciliation] = []
    for key in keys:
        canonical = normalize_month_key(key)
        if canonical is None:
            logger.debug("reconcile: skipping unrecognized month %r", key)
            continue
        total = monthly_total(recs, canonical)
        balance = gl.get(canonical, ZERO)
        months.append(
            MonthReconciliation(
                key=canonical,
                label=month_label(canonical),
                total=total,
                gl_balance=balance,
                variance=balance - total,
            )
        )
    return Reconciliation(months=months)


# ---------------------------------------------------------------------------
# Journal entries
# ---------------------------------------------------------------------------


def _long_label(key: str | date) -> str:
    canonical = normalize_month_key(key)
    return month_label(canonical, long=True) if canonical else str(key)


def _balanced_pair(
    *,
    debit_account: str,
    credit_account: str,
    amount: Decimal,
    memo: str,
    department: str,
    debit_class: str,
    credit_class: str,
    accounts: JournalAccounts,
) -> list[JournalLine]:
    """One debit and one equal credit; roles swap when ``amount`` is negative."""

    amount = to_cents(amount)
    if amount == 0:
        return []
    if amount < 0:
        debit_account, credit_account = credit_account, debit_account
        debit_class, credit_class = credit_class, debit_class
        amount = -amount
    common = dict(memo=memo, entity=accounts.entity, department=department, location=accounts.location)
    return [
        JournalLine(account=debit_account, debit=amount, credit=ZERO, line_class=debit_class, **common),
        JournalLine(account=credit_account, debit=ZERO, credit=amount, line_class=credit_class, **common),
    ]


def depreciation_journal(
    assets: Iterable[Asset],
    key: str | date,
    *,
    accounts: JournalAccounts | None = None,
) -> list[JournalLine]:
    """Depreciation entry for one month, one balanced pair per department.

    Only positive depreciation is journaled. Assets of different types in the
    same department produce separate pairs since they credit different
    accumulated-depreciation accounts.
    """

    accounts = accounts or JournalAccounts()
    label = _long_label(key)
    groups: dict[tuple[str, AssetType], Decimal] = {}
    for asset in assets:
        amount = asset.schedule_for(key)
        if amount <= 0:
            continue
        dept = (asset.department or "").strip() or DEFAULT_JOURNAL_DEPARTMENT
        group = (dept, asset.asset_type)
        groups[group] = groups.get(group, ZERO) + amount

    lines: list[JournalLine] = []
    for (dept, asset_type), total in groups.items():
        lines.extend(
            _balanced_pair(
                debit_account=accounts.depreciation_expense,
                credit_account=accounts.accumulated_for(asset_type),
                amount=total,
                memo=f"{dept} depreciation for {label}",
                department=dept,
                debit_class=accounts.expense_class,
                credit_class=accounts.contra_asset_class,
                accounts=accounts,
            )
        )
    return lines


def accrual_journal(
    accruals: Iterable[Accrual],
    key: str | date,
    *,
    accounts: JournalAccounts | None = None,
) -> list[JournalLine]:
    """Accrual entry for one month, pooled per DR/CR account pair.

    The pool amount is the net of reversals and accruals; a positive net
    debits the expense (DR) account and credits the accrued liability (CR),
    a negative net reverses the roles. Accruals without a DR account cannot
    be posted and are left out with a warning; an empty CR falls back to
    ``20005``.
    """

    accounts = accounts or JournalAccounts()
    label = _long_label(key)
    pools: dict[tuple[str, str], Decimal] = {}
    for accrual in accruals:
        amount = accrual.schedule_for(key)
        if amount == 0:
            continue
        dr = accrual.account_dr.strip()
        if not dr:
            logger.warning(
                "accrual_journal: %s (%s) has no DR account; %s left out of %s",
                accrual.vendor,
                accrual.id,
                to_cents(amount),
                label,
            )
            continue
        pair = (dr, accrual.account_cr.strip() or DEFAULT_ACCRUED_EXPENSES_ACCOUNT)
        pools[pair] = pools.get(pair, ZERO) + amount

    lines: list[JournalLine] = []
    for (dr, cr), net in pools.items():
        lines.extend(
            _balanced_pair(
                debit_account=dr,
                credit_account=cr,
                amount=net,
                memo=f"Accrued expenses for {label}",
                department="General",
                debit_class=accounts.expense_class,
                credit_class=accounts.liability_class,
                accounts=accounts,
            )
        )
    return lines


def prepaid_journal(
    prepaids: Iterable[Prepaid],
    key: str | date,
    *,
    accounts: JournalAccounts | None = None,
) -> list[JournalLine]:
    """Amortization entry for one month: debit expense, credit the prepaid asset."""

    accounts = accounts or JournalAccounts()
    label = _long_label(key)
    pools: dict[tuple[str, str], Decimal] = {}
    for prepaid in prepaids:
        amount = prepaid.schedule_for(key)
        if amount == 0:
            continue
        pair = (prepaid.expense_account, prepaid.gl_account)
        pools[pair] = pools.get(pair, ZERO) + amount

    lines: list[JournalLine] = []
    for (expense, gl), total in pools.items():
        lines.extend(
            _balanced_pair(
                debit_account=expense,
                credit_account=gl,
                amount=total,
                memo=f"Prepaid amortization for {label}",
                department="General",
                debit_class=accounts.expense_class,
                credit_class=accounts.prepaid_asset_class,
                accounts=accounts,
            )
        )
    return lines


def journal_totals(lines: Sequence[JournalLine]) -> tuple[Decimal, Decimal]:
    """Return ``(total debits, total credits)``."""

    return (
        sum((ln.debit for ln in lines), ZERO),
        sum((ln.credit for ln in lines), ZERO),
    )


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AssetSummary:
    count: int
    total_cost: Decimal
    total_accum_dep: Decimal
    total_nbv: Decimal
    monthly_dep_total: Decimal
    cost_by_department: dict[str, Decimal]


def asset_summary(assets: Iterable[Asset]) -> AssetSummary:
    items = list(assets)
    by_dept: dict[str, Decimal] = {}
    for a in items:
        by_dept[a.department] = by_dept.get(a.department, ZERO) + a.cost
    return AssetSummary(
        count=len(items),
        total_cost=sum((a.cost for a in items), ZERO),
        total_accum_dep=sum((a.accum_dep for a in items), ZERO),
        total_nbv=sum((a.nbv for a in items), ZERO),
        monthly_dep_total=sum((a.monthly_dep for a in items), ZERO),
        cost_by_department=by_dept,
    )


@dataclass(frozen=True, slots=True)
class AccrualSummary:
    total_balance: Decimal
    total_reversals: Decimal
    total_accruals: Decimal
    vendor_count: int
    active_count: int
    balance_sheet_amount: Decimal | None = None

    @property
    def variance(self) -> Decimal | None:
        """``balance sheet - total balance`` when a balance-sheet amount is known."""

        if self.balance_sheet_amount is None:
            return None
        return self.balance_sheet_amount - self.total_balance


def accrual_summary(
    accruals: Iterable[Accrual],
    *,
    balance_sheet_amount: Decimal | None = None,
) -> AccrualSummary:
    items = list(accruals)
    entries = [e for a in items for e in a.monthly_entries.values()]
    return AccrualSummary(
        total_balance=sum((a.balance for a in items), ZERO),
        total_reversals=sum((e.reversal for e in entries), ZERO),
        total_accruals=sum((e.accrual for e in entries), ZERO),
        vendor_count=len({a.vendor.strip().lower() for a in items}),
        active_count=sum(1 for a in items if a.is_active),
        balance_sheet_amount=balance_sheet_amount,
    )


@dataclass(frozen=True, slots=True)
class PrepaidSummary:
    total_initial: Decimal
    total_current: Decimal
    amortized_to_date: Decimal
    monthly_amortization_total: Decimal
    fully_amortized_count: int
    upcoming_expirations: list[Prepaid]


def prepaid_summary(
    prepaids: Iterable[Prepaid],
    *,
    today: date,
    within_months: int = 3,
) -> PrepaidSummary:
    """Portfolio totals plus prepaids ending within ``within_months`` of ``today``."""

    items = list(prepaids)
    horizon = add_months(today, within_months)
    upcoming = sorted(
        (p for p in items if not p.is_fully_amortized and today <= p.end_date <= horizon),
        key=lambda p: p.end_date,
    )
    return PrepaidSummary(
        total_initial=sum((p.initial_amount for p in items), ZERO),
        total_current=sum((p.current_balance for p in items), ZERO),
        amortized_to_date=sum((p.amortized_to_date for p in items), ZERO),
        monthly_amortization_total=sum((p.monthly_amortization for p in items), ZERO),
        fully_amortized_count=sum(1 for p in items if p.is_fully_amortized),
        upcoming_expirations=upcoming,
    )


__all__ = [
    "BALANCE_TOLERANCE",
    "active_only",
    "monthly_total",
    "grand_total",
    "normalize_gl_balances",
    "gl_balance_for",
    "variance",
    "aggregate_variance",
    "MonthReconciliation",
    "Reconciliation",
    "reconcile",
    "depreciation_journal",
    "accrual_journal",
    "prepaid_journal",
    "journal_totals",
    "AssetSummary",
    "asset_summary",
    "AccrualSummary",
    "accrual_summary",
    "PrepaidSummary",
    "prepaid_summary",
]
