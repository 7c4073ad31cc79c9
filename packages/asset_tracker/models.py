"""Domain records and result types for ``asset_tracker``.

Three record kinds carry a monthly schedule:

- :class:`Asset`: fixed asset with a depreciation schedule keyed by the
  canonical month key (``YYYY-MM-01``).
- :class:`Accrual`: accrued expense with reversal/accrual pairs keyed by the
  short month key (``M/YY``).
- :class:`Prepaid`: prepaid expense with an amortization schedule keyed by
  ``M/YY`` and a running remaining balance.

All of them satisfy :class:`ScheduleBearing`, which is the only surface the
reconciliation code relies on. Money is ``Decimal`` throughout.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import StrEnum
from typing import ClassVar, Generic, Protocol, TypeVar, runtime_checkable

from .parsing import ZERO, month_sort_key, normalize_month_key, to_short_key

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class AssetType(StrEnum):
    COMPUTER_EQUIPMENT = "computer-equipment"
    FURNITURE = "furniture"

    @classmethod
    def parse(cls, value: str | AssetType) -> AssetType:
        """Accept the enum value, its name, or a loose label like ``Furniture``."""

        if isinstance(value, AssetType):
            return value
        s = str(value).strip().lower().replace("_", "-").replace(" ", "-")
        for member in cls:
            if s == member.value:
                return member
        raise ValueError(f"unknown asset type: {value!r}")


class RecordKind(StrEnum):
    ASSET = "asset"
    ACCRUAL = "accrual"
    PREPAID = "prepaid"


def new_id(prefix: str) -> str:
    """Return an opaque identifier such as ``asset_3f9c0d1e2b4a``."""

    return f"{prefix}_{uuid.uuid4().hex[:12]}"


# ---------------------------------------------------------------------------
# Schedule-bearing protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class ScheduleBearing(Protocol):
    """Anything that recognizes an amount per calendar month."""

    kind: ClassVar[RecordKind]
    id: str

    @property
    def is_active(self) -> bool: ...

    def schedule_for(self, key: str | date) -> Decimal: ...

    def schedule_keys(self) -> list[str]: ...


# ---------------------------------------------------------------------------
# Assets
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class Asset:
    """A depreciating fixed asset.

    ``dep_schedule`` maps canonical month keys to the depreciation recognized
    that month. Cumulative depreciation never exceeds ``cost``; the schedule
    builder enforces this when generating or importing schedules.
    """

    kind: ClassVar[RecordKind] = RecordKind.ASSET

    id: str
    name: str
    date_in_place: date
    account: str
    department: str
    cost: Decimal
    life_months: int
    monthly_dep: Decimal
    accum_dep: Decimal = ZERO
    nbv: Decimal = ZERO
    asset_type: AssetType = AssetType.COMPUTER_EQUIPMENT
    dep_schedule: dict[str, Decimal] = field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return True

    def schedule_for(self, key: str | date) -> Decimal:
        canonical = normalize_month_key(key)
        if canonical is None:
            return ZERO
        return self.dep_schedule.get(canonical, ZERO)

    def schedule_keys(self) -> list[str]:
        return sorted(self.dep_schedule, key=month_sort_key)

    def scheduled_total(self) -> Decimal:
        return sum(self.dep_schedule.values(), ZERO)


# ---------------------------------------------------------------------------
# Accruals
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AccrualEntry:
    """One month of an accrual: the reversal of last month and a new accrual."""

    reversal: Decimal = ZERO
    accrual: Decimal = ZERO
    notes: str | None = None

    @property
    def net(self) -> Decimal:
        return self.reversal + self.accrual


def _short_lookup(entries: dict, key: str | date):
    short = to_short_key(key)
    if short is None:
        return None
    return entries.get(short)


@dataclass(slots=True)
class Accrual:
    kind: ClassVar[RecordKind] = RecordKind.ACCRUAL

    id: str
    vendor: str
    description: str = ""
    account_dr: str = ""
    account_cr: str = ""
    balance: Decimal = ZERO
    monthly_entries: dict[str, AccrualEntry] = field(default_factory=dict)
    is_active: bool = True
    notes: str | None = None

    def computed_balance(self) -> Decimal:
        return sum((e.net for e in self.monthly_entries.values()), ZERO)

    def schedule_for(self, key: str | date) -> Decimal:
        entry = _short_lookup(self.monthly_entries, key)
        return entry.net if entry is not None else ZERO

    def entry_for(self, key: str | date) -> AccrualEntry | None:
        return _short_lookup(self.monthly_entries, key)

    def schedule_keys(self) -> list[str]:
        keys = (normalize_month_key(k) for k in self.monthly_entries)
        return sorted((k for k in keys if k is not None), key=month_sort_key)


# ---------------------------------------------------------------------------
# Prepaids
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AmortizationEntry:
    amortization: Decimal
    remaining_balance: Decimal
    is_actual: bool = False
    notes: str | None = None


@dataclass(slots=True)
class Prepaid:
    """A prepaid expense amortized over ``term_months``.

    ``gl_account`` is the balance-sheet prepaid account that is credited as the
    expense is recognized; ``expense_account`` is debited.
    """

    kind: ClassVar[RecordKind] = RecordKind.PREPAID

    id: str
    vendor: str
    description: str
    initial_amount: Decimal
    start_date: date
    end_date: date
    term_months: int
    monthly_amortization: Decimal
    current_balance: Decimal
    amortization_schedule: dict[str, AmortizationEntry] = field(default_factory=dict)
    gl_account: str = "12100"
    expense_account: str = "61200"
    is_active: bool = True
    notes: str | None = None

    @property
    def is_fully_amortized(self) -> bool:
        return self.current_balance <= Decimal("0.01")

    @property
    def amortized_to_date(self) -> Decimal:
        return self.initial_amount - self.current_balance

    def schedule_for(self, key: str | date) -> Decimal:
        entry = _short_lookup(self.amortization_schedule, key)
        return entry.amortization if entry is not None else ZERO

    def entry_for(self, key: str | date) -> AmortizationEntry | None:
        return _short_lookup(self.amortization_schedule, key)

    def schedule_keys(self) -> list[str]:
        keys = (normalize_month_key(k) for k in self.amortization_schedule)
        return sorted((k for k in keys if k is not None), key=month_sort_key)


type ScheduleRecord = Asset | Accrual | Prepaid


# ---------------------------------------------------------------------------
# Journal entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class JournalLine:
    """A single journal-entry line; exactly one of ``debit``/``credit`` is non-zero."""

    account: str
    debit: Decimal
    credit: Decimal
    memo: str
    entity: str
    department: str
    line_class: str
    location: str

    @property
    def amount(self) -> Decimal:
        return self.debit if self.debit else self.credit


# ---------------------------------------------------------------------------
# Validation and import results
# ---------------------------------------------------------------------------

R = TypeVar("R")


@dataclass(slots=True)
class InvalidRecord(Generic[R]):
    record: R
    reasons: list[str]
    row: int | None = None


@dataclass(slots=True)
class ValidationResult(Generic[R]):
    valid: list[R] = field(default_factory=list)
    invalid: list[InvalidRecord[R]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ImportResult(Generic[R]):
    """Outcome of an import: never raised, always returned.

    ``skipped`` counts rows dropped before mapping (empty identity column or
    no cost); ``errors`` carries file-level problems such as missing columns
    or failed store writes.
    """

    accepted: list[R] = field(default_factory=list)
    rejected: list[InvalidRecord[R]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    skipped: int = 0
    total_rows: int = 0

    @property
    def ok(self) -> bool:
        return bool(self.accepted) and not self.errors

    def summary(self) -> dict[str, int]:
        return {
            "totalRows": self.total_rows,
            "accepted": len(self.accepted),
            "rejected": len(self.rejected),
            "skipped": self.skipped,
            "warnings": len(self.warnings),
            "errors": len(self.errors),
        }


__all__ = [
    "AssetType",
    "RecordKind",
    "new_id",
    "ScheduleBearing",
    "Asset",
    "AccrualEntry",
    "Accrual",
    "AmortizationEntry",
    "Prepaid",
    "ScheduleRecord",
    "JournalLine",
    "InvalidRecord",
    "ValidationResult",
    "ImportResult",
]
