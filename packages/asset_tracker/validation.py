"""Record validation.

Validators never raise. Each ``validate_*s`` function partitions its input
into valid records and ``InvalidRecord`` entries carrying human-readable
reasons, and collects non-blocking warnings (balance mismatches, schedules
that do not sum to the principal). Every input record lands in exactly one of
``valid``/``invalid``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from decimal import Decimal

from .models import Accrual, Asset, InvalidRecord, Prepaid, ValidationResult
from .parsing import format_amount

ACCOUNT_CODE_RE = re.compile(r"^\d{4,6}$")
MAX_VENDOR_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 255
MAX_NOTES_LENGTH = 1000
MAX_ENTRY_NOTES_LENGTH = 500
BALANCE_TOLERANCE = Decimal("0.01")


def _is_finite(value: object) -> bool:
    return isinstance(value, Decimal) and value.is_finite()


# ---------------------------------------------------------------------------
# Assets
# ---------------------------------------------------------------------------


def asset_errors(asset: Asset, *, strict: bool = False) -> list[str]:
    """Return the reasons ``asset`` is invalid (empty when valid).

    ``strict`` is used for manual entry, where a zero cost is rejected.
    """

    reasons: list[str] = []
    if not (asset.name or "").strip():
        reasons.append("name: asset name is required")
    if asset.date_in_place is None:
        reasons.append("date_in_place: date in place is required")
    if not _is_finite(asset.cost):
        reasons.append("cost: cost must be a number")
    elif strict and asset.cost <= 0:
        reasons.append("cost: cost must be greater than 0")
    elif asset.cost < 0:
        reasons.append("cost: cost cannot be negative")
    if isinstance(asset.life_months, bool) or not isinstance(asset.life_months, int):
        reasons.append("life_months: life must be a whole number of months")
    elif asset.life_months <= 0:
        reasons.append("life_months: life must be greater than 0")
    if strict:
        if not (asset.account or "").strip():
            reasons.append("account: account is required")
        if not (asset.department or "").strip():
            reasons.append("department: department is required")
    return reasons


def validate_assets(assets: Iterable[Asset], *, strict: bool = False) -> ValidationResult[Asset]:
    result: ValidationResult[Asset] = ValidationResult()
    for asset in assets:
        reasons = asset_errors(asset, strict=strict)
        if reasons:
            result.invalid.append(InvalidRecord(asset, reasons))
            continue
        total = asset.scheduled_total()
        if total > asset.cost:
            result.warnings.append(
                f"{asset.name}: scheduled depreciation {format_amount(total)} exceeds cost "
                f"{format_amount(asset.cost)}"
            )
        result.valid.append(asset)
    return result


# ---------------------------------------------------------------------------
# Accruals
# ---------------------------------------------------------------------------


def _ledger_errors(vendor: str, description: str, dr: str, cr: str, notes: str | None) -> list[str]:
    reasons: list[str] = []
    vendor = vendor or ""
    if not vendor.strip():
        reasons.append("vendor: vendor name is required")
    elif len(vendor) > MAX_VENDOR_LENGTH:
        reasons.append(f"vendor: must be at most {MAX_VENDOR_LENGTH} characters")
    if description and len(description) > MAX_DESCRIPTION_LENGTH:
        reasons.append(f"description: must be at most {MAX_DESCRIPTION_LENGTH} characters")
    if dr and not ACCOUNT_CODE_RE.match(dr.strip()):
        reasons.append(f"account_dr: invalid debit account code {dr!r} (expected 4-6 digits)")
    if cr and not ACCOUNT_CODE_RE.match(cr.strip()):
        reasons.append(f"account_cr: invalid credit account code {cr!r} (expected 4-6 digits)")
    if notes and len(notes) > MAX_NOTES_LENGTH:
        reasons.append(f"notes: must be at most {MAX_NOTES_LENGTH} characters")
    return reasons


def accrual_errors(accrual: Accrual) -> list[str]:
    reasons = _ledger_errors(
        accrual.vendor,
        accrual.description,
        accrual.account_dr,
        accrual.account_cr,
        accrual.notes,
    )
    if not _is_finite(accrual.balance):
        reasons.append("balance: balance must be a number")
    for key, entry in accrual.monthly_entries.items():
        if not _is_finite(entry.reversal):
            reasons.append(f"monthly_entries.{key}.reversal: must be a number")
        if not _is_finite(entry.accrual):
            reasons.append(f"monthly_entries.{key}.accrual: must be a number")
        if entry.notes and len(entry.notes) > MAX_ENTRY_NOTES_LENGTH:
            reasons.append(
                f"monthly_entries.{key}.notes: must be at most {MAX_ENTRY_NOTES_LENGTH} characters"
            )
    return reasons


def accrual_balance_warning(accrual: Accrual) -> str | None:
    calculated = accrual.computed_balance()
    if abs(calculated - accrual.balance) > BALANCE_TOLERANCE:
        return (
            f"{accrual.vendor}: balance mismatch, provided {format_amount(accrual.balance)} "
            f"vs calculated {format_amount(calculated)}"
        )
    return None


def validate_accruals(accruals: Iterable[Accrual]) -> ValidationResult[Accrual]:
    result: ValidationResult[Accrual] = ValidationResult()
    for accrual in accruals:
        reasons = accrual_errors(accrual)
        if reasons:
            result.invalid.append(InvalidRecord(accrual, reasons))
            continue
        warning = accrual_balance_warning(accrual)
        if warning:
            result.warnings.append(warning)
        result.valid.append(accrual)
    return result


# ---------------------------------------------------------------------------
# Prepaids
# ---------------------------------------------------------------------------


def prepaid_errors(prepaid: Prepaid) -> list[str]:
    reasons = _ledger_errors(
        prepaid.vendor,
        prepaid.description,
        prepaid.expense_account,
        prepaid.gl_account,
        prepaid.notes,
    )
    if not _is_finite(prepaid.initial_amount) or prepaid.initial_amount <= 0:
        reasons.append("initial_amount: must be greater than 0")
    if isinstance(prepaid.term_months, bool) or not isinstance(prepaid.term_months, int):
        reasons.append("term_months: term must be a whole number of months")
    elif prepaid.term_months <= 0:
        reasons.append("term_months: term must be greater than 0")
    return reasons


def validate_prepaids(prepaids: Iterable[Prepaid]) -> ValidationResult[Prepaid]:
    result: ValidationResult[Prepaid] = ValidationResult()
    for prepaid in prepaids:
        reasons = prepaid_errors(prepaid)
        if reasons:
            result.invalid.append(InvalidRecord(prepaid, reasons))
            continue
        scheduled = sum(
            (e.amortization for e in prepaid.amortization_schedule.values()), Decimal("0")
        )
        if abs(scheduled - prepaid.initial_amount) > BALANCE_TOLERANCE:
            result.warnings.append(
                f"{prepaid.vendor}: amortization schedule totals {format_amount(scheduled)} "
                f"but initial amount is {format_amount(prepaid.initial_amount)}"
            )
        result.valid.append(prepaid)
    return result


__all__ = [
    "ACCOUNT_CODE_RE",
    "BALANCE_TOLERANCE",
    "asset_errors",
    "validate_assets",
    "accrual_errors",
    "accrual_balance_warning",
    "validate_accruals",
    "prepaid_errors",
    "validate_prepaids",
]
