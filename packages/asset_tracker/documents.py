"""Typed store documents (pydantic) and record <-> payload conversion.

Records are persisted as JSON payloads. Money is serialized as a string
(``"1517.21"``) so the ``Decimal`` value survives the round trip exactly, and
dates as ISO strings. Payloads read back from a store are validated here
before they become domain records; a malformed payload raises
``PayloadError``.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import PayloadError
from .models import (
    Accrual,
    AccrualEntry,
    AmortizationEntry,
    Asset,
    AssetType,
    Prepaid,
)
from .parsing import normalize_month_key, to_cents, to_short_key

COLLECTION_ASSETS = "assets"
COLLECTION_ACCRUALS = "accruals"
COLLECTION_PREPAIDS = "prepaids"
COLLECTION_SETTINGS = "settings"

_DOC_CONFIG = ConfigDict(extra="ignore", str_strip_whitespace=True)


def _canonical_keys(v: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in v.items():
        canonical = normalize_month_key(key)
        if canonical is None:
            raise ValueError(f"invalid month key {key!r}")
        out[canonical] = value
    return out


def _short_keys(v: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in v.items():
        short = to_short_key(key)
        if short is None:
            raise ValueError(f"invalid month key {key!r}")
        out[short] = value
    return out


# ---------------------------------------------------------------------------
# Assets
# ---------------------------------------------------------------------------


class AssetDocument(BaseModel):
    model_config = _DOC_CONFIG

    id: str = Field(min_length=1)
    name: str
    date_in_place: date
    account: str
    department: str
    cost: Decimal
    life_months: int
    monthly_dep: Decimal
    accum_dep: Decimal
    nbv: Decimal
    asset_type: AssetType = AssetType.COMPUTER_EQUIPMENT
    dep_schedule: dict[str, Decimal] = Field(default_factory=dict)

    @field_validator("dep_schedule", mode="before")
    @classmethod
    def _normalize_schedule(cls, v: Any) -> Any:
        return _canonical_keys(v) if isinstance(v, Mapping) else v

    @classmethod
    def from_record(cls, asset: Asset) -> AssetDocument:
        return cls(
            id=asset.id,
            name=asset.name,
            date_in_place=asset.date_in_place,
            account=asset.account,
            department=asset.department,
            cost=asset.cost,
            life_months=asset.life_months,
            monthly_dep=asset.monthly_dep,
            accum_dep=asset.accum_dep,
            nbv=asset.nbv,
            asset_type=asset.asset_type,
            dep_schedule=dict(asset.dep_schedule),
        )

    def to_record(self) -> Asset:
        return Asset(
            id=self.id,
            name=self.name,
            date_in_place=self.date_in_place,
            account=self.account,
            department=self.department,
            cost=to_cents(self.cost),
            life_months=self.life_months,
            monthly_dep=to_cents(self.monthly_dep),
            accum_dep=to_cents(self.accum_dep),
            nbv=to_cents(self.nbv),
            asset_type=self.asset_type,
            dep_schedule={k: to_cents(v) for k, v in self.dep_schedule.items()},
        )


# ---------------------------------------------------------------------------
# Accruals
# ---------------------------------------------------------------------------


class AccrualEntryDocument(BaseModel):
    model_config = _DOC_CONFIG

    reversal: Decimal = Decimal("0")
    accrual: Decimal = Decimal("0")
    notes: str | None = None


class AccrualDocument(BaseModel):
    model_config = _DOC_CONFIG

    id: str = Field(min_length=1)
    vendor: str
    description: str = ""
    account_dr: str = ""
    account_cr: str = ""
    balance: Decimal = Decimal("0")
    monthly_entries: dict[str, AccrualEntryDocument] = Field(default_factory=dict)
    is_active: bool = True
    notes: str | None = None

    @field_validator("monthly_entries", mode="before")
    @classmethod
    def _normalize_entries(cls, v: Any) -> Any:
        return _short_keys(v) if isinstance(v, Mapping) else v

    @classmethod
    def from_record(cls, accrual: Accrual) -> AccrualDocument:
        return cls(
            id=accrual.id,
            vendor=accrual.vendor,
            description=accrual.description,
            account_dr=accrual.account_dr,
            account_cr=accrual.account_cr,
            balance=accrual.balance,
            monthly_entries={
                k: AccrualEntryDocument(reversal=e.reversal, accrual=e.accrual, notes=e.notes)
                for k, e in accrual.monthly_entries.items()
            },
            is_active=accrual.is_active,
            notes=accrual.notes,
        )

    def to_record(self) -> Accrual:
        return Accrual(
            id=self.id,
            vendor=self.vendor,
            description=self.description,
            account_dr=self.account_dr,
            account_cr=self.account_cr,
            balance=to_cents(self.balance),
            monthly_entries={
                k: AccrualEntry(reversal=to_cents(e.reversal), accrual=to_cents(e.accrual), notes=e.notes)
                for k, e in self.monthly_entries.items()
            },
            is_active=self.is_active,
            notes=self.notes,
        )


# ---------------------------------------------------------------------------
# Prepaids
# ---------------------------------------------------------------------------


class AmortizationEntryDocument(BaseModel):
    model_config = _DOC_CONFIG

    amortization: Decimal
    remaining_balance: Decimal
    is_actual: bool = False
    notes: str | None = None


class PrepaidDocument(BaseModel):
    model_config = _DOC_CONFIG

    id: str = Field(min_length=1)
    vendor: str
    description: str = ""
    initial_amount: Decimal
    start_date: date
    end_date: date
    term_months: int
    monthly_amortization: Decimal
    current_balance: Decimal
    amortization_schedule: dict[str, AmortizationEntryDocument] = Field(default_factory=dict)
    gl_account: str = "12100"
    expense_account: str = "61200"
    is_active: bool = True
    notes: str | None = None

    @field_validator("amortization_schedule", mode="before")
    @classmethod
    def _normalize_schedule(cls, v: Any) -> Any:
        return _short_keys(v) if isinstance(v, Mapping) else v

    @classmethod
    def from_record(cls, prepaid: Prepaid) -> PrepaidDocument:
        return cls(
            id=prepaid.id,
            vendor=prepaid.vendor,
            description=prepaid.description,
            initial_amount=prepaid.initial_amount,
            start_date=prepaid.start_date,
            end_date=prepaid.end_date,
            term_months=prepaid.term_months,
            monthly_amortization=prepaid.monthly_amortization,
            current_balance=prepaid.current_balance,
            amortization_schedule={
                k: AmortizationEntryDocument(
                    amortization=e.amortization,
                    remaining_balance=e.remaining_balance,
                    is_actual=e.is_actual,
                    notes=e.notes,
                )
                for k, e in prepaid.amortization_schedule.items()
            },
            gl_account=prepaid.gl_account,
            expense_account=prepaid.expense_account,
            is_active=prepaid.is_active,
            notes=prepaid.notes,
        )

    def to_record(self) -> Prepaid:
        return Prepaid(
            id=self.id,
            vendor=self.vendor,
            description=self.description,
            initial_amount=to_cents(self.initial_amount),
            start_date=self.start_date,
            end_date=self.end_date,
            term_months=self.term_months,
            monthly_amortization=to_cents(self.monthly_amortization),
            current_balance=to_cents(self.current_balance),
            amortization_schedule={
                k: AmortizationEntry(
                    amortization=to_cents(e.amortization),
                    remaining_balance=to_cents(e.remaining_balance),
                    is_actual=e.is_actual,
                    notes=e.notes,
                )
                for k, e in self.amortization_schedule.items()
            },
            gl_account=self.gl_account,
            expense_account=self.expense_account,
            is_active=self.is_active,
            notes=self.notes,
        )


# ---------------------------------------------------------------------------
# Settings: GL balances
# ---------------------------------------------------------------------------


class GlBalancesDocument(BaseModel):
    """GL balances for one ledger (an asset type, ``accruals`` or ``prepaids``)."""

    model_config = _DOC_CONFIG

    ledger: str = Field(min_length=1)
    balances: dict[str, Decimal] = Field(default_factory=dict)

    @field_validator("balances", mode="before")
    @classmethod
    def _normalize_balances(cls, v: Any) -> Any:
        return _canonical_keys(v) if isinstance(v, Mapping) else v

    @property
    def doc_id(self) -> str:
        return gl_balances_doc_id(self.ledger)


def gl_balances_doc_id(ledger: str) -> str:
    return f"gl-balances:{ledger}"


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------

DocT = TypeVar("DocT", bound=BaseModel)


def parse_payload(model: type[DocT], payload: Any) -> DocT:
    """Validate a stored payload, raising ``PayloadError`` on any mismatch."""

    if not isinstance(payload, Mapping):
        raise PayloadError(f"{model.__name__}: payload must be a mapping, got {type(payload).__name__}")
    try:
        return model.model_validate(dict(payload))
    except ValidationError as exc:
        raise PayloadError(f"{model.__name__}: {exc}") from exc


def to_payload(document: BaseModel) -> dict[str, Any]:
    return document.model_dump(mode="json")


def record_to_payload(record: Asset | Accrual | Prepaid) -> dict[str, Any]:
    if isinstance(record, Asset):
        return to_payload(AssetDocument.from_record(record))
    if isinstance(record, Accrual):
        return to_payload(AccrualDocument.from_record(record))
    if isinstance(record, Prepaid):
        return to_payload(PrepaidDocument.from_record(record))
    raise PayloadError(f"unsupported record type: {type(record).__name__}")


__all__ = [
    "COLLECTION_ASSETS",
    "COLLECTION_ACCRUALS",
    "COLLECTION_PREPAIDS",
    "COLLECTION_SETTINGS",
    "AssetDocument",
    "AccrualEntryDocument",
    "AccrualDocument",
    "AmortizationEntryDocument",
    "PrepaidDocument",
    "GlBalancesDocument",
    "gl_balances_doc_id",
    "parse_payload",
    "to_payload",
    "record_to_payload",
]
