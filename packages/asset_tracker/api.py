"""Public API for the ``asset_tracker`` package.

Imports turn CSV text into validated records and never raise for bad rows:
problems land in the returned ``ImportResult`` (``rejected``, ``warnings``,
``errors``, ``skipped``). Only fatal conditions raise, as subclasses of
``AssetTrackerError``:

- ``PayloadError`` when the payload itself is the wrong type.
- ``StoreUnavailableError`` when the document store cannot be reached.
- ``RecordNotFoundError`` when an edit targets an unknown id.

Store-facing helpers (``save_import``, ``load_*``, GL balances and record
edits) take an explicit ``DocumentStore``; see ``asset_tracker.store``.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, Sequence
from datetime import date
from decimal import Decimal
from typing import Any

from .config import DEFAULT_WRITE_CONCURRENCY, JournalAccounts
from .documents import (
    COLLECTION_ACCRUALS,
    COLLECTION_ASSETS,
    COLLECTION_PREPAIDS,
    COLLECTION_SETTINGS,
    AccrualDocument,
    AssetDocument,
    GlBalancesDocument,
    PrepaidDocument,
    gl_balances_doc_id,
    parse_payload,
    record_to_payload,
    to_payload,
)
from .errors import PayloadError, RecordNotFoundError
from .ingest.adapters.accrual_csv import parse_accrual_csv
from .ingest.adapters.asset_csv import parse_asset_csv
from .ingest.naming import NameStrategy
from .logging_setup import get_logger
from .models import (
    Accrual,
    Asset,
    AssetType,
    ImportResult,
    JournalLine,
    Prepaid,
    ScheduleRecord,
)
from .parsing import normalize_month_key, to_short_key
from .pmap import p_map, p_map_settled, p_map_skip
from .reconcile import accrual_journal, active_only, depreciation_journal, prepaid_journal
from .schedule import edit_prepaid_amortization, new_asset, new_prepaid, regenerate_asset
from .store import DocumentStore
from .validation import validate_accruals, validate_assets, validate_prepaids

logger = get_logger("asset_tracker.api")

LEDGER_ACCRUALS = "accruals"
LEDGER_PREPAIDS = "prepaids"


def _require_text(csv_text: Any) -> str:
    if not isinstance(csv_text, str):
        raise PayloadError(f"CSV payload must be text, got {type(csv_text).__name__}")
    return csv_text.removeprefix("\ufeff")


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------


def import_assets(
    csv_text: str,
    *,
    asset_type: AssetType | str = AssetType.COMPUTER_EQUIPMENT,
    today: date | None = None,
    name_strategy: NameStrategy | None = None,
) -> ImportResult[Asset]:
    """Parse and validate an asset register CSV.

    Parameters
    ----------
    csv_text:
        Full CSV text. Anything other than ``str`` raises ``PayloadError``.
    asset_type:
        Type stamped on every imported asset (``computer-equipment`` or
        ``furniture``).
    today:
        Reference date for accumulated depreciation and the lenient date
        fallback. Defaults to the current date.
    name_strategy:
        Optional replacement for the default keyword-based name synthesis.

    Returns
    -------
    ImportResult[Asset]
        ``accepted`` holds valid assets in file order; parse diagnostics and
        validation warnings are merged into ``warnings``.
    """

    text = _require_text(csv_text)
    parsed = parse_asset_csv(text, asset_type=asset_type, today=today, name_strategy=name_strategy)
    checked = validate_assets(parsed.assets)
    result: ImportResult[Asset] = ImportResult(
        accepted=checked.valid,
        rejected=checked.invalid,
        warnings=[*parsed.warnings, *checked.warnings],
        errors=list(parsed.errors),
        skipped=parsed.skipped,
        total_rows=parsed.total_rows,
    )
    logger.info("import_assets: %s", result.summary())
    return result


def import_accruals(csv_text: str) -> ImportResult[Accrual]:
    """Parse and validate an accrued-expense schedule CSV."""

    text = _require_text(csv_text)
    parsed = parse_accrual_csv(text)
    checked = validate_accruals(parsed.accruals)
    result: ImportResult[Accrual] = ImportResult(
        accepted=checked.valid,
        rejected=checked.invalid,
        warnings=[*parsed.warnings, *checked.warnings],
        errors=list(parsed.errors),
        skipped=parsed.skipped,
        total_rows=parsed.total_rows,
    )
    logger.info("import_accruals: %s", result.summary())
    return result


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def _collection_for(record: ScheduleRecord) -> str:
    if isinstance(record, Asset):
        return COLLECTION_ASSETS
    if isinstance(record, Accrual):
        return COLLECTION_ACCRUALS
    if isinstance(record, Prepaid):
        return COLLECTION_PREPAIDS
    raise PayloadError(f"unsupported record type: {type(record).__name__}")


def _clear_collection(
    store: DocumentStore,
    collection: str,
    *,
    asset_type: AssetType | None,
    concurrency: int,
) -> int:
    def _delete(doc: dict[str, Any]) -> str | object:
        if asset_type is not None and doc.get("asset_type", AssetType.COMPUTER_EQUIPMENT) != asset_type:
            return p_map_skip
        store.delete(collection, doc["id"])
        return doc["id"]

    return len(p_map(store.get(collection), _delete, concurrency=concurrency))


def save_import(
    store: DocumentStore,
    result: ImportResult[ScheduleRecord],
    *,
    clear_existing: bool = False,
    concurrency: int = DEFAULT_WRITE_CONCURRENCY,
) -> ImportResult[ScheduleRecord]:
    """Write ``result.accepted`` to ``store`` in concurrent batches.

    With ``clear_existing`` the target collection is emptied first; for assets
    only records of the imported asset type are removed. A failed write moves
    its record out of ``accepted`` and adds a message to ``errors``.
    """

    if not result.accepted:
        return result

    collection = _collection_for(result.accepted[0])
    if clear_existing:
        asset_type = result.accepted[0].asset_type if collection == COLLECTION_ASSETS else None
        deleted = _clear_collection(store, collection, asset_type=asset_type, concurrency=concurrency)
        logger.info("save_import: cleared %d existing %s", deleted, collection)

    def _write(record: ScheduleRecord) -> str:
        return store.add(collection, record_to_payload(record))

    outcomes = p_map_settled(result.accepted, _write, concurrency=concurrency)
    saved: list[ScheduleRecord] = []
    errors = list(result.errors)
    for outcome in outcomes:
        if outcome.ok:
            saved.append(outcome.item)
        else:
            logger.warning("save_import: failed to write %s: %s", outcome.item.id, outcome.error)
            errors.append(f"Failed to save {outcome.item.id}: {outcome.error}")

    logger.info("save_import: wrote %d/%d %s", len(saved), len(outcomes), collection)
    return dataclasses.replace(result, accepted=saved, errors=errors)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_assets(store: DocumentStore, asset_type: AssetType | str | None = None) -> list[Asset]:
    assets = [parse_payload(AssetDocument, doc).to_record() for doc in store.get(COLLECTION_ASSETS)]
    if asset_type is not None:
        wanted = AssetType.parse(asset_type)
        assets = [a for a in assets if a.asset_type == wanted]
    return assets


def load_accruals(store: DocumentStore, include_inactive: bool = False) -> list[Accrual]:
    accruals = [parse_payload(AccrualDocument, doc).to_record() for doc in store.get(COLLECTION_ACCRUALS)]
    return accruals if include_inactive else active_only(accruals)


def load_prepaids(store: DocumentStore, include_inactive: bool = False) -> list[Prepaid]:
    prepaids = [parse_payload(PrepaidDocument, doc).to_record() for doc in store.get(COLLECTION_PREPAIDS)]
    return prepaids if include_inactive else active_only(prepaids)


# ---------------------------------------------------------------------------
# GL balances
# ---------------------------------------------------------------------------


def ledger_name(ledger: str) -> str:
    """Canonical ledger id: ``accruals``, ``prepaids`` or an asset type value."""

    name = str(ledger).strip().lower()
    if name in (LEDGER_ACCRUALS, LEDGER_PREPAIDS):
        return name
    return AssetType.parse(name).value


def get_gl_balances(store: DocumentStore, ledger: str) -> dict[str, Decimal]:
    """Return the stored month -> GL balance mapping for ``ledger`` (or ``{}``)."""

    ledger = ledger_name(ledger)
    try:
        doc = store.get_one(COLLECTION_SETTINGS, gl_balances_doc_id(ledger))
    except RecordNotFoundError:
        return {}
    return dict(parse_payload(GlBalancesDocument, doc).balances)


def set_gl_balances(
    store: DocumentStore,
    ledger: str,
    balances: Mapping[str, Decimal],
    *,
    merge: bool = True,
) -> dict[str, Decimal]:
    """Store GL balances for ``ledger``; with ``merge`` existing months are kept."""

    ledger = ledger_name(ledger)
    current = get_gl_balances(store, ledger) if merge else {}
    current.update(parse_payload(GlBalancesDocument, {"ledger": ledger, "balances": dict(balances)}).balances)
    doc = GlBalancesDocument(ledger=ledger, balances=current)
    store.put(COLLECTION_SETTINGS, doc.doc_id, to_payload(doc))
    return dict(doc.balances)


# ---------------------------------------------------------------------------
# Record edits
# ---------------------------------------------------------------------------


def add_asset(
    store: DocumentStore,
    *,
    name: str,
    date_in_place: date,
    cost: Decimal,
    life_months: int,
    account: str,
    department: str,
    asset_type: AssetType | str = AssetType.COMPUTER_EQUIPMENT,
    today: date | None = None,
) -> ImportResult[Asset]:
    """Build, strictly validate and store a manually entered asset."""

    asset = new_asset(
        name=name,
        date_in_place=date_in_place,
        cost=cost,
        life_months=life_months,
        account=account,
        department=department,
        asset_type=asset_type,
        today=today or date.today(),
    )
    checked = validate_assets([asset], strict=True)
    result: ImportResult[Asset] = ImportResult(total_rows=1)
    result.rejected.extend(checked.invalid)
    result.warnings.extend(checked.warnings)
    for valid in checked.valid:
        store.put(COLLECTION_ASSETS, valid.id, record_to_payload(valid))
        result.accepted.append(valid)
    return result


def update_asset(
    store: DocumentStore,
    asset_id: str,
    *,
    date_in_place: date | None = None,
    life_months: int | None = None,
    today: date | None = None,
) -> Asset:
    """Change an asset's date in place and/or life and rebuild its schedule."""

    doc = store.get_one(COLLECTION_ASSETS, asset_id)
    asset = parse_payload(AssetDocument, doc).to_record()
    updated = regenerate_asset(
        asset,
        date_in_place=date_in_place,
        life_months=life_months,
        today=today or date.today(),
    )
    store.put(COLLECTION_ASSETS, asset_id, record_to_payload(updated))
    logger.info("update_asset: %s regenerated (%d months)", asset_id, updated.life_months)
    return updated


def add_prepaid(
    store: DocumentStore,
    *,
    vendor: str,
    description: str,
    initial_amount: Decimal,
    start_date: date,
    term_months: int,
    gl_account: str = "12100",
    expense_account: str = "61200",
    notes: str | None = None,
) -> ImportResult[Prepaid]:
    """Build, validate and store a prepaid with a straight-line schedule."""

    prepaid = new_prepaid(
        vendor=vendor,
        description=description,
        initial_amount=initial_amount,
        start_date=start_date,
        term_months=term_months,
        gl_account=gl_account,
        expense_account=expense_account,
        notes=notes,
    )
    checked = validate_prepaids([prepaid])
    result: ImportResult[Prepaid] = ImportResult(
        rejected=checked.invalid, warnings=checked.warnings, total_rows=1
    )
    for valid in checked.valid:
        store.put(COLLECTION_PREPAIDS, valid.id, record_to_payload(valid))
        result.accepted.append(valid)
    return result


def edit_prepaid(store: DocumentStore, prepaid_id: str, key: str | date, amount: Decimal) -> Prepaid:
    """Record an actual amortization amount for one month of a prepaid.

    Raises ``ValueError`` when ``key`` is not a month of the prepaid's
    schedule.
    """

    doc = store.get_one(COLLECTION_PREPAIDS, prepaid_id)
    prepaid = parse_payload(PrepaidDocument, doc).to_record()
    short = to_short_key(key)
    if short is None or short not in prepaid.amortization_schedule:
        raise ValueError(f"{key} is not in the amortization schedule of {prepaid_id}")
    updated = edit_prepaid_amortization(prepaid, short, amount)
    store.put(COLLECTION_PREPAIDS, prepaid_id, record_to_payload(updated))
    return updated


# ---------------------------------------------------------------------------
# Ledgers
# ---------------------------------------------------------------------------


def load_ledger(store: DocumentStore, ledger: str) -> Sequence[ScheduleRecord]:
    """Load the active records of ``ledger`` (an asset type, ``accruals`` or ``prepaids``)."""

    ledger = ledger_name(ledger)
    if ledger == LEDGER_ACCRUALS:
        return load_accruals(store)
    if ledger == LEDGER_PREPAIDS:
        return load_prepaids(store)
    return load_assets(store, AssetType.parse(ledger))


def journal_for(
    store: DocumentStore,
    ledger: str,
    key: str | date,
    *,
    accounts: JournalAccounts | None = None,
) -> list[JournalLine]:
    """Build the balanced journal entry for ``ledger`` and month ``key``."""

    if normalize_month_key(key) is None:
        raise ValueError(f"invalid month key {key!r}")
    ledger = ledger_name(ledger)
    records = load_ledger(store, ledger)
    if ledger == LEDGER_ACCRUALS:
        return accrual_journal(records, key, accounts=accounts)
    if ledger == LEDGER_PREPAIDS:
        return prepaid_journal(records, key, accounts=accounts)
    return depreciation_journal(records, key, accounts=accounts)


__all__ = [
    "LEDGER_ACCRUALS",
    "LEDGER_PREPAIDS",
    "import_assets",
    "import_accruals",
    "save_import",
    "load_assets",
    "load_accruals",
    "load_prepaids",
    "ledger_name",
    "get_gl_balances",
    "set_gl_balances",
    "add_asset",
    "update_asset",
    "add_prepaid",
    "edit_prepaid",
    "load_ledger",
    "journal_for",
]
