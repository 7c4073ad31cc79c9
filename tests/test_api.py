from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from asset_tracker import api
from asset_tracker.errors import PayloadError, RecordNotFoundError, StoreUnavailableError
from asset_tracker.models import AssetType
from asset_tracker.store import InMemoryStore
from tests.helpers.db import count_documents, sqlite_store

TODAY = date(2025, 6, 15)

ASSETS_CSV = (
    "\ufeffMemo/Description,Payee (Name),Class/Department,Cost,# of life (months),"
    "Date in place (Mid-month convention)\n"
    "Laptop,Apple,Engineering,1200.00,12,1/1/25\n"
    "Desk,Uplift,Sales,600.00,12,1/1/25\n"
    "Monitor,Dell,Sales,,12,1/1/25\n"
)

ACCRUALS_CSV = (
    "Vendor,Description,Accrual JE Account (DR),Accrual JE Account (CR),1/1/25,1/31/25\n"
    "Acme Legal,Legal fees,61000,20005,0,1000.00\n"
    "Cloud Co,Hosting,61500,,0,250.00\n"
)


class FlakyStore(InMemoryStore):
    """Fails every write for the listed document ids."""

    def __init__(self, failing: set[str]) -> None:
        super().__init__()
        self.failing = failing

    def add(self, collection, record):
        if record.get("id") in self.failing:
            raise StoreUnavailableError("disk full")
        return super().add(collection, record)


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("payload", [None, b"Memo,Cost\n", 42, ["a,b"]])
def test_non_text_payload_raises(payload):
    with pytest.raises(PayloadError):
        api.import_assets(payload)
    with pytest.raises(PayloadError):
        api.import_accruals(payload)


def test_import_assets_strips_bom_and_counts_rows():
    result = api.import_assets(ASSETS_CSV, asset_type="furniture", today=TODAY)

    assert [a.name for a in result.accepted] == ["Laptop (Apple)", "Desk (Uplift)"]
    assert {a.asset_type for a in result.accepted} == {AssetType.FURNITURE}
    assert result.rejected == []
    assert result.skipped == 1
    assert result.warnings == ["Row 4: no cost data; skipped"]
    assert result.summary()["totalRows"] == 3
    assert result.ok


def test_save_import_round_trip_through_memory_store():
    store = InMemoryStore()
    saved = api.save_import(store, api.import_assets(ASSETS_CSV, today=TODAY), concurrency=2)

    assert saved.errors == []
    loaded = api.load_assets(store)
    assert sorted(a.name for a in loaded) == ["Desk (Uplift)", "Laptop (Apple)"]
    assert {a.id for a in loaded} == {a.id for a in saved.accepted}
    assert api.load_assets(store, "furniture") == []


def test_save_import_reports_failed_writes():
    result = api.import_accruals(ACCRUALS_CSV)
    failing_id = result.accepted[1].id
    store = FlakyStore({failing_id})

    saved = api.save_import(store, result)

    assert [a.vendor for a in saved.accepted] == ["Acme Legal"]
    assert saved.errors == [f"Failed to save {failing_id}: disk full"]
    assert [a.vendor for a in api.load_accruals(store)] == ["Acme Legal"]


def test_save_import_with_nothing_accepted_is_a_no_op():
    store = InMemoryStore()
    result = api.import_accruals("Vendor,Description\n")
    assert api.save_import(store, result) is result
    assert store.get("accruals") == []


def test_clear_existing_replaces_only_matching_asset_type():
    store = InMemoryStore()
    api.save_import(store, api.import_assets(ASSETS_CSV, asset_type="furniture", today=TODAY))
    api.save_import(store, api.import_assets(ASSETS_CSV, today=TODAY))
    assert len(store.get("assets")) == 4

    api.save_import(store, api.import_assets(ASSETS_CSV, today=TODAY), clear_existing=True)
    assert len(api.load_assets(store, AssetType.FURNITURE)) == 2
    assert len(api.load_assets(store, AssetType.COMPUTER_EQUIPMENT)) == 2


def test_clear_existing_accruals_clears_whole_collection():
    store = InMemoryStore()
    api.save_import(store, api.import_accruals(ACCRUALS_CSV))
    api.save_import(store, api.import_accruals(ACCRUALS_CSV), clear_existing=True)
    assert len(store.get("accruals")) == 2


def test_save_import_against_sqlite(tmp_path: Path):
    store = sqlite_store(tmp_path / "api.db")
    saved = api.save_import(store, api.import_accruals(ACCRUALS_CSV), concurrency=1)

    assert len(saved.accepted) == 2
    assert count_documents(store.database_url, "accruals") == 2
    assert {a.vendor: a.balance for a in api.load_accruals(store)} == {
        "Acme Legal": Decimal("1000.00"),
        "Cloud Co": Decimal("250.00"),
    }


# ---------------------------------------------------------------------------
# GL balances and ledgers
# ---------------------------------------------------------------------------


def test_gl_balances_merge_by_default():
    store = InMemoryStore()
    assert api.get_gl_balances(store, "accruals") == {}

    api.set_gl_balances(store, "accruals", {"1/25": Decimal("1000")})
    merged = api.set_gl_balances(store, "Accruals", {"2025-02-01": Decimal("1250")})
    assert merged == {"2025-01-01": Decimal("1000"), "2025-02-01": Decimal("1250")}
    assert api.get_gl_balances(store, "accruals") == merged

    replaced = api.set_gl_balances(store, "accruals", {"3/25": Decimal("5")}, merge=False)
    assert replaced == {"2025-03-01": Decimal("5")}


def test_ledger_names():
    assert api.ledger_name(" Accruals ") == "accruals"
    assert api.ledger_name("prepaids") == "prepaids"
    assert api.ledger_name("Furniture") == "furniture"
    assert api.ledger_name("computer equipment") == "computer-equipment"
    with pytest.raises(ValueError):
        api.ledger_name("vehicles")


def test_journal_for_each_ledger():
    store = InMemoryStore()
    for name, cost, dept in (("Laptop", "1200", "Engineering"), ("Desk", "600", "Sales")):
        api.add_asset(
            store,
            name=name,
            date_in_place=date(2025, 1, 1),
            cost=Decimal(cost),
            life_months=12,
            account="15000",
            department=dept,
            today=TODAY,
        )
    # Imported registers without schedule columns carry no depreciation.
    api.save_import(store, api.import_assets(ASSETS_CSV, asset_type="furniture", today=TODAY))
    api.save_import(store, api.import_accruals(ACCRUALS_CSV))
    api.add_prepaid(
        store,
        vendor="Insurance Co",
        description="Policy",
        initial_amount=Decimal("1200"),
        start_date=date(2025, 1, 1),
        term_months=12,
    )

    dep = api.journal_for(store, "computer-equipment", "1/25")
    assert sum(ln.debit for ln in dep) == Decimal("150.00")
    assert api.journal_for(store, "furniture", "1/25") == []

    acc = api.journal_for(store, "accruals", "2025-01-01")
    assert sum(ln.debit for ln in acc) == Decimal("1250.00")
    assert {ln.account for ln in acc if ln.credit} == {"20005"}

    pre = api.journal_for(store, "prepaids", "1/25")
    assert [(ln.account, ln.debit) for ln in pre if ln.debit] == [("61200", Decimal("100.00"))]

    with pytest.raises(ValueError):
        api.journal_for(store, "accruals", "Balance")


# ---------------------------------------------------------------------------
# Record edits
# ---------------------------------------------------------------------------


def test_add_asset_strict_validation():
    store = InMemoryStore()
    ok = api.add_asset(
        store,
        name="Laptop",
        date_in_place=date(2025, 1, 1),
        cost=Decimal("1200"),
        life_months=12,
        account="15000",
        department="Engineering",
        today=TODAY,
    )
    assert ok.ok
    assert api.load_assets(store) == ok.accepted

    zero_life = api.add_asset(
        store,
        name="Desk",
        date_in_place=date(2025, 1, 1),
        cost=Decimal("600"),
        life_months=0,
        account="15000",
        department="",
        today=TODAY,
    )
    assert zero_life.accepted == []
    assert zero_life.rejected[0].reasons == [
        "life_months: life must be greater than 0",
        "department: department is required",
    ]
    assert len(store.get("assets")) == 1


def test_update_asset_rebuilds_schedule():
    store = InMemoryStore()
    asset = api.add_asset(
        store,
        name="Laptop",
        date_in_place=date(2025, 1, 1),
        cost=Decimal("1200"),
        life_months=12,
        account="15000",
        department="Engineering",
        today=TODAY,
    ).accepted[0]

    updated = api.update_asset(store, asset.id, life_months=24, today=TODAY)
    assert updated.monthly_dep == Decimal("50.00")
    assert len(updated.dep_schedule) == 24
    assert api.load_assets(store) == [updated]

    with pytest.raises(RecordNotFoundError):
        api.update_asset(store, "asset_missing", life_months=12, today=TODAY)


def test_edit_prepaid_persists_actual_amount():
    store = InMemoryStore()
    prepaid = api.add_prepaid(
        store,
        vendor="Insurance Co",
        description="Policy",
        initial_amount=Decimal("12000"),
        start_date=date(2025, 1, 1),
        term_months=12,
    ).accepted[0]

    edited = api.edit_prepaid(store, prepaid.id, "3/25", Decimal("1500"))
    assert edited.amortization_schedule["3/25"].remaining_balance == Decimal("8500.00")
    assert edited.current_balance == Decimal("0.00")
    assert api.load_prepaids(store) == [edited]

    with pytest.raises(ValueError):
        api.edit_prepaid(store, prepaid.id, "1/26", Decimal("1"))
    with pytest.raises(RecordNotFoundError):
        api.edit_prepaid(store, "prepaid_missing", "1/25", Decimal("1"))


def test_add_prepaid_rejects_invalid_accounts():
    store = InMemoryStore()
    result = api.add_prepaid(
        store,
        vendor="Insurance Co",
        description="Policy",
        initial_amount=Decimal("1200"),
        start_date=date(2025, 1, 1),
        term_months=12,
        gl_account="prepaid",
    )
    assert result.accepted == []
    assert result.rejected[0].reasons == ["account_cr: invalid credit account code 'prepaid' (expected 4-6 digits)"]
    assert store.get("prepaids") == []
