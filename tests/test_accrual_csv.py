# ruff: noqa: E501
from __future__ import annotations

import textwrap
from decimal import Decimal

from asset_tracker.api import import_accruals
from asset_tracker.ingest.adapters.accrual_csv import parse_accrual_csv, resolve_columns
from asset_tracker.models import AccrualEntry


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n").rstrip()


ACCRUALS_CSV = _dedent(
    """
    Accrued Expenses Schedule
    As of 3/31/25
    Vendor,Description,Accrual JE Account (DR),Accrual JE Account (CR),1/1/25,1/31/25,2/1/25,2/28/25,3/31/25,Balance
    Acme Legal,Legal fees,61000,20005,0,"1,000.00","(1,000.00)","1,500.00",,"1,500.00"
    Cloud Co,Hosting,61500,20005,,,,,250.00,
    ,,,,,,,,,
    Bad Vendor,Oops,ABC,20005,0,100.00,,,,100.00
    """
)


def test_accrual_schedule_snapshot():
    result = parse_accrual_csv(ACCRUALS_CSV)

    assert result.errors == []
    assert result.total_rows == 4
    assert result.skipped == 1
    assert [a.vendor for a in result.accruals] == ["Acme Legal", "Cloud Co", "Bad Vendor"]

    acme, cloud, bad = result.accruals
    assert acme.description == "Legal fees"
    assert (acme.account_dr, acme.account_cr) == ("61000", "20005")
    assert acme.monthly_entries == {
        "1/25": AccrualEntry(reversal=Decimal("0"), accrual=Decimal("1000.00")),
        "2/25": AccrualEntry(reversal=Decimal("-1000.00"), accrual=Decimal("1500.00")),
    }
    assert acme.balance == Decimal("1500.00")

    # Trailing unpaired column is an accrual; empty Balance falls back to the entries.
    assert cloud.monthly_entries == {"3/25": AccrualEntry(reversal=Decimal("0"), accrual=Decimal("250.00"))}
    assert cloud.balance == Decimal("250.00")

    assert bad.account_dr == "ABC"
    assert bad.monthly_entries == {"1/25": AccrualEntry(reversal=Decimal("0"), accrual=Decimal("100.00"))}


def test_schedule_for_uses_net_of_reversal_and_accrual():
    acme = parse_accrual_csv(ACCRUALS_CSV).accruals[0]
    assert acme.schedule_for("2/25") == Decimal("500.00")
    assert acme.schedule_for("2025-02-01") == Decimal("500.00")
    assert acme.schedule_for("4/25") == 0
    assert acme.computed_balance() == Decimal("1500.00")


def test_import_accruals_partitions_valid_and_invalid():
    result = import_accruals(ACCRUALS_CSV)

    assert [a.vendor for a in result.accepted] == ["Acme Legal", "Cloud Co"]
    assert len(result.rejected) == 1
    assert result.rejected[0].record.vendor == "Bad Vendor"
    assert result.rejected[0].reasons == [
        "account_dr: invalid debit account code 'ABC' (expected 4-6 digits)"
    ]
    # Every mapped row is either accepted or rejected.
    assert len(result.accepted) + len(result.rejected) == result.total_rows - result.skipped
    assert result.summary() == {
        "totalRows": 4,
        "accepted": 2,
        "rejected": 1,
        "skipped": 1,
        "warnings": 0,
        "errors": 0,
    }


def test_balance_mismatch_is_a_warning_not_a_rejection():
    csv_text = _dedent(
        """
        Vendor,Description,Accrual JE Account (DR),Accrual JE Account (CR),1/1/25,1/31/25,Balance
        Acme Legal,Legal fees,61000,20005,0,"1,000.00",900.00
        """
    )
    result = import_accruals(csv_text)
    assert [a.balance for a in result.accepted] == [Decimal("900.00")]
    assert result.warnings == ["Acme Legal: balance mismatch, provided 900.00 vs calculated 1000.00"]


def test_missing_required_columns_is_reported():
    result = parse_accrual_csv("Vendor,Description,Balance\nAcme,Rent,100\n")
    assert result.errors == ["Missing required columns: Accrual JE Account (DR), Accrual JE Account (CR)"]
    assert result.accruals == []


def test_empty_input_has_no_header():
    assert parse_accrual_csv("").errors == ["No header row found in CSV"]


def test_column_matching_is_case_insensitive_substring():
    resolved = resolve_columns(["VENDOR NAME", "Line description", "Account (DR)", "account (cr)", "Ending Balance"])
    assert resolved == {
        "vendor": "VENDOR NAME",
        "description": "Line description",
        "account_dr": "Account (DR)",
        "account_cr": "account (cr)",
        "balance": "Ending Balance",
    }


def test_unparseable_amount_is_a_row_warning():
    csv_text = _dedent(
        """
        Vendor,Description,Accrual JE Account (DR),Accrual JE Account (CR),1/1/25,1/31/25
        Acme Legal,Legal fees,61000,20005,0,TBD
        """
    )
    result = parse_accrual_csv(csv_text)
    assert result.warnings == ["Row 2: unparseable amount 'TBD'; treated as 0"]
    assert result.accruals[0].monthly_entries == {}
