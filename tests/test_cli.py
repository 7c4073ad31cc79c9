from __future__ import annotations

import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

from asset_tracker.cli import app
from tests.helpers.db import bootstrap_sqlite_db, count_documents

runner = CliRunner()

REGISTER_CSV = (
    "Memo/Description,Payee (Name),Class/Department,Cost,# of life (months),"
    "Date in place (Mid-month convention),1/31/25,2/28/25\n"
    "Laptop,Apple,Engineering,1200.00,12,1/1/25,100.00,100.00\n"
    "Desk,Uplift,Sales,600.00,12,1/1/25,50.00,50.00\n"
    "Monitor,Dell,Sales,,12,1/1/25,,\n"
)

ACCRUALS_CSV = (
    "Accrued Expenses\n"
    "Vendor,Description,Accrual JE Account (DR),Accrual JE Account (CR),1/1/25,1/31/25,Balance\n"
    "Acme Legal,Legal fees,61000,20005,0,1000.00,1000.00\n"
)


@pytest.fixture
def db_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    url = bootstrap_sqlite_db(tmp_path / "cli.db")
    monkeypatch.setenv("DATABASE_URL", url)
    return url


def _write(tmp_path: Path, name: str, text: str) -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def _invoke(*args: str):
    return runner.invoke(app, list(args))


def _line_starting_with(output: str, prefix: str) -> str:
    return next(line for line in output.splitlines() if line.startswith(prefix))


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------


def test_import_assets_writes_to_sql_store(tmp_path: Path, db_url: str):
    csv_path = _write(tmp_path, "register.csv", REGISTER_CSV)

    result = _invoke("import-assets", "--csv-path", str(csv_path))

    assert result.exit_code == 0, result.output
    assert "Imported 2 of 3 rows (0 rejected, 1 skipped, 1 warnings)" in result.output
    assert "Warning: Row 4: no cost data; skipped" in result.output
    assert count_documents(db_url, "assets") == 2


def test_import_assets_clear_existing_replaces_rows(tmp_path: Path, db_url: str):
    csv_path = _write(tmp_path, "register.csv", REGISTER_CSV)
    assert _invoke("import-assets", "--csv-path", str(csv_path)).exit_code == 0
    assert _invoke("import-assets", "--csv-path", str(csv_path)).exit_code == 0
    assert count_documents(db_url, "assets") == 4

    result = _invoke("import-assets", "--csv-path", str(csv_path), "--clear-existing")
    assert result.exit_code == 0, result.output
    assert count_documents(db_url, "assets") == 2


def test_import_assets_missing_file(tmp_path: Path, db_url: str):
    result = _invoke("import-assets", "--csv-path", str(tmp_path / "nope.csv"))
    assert result.exit_code == 1
    assert "Error: File not found" in result.output


def test_import_assets_unknown_asset_type(tmp_path: Path, db_url: str):
    csv_path = _write(tmp_path, "register.csv", REGISTER_CSV)
    result = _invoke("import-assets", "--csv-path", str(csv_path), "--asset-type", "vehicles")
    assert result.exit_code == 1
    assert "Error: unknown asset type" in result.output


def test_import_assets_bad_store_kind(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("ASSET_TRACKER_STORE", "redis")
    csv_path = _write(tmp_path, "register.csv", REGISTER_CSV)
    result = _invoke("import-assets", "--csv-path", str(csv_path))
    assert result.exit_code == 1
    assert "Error: import-assets failed" in result.output


def test_import_accruals_missing_columns(tmp_path: Path, db_url: str):
    csv_path = _write(tmp_path, "accruals.csv", "Vendor,Description,Balance\nAcme,Rent,100\n")
    result = _invoke("import-accruals", "--csv-path", str(csv_path))
    assert result.exit_code == 1
    assert "Error: Missing required columns" in result.output
    assert count_documents(db_url, "accruals") == 0


def test_import_then_export_accruals(tmp_path: Path, db_url: str):
    csv_path = _write(tmp_path, "accruals.csv", ACCRUALS_CSV)
    assert _invoke("import-accruals", "--csv-path", str(csv_path)).exit_code == 0

    result = _invoke("export-accruals", "--start", "1/25", "--end", "1/25")
    assert result.exit_code == 0, result.output
    assert '"Acme Legal","Legal fees","61000","20005","0.00","1000.00","1000.00"' in result.output


# ---------------------------------------------------------------------------
# Reconciliation and exports
# ---------------------------------------------------------------------------


def test_reconcile_exit_codes(tmp_path: Path, db_url: str):
    csv_path = _write(tmp_path, "register.csv", REGISTER_CSV)
    assert _invoke("import-assets", "--csv-path", str(csv_path)).exit_code == 0

    set_result = _invoke("set-gl-balance", "--ledger", "computer-equipment", "--month", "1/25", "--amount", "150")
    assert set_result.exit_code == 0, set_result.output
    assert "computer-equipment\t2025-01-01\t150" in set_result.output

    balanced = _invoke("reconcile", "--ledger", "computer-equipment", "--start", "1/25", "--end", "1/25")
    assert balanced.exit_code == 0, balanced.output
    assert "Jan 2025" in balanced.output

    unbalanced = _invoke("reconcile", "--ledger", "computer-equipment", "--start", "1/25", "--end", "2/25")
    assert unbalanced.exit_code == 2
    assert "Feb 2025" in unbalanced.output
    assert "-150.00" in unbalanced.output


def test_reconcile_rejects_bad_month(db_url: str):
    result = _invoke("reconcile", "--ledger", "accruals", "--start", "soon", "--end", "2/25")
    assert result.exit_code == 1
    assert "Error: --start: could not parse month 'soon'" in result.output


def test_export_reconciliation_to_file(tmp_path: Path, db_url: str):
    csv_path = _write(tmp_path, "register.csv", REGISTER_CSV)
    assert _invoke("import-assets", "--csv-path", str(csv_path)).exit_code == 0
    out = tmp_path / "rec.csv"

    result = _invoke("export-reconciliation", "--start", "1/25", "--end", "2/25", "-o", str(out))

    assert result.exit_code == 0, result.output
    assert f"Wrote {out}" in result.output
    text = out.read_text(encoding="utf-8")
    assert text.startswith("DEPRECIATION RECONCILIATION\nGenerated: ")
    assert "Asset,Account,Department,Date in Place,Jan 2025,Feb 2025,Total" in text
    assert '"Laptop (Apple)","Computer Equipment","Engineering","1/1/2025","100.00","100.00","200.00"' in text
    assert '"Engineering depreciation for February 2025"' in text


def test_export_journal_entry_to_stdout(tmp_path: Path, db_url: str):
    csv_path = _write(tmp_path, "register.csv", REGISTER_CSV)
    assert _invoke("import-assets", "--csv-path", str(csv_path)).exit_code == 0

    result = _invoke("export-journal-entry", "--ledger", "computer-equipment", "--month", "1/25")
    assert result.exit_code == 0, result.output
    assert "JOURNAL ENTRY - January 2025" in result.output
    assert '"65910 - Depreciation",100.00,0.00' in result.output
    assert '"65910 - Depreciation",50.00,0.00' in result.output


def test_export_journal_entry_unknown_ledger(db_url: str):
    result = _invoke("export-journal-entry", "--ledger", "vehicles", "--month", "1/25")
    assert result.exit_code == 1
    assert "Error: unknown asset type" in result.output


# ---------------------------------------------------------------------------
# Record edits
# ---------------------------------------------------------------------------


def test_add_and_update_asset(db_url: str):
    added = _invoke(
        "add-asset",
        "--name", "Laptop",
        "--date-in-place", "1/1/25",
        "--cost", "$1,200.00",
        "--life-months", "12",
        "--department", "Engineering",
        "--as-of", "6/15/25",
    )
    assert added.exit_code == 0, added.output
    asset_line = _line_starting_with(added.output, "asset_")
    asset_id, name, monthly = asset_line.split("\t")
    assert (name, monthly) == ("Laptop", "100.00")

    updated = _invoke("update-asset", asset_id, "--life-months", "24", "--as-of", "6/15/25")
    assert updated.exit_code == 0, updated.output
    assert f"{asset_id}\t24\t50.00\t950.00" in updated.output


def test_add_asset_rejects_zero_cost(db_url: str):
    result = _invoke("add-asset", "--name", "Laptop", "--date-in-place", "1/1/25", "--cost", "0")
    assert result.exit_code == 1
    assert "Error: cost: cost must be greater than 0" in result.output


def test_add_asset_rejects_unparseable_date(db_url: str):
    result = _invoke("add-asset", "--name", "Laptop", "--date-in-place", "someday", "--cost", "100")
    assert result.exit_code == 1
    assert "Error: --date-in-place: could not parse date 'someday'" in result.output


def test_update_asset_errors(db_url: str):
    nothing = _invoke("update-asset", "asset_missing")
    assert nothing.exit_code == 1
    assert "nothing to update" in nothing.output

    missing = _invoke("update-asset", "asset_missing", "--life-months", "12")
    assert missing.exit_code == 1
    assert "Error: record not found: assets/asset_missing" in missing.output


def test_add_and_edit_prepaid(db_url: str):
    added = _invoke(
        "add-prepaid",
        "--vendor", "Insurance Co",
        "--amount", "12000",
        "--start-date", "1/1/25",
        "--term-months", "12",
    )
    assert added.exit_code == 0, added.output
    prepaid_id, vendor, monthly = _line_starting_with(added.output, "prepaid_").split("\t")
    assert (vendor, monthly) == ("Insurance Co", "1000.00")

    edited = _invoke("edit-prepaid", prepaid_id, "--month", "3/25", "--amount", "1500")
    assert edited.exit_code == 0, edited.output
    assert f"{prepaid_id}\t0.00" in edited.output

    out_of_term = _invoke("edit-prepaid", prepaid_id, "--month", "1/26", "--amount", "10")
    assert out_of_term.exit_code == 1
    assert "Error:" in out_of_term.output

    exported = _invoke("export-prepaids", "--start", "3/25", "--end", "4/25")
    assert exported.exit_code == 0, exported.output
    assert '"Insurance Co","","61200","12100","12000.00","1500.00","1000.00","0.00"' in exported.output


# ---------------------------------------------------------------------------
# Schema and environment
# ---------------------------------------------------------------------------


def test_store_commands_require_database_url(tmp_path: Path):
    csv_path = _write(tmp_path, "register.csv", REGISTER_CSV)

    imported = _invoke("import-assets", "--csv-path", str(csv_path))
    assert imported.exit_code == 1
    assert "DATABASE_URL is not set" in imported.output
    assert "Imported" not in imported.output

    exported = _invoke("export-accruals", "--start", "1/25", "--end", "1/25")
    assert exported.exit_code == 1
    assert "Error: DATABASE_URL is not set" in exported.output

    assert "Error: DATABASE_URL is not set" in _invoke("init-db").output


def test_memory_store_must_be_requested_explicitly(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("ASSET_TRACKER_STORE", "memory")
    csv_path = _write(tmp_path, "register.csv", REGISTER_CSV)

    imported = _invoke("import-assets", "--csv-path", str(csv_path))
    assert imported.exit_code == 0, imported.output
    assert "Imported 2 of 3 rows" in imported.output

    result = _invoke("init-db")
    assert result.exit_code == 1
    assert "Error: init-db requires the SQL store" in result.output


def test_init_db_reads_database_url_from_dotenv(tmp_path: Path):
    db_file = tmp_path / "from-env.db"
    (tmp_path / ".env").write_text(f"DATABASE_URL=sqlite+pysqlite:///{db_file}\n", encoding="utf-8")
    try:
        result = _invoke("init-db")
    finally:
        # load_dotenv writes straight into os.environ.
        os.environ.pop("DATABASE_URL", None)

    assert result.exit_code == 0, result.output
    assert "Schema ready" in result.output
    assert count_documents(f"sqlite+pysqlite:///{db_file}", "assets") == 0
