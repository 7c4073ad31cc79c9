from __future__ import annotations

from decimal import Decimal

from asset_tracker.ingest import (
    CsvRow,
    KeywordNameStrategy,
    date_columns,
    is_date_header,
    map_rows,
    tokenize_document,
    tokenize_line,
)


def test_tokenize_line_quotes_and_trimming():
    assert tokenize_line('a, "b,c" ,d') == ["a", "b,c", "d"]
    assert tokenize_line('"say ""hi""",x') == ['say "hi"', "x"]
    assert tokenize_line('"$1,517.21",') == ["$1,517.21", ""]


def test_tokenize_line_unterminated_quote_closes_at_end_of_line():
    assert tokenize_line('a,"open, still open') == ["a", "open, still open"]


def test_tokenize_document_drops_blank_lines_and_crlf():
    doc = tokenize_document("A,B\r\n\r\n1,2\r\n   \r\n3,4\r\n")
    assert doc.header == ["A", "B"]
    assert doc.rows == [["1", "2"], ["3", "4"]]
    assert doc.header_index == 0


def test_tokenize_document_locates_header_by_keyword():
    text = "Accrued Expenses Schedule\nAs of 3/31/25\nVendor,Description,Balance\nAcme,Rent,100\n"
    doc = tokenize_document(text, header_keywords=("vendor", "description"))
    assert doc.header == ["Vendor", "Description", "Balance"]
    assert doc.header_index == 2
    assert doc.rows == [["Acme", "Rent", "100"]]


def test_tokenize_document_empty():
    doc = tokenize_document("\n \n")
    assert doc.is_empty
    assert doc.rows == []


def test_date_headers():
    assert is_date_header("1/31/25")
    assert is_date_header("01/31/2025")
    assert is_date_header("1/25")
    assert is_date_header("1-31-25")
    assert not is_date_header("Date")
    assert not is_date_header("Balance")
    header = ["Vendor", "1/31/25", "Date", "2/28/25", "Total"]
    assert date_columns(header) == ["1/31/25", "2/28/25"]
    assert date_columns(header, exclude=("2/28/25",)) == ["1/31/25"]


def test_csv_row_accessors():
    row = CsvRow(["Name", "Cost", "Name", "When"], ["Desk", "(1,200.00)"], line=4)
    assert row["Name"] == "Desk"
    assert row["name"] == "Desk"
    assert row.text("When") == ""
    assert row.first_text("When", "Name") == "Desk"
    assert row.amount("Cost") == Decimal("-1200.00")
    assert row.has("cost")
    assert not row.has("Missing")
    assert len(row) == 3
    assert row.line == 4


def test_map_rows_skips_empty_identity():
    doc = tokenize_document("Vendor,Amount\nAcme,1\n,2\n  ,3\nBeta,4\n")
    mapped = map_rows(doc, identity_column="Vendor")
    assert [r.text("Vendor") for r in mapped.rows] == ["Acme", "Beta"]
    assert [r.line for r in mapped.rows] == [1, 4]
    assert mapped.skipped == 2


def test_keyword_name_strategy():
    name = KeywordNameStrategy()
    assert name("ORIG CO NAME:APPLE INC TRN: 98765 MacBook Pro 14in", "Apple") == "MacBook Pro (Apple)"
    assert name("Laptop purchase for order 1234", "People Center") == "Laptop"
    assert name("Rippling device order 55", "Rippling") == "Computer Device (Rippling)"
    assert name("Standing desk", "Uplift") == "Standing desk (Uplift)"
    assert name("Monitor from Dell", "Dell") == "Monitor from Dell"
    assert name("", "Herman Miller") == "Herman Miller"
    assert name("", "") == "Unknown Asset"
