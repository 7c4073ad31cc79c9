"""CSV ingestion: tokenizer, typed rows, name synthesis and source adapters."""

from .naming import KeywordNameStrategy, NameStrategy
from .rows import CsvRow, MappedRows, date_columns, is_date_header, map_rows
from .tokenizer import TokenizedDocument, tokenize_document, tokenize_line

__all__ = [
    "TokenizedDocument",
    "tokenize_line",
    "tokenize_document",
    "CsvRow",
    "MappedRows",
    "map_rows",
    "is_date_header",
    "date_columns",
    "NameStrategy",
    "KeywordNameStrategy",
]
