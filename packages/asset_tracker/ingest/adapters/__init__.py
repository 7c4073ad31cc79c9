"""Source-specific CSV adapters (asset register, accrual schedule)."""

from .accrual_csv import AccrualParseResult, parse_accrual_csv
from .asset_csv import AssetParseResult, parse_asset_csv

__all__ = [
    "AssetParseResult",
    "parse_asset_csv",
    "AccrualParseResult",
    "parse_accrual_csv",
]
