"""Public interface for the ``asset_tracker`` package.

This module exposes the package's API functions and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .api import (
    add_asset,
    add_prepaid,
    edit_prepaid,
    get_gl_balances,
    import_accruals,
    import_assets,
    journal_for,
    load_accruals,
    load_assets,
    load_ledger,
    load_prepaids,
    save_import,
    set_gl_balances,
    update_asset,
)
from .config import JournalAccounts, Settings, load_settings
from .errors import AssetTrackerError, PayloadError, RecordNotFoundError, StoreUnavailableError
from .models import (
    Accrual,
    AccrualEntry,
    AmortizationEntry,
    Asset,
    AssetType,
    ImportResult,
    InvalidRecord,
    JournalLine,
    Prepaid,
    ValidationResult,
)
from .store import DocumentStore, InMemoryStore, SqlDocumentStore, open_store

__all__ = [
    # API
    "import_assets",
    "import_accruals",
    "save_import",
    "load_assets",
    "load_accruals",
    "load_prepaids",
    "load_ledger",
    "get_gl_balances",
    "set_gl_balances",
    "add_asset",
    "update_asset",
    "add_prepaid",
    "edit_prepaid",
    "journal_for",
    # Models / types
    "Asset",
    "AssetType",
    "Accrual",
    "AccrualEntry",
    "Prepaid",
    "AmortizationEntry",
    "JournalLine",
    "ImportResult",
    "InvalidRecord",
    "ValidationResult",
    # Config / stores / errors
    "Settings",
    "JournalAccounts",
    "load_settings",
    "DocumentStore",
    "InMemoryStore",
    "SqlDocumentStore",
    "open_store",
    "AssetTrackerError",
    "PayloadError",
    "StoreUnavailableError",
    "RecordNotFoundError",
]
