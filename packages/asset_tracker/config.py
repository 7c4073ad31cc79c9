"""Runtime settings read from the environment.

The CLI loads ``.env`` with python-dotenv before calling ``load_settings()``;
library callers can build ``Settings`` directly. Recognized variables:

- ``DATABASE_URL``: SQLAlchemy URL for the SQL document store.
- ``ASSET_TRACKER_STORE``: ``memory`` or ``sql`` (default ``sql`` when
  ``DATABASE_URL`` is set, otherwise ``memory``).
- ``ASSET_TRACKER_WRITE_CONCURRENCY``: concurrent store writes (default 10).
- ``ASSET_TRACKER_ENTITY``: entity label on journal lines.
- ``ASSET_TRACKER_LOG_LEVEL``: read by ``logging_setup``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from .models import AssetType

DEFAULT_WRITE_CONCURRENCY = 10
DEFAULT_ENTITY = "Coder Technologies"
STORE_KINDS = ("memory", "sql")


@dataclass(frozen=True, slots=True)
class JournalAccounts:
    """GL accounts and labels stamped onto generated journal lines."""

    depreciation_expense: str = "65910 - Depreciation"
    accumulated_depreciation: Mapping[AssetType, str] = field(
        default_factory=lambda: {
            AssetType.COMPUTER_EQUIPMENT: "15003-1 - Accumulated Depreciation - Computer Equipment",
            AssetType.FURNITURE: "15004-1 - Accumulated Depreciation - Furniture",
        }
    )
    entity: str = DEFAULT_ENTITY
    location: str = "Main Office"
    expense_class: str = "Operating Expense"
    contra_asset_class: str = "Contra Asset"
    liability_class: str = "Accrued Liability"
    prepaid_asset_class: str = "Prepaid Asset"

    def accumulated_for(self, asset_type: AssetType) -> str:
        return self.accumulated_depreciation[AssetType.parse(asset_type)]


@dataclass(frozen=True, slots=True)
class Settings:
    database_url: str | None = None
    store: str = "memory"
    write_concurrency: int = DEFAULT_WRITE_CONCURRENCY
    accounts: JournalAccounts = field(default_factory=JournalAccounts)


def _positive_int(raw: str | None, default: int) -> int:
    try:
        value = int(raw) if raw else default
    except ValueError:
        value = default
    return value if value > 0 else default


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build ``Settings`` from ``env`` (``os.environ`` when omitted).

    Raises ``ValueError`` for an unknown ``ASSET_TRACKER_STORE`` value.
    """

    source = os.environ if env is None else env
    database_url = source.get("DATABASE_URL") or None
    store = source.get("ASSET_TRACKER_STORE")
    entity = source.get("ASSET_TRACKER_ENTITY")
    concurrency = _positive_int(
        source.get("ASSET_TRACKER_WRITE_CONCURRENCY"), DEFAULT_WRITE_CONCURRENCY
    )

    store = (store or "").strip().lower() or ("sql" if database_url else "memory")
    if store not in STORE_KINDS:
        raise ValueError(f"ASSET_TRACKER_STORE must be one of {STORE_KINDS}, got {store!r}")

    accounts = JournalAccounts(entity=entity.strip()) if entity and entity.strip() else JournalAccounts()
    return Settings(
        database_url=database_url,
        store=store,
        write_concurrency=concurrency,
        accounts=accounts,
    )


__all__ = [
    "DEFAULT_WRITE_CONCURRENCY",
    "DEFAULT_ENTITY",
    "JournalAccounts",
    "Settings",
    "load_settings",
]
