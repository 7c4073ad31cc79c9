"""DB helpers for tests: bootstrap a temporary SQLite document store."""

from __future__ import annotations

from pathlib import Path

from asset_tracker.store import SqlDocumentStore
from db import AtDocument, Base
from db.client import get_engine, session_scope
from sqlalchemy import text as sql_text


def bootstrap_sqlite_db(db_file: Path) -> str:
    """Create a SQLite database file, initialize schema, and return the URL.

    Using a file-backed SQLite DB ensures multiple SQLAlchemy connections (and
    the worker threads used for batched writes) share the same state;
    in-memory DBs are per-connection by default.
    """

    url = f"sqlite+pysqlite:///{db_file}"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url=url)
    Base.metadata.create_all(bind=engine, tables=[AtDocument.__table__])
    _assert_documents_schema_in_sync(url)
    return url


def sqlite_store(db_file: Path) -> SqlDocumentStore:
    return SqlDocumentStore(bootstrap_sqlite_db(db_file))


def count_documents(database_url: str, collection: str) -> int:
    with session_scope(database_url=database_url) as session:
        return session.execute(
            sql_text("SELECT COUNT(*) FROM at_documents WHERE collection = :c"),
            {"c": collection},
        ).scalar_one()


def _assert_documents_schema_in_sync(database_url: str) -> None:
    """ORM column set matches the SQLite table column set."""

    expected = {c.name for c in AtDocument.__table__.columns}
    with session_scope(database_url=database_url) as session:
        rows = session.execute(sql_text("PRAGMA table_info('at_documents')")).fetchall()
        got = {row[1] for row in rows}  # (cid, name, type, notnull, dflt_value, pk)
    missing = expected - got
    extra = got - expected
    assert not missing and not extra, (
        f"at_documents schema drift: missing={missing or 'none'}, extra={extra or 'none'}"
    )
