"""Pytest configuration for test isolation.

The workspace is laid out as ``packages/asset_tracker`` and ``libs/db/src/db``;
both roots (and the repo root, for ``tests.helpers``) are put on ``sys.path``
so the suite runs from a plain checkout as well as from an editable install.

Store selection and the SQL engine cache are process-global, so every test
starts from a clean environment: ``DATABASE_URL`` and the ``ASSET_TRACKER_*``
variables are removed and cached engines are disposed afterwards.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
for _p in (_ROOT, _ROOT / "packages", _ROOT / "libs" / "db" / "src"):
    if str(_p) not in sys.path:
        sys.path.insert(0, str(_p))

from db.client import dispose_engines  # noqa: E402

_ENV_VARS = (
    "DATABASE_URL",
    "ASSET_TRACKER_STORE",
    "ASSET_TRACKER_WRITE_CONCURRENCY",
    "ASSET_TRACKER_ENTITY",
    "ASSET_TRACKER_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Clear store settings and run each test from its own working directory.

    The CLI loads ``.env`` from the current directory, so a stray file in the
    checkout must not leak into tests.
    """

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield
    dispose_engines()
