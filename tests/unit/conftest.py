"""Unit-test conftest: DB isolation safety net.

Before every unit test the storage module's engine and session-factory
singletons are reset, and ``get_engine()`` is patched to raise if any code
path attempts a real database connection. Tests that need a database live
in ``tests/integration/``.
"""

from __future__ import annotations

import pytest

import flowstudio.storage as _storage_mod


@pytest.fixture(autouse=True)
def _db_guard(monkeypatch: pytest.MonkeyPatch) -> None:
    """Prevent real DB access in unit tests."""

    def _guarded_get_engine(settings=None):
        raise RuntimeError(
            "Unit test attempted a real DB connection via get_engine(). "
            "Mock the database dependency or use tests/integration/ for DB tests."
        )

    monkeypatch.setattr(_storage_mod, "_engine", None)
    monkeypatch.setattr(_storage_mod, "_session_factory", None)
    monkeypatch.setattr(_storage_mod, "get_engine", _guarded_get_engine)
