"""Shared test fixtures for Flow Studio.

Provides common fixtures used across unit and integration tests.
"""

from collections.abc import Generator

import pytest

from flowstudio.schemas import FlowRecord
from flowstudio.settings import Settings, get_settings
from tests.factories import ActiveFlowFactory, FlowRecordFactory


# =============================================================================
# SETTINGS
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Provide test settings with safe defaults."""
    return Settings(
        environment="testing",  # Skip DB init in the app lifespan
        debug=True,
        database_url="sqlite+aiosqlite:///:memory:",
        autosave_debounce_seconds=0.05,
        history_max_entries=50,
    )


@pytest.fixture
def mock_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[Settings, None, None]:
    """Route get_settings() to test values via the environment."""
    monkeypatch.setenv("ENVIRONMENT", "testing")
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("AUTOSAVE_DEBOUNCE_SECONDS", "0.05")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


# =============================================================================
# SAMPLE DATA
# =============================================================================


@pytest.fixture
def draft_flow() -> FlowRecord:
    return FlowRecordFactory(id="flow-1", version="1")


@pytest.fixture
def active_flow() -> FlowRecord:
    return ActiveFlowFactory(id="flow-2", source_flow_id="flow-1")
