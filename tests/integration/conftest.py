"""Integration test fixtures.

Each test gets a fresh in-memory SQLite database (aiosqlite) with the full
schema, and a persistence gateway bound to it. A StaticPool keeps the one
connection alive across sessions so every session sees the same database.
Tests that need sessions on separate connections use the file-backed
``file_gateway`` instead.
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from flowstudio.dal.flows import FlowRepository
from flowstudio.schemas import FlowRecord
from flowstudio.services.persistence import PersistenceGateway
from flowstudio.storage import create_schema, make_session_factory


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory database with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine.sync_engine, "connect", _enable_foreign_keys)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest.fixture
def gateway(session_factory: async_sessionmaker[AsyncSession]) -> PersistenceGateway:
    return PersistenceGateway(session_factory)


@pytest.fixture
def seed_flow(session_factory: async_sessionmaker[AsyncSession]):
    """Insert a flow row with explicit lifecycle fields, bypassing the gateway.

    Pass ``factory`` to seed a database other than the in-memory one.
    """

    async def _seed(*, factory: async_sessionmaker[AsyncSession] | None = None, **fields) -> FlowRecord:
        async with (factory or session_factory)() as session:
            flow = await FlowRepository(session).create(
                fields.pop("name", "Seeded"),
                description=fields.pop("description", None),
                **fields,
            )
            await session.commit()
            return FlowRecord.from_entity(flow)

    return _seed


@pytest_asyncio.fixture
async def file_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """SQLite file database: each session gets its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'flows.db'}")
    event.listen(engine.sync_engine, "connect", _enable_foreign_keys)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def file_session_factory(file_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(file_engine)


@pytest.fixture
def file_gateway(file_session_factory: async_sessionmaker[AsyncSession]) -> PersistenceGateway:
    return PersistenceGateway(file_session_factory)
