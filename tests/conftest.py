"""
Pytest configuration and shared fixtures for Messenger tests

Database fixtures run the real schema on a file-backed SQLite database
through aiosqlite, with foreign keys enforced so that any out-of-order
delete fails the same way it would on PostgreSQL.
"""
import os
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from unittest.mock import patch

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from messenger.config.deletion import DeletionSettings
from messenger.database.models import Base, GROUP_POLL_TABLES, POLL_TABLES
from messenger.services.user_deletion import UserDeletionService


# ============================================================
# Database Engines
# ============================================================

def _make_sqlite_engine(path) -> AsyncEngine:
    engine = create_async_engine(f"sqlite+aiosqlite:///{path}")

    # pysqlite/aiosqlite transaction handling is replaced by explicit BEGIN
    # so SAVEPOINT works inside the cascade's unit of work
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


async def _create_schema(engine: AsyncEngine, skip_tables=()) -> None:
    tables = [table for table in Base.metadata.sorted_tables if table not in skip_tables]
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, tables=tables)


@pytest.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """SQLite engine with the full schema, poll tables included"""
    engine = _make_sqlite_engine(tmp_path / "messenger.db")
    await _create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_engine_without_polls(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """SQLite engine for a deployment that predates the poll tables"""
    engine = _make_sqlite_engine(tmp_path / "messenger_legacy.db")
    await _create_schema(engine, skip_tables=POLL_TABLES)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_engine_without_group_polls(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """SQLite engine with personal polls but before the group poll migration"""
    engine = _make_sqlite_engine(tmp_path / "messenger_personal_polls.db")
    await _create_schema(engine, skip_tables=GROUP_POLL_TABLES)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def legacy_session_factory(db_engine_without_polls) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine_without_polls, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def personal_polls_session_factory(db_engine_without_group_polls) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine_without_group_polls, class_=AsyncSession, expire_on_commit=False)


# ============================================================
# Service Wiring
# ============================================================

@pytest.fixture
def avatars_dir(tmp_path):
    path = tmp_path / "avatars"
    path.mkdir()
    return path


@pytest.fixture
def patched_db_sessions(session_factory):
    """
    Route the service layer's get_db_session() to the SQLite test database

    Usage:
        async def test_delete(patched_db_sessions):
            await UserDeletionService(settings).delete_user(user_id)
    """
    @asynccontextmanager
    async def _get_db_session():
        session = session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    with patch("messenger.services.user_deletion.get_db_session", _get_db_session):
        yield _get_db_session


@pytest.fixture
def deletion_service(patched_db_sessions, avatars_dir) -> UserDeletionService:
    """Deletion service bound to the test database and a temporary avatar directory"""
    return UserDeletionService(DeletionSettings(avatars_dir=avatars_dir, batch_size=500))
