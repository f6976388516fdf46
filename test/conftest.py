"""
Test Configuration and Fixtures

This module provides:
- Early environment setup (test database name, log dir, fast polling)
- Database creation and cleanup for integration tests (pytest-xdist aware)

Architecture:
- Unit tests (@pytest.mark.unit): in-memory fakes only, never touch PostgreSQL
- Integration tests (@pytest.mark.integration): real PostgreSQL, skipped when unreachable
"""

# =============================================================================
# CRITICAL: Environment setup MUST happen before any other imports
# Settings are instantiated at import time (core_setting.settings)
# =============================================================================
import os
from pathlib import Path


def _early_setup_test_environment() -> None:
    worker_id = os.environ.get('PYTEST_XDIST_WORKER', 'master')
    if worker_id == 'master':
        os.environ['POSTGRES_DB'] = 'tickethub_test_db'
    else:
        os.environ['POSTGRES_DB'] = f'tickethub_test_db_{worker_id}'

    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)

    os.environ.setdefault('DB_POOL_SIZE', '5')
    os.environ.setdefault('DB_POOL_MAX_OVERFLOW', '5')

    # Keep gateway polling and stock re-reads fast
    os.environ['PAYMENT_POLL_INTERVAL_SECONDS'] = '0.01'
    os.environ['STOCK_RECHECK_INTERVAL_SECONDS'] = '0.01'
    os.environ['AUTO_CREATE_TABLES'] = 'false'


_early_setup_test_environment()

import asyncio  # noqa: E402
from collections.abc import AsyncGenerator  # noqa: E402

from dotenv import load_dotenv  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import text  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402


# =============================================================================
# Pytest Hooks
# =============================================================================
_database_available: bool | None = None


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    integration_items = [item for item in items if item.get_closest_marker('integration')]
    for item in integration_items:
        item.fixturenames.append('clean_database')

    # Runs before any test event loop exists
    if integration_items:
        _prepare_database()


# =============================================================================
# Database Configuration
# =============================================================================
def _get_db_config() -> dict[str, str]:
    env_file = '.env' if Path('.env').exists() else '.env.example'
    load_dotenv(env_file)

    return {
        'user': os.getenv('POSTGRES_USER', 'postgres'),
        'password': os.getenv('POSTGRES_PASSWORD', 'postgres'),
        'host': os.getenv('POSTGRES_SERVER', 'localhost'),
        'port': os.getenv('POSTGRES_PORT', '5432'),
        'test_db': os.getenv('POSTGRES_DB', 'tickethub_test_db'),
    }


def _get_test_database_url() -> str:
    cfg = _get_db_config()
    return (
        f'postgresql+asyncpg://{cfg["user"]}:{cfg["password"]}'
        f'@{cfg["host"]}:{cfg["port"]}/{cfg["test_db"]}'
    )


# =============================================================================
# Database Setup and Cleanup
# =============================================================================
async def _setup_test_database() -> None:
    from src.platform.database.orm_db_setting import Base
    import src.service.checkout.driven_adapter.model  # noqa: F401

    db_url = _get_test_database_url()
    cfg = _get_db_config()

    postgres_url = db_url.replace(f'/{cfg["test_db"]}', '/postgres')
    engine = create_async_engine(postgres_url, isolation_level='AUTOCOMMIT')
    try:
        async with engine.begin() as conn:
            result = await conn.execute(
                text('SELECT 1 FROM pg_database WHERE datname = :name'),
                {'name': cfg['test_db']},
            )
            if not result.fetchone():
                await conn.execute(text(f'CREATE DATABASE {cfg["test_db"]}'))
    finally:
        await engine.dispose()

    schema_engine = create_async_engine(db_url)
    try:
        async with schema_engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await schema_engine.dispose()


async def _clean_all_tables() -> None:
    from src.platform.database.orm_db_setting import Base

    engine = create_async_engine(_get_test_database_url())
    try:
        async with engine.begin() as conn:
            quoted = [f'"{table.name}"' for table in Base.metadata.sorted_tables]
            if quoted:
                await conn.execute(text(f'TRUNCATE {", ".join(quoted)} CASCADE'))
    finally:
        await engine.dispose()


# =============================================================================
# Integration Test Fixtures
# =============================================================================
def _prepare_database() -> None:
    global _database_available
    if _database_available is not None:
        return
    try:
        asyncio.run(_setup_test_database())
    except Exception as e:
        # asyncpg raises its own types for refused connections and bad credentials
        print(f'PostgreSQL unavailable, integration tests will be skipped: {e}')
        _database_available = False
    else:
        _database_available = True


@pytest.fixture(scope='function')
async def clean_database() -> AsyncGenerator[None, None]:
    if not _database_available:
        pytest.skip('PostgreSQL is not reachable')

    await _clean_all_tables()
    yield

    from src.platform.database.orm_db_setting import dispose_engine

    # The engine is bound to this test's event loop
    await dispose_engine()
