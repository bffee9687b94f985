"""
Pytest configuration and fixtures.
"""

import os
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Keep module-level settings away from any developer .env
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from product_verification.config.database import Database
from product_verification.config.settings import Settings
from product_verification.db.repositories.product_repository import ProductRepository
from product_verification.db.repositories.scan_repository import ScanRepository
from product_verification.main import create_app

ADMIN_TOKEN = "test-admin-token"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """
    Settings pointing at a throwaway SQLite file.

    Returns:
        Settings: Test configuration
    """
    return Settings(
        _env_file=None,
        app_env="testing",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        public_base_url="https://verify.example.com",
        admin_api_token=ADMIN_TOKEN,
        store_timeout_seconds=10.0,
        store_retry_backoff_seconds=0.0,
        cors_origins=["http://testserver"],
    )


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    """
    Database with the schema created.

    Yields:
        Database: Ready-to-use database
    """
    db = Database(settings)
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def session(database: Database):
    """A single session for repository-level tests."""
    async with database.session_maker() as session:
        yield session


@pytest.fixture
def product_repository(session, settings: Settings) -> ProductRepository:
    return ProductRepository(session, settings)


@pytest.fixture
def scan_repository(session, settings: Settings) -> ScanRepository:
    return ScanRepository(session, settings)


@pytest.fixture
def app(settings: Settings, database: Database):
    """Application wired to the test database."""
    return create_app(settings, database=database)


@pytest_asyncio.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Create async test client for FastAPI app.

    Yields:
        AsyncClient: Async test client
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def admin_headers() -> dict:
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}
