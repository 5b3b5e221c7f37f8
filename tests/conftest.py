"""Pytest configuration and shared fixtures for the home-care metrics API."""

import os
from typing import AsyncGenerator

# Settings are read at import time
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_homecare.db")

import pytest
from httpx import ASGITransport, AsyncClient

from homecare_metrics.api.deps import get_record_store
from homecare_metrics.main import app
from homecare_metrics.services.analytics import AnalyticsService
from homecare_metrics.services.dashboard import DashboardMetricsService
from homecare_metrics.services.financials import FinancialMetricsService
from homecare_metrics.services.record_fetcher import RecordFetcher
from tests.utils.fake_store import InMemoryRecordStore
from tests.utils.test_data import FIXED_NOW, SampleData


@pytest.fixture
def store() -> InMemoryRecordStore:
    """Empty in-memory record store."""
    return InMemoryRecordStore()


@pytest.fixture
def seeded_store() -> InMemoryRecordStore:
    """In-memory record store holding the sample platform."""
    return InMemoryRecordStore(SampleData.collections())


@pytest.fixture
def fetcher(seeded_store: InMemoryRecordStore) -> RecordFetcher:
    """Record fetcher over the sample platform."""
    return RecordFetcher(seeded_store)


@pytest.fixture
def dashboard_service(fetcher: RecordFetcher) -> DashboardMetricsService:
    """Dashboard service pinned to FIXED_NOW."""
    return DashboardMetricsService(fetcher, clock=lambda: FIXED_NOW)


@pytest.fixture
def financial_service(fetcher: RecordFetcher) -> FinancialMetricsService:
    return FinancialMetricsService(fetcher)


@pytest.fixture
def analytics_service(fetcher: RecordFetcher) -> AnalyticsService:
    return AnalyticsService(fetcher)


@pytest.fixture
async def async_client(seeded_store: InMemoryRecordStore) -> AsyncGenerator[AsyncClient, None]:
    """Async test client with the record store replaced by the sample platform."""
    app.dependency_overrides[get_record_store] = lambda: seeded_store
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://testserver"
        ) as client:
            yield client
    finally:
        app.dependency_overrides.clear()


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "analytics: Analytics report tests")
