"""
Pytest configuration and shared fixtures.
"""

import pytest
import sys
import os
from datetime import datetime

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient

from app.main import app
from app.calculations.currency import ExchangeRateTable, FALLBACK_RATES
from app.services.exchange_rates import ExchangeRateService, get_exchange_rate_service


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")


class StaticExchangeRateService(ExchangeRateService):
    """Exchange rate service that never goes to the network."""

    def __init__(self, table: ExchangeRateTable):
        super().__init__()
        self.table = table

    def get_rates(self) -> ExchangeRateTable:
        return self.table


@pytest.fixture
def rate_table():
    """Fixed exchange rates (the fallback table)."""
    return ExchangeRateTable(
        rates=dict(FALLBACK_RATES),
        fetched_at=datetime(2025, 1, 1, 12, 0, 0),
        source="live",
    )


@pytest.fixture
def client(rate_table):
    """Create test client with static exchange rates."""
    app.dependency_overrides[get_exchange_rate_service] = (
        lambda: StaticExchangeRateService(rate_table)
    )
    yield TestClient(app)
    app.dependency_overrides.clear()
