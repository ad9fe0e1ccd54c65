"""
Pytest configuration for SmartKas backend tests.

Sets up the test environment and shared fixtures: an in-memory ledger that
behaves like LedgerStore and a mocked model gateway.
"""
import os
import uuid
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

# Disable config validation during tests
# This allows tests to run without requiring real environment variables
os.environ["VALIDATE_CONFIG"] = "false"

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_PUBLISHABLE_KEY", "test-publishable-key")
os.environ.setdefault("GOOGLE_API_KEY", "test-google-api-key")
# Background embedding sync is exercised explicitly in tests/services/test_vector_sync.py
os.environ["VECTOR_SYNC_ENABLED"] = "false"

from smartkas.agents.assistant.errors import PersistenceFailure  # noqa: E402


class FakeLedger:
    """
    In-memory stand-in for LedgerStore.

    Records every mutating call in `mutations` so tests can assert that a
    turn performed zero or exactly one ledger write.
    """

    def __init__(self, products: Optional[List[Dict[str, Any]]] = None, transactions=None):
        self.business_id = "biz-1"
        self.business_name = "Warung Kopi Test"
        self.products: List[Dict[str, Any]] = [dict(p) for p in (products or [])]
        self.transactions: List[Dict[str, Any]] = [dict(t) for t in (transactions or [])]
        self.alerts: List[Dict[str, Any]] = []
        self.embeddings: Dict[str, List[float]] = {}
        self.mutations: List[tuple] = []
        self.fail_writes = False

    async def create_transaction(self, amount, type, description, category, date, status="completed"):
        if self.fail_writes:
            raise PersistenceFailure("create_transaction failed: connection reset")
        row = {
            "id": str(uuid.uuid4()),
            "business_id": self.business_id,
            "amount": amount,
            "type": type,
            "description": description,
            "category": category,
            "date": date,
            "status": status,
        }
        self.transactions.insert(0, row)
        self.mutations.append(("create_transaction", row["id"]))
        return row

    async def find_products_by_name_substring(self, query: str):
        needle = " ".join(query.split()).casefold()
        return [dict(p) for p in self.products if needle in p["name"].casefold()]

    async def increment_stock(self, product_id: str, delta: int):
        if self.fail_writes:
            raise PersistenceFailure("increment_stock failed: connection reset")
        for product in self.products:
            if product["id"] == product_id:
                product["stock"] += delta
                self.mutations.append(("increment_stock", product_id, delta))
                return dict(product)
        raise PersistenceFailure(f"product {product_id} not found")

    async def list_recent_transactions(self, limit: int):
        return [dict(t) for t in self.transactions[:limit]]

    async def list_products(self):
        return [dict(p) for p in self.products]

    async def create_alerts(self, anomalies, date):
        for anomaly in anomalies:
            self.alerts.append({**anomaly, "date": date, "status": "new"})
        if anomalies:
            self.mutations.append(("create_alerts", len(anomalies)))
        return len(anomalies)

    async def update_transaction_embedding(self, transaction_id, embedding):
        self.embeddings[transaction_id] = list(embedding)


@pytest.fixture
def catalog() -> List[Dict[str, Any]]:
    """A small coffee-shop catalog."""
    return [
        {"id": "prod-kopi-susu", "name": "Kopi Susu", "stock": 10, "price": 18000, "unit": "cup"},
        {"id": "prod-teh", "name": "Teh Manis", "stock": 25, "price": 8000, "unit": "gelas"},
        {"id": "prod-roti", "name": "Roti Bakar", "stock": 6, "price": 15000, "unit": "pcs"},
    ]


@pytest.fixture
def recent_transactions() -> List[Dict[str, Any]]:
    return [
        {"id": "t-3", "date": "2025-01-03T09:00:00+00:00", "type": "in", "amount": 54000,
         "description": "Jual kopi", "category": "Penjualan"},
        {"id": "t-2", "date": "2025-01-02T10:00:00+00:00", "type": "out", "amount": 120000,
         "description": "Beli susu", "category": "Operasional"},
        {"id": "t-1", "date": "2025-01-01T08:00:00+00:00", "type": "in", "amount": 30000,
         "description": "Jual teh", "category": "Penjualan"},
    ]


@pytest.fixture
def fake_ledger(catalog, recent_transactions) -> FakeLedger:
    return FakeLedger(products=catalog, transactions=recent_transactions)


@pytest.fixture
def mock_gateway():
    """
    Mocked ModelGateway. Set `mock_gateway.send.return_value` (or
    side_effect) to script the model reply.
    """
    gateway = MagicMock()
    gateway.send = AsyncMock(return_value="Halo! Ada yang bisa saya bantu?")
    gateway.transcribe_audio = AsyncMock(return_value="jual dua kopi susu")
    gateway.embed_text = AsyncMock(return_value=[0.1, 0.2, 0.3])
    return gateway


@pytest.fixture
def supabase_client():
    """
    Mock Supabase client.
    Returns a MagicMock that simulates Supabase client behavior.
    """
    mock_client = MagicMock()
    return mock_client
