"""
Tests for best-effort transaction vector sync.
"""

import asyncio
from unittest.mock import patch

import pytest

from smartkas.services import vector_sync
from smartkas.services.vector_sync import (
    describe_transaction,
    schedule_transaction_sync,
    sync_transaction_embedding,
)

TRANSACTION = {
    "id": "txn-1",
    "type": "out",
    "amount": 20000,
    "description": "Beli gula",
    "category": "Operasional",
    "date": "2025-01-05T09:00:00+00:00",
}


def test_describe_transaction():
    text = describe_transaction(TRANSACTION)

    assert text == "Pengeluaran | Beli gula | kategori Operasional | jumlah 20000 | tanggal 2025-01-05"


class TestSyncTransactionEmbedding:
    @pytest.mark.asyncio
    async def test_stores_vector(self, fake_ledger, mock_gateway):
        stored = await sync_transaction_embedding(fake_ledger, TRANSACTION, mock_gateway)

        assert stored is True
        assert fake_ledger.embeddings["txn-1"] == [0.1, 0.2, 0.3]

    @pytest.mark.asyncio
    async def test_failure_is_swallowed_and_logged(self, fake_ledger, mock_gateway, caplog):
        mock_gateway.embed_text.side_effect = RuntimeError("quota exceeded")

        stored = await sync_transaction_embedding(fake_ledger, TRANSACTION, mock_gateway)

        assert stored is False
        assert fake_ledger.embeddings == {}
        assert "Vector sync failed for transaction txn-1" in caplog.text


class TestScheduleTransactionSync:
    @pytest.mark.asyncio
    async def test_runs_in_background_when_enabled(self, fake_ledger, mock_gateway):
        with patch.object(vector_sync.settings, "VECTOR_SYNC_ENABLED", True):
            task = schedule_transaction_sync(fake_ledger, TRANSACTION, gateway=mock_gateway)

        assert task is not None
        assert task in vector_sync._background_tasks
        await task
        await asyncio.sleep(0)
        assert fake_ledger.embeddings["txn-1"] == [0.1, 0.2, 0.3]
        assert task not in vector_sync._background_tasks

    @pytest.mark.asyncio
    async def test_disabled(self, fake_ledger, mock_gateway):
        with patch.object(vector_sync.settings, "VECTOR_SYNC_ENABLED", False):
            assert schedule_transaction_sync(fake_ledger, TRANSACTION, gateway=mock_gateway) is None

        mock_gateway.embed_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_gateway(self, fake_ledger):
        with patch.object(vector_sync.settings, "VECTOR_SYNC_ENABLED", True), \
             patch.object(vector_sync, "get_model_gateway", return_value=None):
            assert schedule_transaction_sync(fake_ledger, TRANSACTION) is None

    def test_no_running_loop(self, fake_ledger, mock_gateway):
        with patch.object(vector_sync.settings, "VECTOR_SYNC_ENABLED", True):
            assert schedule_transaction_sync(fake_ledger, TRANSACTION, gateway=mock_gateway) is None
