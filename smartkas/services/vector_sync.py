"""
Transaction vector sync.

Mirrors newly created transactions into transaction.embedding so they can be
found by semantic search. Strictly best-effort: the sync runs as a detached
asyncio task, is never awaited by the request that created the transaction,
and its failures are only logged.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Set

from smartkas.agents.assistant.gateway import ModelGateway, get_model_gateway
from smartkas.config import settings

logger = logging.getLogger(__name__)

# Strong references so pending tasks are not garbage-collected mid-flight
_background_tasks: Set[asyncio.Task] = set()


def describe_transaction(transaction: Dict[str, Any]) -> str:
    """Text that gets embedded for one transaction."""
    direction = "Pemasukan" if transaction.get("type") == "in" else "Pengeluaran"
    parts = [
        direction,
        str(transaction.get("description") or ""),
        f"kategori {transaction.get('category') or '-'}",
        f"jumlah {transaction.get('amount')}",
        f"tanggal {str(transaction.get('date') or '').split('T')[0]}",
    ]
    return " | ".join(part for part in parts if part)


async def sync_transaction_embedding(ledger, transaction: Dict[str, Any], gateway: ModelGateway) -> bool:
    """
    Embed one transaction and store the vector. Never raises.

    Returns:
        True if the embedding was stored
    """
    transaction_id = transaction.get("id")
    try:
        vector = await gateway.embed_text(describe_transaction(transaction))
        await ledger.update_transaction_embedding(transaction_id, vector)
    except Exception as e:
        logger.warning(f"Vector sync failed for transaction {transaction_id}: {e}")
        return False

    logger.debug(f"Vector sync stored embedding for transaction {transaction_id}")
    return True


def schedule_transaction_sync(
    ledger,
    transaction: Dict[str, Any],
    gateway: Optional[ModelGateway] = None,
) -> Optional[asyncio.Task]:
    """
    Fire-and-forget the embedding sync for a committed transaction.

    Returns:
        The scheduled task (tests may await it), or None when sync is disabled
        or unavailable
    """
    if not settings.VECTOR_SYNC_ENABLED:
        return None

    gateway = gateway or get_model_gateway()
    if gateway is None:
        logger.debug("Vector sync skipped: model gateway not configured")
        return None

    try:
        task = asyncio.get_running_loop().create_task(
            sync_transaction_embedding(ledger, transaction, gateway)
        )
    except RuntimeError:
        logger.debug("Vector sync skipped: no running event loop")
        return None

    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task
