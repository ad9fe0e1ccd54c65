"""
Action Dispatcher

Turns one validated (and, for stock changes, resolved) action into exactly one
ledger mutation and a confirmation message. The confirmation is built from
what the ledger returned, after the call committed.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from smartkas.agents.assistant.schemas import SaveTransactionAction, UpdateStockAction
from smartkas.agents.assistant.types import ProductSnapshot, UnrecognizedAction
from smartkas.services.vector_sync import schedule_transaction_sync
from smartkas.utils.constants import TRANSACTION_STATUS_COMPLETED
from smartkas.utils.formatting import format_quantity, format_rupiah

logger = logging.getLogger(__name__)

ValidatedAction = Union[SaveTransactionAction, UpdateStockAction, UnrecognizedAction]


@dataclass(frozen=True)
class DispatchResult:
    """A committed mutation and the text shown to the user."""
    confirmation: str
    record: Dict[str, Any]


async def _save_transaction(ledger, action: SaveTransactionAction, now: datetime) -> DispatchResult:
    record = await ledger.create_transaction(
        amount=action.amount,
        type=action.type,
        description=action.description,
        category=action.category,
        date=now.isoformat(),
        status=TRANSACTION_STATUS_COMPLETED,
    )

    schedule_transaction_sync(ledger, record)

    label = "Pemasukan" if action.type == "in" else "Pengeluaran"
    confirmation = (
        f"✅ Transaksi berhasil disimpan: {label} {format_rupiah(action.amount)} "
        f"({action.description})."
    )
    return DispatchResult(confirmation=confirmation, record=record)


async def _update_stock(ledger, action: UpdateStockAction, product: ProductSnapshot) -> DispatchResult:
    delta = action.quantity_change
    record = await ledger.increment_stock(product.id, delta)

    new_total = record.get("stock")
    if new_total is None:
        new_total = product.stock + delta

    confirmation = (
        f"📦 Stok diperbarui: {product.name} {delta:+d}. "
        f"Total: {format_quantity(new_total)} {product.unit}."
    )
    return DispatchResult(confirmation=confirmation, record=record)


async def dispatch_action(
    ledger,
    action: ValidatedAction,
    product: Optional[ProductSnapshot] = None,
    now: Optional[datetime] = None,
) -> Optional[DispatchResult]:
    """
    Execute one validated action against the ledger.

    Args:
        ledger: LedgerStore (or any object with the same methods)
        action: Output of validate_payload() for chat_action
        product: The resolved catalog entry (required for UpdateStockAction)
        now: Transaction timestamp; defaults to the current UTC time

    Returns:
        DispatchResult for a committed mutation, or None for UnrecognizedAction
        (no mutation)

    Raises:
        PersistenceFailure: the ledger call failed; nothing was committed
    """
    if isinstance(action, SaveTransactionAction):
        return await _save_transaction(ledger, action, now or datetime.now(timezone.utc))

    if isinstance(action, UpdateStockAction):
        if product is None:
            raise ValueError("update_stock needs a resolved product")
        return await _update_stock(ledger, action, product)

    logger.warning(f"No dispatcher for {type(action).__name__}; no ledger mutation")
    return None
