"""
Ledger store backed by Supabase.

The assistant core consumes exactly this interface. Every method is a single
Supabase call (atomic per call); nothing here spans multiple calls.

CRITICAL RULES:
1. All operations MUST respect RLS (the client carries the user's JWT)
2. Every query is scoped to the caller's business_id
3. Failures raise PersistenceFailure so callers never report a mutation that
   did not commit
"""

import logging
from typing import Any, Dict, List, cast

from postgrest.exceptions import APIError
from supabase import Client

from smartkas.agents.assistant.errors import PersistenceFailure
from smartkas.utils.constants import (
    ALERT_STATUS_NEW,
    DEFAULT_BUSINESS_NAME,
    TRANSACTION_STATUS_COMPLETED,
    TRANSACTION_TYPES,
)

logger = logging.getLogger(__name__)


class LedgerStore:
    """Business-scoped access to products, transactions and alerts."""

    def __init__(self, supabase_client: Client, business_id: str, business_name: str = DEFAULT_BUSINESS_NAME):
        self._client = supabase_client
        self.business_id = business_id
        self.business_name = business_name

    def _execute(self, query, operation: str):
        try:
            return query.execute()
        except APIError as e:
            logger.error(f"Ledger {operation} failed for business {self.business_id}: {e.message}")
            raise PersistenceFailure(f"{operation} failed: {e.message}") from e

    async def create_transaction(
        self,
        amount: float,
        type: str,
        description: str,
        category: str,
        date: str,
        status: str = TRANSACTION_STATUS_COMPLETED,
    ) -> Dict[str, Any]:
        """
        Insert one transaction row.

        Args:
            amount: Positive amount
            type: 'in' or 'out'
            description: Human-readable description
            category: Category name
            date: ISO-8601 datetime when the transaction occurred
            status: Row status (assistant writes 'completed')

        Returns:
            The created transaction row (includes id)

        Raises:
            PersistenceFailure: insert failed or returned no row
        """
        if type not in TRANSACTION_TYPES:
            raise ValueError(f"Invalid transaction type: {type}. Must be 'in' or 'out'")

        transaction_data = {
            "business_id": self.business_id,
            "amount": amount,
            "type": type,
            "description": description,
            "category": category,
            "date": date,
            "status": status,
        }

        logger.info(f"Creating transaction for business {self.business_id}: type={type}")

        result = self._execute(
            self._client.table("transaction").insert(transaction_data),
            "create_transaction",
        )

        if not result.data:
            raise PersistenceFailure("Failed to create transaction: no data returned")

        created = cast(Dict[str, Any], result.data[0])
        logger.info(f"Transaction created: id={created.get('id')}")
        return created

    async def find_products_by_name_substring(self, query: str) -> List[Dict[str, Any]]:
        """Products whose name contains `query` (case-insensitive)."""
        result = self._execute(
            self._client.table("product")
            .select("id, name, stock, price, unit")
            .eq("business_id", self.business_id)
            .ilike("name", f"%{query.strip()}%"),
            "find_products_by_name_substring",
        )
        return cast(List[Dict[str, Any]], result.data or [])

    async def increment_stock(self, product_id: str, delta: int) -> Dict[str, Any]:
        """
        Atomically apply stock += delta to one product.

        Uses the `increment_product_stock` RPC so the read-modify-write happens
        inside Postgres.

        Returns:
            The updated product row (with the resulting stock)
        """
        logger.info(f"Incrementing stock for product {product_id} by {delta}")

        result = self._execute(
            self._client.rpc(
                "increment_product_stock",
                {
                    "p_business_id": self.business_id,
                    "p_product_id": product_id,
                    "p_delta": delta,
                },
            ),
            "increment_stock",
        )

        data = result.data
        if isinstance(data, list):
            data = data[0] if data else None
        if not data:
            raise PersistenceFailure(f"Failed to increment stock for product {product_id}: no data returned")

        return cast(Dict[str, Any], data)

    async def list_recent_transactions(self, limit: int) -> List[Dict[str, Any]]:
        """The `limit` most recent transactions, newest first."""
        result = self._execute(
            self._client.table("transaction")
            .select("id, date, type, amount, description, category")
            .eq("business_id", self.business_id)
            .order("date", desc=True)
            .limit(limit),
            "list_recent_transactions",
        )
        return cast(List[Dict[str, Any]], result.data or [])

    async def list_products(self) -> List[Dict[str, Any]]:
        """The full product catalog."""
        result = self._execute(
            self._client.table("product")
            .select("id, name, stock, price, unit")
            .eq("business_id", self.business_id)
            .order("name"),
            "list_products",
        )
        return cast(List[Dict[str, Any]], result.data or [])

    async def create_alerts(self, anomalies: List[Dict[str, Any]], date: str) -> int:
        """
        Insert one alert row per detected anomaly.

        Returns:
            Number of alerts created
        """
        if not anomalies:
            return 0

        rows = [
            {
                "business_id": self.business_id,
                "title": anomaly["title"],
                "description": anomaly["description"],
                "severity": anomaly["severity"],
                "status": ALERT_STATUS_NEW,
                "amount": anomaly.get("amount"),
                "recommendation": anomaly.get("recommendation"),
                "impact": anomaly.get("impact"),
                "suggested_actions": anomaly.get("suggestedActions", []),
                "date": date,
            }
            for anomaly in anomalies
        ]

        result = self._execute(self._client.table("alert").insert(rows), "create_alerts")
        created = len(result.data or [])
        logger.info(f"Created {created} alert(s) for business {self.business_id}")
        return created

    async def update_transaction_embedding(self, transaction_id: str, embedding: List[float]) -> None:
        """Store the semantic vector used for transaction search."""
        self._execute(
            self._client.table("transaction")
            .update({"embedding": embedding})
            .eq("id", transaction_id)
            .eq("business_id", self.business_id),
            "update_transaction_embedding",
        )
