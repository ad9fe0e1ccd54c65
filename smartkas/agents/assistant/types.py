"""
Assistant Type Definitions

Input/output contracts for the assistant core. Snapshot types are frozen
dataclasses (read-only for the whole turn); message and output types are
TypedDicts so they serialize straight into API responses.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple, TypedDict

ExtractionTask = Literal["product_list", "transaction_receipt", "chat_action", "anomaly_scan"]

TurnState = Literal[
    "IDLE",
    "CONTEXT_ASSEMBLED",
    "REQUESTED",
    "REPLIED",
    "PLAIN_REPLY",
    "PAYLOAD_FOUND",
    "VALIDATING",
    "VALIDATED",
    "INVALID",
    "RESOLVING",
    "RESOLVED",
    "UNRESOLVED",
    "DISPATCHING",
    "DONE",
    "FALLBACK_REPLY",
]


@dataclass(frozen=True)
class ProductSnapshot:
    """One catalog entry as seen by the assistant."""
    id: str
    name: str
    stock: int
    price: float
    unit: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ProductSnapshot":
        return cls(
            id=str(row.get("id")),
            name=str(row.get("name") or ""),
            stock=int(row.get("stock") or 0),
            price=float(row.get("price") or 0),
            unit=str(row.get("unit") or "pcs"),
        )


@dataclass(frozen=True)
class TransactionSnapshot:
    """One recent ledger transaction as seen by the assistant."""
    date: str  # YYYY-MM-DD
    type: str  # "in" | "out"
    amount: float
    description: Optional[str]
    category: Optional[str]

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TransactionSnapshot":
        raw_date = str(row.get("date") or "")
        return cls(
            date=raw_date.split("T")[0],
            type=str(row.get("type") or ""),
            amount=float(row.get("amount") or 0),
            description=row.get("description"),
            category=row.get("category"),
        )


@dataclass(frozen=True)
class ContextSnapshot:
    """Read-only business context assembled once per turn."""
    business_id: str
    business_name: str
    current_time: datetime
    products: Tuple[ProductSnapshot, ...]
    recent_transactions: Tuple[TransactionSnapshot, ...]  # most recent first


@dataclass(frozen=True)
class UnrecognizedAction:
    """A chat payload without an action discriminator. Dispatching it is a no-op."""
    payload_keys: Tuple[str, ...] = ()


class ChatMessage(TypedDict):
    """A prior turn in the conversation."""
    role: Literal["user", "assistant"]
    content: str


class GatewayMessage(TypedDict):
    """A message in the compiled request sent to the model."""
    role: Literal["system", "user", "assistant"]
    content: str


class TurnOutput(TypedDict):
    """Result of one assistant turn. `reply` is always set."""
    status: Literal["PLAIN_REPLY", "DONE", "FALLBACK_REPLY"]
    reply: str


class ExtractionOutput(TypedDict):
    """Result of a read-only extraction (OCR scans, anomaly scan)."""
    status: Literal["OK", "EMPTY", "INVALID", "UNAVAILABLE"]

    # Present when status == "OK"
    payload: Optional[Dict[str, Any]]

    # Present when status != "OK"
    reason: Optional[str]
    invalid_fields: Optional[List[str]]
