"""
Service layer for SmartKas Backend.

Contains the persistence side of the assistant:
- LedgerStore: business-scoped Supabase access consumed by the assistant core
- Business lookup/creation for the authenticated user
- Best-effort vector sync of newly created transactions

Services act as the glue between routes (HTTP layer), the assistant core and
the database.
"""

from .business_service import get_or_create_business
from .ledger_service import LedgerStore

__all__ = [
    "LedgerStore",
    "get_or_create_business",
]
