"""
Database access layer for SmartKas Backend.

All database operations MUST:
- Respect Row Level Security (RLS) through the user's JWT
- Stay scoped to the caller's business

Includes:
- Supabase client initialization (per request, user token)
"""

from .client import get_supabase_client

__all__ = ["get_supabase_client"]
