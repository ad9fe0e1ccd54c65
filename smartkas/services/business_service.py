"""
Business service.

Every ledger row belongs to a business; a user owns one business. The first
assistant request creates it when the user has none yet.
"""

import logging
from typing import Any, Dict, cast

from supabase import Client

from smartkas.utils.constants import DEFAULT_BUSINESS_NAME, DEFAULT_BUSINESS_TYPE

logger = logging.getLogger(__name__)


async def get_or_create_business(supabase_client: Client, user_id: str) -> Dict[str, Any]:
    """
    Fetch the user's business, creating a default one if missing.

    Args:
        supabase_client: Authenticated Supabase client
        user_id: The authenticated user's ID

    Returns:
        The business row (id, business_name, business_type)

    Raises:
        Exception: If the business cannot be created
    """
    result = (
        supabase_client.table("business")
        .select("id, business_name, business_type")
        .eq("user_id", user_id)
        .limit(1)
        .execute()
    )

    if result.data:
        return cast(Dict[str, Any], result.data[0])

    logger.info(f"No business for user {user_id}, creating default")

    created = (
        supabase_client.table("business")
        .insert({
            "user_id": user_id,
            "business_name": DEFAULT_BUSINESS_NAME,
            "business_type": DEFAULT_BUSINESS_TYPE,
        })
        .execute()
    )

    if not created.data:
        raise Exception("Failed to create business: no data returned")

    return cast(Dict[str, Any], created.data[0])
