"""
Anomaly scan API endpoint.

POST /anomalies/scan analyzes the business's latest transactions with the
model and stores every flagged anomaly as a new alert.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from smartkas.agents.assistant import PersistenceFailure, TransactionSnapshot, detect_anomalies
from smartkas.auth.dependencies import AuthenticatedUser, get_authenticated_user
from smartkas.config import settings
from smartkas.db.client import get_supabase_client
from smartkas.schemas.anomalies import AnomalyResponse, AnomalyScanResponse
from smartkas.services import LedgerStore, get_or_create_business

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/anomalies", tags=["anomalies"])


@router.post(
    "/scan",
    response_model=AnomalyScanResponse,
    status_code=status.HTTP_200_OK,
    summary="Scan recent transactions for anomalies",
    description="""
    Analyze the latest transactions (ANOMALY_SCAN_WINDOW, default 50) for fraud,
    unusual spending, spikes and duplicates. Each anomaly found is stored as an
    alert with status 'new'.

    Businesses with fewer than ANOMALY_MIN_TRANSACTIONS transactions are
    skipped (status SKIPPED).
    """
)
async def scan_anomalies(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> AnomalyScanResponse:
    user_id = auth_user.user_id
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        business = await get_or_create_business(supabase_client, user_id)
        ledger = LedgerStore(supabase_client, business_id=business["id"])
        rows = await ledger.list_recent_transactions(settings.ANOMALY_SCAN_WINDOW)
    except Exception as e:
        logger.error(f"Failed to load transactions for user {user_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "ledger_error", "details": "Could not load transactions"}
        )

    if len(rows) < settings.ANOMALY_MIN_TRANSACTIONS:
        logger.info(
            f"Anomaly scan skipped for business {business['id']}: "
            f"{len(rows)} transaction(s), need {settings.ANOMALY_MIN_TRANSACTIONS}"
        )
        return AnomalyScanResponse(status="SKIPPED", transactions_analyzed=len(rows))

    transactions = [TransactionSnapshot.from_row(row) for row in rows]
    output = await detect_anomalies(transactions)

    if output["status"] == "UNAVAILABLE":
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "model_unavailable", "details": "The analysis model could not be reached"}
        )

    if output["status"] != "OK" or output["payload"] is None:
        logger.warning(f"Anomaly scan for business {business['id']} returned {output['status']}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "error": "invalid_model_output",
                "details": output.get("invalid_fields") or output.get("reason") or "No analysis returned"
            }
        )

    anomalies = output["payload"]["anomalies"]

    try:
        created = await ledger.create_alerts(anomalies, date=datetime.now(timezone.utc).isoformat())
    except PersistenceFailure as e:
        logger.error(f"Failed to store alerts for business {business['id']}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "ledger_error", "details": "Could not store alerts"}
        )

    logger.info(
        f"Anomaly scan for business {business['id']}: {len(transactions)} analyzed, "
        f"{len(anomalies)} found, {created} alert(s) created"
    )

    return AnomalyScanResponse(
        status="COMPLETED",
        transactions_analyzed=len(transactions),
        alerts_created=created,
        anomalies=[AnomalyResponse(**anomaly) for anomaly in anomalies],
    )
