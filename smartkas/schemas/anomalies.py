"""
Pydantic schemas for the anomaly scan endpoint.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class AnomalyResponse(BaseModel):
    """One suspicious pattern flagged by the scan (stored as an alert)."""
    title: str
    description: str
    severity: Literal["high", "medium", "low"]
    recommendation: str = ""
    impact: str = ""
    suggestedActions: List[str] = Field(default_factory=list)
    amount: Optional[float] = None


class AnomalyScanResponse(BaseModel):
    """Response body for POST /anomalies/scan."""
    status: Literal["COMPLETED", "SKIPPED"] = Field(
        ...,
        description="SKIPPED when the business has too few transactions to analyze",
    )
    transactions_analyzed: int = Field(..., ge=0)
    alerts_created: int = Field(0, ge=0)
    anomalies: List[AnomalyResponse] = Field(default_factory=list)
