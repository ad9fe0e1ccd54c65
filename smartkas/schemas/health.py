"""
Health check endpoint schemas.

The health endpoint is PUBLIC (no authentication required).
"""

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Response model for GET /health (used by load balancers and deploy checks)."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"status": "ok", "service": "smartkas-backend"}}
    )

    status: str = Field(default="ok", description="Always 'ok' if responding", examples=["ok"])
    service: str = Field(default="smartkas-backend", description="Service name")
