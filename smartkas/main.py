"""
FastAPI application entry point for SmartKas backend.

This module creates the FastAPI app instance and registers all routers.
"""

import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from smartkas.config import settings
from smartkas.routes.anomalies import router as anomalies_router
from smartkas.routes.chat import router as chat_router
from smartkas.routes.ocr import router as ocr_router
from smartkas.schemas.health import HealthResponse

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


def _get_cors_origins() -> list[str]:
    """
    Get allowed CORS origins based on environment.

    - ENVIRONMENT=production: Uses CORS_ALLOWED_ORIGINS (empty means none)
    - Anything else: Allows all origins for local dev

    Returns:
        List of allowed origin URLs, or ["*"] for development.
    """
    if settings.is_production():
        origins = settings.CORS_ALLOWED_ORIGINS
        if origins:
            logger.info(f"CORS configured for production with {len(origins)} allowed origins")
            return origins
        logger.warning(
            "CORS_ALLOWED_ORIGINS not set in production. "
            "No web origins allowed. Set CORS_ALLOWED_ORIGINS for web clients."
        )
        return []

    logger.info(f"CORS configured for {settings.ENVIRONMENT}: allowing all origins")
    return ["*"]


def _validation_errors(exc: RequestValidationError) -> list:
    """Validation errors without the raw input values."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


# Create FastAPI app
app = FastAPI(
    title="SmartKas API",
    description="Bookkeeping assistant backend for small businesses",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Custom validation error handler to log detailed errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Log detailed validation errors for debugging.

    The request body is not logged: chat requests can carry base64 images.
    """
    logger.error(
        f"Validation error on {request.method} {request.url.path}: {exc.errors()}"
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "details": _validation_errors(exc),
        }
    )


# Configure CORS with environment-based origins
cors_origins = _get_cors_origins()
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(chat_router)
app.include_router(ocr_router)
app.include_router(anomalies_router)

# Health check endpoint
@app.get("/health", tags=["system"], response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check if API is running."""
    return HealthResponse(status="ok", service="smartkas-backend")

logger.info("FastAPI app initialized successfully")
