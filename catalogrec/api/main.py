"""FastAPI application main module.

This module defines the FastAPI application instance, wires logging, metrics
and error handling, and serves as the entry point for the API server.
"""

import logging
from typing import Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from catalogrec import __version__
from catalogrec.api.exceptions import CatalogRecException
from catalogrec.api.logging_config import RequestLoggingMiddleware, setup_logging
from catalogrec.api.metrics import metrics_service
from catalogrec.api.routes import recommendations
from catalogrec.config import LOG_LEVEL

setup_logging(LOG_LEVEL)

# Configure module logger
logger = logging.getLogger(__name__)

# Create FastAPI application instance
app = FastAPI(
    title="CatalogRec API",
    description="Product recommendation and campaign discount service",
    version=__version__,
)

app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(recommendations.router)


@app.exception_handler(CatalogRecException)
async def catalogrec_exception_handler(
    request: Request, exc: CatalogRecException
) -> JSONResponse:
    """Render CatalogRec exceptions as structured JSON errors."""
    logger.error(
        f"{type(exc).__name__}: {exc.message}",
        extra={"path": str(request.url.path), "details": exc.details},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": type(exc).__name__,
            "message": exc.message,
            "details": exc.details,
        },
    )


@app.get("/ping")
def ping() -> Dict[str, str]:
    """Health check endpoint.

    Example:
        >>> response = client.get("/ping")
        >>> assert response.json() == {"status": "ok"}
    """
    return {"status": "ok"}


@app.get("/metrics")
def metrics() -> Dict:
    """Recommendation request count and latency statistics."""
    return metrics_service.get_metrics()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "catalogrec.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
