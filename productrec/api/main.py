"""FastAPI application main module.

This module defines the FastAPI application instance, the error handlers
that translate ProductRec exceptions into JSON responses, and the health
check endpoint.
"""

import logging
from typing import Dict

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from productrec import __version__
from productrec.api.logging_config import RequestLoggingMiddleware
from productrec.api.routes import predict
from productrec.exceptions import ProductRecException

# Configure module logger
logger = logging.getLogger(__name__)

# Create FastAPI application instance
app = FastAPI(
    title="ProductRec API",
    description="Co-purchase product recommendation service",
    version=__version__,
)

app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(predict.router)


@app.exception_handler(ProductRecException)
async def handle_productrec_exception(request: Request, exc: ProductRecException) -> JSONResponse:
    """Render ProductRec errors with their status code."""
    logger.warning(
        "Request rejected",
        extra={
            "path": str(request.url.path),
            "error_type": type(exc).__name__,
            "status_code": exc.status_code,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": type(exc).__name__,
            "message": exc.message,
            "details": exc.details,
        },
    )


@app.exception_handler(ValueError)
async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
    """Render invalid argument errors as 400 responses."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "ValueError", "message": str(exc), "details": {}},
    )


@app.get("/ping")
def ping() -> Dict[str, str]:
    """Health check endpoint.

    Example:
        >>> response = client.get("/ping")
        >>> assert response.json() == {"status": "ok"}
    """
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    from productrec.api.logging_config import setup_logging

    setup_logging()
    uvicorn.run(
        "productrec.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
