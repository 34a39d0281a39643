"""
FastAPI Gateway Proxy Application Factory
=========================================

This is the main entry point for the proxy that sits in front of the API
gateway and adds CORS support.

Architecture:
    Browser / Clients → Gateway Proxy (this service) → API Gateway

Routes:
    - /             : Plain text banner
    - OPTIONS /*    : CORS preflight answered locally
    - /*            : Forwarded to API_GATEWAY_URL

Environment Variables:
    - API_GATEWAY_URL: Upstream base URL (e.g., "https://gateway.example.com")
    - SERVER_PORT: Listen port (required)
    - SERVER_HOST: Bind address (default: 0.0.0.0)
    - UPSTREAM_TIMEOUT_SECONDS: Upstream deadline (default: 10)
    - FORWARD_QUERY_STRING: Forward query strings (default: true)
    - LOG_LEVEL: Logging level (default: INFO)

Running the Service:
    gateway-proxy
    python -m gateway_proxy.app.main

    With uvicorn directly:
        uvicorn gateway_proxy.app.main:create_app --factory --host 0.0.0.0 --port 8080
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import Settings, get_settings, validate_configuration
from .models import ErrorResponse
from .proxy import ForwardingHandler, proxy_router

logger = logging.getLogger("gateway_proxy.main")


# Configure structured JSON logging
def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def create_upstream_client(settings: Settings) -> httpx.AsyncClient:
    """
    Create the HTTP client shared by every forwarded request.

    Each connect, read, write and pool wait is bounded by
    UPSTREAM_TIMEOUT_SECONDS.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.UPSTREAM_TIMEOUT_SECONDS),
        follow_redirects=settings.FOLLOW_UPSTREAM_REDIRECTS,
    )


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup tasks:
        - Report configuration problems
        - Log service startup information

    Shutdown tasks:
        - Close the shared upstream client
    """
    settings: Settings = app.state.settings

    logger.info(
        "Starting gateway proxy",
        extra={
            "api_gateway_url": settings.API_GATEWAY_URL,
            "timeout_seconds": settings.UPSTREAM_TIMEOUT_SECONDS,
            "forward_query_string": settings.FORWARD_QUERY_STRING,
        }
    )

    report = validate_configuration(settings)
    for error in report["errors"]:
        logger.error(f"Configuration error: {error}")
    for warning in report["warnings"]:
        logger.warning(f"Configuration warning: {warning}")

    yield

    # Shutdown
    logger.info("Shutting down gateway proxy")
    await app.state.upstream_client.aclose()
    logger.info("Closed upstream client")


def create_app(
    settings: Optional[Settings] = None,
    upstream_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Application factory function.

    Creates and configures the FastAPI application instance with:
        - Lifespan management
        - Shared upstream client and forwarding handler
        - Catch-all proxy route
        - Exception handlers

    Args:
        settings: Configuration to use (default: loaded from environment)
        upstream_client: HTTP client to forward with (default: a new client
            built from settings). It is closed on shutdown.

    Returns:
        FastAPI: Configured application instance
    """
    if settings is None:
        settings = get_settings()

    if upstream_client is None:
        upstream_client = create_upstream_client(settings)

    # Every path belongs to the upstream, so no docs routes
    app = FastAPI(
        title="Gateway Proxy",
        description="CORS-enabled forwarding proxy in front of the API gateway",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.state.settings = settings
    app.state.upstream_client = upstream_client
    app.state.forwarding_handler = ForwardingHandler(settings, upstream_client)

    app.include_router(proxy_router)

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Log unhandled errors and return a generic 500.

        The exception text is never returned to the caller.
        """
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__
            },
            exc_info=True
        )

        body = ErrorResponse(
            error="internal_server_error",
            message="An unexpected error occurred",
        )
        return JSONResponse(status_code=500, content=body.model_dump())

    return app


def run() -> None:
    """
    Process entry point.

    Exits with status 1 when the configuration is invalid or a present .env
    file cannot be read. A missing .env is not an error. uvicorn exits
    non-zero on its own if the socket cannot be bound.
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        setup_logging()
        logger.critical(f"Invalid configuration: {e}")
        sys.exit(1)
    except (OSError, UnicodeDecodeError) as e:
        setup_logging()
        logger.critical(f"Error loading .env file: {e}")
        sys.exit(1)

    setup_logging(settings.LOG_LEVEL)
    logger.info(f"Starting server on http://{settings.SERVER_HOST}:{settings.SERVER_PORT}")

    uvicorn.run(
        create_app(settings),
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
