"""
Proxy Routes - API Gateway Request Forwarding
==============================================

A single catch-all route: every path and every proxied method is handed to
the ForwardingHandler stored on the application state.

Endpoints:
----------
- /{path}: root banner, CORS preflight, or forwarded to API_GATEWAY_URL
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response

from .handler import ForwardingHandler

logger = logging.getLogger(__name__)

# Create router
proxy_router = APIRouter()

PROXIED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE"]


# ============================================================================
# Dependencies
# ============================================================================

def get_forwarding_handler(request: Request) -> ForwardingHandler:
    """
    Dependency to get the forwarding handler from app state.

    Args:
        request: FastAPI request object

    Returns:
        ForwardingHandler built by the application factory
    """
    handler = getattr(request.app.state, "forwarding_handler", None)
    if handler is None:
        logger.error("Forwarding handler not initialized")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service unavailable",
        )

    return handler


# ============================================================================
# Proxy Endpoints
# ============================================================================

@proxy_router.api_route("/{path:path}", methods=PROXIED_METHODS, include_in_schema=False)
async def proxy_request(
    request: Request,
    handler: ForwardingHandler = Depends(get_forwarding_handler),
) -> Response:
    """Dispatch any inbound request through the forwarding handler."""
    return await handler(request)
