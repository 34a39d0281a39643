"""
Proxy Package
=============

This package forwards every inbound request to the configured API gateway
and relays the answer back with permissive CORS headers.

Main Components:
----------------
- headers.py: CORS header set and the shared header filter
- handler.py: ForwardingHandler (root banner, preflight, forwarding)
- routes.py: FastAPI catch-all router

Usage:
------
    from gateway_proxy.app.proxy import proxy_router
    app.include_router(proxy_router)
"""

from .handler import ForwardingHandler
from .routes import proxy_router

__all__ = ["ForwardingHandler", "proxy_router"]
