"""
Gateway Proxy Application
=========================

Transparent forwarding layer in front of an API gateway, adding permissive
CORS headers on the way back.

Modules:
- config: Settings loaded from the environment / .env
- models: Models for proxy-generated error bodies
- proxy: Forwarding handler and catch-all router
- main: Application factory and process entry point
"""
