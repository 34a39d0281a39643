"""Gateway Proxy - CORS-enabled forwarding proxy for an API gateway."""

__version__ = "1.0.0"
