"""
Configuration module for the Gateway Proxy.

This module uses Pydantic Settings to load and validate environment variables
for the upstream API gateway, the listening socket, and forwarding behaviour.

Environment variables are loaded from .env file or system environment.
"""

from functools import lru_cache
from typing import Any, Dict

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ROOT_MESSAGE = "Netty server deployed by Mujahid"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    A Settings instance is immutable once built and is handed to the
    forwarding handler at construction time.
    """

    # =========================================================================
    # Upstream (API Gateway) Configuration
    # =========================================================================

    API_GATEWAY_URL: str = Field(
        default="",
        description="Base URL prefixed to every forwarded path (e.g., https://gateway.example.com)",
    )

    UPSTREAM_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Deadline for reaching the upstream and receiving its response headers",
        gt=0,
    )

    FORWARD_QUERY_STRING: bool = Field(
        default=True,
        description="Append the inbound query string to the upstream URL",
    )

    FOLLOW_UPSTREAM_REDIRECTS: bool = Field(
        default=False,
        description="Follow upstream redirects instead of relaying them to the caller",
    )

    # =========================================================================
    # Server Configuration
    # =========================================================================

    SERVER_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the proxy server",
    )

    SERVER_PORT: int = Field(
        ...,
        description="Port to bind the proxy server",
        ge=1,
        le=65535,
    )

    ROOT_MESSAGE: str = Field(
        default=DEFAULT_ROOT_MESSAGE,
        description="Plain text banner returned for the root path",
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    # =========================================================================
    # Pydantic Settings Configuration
    # =========================================================================

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra env vars not defined here
        frozen=True,
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("SERVER_PORT", mode="before")
    @classmethod
    def validate_server_port_present(cls, v: Any) -> Any:
        """
        Reject an empty SERVER_PORT with a readable message.

        Args:
            v: Raw port value from the environment

        Returns:
            The value unchanged, for integer coercion

        Raises:
            ValueError: If the port is blank
        """
        if isinstance(v, str) and not v.strip():
            raise ValueError("SERVER_PORT not set or empty")
        return v

    @field_validator("API_GATEWAY_URL")
    @classmethod
    def normalize_gateway_url(cls, v: str) -> str:
        """Strip whitespace and a trailing slash so paths concatenate cleanly."""
        return v.strip().rstrip("/")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """
        Validate the log level is one the logging module understands.

        Raises:
            ValueError: If the level name is unknown
        """
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

        level = v.strip().upper()
        if level not in allowed_levels:
            raise ValueError(
                f"LOG_LEVEL must be one of {allowed_levels}, got: {v}"
            )

        return level


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    This function is cached so that the settings are loaded only once
    during the application lifecycle.

    Returns:
        Settings instance with all configuration loaded and validated.

    Raises:
        ValidationError: If required environment variables are missing
                        or invalid.
    """
    return Settings()


# =============================================================================
# Configuration Helpers
# =============================================================================

def validate_configuration(settings: Settings) -> Dict[str, Any]:
    """
    Validate critical configuration settings and return a status report.

    Called during application startup; problems are logged, they do not
    stop the process.

    Returns:
        Dictionary with validation status and any warnings.

    Example:
        >>> status = validate_configuration(get_settings())
        >>> if not status["valid"]:
        ...     print(status["errors"])
    """
    errors = []
    warnings = []

    if not settings.API_GATEWAY_URL:
        errors.append("API_GATEWAY_URL is not set (every forwarded request will fail)")
    elif not settings.API_GATEWAY_URL.startswith(("http://", "https://")):
        errors.append(
            f"API_GATEWAY_URL must start with http:// or https://, got: {settings.API_GATEWAY_URL}"
        )

    if "localhost" in settings.API_GATEWAY_URL or "127.0.0.1" in settings.API_GATEWAY_URL:
        warnings.append("API_GATEWAY_URL points to localhost (may cause issues in containers)")

    if settings.FOLLOW_UPSTREAM_REDIRECTS:
        warnings.append("Upstream redirects are followed, callers will not see 3xx responses")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "upstream": settings.API_GATEWAY_URL,
        "timeout_seconds": settings.UPSTREAM_TIMEOUT_SECONDS,
    }


if __name__ == "__main__":
    """
    Run this module directly to validate your .env configuration:
        python -m gateway_proxy.app.config
    """
    print("=" * 80)
    print("GATEWAY PROXY CONFIGURATION")
    print("=" * 80)

    try:
        config = get_settings()

        print("\nUpstream Configuration:")
        print(f"  API Gateway URL:  {config.API_GATEWAY_URL or '(not set)'}")
        print(f"  Timeout:          {config.UPSTREAM_TIMEOUT_SECONDS} seconds")
        print(f"  Query strings:    {'forwarded' if config.FORWARD_QUERY_STRING else 'dropped'}")
        print(f"  Redirects:        {'followed' if config.FOLLOW_UPSTREAM_REDIRECTS else 'relayed'}")

        print("\nServer Configuration:")
        print(f"  Host:             {config.SERVER_HOST}")
        print(f"  Port:             {config.SERVER_PORT}")
        print(f"  Log level:        {config.LOG_LEVEL}")

        status = validate_configuration(config)

        if status["valid"]:
            print("\nAll critical checks passed!")
        else:
            print("\nConfiguration errors found:")
            for error in status["errors"]:
                print(f"  - {error}")

        if status["warnings"]:
            print("\nWarnings:")
            for warning in status["warnings"]:
                print(f"  - {warning}")

    except Exception as e:
        print(f"\nConfiguration error: {e}")
        print("""
Required variables:
  - SERVER_PORT

Optional variables:
  - API_GATEWAY_URL (empty: forwarding always fails)
  - SERVER_HOST (default: 0.0.0.0)
  - UPSTREAM_TIMEOUT_SECONDS (default: 10)
  - FORWARD_QUERY_STRING (default: true)
  - FOLLOW_UPSTREAM_REDIRECTS (default: false)
  - ROOT_MESSAGE
  - LOG_LEVEL (default: INFO)
""")
