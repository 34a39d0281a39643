"""
Data Models Module

Pydantic models for the responses the proxy generates itself. Forwarded
responses are relayed byte for byte and have no model.
"""

from pydantic import BaseModel, Field


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standardized error response model."""
    error: str = Field(..., description="Error type or code")
    message: str = Field(..., description="Human-readable error message")
