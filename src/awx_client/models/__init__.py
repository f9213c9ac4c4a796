"""Airwallex client models package.

This package contains the Pydantic models used by the client core:
authentication tokens and API error bodies.
"""

from .api_errors import (
    APIErrorBody,
    APIErrorDetails,
    FieldError,
    parse_api_error,
)
from .base_models import LoginResponse, Token, parse_expiry

__all__ = [
    "Token",
    "LoginResponse",
    "parse_expiry",
    "APIErrorBody",
    "APIErrorDetails",
    "FieldError",
    "parse_api_error",
]
