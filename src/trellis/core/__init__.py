"""Trellis Core -- errors and settings shared by every trellis layer.

Architecture::

    errors.py      Structured error hierarchy (TrellisError, HandlerConfigError,
                   RequestValidationError, AuthError)
    settings.py    TrellisSettings (pydantic-settings, TRELLIS_ env prefix)

Tags:
    trellis-core, errors, settings

Doc-Types:
    api-reference
"""

from trellis.core.errors import (
    AuthenticationError,
    AuthError,
    AuthorizationError,
    ConfigError,
    DuplicateHandlerError,
    ErrorCategory,
    ErrorContext,
    FeatureDisabledError,
    HandlerConfigError,
    InvalidRouteError,
    RequestValidationError,
    TrellisError,
    ValidationError,
)
from trellis.core.settings import TrellisSettings, get_settings

__all__ = [
    "AuthError",
    "AuthenticationError",
    "AuthorizationError",
    "ConfigError",
    "DuplicateHandlerError",
    "ErrorCategory",
    "ErrorContext",
    "FeatureDisabledError",
    "HandlerConfigError",
    "InvalidRouteError",
    "RequestValidationError",
    "TrellisError",
    "ValidationError",
    "TrellisSettings",
    "get_settings",
]
